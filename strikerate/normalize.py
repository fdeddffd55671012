"""
Record normalizer
=================

Canonical naming rules shared by both strike sources.

The free-text fields of the two exports disagree on spelling, case and
granularity ("Gulls", "Herring gull", "GULL"...). Rather than a chain of
conditionals, each rule family is a first-class table:

- `SPECIES_CLUSTERS`: ordered (predicate, label) rules, first match wins.
- `SPECIES_CORRECTIONS`: one-off fixes applied after clustering.
- `GUILD_HARMONIZATION`: singular/plural fixes for guild labels.
- `RUNWAY_PAIRS`: physical runway identifier -> paired-runway label.

Values that no rule can place are never dropped. They get a fallback label
and are collected in an `UnmappedValues` so a person can extend the tables.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Set, Tuple

import pandas as pd

from .models import MONTH_ORDER

logger = logging.getLogger(__name__)

UNKNOWN_GUILD = "Unknown"
UNKNOWN_SPECIES = "Unknown bird"
OTHER_RUNWAY = "Other"


@dataclass(frozen=True)
class ClusterRule:
    """Replace any species text matching `predicate` with `label`."""
    name: str
    predicate: Callable[[str], bool]
    label: str

    def matches(self, text: str) -> bool:
        return self.predicate(text.lower())


def _contains_all(*needles: str) -> Callable[[str], bool]:
    return lambda s: all(n in s for n in needles)


# Evaluated top to bottom; the first matching rule wins.
SPECIES_CLUSTERS: Tuple[ClusterRule, ...] = (
    ClusterRule("unknown-bird", _contains_all("unknown", "bird"), UNKNOWN_SPECIES),
    ClusterRule("gull", _contains_all("gull"), "Gull sp."),
    ClusterRule("bat", _contains_all("bat"), "Bat sp."),
)

# Exact (sentence-cased) text -> replacement.
SPECIES_CORRECTIONS: Dict[str, str] = {
    "Perching birds (y)": UNKNOWN_SPECIES,
    "Mallard/american black duck complex": "Waterfowl sp.",
    "Swallows": "Swallow sp.",
    "Shorebirds": "Shorebird sp.",
    "Eastern cottontail": "Eastern cottontail rabbit",
    "American barn owl": "Barn owl",
    "Redpoll": "Common redpoll",
    "Turtles": "Turtle sp.",
}

GUILD_HARMONIZATION: Dict[str, str] = {
    "Mammal": "Mammals",
}

# Both ends of one physical runway map to the same label.
RUNWAY_PAIRS: Dict[str, str] = {
    "22R": "22R-4L", "4L": "22R-4L",
    "22L": "22L-4R", "4R": "22L-4R",
    "21R": "21R-3L", "3L": "21R-3L",
    "21L": "21L-3R", "3R": "21L-3R",
    "27R": "27R-9L", "9L": "27R-9L",
    "27L": "27L-9R", "9R": "27L-9R",
}
RUNWAY_LABELS: Tuple[str, ...] = tuple(dict.fromkeys(RUNWAY_PAIRS.values()))

_MONTH_PREFIX = re.compile(r"^\s*\d+\s*[-./_ ]\s*")
_WS = re.compile(r"\s+")


@dataclass
class UnmappedValues:
    """Distinct original values that fell through to a fallback label."""
    by_field: Dict[str, Set[str]] = field(default_factory=dict)

    def add(self, field_name: str, value: str) -> None:
        self.by_field.setdefault(field_name, set()).add(value)

    def get(self, field_name: str) -> List[str]:
        return sorted(self.by_field.get(field_name, set()))

    def rows(self) -> List[Tuple[str, str]]:
        """(field, value) pairs sorted for stable output."""
        return [(f, v) for f in sorted(self.by_field) for v in self.get(f)]

    def __len__(self) -> int:
        return sum(len(v) for v in self.by_field.values())

    def log_summary(self) -> None:
        """Log every distinct unmapped value, one line per field."""
        for f in sorted(self.by_field):
            values = self.get(f)
            logger.warning("%d unmapped %s value(s): %s", len(values), f, "; ".join(repr(v) for v in values))


def _blank(x) -> bool:
    if x is None:
        return True
    try:
        if pd.isna(x):
            return True
    except (TypeError, ValueError):
        pass
    return str(x).strip() == ""


def sentence_case(text: str) -> str:
    """'HERRING GULL' -> 'Herring gull'."""
    s = _WS.sub(" ", str(text).strip())
    return s[:1].upper() + s[1:].lower()


def normalize_species(raw, unmapped: Optional[UnmappedValues] = None) -> str:
    """Trim, sentence-case, cluster and correct a species name.

    Idempotent: normalize_species(normalize_species(x)) == normalize_species(x).
    """
    if _blank(raw):
        if unmapped is not None:
            unmapped.add("species", "")
        return UNKNOWN_SPECIES
    s = sentence_case(raw)
    for rule in SPECIES_CLUSTERS:
        if rule.matches(s):
            s = rule.label
            break
    s = SPECIES_CORRECTIONS.get(s, s)
    return s


def normalize_guild(raw, unmapped: Optional[UnmappedValues] = None) -> str:
    if _blank(raw):
        if unmapped is not None:
            unmapped.add("guild", "")
        return UNKNOWN_GUILD
    g = _WS.sub(" ", str(raw).strip())
    return GUILD_HARMONIZATION.get(g, g)


def assign_guild(species: str, guild_table: Mapping[str, str],
                 unmapped: Optional[UnmappedValues] = None) -> str:
    """Look a normalized species up in the species -> guild table."""
    g = guild_table.get(species)
    if g is None:
        if unmapped is not None:
            unmapped.add("species_without_guild", species)
        return UNKNOWN_GUILD
    return normalize_guild(g)


def build_guild_table(pairs: Iterable[Tuple[str, str]]) -> Dict[str, str]:
    """Normalize the species keys of a raw (species, guild) listing."""
    table: Dict[str, str] = {}
    for species, guild in pairs:
        if _blank(species):
            continue
        table[normalize_species(species)] = normalize_guild(guild)
    return table


def normalize_runway(raw, unmapped: Optional[UnmappedValues] = None) -> str:
    """Collapse a runway identifier into its paired label, else 'Other'."""
    if _blank(raw):
        return OTHER_RUNWAY
    label = RUNWAY_PAIRS.get(str(raw).strip().upper())
    if label is None:
        if unmapped is not None:
            unmapped.add("runway", str(raw).strip())
        return OTHER_RUNWAY
    return label


def normalize_month(raw, unmapped: Optional[UnmappedValues] = None) -> Optional[str]:
    """'01-Jan' / 'Jan' / 'January' / 1 -> 'Jan'. None when unrecognized."""
    if _blank(raw):
        return None
    s = str(raw).strip()
    try:
        n = int(float(s))
        if 1 <= n <= 12 and float(s) == n:
            return MONTH_ORDER[n - 1]
    except (ValueError, OverflowError):
        pass
    s = _MONTH_PREFIX.sub("", s)
    abbr = s[:3].title()
    if abbr in MONTH_ORDER:
        return abbr
    if unmapped is not None:
        unmapped.add("month", str(raw).strip())
    return None


def normalize_year(raw) -> Optional[int]:
    """'2,024' -> 2024. None when blank or not a number."""
    if _blank(raw):
        return None
    s = str(raw).replace(",", "").strip()
    try:
        return int(float(s))
    except (ValueError, OverflowError):
        return None
