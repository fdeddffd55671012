"""
Period aggregator
=================

Counts strike records per grouping key.

A key is one or more components: "year", "month", "weekday", "guild",
"species", "runway", "source", or any callable taking a `StrikeRecord`.

Example:
- `count_by(records, "month", domain=MONTH_ORDER, order=MONTH_ORDER)`
  gives 12 rows in calendar order, zero-filled.
- `count_by(records, ("month", "species"), min_support=3)` drops species
  with fewer than 3 strikes in total across all months.

Rules:
- Every value of a caller-supplied domain appears in the output (count 0
  when absent from the data).
- Support thresholds are applied AFTER counting, on the total volume.
- Output is descending by count unless a canonical order is supplied.
"""

from __future__ import annotations

import itertools
import logging
from collections import Counter
from typing import Callable, Dict, Hashable, List, Mapping, Optional, Sequence, Tuple, Union

from .models import PeriodSummary, StrikeRecord

logger = logging.getLogger(__name__)

KeyFunc = Callable[[StrikeRecord], Hashable]
KeySpec = Union[str, KeyFunc]

KEY_FUNCS: Dict[str, KeyFunc] = {
    "year": lambda r: r.year,
    "month": lambda r: r.month,
    "weekday": lambda r: r.weekday(),
    "guild": lambda r: r.guild,
    "species": lambda r: r.species,
    "runway": lambda r: r.runway,
    "source": lambda r: r.source.value,
}


def _as_specs(key: Union[KeySpec, Sequence[KeySpec]]) -> List[KeySpec]:
    if isinstance(key, str) or callable(key):
        return [key]
    return list(key)


def _name(spec: KeySpec, i: int) -> str:
    return spec if isinstance(spec, str) else getattr(spec, "__name__", f"key{i}")


def _func(spec: KeySpec) -> KeyFunc:
    if callable(spec):
        return spec
    try:
        return KEY_FUNCS[spec]
    except KeyError:
        raise ValueError(f"Unknown grouping key {spec!r}. Known: {sorted(KEY_FUNCS)}") from None


def _per_component(value, names: List[str]) -> List[Optional[Sequence]]:
    """Spread a domain/order argument over the key components."""
    if value is None:
        return [None] * len(names)
    if isinstance(value, Mapping):
        return [value.get(n) for n in names]
    if len(names) == 1:
        return [value]
    raise ValueError("For composite keys, pass domain/order as a mapping {component: values}")


def count_by(records: Sequence[StrikeRecord],
             key: Union[KeySpec, Sequence[KeySpec]],
             domain=None,
             order=None,
             min_support: Optional[int] = None,
             support_on: Optional[str] = None) -> List[PeriodSummary]:
    """Count records per key value.

    Args:
        records: normalized/classified records.
        key: one component or a sequence of components.
        domain: expected values (single key) or {component: values}; zero-filled.
        order: canonical ordering (single key) or {component: values}.
        min_support: drop groups whose total over all other components is below this.
        support_on: component the threshold is measured on (default: "species"
            when present, otherwise the last component).
    """
    specs = _as_specs(key)
    names = [_name(s, i) for i, s in enumerate(specs)]
    funcs = [_func(s) for s in specs]

    counts: Counter = Counter()
    missing = 0
    for r in records:
        k = tuple(f(r) for f in funcs)
        if any(v is None for v in k):
            missing += 1
            continue
        counts[k] += 1
    if missing:
        logger.warning("%d record(s) have no value for %s and were not counted", missing, "/".join(names))

    domains = _per_component(domain, names)
    if any(d is not None for d in domains):
        observed = [sorted({k[i] for k in counts}, key=str) for i in range(len(names))]
        axes = [list(d) if d is not None else observed[i] for i, d in enumerate(domains)]
        for k in itertools.product(*axes):
            counts.setdefault(k, 0)

    if min_support is not None:
        counts = _apply_support(counts, names, min_support, support_on)

    summaries = [PeriodSummary(key=k, count=n) for k, n in counts.items()]
    return _sort(summaries, names, _per_component(order, names))


def _apply_support(counts: Counter, names: List[str], min_support: int, support_on: Optional[str]) -> Counter:
    if support_on is None:
        support_on = "species" if "species" in names else names[-1]
    if support_on not in names:
        raise ValueError(f"support_on={support_on!r} is not one of the key components {names}")
    i = names.index(support_on)
    totals: Counter = Counter()
    for k, n in counts.items():
        totals[k[i]] += n
    kept = {v for v, n in totals.items() if n >= min_support}
    dropped = len(totals) - len(kept)
    if dropped:
        logger.info("Suppressed %d %s group(s) below %d total strikes", dropped, support_on, min_support)
    return Counter({k: n for k, n in counts.items() if k[i] in kept})


def _sort(summaries: List[PeriodSummary], names: List[str], orders: List[Optional[Sequence]]) -> List[PeriodSummary]:
    if all(o is None for o in orders):
        # descending count, ties broken by key text for stable output
        return sorted(summaries, key=lambda s: (-s.count, tuple(str(v) for v in s.key)))

    positions = [({v: i for i, v in enumerate(o)} if o is not None else None) for o in orders]

    def sort_key(s: PeriodSummary) -> Tuple:
        parts = []
        for v, pos in zip(s.key, positions):
            if pos is None:
                parts.append((0, str(v)))
            else:
                parts.append((pos.get(v, len(pos)), str(v)))
        return tuple(parts)

    return sorted(summaries, key=sort_key)


def as_mapping(summaries: Sequence[PeriodSummary]) -> Dict:
    """{key: count}; single-component keys are unwrapped."""
    return {(s.key[0] if len(s.key) == 1 else s.key): s.count for s in summaries}


def counts_by_year(records: Sequence[StrikeRecord], years: Optional[Sequence[int]] = None) -> Dict[int, int]:
    """Per-year counts, zero-filled over `years` when given."""
    return as_mapping(count_by(records, "year", domain=years, order=sorted(years) if years else None))
