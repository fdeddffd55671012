"""
Dataset loaders (exports -> StrikeRecord list)
==============================================

This module reads the two strike exports plus the two lookup tables and
converts each strike row into a `StrikeRecord`.

Key ideas:
- One adapter per source (`regulatory_record`, `internal_record`); both return
  the same canonical record, so nothing downstream branches on the schema.
- We try several spellings of each column because exports vary (spreadsheet
  headers vs. names mangled by earlier tooling, e.g. "Unique.ID").
- Conversion helpers (_to_int/_to_float/_to_str) safely handle blanks.
- A missing required column aborts the load; nothing is processed partially.
"""

from __future__ import annotations

import logging
import os
import re
import zipfile
from typing import Dict, Iterable, List, Mapping, Optional

import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException

from . import classify
from .config import AMBIGUOUS_STATUSES, DEFAULT_OPERATIONS, PipelineConfig
from .models import OperationsRecord, Source, StrikeRecord
from .normalize import (
    UNKNOWN_GUILD,
    UnmappedValues,
    assign_guild,
    build_guild_table,
    normalize_guild,
    normalize_month,
    normalize_runway,
    normalize_species,
    normalize_year,
)

logger = logging.getLogger(__name__)


class InputFileError(Exception):
    """An input file is missing, unreadable or structurally wrong."""


class MissingColumnError(KeyError):
    """A required column is absent from an input table."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Missing required column"


# -----------------------------
# Cell conversion helpers
# -----------------------------

def _to_int(x) -> Optional[int]:
    """Convert a cell to int, returning None if missing/invalid."""
    if pd.isna(x): return None
    try: return int(float(str(x).replace(",", "")))
    except (TypeError, ValueError, OverflowError): return None

def _to_float(x) -> Optional[float]:
    """Convert a cell to float, returning None if missing/invalid."""
    if pd.isna(x): return None
    try: return float(str(x).replace(",", "").replace("$", ""))
    except (TypeError, ValueError): return None

def _to_str(x) -> str:
    if pd.isna(x): return ""
    return str(x).strip()

def _to_date(x):
    if pd.isna(x): return None
    ts = pd.to_datetime(x, errors="coerce")
    if pd.isna(ts): return None
    return ts.date()

def _norm(s: str) -> str:
    return re.sub(r"[^a-z0-9]+", "", str(s).lower())

def _find_col(df: pd.DataFrame, *names: str) -> Optional[str]:
    cols = list(df.columns)
    for n in names:
        if n in cols:
            return n
    norm_map = {_norm(c): c for c in cols}
    for n in names:
        nn = _norm(n)
        if nn in norm_map:
            return norm_map[nn]
    return None

def _col(df: pd.DataFrame, *names: str) -> str:
    c = _find_col(df, *names)
    if c is None:
        raise MissingColumnError(f"Missing required column. Tried={names}. Available={list(df.columns)}")
    return c


def read_table(path: str) -> pd.DataFrame:
    """Read a CSV or Excel export into a DataFrame of raw cells."""
    if not path or not os.path.exists(path):
        raise InputFileError(f"Input file not found: {path}")
    try:
        if path.lower().endswith((".xlsx", ".xlsm")):
            df = pd.read_excel(path, engine="openpyxl", dtype=object)
        else:
            df = pd.read_csv(path, dtype=object, keep_default_na=True, encoding="utf-8-sig")
    except (UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError, ValueError,
            zipfile.BadZipFile, InvalidFileException) as e:
        raise InputFileError(f"Could not read {path}: {e}") from e
    df.rename(columns={c: str(c).strip() for c in df.columns}, inplace=True)
    logger.info("Read %d rows x %d columns from %s", len(df), len(df.columns), path)
    return df


# -----------------------------
# Column spellings per source
# -----------------------------

REGULATORY_COLUMNS: Dict[str, tuple] = {
    "record_id": ("INDX_NR", "Index Nr", "Record ID"),
    "date": ("INCIDENT_DATE", "Incident Date"),
    "year": ("INCIDENT_YEAR", "Incident Year"),
    "month": ("INCIDENT_MONTH", "Incident Month"),
    "species": ("SPECIES", "Species"),
    "runway": ("RUNWAY", "Runway"),
    "registration": ("REG", "Registration"),
    "remains": ("REMAINS_SENT", "Remains Sent"),
    "damage": ("INDICATED_DAMAGE", "Indicated Damage"),
    "flight_effect": ("EFFECT", "Effect"),
    "other_effect": ("EFFECT_OTHER", "Effect Other"),
    "repair_cost": ("COST_REPAIRS", "Cost Repairs"),
    "downtime": ("AOS", "Aircraft Out of Service"),
    "other_cost": ("COST_OTHER", "Cost Other"),
}
REGULATORY_OPTIONAL: Dict[str, tuple] = {
    "number_struck": ("NUM_STRUCK", "Number Struck"),
}

INTERNAL_COLUMNS: Dict[str, tuple] = {
    "record_id": ("Unique ID", "Unique.ID"),
    "year": ("Strike Year", "Strike.Year"),
    "month": ("Strike Month", "Strike.Month"),
    "guild": ("Guild",),
    "species": ("Species Name", "Species.Name"),
    "runway": ("Runway/Taxiway", "Runway.Taxiway", "Runway"),
    "damage": ("Damaging Strike", "Damaging.Strike"),
    "flight_effect": ("Effect On Flight", "Effect.On.Flight"),
    "other_effect": ("Other Effect", "Other.Effect"),
    "repair_cost": ("Estimated Cost of Repairs ($)", "Estimated.Cost.of.Repairs...."),
    "downtime": ("Aircraft Time Out of Service (hrs)", "Aircraft.Time.Out.of.Service..hrs."),
    "other_cost": ("Other Costs ($)", "Other.Costs...."),
    "status": ("Course of Action?", "Course of Action", "Course.of.Action."),
}
INTERNAL_OPTIONAL: Dict[str, tuple] = {
    "date": ("Strike Date", "Strike.Date", "Date"),
    "registration": ("Aircraft Registration", "Aircraft.Registration"),
    "remains": ("Remains",),
    "number_struck": ("Total Struck", "Total.Struck"),
}


def _resolve(df: pd.DataFrame, required: Mapping[str, tuple], optional: Mapping[str, tuple]) -> Dict[str, Optional[str]]:
    cols: Dict[str, Optional[str]] = {k: _col(df, *names) for k, names in required.items()}
    for k, names in optional.items():
        cols[k] = _find_col(df, *names)
    return cols


def _get(row, cols: Mapping[str, Optional[str]], key: str):
    c = cols.get(key)
    return row[c] if c is not None else None


# -----------------------------
# Source adapters
# -----------------------------

def regulatory_record(row, cols: Mapping[str, Optional[str]], year: int,
                      guild_table: Optional[Mapping[str, str]] = None,
                      unmapped: Optional[UnmappedValues] = None) -> StrikeRecord:
    """Build a canonical record from one regulatory-export row."""
    species_raw = _to_str(_get(row, cols, "species"))
    species = normalize_species(species_raw, unmapped)
    guild = assign_guild(species, guild_table, unmapped) if guild_table is not None else UNKNOWN_GUILD
    runway_raw = _to_str(_get(row, cols, "runway"))
    registration = _to_str(_get(row, cols, "registration"))
    damage = classify.damaging(_get(row, cols, "damage"), Source.REGULATORY)
    flight_effect = _to_str(_get(row, cols, "flight_effect"))
    other_effect = _to_str(_get(row, cols, "other_effect"))
    repair_cost = _to_float(_get(row, cols, "repair_cost"))
    downtime = _to_float(_get(row, cols, "downtime"))
    other_cost = _to_float(_get(row, cols, "other_cost"))
    return StrikeRecord(
        record_id=_to_str(_get(row, cols, "record_id")),
        source=Source.REGULATORY,
        date=_to_date(_get(row, cols, "date")),
        year=year,
        month=normalize_month(_get(row, cols, "month"), unmapped),
        species=species,
        species_raw=species_raw,
        guild=guild,
        runway=normalize_runway(runway_raw, unmapped),
        runway_raw=runway_raw,
        registration=registration,
        registration_present=classify.pilot_reported(registration),
        remains_sent=classify.remains_sent(_get(row, cols, "remains"), Source.REGULATORY),
        damage_indicated=damage,
        flight_effect=flight_effect,
        other_effect=other_effect,
        repair_cost=repair_cost,
        downtime_hours=downtime,
        other_cost=other_cost,
        number_struck=_to_int(_get(row, cols, "number_struck")),
        workflow_status="",
        disruptive=classify.disruptive(damage, flight_effect, other_effect, repair_cost, downtime, other_cost),
    )


def internal_record(row, cols: Mapping[str, Optional[str]], year: int,
                    unmapped: Optional[UnmappedValues] = None) -> StrikeRecord:
    """Build a canonical record from one internal (command-center) row."""
    species_raw = _to_str(_get(row, cols, "species"))
    runway_raw = _to_str(_get(row, cols, "runway"))
    registration = _to_str(_get(row, cols, "registration"))
    damage = classify.damaging(_get(row, cols, "damage"), Source.INTERNAL)
    flight_effect = _to_str(_get(row, cols, "flight_effect"))
    other_effect = _to_str(_get(row, cols, "other_effect"))
    repair_cost = _to_float(_get(row, cols, "repair_cost"))
    downtime = _to_float(_get(row, cols, "downtime"))
    other_cost = _to_float(_get(row, cols, "other_cost"))
    return StrikeRecord(
        record_id=_to_str(_get(row, cols, "record_id")),
        source=Source.INTERNAL,
        date=_to_date(_get(row, cols, "date")),
        year=year,
        month=normalize_month(_get(row, cols, "month"), unmapped),
        species=normalize_species(species_raw, unmapped),
        species_raw=species_raw,
        guild=normalize_guild(_get(row, cols, "guild"), unmapped),
        runway=normalize_runway(runway_raw, unmapped),
        runway_raw=runway_raw,
        registration=registration,
        registration_present=classify.pilot_reported(registration),
        remains_sent=classify.remains_sent(_get(row, cols, "remains"), Source.INTERNAL),
        damage_indicated=damage,
        flight_effect=flight_effect,
        other_effect=other_effect,
        repair_cost=repair_cost,
        downtime_hours=downtime,
        other_cost=other_cost,
        number_struck=_to_int(_get(row, cols, "number_struck")),
        workflow_status=_to_str(_get(row, cols, "status")),
        disruptive=classify.disruptive(damage, flight_effect, other_effect, repair_cost, downtime, other_cost),
    )


def status_included(status: str, config: PipelineConfig) -> bool:
    """Workflow-status inclusion policy for internal records."""
    s = (status or "").strip()
    if s in config.excluded_statuses:
        return False
    if s.lower() in AMBIGUOUS_STATUSES:
        return config.include_ambiguous_status
    return True


# -----------------------------
# Table loaders
# -----------------------------

def records_from_regulatory(df: pd.DataFrame, config: Optional[PipelineConfig] = None,
                            guild_table: Optional[Mapping[str, str]] = None,
                            unmapped: Optional[UnmappedValues] = None) -> List[StrikeRecord]:
    """Convert a regulatory-export DataFrame, keeping the configured year window."""
    config = config or PipelineConfig()
    cols = _resolve(df, REGULATORY_COLUMNS, REGULATORY_OPTIONAL)
    records: List[StrikeRecord] = []
    no_year = 0
    for _, row in df.iterrows():
        year = normalize_year(row[cols["year"]])
        if year is None:
            no_year += 1
            continue
        if not (config.first_year <= year <= config.last_year):
            continue
        records.append(regulatory_record(row, cols, year, guild_table, unmapped))
    if no_year:
        logger.warning("Skipped %d regulatory row(s) without a usable year", no_year)
    logger.info("Loaded %d regulatory strikes (%d-%d)", len(records), config.first_year, config.last_year)
    return records


def records_from_internal(df: pd.DataFrame, config: Optional[PipelineConfig] = None,
                          unmapped: Optional[UnmappedValues] = None) -> List[StrikeRecord]:
    """Convert an internal-export DataFrame, applying the workflow-status policy."""
    config = config or PipelineConfig()
    cols = _resolve(df, INTERNAL_COLUMNS, INTERNAL_OPTIONAL)
    if cols["registration"] is None:
        logger.warning("Internal export has no registration column; every internal record counts as not pilot-reported")
    records: List[StrikeRecord] = []
    excluded = 0
    no_year = 0
    for _, row in df.iterrows():
        if not status_included(_to_str(row[cols["status"]]), config):
            excluded += 1
            continue
        year = normalize_year(row[cols["year"]])
        if year is None:
            no_year += 1
            continue
        records.append(internal_record(row, cols, year, unmapped))
    if no_year:
        logger.warning("Skipped %d internal row(s) without a usable year", no_year)
    logger.info("Loaded %d internal strikes (%d excluded by workflow status)", len(records), excluded)
    return records


def load_regulatory(path: str, config: Optional[PipelineConfig] = None,
                    guild_table: Optional[Mapping[str, str]] = None,
                    unmapped: Optional[UnmappedValues] = None) -> List[StrikeRecord]:
    return records_from_regulatory(read_table(path), config, guild_table, unmapped)


def load_internal(path: str, config: Optional[PipelineConfig] = None,
                  unmapped: Optional[UnmappedValues] = None) -> List[StrikeRecord]:
    return records_from_internal(read_table(path), config, unmapped)


def load_guild_table(path: str) -> Dict[str, str]:
    """Species -> guild lookup, keyed by normalized species name."""
    df = read_table(path)
    sp = _col(df, "Species", "Species Name")
    gd = _col(df, "Guild")
    table = build_guild_table(zip(df[sp], df[gd]))
    logger.info("Loaded %d guild assignments from %s", len(table), path)
    return table


def complete_operations(ops: Iterable[OperationsRecord]) -> List[OperationsRecord]:
    """Sort by year and zero-fill interior gaps (missing years between min and max)."""
    by_year = {o.year: o for o in ops}
    if not by_year:
        return []
    out: List[OperationsRecord] = []
    for y in range(min(by_year), max(by_year) + 1):
        if y not in by_year:
            logger.warning("No operations figure for %d; using 0", y)
        out.append(by_year.get(y, OperationsRecord(year=y, operations_count=0)))
    return out


def operations_from_mapping(counts: Mapping[int, int]) -> List[OperationsRecord]:
    return complete_operations(OperationsRecord(year=int(y), operations_count=int(n)) for y, n in counts.items())


def default_operations() -> List[OperationsRecord]:
    """The built-in annual operations table."""
    return operations_from_mapping(DEFAULT_OPERATIONS)


def load_operations(path: Optional[str] = None) -> List[OperationsRecord]:
    """Read (Year, Operations) rows; no path -> the built-in table."""
    if path is None:
        return default_operations()
    df = read_table(path)
    yc = _col(df, "Year")
    oc = _col(df, "Operations", "Operations Count", "Total Operations")
    counts: Dict[int, int] = {}
    for _, row in df.iterrows():
        year = normalize_year(row[yc])
        n = _to_int(row[oc])
        if year is None:
            continue
        if year in counts:
            raise InputFileError(f"Duplicate operations year {year} in {path}")
        counts[year] = n or 0
    return operations_from_mapping(counts)
