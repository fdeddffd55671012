"""
Table output
============

Flat comma-delimited files with fixed headers. Every writer overwrites its
target, so re-running a report over the same inputs gives the same files.
"""

from __future__ import annotations

import csv
import logging
import os
from typing import Iterable, Sequence

from .models import OperationsRecord, PeriodSummary, StrikeRecord
from .normalize import UnmappedValues

logger = logging.getLogger(__name__)

RECORD_HEADER = [
    "record_id", "source", "date", "year", "month", "weekday", "species", "species_raw", "guild",
    "runway", "runway_raw", "registration", "registration_present", "remains_sent",
    "damage_indicated", "flight_effect", "other_effect", "repair_cost", "downtime_hours",
    "other_cost", "number_struck", "workflow_status", "disruptive",
]


def _fmt(v) -> str:
    if v is None:
        return ""
    if isinstance(v, bool):
        return "TRUE" if v else "FALSE"
    if isinstance(v, float):
        return f"{v:.6g}" if abs(v) < 1e15 else str(v)
    return str(v)


def write_rows(path: str, header: Sequence[str], rows: Iterable[Sequence]) -> str:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    n = 0
    with open(path, "w", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        w.writerow(header)
        for row in rows:
            w.writerow([_fmt(v) for v in row])
            n += 1
    logger.info("Wrote %d row(s) to %s", n, path)
    return path


def write_records(records: Sequence[StrikeRecord], path: str) -> str:
    """Normalized/classified extract, one row per strike."""
    return write_rows(path, RECORD_HEADER, (
        [r.record_id, r.source.value, r.date.isoformat() if r.date else None, r.year, r.month,
         r.weekday(), r.species, r.species_raw, r.guild, r.runway, r.runway_raw, r.registration,
         r.registration_present, r.remains_sent, r.damage_indicated, r.flight_effect,
         r.other_effect, r.repair_cost, r.downtime_hours, r.other_cost, r.number_struck,
         r.workflow_status, r.disruptive]
        for r in records
    ))


def write_operations(ops: Sequence[OperationsRecord], path: str) -> str:
    return write_rows(path, ["Year", "Operations"], ([o.year, o.operations_count] for o in ops))


def write_unmapped(unmapped: UnmappedValues, path: str) -> str:
    return write_rows(path, ["field", "value"], unmapped.rows())


def write_counts(summaries: Sequence[PeriodSummary], path: str, key_names: Sequence[str]) -> str:
    """Counts per key, e.g. key_names=["Runway"] -> Runway,Count."""
    return write_rows(path, list(key_names) + ["Count"], (list(s.key) + [s.count] for s in summaries))


def write_reconciled(report, path: str) -> str:
    """Year, exposure and both sources' counts for a reconciled rate report."""
    ops = {s.key[0]: s.operations for s in report.series.rows}
    return write_rows(path, ["Year", "Operations", "Internal_Count", "Regulatory_Count", "Count", "Internal_Substituted"], (
        [c.year, ops.get(c.year), c.internal, c.authoritative, c.count, c.substituted]
        for c in report.counts
    ))


def write_rates(series, path: str) -> str:
    """Year, totals, rate and the (constant) control-limit columns."""
    lim = series.limits
    return write_rows(path, ["Year", "total_count", "total_operations", "Rate", "CL", "UCL", "LCL"], (
        [s.key[0], s.count, s.operations, s.rate, lim.center_line, lim.upper_limit, lim.lower_limit]
        for s in series.rows
    ))


def write_shares(shares, path: str) -> str:
    return write_rows(path, ["Year", "strike_total", "total_flagged", "percent", "source"], (
        [s.year, s.total, s.flagged, s.percent, s.source] for s in shares
    ))


def write_weekday(report, path: str) -> str:
    lim = report.limits
    return write_rows(path, ["Day", "Count", "Avg_Count", "SD", "UCL", "LCL"], (
        [s.key[0], s.count, lim.center_line, lim.std_dev, lim.upper_limit, lim.lower_limit]
        for s in report.rows
    ))


def write_runway_shares(shares, path: str) -> str:
    return write_rows(path, ["Category", "Runway", "Count", "Proportion"], (
        [s.category, s.runway, s.count, s.proportion] for s in shares
    ))


def write_guild_changes(changes, path: str) -> str:
    return write_rows(path, ["Guild", "Count", "Avg_Count", "SD", "CI_Lower", "CI_Upper", "Pct_Change"], (
        [c.guild, c.count, c.average, c.std_dev, c.ci_lower, c.ci_upper, c.percent_change] for c in changes
    ))


def write_annual_rate(rows: Sequence[PeriodSummary], path: str) -> str:
    return write_rows(path, ["Year", "Strikes", "Operations", "Rate"], (
        [s.key[0], s.count, s.operations, s.rate] for s in rows
    ))


def output_path(output_dir: str, name: str) -> str:
    return os.path.join(output_dir, name)


TABLE_FILES = {
    "regulatory_clean": "faa_strikes_clean.csv",
    "internal_clean": "wcaa_strikes_clean.csv",
    "operations": "ops.csv",
    "unmapped": "unmapped_values.csv",
    "damage_counts": "Table_Annual_Damage_And_Operations.csv",
    "damage_rates": "Table_Annual_Damage_Rates.csv",
    "disruptive_counts": "Table_Annual_Disruptive_And_Operations.csv",
    "disruptive_rates": "Table_Annual_Disruptive_Rates.csv",
    "pilot": "Table_Annual_Pilot_Reporting.csv",
    "remains": "Table_Annual_Smithsonian.csv",
    "gull_weekday": "Table_Gull_Weekday.csv",
    "runway": "Table_Strikes_by_Runway.csv",
    "guild": "Table_Strikes_by_Guild.csv",
    "species": "Table_Strikes_by_Species.csv",
    "month": "Table_Strikes_by_Month.csv",
    "guild_month": "Table_Strikes_by_Guild_Month.csv",
    "species_month": "Table_Strikes_by_Species_Month.csv",
    "annual_rate": "Table_Annual_Strike_Rate.csv",
    "runway_shares": "Table_Runway_Proportions.csv",
    "guild_change": "Table_Guild_Percent_Change.csv",
}
