"""
Report builders
===============

Each function here assembles one report from loaded records:

- damaging / disruptive strike rates per 100,000 operations (control chart)
- share of strikes reported by pilots, share with remains sent for ID
- gull/tern strikes by day of week
- strike summaries by runway, guild, species and month for one year
- annual strike rate per 10,000 operations
- per-guild change of the latest year against the historical average

The regulatory database is authoritative but lags; for the most recent year
the internal export is used instead (see `rates.reconcile_counts`). Damaging
and disruptive rates both follow this rule. When no internal export is loaded,
the latest year keeps its regulatory figures.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np

from .aggregate import as_mapping, count_by, counts_by_year
from .config import PipelineConfig
from .models import MONTH_ORDER, WEEKDAY_ORDER, ControlLimits, OperationsRecord, PeriodSummary, StrikeRecord
from .rates import RateSeries, ReconciledCount, control_limits, rate, rate_series, reconcile_counts, reconciled_mapping

logger = logging.getLogger(__name__)

Predicate = Callable[[StrikeRecord], bool]


def latest_year(config: PipelineConfig, operations: Sequence[OperationsRecord]) -> int:
    """The year whose figures come from the internal export."""
    if config.latest_year is not None:
        return config.latest_year
    if not operations:
        raise ValueError("Operations table is empty; cannot tell which year is the latest")
    return max(o.year for o in operations)


# -----------------------------
# Damaging / disruptive rates
# -----------------------------

@dataclass(frozen=True)
class ReconciledRateReport:
    """Two-source annual counts and the rate series built from them."""
    name: str
    counts: List[ReconciledCount]
    series: RateSeries


def reconciled_rate_report(name: str,
                           regulatory: Sequence[StrikeRecord],
                           internal: Sequence[StrikeRecord],
                           operations: Sequence[OperationsRecord],
                           predicate: Predicate,
                           scale: int,
                           k: float,
                           config: Optional[PipelineConfig] = None) -> ReconciledRateReport:
    config = config or PipelineConfig()
    ops_years = [o.year for o in operations]
    # Years the regulatory export covers at all; absent years stay None.
    reg_years = sorted({r.year for r in regulatory})
    authoritative = counts_by_year([r for r in regulatory if predicate(r)], reg_years)
    intl = counts_by_year([r for r in internal if predicate(r)], ops_years)
    latest = latest_year(config, operations)
    if not internal:
        logger.warning("%s: no internal records loaded; keeping the regulatory count for %d", name, latest)
    counts = reconcile_counts(authoritative, intl, ops_years, latest, substitute=bool(internal))
    series = rate_series(reconciled_mapping(counts), operations, scale, k)
    logger.info("%s: center line %.3f, UCL %.3f, LCL %.3f per %s operations", name,
                series.limits.center_line, series.limits.upper_limit, series.limits.lower_limit, f"{scale:,}")
    return ReconciledRateReport(name=name, counts=counts, series=series)


def damage_report(regulatory, internal, operations, config: Optional[PipelineConfig] = None) -> ReconciledRateReport:
    config = config or PipelineConfig()
    return reconciled_rate_report("Damage", regulatory, internal, operations,
                                  lambda r: r.damage_indicated, config.damage_scale, config.damage_k, config)


def disruptive_report(regulatory, internal, operations, config: Optional[PipelineConfig] = None) -> ReconciledRateReport:
    config = config or PipelineConfig()
    return reconciled_rate_report("Disruptive", regulatory, internal, operations,
                                  lambda r: r.disruptive, config.disruptive_scale, config.disruptive_k, config)


# -----------------------------
# Annual shares (pilot reporting, remains sent)
# -----------------------------

@dataclass(frozen=True)
class ShareSummary:
    """How many of a year's strikes carry a flag."""
    year: int
    total: int
    flagged: int
    source: str

    @property
    def percent(self) -> float:
        return self.flagged / self.total * 100 if self.total else 0.0


def _share(year: int, records: Sequence[StrikeRecord], predicate: Predicate, source: str) -> ShareSummary:
    return ShareSummary(year=year, total=len(records), flagged=sum(1 for r in records if predicate(r)), source=source)


def annual_share(regulatory: Sequence[StrikeRecord],
                 internal: Sequence[StrikeRecord],
                 predicate: Predicate,
                 latest: int) -> List[ShareSummary]:
    """Regulatory shares for every year except `latest`, internal share for `latest`.

    Without internal records `latest` stays on the regulatory figures.
    """
    if not internal:
        logger.warning("No internal records loaded; %d share taken from the regulatory export", latest)
    by_year: Dict[int, List[StrikeRecord]] = {}
    for r in regulatory:
        if r.year != latest or not internal:
            by_year.setdefault(r.year, []).append(r)
    out = [_share(y, by_year[y], predicate, "regulatory") for y in sorted(by_year)]
    if not internal:
        return out
    out.append(_share(latest, [r for r in internal if r.year == latest], predicate, "internal"))
    return out


def pilot_reporting(regulatory, internal, operations, config: Optional[PipelineConfig] = None) -> List[ShareSummary]:
    config = config or PipelineConfig()
    return annual_share(regulatory, internal, lambda r: r.registration_present, latest_year(config, operations))


def remains_submission(regulatory, internal, operations, config: Optional[PipelineConfig] = None) -> List[ShareSummary]:
    config = config or PipelineConfig()
    return annual_share(regulatory, internal, lambda r: r.remains_sent, latest_year(config, operations))


# -----------------------------
# Gull strikes by weekday
# -----------------------------

@dataclass(frozen=True)
class WeekdayReport:
    rows: List[PeriodSummary]
    limits: ControlLimits


def gull_weekday(regulatory: Sequence[StrikeRecord], config: Optional[PipelineConfig] = None,
                 weekday_order: Sequence[str] = WEEKDAY_ORDER) -> WeekdayReport:
    """Gull/tern strikes per weekday with mean and control limits across days."""
    config = config or PipelineConfig()
    gulls = [r for r in regulatory if r.guild == config.gull_guild]
    logger.info("%d strike(s) in guild %r", len(gulls), config.gull_guild)
    rows = count_by(gulls, "weekday", domain=weekday_order, order=weekday_order)
    return WeekdayReport(rows=rows, limits=control_limits([s.count for s in rows], config.weekday_k))


# -----------------------------
# Strike summaries (one year, internal export)
# -----------------------------

@dataclass(frozen=True)
class GuildChange:
    """Latest-year guild count against its historical yearly average."""
    guild: str
    count: int
    average: float
    std_dev: float
    ci_lower: float
    ci_upper: float

    @property
    def percent_change(self) -> float:
        return (self.count - self.average) / self.average * 100 if self.average else 0.0

    @property
    def ci_percent(self):
        """CI bounds expressed as % change from the average."""
        if not self.average:
            return (0.0, 0.0)
        return ((self.ci_lower - self.average) / self.average * 100,
                (self.ci_upper - self.average) / self.average * 100)


@dataclass(frozen=True)
class RunwayShare:
    runway: str
    category: str
    count: int
    proportion: float


@dataclass
class StrikeSummary:
    """All one-year summary tables plus the multi-year strike rate."""
    year: int
    by_runway: List[PeriodSummary] = field(default_factory=list)
    by_guild: List[PeriodSummary] = field(default_factory=list)
    by_species: List[PeriodSummary] = field(default_factory=list)
    by_month: List[PeriodSummary] = field(default_factory=list)
    by_guild_month: List[PeriodSummary] = field(default_factory=list)
    by_species_month: List[PeriodSummary] = field(default_factory=list)
    annual_rate: List[PeriodSummary] = field(default_factory=list)
    runway_shares: List[RunwayShare] = field(default_factory=list)
    guild_changes: List[GuildChange] = field(default_factory=list)


def runway_shares(records: Sequence[StrikeRecord], year: int) -> List[RunwayShare]:
    """Proportion of strikes per runway: `year` vs. all other years."""
    label = str(year)

    def category(r: StrikeRecord) -> str:
        return label if r.year == year else "Other years"

    rows = count_by(records, (category, "runway"))
    totals: Dict[str, int] = {}
    for s in rows:
        totals[s.key[0]] = totals.get(s.key[0], 0) + s.count
    out = [RunwayShare(runway=s.key[1], category=s.key[0], count=s.count,
                       proportion=s.count / totals[s.key[0]] if totals[s.key[0]] else 0.0)
           for s in rows]
    return sorted(out, key=lambda x: (x.category != label, -x.count, x.runway))


def guild_changes(records: Sequence[StrikeRecord], year: int, k: float) -> List[GuildChange]:
    """Per-guild count in `year` vs. mean yearly count over all years (k * SE band)."""
    years = sorted({r.year for r in records})
    if not years:
        return []
    guilds = sorted({r.guild for r in records})
    counts = as_mapping(count_by(records, ("year", "guild"), domain={"year": years, "guild": guilds}))
    out: List[GuildChange] = []
    for g in guilds:
        series = np.asarray([counts.get((y, g), 0) for y in years], dtype=float)
        avg = float(series.mean())
        sd = float(series.std(ddof=1)) if series.size > 1 else 0.0
        se = sd / math.sqrt(series.size)
        out.append(GuildChange(guild=g, count=int(counts.get((year, g), 0)), average=avg, std_dev=sd,
                               ci_lower=avg - k * se, ci_upper=avg + k * se))
    return sorted(out, key=lambda c: c.percent_change)


def annual_strike_rate(records: Sequence[StrikeRecord], operations: Sequence[OperationsRecord],
                       scale: int) -> List[PeriodSummary]:
    """All strikes per `scale` operations for every exposure year."""
    counts = counts_by_year(records)
    ops_by_year = {o.year: o.operations_count for o in operations}
    return [PeriodSummary(key=(y,), count=int(counts.get(y, 0)), operations=n, rate=rate(int(counts.get(y, 0)), n, scale))
            for y, n in sorted(ops_by_year.items())]


def strike_summary(internal: Sequence[StrikeRecord], operations: Sequence[OperationsRecord],
                   config: Optional[PipelineConfig] = None, year: Optional[int] = None) -> StrikeSummary:
    """Runway/guild/species/month tables for one year of internal records."""
    config = config or PipelineConfig()
    year = year if year is not None else latest_year(config, operations)
    recs = [r for r in internal if r.year == year]
    logger.info("Summarizing %d internal strike(s) for %d", len(recs), year)

    species_month = count_by(recs, ("month", "species"), order={"month": MONTH_ORDER},
                             min_support=config.min_species_support)
    abbrev = config.species_abbreviations
    species_month = [PeriodSummary(key=(s.key[0], abbrev.get(s.key[1], s.key[1])), count=s.count)
                     for s in species_month]

    return StrikeSummary(
        year=year,
        by_runway=count_by(recs, "runway"),
        by_guild=count_by(recs, "guild"),
        by_species=count_by(recs, "species"),
        by_month=count_by(recs, "month", domain=MONTH_ORDER, order=MONTH_ORDER),
        by_guild_month=count_by(recs, ("month", "guild"), domain={"month": MONTH_ORDER},
                                order={"month": MONTH_ORDER}),
        by_species_month=species_month,
        annual_rate=annual_strike_rate(internal, operations, config.strike_rate_scale),
        runway_shares=runway_shares(internal, year),
        guild_changes=guild_changes(internal, year, config.guild_ci_k),
    )
