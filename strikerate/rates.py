"""
Rates and control limits
========================

Turns per-year strike counts into rates per N aircraft operations and
computes control-chart statistics over the resulting series.

Conventions (applied to every report):
- The operations (exposure) table decides which years exist. Missing
  counts become 0; counts for years without exposure are left out.
- Standard deviation is the SAMPLE standard deviation (ddof=1). A series
  with a single value has a standard deviation of 0.
- The lower control limit never goes below 0.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np

from .models import ControlLimits, OperationsRecord, PeriodSummary

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconciledCount:
    """One year of a two-source count table."""
    year: int
    authoritative: Optional[int]
    internal: int
    count: int
    substituted: bool = False


@dataclass(frozen=True)
class RateSeries:
    """Annual rates plus the control limits computed over all of them."""
    rows: List[PeriodSummary]
    limits: ControlLimits
    scale: int


def join_exposure(counts: Mapping[int, int], operations: Sequence[OperationsRecord]) -> List[PeriodSummary]:
    """Left-join per-year counts onto the exposure table's years."""
    ops_years = {o.year for o in operations}
    extra = sorted(y for y in counts if y not in ops_years)
    if extra:
        logger.warning("No operations figure for year(s) %s; left out of the rate series", extra)
    return [
        PeriodSummary(key=(o.year,), count=int(counts.get(o.year) or 0), operations=o.operations_count)
        for o in sorted(operations, key=lambda o: o.year)
    ]


def rate(count: int, operations: int, scale: int) -> float:
    """count / operations * scale; 0.0 when there were no operations."""
    if not operations:
        return 0.0
    return count / operations * scale


def compute_rates(summaries: Sequence[PeriodSummary], scale: int) -> List[PeriodSummary]:
    out: List[PeriodSummary] = []
    for s in summaries:
        if s.operations is None:
            raise ValueError(f"No operations joined for {s.key}; call join_exposure first")
        out.append(PeriodSummary(key=s.key, count=s.count, operations=s.operations,
                                 rate=rate(s.count, s.operations, scale)))
    return out


def control_limits(values: Sequence[float], k: float) -> ControlLimits:
    """Mean +/- k sample standard deviations, lower limit clamped at 0."""
    arr = np.asarray([v for v in values if v is not None], dtype=float)
    if arr.size == 0:
        raise ValueError("Cannot compute control limits of an empty series")
    center = float(arr.mean())
    sd = float(arr.std(ddof=1)) if arr.size > 1 else 0.0
    return ControlLimits(
        center_line=center,
        std_dev=sd,
        upper_limit=center + k * sd,
        lower_limit=max(center - k * sd, 0.0),
        k=k,
    )


def rate_series(counts: Mapping[int, int], operations: Sequence[OperationsRecord],
                scale: int, k: float) -> RateSeries:
    """join_exposure -> compute_rates -> control_limits over the full series."""
    rows = compute_rates(join_exposure(counts, operations), scale)
    limits = control_limits([r.rate for r in rows], k)
    return RateSeries(rows=rows, limits=limits, scale=scale)


def reconcile_counts(authoritative: Mapping[int, int],
                     internal: Mapping[int, int],
                     years: Sequence[int],
                     latest_year: Optional[int] = None,
                     substitute: bool = True) -> List[ReconciledCount]:
    """Prefer the authoritative count, except for the most recent year.

    The authoritative (regulatory) database lags the internal one by several
    months, so for `latest_year` (default: the last of `years`) the internal
    count replaces it wholesale. With `substitute=False` (no internal export
    loaded) every year keeps its authoritative count.
    """
    years = sorted(set(years))
    if not years:
        return []
    latest = latest_year if latest_year is not None else years[-1]
    out: List[ReconciledCount] = []
    for y in years:
        auth = authoritative.get(y)
        intl = int(internal.get(y) or 0)
        if substitute and y == latest:
            out.append(ReconciledCount(year=y, authoritative=auth, internal=intl, count=intl, substituted=True))
        else:
            out.append(ReconciledCount(year=y, authoritative=auth, internal=intl, count=int(auth or 0)))
    logger.info("Reconciled %d year(s); %d taken from the internal source", len(out),
                1 if substitute and latest in years else 0)
    return out


def reconciled_mapping(rows: Sequence[ReconciledCount]) -> Dict[int, int]:
    return {r.year: r.count for r in rows}
