"""
Chart rendering
===============

Static JPEG charts for the strike reports, drawn with matplotlib.

Design goals:
- matplotlib is imported lazily, so table-only runs work without it.
- One small function per chart type; report code only passes data + labels.
- Reference lines (center line solid, control limits dashed) are gray so the
  data series stays the focus.
"""

from __future__ import annotations

import logging
import math
import os
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .models import MONTH_ORDER, PeriodSummary

logger = logging.getLogger(__name__)

REF_COLOR = "gray"
AXIS_LABEL = {"fontweight": "bold", "fontsize": 16}


def _pyplot():
    try:
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
    except ImportError as e:
        raise ImportError(
            "Missing dependency: matplotlib.\n"
            "Install it with: python -m pip install matplotlib"
        ) from e
    return plt


def _classic(ax) -> None:
    """Plain axes: no top/right spines, black tick labels."""
    ax.spines["top"].set_visible(False)
    ax.spines["right"].set_visible(False)
    ax.tick_params(colors="black", labelsize=12)


def _save(fig, path: str, dpi: int) -> str:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    fig.tight_layout()
    fig.savefig(path, dpi=dpi)
    _pyplot().close(fig)
    logger.info("Saved chart %s", path)
    return path


def control_chart(series, path: str, ylabel: str, *, color: str = "firebrick4",
                  show_series: bool = True, dpi: int = 300,
                  size: Tuple[float, float] = (8, 6)) -> str:
    """Annual rate with center line and upper/lower control limits."""
    plt = _pyplot()
    fig, ax = plt.subplots(figsize=size)
    lim = series.limits
    ax.axhline(lim.center_line, color=REF_COLOR, linestyle="-", linewidth=1.5)
    ax.axhline(lim.upper_limit, color=REF_COLOR, linestyle="--", linewidth=1.5)
    ax.axhline(lim.lower_limit, color=REF_COLOR, linestyle="--", linewidth=1.5)
    years = [s.key[0] for s in series.rows]
    rates = [s.rate for s in series.rows]
    # hidden series keeps the axes scaled for a "limits only" chart
    alpha = 1.0 if show_series else 0.0
    ax.plot(years, rates, color=_mpl_color(color), linewidth=2, alpha=alpha)
    ax.scatter(years, rates, color=_mpl_color(color), s=60, alpha=alpha, zorder=3)
    ax.set_xticks(years)
    ax.set_xlabel("Year", **AXIS_LABEL)
    ax.set_ylabel(ylabel, **AXIS_LABEL)
    _classic(ax)
    return _save(fig, path, dpi)


def percent_line(shares, path: str, ylabel: str, *, color: str = "skyblue4", dpi: int = 300,
                 size: Tuple[float, float] = (8, 6)) -> str:
    """Annual percentage (pilot-reported, remains sent) as line + points."""
    plt = _pyplot()
    fig, ax = plt.subplots(figsize=size)
    years = [s.year for s in shares]
    pct = [s.percent for s in shares]
    ax.plot(years, pct, color=_mpl_color(color), linewidth=2)
    ax.scatter(years, pct, color=_mpl_color(color), s=60, zorder=3)
    ax.set_xticks(years)
    ax.set_xlabel("Year", **AXIS_LABEL)
    ax.set_ylabel(ylabel, **AXIS_LABEL)
    _classic(ax)
    return _save(fig, path, dpi)


def rate_line(rows: Sequence[PeriodSummary], path: str, ylabel: str, *, color: str = "firebrick4",
              dpi: int = 300, size: Tuple[float, float] = (8, 6)) -> str:
    plt = _pyplot()
    fig, ax = plt.subplots(figsize=size)
    years = [s.key[0] for s in rows]
    rates = [s.rate for s in rows]
    ax.plot(years, rates, color=_mpl_color(color), linewidth=1.5)
    ax.scatter(years, rates, color=_mpl_color(color), s=50, zorder=3)
    ax.set_xticks(years)
    ax.set_xlabel("Year", **AXIS_LABEL)
    ax.set_ylabel(ylabel, **AXIS_LABEL)
    _classic(ax)
    return _save(fig, path, dpi)


def bar_counts(rows: Sequence[PeriodSummary], path: str, xlabel: str, ylabel: str = "Strike events", *,
               color: str = "firebrick4", horizontal: bool = False, dpi: int = 300,
               size: Tuple[float, float] = (10, 10)) -> str:
    """Bar chart of counts in the given row order (largest bar on top when horizontal)."""
    plt = _pyplot()
    fig, ax = plt.subplots(figsize=size)
    labels = [s.label for s in rows]
    values = [s.count for s in rows]
    if horizontal:
        ax.barh(labels[::-1], values[::-1], color=_mpl_color(color))
        ax.set_xlabel(ylabel, **AXIS_LABEL)
        ax.set_ylabel(xlabel, **AXIS_LABEL)
    else:
        ax.bar(labels, values, color=_mpl_color(color))
        ax.set_xlabel(xlabel, **AXIS_LABEL)
        ax.set_ylabel(ylabel, **AXIS_LABEL)
    _classic(ax)
    return _save(fig, path, dpi)


def weekday_chart(report, path: str, ylabel: str = "Gull strike events", *,
                  color: str = "darkseagreen4", dpi: int = 300,
                  size: Tuple[float, float] = (8, 6)) -> str:
    """Weekday bars with the mean (solid) and upper limit (dashed)."""
    plt = _pyplot()
    fig, ax = plt.subplots(figsize=size)
    ax.axhline(report.limits.center_line, color=REF_COLOR, linestyle="-", linewidth=1.5, zorder=0)
    ax.axhline(report.limits.upper_limit, color=REF_COLOR, linestyle="--", linewidth=1.5, zorder=0)
    ax.bar([s.key[0] for s in report.rows], [s.count for s in report.rows], color=_mpl_color(color))
    ax.set_xlabel("Day of the week", **AXIS_LABEL)
    ax.set_ylabel(ylabel, **AXIS_LABEL)
    plt.setp(ax.get_xticklabels(), rotation=45, ha="right")
    _classic(ax)
    return _save(fig, path, dpi)


def facet_bars(rows: Sequence[PeriodSummary], path: str, *, ncol: int = 2, color: str = "violetred4",
               x_order: Sequence[str] = MONTH_ORDER, xlabel: str = "Month", ylabel: str = "Count",
               dpi: int = 300, size: Optional[Tuple[float, float]] = None) -> str:
    """Small multiples: one bar panel per facet value.

    Rows are keyed (x, facet), e.g. (month, guild).
    """
    plt = _pyplot()
    facets: List[str] = sorted({s.key[1] for s in rows})
    if not facets:
        raise ValueError("Nothing to plot: no facet values")
    nrow = math.ceil(len(facets) / ncol)
    size = size or (3 * ncol + 2, 2.4 * nrow + 1.5)
    fig, axes = plt.subplots(nrow, ncol, figsize=size, sharex=True, sharey=True, squeeze=False)
    counts = {(s.key[0], s.key[1]): s.count for s in rows}
    for i, facet in enumerate(facets):
        ax = axes[i // ncol][i % ncol]
        ax.bar(list(x_order), [counts.get((x, facet), 0) for x in x_order], color=_mpl_color(color))
        ax.set_title(facet, fontsize=11, fontweight="bold",
                     bbox={"facecolor": "lightgray", "edgecolor": "black"})
        plt.setp(ax.get_xticklabels(), rotation=45, ha="right", fontsize=8)
    for j in range(len(facets), nrow * ncol):
        axes[j // ncol][j % ncol].set_visible(False)
    fig.supxlabel(xlabel, fontweight="bold", fontsize=16)
    fig.supylabel(ylabel, fontweight="bold", fontsize=16)
    return _save(fig, path, dpi)


def runway_share_bars(shares, path: str, *, dpi: int = 300, size: Tuple[float, float] = (10, 8)) -> str:
    """Grouped horizontal bars: proportion of strikes per runway by year category."""
    plt = _pyplot()
    categories = list(dict.fromkeys(s.category for s in shares))
    totals = {}
    for s in shares:
        totals[s.runway] = totals.get(s.runway, 0) + s.count
    runways = sorted(totals, key=lambda r: totals[r])
    props = {(s.category, s.runway): s.proportion for s in shares}
    y = np.arange(len(runways))
    h = 0.8 / max(len(categories), 1)
    fig, ax = plt.subplots(figsize=size)
    for i, c in enumerate(categories):
        ax.barh(y + i * h, [props.get((c, r), 0.0) for r in runways], height=h, label=c)
    ax.set_yticks(y + h * (len(categories) - 1) / 2)
    ax.set_yticklabels(runways)
    ax.set_xlabel("Proportion of total strikes", **AXIS_LABEL)
    ax.set_ylabel("Runway", **AXIS_LABEL)
    ax.legend(title="Year category")
    _classic(ax)
    return _save(fig, path, dpi)


def guild_change_chart(changes, year: int, path: str, *, dpi: int = 300,
                       size: Tuple[float, float] = (10, 8)) -> str:
    """Percent change from the historical average, CI band as error bars."""
    plt = _pyplot()
    fig, ax = plt.subplots(figsize=size)
    names = [c.guild for c in changes]
    pct = [c.percent_change for c in changes]
    lo = [c.ci_percent[0] for c in changes]
    hi = [c.ci_percent[1] for c in changes]
    colors = ["green" if p > 0 else "red" for p in pct]
    ax.barh(names, pct, color=colors)
    # error bars are centered on 0 (the historical average), not on the bar
    ax.errorbar([0.0] * len(names), names, xerr=[[-v for v in lo], hi], fmt="none", ecolor="black", capsize=3)
    ax.axvline(0, color="black", linestyle="--")
    ax.set_title(f"Percent change from historical average with CIs ({year})")
    ax.set_xlabel("Percent change (%)", **AXIS_LABEL)
    ax.set_ylabel("Guild", **AXIS_LABEL)
    _classic(ax)
    return _save(fig, path, dpi)


# R-style color names used in the reports -> matplotlib colors.
_R_COLORS = {
    "firebrick4": "#8B1A1A",
    "skyblue4": "#4A708B",
    "palegreen4": "#548B54",
    "darkseagreen4": "#698B69",
    "violetred4": "#8B2252",
}


def _mpl_color(name: str) -> str:
    return _R_COLORS.get(name, name)
