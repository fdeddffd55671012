"""
Batch pipeline
==============

This is the heart of the project. A run works like this:

1) Load inputs -> immutable StrikeRecord lists (one per source) + operations
2) Run one or more reports over the loaded records
3) Each report writes its tables (and charts, when enabled) to `output_dir`

`StrikePipeline` keeps what was loaded and what was written, so the DOCX
report at the end can list every table and embed every chart.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from . import analyses, tables
from .config import PipelineConfig
from .loader import load_guild_table, load_internal, load_operations, load_regulatory
from .models import OperationsRecord, StrikeRecord
from .normalize import UnmappedValues
from .tables import TABLE_FILES, output_path

logger = logging.getLogger(__name__)

REPORTS = ("prep", "damage", "disruptive", "pilot", "remains", "gulls", "summary")


@dataclass
class StrikePipeline:
    """Loaded inputs plus everything the reports produced."""
    config: PipelineConfig
    regulatory: List[StrikeRecord] = field(default_factory=list)
    internal: List[StrikeRecord] = field(default_factory=list)
    operations: List[OperationsRecord] = field(default_factory=list)
    guild_table: Optional[Dict[str, str]] = None
    unmapped: UnmappedValues = field(default_factory=UnmappedValues)
    charts: bool = True

    # name -> report object, in run order
    results: Dict[str, object] = field(default_factory=dict)
    tables_written: List[str] = field(default_factory=list)
    # (title, path, why) for every chart, in run order
    chart_paths: List[Tuple[str, str, str]] = field(default_factory=list)

    # ---------------- Loading ----------------
    def load(self) -> "StrikePipeline":
        cfg = self.config
        self.operations = load_operations(cfg.operations_path)
        if cfg.guild_path:
            self.guild_table = load_guild_table(cfg.guild_path)
        if cfg.regulatory_path:
            self.regulatory = load_regulatory(cfg.regulatory_path, cfg, self.guild_table, self.unmapped)
        if cfg.internal_path:
            self.internal = load_internal(cfg.internal_path, cfg, self.unmapped)
        if self.unmapped:
            self.unmapped.log_summary()
        return self

    def _require(self, regulatory: bool = False, internal: bool = False) -> None:
        if regulatory and not self.regulatory:
            raise ValueError("This report needs the regulatory export (--regulatory)")
        if internal and not self.internal:
            raise ValueError("This report needs the internal export (--internal)")

    def _table(self, key: str) -> str:
        path = output_path(self.config.output_dir, TABLE_FILES[key])
        self.tables_written.append(path)
        return path

    def _chart(self, title: str, filename: str, why: str) -> str:
        path = output_path(self.config.output_dir, filename)
        self.chart_paths.append((title, path, why))
        return path

    # ---------------- Reports ----------------
    def prep(self) -> None:
        """Write the normalized extracts, operations table and unmapped values."""
        if self.regulatory:
            tables.write_records(self.regulatory, self._table("regulatory_clean"))
        if self.internal:
            tables.write_records(self.internal, self._table("internal_clean"))
        tables.write_operations(self.operations, self._table("operations"))
        tables.write_unmapped(self.unmapped, self._table("unmapped"))
        self.results["prep"] = len(self.regulatory) + len(self.internal)

    def damage(self) -> analyses.ReconciledRateReport:
        self._require(regulatory=True)
        rep = analyses.damage_report(self.regulatory, self.internal, self.operations, self.config)
        tables.write_reconciled(rep, self._table("damage_counts"))
        tables.write_rates(rep.series, self._table("damage_rates"))
        if self.charts:
            from .charts import control_chart
            control_chart(rep.series, self._chart(
                "Annual damaging-strike rate", "Plot_Annual_Damage_Rate.jpeg",
                "Control chart: years above the dashed upper limit stand out from the usual variation."),
                f"Damaging strikes\nper {rep.series.scale:,} operations",
                dpi=self.config.dpi, size=self.config.chart_size)
        self.results["damage"] = rep
        return rep

    def disruptive(self) -> analyses.ReconciledRateReport:
        self._require(regulatory=True)
        rep = analyses.disruptive_report(self.regulatory, self.internal, self.operations, self.config)
        tables.write_reconciled(rep, self._table("disruptive_counts"))
        tables.write_rates(rep.series, self._table("disruptive_rates"))
        if self.charts:
            from .charts import control_chart
            control_chart(rep.series, self._chart(
                "Annual disruptive-strike rate", "Plot_Annual_Disruptive_Rate.jpeg",
                "Disruptive = damage, an effect on flight, or any cost/downtime recorded."),
                f"Disruptive strikes\nper {rep.series.scale:,} operations",
                dpi=self.config.dpi, size=self.config.chart_size)
        self.results["disruptive"] = rep
        return rep

    def pilot(self) -> List[analyses.ShareSummary]:
        self._require(regulatory=True)
        shares = analyses.pilot_reporting(self.regulatory, self.internal, self.operations, self.config)
        tables.write_shares(shares, self._table("pilot"))
        if self.charts:
            from .charts import percent_line
            percent_line(shares, self._chart(
                "Annual pilot-reported strikes (%)", "Plot_Annual_Pilot_Percent.jpeg",
                "A registration on the record means the flight crew reported the strike."),
                "Airline-reported strikes (%)", color="skyblue4",
                dpi=self.config.dpi, size=self.config.chart_size)
        self.results["pilot"] = shares
        return shares

    def remains(self) -> List[analyses.ShareSummary]:
        self._require(regulatory=True)
        shares = analyses.remains_submission(self.regulatory, self.internal, self.operations, self.config)
        tables.write_shares(shares, self._table("remains"))
        if self.charts:
            from .charts import percent_line
            percent_line(shares, self._chart(
                "Annual remains sent for identification (%)", "Plot_Annual_Smithsonian_Percent.jpeg",
                "Share of strikes whose remains were forwarded for species confirmation."),
                "Samples sent to the\nSmithsonian Institution (%)", color="palegreen4",
                dpi=self.config.dpi, size=self.config.chart_size)
        self.results["remains"] = shares
        return shares

    def gulls(self) -> analyses.WeekdayReport:
        self._require(regulatory=True)
        if self.guild_table is None:
            logger.warning("No guild table loaded (--guilds); every regulatory strike has guild 'Unknown'")
        rep = analyses.gull_weekday(self.regulatory, self.config)
        tables.write_weekday(rep, self._table("gull_weekday"))
        if self.charts:
            from .charts import weekday_chart
            weekday_chart(rep, self._chart(
                "Gull strikes by day of week", "Plot_GullStrikes.jpeg",
                "Bars above the dashed line are days with unusually many gull strikes."),
                dpi=self.config.dpi, size=self.config.chart_size)
        self.results["gulls"] = rep
        return rep

    def summary(self, year: Optional[int] = None) -> analyses.StrikeSummary:
        self._require(internal=True)
        s = analyses.strike_summary(self.internal, self.operations, self.config, year)
        tables.write_counts(s.by_runway, self._table("runway"), ["Runway"])
        tables.write_counts(s.by_guild, self._table("guild"), ["Guild"])
        tables.write_counts(s.by_species, self._table("species"), ["Species"])
        tables.write_counts(s.by_month, self._table("month"), ["Month"])
        tables.write_counts(s.by_guild_month, self._table("guild_month"), ["Month", "Guild"])
        tables.write_counts(s.by_species_month, self._table("species_month"), ["Month", "Species"])
        tables.write_annual_rate(s.annual_rate, self._table("annual_rate"))
        tables.write_runway_shares(s.runway_shares, self._table("runway_shares"))
        tables.write_guild_changes(s.guild_changes, self._table("guild_change"))
        if self.charts:
            self._summary_charts(s)
        self.results["summary"] = s
        return s

    def _summary_charts(self, s: analyses.StrikeSummary) -> None:
        from . import charts
        cfg = self.config
        y = s.year
        charts.bar_counts(s.by_runway, self._chart(f"Strikes by runway ({y})", f"Plot_Runway_Strikes_{y}.jpeg",
                          "Paired runway ends are combined; bars compare strike counts."),
                          "Runway", color="firebrick4", horizontal=True, dpi=cfg.dpi)
        charts.bar_counts(s.by_guild, self._chart(f"Strikes by guild ({y})", f"Plot_Annual_Strikes_Guild_{y}.jpeg",
                          "Guild totals for the year, largest first."),
                          "Guild", color="palegreen4", horizontal=True, dpi=cfg.dpi)
        charts.bar_counts(s.by_month, self._chart(f"Strikes by month ({y})", f"Plot_Monthly_Strikes_{y}.jpeg",
                          "Calendar order shows the seasonal pattern."),
                          "Month", color="skyblue4", dpi=cfg.dpi)
        if s.by_guild_month:
            charts.facet_bars(s.by_guild_month, self._chart(
                f"Strikes by guild and month ({y})", f"Plot_Monthly_Strikes_Guild_{y}.jpeg",
                "One panel per guild with a shared scale."), ncol=2, color="violetred4", dpi=cfg.dpi)
        if s.by_species_month:
            charts.facet_bars(s.by_species_month, self._chart(
                f"Strikes by species and month ({y})", f"Plot_Monthly_Strikes_Species_{y}.jpeg",
                f"Species with at least {cfg.min_species_support} strikes in the year."),
                ncol=4, color="steelblue", dpi=cfg.dpi)
        charts.rate_line(s.annual_rate, self._chart(
            "Annual strike rate", "Plot_Annual_Strike_Rate.jpeg",
            "All strikes normalized by aircraft operations."),
            f"Strikes per {cfg.strike_rate_scale:,} operations", dpi=cfg.dpi, size=cfg.chart_size)
        if s.runway_shares:
            charts.runway_share_bars(s.runway_shares, self._chart(
                f"Runway proportions ({y} vs. other years)", "Plot_Runway_Proportions.jpeg",
                "Proportions make years with different totals comparable."), dpi=cfg.dpi)
        if s.guild_changes:
            charts.guild_change_chart(s.guild_changes, y, self._chart(
                f"Guild change from historical average ({y})", "Plot_Guild_Percent_Change.jpeg",
                "Bars outside the error band differ from the usual yearly count."), dpi=cfg.dpi)

    def run(self, names=REPORTS) -> "StrikePipeline":
        """Run the named reports in the canonical order."""
        unknown = [n for n in names if n not in REPORTS]
        if unknown:
            raise ValueError(f"Unknown report(s) {unknown}. Known: {list(REPORTS)}")
        for name in REPORTS:
            if name in names:
                logger.info("Running report: %s", name)
                getattr(self, name)()
        return self
