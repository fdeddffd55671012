from __future__ import annotations

"""
DOCX report bundle
------------------
This module collects the tables and charts of a pipeline run into one DOCX
document for circulation.

Design goals:
- Keep table/chart runs usable even if python-docx is missing (lazy import).
- Only include sections for reports that actually ran.
- End with a reproducibility footer (version, timestamp, inputs, policy).
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence
import os

from .pipeline import StrikePipeline


@dataclass
class DatasetCitation:
    """Where the strike data came from."""
    database_name: str = "FAA National Wildlife Strike Database"
    institutional_author: str = "Federal Aviation Administration"
    website: str = "https://wildlife.faa.gov"
    internal_name: str = "Wildlife Command Center export"
    access_date_iso: Optional[str] = None


@dataclass
class ReportConfig:
    """High-level knobs to control how the report is written."""
    title: str = "Wildlife Strike Report"
    subtitle: str = "Annual strike rates and summaries"
    citation: DatasetCitation = field(default_factory=DatasetCitation)
    # Charts are embedded at this width (inches)
    chart_width: float = 6.5
    # Longest table shown inline (species lists can be long)
    max_table_rows: int = 40


def generate_docx_report(run: StrikePipeline, out_path: str, *, config: Optional[ReportConfig] = None) -> str:
    """Write every result of `run` into a DOCX file and return its path."""
    config = config or ReportConfig()

    # Lazy imports: only required when a DOCX is requested.
    try:
        from docx import Document
        from docx.shared import Pt, Inches
        from docx.enum.text import WD_ALIGN_PARAGRAPH
    except ImportError as e:
        raise ImportError(
            "Missing dependency: python-docx.\n"
            "Install it with: python -m pip install python-docx"
        ) from e

    if not run.results:
        raise ValueError("No reports have been run; nothing to write.")

    doc = Document()
    style = doc.styles["Normal"]
    style.font.name = "Calibri"
    style.font.size = Pt(11)

    def _center_title(text: str, size: int, bold: bool = False, italic: bool = False) -> None:
        p = doc.add_paragraph()
        r = p.add_run(text)
        r.bold = bold
        r.italic = italic
        r.font.size = Pt(size)
        p.alignment = WD_ALIGN_PARAGRAPH.CENTER

    def _kv(key: str, value: str) -> None:
        p = doc.add_paragraph()
        r = p.add_run(f"{key}: ")
        r.bold = True
        p.add_run(value)

    def _table(header: Sequence[str], rows: Sequence[Sequence]) -> None:
        t = doc.add_table(rows=1, cols=len(header))
        t.style = "Table Grid"
        for i, h in enumerate(header):
            t.rows[0].cells[i].text = str(h)
        shown = list(rows)[:config.max_table_rows]
        for row in shown:
            cells = t.add_row().cells
            for i, v in enumerate(row):
                cells[i].text = _cell(v)
        if len(rows) > len(shown):
            doc.add_paragraph(f"({len(rows)} rows, showing {len(shown)}; see the CSV table for all)")

    cfg = run.config
    _center_title(config.title, 22, bold=True)
    _center_title(config.subtitle, 12, italic=True)

    doc.add_paragraph("")
    _kv("Regulatory strikes loaded", f"{len(run.regulatory)} ({cfg.first_year} to {cfg.last_year})")
    _kv("Internal strikes loaded", str(len(run.internal)))
    if run.operations:
        _kv("Operations years", f"{run.operations[0].year} to {run.operations[-1].year}")

    doc.add_heading("Data sources", level=1)
    cit = config.citation
    accessed = f" (accessed {cit.access_date_iso})" if cit.access_date_iso else ""
    doc.add_paragraph(f"{cit.institutional_author}{accessed}. {cit.database_name}. {cit.website}.")
    doc.add_paragraph(f"{cit.internal_name}: used for the most recent year, which the regulatory database has not caught up with.")

    for name in ("damage", "disruptive"):
        rep = run.results.get(name)
        if rep is None:
            continue
        lim = rep.series.limits
        doc.add_heading(f"{rep.name} strikes per {rep.series.scale:,} operations", level=1)
        _table(["Year", "Count", "Operations", "Rate"],
               [[str(s.key[0]), s.count, s.operations, s.rate] for s in rep.series.rows])
        doc.add_paragraph(
            f"Center line {lim.center_line:.2f}; control limits {lim.lower_limit:.2f} to "
            f"{lim.upper_limit:.2f} (mean +/- {lim.k:g} sample SD, lower limit floored at 0)."
        )

    for name, title in (("pilot", "Pilot-reported strikes"), ("remains", "Remains sent for identification")):
        shares = run.results.get(name)
        if shares is None:
            continue
        doc.add_heading(title, level=1)
        _table(["Year", "Strikes", "Flagged", "Percent", "Source"],
               [[str(s.year), s.total, s.flagged, s.percent, s.source] for s in shares])

    gulls = run.results.get("gulls")
    if gulls is not None:
        doc.add_heading("Gull strikes by day of week", level=1)
        _table(["Day", "Count"], [[s.key[0], s.count] for s in gulls.rows])

    summary = run.results.get("summary")
    if summary is not None:
        doc.add_heading(f"Strike summary ({summary.year})", level=1)
        doc.add_paragraph("Strikes by runway")
        _table(["Runway", "Count"], [[s.key[0], s.count] for s in summary.by_runway])
        doc.add_paragraph("Strikes by guild")
        _table(["Guild", "Count"], [[s.key[0], s.count] for s in summary.by_guild])
        doc.add_paragraph("Strikes by species")
        _table(["Species", "Count"], [[s.key[0], s.count] for s in summary.by_species])

    if run.chart_paths:
        doc.add_heading("Charts", level=1)
        for title, path, why in run.chart_paths:
            if not os.path.exists(path):
                continue
            doc.add_paragraph(title)
            doc.add_picture(path, width=Inches(config.chart_width))
            doc.add_paragraph(why)

    if run.unmapped:
        doc.add_heading("Values needing review", level=1)
        doc.add_paragraph("These originals matched no naming rule and were given a fallback label:")
        _table(["Field", "Value"], run.unmapped.rows())

    # -----------------------------
    # Reproducibility footer
    # -----------------------------
    from . import __version__
    doc.add_heading("Reproducibility footer", level=1)
    doc.add_paragraph(f"strikerate version: {__version__}")
    doc.add_paragraph(f"Report generated at: {datetime.now().isoformat(timespec='seconds')}")
    for label, path in (("Regulatory export", cfg.regulatory_path), ("Internal export", cfg.internal_path),
                        ("Operations table", cfg.operations_path or "built-in"), ("Guild table", cfg.guild_path)):
        if path:
            doc.add_paragraph(f"{label}: {os.path.basename(path)}", style="List Bullet")
    doc.add_paragraph(
        "Blank / 'Revise' workflow status: " + ("included" if cfg.include_ambiguous_status else "excluded"),
        style="List Bullet",
    )
    doc.add_paragraph("Tables written:")
    for p in run.tables_written:
        doc.add_paragraph(os.path.basename(p), style="List Bullet")

    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
    doc.save(out_path)
    return out_path


def _cell(v) -> str:
    if v is None:
        return ""
    if isinstance(v, float):
        return f"{v:,.2f}"
    if isinstance(v, int) and not isinstance(v, bool):
        return f"{v:,}"
    return str(v)
