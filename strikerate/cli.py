"""
strikerate Command Line Interface (CLI)
=======================================

Batch entry point, run like:

    strikerate all --regulatory faa_export.csv --internal wcaa_export.csv \
        --guilds guild_assignments.csv --out output/

    python -m strikerate.cli damage --regulatory faa_export.csv --internal wcaa_export.csv

Each command loads the inputs once, runs its report(s), writes tables and
charts to the output directory and exits. Input files are never modified.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import List, Optional

from .config import K_2SD, K_95, SCALE_PER_100K, SCALE_PER_10K, PipelineConfig
from .loader import InputFileError, MissingColumnError
from .pipeline import REPORTS, StrikePipeline

logger = logging.getLogger(__name__)

# -----------------------------
# Help text (grouped, with examples)
# -----------------------------
EPILOG = """
commands
--------
  prep        write normalized extracts, ops.csv and unmapped_values.csv
  damage      damaging strikes per 100,000 operations + control chart
  disruptive  disruptive strikes per 100,000 operations + control chart
  pilot       % of strikes reported by pilots (registration present)
  remains     % of strikes with remains sent for identification
  gulls       gull/tern strikes by day of week (needs --guilds)
  summary     runway / guild / species / month tables for one year
  all         every command above, in that order

examples
--------
  strikerate all --regulatory faa.csv --internal wcaa.csv --guilds guilds.csv --out output --docx
  strikerate summary --internal wcaa.csv --year 2024 --no-charts
  strikerate damage --regulatory faa.csv --internal wcaa.csv --exclude-ambiguous-status
"""


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for a CLI run."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(message)s",
        datefmt="%H:%M:%S",
    )


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="strikerate",
        description="Wildlife-strike data preparation and annual rate reports.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    ap.add_argument("command", choices=list(REPORTS) + ["all"], help="report to run")
    ap.add_argument("--regulatory", help="regulatory (FAA) strike export, .csv or .xlsx")
    ap.add_argument("--internal", help="internal (command-center) strike export, .csv or .xlsx")
    ap.add_argument("--operations", help="annual operations table (Year, Operations); default: built-in")
    ap.add_argument("--guilds", help="guild assignment table (Species, Guild)")
    ap.add_argument("--out", default="output", help="output directory (default: output)")
    ap.add_argument("--first-year", type=int, default=2016)
    ap.add_argument("--last-year", type=int, default=2024)
    ap.add_argument("--latest-year", type=int, default=None,
                    help="year taken from the internal export (default: last operations year)")
    ap.add_argument("--year", type=int, default=None, help="year for the summary command")
    ap.add_argument("--exclude-ambiguous-status", action="store_true",
                    help="drop internal records whose workflow status is blank or 'Revise'")
    ap.add_argument("--min-species", type=int, default=3,
                    help="minimum yearly strikes for a species panel (default: 3)")
    ap.add_argument("--damage-k", type=float, default=K_2SD)
    ap.add_argument("--disruptive-k", type=float, default=K_2SD)
    ap.add_argument("--weekday-k", type=float, default=K_95)
    ap.add_argument("--damage-scale", type=int, default=SCALE_PER_100K)
    ap.add_argument("--disruptive-scale", type=int, default=SCALE_PER_100K)
    ap.add_argument("--strike-rate-scale", type=int, default=SCALE_PER_10K)
    ap.add_argument("--dpi", type=int, default=300)
    ap.add_argument("--no-charts", action="store_true", help="write tables only")
    ap.add_argument("--docx", action="store_true", help="also write strike_report.docx")
    ap.add_argument("-v", "--verbose", action="store_true")
    return ap


def config_from_args(args: argparse.Namespace) -> PipelineConfig:
    return PipelineConfig(
        regulatory_path=args.regulatory,
        internal_path=args.internal,
        operations_path=args.operations,
        guild_path=args.guilds,
        output_dir=args.out,
        first_year=args.first_year,
        last_year=args.last_year,
        latest_year=args.latest_year,
        include_ambiguous_status=not args.exclude_ambiguous_status,
        min_species_support=args.min_species,
        damage_k=args.damage_k,
        disruptive_k=args.disruptive_k,
        weekday_k=args.weekday_k,
        damage_scale=args.damage_scale,
        disruptive_scale=args.disruptive_scale,
        strike_rate_scale=args.strike_rate_scale,
        dpi=args.dpi,
        write_docx=args.docx,
    )


def run(args: argparse.Namespace) -> StrikePipeline:
    """Load inputs and run the requested command(s)."""
    config = config_from_args(args)
    pipe = StrikePipeline(config=config, charts=not args.no_charts)

    print("Loading inputs...")
    pipe.load()
    print(f"Loaded {len(pipe.regulatory)} regulatory and {len(pipe.internal)} internal strikes, "
          f"{len(pipe.operations)} operations years.")
    if pipe.unmapped:
        print(f"{len(pipe.unmapped)} unmapped value(s) need review (see unmapped_values.csv).")

    if args.command == "all":
        names = [n for n in REPORTS if _runnable(pipe, n)]
        skipped = [n for n in REPORTS if n not in names]
        if skipped:
            print(f"Skipping {', '.join(skipped)} (missing inputs).")
    else:
        names = [args.command]

    if args.command == "summary" and args.year is not None:
        pipe.summary(args.year)
    else:
        pipe.run(names)

    if config.write_docx:
        from .report import generate_docx_report
        path = generate_docx_report(pipe, os.path.join(config.output_dir, "strike_report.docx"))
        print(f"Report written to {path}")

    print(f"Wrote {len(pipe.tables_written)} table(s) and {len(pipe.chart_paths)} chart(s) to {config.output_dir}")
    return pipe


def _runnable(pipe: StrikePipeline, name: str) -> bool:
    if name == "prep":
        return True
    if name == "summary":
        return bool(pipe.internal)
    return bool(pipe.regulatory)


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the strikerate CLI."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    try:
        run(args)
    except (InputFileError, MissingColumnError, ValueError, ImportError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
