"""
Run configuration
=================

Every knob a batch run needs lives in one `PipelineConfig` dataclass.
The CLI fills it from command-line flags; tests build it directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional, Tuple

# Rate scale factors and control-limit multipliers used by the reports.
SCALE_PER_100K = 100_000
SCALE_PER_10K = 10_000
K_95 = 1.96
K_2SD = 2.0

# 2024 had no annual report yet; summed from the monthly movement counts.
_MONTHLY_OPERATIONS_2024 = (
    21898, 21315, 25089, 24946,
    26089, 26502, 26576, 27299,
    26047, 27009, 25088, 25583,
)

# Annual aircraft operations (hard-coded from the airport's published figures).
DEFAULT_OPERATIONS: Dict[int, int] = {
    2016: 393427,
    2017: 395357,
    2018: 393681,
    2019: 396909,
    2020: 238574,
    2021: 286909,
    2022: 284606,
    2023: 290238,
    2024: sum(_MONTHLY_OPERATIONS_2024),
}

ARCHIVE_STATUS = "Archive (do not submit to FAA)"
# Blank or "Revise" most likely mean the user forgot to pick "Submit to FAA".
AMBIGUOUS_STATUSES: FrozenSet[str] = frozenset({"", "revise"})


@dataclass
class PipelineConfig:
    """High-level knobs for one batch run."""
    regulatory_path: Optional[str] = None
    internal_path: Optional[str] = None
    operations_path: Optional[str] = None
    guild_path: Optional[str] = None
    output_dir: str = "output"

    # Regulatory records outside this window are dropped on load.
    first_year: int = 2016
    last_year: int = 2024

    # Workflow-status policy for the internal export
    excluded_statuses: FrozenSet[str] = frozenset({ARCHIVE_STATUS})
    include_ambiguous_status: bool = True

    # Year whose regulatory counts are replaced by internal ones (reporting lag).
    # None -> the most recent year of the exposure table.
    latest_year: Optional[int] = None

    damage_scale: int = SCALE_PER_100K
    damage_k: float = K_2SD
    disruptive_scale: int = SCALE_PER_100K
    disruptive_k: float = K_2SD
    strike_rate_scale: int = SCALE_PER_10K
    weekday_k: float = K_95
    guild_ci_k: float = K_95

    gull_guild: str = "Gulls/Terns"
    min_species_support: int = 3

    # Long facet titles shortened on the species x month chart.
    species_abbreviations: Dict[str, str] = field(default_factory=lambda: {
        "Northern rough-winged swallow": "N. rough-winged swallow",
    })

    dpi: int = 300
    chart_size: Tuple[float, float] = (8, 6)
    write_docx: bool = False
