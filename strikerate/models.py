"""
Data model (StrikeRecord and friends)
=====================================

Each row of a strike export is converted into a `StrikeRecord` object.
We keep records immutable (`frozen=True`) so that:
- normalization happens once, in the loader, and
- reports select and count records rather than editing them.

Both exporting systems (the public regulatory database and the airport's
internal command-center export) produce the same record type.
"""

from dataclasses import dataclass
from datetime import date as _date
from enum import Enum
from typing import Optional, Tuple

# Calendar orderings used as explicit sort keys (never lexicographic).
MONTH_ORDER: Tuple[str, ...] = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)
WEEKDAY_ORDER: Tuple[str, ...] = (
    "Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday",
)


class Source(Enum):
    """Which exporting system produced a record."""
    REGULATORY = "regulatory"
    INTERNAL = "internal"


@dataclass(frozen=True)
class StrikeRecord:
    """One wildlife-strike incident after normalization and classification."""
    record_id: str
    source: Source
    date: Optional[_date]
    year: int
    month: Optional[str]
    species: str
    species_raw: str
    guild: str
    runway: str
    runway_raw: str
    registration: str
    registration_present: bool
    remains_sent: bool
    damage_indicated: bool
    flight_effect: str
    other_effect: str
    repair_cost: Optional[float]
    downtime_hours: Optional[float]
    other_cost: Optional[float]
    number_struck: Optional[int]
    workflow_status: str
    disruptive: bool

    def weekday(self) -> Optional[str]:
        """Return the weekday name (Sunday..Saturday) of the incident date."""
        if self.date is None:
            return None
        # date.weekday(): Monday == 0
        return WEEKDAY_ORDER[(self.date.weekday() + 1) % 7]

    def month_index(self) -> int:
        """Calendar position of the month (0..11), 12 when unknown."""
        if self.month in MONTH_ORDER:
            return MONTH_ORDER.index(self.month)
        return len(MONTH_ORDER)


@dataclass(frozen=True)
class OperationsRecord:
    """Exposure denominator: total aircraft movements for one year."""
    year: int
    operations_count: int


@dataclass(frozen=True)
class PeriodSummary:
    """Count (and optionally a normalized rate) for one grouping key."""
    key: Tuple
    count: int
    operations: Optional[int] = None
    rate: Optional[float] = None

    @property
    def label(self) -> str:
        return " / ".join(str(k) for k in self.key)


@dataclass(frozen=True)
class ControlLimits:
    """Center line and control bounds of a rate series."""
    center_line: float
    std_dev: float
    upper_limit: float
    lower_limit: float
    k: float
