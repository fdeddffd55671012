"""
Strike classifier
=================

Boolean event categories derived from the fields of ONE record:

- pilot_reported: an aircraft registration was recorded
- remains_sent:   biological remains were forwarded for identification
- damaging:       the damage indicator is explicitly set
- disruptive:     damage, an effect on flight, or any cost/downtime recorded

These are pure functions. They never look at other records.
"""

from __future__ import annotations

from typing import Optional

import pandas as pd

from .models import Source, StrikeRecord

# Registration text that means "nobody wrote a registration down".
REGISTRATION_UNKNOWN = frozenset({"", "unknown"})

# Effect text that means "no effect" and counts as blank.
NO_EFFECT_PLACEHOLDERS = frozenset({"none"})

TRUE_VALUES = frozenset({"true", "t", "yes", "y", "1", "1.0"})

INTERNAL_REMAINS_SENT = "sent to smithsonian"


def _text(x) -> str:
    if x is None:
        return ""
    try:
        if pd.isna(x):
            return ""
    except (TypeError, ValueError):
        pass
    return str(x).strip()


def is_true(x) -> bool:
    """TRUE / True / 'Yes' / 1 -> True. Blank and anything else -> False."""
    if isinstance(x, bool):
        return x
    return _text(x).lower() in TRUE_VALUES


def has_effect(text) -> bool:
    """Non-blank effect text that is not the 'None' placeholder."""
    t = _text(text)
    return t != "" and t.lower() not in NO_EFFECT_PLACEHOLDERS


def has_value(x) -> bool:
    """Non-null numeric field. A recorded zero still counts as present."""
    return _text(x) != ""


def pilot_reported(registration) -> bool:
    return _text(registration).lower() not in REGISTRATION_UNKNOWN


def remains_sent(value, source: Source) -> bool:
    # regulatory export: boolean column; internal export: status text
    if source is Source.REGULATORY:
        return is_true(value)
    return _text(value).lower() == INTERNAL_REMAINS_SENT


def damaging(value, source: Source) -> bool:
    if source is Source.REGULATORY:
        return is_true(value)
    return _text(value).lower() == "yes"


def disruptive(damage: bool,
               flight_effect=None,
               other_effect=None,
               repair_cost: Optional[float] = None,
               downtime_hours: Optional[float] = None,
               other_cost: Optional[float] = None) -> bool:
    """Strict OR over the six indicators. No weighting, no minimum count."""
    return any((
        bool(damage),
        has_effect(flight_effect),
        has_effect(other_effect),
        has_value(repair_cost),
        has_value(downtime_hours),
        has_value(other_cost),
    ))


def record_is_disruptive(r: StrikeRecord) -> bool:
    """Re-derive the disruptive flag from a record's own indicator fields."""
    return disruptive(r.damage_indicated, r.flight_effect, r.other_effect,
                      r.repair_cost, r.downtime_hours, r.other_cost)
