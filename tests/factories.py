"""Small builders for test records and export frames."""

from datetime import date

import pandas as pd

from strikerate.models import OperationsRecord, Source, StrikeRecord


def strike(year=2023, *, month="Jan", day=None, species="Gull sp.", guild="Gulls/Terns",
           runway="22R-4L", registration="", remains=False, damage=False, flight_effect="",
           other_effect="", repair_cost=None, downtime=None, other_cost=None,
           source=Source.REGULATORY, record_id="1", disruptive=None):
    if disruptive is None:
        disruptive = any((damage, flight_effect, other_effect, repair_cost is not None,
                          downtime is not None, other_cost is not None))
    return StrikeRecord(
        record_id=record_id, source=source, date=day, year=year, month=month,
        species=species, species_raw=species, guild=guild, runway=runway, runway_raw=runway,
        registration=registration, registration_present=bool(registration.strip()),
        remains_sent=remains, damage_indicated=damage, flight_effect=flight_effect,
        other_effect=other_effect, repair_cost=repair_cost, downtime_hours=downtime,
        other_cost=other_cost, number_struck=1, workflow_status="", disruptive=disruptive,
    )


def ops(mapping):
    return [OperationsRecord(year=y, operations_count=n) for y, n in sorted(mapping.items())]


def regulatory_frame(rows):
    """Regulatory export with every required column; `rows` override defaults."""
    base = {
        "INDX_NR": "1", "INCIDENT_DATE": "2023-01-01", "INCIDENT_YEAR": "2023", "INCIDENT_MONTH": "1",
        "SPECIES": "Herring gull", "NUM_STRUCK": "1", "RUNWAY": "22R", "REG": "", "REMAINS_SENT": "FALSE",
        "INDICATED_DAMAGE": "FALSE", "EFFECT": "", "EFFECT_OTHER": "", "COST_REPAIRS": "", "AOS": "",
        "COST_OTHER": "",
    }
    return pd.DataFrame([{**base, **r} for r in rows], dtype=object)


def internal_frame(rows):
    base = {
        "Unique.ID": "W1", "Strike.Year": "2,024", "Strike.Month": "01-Jan", "Guild": "Gulls/Terns",
        "Species.Name": "RING-BILLED GULL", "Total.Struck": "1", "Runway.Taxiway": "4L",
        "Aircraft.Registration": "", "Remains": "", "Damaging.Strike": "No", "Effect.On.Flight": "",
        "Other.Effect": "", "Estimated.Cost.of.Repairs....": "", "Aircraft.Time.Out.of.Service..hrs.": "",
        "Other.Costs....": "", "Course.of.Action.": "Submit to FAA",
    }
    return pd.DataFrame([{**base, **r} for r in rows], dtype=object)


__all__ = ["strike", "ops", "regulatory_frame", "internal_frame", "date"]
