import unittest
from datetime import date

from strikerate.aggregate import as_mapping, count_by, counts_by_year
from strikerate.models import MONTH_ORDER, WEEKDAY_ORDER

from factories import strike


class WeekdayTests(unittest.TestCase):
    def test_weekday_names(self):
        self.assertEqual(strike(day=date(2024, 1, 7)).weekday(), "Sunday")
        self.assertEqual(strike(day=date(2024, 1, 8)).weekday(), "Monday")
        self.assertEqual(strike(day=date(2024, 1, 13)).weekday(), "Saturday")
        self.assertIsNone(strike(day=None).weekday())

    def test_zero_fill_all_seven_days(self):
        # Sunday, Monday (x2), Saturday -> 3 of 7 days present
        records = [strike(day=date(2024, 1, d)) for d in (7, 8, 15, 13)]
        rows = count_by(records, "weekday", domain=WEEKDAY_ORDER, order=WEEKDAY_ORDER)
        self.assertEqual([s.key[0] for s in rows], list(WEEKDAY_ORDER))
        counts = as_mapping(rows)
        self.assertEqual(counts["Monday"], 2)
        self.assertEqual(sum(1 for s in rows if s.count == 0), 4)

    def test_caller_supplied_weekday_order(self):
        monday_first = WEEKDAY_ORDER[1:] + WEEKDAY_ORDER[:1]
        rows = count_by([strike(day=date(2024, 1, 7))], "weekday", domain=monday_first, order=monday_first)
        self.assertEqual([s.key[0] for s in rows], list(monday_first))


class OrderingTests(unittest.TestCase):
    def test_default_descending_by_count(self):
        records = [strike(runway="Other")] + [strike(runway="27L-9R")] * 3 + [strike(runway="22R-4L")] * 2
        rows = count_by(records, "runway")
        self.assertEqual([s.key[0] for s in rows], ["27L-9R", "22R-4L", "Other"])
        self.assertEqual([s.count for s in rows], [3, 2, 1])

    def test_calendar_order_beats_count(self):
        records = [strike(month="Dec")] * 5 + [strike(month="Feb")] + [strike(month="Jan")] * 2
        rows = count_by(records, "month", domain=MONTH_ORDER, order=MONTH_ORDER)
        self.assertEqual([s.key[0] for s in rows], list(MONTH_ORDER))
        self.assertEqual(rows[0].count, 2)
        self.assertEqual(rows[-1].count, 5)

    def test_records_without_key_value_are_not_counted(self):
        rows = count_by([strike(month=None), strike(month="Mar")], "month")
        self.assertEqual(as_mapping(rows), {"Mar": 1})


class CompositeKeyTests(unittest.TestCase):
    def test_zero_fill_per_component(self):
        records = [strike(month="Jan", guild="Raptors"), strike(month="Mar", guild="Gulls/Terns")]
        rows = count_by(records, ("month", "guild"), domain={"month": MONTH_ORDER}, order={"month": MONTH_ORDER})
        self.assertEqual(len(rows), 24)
        counts = as_mapping(rows)
        self.assertEqual(counts[("Jan", "Raptors")], 1)
        self.assertEqual(counts[("Jan", "Gulls/Terns")], 0)
        self.assertEqual(rows[0].key[0], "Jan")

    def test_composite_domain_must_be_mapping(self):
        with self.assertRaises(ValueError):
            count_by([strike()], ("month", "guild"), domain=MONTH_ORDER)

    def test_unknown_key(self):
        with self.assertRaises(ValueError):
            count_by([strike()], "colour")

    def test_callable_key(self):
        rows = count_by([strike(damage=True), strike(), strike()], lambda r: r.damage_indicated)
        self.assertEqual(as_mapping(rows), {False: 2, True: 1})


class SupportThresholdTests(unittest.TestCase):
    def test_species_suppressed_after_aggregation(self):
        records = (
            [strike(month=m, species="Species A") for m in ("Jan", "Feb", "Mar")]
            + [strike(month=m, species="Species B") for m in ("Jan", "Feb")]
        )
        rows = count_by(records, ("month", "species"), min_support=3)
        species = {s.key[1] for s in rows}
        self.assertEqual(species, {"Species A"})
        self.assertEqual(sum(s.count for s in rows), 3)

    def test_threshold_counts_total_not_per_period(self):
        # 1 per month: no single month reaches 3, the total does
        records = [strike(month=m, species="Killdeer") for m in ("Apr", "May", "Jun")]
        rows = count_by(records, ("month", "species"), min_support=3)
        self.assertEqual(len(rows), 3)


class YearCountTests(unittest.TestCase):
    def test_counts_by_year_zero_fill(self):
        counts = counts_by_year([strike(2023)] * 5, [2023, 2024])
        self.assertEqual(counts, {2023: 5, 2024: 0})


if __name__ == "__main__":
    unittest.main()
