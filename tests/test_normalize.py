import unittest

from strikerate.models import MONTH_ORDER
from strikerate.normalize import (
    OTHER_RUNWAY,
    RUNWAY_LABELS,
    RUNWAY_PAIRS,
    SPECIES_CLUSTERS,
    UnmappedValues,
    assign_guild,
    build_guild_table,
    normalize_guild,
    normalize_month,
    normalize_runway,
    normalize_species,
    normalize_year,
)

SPECIES_FIXTURE = [
    "HERRING GULL", "Gulls", "  ring-billed gull ", "Bats", "Big brown bat", "Unknown bird - small",
    "UNKNOWN BIRD", "Perching birds (y)", "Mallard/American black duck complex", "Swallows",
    "Shorebirds", "Eastern cottontail", "American barn owl", "Redpoll", "Turtles",
    "Killdeer", "American kestrel", "Mourning   dove", "", None,
]


class SpeciesTests(unittest.TestCase):
    def test_idempotent_over_fixture(self):
        for raw in SPECIES_FIXTURE:
            once = normalize_species(raw)
            self.assertEqual(normalize_species(once), once, raw)

    def test_clusters(self):
        self.assertEqual(normalize_species("HERRING GULL"), "Gull sp.")
        self.assertEqual(normalize_species("Gulls"), "Gull sp.")
        self.assertEqual(normalize_species("Bats"), "Bat sp.")
        self.assertEqual(normalize_species("Big brown bat"), "Bat sp.")
        self.assertEqual(normalize_species("unknown medium bird"), "Unknown bird")

    def test_cluster_rules_are_ordered(self):
        names = [r.name for r in SPECIES_CLUSTERS]
        self.assertEqual(names, ["unknown-bird", "gull", "bat"])
        # an unknown gull-sized bird is still an unknown bird
        self.assertEqual(normalize_species("Unknown bird (gull size)"), "Unknown bird")

    def test_corrections_after_clustering(self):
        self.assertEqual(normalize_species("PERCHING BIRDS (Y)"), "Unknown bird")
        self.assertEqual(normalize_species("Mallard/American black duck complex"), "Waterfowl sp.")
        self.assertEqual(normalize_species("Eastern cottontail"), "Eastern cottontail rabbit")
        self.assertEqual(normalize_species("Turtles"), "Turtle sp.")

    def test_sentence_case_and_trim(self):
        self.assertEqual(normalize_species("  AMERICAN   KESTREL "), "American kestrel")

    def test_blank_species_is_unknown_bird_and_reported(self):
        unmapped = UnmappedValues()
        self.assertEqual(normalize_species("", unmapped), "Unknown bird")
        self.assertEqual(normalize_species(float("nan"), unmapped), "Unknown bird")
        self.assertEqual(unmapped.get("species"), [""])


class GuildTests(unittest.TestCase):
    def test_blank_guild(self):
        self.assertEqual(normalize_guild(""), "Unknown")
        self.assertEqual(normalize_guild(None), "Unknown")

    def test_mammal_harmonized(self):
        self.assertEqual(normalize_guild("Mammal"), "Mammals")
        self.assertEqual(normalize_guild("Mammals"), "Mammals")

    def test_assign_guild_reports_all_unmapped_species(self):
        table = build_guild_table([("HERRING GULL", "Gulls/Terns"), ("Killdeer", "Shorebirds"), ("Coyote", "Mammal")])
        self.assertEqual(table["Gull sp."], "Gulls/Terns")
        self.assertEqual(table["Coyote"], "Mammals")
        unmapped = UnmappedValues()
        self.assertEqual(assign_guild("Killdeer", table, unmapped), "Shorebirds")
        self.assertEqual(assign_guild("Snowy owl", table, unmapped), "Unknown")
        self.assertEqual(assign_guild("Horned lark", table, unmapped), "Unknown")
        self.assertEqual(assign_guild("Snowy owl", table, unmapped), "Unknown")
        self.assertEqual(unmapped.get("species_without_guild"), ["Horned lark", "Snowy owl"])
        self.assertEqual(len(unmapped), 2)


class RunwayTests(unittest.TestCase):
    def test_known_identifiers_map_to_pairs(self):
        self.assertEqual(len(RUNWAY_PAIRS), 12)
        self.assertEqual(len(RUNWAY_LABELS), 6)
        for ident, label in RUNWAY_PAIRS.items():
            self.assertIn(normalize_runway(ident), RUNWAY_LABELS)
            self.assertEqual(normalize_runway(ident), label)

    def test_opposite_ends_share_label(self):
        self.assertEqual(normalize_runway("22R"), normalize_runway("4L"))
        self.assertEqual(normalize_runway("27L"), normalize_runway("9R"))

    def test_only_exact_identifiers_are_paired(self):
        self.assertEqual(normalize_runway(" 4l "), "22R-4L")
        unmapped = UnmappedValues()
        for raw in ["04L", "RWY 21L", "004R", "RWY 9L"]:
            self.assertEqual(normalize_runway(raw, unmapped), OTHER_RUNWAY, raw)
        self.assertEqual(unmapped.get("runway"), ["004R", "04L", "RWY 21L", "RWY 9L"])

    def test_everything_else_is_other(self):
        unmapped = UnmappedValues()
        for raw in ["A", "Taxiway K", "22C", "", None, "5", "Ramp"]:
            self.assertEqual(normalize_runway(raw, unmapped), OTHER_RUNWAY)
        self.assertIn("Taxiway K", unmapped.get("runway"))


class MonthYearTests(unittest.TestCase):
    def test_numeric_prefix_stripped(self):
        self.assertEqual(normalize_month("01-Jan"), "Jan")
        self.assertEqual(normalize_month("12-Dec"), "Dec")
        self.assertEqual(normalize_month("9 - Sep"), "Sep")

    def test_numbers_and_full_names(self):
        self.assertEqual(normalize_month(3), "Mar")
        self.assertEqual(normalize_month("11"), "Nov")
        self.assertEqual(normalize_month("October"), "Oct")

    def test_always_canonical_or_none(self):
        unmapped = UnmappedValues()
        for raw in ["01-Jan", "Feb", 7, "13", "Smarch", ""]:
            m = normalize_month(raw, unmapped)
            self.assertTrue(m is None or m in MONTH_ORDER)
        self.assertEqual(unmapped.get("month"), ["13", "Smarch"])

    def test_year_thousands_separator(self):
        self.assertEqual(normalize_year("2,024"), 2024)
        self.assertEqual(normalize_year("2016"), 2016)
        self.assertEqual(normalize_year(2019.0), 2019)
        self.assertIsNone(normalize_year(""))
        self.assertIsNone(normalize_year("n/a"))


if __name__ == "__main__":
    unittest.main()
