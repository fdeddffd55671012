import csv
import os
import tempfile
import unittest

from strikerate.config import PipelineConfig
from strikerate.pipeline import REPORTS, StrikePipeline
from strikerate.tables import TABLE_FILES

from factories import internal_frame, regulatory_frame


def read_csv(path):
    with open(path, newline="", encoding="utf-8") as f:
        return list(csv.DictReader(f))


class PipelineTestCase(unittest.TestCase):
    def setUp(self):
        self._td = tempfile.TemporaryDirectory()
        self.addCleanup(self._td.cleanup)
        d = self._td.name
        self.out = os.path.join(d, "output")

        self.regulatory = os.path.join(d, "faa.csv")
        regulatory_frame([
            {"INDX_NR": "1", "INCIDENT_DATE": "2022-05-01", "INCIDENT_YEAR": "2022", "INCIDENT_MONTH": "5",
             "REG": "N1"},
            {"INDX_NR": "2", "INCIDENT_DATE": "2023-06-04", "INCIDENT_YEAR": "2023", "INCIDENT_MONTH": "6",
             "INDICATED_DAMAGE": "TRUE", "REMAINS_SENT": "TRUE"},
            {"INDX_NR": "3", "INCIDENT_DATE": "2023-06-05", "INCIDENT_YEAR": "2023", "INCIDENT_MONTH": "6",
             "SPECIES": "Killdeer", "RUNWAY": "9L"},
        ]).to_csv(self.regulatory, index=False)

        self.internal = os.path.join(d, "wcaa.csv")
        internal_frame(
            [{"Unique.ID": f"W{i}"} for i in range(3)]
            + [{"Unique.ID": "W9", "Damaging.Strike": "Yes", "Guild": "Shorebirds", "Species.Name": "Killdeer",
                "Strike.Month": "05-May", "Runway.Taxiway": "Apron 3"}]
            + [{"Unique.ID": "WX", "Course.of.Action.": "Archive (do not submit to FAA)"}]
        ).to_csv(self.internal, index=False)

        self.guilds = os.path.join(d, "guilds.csv")
        with open(self.guilds, "w", encoding="utf-8") as f:
            f.write("Species,Guild\nHerring gull,Gulls/Terns\nKilldeer,Shorebirds\n")

    def config(self, **kw):
        return PipelineConfig(regulatory_path=self.regulatory, internal_path=self.internal,
                              guild_path=self.guilds, output_dir=self.out, dpi=40, chart_size=(4, 3), **kw)


class TablesOnlyTests(PipelineTestCase):
    def test_full_run_writes_every_table(self):
        pipe = StrikePipeline(config=self.config(), charts=False).load().run()
        self.assertEqual(list(pipe.results), list(REPORTS))
        for name in TABLE_FILES.values():
            self.assertTrue(os.path.exists(os.path.join(self.out, name)), name)
        self.assertEqual(pipe.chart_paths, [])

    def test_loaded_records(self):
        pipe = StrikePipeline(config=self.config(), charts=False).load()
        self.assertEqual(len(pipe.regulatory), 3)
        # archived record dropped
        self.assertEqual(len(pipe.internal), 4)
        self.assertEqual(pipe.operations[-1].year, 2024)
        self.assertEqual(pipe.unmapped.get("runway"), ["Apron 3"])

    def test_damage_table_uses_internal_count_for_latest_year(self):
        StrikePipeline(config=self.config(), charts=False).load().run(["damage"])
        rows = {r["Year"]: r for r in read_csv(os.path.join(self.out, TABLE_FILES["damage_counts"]))}
        self.assertEqual(rows["2023"]["Count"], "1")
        self.assertEqual(rows["2023"]["Regulatory_Count"], "1")
        self.assertEqual(rows["2024"]["Count"], "1")
        self.assertEqual(rows["2024"]["Internal_Substituted"], "TRUE")
        self.assertEqual(rows["2016"]["Regulatory_Count"], "")
        self.assertEqual(len(rows), 9)

    def test_gull_weekday_table(self):
        StrikePipeline(config=self.config(), charts=False).load().run(["gulls"])
        rows = read_csv(os.path.join(self.out, TABLE_FILES["gull_weekday"]))
        self.assertEqual([r["Day"] for r in rows][:2], ["Sunday", "Monday"])
        # the killdeer strike on Monday 2023-06-05 is not a gull
        self.assertEqual(sum(int(r["Count"]) for r in rows), 2)

    def test_summary_for_explicit_year(self):
        pipe = StrikePipeline(config=self.config(), charts=False).load()
        s = pipe.summary(2024)
        self.assertEqual(s.year, 2024)
        rows = read_csv(os.path.join(self.out, TABLE_FILES["runway"]))
        self.assertEqual(rows[0], {"Runway": "22R-4L", "Count": "3"})

    def test_report_needs_its_input(self):
        cfg = self.config()
        cfg.regulatory_path = None
        pipe = StrikePipeline(config=cfg, charts=False).load()
        with self.assertRaises(ValueError):
            pipe.damage()

    def test_unknown_report_name(self):
        with self.assertRaises(ValueError):
            StrikePipeline(config=self.config(), charts=False).run(["bogus"])

    def test_rerun_gives_identical_tables(self):
        StrikePipeline(config=self.config(), charts=False).load().run()
        path = os.path.join(self.out, TABLE_FILES["species_month"])
        with open(path, encoding="utf-8") as f:
            first = f.read()
        StrikePipeline(config=self.config(), charts=False).load().run()
        with open(path, encoding="utf-8") as f:
            self.assertEqual(f.read(), first)


class ChartTests(PipelineTestCase):
    def test_charts_written(self):
        pipe = StrikePipeline(config=self.config(), charts=True).load().run()
        self.assertTrue(pipe.chart_paths)
        for _, path, _ in pipe.chart_paths:
            self.assertTrue(os.path.exists(path), path)
        names = {os.path.basename(p) for _, p, _ in pipe.chart_paths}
        self.assertIn("Plot_Annual_Damage_Rate.jpeg", names)
        self.assertIn("Plot_GullStrikes.jpeg", names)
        self.assertIn("Plot_Monthly_Strikes_2024.jpeg", names)


if __name__ == "__main__":
    unittest.main()
