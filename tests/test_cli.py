import contextlib
import io
import os
import unittest

from strikerate.cli import build_parser, config_from_args, main

from test_pipeline import PipelineTestCase


class ParserTests(unittest.TestCase):
    def test_defaults(self):
        cfg = config_from_args(build_parser().parse_args(["damage"]))
        self.assertEqual((cfg.first_year, cfg.last_year), (2016, 2024))
        self.assertTrue(cfg.include_ambiguous_status)
        self.assertEqual(cfg.damage_k, 2.0)
        self.assertEqual(cfg.weekday_k, 1.96)
        self.assertEqual(cfg.strike_rate_scale, 10000)

    def test_flags(self):
        args = build_parser().parse_args(["summary", "--exclude-ambiguous-status", "--min-species", "5",
                                          "--latest-year", "2023", "--out", "x"])
        cfg = config_from_args(args)
        self.assertFalse(cfg.include_ambiguous_status)
        self.assertEqual(cfg.min_species_support, 5)
        self.assertEqual(cfg.latest_year, 2023)
        self.assertEqual(cfg.output_dir, "x")

    def test_unknown_command_rejected(self):
        with contextlib.redirect_stderr(io.StringIO()), self.assertRaises(SystemExit):
            build_parser().parse_args(["plot"])


class MainTests(PipelineTestCase):
    def _main(self, argv):
        out, err = io.StringIO(), io.StringIO()
        with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
            code = main(argv)
        return code, out.getvalue(), err.getvalue()

    def test_missing_input_file(self):
        code, _, err = self._main(["damage", "--regulatory", os.path.join(self.out, "nope.csv")])
        self.assertEqual(code, 1)
        self.assertIn("Error:", err)

    def test_corrupt_workbook(self):
        path = os.path.join(self._td.name, "faa.xlsx")
        with open(path, "wb") as f:
            f.write(b"not a zip archive")
        code, _, err = self._main(["damage", "--regulatory", path, "--out", self.out])
        self.assertEqual(code, 1)
        self.assertIn("Could not read", err)

    def test_report_without_required_input(self):
        code, _, err = self._main(["damage", "--out", self.out])
        self.assertEqual(code, 1)
        self.assertIn("--regulatory", err)

    def test_all_tables_only(self):
        code, out, _ = self._main(["all", "--regulatory", self.regulatory, "--internal", self.internal,
                                   "--guilds", self.guilds, "--out", self.out, "--no-charts"])
        self.assertEqual(code, 0)
        self.assertIn("Wrote 20 table(s) and 0 chart(s)", out)

    def test_all_skips_reports_without_inputs(self):
        code, out, _ = self._main(["all", "--internal", self.internal, "--out", self.out, "--no-charts"])
        self.assertEqual(code, 0)
        self.assertIn("Skipping damage, disruptive, pilot, remains, gulls", out)
        self.assertTrue(os.path.exists(os.path.join(self.out, "Table_Strikes_by_Month.csv")))


if __name__ == "__main__":
    unittest.main()
