from __future__ import annotations

import io
import json
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path

from catalog_fixtures import CANOPUS, HYG_COLUMNS, SIRIUS, hyg_row, write_catalog

from catalog_scorer.cli import build_parser, main, recalibrate_main
from catalog_scorer.export import load_results


class CliTests(unittest.TestCase):
    def _run(self, runner, argv: list[str]) -> tuple[int, str, str]:
        stdout = io.StringIO()
        stderr = io.StringIO()
        with redirect_stdout(stdout), redirect_stderr(stderr):
            code = runner(argv)
        return code, stdout.getvalue(), stderr.getvalue()

    def test_parser_defaults(self) -> None:
        args = build_parser().parse_args([])
        self.assertEqual(args.output, "staging/hyg-scored.json")
        self.assertEqual(args.schema, "auto")
        self.assertTrue(args.input.endswith("hygdata_v42.csv.gz"))

    def test_scores_local_catalog(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            root = Path(tmp_dir)
            source = write_catalog(root / "hyg.csv", HYG_COLUMNS, [SIRIUS, CANOPUS])
            output = root / "staging" / "scored.json"
            stats_path = root / "stats.json"
            table_path = root / "scored.csv"

            code, stdout, stderr = self._run(
                main,
                [
                    "--input", str(source),
                    "--output", str(output),
                    "--stats-output", str(stats_path),
                    "--table-output", str(table_path),
                    "--verbosity", "0",
                ],
            )

            self.assertEqual(code, 0, stderr)
            self.assertIn("Tier distribution:", stdout)
            self.assertIn("Sirius", stdout)
            self.assertEqual(len(load_results(output)), 2)
            stats = json.loads(stats_path.read_text(encoding="utf-8"))
            self.assertEqual(stats["total_objects"], 2)
            self.assertEqual(stats["schema"], "hyg")
            self.assertTrue(table_path.exists())

    def test_summary_reports_malformed_and_dropped_rows(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            root = Path(tmp_dir)
            nameless = hyg_row(id="7", dist="10", mag="5")
            source = write_catalog(root / "hyg.csv", HYG_COLUMNS, [SIRIUS, nameless, CANOPUS], extra_lines="1,2,3\r\n")

            code, stdout, stderr = self._run(main, ["--input", str(source), "--output", str(root / "scored.json")])

            self.assertEqual(code, 0, stderr)
            self.assertIn("Rows read: 3  malformed: 1  dropped: 1  renamed: 0", stdout)
            self.assertIn("Scored objects: 2", stdout)

    def test_unwritable_output_is_reported_not_raised(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            root = Path(tmp_dir)
            source = write_catalog(root / "hyg.csv", HYG_COLUMNS, [SIRIUS])
            blocker = root / "blocker"
            blocker.write_text("not a directory", encoding="utf-8")

            code, _stdout, stderr = self._run(
                main, ["--input", str(source), "--output", str(blocker / "scored.json"), "--verbosity", "0"]
            )

            self.assertEqual(code, 1)
            self.assertTrue(stderr.startswith("[error] "), stderr)
            self.assertNotIn("Traceback", stderr)

    def test_failures_exit_non_zero_without_output(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            root = Path(tmp_dir)
            output = root / "scored.json"
            bad = write_catalog(root / "bad.csv", ["id", "proper"], [{"id": "1", "proper": "Sirius"}])

            code, _stdout, stderr = self._run(main, ["--input", str(bad), "--schema", "hyg", "--output", str(output)])
            self.assertEqual(code, 1)
            self.assertIn("[error] SchemaMismatch", stderr)

            code, _stdout, stderr = self._run(main, ["--input", str(root / "missing.csv"), "--output", str(output)])
            self.assertEqual(code, 1)
            self.assertIn("DownloadFailure", stderr)
            self.assertFalse(output.exists())

    def test_recalibrate(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            root = Path(tmp_dir)
            source = write_catalog(root / "hyg.csv", HYG_COLUMNS, [SIRIUS, CANOPUS])
            results = root / "scored.json"
            code, _stdout, _stderr = self._run(main, ["--input", str(source), "--output", str(results), "--verbosity", "0"])
            self.assertEqual(code, 0)

            updated = root / "recalibrated.json"
            code, stdout, stderr = self._run(
                recalibrate_main,
                ["--results", str(results), "--thresholds", "4,3,2,1", "--output", str(updated), "--verbosity", "0"],
            )
            self.assertEqual(code, 0, stderr)
            self.assertIn("Recalibrated distribution:", stdout)
            self.assertEqual({scored.badge_tier.value for scored in load_results(updated)}, {"LEGENDARY"})

            code, _stdout, stderr = self._run(recalibrate_main, ["--results", str(results), "--thresholds", "1,2,3,4"])
            self.assertEqual(code, 1)
            self.assertIn("ConfigError", stderr)

            code, stdout, _stderr = self._run(recalibrate_main, ["--results", str(results), "--targets", "LEGENDARY=50"])
            self.assertEqual(code, 0)
            self.assertIn("Thresholds:", stdout)


if __name__ == "__main__":
    unittest.main()
