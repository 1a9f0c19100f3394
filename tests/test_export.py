from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path

import pandas as pd

from catalog_scorer.errors import CatalogError, ConfigError
from catalog_scorer.export import (
    RESULTS_FORMAT,
    load_results,
    record_to_scored,
    scored_to_record,
    to_frame,
    write_results,
    write_statistics,
    write_table,
)
from catalog_scorer.models import AstronomicalObject, SignificanceSignals
from catalog_scorer.scoring import score_object


def sample_objects():
    return [
        score_object(
            AstronomicalObject(
                name="Vega",
                catalog="HYG",
                source_id="91001",
                proper_name="Vega",
                distance_ly=25.04,
                apparent_magnitude=0.03,
                luminosity_solar=40.12,
                temperature_k=9602.0,
                spectral_type="A0V",
                constellation="Lyra",
                estimated_fields=("temperature_k",),
            )
        ),
        score_object(
            AstronomicalObject(
                name="Mars",
                catalog="SOLAR",
                distance_ly=0.0000158,
                apparent_magnitude=-2.94,
                signals=SignificanceSignals(named_by_ancients=True, has_active_mission=True, paper_count=40000),
            )
        ),
        score_object(AstronomicalObject(name="HD 1", catalog="HYG")),
    ]


class ExportTests(unittest.TestCase):
    def test_results_round_trip(self) -> None:
        objects = sample_objects()
        with tempfile.TemporaryDirectory() as tmp_dir:
            path = write_results(objects, Path(tmp_dir) / "out" / "scored.json")
            payload = json.loads(path.read_text(encoding="utf-8"))
            loaded = load_results(path)
            leftovers = [item.name for item in path.parent.iterdir() if item.name != "scored.json"]

        self.assertEqual(payload["format"], RESULTS_FORMAT)
        names = [record["name"] for record in payload["objects"]]
        self.assertEqual(names, ["Mars", "Vega", "HD 1"])
        self.assertEqual(sorted(loaded, key=lambda item: item.name), sorted(objects, key=lambda item: item.name))
        self.assertEqual(leftovers, [])

    def test_identical_input_gives_identical_bytes(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            root = Path(tmp_dir)
            first = write_results(sample_objects(), root / "a.json").read_bytes()
            second = write_results(list(reversed(sample_objects())), root / "b.json").read_bytes()
        self.assertEqual(first, second)

    def test_record_fields(self) -> None:
        record = scored_to_record(sample_objects()[0])
        self.assertEqual(record["badge_tier"], "STANDARD")
        self.assertEqual(record["estimated_fields"], ["temperature_k"])
        self.assertIsNone(record["signals"])
        self.assertIn("distance_score", record["components"]["astrometric"])
        self.assertEqual(record_to_scored(record), sample_objects()[0])

        del record["total_score"]
        with self.assertRaises(CatalogError):
            record_to_scored(record)

    def test_load_rejects_foreign_documents(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            path = Path(tmp_dir) / "other.json"
            path.write_text(json.dumps({"objects": []}), encoding="utf-8")
            with self.assertRaises(CatalogError):
                load_results(path)
            with self.assertRaises(CatalogError):
                load_results(Path(tmp_dir) / "missing.json")

    def test_frame_and_tables(self) -> None:
        frame = to_frame(sample_objects())
        self.assertEqual(list(frame["name"]), ["Mars", "Vega", "HD 1"])
        self.assertIn("cultural_significance", frame.columns)
        self.assertIn("has_proper_name", frame.columns)
        self.assertEqual(frame.loc[1, "estimated_fields"], "temperature_k")

        with tempfile.TemporaryDirectory() as tmp_dir:
            root = Path(tmp_dir)
            csv_path = write_table(frame, root / "scored.csv")
            parquet_path = write_table(frame, root / "scored.parquet")
            self.assertEqual(list(pd.read_csv(csv_path)["name"]), ["Mars", "Vega", "HD 1"])
            self.assertEqual(len(pd.read_parquet(parquet_path)), 3)
            with self.assertRaises(ConfigError):
                write_table(frame, root / "scored.xlsx")

    def test_empty_frame_keeps_columns(self) -> None:
        frame = to_frame([])
        self.assertEqual(len(frame), 0)
        self.assertIn("total_score", frame.columns)

    def test_write_statistics(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            path = write_statistics({"total_objects": 0}, Path(tmp_dir) / "stats.json")
            self.assertEqual(json.loads(path.read_text(encoding="utf-8")), {"total_objects": 0})


if __name__ == "__main__":
    unittest.main()
