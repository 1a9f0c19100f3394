from __future__ import annotations

import math
import unittest

from catalog_fixtures import CANOPUS, SIRIUS, hyg_row

from catalog_scorer.errors import RowMalformed
from catalog_scorer.models import AstronomicalObject, SignificanceSignals
from catalog_scorer.normalization import (
    LY_PER_PC,
    NameRegistry,
    normalize_row,
    normalize_spectral_type,
    object_to_raw_row,
    parse_optional_float,
    resolve_display_name,
)
from catalog_scorer.quality import assess_quality
from catalog_scorer.schema import GENERIC_COLUMNS, GENERIC_SCHEMA, HYG_SCHEMA
from catalog_scorer.scoring import score_object


def generic_row(**values: str) -> dict[str, str]:
    row = {column: "" for column in GENERIC_COLUMNS}
    row.update(values)
    return row


class NormalizationTests(unittest.TestCase):
    def test_sirius_from_hyg(self) -> None:
        obj = normalize_row(SIRIUS, HYG_SCHEMA)

        self.assertIsNotNone(obj)
        self.assertEqual(obj.name, "Sirius")
        self.assertEqual(obj.catalog, "HYG")
        self.assertEqual(obj.source_id, "32263")
        self.assertEqual(obj.designation, "9Alp CMa")
        self.assertEqual(obj.secondary_designation, "HD 48915")
        self.assertAlmostEqual(obj.distance_ly, 8.6, delta=0.05)
        self.assertEqual(obj.apparent_magnitude, -1.44)
        self.assertEqual(obj.spectral_type, "A0")
        self.assertEqual(obj.constellation, "Canis Major")
        self.assertIsNone(obj.temperature_k)
        self.assertIsNone(obj.mass_solar)
        self.assertEqual(obj.estimated_fields, ())

    def test_sirius_from_parallax_scores_distance_and_brightness(self) -> None:
        row = generic_row(name="Sirius", parallax="0.379", apparent_magnitude="-1.46", spectral_type="A1V")
        obj = normalize_row(row, GENERIC_SCHEMA)
        self.assertAlmostEqual(obj.distance_ly, 8.6, delta=0.05)
        self.assertEqual(obj.spectral_type, "A1V")

        scored = score_object(obj)
        self.assertGreater(scored.components.astrometric.distance_score, 0.0)
        self.assertGreater(scored.components.astrometric.magnitude_score, 0.0)
        self.assertTrue(scored.quality_flags.has_spectral_type)
        self.assertTrue(scored.quality_flags.has_distance_data)

    def test_display_name_priority(self) -> None:
        self.assertEqual(resolve_display_name(hyg_row(hd="1234", hip="55"), HYG_SCHEMA)[0], "HD 1234")
        self.assertEqual(resolve_display_name(hyg_row(hip="55", hr="7"), HYG_SCHEMA)[0], "HIP 55")
        self.assertEqual(resolve_display_name(hyg_row(hr="7"), HYG_SCHEMA)[0], "HR 7")
        self.assertEqual(resolve_display_name(hyg_row(gl="Gl 551"), HYG_SCHEMA)[0], "Gliese 551")
        self.assertEqual(resolve_display_name(hyg_row(), HYG_SCHEMA)[0], "")

    def test_rows_without_any_name_are_dropped(self) -> None:
        self.assertIsNone(normalize_row(hyg_row(id="7", dist="10", mag="5"), HYG_SCHEMA))

    def test_non_numeric_text_is_malformed(self) -> None:
        with self.assertRaises(RowMalformed) as ctx:
            normalize_row(hyg_row(proper="Odd", mag="bright"), HYG_SCHEMA)
        self.assertEqual(ctx.exception.column, "mag")

    def test_empty_and_non_finite_values_are_absent(self) -> None:
        self.assertIsNone(parse_optional_float("", "mag"))
        self.assertIsNone(parse_optional_float("  ", "mag"))
        self.assertIsNone(parse_optional_float("inf", "mag"))
        self.assertIsNone(parse_optional_float("nan", "mag"))
        self.assertEqual(parse_optional_float("-26.7", "mag"), -26.7)

        obj = normalize_row(hyg_row(proper="Zero", lum="0", dist="-3"), HYG_SCHEMA)
        self.assertIsNone(obj.luminosity_solar)
        self.assertIsNone(obj.distance_ly)

    def test_hyg_distance_sentinel_means_unknown(self) -> None:
        obj = normalize_row(hyg_row(proper="Far", dist="100000", mag="9.1", absmag="-15.9"), HYG_SCHEMA)
        self.assertIsNone(obj.distance_ly)
        self.assertFalse(assess_quality(obj).has_distance_data)

    def test_parallax_fallback(self) -> None:
        obj = normalize_row(generic_row(name="Near", parallax="0.5"), GENERIC_SCHEMA)
        self.assertAlmostEqual(obj.distance_ly, 2 * LY_PER_PC)
        self.assertEqual(obj.estimated_fields, ())

    def test_distance_modulus_fallback_is_estimated(self) -> None:
        obj = normalize_row(
            generic_row(name="Faint", apparent_magnitude="5", absolute_magnitude="0"),
            GENERIC_SCHEMA,
        )
        self.assertAlmostEqual(obj.distance_ly, 100 * LY_PER_PC)
        self.assertEqual(obj.estimated_fields, ("distance_ly",))
        self.assertFalse(assess_quality(obj).has_distance_data)

    def test_estimate_missing_derives_luminosity_and_temperature(self) -> None:
        row = generic_row(name="Sunlike", absolute_magnitude="4.83", spectral_type="G2V")
        plain = normalize_row(row, GENERIC_SCHEMA)
        self.assertIsNone(plain.luminosity_solar)
        self.assertIsNone(plain.temperature_k)

        estimated = normalize_row(row, GENERIC_SCHEMA, estimate_missing=True)
        self.assertAlmostEqual(estimated.luminosity_solar, 1.0)
        self.assertAlmostEqual(estimated.temperature_k, 5840.0)
        self.assertEqual(estimated.estimated_fields, ("luminosity_solar", "temperature_k"))
        flags = assess_quality(estimated)
        self.assertFalse(flags.has_luminosity_data)
        self.assertFalse(flags.has_temperature_data)

    def test_spectral_type_canonical_form(self) -> None:
        self.assertEqual(normalize_spectral_type("G2V"), "G2V")
        self.assertEqual(normalize_spectral_type("K0III"), "K0III")
        self.assertEqual(normalize_spectral_type("M1.5Ve"), "M1.5V")
        self.assertEqual(normalize_spectral_type("B8 Ia"), "B8Ia")
        self.assertIsNone(normalize_spectral_type("DA2"))
        self.assertIsNone(normalize_spectral_type(""))

    def test_generic_signal_columns(self) -> None:
        row = generic_row(name="Mars", distance_ly="0.00002")
        row.update({"in_solar_system": "true", "has_active_mission": "yes", "paper_count": "1200"})
        obj = normalize_row(row, GENERIC_SCHEMA)
        self.assertTrue(obj.signals.in_solar_system)
        self.assertTrue(obj.signals.has_active_mission)
        self.assertEqual(obj.signals.paper_count, 1200)

        row["paper_count"] = "12.5"
        with self.assertRaises(RowMalformed):
            normalize_row(row, GENERIC_SCHEMA)

    def test_reserialized_objects_normalize_to_themselves(self) -> None:
        registry = NameRegistry()
        faint = generic_row(designation="Faint 1", apparent_magnitude="12.5", absolute_magnitude="3.25")
        cases = [
            (registry.claim(normalize_row(SIRIUS, HYG_SCHEMA, estimate_missing=True)), True),
            (registry.claim(normalize_row(CANOPUS, HYG_SCHEMA)), False),
            (registry.claim(normalize_row(dict(SIRIUS, id="99"), HYG_SCHEMA)), False),
            (normalize_row(generic_row(name="Near", parallax="0.379", spectral_type="K1V", mass="0.9"), GENERIC_SCHEMA), False),
            (normalize_row(faint, GENERIC_SCHEMA), False),
            (normalize_row(faint, GENERIC_SCHEMA, estimate_missing=True), True),
            (
                AstronomicalObject(
                    name="Mars",
                    catalog="SOLAR",
                    distance_ly=0.0000158,
                    apparent_magnitude=-2.94,
                    signals=SignificanceSignals(named_by_ancients=True, wikipedia_page_views=120000, discovery_year=1610),
                ),
                False,
            ),
        ]

        self.assertEqual(cases[2][0].name, "Sirius (HYG 99)")
        for obj, estimate in cases:
            with self.subTest(name=obj.name, estimate=estimate):
                again = normalize_row(object_to_raw_row(obj), GENERIC_SCHEMA, estimate_missing=estimate)
                self.assertEqual(again, obj)

    def test_name_registry_disambiguates_case_insensitively(self) -> None:
        registry = NameRegistry()
        first = registry.claim(AstronomicalObject(name="Vega", catalog="HYG", source_id="1"))
        second = registry.claim(AstronomicalObject(name="VEGA", catalog="HYG", source_id="2"))
        third = registry.claim(AstronomicalObject(name="vega", catalog="HYG", source_id="2"))

        self.assertEqual(first.name, "Vega")
        self.assertEqual(second.name, "VEGA (HYG 2)")
        self.assertEqual(third.name, "vega (HYG 2) #2")
        self.assertEqual(registry.renamed, 2)

    def test_distances_are_finite(self) -> None:
        obj = normalize_row(generic_row(name="Tiny", parallax="1e-300"), GENERIC_SCHEMA)
        self.assertTrue(obj.distance_ly is None or math.isfinite(obj.distance_ly))


if __name__ == "__main__":
    unittest.main()
