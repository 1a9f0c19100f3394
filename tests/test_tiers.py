from __future__ import annotations

import unittest

from catalog_scorer.config import TierThresholds
from catalog_scorer.errors import InvalidScore
from catalog_scorer.models import Tier
from catalog_scorer.tiers import classify, tier_order


class TierTests(unittest.TestCase):
    def test_boundaries(self) -> None:
        self.assertEqual(classify(280.0), Tier.LEGENDARY)
        self.assertEqual(classify(279.999), Tier.ELITE)
        self.assertEqual(classify(260.0), Tier.ELITE)
        self.assertEqual(classify(259.99), Tier.PREMIUM)
        self.assertEqual(classify(240.0), Tier.PREMIUM)
        self.assertEqual(classify(200.0), Tier.EXCEPTIONAL)
        self.assertEqual(classify(199.99), Tier.STANDARD)
        self.assertEqual(classify(0), Tier.STANDARD)
        self.assertEqual(classify(400.0), Tier.LEGENDARY)

    def test_invalid_scores_raise(self) -> None:
        for value in (-1.0, -0.0001, float("nan"), float("inf")):
            with self.subTest(value=value):
                with self.assertRaises(InvalidScore):
                    classify(value)

    def test_classification_is_monotonic(self) -> None:
        previous = Tier.STANDARD
        for step in range(0, 801):
            tier = classify(step / 2)
            self.assertGreaterEqual(tier.rank, previous.rank)
            previous = tier

    def test_custom_thresholds(self) -> None:
        thresholds = TierThresholds(legendary=40.0, elite=30.0, premium=20.0, exceptional=10.0)
        self.assertEqual(classify(35.0, thresholds), Tier.ELITE)
        self.assertEqual(classify(9.0, thresholds), Tier.STANDARD)

    def test_tier_order_puts_highest_first(self) -> None:
        ordered = sorted(Tier, key=tier_order)
        self.assertEqual(ordered[0], Tier.LEGENDARY)
        self.assertEqual(ordered[-1], Tier.STANDARD)


if __name__ == "__main__":
    unittest.main()
