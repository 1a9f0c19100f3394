from __future__ import annotations

import math

from catalog_scorer.config import TierThresholds
from catalog_scorer.errors import InvalidScore
from catalog_scorer.models import TIER_ORDER, Tier


def classify(total_score: float, thresholds: TierThresholds | None = None) -> Tier:
    if not isinstance(total_score, (int, float)) or not math.isfinite(total_score) or total_score < 0:
        raise InvalidScore(f"Score must be a finite non-negative number: {total_score!r}")
    thresholds = thresholds or TierThresholds()
    for tier, minimum in zip(TIER_ORDER, thresholds.as_tuple()):
        if total_score >= minimum:
            return tier
    return Tier.STANDARD


def tier_order(tier: Tier) -> int:
    """Sort key placing the highest tier first."""
    return TIER_ORDER.index(tier)
