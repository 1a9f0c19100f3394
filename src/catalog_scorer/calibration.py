from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import replace

from catalog_scorer.config import TierThresholds
from catalog_scorer.errors import ConfigError
from catalog_scorer.models import ScoredObject, Tier
from catalog_scorer.stats import rank_objects
from catalog_scorer.tiers import classify

# Share of the catalog (percent) each tier should hold; STANDARD takes the rest.
DEFAULT_TIER_TARGETS = {
    Tier.LEGENDARY: 1.0,
    Tier.ELITE: 3.0,
    Tier.PREMIUM: 6.0,
    Tier.EXCEPTIONAL: 15.0,
}

_CALIBRATED_TIERS = (Tier.LEGENDARY, Tier.ELITE, Tier.PREMIUM, Tier.EXCEPTIONAL)


def _validate_targets(targets: Mapping[Tier, float]) -> dict[Tier, float]:
    resolved = dict(DEFAULT_TIER_TARGETS)
    for tier, percent in targets.items():
        if tier not in DEFAULT_TIER_TARGETS:
            raise ConfigError(f"Tier {tier.value} cannot be given a target share")
        if not math.isfinite(percent) or percent < 0:
            raise ConfigError(f"Target share for {tier.value} must be a non-negative number: {percent!r}")
        resolved[tier] = float(percent)
    if sum(resolved.values()) > 100.0:
        raise ConfigError(f"Tier target shares exceed 100%: {sum(resolved.values())}")
    return resolved


def suggest_thresholds(
    objects: Iterable[ScoredObject],
    targets: Mapping[Tier, float] | None = None,
) -> TierThresholds:
    """Thresholds that would give each tier roughly its target share.

    Tied scores at a single cut-off all land in the tier above it. When two
    cut-offs fall on the same score, the upper threshold is nudged past it
    and the ties land in the lower tier instead, so realised shares can
    drift from the targets when scores cluster.
    """
    shares = _validate_targets(targets or {})
    ranked = rank_objects(objects)
    if not ranked:
        return TierThresholds()

    total = len(ranked)
    top_score = ranked[0].total_score
    cumulative = 0.0
    candidates: list[float] = []
    for tier in _CALIBRATED_TIERS:
        cumulative += shares[tier]
        count = math.floor(total * cumulative / 100.0)
        if count == 0:
            candidates.append(math.nextafter(top_score, math.inf))
        else:
            candidates.append(ranked[count - 1].total_score)

    # Walk upward from EXCEPTIONAL so every threshold stays above the next.
    thresholds = [0.0] * len(candidates)
    floor = 0.0
    for index in range(len(candidates) - 1, -1, -1):
        value = max(candidates[index], floor)
        thresholds[index] = value
        floor = math.nextafter(value, math.inf)
    return TierThresholds(*thresholds)


def reclassify(objects: Iterable[ScoredObject], thresholds: TierThresholds) -> list[ScoredObject]:
    """Re-derive tiers under new thresholds without re-scoring."""
    return [replace(scored, badge_tier=classify(scored.total_score, thresholds)) for scored in objects]
