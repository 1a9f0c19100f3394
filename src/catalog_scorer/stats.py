from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

import numpy as np

from catalog_scorer.models import QUALITY_FLAG_NAMES, TIER_ORDER, ScoredObject

PERCENTILES = (10, 25, 50, 75, 90, 95, 99)


def rank_key(scored: ScoredObject) -> tuple[float, str, str]:
    """Highest score first, ties by name case-insensitively, then exactly."""
    return (-scored.total_score, scored.name.casefold(), scored.name)


def rank_objects(objects: Iterable[ScoredObject]) -> list[ScoredObject]:
    return sorted(objects, key=rank_key)


def _percent(count: int, total: int) -> float:
    if total == 0:
        return 0.0
    return round(100.0 * count / total, 2)


def get_tier_distribution(objects: Sequence[ScoredObject]) -> dict[str, dict[str, float]]:
    total = len(objects)
    counts = {tier: 0 for tier in TIER_ORDER}
    for scored in objects:
        counts[scored.badge_tier] += 1
    return {tier.value: {"count": counts[tier], "percentage": _percent(counts[tier], total)} for tier in TIER_ORDER}


def _summary(values: np.ndarray) -> dict[str, Any]:
    if values.size == 0:
        return {"count": 0, "min": None, "max": None, "mean": None, "median": None, "std": None}
    return {
        "count": int(values.size),
        "min": float(values.min()),
        "max": float(values.max()),
        "mean": float(values.mean()),
        "median": float(np.median(values)),
        "std": float(values.std()),
    }


def get_score_stats(objects: Sequence[ScoredObject]) -> dict[str, Any]:
    scores = np.array([scored.total_score for scored in objects], dtype=float)
    stats = _summary(scores)
    if scores.size:
        stats["percentiles"] = {f"p{q}": float(np.percentile(scores, q)) for q in PERCENTILES}
    else:
        stats["percentiles"] = {f"p{q}": None for q in PERCENTILES}
    return stats


def get_flag_coverage(objects: Sequence[ScoredObject]) -> dict[str, Any]:
    total = len(objects)
    coverage: dict[str, Any] = {}
    for name in QUALITY_FLAG_NAMES:
        count = sum(1 for scored in objects if getattr(scored.quality_flags, name))
        coverage[name] = {"count": count, "percentage": _percent(count, total)}
    low = sum(1 for scored in objects if scored.low_confidence)
    coverage["low_confidence"] = {"count": low, "percentage": _percent(low, total)}
    return coverage


def get_component_stats(objects: Sequence[ScoredObject]) -> dict[str, dict[str, float | None]]:
    if not objects:
        return {}
    names = list(objects[0].components.values())
    matrix = np.array([list(scored.components.values().values()) for scored in objects], dtype=float)
    result: dict[str, dict[str, float | None]] = {}
    for index, name in enumerate(names):
        column = matrix[:, index]
        result[name] = {
            "mean": float(column.mean()),
            "max": float(column.max()),
            "nonzero_percentage": _percent(int(np.count_nonzero(column)), len(objects)),
        }
    return result


def get_tier_score_ranges(objects: Sequence[ScoredObject]) -> dict[str, dict[str, Any]]:
    ranges: dict[str, dict[str, Any]] = {}
    for tier in TIER_ORDER:
        scores = np.array([scored.total_score for scored in objects if scored.badge_tier is tier], dtype=float)
        summary = _summary(scores)
        ranges[tier.value] = {key: summary[key] for key in ("count", "min", "max", "mean")}
    return ranges


def top_objects(objects: Iterable[ScoredObject], n: int = 10) -> list[ScoredObject]:
    if n <= 0:
        return []
    return rank_objects(objects)[:n]


def build_statistics(
    objects: Sequence[ScoredObject],
    counters: dict[str, Any] | None = None,
    top_n: int = 10,
) -> dict[str, Any]:
    return {
        "total_objects": len(objects),
        "run": dict(counters or {}),
        "tier_distribution": get_tier_distribution(objects),
        "score_stats": get_score_stats(objects),
        "flag_coverage": get_flag_coverage(objects),
        "component_stats": get_component_stats(objects),
        "tier_score_ranges": get_tier_score_ranges(objects),
        "top_objects": [
            {"name": scored.name, "total_score": scored.total_score, "badge_tier": scored.badge_tier.value}
            for scored in top_objects(objects, top_n)
        ],
    }
