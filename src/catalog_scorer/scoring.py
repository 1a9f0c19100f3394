from __future__ import annotations

import math
from dataclasses import dataclass

from catalog_scorer.config import CurveSpec, EngineConfig
from catalog_scorer.models import (
    SIGNIFICANCE_BOUNDS,
    AstrometricScores,
    AstronomicalObject,
    ScoreComponents,
    ScoredObject,
    SignificanceScores,
    SignificanceSignals,
)
from catalog_scorer.quality import assess_quality, is_low_confidence
from catalog_scorer.tiers import classify

# Discovery ages at or beyond this many years earn the full historical bonus.
DISCOVERY_AGE_SPAN_YEARS = 400.0
REFERENCE_YEAR = 2025


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class LinearCurve:
    low: float
    high: float
    ascending: bool = True

    def __call__(self, value: float | None) -> float:
        if value is None or not math.isfinite(value):
            return 0.0
        fraction = _clamp((value - self.low) / (self.high - self.low))
        return fraction if self.ascending else 1.0 - fraction


@dataclass(frozen=True)
class LogCurve:
    """Linear in ``log10(value)``; non-positive values score nothing."""

    low: float
    high: float
    ascending: bool = True

    def __call__(self, value: float | None) -> float:
        if value is None or not math.isfinite(value) or value <= 0:
            return 0.0
        span = math.log10(self.high) - math.log10(self.low)
        fraction = _clamp((math.log10(value) - math.log10(self.low)) / span)
        return fraction if self.ascending else 1.0 - fraction


def build_curve(spec: CurveSpec) -> LinearCurve | LogCurve:
    if spec.kind == "log":
        return LogCurve(spec.low, spec.high, spec.ascending)
    return LinearCurve(spec.low, spec.high, spec.ascending)


_PAGE_VIEWS = LogCurve(1.0, 100_000.0)
_SITELINKS = LogCurve(1.0, 300.0)
_PAPERS = LogCurve(1.0, 100_000.0)
_RECENT_PAPERS = LogCurve(1.0, 10_000.0)
_CULTURAL_REFS = LogCurve(1.0, 100.0)
_DISCOVERY_AGE = LinearCurve(0.0, DISCOVERY_AGE_SPAN_YEARS)


def _count(value: int | None) -> float | None:
    return None if value is None else float(value)


def score_astrometric(obj: AstronomicalObject, config: EngineConfig) -> AstrometricScores:
    curves = {name: build_curve(spec) for name, spec in config.curves.items()}
    top = config.component_max
    return AstrometricScores(
        distance_score=top * curves["distance"](obj.distance_ly),
        magnitude_score=top * curves["magnitude"](obj.apparent_magnitude),
        temperature_score=top * curves["temperature"](obj.temperature_k),
        luminosity_score=top * curves["luminosity"](obj.luminosity_solar),
        mass_score=top * curves["mass"](obj.mass_solar),
    )


def score_significance(
    obj: AstronomicalObject,
    config: EngineConfig,
    *,
    reference_year: int = REFERENCE_YEAR,
) -> SignificanceScores:
    signals = obj.signals
    if signals is None or signals.is_empty():
        return SignificanceScores()

    brightness = build_curve(config.curves["magnitude"])(obj.apparent_magnitude)
    nearness = build_curve(config.curves["distance"])(obj.distance_ly)
    raw = _raw_significance(signals, brightness, nearness, reference_year)
    bounded = {name: _clamp(raw[name], 0.0, bound) for name, bound in SIGNIFICANCE_BOUNDS.items()}
    return SignificanceScores(**bounded)


def _raw_significance(
    signals: SignificanceSignals,
    brightness: float,
    nearness: float,
    reference_year: int,
) -> dict[str, float]:
    ancient = 1.0 if signals.named_by_ancients else 0.0
    active = 1.0 if signals.has_active_mission else 0.0
    planned = 1.0 if signals.planned_mission else 0.0
    habitable = 1.0 if signals.is_habitable else 0.0
    solar = 1.0 if signals.in_solar_system else 0.0
    images = 1.0 if signals.has_images else 0.0

    sitelinks = _SITELINKS(_count(signals.wikidata_sitelinks))
    recent = _RECENT_PAPERS(_count(signals.recent_paper_count))
    age = None
    if signals.discovery_year is not None:
        age = float(reference_year - signals.discovery_year)

    return {
        "cultural_significance": 25 * _PAGE_VIEWS(_count(signals.wikipedia_page_views)) + 20 * sitelinks + 15 * ancient,
        "scientific_importance": 30 * _PAPERS(_count(signals.paper_count)) + 10 * recent + 10 * active,
        "historical_significance": 25 * ancient + 15 * _DISCOVERY_AGE(age),
        "visual_impact": 15 * images + 15 * brightness,
        "uniqueness": 15 * _CULTURAL_REFS(_count(signals.wikidata_cultural_refs)) + 15 * habitable,
        "accessibility": 10 * solar + 10 * brightness,
        "proximity": 20.0 if solar else 20 * nearness,
        "story_factor": 10 * ancient + 10 * sitelinks,
        "active_relevance": 10 * active + 5 * recent,
        "future_potential": 8 * planned + 7 * habitable,
    }


def score_components(obj: AstronomicalObject, config: EngineConfig) -> ScoreComponents:
    return ScoreComponents(
        astrometric=score_astrometric(obj, config),
        significance=score_significance(obj, config),
    )


def score_object(obj: AstronomicalObject, config: EngineConfig | None = None) -> ScoredObject:
    """Score, flag and classify one normalized object."""
    config = config or EngineConfig()
    components = score_components(obj, config)
    total = components.total()
    flags = assess_quality(obj)
    return ScoredObject(
        object=obj,
        components=components,
        total_score=total,
        badge_tier=classify(total, config.thresholds),
        quality_flags=flags,
        low_confidence=is_low_confidence(flags, config.min_quality_flags),
    )
