from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum


class Tier(Enum):
    LEGENDARY = "LEGENDARY"
    ELITE = "ELITE"
    PREMIUM = "PREMIUM"
    EXCEPTIONAL = "EXCEPTIONAL"
    STANDARD = "STANDARD"

    @property
    def rank(self) -> int:
        return _TIER_RANKS[self]


_TIER_RANKS = {
    Tier.STANDARD: 0,
    Tier.EXCEPTIONAL: 1,
    Tier.PREMIUM: 2,
    Tier.ELITE: 3,
    Tier.LEGENDARY: 4,
}

# Highest first.
TIER_ORDER = (Tier.LEGENDARY, Tier.ELITE, Tier.PREMIUM, Tier.EXCEPTIONAL, Tier.STANDARD)


@dataclass(frozen=True)
class SignificanceSignals:
    """Curated or externally sourced prominence signals for famous objects."""

    named_by_ancients: bool = False
    has_active_mission: bool = False
    planned_mission: bool = False
    is_habitable: bool = False
    in_solar_system: bool = False
    has_images: bool = False
    wikipedia_page_views: int | None = None
    wikidata_sitelinks: int | None = None
    wikidata_cultural_refs: int | None = None
    paper_count: int | None = None
    recent_paper_count: int | None = None
    discovery_year: int | None = None

    def is_empty(self) -> bool:
        for item in fields(self):
            value = getattr(self, item.name)
            if value is None or value is False:
                continue
            return False
        return True


@dataclass(frozen=True)
class AstronomicalObject:
    name: str
    catalog: str
    source_id: str | None = None
    proper_name: str | None = None
    designation: str | None = None
    secondary_designation: str | None = None
    distance_ly: float | None = None
    apparent_magnitude: float | None = None
    absolute_magnitude: float | None = None
    temperature_k: float | None = None
    luminosity_solar: float | None = None
    mass_solar: float | None = None
    spectral_type: str | None = None
    constellation: str | None = None
    estimated_fields: tuple[str, ...] = ()
    signals: SignificanceSignals | None = None

    def is_measured(self, field_name: str) -> bool:
        return getattr(self, field_name) is not None and field_name not in self.estimated_fields


ASTROMETRIC_COMPONENTS = (
    "distance_score",
    "magnitude_score",
    "temperature_score",
    "luminosity_score",
    "mass_score",
)

# Component name -> upper bound.
SIGNIFICANCE_BOUNDS = {
    "cultural_significance": 60.0,
    "scientific_importance": 50.0,
    "historical_significance": 40.0,
    "visual_impact": 30.0,
    "uniqueness": 30.0,
    "accessibility": 20.0,
    "proximity": 20.0,
    "story_factor": 20.0,
    "active_relevance": 15.0,
    "future_potential": 15.0,
}


@dataclass(frozen=True)
class AstrometricScores:
    distance_score: float = 0.0
    magnitude_score: float = 0.0
    temperature_score: float = 0.0
    luminosity_score: float = 0.0
    mass_score: float = 0.0

    def values(self) -> dict[str, float]:
        return {name: getattr(self, name) for name in ASTROMETRIC_COMPONENTS}

    def total(self) -> float:
        return sum(self.values().values())


@dataclass(frozen=True)
class SignificanceScores:
    cultural_significance: float = 0.0
    scientific_importance: float = 0.0
    historical_significance: float = 0.0
    visual_impact: float = 0.0
    uniqueness: float = 0.0
    accessibility: float = 0.0
    proximity: float = 0.0
    story_factor: float = 0.0
    active_relevance: float = 0.0
    future_potential: float = 0.0

    def values(self) -> dict[str, float]:
        return {name: getattr(self, name) for name in SIGNIFICANCE_BOUNDS}

    def total(self) -> float:
        return sum(self.values().values())


@dataclass(frozen=True)
class ScoreComponents:
    astrometric: AstrometricScores = field(default_factory=AstrometricScores)
    significance: SignificanceScores = field(default_factory=SignificanceScores)

    def values(self) -> dict[str, float]:
        merged = self.astrometric.values()
        merged.update(self.significance.values())
        return merged

    def total(self) -> float:
        return self.astrometric.total() + self.significance.total()


QUALITY_FLAG_NAMES = (
    "has_proper_name",
    "has_spectral_type",
    "has_distance_data",
    "has_luminosity_data",
    "has_temperature_data",
)


@dataclass(frozen=True)
class QualityFlags:
    has_proper_name: bool = False
    has_spectral_type: bool = False
    has_distance_data: bool = False
    has_luminosity_data: bool = False
    has_temperature_data: bool = False

    def as_dict(self) -> dict[str, bool]:
        return {name: getattr(self, name) for name in QUALITY_FLAG_NAMES}

    def count(self) -> int:
        return sum(1 for value in self.as_dict().values() if value)


@dataclass(frozen=True)
class ScoredObject:
    object: AstronomicalObject
    components: ScoreComponents
    total_score: float
    badge_tier: Tier
    quality_flags: QualityFlags
    low_confidence: bool

    @property
    def name(self) -> str:
        return self.object.name
