from __future__ import annotations

from catalog_scorer.models import AstronomicalObject, QualityFlags


def assess_quality(obj: AstronomicalObject) -> QualityFlags:
    """Which measured fields the object carries; estimates do not count."""
    return QualityFlags(
        has_proper_name=bool(obj.proper_name),
        has_spectral_type=bool(obj.spectral_type),
        has_distance_data=obj.is_measured("distance_ly"),
        has_luminosity_data=obj.is_measured("luminosity_solar"),
        has_temperature_data=obj.is_measured("temperature_k"),
    )


def is_low_confidence(flags: QualityFlags, minimum: int = 2) -> bool:
    return flags.count() < minimum
