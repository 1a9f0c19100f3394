from __future__ import annotations

import json
import math
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from catalog_scorer.errors import ConfigError

CONFIG_ENV_VAR = "CATALOG_SCORER_CONFIG"
CURVE_KINDS = ("linear", "log")


@dataclass(frozen=True)
class TierThresholds:
    """Minimum total score for each tier above STANDARD, highest first."""

    legendary: float = 280.0
    elite: float = 260.0
    premium: float = 240.0
    exceptional: float = 200.0

    def __post_init__(self) -> None:
        values = self.as_tuple()
        for value in values:
            if not isinstance(value, (int, float)) or not math.isfinite(value) or value < 0:
                raise ConfigError(f"Tier threshold must be a finite non-negative number: {value!r}")
        if not all(high > low for high, low in zip(values, values[1:])):
            raise ConfigError(f"Tier thresholds must be strictly descending: {values}")

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.legendary, self.elite, self.premium, self.exceptional)

    def as_dict(self) -> dict[str, float]:
        return {
            "legendary": self.legendary,
            "elite": self.elite,
            "premium": self.premium,
            "exceptional": self.exceptional,
        }


@dataclass(frozen=True)
class CurveSpec:
    kind: str
    low: float
    high: float
    ascending: bool = True

    def __post_init__(self) -> None:
        if self.kind not in CURVE_KINDS:
            raise ConfigError(f"Unknown curve kind {self.kind!r} (expected one of {', '.join(CURVE_KINDS)})")
        if not (math.isfinite(self.low) and math.isfinite(self.high)) or self.high <= self.low:
            raise ConfigError(f"Curve bounds must be finite with high > low: low={self.low} high={self.high}")
        if self.kind == "log" and self.low <= 0:
            raise ConfigError(f"Logarithmic curve needs a positive lower bound: {self.low}")

    def as_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "low": self.low, "high": self.high, "ascending": self.ascending}


DEFAULT_CURVES: dict[str, CurveSpec] = {
    # Closer is rarer to hold, brighter is more recognisable.
    "distance": CurveSpec("log", 1.0, 100_000.0, ascending=False),
    "magnitude": CurveSpec("linear", -1.5, 12.0, ascending=False),
    "temperature": CurveSpec("log", 2_000.0, 50_000.0),
    "luminosity": CurveSpec("log", 1e-4, 1e6),
    "mass": CurveSpec("log", 0.08, 150.0),
}


@dataclass(frozen=True)
class EngineConfig:
    thresholds: TierThresholds = field(default_factory=TierThresholds)
    min_quality_flags: int = 2
    component_max: float = 20.0
    curves: dict[str, CurveSpec] = field(default_factory=lambda: dict(DEFAULT_CURVES))
    estimate_missing: bool = False

    def __post_init__(self) -> None:
        if not 0 <= self.min_quality_flags <= 5:
            raise ConfigError(f"min_quality_flags must be between 0 and 5: {self.min_quality_flags}")
        if not math.isfinite(self.component_max) or self.component_max <= 0:
            raise ConfigError(f"component_max must be positive: {self.component_max}")
        missing = [name for name in DEFAULT_CURVES if name not in self.curves]
        if missing:
            raise ConfigError(f"Missing curve definitions: {', '.join(missing)}")

    def as_dict(self) -> dict[str, Any]:
        return {
            "tier_thresholds": self.thresholds.as_dict(),
            "min_quality_flags": self.min_quality_flags,
            "component_max": self.component_max,
            "curves": {name: spec.as_dict() for name, spec in sorted(self.curves.items())},
            "estimate_missing": self.estimate_missing,
        }


def _as_float(raw: Any, key: str) -> float:
    try:
        return float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid number for {key}: {raw!r}") from exc


def _as_bool(raw: Any, key: str) -> bool:
    if not isinstance(raw, bool):
        raise ConfigError(f"{key} must be true or false: {raw!r}")
    return raw


def _parse_thresholds(raw: Any) -> TierThresholds:
    if not isinstance(raw, dict):
        raise ConfigError("tier_thresholds must be an object")
    unknown = sorted(set(raw) - set(TierThresholds().as_dict()))
    if unknown:
        raise ConfigError(f"Unknown tier threshold keys: {', '.join(unknown)}")
    values = TierThresholds().as_dict()
    for key, value in raw.items():
        values[key] = _as_float(value, f"tier_thresholds.{key}")
    return TierThresholds(**values)


def _parse_curves(raw: Any) -> dict[str, CurveSpec]:
    if not isinstance(raw, dict):
        raise ConfigError("curves must be an object")
    curves = dict(DEFAULT_CURVES)
    for name, spec in raw.items():
        if name not in DEFAULT_CURVES:
            raise ConfigError(f"Unknown curve component: {name}")
        if not isinstance(spec, dict):
            raise ConfigError(f"Curve {name} must be an object")
        base = DEFAULT_CURVES[name]
        curves[name] = CurveSpec(
            kind=str(spec.get("kind", base.kind)),
            low=_as_float(spec.get("low", base.low), f"curves.{name}.low"),
            high=_as_float(spec.get("high", base.high), f"curves.{name}.high"),
            ascending=_as_bool(spec.get("ascending", base.ascending), f"curves.{name}.ascending"),
        )
    return curves


def config_from_mapping(payload: dict[str, Any], base: EngineConfig | None = None) -> EngineConfig:
    config = base or EngineConfig()
    known = {"tier_thresholds", "min_quality_flags", "component_max", "curves", "estimate_missing"}
    unknown = sorted(set(payload) - known)
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")

    updates: dict[str, Any] = {}
    if "tier_thresholds" in payload:
        updates["thresholds"] = _parse_thresholds(payload["tier_thresholds"])
    if "min_quality_flags" in payload:
        try:
            updates["min_quality_flags"] = int(payload["min_quality_flags"])
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid min_quality_flags: {payload['min_quality_flags']!r}") from exc
    if "component_max" in payload:
        updates["component_max"] = _as_float(payload["component_max"], "component_max")
    if "curves" in payload:
        updates["curves"] = _parse_curves(payload["curves"])
    if "estimate_missing" in payload:
        updates["estimate_missing"] = _as_bool(payload["estimate_missing"], "estimate_missing")
    return replace(config, **updates)


def resolve_config_path(explicit: Path | None) -> Path | None:
    if explicit is not None:
        return explicit
    env_value = os.getenv(CONFIG_ENV_VAR)
    if env_value and env_value.strip():
        return Path(env_value.strip())
    return None


def load_config(path: Path | None) -> EngineConfig:
    if path is None:
        return EngineConfig()
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Unable to read config file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Config file {path} is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    return config_from_mapping(payload)
