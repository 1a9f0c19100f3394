from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import fields, replace
from pathlib import Path
from typing import Any

from catalog_scorer.config import EngineConfig
from catalog_scorer.errors import ConfigError
from catalog_scorer.models import AstronomicalObject, ScoredObject, SignificanceSignals
from catalog_scorer.scoring import score_object

_SIGNAL_FIELDS = {item.name: item for item in fields(SignificanceSignals)}
_BOOL_FIELDS = {name for name, item in _SIGNAL_FIELDS.items() if item.type in ("bool", bool)}


def _signals_from_payload(name: str, payload: Any) -> SignificanceSignals:
    if not isinstance(payload, dict):
        raise ConfigError(f"Signals for {name!r} must be an object")
    unknown = sorted(set(payload) - set(_SIGNAL_FIELDS))
    if unknown:
        raise ConfigError(f"Unknown signals for {name!r}: {', '.join(unknown)}")

    values: dict[str, Any] = {}
    for key, value in payload.items():
        if key in _BOOL_FIELDS:
            if not isinstance(value, bool):
                raise ConfigError(f"Signal {key} for {name!r} must be true or false: {value!r}")
            values[key] = value
            continue
        if value is None:
            values[key] = None
            continue
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ConfigError(f"Signal {key} for {name!r} must be a non-negative integer: {value!r}")
        values[key] = value
    return SignificanceSignals(**values)


class SignalIndex:
    """Significance signals for famous objects, keyed by name case-insensitively."""

    def __init__(self, signals: dict[str, SignificanceSignals] | None = None) -> None:
        self._signals: dict[str, SignificanceSignals] = {}
        for name, value in (signals or {}).items():
            self._signals[name.casefold()] = value

    def __len__(self) -> int:
        return len(self._signals)

    @classmethod
    def load(cls, path: Path) -> SignalIndex:
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ConfigError(f"Unable to read signals file {path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Signals file {path} is not valid JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise ConfigError(f"Signals file {path} must contain a JSON object keyed by object name")
        return cls({str(name): _signals_from_payload(str(name), value) for name, value in payload.items()})

    def lookup(self, obj: AstronomicalObject) -> SignificanceSignals | None:
        for candidate in (obj.name, obj.proper_name, obj.designation, obj.secondary_designation):
            if candidate:
                found = self._signals.get(candidate.casefold())
                if found is not None:
                    return found
        return None

    def apply(self, obj: AstronomicalObject) -> AstronomicalObject:
        signals = self.lookup(obj)
        if signals is None or signals.is_empty():
            return obj
        return replace(obj, signals=signals)


def rescore(
    scored: ScoredObject,
    signals: SignificanceSignals | None,
    config: EngineConfig | None = None,
) -> ScoredObject:
    """Score the same object again with new significance signals."""
    if signals is not None and signals.is_empty():
        signals = None
    return score_object(replace(scored.object, signals=signals), config)


def rescore_batch(
    objects: Iterable[ScoredObject],
    index: SignalIndex,
    config: EngineConfig | None = None,
) -> list[ScoredObject]:
    return [score_object(index.apply(scored.object), config) for scored in objects]
