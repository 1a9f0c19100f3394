from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Iterable
from dataclasses import asdict, fields
from pathlib import Path
from typing import Any

import pandas as pd

from catalog_scorer.errors import CatalogError, ConfigError
from catalog_scorer.models import (
    AstrometricScores,
    AstronomicalObject,
    QualityFlags,
    ScoreComponents,
    ScoredObject,
    SignificanceScores,
    SignificanceSignals,
    Tier,
)
from catalog_scorer.stats import rank_objects

RESULTS_FORMAT = "catalog-scorer/v1"
TABLE_SUFFIXES = (".csv", ".parquet")

_OBJECT_FIELDS = [item.name for item in fields(AstronomicalObject) if item.name not in ("estimated_fields", "signals")]


def scored_to_record(scored: ScoredObject) -> dict[str, Any]:
    obj = scored.object
    record: dict[str, Any] = {name: getattr(obj, name) for name in _OBJECT_FIELDS}
    record["estimated_fields"] = list(obj.estimated_fields)
    record["signals"] = asdict(obj.signals) if obj.signals is not None else None
    record["components"] = {
        "astrometric": scored.components.astrometric.values(),
        "significance": scored.components.significance.values(),
    }
    record["total_score"] = scored.total_score
    record["badge_tier"] = scored.badge_tier.value
    record["quality_flags"] = scored.quality_flags.as_dict()
    record["low_confidence"] = scored.low_confidence
    return record


def record_to_scored(record: dict[str, Any]) -> ScoredObject:
    try:
        signals = record.get("signals")
        obj = AstronomicalObject(
            **{name: record.get(name) for name in _OBJECT_FIELDS},
            estimated_fields=tuple(record.get("estimated_fields") or ()),
            signals=SignificanceSignals(**signals) if signals else None,
        )
        components = ScoreComponents(
            astrometric=AstrometricScores(**record["components"]["astrometric"]),
            significance=SignificanceScores(**record["components"]["significance"]),
        )
        return ScoredObject(
            object=obj,
            components=components,
            total_score=float(record["total_score"]),
            badge_tier=Tier(record["badge_tier"]),
            quality_flags=QualityFlags(**record["quality_flags"]),
            low_confidence=bool(record["low_confidence"]),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise CatalogError(f"Malformed scored object record {record.get('name')!r}: {exc}") from exc


def _atomic_write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    handle = tempfile.NamedTemporaryFile(
        "w", encoding="utf-8", dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
    )
    try:
        with handle:
            handle.write(text)
        os.replace(handle.name, path)
    except BaseException:
        Path(handle.name).unlink(missing_ok=True)
        raise


def write_results(objects: Iterable[ScoredObject], path: Path) -> Path:
    """Write the ranked artifact; identical input gives byte-identical files."""
    payload = {
        "format": RESULTS_FORMAT,
        "objects": [scored_to_record(scored) for scored in rank_objects(objects)],
    }
    _atomic_write_text(path, json.dumps(payload, indent=2, ensure_ascii=False) + "\n")
    return path


def load_results(path: Path) -> list[ScoredObject]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise CatalogError(f"Unable to read results file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise CatalogError(f"Results file {path} is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict) or payload.get("format") != RESULTS_FORMAT:
        raise CatalogError(f"Results file {path} is not a {RESULTS_FORMAT} artifact")
    return [record_to_scored(record) for record in payload.get("objects", [])]


def write_statistics(stats: dict[str, Any], path: Path) -> Path:
    _atomic_write_text(path, json.dumps(stats, indent=2, ensure_ascii=False) + "\n")
    return path


def to_frame(objects: Iterable[ScoredObject]) -> pd.DataFrame:
    """One flat row per object, in rank order."""
    rows: list[dict[str, Any]] = []
    for scored in rank_objects(objects):
        obj = scored.object
        row: dict[str, Any] = {name: getattr(obj, name) for name in _OBJECT_FIELDS}
        row["estimated_fields"] = ";".join(obj.estimated_fields)
        row.update(scored.components.values())
        row["total_score"] = scored.total_score
        row["badge_tier"] = scored.badge_tier.value
        row.update(scored.quality_flags.as_dict())
        row["low_confidence"] = scored.low_confidence
        rows.append(row)

    columns = [*_OBJECT_FIELDS, "estimated_fields", *ScoreComponents().values(), "total_score", "badge_tier"]
    columns += [*QualityFlags().as_dict(), "low_confidence"]
    return pd.DataFrame(rows, columns=columns)


def write_table(frame: pd.DataFrame, path: Path) -> Path:
    suffix = path.suffix.lower()
    if suffix not in TABLE_SUFFIXES:
        raise ConfigError(f"Unsupported table format {path.suffix!r} (expected one of {', '.join(TABLE_SUFFIXES)})")
    path.parent.mkdir(parents=True, exist_ok=True)
    if suffix == ".parquet":
        frame.to_parquet(path, index=False)
    else:
        frame.to_csv(path, index=False)
    return path
