from __future__ import annotations

import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from catalog_scorer.config import EngineConfig
from catalog_scorer.enrichment import SignalIndex
from catalog_scorer.errors import RowMalformed
from catalog_scorer.models import AstronomicalObject, ScoredObject
from catalog_scorer.normalization import NameRegistry, normalize_row
from catalog_scorer.parser import CatalogReader
from catalog_scorer.schema import CatalogSchema
from catalog_scorer.scoring import score_object
from catalog_scorer.stats import rank_objects


def _quiet(_level: int, _message: str) -> None:
    return None


@dataclass
class PipelineConfig:
    limit: int | None = None
    schema: CatalogSchema | None = None
    workers: int = 1
    chunk_size: int = 2000
    progress_step: float = 0.05
    signals: SignalIndex | None = None
    engine: EngineConfig = field(default_factory=EngineConfig)
    cancel_event: threading.Event | None = None


@dataclass
class RunCounters:
    rows_read: int = 0
    rows_malformed: int = 0
    rows_dropped: int = 0
    objects_scored: int = 0
    names_disambiguated: int = 0
    signals_applied: int = 0
    stopped_by_limit: bool = False
    cancelled: bool = False

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class PipelineResult:
    objects: list[ScoredObject]
    counters: RunCounters
    schema_name: str
    source_path: Path


class _ProgressTracker:
    def __init__(self, step: float, log: Callable[[int, str], None]) -> None:
        self.step = step if step > 0 else 1.0
        self.next_mark = self.step
        self.log = log

    def update(self, fraction: float, counters: RunCounters) -> None:
        if fraction < self.next_mark:
            return
        while self.next_mark <= fraction:
            self.next_mark += self.step
        self.log(
            1,
            f"[progress] {min(fraction, 1.0) * 100:.0f}% rows={counters.rows_read} "
            f"malformed={counters.rows_malformed} dropped={counters.rows_dropped}",
        )


class ScoringPipeline:
    """Parse, normalize, score and rank one catalog source."""

    def __init__(self, config: PipelineConfig | None = None, log: Callable[[int, str], None] | None = None) -> None:
        self.config = config or PipelineConfig()
        self.log = log or _quiet

    def run(self, path: Path) -> PipelineResult:
        config = self.config
        counters = RunCounters()
        reader = CatalogReader(path, config.schema)
        self.log(
            1,
            f"[startup] reading {path} schema={reader.schema.name} compressed={reader.compressed} "
            f"limit={config.limit} workers={config.workers}",
        )

        with reader:
            objects = self._normalize_rows(reader, counters)
        counters.rows_read = reader.rows_read
        counters.rows_malformed += reader.rows_malformed

        self.log(2, f"[score] scoring {len(objects)} objects")
        scored = self._score(objects)
        counters.objects_scored = len(scored)
        ranked = rank_objects(scored)

        self.log(
            1,
            f"[done] scored={counters.objects_scored} rows={counters.rows_read} "
            f"malformed={counters.rows_malformed} dropped={counters.rows_dropped} "
            f"renamed={counters.names_disambiguated} stopped_by_limit={counters.stopped_by_limit} "
            f"cancelled={counters.cancelled}",
        )
        return PipelineResult(objects=ranked, counters=counters, schema_name=reader.schema.name, source_path=path)

    def _normalize_rows(self, reader: CatalogReader, counters: RunCounters) -> list[AstronomicalObject]:
        config = self.config
        registry = NameRegistry()
        progress = _ProgressTracker(config.progress_step, self.log)
        objects: list[AstronomicalObject] = []

        for row in reader.iter_rows():
            counters.rows_read = reader.rows_read
            try:
                obj = normalize_row(row, reader.schema, estimate_missing=config.engine.estimate_missing)
            except RowMalformed as exc:
                counters.rows_malformed += 1
                self.log(3, f"[row] skipped malformed row {reader.rows_read}: {exc}")
                obj = None
            else:
                if obj is None:
                    counters.rows_dropped += 1
                    self.log(3, f"[row] dropped row {reader.rows_read}: no name or designation")

            if obj is not None:
                if config.signals is not None:
                    enriched = config.signals.apply(obj)
                    if enriched is not obj:
                        counters.signals_applied += 1
                    obj = enriched
                objects.append(registry.claim(obj))

            if config.limit is not None and config.limit > 0:
                progress.update(reader.rows_read / config.limit, counters)
                if reader.rows_read >= config.limit:
                    counters.stopped_by_limit = True
                    break
            else:
                progress.update(reader.progress_fraction(), counters)

            if config.cancel_event is not None and config.cancel_event.is_set():
                counters.cancelled = True
                self.log(1, f"[cancel] stopping after {reader.rows_read} rows")
                break

        counters.names_disambiguated = registry.renamed
        return objects

    def _score_chunk(self, chunk: list[AstronomicalObject]) -> list[ScoredObject]:
        return [score_object(obj, self.config.engine) for obj in chunk]

    def _score(self, objects: list[AstronomicalObject]) -> list[ScoredObject]:
        workers = max(1, self.config.workers)
        if workers == 1 or len(objects) <= self.config.chunk_size:
            return self._score_chunk(objects)

        size = max(1, self.config.chunk_size)
        chunks = [objects[start : start + size] for start in range(0, len(objects), size)]
        scored: list[ScoredObject] = []
        with ThreadPoolExecutor(max_workers=workers) as executor:
            for chunk_result in executor.map(self._score_chunk, chunks):
                scored.extend(chunk_result)
        return scored
