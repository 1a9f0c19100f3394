from __future__ import annotations

import argparse
import sys
from collections.abc import Callable, Sequence
from dataclasses import replace
from pathlib import Path
from typing import Any

from catalog_scorer.calibration import DEFAULT_TIER_TARGETS, reclassify, suggest_thresholds
from catalog_scorer.config import TierThresholds, load_config, resolve_config_path
from catalog_scorer.enrichment import SignalIndex
from catalog_scorer.errors import CatalogError, ConfigError, error_summary
from catalog_scorer.export import TABLE_SUFFIXES, load_results, to_frame, write_results, write_statistics, write_table
from catalog_scorer.models import Tier
from catalog_scorer.pipeline import PipelineConfig, ScoringPipeline
from catalog_scorer.schema import SCHEMA_CHOICES, schema_by_name
from catalog_scorer.sources import HYG_DATABASE_URL, resolve_catalog_input
from catalog_scorer.stats import build_statistics, get_tier_distribution


def make_logger(verbosity: int) -> Callable[[int, str], None]:
    def _log(level: int, message: str) -> None:
        if verbosity >= level:
            print(message, flush=True)

    return _log


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="catalog-scorer",
        description="Score and tier astronomical catalog objects.",
    )
    parser.add_argument(
        "--input",
        default=HYG_DATABASE_URL,
        help="Catalog path or http(s) URL, optionally gzip-compressed (default: HYG v4.2).",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Stop after this many parsed rows.",
    )
    parser.add_argument(
        "--output",
        default="staging/hyg-scored.json",
        help="Path for the scored objects artifact.",
    )
    parser.add_argument(
        "--stats-output",
        default=None,
        help="Optional path for the statistics JSON.",
    )
    parser.add_argument(
        "--table-output",
        default=None,
        help="Optional flat table export (.csv or .parquet).",
    )
    parser.add_argument(
        "--schema",
        choices=SCHEMA_CHOICES,
        default="auto",
        help="Catalog column layout (default: detect from header).",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Engine config JSON (falls back to $CATALOG_SCORER_CONFIG).",
    )
    parser.add_argument(
        "--signals",
        default=None,
        help="JSON file of significance signals keyed by object name.",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Worker threads for scoring.",
    )
    parser.add_argument(
        "--top",
        type=int,
        default=10,
        help="How many top objects to list in the summary.",
    )
    parser.add_argument(
        "--cache-dir",
        default="cache",
        help="Directory for downloaded catalogs.",
    )
    parser.add_argument(
        "--refresh",
        action="store_true",
        help="Download the catalog again even if cached.",
    )
    parser.add_argument(
        "--estimate-missing",
        action="store_true",
        help="Derive missing luminosity and temperature (recorded as estimated).",
    )
    parser.add_argument(
        "--verbosity",
        type=int,
        default=1,
        help="0 quiet, 1 milestones, 2 stage detail, 3 per-row diagnostics.",
    )
    return parser


def _format_summary(stats: dict[str, Any]) -> str:
    lines = [f"Scored objects: {stats['total_objects']}"]
    run = stats.get("run") or {}
    if run:
        lines.append(
            f"Rows read: {run.get('rows_read', 0)}  malformed: {run.get('rows_malformed', 0)}  "
            f"dropped: {run.get('rows_dropped', 0)}  renamed: {run.get('names_disambiguated', 0)}"
        )
        if run.get("stopped_by_limit"):
            lines.append("Stopped early: row limit reached")

    lines.append("")
    lines.append("Tier distribution:")
    for tier, entry in stats["tier_distribution"].items():
        lines.append(f"  {tier:<12} {entry['count']:>8}  {entry['percentage']:6.2f}%")

    score_stats = stats["score_stats"]
    if score_stats["count"]:
        lines.append("")
        lines.append(
            "Scores: "
            f"min={score_stats['min']:.2f} max={score_stats['max']:.2f} mean={score_stats['mean']:.2f} "
            f"median={score_stats['median']:.2f} std={score_stats['std']:.2f}"
        )

    lines.append("")
    lines.append("Data quality:")
    for flag, entry in stats["flag_coverage"].items():
        lines.append(f"  {flag:<22} {entry['count']:>8}  {entry['percentage']:6.2f}%")

    if stats["top_objects"]:
        lines.append("")
        lines.append("Top objects:")
        for position, entry in enumerate(stats["top_objects"], start=1):
            lines.append(f"  {position:>3}. {entry['name']:<32} {entry['total_score']:8.2f}  {entry['badge_tier']}")
    return "\n".join(lines)


def run_scoring(args: argparse.Namespace, log: Callable[[int, str], None]) -> dict[str, Any]:
    engine = load_config(resolve_config_path(Path(args.config) if args.config else None))
    if args.estimate_missing:
        engine = replace(engine, estimate_missing=True)

    signals = SignalIndex.load(Path(args.signals)) if args.signals else None
    if signals is not None:
        log(2, f"[startup] loaded signals for {len(signals)} objects")

    source = resolve_catalog_input(args.input, cache_dir=Path(args.cache_dir), refresh=args.refresh, log=log)
    config = PipelineConfig(
        limit=args.limit if args.limit and args.limit > 0 else None,
        schema=schema_by_name(args.schema),
        workers=args.workers,
        signals=signals,
        engine=engine,
    )
    result = ScoringPipeline(config, log=log).run(source)

    stats = build_statistics(result.objects, result.counters.as_dict(), top_n=args.top)
    stats["schema"] = result.schema_name
    stats["thresholds"] = engine.thresholds.as_dict()

    # Nothing is written until the whole batch has been scored and aggregated.
    output_path = write_results(result.objects, Path(args.output))
    log(1, f"[done] wrote {len(result.objects)} objects to {output_path}")
    if args.stats_output:
        log(1, f"[done] wrote statistics to {write_statistics(stats, Path(args.stats_output))}")
    if args.table_output:
        log(1, f"[done] wrote table to {write_table(to_frame(result.objects), Path(args.table_output))}")
    return stats


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.workers < 1:
        parser.error("--workers must be at least 1")
    if args.table_output and Path(args.table_output).suffix.lower() not in TABLE_SUFFIXES:
        parser.error(f"--table-output must end with one of: {', '.join(TABLE_SUFFIXES)}")

    log = make_logger(args.verbosity)
    try:
        stats = run_scoring(args, log)
    except (CatalogError, OSError) as exc:
        print(f"[error] {error_summary(exc)}", file=sys.stderr, flush=True)
        return 1

    print(_format_summary(stats), flush=True)
    return 0


def build_recalibrate_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="catalog-scorer-recalibrate",
        description="Re-derive tiers for a scored artifact without re-scoring.",
    )
    parser.add_argument("--results", required=True, help="Scored objects artifact to read.")
    parser.add_argument(
        "--targets",
        default=None,
        help="Tier shares in percent, e.g. LEGENDARY=1,ELITE=3,PREMIUM=6,EXCEPTIONAL=15.",
    )
    parser.add_argument(
        "--thresholds",
        default=None,
        help="Explicit thresholds LEGENDARY,ELITE,PREMIUM,EXCEPTIONAL (overrides --targets).",
    )
    parser.add_argument("--output", default=None, help="Write the reclassified artifact here.")
    parser.add_argument("--verbosity", type=int, default=1)
    return parser


def _parse_targets(text: str) -> dict[Tier, float]:
    targets: dict[Tier, float] = {}
    for part in text.split(","):
        if not part.strip():
            continue
        name, sep, value = part.partition("=")
        if not sep:
            raise ConfigError(f"Target must look like TIER=PERCENT: {part!r}")
        try:
            tier = Tier(name.strip().upper())
            targets[tier] = float(value)
        except ValueError as exc:
            raise ConfigError(f"Invalid tier target {part!r}") from exc
    return targets


def _parse_thresholds(text: str) -> TierThresholds:
    parts = [part.strip() for part in text.split(",") if part.strip()]
    if len(parts) != 4:
        raise ConfigError(f"Expected four thresholds, got {len(parts)}: {text!r}")
    try:
        return TierThresholds(*(float(part) for part in parts))
    except ValueError as exc:
        raise ConfigError(f"Invalid thresholds {text!r}") from exc


def _format_distribution(title: str, distribution: dict[str, dict[str, float]]) -> str:
    lines = [title]
    for tier, entry in distribution.items():
        lines.append(f"  {tier:<12} {entry['count']:>8}  {entry['percentage']:6.2f}%")
    return "\n".join(lines)


def recalibrate_main(argv: Sequence[str] | None = None) -> int:
    args = build_recalibrate_parser().parse_args(argv)
    log = make_logger(args.verbosity)
    try:
        objects = load_results(Path(args.results))
        log(1, f"[startup] loaded {len(objects)} scored objects from {args.results}")
        if args.thresholds:
            thresholds = _parse_thresholds(args.thresholds)
        else:
            targets = _parse_targets(args.targets) if args.targets else dict(DEFAULT_TIER_TARGETS)
            thresholds = suggest_thresholds(objects, targets)
        updated = reclassify(objects, thresholds)
        if args.output:
            log(1, f"[done] wrote reclassified artifact to {write_results(updated, Path(args.output))}")
    except (CatalogError, OSError) as exc:
        print(f"[error] {error_summary(exc)}", file=sys.stderr, flush=True)
        return 1

    print(_format_distribution("Current distribution:", get_tier_distribution(objects)))
    print("")
    print("Thresholds: " + ", ".join(f"{name}={value:.4f}" for name, value in thresholds.as_dict().items()))
    print("")
    print(_format_distribution("Recalibrated distribution:", get_tier_distribution(updated)), flush=True)
    return 0
