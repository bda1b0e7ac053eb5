from __future__ import annotations

import argparse
import csv
import json
import logging
import math
from dataclasses import replace
from pathlib import Path
from typing import Any, Optional

import numpy as np

from ..clusterers import AntGridClusterer, DirectWalkClusterer
from ..datasets import gaussian_blobs, load_csv
from ..sim.core.config import AntGridConfig, DirectWalkConfig
from ..sim.types.metrics import CycleMetrics

logger = logging.getLogger(__name__)

ENGINES = ("direct", "grid")

_HEADER = [
    "cycle",
    "calls",
    "active_ants",
    "clusters",
    "noise",
    "unassigned",
    "merges",
    "pickups",
    "drops",
    "carrying",
    "destructive",
    "cycle_ms",
]


def _format_row(metrics: CycleMetrics, cycle_ms: float) -> list[object]:
    return [
        metrics.cycle,
        metrics.calls,
        metrics.active_ants,
        metrics.clusters,
        metrics.noise,
        metrics.unassigned,
        metrics.merges,
        metrics.pickups,
        metrics.drops,
        metrics.carrying,
        metrics.destructive,
        f"{cycle_ms:.3f}",
    ]


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0}
    sorted_values = sorted(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(sum(values) / len(values)),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
    }


def _build_config(engine: str, config_path: Optional[Path], seed: Optional[int], overrides: dict[str, Any]):
    if engine == "direct":
        config = DirectWalkConfig.from_yaml(config_path) if config_path else DirectWalkConfig()
    else:
        config = AntGridConfig.from_yaml(config_path) if config_path else AntGridConfig()
    if seed is not None:
        config.seed = seed
    if overrides:
        config = replace(config, **overrides)
    return config


def run_headless(
    engine: str,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    dataset_path: Optional[Path] = None,
    config_path: Optional[Path] = None,
    summary_path: Optional[Path] = None,
    assignments_path: Optional[Path] = None,
    overrides: Optional[dict[str, Any]] = None,
) -> list[int]:
    engine = engine.lower().strip()
    if engine not in ENGINES:
        raise ValueError(f"Unknown engine: {engine}")
    config = _build_config(engine, config_path, seed, overrides or {})

    if dataset_path:
        features = load_csv(dataset_path)
    else:
        features, _ = gaussian_blobs(seed=config.seed)

    clusterer = DirectWalkClusterer(config) if engine == "direct" else AntGridClusterer(config)
    clusterer.build(features)
    assignments = clusterer.assignments

    cycle_ms_series = [
        0.0 if deterministic_log else metrics.cycle_duration_ms for metrics in clusterer.cycle_metrics
    ]
    if log_path:
        with Path(log_path).open("w", newline="") as csv_file:
            writer = csv.writer(csv_file)
            writer.writerow(_HEADER)
            for metrics, cycle_ms in zip(clusterer.cycle_metrics, cycle_ms_series):
                writer.writerow(_format_row(metrics, cycle_ms))

    if assignments_path:
        np.savetxt(Path(assignments_path), np.asarray(assignments, dtype=int), fmt="%d")

    if summary_path:
        labels, counts = np.unique(np.asarray(assignments, dtype=int), return_counts=True)
        summary = {
            "engine": engine,
            "seed": config.seed,
            "points": len(assignments),
            "cycles": len(clusterer.cycle_metrics),
            "clusters": clusterer.number_of_clusters(),
            "cluster_sizes": {str(int(label)): int(count) for label, count in zip(labels, counts)},
            "deterministic_log": deterministic_log,
            "cycle_ms": _summary_stats(cycle_ms_series),
            "description": clusterer.describe(),
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))

    logger.info("%s", clusterer.describe())
    return assignments


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless ant-colony clustering run")
    parser.add_argument("--engine", choices=ENGINES, default="direct")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--data", type=Path, default=None, help="Numeric CSV with a header row; demo blobs if omitted")
    parser.add_argument("--config", type=Path, default=None, help="YAML file with engine parameters")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write per-cycle metrics")
    parser.add_argument("--summary", type=Path, default=None, help="Optional JSON file for the run summary.")
    parser.add_argument("--assignments", type=Path, default=None, help="Text file, one cluster id per point.")
    parser.add_argument("--cycles", type=int, default=None, help="Override max_cycles.")
    parser.add_argument("--calls-per-cycle", type=int, default=None, help="Override calls_per_cycle.")
    parser.add_argument("--ants", type=int, default=None, help="Override ant_count.")
    parser.add_argument("--max-clusters", type=int, default=None, help="Override the maximum cluster count.")
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (cycle_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args()
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    overrides: dict[str, Any] = {}
    if args.cycles is not None:
        overrides["max_cycles"] = args.cycles
    if args.calls_per_cycle is not None:
        overrides["calls_per_cycle"] = args.calls_per_cycle
    if args.ants is not None:
        overrides["ant_count"] = args.ants
    if args.max_clusters is not None:
        if args.engine == "direct":
            overrides["max_cluster_count"] = args.max_clusters
        else:
            base = _build_config(args.engine, args.config, None, {})
            overrides["extraction"] = replace(base.extraction, max_cluster_count=args.max_clusters)

    run_headless(
        args.engine,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        dataset_path=args.data,
        config_path=args.config,
        summary_path=args.summary,
        assignments_path=args.assignments,
        overrides=overrides,
    )


if __name__ == "__main__":
    main()
