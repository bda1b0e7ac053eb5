from __future__ import annotations

from typing import Tuple

from ..types.metrics import CycleCounters, CycleMetrics


def create_metrics(
    cycle: int,
    calls: int,
    counters: CycleCounters,
    duration_ms: float,
    stats: Tuple[int, int, int, int, int, int],
) -> CycleMetrics:
    active_ants, clusters, noise, unassigned, carrying, destructive = stats
    return CycleMetrics(
        cycle=cycle,
        calls=calls,
        active_ants=active_ants,
        clusters=clusters,
        noise=noise,
        unassigned=unassigned,
        merges=counters.merges,
        pickups=counters.pickups,
        drops=counters.drops,
        carrying=carrying,
        destructive=destructive,
        cycle_duration_ms=duration_ms,
    )
