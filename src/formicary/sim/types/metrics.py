from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class CycleCounters:
    pickups: int = 0
    drops: int = 0
    merges: int = 0

    def clear(self) -> None:
        self.pickups = 0
        self.drops = 0
        self.merges = 0


@dataclass(slots=True)
class CycleMetrics:
    cycle: int
    calls: int
    active_ants: int
    clusters: int
    noise: int
    unassigned: int
    merges: int
    pickups: int
    drops: int
    carrying: int
    destructive: int
    cycle_duration_ms: float = 0.0
