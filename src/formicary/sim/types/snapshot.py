from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .metrics import CycleMetrics


@dataclass(slots=True)
class LatticeSnapshot:
    cycle: int
    metrics: Optional[CycleMetrics]
    grid: "SnapshotGrid"
    ants: List[Dict[str, Any]]
    metadata: "SnapshotMetadata"


@dataclass(slots=True)
class SnapshotGrid:
    width: int
    height: int
    # Row-major occupant ids, -1 for empty cells.
    cells: List[List[int]]


@dataclass(slots=True)
class SnapshotMetadata:
    seed: int
    point_count: int
    ant_count: int
    max_cycles: int
    calls_per_cycle: int
