from __future__ import annotations

import logging
from time import perf_counter
from typing import List, Optional

from .agent import DropMemory, GridAnt
from .config import AntGridConfig
from .points import PointStore
from .rng import DeterministicRng
from .spatial_grid import SpatialGrid
from ..systems import foraging, metrics as metrics_system
from ..systems.extraction import ExtractionResult, GridClusterExtractor
from ..types.metrics import CycleCounters, CycleMetrics
from ..types.snapshot import LatticeSnapshot, SnapshotGrid, SnapshotMetadata

logger = logging.getLogger(__name__)


class GridColony:
    """Lumer/Faieta ants sorting points on a bounded lattice."""

    def __init__(self, config: AntGridConfig, points: PointStore):
        config.validate(len(points))
        self._config = config
        self._points = points
        self._rng = DeterministicRng(config.seed)
        self._extractor = GridClusterExtractor(config.extraction, points)
        self._bootstrap()

    def _bootstrap(self) -> None:
        config = self._config
        self._grid = SpatialGrid(config.grid_width, config.grid_height, len(self._points))
        self._counters = CycleCounters()
        self._metrics: List[CycleMetrics] = []
        self._cycle = 0
        self._ants_shut_down = False
        for index in range(len(self._points)):
            x, y = self._grid.random_free_cell(self._rng)
            self._grid.drop(index, x, y)
        self._ants = self._spawn_ants()

    def _spawn_ants(self) -> List[GridAnt]:
        config = self._config
        group_size = config.ant_count // config.max_speed
        speed = 1
        next_speed = 1
        ants: List[GridAnt] = []
        for ant_id in range(config.ant_count):
            # Ants may share a cell.
            x = self._rng.next_int(config.grid_width)
            y = self._rng.next_int(config.grid_height)
            memory = DropMemory(config.drop_memory_size) if config.drop_memory_size else None
            ants.append(
                GridAnt(
                    id=ant_id,
                    x=x,
                    y=y,
                    speed=next_speed,
                    view_radius=config.view_radius,
                    drop_range=config.drop_range,
                    memory=memory,
                )
            )
            if (ant_id + 1) % group_size == 0:
                speed += 1
                next_speed = speed
            if speed > config.max_speed and config.max_speed > 1:
                # Leftover ants beyond the even split get a random speed below the top class.
                next_speed = 1 + self._rng.next_int(config.max_speed - 1)
        return ants

    @property
    def config(self) -> AntGridConfig:
        return self._config

    @property
    def rng(self) -> DeterministicRng:
        return self._rng

    @property
    def points(self) -> PointStore:
        return self._points

    @property
    def grid(self) -> SpatialGrid:
        return self._grid

    @property
    def counters(self) -> CycleCounters:
        return self._counters

    @property
    def ants(self) -> List[GridAnt]:
        return self._ants

    @property
    def cycle(self) -> int:
        return self._cycle

    @property
    def metrics(self) -> List[CycleMetrics]:
        return self._metrics

    @property
    def finished(self) -> bool:
        return self._cycle >= self._config.max_cycles

    def reset(self) -> None:
        self._rng.reset()
        self._bootstrap()

    def run_cycle(self) -> Optional[CycleMetrics]:
        if self.finished:
            return None
        start = perf_counter()
        self._counters.clear()
        self._cycle += 1
        calls = self._config.calls_per_cycle
        for _ in range(calls):
            foraging.call(self, self._ants[self._rng.next_int(len(self._ants))], self._cycle)
        duration_ms = (perf_counter() - start) * 1000.0
        metrics = metrics_system.create_metrics(self._cycle, calls, self._counters, duration_ms, self._stats())
        self._metrics.append(metrics)
        logger.debug(
            "Cycle %d: %d pickups, %d drops, %d ants carrying",
            metrics.cycle,
            metrics.pickups,
            metrics.drops,
            metrics.carrying,
        )
        return metrics

    def run(self) -> ExtractionResult:
        config = self._config
        logger.info(
            "Grid run on %d points, %dx%d lattice, %d ants, %d cycles",
            len(self._points),
            config.grid_width,
            config.grid_height,
            len(self._ants),
            config.max_cycles,
        )
        while not self.finished:
            self.run_cycle()
        self.shutdown_ants()
        result = self.extract()
        logger.info(
            "Grid run finished: %d components reduced to %d clusters",
            result.components,
            result.cluster_count,
        )
        return result

    def shutdown_ants(self) -> None:
        for ant in self._ants:
            foraging.shutdown(self, ant)
        self._ants_shut_down = True

    def extract(self) -> ExtractionResult:
        if not self._ants_shut_down:
            self.shutdown_ants()
        return self._extractor.extract(self._grid.placements())

    def snapshot(self) -> LatticeSnapshot:
        config = self._config
        occupancy = self._grid.occupancy()
        ants = [
            {
                "id": ant.id,
                "x": ant.x,
                "y": ant.y,
                "speed": ant.speed,
                "carrying": ant.slot.item if ant.slot.carrying else None,
                "destructive": ant.destructive,
            }
            for ant in self._ants
        ]
        return LatticeSnapshot(
            cycle=self._cycle,
            metrics=self._metrics[-1] if self._metrics else None,
            grid=SnapshotGrid(width=config.grid_width, height=config.grid_height, cells=occupancy.tolist()),
            ants=ants,
            metadata=SnapshotMetadata(
                seed=config.seed,
                point_count=len(self._points),
                ant_count=len(self._ants),
                max_cycles=config.max_cycles,
                calls_per_cycle=config.calls_per_cycle,
            ),
        )

    def _stats(self) -> tuple[int, int, int, int, int, int]:
        carrying = sum(1 for ant in self._ants if ant.slot.carrying)
        destructive = sum(1 for ant in self._ants if ant.destructive)
        return (len(self._ants), 0, 0, carrying, carrying, destructive)
