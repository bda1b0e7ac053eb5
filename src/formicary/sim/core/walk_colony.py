from __future__ import annotations

import logging
from time import perf_counter
from typing import List, Optional

from .agent import WalkerAnt
from .clusters import ClusterRegistry
from .config import DirectWalkConfig
from .errors import SimulationInvariantViolation
from .neighborhood import NeighborhoodIndex
from .points import PointStore
from .rng import DeterministicRng
from ..systems import metrics as metrics_system, reduction, walker
from ..types.metrics import CycleCounters, CycleMetrics

logger = logging.getLogger(__name__)


class DirectWalkColony:
    """Density-based ants walking directly over the point set."""

    def __init__(self, config: DirectWalkConfig, points: PointStore):
        config.validate()
        self._config = config
        self._points = points
        self._rng = DeterministicRng(config.seed)
        self._bootstrap()

    def _bootstrap(self) -> None:
        self._neighborhood = NeighborhoodIndex(
            self._points, self._config.neighborhood_size, self._config.align_distances
        )
        self._registry = ClusterRegistry(len(self._points))
        self._counters = CycleCounters()
        self._metrics: List[CycleMetrics] = []
        self._cycle = 0
        self._active = True
        self._ants: List[WalkerAnt] = []
        for ant_id in range(self._config.ant_count):
            ant = WalkerAnt(id=ant_id)
            walker.walk(self, ant)
            self._ants.append(ant)

    @property
    def config(self) -> DirectWalkConfig:
        return self._config

    @property
    def rng(self) -> DeterministicRng:
        return self._rng

    @property
    def points(self) -> PointStore:
        return self._points

    @property
    def neighborhood(self) -> NeighborhoodIndex:
        return self._neighborhood

    @property
    def registry(self) -> ClusterRegistry:
        return self._registry

    @property
    def counters(self) -> CycleCounters:
        return self._counters

    @property
    def ants(self) -> List[WalkerAnt]:
        return self._ants

    @property
    def cycle(self) -> int:
        return self._cycle

    @property
    def active(self) -> bool:
        return self._active

    @property
    def metrics(self) -> List[CycleMetrics]:
        return self._metrics

    @property
    def cycle_limit_reached(self) -> bool:
        return self._cycle >= self._config.max_cycles

    def reset(self) -> None:
        self._rng.reset()
        self._bootstrap()

    def random_point(self) -> int:
        return self._rng.next_int(len(self._points))

    def run_cycle(self) -> Optional[CycleMetrics]:
        if not self._active:
            return None
        active_ants = [ant for ant in self._ants if ant.active]
        if not active_ants:
            logger.debug("All ants idle after %d cycles", self._cycle)
            self.shutdown()
            return None
        start = perf_counter()
        self._counters.clear()
        calls = self._config.calls_per_cycle
        for _ in range(calls):
            walker.call(self, active_ants[self._rng.next_int(len(active_ants))])
        self._cycle += 1
        duration_ms = (perf_counter() - start) * 1000.0
        metrics = metrics_system.create_metrics(self._cycle, calls, self._counters, duration_ms, self._stats())
        self._metrics.append(metrics)
        logger.debug(
            "Cycle %d: %d clusters, %d unassigned, %d active ants",
            metrics.cycle,
            metrics.clusters,
            metrics.unassigned,
            metrics.active_ants,
        )
        return metrics

    def run(self) -> List[CycleMetrics]:
        logger.info(
            "Direct-walk run on %d points with %d ants, up to %d cycles",
            len(self._points),
            len(self._ants),
            self._config.max_cycles,
        )
        while self._active and not self.cycle_limit_reached:
            self.run_cycle()
        self.shutdown()
        logger.info(
            "Direct-walk run finished after %d cycles with %d clusters",
            self._cycle,
            len(self._registry),
        )
        return self._metrics

    def shutdown(self) -> None:
        for ant in self._ants:
            walker.shutdown(ant)
        self._active = False

    def assignments(self, max_count: Optional[int] = None) -> List[int]:
        if self._active:
            raise SimulationInvariantViolation("the colony must be shut down before reading assignments")
        return reduction.reduce_assignments(self._registry, self._neighborhood, self._points, max_count)

    def _stats(self) -> tuple[int, int, int, int, int, int]:
        active = sum(1 for ant in self._ants if ant.active)
        carrying = sum(1 for ant in self._ants if ant.slot.carrying)
        noise = len(self._registry.noise_members)
        return (active, len(self._registry), noise, self._registry.unassigned_count(), carrying, 0)
