from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import numpy as np

from .sim.core.clusters import NOISE_CLUSTER_ID
from .sim.core.config import AntGridConfig, DirectWalkConfig, GridExtractionConfig
from .sim.core.errors import SimulationInvariantViolation
from .sim.core.grid_colony import GridColony
from .sim.core.points import DistanceFunction, PointStore
from .sim.core.walk_colony import DirectWalkColony
from .sim.systems.extraction import GridClusterExtractor
from .sim.types.metrics import CycleMetrics

logger = logging.getLogger(__name__)


class _HostClusterer:
    """Shared host-facing surface: build once, then query assignments."""

    def __init__(self, metric: Optional[DistanceFunction] = None):
        self._metric = metric
        self._points: Optional[PointStore] = None
        self._assignments: List[int] = []

    @property
    def assignments(self) -> List[int]:
        self._require_built()
        return list(self._assignments)

    def cluster_of(self, index: int) -> int:
        self._require_built()
        return self._assignments[index]

    def cluster_instance(self, vector: Sequence[float]) -> int:
        self._require_built()
        index = self._points.index_of(vector)
        if index < 0:
            logger.warning("Point %s was not part of the training data; reporting it as noise", list(vector))
            return NOISE_CLUSTER_ID
        return self._assignments[index]

    def number_of_clusters(self) -> int:
        self._require_built()
        return max(self._assignments, default=NOISE_CLUSTER_ID) + 1

    def _require_built(self) -> None:
        if self._points is None:
            raise SimulationInvariantViolation(f"{type(self).__name__}.build() has not run yet")


class DirectWalkClusterer(_HostClusterer):
    def __init__(self, config: Optional[DirectWalkConfig] = None, metric: Optional[DistanceFunction] = None):
        super().__init__(metric)
        self.config = config or DirectWalkConfig()
        self._cycle_metrics: List[CycleMetrics] = []
        self._cycles = 0
        self._cycle_limit_reached = False
        self._largest_neighborhood = 0
        self._unclustered = 0

    @property
    def cycle_metrics(self) -> List[CycleMetrics]:
        return self._cycle_metrics

    def build(self, dataset: Sequence[Sequence[float]] | np.ndarray) -> "DirectWalkClusterer":
        points = PointStore(dataset, self._metric, replace_missing=self.config.replace_missing)
        colony = DirectWalkColony(self.config, points)
        self._cycle_metrics = colony.run()
        self._assignments = colony.assignments(self.config.max_cluster_count)
        self._points = points
        self._cycles = colony.cycle
        self._cycle_limit_reached = colony.cycle_limit_reached
        self._largest_neighborhood = colony.neighborhood.largest_neighborhood()
        self._unclustered = sum(1 for label in self._assignments if label == NOISE_CLUSTER_ID)
        return self

    def describe(self) -> str:
        if self._points is None:
            return "DirectWalkClusterer: not built"
        lines = [
            "DirectWalkClusterer",
            f"  points: {len(self._points)}",
            f"  clusters: {self.number_of_clusters()}",
            f"  unclustered or noise: {self._unclustered}",
            f"  cycles: {self._cycles}" + (" (cycle limit reached)" if self._cycle_limit_reached else ""),
            f"  largest neighborhood: {self._largest_neighborhood}",
        ]
        return "\n".join(lines)


class AntGridClusterer(_HostClusterer):
    def __init__(self, config: Optional[AntGridConfig] = None, metric: Optional[DistanceFunction] = None):
        super().__init__(metric)
        self.config = config or AntGridConfig()
        self._cycle_metrics: List[CycleMetrics] = []
        self._placements: List[tuple[int, int]] = []
        self._occupancy: Optional[np.ndarray] = None
        self._components = 0

    @property
    def cycle_metrics(self) -> List[CycleMetrics]:
        return self._cycle_metrics

    @property
    def placements(self) -> List[tuple[int, int]]:
        self._require_built()
        return list(self._placements)

    @property
    def occupancy(self) -> np.ndarray:
        self._require_built()
        return self._occupancy

    @property
    def components(self) -> int:
        """Connected lattice components before singleton joins and merges."""
        self._require_built()
        return self._components

    def build(self, dataset: Sequence[Sequence[float]] | np.ndarray) -> "AntGridClusterer":
        points = PointStore(dataset, self._metric, replace_missing=self.config.replace_missing)
        colony = GridColony(self.config, points)
        result = colony.run()
        self._cycle_metrics = colony.metrics
        self._assignments = result.assignments
        self._components = result.components
        self._placements = colony.grid.placements()
        self._occupancy = colony.grid.occupancy()
        self._points = points
        return self

    def describe(self) -> str:
        if self._points is None:
            return "AntGridClusterer: not built"
        config = self.config
        lines = [
            "AntGridClusterer",
            f"  points: {len(self._points)}",
            f"  grid: {config.grid_width}x{config.grid_height}, {config.ant_count} ants, {config.max_cycles} cycles",
            f"  components on grid: {self._components}",
            f"  clusters: {self.number_of_clusters()}",
        ]
        return "\n".join(lines)


class GridPlacementClusterer(_HostClusterer):
    """Cluster points from lattice positions computed elsewhere."""

    def __init__(self, config: Optional[GridExtractionConfig] = None, metric: Optional[DistanceFunction] = None):
        super().__init__(metric)
        self.config = config or GridExtractionConfig()
        self._components = 0

    @property
    def components(self) -> int:
        self._require_built()
        return self._components

    def build(
        self,
        dataset: Sequence[Sequence[float]] | np.ndarray,
        placements: Sequence[tuple[int, int]],
        replace_missing: bool = False,
    ) -> "GridPlacementClusterer":
        points = PointStore(dataset, self._metric, replace_missing=replace_missing)
        result = GridClusterExtractor(self.config, points).extract(placements)
        self._assignments = result.assignments
        self._components = result.components
        self._points = points
        return self

    def describe(self) -> str:
        if self._points is None:
            return "GridPlacementClusterer: not built"
        return (
            f"GridPlacementClusterer\n  points: {len(self._points)}\n"
            f"  components: {self._components}\n  clusters: {self.number_of_clusters()}"
        )
