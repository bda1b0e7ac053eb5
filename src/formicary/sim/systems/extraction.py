from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..core.config import GridExtractionConfig
from ..core.errors import ConfigurationError, SimulationInvariantViolation
from ..core.points import PointStore

logger = logging.getLogger(__name__)

Cell = Tuple[int, int]

_ORTHOGONAL = ((1, 0), (-1, 0), (0, 1), (0, -1))
_DIAGONAL = ((1, 1), (1, -1), (-1, 1), (-1, -1))


@dataclass(slots=True)
class ExtractionResult:
    assignments: List[int]
    cluster_count: int
    components: int
    singletons_joined: int = 0
    merges: int = 0


class GridClusterExtractor:
    """Turns final lattice placements into a flat cluster assignment.

    Occupied cells are grouped by flood fill, isolated singletons are folded
    into a surrounding cluster, then clusters are merged by nearest centroid
    until at most ``max_cluster_count`` remain.
    """

    def __init__(self, config: GridExtractionConfig, points: PointStore):
        config.validate()
        self._config = config
        self._points = points

    def extract(self, placements: Sequence[Cell]) -> ExtractionResult:
        cell_map = self._index_cells(placements)
        clusters = self.flood_fill(placements, cell_map)
        components = len(clusters)

        joined = 0
        if self._config.singleton_join_radius is not None:
            joined = self.join_singletons(clusters, placements, cell_map, self._config.singleton_join_radius)
            clusters = [members for members in clusters if members]

        merges = 0
        if self._config.max_cluster_count is not None:
            merges = self.merge_nearest(clusters, self._config.max_cluster_count)

        assignments = [-1] * len(placements)
        for cluster_id, members in enumerate(clusters):
            for index in members:
                assignments[index] = cluster_id
        if sum(len(members) for members in clusters) != len(placements):
            raise SimulationInvariantViolation("grid extraction lost or duplicated points")
        logger.debug(
            "Extracted %d clusters from %d components (%d singletons joined, %d merges)",
            len(clusters),
            components,
            joined,
            merges,
        )
        return ExtractionResult(
            assignments=assignments,
            cluster_count=len(clusters),
            components=components,
            singletons_joined=joined,
            merges=merges,
        )

    def _index_cells(self, placements: Sequence[Cell]) -> Dict[Cell, int]:
        if len(placements) != len(self._points):
            raise ConfigurationError(f"expected {len(self._points)} placements, got {len(placements)}")
        cell_map: Dict[Cell, int] = {}
        for index, cell in enumerate(placements):
            x, y = int(cell[0]), int(cell[1])
            if x < 0 or y < 0:
                raise ConfigurationError(f"point {index} has negative lattice coordinates ({x}, {y})")
            if (x, y) in cell_map:
                raise SimulationInvariantViolation(
                    f"points {cell_map[(x, y)]} and {index} share the cell ({x}, {y})"
                )
            cell_map[(x, y)] = index
        return cell_map

    def flood_fill(self, placements: Sequence[Cell], cell_map: Dict[Cell, int]) -> List[List[int]]:
        offsets = _ORTHOGONAL + _DIAGONAL if self._config.diagonal_neighbors else _ORTHOGONAL
        labels = [-1] * len(placements)
        clusters: List[List[int]] = []
        for start in range(len(placements)):
            if labels[start] != -1:
                continue
            cluster_id = len(clusters)
            members: List[int] = []
            labels[start] = cluster_id
            worklist = deque([start])
            while worklist:
                current = worklist.popleft()
                members.append(current)
                x, y = placements[current]
                for dx, dy in offsets:
                    neighbor = cell_map.get((x + dx, y + dy))
                    if neighbor is not None and labels[neighbor] == -1:
                        labels[neighbor] = cluster_id
                        worklist.append(neighbor)
            clusters.append(members)
        return clusters

    @staticmethod
    def join_singletons(
        clusters: List[List[int]],
        placements: Sequence[Cell],
        cell_map: Dict[Cell, int],
        radius: int,
    ) -> int:
        """Absorb each singleton whose whole window belongs to one larger cluster.

        Absorbed singletons leave an empty member list behind; callers drop them.
        """
        owner: Dict[int, int] = {}
        for cluster_id, members in enumerate(clusters):
            for index in members:
                owner[index] = cluster_id
        joined = 0
        for cluster_id, members in enumerate(clusters):
            if len(members) != 1:
                continue
            index = members[0]
            x, y = placements[index]
            seen = set()
            for cx in range(x - radius, x + radius + 1):
                for cy in range(y - radius, y + radius + 1):
                    other = cell_map.get((cx, cy))
                    if other is not None and other != index:
                        seen.add(owner[other])
            if len(seen) != 1:
                continue
            target = seen.pop()
            if target == cluster_id or len(clusters[target]) < 2:
                continue
            clusters[target].append(index)
            owner[index] = target
            clusters[cluster_id] = []
            joined += 1
        return joined

    def merge_nearest(self, clusters: List[List[int]], max_count: int) -> int:
        merges = 0
        if len(clusters) <= max_count:
            return merges
        centroids: List[Optional[np.ndarray]] = [self._points.centroid(members) for members in clusters]
        distances = self._upper_distances(centroids)
        while len(clusters) > max_count:
            # argmin over the row-major upper triangle keeps the first pair on ties.
            flat = int(np.argmin(distances))
            first, second = divmod(flat, distances.shape[1])
            if len(clusters[second]) > len(clusters[first]):
                keep, gone = second, first
            else:
                keep, gone = first, second
            clusters[keep].extend(clusters[gone])
            centroids[keep] = None
            del clusters[gone]
            del centroids[gone]
            distances = np.delete(np.delete(distances, gone, axis=0), gone, axis=1)
            keep = keep if keep < gone else keep - 1
            centroids[keep] = self._points.centroid(clusters[keep])
            self._refresh_row(distances, centroids, keep)
            merges += 1
        return merges

    def _upper_distances(self, centroids: List[Optional[np.ndarray]]) -> np.ndarray:
        matrix = self._points.distance_matrix(np.vstack(centroids))
        size = len(centroids)
        mask = np.triu(np.ones((size, size), dtype=bool), k=1)
        return np.where(mask, matrix, np.inf)

    def _refresh_row(self, distances: np.ndarray, centroids: List[Optional[np.ndarray]], row: int) -> None:
        metric = self._points.metric
        for other in range(len(centroids)):
            if other == row:
                continue
            first, second = (row, other) if row < other else (other, row)
            distances[first, second] = metric(centroids[first], centroids[second])
