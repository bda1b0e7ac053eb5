from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from .points import PointStore


@dataclass(frozen=True, slots=True)
class NeighborRelation:
    neighbor: int
    distance: float


@dataclass(slots=True)
class Placeholder:
    index: int
    neighbors: List[NeighborRelation] = field(default_factory=list)
    neighbors_known: bool = False
    similarity: float = 0.0
    similarity_known: bool = False

    @property
    def explored(self) -> bool:
        return self.neighbors_known and self.similarity_known


class NeighborhoodIndex:
    """Lazily built symmetric neighbor graph over a point store.

    A point's neighborhood is computed once, against the points whose own
    neighborhood is still unknown. Every relation found is told to the other
    side right away, so completed points never need to be scanned again.
    """

    def __init__(self, points: PointStore, radius: float, align: bool = False):
        self._points = points
        self._radius = radius
        self._align = align
        self._placeholders = [Placeholder(index) for index in range(len(points))]
        self._incomplete: Dict[int, None] = dict.fromkeys(range(len(points)))
        self._told: List[List[NeighborRelation]] = [[] for _ in range(len(points))]

    @property
    def radius(self) -> float:
        return self._radius

    @property
    def placeholders(self) -> List[Placeholder]:
        return self._placeholders

    def placeholder(self, index: int) -> Placeholder:
        return self._placeholders[index]

    def __len__(self) -> int:
        return len(self._placeholders)

    def incomplete_count(self) -> int:
        return len(self._incomplete)

    def discover(self, index: int) -> List[NeighborRelation]:
        placeholder = self._placeholders[index]
        if placeholder.neighbors_known:
            return placeholder.neighbors

        found: List[NeighborRelation] = []
        candidates = [candidate for candidate in self._incomplete if candidate != index]
        if self._radius > 0.0 and candidates:
            distances = self._points.distances_from(index, candidates)
            scale = float(distances.max()) if self._align else 1.0
            for candidate, distance in zip(candidates, distances):
                if distance > self._radius:
                    continue
                if self._align and scale > 0.0:
                    distance = distance / scale
                distance = float(distance)
                found.append(NeighborRelation(candidate, distance))
                self._told[candidate].append(NeighborRelation(index, distance))

        found.extend(self._told[index])
        self._told[index] = []
        found.sort(key=lambda relation: (relation.distance, relation.neighbor))

        placeholder.neighbors = found
        placeholder.neighbors_known = True
        del self._incomplete[index]
        return found

    def largest_neighborhood(self) -> int:
        return max((len(p.neighbors) for p in self._placeholders), default=0)
