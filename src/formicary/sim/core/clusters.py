from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .errors import SimulationInvariantViolation

logger = logging.getLogger(__name__)

NOISE_CLUSTER_ID = -1


@dataclass(slots=True)
class Cluster:
    id: int
    start: int
    members: List[int] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.members)


class ClusterRegistry:
    """Cluster arena for the direct-walk engine.

    Membership is held as one back-reference per point: None while the point
    is unassigned, NOISE_CLUSTER_ID once it is marked as noise, otherwise the
    id of its cluster. Ids are allocated monotonically and never reused.
    """

    def __init__(self, size: int):
        self._assignment: List[Optional[int]] = [None] * size
        self._clusters: Dict[int, Cluster] = {}
        self._noise: List[int] = []
        self._next_id = 0
        self.merge_count = 0

    def __len__(self) -> int:
        return len(self._clusters)

    def clusters(self) -> List[Cluster]:
        return list(self._clusters.values())

    def get(self, cluster_id: int) -> Cluster:
        cluster = self._clusters.get(cluster_id)
        if cluster is None:
            raise SimulationInvariantViolation(f"cluster {cluster_id} does not exist")
        return cluster

    @property
    def noise_members(self) -> List[int]:
        return list(self._noise)

    def cluster_of(self, index: int) -> Optional[int]:
        return self._assignment[index]

    def is_assigned(self, index: int) -> bool:
        return self._assignment[index] is not None

    def is_noise(self, index: int) -> bool:
        return self._assignment[index] == NOISE_CLUSTER_ID

    def unassigned_count(self) -> int:
        return sum(1 for value in self._assignment if value is None)

    def create(self, start: int) -> Cluster:
        self._require_unassigned(start)
        cluster = Cluster(id=self._next_id, start=start, members=[start])
        self._next_id += 1
        self._clusters[cluster.id] = cluster
        self._assignment[start] = cluster.id
        return cluster

    def add(self, cluster_id: int, index: int) -> None:
        cluster = self.get(cluster_id)
        self._require_unassigned(index)
        cluster.members.append(index)
        self._assignment[index] = cluster_id

    def mark_noise(self, index: int) -> None:
        if self._assignment[index] == NOISE_CLUSTER_ID:
            return
        self._require_unassigned(index)
        self._noise.append(index)
        self._assignment[index] = NOISE_CLUSTER_ID

    def merge(self, source_id: int, target_id: int) -> None:
        if source_id == NOISE_CLUSTER_ID or target_id == NOISE_CLUSTER_ID:
            raise SimulationInvariantViolation("the noise cluster cannot take part in a merge")
        if source_id == target_id:
            return
        source = self.get(source_id)
        target = self.get(target_id)
        for index in list(source.members):
            target.members.append(index)
            self._assignment[index] = target_id
        del self._clusters[source_id]
        self.merge_count += 1
        logger.debug("Merged cluster %d into %d (%d members)", source_id, target_id, len(target))

    def representative(self, cluster_id: int) -> int:
        cluster = self.get(cluster_id)
        if self._assignment[cluster.start] != cluster_id:
            raise SimulationInvariantViolation(f"cluster {cluster_id} lost its representative {cluster.start}")
        return cluster.start

    def _require_unassigned(self, index: int) -> None:
        current = self._assignment[index]
        if current is not None:
            raise SimulationInvariantViolation(f"point {index} already belongs to cluster {current}")
