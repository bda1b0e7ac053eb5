from __future__ import annotations

from typing import Iterable, List, Optional

from ..core.clusters import NOISE_CLUSTER_ID, ClusterRegistry
from ..core.neighborhood import NeighborhoodIndex
from ..core.points import PointStore


def leading_clusters(registry: ClusterRegistry, count: int) -> List[int]:
    """Ids of the ``count`` largest clusters; equal sizes keep creation order."""
    ranked = sorted(registry.clusters(), key=lambda cluster: -len(cluster))
    return [cluster.id for cluster in ranked[:count]]


def relabel(
    index: int,
    registry: ClusterRegistry,
    neighborhood: NeighborhoodIndex,
    points: PointStore,
    leading: List[int],
) -> int:
    cluster_id = registry.cluster_of(index)
    if cluster_id is None or cluster_id == NOISE_CLUSTER_ID:
        return NOISE_CLUSTER_ID
    if cluster_id in leading:
        return cluster_id
    for relation in neighborhood.placeholder(index).neighbors:
        neighbor_cluster = registry.cluster_of(relation.neighbor)
        if neighbor_cluster is not None and neighbor_cluster in leading:
            return neighbor_cluster
    return min(leading, key=lambda lead: points.distance(index, registry.representative(lead)))


def compact_ids(labels: Iterable[int]) -> List[int]:
    mapping: dict[int, int] = {}
    compacted: List[int] = []
    for label in labels:
        if label == NOISE_CLUSTER_ID:
            compacted.append(NOISE_CLUSTER_ID)
            continue
        if label not in mapping:
            mapping[label] = len(mapping)
        compacted.append(mapping[label])
    return compacted


def reduce_assignments(
    registry: ClusterRegistry,
    neighborhood: NeighborhoodIndex,
    points: PointStore,
    max_count: Optional[int] = None,
) -> List[int]:
    size = len(neighborhood)
    if max_count is None or len(registry) <= max_count:
        labels = []
        for index in range(size):
            cluster_id = registry.cluster_of(index)
            labels.append(NOISE_CLUSTER_ID if cluster_id is None else cluster_id)
        return compact_ids(labels)
    leading = leading_clusters(registry, max_count)
    return compact_ids(relabel(index, registry, neighborhood, points, leading) for index in range(size))
