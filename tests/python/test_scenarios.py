from __future__ import annotations

from collections import Counter

import numpy as np
import pytest

from formicary.clusterers import AntGridClusterer, DirectWalkClusterer
from formicary.datasets import gaussian_blobs
from formicary.sim.core.config import AntGridConfig, DirectWalkConfig, GridExtractionConfig
from formicary.sim.core.grid_colony import GridColony
from formicary.sim.core.points import PointStore
from formicary.sim.systems.extraction import GridClusterExtractor


def _majority_share(assignments, labels) -> float:
    """Fraction of points that share the most common cluster of their blob."""
    agreeing = 0
    for blob in np.unique(labels):
        members = [assignments[i] for i in np.flatnonzero(labels == blob)]
        agreeing += Counter(members).most_common(1)[0][1]
    return agreeing / len(labels)


def test_direct_walk_separates_four_blobs():
    features, labels = gaussian_blobs()
    clusterer = DirectWalkClusterer(DirectWalkConfig()).build(features)

    assert clusterer.number_of_clusters() == 4
    sizes = Counter(label for label in clusterer.assignments if label >= 0)
    assert sorted(sizes) == [0, 1, 2, 3]
    assert all(85 <= size <= 115 for size in sizes.values())
    assert _majority_share(clusterer.assignments, labels) >= 0.9


@pytest.mark.slow
def test_ant_grid_sorting_consolidates_lattice_components():
    features, _ = gaussian_blobs(((0.0, 0.0), (40.0, 40.0)), sigma=1.0, points_per_center=100)
    config = AntGridConfig(extraction=GridExtractionConfig(singleton_join_radius=None))

    scattered = GridColony(config, PointStore(features))
    before = GridClusterExtractor(config.extraction, scattered.points).extract(scattered.grid.placements())

    clusterer = AntGridClusterer(config).build(features)

    # Flood fill alone leaves many small heaps; sorting must still shrink the count.
    assert clusterer.number_of_clusters() == clusterer.components
    assert 2 <= clusterer.components < before.components
    assert len(set(clusterer.placements)) == 200


@pytest.mark.slow
def test_ant_grid_merge_recovers_two_groups():
    features, labels = gaussian_blobs(((0.0, 0.0), (40.0, 40.0)), sigma=1.0, points_per_center=100)
    config = AntGridConfig(extraction=GridExtractionConfig(max_cluster_count=2))
    clusterer = AntGridClusterer(config).build(features)

    assert clusterer.components > 2
    assert clusterer.number_of_clusters() == 2
    assert _majority_share(clusterer.assignments, labels) >= 0.75
