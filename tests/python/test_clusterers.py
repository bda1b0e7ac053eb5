from __future__ import annotations

import logging
import math

import pytest

from formicary.clusterers import AntGridClusterer, DirectWalkClusterer, GridPlacementClusterer
from formicary.datasets import gaussian_blobs
from formicary.sim.core.config import AntGridConfig, DirectWalkConfig, GridExtractionConfig
from formicary.sim.core.errors import SimulationInvariantViolation


@pytest.fixture
def blobs():
    features, _ = gaussian_blobs(((0.0, 0.0), (10.0, 10.0)), sigma=1.0, points_per_center=12, seed=2)
    return features


def test_unbuilt_clusterer_refuses_queries():
    clusterer = DirectWalkClusterer()
    assert clusterer.describe() == "DirectWalkClusterer: not built"
    with pytest.raises(SimulationInvariantViolation):
        clusterer.assignments
    with pytest.raises(SimulationInvariantViolation):
        clusterer.number_of_clusters()


def test_direct_walk_clusterer_answers_for_training_points(blobs):
    config = DirectWalkConfig(ant_count=3, calls_per_cycle=300, max_cycles=4)
    clusterer = DirectWalkClusterer(config).build(blobs)

    assignments = clusterer.assignments
    assert len(assignments) == 24
    assert clusterer.number_of_clusters() == max(assignments) + 1
    assert clusterer.cluster_instance(blobs[5]) == assignments[5]
    assert clusterer.cluster_of(7) == assignments[7]
    assert len(clusterer.cycle_metrics) >= 1
    assert "points: 24" in clusterer.describe()


def test_unknown_instance_is_noise_with_warning(blobs, caplog):
    config = DirectWalkConfig(ant_count=2, calls_per_cycle=100, max_cycles=1)
    clusterer = DirectWalkClusterer(config).build(blobs)
    with caplog.at_level(logging.WARNING, logger="formicary.clusterers"):
        assert clusterer.cluster_instance([123.0, -45.0]) == -1
    assert "not part of the training data" in caplog.text


def test_direct_walk_clusterer_imputes_missing_values(blobs):
    data = blobs.copy()
    data[0, 1] = math.nan
    config = DirectWalkConfig(ant_count=2, calls_per_cycle=100, max_cycles=1)
    clusterer = DirectWalkClusterer(config).build(data)
    assert len(clusterer.assignments) == 24


def test_ant_grid_clusterer_exposes_lattice(blobs):
    config = AntGridConfig(grid_width=10, grid_height=10, ant_count=4, calls_per_cycle=200, max_cycles=2)
    clusterer = AntGridClusterer(config).build(blobs)

    assert len(clusterer.placements) == 24
    assert clusterer.occupancy.shape == (10, 10)
    assert (clusterer.occupancy >= 0).sum() == 24
    assert len(clusterer.cycle_metrics) == 2
    assert clusterer.number_of_clusters() == max(clusterer.assignments) + 1
    assert clusterer.components >= clusterer.number_of_clusters()
    assert "grid: 10x10" in clusterer.describe()


def test_grid_placement_clusterer_uses_given_positions():
    dataset = [[0.0], [0.1], [10.0], [10.2]]
    placements = [(0, 0), (1, 0), (5, 5), (5, 6)]
    clusterer = GridPlacementClusterer(GridExtractionConfig()).build(dataset, placements)
    assert clusterer.assignments == [0, 0, 1, 1]
    assert clusterer.number_of_clusters() == 2
    assert clusterer.cluster_instance([10.2]) == 1
    assert clusterer.components == 2
    assert "components: 2" in clusterer.describe()


def test_grid_placement_clusterer_merges_to_requested_count():
    dataset = [[0.0], [0.1], [10.0], [10.2], [0.3], [0.4]]
    placements = [(0, 0), (1, 0), (5, 5), (5, 6), (9, 0), (9, 1)]
    clusterer = GridPlacementClusterer(GridExtractionConfig(max_cluster_count=2)).build(dataset, placements)
    labels = clusterer.assignments
    assert labels[0] == labels[1] == labels[4] == labels[5]
    assert labels[2] == labels[3] != labels[0]
