from __future__ import annotations

import math
import tracemalloc

import numpy as np
import pytest
from pytest import approx

from formicary.sim.core.errors import ConfigurationError
from formicary.sim.core.points import EuclideanDistance, PointStore


def test_default_metric_normalizes_by_training_range():
    store = PointStore([[0.0, 0.0], [10.0, 2.0], [5.0, 1.0]])
    assert store.distance(0, 1) == approx(math.sqrt(2.0))
    assert store.distance(0, 2) == approx(math.sqrt(0.5))


def test_constant_attribute_contributes_nothing():
    store = PointStore([[1.0, 7.0], [3.0, 7.0]])
    assert store.distance(0, 1) == approx(1.0)


def test_unnormalized_metric_is_plain_euclidean():
    store = PointStore([[0.0, 0.0], [3.0, 4.0]], metric=EuclideanDistance(normalize=False))
    assert store.distance(0, 1) == approx(5.0)


def test_custom_metric_is_used_for_both_directions():
    calls = []

    def manhattan(a, b):
        calls.append(1)
        return float(np.abs(a - b).sum())

    store = PointStore([[0.0, 0.0], [1.0, 2.0], [2.0, 2.0]], metric=manhattan)
    assert store.distance(0, 1) == approx(3.0)
    assert store.distance(1, 0) == approx(3.0)
    assert len(calls) == 6
    assert list(store.distances_from(2, [0, 1])) == approx([4.0, 1.0])


def test_missing_values_require_imputation():
    with pytest.raises(ConfigurationError):
        PointStore([[1.0, float("nan")], [2.0, 3.0]])


def test_missing_values_replaced_by_attribute_mean():
    store = PointStore([[1.0, float("nan")], [3.0, 4.0], [5.0, 6.0]], replace_missing=True)
    assert store.point(0)[1] == approx(5.0)
    assert store.index_of([1.0, float("nan")]) == 0


def test_features_are_read_only():
    store = PointStore([[1.0], [2.0]])
    with pytest.raises(ValueError):
        store.features[0, 0] = 5.0


def test_index_of_requires_exact_match():
    store = PointStore([[1.0, 2.0], [3.0, 4.0]])
    assert store.index_of([3.0, 4.0]) == 1
    assert store.index_of([3.0, 4.0001]) == -1
    assert store.index_of([3.0]) == -1


def test_empty_dataset_is_rejected():
    with pytest.raises(ConfigurationError):
        PointStore(np.empty((0, 2)))


def test_centroid_is_attribute_mean():
    store = PointStore([[0.0, 0.0], [2.0, 4.0], [4.0, 2.0]])
    assert list(store.centroid([1, 2])) == approx([3.0, 3.0])


def test_distance_matrix_memory_stays_near_result_size():
    features = np.random.default_rng(0).random((1000, 40))
    tracemalloc.start()
    try:
        store = PointStore(features)
        _, peak = tracemalloc.get_traced_memory()
    finally:
        tracemalloc.stop()
    # The 1000 x 1000 float matrix alone is 8 MB.
    assert peak < 40 * 1024 * 1024
    assert store.distance(3, 7) == approx(store.metric(features[3], features[7]))
