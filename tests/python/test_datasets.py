from __future__ import annotations

import math

import numpy as np

from formicary.datasets import DEMO_CENTERS, gaussian_blobs, load_csv


def test_gaussian_blobs_shape_labels_and_seed():
    features, labels = gaussian_blobs(points_per_center=20, seed=7)
    again, _ = gaussian_blobs(points_per_center=20, seed=7)
    other, _ = gaussian_blobs(points_per_center=20, seed=8)

    assert features.shape == (80, 2)
    assert labels.tolist() == [blob for blob in range(len(DEMO_CENTERS)) for _ in range(20)]
    assert np.array_equal(features, again)
    assert not np.array_equal(features, other)


def test_gaussian_blobs_stay_near_their_centers():
    features, labels = gaussian_blobs(((0.0, 0.0), (50.0, -50.0)), sigma=1.0, points_per_center=200)
    for blob, center in enumerate(((0.0, 0.0), (50.0, -50.0))):
        mean = features[labels == blob].mean(axis=0)
        assert np.allclose(mean, center, atol=0.5)
    assert np.all(np.isfinite(features))


def test_load_csv_keeps_missing_fields_as_nan(tmp_path):
    path = tmp_path / "table.csv"
    path.write_text("a,b\n1,2\n3,\n")
    table = load_csv(path)
    assert table.shape == (2, 2)
    assert table[0].tolist() == [1.0, 2.0]
    assert math.isnan(table[1, 1])


def test_load_csv_single_row_is_two_dimensional(tmp_path):
    path = tmp_path / "row.csv"
    path.write_text("4,5,6\n")
    assert load_csv(path, skip_header=False).shape == (1, 3)
