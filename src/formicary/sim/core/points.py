from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

import numpy as np
from scipy.spatial.distance import cdist

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DistanceFunction = Callable[[np.ndarray, np.ndarray], float]

# Above this many points distances are computed on demand instead of up front.
_MATRIX_LIMIT = 4096


class EuclideanDistance:
    """Euclidean distance over attributes scaled to [0, 1] by their training range.

    Attributes with zero range contribute nothing. Values outside the training
    range scale past the unit interval, the same way the fitted range is applied
    to unseen points.
    """

    def __init__(self, normalize: bool = True):
        self.normalize = normalize
        self._low: Optional[np.ndarray] = None
        self._scale: Optional[np.ndarray] = None

    @property
    def fitted(self) -> bool:
        return self._scale is not None or not self.normalize

    def fit(self, features: np.ndarray) -> "EuclideanDistance":
        if not self.normalize:
            return self
        features = np.asarray(features, dtype=float)
        if features.size == 0:
            self._low = np.zeros(features.shape[1] if features.ndim == 2 else 0)
            self._scale = np.zeros_like(self._low)
            return self
        low = features.min(axis=0)
        span = features.max(axis=0) - low
        self._low = low
        self._scale = np.divide(1.0, span, out=np.zeros_like(span), where=span > 0)
        return self

    def scale(self, features: np.ndarray) -> np.ndarray:
        features = np.asarray(features, dtype=float)
        if not self.normalize:
            return features
        if self._scale is None:
            raise ConfigurationError("EuclideanDistance must be fitted before use when normalize=True")
        return (features - self._low) * self._scale

    def __call__(self, a: np.ndarray, b: np.ndarray) -> float:
        diff = self.scale(a) - self.scale(b)
        return float(np.sqrt(np.dot(diff, diff)))

    def pairwise(self, left: np.ndarray, right: Optional[np.ndarray] = None) -> np.ndarray:
        left_scaled = self.scale(left)
        right_scaled = left_scaled if right is None else self.scale(right)
        return cdist(left_scaled, right_scaled)


class PointStore:
    """Read-only indexed dataset plus the distance function every engine shares.

    The reciprocal-relation reuse in neighbor discovery relies on the metric
    being symmetric; custom metrics are evaluated in both directions here but
    the engines still read a single value per pair.
    """

    def __init__(
        self,
        features: Sequence[Sequence[float]] | np.ndarray,
        metric: Optional[DistanceFunction] = None,
        replace_missing: bool = False,
    ):
        data = np.array(features, dtype=float)
        if data.ndim == 1:
            data = data.reshape(-1, 1)
        if data.ndim != 2:
            raise ConfigurationError(f"features must be a 2-D table, got shape {data.shape}")
        if data.shape[0] == 0:
            raise ConfigurationError("at least one point is required")

        self._replace_missing = replace_missing
        self._means = self._column_means(data)
        missing = np.isnan(data)
        if missing.any():
            if not replace_missing:
                raise ConfigurationError(
                    f"{int(missing.sum())} missing values found; enable replace_missing to impute them"
                )
            data = np.where(missing, self._means, data)
            logger.debug("Replaced %d missing values with attribute means", int(missing.sum()))
        data.setflags(write=False)
        self._features = data

        if metric is None:
            metric = EuclideanDistance()
        if isinstance(metric, EuclideanDistance) and not metric.fitted:
            metric.fit(data)
        self._metric = metric
        self._matrix: Optional[np.ndarray] = None
        if len(data) <= _MATRIX_LIMIT:
            self._matrix = self.distance_matrix(data)
            self._matrix.setflags(write=False)

    @staticmethod
    def _column_means(data: np.ndarray) -> np.ndarray:
        means = np.zeros(data.shape[1])
        for column in range(data.shape[1]):
            values = data[:, column]
            present = values[~np.isnan(values)]
            if present.size:
                means[column] = present.mean()
        return means

    @property
    def features(self) -> np.ndarray:
        return self._features

    @property
    def metric(self) -> DistanceFunction:
        return self._metric

    @property
    def dimensions(self) -> int:
        return self._features.shape[1]

    def __len__(self) -> int:
        return self._features.shape[0]

    def point(self, index: int) -> np.ndarray:
        return self._features[index]

    def distance(self, first: int, second: int) -> float:
        if self._matrix is not None:
            return float(self._matrix[first, second])
        return float(self._metric(self._features[first], self._features[second]))

    def distances_from(self, index: int, others: Sequence[int]) -> np.ndarray:
        if self._matrix is not None:
            return self._matrix[index, list(others)]
        origin = self._features[index]
        return np.array([self._metric(origin, self._features[other]) for other in others], dtype=float)

    def distance_matrix(self, vectors: np.ndarray) -> np.ndarray:
        vectors = np.asarray(vectors, dtype=float)
        if isinstance(self._metric, EuclideanDistance):
            return self._metric.pairwise(vectors)
        size = len(vectors)
        matrix = np.zeros((size, size))
        for row in range(size):
            for col in range(size):
                if row != col:
                    matrix[row, col] = self._metric(vectors[row], vectors[col])
        return matrix

    def centroid(self, indices: Sequence[int]) -> np.ndarray:
        return self._features[list(indices)].mean(axis=0)

    def prepare(self, vector: Sequence[float]) -> Optional[np.ndarray]:
        """Apply the training imputation to a lookup vector; None when it cannot be matched."""
        values = np.array(vector, dtype=float).reshape(-1)
        if values.shape[0] != self.dimensions:
            return None
        missing = np.isnan(values)
        if missing.any():
            if not self._replace_missing:
                return None
            values = np.where(missing, self._means, values)
        return values

    def index_of(self, vector: Sequence[float]) -> int:
        values = self.prepare(vector)
        if values is None:
            return -1
        matches = np.flatnonzero(np.all(self._features == values, axis=1))
        if matches.size == 0:
            return -1
        return int(matches[0])
