from __future__ import annotations

from pathlib import Path
from typing import Sequence, Tuple

import numpy as np

DEMO_CENTERS: Tuple[Tuple[float, float], ...] = ((0.0, 0.0), (0.0, 8.0), (8.0, 0.0), (8.0, 8.0))


def gaussian_blobs(
    centers: Sequence[Tuple[float, float]] = DEMO_CENTERS,
    sigma: float = 2.5,
    points_per_center: int = 100,
    seed: int = 1,
) -> Tuple[np.ndarray, np.ndarray]:
    """2-D blobs around each center, returned as (features, blob labels).

    The radial term uses a base-10 logarithm, which makes the blobs tighter
    than a textbook Box-Muller draw with the same sigma.
    """
    generator = np.random.default_rng(seed)
    features = np.empty((len(centers) * points_per_center, 2))
    labels = np.repeat(np.arange(len(centers)), points_per_center)
    for blob, (cx, cy) in enumerate(centers):
        rows = slice(blob * points_per_center, (blob + 1) * points_per_center)
        for column, center in ((0, cx), (1, cy)):
            # 1 - u keeps the logarithm argument in (0, 1].
            u1 = 1.0 - generator.random(points_per_center)
            u2 = generator.random(points_per_center)
            features[rows, column] = sigma * np.sqrt(-2.0 * np.log10(u1)) * np.sin(2.0 * np.pi * u2) + center
    return features, labels


def load_csv(path: Path, skip_header: bool = True) -> np.ndarray:
    """Numeric CSV table; empty or non-numeric fields become NaN."""
    return np.genfromtxt(Path(path), delimiter=",", skip_header=1 if skip_header else 0, dtype=float, ndmin=2)
