from __future__ import annotations

from typing import Iterable, Sequence

from ..core.config import DropFunction
from ..core.neighborhood import NeighborRelation

DIRECT_WALK_SCALE = 10.0


def direct_walk_similarity(relations: Sequence[NeighborRelation], alpha: float) -> float:
    if not relations:
        return 0.0
    total = 0.0
    for relation in relations:
        total += 1.0 - relation.distance / alpha
    return max(0.0, DIRECT_WALK_SCALE * total / len(relations))


def lattice_similarity(
    distances: Iterable[float],
    alpha: float,
    speed: int,
    max_speed: int,
    view_radius: int,
) -> float:
    # Faster ants judge more loosely.
    divisor = alpha + alpha * (speed - 1) / max_speed
    total = 0.0
    for distance in distances:
        total += 1.0 - distance / divisor
    edge = 2 * view_radius + 1
    return max(0.0, total / (edge * edge))


def pick_up_probability(similarity: float, kp: float) -> float:
    if kp + similarity <= 0.0:
        return 1.0
    ratio = kp / (kp + similarity)
    return ratio * ratio


def drop_probability(similarity: float, kd: float, function: DropFunction) -> float:
    if function is DropFunction.SYMMETRIC:
        if kd + similarity <= 0.0:
            return 0.0
        ratio = similarity / (kd + similarity)
        return ratio * ratio
    if similarity < kd:
        return 2.0 * similarity
    return 1.0
