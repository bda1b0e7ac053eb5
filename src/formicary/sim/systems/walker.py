from __future__ import annotations

from typing import Optional, TYPE_CHECKING

from ..core.agent import WalkerAnt
from ..core.clusters import NOISE_CLUSTER_ID
from .similarity import direct_walk_similarity

if TYPE_CHECKING:
    from ..core.walk_colony import DirectWalkColony


def call(colony: DirectWalkColony, ant: WalkerAnt) -> None:
    if not ant.active:
        ant.slot.clear()
        return
    try:
        work(colony, ant)
        walk(colony, ant)
    except Exception:
        ant.slot.clear()
        raise


def explore(colony: DirectWalkColony, index: int) -> None:
    placeholder = colony.neighborhood.placeholder(index)
    if not placeholder.neighbors_known:
        colony.neighborhood.discover(index)
    if not placeholder.similarity_known:
        placeholder.similarity = direct_walk_similarity(placeholder.neighbors, colony.config.alpha)
        placeholder.similarity_known = True


def explore_target(colony: DirectWalkColony, index: int) -> Optional[int]:
    """Point that must be explored before ``index`` can be clustered, if any."""
    neighborhood = colony.neighborhood
    placeholder = neighborhood.placeholder(index)
    if not placeholder.explored:
        return index
    for relation in placeholder.neighbors:
        if not neighborhood.placeholder(relation.neighbor).explored:
            return relation.neighbor
    return None


def work(colony: DirectWalkColony, ant: WalkerAnt) -> None:
    neighborhood = colony.neighborhood
    registry = colony.registry
    config = colony.config
    position = ant.position
    placeholder = neighborhood.placeholder(position)

    if not placeholder.explored:
        ant.slot.clear()
        explore(colony, position)
    target = explore_target(colony, position)
    if target is not None:
        ant.destination = target
        ant.slot.clear()
        return

    if config.noise_threshold is not None and placeholder.similarity <= config.noise_threshold:
        registry.mark_noise(position)
        return

    if not ant.slot.carrying:
        if not registry.is_assigned(position):
            ant.slot.acquire(position)
            colony.counters.pickups += 1
        return

    ant.idle_calls = 0
    if not registry.is_assigned(position):
        ant.slot.release()
        registry.create(position)
        return

    cluster_id = registry.cluster_of(position)
    carried = ant.slot.release()
    colony.counters.drops += 1
    if registry.is_assigned(carried):
        # Another ant placed it first.
        return
    registry.add(cluster_id, carried)
    if config.raise_tolerance > 0.0:
        try_merge(colony, carried)


def try_merge(colony: DirectWalkColony, carried: int) -> bool:
    neighborhood = colony.neighborhood
    registry = colony.registry
    tolerance = colony.config.raise_tolerance
    carried_similarity = neighborhood.placeholder(carried).similarity
    own_cluster = registry.cluster_of(carried)

    for relation in neighborhood.placeholder(carried).neighbors:
        other_cluster = registry.cluster_of(relation.neighbor)
        if other_cluster is None:
            if neighborhood.placeholder(relation.neighbor).similarity < carried_similarity:
                return False
            continue
        if other_cluster == NOISE_CLUSTER_ID or other_cluster == own_cluster:
            continue
        other_start = neighborhood.placeholder(registry.representative(other_cluster)).similarity
        own_start = neighborhood.placeholder(registry.representative(own_cluster)).similarity
        ceiling = carried_similarity + tolerance
        if other_start > own_start and own_start <= ceiling:
            registry.merge(own_cluster, other_cluster)
        elif other_start <= own_start and other_start <= ceiling:
            registry.merge(other_cluster, own_cluster)
        else:
            return False
        colony.counters.merges += 1
        return True
    return False


def walk(colony: DirectWalkColony, ant: WalkerAnt) -> None:
    neighborhood = colony.neighborhood
    registry = colony.registry
    if ant.position is None:
        ant.position = colony.random_point()
        return
    if ant.destination is not None:
        ant.position = ant.destination
    ant.destination = None

    if not neighborhood.placeholder(ant.position).explored:
        return
    target = explore_target(colony, ant.position)
    if target is not None:
        ant.position = target
        return

    if ant.slot.carrying:
        climb(colony, ant)
        return

    limit = colony.config.idle_shutdown_calls
    if registry.is_assigned(ant.position) and ant.idle_calls < limit:
        ant.position = colony.random_point()
        ant.idle_calls += 1
    if ant.idle_calls >= limit:
        ant.idle_calls = 0
        shutdown(ant)


def climb(colony: DirectWalkColony, ant: WalkerAnt) -> None:
    """Follow the first strictly denser neighbor until a real cluster is reached."""
    neighborhood = colony.neighborhood
    registry = colony.registry
    while True:
        cluster_id = registry.cluster_of(ant.position)
        if cluster_id is not None and cluster_id != NOISE_CLUSTER_ID:
            return
        current = neighborhood.placeholder(ant.position)
        for relation in current.neighbors:
            if neighborhood.placeholder(relation.neighbor).similarity > current.similarity:
                ant.position = relation.neighbor
                break
        else:
            return


def shutdown(ant: WalkerAnt) -> None:
    if not ant.active:
        return
    ant.slot.clear()
    ant.active = False
