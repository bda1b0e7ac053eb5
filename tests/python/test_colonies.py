from __future__ import annotations

import pytest

from formicary.datasets import gaussian_blobs
from formicary.sim.core.config import AntGridConfig, DirectWalkConfig
from formicary.sim.core.errors import SimulationInvariantViolation
from formicary.sim.core.grid_colony import GridColony
from formicary.sim.core.points import PointStore
from formicary.sim.core.walk_colony import DirectWalkColony


def _blobs(points_per_center=15):
    features, _ = gaussian_blobs(((0.0, 0.0), (10.0, 10.0)), sigma=1.0, points_per_center=points_per_center, seed=3)
    return PointStore(features)


def _walk_config(**changes) -> DirectWalkConfig:
    settings = {"ant_count": 3, "calls_per_cycle": 300, "max_cycles": 5, "seed": 11}
    settings.update(changes)
    return DirectWalkConfig(**settings)


def _grid_config(**changes) -> AntGridConfig:
    settings = {
        "grid_width": 12,
        "grid_height": 12,
        "ant_count": 8,
        "max_speed": 2,
        "calls_per_cycle": 400,
        "max_cycles": 3,
        "seed": 5,
    }
    settings.update(changes)
    return AntGridConfig(**settings)


def test_direct_walk_is_deterministic_for_a_seed():
    points = _blobs()
    first = DirectWalkColony(_walk_config(), points)
    second = DirectWalkColony(_walk_config(), points)
    first.run()
    second.run()
    assert first.assignments() == second.assignments()
    assert [m.clusters for m in first.metrics] == [m.clusters for m in second.metrics]


def test_direct_walk_reset_replays_the_same_run():
    colony = DirectWalkColony(_walk_config(), _blobs())
    colony.run()
    expected = colony.assignments()
    colony.reset()
    assert colony.active
    colony.run()
    assert colony.assignments() == expected


def test_assignments_require_a_finished_colony():
    colony = DirectWalkColony(_walk_config(), _blobs())
    with pytest.raises(SimulationInvariantViolation):
        colony.assignments()


def test_direct_walk_respects_cycle_limit_and_records_metrics():
    colony = DirectWalkColony(_walk_config(max_cycles=2), _blobs())
    metrics = colony.run()
    assert not colony.active
    assert colony.cycle <= 2
    assert [m.cycle for m in metrics] == list(range(1, colony.cycle + 1))
    assert all(m.calls == 300 for m in metrics)


def test_zero_neighborhood_with_noise_detection_leaves_only_noise():
    config = _walk_config(neighborhood_size=0.0, noise_threshold=0.0, calls_per_cycle=2000)
    colony = DirectWalkColony(config, _blobs(points_per_center=5))
    colony.run()
    assert len(colony.registry) == 0
    assert set(colony.assignments()) == {-1}


def test_reduced_assignments_stay_within_the_limit():
    colony = DirectWalkColony(_walk_config(), _blobs())
    colony.run()
    labels = colony.assignments(1)
    assert set(labels) <= {-1, 0}


def test_grid_colony_spawns_speed_groups():
    colony = GridColony(_grid_config(), _blobs())
    assert [ant.speed for ant in colony.ants] == [1, 1, 1, 1, 2, 2, 2, 2]
    assert len(colony.grid.placements()) == 30


@pytest.mark.parametrize("seed", range(10))
def test_leftover_ants_get_a_speed_below_the_top_class(seed):
    colony = GridColony(_grid_config(ant_count=7, max_speed=3, seed=seed), _blobs())
    speeds = [ant.speed for ant in colony.ants]
    assert speeds[:6] == [1, 1, 2, 2, 3, 3]
    assert speeds[6] in (1, 2)


def test_grid_run_keeps_every_point_on_a_distinct_cell():
    colony = GridColony(_grid_config(drop_memory_size=3, destructive_after_cycles=1), _blobs())
    result = colony.run()

    placements = colony.grid.placements()
    assert len(set(placements)) == 30
    assert all(0 <= x < 12 and 0 <= y < 12 for x, y in placements)
    assert not any(ant.slot.carrying for ant in colony.ants)
    assert [m.cycle for m in colony.metrics] == [1, 2, 3]
    assert len(result.assignments) == 30
    assert sorted(set(result.assignments)) == list(range(result.cluster_count))


def test_grid_run_is_deterministic_for_a_seed():
    points = _blobs()
    first = GridColony(_grid_config(), points)
    second = GridColony(_grid_config(), points)
    assert first.run() == second.run()
    assert first.grid.placements() == second.grid.placements()


def test_grid_snapshot_describes_lattice_and_ants():
    colony = GridColony(_grid_config(), _blobs())
    colony.run_cycle()
    snapshot = colony.snapshot()
    assert snapshot.cycle == 1
    assert snapshot.metrics is not None
    assert snapshot.grid.width == 12 and len(snapshot.grid.cells) == 12
    assert len(snapshot.ants) == 8
    assert snapshot.metadata.point_count == 30
