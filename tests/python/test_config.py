from __future__ import annotations

import pytest

from formicary.sim.core.config import (
    AntGridConfig,
    DirectWalkConfig,
    DropFunction,
    GridExtractionConfig,
    load_ant_grid_config,
    load_direct_walk_config,
)
from formicary.sim.core.errors import ConfigurationError


def test_direct_walk_defaults_match_reference_parameters():
    config = DirectWalkConfig()
    assert config.alpha == pytest.approx(0.37)
    assert config.neighborhood_size == pytest.approx(0.25)
    assert config.raise_tolerance == pytest.approx(0.012)
    assert config.noise_threshold is None
    assert config.ant_count == 10
    assert config.calls_per_cycle == 10_000
    assert config.max_cycles == 50
    assert config.idle_shutdown_calls == 1000
    config.validate()


def test_ant_grid_defaults_match_reference_parameters():
    config = AntGridConfig()
    assert (config.grid_width, config.grid_height) == (52, 52)
    assert config.kp == pytest.approx(0.02)
    assert config.kd == pytest.approx(0.5)
    assert config.drop_function is DropFunction.ORIGINAL
    assert config.ant_count == 40
    assert config.destructive_pickups == 3
    config.validate(400)


@pytest.mark.parametrize(
    "changes",
    [
        {"alpha": 0.0},
        {"raise_tolerance": -0.1},
        {"noise_threshold": -1.0},
        {"ant_count": 0},
        {"max_cluster_count": 0},
    ],
)
def test_direct_walk_rejects_invalid_values(changes):
    with pytest.raises(ConfigurationError):
        DirectWalkConfig(**changes).validate()


def test_grid_below_minimum_size_is_rejected():
    with pytest.raises(ConfigurationError):
        AntGridConfig(grid_width=2, grid_height=10).validate(1)


def test_grid_requires_twenty_percent_free_cells():
    config = AntGridConfig(grid_width=10, grid_height=10, ant_count=4)
    config.validate(80)
    with pytest.raises(ConfigurationError):
        config.validate(81)


def test_population_must_cover_speed_classes():
    with pytest.raises(ConfigurationError):
        AntGridConfig(ant_count=3, max_speed=4).validate(10)


def test_configuration_error_is_a_value_error():
    with pytest.raises(ValueError):
        AntGridConfig(alpha=-1.0).validate(0)


def test_load_ant_grid_config_builds_nested_extraction():
    config = load_ant_grid_config(
        {
            "grid_width": 20,
            "drop_function": "symmetric",
            "extraction": {"max_cluster_count": 3, "diagonal_neighbors": True},
        }
    )
    assert config.grid_width == 20
    assert config.drop_function is DropFunction.SYMMETRIC
    assert config.extraction == GridExtractionConfig(diagonal_neighbors=True, max_cluster_count=3)


def test_loaders_reject_unknown_keys_and_drop_functions():
    with pytest.raises(ConfigurationError):
        load_direct_walk_config({"alhpa": 0.5})
    with pytest.raises(ConfigurationError):
        load_ant_grid_config({"drop_function": "sideways"})


def test_from_yaml_reads_mapping(tmp_path):
    path = tmp_path / "direct.yaml"
    path.write_text("alpha: 0.5\nant_count: 4\nnoise_threshold: 0.2\n")
    config = DirectWalkConfig.from_yaml(path)
    assert config.alpha == pytest.approx(0.5)
    assert config.ant_count == 4
    assert config.noise_threshold == pytest.approx(0.2)
