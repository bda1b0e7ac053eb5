from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import yaml

from .errors import ConfigurationError

GRID_MIN_SIZE = 3
GRID_MIN_FREE_FRACTION = 0.2


class DropFunction(str, Enum):
    ORIGINAL = "original"
    SYMMETRIC = "symmetric"


@dataclass
class DirectWalkConfig:
    alpha: float = 0.37
    neighborhood_size: float = 0.25
    raise_tolerance: float = 0.012
    # None disables noise detection.
    noise_threshold: Optional[float] = None
    ant_count: int = 10
    calls_per_cycle: int = 10_000
    max_cycles: int = 50
    idle_shutdown_calls: int = 1000
    align_distances: bool = False
    max_cluster_count: Optional[int] = None
    replace_missing: bool = True
    seed: int = 1

    def validate(self) -> None:
        if self.alpha <= 0.0:
            raise ConfigurationError(f"alpha must be positive, got {self.alpha}")
        if self.raise_tolerance < 0.0:
            raise ConfigurationError(f"raise_tolerance must not be negative, got {self.raise_tolerance}")
        if self.noise_threshold is not None and self.noise_threshold < 0.0:
            raise ConfigurationError(f"noise_threshold must not be negative, got {self.noise_threshold}")
        if self.ant_count < 1:
            raise ConfigurationError(f"at least one ant is required, got {self.ant_count}")
        if self.calls_per_cycle < 1:
            raise ConfigurationError(f"calls_per_cycle must be positive, got {self.calls_per_cycle}")
        if self.max_cycles < 0:
            raise ConfigurationError(f"max_cycles must not be negative, got {self.max_cycles}")
        if self.idle_shutdown_calls < 1:
            raise ConfigurationError(f"idle_shutdown_calls must be positive, got {self.idle_shutdown_calls}")
        if self.max_cluster_count is not None and self.max_cluster_count < 1:
            raise ConfigurationError(f"max_cluster_count must be at least 1, got {self.max_cluster_count}")

    @staticmethod
    def from_yaml(path: Path) -> "DirectWalkConfig":
        return load_direct_walk_config(_read_yaml(path))


@dataclass
class GridExtractionConfig:
    diagonal_neighbors: bool = False
    # None disables singleton reattachment.
    singleton_join_radius: Optional[int] = 1
    max_cluster_count: Optional[int] = None

    def validate(self) -> None:
        if self.singleton_join_radius is not None and self.singleton_join_radius < 1:
            raise ConfigurationError(
                f"singleton_join_radius must be at least 1, got {self.singleton_join_radius}"
            )
        if self.max_cluster_count is not None and self.max_cluster_count < 1:
            raise ConfigurationError(f"max_cluster_count must be at least 1, got {self.max_cluster_count}")


@dataclass
class AntGridConfig:
    alpha: float = 5.0
    kp: float = 0.02
    kd: float = 0.5
    drop_function: DropFunction = DropFunction.ORIGINAL
    grid_width: int = 52
    grid_height: int = 52
    max_cycles: int = 50
    calls_per_cycle: int = 10_000
    ant_count: int = 40
    view_radius: int = 1
    max_speed: int = 1
    drop_range: int = 1
    # None disables the drop-location memory.
    drop_memory_size: Optional[int] = None
    # None disables destructive foraging.
    destructive_after_cycles: Optional[int] = None
    # None makes a destructive ant pick up without limit.
    destructive_pickups: Optional[int] = 3
    shutdown_attempts: int = 10
    replace_missing: bool = False
    seed: int = 1
    extraction: GridExtractionConfig = field(default_factory=GridExtractionConfig)

    @property
    def cell_count(self) -> int:
        return self.grid_width * self.grid_height

    def validate(self, point_count: int = 0) -> None:
        if self.grid_width < GRID_MIN_SIZE or self.grid_height < GRID_MIN_SIZE:
            raise ConfigurationError(
                f"grid must be at least {GRID_MIN_SIZE}x{GRID_MIN_SIZE}, got {self.grid_width}x{self.grid_height}"
            )
        free_cells = self.cell_count - point_count
        if free_cells < GRID_MIN_FREE_FRACTION * self.cell_count:
            raise ConfigurationError(
                f"{point_count} points leave {free_cells} of {self.cell_count} cells free; "
                f"at least {GRID_MIN_FREE_FRACTION:.0%} must stay free"
            )
        if self.alpha <= 0.0:
            raise ConfigurationError(f"alpha must be positive, got {self.alpha}")
        if self.kp < 0.0 or self.kd < 0.0:
            raise ConfigurationError(f"kp and kd must not be negative, got kp={self.kp} kd={self.kd}")
        if self.max_speed < 1:
            raise ConfigurationError(f"max_speed must be at least 1, got {self.max_speed}")
        if self.ant_count < self.max_speed:
            raise ConfigurationError(
                f"{self.ant_count} ants cannot fill {self.max_speed} speed classes"
            )
        if self.view_radius < 0 or self.drop_range < 0:
            raise ConfigurationError("view_radius and drop_range must not be negative")
        if self.calls_per_cycle < 1:
            raise ConfigurationError(f"calls_per_cycle must be positive, got {self.calls_per_cycle}")
        if self.max_cycles < 0:
            raise ConfigurationError(f"max_cycles must not be negative, got {self.max_cycles}")
        if self.drop_memory_size is not None and self.drop_memory_size < 1:
            raise ConfigurationError(f"drop_memory_size must be at least 1, got {self.drop_memory_size}")
        if self.destructive_after_cycles is not None and self.destructive_after_cycles < 1:
            raise ConfigurationError(
                f"destructive_after_cycles must be at least 1, got {self.destructive_after_cycles}"
            )
        if self.destructive_pickups is not None and self.destructive_pickups < 1:
            raise ConfigurationError(f"destructive_pickups must be at least 1, got {self.destructive_pickups}")
        if self.shutdown_attempts < 0:
            raise ConfigurationError(f"shutdown_attempts must not be negative, got {self.shutdown_attempts}")
        self.extraction.validate()

    @staticmethod
    def from_yaml(path: Path) -> "AntGridConfig":
        return load_ant_grid_config(_read_yaml(path))


def _read_yaml(path: Path) -> dict[str, Any]:
    data = yaml.safe_load(Path(path).read_text())
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping at the top level")
    return data


def _known_fields(cls: type, raw: dict[str, Any], skip: set[str]) -> dict[str, Any]:
    names = set(cls.__dataclass_fields__)
    unknown = set(raw) - names - skip
    if unknown:
        raise ConfigurationError(f"unknown {cls.__name__} keys: {', '.join(sorted(unknown))}")
    return {k: v for k, v in raw.items() if k not in skip}


def load_direct_walk_config(raw: dict) -> DirectWalkConfig:
    config = DirectWalkConfig(**_known_fields(DirectWalkConfig, raw, set()))
    config.validate()
    return config


def load_extraction_config(raw: dict) -> GridExtractionConfig:
    config = GridExtractionConfig(**_known_fields(GridExtractionConfig, raw, set()))
    config.validate()
    return config


def load_ant_grid_config(raw: dict) -> AntGridConfig:
    values = _known_fields(AntGridConfig, raw, {"extraction", "drop_function"})
    try:
        drop_function = DropFunction(raw.get("drop_function", DropFunction.ORIGINAL))
    except ValueError as exc:
        raise ConfigurationError(f"unknown drop_function {raw.get('drop_function')!r}") from exc
    extraction = load_extraction_config(raw.get("extraction", {}) or {})
    return AntGridConfig(drop_function=drop_function, extraction=extraction, **values)
