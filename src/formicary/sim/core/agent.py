from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Tuple

from .errors import SimulationInvariantViolation

UNLIMITED = -1

Cell = Tuple[int, int]


class CarryState(str, Enum):
    IDLE = "Idle"
    CARRYING = "Carrying"


@dataclass(slots=True)
class CarrySlot:
    state: CarryState = CarryState.IDLE
    item: int = -1

    @property
    def carrying(self) -> bool:
        return self.state is CarryState.CARRYING

    def acquire(self, index: int) -> None:
        if self.state is CarryState.CARRYING:
            raise SimulationInvariantViolation(f"cannot take point {index} while carrying point {self.item}")
        self.state = CarryState.CARRYING
        self.item = index

    def release(self) -> int:
        if self.state is CarryState.IDLE:
            raise SimulationInvariantViolation("cannot release: nothing is carried")
        item = self.item
        self.state = CarryState.IDLE
        self.item = -1
        return item

    def clear(self) -> None:
        if self.state is CarryState.CARRYING:
            self.release()


@dataclass(slots=True)
class WalkerAnt:
    id: int
    position: Optional[int] = None
    destination: Optional[int] = None
    slot: CarrySlot = field(default_factory=CarrySlot)
    idle_calls: int = 0
    active: bool = True


class DropMemory:
    """Circular memory of the latest (point, cell) drops of one ant."""

    def __init__(self, size: int):
        self._entries: List[Optional[Tuple[int, Cell]]] = [None] * size
        self._next = 0

    def __len__(self) -> int:
        return sum(1 for entry in self._entries if entry is not None)

    @property
    def size(self) -> int:
        return len(self._entries)

    def is_full(self) -> bool:
        return all(entry is not None for entry in self._entries)

    def memorize(self, point: int, cell: Cell) -> None:
        self._entries[self._next] = (point, cell)
        self._next = (self._next + 1) % len(self._entries)

    def most_similar(self, point: int, distance: Callable[[int, int], float]) -> Optional[Cell]:
        # Lookups stay disabled until every slot holds a drop.
        if not self.is_full():
            return None
        best: Optional[Cell] = None
        best_distance = 0.0
        for remembered, cell in self._entries:  # type: ignore[misc]
            value = distance(point, remembered)
            if best is None or value < best_distance:
                best = cell
                best_distance = value
        return best

    def clear(self) -> None:
        self._entries = [None] * len(self._entries)
        self._next = 0


@dataclass(slots=True)
class GridAnt:
    id: int
    x: int
    y: int
    speed: int = 1
    view_radius: int = 1
    drop_range: int = 1
    slot: CarrySlot = field(default_factory=CarrySlot)
    memory: Optional[DropMemory] = None
    drop_destination: Optional[Cell] = None
    destructive_remaining: int = 0
    last_action_cycle: int = 0
    current_cycle: int = 0
    pickups: int = 0
    drops: int = 0

    @property
    def destructive(self) -> bool:
        return self.destructive_remaining > 0 or self.destructive_remaining == UNLIMITED

    @property
    def position(self) -> Cell:
        return (self.x, self.y)
