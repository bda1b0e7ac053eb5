from __future__ import annotations

from typing import List, Optional, Tuple

import numpy as np

from .errors import SimulationInvariantViolation
from .rng import DeterministicRng

EMPTY_CELL = -1

Cell = Tuple[int, int]


class SpatialGrid:
    """Bounded width x height lattice holding at most one point per cell.

    ``pick`` and ``drop`` behave like compare-and-set operations: picking an
    empty cell yields None and dropping onto an occupied cell fails.
    """

    def __init__(self, width: int, height: int, capacity: int) -> None:
        self._width = width
        self._height = height
        self._cells: List[int] = [EMPTY_CELL] * (width * height)
        self._positions: List[Optional[Cell]] = [None] * capacity
        self._occupied = 0

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def occupied_count(self) -> int:
        return self._occupied

    @property
    def free_count(self) -> int:
        return len(self._cells) - self._occupied

    def is_valid(self, x: int, y: int) -> bool:
        return 0 <= x < self._width and 0 <= y < self._height

    def occupant(self, x: int, y: int) -> int:
        if not self.is_valid(x, y):
            return EMPTY_CELL
        return self._cells[y * self._width + x]

    def is_free(self, x: int, y: int) -> bool:
        return self.is_valid(x, y) and self._cells[y * self._width + x] == EMPTY_CELL

    def position_of(self, index: int) -> Optional[Cell]:
        return self._positions[index]

    def pick(self, x: int, y: int) -> Optional[int]:
        occupant = self.occupant(x, y)
        if occupant == EMPTY_CELL:
            return None
        self._cells[y * self._width + x] = EMPTY_CELL
        self._positions[occupant] = None
        self._occupied -= 1
        return occupant

    def drop(self, index: int, x: int, y: int) -> bool:
        if not self.is_valid(x, y):
            raise SimulationInvariantViolation(f"cell ({x}, {y}) lies outside the {self._width}x{self._height} grid")
        if self._positions[index] is not None:
            raise SimulationInvariantViolation(f"point {index} is already placed at {self._positions[index]}")
        slot = y * self._width + x
        if self._cells[slot] != EMPTY_CELL:
            return False
        self._cells[slot] = index
        self._positions[index] = (x, y)
        self._occupied += 1
        return True

    def random_free_cell(self, rng: DeterministicRng) -> Cell:
        if self.free_count <= 0:
            raise SimulationInvariantViolation("the grid has no free cell left")
        while True:
            x = rng.next_int(self._width)
            y = rng.next_int(self._height)
            if self._cells[y * self._width + x] == EMPTY_CELL:
                return (x, y)

    def occupants_in_window(self, x: int, y: int, radius: int) -> List[int]:
        found: List[int] = []
        for cx in range(max(0, x - radius), min(self._width, x + radius + 1)):
            for cy in range(max(0, y - radius), min(self._height, y + radius + 1)):
                occupant = self._cells[cy * self._width + cx]
                if occupant != EMPTY_CELL:
                    found.append(occupant)
        return found

    def free_cells_in_window(self, x: int, y: int, radius: int) -> List[Cell]:
        found: List[Cell] = []
        for cx in range(max(0, x - radius), min(self._width, x + radius + 1)):
            for cy in range(max(0, y - radius), min(self._height, y + radius + 1)):
                if self._cells[cy * self._width + cx] == EMPTY_CELL:
                    found.append((cx, cy))
        return found

    def placements(self) -> List[Cell]:
        missing = [index for index, position in enumerate(self._positions) if position is None]
        if missing:
            raise SimulationInvariantViolation(f"{len(missing)} points are not on the grid, first is {missing[0]}")
        return list(self._positions)  # type: ignore[arg-type]

    def occupancy(self) -> np.ndarray:
        return np.array(self._cells, dtype=np.int64).reshape(self._height, self._width)
