from __future__ import annotations

from typing import List, Optional, Tuple, TYPE_CHECKING

from ..core.agent import UNLIMITED, GridAnt
from ..core.spatial_grid import EMPTY_CELL
from .similarity import drop_probability, lattice_similarity, pick_up_probability

if TYPE_CHECKING:
    from ..core.grid_colony import GridColony

Cell = Tuple[int, int]

# Up is +y.
UP = (0, 1)
DOWN = (0, -1)
LEFT = (-1, 0)
RIGHT = (1, 0)
DIRECTIONS = (UP, DOWN, LEFT, RIGHT)


def call(colony: GridColony, ant: GridAnt, cycle: int) -> None:
    ant.current_cycle = cycle
    work(colony, ant)
    walk(colony, ant)


def work(colony: GridColony, ant: GridAnt) -> None:
    config = colony.config
    grid = colony.grid
    after = config.destructive_after_cycles
    if after is not None and ant.current_cycle - ant.last_action_cycle > after:
        budget = config.destructive_pickups
        ant.destructive_remaining = UNLIMITED if budget is None else budget

    occupant = grid.occupant(ant.x, ant.y)
    if ant.destructive and occupant != EMPTY_CELL and not ant.slot.carrying:
        pick(colony, ant)
        return
    if not ant.slot.carrying and occupant != EMPTY_CELL:
        if wants_pick_up(colony, ant, occupant):
            pick(colony, ant)
        return
    if ant.slot.carrying and occupant == EMPTY_CELL:
        if wants_drop(colony, ant):
            drop(colony, ant)


def local_similarity(colony: GridColony, ant: GridAnt, point: int) -> float:
    config = colony.config
    neighbors = [other for other in colony.grid.occupants_in_window(ant.x, ant.y, ant.view_radius) if other != point]
    distances = colony.points.distances_from(point, neighbors) if neighbors else ()
    return lattice_similarity(distances, config.alpha, ant.speed, config.max_speed, ant.view_radius)


def wants_pick_up(colony: GridColony, ant: GridAnt, point: int) -> bool:
    similarity = local_similarity(colony, ant, point)
    return colony.rng.next_float() <= pick_up_probability(similarity, colony.config.kp)


def wants_drop(colony: GridColony, ant: GridAnt) -> bool:
    if not ant.slot.carrying:
        return False
    config = colony.config
    similarity = local_similarity(colony, ant, ant.slot.item)
    return colony.rng.next_float() <= drop_probability(similarity, config.kd, config.drop_function)


def pick(colony: GridColony, ant: GridAnt) -> bool:
    if ant.slot.carrying:
        return False
    point = colony.grid.pick(ant.x, ant.y)
    if point is None:
        return False
    ant.slot.acquire(point)
    ant.pickups += 1
    colony.counters.pickups += 1
    if ant.destructive_remaining > 0:
        ant.destructive_remaining -= 1
    # Chosen once per pickup so a rejected drop spot does not keep pulling the ant back.
    ant.drop_destination = _remembered_cell(colony, ant, point)
    ant.last_action_cycle = ant.current_cycle
    return True


def drop(colony: GridColony, ant: GridAnt) -> bool:
    if not ant.slot.carrying:
        return False
    grid = colony.grid
    while True:
        if ant.drop_range > 0:
            free = grid.free_cells_in_window(ant.x, ant.y, ant.drop_range)
            if not free:
                return False
            cell = free[colony.rng.next_int(len(free))]
        else:
            cell = (ant.x, ant.y)
        if grid.drop(ant.slot.item, cell[0], cell[1]):
            _settle(colony, ant, cell)
            return True
        if ant.drop_range == 0:
            return False


def _settle(colony: GridColony, ant: GridAnt, cell: Cell) -> None:
    point = ant.slot.release()
    ant.drop_destination = None
    if ant.memory is not None:
        ant.memory.memorize(point, cell)
    ant.drops += 1
    colony.counters.drops += 1
    ant.last_action_cycle = ant.current_cycle


def _remembered_cell(colony: GridColony, ant: GridAnt, point: int) -> Optional[Cell]:
    if ant.memory is None:
        return None
    return ant.memory.most_similar(point, colony.points.distance)


def _allowed_directions(colony: GridColony, ant: GridAnt, destination: Optional[Cell]) -> List[Cell]:
    grid = colony.grid
    allowed: List[Cell] = []
    for direction in DIRECTIONS:
        if not grid.is_valid(ant.x + direction[0], ant.y + direction[1]):
            continue
        if destination is not None:
            if direction == UP and ant.y >= destination[1]:
                continue
            if direction == DOWN and ant.y <= destination[1]:
                continue
            if direction == LEFT and ant.x <= destination[0]:
                continue
            if direction == RIGHT and ant.x >= destination[0]:
                continue
        allowed.append(direction)
    return allowed


def _overshoots(direction: Cell, x: int, y: int, destination: Cell) -> bool:
    if direction == UP:
        return y > destination[1]
    if direction == DOWN:
        return y < destination[1]
    if direction == LEFT:
        return x < destination[0]
    return x > destination[0]


def walk(colony: GridColony, ant: GridAnt) -> None:
    destination = ant.drop_destination if ant.slot.carrying else None
    if destination is not None and ant.position == destination:
        ant.drop_destination = None
        return
    direction = colony.rng.sample_choice(_allowed_directions(colony, ant, destination))
    if direction is None:
        return
    grid = colony.grid
    for _ in range(ant.speed):
        x = ant.x + direction[0]
        y = ant.y + direction[1]
        if not grid.is_valid(x, y):
            break
        if destination is not None and _overshoots(direction, x, y, destination):
            break
        ant.x = x
        ant.y = y
        if destination is not None and ant.position == destination:
            ant.drop_destination = None
            break


def shutdown(colony: GridColony, ant: GridAnt) -> None:
    """Make a carrying ant put its point back on the grid."""
    if not ant.slot.carrying:
        return
    ant.drop_destination = None
    if ant.memory is not None:
        cell = ant.memory.most_similar(ant.slot.item, colony.points.distance)
        if cell is not None:
            ant.x, ant.y = cell
    attempts = 0
    while ant.slot.carrying:
        if attempts < colony.config.shutdown_attempts:
            work(colony, ant)
            attempts += 1
        elif not drop(colony, ant):
            cell = colony.grid.random_free_cell(colony.rng)
            colony.grid.drop(ant.slot.item, cell[0], cell[1])
            _settle(colony, ant, cell)
        walk(colony, ant)
