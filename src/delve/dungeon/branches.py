"""Corridor branches grown out of an existing layout.

Every generator starts from an occupied seed cell, steps into a random empty
neighbor and keeps going according to its own rule. Shoot, Snake and Bridge
plan their run first and leave the grid untouched when they fail; Crank keeps
whatever it has dug.
"""
from __future__ import annotations

import logging
import random
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set

from ..errors import UnsupportedStrategyError
from .autotile import TileMode
from .cardinals import Cardinal, between, rotate
from .cells import Cell, CellKind, Point
from .grid import TileGrid
from .tiles import BRANCHABLE_FAMILIES, in_family

logger = logging.getLogger(__name__)

SHOOT_STEPS = (2, 10)
SNAKE_STEPS = (3, 20)
CRANK_TURN_ODDS = 4
DEFAULT_BRANCH_BUDGET = 10


class BranchType(str, Enum):
    SHOOT = "shoot"
    SNAKE = "snake"
    BRIDGE = "bridge"
    CRANK = "crank"


def _retile_around(grid: TileGrid, cells: Iterable[Cell]) -> None:
    """Recompute connectivity tile ids for the cells and their 8-neighborhood."""
    seen: Set[Point] = set()
    for cell in cells:
        for dy in (-1, 0, 1):
            for dx in (-1, 0, 1):
                other = grid.get(cell.x + dx, cell.y + dy)
                if other is None or other.position in seen:
                    continue
                seen.add(other.position)
                grid.recompute_tile_id(other, TileMode.CONNECTIVITY)


def _lay_chain(grid: TileGrid, seed: Cell, run: Sequence[Cell]) -> None:
    """Turn ``run`` into hallway and link seed -> run[0] -> ... -> run[-1]."""
    previous = seed
    for cell in run:
        grid.set_kind(cell, CellKind.HALLWAY)
        grid.link(previous, cell)
        previous = cell
    _retile_around(grid, [seed, *run])


def _first_step(grid: TileGrid, seed: Cell, rng: random.Random) -> Optional[Cell]:
    if not seed.connectable:
        return None
    return grid.random_unoccupied_neighbor(seed, rng)


def create_shoot(
    grid: TileGrid,
    seed: Cell,
    rng: random.Random,
    direction: Optional[Cardinal] = None,
    min_cells: int = SHOOT_STEPS[0],
) -> bool:
    """Straight corridor of 2..9 cells in one direction.

    ``direction`` pins the heading instead of picking a random empty neighbor.
    ``min_cells`` lowers the shortest run accepted.
    """
    if direction is None:
        first = _first_step(grid, seed, rng)
    else:
        first = grid.neighbor(seed, direction) if seed.connectable else None
        if first is not None and first.occupied:
            first = None
    if first is None:
        return False
    steps = rng.randrange(*SHOOT_STEPS)
    direction = between(seed.position, first.position)

    run: List[Cell] = [first]
    while len(run) < steps:
        nxt = grid.neighbor(run[-1], direction)
        if nxt is None or nxt.occupied:
            break
        run.append(nxt)
    if len(run) < min_cells:
        logger.debug("Shoot from %s blocked after %d cells", seed.position, len(run))
        return False
    _lay_chain(grid, seed, run)
    return True


def create_snake(grid: TileGrid, seed: Cell, rng: random.Random) -> bool:
    """Winding corridor of 3..19 cells, picking a fresh empty neighbor each step."""
    first = _first_step(grid, seed, rng)
    if first is None:
        return False
    steps = rng.randrange(*SNAKE_STEPS)

    run: List[Cell] = [first]
    planned: Set[Point] = {first.position}
    while len(run) < steps:
        options = [
            n
            for n in grid.unoccupied_neighbors(run[-1])
            if n is not None and n.position not in planned
        ]
        if not options:
            break
        nxt = rng.choice(options)
        run.append(nxt)
        planned.add(nxt.position)
    if len(run) < SNAKE_STEPS[0]:
        logger.debug("Snake from %s boxed in after %d cells", seed.position, len(run))
        return False
    _lay_chain(grid, seed, run)
    return True


def create_bridge(grid: TileGrid, seed: Cell, rng: random.Random) -> bool:
    """Straight corridor that must land on a hallway or primary room cell."""
    first = _first_step(grid, seed, rng)
    if first is None:
        return False
    direction = between(seed.position, first.position)

    run: List[Cell] = [first]
    while True:
        nxt = grid.neighbor(run[-1], direction)
        if nxt is None:
            return False
        if not nxt.occupied:
            run.append(nxt)
            continue
        if nxt.kind in (CellKind.HALLWAY, CellKind.PRIMARY_ROOM):
            target = nxt
            break
        logger.debug("Bridge from %s hit %s at %s", seed.position, nxt.kind.value, nxt.position)
        return False

    _lay_chain(grid, seed, run)
    grid.link(run[-1], target)
    _retile_around(grid, [target])
    return True


def create_crank(grid: TileGrid, seed: Cell, rng: random.Random) -> bool:
    """Corridor that turns a quarter in one fixed sense with 1-in-4 odds per step.

    Returns True once it joins an occupied cell it can connect to. Running off
    the grid or into a cell it cannot join ends the branch with the corridor
    dug so far kept in place.
    """
    first = _first_step(grid, seed, rng)
    if first is None:
        return False
    direction = between(seed.position, first.position)
    clockwise = rng.randrange(2) == 0

    touched: List[Cell] = [seed]
    current = seed
    nxt: Optional[Cell] = first
    joined = False
    while nxt is not None:
        if not nxt.occupied:
            grid.set_kind(nxt, CellKind.HALLWAY)
            grid.link(current, nxt)
            touched.append(nxt)
        elif grid.can_link(current, nxt):
            grid.link(current, nxt)
            touched.append(nxt)
            joined = True
            break
        else:
            break
        if rng.randrange(CRANK_TURN_ODDS) == 0:
            direction = rotate(direction, clockwise)
        current = nxt
        nxt = grid.neighbor(current, direction)

    _retile_around(grid, touched)
    if not joined:
        logger.debug("Crank from %s ended unjoined after %d cells", seed.position, len(touched) - 1)
    return joined


BranchFn = Callable[[TileGrid, Cell, random.Random], bool]

BRANCHES: Dict[BranchType, BranchFn] = {
    BranchType.SHOOT: create_shoot,
    BranchType.SNAKE: create_snake,
    BranchType.BRIDGE: create_bridge,
    BranchType.CRANK: create_crank,
}


def create_branch(branch_type: BranchType, grid: TileGrid, seed: Cell, rng: random.Random) -> bool:
    """Grow one branch of the given type from ``seed``. Returns True on success."""
    if not seed.occupied:
        return False
    fn = BRANCHES.get(branch_type)
    if fn is None:
        raise UnsupportedStrategyError(f"Branch type {branch_type!r} is not supported")
    return fn(grid, seed, rng)


def branchable_edges(grid: TileGrid) -> List[Cell]:
    """Non-premade cells whose tile is a wall, hall or turn piece."""
    return [
        c
        for c in grid.cells
        if c.kind is not CellKind.PREMADE_ROOM
        and c.connectable
        and in_family(c.tile_id, *BRANCHABLE_FAMILIES)
    ]


def grow_branches(
    grid: TileGrid,
    edges: List[Cell],
    branch_types: Sequence[BranchType],
    rng: random.Random,
    budget: int = DEFAULT_BRANCH_BUDGET,
) -> int:
    """Try a random enabled branch type on each shuffled edge until ``budget`` succeed.

    Consumed edges are removed from ``edges``. Returns the number of branches grown.
    """
    if not branch_types or budget <= 0:
        return 0
    rng.shuffle(edges)
    grown = 0
    while edges and grown < budget:
        seed = edges.pop(0)
        branch_type = rng.choice(list(branch_types))
        if create_branch(branch_type, grid, seed, rng):
            grown += 1
            logger.debug("Grew %s branch from %s", branch_type.value, seed.position)
    logger.info("Grew %d branches (%d edges left)", grown, len(edges))
    return grown


__all__ = [
    "BranchType",
    "BRANCHES",
    "create_branch",
    "create_shoot",
    "create_snake",
    "create_bridge",
    "create_crank",
    "branchable_edges",
    "grow_branches",
    "DEFAULT_BRANCH_BUDGET",
]
