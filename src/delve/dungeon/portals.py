from __future__ import annotations

import logging
import random
from typing import List, Set, Tuple

from ..errors import PortalError
from .branches import branchable_edges, create_shoot
from .cardinals import Cardinal
from .cells import Cell, CellKind, Point
from .grid import TileGrid
from .tiles import END_PIECES

logger = logging.getLogger(__name__)


def end_pieces(grid: TileGrid) -> List[Cell]:
    """Dead-end corridor caps outside premade rooms."""
    return [
        c
        for c in grid.cells
        if c.kind in (CellKind.HALLWAY, CellKind.PRIMARY_ROOM) and c.tile_id in END_PIECES
    ]


def _shoot_from(grid: TileGrid, edge: Cell, rng: random.Random) -> bool:
    """Try a Shoot toward every open side of ``edge``; settle for a one-cell stub."""
    open_sides: List[Cardinal] = []
    for direction, neighbor in zip(Cardinal, grid.neighbors4(edge)):
        if neighbor is not None and not neighbor.occupied:
            open_sides.append(direction)
    if not open_sides:
        return False
    rng.shuffle(open_sides)
    for direction in open_sides:
        if create_shoot(grid, edge, rng, direction=direction):
            return True
    return create_shoot(grid, edge, rng, direction=open_sides[0], min_cells=1)


def _fallback_edges(grid: TileGrid) -> List[Cell]:
    """Room and hallway cells that are not dead ends, whatever their tile."""
    return [
        c
        for c in grid.cells
        if c.kind in (CellKind.HALLWAY, CellKind.PRIMARY_ROOM) and c.tile_id not in END_PIECES
    ]


def _grow_dead_ends(grid: TileGrid, rng: random.Random, ends: List[Cell]) -> List[Cell]:
    exhausted: Set[Point] = set()
    while len(ends) < 2:
        # Edges are collected again after each shoot; its own cells qualify too
        edges = [e for e in branchable_edges(grid) if e.position not in exhausted]
        if not edges:
            edges = [e for e in _fallback_edges(grid) if e.position not in exhausted]
        rng.shuffle(edges)
        grown = False
        for edge in edges:
            if _shoot_from(grid, edge, rng):
                grown = True
                break
            exhausted.add(edge.position)
        if not grown:
            break
        ends = end_pieces(grid)
    return ends


def select_portals(grid: TileGrid, rng: random.Random) -> Tuple[Cell, Cell]:
    """Pick two end pieces and turn them into the entrance and exit doors.

    When the layout has fewer than two dead ends, Shoot branches are grown from
    freshly collected branchable edges until two exist, trying every open side
    of an edge before moving on. Once no branchable edge is left, any room or
    hallway cell that is not itself a dead end may seed a shoot. Raises
    PortalError when that still yields fewer than two.
    """
    ends = end_pieces(grid)
    if len(ends) < 2:
        logger.debug("Only %d end pieces; growing shoots", len(ends))
        ends = _grow_dead_ends(grid, rng, ends)
    if len(ends) < 2:
        logger.error("Could not find end pieces for entrance and exit (found %d)", len(ends))
        raise PortalError(len(ends))

    rng.shuffle(ends)
    entrance, exit_ = ends[0], ends[1]
    grid.set_kind(entrance, CellKind.DOOR)
    grid.set_kind(exit_, CellKind.DOOR)
    exit_.is_exit = True
    logger.info("Entrance at %s, exit at %s", entrance.position, exit_.position)
    return entrance, exit_


__all__ = ["end_pieces", "select_portals"]
