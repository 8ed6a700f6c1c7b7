"""Bitmask autotiling.

Bit positions follow the neighbor compass below, where X is the current cell and
bit ``k`` has weight ``2**k``::

    0 3 5        NW N NE
    1 X 6        W  X  E
    2 4 7        SW S SE

Corner bits are only set when both adjacent cardinal bits are set, which keeps
every result inside the legal tile catalog.
"""
from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Optional

from .cardinals import Cardinal
from .cells import Cell

if TYPE_CHECKING:  # pragma: no cover
    from .grid import TileGrid

NW, W, SW, N, S, NE, E, SE = (1 << k for k in range(8))


class TileMode(str, Enum):
    OCCUPANCY = "occupancy"
    CONNECTIVITY = "connectivity"


def occupancy_tile_id(grid: "TileGrid", cell: Cell) -> int:
    """Tile id from which neighbors are occupied, ignoring connections."""

    def occ(dx: int, dy: int) -> bool:
        neighbor = grid.get(cell.x + dx, cell.y + dy)
        return neighbor is not None and neighbor.occupied

    n, s, w, e = occ(0, -1), occ(0, 1), occ(-1, 0), occ(1, 0)
    bitval = 0
    bitval |= NW if (w and n and occ(-1, -1)) else 0
    bitval |= W if w else 0
    bitval |= SW if (w and s and occ(-1, 1)) else 0
    bitval |= N if n else 0
    bitval |= S if s else 0
    bitval |= NE if (n and e and occ(1, -1)) else 0
    bitval |= E if e else 0
    bitval |= SE if (s and e and occ(1, 1)) else 0
    return bitval


def connectivity_tile_id(grid: "TileGrid", cell: Cell) -> int:
    """Tile id from explicit connections.

    A corner closes only when an L-shaped connected path runs around it: this cell
    joins both cardinal neighbors and each of them joins the shared diagonal.
    """

    def linked(direction: Cardinal) -> Optional[Cell]:
        if not cell.is_connected(direction):
            return None
        return grid.neighbor(cell, direction)

    north, east, south, west = (linked(d) for d in Cardinal)

    bitval = 0
    if west is not None and north is not None:
        if west.is_connected(Cardinal.N) and north.is_connected(Cardinal.W):
            bitval |= NW
    if west is not None:
        bitval |= W
    if west is not None and south is not None:
        if west.is_connected(Cardinal.S) and south.is_connected(Cardinal.W):
            bitval |= SW
    if north is not None:
        bitval |= N
    if south is not None:
        bitval |= S
    if north is not None and east is not None:
        if north.is_connected(Cardinal.E) and east.is_connected(Cardinal.N):
            bitval |= NE
    if east is not None:
        bitval |= E
    if south is not None and east is not None:
        if south.is_connected(Cardinal.E) and east.is_connected(Cardinal.S):
            bitval |= SE
    return bitval


def compute_tile_id(grid: "TileGrid", cell: Cell, mode: TileMode) -> int:
    if mode is TileMode.OCCUPANCY:
        return occupancy_tile_id(grid, cell)
    return connectivity_tile_id(grid, cell)


__all__ = [
    "TileMode",
    "occupancy_tile_id",
    "connectivity_tile_id",
    "compute_tile_id",
]
