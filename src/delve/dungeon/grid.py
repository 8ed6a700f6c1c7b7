from __future__ import annotations

import logging
import random
from typing import FrozenSet, Iterator, List, Optional, Set

from ..errors import ConnectivityError
from .autotile import TileMode, compute_tile_id
from .cardinals import Cardinal, between, flip
from .cells import Cell, CellKind, Point

logger = logging.getLogger(__name__)


class TileGrid:
    """Row-major grid of cells owned by a single generation run.

    Coordinates are (x, y) with (0, 0) at top-left; x grows to the right, y grows
    down. Besides the cells the grid tracks which coordinates the pathfinder must
    avoid and which pairs may connect across a premade room boundary.
    """

    def __init__(self, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise ValueError("TileGrid width and height must be positive")
        self.width = width
        self.height = height
        self.cells: List[Cell] = [Cell(i % width, i // width) for i in range(width * height)]
        self.blocked: Set[Point] = set()
        self._boundary_links: Set[FrozenSet[Point]] = set()
        logger.debug("TileGrid created: %dx%d", width, height)

    # ------------------------ Lookup ------------------------
    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def index(self, x: int, y: int) -> int:
        return x + y * self.width

    def get(self, x: int, y: int) -> Optional[Cell]:
        if not self.in_bounds(x, y):
            return None
        return self.cells[self.index(x, y)]

    def at(self, point: Point) -> Cell:
        cell = self.get(*point)
        if cell is None:
            raise IndexError(f"Cell {point} out of bounds")
        return cell

    def neighbor(self, cell: Cell, direction: Cardinal) -> Optional[Cell]:
        dx, dy = direction.offset
        return self.get(cell.x + dx, cell.y + dy)

    def neighbors4(self, cell: Cell) -> List[Optional[Cell]]:
        """Neighbors ordered N, E, S, W; ``None`` where off the grid."""
        return [self.neighbor(cell, d) for d in Cardinal]

    def occupied_neighbors(self, cell: Cell) -> List[Optional[Cell]]:
        return [n if n is not None and n.occupied else None for n in self.neighbors4(cell)]

    def unoccupied_neighbors(self, cell: Cell) -> List[Optional[Cell]]:
        return [n if n is not None and not n.occupied else None for n in self.neighbors4(cell)]

    def random_unoccupied_neighbor(self, cell: Cell, rng: random.Random) -> Optional[Cell]:
        options = [n for n in self.unoccupied_neighbors(cell) if n is not None]
        if not options:
            return None
        return rng.choice(options)

    def available_cells(self) -> List[Cell]:
        return [c for c in self.cells if c.available]

    def occupied_cells(self) -> Iterator[Cell]:
        return (c for c in self.cells if c.occupied)

    def cells_of_kind(self, kind: CellKind) -> List[Cell]:
        return [c for c in self.cells if c.kind is kind]

    def available_area(self, x: int, y: int, width: int, height: int) -> Optional[List[Cell]]:
        """Cells of the rectangle if every one is in bounds and available, else None."""
        area: List[Cell] = []
        for j in range(height):
            for i in range(width):
                cell = self.get(x + i, y + j)
                if cell is None or not cell.available:
                    return None
                area.append(cell)
        return area

    def is_area_available(self, x: int, y: int, width: int, height: int) -> bool:
        return self.available_area(x, y, width, height) is not None

    def subregion(self, x: int, y: int, width: int, height: int) -> List[Cell]:
        area: List[Cell] = []
        for j in range(height):
            for i in range(width):
                cell = self.get(x + i, y + j)
                if cell is not None:
                    area.append(cell)
        return area

    # ------------------------ Mutation ------------------------
    def set_kind(self, cell: Cell, kind: CellKind) -> None:
        cell.kind = kind
        if kind.occupied:
            cell.available = False

    def reserve(self, cell: Cell) -> None:
        """Take a cell out of the availability pool without occupying it."""
        cell.available = False

    def block(self, cell: Cell) -> None:
        self.blocked.add(cell.position)

    def allow_boundary_link(self, a: Point, b: Point) -> None:
        """Permit a premade room cell and a cell outside it to connect."""
        self._boundary_links.add(frozenset((a, b)))

    def can_link(self, a: Cell, b: Cell) -> bool:
        if not (a.connectable and b.connectable):
            return False
        if abs(a.x - b.x) + abs(a.y - b.y) != 1:
            return False
        a_premade = a.kind is CellKind.PREMADE_ROOM
        b_premade = b.kind is CellKind.PREMADE_ROOM
        if a_premade or b_premade:
            if a_premade and b_premade and a.room_id == b.room_id:
                return True
            return frozenset((a.position, b.position)) in self._boundary_links
        return True

    def connect(self, cell: Cell, direction: Cardinal) -> None:
        """Set one side of a connection; the neighbor must be joinable."""
        neighbor = self.neighbor(cell, direction)
        if neighbor is None or not self.can_link(cell, neighbor):
            raise ConnectivityError(f"Cannot connect {cell!r} toward {direction.name} ({neighbor!r})")
        cell.connections[int(direction)] = True

    def link(self, a: Cell, b: Cell) -> None:
        """Connect two adjacent cells in both directions."""
        if not self.can_link(a, b):
            raise ConnectivityError(f"Cannot link {a!r} and {b!r}")
        direction = between(a.position, b.position)
        a.connections[int(direction)] = True
        b.connections[int(flip(direction))] = True

    def connect_occupied_neighbors(self) -> int:
        """Link every joinable pair of adjacent occupied cells. Returns links made."""
        made = 0
        for cell in self.cells:
            if not cell.connectable:
                continue
            for direction in (Cardinal.E, Cardinal.S):
                neighbor = self.neighbor(cell, direction)
                if neighbor is not None and self.can_link(cell, neighbor):
                    if not cell.is_connected(direction):
                        made += 1
                    self.link(cell, neighbor)
        logger.debug("Linked %d neighboring cell pairs", made)
        return made

    # ------------------------ Tiling ------------------------
    def recompute_tile_id(self, cell: Cell, mode: TileMode) -> Optional[int]:
        """Refresh a cell's tile id. Premade cells keep their stamped id."""
        if not cell.connectable:
            cell.tile_id = None
        elif cell.kind is not CellKind.PREMADE_ROOM:
            cell.tile_id = compute_tile_id(self, cell, mode)
        return cell.tile_id

    def retile(self, mode: TileMode) -> None:
        for cell in self.cells:
            self.recompute_tile_id(cell, mode)

    def __repr__(self) -> str:
        return f"TileGrid({self.width}x{self.height})"


__all__ = ["TileGrid"]
