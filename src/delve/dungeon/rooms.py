from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Iterable, List, Sequence, Tuple

from .cardinals import Cardinal
from .cells import Cell, Point
from .grid import TileGrid

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Exit:
    """Corridor mouth of a premade room: the cell outside it and the side it faces."""

    position: Point
    facing: Cardinal


@dataclass(frozen=True)
class Room:
    """A group of cells sharing a room id.

    Rooms hold coordinates only. ``anchor`` is the representative cell used for
    distance and pathfinding queries.
    """

    room_id: int
    cells: Tuple[Point, ...]
    anchor: Point
    is_premade: bool = False
    exits: Tuple[Exit, ...] = ()
    min_x: int = field(init=False)
    max_x: int = field(init=False)
    min_y: int = field(init=False)
    max_y: int = field(init=False)

    def __post_init__(self) -> None:
        if not self.cells:
            raise ValueError("Room requires at least one cell")
        if self.anchor not in self.cells:
            raise ValueError(f"Anchor {self.anchor} is not a cell of room {self.room_id}")
        xs = [x for x, _ in self.cells]
        ys = [y for _, y in self.cells]
        object.__setattr__(self, "min_x", min(xs))
        object.__setattr__(self, "max_x", max(xs))
        object.__setattr__(self, "min_y", min(ys))
        object.__setattr__(self, "max_y", max(ys))

    def __len__(self) -> int:
        return len(self.cells)

    def touches(self, other: "Room") -> bool:
        """True when any cell of this room is edge-adjacent to one of ``other``'s."""
        if (
            self.max_x + 1 < other.min_x
            or self.min_x > other.max_x + 1
            or self.max_y + 1 < other.min_y
            or self.min_y > other.max_y + 1
        ):
            return False
        others = set(other.cells)
        for x, y in self.cells:
            for nx, ny in ((x + 1, y), (x - 1, y), (x, y + 1), (x, y - 1)):
                if (nx, ny) in others:
                    return True
        return False

    def merged_with(self, other: "Room") -> "Room":
        return Room(
            room_id=self.room_id,
            cells=self.cells + other.cells,
            anchor=self.anchor,
            is_premade=self.is_premade,
            exits=self.exits + other.exits,
        )


class RoomIdAllocator:
    """Hands out room ids for one generation run."""

    def __init__(self, start: int = 0) -> None:
        self._next = start

    def allocate(self) -> int:
        room_id = self._next
        self._next += 1
        return room_id

    @property
    def issued(self) -> int:
        return self._next


def room_from_cells(
    area: Sequence[Cell],
    room_id: int,
    rng: random.Random,
    is_premade: bool = False,
    exits: Iterable[Exit] = (),
) -> Room:
    cells = tuple(c.position for c in area)
    return Room(room_id, cells, rng.choice(cells), is_premade, tuple(exits))


def merge_adjacent_rooms(grid: TileGrid, rooms: Sequence[Room]) -> List[Room]:
    """Merge rooms whose cells touch until no two rooms are adjacent.

    The merged room keeps the id and anchor of the room it grew from, and the
    grid's cells are relabelled with that id.
    """
    unmerged = list(rooms)
    completed: List[Room] = []
    while unmerged:
        current = unmerged.pop(0)
        partner = next((r for r in unmerged if current.touches(r)), None)
        if partner is None:
            completed.append(current)
            continue
        unmerged.remove(partner)
        merged = current.merged_with(partner)
        for point in partner.cells:
            grid.at(point).room_id = merged.room_id
        logger.debug("Merged room %d into room %d", partner.room_id, merged.room_id)
        unmerged.append(merged)
    if len(completed) != len(rooms):
        logger.info("Merged %d adjacent rooms into %d", len(rooms), len(completed))
    return completed


__all__ = ["Exit", "Room", "RoomIdAllocator", "room_from_cells", "merge_adjacent_rooms"]
