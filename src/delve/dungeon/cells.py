from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from .cardinals import Cardinal

Point = Tuple[int, int]


class CellKind(str, Enum):
    EMPTY = "empty"
    PRIMARY_ROOM = "primary_room"
    PREMADE_ROOM = "premade_room"
    HALLWAY = "hallway"
    BORDER = "border"
    DOOR = "door"
    INVALID = "invalid"

    @property
    def occupied(self) -> bool:
        return self is not CellKind.EMPTY

    @property
    def connectable(self) -> bool:
        """Occupied kinds that may carry connections to their neighbors."""
        return self not in (CellKind.EMPTY, CellKind.INVALID, CellKind.BORDER)


@dataclass(eq=False)
class Cell:
    """One grid unit.

    ``connections`` is ordered N, E, S, W and is independent of occupancy: two
    occupied neighbors only read as joined when both sides are connected.
    """

    x: int
    y: int
    kind: CellKind = CellKind.EMPTY
    room_id: Optional[int] = None
    connections: List[bool] = field(default_factory=lambda: [False, False, False, False])
    tile_id: Optional[int] = None
    available: bool = True
    is_exit: bool = False

    @property
    def position(self) -> Point:
        return (self.x, self.y)

    @property
    def occupied(self) -> bool:
        return self.kind.occupied

    @property
    def connectable(self) -> bool:
        return self.kind.connectable

    def is_connected(self, direction: Cardinal) -> bool:
        return self.connections[int(direction)]

    def connection_count(self) -> int:
        return sum(1 for c in self.connections if c)

    def __repr__(self) -> str:
        return f"Cell({self.x},{self.y} {self.kind.value} tile={self.tile_id})"


__all__ = ["Cell", "CellKind", "Point"]
