from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .cardinals import Cardinal
from .cells import Cell, CellKind, Point
from .grid import TileGrid

logger = logging.getLogger(__name__)

_GLYPHS = {
    CellKind.EMPTY: ".",
    CellKind.PRIMARY_ROOM: "R",
    CellKind.PREMADE_ROOM: "P",
    CellKind.HALLWAY: "+",
    CellKind.BORDER: "B",
    CellKind.INVALID: "~",
}


@dataclass(frozen=True)
class CellSnapshot:
    x: int
    y: int
    kind: CellKind
    room_id: Optional[int]
    connections: Tuple[bool, bool, bool, bool]
    tile_id: Optional[int]
    is_exit: bool = False

    @classmethod
    def of(cls, cell: Cell) -> "CellSnapshot":
        return cls(
            x=cell.x,
            y=cell.y,
            kind=cell.kind,
            room_id=cell.room_id,
            connections=tuple(cell.connections),  # type: ignore[arg-type]
            tile_id=cell.tile_id,
            is_exit=cell.is_exit,
        )

    @property
    def position(self) -> Point:
        return (self.x, self.y)

    def is_connected(self, direction: Cardinal) -> bool:
        return self.connections[int(direction)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "x": self.x,
            "y": self.y,
            "kind": self.kind.value,
            "room_id": self.room_id,
            "connections": list(self.connections),
            "tile_id": self.tile_id,
            "is_exit": self.is_exit,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CellSnapshot":
        connections = tuple(bool(c) for c in data.get("connections", (False,) * 4))
        if len(connections) != 4:
            raise ValueError(f"Cell {data.get('x')},{data.get('y')} needs 4 connection flags")
        return cls(
            x=int(data["x"]),
            y=int(data["y"]),
            kind=CellKind(data.get("kind", CellKind.EMPTY.value)),
            room_id=data.get("room_id"),
            connections=connections,  # type: ignore[arg-type]
            tile_id=data.get("tile_id"),
            is_exit=bool(data.get("is_exit", False)),
        )


@dataclass(frozen=True)
class MapData:
    """Finished map handed to consumers.

    Cells are row-major immutable snapshots, so nothing here refers back to the
    grid that produced them.
    """

    cells: Tuple[CellSnapshot, ...]
    width: int
    height: int
    entrance: Point
    facing: Cardinal
    exit: Point
    seed: str = ""

    @classmethod
    def from_grid(
        cls,
        grid: TileGrid,
        entrance: Point,
        exit: Point,
        facing: Cardinal = Cardinal.N,
        seed: str = "",
    ) -> "MapData":
        return cls(
            cells=tuple(CellSnapshot.of(c) for c in grid.cells),
            width=grid.width,
            height=grid.height,
            entrance=entrance,
            facing=facing,
            exit=exit,
            seed=seed,
        )

    def cell(self, x: int, y: int) -> CellSnapshot:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Cell {(x, y)} out of bounds")
        return self.cells[x + y * self.width]

    def occupied(self) -> List[CellSnapshot]:
        return [c for c in self.cells if c.kind.occupied]

    # ------------------------ Serialization ------------------------
    def to_dict(self) -> Dict[str, Any]:
        return {
            "width": self.width,
            "height": self.height,
            "entrance": list(self.entrance),
            "facing": self.facing.name,
            "exit": list(self.exit),
            "seed": self.seed,
            "cells": [c.to_dict() for c in self.cells],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MapData":
        """Rebuild a map from ``to_dict`` output, e.g. one saved to JSON earlier."""
        width = int(data["width"])
        height = int(data["height"])
        cells = tuple(CellSnapshot.from_dict(c) for c in data["cells"])
        if len(cells) != width * height:
            raise ValueError(f"Map has {len(cells)} cells but expected {width * height} (width*height)")
        for i, c in enumerate(cells):
            if (c.x, c.y) != (i % width, i // width):
                raise ValueError(f"Cell {i} is at {(c.x, c.y)}; cells must be row-major")
        ex, ey = data["entrance"]
        xx, xy = data["exit"]
        return cls(
            cells=cells,
            width=width,
            height=height,
            entrance=(int(ex), int(ey)),
            facing=Cardinal[data.get("facing", "N")],
            exit=(int(xx), int(xy)),
            seed=str(data.get("seed", "")),
        )

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True)

    def signature(self) -> str:
        """Deterministic signature of the layout (cells, tiles, connections, doors)."""
        payload = {
            "w": self.width,
            "h": self.height,
            "cells": [
                (c.kind.value, c.room_id, c.tile_id, c.connections, c.is_exit) for c in self.cells
            ],
            "entrance": self.entrance,
            "exit": self.exit,
        }
        raw = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
        return hashlib.blake2b(raw, digest_size=16).hexdigest()

    def render_ascii(self) -> str:
        """One character per cell: R room, P premade, + hall, ~ invalid, E/X doors."""
        rows: List[str] = []
        for y in range(self.height):
            row = []
            for x in range(self.width):
                c = self.cells[x + y * self.width]
                if c.kind is CellKind.DOOR:
                    row.append("X" if c.is_exit else "E")
                else:
                    row.append(_GLYPHS[c.kind])
            rows.append("".join(row))
        return "\n".join(rows)


__all__ = ["CellSnapshot", "MapData"]
