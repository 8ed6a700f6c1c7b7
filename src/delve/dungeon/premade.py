from __future__ import annotations

import logging
import random
from pathlib import Path
from typing import TYPE_CHECKING, Any, List, Optional, Set, Tuple, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from ..errors import CatalogError
from .cardinals import Cardinal, step
from .cells import Cell, CellKind, Point
from .grid import TileGrid
from .rooms import Exit, Room, RoomIdAllocator, room_from_cells
from .tiles import LEGAL_TILE_IDS, exit_direction

if TYPE_CHECKING:  # pragma: no cover
    from .map_data import MapData

logger = logging.getLogger(__name__)

NOT_IN_ROOM = -1

# Premade rooms keep this many cells clear of every grid edge.
EDGE_MARGIN = 2


class ExitSpec(BaseModel):
    """Footprint-local exit: the footprint cell at (x, y) opens toward ``facing``."""

    model_config = ConfigDict(frozen=True)

    x: int = Field(..., ge=0)
    y: int = Field(..., ge=0)
    facing: Cardinal

    @field_validator("facing", mode="before")
    @classmethod
    def parse_facing(cls, v: Any) -> Any:
        # Accept "N"/"north"/"e" as well as the integer value
        if isinstance(v, str):
            key = v.strip().upper()[:1]
            if key not in Cardinal.__members__:
                raise ValueError(f"Unknown facing {v!r}; expected one of N, E, S, W")
            return Cardinal[key]
        return v


class PremadeFootprint(BaseModel):
    """A hand-authored room stamped into the grid before primary rooms.

    ``pattern`` is row-major with ``width * height`` entries. -1 marks a cell
    that is not part of the room; every other value is the tile id the cell
    keeps. Transition tiles that open toward one side declare an exit there;
    more exits can be listed explicitly.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Footprint name used in logs")
    width: int = Field(..., ge=1)
    height: int = Field(..., ge=1)
    pattern: List[int] = Field(..., description="Row-major tile ids, -1 for holes")
    exits: List[ExitSpec] = Field(default_factory=list, description="Additional explicit exits")

    @field_validator("pattern")
    @classmethod
    def check_tile_ids(cls, v: List[int]) -> List[int]:
        illegal = sorted({t for t in v if t != NOT_IN_ROOM and t not in LEGAL_TILE_IDS})
        if illegal:
            raise ValueError(f"Pattern contains unknown tile ids: {illegal}")
        return list(v)

    @model_validator(mode="after")
    def check_shape(self) -> "PremadeFootprint":
        if len(self.pattern) != self.width * self.height:
            raise ValueError(
                f"Pattern has {len(self.pattern)} entries but expected {self.width * self.height} (width*height)"
            )
        if all(t == NOT_IN_ROOM for t in self.pattern):
            raise ValueError("Pattern has no room cells")
        for ex in self.exits:
            if ex.x >= self.width or ex.y >= self.height:
                raise ValueError(f"Exit ({ex.x},{ex.y}) lies outside the {self.width}x{self.height} footprint")
            if self.tile_at(ex.x, ex.y) == NOT_IN_ROOM:
                raise ValueError(f"Exit ({ex.x},{ex.y}) is not on a room cell")
        if not self.exit_specs():
            raise ValueError("Footprint has no exits; use a transition tile or list one under 'exits'")
        return self

    def tile_at(self, x: int, y: int) -> int:
        return self.pattern[x + y * self.width]

    def exit_specs(self) -> List[Tuple[int, int, Cardinal]]:
        """Derived and explicit exits, without duplicates, in pattern order."""
        found: List[Tuple[int, int, Cardinal]] = []
        for i, tile_id in enumerate(self.pattern):
            if tile_id == NOT_IN_ROOM:
                continue
            facing = exit_direction(tile_id)
            if facing is not None:
                found.append((i % self.width, i // self.width, facing))
        for ex in self.exits:
            entry = (ex.x, ex.y, ex.facing)
            if entry not in found:
                found.append(entry)
        return found


def load_catalog(path: Union[str, Path]) -> List[PremadeFootprint]:
    """Load premade footprints from a YAML file with a top-level ``footprints`` list."""
    path = Path(path)
    if not path.exists():
        raise CatalogError(f"Premade catalog not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise CatalogError(f"Premade catalog {path} is not valid YAML: {exc}") from exc

    entries = raw.get("footprints") if isinstance(raw, dict) else None
    if not isinstance(entries, list):
        raise CatalogError(f"Premade catalog {path} must contain a 'footprints' list")
    try:
        footprints = [PremadeFootprint.model_validate(entry) for entry in entries]
    except ValidationError as exc:
        raise CatalogError(f"Invalid premade footprint in {path}: {exc}") from exc
    logger.info("Loaded %d premade footprints from %s", len(footprints), path)
    return footprints


class PremadeRoomPlacer:
    """Carves premade footprints into a grid.

    A placed room is sealed by a ring of INVALID cells so that corridors can
    only reach it through its exits. Footprint and ring cells are removed from
    availability and blocked for pathfinding. The cell just past each exit
    mouth is kept out of later rings so every corridor has a way out.
    """

    def __init__(self, grid: TileGrid, allocator: RoomIdAllocator, rng: random.Random) -> None:
        self.grid = grid
        self.allocator = allocator
        self.rng = rng
        self.exit_fronts: Set[Point] = set()

    def origin_allowed(self, footprint: PremadeFootprint, x: int, y: int) -> bool:
        return (
            x >= EDGE_MARGIN
            and y >= EDGE_MARGIN
            and x + footprint.width < self.grid.width - EDGE_MARGIN
            and y + footprint.height < self.grid.height - EDGE_MARGIN
        )

    def place(self, footprint: PremadeFootprint) -> Optional[Room]:
        """Stamp the footprint at the first shuffled origin that fits, or return None."""
        options = self.grid.available_cells()
        self.rng.shuffle(options)
        for option in options:
            if not option.available:
                continue
            if not self.origin_allowed(footprint, option.x, option.y):
                continue
            if not self.grid.is_area_available(option.x, option.y, footprint.width, footprint.height):
                continue
            room = self.place_at(footprint, option.position)
            if room is not None:
                return room
        logger.debug("No room for premade footprint %r", footprint.name)
        return None

    def _open_exits(
        self, footprint: PremadeFootprint, origin: Point, area: List[Cell]
    ) -> List[Tuple[Cell, Cell, Cardinal]]:
        """(footprint cell, mouth cell, facing) for every exit that can open here."""
        ox, oy = origin
        exits: List[Tuple[Cell, Cell, Cardinal]] = []
        for lx, ly, facing in footprint.exit_specs():
            inner = self.grid.at((ox + lx, oy + ly))
            outer = self.grid.get(*step(inner.position, facing))
            front = self.grid.get(*step(outer.position, facing)) if outer is not None else None
            if outer is None or front is None:
                reason = "leads off the grid"
            elif outer in area or front in area:
                reason = "opens inside its own footprint"
            elif outer.occupied or front.occupied:
                reason = "is already occupied"
            else:
                exits.append((inner, outer, facing))
                continue
            logger.debug("Exit of %r at %s %s; skipped", footprint.name, inner.position, reason)
        return exits

    def place_at(self, footprint: PremadeFootprint, origin: Point) -> Optional[Room]:
        """Stamp the footprint with its top-left cell at ``origin``.

        Returns None without touching the grid when the footprint area is not
        fully available, when none of its exits can open, or when its ring
        would cover the cell in front of an earlier room's exit.
        """
        ox, oy = origin
        grid = self.grid
        area = grid.available_area(ox, oy, footprint.width, footprint.height)
        if area is None:
            logger.debug("Premade footprint %r cannot be stamped at %s", footprint.name, origin)
            return None

        exits = self._open_exits(footprint, origin, area)
        if not exits:
            logger.debug("Premade footprint %r has no usable exit at %s", footprint.name, origin)
            return None
        exit_cells = [outer for _inner, outer, _facing in exits]
        ring = [
            cell
            for cell in grid.subregion(ox - 1, oy - 1, footprint.width + 2, footprint.height + 2)
            if cell not in area and cell not in exit_cells and not cell.occupied
        ]
        if any(cell.position in self.exit_fronts for cell in area + ring):
            logger.debug("Premade footprint %r at %s would seal another exit", footprint.name, origin)
            return None

        room_id = self.allocator.allocate()
        room_cells: List[Cell] = []
        for cell in area:
            tile_id = footprint.tile_at(cell.x - ox, cell.y - oy)
            if tile_id == NOT_IN_ROOM:
                grid.set_kind(cell, CellKind.INVALID)
            else:
                grid.set_kind(cell, CellKind.PREMADE_ROOM)
                cell.room_id = room_id
                cell.tile_id = tile_id
                room_cells.append(cell)
        for cell in ring:
            grid.set_kind(cell, CellKind.INVALID)
        for cell in area + ring:
            grid.reserve(cell)
            grid.block(cell)

        for inner, outer, facing in exits:
            grid.set_kind(outer, CellKind.HALLWAY)
            grid.allow_boundary_link(inner.position, outer.position)
            grid.link(inner, outer)
            self.exit_fronts.add(step(outer.position, facing))

        room = room_from_cells(
            room_cells,
            room_id,
            self.rng,
            is_premade=True,
            exits=[Exit(outer.position, facing) for _inner, outer, facing in exits],
        )
        logger.info(
            "Placed premade room %r (id=%d) at %s with %d exits",
            footprint.name,
            room_id,
            origin,
            len(room.exits),
        )
        return room

    def place_all(self, footprints: List[PremadeFootprint]) -> List[Room]:
        rooms: List[Room] = []
        for footprint in footprints:
            room = self.place(footprint)
            if room is not None:
                rooms.append(room)
            else:
                logger.warning("Premade footprint %r could not be placed", footprint.name)
        return rooms


def find_matching_tile_group(map_data: "MapData", footprint: PremadeFootprint) -> Optional[Point]:
    """Top-left coordinate of the first region whose tile ids match the footprint.

    Pattern cells set to -1 match anything. Regions are scanned row by row.
    """
    for y in range(map_data.height - footprint.height + 1):
        for x in range(map_data.width - footprint.width + 1):
            if _matches_at(map_data, footprint, x, y):
                return (x, y)
    return None


def _matches_at(map_data: "MapData", footprint: PremadeFootprint, x: int, y: int) -> bool:
    for j in range(footprint.height):
        for i in range(footprint.width):
            expected = footprint.tile_at(i, j)
            if expected == NOT_IN_ROOM:
                continue
            if map_data.cell(x + i, y + j).tile_id != expected:
                return False
    return True


__all__ = [
    "ExitSpec",
    "PremadeFootprint",
    "PremadeRoomPlacer",
    "load_catalog",
    "find_matching_tile_group",
]
