"""Legal tile identifiers and their families.

A tile id is an 8-bit neighborhood mask (see :mod:`delve.dungeon.autotile`).
Only the ids listed here have a defined meaning for map consumers; anything else
is a generation defect and is reported through :class:`UnknownTileError`.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from enum import Enum
from typing import TYPE_CHECKING, Dict, FrozenSet, List, Optional, Tuple

from ..errors import UnknownTileError
from .cardinals import Cardinal

if TYPE_CHECKING:  # pragma: no cover
    from .grid import TileGrid

logger = logging.getLogger(__name__)


class TileFamily(str, Enum):
    ISLAND = "island"
    END = "end"
    WALL = "wall"
    CORNER = "corner"
    INSIDE_CORNER = "inside_corner"
    HALL = "hall"
    TURN = "turn"
    INTERSECTION = "intersection"
    TRANSITION = "transition"
    ROOM = "room"
    OPEN = "open"


FAMILIES: Dict[TileFamily, FrozenSet[int]] = {
    TileFamily.ISLAND: frozenset({0}),
    TileFamily.END: frozenset({2, 8, 16, 64}),
    TileFamily.WALL: frozenset({31, 107, 214, 248}),
    TileFamily.CORNER: frozenset({11, 22, 104, 208}),
    TileFamily.INSIDE_CORNER: frozenset({127, 223, 251, 254}),
    TileFamily.HALL: frozenset({24, 66}),
    TileFamily.TURN: frozenset({10, 18, 72, 80}),
    TileFamily.INTERSECTION: frozenset({26, 74, 82, 88, 90}),
    TileFamily.TRANSITION: frozenset(
        {27, 30, 75, 86, 91, 94, 95, 106, 120, 122, 123, 210, 216, 218, 222, 250}
    ),
    TileFamily.ROOM: frozenset({126, 219}),
    TileFamily.OPEN: frozenset({255}),
}

_FAMILY_BY_ID: Dict[int, TileFamily] = {
    tile_id: family for family, ids in FAMILIES.items() for tile_id in ids
}

LEGAL_TILE_IDS: FrozenSet[int] = frozenset(_FAMILY_BY_ID)

END_PIECES = FAMILIES[TileFamily.END]

# Families a branch may grow out of.
BRANCHABLE_FAMILIES = (TileFamily.WALL, TileFamily.HALL, TileFamily.TURN)

# Transition pieces used in premade footprints open toward one side.
_EXIT_DIRECTIONS: Dict[int, Cardinal] = {
    27: Cardinal.S,
    30: Cardinal.N,
    75: Cardinal.E,
    86: Cardinal.E,
    95: Cardinal.E,
    106: Cardinal.W,
    120: Cardinal.S,
    123: Cardinal.S,
    210: Cardinal.W,
    216: Cardinal.N,
    222: Cardinal.N,
    250: Cardinal.W,
}


def is_legal(tile_id: Optional[int]) -> bool:
    return tile_id is not None and tile_id in LEGAL_TILE_IDS


def classify(tile_id: Optional[int]) -> TileFamily:
    """Return the family of a tile id; unknown ids raise ``UnknownTileError``."""
    family = _FAMILY_BY_ID.get(tile_id) if tile_id is not None else None
    if family is None:
        raise UnknownTileError(tile_id)
    return family


def in_family(tile_id: Optional[int], *families: TileFamily) -> bool:
    family = _FAMILY_BY_ID.get(tile_id) if tile_id is not None else None
    return family is not None and family in families


def exit_direction(tile_id: int) -> Optional[Cardinal]:
    """Side a premade transition tile opens toward, or None."""
    return _EXIT_DIRECTIONS.get(tile_id)


def validate_grid(grid: "TileGrid") -> None:
    """Raise ``UnknownTileError`` if any connectable cell has an illegal tile id."""
    bad: Dict[Optional[int], List[Tuple[int, int]]] = defaultdict(list)
    for cell in grid.cells:
        if cell.connectable and not is_legal(cell.tile_id):
            bad[cell.tile_id].append(cell.position)
    if bad:
        tile_id, positions = next(iter(bad.items()))
        logger.error("Illegal tile ids found: %s", {k: len(v) for k, v in bad.items()})
        raise UnknownTileError(tile_id, positions)


__all__ = [
    "TileFamily",
    "FAMILIES",
    "LEGAL_TILE_IDS",
    "END_PIECES",
    "BRANCHABLE_FAMILIES",
    "is_legal",
    "classify",
    "in_family",
    "exit_direction",
    "validate_grid",
]
