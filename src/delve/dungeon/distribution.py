from __future__ import annotations

import logging
import math
import random
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..errors import UnsupportedStrategyError
from .cells import Cell, CellKind
from .grid import TileGrid
from .rooms import Room, RoomIdAllocator, room_from_cells

logger = logging.getLogger(__name__)

ROOM_MIN_SIZE = 2
ROOM_MAX_SIZE = 3


class DistributionStyle(str, Enum):
    RANDOM = "random"
    EVEN = "even"
    CLUSTERED = "clustered"


def place_primary_room(
    grid: TileGrid, area: Sequence[Cell], allocator: RoomIdAllocator, rng: random.Random
) -> Room:
    room_id = allocator.allocate()
    for cell in area:
        grid.set_kind(cell, CellKind.PRIMARY_ROOM)
        cell.room_id = room_id
    room = room_from_cells(area, room_id, rng)
    logger.debug("Placed primary room %d with %d cells at %s", room_id, len(area), area[0].position)
    return room


def _try_room_at(
    grid: TileGrid, origin: Cell, allocator: RoomIdAllocator, rng: random.Random
) -> Optional[Room]:
    """Roll a 2..3 sized room at ``origin``; None when it does not fit."""
    width = min(rng.randint(ROOM_MIN_SIZE, ROOM_MAX_SIZE), grid.width - origin.x)
    height = min(rng.randint(ROOM_MIN_SIZE, ROOM_MAX_SIZE), grid.height - origin.y)
    if width < ROOM_MIN_SIZE or height < ROOM_MIN_SIZE:
        return None
    area = grid.available_area(origin.x, origin.y, width, height)
    if area is None:
        return None
    return place_primary_room(grid, area, allocator, rng)


def distribute_random(
    grid: TileGrid, desired_count: int, rng: random.Random, allocator: RoomIdAllocator
) -> List[Room]:
    """One placement attempt per requested room at shuffled available cells."""
    options = grid.available_cells()
    rng.shuffle(options)
    rooms: List[Room] = []
    for option in options[:desired_count]:
        room = _try_room_at(grid, option, allocator, rng)
        if room is not None:
            rooms.append(room)
    return rooms


def even_bucket_counts(width: int, height: int, desired_count: int) -> Tuple[int, int]:
    """Number of buckets across and down for ``desired_count`` rooms."""
    root = math.sqrt(max(desired_count, 1))
    x_count = max(1, round(root * width / height))
    y_count = max(1, round(root))
    return min(x_count, width), min(y_count, height)


def distribute_even(
    grid: TileGrid, desired_count: int, rng: random.Random, allocator: RoomIdAllocator
) -> List[Room]:
    """Split the grid into buckets and place at most one room in each of the first N.

    Within a bucket, shuffled origins are tried until a room fits or the bucket
    runs out of cells.
    """
    x_count, y_count = even_bucket_counts(grid.width, grid.height, desired_count)
    bucket_w = grid.width // x_count
    bucket_h = grid.height // y_count
    buckets = [
        grid.subregion(i * bucket_w, j * bucket_h, bucket_w, bucket_h)
        for i in range(x_count)
        for j in range(y_count)
    ]
    rng.shuffle(buckets)
    logger.debug(
        "Even distribution: %dx%d buckets of %dx%d cells", x_count, y_count, bucket_w, bucket_h
    )

    rooms: List[Room] = []
    for bucket in buckets[:desired_count]:
        options = list(bucket)
        rng.shuffle(options)
        for option in options:
            if not option.available:
                continue
            room = _try_room_at(grid, option, allocator, rng)
            if room is not None:
                rooms.append(room)
                break
    return rooms


Distributor = Callable[[TileGrid, int, random.Random, RoomIdAllocator], List[Room]]

DISTRIBUTORS: Dict[DistributionStyle, Distributor] = {
    DistributionStyle.RANDOM: distribute_random,
    DistributionStyle.EVEN: distribute_even,
}


def generate_rooms(
    style: DistributionStyle,
    grid: TileGrid,
    desired_count: int,
    rng: random.Random,
    allocator: RoomIdAllocator,
) -> List[Room]:
    """Place up to ``desired_count`` primary rooms with the given style.

    Fewer rooms than requested is not an error. Styles without an implementation
    raise ``UnsupportedStrategyError`` before the grid is touched.
    """
    distributor = DISTRIBUTORS.get(style)
    if distributor is None:
        raise UnsupportedStrategyError(f"Room distribution style {style!r} is not supported")
    rooms = distributor(grid, desired_count, rng, allocator)
    if len(rooms) < desired_count:
        logger.debug("Placed %d of %d requested rooms", len(rooms), desired_count)
    logger.info("Distributed %d primary rooms (%s)", len(rooms), getattr(style, "value", style))
    return rooms


__all__ = [
    "DistributionStyle",
    "DISTRIBUTORS",
    "generate_rooms",
    "distribute_random",
    "distribute_even",
    "even_bucket_counts",
    "place_primary_room",
]
