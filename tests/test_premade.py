import random
from pathlib import Path

import pytest
from pydantic import ValidationError

from delve.dungeon.autotile import TileMode
from delve.dungeon.cardinals import Cardinal
from delve.dungeon.cells import CellKind
from delve.dungeon.connectivity import Graph, GraphMerger
from delve.dungeon.distribution import place_primary_room
from delve.dungeon.grid import TileGrid
from delve.dungeon.map_data import MapData
from delve.dungeon.pathfinding import Pathfinder
from delve.dungeon.premade import (
    PremadeFootprint,
    PremadeRoomPlacer,
    find_matching_tile_group,
    load_catalog,
)
from delve.dungeon.rooms import Exit, RoomIdAllocator
from delve.errors import CatalogError

# 3x3 room with a single doorway on the east side
HALL_ROOM = [208, 214, 22, 248, 255, 95, 104, 107, 11]
WEST_DOOR = {"x": 0, "y": 0, "facing": "W"}


def single_exit_east():
    return PremadeFootprint(name="stub", width=1, height=1, pattern=[75])


def test_footprint_validates_pattern_shape_and_ids():
    with pytest.raises(ValidationError):
        PremadeFootprint(name="short", width=2, height=2, pattern=[255, 255, 255])
    with pytest.raises(ValidationError):
        PremadeFootprint(name="illegal", width=1, height=1, pattern=[3])
    with pytest.raises(ValidationError):
        PremadeFootprint(name="hollow", width=1, height=1, pattern=[-1])
    with pytest.raises(ValidationError):
        PremadeFootprint(name="bad-exit", width=1, height=1, pattern=[255], exits=[{"x": 1, "y": 0, "facing": "E"}])
    with pytest.raises(ValidationError):
        PremadeFootprint(name="vault", width=2, height=2, pattern=[255] * 4)


def test_exits_are_derived_from_transition_tiles():
    fp = PremadeFootprint(name="hall-room", width=3, height=3, pattern=HALL_ROOM)
    assert fp.exit_specs() == [(2, 1, Cardinal.E)]
    assert fp.tile_at(2, 1) == 95


def test_explicit_exits_accept_facing_names():
    fp = PremadeFootprint(
        name="explicit",
        width=2,
        height=1,
        pattern=[66, 66],
        exits=[{"x": 0, "y": 0, "facing": "north"}, {"x": 1, "y": 0, "facing": 2}],
    )
    assert fp.exit_specs() == [(0, 0, Cardinal.N), (1, 0, Cardinal.S)]


def test_place_at_links_exit_back_to_footprint():
    grid = TileGrid(12, 12)
    placer = PremadeRoomPlacer(grid, RoomIdAllocator(), random.Random(3))
    room = placer.place_at(single_exit_east(), (4, 4))

    assert room is not None and room.is_premade
    assert room.cells == ((4, 4),)
    assert room.exits == (Exit((5, 4), Cardinal.E),)

    inner, outer = grid.at((4, 4)), grid.at((5, 4))
    assert inner.kind is CellKind.PREMADE_ROOM
    assert inner.tile_id == 75
    assert outer.kind is CellKind.HALLWAY
    assert outer.is_connected(Cardinal.W)
    assert inner.is_connected(Cardinal.E)

    for p in ((3, 3), (4, 3), (5, 3), (3, 4), (3, 5), (4, 5), (5, 5)):
        assert grid.at(p).kind is CellKind.INVALID
        assert p in grid.blocked
    assert (4, 4) in grid.blocked
    assert (5, 4) not in grid.blocked
    assert not outer.available


def test_exit_is_connected_to_a_primary_room():
    grid = TileGrid(12, 12)
    rng = random.Random(11)
    allocator = RoomIdAllocator()
    premade = PremadeRoomPlacer(grid, allocator, rng).place_at(single_exit_east(), (4, 4))
    primary = place_primary_room(grid, grid.available_area(8, 3, 2, 3), allocator, rng)

    pathfinder = Pathfinder(grid)
    merger = GraphMerger(grid, pathfinder)
    graph = Graph()
    made = merger.connect_premade([premade], graph, [primary])
    assert len(made) == 1
    assert made[0].path[0] == (5, 4)
    assert premade.room_id in graph.room_ids and primary.room_id in graph.room_ids
    route = pathfinder.find_route((5, 4), primary.anchor)
    assert route[-1] == primary.anchor
    for p in made[0].path:
        assert grid.at(p).kind is CellKind.HALLWAY


def test_place_respects_edge_margin():
    fp = PremadeFootprint(name="hall-room", width=3, height=3, pattern=HALL_ROOM)
    for seed in range(5):
        grid = TileGrid(12, 12)
        room = PremadeRoomPlacer(grid, RoomIdAllocator(), random.Random(seed)).place(fp)
        assert room is not None
        assert room.min_x >= 2 and room.min_y >= 2
        assert room.max_x + 1 < 12 - 2 and room.max_y + 1 < 12 - 2


def test_place_under_delivers_on_small_grid():
    fp = PremadeFootprint(name="hall-room", width=3, height=3, pattern=HALL_ROOM)
    grid = TileGrid(6, 6)
    assert PremadeRoomPlacer(grid, RoomIdAllocator(), random.Random(0)).place(fp) is None
    assert all(c.kind is CellKind.EMPTY for c in grid.cells)


def test_place_at_refuses_occupied_area():
    grid = TileGrid(12, 12)
    grid.set_kind(grid.at((4, 4)), CellKind.HALLWAY)
    placer = PremadeRoomPlacer(grid, RoomIdAllocator(), random.Random(0))
    assert placer.place_at(single_exit_east(), (4, 4)) is None
    assert not grid.blocked


def test_place_at_needs_an_open_exit():
    grid = TileGrid(12, 12)
    placer = PremadeRoomPlacer(grid, RoomIdAllocator(), random.Random(0))
    # Exit mouth on the last column leaves nothing in front of it
    assert placer.place_at(single_exit_east(), (10, 4)) is None
    grid.set_kind(grid.at((6, 4)), CellKind.HALLWAY)
    assert placer.place_at(single_exit_east(), (4, 4)) is None
    assert all(c.kind is not CellKind.PREMADE_ROOM for c in grid.cells)
    assert not grid.blocked


def test_crowded_premade_rooms_keep_exits_open():
    grid = TileGrid(14, 10)
    placer = PremadeRoomPlacer(grid, RoomIdAllocator(), random.Random(0))
    first = placer.place_at(single_exit_east(), (4, 4))
    assert first is not None
    # Its ring would cover (6, 4), the cell in front of the first exit
    assert placer.place_at(single_exit_east(), (7, 4)) is None
    assert grid.at((7, 4)).kind is CellKind.EMPTY
    second = placer.place_at(single_exit_east(), (8, 4))
    assert second is not None
    assert grid.at((6, 4)).kind is CellKind.EMPTY
    assert (6, 4) not in grid.blocked


def test_place_tries_other_origins_when_exits_are_blocked():
    fp = PremadeFootprint(name="hall-room", width=3, height=3, pattern=HALL_ROOM)
    for seed in range(5):
        grid = TileGrid(12, 12)
        # Only origins with x <= 3 leave room in front of the east exit
        for y in range(12):
            grid.set_kind(grid.at((8, y)), CellKind.INVALID)
        room = PremadeRoomPlacer(grid, RoomIdAllocator(), random.Random(seed)).place(fp)
        assert room is not None
        assert room.exits[0].position[0] <= 6


def test_holes_become_invalid_and_keep_stamped_ids():
    fp = PremadeFootprint(
        name="split", width=3, height=1, pattern=[24, -1, 24], exits=[{"x": 0, "y": 0, "facing": "W"}]
    )
    grid = TileGrid(10, 10)
    room = PremadeRoomPlacer(grid, RoomIdAllocator(), random.Random(0)).place_at(fp, (3, 3))
    assert set(room.cells) == {(3, 3), (5, 3)}
    assert grid.at((4, 3)).kind is CellKind.INVALID
    assert (4, 3) in grid.blocked
    grid.retile(TileMode.CONNECTIVITY)
    assert grid.at((3, 3)).tile_id == 24
    assert grid.at((4, 3)).tile_id is None


def write_catalog(tmp_path: Path, body: str) -> Path:
    path = tmp_path / "premade.yaml"
    path.write_text(body, encoding="utf-8")
    return path


def test_load_catalog(tmp_path: Path):
    path = write_catalog(
        tmp_path,
        """
footprints:
  - name: hall-room
    width: 3
    height: 3
    pattern: [208, 214, 22, 248, 255, 95, 104, 107, 11]
  - name: stub
    width: 1
    height: 1
    pattern: [255]
    exits:
      - {x: 0, y: 0, facing: W}
""",
    )
    footprints = load_catalog(path)
    assert [fp.name for fp in footprints] == ["hall-room", "stub"]
    assert footprints[1].exit_specs() == [(0, 0, Cardinal.W)]


@pytest.mark.parametrize(
    "body",
    [
        "rooms: []\n",
        "footprints:\n  - name: x\n    width: 2\n    height: 1\n    pattern: [255]\n",
        "footprints: [\n",
    ],
)
def test_load_catalog_rejects_bad_files(tmp_path: Path, body: str):
    with pytest.raises(CatalogError):
        load_catalog(write_catalog(tmp_path, body))


def test_load_catalog_missing_file(tmp_path: Path):
    with pytest.raises(CatalogError):
        load_catalog(tmp_path / "nope.yaml")


def tiled_map():
    grid = TileGrid(4, 3)
    for p, tile_id in (((1, 1), 24), ((2, 1), 66), ((3, 2), 24)):
        cell = grid.at(p)
        grid.set_kind(cell, CellKind.HALLWAY)
        cell.tile_id = tile_id
    return MapData.from_grid(grid, entrance=(1, 1), exit=(2, 1))


def test_find_matching_tile_group():
    data = tiled_map()
    exact = PremadeFootprint(name="pair", width=2, height=1, pattern=[24, 66], exits=[WEST_DOOR])
    assert find_matching_tile_group(data, exact) == (1, 1)

    wildcard = PremadeFootprint(
        name="tail", width=2, height=1, pattern=[-1, 24], exits=[{"x": 1, "y": 0, "facing": "E"}]
    )
    assert find_matching_tile_group(data, wildcard) == (0, 1)

    missing = PremadeFootprint(name="none", width=1, height=1, pattern=[255], exits=[WEST_DOOR])
    assert find_matching_tile_group(data, missing) is None
