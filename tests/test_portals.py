import random

import pytest

from delve.dungeon.autotile import TileMode
from delve.dungeon.cells import CellKind
from delve.dungeon.grid import TileGrid
from delve.dungeon.portals import end_pieces, select_portals
from delve.errors import PortalError


def hallway(grid, points):
    for p in points:
        grid.set_kind(grid.at(p), CellKind.HALLWAY)
    grid.connect_occupied_neighbors()
    grid.retile(TileMode.CONNECTIVITY)


def test_dead_ends_become_doors():
    grid = TileGrid(10, 3)
    hallway(grid, [(x, 1) for x in range(2, 7)])
    assert {c.position for c in end_pieces(grid)} == {(2, 1), (6, 1)}

    entrance, exit_ = select_portals(grid, random.Random(0))
    assert {entrance.position, exit_.position} == {(2, 1), (6, 1)}
    assert entrance.kind is CellKind.DOOR and exit_.kind is CellKind.DOOR
    assert exit_.is_exit and not entrance.is_exit
    assert len(grid.cells_of_kind(CellKind.DOOR)) == 2


def test_loop_without_dead_ends_grows_shoots():
    grid = TileGrid(12, 12)
    ring = [(x, y) for x in range(4, 7) for y in range(4, 7) if (x, y) != (5, 5)]
    grid.set_kind(grid.at((5, 5)), CellKind.INVALID)
    hallway(grid, ring)
    assert end_pieces(grid) == []

    entrance, exit_ = select_portals(grid, random.Random(2))
    assert entrance is not exit_
    assert entrance.position not in ring
    assert exit_.position not in ring
    assert len(grid.cells_of_kind(CellKind.DOOR)) == 2


def lone_room(grid, x0, y0):
    for x in range(x0, x0 + 2):
        for y in range(y0, y0 + 2):
            grid.set_kind(grid.at((x, y)), CellKind.PRIMARY_ROOM)


def test_sealed_room_raises():
    grid = TileGrid(6, 6)
    lone_room(grid, 2, 2)
    for cell in grid.subregion(1, 1, 4, 4):
        if not cell.occupied:
            grid.set_kind(cell, CellKind.INVALID)
    grid.connect_occupied_neighbors()
    grid.retile(TileMode.CONNECTIVITY)
    with pytest.raises(PortalError) as info:
        select_portals(grid, random.Random(0))
    assert info.value.found == 0


@pytest.mark.parametrize("rng_seed", range(8))
def test_shoots_try_every_open_side_of_an_edge(rng_seed, reachable):
    # Loop in the corner: (2, 2) has one free cell east and two south,
    # (2, 1) has a single free cell east
    grid = TileGrid(5, 5)
    ring = [(x, y) for x in range(3) for y in range(3) if (x, y) != (1, 1)]
    open_cells = {(3, 1), (3, 2), (2, 3), (2, 4)}
    for cell in grid.cells:
        if cell.position not in open_cells and cell.position not in ring:
            grid.set_kind(cell, CellKind.INVALID)
    hallway(grid, ring)
    assert end_pieces(grid) == []

    entrance, exit_ = select_portals(grid, random.Random(rng_seed))
    assert {entrance.position, exit_.position} == {(2, 4), (3, 1)}
    assert grid.at((3, 2)).kind is CellKind.EMPTY
    assert reachable(grid, entrance.position) == set(ring) | {(3, 1), (2, 3), (2, 4)}


@pytest.mark.parametrize("rng_seed", range(6))
def test_room_of_corner_tiles_still_gets_portals(rng_seed, reachable):
    grid = TileGrid(6, 6)
    lone_room(grid, 2, 2)
    grid.connect_occupied_neighbors()
    grid.retile(TileMode.CONNECTIVITY)
    assert all(c.tile_id in (208, 22, 104, 11) for c in grid.occupied_cells())

    entrance, exit_ = select_portals(grid, random.Random(rng_seed))
    occupied = {c.position for c in grid.occupied_cells()}
    assert reachable(grid, entrance.position) == occupied
    assert exit_.position in occupied
    assert len(grid.cells_of_kind(CellKind.DOOR)) == 2
