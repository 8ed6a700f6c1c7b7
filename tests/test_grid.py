import random

import pytest

from delve.dungeon.cardinals import Cardinal
from delve.dungeon.cells import CellKind
from delve.dungeon.grid import TileGrid
from delve.errors import ConnectivityError


def test_rejects_non_positive_dimensions():
    with pytest.raises(ValueError):
        TileGrid(0, 5)


def test_cells_are_row_major():
    grid = TileGrid(4, 3)
    assert len(grid.cells) == 12
    assert grid.index(3, 2) == 11
    cell = grid.cells[grid.index(1, 2)]
    assert cell.position == (1, 2)
    assert grid.get(4, 0) is None
    assert grid.get(-1, 0) is None
    with pytest.raises(IndexError):
        grid.at((0, 3))


def test_new_cells_are_empty_and_available():
    grid = TileGrid(2, 2)
    for cell in grid.cells:
        assert cell.kind is CellKind.EMPTY
        assert cell.available
        assert cell.tile_id is None
        assert cell.room_id is None
        assert cell.connections == [False, False, False, False]


def test_set_kind_removes_availability():
    grid = TileGrid(3, 3)
    cell = grid.at((1, 1))
    grid.set_kind(cell, CellKind.HALLWAY)
    assert not cell.available
    assert cell not in grid.available_cells()
    assert len(grid.available_cells()) == 8
    assert not grid.is_area_available(0, 0, 2, 2)
    assert grid.is_area_available(0, 0, 1, 3)
    assert grid.available_area(2, 2, 2, 1) is None


def test_neighbors_are_ordered_n_e_s_w():
    grid = TileGrid(3, 3)
    corner = grid.at((0, 0))
    n, e, s, w = grid.neighbors4(corner)
    assert n is None and w is None
    assert e.position == (1, 0)
    assert s.position == (0, 1)

    grid.set_kind(e, CellKind.HALLWAY)
    assert grid.occupied_neighbors(corner)[1] is e
    assert grid.unoccupied_neighbors(corner)[1] is None
    assert grid.random_unoccupied_neighbor(corner, random.Random(0)) is s


def test_link_sets_both_sides():
    grid = TileGrid(3, 3)
    a, b = grid.at((0, 0)), grid.at((1, 0))
    grid.set_kind(a, CellKind.HALLWAY)
    grid.set_kind(b, CellKind.PRIMARY_ROOM)
    grid.link(a, b)
    assert a.is_connected(Cardinal.E)
    assert b.is_connected(Cardinal.W)
    assert a.connection_count() == 1


def test_link_rejects_empty_invalid_and_distant_cells():
    grid = TileGrid(4, 4)
    a, b, far = grid.at((0, 0)), grid.at((1, 0)), grid.at((3, 3))
    grid.set_kind(a, CellKind.HALLWAY)
    with pytest.raises(ConnectivityError):
        grid.link(a, b)
    grid.set_kind(b, CellKind.INVALID)
    with pytest.raises(ConnectivityError):
        grid.link(a, b)
    grid.set_kind(far, CellKind.HALLWAY)
    with pytest.raises(ConnectivityError):
        grid.link(a, far)
    with pytest.raises(ConnectivityError):
        grid.connect(a, Cardinal.N)


def test_premade_cells_only_link_through_declared_boundaries():
    grid = TileGrid(4, 1)
    hall, inner, other = grid.at((0, 0)), grid.at((1, 0)), grid.at((2, 0))
    grid.set_kind(hall, CellKind.HALLWAY)
    for cell in (inner, other):
        grid.set_kind(cell, CellKind.PREMADE_ROOM)
        cell.room_id = 7
    assert grid.can_link(inner, other)
    assert not grid.can_link(hall, inner)
    grid.allow_boundary_link(inner.position, hall.position)
    assert grid.can_link(hall, inner)


def test_connect_occupied_neighbors_links_every_pair_once():
    grid = TileGrid(3, 3)
    for p in ((0, 0), (1, 0), (0, 1), (1, 1)):
        grid.set_kind(grid.at(p), CellKind.PRIMARY_ROOM)
    grid.set_kind(grid.at((2, 0)), CellKind.INVALID)
    assert grid.connect_occupied_neighbors() == 4
    assert grid.connect_occupied_neighbors() == 0
    assert not grid.at((1, 0)).is_connected(Cardinal.E)
