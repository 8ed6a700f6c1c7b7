import pytest

from delve.config import GenerationSettings
from delve.dungeon.cells import CellKind
from delve.dungeon.generator import generate_map
from delve.rng import LAYOUT, PORTALS, RunSeeder, seed_bytes


def test_same_seed_same_streams():
    a = RunSeeder.from_seed("abc").for_run(0)
    b = RunSeeder.from_seed("abc").for_run(0)
    assert [a.layout.random() for _ in range(5)] == [b.layout.random() for _ in range(5)]
    assert a.portals.random() == b.portals.random()


def test_phases_and_runs_are_independent():
    seeder = RunSeeder.from_seed(12345)
    assert seeder.phase_seed(LAYOUT, 0) != seeder.phase_seed(LAYOUT, 1)
    assert seeder.phase_seed(LAYOUT, 0) != seeder.phase_seed(PORTALS, 0)
    assert RunSeeder.from_seed(1).phase_seed(LAYOUT) != RunSeeder.from_seed(2).phase_seed(LAYOUT)


def test_seed_forms():
    assert seed_bytes(255) == b"\xff"
    assert seed_bytes("255") == seed_bytes("0xff") == b"\xff"
    assert seed_bytes(0) == b"\x00"
    assert seed_bytes(b"\x01\x02") == b"\x01\x02"
    assert seed_bytes(" seed ") == b"seed"
    assert RunSeeder.from_seed("0xff").hex == "ff"


def test_missing_seed_is_generated_and_reported():
    seeder = RunSeeder.from_seed(None)
    assert len(seeder.hex) == 32
    assert RunSeeder.from_seed(None).hex != seeder.hex


@pytest.mark.parametrize("bad, error", [(-1, ValueError), (True, TypeError), (1.5, TypeError)])
def test_invalid_seeds(bad, error):
    with pytest.raises(error):
        RunSeeder.from_seed(bad)


def test_branching_does_not_move_rooms():
    plain = GenerationSettings(width=24, height=24, room_count=(5, 8), branch_types=(), seed="phases")
    branched = GenerationSettings(width=24, height=24, room_count=(5, 8), seed="phases")

    def rooms(map_data):
        return {(c.position, c.room_id) for c in map_data.cells if c.kind is CellKind.PRIMARY_ROOM}

    assert rooms(generate_map(plain)) == rooms(generate_map(branched))
