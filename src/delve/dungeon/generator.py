from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List

from ..rng import RunSeeder
from .autotile import TileMode
from .branches import branchable_edges, grow_branches
from .cardinals import Cardinal
from .connectivity import GraphMerger
from .distribution import generate_rooms
from .grid import TileGrid
from .map_data import MapData
from .pathfinding import Pathfinder
from .portals import select_portals
from .premade import PremadeRoomPlacer
from .rooms import Room, RoomIdAllocator, merge_adjacent_rooms
from .tiles import validate_grid

if TYPE_CHECKING:  # pragma: no cover
    from ..config import GenerationSettings

logger = logging.getLogger(__name__)


class MapGenerator:
    """Runs the full generation pipeline for a set of settings.

    Usage:
      settings = GenerationSettings.from_env()
      map_data = MapGenerator(settings).generate()

    Each call to ``generate`` builds a fresh grid and room id allocator. The same
    settings, seed and ``run_index`` always produce the same map. Room layout,
    branching and portal choice draw from separate streams, so branch settings
    never move the rooms.
    """

    def __init__(self, settings: "GenerationSettings") -> None:
        self.settings = settings
        self.seeder = RunSeeder.from_seed(settings.seed)

    def generate(self, run_index: int = 0) -> MapData:
        settings = self.settings
        rngs = self.seeder.for_run(run_index)
        logger.info(
            "Generating %dx%d map (rooms=%s, distribution=%s, run=%d)",
            settings.width,
            settings.height,
            settings.room_count,
            settings.distribution.value,
            run_index,
        )

        grid = TileGrid(settings.width, settings.height)
        allocator = RoomIdAllocator()
        pathfinder = Pathfinder(grid, settings.path_iteration_cap)

        placer = PremadeRoomPlacer(grid, allocator, rngs.layout)
        premade_rooms: List[Room] = placer.place_all(list(settings.premade))
        if settings.premade:
            logger.info("Placed %d of %d premade rooms", len(premade_rooms), len(settings.premade))

        desired = settings.room_count.sample(rngs.layout)
        rooms = generate_rooms(settings.distribution, grid, desired, rngs.layout, allocator)
        rooms = merge_adjacent_rooms(grid, rooms)
        grid.retile(TileMode.OCCUPANCY)

        merger = GraphMerger(grid, pathfinder, settings.merge_cap)
        connections = merger.connect_rooms(rooms)
        grid.retile(TileMode.OCCUPANCY)
        graphs = merger.find_graphs(rooms, connections)
        logger.info("Connected %d rooms into %d graphs", len(rooms), len(graphs))
        graph = merger.merge_graphs(graphs)
        merger.connect_premade(premade_rooms, graph, rooms)

        grid.connect_occupied_neighbors()
        grid.retile(TileMode.CONNECTIVITY)

        edges = branchable_edges(grid)
        if settings.can_branch:
            grow_branches(grid, edges, settings.branch_types, rngs.branches, settings.branch_budget)

        entrance, exit_ = select_portals(grid, rngs.portals)
        validate_grid(grid)

        map_data = MapData.from_grid(
            grid,
            entrance=entrance.position,
            exit=exit_.position,
            facing=Cardinal.N,
            seed=self.seeder.hex,
        )
        logger.info("Generated map signature: %s", map_data.signature())
        return map_data


def generate_map(settings: "GenerationSettings", run_index: int = 0) -> MapData:
    return MapGenerator(settings).generate(run_index)


__all__ = ["MapGenerator", "generate_map"]
