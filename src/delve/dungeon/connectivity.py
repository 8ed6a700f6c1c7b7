from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..errors import ConnectivityError, MergeLimitError
from .cardinals import Cardinal
from .cells import CellKind, Point
from .grid import TileGrid
from .pathfinding import Pathfinder, heuristic
from .rooms import Exit, Room

logger = logging.getLogger(__name__)

DEFAULT_MERGE_CAP = 100


@dataclass(frozen=True)
class Connection:
    """A carved corridor between two rooms' anchors."""

    first: int
    second: int
    path: Tuple[Point, ...]


@dataclass
class Graph:
    """Rooms joined by connections. Built, merged and discarded within one run."""

    rooms: Dict[int, Room] = field(default_factory=dict)
    connections: List[Connection] = field(default_factory=list)

    def add_room(self, room: Room) -> None:
        self.rooms.setdefault(room.room_id, room)

    def add_connection(self, connection: Connection, rooms: Dict[int, Room]) -> None:
        self.connections.append(connection)
        self.add_room(rooms[connection.first])
        self.add_room(rooms[connection.second])

    @property
    def room_ids(self) -> Set[int]:
        return set(self.rooms)

    @property
    def cells(self) -> Set[Point]:
        out: Set[Point] = set()
        for room in self.rooms.values():
            out.update(room.cells)
        for connection in self.connections:
            out.update(connection.path)
        return out

    def __len__(self) -> int:
        return len(self.rooms)


def _beyond(room: Room, exit_: Exit) -> bool:
    x, y = exit_.position
    if exit_.facing is Cardinal.N:
        return room.max_y < y
    if exit_.facing is Cardinal.S:
        return room.min_y > y
    if exit_.facing is Cardinal.E:
        return room.min_x > x
    return room.max_x < x


class GraphMerger:
    """Joins rooms into a single connected component with A* corridors."""

    def __init__(self, grid: TileGrid, pathfinder: Pathfinder, merge_cap: int = DEFAULT_MERGE_CAP) -> None:
        self.grid = grid
        self.pathfinder = pathfinder
        self.merge_cap = merge_cap

    def carve(self, start: Point, target: Point) -> Tuple[Point, ...]:
        """Find a path and turn its empty cells into hallway. Path errors propagate."""
        path = self.pathfinder.find_path(start, target)
        for point in path:
            cell = self.grid.at(point)
            if cell.kind is CellKind.EMPTY:
                self.grid.set_kind(cell, CellKind.HALLWAY)
        return tuple(path)

    def connect_rooms(self, rooms: Sequence[Room]) -> List[Connection]:
        """Connect every room to its nearest neighbor by anchor distance.

        A room that was already picked as another room's nearest is not expanded
        again; components are stitched together later by ``merge_graphs``.
        """
        unused = list(rooms)
        connections: List[Connection] = []
        while unused:
            room = unused.pop(0)
            nearest = self.pathfinder.find_nearest_room(room, rooms)
            if nearest is None:
                logger.debug("Room %d has no other room to connect to", room.room_id)
                continue
            path = self.carve(room.anchor, nearest.anchor)
            if nearest in unused:
                unused.remove(nearest)
            connections.append(Connection(room.room_id, nearest.room_id, path))
            logger.debug("Connected room %d -> %d (%d cells)", room.room_id, nearest.room_id, len(path))
        return connections

    @staticmethod
    def find_graphs(rooms: Sequence[Room], connections: Iterable[Connection]) -> List[Graph]:
        """Connected components over the connections; unconnected rooms stand alone."""
        by_id = {room.room_id: room for room in rooms}
        pending = list(connections)
        graphs: List[Graph] = []
        seen: Set[int] = set()
        for room in rooms:
            if room.room_id in seen:
                continue
            graph = Graph()
            graph.add_room(room)
            frontier = [room.room_id]
            while frontier:
                current = frontier.pop()
                for connection in list(pending):
                    if current not in (connection.first, connection.second):
                        continue
                    pending.remove(connection)
                    graph.add_connection(connection, by_id)
                    for room_id in (connection.first, connection.second):
                        if room_id not in seen and room_id != room.room_id:
                            frontier.append(room_id)
                    seen.update((connection.first, connection.second))
            seen.add(room.room_id)
            graphs.append(graph)
        logger.debug("Found %d disconnected graphs over %d rooms", len(graphs), len(rooms))
        return graphs

    def merge_graphs(self, graphs: Sequence[Graph]) -> Graph:
        """Join graphs until one remains, always through the globally nearest room pair.

        Each pass compares the anchors of every room pair lying in two distinct
        graphs, carves a corridor for the closest pair and replaces both graphs
        with their union. Ties go to the pair found first. Raises
        MergeLimitError if more than ``merge_cap`` merges would be needed.
        """
        remaining = list(graphs)
        if not remaining:
            return Graph()
        count = 0
        while len(remaining) > 1:
            if count >= self.merge_cap:
                logger.error("Graph merge cap %d reached with %d graphs left", self.merge_cap, len(remaining))
                raise MergeLimitError(len(remaining), self.merge_cap)
            count += 1

            best: Optional[Tuple[int, int, int, Room, Room]] = None
            for i, first in enumerate(remaining):
                for j in range(i + 1, len(remaining)):
                    for room in first.rooms.values():
                        for other in remaining[j].rooms.values():
                            distance = heuristic(room.anchor, other.anchor)
                            if best is None or distance < best[0]:
                                best = (distance, i, j, room, other)
            assert best is not None
            _distance, i, j, room, other = best
            first, second = remaining[i], remaining[j]
            del remaining[j]
            del remaining[i]

            path = self.carve(room.anchor, other.anchor)
            merged = Graph()
            merged.rooms.update(first.rooms)
            merged.rooms.update(second.rooms)
            merged.connections.extend(first.connections)
            merged.connections.extend(second.connections)
            merged.connections.append(Connection(room.room_id, other.room_id, path))
            remaining.append(merged)
            logger.debug("Merged graphs via rooms %d and %d", room.room_id, other.room_id)
        logger.info("Merged graphs into one component after %d merges", count)
        return remaining[0]

    def connect_premade(
        self, premade_rooms: Sequence[Room], graph: Graph, rooms: Sequence[Room]
    ) -> List[Connection]:
        """Run a corridor from each premade exit to a primary room.

        Rooms that lie entirely beyond the exit in its facing are preferred; the
        nearest of all rooms is the fallback. A premade room without exits, or
        with no primary room to reach, raises ConnectivityError.
        """
        made: List[Connection] = []
        for premade in premade_rooms:
            if not premade.exits:
                raise ConnectivityError(f"Premade room {premade.room_id} has no exit to connect through")
            if not rooms:
                raise ConnectivityError(f"No primary room to connect premade room {premade.room_id} to")
            for exit_ in premade.exits:
                ahead = [r for r in rooms if _beyond(r, exit_)] or list(rooms)
                target = min(ahead, key=lambda r: heuristic(exit_.position, r.anchor))
                path = self.carve(exit_.position, target.anchor)
                connection = Connection(premade.room_id, target.room_id, path)
                graph.rooms.setdefault(premade.room_id, premade)
                graph.add_room(target)
                graph.connections.append(connection)
                made.append(connection)
                logger.debug(
                    "Connected premade exit %s to room %d (%d cells)", exit_.position, target.room_id, len(path)
                )
        return made


__all__ = ["Connection", "Graph", "GraphMerger", "DEFAULT_MERGE_CAP"]
