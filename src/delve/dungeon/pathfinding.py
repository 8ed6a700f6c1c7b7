from __future__ import annotations

import heapq
import itertools
import logging
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Sequence, Tuple

from ..errors import PathNotFoundError
from .cells import CellKind, Point
from .grid import TileGrid

if TYPE_CHECKING:  # pragma: no cover
    from .rooms import Room

logger = logging.getLogger(__name__)

# Expansion order for neighbors: W, E, N, S.
_STEPS: Tuple[Tuple[int, int], ...] = ((-1, 0), (1, 0), (0, -1), (0, 1))


def heuristic(a: Point, b: Point) -> int:
    """Manhattan distance; admissible for 4-way unit-cost movement."""
    return abs(a[0] - b[0]) + abs(a[1] - b[1])


class Pathfinder:
    """A* over a TileGrid honoring its blocked coordinates.

    ``iteration_cap`` bounds the number of node expansions per search; when it
    is None the cap is four times the number of cells.
    """

    def __init__(self, grid: TileGrid, iteration_cap: Optional[int] = None) -> None:
        self.grid = grid
        self.iteration_cap = iteration_cap if iteration_cap is not None else 4 * len(grid.cells)

    def _adjacent(self, point: Point) -> Iterable[Point]:
        x, y = point
        for dx, dy in _STEPS:
            nx, ny = x + dx, y + dy
            if self.grid.in_bounds(nx, ny) and (nx, ny) not in self.grid.blocked:
                yield nx, ny

    def find_route(self, start: Point, target: Point) -> List[Point]:
        """Shortest route from start to target, both endpoints included.

        Raises PathNotFoundError when the target is unreachable or the iteration
        cap runs out. Ties in the open set are broken by insertion order.
        """
        if start in self.grid.blocked or target in self.grid.blocked:
            raise PathNotFoundError(start, target)

        counter = itertools.count()
        open_heap: List[Tuple[int, int, Point]] = [(heuristic(start, target), next(counter), start)]
        g: Dict[Point, int] = {start: 0}
        parent: Dict[Point, Point] = {}
        closed = set()
        iterations = 0

        while open_heap:
            _f, _order, current = heapq.heappop(open_heap)
            if current in closed:
                continue
            if iterations >= self.iteration_cap:
                logger.warning(
                    "A* iteration cap %d hit between %s and %s", self.iteration_cap, start, target
                )
                raise PathNotFoundError(start, target, cap_exhausted=True)
            iterations += 1

            if current == target:
                return self._construct(parent, current)

            closed.add(current)
            for neighbor in self._adjacent(current):
                if neighbor in closed:
                    continue
                tentative = g[current] + 1
                if tentative >= g.get(neighbor, tentative + 1):
                    continue
                g[neighbor] = tentative
                parent[neighbor] = current
                heapq.heappush(
                    open_heap, (tentative + heuristic(neighbor, target), next(counter), neighbor)
                )

        logger.debug("Open set exhausted searching %s -> %s", start, target)
        raise PathNotFoundError(start, target)

    def find_path(self, start: Point, target: Point) -> List[Point]:
        """Route from start to target without the cells primary rooms already own."""
        route = self.find_route(start, target)
        return [p for p in route if self.grid.at(p).kind is not CellKind.PRIMARY_ROOM]

    @staticmethod
    def _construct(parent: Dict[Point, Point], end: Point) -> List[Point]:
        route = [end]
        while route[-1] in parent:
            route.append(parent[route[-1]])
        route.reverse()
        return route

    @staticmethod
    def find_nearest(anchor: Point, candidates: Sequence[Point]) -> Optional[Point]:
        best: Optional[Point] = None
        best_distance = None
        for option in candidates:
            if option == anchor:
                continue
            distance = heuristic(anchor, option)
            if best_distance is None or distance < best_distance:
                best = option
                best_distance = distance
        return best

    @staticmethod
    def find_nearest_room(room: "Room", rooms: Sequence["Room"]) -> Optional["Room"]:
        best = None
        best_distance = None
        for option in rooms:
            if option.room_id == room.room_id:
                continue
            distance = heuristic(room.anchor, option.anchor)
            if best_distance is None or distance < best_distance:
                best = option
                best_distance = distance
        return best


__all__ = ["Pathfinder", "heuristic"]
