import random
import sys
from pathlib import Path

import pytest

# Ensure 'src' is on sys.path for test imports without installing the package
ROOT = Path(__file__).resolve().parents[1]
src = ROOT / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))

from delve.dungeon.grid import TileGrid  # noqa: E402
from delve.dungeon.rooms import RoomIdAllocator  # noqa: E402


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def grid():
    return TileGrid(12, 12)


@pytest.fixture
def allocator():
    return RoomIdAllocator()


def _reachable(cells_at, width, height, start):
    """Positions reachable from ``start`` following connection flags (N, E, S, W)."""
    steps = ((0, -1), (1, 0), (0, 1), (-1, 0))
    seen = {start}
    stack = [start]
    while stack:
        x, y = stack.pop()
        cell = cells_at(x, y)
        for i, (dx, dy) in enumerate(steps):
            if not cell.connections[i]:
                continue
            nxt = (x + dx, y + dy)
            if 0 <= nxt[0] < width and 0 <= nxt[1] < height and nxt not in seen:
                seen.add(nxt)
                stack.append(nxt)
    return seen


@pytest.fixture
def reachable():
    def walk(source, start):
        cells_at = source.cell if hasattr(source, "cell") else lambda x, y: source.get(x, y)
        return _reachable(cells_at, source.width, source.height, start)

    return walk
