from __future__ import annotations

from enum import IntEnum
from typing import Tuple


class Cardinal(IntEnum):
    """Compass directions in clockwise order. North is toward y - 1."""

    N = 0
    E = 1
    S = 2
    W = 3

    @property
    def offset(self) -> Tuple[int, int]:
        return _OFFSETS[self]


_OFFSETS = {
    Cardinal.N: (0, -1),
    Cardinal.E: (1, 0),
    Cardinal.S: (0, 1),
    Cardinal.W: (-1, 0),
}


def from_difference(x_diff: int, y_diff: int) -> Cardinal:
    """Direction from a cell to its neighbor given ``current - neighbor`` deltas."""
    if x_diff == 0:
        return Cardinal.N if y_diff > 0 else Cardinal.S
    if x_diff > 0:
        return Cardinal.W
    return Cardinal.E


def between(a: Tuple[int, int], b: Tuple[int, int]) -> Cardinal:
    """Direction from coordinate ``a`` to the adjacent coordinate ``b``."""
    return from_difference(a[0] - b[0], a[1] - b[1])


def rotate(direction: Cardinal, clockwise: bool) -> Cardinal:
    if clockwise:
        return Cardinal((int(direction) + 1) % 4)
    return Cardinal((int(direction) + 3) % 4)


def flip(direction: Cardinal) -> Cardinal:
    return Cardinal((int(direction) + 2) % 4)


def step(position: Tuple[int, int], direction: Cardinal) -> Tuple[int, int]:
    dx, dy = direction.offset
    return position[0] + dx, position[1] + dy


__all__ = ["Cardinal", "from_difference", "between", "rotate", "flip", "step"]
