from __future__ import annotations

from typing import Iterable, Optional, Tuple


class DelveError(Exception):
    """Base error for delve map generation."""


class SettingsError(DelveError):
    """Raised when generation settings are missing or out of range."""


class CatalogError(DelveError):
    """Raised when a premade room catalog cannot be loaded or validated."""


class UnsupportedStrategyError(DelveError):
    """Raised when a distribution or branch strategy has no implementation."""


class PathNotFoundError(DelveError):
    """Raised when A* cannot link two cells.

    ``cap_exhausted`` is True when the search stopped on its iteration cap rather
    than because the open set ran dry.
    """

    def __init__(
        self,
        start: Tuple[int, int],
        target: Tuple[int, int],
        cap_exhausted: bool = False,
    ) -> None:
        reason = "iteration cap exhausted" if cap_exhausted else "no route"
        super().__init__(f"No path from {start} to {target} ({reason})")
        self.start = start
        self.target = target
        self.cap_exhausted = cap_exhausted


class MergeLimitError(DelveError):
    """Raised when graph merging does not converge within its iteration cap."""

    def __init__(self, remaining: int, cap: int) -> None:
        super().__init__(f"{remaining} disconnected graphs remain after {cap} merge iterations")
        self.remaining = remaining
        self.cap = cap


class ConnectivityError(DelveError):
    """Raised when two cells that cannot be joined are asked to connect."""


class PortalError(DelveError):
    """Raised when fewer than two end pieces exist for the entrance and exit."""

    def __init__(self, found: int) -> None:
        super().__init__(f"Could not find end pieces for entrance and exit (found {found}, need 2)")
        self.found = found


class UnknownTileError(DelveError):
    """Raised when a cell carries a tile id outside the legal catalog."""

    def __init__(self, tile_id: Optional[int], positions: Iterable[Tuple[int, int]] = ()) -> None:
        self.tile_id = tile_id
        self.positions = list(positions)
        where = f" at {self.positions}" if self.positions else ""
        super().__init__(f"Unknown tile id {tile_id}{where}")


__all__ = [
    "DelveError",
    "SettingsError",
    "CatalogError",
    "UnsupportedStrategyError",
    "PathNotFoundError",
    "MergeLimitError",
    "ConnectivityError",
    "PortalError",
    "UnknownTileError",
]
