"""Seeding for map generation runs.

A run never touches the process-global ``random`` module. Each pipeline phase
draws from its own ``random.Random``, seeded from a BLAKE2b digest of the
master seed, the phase name and the run index. Phases therefore do not steal
numbers from one another: enabling branches changes the corridors grown off
the layout but never where the rooms went.
"""
from __future__ import annotations

import hashlib
import logging
import random
import secrets
from dataclasses import dataclass
from typing import Union

logger = logging.getLogger(__name__)

Seed = Union[int, str, bytes, None]

LAYOUT = "layout"
BRANCHES = "branches"
PORTALS = "portals"


def seed_bytes(seed: Union[int, str, bytes]) -> bytes:
    """Canonical bytes of a user seed.

    Ints (and ``0x``-prefixed strings) become their big-endian bytes so that
    ``255``, ``"255"`` and ``"0xff"`` name the same map. Other strings are used
    as UTF-8.
    """
    if isinstance(seed, bytes):
        return seed
    if isinstance(seed, bool) or not isinstance(seed, (int, str)):
        raise TypeError(f"Unsupported seed type: {type(seed).__name__}")
    if isinstance(seed, str):
        text = seed.strip()
        if text.isdigit():
            seed = int(text)
        elif text.lower().startswith("0x"):
            try:
                seed = int(text, 16)
            except ValueError:
                return text.encode("utf-8")
        else:
            return text.encode("utf-8")
    if seed < 0:
        raise ValueError(f"Seed must be non-negative, got {seed}")
    return seed.to_bytes((seed.bit_length() + 7) // 8 or 1, "big")


@dataclass(frozen=True)
class PhaseRandoms:
    """One independent stream per pipeline phase of a single run."""

    layout: random.Random
    branches: random.Random
    portals: random.Random


@dataclass(frozen=True)
class RunSeeder:
    """Master seed of a generator, resolved once.

    Usage:
      seeder = RunSeeder.from_seed(settings.seed)
      rngs = seeder.for_run(run_index)
      rooms = generate_rooms(..., rngs.layout, ...)
    """

    master: bytes

    @classmethod
    def from_seed(cls, seed: Seed) -> "RunSeeder":
        if seed is None:
            master = secrets.token_bytes(16)
            logger.info("No seed given; using random seed 0x%s", master.hex())
            return cls(master)
        return cls(seed_bytes(seed))

    @property
    def hex(self) -> str:
        return self.master.hex()

    def phase_seed(self, phase: str, run_index: int = 0) -> int:
        prefix = len(self.master).to_bytes(4, "big") + self.master
        h = hashlib.blake2b(prefix, digest_size=8, person=b"delve-run")
        h.update(f"{phase}:{run_index}".encode("utf-8"))
        return int.from_bytes(h.digest(), "big")

    def phase_rng(self, phase: str, run_index: int = 0) -> random.Random:
        return random.Random(self.phase_seed(phase, run_index))

    def for_run(self, run_index: int = 0) -> PhaseRandoms:
        logger.debug("Seeding run %d from 0x%s", run_index, self.hex)
        return PhaseRandoms(
            layout=self.phase_rng(LAYOUT, run_index),
            branches=self.phase_rng(BRANCHES, run_index),
            portals=self.phase_rng(PORTALS, run_index),
        )


__all__ = ["Seed", "seed_bytes", "PhaseRandoms", "RunSeeder", "LAYOUT", "BRANCHES", "PORTALS"]
