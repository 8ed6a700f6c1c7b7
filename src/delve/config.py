from __future__ import annotations

import argparse
import logging
import os
import random
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple, Union

import yaml
from pydantic import ValidationError

from .dungeon.branches import DEFAULT_BRANCH_BUDGET, BranchType
from .dungeon.connectivity import DEFAULT_MERGE_CAP
from .dungeon.distribution import DistributionStyle
from .dungeon.premade import PremadeFootprint, load_catalog
from .errors import CatalogError, SettingsError
from .rng import Seed

logger = logging.getLogger(__name__)

ENV_PREFIX = "DELVE_"


@dataclass(frozen=True)
class RoomCountRange:
    """Inclusive range the desired room count is drawn from once per run."""

    min: int
    max: int

    def __post_init__(self) -> None:
        if self.min < 0 or self.max < self.min:
            raise SettingsError(f"Invalid room count range {self.min}:{self.max}")

    def sample(self, rng: random.Random) -> int:
        return rng.randint(self.min, self.max)

    @classmethod
    def parse(cls, value: Any) -> "RoomCountRange":
        """Accept ``"3:5"``, ``"4"``, ``4``, ``[3, 5]`` or ``{"min": 3, "max": 5}``."""
        if isinstance(value, RoomCountRange):
            return value
        try:
            if isinstance(value, Mapping):
                return cls(int(value["min"]), int(value["max"]))
            if isinstance(value, (list, tuple)) and len(value) == 2:
                return cls(int(value[0]), int(value[1]))
            if isinstance(value, int) and not isinstance(value, bool):
                return cls(value, value)
            if isinstance(value, str):
                lo, sep, hi = value.partition(":")
                return cls(int(lo), int(hi if sep else lo))
        except (KeyError, TypeError, ValueError) as exc:
            raise SettingsError(f"Invalid room count {value!r}: {exc}") from exc
        raise SettingsError(f"Invalid room count {value!r}; expected MIN:MAX")

    def __str__(self) -> str:
        return f"{self.min}:{self.max}"


def _parse_branch_types(value: Any) -> Tuple[BranchType, ...]:
    if isinstance(value, str):
        if value.strip().lower() in ("", "none"):
            return ()
        value = [v for v in value.split(",") if v.strip()]
    out = []
    for item in value or ():
        try:
            branch = item if isinstance(item, BranchType) else BranchType(str(item).strip().lower())
        except ValueError as exc:
            raise SettingsError(f"Unknown branch type {item!r}") from exc
        if branch not in out:
            out.append(branch)
    return tuple(out)


def _parse_seed(value: Any) -> Seed:
    if value is None or isinstance(value, (int, bytes)):
        return value
    text = str(value).strip()
    if text == "":
        return None
    return int(text) if text.isdigit() else text


@dataclass(frozen=True)
class GenerationSettings:
    """Parameters of one map generation run.

    Usage:
      settings = GenerationSettings.from_env()
      map_data = MapGenerator(settings).generate()
    """

    width: int = 32
    height: int = 32
    room_count: RoomCountRange = field(default_factory=lambda: RoomCountRange(6, 10))
    distribution: DistributionStyle = DistributionStyle.RANDOM
    branch_types: Tuple[BranchType, ...] = tuple(BranchType)
    premade: Tuple[PremadeFootprint, ...] = ()
    seed: Seed = None
    branch_budget: int = DEFAULT_BRANCH_BUDGET
    merge_cap: int = DEFAULT_MERGE_CAP
    path_iteration_cap: Optional[int] = None

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise SettingsError(f"Grid must be at least 1x1, got {self.width}x{self.height}")
        if not isinstance(self.room_count, RoomCountRange):
            object.__setattr__(self, "room_count", RoomCountRange.parse(self.room_count))
        style = self.distribution
        if isinstance(style, str) and not isinstance(style, DistributionStyle):
            style = style.strip().lower()
        try:
            object.__setattr__(self, "distribution", DistributionStyle(style))
        except ValueError as exc:
            raise SettingsError(f"Unknown distribution style {self.distribution!r}") from exc
        object.__setattr__(self, "branch_types", _parse_branch_types(self.branch_types))
        object.__setattr__(self, "premade", tuple(self.premade))
        if self.branch_budget < 0:
            raise SettingsError("branch_budget must be >= 0")
        if self.merge_cap < 1:
            raise SettingsError("merge_cap must be >= 1")
        if self.path_iteration_cap is not None and self.path_iteration_cap < 1:
            raise SettingsError("path_iteration_cap must be >= 1 when set")

    @property
    def can_branch(self) -> bool:
        return bool(self.branch_types) and self.branch_budget > 0

    # ------------------------ Loading ------------------------
    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GenerationSettings":
        """Build settings from plain values, as found in YAML files or env overrides.

        ``rooms`` and ``branches`` are accepted as aliases of ``room_count`` and
        ``branch_types``. A ``catalog`` path is loaded and appended to ``premade``.
        """
        values: Dict[str, Any] = dict(data)
        if "rooms" in values:
            values["room_count"] = values.pop("rooms")
        if "branches" in values:
            values["branch_types"] = values.pop("branches")

        try:
            premade = [
                fp if isinstance(fp, PremadeFootprint) else PremadeFootprint.model_validate(fp)
                for fp in values.pop("premade", None) or ()
            ]
        except ValidationError as exc:
            raise SettingsError(f"Invalid premade footprint: {exc}") from exc
        catalog = values.pop("catalog", None)
        if catalog:
            try:
                premade.extend(load_catalog(catalog))
            except CatalogError as exc:
                raise SettingsError(str(exc)) from exc
        values["premade"] = tuple(premade)

        allowed = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - allowed)
        if unknown:
            logger.warning("Ignoring unknown generation settings: %s", unknown)
        kwargs = {k: v for k, v in values.items() if k in allowed}
        if "seed" in kwargs:
            kwargs["seed"] = _parse_seed(kwargs["seed"])
        try:
            for name in ("width", "height", "branch_budget", "merge_cap"):
                if name in kwargs:
                    kwargs[name] = int(kwargs[name])
            if kwargs.get("path_iteration_cap") is not None:
                kwargs["path_iteration_cap"] = int(kwargs["path_iteration_cap"])
        except (TypeError, ValueError) as exc:
            raise SettingsError(f"Invalid numeric setting: {exc}") from exc
        return cls(**kwargs)

    @staticmethod
    def env_overrides(env: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
        """Raw values from ``DELVE_*`` environment variables; blanks are skipped."""
        env = os.environ if env is None else env
        mapping = {
            "WIDTH": "width",
            "HEIGHT": "height",
            "ROOMS": "room_count",
            "DISTRIBUTION": "distribution",
            "BRANCHES": "branch_types",
            "SEED": "seed",
            "CATALOG": "catalog",
        }
        out: Dict[str, Any] = {}
        for suffix, name in mapping.items():
            raw = env.get(ENV_PREFIX + suffix)
            if raw is not None and raw.strip() != "":
                out[name] = raw.strip()
        if out:
            logger.debug("Environment overrides: %s", sorted(out))
        return out

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "GenerationSettings":
        return cls.from_dict(cls.env_overrides(env))

    @staticmethod
    def _load_yaml(path: Path) -> Dict[str, Any]:
        if not path.exists():
            raise SettingsError(f"Settings file not found: {path}")
        try:
            with path.open("r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise SettingsError(f"Settings file {path} is not valid YAML: {exc}") from exc
        if not isinstance(raw, dict):
            raise SettingsError(f"Settings file {path} must contain a mapping")
        # Settings may live at the top level or under a 'generation' section
        section = raw.get("generation", raw)
        if not isinstance(section, dict):
            raise SettingsError(f"'generation' in {path} must be a mapping")
        data = dict(section)
        catalog = data.get("catalog")
        if catalog and not Path(catalog).is_absolute():
            data["catalog"] = str(path.parent / catalog)
        return data

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "GenerationSettings":
        path = Path(path)
        settings = cls.from_dict(cls._load_yaml(path))
        logger.info("Loaded generation settings from %s", path)
        return settings


# ------------------------ Command line ------------------------
def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="delve",
        description="Generate a connected tile-based dungeon map and print it.",
    )
    parser.add_argument("--width", type=int, default=None, help="Grid width in cells")
    parser.add_argument("--height", type=int, default=None, help="Grid height in cells")
    parser.add_argument("--rooms", default=None, metavar="MIN:MAX", help="Desired primary room count range")
    parser.add_argument(
        "--distribution",
        choices=[s.value for s in DistributionStyle],
        default=None,
        help="Room distribution style",
    )
    parser.add_argument(
        "--branch",
        dest="branches",
        action="append",
        choices=[b.value for b in BranchType] + ["none"],
        default=None,
        help="Enable a branch style (repeatable); 'none' disables branching",
    )
    parser.add_argument("--catalog", type=Path, default=None, help="YAML catalog of premade rooms")
    parser.add_argument("--config", type=Path, default=None, help="YAML file with generation settings")
    parser.add_argument("--seed", default=None, help="Master seed (int, hex 0x.. or any string)")
    parser.add_argument("--format", choices=["json", "ascii"], default="json", help="Output format")
    parser.add_argument("--debug", action="store_true", help="Enable verbose debug logging.")
    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace, env: Optional[Mapping[str, str]] = None) -> GenerationSettings:
    """Merge settings: config file, then DELVE_* env vars, then command line flags."""
    data: Dict[str, Any] = {}
    if getattr(args, "config", None) is not None:
        data.update(GenerationSettings._load_yaml(Path(args.config)))
    data.update(GenerationSettings.env_overrides(env))

    flags: Iterable[Tuple[str, Any]] = (
        ("width", args.width),
        ("height", args.height),
        ("room_count", args.rooms),
        ("distribution", args.distribution),
        ("seed", args.seed),
        ("catalog", str(args.catalog) if args.catalog is not None else None),
    )
    for name, value in flags:
        if value is not None:
            data[name] = value
    if args.branches:
        data["branch_types"] = [] if "none" in args.branches else args.branches
    if "rooms" in data and "room_count" in data:
        data.pop("rooms")
    if "branches" in data and "branch_types" in data:
        data.pop("branches")
    return GenerationSettings.from_dict(data)


__all__ = ["GenerationSettings", "RoomCountRange", "parse_args", "build_settings", "ENV_PREFIX"]
