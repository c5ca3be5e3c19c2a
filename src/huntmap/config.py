"""World file discovery and analysis configuration."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from huntmap.errors import FatalInputError
from huntmap.otbm.headers import AttributeCodes
from huntmap.regions import DEFAULT_CALIBRATION, RasterCalibration

ENV_WORLD_CONFIG = "HUNTMAP_WORLD_CONFIG"
CONFIG_FILE_NAME = "huntmap.json"

DEFAULT_FILE_NAMES: dict[str, str] = {
    "map": "forgotten.otbm",
    "raster": "regions-bounds.png",
    "spawns": "world-spawn.xml",
    "areas": "forgotten-areas.xml",
    "regions": "regions.xml",
}

LOGGER = logging.getLogger("huntmap.config")


@dataclass(frozen=True)
class WorldPaths:
    """Resolved input files for one world snapshot."""

    map: Path
    raster: Path
    spawns: Path
    areas: Path
    regions: Path | None = None


@dataclass(frozen=True)
class WorldConfig:
    """Settings loaded from a world config file."""

    world_dir: Path | None = None
    files: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_FILE_NAMES))
    calibration: RasterCalibration = DEFAULT_CALIBRATION
    attribute_codes: AttributeCodes = field(default_factory=AttributeCodes)

    def resolve_paths(
        self,
        world_dir: Path | None = None,
        overrides: Mapping[str, str | Path | None] | None = None,
    ) -> WorldPaths:
        """Return input paths, preferring explicit overrides over the world dir."""
        root = world_dir or self.world_dir
        resolved: dict[str, Path | None] = {}
        for key, default_name in DEFAULT_FILE_NAMES.items():
            override = (overrides or {}).get(key)
            if override:
                resolved[key] = Path(override)
                continue
            if root is None:
                resolved[key] = None
                continue
            resolved[key] = root / self.files.get(key, default_name)
        missing = [key for key in ("map", "raster", "spawns", "areas") if resolved[key] is None]
        if missing:
            raise ValueError(
                "World directory or explicit paths required for: " + ", ".join(missing)
            )
        regions = resolved["regions"]
        if regions is not None and not regions.exists() and not (overrides or {}).get("regions"):
            regions = None
        return WorldPaths(
            map=resolved["map"],  # type: ignore[arg-type]
            raster=resolved["raster"],  # type: ignore[arg-type]
            spawns=resolved["spawns"],  # type: ignore[arg-type]
            areas=resolved["areas"],  # type: ignore[arg-type]
            regions=regions,
        )


def _default_candidate_paths() -> list[Path]:
    """Return default config locations in priority order."""
    return [Path.cwd() / CONFIG_FILE_NAME]


def _load_candidate(candidate: Path) -> dict[str, Any] | None:
    """Load a config mapping from a single candidate path."""
    if not candidate.exists():
        return None
    try:
        data = json.loads(candidate.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        LOGGER.warning("Ignoring unreadable world config %s: %s", candidate, exc)
        return {}
    if not isinstance(data, dict):
        LOGGER.warning("Ignoring world config %s: expected a JSON object.", candidate)
        return {}
    return data


def config_from_dict(data: Mapping[str, Any]) -> WorldConfig:
    """Build a WorldConfig from a decoded JSON mapping."""
    world_dir = data.get("world_dir")
    files = dict(DEFAULT_FILE_NAMES)
    for key, value in (data.get("files") or {}).items():
        if key in DEFAULT_FILE_NAMES and isinstance(value, str):
            files[key] = value
    raster = data.get("raster") or {}
    calibration = RasterCalibration(
        center_x=int(raster.get("center_x", DEFAULT_CALIBRATION.center_x)),
        center_y=int(raster.get("center_y", DEFAULT_CALIBRATION.center_y)),
        vision_size=int(raster.get("vision_size", DEFAULT_CALIBRATION.vision_size)),
    )
    return WorldConfig(
        world_dir=Path(world_dir) if isinstance(world_dir, str) else None,
        files=files,
        calibration=calibration,
        attribute_codes=AttributeCodes.from_dict(data.get("attribute_codes") or {}),
    )


def load_world_config(path: Path | None = None) -> WorldConfig:
    """Load the world config from an explicit path, the environment, or the cwd."""
    if path:
        data = _load_candidate(path)
        if data is None:
            raise FatalInputError("world config", path, "file not found")
        return config_from_dict(data)
    env_path = os.environ.get(ENV_WORLD_CONFIG)
    if env_path:
        return config_from_dict(_load_candidate(Path(env_path)) or {})
    for candidate in _default_candidate_paths():
        data = _load_candidate(candidate)
        if data is not None:
            return config_from_dict(data)
    return WorldConfig()
