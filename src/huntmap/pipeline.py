"""Load world inputs and run the hunt correlation."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from time import perf_counter
from typing import Any, Callable, Mapping

from huntmap.areas import load_areas
from huntmap.cache import IndexCache
from huntmap.config import WorldPaths
from huntmap.errors import FatalInputError, IssueLog
from huntmap.features import extract_tiles
from huntmap.hunts import HuntAnalysis, analyze_hunts
from huntmap.models import AreaDefinition, MapTile, RegionDefinition
from huntmap.otbm import AttributeCodes, MapNode, OtbmDecodeError, load_node_tree
from huntmap.regions import (
    DEFAULT_CALIBRATION,
    DEFAULT_REGIONS,
    RasterCalibration,
    RegionIndex,
    build_region_index,
    load_region_catalog,
    load_region_raster,
)
from huntmap.spawns import SpawnIndex, build_spawn_index, load_spawns

LOGGER = logging.getLogger("huntmap.pipeline")


@dataclass(frozen=True)
class LoadOptions:
    """Knobs for loading world inputs."""

    calibration: RasterCalibration = DEFAULT_CALIBRATION
    attribute_codes: AttributeCodes = field(default_factory=AttributeCodes)
    jobs: int = 1
    raster_jobs: int = 1


@dataclass
class WorldData:
    """All indexes for one world snapshot, read-only once loaded."""

    paths: WorldPaths
    node_tree: MapNode
    tiles: list[MapTile]
    regions: tuple[RegionDefinition, ...]
    region_index: RegionIndex
    spawn_index: SpawnIndex
    areas: dict[int, AreaDefinition]
    issues: IssueLog


def load_map_tree(path: Path, codes: AttributeCodes | None = None) -> MapNode:
    """Decode the world map, converting failures into FatalInputError."""
    if not Path(path).exists():
        raise FatalInputError("world map", path, "file not found")
    try:
        return load_node_tree(Path(path), codes=codes)
    except OtbmDecodeError as exc:
        raise FatalInputError("world map", path, str(exc)) from exc
    except OSError as exc:
        raise FatalInputError("world map", path, str(exc)) from exc


def load_region_palette(
    path: Path | None,
    issues: IssueLog | None = None,
) -> tuple[RegionDefinition, ...]:
    """Return the region palette from ``regions.xml`` or the built-in table."""
    if path is None:
        return DEFAULT_REGIONS
    catalog = load_region_catalog(path, issues)
    if not catalog:
        raise FatalInputError("region catalog", path, "no usable region definitions")
    return catalog


def load_region_index(
    raster_path: Path,
    catalog: tuple[RegionDefinition, ...],
    options: LoadOptions,
    *,
    cache: IndexCache[RegionIndex] | None = None,
) -> RegionIndex:
    """Classify the region raster, reusing a cached index when still valid."""
    if not Path(raster_path).exists():
        raise FatalInputError("region raster", raster_path, "file not found")

    def build() -> RegionIndex:
        image = load_region_raster(raster_path, options.calibration)
        try:
            return build_region_index(
                image,
                catalog,
                options.calibration,
                jobs=options.raster_jobs,
            )
        except ValueError as exc:
            raise FatalInputError("region raster", raster_path, str(exc)) from exc

    if cache is None:
        return build()
    return cache.get_or_build(raster_path, (catalog, options.calibration), build)


def _run_jobs(jobs: Mapping[str, Callable[[], Any]], workers: int) -> dict[str, Any]:
    """Run independent load jobs serially or via a thread pool and join them."""
    if workers <= 1 or len(jobs) <= 1:
        return {name: job() for name, job in jobs.items()}
    with ThreadPoolExecutor(max_workers=min(workers, len(jobs))) as executor:
        futures = {name: executor.submit(job) for name, job in jobs.items()}
        return {name: future.result() for name, future in futures.items()}


def load_world(
    paths: WorldPaths,
    options: LoadOptions | None = None,
    *,
    cache: IndexCache[RegionIndex] | None = None,
) -> WorldData:
    """Load the four world inputs and build their indexes."""
    options = options or LoadOptions()
    issues = IssueLog()
    started = perf_counter()
    regions = load_region_palette(paths.regions, issues)
    results = _run_jobs(
        {
            "map": lambda: load_map_tree(paths.map, options.attribute_codes),
            "regions": lambda: load_region_index(paths.raster, regions, options, cache=cache),
            "spawns": lambda: build_spawn_index(load_spawns(paths.spawns, issues)),
            "areas": lambda: load_areas(paths.areas, issues),
        },
        options.jobs,
    )
    node_tree = results["map"]
    tiles = extract_tiles(node_tree, issues)
    LOGGER.info("World inputs loaded in %.2fs.", perf_counter() - started)
    return WorldData(
        paths=paths,
        node_tree=node_tree,
        tiles=tiles,
        regions=regions,
        region_index=results["regions"],
        spawn_index=results["spawns"],
        areas=results["areas"],
        issues=issues,
    )


def run_hunt_analysis(world: WorldData, *, match_floor: bool = False) -> HuntAnalysis:
    """Correlate hunt areas, regions, and spawns for a loaded world."""
    return analyze_hunts(
        world.tiles,
        world.region_index,
        world.spawn_index,
        world.areas,
        issues=world.issues,
        match_floor=match_floor,
    )
