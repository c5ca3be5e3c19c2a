"""Monster census: spawned monsters grouped by region and area."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

from huntmap.contracts import SCHEMA_VERSION
from huntmap.features import area_ids_by_position
from huntmap.models import AreaDefinition, MapTile, RegionDefinition
from huntmap.regions import RegionIndex
from huntmap.spawns import SpawnIndex

LOGGER = logging.getLogger("huntmap.monsters")

SHRINE_MARKER = "SHRINE_"
NO_AREA_NAME = "No area defined"

_MIN_LEVEL = re.compile(r"^(\d+)")


def minimum_level(recommended_level: str | None) -> int:
    """Return the leading number of a ``"70-100"`` style level range, or 0."""
    match = _MIN_LEVEL.match(recommended_level or "")
    return int(match.group(1)) if match else 0


def is_shrine(area_name: str) -> bool:
    return SHRINE_MARKER in area_name.upper()


@dataclass
class AreaCensus:
    """Monster counts for one area inside a region.

    ``area_id`` is None for monsters standing on tiles without an area.
    """

    area_id: int | None
    area_name: str
    level_variation: int = 0
    monsters: dict[str, int] = field(default_factory=dict)

    @property
    def total_spawns(self) -> int:
        return sum(self.monsters.values())


@dataclass
class RegionCensus:
    """Areas and shrines of one region with their spawned monsters."""

    region: RegionDefinition
    areas: list[AreaCensus] = field(default_factory=list)
    shrines: list[AreaCensus] = field(default_factory=list)

    @property
    def min_level(self) -> int:
        return minimum_level(self.region.recommended_level)

    @property
    def total_spawns(self) -> int:
        return sum(area.total_spawns for area in self.areas + self.shrines)

    def unique_monsters(self) -> list[str]:
        names: set[str] = set()
        for area in self.areas + self.shrines:
            names.update(area.monsters)
        return sorted(names)


@dataclass
class MonsterCensus:
    """Census result plus the counters explaining skipped monsters."""

    regions: list[RegionCensus]
    total_monsters: int = 0
    without_region: int = 0
    without_area_id: int = 0
    without_area_info: int = 0
    processed: int = 0

    def as_dict(self) -> dict[str, Any]:
        return {
            "schema_version": SCHEMA_VERSION,
            "created_at": datetime.now(timezone.utc).isoformat(),
            "totals": {
                "monsters": self.total_monsters,
                "without_region": self.without_region,
                "without_area_id": self.without_area_id,
                "without_area_info": self.without_area_info,
                "processed": self.processed,
            },
            "regions": [
                {
                    "region": region.region.name,
                    "tag": region.region.tag,
                    "recommended_level": region.region.recommended_level or "",
                    "min_level": region.min_level,
                    "level_variation": region.region.level_variation,
                    "total_spawns": region.total_spawns,
                    "unique_monsters": region.unique_monsters(),
                    "areas": [_area_dict(area) for area in region.areas],
                    "shrines": [_area_dict(area) for area in region.shrines],
                }
                for region in self.regions
            ],
        }


def _area_dict(area: AreaCensus) -> dict[str, Any]:
    return {
        "area_id": area.area_id,
        "area_name": area.area_name,
        "level_variation": area.level_variation,
        "monsters": dict(area.monsters),
    }


def monsters_by_region(
    spawn_index: SpawnIndex,
    region_index: RegionIndex,
    tiles: Iterable[MapTile],
    areas: Mapping[int, AreaDefinition],
) -> MonsterCensus:
    """Count spawned monsters per region and per area.

    The region comes from the planar raster lookup of the monster's tile, the
    area from the map tile at the exact 3D position. Monsters outside every
    region are only counted. Regions are ordered by their minimum recommended
    level; ties keep the order in which the regions were first met.
    """
    area_at = area_ids_by_position(tiles)
    census = MonsterCensus(regions=[])
    by_region: dict[RegionDefinition, dict[int | None, AreaCensus]] = {}
    for record in spawn_index.records():
        census.total_monsters += 1
        region = region_index.lookup(record.position)
        if region is None:
            census.without_region += 1
            continue
        area_id = area_at.get(record.position)
        region_areas = by_region.setdefault(region, {})
        bucket = region_areas.get(area_id)
        if bucket is None:
            if area_id is None:
                bucket = AreaCensus(area_id=None, area_name=NO_AREA_NAME)
            elif area_id in areas:
                area = areas[area_id]
                bucket = AreaCensus(area_id, area.name, area.level_variation)
            else:
                bucket = AreaCensus(area_id=area_id, area_name=f"Area {area_id}")
            region_areas[area_id] = bucket
        if area_id is None:
            census.without_area_id += 1
        elif area_id not in areas:
            census.without_area_info += 1
        census.processed += 1
        bucket.monsters[record.monster_name] = bucket.monsters.get(record.monster_name, 0) + 1

    for region, region_areas in by_region.items():
        entry = RegionCensus(region=region)
        for bucket in region_areas.values():
            (entry.shrines if is_shrine(bucket.area_name) else entry.areas).append(bucket)
        census.regions.append(entry)
    census.regions.sort(key=lambda entry: entry.min_level)

    LOGGER.info(
        "Monsters: %d total, %d without region, %d without area id, "
        "%d without area info, %d processed.",
        census.total_monsters,
        census.without_region,
        census.without_area_id,
        census.without_area_info,
        census.processed,
    )
    return census


def render_census(census: MonsterCensus) -> str:
    """Render the census as a plain text report."""
    lines: list[str] = []
    for region in census.regions:
        lines.append(
            f"Region: {region.region.name} | Min level: {region.min_level} | "
            f"Total spawns: {region.total_spawns} | "
            f"Unique monsters: {len(region.unique_monsters())}"
        )
        for label, group in (("Area", region.areas), ("Shrine", region.shrines)):
            for area in group:
                monsters = ", ".join(f"{name} x{count}" for name, count in area.monsters.items())
                ident = "-" if area.area_id is None else area.area_id
                lines.append(f"  {label} {area.area_name} (ID: {ident}): {monsters}")
    lines.append(
        f"Monsters: {census.total_monsters} | Without region: {census.without_region} | "
        f"Without area id: {census.without_area_id} | "
        f"Without area info: {census.without_area_info}"
    )
    return "\n".join(lines)
