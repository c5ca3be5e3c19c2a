"""Hunt aggregation: join map tiles, spawns, areas, and regions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

from huntmap.areas import extract_hunt_anchor, is_hunt_area
from huntmap.contracts import SCHEMA_VERSION
from huntmap.errors import IssueLog, RecoverableRecordError
from huntmap.models import (
    NOT_FOUND_REGION,
    UNKNOWN_AREA_NAME,
    AreaDefinition,
    HuntAreaReport,
    MapTile,
    RegionReport,
)
from huntmap.regions import RegionIndex
from huntmap.spawns import SpawnIndex

LOGGER = logging.getLogger("huntmap.hunts")

SEPARATOR = "------------------"


@dataclass
class HuntAnalysis:
    """Hunt report plus the join statistics gathered while building it."""

    regions: list[RegionReport]
    tiles_without_area: int = 0
    unknown_area_ids: tuple[int, ...] = ()
    skipped_areas: int = 0
    unresolved_anchors: tuple[int, ...] = ()
    issues: dict[str, int] = field(default_factory=dict)


def _group_tiles(tiles: Iterable[MapTile]) -> tuple[dict[int, list[MapTile]], int]:
    grouped: dict[int, list[MapTile]] = {}
    without_area = 0
    for tile in tiles:
        if tile.area_id is None:
            without_area += 1
            continue
        grouped.setdefault(tile.area_id, []).append(tile)
    return grouped, without_area


def _summarize_area(
    area: AreaDefinition,
    tiles: list[MapTile],
    spawn_index: SpawnIndex,
    *,
    match_floor: bool,
) -> HuntAreaReport:
    report = HuntAreaReport(area_id=area.id, area_name=area.name)
    for tile in tiles:
        report.tile_count += 1
        if tile.position is None:
            continue
        records = spawn_index.at(tile.position, match_floor=match_floor)
        report.total_monster_instances += len(records)
        report.unique_monster_names.update(record.monster_name for record in records)
    return report


def analyze_hunts(
    tiles: Iterable[MapTile],
    region_index: RegionIndex,
    spawn_index: SpawnIndex,
    area_catalog: Mapping[int, AreaDefinition],
    *,
    issues: IssueLog | None = None,
    match_floor: bool = False,
) -> HuntAnalysis:
    """Group hunt areas by region and collect per-area monster statistics."""
    issues = issues if issues is not None else IssueLog()
    grouped, without_area = _group_tiles(tiles)
    catalog = dict(area_catalog)
    unknown = tuple(sorted(area_id for area_id in grouped if area_id not in catalog))
    if unknown:
        LOGGER.info(
            "%d area ids on the map are missing from the catalog; treating them as %s.",
            len(unknown),
            UNKNOWN_AREA_NAME,
        )

    regions: dict[str, RegionReport] = {}
    skipped = 0
    unresolved: list[int] = []
    for area_id, area in catalog.items():
        area_tiles = grouped.get(area_id)
        if not area_tiles:
            continue
        if not is_hunt_area(area.name):
            skipped += 1
            continue
        anchor = extract_hunt_anchor(area.name)
        region = None
        if anchor is None:
            issues.record(
                RecoverableRecordError("hunt-anchor", str(area_id), f"no anchor in {area.name!r}")
            )
        else:
            region = region_index.lookup(anchor)
            if region is None:
                LOGGER.info(
                    "Anchor %s of area %d is outside every region.",
                    anchor,
                    area_id,
                    extra={"area": area_id},
                )
        if region is None:
            unresolved.append(area_id)
        region_name = region.name if region is not None else NOT_FOUND_REGION
        bucket = regions.setdefault(region_name, RegionReport(region_name=region_name))
        bucket.hunt_areas.append(
            _summarize_area(area, area_tiles, spawn_index, match_floor=match_floor)
        )

    LOGGER.info(
        "Grouped %d hunt areas into %d regions.",
        sum(len(report.hunt_areas) for report in regions.values()),
        len(regions),
    )
    return HuntAnalysis(
        regions=list(regions.values()),
        tiles_without_area=without_area,
        unknown_area_ids=unknown,
        skipped_areas=skipped,
        unresolved_anchors=tuple(unresolved),
        issues=issues.counts(),
    )


def build_report(
    tiles: Iterable[MapTile],
    region_index: RegionIndex,
    spawn_index: SpawnIndex,
    area_catalog: Mapping[int, AreaDefinition],
    *,
    issues: IssueLog | None = None,
    match_floor: bool = False,
) -> list[RegionReport]:
    """Return hunt areas grouped by the region that owns their anchor."""
    return analyze_hunts(
        tiles,
        region_index,
        spawn_index,
        area_catalog,
        issues=issues,
        match_floor=match_floor,
    ).regions


def render_report(reports: Iterable[RegionReport]) -> str:
    """Render region reports as the plain-text hunt report."""
    lines: list[str] = []
    for region in reports:
        lines.append(SEPARATOR)
        lines.append(f"Region: {region.region_name} | Total hunts: {len(region.hunt_areas)}")
        for hunt in region.hunt_areas:
            names = ", ".join(sorted(hunt.unique_monster_names))
            lines.append(
                f"{hunt.area_name} (ID: {hunt.area_id}) | Tiles: {hunt.tile_count} | "
                f"Total Monsters: {hunt.total_monster_instances} | Unique Monsters: [{names}]"
            )
    return "\n".join(lines)


def report_as_dict(analysis: HuntAnalysis) -> dict[str, Any]:
    """Return a JSON-serialisable hunt report."""
    return {
        "schema_version": SCHEMA_VERSION,
        "created_at": datetime.now(timezone.utc).isoformat(),
        "regions": [
            {
                "region": region.region_name,
                "hunt_count": len(region.hunt_areas),
                "hunts": [
                    {
                        "area_id": hunt.area_id,
                        "area_name": hunt.area_name,
                        "tiles": hunt.tile_count,
                        "total_monsters": hunt.total_monster_instances,
                        "unique_monsters": sorted(hunt.unique_monster_names),
                    }
                    for hunt in region.hunt_areas
                ],
            }
            for region in analysis.regions
        ],
        "issues": dict(analysis.issues),
    }
