"""Tile and item id occurrence counts, optionally bucketed by region."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from huntmap.models import MapTile
from huntmap.regions import RegionIndex

LOGGER = logging.getLogger("huntmap.occurrences")


@dataclass
class OccurrenceResult:
    """Counts of selected ids across the analysed tiles."""

    tiles_analyzed: int
    counts: dict[int, int]


@dataclass
class RegionOccurrenceResult:
    """Counts of selected ids per region."""

    tiles_analyzed: int
    tiles_with_region: int
    tiles_without_region: int
    counts: dict[int, dict[str, int]] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        return {
            "tiles_analyzed": self.tiles_analyzed,
            "tiles_with_region": self.tiles_with_region,
            "tiles_without_region": self.tiles_without_region,
            "results": {str(key): dict(value) for key, value in self.counts.items()},
        }


def _matching_ids(tile: MapTile, targets: set[int]) -> list[int]:
    matches = []
    if tile.tile_id is not None and tile.tile_id in targets:
        matches.append(tile.tile_id)
    matches.extend(item_id for item_id in tile.item_ids if item_id in targets)
    return matches


def count_occurrences(tiles: Iterable[MapTile], target_ids: Iterable[int]) -> OccurrenceResult:
    """Count how often each target id is used as a tile id or item id."""
    targets = set(target_ids)
    counts = {target: 0 for target in sorted(targets)}
    analyzed = 0
    for tile in tiles:
        analyzed += 1
        for match in _matching_ids(tile, targets):
            counts[match] += 1
    LOGGER.info("Counted id occurrences over %d tiles.", analyzed)
    return OccurrenceResult(tiles_analyzed=analyzed, counts=counts)


def count_occurrences_by_region(
    tiles: Iterable[MapTile],
    region_index: RegionIndex,
    target_ids: Iterable[int],
) -> RegionOccurrenceResult:
    """Count target ids per region; tiles outside every region are skipped."""
    targets = set(target_ids)
    result = RegionOccurrenceResult(
        tiles_analyzed=0,
        tiles_with_region=0,
        tiles_without_region=0,
        counts={target: {} for target in sorted(targets)},
    )
    for tile in tiles:
        result.tiles_analyzed += 1
        region = region_index.lookup(tile.position)
        if region is None:
            result.tiles_without_region += 1
            continue
        result.tiles_with_region += 1
        for match in _matching_ids(tile, targets):
            bucket = result.counts[match]
            bucket[region.name] = bucket.get(region.name, 0) + 1
    LOGGER.info(
        "Tiles with region: %d, without region: %d.",
        result.tiles_with_region,
        result.tiles_without_region,
    )
    return result
