"""Tile extraction from the decoded map node tree."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from huntmap.errors import IssueLog, RecoverableRecordError
from huntmap.models import MapFeature, MapTile, NodeKind, WorldPosition
from huntmap.otbm.nodes import MapNode

LOGGER = logging.getLogger("huntmap.features")

_TILE_KINDS = (NodeKind.TILE, NodeKind.HOUSE_TILE)


def _int_attr(node: MapNode, key: str) -> int:
    value = node.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"'{key}' is missing or not an integer")
    return value


def _optional_int(node: MapNode, key: str) -> int | None:
    value = node.get(key)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def _build_tile(node: MapNode, floor: int) -> MapTile:
    if node.problem:
        raise ValueError(node.problem)
    if node.kind not in _TILE_KINDS:
        raise ValueError(f"unexpected node type {node.kind} in tile list")
    item_ids = [
        child.get("id")
        for child in node.children
        if child.kind == NodeKind.ITEM and isinstance(child.get("id"), int)
    ]
    return MapTile(
        local_x=_int_attr(node, "x"),
        local_y=_int_attr(node, "y"),
        floor=floor,
        tile_id=_optional_int(node, "tile_id"),
        item_ids=item_ids,
        area_id=_optional_int(node, "area_id"),
        house_id=_optional_int(node, "house_id"),
    )


def _build_feature(node: MapNode) -> MapFeature:
    """Convert a tile-area node; raises ValueError when it is malformed."""
    if node.problem:
        raise ValueError(node.problem)
    origin = WorldPosition(_int_attr(node, "x"), _int_attr(node, "y"), _int_attr(node, "z"))
    if not node.children:
        return MapFeature(kind=NodeKind.TILE_AREA, origin=origin, tiles=None)
    tiles = tuple(_build_tile(child, origin.z) for child in node.children)
    return MapFeature(kind=NodeKind.TILE_AREA, origin=origin, tiles=tiles)


def iter_features(node_tree: MapNode, issues: IssueLog | None = None) -> Iterator[MapFeature]:
    """Yield tile-area features, skipping malformed ones."""
    for map_data in node_tree.map_data_nodes():
        for index, node in enumerate(map_data.children):
            if node.kind != NodeKind.TILE_AREA:
                continue
            try:
                yield _build_feature(node)
            except ValueError as exc:
                error = RecoverableRecordError("feature", f"#{index}", str(exc))
                if issues is not None:
                    issues.record(error)
                else:
                    LOGGER.warning("%s", error)


def extract_tiles(node_tree: MapNode, issues: IssueLog | None = None) -> list[MapTile]:
    """Return every tile-area tile, in decode order, with its absolute position filled in."""
    tiles: list[MapTile] = []
    for feature in iter_features(node_tree, issues):
        if feature.tiles is None:
            continue
        for tile in feature.tiles:
            tile.position = feature.origin.offset(tile.local_x, tile.local_y)
            tiles.append(tile)
    LOGGER.info("Extracted %d tiles from the map.", len(tiles))
    return tiles


def area_ids_by_position(tiles: Iterable[MapTile]) -> dict[WorldPosition, int]:
    """Map absolute positions to area ids; later tiles win on a shared position."""
    areas: dict[WorldPosition, int] = {}
    collisions = 0
    for tile in tiles:
        if tile.position is None or tile.area_id is None:
            continue
        if tile.position in areas:
            collisions += 1
        areas[tile.position] = tile.area_id
    if collisions:
        LOGGER.warning("%d map tiles share a position; the last one was kept.", collisions)
    return areas


def collect_unique_ids(node_tree: MapNode, issues: IssueLog | None = None) -> list[int]:
    """Return the sorted distinct tile ids and item ids used on the map."""
    ids: set[int] = set()
    for feature in iter_features(node_tree, issues):
        for tile in feature.tiles or ():
            if tile.tile_id is not None:
                ids.add(tile.tile_id)
            ids.update(tile.item_ids)
    return sorted(ids)


def render_unique_ids(ids: Iterable[int]) -> str:
    """Render the unique id audit list with its count header."""
    values = list(ids)
    lines = [f"Unique IDs used in tileid and items (total {len(values)}):"]
    lines.extend(str(value) for value in values)
    return "\n".join(lines)
