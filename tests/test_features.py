from __future__ import annotations

from collections import Counter

from huntmap.errors import IssueLog
from huntmap.features import (
    area_ids_by_position,
    collect_unique_ids,
    extract_tiles,
    iter_features,
    render_unique_ids,
)
from huntmap.models import WorldPosition
from huntmap.otbm.json_tree import node_tree_from_dict
from tests.utils import node_tree, tile, world_tree


def test_tiles_get_absolute_positions() -> None:
    tiles = extract_tiles(node_tree_from_dict(world_tree()))
    first = tiles[0]
    assert first.position == WorldPosition(100, 200, 7)
    assert first.floor == 7
    assert first.area_id == 1
    assert first.item_ids == [2000, 2001]
    assert {tile.position for tile in tiles} >= {
        WorldPosition(105, 205, 7),
        WorldPosition(103, 203, 7),
    }
    assert len(tiles) == 8


def test_feature_without_tiles_is_empty_not_error() -> None:
    issues = IssueLog()
    features = list(iter_features(node_tree_from_dict(world_tree()), issues))
    assert features[1].tiles is None
    assert len(issues) == 0


def test_malformed_feature_is_skipped_and_counted() -> None:
    tree = node_tree(
        [
            {"type": 4, "x": 10, "y": 10, "z": 7, "tiles": [tile(0, 0, area=1)]},
            {"type": 4, "x": 20, "y": 20, "z": 7, "tiles": "broken"},
            {"type": 4, "x": 30, "z": 7, "tiles": [tile(0, 0)]},
            {"type": 4, "x": 40, "y": 40, "z": 7, "tiles": [{"type": 5, "x": 1}]},
        ]
    )
    issues = IssueLog()
    tiles = extract_tiles(node_tree_from_dict(tree), issues)
    assert [tile.position for tile in tiles] == [WorldPosition(10, 10, 7)]
    assert issues.counts() == {"feature": 3}


def test_non_area_features_are_ignored() -> None:
    tree = node_tree(
        [
            {"type": 12, "towns": [{"type": 13, "townid": 1, "name": "Thais"}]},
            {"type": 4, "x": 1, "y": 1, "z": 7, "tiles": [tile(0, 0)]},
        ]
    )
    issues = IssueLog()
    assert len(extract_tiles(node_tree_from_dict(tree), issues)) == 1
    assert len(issues) == 0


def test_colliding_tiles_are_all_emitted() -> None:
    tree = node_tree(
        [
            {
                "type": 4,
                "x": 100,
                "y": 200,
                "z": 7,
                "tiles": [tile(0, 0, tile_id=1, area=1), tile(1, 0, tile_id=1, area=1)],
            },
            {"type": 4, "x": 100, "y": 200, "z": 7, "tiles": [tile(0, 0, tile_id=2, area=2)]},
        ]
    )
    tiles = extract_tiles(node_tree_from_dict(tree))
    assert [tile.area_id for tile in tiles] == [1, 1, 2]
    per_area = Counter(tile.area_id for tile in tiles)
    assert per_area == {1: 2, 2: 1}


def test_area_index_keeps_last_tile_per_position() -> None:
    tree = node_tree(
        [
            {"type": 4, "x": 100, "y": 200, "z": 7, "tiles": [tile(0, 0, area=1), tile(1, 0)]},
            {"type": 4, "x": 100, "y": 200, "z": 7, "tiles": [tile(0, 0, area=2)]},
        ]
    )
    areas = area_ids_by_position(extract_tiles(node_tree_from_dict(tree)))
    assert areas == {WorldPosition(100, 200, 7): 2}


def test_unique_ids_audit() -> None:
    ids = collect_unique_ids(node_tree_from_dict(world_tree()))
    assert ids == [101, 102, 103, 104, 105, 106, 2000, 2001]
    text = render_unique_ids(ids)
    assert text.splitlines()[0] == "Unique IDs used in tileid and items (total 8):"
    assert text.splitlines()[1:3] == ["101", "102"]
