"""Loader for otbm2json-style node tree dumps."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

import jsonschema

from huntmap.contracts import validate_node_tree
from huntmap.otbm.nodes import MapNode
from huntmap.otbm.reader import OtbmDecodeError

CHILD_KEYS = ("features", "tiles", "items", "towns", "content", "nodes")

# otbm2json property names mapped onto the reader's attribute names.
KEY_ALIASES = {
    "tileid": "tile_id",
    "dreamAreaId": "area_id",
    "dreamSubareaId": "subarea_id",
    "dreamWeatherId": "weather_id",
    "aid": "action_id",
    "uid": "unique_id",
    "houseId": "house_id",
    "houseDoorId": "house_door_id",
    "depotId": "depot_id",
    "runeCharges": "rune_charges",
    "spawnfile": "spawn_file",
    "housefile": "house_file",
    "bigObjectRef": "big_object_ref",
    "townid": "town_id",
    "mapWidth": "map_width",
    "mapHeight": "map_height",
    "itemsMajorVersion": "items_major_version",
    "itemsMinorVersion": "items_minor_version",
}


def _convert(payload: Mapping[str, Any]) -> MapNode:
    """Convert one JSON node into a MapNode, flagging malformed child lists."""
    kind = payload.get("type")
    node = MapNode(kind=kind if isinstance(kind, int) else -1)
    if not isinstance(kind, int):
        node.problem = "missing node type"
    for key, value in payload.items():
        if key == "type":
            continue
        if key in CHILD_KEYS:
            if not isinstance(value, list):
                node.problem = f"'{key}' is not a list"
                continue
            for child in value:
                if isinstance(child, Mapping):
                    node.children.append(_convert(child))
                else:
                    node.problem = f"'{key}' holds a non-object entry"
            continue
        node.attributes[KEY_ALIASES.get(key, key)] = value
    return node


def node_tree_from_dict(payload: Mapping[str, Any]) -> MapNode:
    """Validate a decoded dump and return its root node."""
    try:
        validate_node_tree(payload)
    except jsonschema.ValidationError as exc:
        raise OtbmDecodeError(f"Node tree dump failed validation: {exc.message}") from exc
    return _convert(payload["data"])


def load_node_tree_json(path: Path) -> MapNode:
    """Load a JSON node tree dump from disk."""
    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
    except UnicodeDecodeError as exc:
        raise OtbmDecodeError(f"Node tree dump is not UTF-8 text: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise OtbmDecodeError(f"Node tree dump is not valid JSON: {exc}") from exc
    return node_tree_from_dict(payload)
