"""Decoders for the OTBM world-map container."""

from __future__ import annotations

from pathlib import Path

from huntmap.otbm.headers import AttributeCodes
from huntmap.otbm.json_tree import load_node_tree_json
from huntmap.otbm.nodes import MapNode
from huntmap.otbm.reader import OtbmDecodeError, read_otbm


def load_node_tree(path: Path, *, codes: AttributeCodes | None = None) -> MapNode:
    """Load a node tree from a binary map or an otbm2json-style JSON dump."""
    if path.suffix.lower() == ".json":
        return load_node_tree_json(path)
    return read_otbm(path, codes=codes)


__all__ = [
    "AttributeCodes",
    "MapNode",
    "OtbmDecodeError",
    "load_node_tree",
    "load_node_tree_json",
    "read_otbm",
]
