"""Schema validation helpers for node tree dumps and JSON reports."""

from __future__ import annotations

import json
from importlib import resources
from typing import Any, Mapping

import jsonschema

SCHEMA_VERSION = "1.0"


def _load_schema(name: str) -> dict[str, Any]:
    """Load a JSON schema bundled in the package."""
    with resources.files("huntmap.schemas").joinpath(name).open("r", encoding="utf-8") as handle:
        return json.load(handle)


def validate_node_tree(payload: Mapping[str, Any]) -> None:
    """Validate the container level of a node tree dump."""
    schema = _load_schema("node_tree.schema.json")
    jsonschema.validate(payload, schema)


def validate_hunt_report(report: Mapping[str, Any]) -> None:
    """Validate a JSON hunt report against the schema."""
    schema = _load_schema("hunt_report.schema.json")
    jsonschema.validate(report, schema)


def validate_monster_census(census: Mapping[str, Any]) -> None:
    """Validate a JSON monster census against the schema."""
    schema = _load_schema("monster_census.schema.json")
    jsonschema.validate(census, schema)
