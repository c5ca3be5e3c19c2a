"""Area catalog decoding and hunt anchor recovery."""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from pathlib import Path

from huntmap.errors import FatalInputError, IssueLog, RecoverableRecordError
from huntmap.models import AreaDefinition, WorldPosition

LOGGER = logging.getLogger("huntmap.areas")

HUNT_MARKER = "Hunt"

_ANCHOR_PATTERN = re.compile(r"x\s*=\s*(\d+),\s*y\s*=\s*(\d+),\s*z\s*=\s*(\d+)")


def extract_hunt_anchor(name: str) -> WorldPosition | None:
    """Return the ``x=.., y=.., z=..`` anchor embedded in an area name."""
    match = _ANCHOR_PATTERN.search(name)
    if match is None:
        return None
    x, y, z = (int(group) for group in match.groups())
    return WorldPosition(x, y, z)


def is_hunt_area(name: str) -> bool:
    """Return True for area names marked as hunts (case-sensitive)."""
    return HUNT_MARKER in name


def decode_areas(
    text: str | bytes,
    issues: IssueLog | None = None,
) -> dict[int, AreaDefinition]:
    """Parse the area catalog into definitions keyed by id, in document order.

    ``varLevel`` is optional and defaults to 0; a non-numeric value drops the
    area like a bad id does.
    """
    root = ET.fromstring(text)
    areas: dict[int, AreaDefinition] = {}
    for index, element in enumerate(root.iter("area")):
        raw_id = element.get("id")
        try:
            if raw_id is None:
                raise ValueError("missing 'id'")
            area = AreaDefinition(
                id=int(raw_id),
                name=element.get("name", ""),
                level_variation=int(element.get("varLevel") or 0),
            )
        except ValueError as exc:
            error = RecoverableRecordError("area", raw_id or f"#{index}", str(exc))
            if issues is not None:
                issues.record(error)
            else:
                LOGGER.warning("%s", error)
            continue
        areas[area.id] = area
    return areas


def load_areas(path: Path, issues: IssueLog | None = None) -> dict[int, AreaDefinition]:
    """Load the area catalog from disk."""
    try:
        text = Path(path).read_bytes()
    except OSError as exc:
        raise FatalInputError("area catalog", path, str(exc)) from exc
    try:
        return decode_areas(text, issues)
    except ET.ParseError as exc:
        raise FatalInputError("area catalog", path, f"malformed XML: {exc}") from exc
