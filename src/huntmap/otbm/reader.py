"""Binary OTBM reader producing a typed node tree."""

from __future__ import annotations

import logging
import re
import struct
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from huntmap.models import NodeKind
from huntmap.otbm.headers import (
    MAGIC_NULL,
    MAGIC_OTBM,
    NODE_ESC,
    NODE_INIT,
    Attr,
    AttributeCodes,
    read_flags,
)
from huntmap.otbm.nodes import MapNode

LOGGER = logging.getLogger("huntmap.otbm")

_MARKERS = re.compile(b"[\xfd\xfe\xff]")
_STRING_SKIP_LIMIT = 1000


class OtbmDecodeError(ValueError):
    """The map container is corrupt or not an OTBM stream."""


@dataclass
class _PendingNode:
    raw: bytearray = field(default_factory=bytearray)
    children: list[MapNode] = field(default_factory=list)
    reading_props: bool = True


def _read_string16(data: bytes, offset: int) -> tuple[str, int]:
    """Read a u16 length-prefixed string and return it with the next offset."""
    (length,) = struct.unpack_from("<H", data, offset)
    start = offset + 2
    end = start + length
    if end > len(data):
        raise struct.error("string runs past end of node")
    return data[start:end].decode("latin-1"), end


def _skip_unknown(data: bytes, offset: int, attr_type: int) -> int:
    """Skip an attribute this reader does not understand."""
    size = len(data)
    if offset + 2 > size:
        return size
    (possible_length,) = struct.unpack_from("<H", data, offset)
    if 0 < possible_length < _STRING_SKIP_LIMIT and offset + 2 + possible_length <= size:
        return offset + 2 + possible_length
    if attr_type < 0x20:
        for width in (4, 2, 1):
            if offset + width <= size:
                return offset + width
        return size
    return offset + 2 if offset + 2 <= size else size


def _read_position(data: bytes, offset: int) -> dict[str, int]:
    x, y, z = struct.unpack_from("<HHB", data, offset)
    return {"x": x, "y": y, "z": z}


def read_attributes(data: bytes, codes: AttributeCodes) -> dict[str, Any]:
    """Decode an attribute stream into a property mapping."""
    props: dict[str, Any] = {}
    i = 0
    while i + 1 < len(data):
        attr_type = data[i]
        i += 1
        if attr_type == Attr.DESCRIPTION:
            text, i = _read_string16(data, i)
            existing = props.get("description")
            props["description"] = f"{existing} {text}" if existing else text
        elif attr_type in (Attr.TEXT, Attr.DESC):
            props["text"], i = _read_string16(data, i)
        elif attr_type == Attr.EXT_SPAWN_FILE:
            props["spawn_file"], i = _read_string16(data, i)
        elif attr_type == Attr.EXT_HOUSE_FILE:
            props["house_file"], i = _read_string16(data, i)
        elif attr_type == Attr.HOUSE_DOOR_ID:
            props["house_door_id"] = data[i]
            i += 1
        elif attr_type == Attr.DEPOT_ID:
            (props["depot_id"],) = struct.unpack_from("<H", data, i)
            i += 2
        elif attr_type == Attr.TILE_FLAGS:
            (flags,) = struct.unpack_from("<I", data, i)
            props["zones"] = read_flags(flags)
            i += 4
        elif attr_type == Attr.RUNE_CHARGES:
            (props["rune_charges"],) = struct.unpack_from("<H", data, i)
            i += 2
        elif attr_type == Attr.COUNT:
            props["count"] = data[i]
            i += 1
        elif attr_type == Attr.ITEM:
            (props["tile_id"],) = struct.unpack_from("<H", data, i)
            i += 2
        elif attr_type == Attr.ACTION_ID:
            (props["action_id"],) = struct.unpack_from("<H", data, i)
            i += 2
        elif attr_type == Attr.UNIQUE_ID:
            (props["unique_id"],) = struct.unpack_from("<H", data, i)
            i += 2
        elif attr_type == Attr.TELE_DEST:
            props["destination"] = _read_position(data, i)
            i += 5
        elif attr_type == Attr.BIG_OBJ_REF:
            props["big_object_ref"] = _read_position(data, i)
            i += 5
        elif attr_type == Attr.ROTATION:
            (props["rotation"],) = struct.unpack_from("<H", data, i)
            i += 2
        elif attr_type == codes.area_id:
            (props["area_id"],) = struct.unpack_from("<I", data, i)
            i += 4
        elif attr_type == codes.subarea_id:
            (props["subarea_id"],) = struct.unpack_from("<I", data, i)
            i += 4
        elif attr_type == codes.weather_id:
            (props["weather_id"],) = struct.unpack_from("<I", data, i)
            i += 4
        elif attr_type == codes.tags:
            props["tags"], i = _read_string16(data, i)
        else:
            i = _skip_unknown(data, i, attr_type)
    return props


def _decode_node(raw: bytes, children: list[MapNode], codes: AttributeCodes) -> MapNode:
    """Build a MapNode from unescaped property bytes."""
    if not raw:
        return MapNode(kind=-1, children=children, problem="empty node")
    kind = raw[0]
    node = MapNode(kind=kind, children=children)
    try:
        if kind == NodeKind.MAP_HEADER:
            version, width, height, major, minor = struct.unpack_from("<IHHII", raw, 1)
            node.attributes = {
                "version": version,
                "map_width": width,
                "map_height": height,
                "items_major_version": major,
                "items_minor_version": minor,
            }
        elif kind == NodeKind.MAP_DATA:
            node.attributes = read_attributes(raw[1:], codes)
        elif kind == NodeKind.TILE_AREA:
            node.attributes = _read_position(raw, 1)
        elif kind == NodeKind.TILE:
            x, y = struct.unpack_from("<BB", raw, 1)
            node.attributes = {"x": x, "y": y, **read_attributes(raw[3:], codes)}
        elif kind == NodeKind.HOUSE_TILE:
            x, y, house_id = struct.unpack_from("<BBI", raw, 1)
            node.attributes = {
                "x": x,
                "y": y,
                "house_id": house_id,
                **read_attributes(raw[7:], codes),
            }
        elif kind == NodeKind.ITEM:
            (item_id,) = struct.unpack_from("<H", raw, 1)
            node.attributes = {"id": item_id, **read_attributes(raw[3:], codes)}
        elif kind == NodeKind.WAYPOINT:
            name, offset = _read_string16(raw, 1)
            node.attributes = {"name": name, **_read_position(raw, offset)}
        elif kind == NodeKind.TOWN:
            (town_id,) = struct.unpack_from("<I", raw, 1)
            name, offset = _read_string16(raw, 5)
            node.attributes = {"town_id": town_id, "name": name, **_read_position(raw, offset)}
    except struct.error as exc:
        node.problem = f"truncated node data: {exc}"
    return node


def parse_otbm(data: bytes, *, codes: AttributeCodes | None = None) -> MapNode:
    """Decode an in-memory OTBM stream into its root node."""
    codes = codes or AttributeCodes()
    if len(data) < 5:
        raise OtbmDecodeError("Map stream is too short.")
    (identifier,) = struct.unpack_from("<I", data, 0)
    if identifier not in (MAGIC_NULL, MAGIC_OTBM):
        raise OtbmDecodeError(f"Unknown OTBM format: unexpected magic bytes {identifier:#010x}.")
    if data[4] != NODE_INIT:
        raise OtbmDecodeError("Map stream does not start with a node marker.")

    node_count = 0
    stack = [_PendingNode()]
    pos = 5
    while True:
        match = _MARKERS.search(data, pos)
        if match is None:
            raise OtbmDecodeError("Unterminated node at end of map stream.")
        index = match.start()
        current = stack[-1]
        if current.reading_props:
            current.raw += data[pos:index]
        marker = data[index]
        if marker == NODE_ESC:
            if index + 1 >= len(data):
                raise OtbmDecodeError("Escape marker at end of map stream.")
            if current.reading_props:
                current.raw.append(data[index + 1])
            pos = index + 2
        elif marker == NODE_INIT:
            current.reading_props = False
            stack.append(_PendingNode())
            pos = index + 1
        else:
            stack.pop()
            node = _decode_node(bytes(current.raw), current.children, codes)
            node_count += 1
            if not stack:
                if node.problem:
                    raise OtbmDecodeError(f"Map header is corrupt: {node.problem}")
                LOGGER.debug("Decoded %d map nodes.", node_count)
                return node
            stack[-1].children.append(node)
            pos = index + 1


def read_otbm(path: Path, *, codes: AttributeCodes | None = None) -> MapNode:
    """Read a binary OTBM file into its root node."""
    return parse_otbm(Path(path).read_bytes(), codes=codes)
