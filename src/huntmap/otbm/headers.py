"""OTBM container constants."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Mapping

NODE_ESC = 0xFD
NODE_INIT = 0xFE
NODE_TERM = 0xFF

MAGIC_NULL = 0x00000000
MAGIC_OTBM = 0x4D42544F


class Attr(IntEnum):
    """Standard attribute type bytes."""

    DESCRIPTION = 0x01
    EXT_FILE = 0x02
    TILE_FLAGS = 0x03
    ACTION_ID = 0x04
    UNIQUE_ID = 0x05
    TEXT = 0x06
    DESC = 0x07
    TELE_DEST = 0x08
    ITEM = 0x09
    DEPOT_ID = 0x0A
    EXT_SPAWN_FILE = 0x0B
    EXT_HOUSE_FILE = 0x0D
    HOUSE_DOOR_ID = 0x0E
    COUNT = 0x0F
    RUNE_CHARGES = 0x16
    ROTATION = 0x32
    BIG_OBJ_REF = 0x33


TILESTATE_PROTECTIONZONE = 0x0001
TILESTATE_NOPVP = 0x0004
TILESTATE_NOLOGOUT = 0x0008
TILESTATE_PVPZONE = 0x0010
TILESTATE_REFRESH = 0x0020


@dataclass(frozen=True)
class AttributeCodes:
    """Type bytes for the world-specific tile attributes."""

    area_id: int = 0x34
    subarea_id: int = 0x35
    weather_id: int = 0x36
    tags: int = 0x37

    def __post_init__(self) -> None:
        values = (self.area_id, self.subarea_id, self.weather_id, self.tags)
        standard = {int(attr) for attr in Attr}
        for value in values:
            if not 0 <= value <= 0xFF:
                raise ValueError(f"Attribute code out of range: {value}")
            if value in standard:
                raise ValueError(f"Attribute code collides with a standard attribute: {value:#04x}")
        if len(set(values)) != len(values):
            raise ValueError("Attribute codes must be distinct.")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AttributeCodes":
        defaults = cls()
        return cls(
            area_id=_code(data.get("area_id", defaults.area_id)),
            subarea_id=_code(data.get("subarea_id", defaults.subarea_id)),
            weather_id=_code(data.get("weather_id", defaults.weather_id)),
            tags=_code(data.get("tags", defaults.tags)),
        )


def _code(value: Any) -> int:
    """Accept attribute codes as ints or hex/decimal strings."""
    if isinstance(value, str):
        return int(value, 0)
    return int(value)


def read_flags(flags: int) -> dict[str, bool]:
    """Expand tile state flags into named booleans."""
    return {
        "protection": bool(flags & TILESTATE_PROTECTIONZONE),
        "no_pvp": bool(flags & TILESTATE_NOPVP),
        "no_logout": bool(flags & TILESTATE_NOLOGOUT),
        "pvp_zone": bool(flags & TILESTATE_PVPZONE),
        "refresh": bool(flags & TILESTATE_REFRESH),
    }
