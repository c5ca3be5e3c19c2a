"""Data models shared by the map, region, spawn, and hunt modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Tuple

RGB = Tuple[int, int, int]

UNKNOWN_AREA_NAME = "Unknown"
NOT_FOUND_REGION = "[NOT FOUND REGION]"


class NodeKind(IntEnum):
    """Node type bytes used by the OTBM container."""

    MAP_HEADER = 0x00
    MAP_DATA = 0x02
    TILE_AREA = 0x04
    TILE = 0x05
    ITEM = 0x06
    TOWNS = 0x0C
    TOWN = 0x0D
    HOUSE_TILE = 0x0E
    WAYPOINTS = 0x0F
    WAYPOINT = 0x10


@dataclass(frozen=True)
class WorldPosition:
    """Absolute world tile coordinate."""

    x: int
    y: int
    z: int = 0

    def planar(self) -> tuple[int, int]:
        """Return the (x, y) pair used by floor-agnostic lookups."""
        return (self.x, self.y)

    def offset(self, dx: int, dy: int) -> "WorldPosition":
        """Return a position shifted on the same floor."""
        return WorldPosition(self.x + dx, self.y + dy, self.z)

    def __str__(self) -> str:
        return f"{self.x},{self.y},{self.z}"


@dataclass
class MapTile:
    """A tile inside a tile-area feature.

    ``position`` is filled with the absolute coordinate once the tile has been
    extracted from its feature.
    """

    local_x: int
    local_y: int
    floor: int
    tile_id: int | None = None
    item_ids: list[int] = field(default_factory=list)
    area_id: int | None = None
    house_id: int | None = None
    position: WorldPosition | None = None


@dataclass(frozen=True)
class MapFeature:
    """A node-tree group of tiles sharing a local origin."""

    kind: NodeKind
    origin: WorldPosition
    tiles: tuple[MapTile, ...] | None


@dataclass(frozen=True)
class RegionDefinition:
    """A named region keyed by one exact raster colour."""

    name: str
    tag: str
    color_key: RGB
    recommended_level: str | None = None
    level_variation: int = 0

    @property
    def color_hex(self) -> str:
        """Return the colour key as ``#RRGGBB``."""
        return "#{:02X}{:02X}{:02X}".format(*self.color_key)


@dataclass(frozen=True)
class SpawnRecord:
    """One monster placed by a spawn center."""

    monster_name: str
    position: WorldPosition
    center: WorldPosition


@dataclass(frozen=True)
class AreaDefinition:
    """An entry from the area catalog."""

    id: int
    name: str
    level_variation: int = 0


@dataclass
class HuntAreaReport:
    """Aggregated statistics for one hunt area."""

    area_id: int
    area_name: str
    tile_count: int = 0
    total_monster_instances: int = 0
    unique_monster_names: set[str] = field(default_factory=set)


@dataclass
class RegionReport:
    """Hunt areas grouped under the region that owns their anchor."""

    region_name: str
    hunt_areas: list[HuntAreaReport] = field(default_factory=list)
