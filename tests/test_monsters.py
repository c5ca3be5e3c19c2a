from __future__ import annotations

from huntmap.areas import decode_areas
from huntmap.contracts import validate_monster_census
from huntmap.features import extract_tiles
from huntmap.models import MapTile, RegionDefinition, WorldPosition
from huntmap.monsters import (
    NO_AREA_NAME,
    is_shrine,
    minimum_level,
    monsters_by_region,
    render_census,
)
from huntmap.otbm.json_tree import node_tree_from_dict
from huntmap.regions import RasterCalibration, build_region_index
from huntmap.spawns import build_spawn_index, parse_spawns
from tests.utils import AREAS_XML, ROOKGAARD, SPAWNS_XML, THAIS, region_image, world_tree

SMALL = RasterCalibration(center_x=101, center_y=201, vision_size=4)

LEVELLED = (
    RegionDefinition("Dragon Lair", "lair", ROOKGAARD, recommended_level="50-80"),
    RegionDefinition("Troll Valley", "valley", THAIS, recommended_level="8"),
)

CENSUS_SPAWNS = """<spawns>
  <spawn centerx="100" centery="200" centerz="7" radius="1">
    <monster name="Dragon" x="0" y="0" z="7"/>
    <monster name="Troll" x="1" y="0" z="7"/>
    <monster name="Troll" x="1" y="0" z="7"/>
  </spawn>
  <spawn centerx="101" centery="200" centerz="6" radius="1">
    <monster name="Bat" x="0" y="0" z="6"/>
  </spawn>
</spawns>"""

CENSUS_AREAS = """<dreamareas>
  <area id="2" name="Troll SHRINE_bats" varLevel="5"/>
</dreamareas>"""


def _tile(x: int, y: int, z: int, area: int) -> MapTile:
    return MapTile(local_x=0, local_y=0, floor=z, area_id=area, position=WorldPosition(x, y, z))


def _census():
    return monsters_by_region(
        build_spawn_index(parse_spawns(CENSUS_SPAWNS)),
        build_region_index(region_image(), LEVELLED, SMALL),
        [_tile(101, 200, 7, 9), _tile(101, 200, 6, 2)],
        decode_areas(CENSUS_AREAS),
    )


def test_minimum_level_reads_leading_number() -> None:
    assert minimum_level("70-100") == 70
    assert minimum_level("8") == 8
    assert minimum_level("any") == 0
    assert minimum_level(None) == 0


def test_shrine_marker_ignores_case() -> None:
    assert is_shrine("Shrine_of_fire")
    assert not is_shrine("Shrine of fire")


def test_census_of_test_world() -> None:
    census = monsters_by_region(
        build_spawn_index(parse_spawns(SPAWNS_XML)),
        build_region_index(region_image(), calibration=SMALL),
        extract_tiles(node_tree_from_dict(world_tree())),
        decode_areas(AREAS_XML),
    )
    assert [region.region.name for region in census.regions] == [
        "rookgaard",
        "Thais and Surroundings",
    ]
    rook, thais = census.regions
    assert [(area.area_id, area.monsters) for area in rook.areas] == [(1, {"Rat": 2})]
    assert [(area.area_id, area.monsters) for area in thais.areas] == [(1, {"Cave Rat": 1})]
    # The wolf stands on a transparent pixel.
    assert census.total_monsters == 4
    assert census.without_region == 1
    assert census.processed == 3


def test_regions_sorted_by_minimum_level() -> None:
    census = _census()
    assert [region.region.tag for region in census.regions] == ["valley", "lair"]
    assert [region.min_level for region in census.regions] == [8, 50]


def test_area_resolution_uses_exact_floor() -> None:
    valley, lair = _census().regions
    assert [(area.area_id, area.area_name, area.monsters) for area in valley.areas] == [
        (9, "Area 9", {"Troll": 2})
    ]
    assert [(area.area_id, area.level_variation) for area in valley.shrines] == [(2, 5)]
    assert valley.shrines[0].monsters == {"Bat": 1}
    assert valley.total_spawns == 3
    assert valley.unique_monsters() == ["Bat", "Troll"]
    assert [(area.area_id, area.area_name) for area in lair.areas] == [(None, NO_AREA_NAME)]


def test_census_counters() -> None:
    census = _census()
    assert census.total_monsters == 4
    assert census.without_region == 0
    assert census.without_area_id == 1
    assert census.without_area_info == 2
    assert census.processed == 4


def test_census_json_matches_schema() -> None:
    payload = _census().as_dict()
    validate_monster_census(payload)
    assert payload["totals"]["processed"] == 4
    assert payload["regions"][1]["areas"][0]["area_id"] is None
    assert payload["regions"][0]["recommended_level"] == "8"


def test_render_census_lists_regions_and_shrines() -> None:
    lines = render_census(_census()).splitlines()
    assert lines[0] == "Region: Troll Valley | Min level: 8 | Total spawns: 3 | Unique monsters: 2"
    assert lines[1] == "  Area Area 9 (ID: 9): Troll x2"
    assert lines[2] == "  Shrine Troll SHRINE_bats (ID: 2): Bat x1"
    assert lines[4] == f"  Area {NO_AREA_NAME} (ID: -): Dragon x1"
    assert lines[-1].startswith("Monsters: 4 | Without region: 0")
