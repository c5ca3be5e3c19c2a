from __future__ import annotations

import pytest

from huntmap.errors import FatalInputError, IssueLog
from huntmap.models import WorldPosition
from huntmap.spawns import (
    SpawnCenter,
    SpawnMonster,
    build_spawn_index,
    load_spawns,
    parse_spawns,
)
from tests.utils import SPAWNS_XML


def test_monster_offsets_resolve_to_absolute_tiles() -> None:
    index = build_spawn_index(
        [
            SpawnCenter(
                center=WorldPosition(32000, 32000, 7),
                monsters=(SpawnMonster("Rat", 1, -1),),
            )
        ]
    )
    records = index[WorldPosition(32001, 31999, 7)]
    assert [record.monster_name for record in records] == ["Rat"]
    assert records[0].center == WorldPosition(32000, 32000, 7)


def test_colocated_monsters_are_appended() -> None:
    index = build_spawn_index(parse_spawns(SPAWNS_XML))
    names = [record.monster_name for record in index.at(WorldPosition(100, 200, 7))]
    assert names == ["Rat", "Rat"]
    assert index.record_count() == 4
    assert len(index) == 3


def test_empty_spawn_center_contributes_nothing() -> None:
    centers = parse_spawns(SPAWNS_XML)
    assert centers[1].monsters == ()
    assert centers[1].radius == 1
    index = build_spawn_index(centers[1:])
    assert len(index) == 0


def test_lookup_is_planar_unless_floor_requested() -> None:
    index = build_spawn_index(parse_spawns(SPAWNS_XML))
    other_floor = WorldPosition(102, 200, 6)
    assert [record.monster_name for record in index.at(other_floor)] == ["Wolf"]
    assert index.at(other_floor, match_floor=True) == ()
    assert other_floor not in index
    assert WorldPosition(102, 200, 7) in index


def test_malformed_monster_is_skipped_and_counted() -> None:
    issues = IssueLog()
    centers = parse_spawns(
        """<spawns>
          <spawn centerx="10" centery="10" centerz="7" radius="1">
            <monster name="Rat" x="0" y="0" z="7"/>
            <monster name="Troll" x="abc" y="0" z="7"/>
            <monster x="1" y="1" z="7"/>
          </spawn>
          <spawn centerx="nope" centery="10" centerz="7"/>
        </spawns>""",
        issues,
    )
    assert len(centers) == 1
    assert [monster.name for monster in centers[0].monsters] == ["Rat"]
    assert issues.counts() == {"spawn-monster": 2, "spawn": 1}


def test_load_spawns_fatal_on_missing_or_malformed(tmp_path) -> None:
    with pytest.raises(FatalInputError) as excinfo:
        load_spawns(tmp_path / "missing.xml")
    assert excinfo.value.input_name == "spawn file"

    broken = tmp_path / "broken.xml"
    broken.write_text("<spawns><spawn", encoding="utf-8")
    with pytest.raises(FatalInputError, match="malformed XML"):
        load_spawns(broken)


def test_records_walk_every_monster() -> None:
    index = build_spawn_index(parse_spawns(SPAWNS_XML))
    names = [record.monster_name for record in index.records()]
    assert names == ["Rat", "Rat", "Cave Rat", "Wolf"]
    assert len(names) == index.record_count()
