"""Spawn definition parsing and the world tile to monster index."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator

from huntmap.errors import FatalInputError, IssueLog, RecoverableRecordError
from huntmap.models import SpawnRecord, WorldPosition

LOGGER = logging.getLogger("huntmap.spawns")


@dataclass(frozen=True)
class SpawnMonster:
    """A monster entry with an offset relative to its spawn center."""

    name: str
    dx: int
    dy: int


@dataclass(frozen=True)
class SpawnCenter:
    """A spawn center and the monsters placed around it."""

    center: WorldPosition
    radius: int = 0
    monsters: tuple[SpawnMonster, ...] = field(default_factory=tuple)


class SpawnIndex:
    """Read-only lookup of the spawn records placed on each world tile."""

    def __init__(self, records: Iterable[SpawnRecord] = ()) -> None:
        by_position: dict[WorldPosition, list[SpawnRecord]] = defaultdict(list)
        by_planar: dict[tuple[int, int], list[SpawnRecord]] = defaultdict(list)
        for record in records:
            by_position[record.position].append(record)
            by_planar[record.position.planar()].append(record)
        self._by_position = {key: tuple(value) for key, value in by_position.items()}
        self._by_planar = {key: tuple(value) for key, value in by_planar.items()}

    def at(self, pos: WorldPosition, *, match_floor: bool = False) -> tuple[SpawnRecord, ...]:
        """Return the records on ``pos``; the floor is ignored unless requested."""
        if match_floor:
            return self._by_position.get(pos, ())
        return self._by_planar.get(pos.planar(), ())

    def __getitem__(self, pos: WorldPosition) -> tuple[SpawnRecord, ...]:
        return self._by_position.get(pos, ())

    def __contains__(self, pos: object) -> bool:
        return pos in self._by_position

    def __iter__(self) -> Iterator[WorldPosition]:
        return iter(self._by_position)

    def __len__(self) -> int:
        return len(self._by_position)

    def record_count(self) -> int:
        return sum(len(records) for records in self._by_position.values())

    def records(self) -> Iterator[SpawnRecord]:
        """Yield every record, grouped by tile in first-seen order."""
        for records in self._by_position.values():
            yield from records


def build_spawn_index(spawn_defs: Iterable[SpawnCenter]) -> SpawnIndex:
    """Resolve monster offsets to absolute tiles and index them."""
    records: list[SpawnRecord] = []
    for spawn in spawn_defs:
        for monster in spawn.monsters:
            records.append(
                SpawnRecord(
                    monster_name=monster.name,
                    position=spawn.center.offset(monster.dx, monster.dy),
                    center=spawn.center,
                )
            )
    index = SpawnIndex(records)
    LOGGER.info("Indexed %d monsters on %d tiles.", len(records), len(index))
    return index


def _required_int(element: ET.Element, key: str) -> int:
    value = element.get(key)
    if value is None:
        raise ValueError(f"missing '{key}'")
    return int(value)


def parse_spawns(text: str | bytes, issues: IssueLog | None = None) -> list[SpawnCenter]:
    """Parse a spawn document into spawn centers."""
    root = ET.fromstring(text)
    centers: list[SpawnCenter] = []
    for index, element in enumerate(root.iter("spawn")):
        try:
            center = WorldPosition(
                _required_int(element, "centerx"),
                _required_int(element, "centery"),
                _required_int(element, "centerz"),
            )
            radius = int(element.get("radius") or 0)
        except ValueError as exc:
            _record(issues, RecoverableRecordError("spawn", f"#{index}", str(exc)))
            continue
        monsters: list[SpawnMonster] = []
        for monster in element.iter("monster"):
            name = monster.get("name", "")
            try:
                if not name:
                    raise ValueError("missing 'name'")
                monsters.append(
                    SpawnMonster(name, _required_int(monster, "x"), _required_int(monster, "y"))
                )
            except ValueError as exc:
                _record(
                    issues,
                    RecoverableRecordError("spawn-monster", f"{center} {name}".strip(), str(exc)),
                )
        centers.append(SpawnCenter(center=center, radius=radius, monsters=tuple(monsters)))
    return centers


def _record(issues: IssueLog | None, error: RecoverableRecordError) -> None:
    if issues is not None:
        issues.record(error)
    else:
        LOGGER.warning("%s", error)


def load_spawns(path: Path, issues: IssueLog | None = None) -> list[SpawnCenter]:
    """Load spawn centers from a spawn XML file."""
    try:
        text = Path(path).read_bytes()
    except OSError as exc:
        raise FatalInputError("spawn file", path, str(exc)) from exc
    try:
        return parse_spawns(text, issues)
    except ET.ParseError as exc:
        raise FatalInputError("spawn file", path, f"malformed XML: {exc}") from exc
