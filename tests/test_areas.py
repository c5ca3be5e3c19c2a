from __future__ import annotations

import pytest

from huntmap.areas import decode_areas, extract_hunt_anchor, is_hunt_area, load_areas
from huntmap.errors import FatalInputError, IssueLog
from huntmap.models import WorldPosition
from tests.utils import AREAS_XML


def test_extract_anchor_from_hunt_name() -> None:
    assert extract_hunt_anchor("Rook Hunt Rats x=32097, y=32205, z=7") == WorldPosition(
        32097, 32205, 7
    )


def test_extract_anchor_tolerates_spacing() -> None:
    assert extract_hunt_anchor("Hunt x = 1,y=2,  z =3") == WorldPosition(1, 2, 3)


@pytest.mark.parametrize(
    "name",
    ["Hunt without anchor", "Hunt x=1, y=2", "Hunt x=a, y=2, z=3", ""],
)
def test_extract_anchor_returns_none(name: str) -> None:
    assert extract_hunt_anchor(name) is None


def test_hunt_marker_is_case_sensitive() -> None:
    assert is_hunt_area("Cyclops Hunt x=1, y=2, z=3")
    assert not is_hunt_area("cyclops hunt x=1, y=2, z=3")


def test_decode_areas_keeps_document_order() -> None:
    areas = decode_areas(AREAS_XML)
    assert list(areas) == [1, 2, 3, 4, 5, 6]
    assert areas[2].name == "Temple"


def test_decode_areas_skips_bad_ids() -> None:
    issues = IssueLog()
    areas = decode_areas(
        '<dreamareas><area id="x" name="Bad"/><area name="NoId"/><area id="7" name="Ok"/>'
        "</dreamareas>",
        issues,
    )
    assert list(areas) == [7]
    assert issues.counts() == {"area": 2}


def test_load_areas_fatal_on_missing_file(tmp_path) -> None:
    with pytest.raises(FatalInputError, match="area catalog"):
        load_areas(tmp_path / "missing.xml")


def test_decode_areas_reads_level_variation() -> None:
    issues = IssueLog()
    areas = decode_areas(
        '<dreamareas><area id="1" name="Deep" varLevel="15"/><area id="2" name="Flat"/>'
        '<area id="3" name="Odd" varLevel="high"/></dreamareas>',
        issues,
    )
    assert areas[1].level_variation == 15
    assert areas[2].level_variation == 0
    assert 3 not in areas
    assert issues.counts() == {"area": 1}
