from __future__ import annotations

import json
import os
from pathlib import Path

import numpy as np
import rasterio

ROOKGAARD = (0x19, 0xFF, 0x24)
THAIS = (0xFF, 0xD8, 0x00)

# Raster placement used by the test world: pixel (px, py) is tile (px + 99, py + 199).
TEST_CALIBRATION = {"center_x": 101, "center_y": 201, "vision_size": 4}

SPAWNS_XML = """<?xml version="1.0"?>
<spawns>
  <spawn centerx="100" centery="200" centerz="7" radius="2">
    <monster name="Rat" x="0" y="0" z="7" spawntime="60"/>
    <monster name="Rat" x="0" y="0" z="7" spawntime="60"/>
    <monster name="Cave Rat" x="1" y="0" z="7" spawntime="60"/>
    <monster name="Wolf" x="2" y="0" z="7" spawntime="60"/>
  </spawn>
  <spawn centerx="300" centery="300" centerz="7" radius="1"/>
</spawns>
"""

AREAS_XML = """<?xml version="1.0"?>
<dreamareas>
  <area id="1" name="Rook Hunt Rats x=100, y=200, z=7"/>
  <area id="2" name="Temple"/>
  <area id="3" name="Thais Hunt Wolves x=101, y=200, z=7"/>
  <area id="4" name="Lost Hunt x=500, y=500, z=7"/>
  <area id="5" name="Hunt without anchor"/>
  <area id="6" name="Empty Hunt x=100, y=200, z=7"/>
</dreamareas>
"""

EXPECTED_REPORT = "\n".join(
    [
        "------------------",
        "Region: rookgaard | Total hunts: 1",
        "Rook Hunt Rats x=100, y=200, z=7 (ID: 1) | Tiles: 2 | Total Monsters: 3 | "
        "Unique Monsters: [Cave Rat, Rat]",
        "------------------",
        "Region: Thais and Surroundings | Total hunts: 1",
        "Thais Hunt Wolves x=101, y=200, z=7 (ID: 3) | Tiles: 1 | Total Monsters: 1 | "
        "Unique Monsters: [Wolf]",
        "------------------",
        "Region: [NOT FOUND REGION] | Total hunts: 2",
        "Lost Hunt x=500, y=500, z=7 (ID: 4) | Tiles: 1 | Total Monsters: 0 | "
        "Unique Monsters: []",
        "Hunt without anchor (ID: 5) | Tiles: 1 | Total Monsters: 0 | Unique Monsters: []",
    ]
)


def tile(x: int, y: int, *, tile_id: int | None = None, area: int | None = None, items=()) -> dict:
    payload: dict = {"type": 5, "x": x, "y": y}
    if tile_id is not None:
        payload["tileid"] = tile_id
    if area is not None:
        payload["dreamAreaId"] = area
    if items:
        payload["items"] = [{"type": 6, "id": item_id} for item_id in items]
    return payload


def node_tree(features: list[dict]) -> dict:
    """Wrap tile-area features in an otbm2json-style dump."""
    return {
        "version": "0.3.0",
        "identifier": 0,
        "data": {
            "type": 0,
            "version": 2,
            "mapWidth": 65000,
            "mapHeight": 65000,
            "nodes": [{"type": 2, "description": "test world", "features": features}],
        },
    }


def world_tree() -> dict:
    return node_tree(
        [
            {
                "type": 4,
                "x": 100,
                "y": 200,
                "z": 7,
                "tiles": [
                    tile(0, 0, tile_id=101, area=1, items=[2000, 2001]),
                    tile(1, 0, tile_id=102, area=1),
                    tile(0, 1, tile_id=103, area=2, items=[2000]),
                    tile(2, 0, tile_id=101, area=3),
                    tile(5, 5, tile_id=104, area=4),
                    tile(4, 4, tile_id=104, area=5),
                    tile(6, 6, tile_id=105, area=99),
                    tile(3, 3, tile_id=106),
                ],
            },
            {"type": 4, "x": 0, "y": 0, "z": 7},
        ]
    )


def region_image(size: int = 4) -> np.ndarray:
    """Return an RGBA image with rookgaard at (1, 1) and thais at (2, 1)."""
    image = np.zeros((size, size, 4), dtype=np.uint8)
    image[1, 1] = (*ROOKGAARD, 255)
    image[1, 2] = (*THAIS, 255)
    return image


def write_rgba(path: Path, data: np.ndarray) -> None:
    """Write a (height, width, bands) uint8 image as a GeoTIFF."""
    height, width, count = data.shape
    path.parent.mkdir(parents=True, exist_ok=True)
    with rasterio.open(
        path,
        "w",
        driver="GTiff",
        height=height,
        width=width,
        count=count,
        dtype="uint8",
    ) as dataset:
        dataset.write(np.transpose(data, (2, 0, 1)))


def write_palette(path: Path, indexes: np.ndarray, colormap: dict[int, tuple[int, ...]]) -> None:
    """Write a single-band indexed PNG with a colormap."""
    height, width = indexes.shape
    path.parent.mkdir(parents=True, exist_ok=True)
    with rasterio.open(
        path,
        "w",
        driver="PNG",
        height=height,
        width=width,
        count=1,
        dtype="uint8",
    ) as dataset:
        dataset.write(indexes.astype(np.uint8), 1)
        dataset.write_colormap(1, colormap)


def write_world(root: Path) -> Path:
    """Write a complete world directory plus its huntmap.json config."""
    root.mkdir(parents=True, exist_ok=True)
    (root / "forgotten.json").write_text(json.dumps(world_tree()), encoding="utf-8")
    write_rgba(root / "regions-bounds.tif", region_image())
    (root / "world-spawn.xml").write_text(SPAWNS_XML, encoding="utf-8")
    (root / "forgotten-areas.xml").write_text(AREAS_XML, encoding="utf-8")
    (root / "huntmap.json").write_text(
        json.dumps(
            {
                "world_dir": str(root),
                "files": {"map": "forgotten.json", "raster": "regions-bounds.tif"},
                "raster": TEST_CALIBRATION,
            }
        ),
        encoding="utf-8",
    )
    return root


def with_src_env(base_env: dict[str, str] | None = None) -> dict[str, str]:
    """Return an environment with repo src/ on PYTHONPATH."""
    env = dict(base_env or os.environ)
    repo_root = Path(__file__).resolve().parents[1]
    src_path = repo_root / "src"
    if src_path.exists():
        existing = env.get("PYTHONPATH", "")
        entries = [entry for entry in existing.split(os.pathsep) if entry]
        src_str = str(src_path)
        if src_str not in entries:
            entries.insert(0, src_str)
        env["PYTHONPATH"] = os.pathsep.join(entries)
    return env
