from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest  # noqa: E402

from huntmap import config as world_config  # noqa: E402
from tests.utils import write_world  # noqa: E402


@pytest.fixture(autouse=True)
def _isolate_world_config(monkeypatch, tmp_path) -> None:
    """Prevent local world configs from bleeding into tests."""
    monkeypatch.setenv(world_config.ENV_WORLD_CONFIG, str(tmp_path / "missing_world.json"))
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def world_dir(tmp_path) -> Path:
    """A small world directory with a 4x4 raster around tile (100, 200)."""
    return write_world(tmp_path / "world")
