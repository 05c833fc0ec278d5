"""Shared fixtures for hex_maped tests."""

import copy
from pathlib import Path
from typing import Any, Callable, Iterator

import orjson
import pytest

TERRAIN_V1: dict[str, Any] = {
    "version": 1,
    "name": "terrain",
    "tiles": [
        {"id": "grass", "asset": "tiles/grass.glb", "attributes": {"category": "ground"}},
        {"id": "water", "asset": "tiles/water.glb", "attributes": {"category": "liquid"}},
        {"id": "rock", "asset": "tiles/rock.glb", "attributes": {"category": "ground"}},
    ],
}

MEADOW_MAP_V1: dict[str, Any] = {
    "version": 1,
    "tileset": "terrain.tileset.json",
    "placements": [
        {"q": 0, "r": 0, "tile": "grass", "rotation": 0},
        {"q": 1, "r": 0, "tile": "rock", "rotation": 2},
    ],
}


@pytest.fixture
def qapp() -> Any:
    """Qt core application for signal delivery."""
    from PySide6.QtCore import QCoreApplication

    return QCoreApplication.instance() or QCoreApplication([])


@pytest.fixture
def settings(tmp_path: Path) -> Any:
    """AppSettings stored in a throwaway INI file."""
    from hex_maped.settings import AppSettings

    return AppSettings(profile="test", ini_path=tmp_path / "settings.ini")


@pytest.fixture
def terrain_v1() -> dict[str, Any]:
    return copy.deepcopy(TERRAIN_V1)


@pytest.fixture
def meadow_map_v1() -> dict[str, Any]:
    return copy.deepcopy(MEADOW_MAP_V1)


@pytest.fixture
def write_json(tmp_path: Path) -> Callable[[str, Any], Path]:
    """Write a JSON payload under tmp_path and return its path."""

    def _write(name: str, payload: Any) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(orjson.dumps(payload))
        return path

    return _write


@pytest.fixture
def meadow_files(
    write_json: Callable[[str, Any], Path],
    terrain_v1: dict[str, Any],
    meadow_map_v1: dict[str, Any],
) -> tuple[Path, Path]:
    """A v1 map and the v1 tileset it references, as (map_path, tileset_path)."""
    tileset_path = write_json("terrain.tileset.json", terrain_v1)
    map_path = write_json("meadow.hexmap.json", meadow_map_v1)
    return map_path, tileset_path


@pytest.fixture
def runner() -> Iterator[Any]:
    from hex_maped.persistence.tasks import TaskRunner

    task_runner = TaskRunner(max_workers=2)
    yield task_runner
    task_runner.shutdown()


@pytest.fixture
def service(qapp: Any, settings: Any) -> Iterator[Any]:
    from hex_maped.persistence.service import PersistenceService

    persistence = PersistenceService(settings)
    yield persistence
    persistence.shutdown()


def pump(persistence: Any, timeout: float = 5.0) -> list[Any]:
    """Wait for background work, then run one editor tick."""
    assert persistence.runner.wait_idle(timeout)
    return persistence.update()


@pytest.fixture
def tick() -> Callable[..., list[Any]]:
    return pump
