"""
Background load/save of maps and tilesets.

Usage:
    from hex_maped.persistence.service import PersistenceService

    service = PersistenceService(settings)
    service.load("forest.hexmap.json")
    ...
    for event in service.update():  # once per frame
        ...
"""

from .storage import read_bytes, write_atomic
from .tasks import (
    FollowUp,
    LoadedMap,
    LoadedTileset,
    LoadMap,
    LoadTileset,
    SaveMap,
    SaveTileset,
    TaskHandle,
    TaskResult,
    TaskRunner,
    load_map,
    load_tileset,
    save_model,
)

__all__ = [
    "read_bytes",
    "write_atomic",
    "FollowUp",
    "LoadedMap",
    "LoadedTileset",
    "LoadMap",
    "LoadTileset",
    "SaveMap",
    "SaveTileset",
    "TaskHandle",
    "TaskResult",
    "TaskRunner",
    "load_map",
    "load_tileset",
    "save_model",
]
