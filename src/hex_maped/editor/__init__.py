"""
Live editor model and its translation to and from the on-disk format.
"""

from .session import UNKNOWN_TILE, EditorSession, LiveLayer, LivePlacement, LiveTile, TileCatalog
from .adapter import (
    AdapterResult,
    AdapterWarning,
    DanglingPolicy,
    SessionDocument,
    from_format,
    map_to_format,
    relative_ref,
    resolve_ref,
    tileset_from_format,
    tileset_to_format,
    to_format,
)

__all__ = [
    # Session
    'EditorSession',
    'LiveLayer',
    'LivePlacement',
    'LiveTile',
    'TileCatalog',
    'UNKNOWN_TILE',

    # Adapter
    'AdapterResult',
    'AdapterWarning',
    'DanglingPolicy',
    'SessionDocument',
    'from_format',
    'map_to_format',
    'relative_ref',
    'resolve_ref',
    'tileset_from_format',
    'tileset_to_format',
    'to_format',
]
