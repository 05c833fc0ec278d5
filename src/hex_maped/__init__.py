"""
hex_maped: version-aware persistence for hex tile maps and tilesets

Stores hex-grid maps and the tilesets they reference as deterministic,
diff-friendly JSON, upgrades older files on load and runs all file I/O in
the background so the editor loop never blocks.
"""

__version__ = "0.1.0"
__author__ = "hex_maped Contributors"

from .errors import (
    AdapterError,
    DecodeError,
    FieldMismatchError,
    FileIOError,
    ImportConflictError,
    IncompatibilityError,
    MalformedError,
    PersistenceError,
    UnknownVersionError,
    UnsupportedVersionError,
)
from .formats import HexCoord, HexLayout, HexRotation, Map, PlacedTile, TileDefinition, Tileset
from .editor import DanglingPolicy, EditorSession, TileCatalog
from .utils.logging_config import setup_logging

__all__ = [
    # Errors
    'AdapterError',
    'DecodeError',
    'FieldMismatchError',
    'FileIOError',
    'ImportConflictError',
    'IncompatibilityError',
    'MalformedError',
    'PersistenceError',
    'UnknownVersionError',
    'UnsupportedVersionError',

    # Format model
    'HexCoord',
    'HexLayout',
    'HexRotation',
    'Map',
    'PlacedTile',
    'TileDefinition',
    'Tileset',

    # Editor
    'DanglingPolicy',
    'EditorSession',
    'TileCatalog',

    # Logging
    'setup_logging',
]
