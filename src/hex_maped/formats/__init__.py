"""
On-disk format for hex tilesets and maps.

Provides the versioned format model, the JSON codec and the version
resolver that upgrades older documents to the current schema.
"""

from .models import (
    DEFAULT_LAYER,
    HexCoord,
    HexLayout,
    HexOrientation,
    HexRotation,
    IDENTITY_TRANSFORM,
    Map,
    MapLayer,
    MapV1,
    MapV2,
    MapV3,
    PlacedTile,
    TileDefinition,
    TileDefinitionV1,
    Tileset,
    TilesetV1,
    TilesetV2,
    TileTransform,
)
from .codec import RawDocument, decode, decode_any, decode_map, decode_tileset, encode
from .versions import FormatKind, VersionResolver, default_resolver, resolve, upgrade

__all__ = [
    # Models
    'DEFAULT_LAYER',
    'HexCoord',
    'HexLayout',
    'HexOrientation',
    'HexRotation',
    'IDENTITY_TRANSFORM',
    'Map',
    'MapLayer',
    'MapV1',
    'MapV2',
    'MapV3',
    'PlacedTile',
    'TileDefinition',
    'TileDefinitionV1',
    'Tileset',
    'TilesetV1',
    'TilesetV2',
    'TileTransform',

    # Codec
    'RawDocument',
    'decode',
    'decode_any',
    'decode_map',
    'decode_tileset',
    'encode',

    # Versions
    'FormatKind',
    'VersionResolver',
    'default_resolver',
    'resolve',
    'upgrade',
]
