"""
Tileset import/export and asset checks.

Usage:
    from hex_maped.tilesets.transfer import TilesetTransfer, ConflictPolicy
"""

from .assets import AssetReport, check_assets

__all__ = [
    "AssetReport",
    "check_assets",
]
