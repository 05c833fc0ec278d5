"""
Asset check for imported tilesets.

Tilesets reference their assets by path only. When a tileset is imported,
the check verifies that each referenced asset exists next to the tileset file
and that each preview image can be opened by Pillow. Everything found is a
warning; the check never fails an import.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

from PIL import Image, UnidentifiedImageError

from ..formats.models import Tileset

logger = logging.getLogger(__name__)


@dataclass
class AssetReport:
    """Result of probing the assets referenced by a tileset."""

    missing_assets: list[str] = field(default_factory=lambda: [])
    unreadable_previews: list[str] = field(default_factory=lambda: [])
    checked: int = 0

    @property
    def ok(self) -> bool:
        return not self.missing_assets and not self.unreadable_previews

    def warnings(self) -> list[str]:
        messages = [f"asset not found: {path}" for path in self.missing_assets]
        messages.extend(f"preview image unreadable: {path}" for path in self.unreadable_previews)
        return messages


def _preview_readable(path: Path) -> bool:
    try:
        with Image.open(path) as image:
            image.verify()
        return True
    except (OSError, UnidentifiedImageError, SyntaxError) as e:
        logger.debug(f"Cannot open preview {path}: {e}")
        return False


def check_assets(tileset: Tileset, base_dir: Union[str, Path]) -> AssetReport:
    """Check the files a tileset references relative to `base_dir`.

    Args:
        tileset: Tileset to check
        base_dir: Directory containing the tileset file

    Returns:
        AssetReport listing missing assets and unreadable previews
    """
    base_dir = Path(base_dir)
    report = AssetReport()

    for tile in tileset.tiles:
        report.checked += 1
        if tile.asset and not (base_dir / tile.asset).exists():
            report.missing_assets.append(tile.asset)
        if tile.preview and not _preview_readable(base_dir / tile.preview):
            report.unreadable_previews.append(tile.preview)

    for message in report.warnings():
        logger.warning(f"Tileset '{tileset.name}': {message}")

    return report
