"""
Tileset import and export.

Importing reads a self-contained tileset file in the background and then
merges its definitions into the session's tile catalog on the interactive
thread. Merging is all-or-nothing: the full plan is computed first and the
catalog is only touched once the plan is accepted.

Conflicts are tiles whose id already exists in the catalog with a different
definition. Identical definitions are not conflicts and are skipped.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Union

from ..editor.adapter import tileset_to_format
from ..editor.session import TileCatalog
from ..errors import AdapterError, ImportConflictError
from ..formats.models import TileDefinition, Tileset
from ..persistence.tasks import LoadTileset, SaveTileset, TaskHandle, TaskRunner

logger = logging.getLogger(__name__)


class ConflictPolicy(str, Enum):
    """How an import resolves tile id collisions with the catalog."""

    REJECT = "reject"
    RENAME = "rename"
    OVERWRITE = "overwrite"


@dataclass
class ImportSummary:
    """What a merge did (or, for a rejected import, would have done)."""

    source: str = ""
    added: list[str] = field(default_factory=lambda: [])
    renamed: list[tuple[str, str]] = field(default_factory=lambda: [])
    overwritten: list[str] = field(default_factory=lambda: [])
    skipped: list[str] = field(default_factory=lambda: [])
    rejected: list[str] = field(default_factory=lambda: [])

    @property
    def changed(self) -> bool:
        """True if the catalog was modified."""
        return bool(self.added or self.renamed or self.overwritten) and not self.rejected

    def __str__(self) -> str:
        parts = [
            f"{len(self.added)} added",
            f"{len(self.renamed)} renamed",
            f"{len(self.overwritten)} overwritten",
            f"{len(self.skipped)} skipped",
        ]
        if self.rejected:
            parts.append(f"{len(self.rejected)} rejected")
        return ", ".join(parts)


def _same_definition(catalog: TileCatalog, tile: TileDefinition) -> bool:
    existing = catalog.by_id(tile.id)
    return (
        existing is not None
        and existing.asset == tile.asset
        and existing.attributes == dict(tile.attributes)
        and existing.transform == tile.transform
        and existing.preview == tile.preview
    )


def _free_id(base: str, taken: set[str]) -> str:
    suffix = 2
    while f"{base}_{suffix}" in taken:
        suffix += 1
    return f"{base}_{suffix}"


def merge_tileset(
    catalog: TileCatalog,
    incoming: Tileset,
    policy: Union[ConflictPolicy, str] = ConflictPolicy.RENAME,
    source: str = "",
) -> ImportSummary:
    """Merge incoming tile definitions into a catalog.

    New tiles are appended in the incoming display order. Under RENAME a
    colliding tile gets the first free id of the form `<id>_2`, `<id>_3`...
    Under OVERWRITE the existing entry is replaced in place, keeping its
    handle and position, so placements that use it stay bound.

    Raises:
        ImportConflictError: Under REJECT if any id collides; catalog untouched
        AdapterError: If the incoming tileset has duplicate, empty or padded ids;
            catalog untouched
    """
    policy = ConflictPolicy(policy)
    summary = ImportSummary(source=source or incoming.name)

    incoming_ids = [tile.id for tile in incoming.tiles]
    invalid = [tile_id for tile_id in incoming_ids if not tile_id or tile_id != tile_id.strip()]
    if invalid:
        raise AdapterError(
            f"imported tileset '{incoming.name}' has invalid tile ids: {invalid!r}", source or None
        )
    if len(set(incoming_ids)) != len(incoming_ids):
        raise AdapterError(f"imported tileset '{incoming.name}' has duplicate tile ids", source or None)

    taken = set(catalog.ids()) | set(incoming_ids)
    additions: list[tuple[str, TileDefinition]] = []
    replacements: list[TileDefinition] = []

    for tile in incoming.tiles:
        if tile.id not in catalog:
            additions.append((tile.id, tile))
            summary.added.append(tile.id)
        elif _same_definition(catalog, tile):
            summary.skipped.append(tile.id)
        elif policy is ConflictPolicy.REJECT:
            summary.rejected.append(tile.id)
        elif policy is ConflictPolicy.RENAME:
            new_id = _free_id(tile.id, taken)
            taken.add(new_id)
            additions.append((new_id, tile))
            summary.renamed.append((tile.id, new_id))
        else:
            replacements.append(tile)
            summary.overwritten.append(tile.id)

    if summary.rejected:
        logger.warning(f"Import of '{summary.source}' rejected: {', '.join(summary.rejected)}")
        raise ImportConflictError(summary, source or None)

    for tile in replacements:
        catalog.replace(
            tile.id,
            tile.asset,
            attributes=dict(tile.attributes),
            transform=tile.transform,
            preview=tile.preview,
        )
    for tile_id, tile in additions:
        catalog.add(
            tile_id,
            tile.asset,
            attributes=dict(tile.attributes),
            transform=tile.transform,
            preview=tile.preview,
        )

    logger.info(f"Imported tileset '{summary.source}': {summary}")
    return summary


class TilesetTransfer:
    """Schedules tileset import and export on a task runner."""

    def __init__(self, runner: TaskRunner, verify_assets: bool = False):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.runner = runner
        self.verify_assets = verify_assets

    def import_tileset(self, path: Union[str, Path]) -> TaskHandle:
        """Start reading a tileset file. The handle's value is a `LoadedTileset`."""
        self.logger.info(f"Importing tileset from {path}")
        return self.runner.submit(LoadTileset(Path(path), verify_assets=self.verify_assets))

    def export_tileset(
        self, source: Union[TileCatalog, Tileset], path: Union[str, Path]
    ) -> TaskHandle:
        """Start writing a catalog (snapshotted now) or tileset to a file."""
        tileset = tileset_to_format(source) if isinstance(source, TileCatalog) else source
        self.logger.info(f"Exporting tileset '{tileset.name}' ({len(tileset)} tiles) to {path}")
        return self.runner.submit(SaveTileset(Path(path), tileset))

    @staticmethod
    def merge(
        catalog: TileCatalog,
        incoming: Tileset,
        policy: Union[ConflictPolicy, str] = ConflictPolicy.RENAME,
        source: str = "",
    ) -> ImportSummary:
        """Merge a finished import into a catalog (interactive thread only)."""
        return merge_tileset(catalog, incoming, policy, source)
