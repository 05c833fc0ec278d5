"""
Translation between format models and the live editor session.

This is the only place that turns textual tile ids into session handles
and back. `from_format()` builds a brand new `EditorSession` from a map and
its tileset; `to_format()` snapshots a session into format model values
that can be handed to a background worker.

Recoverable problems (dangling references, duplicate coordinates or layer
names from a hand-edited file, out of range rotations) become
`AdapterWarning` values.
A tileset that breaks id uniqueness cannot be materialized and raises
`AdapterError`.
"""

import logging
import math
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from ..errors import AdapterError
from ..formats.models import (
    DEFAULT_LAYER,
    HexCoord,
    HexLayout,
    HexRotation,
    Map,
    MapLayer,
    PlacedTile,
    TileDefinition,
    Tileset,
)
from .session import UNKNOWN_TILE, EditorSession, LiveLayer, LivePlacement, TileCatalog

logger = logging.getLogger(__name__)


class DanglingPolicy(str, Enum):
    """What to do with a placement whose tile id is not in the tileset."""

    DROP = "drop"
    SENTINEL = "sentinel"


@dataclass(frozen=True)
class AdapterWarning:
    """Recoverable issue found while materializing a session."""

    code: str
    message: str
    coord: Optional[HexCoord] = None
    tile_id: Optional[str] = None
    layer: Optional[str] = None

    def __str__(self) -> str:
        return self.message


DANGLING_REFERENCE = "dangling_reference"
DUPLICATE_COORDINATE = "duplicate_coordinate"
INVALID_ROTATION = "invalid_rotation"
INVALID_TILE = "invalid_tile"
INVALID_LAYOUT = "invalid_layout"
INVALID_LAYER = "invalid_layer"


@dataclass
class AdapterResult:
    """Freshly materialized session plus the warnings raised on the way."""

    session: EditorSession
    warnings: list[AdapterWarning] = field(default_factory=lambda: [])

    def dangling(self) -> list[AdapterWarning]:
        return [w for w in self.warnings if w.code == DANGLING_REFERENCE]


@dataclass(frozen=True)
class SessionDocument:
    """Format snapshot of a whole session: the map and its tileset."""

    map: Map
    tileset: Tileset


# =============================================================================
# Format -> session
# =============================================================================

def tileset_from_format(tileset: Tileset) -> TileCatalog:
    """Build a tile catalog from a tileset, preserving display order.

    Raises:
        AdapterError: If tile ids are not unique or a tile id is empty
    """
    catalog = TileCatalog(name=tileset.name)
    for tile in tileset.tiles:
        if tile.id in catalog:
            raise AdapterError(f"tileset '{tileset.name}' has duplicate tile id '{tile.id}'")
        if not tile.id:
            raise AdapterError(f"tileset '{tileset.name}' has a tile with an empty id")
        catalog.add(
            tile.id,
            tile.asset,
            attributes=dict(tile.attributes),
            transform=tile.transform,
            preview=tile.preview,
        )
    catalog.mark_saved()
    return catalog


def _tile_warnings(tileset: Tileset) -> list[AdapterWarning]:
    warnings: list[AdapterWarning] = []
    for tile in tileset.tiles:
        for problem in tile.validate():
            warnings.append(AdapterWarning(INVALID_TILE, problem, tile_id=tile.id))
    return warnings


def from_format(
    map_model: Map,
    tileset: Tileset,
    policy: Union[DanglingPolicy, str] = DanglingPolicy.SENTINEL,
) -> AdapterResult:
    """Materialize a new editor session from a map and its tileset.

    Args:
        map_model: Map at the current schema version
        tileset: Tileset the map references, at the current schema version
        policy: How dangling tile references are handled

    Returns:
        AdapterResult with the new session and any warnings

    Raises:
        AdapterError: If the tileset cannot be turned into a catalog
    """
    policy = DanglingPolicy(policy)
    catalog = tileset_from_format(tileset)
    warnings = _tile_warnings(tileset)

    layout = map_model.layout
    if not math.isfinite(layout.size) or layout.size <= 0:
        warnings.append(
            AdapterWarning(
                INVALID_LAYOUT,
                f"layout size {layout.size} is not positive, using {HexLayout().size}",
            )
        )
        layout = HexLayout(orientation=layout.orientation)

    layer_names = _layer_names(map_model, warnings)
    session = EditorSession(
        catalog=catalog,
        name=map_model.name,
        layout=layout,
        tileset_ref=map_model.tileset,
        layers=layer_names or (DEFAULT_LAYER,),
    )

    for layer_name, map_layer in zip(layer_names, map_model.layers):
        _materialize_layer(session, layer_name, map_layer, policy, warnings)

    # Materializing is not an edit
    session.revision = 0
    session.mark_saved()

    for warning in warnings:
        logger.warning(f"Map '{map_model.name or map_model.tileset}': {warning.message}")

    return AdapterResult(session=session, warnings=warnings)


def _layer_names(map_model: Map, warnings: list[AdapterWarning]) -> list[str]:
    """Session names for the map's layers; blank or repeated names get a free one."""
    names: list[str] = []
    for index, layer in enumerate(map_model.layers):
        name = layer.name
        if not name.strip() or name in names:
            base = name.strip() or f"layer {index}"
            name = base
            suffix = 2
            while name in names or any(other.name == name for other in map_model.layers):
                name = f"{base} ({suffix})"
                suffix += 1
            warnings.append(
                AdapterWarning(
                    INVALID_LAYER,
                    f"layer {index} name {layer.name!r} is blank or repeated, using '{name}'",
                    layer=name,
                )
            )
        names.append(name)
    return names


def _materialize_layer(
    session: EditorSession,
    layer_name: str,
    map_layer: MapLayer,
    policy: DanglingPolicy,
    warnings: list[AdapterWarning],
) -> None:
    catalog = session.catalog
    for placed in map_layer.placements:
        coord = placed.coord
        where = f"({coord.q}, {coord.r}) in layer '{layer_name}'"

        if session.placement_at(coord, layer_name) is not None:
            warnings.append(
                AdapterWarning(
                    DUPLICATE_COORDINATE,
                    f"duplicate placement at {where}, keeping '{placed.tile}'",
                    coord=coord,
                    tile_id=placed.tile,
                    layer=layer_name,
                )
            )

        rotation = placed.rotation
        if not isinstance(rotation, HexRotation):
            normalized = HexRotation(int(rotation) % 6)
            warnings.append(
                AdapterWarning(
                    INVALID_ROTATION,
                    f"rotation {rotation} at {where} out of range, using {int(normalized)}",
                    coord=coord,
                    tile_id=placed.tile,
                    layer=layer_name,
                )
            )
            rotation = normalized

        tile = catalog.by_id(placed.tile)
        if tile is not None:
            session.set_placement(
                coord, LivePlacement(tile=tile.handle, rotation=rotation), layer_name
            )
            continue

        if policy is DanglingPolicy.DROP:
            warnings.append(
                AdapterWarning(
                    DANGLING_REFERENCE,
                    f"unknown tile '{placed.tile}' at {where} dropped",
                    coord=coord,
                    tile_id=placed.tile,
                    layer=layer_name,
                )
            )
            # A dropped duplicate must not leave the earlier placement behind
            session.erase(coord, layer_name)
        else:
            warnings.append(
                AdapterWarning(
                    DANGLING_REFERENCE,
                    f"unknown tile '{placed.tile}' at {where} kept as placeholder",
                    coord=coord,
                    tile_id=placed.tile,
                    layer=layer_name,
                )
            )
            session.set_placement(
                coord,
                LivePlacement(tile=UNKNOWN_TILE, rotation=rotation, unresolved_id=placed.tile),
                layer_name,
            )


# =============================================================================
# Session -> format
# =============================================================================

def tileset_to_format(catalog: TileCatalog) -> Tileset:
    """Snapshot a catalog as a tileset in display order."""
    return Tileset(
        name=catalog.name,
        tiles=tuple(
            TileDefinition(
                id=tile.tile_id,
                asset=tile.asset,
                attributes=dict(tile.attributes),
                transform=tile.transform,
                preview=tile.preview,
            )
            for tile in catalog
        ),
    )


def _layer_to_format(session: EditorSession, layer: LiveLayer) -> MapLayer:
    placements: list[PlacedTile] = []
    for coord, placement in layer.placements.items():
        if placement.is_unknown:
            if placement.unresolved_id is None:
                continue
            tile_id = placement.unresolved_id
        else:
            tile = session.catalog.by_handle(placement.tile)
            if tile is None:
                logger.warning(
                    f"Placement at ({coord.q}, {coord.r}) in layer '{layer.name}' "
                    f"references a removed tile, skipped"
                )
                continue
            tile_id = tile.tile_id
        placements.append(PlacedTile(coord=coord, tile=tile_id, rotation=placement.rotation))
    return MapLayer(name=layer.name, placements=tuple(placements))


def map_to_format(session: EditorSession, tileset_ref: Optional[str] = None) -> Map:
    """Snapshot the session's layers as a map.

    Layers keep draw order; placements are sorted within each layer.
    Sentinel placements are written back with the id they were loaded with.
    """
    return Map(
        tileset=tileset_ref if tileset_ref is not None else session.tileset_ref,
        layers=tuple(_layer_to_format(session, layer) for layer in session.layers()),
        name=session.name,
        layout=session.layout,
    )


def to_format(session: EditorSession, tileset_ref: Optional[str] = None) -> SessionDocument:
    """Snapshot a whole session."""
    return SessionDocument(
        map=map_to_format(session, tileset_ref),
        tileset=tileset_to_format(session.catalog),
    )


def relative_ref(map_path: Union[str, Path], tileset_path: Union[str, Path]) -> str:
    """Tileset reference as stored in a map: POSIX path relative to the map's directory."""
    map_dir = Path(map_path).resolve().parent
    target = Path(tileset_path).resolve()
    try:
        return target.relative_to(map_dir).as_posix()
    except ValueError:
        return Path(os.path.relpath(target, map_dir)).as_posix()


def resolve_ref(map_path: Union[str, Path], tileset_ref: str) -> Path:
    """Absolute tileset path for a reference stored in a map."""
    return (Path(map_path).parent / Path(tileset_ref)).resolve()
