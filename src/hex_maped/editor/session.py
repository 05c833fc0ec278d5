"""
Live editor model for hex maps.

This module contains the runtime representation the interactive editor
reads and mutates: a tile catalog addressed by session-local integer
handles and named layers of placements keyed by hex coordinate. These
models are designed for runtime use and are NOT used for file I/O; the
on-disk shape lives in `hex_maped.formats.models` and the translation
between the two is done only by `hex_maped.editor.adapter`.

The session is owned by the interactive thread. Background tasks never
receive a session, only format model values.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Optional, Sequence

from ..formats.models import (
    DEFAULT_LAYER,
    HexCoord,
    HexLayout,
    HexRotation,
    IDENTITY_TRANSFORM,
    TileTransform,
)

UNKNOWN_TILE = -1
"""Handle of the sentinel "unknown tile" used for unresolved placements."""


@dataclass
class LiveTile:
    """Catalog entry as seen by the editor.

    Attributes:
        handle: Session-local identifier, never persisted
        tile_id: Stable textual id used on disk
        asset: Path of the visual asset, relative to the tileset file
        attributes: Editor-declared attributes (e.g. "category")
        transform: Base transform applied to every placement of this tile
        preview: Optional preview image path
    """

    handle: int
    tile_id: str
    asset: str
    attributes: dict[str, Any] = field(default_factory=lambda: {})
    transform: TileTransform = IDENTITY_TRANSFORM
    preview: Optional[str] = None


@dataclass
class LivePlacement:
    """A tile placed in the session.

    `tile` is a catalog handle or `UNKNOWN_TILE`. A sentinel placement keeps
    the id it was loaded with in `unresolved_id` so saving re-emits it.
    """

    tile: int
    rotation: HexRotation = HexRotation.NONE
    unresolved_id: Optional[str] = None

    @property
    def is_unknown(self) -> bool:
        return self.tile == UNKNOWN_TILE


class TileCatalog:
    """Ordered catalog of tiles available in an editor session.

    Holds `LiveTile` records indexed by handle and by textual id, plus an
    explicit display order. Reordering only changes the display order; the
    handle and id of a tile never depend on its position.
    """

    def __init__(self, name: str = ""):
        self.name = name
        self._tiles: dict[int, LiveTile] = {}
        self._by_id: dict[str, int] = {}
        self._order: list[int] = []
        self._next_handle = 0
        self.revision = 0
        self._saved_revision = 0

    def _mint_handle(self) -> int:
        handle = self._next_handle
        self._next_handle += 1
        return handle

    def _touch(self) -> None:
        self.revision += 1

    @property
    def unsaved_changes(self) -> bool:
        """True if the catalog changed since it was last loaded or exported."""
        return self.revision != self._saved_revision

    def mark_saved(self, revision: Optional[int] = None) -> None:
        """Record that the catalog as of `revision` (default: now) is on disk."""
        self._saved_revision = self.revision if revision is None else revision

    def add(
        self,
        tile_id: str,
        asset: str,
        attributes: Optional[dict[str, Any]] = None,
        transform: TileTransform = IDENTITY_TRANSFORM,
        preview: Optional[str] = None,
    ) -> LiveTile:
        """Append a new tile at the end of the display order.

        Raises:
            ValueError: If the id is empty or already present
        """
        if not tile_id:
            raise ValueError("Tile id must be a non-empty string")
        if tile_id in self._by_id:
            raise ValueError(f"Tile id '{tile_id}' already exists in catalog")

        tile = LiveTile(
            handle=self._mint_handle(),
            tile_id=tile_id,
            asset=asset,
            attributes=dict(attributes or {}),
            transform=transform,
            preview=preview,
        )
        self._tiles[tile.handle] = tile
        self._by_id[tile_id] = tile.handle
        self._order.append(tile.handle)
        self._touch()
        return tile

    def replace(
        self,
        tile_id: str,
        asset: str,
        attributes: Optional[dict[str, Any]] = None,
        transform: TileTransform = IDENTITY_TRANSFORM,
        preview: Optional[str] = None,
    ) -> LiveTile:
        """Replace the definition of an existing tile, keeping handle and position.

        Raises:
            KeyError: If the id is not in the catalog
        """
        handle = self._by_id[tile_id]
        tile = LiveTile(
            handle=handle,
            tile_id=tile_id,
            asset=asset,
            attributes=dict(attributes or {}),
            transform=transform,
            preview=preview,
        )
        self._tiles[handle] = tile
        self._touch()
        return tile

    def remove(self, tile_id: str) -> LiveTile:
        """Remove a tile from the catalog.

        Raises:
            KeyError: If the id is not in the catalog
        """
        handle = self._by_id.pop(tile_id)
        self._order.remove(handle)
        self._touch()
        return self._tiles.pop(handle)

    def move(self, tile_id: str, index: int) -> None:
        """Move a tile to a new display position (clamped to the catalog size).

        Raises:
            KeyError: If the id is not in the catalog
        """
        handle = self._by_id[tile_id]
        current = self._order.index(handle)
        index = max(0, min(index, len(self._order) - 1))
        if current == index:
            return
        self._order.pop(current)
        self._order.insert(index, handle)
        self._touch()

    def by_id(self, tile_id: str) -> Optional[LiveTile]:
        """Return tile by textual id if present."""
        handle = self._by_id.get(tile_id)
        return self._tiles[handle] if handle is not None else None

    def by_handle(self, handle: int) -> Optional[LiveTile]:
        """Return tile by session handle if present."""
        return self._tiles.get(handle)

    def ids(self) -> list[str]:
        """Tile ids in display order."""
        return [self._tiles[handle].tile_id for handle in self._order]

    def index_of(self, tile_id: str) -> int:
        """Display position of a tile."""
        return self._order.index(self._by_id[tile_id])

    def __contains__(self, tile_id: object) -> bool:
        return tile_id in self._by_id

    def __iter__(self) -> Iterator[LiveTile]:
        return (self._tiles[handle] for handle in self._order)

    def __len__(self) -> int:
        return len(self._order)


@dataclass
class LiveLayer:
    """Named placement table.

    Placements are keyed by `HexCoord`; iteration follows creation order,
    which is why saving always goes through the adapter that sorts them.
    """

    name: str
    placements: dict[HexCoord, LivePlacement] = field(default_factory=lambda: {})

    def __len__(self) -> int:
        return len(self.placements)


class EditorSession:
    """Editable state of one open map.

    A session has at least one layer. Layers are drawn in list order, first
    at the bottom. Placement operations act on the active layer unless a
    layer name is given. Placing on an occupied coordinate of a layer
    replaces the previous tile (last write wins); other layers are not
    affected.
    """

    def __init__(
        self,
        catalog: Optional[TileCatalog] = None,
        name: str = "",
        layout: Optional[HexLayout] = None,
        tileset_ref: str = "",
        layers: Sequence[str] = (DEFAULT_LAYER,),
    ):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.catalog = catalog if catalog is not None else TileCatalog()
        self.name = name
        self.layout = layout if layout is not None else HexLayout()
        self.tileset_ref = tileset_ref
        self.map_path: Optional[Path] = None
        self.tileset_path: Optional[Path] = None

        self._layers: list[LiveLayer] = []
        for layer_name in layers or (DEFAULT_LAYER,):
            self._check_layer_name(layer_name)
            self._layers.append(LiveLayer(layer_name))
        self._active = self._layers[0].name
        self.revision = 0
        self._saved_revision = 0

    # === CHANGE TRACKING ===

    def touch(self) -> None:
        """Record a map edit."""
        self.revision += 1

    @property
    def unsaved_changes(self) -> bool:
        """True if the map changed since it was loaded or last saved."""
        return self.revision != self._saved_revision

    def mark_saved(self, revision: Optional[int] = None) -> None:
        """Record that the map as of `revision` (default: now) is on disk."""
        self._saved_revision = self.revision if revision is None else revision

    # === LAYERS ===

    def _check_layer_name(self, name: str) -> None:
        if not name or not name.strip():
            raise ValueError("Layer name must be a non-empty string")
        if any(layer.name == name for layer in self._layers):
            raise ValueError(f"Layer '{name}' already exists")

    @property
    def active_layer(self) -> str:
        """Name of the layer placement operations act on by default."""
        return self._active

    @active_layer.setter
    def active_layer(self, name: str) -> None:
        self._active = self.layer(name).name

    def layer(self, name: Optional[str] = None) -> LiveLayer:
        """Return a layer by name, or the active layer.

        Raises:
            KeyError: If no layer has that name
        """
        wanted = self._active if name is None else name
        for layer in self._layers:
            if layer.name == wanted:
                return layer
        raise KeyError(f"Layer '{wanted}' not found")

    def layer_names(self) -> list[str]:
        """Layer names in draw order."""
        return [layer.name for layer in self._layers]

    def layers(self) -> Iterator[LiveLayer]:
        """Iterate layers in draw order."""
        return iter(list(self._layers))

    def add_layer(self, name: str, index: Optional[int] = None) -> LiveLayer:
        """Add an empty layer on top, or at `index` in draw order.

        Raises:
            ValueError: If the name is empty or already used
        """
        self._check_layer_name(name)
        layer = LiveLayer(name)
        if index is None:
            self._layers.append(layer)
        else:
            self._layers.insert(max(0, min(index, len(self._layers))), layer)
        self.touch()
        return layer

    def remove_layer(self, name: str) -> LiveLayer:
        """Remove a layer and its placements.

        Raises:
            KeyError: If no layer has that name
            ValueError: If it is the only layer
        """
        layer = self.layer(name)
        if len(self._layers) == 1:
            raise ValueError("A map needs at least one layer")
        self._layers.remove(layer)
        if self._active == name:
            self._active = self._layers[0].name
        self.touch()
        return layer

    def rename_layer(self, name: str, new_name: str) -> None:
        """Rename a layer.

        Raises:
            KeyError: If no layer has that name
            ValueError: If the new name is empty or already used
        """
        layer = self.layer(name)
        if new_name == name:
            return
        self._check_layer_name(new_name)
        layer.name = new_name
        if self._active == name:
            self._active = new_name
        self.touch()

    def move_layer(self, name: str, index: int) -> None:
        """Move a layer to a new position in draw order."""
        layer = self.layer(name)
        current = self._layers.index(layer)
        index = max(0, min(index, len(self._layers) - 1))
        if current == index:
            return
        self._layers.pop(current)
        self._layers.insert(index, layer)
        self.touch()

    # === PLACEMENTS ===

    def place(
        self,
        coord: HexCoord,
        tile_id: str,
        rotation: HexRotation = HexRotation.NONE,
        layer: Optional[str] = None,
    ) -> LivePlacement:
        """Place a catalog tile at a coordinate, replacing whatever was there.

        Raises:
            KeyError: If the tile id is not in the catalog, or the layer is unknown
        """
        target = self.layer(layer)
        tile = self.catalog.by_id(tile_id)
        if tile is None:
            raise KeyError(f"Tile '{tile_id}' not found in catalog")
        placement = LivePlacement(tile=tile.handle, rotation=HexRotation(rotation))
        target.placements[coord] = placement
        self.touch()
        return placement

    def erase(self, coord: HexCoord, layer: Optional[str] = None) -> bool:
        """Remove the placement at a coordinate. Returns True if one was removed."""
        if self.layer(layer).placements.pop(coord, None) is None:
            return False
        self.touch()
        return True

    def rotate(
        self, coord: HexCoord, clockwise: bool = True, layer: Optional[str] = None
    ) -> Optional[HexRotation]:
        """Rotate the placement at a coordinate by one 60 degree step."""
        placement = self.layer(layer).placements.get(coord)
        if placement is None:
            return None
        placement.rotation = (
            placement.rotation.clockwise() if clockwise else placement.rotation.counter_clockwise()
        )
        self.touch()
        return placement.rotation

    def placement_at(self, coord: HexCoord, layer: Optional[str] = None) -> Optional[LivePlacement]:
        """Return the placement at a coordinate, if any."""
        return self.layer(layer).placements.get(coord)

    def tile_id_at(self, coord: HexCoord, layer: Optional[str] = None) -> Optional[str]:
        """Return the textual tile id placed at a coordinate, if any."""
        placement = self.placement_at(coord, layer)
        if placement is None:
            return None
        if placement.is_unknown:
            return placement.unresolved_id
        tile = self.catalog.by_handle(placement.tile)
        return tile.tile_id if tile else None

    def placements(self, layer: Optional[str] = None) -> Iterator[tuple[HexCoord, LivePlacement]]:
        """Iterate one layer's placements in creation order."""
        return iter(list(self.layer(layer).placements.items()))

    def all_placements(self) -> Iterator[tuple[str, HexCoord, LivePlacement]]:
        """Iterate (layer name, coordinate, placement) over every layer in draw order."""
        return iter(
            [
                (layer.name, coord, placement)
                for layer in self._layers
                for coord, placement in layer.placements.items()
            ]
        )

    def unknown_placements(self) -> list[tuple[str, HexCoord]]:
        """(layer name, coordinate) of every sentinel placement."""
        return [(name, coord) for name, coord, p in self.all_placements() if p.is_unknown]

    def set_placement(
        self, coord: HexCoord, placement: LivePlacement, layer: Optional[str] = None
    ) -> None:
        """Store a placement without recording an edit (used when materializing)."""
        self.layer(layer).placements[coord] = placement

    def __len__(self) -> int:
        return sum(len(layer) for layer in self._layers)

    # === CATALOG EDITS AFFECTING PLACEMENTS ===

    def remove_tile(self, tile_id: str) -> int:
        """Remove a tile from the catalog, turning its placements into sentinels.

        Returns:
            Number of placements that became sentinels, over all layers
        """
        tile = self.catalog.remove(tile_id)
        count = 0
        for _, _, placement in self.all_placements():
            if placement.tile == tile.handle:
                placement.tile = UNKNOWN_TILE
                placement.unresolved_id = tile.tile_id
                count += 1
        if count:
            self.touch()
            self.logger.info(f"Removed tile '{tile_id}', {count} placement(s) now unresolved")
        return count

    def resolve_unknown(self) -> int:
        """Rebind sentinel placements whose id is now in the catalog.

        Returns:
            Number of placements rebound
        """
        count = 0
        for _, _, placement in self.all_placements():
            if placement.is_unknown and placement.unresolved_id is not None:
                tile = self.catalog.by_id(placement.unresolved_id)
                if tile is not None:
                    placement.tile = tile.handle
                    placement.unresolved_id = None
                    count += 1
        return count
