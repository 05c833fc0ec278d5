"""
Versioned format model for hex tilesets and maps.

These records describe exactly what is written to disk. They are frozen
value trees with no knowledge of files, bytes or the live editor session:
the editor's runtime model lives in `hex_maped.editor.session` and the two
only meet in `hex_maped.editor.adapter`.

Each schema version keeps its own record class (`TilesetV1`, `TilesetV2`,
`MapV1`, `MapV2`, `MapV3`). `Tileset` and `Map` always alias the current version.
Adding a version means adding one record class here and one upgrade step in
`hex_maped.formats.versions`.
"""

import math
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from types import MappingProxyType
from typing import Any, ClassVar, Iterator, Mapping, Optional, Sequence, Union, cast

from ..errors import FieldMismatchError

AttributeValue = Union[str, int, float, bool]
RawFields = Mapping[str, Any]

_MISSING = object()


# =============================================================================
# Field helpers
# =============================================================================

def _type_name(value: Any) -> str:
    return "null" if value is None else type(value).__name__


def _field(raw: RawFields, name: str, where: str = "", default: Any = _MISSING) -> Any:
    """Return raw[name] or default; missing without default is a mismatch."""
    if name in raw:
        return raw[name]
    if default is _MISSING:
        raise FieldMismatchError(f"{where}{name}", "missing required field")
    return default


def _str_field(raw: RawFields, name: str, where: str = "", default: Any = _MISSING) -> str:
    value = _field(raw, name, where, default)
    if not isinstance(value, str):
        raise FieldMismatchError(f"{where}{name}", f"expected string, got {_type_name(value)}")
    return value


def _int_field(raw: RawFields, name: str, where: str = "", default: Any = _MISSING) -> int:
    value = _field(raw, name, where, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise FieldMismatchError(f"{where}{name}", f"expected integer, got {_type_name(value)}")
    return value


def _float_field(raw: RawFields, name: str, where: str = "", default: Any = _MISSING) -> float:
    value = _field(raw, name, where, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise FieldMismatchError(f"{where}{name}", f"expected number, got {_type_name(value)}")
    return float(value)


def _list_field(raw: RawFields, name: str, where: str = "", default: Any = _MISSING) -> list[Any]:
    value = _field(raw, name, where, default)
    if not isinstance(value, list):
        raise FieldMismatchError(f"{where}{name}", f"expected array, got {_type_name(value)}")
    return cast(list[Any], value)


def _object_field(
    raw: RawFields, name: str, where: str = "", default: Any = _MISSING
) -> dict[str, Any]:
    value = _field(raw, name, where, default)
    if not isinstance(value, dict):
        raise FieldMismatchError(f"{where}{name}", f"expected object, got {_type_name(value)}")
    return cast(dict[str, Any], value)


def _object_item(value: Any, where: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise FieldMismatchError(where, f"expected object, got {_type_name(value)}")
    return cast(dict[str, Any], value)


def _freeze_attributes(attributes: Mapping[str, Any]) -> Mapping[str, Any]:
    """Return a read-only copy of attributes with keys in sorted order."""
    return MappingProxyType({key: attributes[key] for key in sorted(attributes)})


def _tile_hash(tile: Any) -> int:
    """Hash tile definitions by id and asset; attributes may hold unhashable values."""
    return hash((type(tile), tile.id, tile.asset))


def _is_attribute_value(value: Any) -> bool:
    if isinstance(value, float):
        return math.isfinite(value)
    return isinstance(value, (str, int, bool))


# =============================================================================
# Hex grid primitives
# =============================================================================

class HexRotation(IntEnum):
    """Rotation of a placed tile in 60 degree clockwise steps."""

    NONE = 0
    CW60 = 1
    CW120 = 2
    CW180 = 3
    CCW120 = 4
    CCW60 = 5

    def clockwise(self) -> "HexRotation":
        """Rotate one step clockwise."""
        return HexRotation((self.value + 1) % 6)

    def counter_clockwise(self) -> "HexRotation":
        """Rotate one step counter-clockwise."""
        return HexRotation((self.value - 1) % 6)

    @property
    def radians(self) -> float:
        """Signed angle in radians; counter-clockwise steps are negative."""
        steps = self.value if self.value <= 3 else self.value - 6
        return steps * math.tau / 6


@dataclass(frozen=True, order=True)
class HexCoord:
    """Axial hex coordinate. Orders by (q, r), which is the on-disk order."""

    q: int
    r: int

    @property
    def s(self) -> int:
        """Third cube coordinate (q + r + s == 0)."""
        return -self.q - self.r

    _DIRECTIONS: ClassVar[tuple[tuple[int, int], ...]] = (
        (1, 0), (1, -1), (0, -1), (-1, 0), (-1, 1), (0, 1),
    )

    def neighbors(self) -> list["HexCoord"]:
        """Six adjacent coordinates, starting east and going counter-clockwise."""
        return [HexCoord(self.q + dq, self.r + dr) for dq, dr in self._DIRECTIONS]

    def distance(self, other: "HexCoord") -> int:
        """Hex grid distance between two coordinates."""
        return max(abs(self.q - other.q), abs(self.r - other.r), abs(self.s - other.s))


class HexOrientation(str, Enum):
    """Hex grid orientation."""

    POINTY = "pointy"
    FLAT = "flat"


@dataclass(frozen=True)
class HexLayout:
    """Grid geometry a map was authored with."""

    orientation: HexOrientation = HexOrientation.POINTY
    size: float = 1.0

    @classmethod
    def from_fields(cls, raw: RawFields, where: str = "layout.") -> "HexLayout":
        orientation = _str_field(raw, "orientation", where, HexOrientation.POINTY.value)
        try:
            parsed = HexOrientation(orientation)
        except ValueError:
            raise FieldMismatchError(
                f"{where}orientation",
                f"expected one of {[o.value for o in HexOrientation]}, got {orientation!r}",
            ) from None
        return cls(orientation=parsed, size=_float_field(raw, "size", where, 1.0))

    def to_fields(self) -> dict[str, Any]:
        return {"orientation": self.orientation.value, "size": float(self.size)}


@dataclass(frozen=True)
class TileTransform:
    """Base transform applied to every placement of a tile."""

    y_offset: float = 0.0
    rotation: float = 0.0
    scale: float = 1.0

    @classmethod
    def from_fields(cls, raw: RawFields, where: str) -> "TileTransform":
        return cls(
            y_offset=_float_field(raw, "y_offset", where, 0.0),
            rotation=_float_field(raw, "rotation", where, 0.0),
            scale=_float_field(raw, "scale", where, 1.0),
        )

    def to_fields(self) -> dict[str, Any]:
        return {
            "y_offset": float(self.y_offset),
            "rotation": float(self.rotation),
            "scale": float(self.scale),
        }

    def validate(self) -> list[str]:
        errors: list[str] = []
        for name in ("y_offset", "rotation", "scale"):
            if not math.isfinite(getattr(self, name)):
                errors.append(f"transform {name} must be finite")
        if math.isfinite(self.scale) and self.scale <= 0:
            errors.append(f"transform scale must be positive, got {self.scale}")
        return errors


IDENTITY_TRANSFORM = TileTransform()


# =============================================================================
# Tile definitions
# =============================================================================

@dataclass(frozen=True)
class TileDefinitionV1:
    """Tile definition as written by schema version 1."""

    id: str
    asset: str
    attributes: Mapping[str, AttributeValue] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "attributes", _freeze_attributes(self.attributes))

    def __hash__(self) -> int:
        return _tile_hash(self)

    @classmethod
    def from_fields(cls, raw: RawFields, where: str) -> "TileDefinitionV1":
        return cls(
            id=_str_field(raw, "id", where),
            asset=_str_field(raw, "asset", where),
            attributes=_object_field(raw, "attributes", where, {}),
        )

    def to_fields(self) -> dict[str, Any]:
        return {"id": self.id, "asset": self.asset, "attributes": dict(self.attributes)}

    def validate(self) -> list[str]:
        return _validate_tile_common(self.id, self.asset, self.attributes)


@dataclass(frozen=True)
class TileDefinition:
    """Tile definition, current schema.

    Identity is `id`. `asset` and `preview` are paths relative to the
    tileset file and are never resolved or loaded here.
    """

    id: str
    asset: str
    attributes: Mapping[str, AttributeValue] = field(default_factory=dict)
    transform: TileTransform = IDENTITY_TRANSFORM
    preview: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "attributes", _freeze_attributes(self.attributes))

    def __hash__(self) -> int:
        return _tile_hash(self)

    @classmethod
    def from_fields(cls, raw: RawFields, where: str) -> "TileDefinition":
        transform_raw = _object_field(raw, "transform", where, {})
        preview = _field(raw, "preview", where, None)
        if preview is not None and not isinstance(preview, str):
            raise FieldMismatchError(
                f"{where}preview", f"expected string or null, got {_type_name(preview)}"
            )
        return cls(
            id=_str_field(raw, "id", where),
            asset=_str_field(raw, "asset", where),
            attributes=_object_field(raw, "attributes", where, {}),
            transform=TileTransform.from_fields(transform_raw, f"{where}transform."),
            preview=preview,
        )

    def to_fields(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "asset": self.asset,
            "attributes": dict(self.attributes),
            "transform": self.transform.to_fields(),
            "preview": self.preview,
        }

    def validate(self) -> list[str]:
        errors = _validate_tile_common(self.id, self.asset, self.attributes)
        errors.extend(f"tile '{self.id}': {e}" for e in self.transform.validate())
        if self.preview is not None and not self.preview:
            errors.append(f"tile '{self.id}': preview must be null or a non-empty path")
        return errors


def _validate_tile_common(
    tile_id: str, asset: str, attributes: Mapping[str, Any]
) -> list[str]:
    errors: list[str] = []
    if not tile_id:
        errors.append("tile id must be a non-empty string")
    elif tile_id != tile_id.strip():
        errors.append(f"tile id {tile_id!r} has leading or trailing whitespace")
    if not asset:
        errors.append(f"tile '{tile_id}': asset must be a non-empty path")
    for key, value in attributes.items():
        if not _is_attribute_value(value):
            errors.append(
                f"tile '{tile_id}': attribute '{key}' must be a string, number or boolean"
            )
    return errors


def _validate_unique_ids(tiles: Sequence[Union[TileDefinitionV1, TileDefinition]]) -> list[str]:
    errors: list[str] = []
    seen: set[str] = set()
    for index, tile in enumerate(tiles):
        if tile.id in seen:
            errors.append(f"tiles[{index}]: duplicate tile id '{tile.id}'")
        seen.add(tile.id)
    return errors


# =============================================================================
# Tilesets
# =============================================================================

@dataclass(frozen=True)
class TilesetV1:
    """Tileset, schema version 1."""

    VERSION: ClassVar[int] = 1

    name: str = ""
    tiles: tuple[TileDefinitionV1, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "tiles", tuple(self.tiles))

    @classmethod
    def from_fields(cls, raw: RawFields) -> "TilesetV1":
        tiles = [
            TileDefinitionV1.from_fields(_object_item(item, f"tiles[{i}]"), f"tiles[{i}].")
            for i, item in enumerate(_list_field(raw, "tiles"))
        ]
        return cls(name=_str_field(raw, "name", default=""), tiles=tuple(tiles))

    def to_fields(self) -> dict[str, Any]:
        return {
            "version": self.VERSION,
            "name": self.name,
            "tiles": [tile.to_fields() for tile in self.tiles],
        }

    def validate(self) -> list[str]:
        errors = _validate_unique_ids(self.tiles)
        for tile in self.tiles:
            errors.extend(tile.validate())
        return errors


@dataclass(frozen=True)
class TilesetV2:
    """Tileset, current schema.

    `tiles` order is display order and is preserved on disk.
    """

    VERSION: ClassVar[int] = 2

    name: str = ""
    tiles: tuple[TileDefinition, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "tiles", tuple(self.tiles))

    @classmethod
    def from_fields(cls, raw: RawFields) -> "TilesetV2":
        tiles = [
            TileDefinition.from_fields(_object_item(item, f"tiles[{i}]"), f"tiles[{i}].")
            for i, item in enumerate(_list_field(raw, "tiles"))
        ]
        return cls(name=_str_field(raw, "name", default=""), tiles=tuple(tiles))

    def to_fields(self) -> dict[str, Any]:
        return {
            "version": self.VERSION,
            "name": self.name,
            "tiles": [tile.to_fields() for tile in self.tiles],
        }

    def validate(self) -> list[str]:
        errors = _validate_unique_ids(self.tiles)
        for tile in self.tiles:
            errors.extend(tile.validate())
        return errors

    def ids(self) -> list[str]:
        """Tile ids in display order."""
        return [tile.id for tile in self.tiles]

    def get(self, tile_id: str) -> Optional[TileDefinition]:
        """Return the definition with the given id, if present."""
        for tile in self.tiles:
            if tile.id == tile_id:
                return tile
        return None

    def __iter__(self) -> Iterator[TileDefinition]:
        return iter(self.tiles)

    def __len__(self) -> int:
        return len(self.tiles)


# =============================================================================
# Placements and maps
# =============================================================================

@dataclass(frozen=True)
class PlacedTile:
    """One tile placed at a hex coordinate, referencing a definition by id.

    `rotation` is coerced to `HexRotation` when it is in range; an out of
    range integer read from disk is kept as-is so `validate()` can report it.
    """

    coord: HexCoord
    tile: str
    rotation: Union[HexRotation, int] = HexRotation.NONE

    def __post_init__(self) -> None:
        if not isinstance(self.rotation, HexRotation) and 0 <= self.rotation <= 5:
            object.__setattr__(self, "rotation", HexRotation(self.rotation))

    @classmethod
    def from_fields(cls, raw: RawFields, where: str) -> "PlacedTile":
        return cls(
            coord=HexCoord(_int_field(raw, "q", where), _int_field(raw, "r", where)),
            tile=_str_field(raw, "tile", where),
            rotation=_int_field(raw, "rotation", where, 0),
        )

    def to_fields(self) -> dict[str, Any]:
        return {
            "q": self.coord.q,
            "r": self.coord.r,
            "tile": self.tile,
            "rotation": int(self.rotation),
        }

    def sort_key(self) -> tuple[int, int, str]:
        return (self.coord.q, self.coord.r, self.tile)


def _sorted_placements(placements: Sequence[PlacedTile]) -> tuple[PlacedTile, ...]:
    return tuple(sorted(placements, key=PlacedTile.sort_key))


def _validate_placements(placements: Sequence[PlacedTile]) -> list[str]:
    errors: list[str] = []
    seen: set[HexCoord] = set()
    for tile in placements:
        where = f"placement ({tile.coord.q}, {tile.coord.r})"
        if tile.coord in seen:
            errors.append(f"{where}: duplicate coordinate")
        seen.add(tile.coord)
        if not tile.tile:
            errors.append(f"{where}: tile id must be a non-empty string")
        if not isinstance(tile.rotation, HexRotation):
            errors.append(f"{where}: rotation {tile.rotation} out of range 0..5")
    return errors


@dataclass(frozen=True)
class MapV1:
    """Map, schema version 1."""

    VERSION: ClassVar[int] = 1

    tileset: str
    placements: tuple[PlacedTile, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "placements", _sorted_placements(self.placements))

    @classmethod
    def from_fields(cls, raw: RawFields) -> "MapV1":
        placements = [
            PlacedTile.from_fields(_object_item(item, f"placements[{i}]"), f"placements[{i}].")
            for i, item in enumerate(_list_field(raw, "placements"))
        ]
        return cls(tileset=_str_field(raw, "tileset"), placements=tuple(placements))

    def to_fields(self) -> dict[str, Any]:
        return {
            "version": self.VERSION,
            "tileset": self.tileset,
            "placements": [tile.to_fields() for tile in self.placements],
        }

    def validate(self) -> list[str]:
        errors: list[str] = []
        if not self.tileset:
            errors.append("tileset reference must be a non-empty path")
        errors.extend(_validate_placements(self.placements))
        return errors


@dataclass(frozen=True)
class MapV2:
    """Map, schema version 2: a single unnamed set of placements."""

    VERSION: ClassVar[int] = 2

    tileset: str
    placements: tuple[PlacedTile, ...] = ()
    name: str = ""
    layout: HexLayout = field(default_factory=HexLayout)

    def __post_init__(self) -> None:
        object.__setattr__(self, "placements", _sorted_placements(self.placements))

    @classmethod
    def from_fields(cls, raw: RawFields) -> "MapV2":
        placements = [
            PlacedTile.from_fields(_object_item(item, f"placements[{i}]"), f"placements[{i}].")
            for i, item in enumerate(_list_field(raw, "placements"))
        ]
        return cls(
            tileset=_str_field(raw, "tileset"),
            placements=tuple(placements),
            name=_str_field(raw, "name", default=""),
            layout=HexLayout.from_fields(_object_field(raw, "layout", default={})),
        )

    def to_fields(self) -> dict[str, Any]:
        return {
            "version": self.VERSION,
            "name": self.name,
            "tileset": self.tileset,
            "layout": self.layout.to_fields(),
            "placements": [tile.to_fields() for tile in self.placements],
        }

    def validate(self) -> list[str]:
        errors: list[str] = []
        if not self.tileset:
            errors.append("tileset reference must be a non-empty path")
        if not math.isfinite(self.layout.size) or self.layout.size <= 0:
            errors.append(f"layout size must be a positive number, got {self.layout.size}")
        errors.extend(_validate_placements(self.placements))
        return errors


DEFAULT_LAYER = "Background"
"""Name of the layer older maps' placements are moved into."""


@dataclass(frozen=True)
class MapLayer:
    """Named group of placements. Placements are kept sorted by coordinate."""

    name: str
    placements: tuple[PlacedTile, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "placements", _sorted_placements(self.placements))

    @classmethod
    def from_fields(cls, raw: RawFields, where: str) -> "MapLayer":
        placements = [
            PlacedTile.from_fields(
                _object_item(item, f"{where}placements[{i}]"), f"{where}placements[{i}]."
            )
            for i, item in enumerate(_list_field(raw, "placements", where))
        ]
        return cls(name=_str_field(raw, "name", where), placements=tuple(placements))

    def to_fields(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "placements": [tile.to_fields() for tile in self.placements],
        }

    def validate(self) -> list[str]:
        return [f"layer '{self.name}': {e}" for e in _validate_placements(self.placements)]


@dataclass(frozen=True)
class MapV3:
    """Map, current schema.

    `tileset` is a reference (relative path from the map file's directory),
    never an embedded tileset. `layers` order is draw order, bottom first,
    and is preserved on disk. Placements inside a layer are sorted by
    coordinate so two maps with the same content serialize identically; the
    same coordinate may be used once per layer.
    """

    VERSION: ClassVar[int] = 3

    tileset: str
    layers: tuple[MapLayer, ...] = ()
    name: str = ""
    layout: HexLayout = field(default_factory=HexLayout)

    def __post_init__(self) -> None:
        object.__setattr__(self, "layers", tuple(self.layers))

    @classmethod
    def from_fields(cls, raw: RawFields) -> "MapV3":
        layers = [
            MapLayer.from_fields(_object_item(item, f"layers[{i}]"), f"layers[{i}].")
            for i, item in enumerate(_list_field(raw, "layers"))
        ]
        return cls(
            tileset=_str_field(raw, "tileset"),
            layers=tuple(layers),
            name=_str_field(raw, "name", default=""),
            layout=HexLayout.from_fields(_object_field(raw, "layout", default={})),
        )

    def to_fields(self) -> dict[str, Any]:
        return {
            "version": self.VERSION,
            "name": self.name,
            "tileset": self.tileset,
            "layout": self.layout.to_fields(),
            "layers": [layer.to_fields() for layer in self.layers],
        }

    def validate(self) -> list[str]:
        errors: list[str] = []
        if not self.tileset:
            errors.append("tileset reference must be a non-empty path")
        if not math.isfinite(self.layout.size) or self.layout.size <= 0:
            errors.append(f"layout size must be a positive number, got {self.layout.size}")
        seen: set[str] = set()
        for index, layer in enumerate(self.layers):
            if not layer.name.strip():
                errors.append(f"layers[{index}]: layer name must be a non-empty string")
            elif layer.name in seen:
                errors.append(f"layers[{index}]: duplicate layer name '{layer.name}'")
            seen.add(layer.name)
            errors.extend(layer.validate())
        return errors

    def layer(self, name: str) -> Optional[MapLayer]:
        """Return the first layer with the given name, if present."""
        for layer in self.layers:
            if layer.name == name:
                return layer
        return None

    def all_placements(self) -> Iterator[tuple[str, PlacedTile]]:
        """Every placement as (layer name, placement), in draw order."""
        for layer in self.layers:
            for placed in layer.placements:
                yield layer.name, placed


# Current schema aliases
Tileset = TilesetV2
Map = MapV3

TilesetModel = Union[TilesetV1, TilesetV2]
MapModel = Union[MapV1, MapV2, MapV3]
FormatModel = Union[TilesetV1, TilesetV2, MapV1, MapV2, MapV3]
