"""
Format version resolution and upgrade chains.

A decoded document arrives as `(version, raw fields)`. The resolver picks
the record class registered for that version, parses the raw fields with
it, then walks the registered upgrade steps one version at a time until the
current schema is reached. There is no downgrade path: saving always emits
the current version.
"""

import logging
from enum import Enum
from typing import Any, Callable, Mapping, Optional, Union

from ..errors import UnsupportedVersionError
from .models import (
    DEFAULT_LAYER,
    HexLayout,
    IDENTITY_TRANSFORM,
    MapLayer,
    MapV1,
    MapV2,
    MapV3,
    TileDefinition,
    TilesetV1,
    TilesetV2,
)


class FormatKind(str, Enum):
    """Kind of document stored in a file."""

    TILESET = "tileset"
    MAP = "map"


UpgradeStep = Callable[[Any], Any]


# =============================================================================
# Upgrade steps
# =============================================================================

def upgrade_tileset_v1_to_v2(tileset: TilesetV1) -> TilesetV2:
    """V1 -> V2: every tile gets an identity transform and no preview."""
    return TilesetV2(
        name=tileset.name,
        tiles=tuple(
            TileDefinition(
                id=tile.id,
                asset=tile.asset,
                attributes=tile.attributes,
                transform=IDENTITY_TRANSFORM,
                preview=None,
            )
            for tile in tileset.tiles
        ),
    )


def upgrade_map_v1_to_v2(map_v1: MapV1) -> MapV2:
    """V1 -> V2: unnamed map on a pointy layout of size 1.0."""
    return MapV2(
        tileset=map_v1.tileset,
        placements=map_v1.placements,
        name="",
        layout=HexLayout(),
    )


def upgrade_map_v2_to_v3(map_v2: MapV2) -> MapV3:
    """V2 -> V3: all placements move into one layer named DEFAULT_LAYER."""
    return MapV3(
        tileset=map_v2.tileset,
        layers=(MapLayer(DEFAULT_LAYER, map_v2.placements),),
        name=map_v2.name,
        layout=map_v2.layout,
    )


# =============================================================================
# Resolver
# =============================================================================

class VersionResolver:
    """Registry of readable schema versions and the upgrade steps between them."""

    def __init__(self, current: Mapping[FormatKind, int]):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.current: dict[FormatKind, int] = dict(current)
        self._records: dict[tuple[FormatKind, int], type] = {}
        self._upgrades: dict[tuple[FormatKind, int], UpgradeStep] = {}
        self._kinds: dict[type, tuple[FormatKind, int]] = {}

    def register_record(self, kind: FormatKind, version: int, record: type) -> None:
        """Register the record class able to parse `version` of `kind`."""
        self._records[(kind, version)] = record
        self._kinds[record] = (kind, version)

    def register_upgrade(self, kind: FormatKind, from_version: int, step: UpgradeStep) -> None:
        """Register the step turning `from_version` into `from_version + 1`."""
        self._upgrades[(kind, from_version)] = step

    def supported_versions(self, kind: FormatKind) -> tuple[int, ...]:
        """Versions of `kind` that can be read and brought up to current."""
        return tuple(
            sorted(
                version
                for (record_kind, version) in self._records
                if record_kind is kind and self._has_chain(kind, version)
            )
        )

    def _has_chain(self, kind: FormatKind, version: int) -> bool:
        current = self.current[kind]
        if version > current or (kind, version) not in self._records:
            return False
        return all((kind, v) in self._upgrades for v in range(version, current))

    def check_chains(self) -> list[str]:
        """Return registered versions that cannot reach the current schema."""
        problems: list[str] = []
        for kind, version in sorted(self._records, key=lambda k: (k[0].value, k[1])):
            if not self._has_chain(kind, version):
                problems.append(f"{kind.value} v{version} has no upgrade path to v{self.current[kind]}")
        return problems

    def resolve(self, kind: FormatKind, version: int, fields: Mapping[str, Any]) -> Any:
        """Parse raw fields at `version` and upgrade them to the current schema.

        Raises:
            UnsupportedVersionError: version unknown, newer than current, or
                missing an upgrade step.
            FieldMismatchError: version known but the fields do not match it.
        """
        if not self._has_chain(kind, version):
            raise UnsupportedVersionError(kind.value, version, self.supported_versions(kind))

        record = self._records[(kind, version)]
        model = record.from_fields(fields)
        if version != self.current[kind]:
            self.logger.debug(f"Upgrading {kind.value} from v{version} to v{self.current[kind]}")
        return self._upgrade_from(kind, version, model)

    def upgrade(self, model: Any) -> Any:
        """Bring a hand-built model of any registered version up to current."""
        try:
            kind, version = self._kinds[type(model)]
        except KeyError:
            raise TypeError(f"Not a registered format model: {type(model).__name__}") from None
        if not self._has_chain(kind, version):
            raise UnsupportedVersionError(kind.value, version, self.supported_versions(kind))
        return self._upgrade_from(kind, version, model)

    def _upgrade_from(self, kind: FormatKind, version: int, model: Any) -> Any:
        for step_version in range(version, self.current[kind]):
            model = self._upgrades[(kind, step_version)](model)
        return model

    def kind_of(self, model: Any) -> Optional[FormatKind]:
        """Return the kind of a registered model instance, if any."""
        entry = self._kinds.get(type(model))
        return entry[0] if entry else None


def _build_default_resolver() -> VersionResolver:
    resolver = VersionResolver({FormatKind.TILESET: TilesetV2.VERSION, FormatKind.MAP: MapV3.VERSION})
    resolver.register_record(FormatKind.TILESET, TilesetV1.VERSION, TilesetV1)
    resolver.register_record(FormatKind.TILESET, TilesetV2.VERSION, TilesetV2)
    resolver.register_record(FormatKind.MAP, MapV1.VERSION, MapV1)
    resolver.register_record(FormatKind.MAP, MapV2.VERSION, MapV2)
    resolver.register_record(FormatKind.MAP, MapV3.VERSION, MapV3)
    resolver.register_upgrade(FormatKind.TILESET, 1, upgrade_tileset_v1_to_v2)
    resolver.register_upgrade(FormatKind.MAP, 1, upgrade_map_v1_to_v2)
    resolver.register_upgrade(FormatKind.MAP, 2, upgrade_map_v2_to_v3)
    return resolver


default_resolver = _build_default_resolver()


def resolve(
    kind: Union[FormatKind, str], version: int, fields: Mapping[str, Any]
) -> Any:
    """Resolve with the default resolver."""
    return default_resolver.resolve(FormatKind(kind), version, fields)


def upgrade(model: Any) -> Any:
    """Upgrade a model with the default resolver."""
    return default_resolver.upgrade(model)
