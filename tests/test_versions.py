"""Tests for version resolution and upgrade chains."""

import dataclasses

import pytest


class TestDefaultResolver:
    """Test the built-in upgrade chains."""

    def test_supported_versions(self) -> None:
        """Test tilesets read versions 1-2 and maps 1-3."""
        from hex_maped.formats import FormatKind, default_resolver

        assert default_resolver.supported_versions(FormatKind.TILESET) == (1, 2)
        assert default_resolver.supported_versions(FormatKind.MAP) == (1, 2, 3)
        assert default_resolver.check_chains() == []

    def test_tileset_v1_upgrade(self, terrain_v1) -> None:
        """Test v1 tiles gain identity transform and no preview."""
        from hex_maped.formats import IDENTITY_TRANSFORM, TilesetV2, resolve

        fields = {k: v for k, v in terrain_v1.items() if k != "version"}
        tileset = resolve("tileset", 1, fields)
        assert isinstance(tileset, TilesetV2)
        assert tileset.ids() == ["grass", "water", "rock"]
        assert all(t.transform == IDENTITY_TRANSFORM and t.preview is None for t in tileset)
        assert tileset.tiles[0].attributes["category"] == "ground"

    def test_map_v1_upgrade(self, meadow_map_v1) -> None:
        """Test v1 maps gain an empty name, the default layout and one layer."""
        from hex_maped.formats import DEFAULT_LAYER, HexLayout, HexOrientation, MapV3, resolve

        fields = {k: v for k, v in meadow_map_v1.items() if k != "version"}
        map_model = resolve("map", 1, fields)
        assert isinstance(map_model, MapV3)
        assert map_model.name == ""
        assert map_model.layout == HexLayout(HexOrientation.POINTY, 1.0)
        assert [layer.name for layer in map_model.layers] == [DEFAULT_LAYER]
        assert [p.tile for p in map_model.layers[0].placements] == ["grass", "rock"]

    def test_map_v2_upgrade(self) -> None:
        """Test v2 placements move into the default layer; name and layout are kept."""
        from hex_maped.formats import (
            DEFAULT_LAYER,
            HexCoord,
            HexLayout,
            HexOrientation,
            MapLayer,
            MapV2,
            MapV3,
            PlacedTile,
            decode_map,
            encode,
            upgrade,
        )

        placements = (PlacedTile(HexCoord(2, 0), "rock", 1), PlacedTile(HexCoord(0, 0), "grass"))
        old = MapV2("t.tileset.json", placements, "meadow", HexLayout(HexOrientation.FLAT, 2.0))

        upgraded = decode_map(encode(old))

        assert upgraded == upgrade(old)
        assert upgraded == MapV3(
            "t.tileset.json",
            (MapLayer(DEFAULT_LAYER, placements),),
            "meadow",
            HexLayout(HexOrientation.FLAT, 2.0),
        )

    def test_empty_v2_map_gets_one_layer(self) -> None:
        """Test an empty v2 map still upgrades to a single empty layer."""
        from hex_maped.formats import DEFAULT_LAYER, MapV2, upgrade

        upgraded = upgrade(MapV2("t.tileset.json"))
        assert [(layer.name, layer.placements) for layer in upgraded.layers] == [(DEFAULT_LAYER, ())]

    def test_v1_fields_checked_against_v1(self) -> None:
        """Test v1 fields are parsed by the v1 record, not the current one."""
        from hex_maped.errors import FieldMismatchError
        from hex_maped.formats import resolve

        with pytest.raises(FieldMismatchError):
            resolve("map", 1, {"placements": []})

    def test_upgrade_hand_built_model(self) -> None:
        """Test upgrade() brings an old value up to current."""
        from hex_maped.formats import MapV1, MapV3, upgrade

        upgraded = upgrade(MapV1("terrain.tileset.json"))
        assert isinstance(upgraded, MapV3)
        assert upgraded.tileset == "terrain.tileset.json"

    def test_upgrade_current_is_identity(self) -> None:
        """Test upgrading a current value returns it unchanged."""
        from hex_maped.formats import Map, upgrade

        current = Map("t.tileset.json")
        assert upgrade(current) is current

    def test_upgrade_unknown_type(self) -> None:
        """Test upgrade() rejects values that are not format models."""
        from hex_maped.formats import upgrade

        with pytest.raises(TypeError):
            upgrade(object())


class TestCustomResolver:
    """Test chain composition on a resolver with more versions."""

    def _resolver(self):
        from hex_maped.formats import FormatKind, TilesetV1, TilesetV2, VersionResolver
        from hex_maped.formats.versions import upgrade_tileset_v1_to_v2

        resolver = VersionResolver({FormatKind.TILESET: 3, FormatKind.MAP: 2})
        resolver.register_record(FormatKind.TILESET, 1, TilesetV1)
        resolver.register_record(FormatKind.TILESET, 2, TilesetV2)
        resolver.register_upgrade(FormatKind.TILESET, 1, upgrade_tileset_v1_to_v2)
        resolver.register_upgrade(
            FormatKind.TILESET, 2, lambda t: dataclasses.replace(t, name=t.name.upper())
        )
        return resolver

    def test_chain_composes(self, terrain_v1) -> None:
        """Test v1 -> v3 equals applying each step in turn."""
        from hex_maped.formats import FormatKind

        fields = {k: v for k, v in terrain_v1.items() if k != "version"}
        upgraded = self._resolver().resolve(FormatKind.TILESET, 1, fields)
        assert upgraded.name == "TERRAIN"
        assert upgraded.ids() == ["grass", "water", "rock"]

    def test_gap_in_chain_is_unsupported(self) -> None:
        """Test a version without a full path to current is unsupported."""
        from hex_maped.errors import UnsupportedVersionError
        from hex_maped.formats import FormatKind, TilesetV2

        resolver = self._resolver()
        resolver.register_record(FormatKind.TILESET, 3, TilesetV2)
        # Version 3 parses directly; versions 1 and 2 still reach it
        assert resolver.supported_versions(FormatKind.TILESET) == (1, 2, 3)
        assert resolver.check_chains() == []

        broken = self._resolver()
        broken._upgrades.pop((FormatKind.TILESET, 2))
        assert broken.supported_versions(FormatKind.TILESET) == ()
        assert len(broken.check_chains()) == 2
        with pytest.raises(UnsupportedVersionError):
            broken.resolve(FormatKind.TILESET, 1, {"tiles": []})
