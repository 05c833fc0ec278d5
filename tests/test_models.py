"""Tests for the versioned format model."""

import math

import pytest


class TestHexPrimitives:
    """Test hex coordinate and rotation helpers."""

    def test_rotation_steps_wrap(self) -> None:
        """Test rotating past the last step wraps around."""
        from hex_maped.formats import HexRotation

        assert HexRotation.CCW60.clockwise() is HexRotation.NONE
        assert HexRotation.NONE.counter_clockwise() is HexRotation.CCW60
        assert HexRotation.CW60.clockwise() is HexRotation.CW120

    def test_rotation_radians(self) -> None:
        """Test counter-clockwise steps give negative angles."""
        from hex_maped.formats import HexRotation

        assert HexRotation.NONE.radians == 0
        assert math.isclose(HexRotation.CW180.radians, math.pi)
        assert math.isclose(HexRotation.CCW60.radians, -math.pi / 3)

    def test_coord_ordering(self) -> None:
        """Test coordinates order by q then r."""
        from hex_maped.formats import HexCoord

        coords = [HexCoord(1, 0), HexCoord(0, 5), HexCoord(0, -1)]
        assert sorted(coords) == [HexCoord(0, -1), HexCoord(0, 5), HexCoord(1, 0)]

    def test_coord_neighbors_and_distance(self) -> None:
        """Test every neighbor is one step away."""
        from hex_maped.formats import HexCoord

        origin = HexCoord(2, -1)
        neighbors = origin.neighbors()
        assert len(set(neighbors)) == 6
        assert all(origin.distance(n) == 1 for n in neighbors)
        assert origin.s == -1
        assert HexCoord(0, 0).distance(HexCoord(3, -1)) == 3


class TestTileDefinitions:
    """Test tile definition records."""

    def test_attributes_sorted_and_read_only(self) -> None:
        """Test attributes are frozen with sorted keys."""
        from hex_maped.formats import TileDefinition

        tile = TileDefinition("grass", "grass.glb", {"z": 1, "category": "ground"})
        assert list(tile.attributes) == ["category", "z"]
        with pytest.raises(TypeError):
            tile.attributes["z"] = 2  # type: ignore[index]

    def test_validate_reports_problems(self) -> None:
        """Test structural problems are reported, not raised."""
        from hex_maped.formats import TileDefinition, TileTransform

        tile = TileDefinition(
            "lava", "", {"hot": [1, 2]}, transform=TileTransform(scale=0.0), preview=""
        )
        problems = tile.validate()
        assert len(problems) == 4
        assert any("asset" in p for p in problems)
        assert any("'hot'" in p for p in problems)
        assert any("scale" in p for p in problems)
        assert any("preview" in p for p in problems)

    def test_field_mismatch_names_field(self) -> None:
        """Test a wrong-shaped field reports its location."""
        from hex_maped.errors import FieldMismatchError
        from hex_maped.formats import TilesetV2

        raw = {"tiles": [{"id": "grass", "asset": "a.glb"}, {"id": 7, "asset": "b.glb"}]}
        with pytest.raises(FieldMismatchError) as exc_info:
            TilesetV2.from_fields(raw)
        assert exc_info.value.field == "tiles[1].id"

    def test_hashable(self) -> None:
        """Test equal definitions hash alike and work as set members and dict keys."""
        from hex_maped.formats import TileDefinition, TileDefinitionV1, Tileset

        first = TileDefinition("grass", "grass.glb", {"z": 1, "category": "ground"})
        second = TileDefinition("grass", "grass.glb", {"category": "ground", "z": 1})
        odd = TileDefinition("lava", "lava.glb", {"hot": [1, 2]})

        assert first == second and hash(first) == hash(second)
        assert len({first, second, odd}) == 2
        assert {odd: "kept"}[odd] == "kept"
        assert isinstance(hash(TileDefinitionV1("grass", "grass.glb")), int)
        assert hash(Tileset("terrain", (first,))) == hash(Tileset("terrain", (second,)))


class TestTilesets:
    """Test tileset records."""

    def test_duplicate_ids_reported(self) -> None:
        """Test duplicate tile ids are a validation problem."""
        from hex_maped.formats import TileDefinition, Tileset

        tileset = Tileset(
            "terrain", (TileDefinition("grass", "a.glb"), TileDefinition("grass", "b.glb"))
        )
        assert tileset.validate() == ["tiles[1]: duplicate tile id 'grass'"]

    def test_lookup_helpers(self) -> None:
        """Test id lookup keeps display order."""
        from hex_maped.formats import TileDefinition, Tileset

        tileset = Tileset(
            "terrain", [TileDefinition("water", "w.glb"), TileDefinition("grass", "g.glb")]
        )
        assert tileset.ids() == ["water", "grass"]
        assert tileset.get("grass") is tileset.tiles[1]
        assert tileset.get("lava") is None
        assert len(tileset) == 2


class TestMaps:
    """Test map and placement records."""

    def test_placements_sorted_by_coordinate(self) -> None:
        """Test placements are kept in coordinate order within a layer."""
        from hex_maped.formats import HexCoord, MapLayer, PlacedTile

        layer = MapLayer(
            "ground",
            [PlacedTile(HexCoord(1, 0), "rock"), PlacedTile(HexCoord(0, 3), "grass")],
        )
        assert [p.coord for p in layer.placements] == [HexCoord(0, 3), HexCoord(1, 0)]

    def test_layers_keep_draw_order(self) -> None:
        """Test layers are not reordered and may reuse coordinates."""
        from hex_maped.formats import HexCoord, Map, MapLayer, PlacedTile

        map_model = Map(
            "terrain.tileset.json",
            [
                MapLayer("top", [PlacedTile(HexCoord(0, 0), "rock")]),
                MapLayer("bottom", [PlacedTile(HexCoord(0, 0), "grass")]),
            ],
        )
        assert [layer.name for layer in map_model.layers] == ["top", "bottom"]
        assert map_model.validate() == []
        assert map_model.layer("bottom").placements[0].tile == "grass"
        assert map_model.layer("missing") is None
        assert [(name, p.tile) for name, p in map_model.all_placements()] == [
            ("top", "rock"),
            ("bottom", "grass"),
        ]

    def test_rotation_coerced(self) -> None:
        """Test in-range integers become HexRotation values."""
        from hex_maped.formats import HexCoord, HexRotation, PlacedTile

        assert PlacedTile(HexCoord(0, 0), "grass", 2).rotation is HexRotation.CW120
        assert PlacedTile(HexCoord(0, 0), "grass", 9).rotation == 9

    def test_validate_reports_problems(self) -> None:
        """Test duplicate coordinates, bad rotation and layout are reported."""
        from hex_maped.formats import HexCoord, HexLayout, Map, MapLayer, PlacedTile

        ground = MapLayer(
            "ground",
            [
                PlacedTile(HexCoord(0, 0), "grass"),
                PlacedTile(HexCoord(0, 0), "rock"),
                PlacedTile(HexCoord(2, 0), "rock", 6),
            ],
        )
        map_model = Map(
            "",
            [ground, MapLayer("ground"), MapLayer(" ")],
            layout=HexLayout(size=0.0),
        )
        problems = map_model.validate()
        assert "tileset reference must be a non-empty path" in problems
        assert "layer 'ground': placement (0, 0): duplicate coordinate" in problems
        assert "layers[1]: duplicate layer name 'ground'" in problems
        assert "layers[2]: layer name must be a non-empty string" in problems
        assert any("rotation 6" in p for p in problems)
        assert any("layout size" in p for p in problems)

    def test_layout_orientation_checked(self) -> None:
        """Test an unknown orientation is a field mismatch."""
        from hex_maped.errors import FieldMismatchError
        from hex_maped.formats import MapV2

        raw = {"tileset": "t.json", "placements": [], "layout": {"orientation": "round"}}
        with pytest.raises(FieldMismatchError) as exc_info:
            MapV2.from_fields(raw)
        assert exc_info.value.field == "layout.orientation"

    def test_layer_field_mismatch_names_field(self) -> None:
        """Test a wrong-shaped placement inside a layer reports its full location."""
        from hex_maped.errors import FieldMismatchError
        from hex_maped.formats import MapV3

        raw = {
            "tileset": "t.json",
            "layers": [{"name": "ground", "placements": [{"q": 0, "r": "0", "tile": "grass"}]}],
        }
        with pytest.raises(FieldMismatchError) as exc_info:
            MapV3.from_fields(raw)
        assert exc_info.value.field == "layers[0].placements[0].r"

    def test_rotation_must_be_integer(self) -> None:
        """Test a boolean rotation is rejected."""
        from hex_maped.errors import FieldMismatchError
        from hex_maped.formats import MapV2

        raw = {
            "tileset": "t.json",
            "placements": [{"q": 0, "r": 0, "tile": "grass", "rotation": True}],
        }
        with pytest.raises(FieldMismatchError):
            MapV2.from_fields(raw)
