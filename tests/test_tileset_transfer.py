"""Tests for tileset import/export and asset probing."""

from pathlib import Path

import pytest


def _catalog():
    from hex_maped.editor import TileCatalog

    catalog = TileCatalog("terrain")
    catalog.add("grass", "tiles/grass.glb", {"category": "ground"})
    catalog.add("water", "tiles/water.glb")
    catalog.mark_saved()
    return catalog


def _incoming(*tiles):
    from hex_maped.formats import TileDefinition, Tileset

    return Tileset("incoming", tuple(TileDefinition(*tile) for tile in tiles))


class TestMergeTileset:
    """Test merging definitions into a catalog."""

    def test_identical_definition_skipped(self) -> None:
        """Test an identical tile is not a conflict."""
        from hex_maped.tilesets.transfer import merge_tileset

        catalog = _catalog()
        summary = merge_tileset(
            catalog, _incoming(("grass", "tiles/grass.glb", {"category": "ground"})), "reject"
        )

        assert summary.skipped == ["grass"]
        assert not summary.changed
        assert not catalog.unsaved_changes

    def test_rename_picks_free_suffix(self) -> None:
        """Test renamed ids avoid both catalog and incoming ids."""
        from hex_maped.tilesets.transfer import merge_tileset

        catalog = _catalog()
        catalog.add("water_2", "tiles/water2.glb")
        summary = merge_tileset(
            catalog,
            _incoming(("water", "other/water.glb"), ("water_3", "other/water3.glb")),
            "rename",
        )

        assert summary.renamed == [("water", "water_4")]
        assert summary.added == ["water_3"]
        assert catalog.ids() == ["grass", "water", "water_2", "water_4", "water_3"]
        assert str(summary) == "1 added, 1 renamed, 0 overwritten, 0 skipped"

    def test_reject_is_all_or_nothing(self) -> None:
        """Test a rejected merge adds nothing, not even the new tiles."""
        from hex_maped.errors import ImportConflictError
        from hex_maped.tilesets.transfer import merge_tileset

        catalog = _catalog()
        with pytest.raises(ImportConflictError) as exc_info:
            merge_tileset(
                catalog, _incoming(("lava", "lava.glb"), ("water", "other.glb")), "reject"
            )

        assert exc_info.value.summary.rejected == ["water"]
        assert catalog.ids() == ["grass", "water"]
        assert not catalog.unsaved_changes

    def test_overwrite_in_place(self) -> None:
        """Test overwriting keeps handle and display position."""
        from hex_maped.tilesets.transfer import ConflictPolicy, merge_tileset

        catalog = _catalog()
        handle = catalog.by_id("grass").handle
        summary = merge_tileset(
            catalog, _incoming(("grass", "new/grass.glb")), ConflictPolicy.OVERWRITE
        )

        assert summary.overwritten == ["grass"]
        assert catalog.index_of("grass") == 0
        assert catalog.by_id("grass").handle == handle
        assert catalog.by_id("grass").asset == "new/grass.glb"
        assert catalog.by_id("grass").attributes == {}

    def test_duplicate_incoming_ids(self) -> None:
        """Test an inconsistent incoming tileset is refused."""
        from hex_maped.errors import AdapterError
        from hex_maped.tilesets.transfer import merge_tileset

        with pytest.raises(AdapterError):
            merge_tileset(_catalog(), _incoming(("lava", "a.glb"), ("lava", "b.glb")))

    def test_invalid_incoming_ids(self) -> None:
        """Test empty or padded ids are refused before anything is merged."""
        from hex_maped.errors import AdapterError
        from hex_maped.tilesets.transfer import merge_tileset

        catalog = _catalog()
        for bad_id in ("", " lava"):
            with pytest.raises(AdapterError, match="invalid tile ids"):
                merge_tileset(catalog, _incoming(("lava", "lava.glb"), (bad_id, "b.glb")))

        assert catalog.ids() == ["grass", "water"]
        assert not catalog.unsaved_changes


class TestTilesetTransfer:
    """Test background import and export."""

    def test_export_then_import(self, runner, tmp_path: Path) -> None:
        """Test an exported catalog imports into an empty catalog unchanged."""
        from hex_maped.editor import TileCatalog
        from hex_maped.persistence import LoadedTileset
        from hex_maped.tilesets.transfer import TilesetTransfer

        transfer = TilesetTransfer(runner)
        target = tmp_path / "exported.tileset.json"
        assert transfer.export_tileset(_catalog(), target).wait(5.0).ok

        loaded = transfer.import_tileset(target).wait(5.0).unwrap()
        assert isinstance(loaded, LoadedTileset)
        assert loaded.assets is None

        empty = TileCatalog()
        summary = TilesetTransfer.merge(empty, loaded.tileset)
        assert summary.added == ["grass", "water"]
        assert empty.by_id("grass").attributes == {"category": "ground"}

    def test_import_checks_assets(self, runner, write_json) -> None:
        """Test asset probing runs with the import when enabled."""
        from hex_maped.tilesets.transfer import TilesetTransfer

        path = write_json(
            "extra.tileset.json",
            {"version": 2, "tiles": [{"id": "lava", "asset": "tiles/lava.glb"}]},
        )
        loaded = TilesetTransfer(runner, verify_assets=True).import_tileset(path).wait(5.0).unwrap()

        assert loaded.assets.missing_assets == ["tiles/lava.glb"]


class TestCheckAssets:
    """Test asset and preview probing."""

    def test_readable_preview(self, tmp_path: Path) -> None:
        """Test an existing asset and a valid PNG preview pass."""
        from PIL import Image

        from hex_maped.formats import TileDefinition, Tileset
        from hex_maped.tilesets import check_assets

        (tmp_path / "grass.glb").write_bytes(b"glTF")
        Image.new("RGBA", (8, 8), (0, 128, 0, 255)).save(tmp_path / "grass.png")
        tileset = Tileset("t", (TileDefinition("grass", "grass.glb", preview="grass.png"),))

        report = check_assets(tileset, tmp_path)
        assert report.ok
        assert report.checked == 1

    def test_broken_preview(self, tmp_path: Path) -> None:
        """Test garbage bytes are an unreadable preview."""
        from hex_maped.formats import TileDefinition, Tileset
        from hex_maped.tilesets import check_assets

        (tmp_path / "grass.png").write_bytes(b"not an image")
        tileset = Tileset("t", (TileDefinition("grass", "grass.glb", preview="grass.png"),))

        report = check_assets(tileset, tmp_path)
        assert not report.ok
        assert report.missing_assets == ["grass.glb"]
        assert report.unreadable_previews == ["grass.png"]
        assert report.warnings() == [
            "asset not found: grass.glb",
            "preview image unreadable: grass.png",
        ]
