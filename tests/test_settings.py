"""Tests for QSettings-backed application settings."""

from pathlib import Path

import pytest


class TestPersistenceSettings:
    """Test persistence options."""

    def test_defaults(self, settings) -> None:
        """Test a fresh profile uses the documented defaults."""
        assert settings.dangling_policy == "sentinel"
        assert settings.conflict_policy == "rename"
        assert settings.io_workers == 2
        assert settings.check_assets is True
        assert settings.version == "1.1"
        assert settings.is_first_run

    def test_invalid_policy_ignored(self, settings) -> None:
        """Test invalid policy values keep the current one."""
        settings.dangling_policy = "drop"
        settings.dangling_policy = "explode"
        settings.conflict_policy = "OVERWRITE"

        assert settings.dangling_policy == "drop"
        assert settings.conflict_policy == "overwrite"

    def test_io_workers_clamped(self, settings) -> None:
        """Test worker count stays within 1-16."""
        settings.io_workers = 64
        assert settings.io_workers == 16
        settings.io_workers = 0
        assert settings.io_workers == 1

    def test_values_persist(self, tmp_path: Path) -> None:
        """Test values survive reopening the same INI file."""
        from hex_maped.settings import AppSettings

        ini = tmp_path / "settings.ini"
        first = AppSettings(profile="test", ini_path=ini)
        first.dangling_policy = "drop"
        first.check_assets = False
        first.sync()

        second = AppSettings(profile="test", ini_path=ini)
        assert second.dangling_policy == "drop"
        assert second.check_assets is False


class TestPathSettings:
    """Test recent files and last directory."""

    def test_recent_files_most_recent_first(self, settings, tmp_path: Path) -> None:
        """Test reopening a file moves it to the front."""
        settings.add_recent_file(tmp_path / "a.hexmap.json")
        settings.add_recent_file(tmp_path / "b.hexmap.json")
        settings.add_recent_file(tmp_path / "a.hexmap.json")

        assert settings.recent_files == [
            str(tmp_path / "a.hexmap.json"),
            str(tmp_path / "b.hexmap.json"),
        ]
        assert settings.last_directory == tmp_path

    def test_single_recent_file(self, settings, tmp_path: Path) -> None:
        """Test a one-element list reads back as a list."""
        settings.add_recent_file(tmp_path / "only.hexmap.json")
        assert settings.recent_files == [str(tmp_path / "only.hexmap.json")]

    def test_recent_files_capped(self, settings, tmp_path: Path) -> None:
        """Test at most ten recent files are kept."""
        from hex_maped.settings.paths import MAX_RECENT_FILES

        for i in range(MAX_RECENT_FILES + 3):
            settings.add_recent_file(tmp_path / f"{i}.hexmap.json")

        recent = settings.recent_files
        assert len(recent) == MAX_RECENT_FILES
        assert recent[0] == str(tmp_path / f"{MAX_RECENT_FILES + 2}.hexmap.json")

        settings.clear_recent_files()
        assert settings.recent_files == []


class TestLoggingSettings:
    """Test handler switches and per-logger levels."""

    def test_defaults(self, settings) -> None:
        """Test fresh settings log INFO to the console and nothing to file."""
        from hex_maped.settings.logging import DEFAULT_LOG_FILE

        assert settings.console_logging
        assert settings.console_log_level == "INFO"
        assert not settings.file_logging
        assert settings.logging.file_level == "DEBUG"
        assert settings.log_file == Path(DEFAULT_LOG_FILE)
        assert settings.io_log_level == "INFO"
        assert settings.logging.logger_levels() == {}

    def test_invalid_level_ignored(self, settings) -> None:
        """Test an unknown level name keeps the current one."""
        settings.console_log_level = "warning"
        settings.console_log_level = "LOUD"
        settings.logging.file_level = ""

        assert settings.console_log_level == "WARNING"
        assert settings.logging.file_level == "DEBUG"

    def test_logger_levels_persist(self, tmp_path: Path) -> None:
        """Test per-logger levels survive a reopen and can be cleared."""
        from hex_maped.settings import AppSettings
        from hex_maped.settings.logging import IO_LOGGER

        ini = tmp_path / "settings.ini"
        settings = AppSettings(ini_path=ini)
        settings.io_log_level = "debug"
        settings.logging.set_logger_level("hex_maped.editor", "ERROR")
        settings.logging.set_logger_level("hex_maped.formats", "chatty")

        reopened = AppSettings(ini_path=ini)
        assert reopened.io_log_level == "DEBUG"
        assert reopened.logging.logger_levels() == {
            IO_LOGGER: "DEBUG",
            "hex_maped.editor": "ERROR",
        }

        reopened.logging.set_logger_level(IO_LOGGER, None)
        assert reopened.io_log_level == "INFO"
        assert IO_LOGGER not in reopened.logging.logger_levels()

    def test_log_file_reset(self, settings, tmp_path: Path) -> None:
        """Test the log file location can be moved and reset."""
        from hex_maped.settings.logging import DEFAULT_LOG_FILE

        settings.log_file = tmp_path / "run.csv"
        assert settings.log_file == tmp_path / "run.csv"

        settings.log_file = None
        assert settings.log_file == Path(DEFAULT_LOG_FILE)


class TestMigration:
    """Test configuration migration."""

    def test_unknown_tiles_option_migrated(self, tmp_path: Path) -> None:
        """Test the 1.0 unknown tile option becomes the dangling policy."""
        from PySide6.QtCore import QSettings

        from hex_maped.settings import AppSettings

        ini = tmp_path / "old.ini"
        raw = QSettings(str(ini), QSettings.Format.IniFormat)
        raw.beginGroup("default")
        raw.setValue("app/version", "1.0")
        raw.setValue("editor/unknown_tiles", "remove")
        raw.endGroup()
        raw.sync()

        settings = AppSettings(ini_path=ini)

        assert settings.version == "1.1"
        assert settings.dangling_policy == "drop"
        assert not settings.settings.contains("editor/unknown_tiles")
        assert settings.settings.value("app/migrated_from") == "1.0"


class TestValidation:
    """Test settings validation."""

    def test_invalid_raw_values_reported(self, settings) -> None:
        """Test values written behind the accessors are caught."""
        settings.settings.setValue("persistence/dangling_policy", "explode")
        settings.settings.setValue("persistence/io_workers", "lots")

        result = settings.validate()

        assert not result.is_valid
        assert len(result.errors) == 2

        from hex_maped.settings import ConfigError

        with pytest.raises(ConfigError) as exc_info:
            result.raise_if_invalid()
        assert exc_info.value.errors == result.errors

    def test_missing_recent_files_cleaned(self, settings, tmp_path: Path) -> None:
        """Test recent files that no longer exist are dropped."""
        kept = tmp_path / "kept.hexmap.json"
        kept.write_text("{}")
        settings.add_recent_file(tmp_path / "gone.hexmap.json")
        settings.add_recent_file(kept)

        result = settings.validate()

        assert result.is_valid
        assert any("gone.hexmap.json" in w for w in result.warnings)
        assert settings.recent_files == [str(kept)]

    def test_invalid_log_levels_warned(self, settings) -> None:
        """Test stored log levels that cannot be applied only warn."""
        settings.settings.setValue("logging/console_level", "LOUD")
        settings.settings.setValue("logging/levels/hex_maped.editor", "chatty")
        settings.settings.setValue("logging/levels/hex_maped.formats", "ERROR")

        result = settings.validate()

        assert result.is_valid
        assert any("logging/console_level" in w for w in result.warnings)
        assert any("hex_maped.editor" in w for w in result.warnings)
        assert not any("hex_maped.formats" in w for w in result.warnings)
