"""
Logging settings for hex_maped.

Handlers are configured under "logging/": a console handler and an optional
CSV file handler, each with its own level. Logger levels live under
"logging/levels/<logger name>" and are applied by `setup_logging`. The
background I/O workers log under `hex_maped.persistence` and get their own
accessor, since their per-operation DEBUG output drowns everything else.
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Optional, Union

if TYPE_CHECKING:
    from PySide6.QtCore import QSettings

logger = logging.getLogger(__name__)

DEFAULT_LOG_FILE = "logs/hex_maped.csv"
LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
IO_LOGGER = "hex_maped.persistence"
LEVELS_GROUP = "logging/levels"


def normalize_level(value: object) -> Optional[str]:
    """Upper-cased level name, or None if it is not a logging level."""
    level = str(value).strip().upper()
    return level if level in LEVELS else None


class LoggingSettings:
    """Handler switches and per-logger levels."""

    def __init__(self, settings: "QSettings"):
        self.settings = settings

    def _flag(self, key: str, default: bool) -> bool:
        value = self.settings.value(key, default)
        if isinstance(value, str):
            return value.lower() in ("true", "1", "yes")
        return bool(value) if value is not None else default

    def _set(self, key: str, value: object) -> None:
        self.settings.setValue(key, value)
        self.settings.sync()

    def _level(self, key: str, default: str) -> str:
        return normalize_level(self.settings.value(key, default)) or default

    def _set_level(self, key: str, value: str) -> bool:
        level = normalize_level(value)
        if level is None:
            logger.warning(f"Invalid log level for {key}: {value!r}, keeping current")
            return False
        self._set(key, level)
        return True

    # === CONSOLE ===

    @property
    def console_enabled(self) -> bool:
        return self._flag("logging/console_enabled", True)

    @console_enabled.setter
    def console_enabled(self, value: bool) -> None:
        self._set("logging/console_enabled", bool(value))

    @property
    def console_level(self) -> str:
        """Lowest level the console handler prints."""
        return self._level("logging/console_level", "INFO")

    @console_level.setter
    def console_level(self, value: str) -> None:
        self._set_level("logging/console_level", value)

    @property
    def console_colors(self) -> bool:
        return self._flag("logging/console_colors", True)

    @console_colors.setter
    def console_colors(self, value: bool) -> None:
        self._set("logging/console_colors", bool(value))

    # === FILE ===

    @property
    def file_enabled(self) -> bool:
        return self._flag("logging/file_enabled", False)

    @file_enabled.setter
    def file_enabled(self, value: bool) -> None:
        self._set("logging/file_enabled", bool(value))

    @property
    def file_level(self) -> str:
        """Lowest level written to the CSV log file."""
        return self._level("logging/file_level", "DEBUG")

    @file_level.setter
    def file_level(self, value: str) -> None:
        self._set_level("logging/file_level", value)

    @property
    def log_file(self) -> Path:
        """CSV log file; relative paths are taken from the working directory."""
        return Path(str(self.settings.value("logging/file_path", DEFAULT_LOG_FILE)))

    @log_file.setter
    def log_file(self, value: Union[str, Path, None]) -> None:
        if value is None:
            self.settings.remove("logging/file_path")
            self.settings.sync()
        else:
            self._set("logging/file_path", str(value))

    # === LOGGER LEVELS ===

    @property
    def io_log_level(self) -> str:
        """Level of the background load/save workers' logger."""
        return self.logger_levels().get(IO_LOGGER, "INFO")

    @io_log_level.setter
    def io_log_level(self, value: str) -> None:
        self.set_logger_level(IO_LOGGER, value)

    def logger_levels(self) -> Dict[str, str]:
        """Configured logger levels by logger name; invalid entries are skipped."""
        self.settings.beginGroup(LEVELS_GROUP)
        try:
            raw = {name: self.settings.value(name) for name in self.settings.childKeys()}
        finally:
            self.settings.endGroup()

        levels: Dict[str, str] = {}
        for name, value in raw.items():
            level = normalize_level(value)
            if level is not None:
                levels[name] = level
        return levels

    def set_logger_level(self, name: str, level: Optional[str]) -> None:
        """Set the level of one logger; None goes back to inheriting it."""
        key = f"{LEVELS_GROUP}/{name}"
        if level is None:
            self.settings.remove(key)
            self.settings.sync()
            return
        self._set_level(key, level)
