"""
Core settings management for hex_maped.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

from PySide6.QtCore import QSettings

from .types import ConfigVersion, ValidationResult
from .migration import SettingsMigrator
from .validation import SettingsValidator
from .paths import PathSettings
from .persistence import PersistenceSettings
from .logging import LoggingSettings

logger = logging.getLogger(__name__)


class AppSettings:
    """
    Configuration management using QSettings.

    Provides type-safe access to application settings with automatic
    cross-platform storage and validation.
    """

    def __init__(self, profile: str = "default", ini_path: Optional[Union[str, Path]] = None):
        """Initialize settings with organization, application name, and profile.

        Args:
            profile: Settings profile name (default: "default")
            ini_path: Store settings in this INI file instead of the
                platform location (portable installs, tests)
        """
        if ini_path is not None:
            self.settings = QSettings(str(ini_path), QSettings.Format.IniFormat)
        else:
            self.settings = QSettings("hex_maped", "hex_maped")
        self.profile = profile

        # Use profile as a group to create hierarchy: hex_maped/hex_maped/default/...
        self.settings.beginGroup(profile)

        # Initialize subsystems
        self._migrator = SettingsMigrator(self.settings)
        self._validator = SettingsValidator(self)
        self._paths = PathSettings(self.settings)
        self._persistence = PersistenceSettings(self.settings)
        self._logging = LoggingSettings(self.settings)

        # Ensure version and migrate if needed
        self._migrator.ensure_version()

        logger.debug(
            f"Settings initialized for profile '{profile}', stored at: {self.settings.fileName()}"
        )

    # === SUBSYSTEM ACCESS ===

    @property
    def paths(self) -> PathSettings:
        """Access path settings subsystem."""
        return self._paths

    @property
    def persistence(self) -> PersistenceSettings:
        """Access persistence settings subsystem."""
        return self._persistence

    @property
    def logging(self) -> LoggingSettings:
        """Access logging settings subsystem."""
        return self._logging

    # === VERSION AND FIRST RUN ===

    @property
    def is_first_run(self) -> bool:
        """Check if this is the first run of the application."""
        return self._get_bool("app/first_run", True)

    def set_first_run_complete(self) -> None:
        """Mark first run as complete."""
        self.settings.setValue("app/first_run", False)
        self.settings.sync()

    @property
    def version(self) -> str:
        """Get configuration version."""
        return self._get_str("app/version", ConfigVersion.CURRENT.value)

    # === HELPER METHODS ===

    def _get_str(self, key: str, default: str = "") -> str:
        """Type-safe string retrieval from settings."""
        value = self.settings.value(key, default)
        return str(value) if value is not None else default

    def _get_bool(self, key: str, default: bool = False) -> bool:
        """Type-safe boolean retrieval from settings."""
        value = self.settings.value(key, default)
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.lower() in ("true", "1", "yes")
        return bool(value) if value is not None else default

    # === PATH SETTINGS (DELEGATED) ===

    @property
    def recent_files(self) -> List[str]:
        """Get list of recently opened files."""
        return self._paths.recent_files

    def add_recent_file(self, file_path: Union[str, Path]) -> None:
        """Add file to recent files list (max 10 items)."""
        self._paths.add_recent_file(file_path)

    def clear_recent_files(self) -> None:
        """Clear recent files list."""
        self._paths.clear_recent_files()

    @property
    def last_directory(self) -> Optional[Path]:
        """Directory the last file dialog was opened in."""
        return self._paths.last_directory

    @last_directory.setter
    def last_directory(self, value: Optional[Path]) -> None:
        self._paths.last_directory = value

    # === PERSISTENCE SETTINGS (DELEGATED) ===

    @property
    def dangling_policy(self) -> str:
        """Get dangling reference policy ("drop" or "sentinel")."""
        return self._persistence.dangling_policy

    @dangling_policy.setter
    def dangling_policy(self, value: str) -> None:
        """Set dangling reference policy."""
        self._persistence.dangling_policy = value

    @property
    def conflict_policy(self) -> str:
        """Get import conflict policy ("reject", "rename" or "overwrite")."""
        return self._persistence.conflict_policy

    @conflict_policy.setter
    def conflict_policy(self, value: str) -> None:
        """Set import conflict policy."""
        self._persistence.conflict_policy = value

    @property
    def io_workers(self) -> int:
        """Get number of background I/O workers."""
        return self._persistence.io_workers

    @io_workers.setter
    def io_workers(self, value: int) -> None:
        """Set number of background I/O workers (clamped to 1-16)."""
        self._persistence.io_workers = value

    @property
    def check_assets(self) -> bool:
        """Check if imported tilesets have their assets checked."""
        return self._persistence.check_assets

    @check_assets.setter
    def check_assets(self, value: bool) -> None:
        """Set asset probing on import."""
        self._persistence.check_assets = value

    # === LOGGING SETTINGS (DELEGATED) ===

    @property
    def console_logging(self) -> bool:
        """Check if console logging is enabled."""
        return self._logging.console_enabled

    @console_logging.setter
    def console_logging(self, value: bool) -> None:
        self._logging.console_enabled = value

    @property
    def console_log_level(self) -> str:
        """Get console logging level."""
        return self._logging.console_level

    @console_log_level.setter
    def console_log_level(self, value: str) -> None:
        self._logging.console_level = value

    @property
    def file_logging(self) -> bool:
        """Check if the CSV log file is written."""
        return self._logging.file_enabled

    @file_logging.setter
    def file_logging(self, value: bool) -> None:
        self._logging.file_enabled = value

    @property
    def log_file(self) -> Path:
        """Get the CSV log file location."""
        return self._logging.log_file

    @log_file.setter
    def log_file(self, value: Union[str, Path, None]) -> None:
        self._logging.log_file = value

    @property
    def io_log_level(self) -> str:
        """Get the level of the background load/save workers' logger."""
        return self._logging.io_log_level

    @io_log_level.setter
    def io_log_level(self, value: str) -> None:
        self._logging.io_log_level = value

    # === VALIDATION ===

    def validate(self) -> ValidationResult:
        """Validate current configuration."""
        return self._validator.validate()

    # === UTILITY METHODS ===

    def get_settings_file_path(self) -> str:
        """Get the file path where settings are stored."""
        return self.settings.fileName()

    def sync(self) -> None:
        """Force synchronization of settings to storage."""
        self.settings.sync()
