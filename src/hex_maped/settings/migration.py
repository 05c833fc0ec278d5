"""
Settings migration system for hex_maped.
"""

import logging
from typing import TYPE_CHECKING

from .types import ConfigVersion

if TYPE_CHECKING:
    from PySide6.QtCore import QSettings

logger = logging.getLogger(__name__)

# Values used by 1.0 for the unknown tile option
_LEGACY_UNKNOWN_TILES = {
    "remove": "drop",
    "drop": "drop",
    "placeholder": "sentinel",
    "keep": "sentinel",
}


class SettingsMigrator:
    """Handles configuration migration between versions."""

    def __init__(self, settings: "QSettings"):
        self.settings = settings

    def ensure_version(self) -> None:
        """Ensure configuration version is set and handle migrations."""
        current_version = str(self.settings.value("app/version", ""))

        if not current_version:
            # First run - set current version
            self.settings.setValue("app/version", ConfigVersion.CURRENT.value)
            self.settings.setValue("app/first_run", True)
            self.settings.sync()
            logger.info("First run detected, initializing configuration")
        elif current_version != ConfigVersion.CURRENT.value:
            self._migrate_config(current_version, ConfigVersion.CURRENT.value)

    def _migrate_config(self, from_version: str, to_version: str) -> None:
        """Migrate configuration from old version to new version."""
        logger.info(f"Migrating configuration from {from_version} to {to_version}")

        if from_version == ConfigVersion.V1_0.value and to_version == ConfigVersion.V1_1.value:
            self._migrate_1_0_to_1_1()
        else:
            logger.warning(f"No migration path from {from_version}, keeping stored values")

        self.settings.setValue("app/version", to_version)
        self.settings.setValue("app/migrated_from", from_version)
        self.settings.sync()
        logger.info(f"Migration from {from_version} to {to_version} completed")

    def _migrate_1_0_to_1_1(self) -> None:
        """Migrate from version 1.0 to 1.1 - unknown tile option moves to persistence."""
        logger.debug("Performing migration from 1.0 to 1.1")

        old_value = self.settings.value("editor/unknown_tiles", "")
        if old_value:
            new_value = _LEGACY_UNKNOWN_TILES.get(str(old_value).lower())
            if new_value is None:
                logger.warning(f"Unrecognized editor/unknown_tiles value '{old_value}', using default")
            else:
                self.settings.setValue("persistence/dangling_policy", new_value)
                logger.info(f"Migrated editor/unknown_tiles '{old_value}' -> dangling_policy '{new_value}'")
            self.settings.remove("editor/unknown_tiles")
