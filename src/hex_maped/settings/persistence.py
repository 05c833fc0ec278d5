"""
Persistence-related settings for hex_maped.
"""

import logging
from typing import TYPE_CHECKING, cast

if TYPE_CHECKING:
    from PySide6.QtCore import QSettings

logger = logging.getLogger(__name__)

DANGLING_POLICIES = ("drop", "sentinel")
CONFLICT_POLICIES = ("reject", "rename", "overwrite")
MIN_IO_WORKERS = 1
MAX_IO_WORKERS = 16


class PersistenceSettings:
    """Manages load/save behaviour: reference policies and worker count."""

    def __init__(self, settings: "QSettings"):
        self.settings = settings

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

    def _get_int(self, key: str, default: int = 0) -> int:
        """Type-safe integer retrieval from settings."""
        value = self.settings.value(key, default)
        try:
            if value is None:
                return default
            return int(cast(str | int, value))
        except (ValueError, TypeError):
            return default

    @property
    def dangling_policy(self) -> str:
        """What happens to placements whose tile is missing from the tileset."""
        value = self._get_str("persistence/dangling_policy", "sentinel").lower()
        return value if value in DANGLING_POLICIES else "sentinel"

    @dangling_policy.setter
    def dangling_policy(self, value: str) -> None:
        if value.lower() in DANGLING_POLICIES:
            self.settings.setValue("persistence/dangling_policy", value.lower())
            self.settings.sync()
        else:
            logger.warning(
                f"Invalid dangling policy: {value}, keeping current: {self.dangling_policy}"
            )

    @property
    def conflict_policy(self) -> str:
        """How tileset imports resolve tile id collisions."""
        value = self._get_str("persistence/conflict_policy", "rename").lower()
        return value if value in CONFLICT_POLICIES else "rename"

    @conflict_policy.setter
    def conflict_policy(self, value: str) -> None:
        if value.lower() in CONFLICT_POLICIES:
            self.settings.setValue("persistence/conflict_policy", value.lower())
            self.settings.sync()
        else:
            logger.warning(
                f"Invalid conflict policy: {value}, keeping current: {self.conflict_policy}"
            )

    @property
    def io_workers(self) -> int:
        """Number of background I/O worker threads (1-16)."""
        value = self._get_int("persistence/io_workers", 2)
        return max(MIN_IO_WORKERS, min(MAX_IO_WORKERS, value))

    @io_workers.setter
    def io_workers(self, value: int) -> None:
        validated = max(MIN_IO_WORKERS, min(MAX_IO_WORKERS, value))
        self.settings.setValue("persistence/io_workers", validated)
        self.settings.sync()

    @property
    def check_assets(self) -> bool:
        """Whether imported tilesets have their asset files checked."""
        return self._get_bool("persistence/check_assets", True)

    @check_assets.setter
    def check_assets(self, value: bool) -> None:
        self.settings.setValue("persistence/check_assets", value)
        self.settings.sync()
