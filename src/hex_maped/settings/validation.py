"""
Settings validation system for hex_maped.
"""

import logging
from pathlib import Path
from typing import List, TYPE_CHECKING

from .logging import LEVELS_GROUP, normalize_level
from .persistence import CONFLICT_POLICIES, DANGLING_POLICIES, MAX_IO_WORKERS, MIN_IO_WORKERS
from .types import ValidationResult

if TYPE_CHECKING:
    from .core import AppSettings

logger = logging.getLogger(__name__)


class SettingsValidator:
    """Validates configuration settings."""

    def __init__(self, settings: "AppSettings"):
        self.settings = settings

    def validate(self) -> ValidationResult:
        """Validate current configuration."""
        errors: List[str] = []
        warnings: List[str] = []
        raw = self.settings.settings

        # Raw values: the typed accessors already fall back to defaults
        dangling = str(raw.value("persistence/dangling_policy", "sentinel")).lower()
        if dangling not in DANGLING_POLICIES:
            errors.append(f"Invalid dangling policy: {dangling}")

        conflict = str(raw.value("persistence/conflict_policy", "rename")).lower()
        if conflict not in CONFLICT_POLICIES:
            errors.append(f"Invalid conflict policy: {conflict}")

        workers = raw.value("persistence/io_workers", 2)
        try:
            if not MIN_IO_WORKERS <= int(str(workers)) <= MAX_IO_WORKERS:
                warnings.append(
                    f"I/O workers {workers} out of range {MIN_IO_WORKERS}-{MAX_IO_WORKERS}, clamped"
                )
        except ValueError:
            errors.append(f"Invalid I/O worker count: {workers}")

        for key in ("logging/console_level", "logging/file_level"):
            if raw.contains(key) and normalize_level(raw.value(key)) is None:
                warnings.append(f"Invalid log level for {key}: {raw.value(key)}, using default")
        raw.beginGroup(LEVELS_GROUP)
        try:
            bad_levels = [
                name for name in raw.childKeys() if normalize_level(raw.value(name)) is None
            ]
        finally:
            raw.endGroup()
        for name in bad_levels:
            warnings.append(f"Invalid log level for logger {name}, ignored")

        last_directory = self.settings.last_directory
        if last_directory and not last_directory.exists():
            warnings.append(f"Last directory no longer exists: {last_directory}")

        # Validate recent files
        recent_files = self.settings.recent_files
        valid_recent: List[str] = []
        for file_path in recent_files:
            if Path(file_path).exists():
                valid_recent.append(file_path)
            else:
                warnings.append(f"Recent file no longer exists: {file_path}")

        # Clean up invalid recent files
        if len(valid_recent) != len(recent_files):
            self.settings.paths.set_recent_files(valid_recent)

        if errors:
            logger.warning(f"Configuration has {len(errors)} error(s)")

        return ValidationResult(
            is_valid=len(errors) == 0, errors=errors, warnings=warnings
        )
