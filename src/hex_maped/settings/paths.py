"""
Path-related settings for hex_maped.
"""

from pathlib import Path
from typing import List, Optional, Union, TYPE_CHECKING, cast

if TYPE_CHECKING:
    from PySide6.QtCore import QSettings

MAX_RECENT_FILES = 10


class PathSettings:
    """Manages recent files and the last directory used in file dialogs."""

    def __init__(self, settings: "QSettings"):
        self.settings = settings

    def _get_str(self, key: str, default: str = "") -> str:
        """Type-safe string retrieval from settings."""
        value = self.settings.value(key, default)
        return str(value) if value is not None else default

    def _get_list(self, key: str, default: Optional[List[str]] = None) -> List[str]:
        """Type-safe list retrieval from settings."""
        if default is None:
            default = []
        value = self.settings.value(key, default)
        if isinstance(value, list):
            return [
                str(item) if item is not None else ""
                for item in cast(list[object], value)
            ]
        # INI storage hands back one-element lists as a plain string
        if isinstance(value, str) and value:
            return [value]
        return default

    @property
    def last_directory(self) -> Optional[Path]:
        """Directory the last file dialog was opened in."""
        path_str = self._get_str("paths/last_directory", "")
        return Path(path_str) if path_str else None

    @last_directory.setter
    def last_directory(self, value: Optional[Path]) -> None:
        self.settings.setValue("paths/last_directory", str(value) if value else "")
        self.settings.sync()

    @property
    def recent_files(self) -> List[str]:
        """Get list of recently opened files, most recent first."""
        return self._get_list("paths/recent_files", [])

    def add_recent_file(self, file_path: Union[str, Path]) -> None:
        """Add file to recent files list (max 10 items)."""
        recent = self.recent_files
        file_str = str(file_path)

        if file_str in recent:
            recent.remove(file_str)

        recent.insert(0, file_str)
        recent = recent[:MAX_RECENT_FILES]

        self.settings.setValue("paths/recent_files", recent)
        self.last_directory = Path(file_str).parent

    def set_recent_files(self, files: List[str]) -> None:
        """Replace the recent files list."""
        self.settings.setValue("paths/recent_files", list(files[:MAX_RECENT_FILES]))
        self.settings.sync()

    def clear_recent_files(self) -> None:
        """Clear recent files list."""
        self.settings.setValue("paths/recent_files", [])
        self.settings.sync()
