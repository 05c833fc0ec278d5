"""
File dialog boundary.

The persistence layer never shows UI. It receives the outcome of a native
file dialog as a `PickResult`: the chosen path(s), or a cancellation. A
cancelled pick is not an error and leads to no operation at all.

`QtFilePicker` is the production implementation on top of `QFileDialog`;
tests and scripts can pass `PickResult` values directly. With settings
attached, dialogs open in the last directory used and remember the new one.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Protocol

from PySide6.QtWidgets import QFileDialog, QWidget

if TYPE_CHECKING:
    from ..settings import AppSettings

MAP_FILTER = "Hex Maps (*.hexmap.json);;All Files (*)"
TILESET_FILTER = "Tilesets (*.tileset.json);;All Files (*)"


class PickerMode(Enum):
    """What the dialog is asked to select."""

    OPEN_ONE = "open_one"
    OPEN_MANY = "open_many"
    SAVE = "save"


@dataclass(frozen=True)
class PickResult:
    """Paths chosen in a file dialog; empty when cancelled."""

    paths: tuple[Path, ...] = ()

    @classmethod
    def cancelled(cls) -> "PickResult":
        return cls()

    @classmethod
    def of(cls, *paths: "str | Path") -> "PickResult":
        return cls(tuple(Path(p) for p in paths))

    @property
    def is_cancelled(self) -> bool:
        return not self.paths

    @property
    def path(self) -> Optional[Path]:
        """First chosen path, or None when cancelled."""
        return self.paths[0] if self.paths else None


class FilePicker(Protocol):
    """Anything able to ask the user for file paths."""

    def pick(
        self, mode: PickerMode, title: str, name_filter: str, directory: Optional[Path] = None
    ) -> PickResult:
        ...


class QtFilePicker:
    """File picker backed by the platform dialog through `QFileDialog`."""

    def __init__(
        self, parent: Optional[QWidget] = None, settings: Optional["AppSettings"] = None
    ):
        self.parent = parent
        self.settings = settings
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def pick(
        self, mode: PickerMode, title: str, name_filter: str, directory: Optional[Path] = None
    ) -> PickResult:
        start = str(directory or self._last_directory() or Path.cwd())

        if mode is PickerMode.OPEN_ONE:
            file_path, _ = QFileDialog.getOpenFileName(self.parent, title, start, name_filter)
            paths = [file_path] if file_path else []
        elif mode is PickerMode.OPEN_MANY:
            paths, _ = QFileDialog.getOpenFileNames(self.parent, title, start, name_filter)
        else:
            file_path, _ = QFileDialog.getSaveFileName(self.parent, title, start, name_filter)
            paths = [file_path] if file_path else []

        if not paths:
            self.logger.debug(f"{title}: cancelled")
            return PickResult.cancelled()

        self.logger.info(f"{title}: selected {', '.join(paths)}")
        if self.settings is not None:
            self.settings.last_directory = Path(paths[0]).parent
        return PickResult.of(*paths)

    def _last_directory(self) -> Optional[Path]:
        if self.settings is None:
            return None
        last = self.settings.last_directory
        return last if last is not None and last.is_dir() else None
