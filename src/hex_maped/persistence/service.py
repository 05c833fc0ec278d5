"""
Persistence facade for the interactive editor.

`PersistenceService` is the only entry point the editor needs: it starts
loads, saves, imports and exports as background tasks and, once per frame,
`update()` applies whatever finished. All session mutation happens inside
`update()` on the calling (interactive) thread; worker threads only ever
see format model values.

Completion is reported twice: as the list of `PersistenceEvent` returned by
`update()` and through the Qt signals of `PersistenceSignals`, emitted from
`update()` on the interactive thread.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Union

from PySide6.QtCore import QObject, Signal

from ..editor.adapter import (
    DanglingPolicy,
    from_format,
    map_to_format,
    relative_ref,
    tileset_to_format,
)
from ..editor.session import EditorSession
from ..errors import PersistenceError
from ..tilesets.transfer import ConflictPolicy, ImportSummary, TilesetTransfer, merge_tileset
from .picker import PickResult
from .tasks import LoadedMap, LoadedTileset, LoadMap, SaveMap, SaveTileset, TaskHandle, TaskRunner

if TYPE_CHECKING:
    from ..settings import AppSettings

MAP_SUFFIX = ".hexmap.json"
TILESET_SUFFIX = ".tileset.json"


class EventKind(Enum):
    LOADED = "loaded"
    SAVED = "saved"
    TILESET_SAVED = "tileset_saved"
    IMPORTED = "imported"
    EXPORTED = "exported"
    FAILED = "failed"


@dataclass
class PersistenceEvent:
    """Something the editor should know about after an `update()`."""

    kind: EventKind
    path: Path
    error: Optional[BaseException] = None
    warnings: list[str] = field(default_factory=lambda: [])
    summary: Optional[ImportSummary] = None

    @property
    def ok(self) -> bool:
        return self.kind is not EventKind.FAILED


class PersistenceSignals(QObject):
    """Qt signal hub for persistence events."""

    event_ready = Signal(object)
    session_replaced = Signal(object)
    failed = Signal(object)


class _Job(Enum):
    LOAD = "load"
    SAVE_MAP = "save_map"
    SAVE_TILESET = "save_tileset"
    IMPORT = "import"
    EXPORT = "export"


@dataclass
class _Pending:
    """What to do with a handle once it completes."""

    job: _Job
    session: Optional[EditorSession] = None
    revision: int = 0
    policy: Any = None
    handle: Optional[TaskHandle] = None


def tileset_path_for(map_path: Union[str, Path]) -> Path:
    """Default tileset file written next to a map that has none yet."""
    map_path = Path(map_path)
    name = map_path.name
    stem = name[: -len(MAP_SUFFIX)] if name.endswith(MAP_SUFFIX) else map_path.stem
    return map_path.with_name(f"{stem}{TILESET_SUFFIX}")


class PersistenceService:
    """Facade over the task runner, the adapter and tileset transfer."""

    def __init__(
        self,
        settings: Optional["AppSettings"] = None,
        runner: Optional[TaskRunner] = None,
    ):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.settings = settings

        workers = settings.io_workers if settings is not None else 2
        self.runner = runner if runner is not None else TaskRunner(max_workers=workers)
        self.transfer = TilesetTransfer(
            self.runner, verify_assets=settings.check_assets if settings is not None else False
        )
        self.signals = PersistenceSignals()

        self.session = EditorSession()
        self._pending: dict[int, _Pending] = {}
        self._current_load: Optional[TaskHandle] = None

    # === POLICIES ===

    @property
    def dangling_policy(self) -> DanglingPolicy:
        if self.settings is None:
            return DanglingPolicy.SENTINEL
        return DanglingPolicy(self.settings.dangling_policy)

    @property
    def conflict_policy(self) -> ConflictPolicy:
        if self.settings is None:
            return ConflictPolicy.RENAME
        return ConflictPolicy(self.settings.conflict_policy)

    @property
    def busy(self) -> bool:
        """True while any operation started here has not been applied yet."""
        return bool(self._pending)

    @property
    def unsaved_changes(self) -> bool:
        return self.session.unsaved_changes or self.session.catalog.unsaved_changes

    # === OPERATIONS ===

    def _track(self, handle: TaskHandle, pending: _Pending) -> TaskHandle:
        pending.handle = handle
        self._pending[handle.seq] = pending
        return handle

    def new_session(self) -> EditorSession:
        """Replace the session with an empty one, abandoning any load in flight."""
        self._abandon_load()
        self.session = EditorSession()
        self.signals.session_replaced.emit(self.session)
        return self.session

    def _abandon_load(self) -> None:
        if self._current_load is not None and not self._current_load.done:
            self.logger.info(f"Abandoning load of {self._current_load.path}")
        if self._current_load is not None:
            self._current_load.abandon()
            self._pending.pop(self._current_load.seq, None)
        self._current_load = None

    def load(self, path: Union[str, Path]) -> TaskHandle:
        """Start loading a map and its tileset. Supersedes any load in flight."""
        self._abandon_load()
        self.logger.info(f"Loading map {path}")
        handle = self.runner.submit(LoadMap(Path(path)))
        self._current_load = handle
        return self._track(handle, _Pending(_Job.LOAD))

    def save(self, path: Optional[Union[str, Path]] = None) -> TaskHandle:
        """Start saving the current map, plus its tileset if that changed.

        The map is snapshotted now; edits made while the write is running
        are not included and keep the session marked as unsaved.

        Raises:
            ValueError: If no path is given and the session was never saved
        """
        session = self.session
        target = Path(path) if path is not None else session.map_path
        if target is None:
            raise ValueError("Map has no file yet; a path is required")

        if session.tileset_path is None or session.catalog.unsaved_changes:
            self.save_tileset(session.tileset_path or tileset_path_for(target))

        tileset_path = session.tileset_path or tileset_path_for(target)
        session.tileset_ref = relative_ref(target, tileset_path)
        snapshot = map_to_format(session)

        self.logger.info(f"Saving map to {target}")
        handle = self.runner.submit(SaveMap(target, snapshot))
        return self._track(
            handle, _Pending(_Job.SAVE_MAP, session=session, revision=session.revision)
        )

    def save_tileset(self, path: Optional[Union[str, Path]] = None) -> TaskHandle:
        """Start writing the session catalog to its tileset file.

        Raises:
            ValueError: If no path is given and the session has no tileset file
        """
        session = self.session
        target = Path(path) if path is not None else session.tileset_path
        if target is None:
            raise ValueError("Tileset has no file yet; a path is required")

        # The map reference follows the tileset file from now on
        session.tileset_path = target.resolve()
        catalog = session.catalog
        self.logger.info(f"Saving tileset '{catalog.name}' to {target}")
        handle = self.runner.submit(SaveTileset(target, tileset_to_format(catalog)))
        return self._track(
            handle, _Pending(_Job.SAVE_TILESET, session=session, revision=catalog.revision)
        )

    def import_tileset(
        self,
        path: Union[str, Path],
        policy: Optional[Union[ConflictPolicy, str]] = None,
    ) -> TaskHandle:
        """Start importing a tileset file into the current catalog."""
        resolved = ConflictPolicy(policy) if policy is not None else self.conflict_policy
        handle = self.transfer.import_tileset(path)
        return self._track(
            handle, _Pending(_Job.IMPORT, session=self.session, policy=resolved)
        )

    def export_tileset(self, path: Union[str, Path]) -> TaskHandle:
        """Start exporting the current catalog as a standalone tileset file."""
        handle = self.transfer.export_tileset(self.session.catalog, path)
        return self._track(handle, _Pending(_Job.EXPORT))

    # === FILE DIALOG RESULTS ===

    def load_picked(self, result: PickResult) -> Optional[TaskHandle]:
        """`load()` the picked file; None when the dialog was cancelled."""
        if result.is_cancelled:
            return None
        return self.load(result.path)

    def save_picked(self, result: PickResult) -> Optional[TaskHandle]:
        if result.is_cancelled:
            return None
        return self.save(result.path)

    def import_picked(
        self, result: PickResult, policy: Optional[Union[ConflictPolicy, str]] = None
    ) -> list[TaskHandle]:
        """Import every picked file, in the order picked."""
        return [self.import_tileset(path, policy) for path in result.paths]

    def export_picked(self, result: PickResult) -> Optional[TaskHandle]:
        if result.is_cancelled:
            return None
        return self.export_tileset(result.path)

    # === COMPLETION ===

    def update(self) -> list[PersistenceEvent]:
        """Apply finished operations. Call once per frame on the interactive thread."""
        events: list[PersistenceEvent] = []

        # Handles abandoned by the caller are never delivered; forget them
        for seq, pending in list(self._pending.items()):
            if pending.handle is not None and pending.handle.abandoned:
                del self._pending[seq]

        for handle in self.runner.drain():
            pending = self._pending.pop(handle.seq, None)
            if pending is None:
                continue
            result = handle.poll()
            assert result is not None

            if result.error is not None:
                event = self._failed(handle, result.error)
            else:
                # One bad result must not cost the rest of this batch
                try:
                    event = self._apply(handle, pending, result.value)
                except PersistenceError as e:
                    event = self._failed(handle, e.with_path(handle.path))
                except Exception as e:
                    self.logger.exception(f"Applying {type(handle.operation).__name__} raised")
                    event = self._failed(handle, e)

            events.append(event)
            self.signals.event_ready.emit(event)
            if not event.ok:
                self.signals.failed.emit(event)
        return events

    def _failed(self, handle: TaskHandle, error: BaseException) -> PersistenceEvent:
        self.logger.error(f"{type(handle.operation).__name__} failed: {error}")
        if handle is self._current_load:
            self._current_load = None
        summary = getattr(error, "summary", None)
        return PersistenceEvent(EventKind.FAILED, handle.path, error=error, summary=summary)

    def _apply(self, handle: TaskHandle, pending: _Pending, value: Any) -> PersistenceEvent:
        if pending.job is _Job.LOAD:
            return self._apply_load(handle, value)
        if pending.job is _Job.SAVE_MAP:
            assert pending.session is not None
            pending.session.map_path = handle.path
            pending.session.mark_saved(pending.revision)
            self._remember(handle.path)
            self.logger.info(f"Saved map {handle.path}")
            return PersistenceEvent(EventKind.SAVED, handle.path)
        if pending.job is _Job.SAVE_TILESET:
            assert pending.session is not None
            pending.session.catalog.mark_saved(pending.revision)
            self.logger.info(f"Saved tileset {handle.path}")
            return PersistenceEvent(EventKind.TILESET_SAVED, handle.path)
        if pending.job is _Job.IMPORT:
            return self._apply_import(handle, pending, value)
        self.logger.info(f"Exported tileset {handle.path}")
        return PersistenceEvent(EventKind.EXPORTED, handle.path)

    def _apply_load(self, handle: TaskHandle, loaded: LoadedMap) -> PersistenceEvent:
        result = from_format(loaded.map, loaded.tileset, self.dangling_policy)
        session = result.session
        session.map_path = loaded.map_path
        session.tileset_path = loaded.tileset_path

        # Swap in one assignment so the editor never sees a half-built session
        self.session = session
        self._current_load = None
        self._remember(loaded.map_path)

        self.logger.info(
            f"Loaded map {loaded.map_path}: {len(session)} placements, "
            f"{len(session.catalog)} tiles, {len(result.warnings)} warning(s)"
        )
        self.signals.session_replaced.emit(session)
        return PersistenceEvent(
            EventKind.LOADED,
            loaded.map_path,
            warnings=[str(w) for w in result.warnings],
        )

    def _apply_import(
        self, handle: TaskHandle, pending: _Pending, loaded: LoadedTileset
    ) -> PersistenceEvent:
        if pending.session is not self.session:
            self.logger.info(f"Session replaced before import of {handle.path} finished; merging into current")

        summary = merge_tileset(
            self.session.catalog, loaded.tileset, pending.policy, source=str(handle.path)
        )
        rebound = self.session.resolve_unknown()
        warnings = loaded.assets.warnings() if loaded.assets is not None else []
        if rebound:
            self.logger.info(f"{rebound} unresolved placement(s) now bound to imported tiles")
        return PersistenceEvent(EventKind.IMPORTED, handle.path, warnings=warnings, summary=summary)

    def _remember(self, path: Path) -> None:
        if self.settings is not None:
            self.settings.add_recent_file(path)

    def shutdown(self, wait: bool = True) -> None:
        """Stop the task runner."""
        self.runner.shutdown(wait=wait)
