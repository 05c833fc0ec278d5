"""
Background I/O task runner.

File reads, decoding, encoding and writes run on a `ThreadPoolExecutor`.
Work is described by small frozen operation objects (`LoadMap`, `SaveMap`,
`LoadTileset`, `SaveTileset`) that carry only format model values, never a
live editor session.

Submitting an operation returns a `TaskHandle` the interactive loop polls
without blocking. Operations that target the same file are queued and run
one after another in submission order; operations on different files run in
parallel. `TaskRunner.drain()` hands back finished handles in submission
order, each exactly once.

An operation that touches a second file returns a `FollowUp` instead of a
value: the runner moves the same handle onto the second file's queue, behind
whatever was already submitted there, and completes it only once the
follow-up step has finished. `LoadMap` works this way, so a map load issued
after a tileset save always reads the saved tileset.

Abandoning a handle means nobody is interested in its outcome any more. An
abandoned operation that has not started is skipped; one that is already
running finishes normally (a write is never interrupted halfway) and its
result is discarded.
"""

import itertools
import logging
import threading
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional, Protocol, Union

from ..errors import PersistenceError
from ..formats.codec import decode_map, decode_tileset, encode
from ..formats.models import FormatModel, Map, Tileset
from ..formats.versions import VersionResolver, default_resolver
from ..tilesets.assets import AssetReport, check_assets
from .storage import read_bytes, write_atomic


# =============================================================================
# Results of operations
# =============================================================================

@dataclass(frozen=True)
class LoadedMap:
    """A map and the tileset it references, both at the current schema."""

    map: Map
    tileset: Tileset
    map_path: Path
    tileset_path: Path


@dataclass(frozen=True)
class LoadedTileset:
    """A tileset read from disk plus the optional asset check report."""

    tileset: Tileset
    path: Path
    assets: Optional[AssetReport] = None


# =============================================================================
# Synchronous building blocks
# =============================================================================

def _decode_file(path: Path, decoder: Callable[..., Any], resolver: VersionResolver) -> Any:
    data = read_bytes(path)
    try:
        return decoder(data, resolver)
    except PersistenceError as e:
        raise e.with_path(path)


def load_tileset(path: Union[str, Path], resolver: VersionResolver = default_resolver) -> Tileset:
    """Read and decode a tileset file, upgrading it to the current schema."""
    return _decode_file(Path(path), decode_tileset, resolver)


def tileset_path_of(map_path: Path, map_model: Map) -> Path:
    """Absolute path of the tileset a map refers to."""
    return (map_path.parent / map_model.tileset).resolve()


def load_map(path: Union[str, Path], resolver: VersionResolver = default_resolver) -> LoadedMap:
    """Read a map file and the tileset file it references.

    The tileset reference is resolved relative to the map's directory. A
    missing tileset fails the whole load with `FileIOError`.
    """
    map_path = Path(path)
    map_model: Map = _decode_file(map_path, decode_map, resolver)
    tileset_path = tileset_path_of(map_path, map_model)
    tileset = load_tileset(tileset_path, resolver)
    return LoadedMap(map=map_model, tileset=tileset, map_path=map_path, tileset_path=tileset_path)


def save_model(path: Union[str, Path], model: FormatModel) -> Path:
    """Encode a format model and write it atomically. Returns the path written."""
    path = Path(path)
    write_atomic(path, encode(model))
    return path


# =============================================================================
# Operations
# =============================================================================

class Operation(Protocol):
    """Unit of background work targeting one file."""

    path: Path

    def run(self) -> Any:
        ...


@dataclass(frozen=True)
class FollowUp:
    """Second step of an operation, queued on its own target file.

    `finish` turns the follow-up's value into the handle's final value.
    """

    operation: Operation
    finish: Callable[[Any], Any]


@dataclass(frozen=True)
class LoadMap:
    path: Path
    resolver: VersionResolver = field(default=default_resolver, compare=False, repr=False)

    def run(self) -> FollowUp:
        map_path = Path(self.path)
        map_model: Map = _decode_file(map_path, decode_map, self.resolver)
        tileset_path = tileset_path_of(map_path, map_model)

        def finish(loaded: LoadedTileset) -> LoadedMap:
            return LoadedMap(
                map=map_model, tileset=loaded.tileset, map_path=map_path, tileset_path=tileset_path
            )

        # The tileset is read on its own queue, after any pending write to it
        return FollowUp(LoadTileset(tileset_path, resolver=self.resolver), finish)


@dataclass(frozen=True)
class LoadTileset:
    path: Path
    verify_assets: bool = False
    resolver: VersionResolver = field(default=default_resolver, compare=False, repr=False)

    def run(self) -> LoadedTileset:
        path = Path(self.path)
        tileset = load_tileset(path, self.resolver)
        report = check_assets(tileset, path.parent) if self.verify_assets else None
        return LoadedTileset(tileset=tileset, path=path, assets=report)


@dataclass(frozen=True)
class SaveMap:
    path: Path
    map: Map

    def run(self) -> Path:
        return save_model(self.path, self.map)


@dataclass(frozen=True)
class SaveTileset:
    path: Path
    tileset: Tileset

    def run(self) -> Path:
        return save_model(self.path, self.tileset)


# =============================================================================
# Handles
# =============================================================================

@dataclass(frozen=True)
class TaskResult:
    """Outcome of one operation: a value or the error it raised."""

    value: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        """Return the value or raise the captured error."""
        if self.error is not None:
            raise self.error
        return self.value


class TaskHandle:
    """Pollable, single-completion handle for a submitted operation."""

    def __init__(self, operation: Operation, seq: int):
        self.operation = operation
        self.seq = seq
        self._result: Optional[TaskResult] = None
        self._abandoned = False
        self._finished = threading.Event()
        # Step that runs next, and finishers collected from earlier steps
        self._step: Operation = operation
        self._finishers: list[Callable[[Any], Any]] = []

    def __repr__(self) -> str:
        state = "done" if self.done else "pending"
        if self._abandoned:
            state += ", abandoned"
        return f"<TaskHandle #{self.seq} {type(self.operation).__name__} {state}>"

    @property
    def path(self) -> Path:
        return Path(self.operation.path)

    @property
    def done(self) -> bool:
        return self._finished.is_set()

    @property
    def abandoned(self) -> bool:
        return self._abandoned

    def abandon(self) -> None:
        """Stop caring about the outcome. Never interrupts a running write."""
        self._abandoned = True

    def poll(self) -> Optional[TaskResult]:
        """Return the result if the operation has finished, else None."""
        return self._result if self._finished.is_set() else None

    def wait(self, timeout: Optional[float] = None) -> Optional[TaskResult]:
        """Block until finished. For scripts and tests, never the interactive loop."""
        self._finished.wait(timeout)
        return self.poll()

    def _complete(self, result: TaskResult) -> None:
        self._result = result
        self._finished.set()


# =============================================================================
# Runner
# =============================================================================

class TaskRunner:
    """Runs operations on a thread pool with per-file FIFO ordering."""

    def __init__(self, max_workers: int = 2):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="hex_maped-io"
        )
        self._cond = threading.Condition()
        self._seq = itertools.count()
        # Target path -> operations waiting for the one currently running
        self._queues: dict[Path, deque[TaskHandle]] = {}
        self._completed: list[TaskHandle] = []
        self._closed = False
        self._drain_on_close = True

    @staticmethod
    def _target(operation: Operation) -> Path:
        return Path(operation.path).resolve()

    @property
    def pending(self) -> int:
        """Number of operations submitted but not yet finished."""
        with self._cond:
            return sum(len(queue) for queue in self._queues.values())

    def submit(self, operation: Operation) -> TaskHandle:
        """Queue an operation. Returns immediately.

        Raises:
            RuntimeError: If the runner has been shut down
        """
        with self._cond:
            if self._closed:
                raise RuntimeError("TaskRunner is shut down")
            handle = TaskHandle(operation, next(self._seq))
            target = self._target(operation)
            queue = self._queues.setdefault(target, deque())
            queue.append(handle)
            if len(queue) == 1:
                self._executor.submit(self._run, target, handle)
            else:
                self.logger.debug(
                    f"{handle!r} queued behind {len(queue) - 1} operation(s) on {target}"
                )
        return handle

    def _run(self, target: Path, handle: TaskHandle) -> None:
        if handle.abandoned:
            self.logger.debug(f"{handle!r} skipped before start")
            result = TaskResult(error=PersistenceError("operation abandoned", target))
        else:
            result = self._execute(handle)

        self._finish(target, handle, result)

    def _execute(self, handle: TaskHandle) -> TaskResult:
        step = handle._step
        try:
            value = step.run()
            if not isinstance(value, FollowUp):
                while handle._finishers:
                    value = handle._finishers.pop()(value)
            return TaskResult(value=value)
        except PersistenceError as e:
            self.logger.warning(f"{type(step).__name__} failed: {e}")
            return TaskResult(error=e)
        except Exception as e:
            self.logger.exception(f"Unexpected error in {type(step).__name__}")
            return TaskResult(error=e)

    def _finish(self, target: Path, handle: TaskHandle, result: TaskResult) -> None:
        with self._cond:
            queue = self._queues[target]
            queue.popleft()

            if isinstance(result.value, FollowUp):
                self._chain(target, handle, result.value)
            else:
                handle._complete(result)
                if not handle.abandoned:
                    self._completed.append(handle)

            if queue:
                if self._closed and not self._drain_on_close:
                    self._cancel_queue(target, queue)
                else:
                    self._executor.submit(self._run, target, queue[0])
            else:
                del self._queues[target]
            self._cond.notify_all()

    def _chain(self, target: Path, handle: TaskHandle, follow_up: FollowUp) -> None:
        """Move a handle onto the queue of its follow-up step. Called with the lock held."""
        handle._step = follow_up.operation
        handle._finishers.append(follow_up.finish)
        if self._closed and not self._drain_on_close:
            handle._complete(
                TaskResult(error=PersistenceError("runner shut down before operation started", target))
            )
            return

        next_target = self._target(follow_up.operation)
        queue = self._queues.setdefault(next_target, deque())
        queue.append(handle)
        # The current target's queue is advanced by the caller
        if len(queue) == 1 and next_target != target:
            self._executor.submit(self._run, next_target, handle)
        else:
            self.logger.debug(f"{handle!r} follow-up queued on {next_target}")

    def _cancel_queue(self, target: Path, queue: deque[TaskHandle]) -> None:
        while queue:
            pending = queue.popleft()
            pending._complete(
                TaskResult(error=PersistenceError("runner shut down before operation started", target))
            )
        del self._queues[target]

    def drain(self) -> list[TaskHandle]:
        """Return finished, non-abandoned handles not delivered yet, oldest first."""
        with self._cond:
            ready = [handle for handle in self._completed if not handle.abandoned]
            self._completed.clear()
        ready.sort(key=lambda handle: handle.seq)
        return ready

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until every submitted operation has finished."""
        with self._cond:
            return self._cond.wait_for(lambda: not self._queues, timeout)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work.

        With `wait`, every queued operation still runs before returning.
        Without it, operations queued behind a running one are cancelled.
        """
        with self._cond:
            self._closed = True
            self._drain_on_close = wait
            if wait:
                self._cond.wait_for(lambda: not self._queues)
        self._executor.shutdown(wait=wait)
