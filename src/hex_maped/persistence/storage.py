"""
File access helpers used by background tasks.

Reads wrap `OSError` into `FileIOError`. Writes are atomic: the payload goes
to a temporary file in the target's directory, is flushed to disk, then
replaces the target in one `os.replace()` call, so a failed write never
leaves a truncated file behind.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Union

from ..errors import FileIOError

logger = logging.getLogger(__name__)


def read_bytes(path: Union[str, Path]) -> bytes:
    """Read a whole file.

    Raises:
        FileIOError: If the file cannot be read
    """
    path = Path(path)
    try:
        return path.read_bytes()
    except OSError as e:
        reason = e.strerror or str(e)
        raise FileIOError(f"cannot read file: {reason}", path) from e


def write_atomic(path: Union[str, Path], data: bytes) -> None:
    """Replace the contents of `path` with `data` atomically.

    Raises:
        FileIOError: If the file cannot be written; the previous contents
            (if any) are left untouched
    """
    path = Path(path)
    directory = path.parent if str(path.parent) else Path(".")

    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=directory)
    except OSError as e:
        raise FileIOError(f"cannot write file: {e.strerror or e}", path) from e

    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except OSError as e:
        try:
            os.unlink(tmp_name)
        except OSError:
            logger.debug(f"Temporary file {tmp_name} already gone")
        raise FileIOError(f"cannot write file: {e.strerror or e}", path) from e

    logger.debug(f"Wrote {len(data)} bytes to {path}")
