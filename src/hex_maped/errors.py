"""
Error taxonomy for hex_maped persistence.

Every failure that can leave the persistence layer derives from
`PersistenceError` so callers can catch the whole family at the session
boundary and still branch on the concrete type.
"""

from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union

if TYPE_CHECKING:
    from .tilesets.transfer import ImportSummary


class PersistenceError(Exception):
    """Base class for all persistence failures."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        super().__init__(message)
        self.message = message
        self.path: Optional[Path] = Path(path) if path is not None else None

    def with_path(self, path: Union[str, Path]) -> "PersistenceError":
        """Attach the offending file path (if not already known) and return self."""
        if self.path is None:
            self.path = Path(path)
        return self

    def __str__(self) -> str:
        if self.path is not None:
            return f"{self.path}: {self.message}"
        return self.message


class FileIOError(PersistenceError):
    """File could not be read or written."""


# =============================================================================
# Decode errors
# =============================================================================

class DecodeError(PersistenceError):
    """Bytes could not be turned into a recognized document."""


class MalformedError(DecodeError):
    """Payload is not the declared textual format at all."""


class UnknownVersionError(DecodeError):
    """A version tag is present but is not an integer."""

    def __init__(self, value: object, path: Optional[Union[str, Path]] = None):
        super().__init__(f"unrecognized version tag: {value!r}", path)
        self.value = value


class FieldMismatchError(DecodeError):
    """Recognized version, but a required field is missing or wrong-shaped."""

    def __init__(
        self, field: str, message: str, path: Optional[Union[str, Path]] = None
    ):
        super().__init__(f"field '{field}': {message}", path)
        self.field = field


# =============================================================================
# Version compatibility
# =============================================================================

class IncompatibilityError(PersistenceError):
    """File is well formed but cannot be read by this version of the tool."""


class UnsupportedVersionError(IncompatibilityError):
    """Format version has no registered decode or upgrade path."""

    def __init__(
        self,
        kind: str,
        version: int,
        supported: tuple[int, ...] = (),
        path: Optional[Union[str, Path]] = None,
    ):
        if supported:
            span = f"{min(supported)}-{max(supported)}"
            message = f"{kind} file version {version} is not supported (supported: {span})"
        else:
            message = f"{kind} file version {version} is not supported"
        super().__init__(message, path)
        self.kind = kind
        self.version = version
        self.supported = supported


# =============================================================================
# Editor model / import
# =============================================================================

class AdapterError(PersistenceError):
    """Format model cannot be materialized into an editor session at all."""


class ImportConflictError(PersistenceError):
    """Tileset import rejected because of tile id collisions."""

    def __init__(
        self, summary: "ImportSummary", path: Optional[Union[str, Path]] = None
    ):
        ids = ", ".join(summary.rejected)
        super().__init__(f"tile id collision(s): {ids}", path)
        self.summary = summary
