"""
Byte codec for tileset and map documents.

Files are UTF-8 JSON written with orjson. Encoding is deterministic: records
build their field dicts in a fixed order (version first), attribute keys are
sorted and placements are kept sorted by coordinate, so the same model value
always produces the same bytes.

Decoding is staged. `decode()` only checks that the payload is a JSON object
and reads the version tag; the remaining fields stay untyped until the
version resolver picks the record class that matches that version.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Union, cast

import orjson

from ..errors import FieldMismatchError, MalformedError, UnknownVersionError
from .models import FormatModel, Map, Tileset
from .versions import FormatKind, VersionResolver, default_resolver

DUMP_OPTIONS = orjson.OPT_INDENT_2 | orjson.OPT_APPEND_NEWLINE


@dataclass(frozen=True)
class RawDocument:
    """Version tag plus the still-untyped remaining fields."""

    version: int
    fields: Mapping[str, Any]

    def guess_kind(self) -> FormatKind:
        """Best-effort kind detection from the top-level field names."""
        if "layers" in self.fields or "placements" in self.fields or "tileset" in self.fields:
            return FormatKind.MAP
        if "tiles" in self.fields:
            return FormatKind.TILESET
        raise FieldMismatchError("tiles", "document has neither 'tiles' nor 'layers'")


def encode(model: FormatModel) -> bytes:
    """Serialize a format model to deterministic JSON bytes."""
    return orjson.dumps(model.to_fields(), option=DUMP_OPTIONS)


def decode(data: Union[bytes, str]) -> RawDocument:
    """Parse bytes and read only the version tag.

    Raises:
        MalformedError: not JSON, or not a JSON object.
        FieldMismatchError: no `version` field.
        UnknownVersionError: `version` present but not an integer.

    Any integer tag is passed on, including zero and negative ones: whether
    it is readable is for the resolver to say, which refuses unregistered
    versions with `UnsupportedVersionError`.
    """
    try:
        parsed = orjson.loads(data)
    except orjson.JSONDecodeError as e:
        raise MalformedError(f"not a valid JSON document: {e}") from e

    if not isinstance(parsed, dict):
        raise MalformedError(
            f"top-level value must be a JSON object, got {type(parsed).__name__}"
        )

    document = cast(dict[str, Any], parsed)
    if "version" not in document:
        raise FieldMismatchError("version", "missing required field")

    version = document["version"]
    if isinstance(version, bool) or not isinstance(version, int):
        raise UnknownVersionError(version)

    fields = {key: value for key, value in document.items() if key != "version"}
    return RawDocument(version=version, fields=fields)


def decode_tileset(
    data: Union[bytes, str], resolver: VersionResolver = default_resolver
) -> Tileset:
    """Decode tileset bytes of any supported version to the current schema."""
    document = decode(data)
    return cast(Tileset, resolver.resolve(FormatKind.TILESET, document.version, document.fields))


def decode_map(data: Union[bytes, str], resolver: VersionResolver = default_resolver) -> Map:
    """Decode map bytes of any supported version to the current schema."""
    document = decode(data)
    return cast(Map, resolver.resolve(FormatKind.MAP, document.version, document.fields))


def decode_any(
    data: Union[bytes, str], resolver: VersionResolver = default_resolver
) -> Union[Tileset, Map]:
    """Decode a document whose kind is not known in advance."""
    document = decode(data)
    return resolver.resolve(document.guess_kind(), document.version, document.fields)
