"""Manifest codec - TOML serialization of snapshots.

The manifest has one [meta] table and one table per present section.
Records inside a section are arrays of tables. Within a section every
empty field (None, "", 0, False, []) is omitted, so a section's presence
is signalled only by its table header.
"""

import dataclasses
import logging
import tomllib
import types
import typing
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import tomli_w

from .errors import ParseError
from .models import Meta
from .sections import SECTION_TABLE, SECTIONS_BY_KEY
from .snapshot import Snapshot

logger = logging.getLogger("machinist.core.manifest")

META_KEY = "meta"


@dataclass
class ValidationResult:
    """Outcome of validating manifest text.

    Attributes:
        valid: Whether the manifest decoded successfully
        sections: Present section keys, in table order
        error: Parse error message when invalid
    """

    valid: bool
    sections: list[str] = field(default_factory=list)
    error: str | None = None


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def _is_empty(value: Any) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, (str, list)) and not value:
        return True
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value == 0:
        return True
    return False


def _encode_value(value: Any) -> Any:
    if dataclasses.is_dataclass(value):
        return _encode_record(value)
    if isinstance(value, list):
        return [_encode_value(item) for item in value]
    return value


def _encode_record(record: Any) -> dict[str, Any]:
    """Encode a dataclass, omitting empty fields."""
    data: dict[str, Any] = {}
    for f in dataclasses.fields(record):
        value = getattr(record, f.name)
        if _is_empty(value):
            continue
        data[f.name] = _encode_value(value)
    return data


def snapshot_to_dict(snapshot: Snapshot) -> dict[str, Any]:
    """Convert a snapshot to the plain dictionary written as TOML.

    Meta is written in full; absent sections produce no key at all.
    """
    data: dict[str, Any] = {META_KEY: dataclasses.asdict(snapshot.meta)}
    for spec in SECTION_TABLE:
        section = snapshot.sections.get(spec.key)
        if section is not None:
            data[spec.key] = _encode_record(section)
    return data


def marshal_manifest(snapshot: Snapshot) -> str:
    """Serialize a snapshot to TOML text."""
    return tomli_w.dumps(snapshot_to_dict(snapshot))


def marshal_manifest_bytes(snapshot: Snapshot) -> bytes:
    """Serialize a snapshot to UTF-8 encoded TOML."""
    return marshal_manifest(snapshot).encode("utf-8")


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def _type_name(value: Any) -> str:
    return type(value).__name__


def _decode_value(tp: Any, value: Any, where: str) -> Any:
    origin = typing.get_origin(tp)

    if origin in (types.UnionType, typing.Union):
        inner = [arg for arg in typing.get_args(tp) if arg is not type(None)]
        return _decode_value(inner[0], value, where)

    if origin is list:
        if not isinstance(value, list):
            raise ParseError(f"{where}: expected array, got {_type_name(value)}")
        (item_type,) = typing.get_args(tp)
        return [_decode_value(item_type, item, f"{where}[{i}]") for i, item in enumerate(value)]

    if dataclasses.is_dataclass(tp):
        return _decode_record(tp, value, where)

    if tp is bool:
        if not isinstance(value, bool):
            raise ParseError(f"{where}: expected boolean, got {_type_name(value)}")
        return value

    if tp is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ParseError(f"{where}: expected integer, got {_type_name(value)}")
        return value

    if tp is float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ParseError(f"{where}: expected float, got {_type_name(value)}")
        return float(value)

    if tp is str:
        if not isinstance(value, str):
            raise ParseError(f"{where}: expected string, got {_type_name(value)}")
        return value

    if tp is datetime:
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                return datetime.fromisoformat(value)
            except ValueError as e:
                raise ParseError(f"{where}: invalid timestamp {value!r}") from e
        raise ParseError(f"{where}: expected datetime, got {_type_name(value)}")

    raise ParseError(f"{where}: unsupported field type {tp!r}")


def _decode_record(cls: type, data: Any, where: str) -> Any:
    """Build a dataclass instance from a decoded TOML table."""
    if not isinstance(data, dict):
        raise ParseError(f"{where}: expected table, got {_type_name(data)}")

    hints = typing.get_type_hints(cls)
    kwargs: dict[str, Any] = {}
    known = set()
    for f in dataclasses.fields(cls):
        known.add(f.name)
        if f.name in data:
            kwargs[f.name] = _decode_value(hints[f.name], data[f.name], f"{where}.{f.name}")

    unknown = set(data) - known
    if unknown:
        logger.debug(f"Ignoring unknown keys in {where}: {', '.join(sorted(unknown))}")

    return cls(**kwargs)


def snapshot_from_dict(data: dict[str, Any]) -> Snapshot:
    """Build a snapshot from a decoded manifest dictionary.

    Raises:
        ParseError: If the structure does not match the manifest schema.
    """
    meta = Meta()
    if META_KEY in data:
        meta = _decode_record(Meta, data[META_KEY], META_KEY)

    snapshot = Snapshot(meta=meta)
    for key, value in data.items():
        if key == META_KEY:
            continue
        spec = SECTIONS_BY_KEY.get(key)
        if spec is None:
            logger.debug(f"Ignoring unknown manifest key: {key}")
            continue
        snapshot.sections[key] = _decode_record(spec.section_type, value, key)

    return snapshot


def unmarshal_manifest(data: str | bytes) -> Snapshot:
    """Deserialize TOML text into a snapshot.

    Sections that are not in the input stay absent.

    Raises:
        ParseError: If the input is not valid TOML or does not match
            the manifest schema.
    """
    if isinstance(data, bytes):
        try:
            data = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(f"manifest is not valid UTF-8: {e}") from e

    try:
        decoded = tomllib.loads(data)
    except tomllib.TOMLDecodeError as e:
        raise ParseError(f"invalid TOML: {e}") from e

    return snapshot_from_dict(decoded)


def write_manifest(snapshot: Snapshot, path: Path | str) -> None:
    """Write a snapshot as TOML to path.

    Raises:
        OSError: If the file cannot be written.
    """
    path = Path(path)
    path.write_bytes(marshal_manifest_bytes(snapshot))
    logger.info(f"Wrote manifest with {snapshot.section_count()} sections to {path}")


def read_manifest(path: Path | str) -> Snapshot:
    """Read a TOML manifest file.

    Raises:
        OSError: If the file cannot be read.
        ParseError: If the content is not a valid manifest.
    """
    path = Path(path)
    return unmarshal_manifest(path.read_bytes())


def validate_manifest(data: str | bytes) -> ValidationResult:
    """Check whether manifest text decodes and list its sections."""
    try:
        snapshot = unmarshal_manifest(data)
    except ParseError as e:
        return ValidationResult(valid=False, error=str(e))
    return ValidationResult(valid=True, sections=snapshot.populated_keys())
