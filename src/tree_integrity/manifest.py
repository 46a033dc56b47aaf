"""Integrity manifest creation, validation and persistence."""

import json
import os
import re
import stat
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from jsonschema import Draft7Validator
from pydantic import BaseModel, Field

from . import INTEGRITY_FILE, SCHEMA_VERSION
from .errors import (
    InvalidManifestNameError,
    SchemaValidationError,
    UnknownSchemaVersionError,
    UnsupportedPathError,
)

SCHEMAS_DIR = Path(__file__).parent / "schemas"

_VERSION_PATTERN = re.compile(r"[0-9]+(\.[0-9]+)*")


class Manifest(BaseModel):
    """Schema version plus the hash tree keyed by the hashed path's basename."""

    version: str = SCHEMA_VERSION
    hashes: dict[str, Any] = Field(default_factory=dict)


def wrap(hashes: Mapping[str, Any], version: str = SCHEMA_VERSION) -> Manifest:
    """Attach a schema version to computed hashes."""
    return Manifest(version=version, hashes=dict(hashes))


def get_schema_path(version: str) -> Path:
    return SCHEMAS_DIR / f"v{version}" / "schema.json"


def load_schema(version: Any) -> dict[str, Any]:
    """Load the registered schema document for a manifest version."""
    if not isinstance(version, str) or not _VERSION_PATTERN.fullmatch(version):
        raise UnknownSchemaVersionError(f"Invalid schema version, 'version: {version}'")

    schema_path = get_schema_path(version)
    if not schema_path.exists():
        raise UnknownSchemaVersionError(f"Invalid schema version, 'version: {version}'")

    with open(schema_path) as f:
        return json.load(f)


def validate(data: Manifest | Mapping[str, Any] | Any) -> Manifest:
    """
    Validate manifest data against the schema registered for its version.

    Returns:
        The validated Manifest

    Raises:
        UnknownSchemaVersionError: no schema ships for the manifest's version
        SchemaValidationError: the manifest's shape does not match its schema
    """
    if isinstance(data, Manifest):
        data = data.model_dump()

    version = data.get("version") if isinstance(data, Mapping) else None
    schema = load_schema(version)

    errors = sorted(Draft7Validator(schema).iter_errors(data), key=lambda e: list(e.path))
    if errors:
        raise SchemaValidationError("; ".join(_format_error(error) for error in errors))

    return Manifest.model_validate(data)


def persist(manifest: Manifest, directory: str | os.PathLike = ".") -> Path:
    """Write the manifest as the integrity file inside a directory."""
    manifest_path = Path(directory) / INTEGRITY_FILE
    manifest_path.parent.mkdir(parents=True, exist_ok=True)

    with open(manifest_path, "w") as f:
        json.dump(manifest.model_dump(mode="json"), f, indent=2)

    return manifest_path


def resolve_manifest_path(path: str | os.PathLike) -> Path:
    """Map a directory to its integrity file and reject foreign files."""
    path = Path(path)
    mode = path.lstat().st_mode

    if stat.S_ISDIR(mode):
        return path / INTEGRITY_FILE
    if stat.S_ISREG(mode):
        if path.name != INTEGRITY_FILE:
            raise InvalidManifestNameError(f"filename must be '{INTEGRITY_FILE}'")
        return path
    raise UnsupportedPathError(f"path not supported: '{path}'")


def load_manifest(path: str | os.PathLike) -> Manifest:
    """Load and validate an integrity file (or a directory's integrity file)."""
    return validate(read_manifest_data(resolve_manifest_path(path)))


def read_manifest_data(manifest_path: Path) -> Any:
    """Parse an integrity file without validating it."""
    with open(manifest_path) as f:
        content = f.read()

    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        raise SchemaValidationError(f"invalid JSON in '{manifest_path.name}': {e.msg}") from e


def read_reference(
    reference: str | Mapping[str, Any],
    basename: str,
) -> tuple[Any, Path | None]:
    """
    Turn a check reference into raw manifest data.

    The reference may be manifest data, a path to an integrity file or its
    directory, a JSON string, or a bare digest (wrapped under basename).

    Returns:
        The raw (unvalidated) data and the integrity file it came from, if any
    """
    if isinstance(reference, Mapping):
        return dict(reference), None

    if os.path.exists(reference):
        manifest_path = resolve_manifest_path(reference)
        return read_manifest_data(manifest_path), manifest_path

    try:
        data = json.loads(reference)
    except json.JSONDecodeError:
        data = None

    if not isinstance(data, dict):
        data = {"version": SCHEMA_VERSION, "hashes": {basename: reference}}
    return data, None


def _format_error(error: Any) -> str:
    location = "/".join(str(part) for part in error.absolute_path)
    return f"{location}: {error.message}" if location else error.message
