"""Storing integrity hashes inside the project's manifest file."""

import json
import os
import re
from pathlib import Path
from typing import Any

from . import PROJECT_MANIFEST_FILE, PROJECT_MANIFEST_KEY
from .errors import ProjectManifestError
from .manifest import Manifest

_INDENT_PATTERN = re.compile(r"^([ \t]+)\S", re.MULTILINE)

DEFAULT_INDENT = 2


def get_project_manifest_path(project_root: Path, filename: str = PROJECT_MANIFEST_FILE) -> Path:
    """Get the project manifest file path."""
    return project_root / filename


def detect_indent(content: str) -> int | str:
    """Detect the indentation of a JSON document.

    Returns the number of spaces, or the literal tab indent.
    """
    match = _INDENT_PATTERN.search(content)
    if match is None:
        return DEFAULT_INDENT
    indent = match.group(1)
    if "\t" in indent:
        return indent
    return len(indent)


def load_project_manifest(manifest_path: str | os.PathLike) -> tuple[dict[str, Any], int | str]:
    """Load the project manifest and the indentation it was written with."""
    manifest_path = Path(manifest_path)
    if not manifest_path.is_file():
        raise ProjectManifestError(
            f"'{manifest_path.name}' not found. "
            "Ensure the process is done on the project's root directory"
        )

    content = manifest_path.read_text()
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ProjectManifestError(f"'{manifest_path.name}' is not valid JSON: {e.msg}") from e

    if not isinstance(data, dict):
        raise ProjectManifestError(f"'{manifest_path.name}' must contain a JSON object")

    return data, detect_indent(content)


def get_manifest_integrity(manifest_path: str | os.PathLike) -> str:
    """Return the integrity entry of the project manifest as a JSON string."""
    data, indent = load_project_manifest(manifest_path)
    if PROJECT_MANIFEST_KEY not in data:
        raise ProjectManifestError(
            f"'{Path(manifest_path).name}' has no '{PROJECT_MANIFEST_KEY}' entry"
        )
    return json.dumps(data[PROJECT_MANIFEST_KEY], indent=indent)


def update_manifest(manifest: Manifest, manifest_path: str | os.PathLike) -> None:
    """Store the integrity manifest in the project manifest, keeping its layout."""
    manifest_path = Path(manifest_path)
    data, indent = load_project_manifest(manifest_path)
    data[PROJECT_MANIFEST_KEY] = manifest.model_dump(mode="json")

    trailing_newline = manifest_path.read_text().endswith("\n")
    content = json.dumps(data, indent=indent)
    manifest_path.write_text(content + "\n" if trailing_newline else content)
