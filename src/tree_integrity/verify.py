"""Verification of freshly computed hashes against a reference manifest."""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import replace
from pathlib import Path
from typing import Any

from .errors import VersionMismatchError
from .exclusion import should_exclude
from .manifest import Manifest
from .merkle import HashOptions, hash_directory, node_digest


def canonical_dumps(obj: Any) -> str:
    """Return canonical JSON with every mapping's keys sorted."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def nodes_equal(left: Any, right: Any) -> bool:
    """Structural equality of two hash nodes; a missing node never matches."""
    if left is None or right is None:
        return False
    return canonical_dumps(left) == canonical_dumps(right)


def verify(
    fresh: Manifest | Mapping[str, Any],
    reference: Manifest | Mapping[str, Any],
    checked_path: str | os.PathLike | None = None,
    options: HashOptions | None = None,
) -> bool:
    """
    Decide whether freshly computed hashes match a reference manifest.

    Args:
        fresh: Manifest computed now for the checked path
        reference: Validated reference manifest
        checked_path: The checked file or directory, enabling verification
            against a manifest that describes one of its ancestors
        options: Options used to recompute ancestor directories

    Returns:
        True when the manifests are equal or the ancestor walk proves the
        checked path unchanged

    Raises:
        VersionMismatchError: the manifests have different schema versions
    """
    fresh_data = _as_dict(fresh)
    reference_data = _as_dict(reference)

    if fresh_data.get("version") != reference_data.get("version"):
        raise VersionMismatchError("Incompatible versions check")

    if nodes_equal(fresh_data, reference_data):
        return True

    if checked_path is None:
        return False

    return verify_ancestry(
        fresh_data.get("hashes") or {},
        reference_data.get("hashes") or {},
        Path(os.path.abspath(checked_path)),
        options or HashOptions(),
    )


def verify_ancestry(
    fresh_hashes: Mapping[str, Any],
    reference_hashes: Mapping[str, Any],
    checked_path: Path,
    options: HashOptions,
) -> bool:
    """Verify a path against a manifest captured at one of its ancestors."""
    parent = checked_path.parent
    ancestors = [directory for directory in [*reversed(parent.parents), parent] if directory.name]

    start = next(
        (index for index, directory in enumerate(ancestors) if directory.name in reference_hashes),
        None,
    )
    if start is None:
        return False

    anchor = find_anchor(ancestors, start, reference_hashes, options)
    if anchor is None:
        return False

    return _descend(ancestors[anchor:], reference_hashes, checked_path, fresh_hashes, options)


def find_anchor(
    ancestors: list[Path],
    start: int,
    reference_hashes: Mapping[str, Any],
    options: HashOptions,
) -> int | None:
    """
    Find the ancestor whose fresh digest matches its reference entry.

    Starting from the first ancestor named in the reference, each candidate
    is recomputed from disk; on a mismatch the next ancestor is tried as long
    as the reference also names it.
    """
    verbose = replace(options, verbose=True)

    for index in range(start, len(ancestors)):
        directory = ancestors[index]
        reference_node = reference_hashes.get(directory.name)
        if reference_node is None:
            return None

        fresh_node = hash_directory(directory, verbose)
        if fresh_node is None:
            return None

        if _digest_of(reference_node) == node_digest(fresh_node):
            return index
    return None


def _descend(
    directories: list[Path],
    hashes: Mapping[str, Any],
    checked_path: Path,
    fresh_hashes: Mapping[str, Any],
    options: HashOptions,
) -> bool:
    """Walk verbose contents from the anchor down to the checked path."""
    for position, directory in enumerate(directories):
        node = hashes.get(directory.name)

        if not isinstance(node, Mapping):
            # A bare digest has no structure below it: compare the directory
            # as a whole, provided it actually covers the checked path
            fresh_node = hash_directory(directory, replace(options, verbose=False))
            return (
                node is not None
                and fresh_node is not None
                and node == node_digest(fresh_node)
                and _is_covered(checked_path, directory, options)
            )

        hashes = node.get("contents") or {}
        following = directories[position + 1] if position + 1 < len(directories) else None
        if following is not None and following.name not in hashes:
            break

    name = checked_path.name
    return _final_match(hashes.get(name), fresh_hashes.get(name))


def _final_match(reference_node: Any, fresh_node: Any) -> bool:
    """Compare the checked path's nodes, allowing a bare fresh digest.

    A verbose node's "hash" is the non-verbose digest of the same directory,
    so a verbose reference is matched by a bare fresh digest.
    """
    if isinstance(reference_node, Mapping) and isinstance(fresh_node, str):
        return reference_node.get("hash") == fresh_node
    return nodes_equal(reference_node, fresh_node)


def _is_covered(checked_path: Path, directory: Path, options: HashOptions) -> bool:
    """Check that no step from directory down to checked_path is excluded."""
    current = checked_path
    while current != directory:
        if should_exclude(current, options.rules, directory):
            return False
        if current.parent == current:
            return False
        current = current.parent
    return True


def _digest_of(node: Any) -> Any:
    return node.get("hash") if isinstance(node, Mapping) else node


def _as_dict(manifest: Manifest | Mapping[str, Any]) -> dict[str, Any]:
    if isinstance(manifest, Manifest):
        return manifest.model_dump()
    return dict(manifest)
