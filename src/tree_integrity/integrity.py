"""Creating and checking integrity manifests for files and directories."""

from __future__ import annotations

import os
import stat
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from .crypto import CryptoOptions
from .detect import detect_options
from .errors import UnsupportedPathError
from .exclusion import ExclusionRules
from .manifest import Manifest, read_reference, validate, wrap
from .merkle import HashOptions, HashStats, create_dir_hash, create_file_hash
from .verify import verify


def create(
    path: str | os.PathLike,
    crypto: CryptoOptions | Mapping[str, Any] | None = None,
    exclude: Iterable[str] | None = None,
    verbose: bool = False,
    stats: HashStats | None = None,
) -> Manifest:
    """
    Create the integrity manifest of a file or directory.

    Args:
        path: File or directory to hash
        crypto: Algorithm and encoding (defaults when omitted)
        exclude: Glob patterns to exclude, "!pattern" to include
        verbose: Keep the per-entry hash tree of directories
        stats: Optional counters updated while hashing

    Returns:
        A Manifest with a single entry keyed by the path's basename
    """
    return create_with_options(path, HashOptions.build(crypto, exclude, verbose), stats)


def create_with_options(
    path: str | os.PathLike,
    options: HashOptions,
    stats: HashStats | None = None,
) -> Manifest:
    mode = Path(path).lstat().st_mode
    if stat.S_ISDIR(mode):
        return wrap(create_dir_hash(path, options, stats))
    if stat.S_ISREG(mode):
        if stats is not None:
            stats.files_hashed += 1
        return wrap(create_file_hash(path, options.crypto))
    raise UnsupportedPathError(f"path not supported: '{path}'")


def check(
    path: str | os.PathLike,
    integrity: str | Mapping[str, Any],
    crypto: CryptoOptions | Mapping[str, Any] | None = None,
    exclude: Iterable[str] | None = None,
    verbose: bool = False,
) -> bool:
    """
    Check a file or directory against a reference.

    Args:
        path: File or directory to check
        integrity: Integrity file or directory path, manifest JSON string,
            manifest data, or a bare digest
        crypto: Explicit algorithm and encoding; detected from the reference
            unless both are given
        exclude: Glob patterns to exclude, "!pattern" to include
        verbose: Hash directories verbosely (also detected from the reference)

    Returns:
        True when the content matches the reference

    Raises:
        IntegrityError: the reference is malformed or of another version
    """
    if not path or not integrity:
        return False

    if not _is_complete(crypto):
        detected = detect_options(path, integrity, ExclusionRules.normalize(exclude))
        explicit = {key: value for key, value in (crypto or {}).items() if value}
        crypto = {**detected.crypto(), **explicit}
        verbose = verbose or bool(detected.verbose)

    options = HashOptions.build(crypto, exclude, verbose)
    fresh = create_with_options(path, options)

    data, manifest_path = read_reference(integrity, Path(os.path.abspath(path)).name)
    reference = validate(data)

    # Ancestor verification only applies to integrity files on disk
    checked_path = path if manifest_path is not None else None
    return verify(fresh, reference, checked_path, options)


def _is_complete(crypto: CryptoOptions | Mapping[str, Any] | None) -> bool:
    if crypto is None:
        return False
    if isinstance(crypto, CryptoOptions):
        return True
    return bool(crypto.get("algorithm")) and bool(crypto.get("encoding"))
