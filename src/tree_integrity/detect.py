"""Detection of the crypto options and verbosity behind an existing digest."""

from __future__ import annotations

import os
import re
import stat
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .crypto import SUPPORTED_ALGORITHMS, CryptoOptions, Encoding
from .errors import IntegrityError
from .exclusion import ExclusionRules
from .manifest import read_reference
from .merkle import HashOptions, hash_directory, hash_file, node_digest

HEX_PATTERN = re.compile(r"^[a-f0-9]+$")
BASE64_PATTERN = re.compile(r"^(?:[A-Za-z0-9+/]{4})*(?:[A-Za-z0-9+/]{2}==|[A-Za-z0-9+/]{3}=)?$")
LATIN1_PATTERN = re.compile(r"^[\x00-\xff]+$")

# Hex digests are also valid base64, so hex is tried first
ENCODING_PATTERNS: tuple[tuple[Encoding, re.Pattern[str]], ...] = (
    ("hex", HEX_PATTERN),
    ("base64", BASE64_PATTERN),
    ("latin1", LATIN1_PATTERN),
)


@dataclass
class DetectedOptions:
    """Whatever could be recovered from a reference digest.

    Fields left as None could not be detected; callers fall back to defaults.
    """

    algorithm: str | None = None
    encoding: Encoding | None = None
    verbose: bool | None = None

    @property
    def is_complete(self) -> bool:
        return self.algorithm is not None and self.encoding is not None

    def crypto(self) -> dict[str, str]:
        """Partial crypto options, ready for crypto.resolve()."""
        data = {}
        if self.algorithm is not None:
            data["algorithm"] = self.algorithm
        if self.encoding is not None:
            data["encoding"] = self.encoding
        return data


def detect_encoding(encoded: str) -> Encoding | None:
    if not encoded:
        return None
    for encoding, pattern in ENCODING_PATTERNS:
        if pattern.match(encoded):
            return encoding
    return None


def detect_options(
    in_path: str | os.PathLike,
    reference: str | Mapping[str, Any],
    rules: ExclusionRules | None = None,
) -> DetectedOptions:
    """
    Infer the algorithm, encoding and verbosity that produced a reference.

    Args:
        in_path: The file or directory the reference describes
        reference: Manifest data, integrity file/directory path, JSON string
            or bare digest
        rules: Exclusion rules used when recomputing digests to find the
            algorithm

    Returns:
        DetectedOptions; never raises for detection failures
    """
    in_path = Path(os.path.abspath(in_path))

    try:
        data, _ = read_reference(reference, in_path.name)
    except (IntegrityError, OSError):
        return DetectedOptions()

    hashes = data.get("hashes") if isinstance(data, Mapping) else None
    if not isinstance(hashes, Mapping):
        return DetectedOptions()

    # A manifest captured at an ancestor has no entry for the input itself
    target = in_path if in_path.name in hashes else _named_ancestor(in_path, hashes)
    if target is None:
        return DetectedOptions()

    entry = hashes.get(target.name)
    digest = entry.get("hash") if isinstance(entry, Mapping) else entry
    if not isinstance(digest, str) or not digest:
        return DetectedOptions()

    members = digest.split("-")
    if len(members) < 2:
        return DetectedOptions()

    verbose = isinstance(entry, Mapping) if target == in_path else None
    encoding = detect_encoding(members[-1])
    if encoding is None:
        return DetectedOptions(verbose=verbose)

    prefix = "-".join(members[:-1])
    if prefix in SUPPORTED_ALGORITHMS:
        algorithm = prefix
    else:
        algorithm = search_algorithm(target, digest, encoding, rules)

    return DetectedOptions(algorithm=algorithm, encoding=encoding, verbose=verbose)


def search_algorithm(
    in_path: Path,
    digest: str,
    encoding: Encoding,
    rules: ExclusionRules | None = None,
) -> str | None:
    """Recompute the input under each candidate algorithm until one matches."""
    rules = rules or ExclusionRules()
    # A digest always starts with its algorithm's name
    candidates = [name for name in SUPPORTED_ALGORITHMS if digest.startswith(f"{name}-")]

    for algorithm in candidates:
        options = HashOptions(crypto=CryptoOptions(algorithm=algorithm, encoding=encoding), rules=rules)
        try:
            recomputed = _recompute(in_path, options)
        except (IntegrityError, OSError):
            return None
        if recomputed == digest:
            return algorithm
    return None


def _recompute(in_path: Path, options: HashOptions) -> str | None:
    mode = in_path.lstat().st_mode
    if stat.S_ISDIR(mode):
        node = hash_directory(in_path, options)
        return None if node is None else node_digest(node)
    return hash_file(in_path, options.crypto)


def _named_ancestor(in_path: Path, hashes: Mapping[str, Any]) -> Path | None:
    """The outermost ancestor of in_path named in the manifest, if any."""
    parent = in_path.parent
    for directory in [*reversed(parent.parents), parent]:
        if directory.name and directory.name in hashes:
            return directory
    return None
