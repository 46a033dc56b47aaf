"""Hash tree construction for files and directories in Tree Integrity."""

from __future__ import annotations

import os
import stat
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from . import INTEGRITY_FILE
from .crypto import CryptoOptions, format_digest, new_hash, resolve
from .errors import NotADirError, NotAFileError, ReservedNameError
from .exclusion import ExclusionRules, matches_any, should_exclude

CHUNK_SIZE = 8192


@dataclass
class HashStats:
    """Statistics from hashing a file tree."""

    files_hashed: int = 0
    directories_processed: int = 0
    entries_excluded: int = 0


@dataclass(frozen=True)
class HashOptions:
    """Everything a directory hash depends on, resolved once per operation."""

    crypto: CryptoOptions = field(default_factory=CryptoOptions)
    rules: ExclusionRules = field(default_factory=ExclusionRules)
    verbose: bool = False

    @classmethod
    def build(
        cls,
        crypto: CryptoOptions | Mapping[str, Any] | None = None,
        exclude: Iterable[str] | None = None,
        verbose: bool = False,
    ) -> HashOptions:
        return cls(
            crypto=resolve(crypto),
            rules=ExclusionRules.normalize(exclude),
            verbose=bool(verbose),
        )


@dataclass
class DirectoryNode:
    """A verbose directory entry: the folded digest plus one node per entry."""

    hash: str
    contents: dict[str, HashNode] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage in a manifest."""
        return {
            "contents": {name: node_to_dict(child) for name, child in self.contents.items()},
            "hash": self.hash,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> DirectoryNode:
        """Deserialize from dictionary."""
        return cls(
            hash=data["hash"],
            contents={
                name: node_from_dict(child) for name, child in data.get("contents", {}).items()
            },
        )


# A bare digest string (non-verbose) or a verbose directory node
HashNode = str | DirectoryNode


def node_to_dict(node: HashNode) -> str | dict[str, Any]:
    return node if isinstance(node, str) else node.to_dict()


def node_from_dict(data: str | Mapping[str, Any]) -> HashNode:
    return data if isinstance(data, str) else DirectoryNode.from_dict(data)


def node_digest(node: HashNode) -> str:
    """The scalar digest of a node, whatever its verbosity."""
    return node if isinstance(node, str) else node.hash


def hash_file(path: str | os.PathLike, crypto: CryptoOptions | Mapping[str, Any] | None = None) -> str:
    """
    Compute the digest of a single file.

    The hash state is seeded with the file's basename before its bytes, so
    renaming a file changes its digest.

    Args:
        path: Regular file to hash
        crypto: Algorithm and encoding (defaults when omitted)

    Returns:
        Digest string formatted as "<algorithm>-<encoded digest>"
    """
    crypto = resolve(crypto)
    path = Path(os.path.abspath(path))

    if not stat.S_ISREG(path.lstat().st_mode):
        raise NotAFileError(f"not a file, '{path.name}'")
    if path.name == INTEGRITY_FILE:
        raise ReservedNameError(f"file not allowed, '{path.name}'")

    state = new_hash(crypto.algorithm)
    state.update(path.name.encode())
    _stream(path, state)
    return format_digest(crypto.algorithm, state.digest(), crypto.encoding)


def hash_files(
    paths: Sequence[str | os.PathLike],
    crypto: CryptoOptions | Mapping[str, Any] | None = None,
) -> dict[str, str]:
    """Hash an explicit list of files, keyed by basename."""
    crypto = resolve(crypto)
    hashes: dict[str, str] = {}
    for path in paths:
        hashes[Path(os.path.abspath(path)).name] = hash_file(path, crypto)
    return hashes


def hash_directory(
    path: str | os.PathLike,
    options: HashOptions | None = None,
    stats: HashStats | None = None,
) -> HashNode | None:
    """
    Compute the digest (or verbose hash tree) of a directory.

    Args:
        path: Directory to hash
        options: Crypto options, exclusion rules and verbosity
        stats: Optional counters updated while walking

    Returns:
        A digest string, a DirectoryNode in verbose mode, or None when the
        directory itself is excluded
    """
    options = options or HashOptions()
    stats = stats if stats is not None else HashStats()
    root = Path(os.path.abspath(path))

    if not stat.S_ISDIR(root.lstat().st_mode):
        raise NotADirError(f"not a directory, '{root.name}'")

    if matches_any(root, options.rules.exclude, root):
        return None

    _, node = _hash_directory_node(root, root, options, stats)
    return node


def create_file_hash(
    path: str | os.PathLike,
    crypto: CryptoOptions | Mapping[str, Any] | None = None,
) -> dict[str, str]:
    """Hash a file into a {basename: digest} mapping."""
    return {Path(os.path.abspath(path)).name: hash_file(path, crypto)}


def create_dir_hash(
    path: str | os.PathLike,
    options: HashOptions | None = None,
    stats: HashStats | None = None,
) -> dict[str, Any]:
    """Hash a directory into a {basename: node} mapping, empty if excluded."""
    node = hash_directory(path, options, stats)
    if node is None:
        return {}
    return {Path(os.path.abspath(path)).name: node_to_dict(node)}


def _stream(path: Path, *states: Any) -> None:
    """Feed the file's bytes through every given hash state in one read."""
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            for state in states:
                state.update(chunk)


def _hash_directory_node(
    directory: Path,
    root: Path,
    options: HashOptions,
    stats: HashStats,
) -> tuple[bytes, HashNode]:
    """Recursively fold a directory into one hash state.

    Returns the raw digest (folded into the parent) and the node to report.
    """
    crypto = options.crypto
    stats.directories_processed += 1

    state = new_hash(crypto.algorithm)
    state.update(directory.name.encode())
    contents: dict[str, HashNode] = {}

    for entry in sorted(directory.iterdir()):
        if should_exclude(entry, options.rules, root):
            stats.entries_excluded += 1
            continue

        # Symlinks and special files are neither followed nor hashed
        mode = entry.lstat().st_mode
        if stat.S_ISDIR(mode):
            child_digest, child_node = _hash_directory_node(entry, root, options, stats)
            state.update(child_digest)
            contents[entry.name] = child_node
        elif stat.S_ISREG(mode):
            stats.files_hashed += 1
            state.update(entry.name.encode())
            if options.verbose:
                file_state = new_hash(crypto.algorithm)
                file_state.update(entry.name.encode())
                _stream(entry, state, file_state)
                contents[entry.name] = format_digest(
                    crypto.algorithm, file_state.digest(), crypto.encoding
                )
            else:
                _stream(entry, state)

    digest = state.digest()
    scalar = format_digest(crypto.algorithm, digest, crypto.encoding)
    if options.verbose:
        return digest, DirectoryNode(hash=scalar, contents=contents)
    return digest, scalar
