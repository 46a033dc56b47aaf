"""Glob exclusion rules deciding which entries take part in hashing."""

from __future__ import annotations

import fnmatch
import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from . import INTEGRITY_FILE

DEFAULT_EXCLUSIONS: tuple[str, ...] = (
    INTEGRITY_FILE,
    ".git*",
    ".hg*",
    ".svn*",
    "node_modules",
)


@dataclass(frozen=True)
class ExclusionRules:
    """Exclude patterns plus the negated ("!pattern") include patterns."""

    exclude: tuple[str, ...] = DEFAULT_EXCLUSIONS
    include: tuple[str, ...] = ()

    @classmethod
    def normalize(
        cls,
        patterns: Iterable[str] | None = None,
        defaults: Iterable[str] = DEFAULT_EXCLUSIONS,
    ) -> ExclusionRules:
        """
        Split user patterns into exclude and include rules.

        Patterns starting with "!" become include rules (without the "!").
        The default exclusions are appended after the user's own patterns.
        """
        exclude: list[str] = []
        include: list[str] = []
        for pattern in patterns or ():
            if not pattern:
                continue
            if pattern.startswith("!"):
                if pattern[1:]:
                    include.append(pattern[1:])
            else:
                exclude.append(pattern)
        exclude.extend(defaults)
        return cls(exclude=tuple(exclude), include=tuple(include))


def match(target: str, pattern: str) -> bool:
    """
    Shell-glob match of a basename or a "/" separated relative path.

    "*", "?" and bracket classes never cross a "/"; a "**" segment matches
    zero or more whole path segments.
    """
    pattern = pattern.rstrip("/")
    if not pattern:
        return False
    if "/" not in pattern and "/" not in target:
        return fnmatch.fnmatch(target, pattern)
    return _match_segments(target.split("/"), pattern.split("/"))


def _match_segments(parts: list[str], segments: list[str]) -> bool:
    if not segments:
        return not parts

    head, rest = segments[0], segments[1:]
    if head == "**":
        return any(_match_segments(parts[index:], rest) for index in range(len(parts) + 1))
    return bool(parts) and fnmatch.fnmatch(parts[0], head) and _match_segments(parts[1:], rest)


def matches_any(path: Path, patterns: Iterable[str], root: Path | None = None) -> bool:
    """Check the entry's basename and its path relative to root's parent."""
    targets = [path.name]
    if root is not None:
        targets.append(Path(os.path.relpath(path, root.parent)).as_posix())
    else:
        targets.append(path.as_posix())
    return any(match(target, pattern) for pattern in patterns for target in targets)


def should_exclude(path: Path, rules: ExclusionRules, root: Path | None = None) -> bool:
    """
    Decide whether an entry is left out of hashing.

    An entry matching an include pattern is always kept. Otherwise it is
    excluded when it matches an exclude pattern, or when include patterns
    exist at all (they act as an allow-list). The integrity file itself is
    never hashed.
    """
    if path.name == INTEGRITY_FILE:
        return True

    if rules.include:
        return not matches_any(path, rules.include, root)

    return matches_any(path, rules.exclude, root)
