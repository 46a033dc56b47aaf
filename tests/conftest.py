"""Shared test fixtures for tree-integrity."""

from pathlib import Path

import pytest
from click.testing import CliRunner


@pytest.fixture
def cli_runner():
    """Click CLI test runner."""
    return CliRunner()


def build_fixture_tree(base: Path) -> Path:
    """Create a small directory tree for hashing tests.

    Structure:
        fixtures/
        ├── fileToHash.txt
        ├── sameContentWithFileToHash.txt
        ├── directory/
        │   ├── anotherFileToHash.txt
        │   └── otherFileToHash.txt
        ├── directory.1/
        │   └── anotherFileToHash.txt
        ├── fixtures/
        │   └── fileToHash.txt
        └── node_modules/
            └── ignored.js  (excluded by default)
    """
    root = base / "fixtures"
    root.mkdir()

    (root / "fileToHash.txt").write_text("I'm a file to hash\n")
    (root / "sameContentWithFileToHash.txt").write_text("I'm a file to hash\n")

    directory = root / "directory"
    directory.mkdir()
    (directory / "anotherFileToHash.txt").write_text("I'm another file to hash\n")
    (directory / "otherFileToHash.txt").write_text("I'm other file to hash\n")

    directory_1 = root / "directory.1"
    directory_1.mkdir()
    (directory_1 / "anotherFileToHash.txt").write_text("I'm another file to hash too\n")

    nested = root / "fixtures"
    nested.mkdir()
    (nested / "fileToHash.txt").write_text("I'm a nested file to hash\n")

    node_modules = root / "node_modules"
    node_modules.mkdir()
    (node_modules / "ignored.js").write_text("module.exports = {};\n")

    return root


@pytest.fixture
def fixture_tree(tmp_path: Path) -> Path:
    """A temporary fixture tree (see build_fixture_tree)."""
    return build_fixture_tree(tmp_path)


def collect_names(node) -> list[str]:
    """All entry names found in a verbose hash tree."""
    names = []
    if isinstance(node, dict):
        for name, child in node["contents"].items():
            names.append(name)
            names.extend(collect_names(child))
    return names
