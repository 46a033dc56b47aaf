"""Integration tests for the tint command line."""

import json
from pathlib import Path

import pytest

from tree_integrity import INTEGRITY_FILE
from tree_integrity.cli import main
from tree_integrity.merkle import hash_file


@pytest.fixture(autouse=True)
def project_root(tmp_path: Path, monkeypatch) -> Path:
    """Run every command from an isolated project root."""
    for name in ("TINT_ALGORITHM", "TINT_ENCODING", "TINT_EXCLUDE", "TINT_VERBOSE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestCLIEntry:
    """Tests for the CLI entry point."""

    def test_version_flag(self, cli_runner):
        """--version shows version info."""
        result = cli_runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "tint" in result.output
        assert "0.1.0" in result.output

    def test_help_flag(self, cli_runner):
        """--help lists the commands."""
        result = cli_runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "Tree Integrity" in result.output
        assert "create" in result.output
        assert "check" in result.output
        assert "init" in result.output


class TestCreateCommand:
    """Tests for `tint create`."""

    def test_directory(self, cli_runner, fixture_tree: Path):
        result = cli_runner.invoke(main, ["create", "-p", str(fixture_tree)])

        assert result.exit_code == 0, result.output
        assert "Integrity hash file created" in result.output
        data = json.loads((fixture_tree / INTEGRITY_FILE).read_text())
        assert list(data["hashes"]) == ["fixtures"]

    def test_file_writes_next_to_it(self, cli_runner, fixture_tree: Path):
        target = fixture_tree / "fileToHash.txt"

        result = cli_runner.invoke(main, ["create", "-p", str(target)])

        assert result.exit_code == 0, result.output
        data = json.loads((fixture_tree / INTEGRITY_FILE).read_text())
        assert data["hashes"] == {"fileToHash.txt": hash_file(target)}

    def test_output_directory(self, cli_runner, fixture_tree: Path, tmp_path: Path):
        output = tmp_path / "out"

        result = cli_runner.invoke(
            main, ["create", "-p", str(fixture_tree), "-o", str(output), "-a", "md5", "-e", "HEX"]
        )

        assert result.exit_code == 0, result.output
        data = json.loads((output / INTEGRITY_FILE).read_text())
        assert data["hashes"]["fixtures"].startswith("md5-")

    def test_verbose_prints_stats(self, cli_runner, fixture_tree: Path):
        result = cli_runner.invoke(main, ["create", "-p", str(fixture_tree), "-v"])

        assert result.exit_code == 0, result.output
        assert "Files hashed" in result.output
        data = json.loads((fixture_tree / INTEGRITY_FILE).read_text())
        assert "contents" in data["hashes"]["fixtures"]

    def test_unsupported_algorithm(self, cli_runner, fixture_tree: Path):
        result = cli_runner.invoke(main, ["create", "-p", str(fixture_tree), "-a", "md1"])

        assert result.exit_code == 1
        assert "Failed to create integrity hash" in result.output
        assert "ENOSUP" in result.output
        assert not (fixture_tree / INTEGRITY_FILE).exists()

    def test_missing_input(self, cli_runner, tmp_path: Path):
        result = cli_runner.invoke(main, ["create", "-p", str(tmp_path / "missing")])

        assert result.exit_code == 2

    def test_manifest(self, cli_runner, fixture_tree: Path, project_root: Path):
        package_json = project_root / "package.json"
        package_json.write_text(json.dumps({"name": "test"}, indent=2))

        result = cli_runner.invoke(main, ["create", "-p", str(fixture_tree), "-m"])

        assert result.exit_code == 0, result.output
        assert "Manifest updated" in result.output
        data = json.loads(package_json.read_text())
        assert data["name"] == "test"
        assert "fixtures" in data["integrity"]["hashes"]

    def test_manifest_missing(self, cli_runner, fixture_tree: Path):
        result = cli_runner.invoke(main, ["create", "-p", str(fixture_tree), "-m"])

        assert result.exit_code == 1
        assert "ENOMANIFEST" in result.output

    def test_config_file_options(self, cli_runner, fixture_tree: Path, project_root: Path):
        (project_root / ".tintrc.json").write_text(json.dumps({"algorithm": "sha256"}))

        result = cli_runner.invoke(main, ["create", "-p", str(fixture_tree)])

        assert result.exit_code == 0, result.output
        data = json.loads((fixture_tree / INTEGRITY_FILE).read_text())
        assert data["hashes"]["fixtures"].startswith("sha256-")


class TestCheckCommand:
    """Tests for `tint check`."""

    def test_passes(self, cli_runner, fixture_tree: Path):
        cli_runner.invoke(main, ["create", "-p", str(fixture_tree)])

        result = cli_runner.invoke(main, ["check", "-p", str(fixture_tree), "-i", str(fixture_tree)])

        assert result.exit_code == 0, result.output
        assert "Integrity validated" in result.output

    def test_nested_file_against_verbose_integrity_file(self, cli_runner, fixture_tree: Path):
        cli_runner.invoke(main, ["create", "-p", str(fixture_tree), "-v"])
        nested = fixture_tree / "directory" / "otherFileToHash.txt"

        result = cli_runner.invoke(main, ["check", "-p", str(nested), "-i", str(fixture_tree)])

        assert result.exit_code == 0, result.output

    def test_subdirectory_against_verbose_integrity_file(self, cli_runner, fixture_tree: Path):
        cli_runner.invoke(main, ["create", "-p", str(fixture_tree), "-v"])
        directory = fixture_tree / "directory"

        result = cli_runner.invoke(main, ["check", "-p", str(directory), "-i", str(fixture_tree)])

        assert result.exit_code == 0, result.output
        assert "Integrity validated" in result.output

    def test_bare_digest(self, cli_runner, fixture_tree: Path):
        target = fixture_tree / "fileToHash.txt"

        result = cli_runner.invoke(main, ["check", "-p", str(target), "-i", hash_file(target)])

        assert result.exit_code == 0, result.output

    def test_fails_after_change(self, cli_runner, fixture_tree: Path):
        cli_runner.invoke(main, ["create", "-p", str(fixture_tree)])
        (fixture_tree / "fileToHash.txt").write_text("tampered\n")

        result = cli_runner.invoke(main, ["check", "-p", str(fixture_tree), "-i", str(fixture_tree)])

        assert result.exit_code == 1
        assert "Integrity check failed" in result.output

    def test_invalid_integrity(self, cli_runner, fixture_tree: Path):
        result = cli_runner.invoke(main, ["check", "-p", str(fixture_tree), "-i", "{}"])

        assert result.exit_code == 1
        assert "Failed to check integrity hash" in result.output
        assert "EINVER" in result.output

    def test_requires_integrity_or_manifest(self, cli_runner, fixture_tree: Path):
        result = cli_runner.invoke(main, ["check", "-p", str(fixture_tree)])

        assert result.exit_code == 2
        assert "--integrity" in result.output

    def test_manifest(self, cli_runner, fixture_tree: Path, project_root: Path):
        package_json = project_root / "package.json"
        package_json.write_text(json.dumps({"name": "test"}, indent=2))
        cli_runner.invoke(main, ["create", "-p", str(fixture_tree), "-m"])

        result = cli_runner.invoke(main, ["check", "-p", str(fixture_tree), "-m"])

        assert result.exit_code == 0, result.output
        assert "Integrity validated" in result.output


class TestInitCommand:
    """Tests for `tint init`."""

    def test_writes_config(self, cli_runner, project_root: Path):
        result = cli_runner.invoke(
            main, ["init", "-a", "sha256", "-e", "hex", "-x", "dist", "-x", "*.log"]
        )

        assert result.exit_code == 0, result.output
        assert "Initialized tint" in result.output
        data = json.loads((project_root / ".tintrc.json").read_text())
        assert data["algorithm"] == "sha256"
        assert data["encoding"] == "hex"
        assert data["exclude"] == ["dist", "*.log"]
        assert data["project_manifest"] == "package.json"

    def test_unset_options_stay_detectable(self, cli_runner, project_root: Path):
        result = cli_runner.invoke(main, ["init"])

        assert result.exit_code == 0, result.output
        data = json.loads((project_root / ".tintrc.json").read_text())
        assert data["algorithm"] is None
        assert data["encoding"] is None

    def test_existing_config_requires_force(self, cli_runner, project_root: Path):
        cli_runner.invoke(main, ["init", "-a", "md5"])

        result = cli_runner.invoke(main, ["init", "-a", "sha512"])
        assert result.exit_code == 1
        assert "--force" in result.output

        result = cli_runner.invoke(main, ["init", "-a", "sha512", "--force"])
        assert result.exit_code == 0, result.output
        data = json.loads((project_root / ".tintrc.json").read_text())
        assert data["algorithm"] == "sha512"

    def test_unsupported_algorithm(self, cli_runner, project_root: Path):
        result = cli_runner.invoke(main, ["init", "-a", "md1"])

        assert result.exit_code == 1
        assert "ENOSUP" in result.output
        assert not (project_root / ".tintrc.json").exists()

    def test_config_is_used_by_create(self, cli_runner, fixture_tree: Path):
        cli_runner.invoke(main, ["init", "-a", "md5", "-e", "hex"])

        result = cli_runner.invoke(main, ["create", "-p", str(fixture_tree)])

        assert result.exit_code == 0, result.output
        data = json.loads((fixture_tree / INTEGRITY_FILE).read_text())
        assert data["hashes"]["fixtures"].startswith("md5-")
