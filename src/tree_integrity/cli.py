"""CLI for Tree Integrity."""

import sys
from pathlib import Path
from typing import NoReturn

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from . import CONFIG_FILE, PROJECT_MANIFEST_FILE, __version__
from .config import IntegrityConfig, get_config_path, load_config, save_config
from .crypto import ENCODINGS, resolve
from .errors import IntegrityError
from .integrity import check as check_integrity
from .integrity import create as create_integrity
from .manifest import persist
from .merkle import HashStats
from .project_manifest import get_manifest_integrity, get_project_manifest_path, update_manifest

console = Console()
error_console = Console(stderr=True)


def get_project_root() -> Path:
    """Get the project root directory (current working directory)."""
    return Path.cwd()


def fail(message: str) -> NoReturn:
    """Print an error and exit with a non-zero status."""
    error_console.print(f"[red]Error:[/red] {escape(message)}")
    sys.exit(1)


def common_options(func):
    """Options shared by the create and check commands."""
    options = [
        click.option(
            "-p",
            "--input",
            "in_path",
            required=True,
            type=click.Path(exists=True, path_type=Path),
            help="The path to the file or directory to hash",
        ),
        click.option("-a", "--algorithm", default=None, help="The algorithm to use for hashing"),
        click.option(
            "-e",
            "--encoding",
            default=None,
            type=click.Choice(ENCODINGS, case_sensitive=False),
            help="The encoding to use for hashing",
        ),
        click.option(
            "-v",
            "--verbose",
            is_flag=True,
            help="Verbosely create hashes of a directory",
        ),
        click.option(
            "-x",
            "--exclude",
            multiple=True,
            help="Files and/or directories paths to exclude ('!pattern' to include)",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def resolve_options(
    config: IntegrityConfig,
    algorithm: str | None,
    encoding: str | None,
    verbose: bool,
    exclude: tuple[str, ...],
) -> tuple[dict[str, str], list[str], bool]:
    """Merge command line flags over the loaded configuration."""
    crypto = {}
    if algorithm or config.algorithm:
        crypto["algorithm"] = algorithm or config.algorithm
    if encoding or config.encoding:
        crypto["encoding"] = encoding or config.encoding
    patterns = list(exclude) if exclude else list(config.exclude)
    return crypto, patterns, verbose or config.verbose


@click.group()
@click.version_option(version=__version__, prog_name="tint")
def main() -> None:
    """Tree Integrity - Content fingerprints for files and directory trees."""
    pass


@main.command()
@click.option("-a", "--algorithm", default=None, help="Default algorithm to use for hashing")
@click.option(
    "-e",
    "--encoding",
    default=None,
    type=click.Choice(ENCODINGS, case_sensitive=False),
    help="Default encoding to use for hashing",
)
@click.option("-v", "--verbose", is_flag=True, help="Verbosely create hashes of directories")
@click.option(
    "-x",
    "--exclude",
    multiple=True,
    help="Default files and/or directories paths to exclude ('!pattern' to include)",
)
@click.option(
    "--project-manifest",
    default=PROJECT_MANIFEST_FILE,
    show_default=True,
    help="Project manifest file used by '--manifest'",
)
@click.option("--force", is_flag=True, help="Overwrite an existing configuration")
def init(
    algorithm: str | None,
    encoding: str | None,
    verbose: bool,
    exclude: tuple[str, ...],
    project_manifest: str,
    force: bool,
) -> None:
    """Write a tint configuration file in the current project."""
    project_root = get_project_root()
    config_path = get_config_path(project_root)

    if config_path.exists() and not force:
        error_console.print(
            f"[yellow]Warning:[/yellow] {CONFIG_FILE} already exists. Use --force to overwrite."
        )
        sys.exit(1)

    # Validated only; unset values stay unset so check can detect them
    try:
        resolve({"algorithm": algorithm, "encoding": encoding})
    except IntegrityError as e:
        fail(str(e))

    config = IntegrityConfig(
        algorithm=algorithm,
        encoding=encoding,
        exclude=list(exclude),
        verbose=verbose,
        project_manifest=project_manifest,
    )
    save_config(config, project_root)

    console.print(
        Panel(
            f"[green]Initialized tint[/green]\n\n"
            f"Algorithm: [bold]{config.algorithm or 'default'}[/bold]\n"
            f"Encoding: [bold]{config.encoding or 'default'}[/bold]\n"
            f"Config file: [dim]{escape(str(config_path))}[/dim]\n\n"
            f"Next steps:\n"
            f"  1. Run [bold]tint create -p <path>[/bold] to create an integrity file\n"
            f"  2. Run [bold]tint check -p <path> -i <integrity>[/bold] to check it",
            title="tint init",
        )
    )


@main.command()
@common_options
@click.option(
    "-o",
    "--output",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="The directory path where to persist the created integrity file",
)
@click.option(
    "-m",
    "--manifest",
    is_flag=True,
    help="Save the integrity hash in the project's manifest instead",
)
def create(
    in_path: Path,
    algorithm: str | None,
    encoding: str | None,
    verbose: bool,
    exclude: tuple[str, ...],
    output: Path | None,
    manifest: bool,
) -> None:
    """Create an integrity hash from the provided input."""
    project_root = get_project_root()
    config = load_config(project_root)
    crypto, patterns, verbose = resolve_options(config, algorithm, encoding, verbose, exclude)
    stats = HashStats()

    try:
        with console.status("Creating integrity hash"):
            hashes = create_integrity(in_path, crypto, patterns, verbose, stats)
            if manifest:
                manifest_path = get_project_manifest_path(project_root, config.project_manifest)
                update_manifest(hashes, manifest_path)
                message = f"Integrity hash created -> Manifest updated ({manifest_path.name})"
            else:
                if output is None:
                    output = in_path.parent if in_path.is_file() else in_path
                written = persist(hashes, output)
                message = f"Integrity hash file created: {written}"
    except (IntegrityError, OSError) as e:
        error_console.print("[red]Failed to create integrity hash[/red]")
        fail(str(e))

    if verbose:
        table = Table(title="Integrity Hash")
        table.add_column("Metric", style="cyan")
        table.add_column("Count", justify="right")
        table.add_row("Files hashed", str(stats.files_hashed))
        table.add_row("Directories processed", str(stats.directories_processed))
        table.add_row("Entries excluded", str(stats.entries_excluded))
        console.print(table)

    console.print(f"[green]{escape(message)}[/green]")


@main.command()
@common_options
@click.option(
    "-i",
    "--integrity",
    default=None,
    help="The integrity hash, JSON, file or directory path, to check against",
)
@click.option(
    "-m",
    "--manifest",
    is_flag=True,
    help="Check against the integrity hash stored in the project's manifest",
)
def check(
    in_path: Path,
    algorithm: str | None,
    encoding: str | None,
    verbose: bool,
    exclude: tuple[str, ...],
    integrity: str | None,
    manifest: bool,
) -> None:
    """Check an integrity hash against the provided input."""
    project_root = get_project_root()
    config = load_config(project_root)
    crypto, patterns, verbose = resolve_options(config, algorithm, encoding, verbose, exclude)

    if not manifest and not integrity:
        raise click.UsageError("Missing option '-i' / '--integrity' (or use '--manifest').")

    try:
        with console.status(f"Checking integrity of: '{in_path}'"):
            if manifest:
                manifest_path = get_project_manifest_path(project_root, config.project_manifest)
                integrity = get_manifest_integrity(manifest_path)
            passed = check_integrity(in_path, integrity, crypto or None, patterns, verbose)
    except (IntegrityError, OSError) as e:
        error_console.print("[red]Failed to check integrity hash[/red]")
        fail(str(e))

    if passed:
        console.print("[green]Integrity validated[/green]")
    else:
        error_console.print("[red]Integrity check failed[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
