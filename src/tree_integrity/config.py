"""Configuration management for Tree Integrity."""

import json
import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from . import CONFIG_FILE, PROJECT_MANIFEST_FILE


class IntegrityConfig(BaseModel):
    """Configuration for Tree Integrity.

    An unset algorithm or encoding means "default" when creating and
    "detect from the reference" when checking.
    """

    version: int = 1
    algorithm: str | None = None
    encoding: Literal["hex", "base64", "latin1"] | None = None
    exclude: list[str] = Field(default_factory=list)
    verbose: bool = False
    project_manifest: str = PROJECT_MANIFEST_FILE


def get_config_path(project_root: Path) -> Path:
    """Get the config file path."""
    return project_root / CONFIG_FILE


def load_config(project_root: Path) -> IntegrityConfig:
    """Load configuration from the project's config file.

    Falls back to defaults if file doesn't exist.
    Environment variables can override config values.
    """
    config_path = get_config_path(project_root)

    if config_path.exists():
        with open(config_path) as f:
            data = json.load(f)
        config = IntegrityConfig.model_validate(data)
    else:
        config = IntegrityConfig()

    return _apply_env_overrides(config)


def save_config(config: IntegrityConfig, project_root: Path) -> None:
    """Save configuration to the project's config file."""
    config_path = get_config_path(project_root)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        json.dump(config.model_dump(), f, indent=2)


def _apply_env_overrides(config: IntegrityConfig) -> IntegrityConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    if algorithm := os.environ.get("TINT_ALGORITHM"):
        data["algorithm"] = algorithm

    if encoding := os.environ.get("TINT_ENCODING"):
        data["encoding"] = encoding.lower()

    # TINT_EXCLUDE is a comma separated list of patterns
    if exclude := os.environ.get("TINT_EXCLUDE"):
        data["exclude"] = [pattern.strip() for pattern in exclude.split(",") if pattern.strip()]

    if verbose := os.environ.get("TINT_VERBOSE"):
        data["verbose"] = verbose.lower() in ("1", "true", "yes", "on")

    return IntegrityConfig.model_validate(data)
