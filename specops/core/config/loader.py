"""
Configuration loader — reads specops.yml into an EngineConfig.

The file is optional: without one, every setting takes its default.
It reads YAML, validates against the Pydantic schema, and returns a
typed config object.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

# Default config filename
ENGINE_CONFIG_FILE = "specops.yml"


class ConfigError(Exception):
    """Raised when engine configuration is invalid or unreadable."""


class EngineConfig(BaseModel):
    """Settings for detecting, installing, and running the OpenSpec CLI."""

    cli_command: str = "openspec"
    package: str = "@fission-ai/openspec@latest"

    # Seconds. Probe/detect gate phase transitions, so keep them short.
    probe_timeout: float = Field(default=5.0, gt=0)
    detect_timeout: float = Field(default=3.0, gt=0)
    list_timeout: float = Field(default=15.0, gt=0)

    # Extra environment for every child process
    env: dict[str, str] = Field(default_factory=lambda: {"NO_COLOR": "1"})


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for specops.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to specops.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / ENGINE_CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def load_engine_config(path: Path | None = None) -> EngineConfig:
    """Load and validate engine configuration.

    Args:
        path: Explicit path to specops.yml. If None, searches upward
            and falls back to defaults when nothing is found.

    Returns:
        Validated EngineConfig.

    Raises:
        ConfigError: If an explicit file is missing, or any file is invalid.
    """
    if path is None:
        path = find_config_file()
        if path is None:
            logger.debug("No %s found — using defaults", ENGINE_CONFIG_FILE)
            return EngineConfig()

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading engine config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return EngineConfig()

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # Settings may sit under an "openspec" key or be flat
    section = data.get("openspec", data)
    if not isinstance(section, dict):
        raise ConfigError(f"Expected 'openspec' to be a mapping in {path}")

    try:
        config = EngineConfig.model_validate(section)
    except ValidationError as e:
        raise ConfigError(f"Invalid engine configuration: {e}") from e

    logger.info("Loaded engine config from %s (cli=%s)", path, config.cli_command)
    return config
