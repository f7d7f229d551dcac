"""
Configuration loader — reads tenv.yml into ``TenvSettings``.

Reads YAML, validates against the pydantic model, and layers CLI
overrides on top. A missing file is only an error when a path was
given explicitly.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from tenvctl.core.models.settings import TenvSettings

logger = logging.getLogger(__name__)

SETTINGS_FILE = "tenv.yml"


class ConfigError(Exception):
    """Raised when the settings file is invalid or unreadable."""


def find_settings_file(start_dir: Path | None = None) -> Path | None:
    """Search for tenv.yml from ``start_dir`` (default: cwd) upwards."""
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / SETTINGS_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def read_settings_data(path: Path) -> dict[str, Any]:
    """Parse the YAML document into a plain mapping.

    The settings may sit at the top level or under a ``tenv:`` key.

    Raises:
        ConfigError: Unreadable file, invalid YAML or not a mapping.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    if "tenv" in data and isinstance(data["tenv"], dict):
        data = data["tenv"]
    return data


def load_settings(
    path: Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> tuple[TenvSettings, Path | None]:
    """Load settings and apply overrides.

    Args:
        path: Explicit settings file. If None, search upward; defaults
            are used when nothing is found.
        overrides: Field values that win over the file (``None`` values
            are ignored, so unset CLI options do not clobber the file).

    Returns:
        ``(settings, source_path)``; ``source_path`` is None for defaults.

    Raises:
        ConfigError: Explicit path missing, or invalid content.
    """
    if path is not None and not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    source = path or find_settings_file()
    data: dict[str, Any] = {}
    if source is not None:
        logger.debug("Loading settings from %s", source)
        data = read_settings_data(source)
    else:
        logger.debug("No %s found, using defaults", SETTINGS_FILE)

    for key, value in (overrides or {}).items():
        if value is not None:
            data[key] = value

    try:
        settings = TenvSettings.model_validate(data)
    except ValidationError as e:
        where = source or "settings"
        raise ConfigError(f"Invalid configuration in {where}: {e}") from e

    logger.info(
        "Settings: tenv %s, shell %s, users %s",
        settings.version, settings.shell, settings.users or ["root"],
    )
    return settings, source
