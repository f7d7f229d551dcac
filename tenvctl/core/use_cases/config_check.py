"""
Config check use case — validate tenv.yml and report issues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from tenvctl.core.config.loader import ConfigError, find_settings_file, load_settings
from tenvctl.core.models.settings import TenvSettings
from tenvctl.core.services.tenv_install.domain.artifacts import LATEST


@dataclass
class ConfigCheckResult:
    """Result of configuration validation."""

    valid: bool = False
    settings: TenvSettings | None = None
    config_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "errors": self.errors,
            "warnings": self.warnings,
            "settings": self.settings.redacted() if self.settings else None,
        }


def check_config(config_path: Path | None = None) -> ConfigCheckResult:
    """Validate the settings file and flag questionable combinations."""
    result = ConfigCheckResult()

    if config_path is None:
        config_path = find_settings_file()
    if config_path is None:
        result.errors.append("No tenv.yml found.")
        return result
    result.config_path = config_path

    try:
        settings, _ = load_settings(config_path)
    except ConfigError as e:
        result.errors.append(str(e))
        return result
    result.settings = settings

    if settings.verify_with_cosign and not settings.install_cosign:
        result.warnings.append(
            "verify_with_cosign is set but install_cosign is off; cosign must already be on PATH."
        )
    if settings.auto_install and not settings.configure_shell:
        result.warnings.append("auto_install has no effect while configure_shell is off.")
    if settings.github_token and not settings.configure_shell:
        result.warnings.append("github_token is only written to profiles when configure_shell is on.")
    if settings.version == LATEST and settings.github_token is None:
        result.warnings.append(
            "Resolving 'latest' without a GitHub token is subject to API rate limits."
        )

    dupes = sorted({u for u in settings.users if settings.users.count(u) > 1})
    if dupes:
        result.warnings.append(f"Duplicate users (configured once): {', '.join(dupes)}")

    result.valid = not result.errors
    return result
