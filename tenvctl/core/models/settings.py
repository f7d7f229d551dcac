"""
Settings model — the desired state of a host.

Loaded from tenv.yml (or built from defaults plus CLI overrides), this
is the single description of what tenvctl converges towards.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator

from tenvctl.core.services.tenv_install.domain.artifacts import normalize_version


class TenvSettings(BaseModel):
    """Desired tenv/cosign installation and shell configuration."""

    # ── Packages ─────────────────────────────────────────────────
    version: str = "latest"
    install_cosign: bool = True
    cosign_version: str = "latest"
    verify_with_cosign: bool = False
    manage_prerequisites: bool = True

    # ── Shell configuration ──────────────────────────────────────
    configure_shell: bool = True
    shell: Literal["bash", "zsh", "fish"] = "bash"
    users: list[str] = Field(default_factory=list)
    auto_install: bool = False
    github_token: str | None = None
    setup_completion: bool = True

    # ── Runtime policy ───────────────────────────────────────────
    staging_dir: str = "/tmp"
    fetch_timeout: int = Field(default=300, gt=0)
    state_dir: str = "/var/lib/tenvctl"
    aur_helper: str = "yay"
    aur_build_user: str | None = None

    @field_validator("version", "cosign_version")
    @classmethod
    def _normalize_version(cls, value: str) -> str:
        return normalize_version(value)

    @field_validator("github_token")
    @classmethod
    def _empty_token_is_none(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()

    @field_validator("users")
    @classmethod
    def _strip_users(cls, value: list[str]) -> list[str]:
        return [u.strip() for u in value if u and u.strip()]

    def redacted(self) -> dict:
        """Settings as a dict with the token masked."""
        data = self.model_dump(mode="json")
        if data.get("github_token"):
            data["github_token"] = "***"
        return data
