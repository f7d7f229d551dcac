"""
HostState — what the last run observed, serialized to state.json.

This is a report for ``tenvctl status``. It is disposable: delete it
and the next apply recreates it. Idempotency decisions are always made
against the live package database and files, never against this file.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class PackageRecordState(BaseModel):
    """Snapshot of one installed package record."""

    package: str
    installed: bool = False
    version: str = ""
    provider: str = ""
    installed_at: str = ""
    observed_at: str = Field(default_factory=_now_iso)


class RunRecord(BaseModel):
    """Summary of the last run."""

    run_id: str = ""
    started_at: str = ""
    ended_at: str = ""
    status: str = ""  # ok, partial, failed
    dry_run: bool = False
    tasks_total: int = 0
    tasks_changed: int = 0
    tasks_failed: int = 0
    tasks_skipped: int = 0


class HostState(BaseModel):
    """Root state model — serialized to <state_dir>/state.json."""

    # ── Schema ───────────────────────────────────────────────────
    schema_version: int = 1

    # ── Host ─────────────────────────────────────────────────────
    os_family: str = ""
    strategy: str = ""
    architecture: str = ""

    # ── Timestamps ───────────────────────────────────────────────
    created_at: str = Field(default_factory=_now_iso)
    updated_at: str = Field(default_factory=_now_iso)

    # ── Observed packages ────────────────────────────────────────
    packages: dict[str, PackageRecordState] = Field(default_factory=dict)
    users: list[str] = Field(default_factory=list)

    # ── Last run ─────────────────────────────────────────────────
    last_run: RunRecord = Field(default_factory=RunRecord)

    metadata: dict[str, Any] = Field(default_factory=dict)

    def touch(self) -> None:
        """Update the updated_at timestamp."""
        self.updated_at = _now_iso()

    def set_package(self, package: str, **kwargs: Any) -> None:
        """Update or create a package record entry."""
        if package in self.packages:
            for key, value in kwargs.items():
                setattr(self.packages[package], key, value)
            self.packages[package].observed_at = _now_iso()
        else:
            self.packages[package] = PackageRecordState(package=package, **kwargs)
