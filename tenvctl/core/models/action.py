"""
Receipt model — the result of one convergence task.

The engine asks each task whether it already holds, applies it if
not, and records the outcome here. Tasks raise; the engine never
does. Failures are captured in the receipt.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class Receipt(BaseModel):
    """Result of checking and (maybe) applying a task.

    Status values:
        ok       — already in the desired state, nothing done
        changed  — was out of state and has been fixed
        pending  — out of state, not fixed (dry run)
        skipped  — not attempted because a dependency failed
        failed   — check or apply raised
    """

    task_id: str
    kind: str = ""
    status: Literal["ok", "changed", "pending", "skipped", "failed"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    output: str = ""
    error: str | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the task ended converged."""
        return self.status in ("ok", "changed")

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @property
    def changed(self) -> bool:
        return self.status == "changed"

    @classmethod
    def unchanged(cls, task_id: str, kind: str = "", **kwargs: Any) -> Receipt:
        return cls(task_id=task_id, kind=kind, status="ok", **kwargs)

    @classmethod
    def applied(cls, task_id: str, kind: str = "", output: str = "", **kwargs: Any) -> Receipt:
        return cls(task_id=task_id, kind=kind, status="changed", output=output, **kwargs)

    @classmethod
    def would_change(cls, task_id: str, kind: str = "", reason: str = "", **kwargs: Any) -> Receipt:
        return cls(task_id=task_id, kind=kind, status="pending", output=reason, **kwargs)

    @classmethod
    def failure(cls, task_id: str, error: str, kind: str = "", **kwargs: Any) -> Receipt:
        return cls(task_id=task_id, kind=kind, status="failed", error=error, **kwargs)

    @classmethod
    def skip(cls, task_id: str, reason: str = "", kind: str = "", **kwargs: Any) -> Receipt:
        return cls(task_id=task_id, kind=kind, status="skipped", output=reason, **kwargs)
