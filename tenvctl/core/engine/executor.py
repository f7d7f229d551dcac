"""
Engine executor — the convergence loop.

Takes a graph of tasks, orders it by dependency, and for each task
compares current state with desired state before touching anything:

    validate graph → order → for each task: check → (apply) → receipt

A task whose dependency failed is skipped, as is everything that
depends on it. Tasks with no path to the failure still run, so one
user's broken profile never blocks another user's.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Callable

from tenvctl.core.errors import TenvctlError
from tenvctl.core.models.action import Receipt
from tenvctl.core.persistence.audit import AuditEntry, AuditWriter
from tenvctl.core.services.tenv_install.domain.dag import topological_order, validate_dag

logger = logging.getLogger(__name__)


class GraphError(Exception):
    """Raised when the task graph is malformed (duplicate, dangling or cyclic)."""


@dataclass
class Task:
    """One convergence unit.

    ``check`` returns True when the desired state already holds.
    ``apply`` makes it hold and returns a short description.
    Both may raise; the engine turns exceptions into failed receipts.
    """

    id: str
    kind: str
    check: Callable[[], bool]
    apply: Callable[[], str]
    depends_on: list[str] = field(default_factory=list)
    description: str = ""
    group: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind,
            "group": self.group,
            "description": self.description,
            "depends_on": list(self.depends_on),
        }


@dataclass
class ExecutionReport:
    """Result of converging a task graph."""

    run_id: str = ""
    dry_run: bool = False
    started_at: str = ""
    ended_at: str = ""
    receipts: list[Receipt] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.receipts)

    @property
    def changed(self) -> int:
        return sum(1 for r in self.receipts if r.status == "changed")

    @property
    def unchanged(self) -> int:
        return sum(1 for r in self.receipts if r.status == "ok")

    @property
    def pending(self) -> int:
        return sum(1 for r in self.receipts if r.status == "pending")

    @property
    def failed(self) -> int:
        return sum(1 for r in self.receipts if r.failed)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.receipts if r.status == "skipped")

    @property
    def all_ok(self) -> bool:
        return self.failed == 0 and self.skipped == 0

    @property
    def status(self) -> str:
        if self.failed == 0 and self.skipped == 0:
            return "ok"
        if self.changed + self.unchanged > 0:
            return "partial"
        return "failed"

    def receipt(self, task_id: str) -> Receipt | None:
        for r in self.receipts:
            if r.task_id == task_id:
                return r
        return None

    def changed_ids(self) -> list[str]:
        return [r.task_id for r in self.receipts if r.changed]

    def to_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "dry_run": self.dry_run,
            "status": self.status,
            "total": self.total,
            "changed": self.changed,
            "unchanged": self.unchanged,
            "pending": self.pending,
            "failed": self.failed,
            "skipped": self.skipped,
            "receipts": [r.model_dump(mode="json") for r in self.receipts],
        }


def _error_text(exc: Exception) -> str:
    if isinstance(exc, TenvctlError):
        return str(exc)
    return f"{type(exc).__name__}: {exc}"


def _run_task(task: Task, dry_run: bool) -> Receipt:
    start = time.monotonic()
    try:
        if task.check():
            receipt = Receipt.unchanged(task.id, task.kind)
        elif dry_run:
            receipt = Receipt.would_change(task.id, task.kind, reason=task.description)
        else:
            output = task.apply()
            receipt = Receipt.applied(task.id, task.kind, output=output or "")
    except Exception as e:
        if not isinstance(e, TenvctlError):
            logger.exception("Task %s raised", task.id)
        meta = e.context() if isinstance(e, TenvctlError) else {}
        receipt = Receipt.failure(task.id, _error_text(e), task.kind, metadata=meta)
    receipt.duration_ms = int((time.monotonic() - start) * 1000)
    return receipt


def execute_graph(
    tasks: list[Task],
    *,
    dry_run: bool = False,
    run_id: str | None = None,
) -> ExecutionReport:
    """Converge every task in dependency order.

    Args:
        tasks: The task graph.
        dry_run: Check only; out-of-state tasks are reported ``pending``
            and their dependents are not checked.
        run_id: Identifier for the report (generated if omitted).

    Raises:
        GraphError: The graph is invalid. Nothing has run.
    """
    errors = validate_dag(tasks)
    if errors:
        raise GraphError("; ".join(errors))

    report = ExecutionReport(
        run_id=run_id or generate_run_id(),
        dry_run=dry_run,
        started_at=datetime.now(UTC).isoformat(),
    )
    status_by_id: dict[str, str] = {}

    for task in topological_order(tasks):
        blocked = [d for d in task.depends_on if status_by_id.get(d) in ("failed", "skipped")]
        waiting = [d for d in task.depends_on if status_by_id.get(d) == "pending"]

        if blocked:
            receipt = Receipt.skip(
                task.id, reason=f"dependency not converged: {', '.join(blocked)}", kind=task.kind,
            )
        elif waiting:
            receipt = Receipt.would_change(
                task.id, task.kind, reason=f"after {', '.join(waiting)}",
            )
        else:
            receipt = _run_task(task, dry_run)

        status_by_id[task.id] = receipt.status
        report.receipts.append(receipt)

        marker = {"ok": "✓", "changed": "✓", "failed": "✗"}.get(receipt.status, "⊘")
        logger.info("%s %s → %s", marker, task.id, receipt.status)
        if receipt.failed:
            logger.error("%s failed: %s", task.id, receipt.error)

    report.ended_at = datetime.now(UTC).isoformat()
    return report


def write_audit_entry(report: ExecutionReport, audit_writer: AuditWriter, **context: object) -> None:
    """Append a run summary to the audit ledger."""
    entry = AuditEntry(
        operation_id=report.run_id,
        operation_type="dry-run" if report.dry_run else "apply",
        status=report.status,
        tasks_total=report.total,
        tasks_changed=report.changed,
        tasks_failed=report.failed,
        tasks_skipped=report.skipped,
        changed=report.changed_ids(),
        errors=[f"{r.task_id}: {r.error}" for r in report.receipts if r.failed],
        context=dict(context),
    )
    audit_writer.write(entry)


def generate_run_id() -> str:
    """Generate a unique run ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"run-{now}-{short}"
