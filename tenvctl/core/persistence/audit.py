"""
Audit ledger — one NDJSON line per apply.

``<state_dir>/audit.ndjson`` records every run, dry runs included:
which tasks changed, which failed and with what error. Lines are only
ever appended.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_AUDIT_FILE = "audit.ndjson"


class AuditEntry(BaseModel):
    """Summary of one convergence run."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    operation_id: str = ""         # run id
    operation_type: str = ""       # apply, dry-run

    status: str = ""               # ok, partial, failed
    tasks_total: int = 0
    tasks_changed: int = 0
    tasks_failed: int = 0
    tasks_skipped: int = 0
    changed: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    # os_family, strategy, requested version
    context: dict[str, Any] = Field(default_factory=dict)


class AuditWriter:
    """Appends run summaries to the ledger and reads the latest back.

    Args:
        path: Explicit ledger file.
        state_dir: Directory holding ``audit.ndjson`` (used when no
            ``path`` is given).
    """

    def __init__(self, path: Path | None = None, state_dir: Path | None = None):
        if path is None:
            path = Path(state_dir or ".") / DEFAULT_AUDIT_FILE
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def write(self, entry: AuditEntry) -> None:
        """Append one entry. An unwritable ledger is logged, not raised."""
        line = json.dumps(entry.model_dump(mode="json"), ensure_ascii=False)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError as e:
            logger.error("Cannot append to audit ledger %s: %s", self._path, e)
            return
        logger.debug("Audit: %s %s → %s", entry.operation_type, entry.operation_id, entry.status)

    def read_recent(self, n: int = 10) -> list[AuditEntry]:
        """Up to ``n`` entries, newest first. Corrupt lines are skipped."""
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.error("Cannot read audit ledger %s: %s", self._path, e)
            return []

        recent: list[AuditEntry] = []
        for line in reversed(raw.splitlines()):
            if len(recent) >= n:
                break
            if not line.strip():
                continue
            try:
                recent.append(AuditEntry.model_validate_json(line))
            except ValidationError:
                logger.warning("Skipping corrupt line in %s", self._path)
        return recent
