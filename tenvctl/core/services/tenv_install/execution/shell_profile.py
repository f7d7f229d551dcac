"""
L4 Execution — Per-user shell profile reconciliation.

Writes the tenv environment into each user's profile as keyed owned
lines (see ``domain.profile_lines``), creates the per-user state and
dialect config directories, and generates shell completion scripts.

Every operation has a read-only ``*_converged`` check so the engine
can skip work that is already done; a second apply never rewrites a
file whose content is already right.
"""

from __future__ import annotations

import logging
import os
import pwd
import tempfile
from dataclasses import dataclass
from pathlib import Path

from tenvctl.core.errors import InstallFailed
from tenvctl.core.services.tenv_install.domain.profile_lines import (
    OwnedLine,
    PatchResult,
    export_line,
    export_match,
    reconcile_lines,
    source_line,
)
from tenvctl.core.services.tenv_install.domain.users import UserTarget
from tenvctl.core.services.tenv_install.execution.subprocess_runner import (
    Runner,
    describe_failure,
    run_command,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShellOptions:
    """Which optional lines a user's profile should carry."""

    auto_install: bool = False
    github_token: str | None = None
    setup_completion: bool = True


# ── Keys ────────────────────────────────────────────────────────


def root_key(target: UserTarget) -> str:
    return f"tenv_root_{target.username}"


def auto_install_key(target: UserTarget) -> str:
    return f"tenv_auto_install_{target.username}"


def github_token_key(target: UserTarget) -> str:
    return f"tenv_github_token_{target.username}"


def completion_key(target: UserTarget) -> str:
    return f"tenv_completion_{target.username}_{target.shell}"


def desired_lines(target: UserTarget, options: ShellOptions) -> list[OwnedLine]:
    """The full owned-line set for one user. Absent options map to ``content=None``."""
    shell = target.shell
    lines = [
        OwnedLine(
            key=root_key(target),
            content=export_line(shell, "TENV_ROOT", target.tenv_root),
            match=export_match(shell, "TENV_ROOT"),
        ),
        OwnedLine(
            key=auto_install_key(target),
            content=export_line(shell, "TENV_AUTO_INSTALL", "true") if options.auto_install else None,
            match=export_match(shell, "TENV_AUTO_INSTALL"),
        ),
        OwnedLine(
            key=github_token_key(target),
            content=(
                export_line(shell, "TENV_GITHUB_TOKEN", options.github_token)
                if options.github_token
                else None
            ),
            match=export_match(shell, "TENV_GITHUB_TOKEN"),
            secret=True,
        ),
    ]
    if target.completion_needs_loader:
        lines.append(completion_line(target, enabled=options.setup_completion))
    return lines


def completion_line(target: UserTarget, *, enabled: bool) -> OwnedLine:
    return OwnedLine(
        key=completion_key(target),
        content=source_line(target.completion_path) if enabled else None,
    )


# ── File helpers ────────────────────────────────────────────────


def _owner_ids(username: str) -> tuple[int, int] | None:
    try:
        entry = pwd.getpwnam(username)
    except KeyError:
        return None
    return entry.pw_uid, entry.pw_gid


def _chown(path: Path, username: str) -> None:
    if os.geteuid() != 0:
        return
    ids = _owner_ids(username)
    if ids is not None:
        os.chown(path, *ids)


def _write_atomic(path: Path, content: str, username: str, *, private: bool = False) -> None:
    """Replace a file's content, keeping its mode (0644 for new files).

    ``private`` drops group and other permissions.
    """
    existing = path.exists()
    mode = path.stat().st_mode & 0o7777 if existing else 0o644
    if private:
        mode &= ~0o077

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.chmod(tmp, mode)
        if existing and os.geteuid() == 0:
            st = path.stat()
            os.chown(tmp, st.st_uid, st.st_gid)
        os.replace(tmp, path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise
    if not existing:
        _chown(path, username)


class ShellProfileReconciler:
    """Converge profile files, directories and completions for users."""

    def __init__(self, *, run: Runner = run_command):
        self._run = run

    # ── Directories ─────────────────────────────────────────────

    @staticmethod
    def directory_converged(path: str) -> bool:
        return Path(path).is_dir()

    @staticmethod
    def ensure_directory(path: str, target: UserTarget) -> str:
        """Create ``path`` (and parents under the home) owned by the user."""
        p = Path(path)
        home = Path(target.home)
        created: list[Path] = []
        current = p
        while not current.exists() and current != current.parent:
            created.append(current)
            current = current.parent
        p.mkdir(parents=True, exist_ok=True)
        for d in reversed(created):
            if d == home or home in d.parents:
                _chown(d, target.username)
        return f"created directory {p}"

    # ── Owned lines ─────────────────────────────────────────────

    @staticmethod
    def _read(path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ""

    def plan_lines(self, target: UserTarget, lines: list[OwnedLine]) -> PatchResult:
        """What reconciling ``lines`` into the profile would do."""
        return reconcile_lines(self._read(Path(target.profile_path)), lines)

    def lines_converged(self, target: UserTarget, lines: list[OwnedLine]) -> bool:
        return not self.plan_lines(target, lines).changed

    def apply_lines(self, target: UserTarget, lines: list[OwnedLine]) -> PatchResult:
        """Write the owned lines into the profile if anything differs."""
        path = Path(target.profile_path)
        result = reconcile_lines(self._read(path), lines)
        if not result.changed:
            return result

        path.parent.mkdir(parents=True, exist_ok=True)
        private = any(ln.secret and ln.content is not None for ln in lines)
        _write_atomic(path, result.text, target.username, private=private)
        logger.info(
            "%s: added=%s replaced=%s removed=%s",
            path, result.added, result.replaced, result.removed,
        )
        return result

    # ── Completion ──────────────────────────────────────────────

    def _generate_completion(self, target: UserTarget) -> str:
        result = self._run(["tenv", "completion", target.shell], timeout=30)
        if not result["ok"]:
            raise InstallFailed(
                f"tenv completion {target.shell} failed: {describe_failure(result)}",
                step=f"exec:{completion_key(target)}",
            )
        return result.get("stdout", "")

    def completion_converged(self, target: UserTarget) -> bool:
        script = Path(target.completion_path)
        if not script.is_file():
            return False
        if self._read(script) != self._generate_completion(target):
            return False
        if target.completion_needs_loader:
            return self.lines_converged(target, [completion_line(target, enabled=True)])
        return True

    def install_completion(self, target: UserTarget) -> str:
        script = Path(target.completion_path)
        content = self._generate_completion(target)
        if self._read(script) != content:
            script.parent.mkdir(parents=True, exist_ok=True)
            _write_atomic(script, content, target.username)
        if target.completion_needs_loader:
            self.apply_lines(target, [completion_line(target, enabled=True)])
        return f"wrote {script}"

    def completion_absent(self, target: UserTarget) -> bool:
        if Path(target.completion_path).exists():
            return False
        if target.completion_needs_loader:
            return self.lines_converged(target, [completion_line(target, enabled=False)])
        return True

    def remove_completion(self, target: UserTarget) -> str:
        Path(target.completion_path).unlink(missing_ok=True)
        if target.completion_needs_loader:
            self.apply_lines(target, [completion_line(target, enabled=False)])
        return f"removed completion for {target.username}"
