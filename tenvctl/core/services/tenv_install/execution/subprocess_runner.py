"""
L4 Execution — Core subprocess runner.

The SINGLE PLACE where ``subprocess.run`` is called for install and
configuration operations. Every probe and mutation that shells out
goes through ``run_command`` so logging and error capture live here.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time
from typing import Any, Callable

logger = logging.getLogger(__name__)

Runner = Callable[..., dict[str, Any]]


def run_command(
    cmd: list[str],
    *,
    timeout: int = 120,
    env_overrides: dict[str, str] | None = None,
    cwd: str | None = None,
    run_as: str | None = None,
) -> dict[str, Any]:
    """Run a command and capture its outcome.

    Never raises for command failures; the caller decides what a
    non-zero exit means.

    Args:
        cmd: Command list for ``subprocess.run()``.
        timeout: Seconds before ``TimeoutExpired``.
        env_overrides: Extra env vars.
        cwd: Working directory for the command.
        run_as: Run as this user via ``runuser`` (only when we are root).

    Returns:
        ``{"ok": True, "stdout": "...", "stderr": "...", "returncode": 0, "elapsed_ms": N}``
        on success, ``{"ok": False, "error": "...", ...}`` on failure.
    """
    if run_as and os.geteuid() == 0:
        cmd = ["runuser", "-u", run_as, "--"] + cmd

    env = os.environ.copy()
    if env_overrides:
        for key, value in env_overrides.items():
            env[key] = os.path.expandvars(value)

    logger.debug("exec: %s", " ".join(cmd))
    start = time.monotonic()
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
            env=env,
            cwd=cwd,
        )
    except subprocess.TimeoutExpired:
        return {"ok": False, "returncode": None, "error": f"Command timed out ({timeout}s)"}
    except FileNotFoundError:
        return {"ok": False, "returncode": 127, "error": f"Command not found: {cmd[0]}"}
    except OSError as e:
        logger.exception("Subprocess error: %s", cmd)
        return {"ok": False, "returncode": None, "error": str(e)}

    elapsed_ms = int((time.monotonic() - start) * 1000)
    stdout = result.stdout or ""
    stderr = result.stderr[-2000:] if result.stderr else ""

    if result.returncode == 0:
        return {
            "ok": True,
            "returncode": 0,
            "stdout": stdout,
            "stderr": stderr,
            "elapsed_ms": elapsed_ms,
        }

    return {
        "ok": False,
        "returncode": result.returncode,
        "error": f"Command failed (exit {result.returncode})",
        "stdout": stdout[-2000:],
        "stderr": stderr,
        "elapsed_ms": elapsed_ms,
    }


def describe_failure(result: dict[str, Any]) -> str:
    """One-line summary of a failed ``run_command`` result."""
    parts = [result.get("error", "command failed")]
    stderr = (result.get("stderr") or "").strip()
    if stderr:
        parts.append(stderr.splitlines()[-1])
    return ": ".join(parts)
