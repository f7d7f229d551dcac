"""
L3 Detection — Installed package records.

Read-only probes against the native package database. The database is
the persistent truth the installer compares requests against.
"""

from __future__ import annotations

import logging

from tenvctl.core.services.tenv_install.domain.artifacts import (
    InstalledPackageRecord,
    normalize_installed_version,
)
from tenvctl.core.services.tenv_install.execution.subprocess_runner import Runner, run_command

logger = logging.getLogger(__name__)


def query_package(
    package: str,
    pkg_manager: str,
    *,
    provider: str = "",
    run: Runner = run_command,
) -> InstalledPackageRecord:
    """Look up one package in the package database.

    Uses the appropriate checker for the given package manager:
      apt    → dpkg-query -W -f='${Status} ${Version}' PKG
      dnf    → rpm -q --qf '%{VERSION}' PKG
      pacman → pacman -Q PKG

    Returns:
        A record; ``installed=False`` when absent or the check failed.
    """
    provider = provider or pkg_manager
    absent = InstalledPackageRecord(package=package, installed=False, provider=provider)

    if pkg_manager == "apt":
        r = run(["dpkg-query", "-W", "-f=${Status} ${Version}", package], timeout=10)
        out = r.get("stdout", "").strip()
        if not r["ok"] or "install ok installed" not in out:
            return absent
        version = out.split("install ok installed", 1)[1].strip()
    elif pkg_manager in ("dnf", "yum", "rpm"):
        r = run(["rpm", "-q", "--qf", "%{VERSION}", package], timeout=10)
        if not r["ok"]:
            return absent
        version = r.get("stdout", "").strip()
    elif pkg_manager == "pacman":
        r = run(["pacman", "-Q", package], timeout=10)
        if not r["ok"]:
            return absent
        parts = r.get("stdout", "").split()
        version = parts[1] if len(parts) > 1 else ""
    else:
        logger.warning("No package checker for pm=%s (checking %s)", pkg_manager, package)
        return absent

    return InstalledPackageRecord(
        package=package,
        installed=True,
        version=normalize_installed_version(version),
        provider=provider,
    )


def is_pkg_installed(package: str, pkg_manager: str, *, run: Runner = run_command) -> bool:
    """Check if a single system package is installed."""
    return query_package(package, pkg_manager, run=run).installed
