"""
L4 Execution — Auxiliary system packages.

Installs the helpers the download and runtime steps rely on (curl, jq,
unzip, ca-certificates) through the host's native package manager,
only when missing.
"""

from __future__ import annotations

import logging

from tenvctl.core.errors import InstallFailed
from tenvctl.core.services.tenv_install.detection.package_records import is_pkg_installed
from tenvctl.core.services.tenv_install.execution.subprocess_runner import (
    Runner,
    describe_failure,
    run_command,
)

logger = logging.getLogger(__name__)


def build_pkg_install_cmd(packages: list[str], pm: str) -> list[str]:
    """Build a package-install command for a list of packages.

    Args:
        packages: Package names to install.
        pm: Package manager ID.

    Returns:
        Command list suitable for subprocess.run().
    """
    if pm == "apt":
        return ["apt-get", "install", "-y", "--no-install-recommends"] + packages
    if pm == "dnf":
        return ["dnf", "install", "-y"] + packages
    if pm == "yum":
        return ["yum", "install", "-y"] + packages
    if pm == "pacman":
        return ["pacman", "-S", "--noconfirm", "--needed"] + packages
    raise ValueError(f"No install command for package manager '{pm}'")


class PackageIndex:
    """The native package lists, refreshed at most once per run.

    Only apt is refreshed; its lists are empty on fresh Debian and Ubuntu
    images.
    """

    def __init__(self, pm: str, *, run: Runner = run_command):
        self.pm = pm
        self._run = run
        self.refreshed = False

    def ensure_fresh(self) -> None:
        if self.pm != "apt" or self.refreshed:
            return
        result = self._run(
            ["apt-get", "update"],
            timeout=300,
            env_overrides={"DEBIAN_FRONTEND": "noninteractive"},
        )
        if not result["ok"]:
            raise InstallFailed(
                f"apt-get update failed: {describe_failure(result)}",
                step="apt-get update",
            )
        self.refreshed = True
        logger.info("Refreshed apt package lists")


class PrerequisitePackage:
    """One native package that must be present."""

    def __init__(
        self,
        name: str,
        pm: str,
        *,
        run: Runner = run_command,
        index: PackageIndex | None = None,
    ):
        self.name = name
        self.pm = pm
        self._run = run
        self._index = index

    def is_installed(self) -> bool:
        return is_pkg_installed(self.name, self.pm, run=self._run)

    def install(self) -> str:
        if self._index is not None:
            self._index.ensure_fresh()
        cmd = build_pkg_install_cmd([self.name], self.pm)
        env = {"DEBIAN_FRONTEND": "noninteractive"} if self.pm == "apt" else None
        result = self._run(cmd, timeout=300, env_overrides=env)
        if not result["ok"]:
            raise InstallFailed(
                f"Installing {self.name} failed: {describe_failure(result)}",
                step=f"package:{self.name}",
            )
        logger.info("Installed %s via %s", self.name, self.pm)
        return f"installed {self.name}"
