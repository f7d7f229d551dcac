"""
L4 Execution — Package installer.

One ``PackageInstaller`` per target package walks the state machine

    absent → fetching → verifying → installing → installed

and any step may drop to ``failed``. Each step is a separate task in
the convergence graph (``download_tenv`` → ``verify_tenv_artifact`` →
``package:tenv``), and ``is_installed()`` is the check of every one of
them.

Invariants:
- ``install()`` refuses an artifact that has not verified.
- Staging files are removed after install, on success or failure.
- If the package database already holds the requested version, no
  step fetches, verifies or installs anything.
- Package-manager success is not enough: the installed binary must
  report the expected version afterwards.
"""

from __future__ import annotations

import logging

from tenvctl.core.errors import InstallFailed, TenvctlError
from tenvctl.core.services.tenv_install.data.constants import RELEASES
from tenvctl.core.services.tenv_install.detection.package_records import query_package
from tenvctl.core.services.tenv_install.detection.tool_version import get_tool_version
from tenvctl.core.services.tenv_install.domain.artifacts import (
    ArtifactDescriptor,
    InstalledPackageRecord,
    InstallRequest,
    LocalArtifact,
    PackagePhase,
    VerificationResult,
)
from tenvctl.core.services.tenv_install.domain.platform import Strategy
from tenvctl.core.services.tenv_install.execution.fetcher import ArtifactFetcher, remove_staged
from tenvctl.core.services.tenv_install.execution.subprocess_runner import (
    Runner,
    describe_failure,
    run_command,
)
from tenvctl.core.services.tenv_install.execution.verifier import SignatureVerifier
from tenvctl.core.services.tenv_install.resolver.artifact_location import ArtifactLocator

logger = logging.getLogger(__name__)

_RECORD_PM = {
    Strategy.DEBIAN: "apt",
    Strategy.REDHAT: "rpm",
    Strategy.ARCH: "pacman",
}


class PackageInstaller:
    """Fetch, verify and install one tool through the host's strategy."""

    def __init__(
        self,
        request: InstallRequest,
        strategy: Strategy,
        *,
        locator: ArtifactLocator,
        fetcher: ArtifactFetcher,
        verifier: SignatureVerifier,
        run: Runner = run_command,
        aur_helper: str = "yay",
        aur_build_user: str | None = None,
    ):
        self.request = request
        self.strategy = strategy
        self._locator = locator
        self._fetcher = fetcher
        self._verifier = verifier
        self._run = run
        self.aur_helper = aur_helper
        self.aur_build_user = aur_build_user

        self.phase = PackagePhase.ABSENT
        self.failure: str | None = None
        self.artifact: LocalArtifact | None = None
        self.verification: VerificationResult | None = None
        self._descriptor: ArtifactDescriptor | None = None

    # ── Identity ────────────────────────────────────────────────

    @property
    def tool(self) -> str:
        return self.request.tool

    @property
    def package_name(self) -> str:
        """Name in the package database (``tenv-bin`` on Arch)."""
        if self.strategy is Strategy.ARCH:
            source = RELEASES[self.tool]
            return source.aur_package or source.pacman_package or self.tool
        return self.tool

    @property
    def uses_aur(self) -> bool:
        return self.strategy is Strategy.ARCH and bool(RELEASES[self.tool].aur_package)

    def describe(self) -> ArtifactDescriptor:
        """Descriptor for this run; resolves "latest" on first call."""
        if self._descriptor is None:
            self._descriptor = self._locator.locate(self.request, self.strategy)
        return self._descriptor

    def expected_version(self) -> str | None:
        """Version the installed package must report.

        On Arch the package repositories decide what "latest" is, so an
        unpinned request accepts whatever they provide.
        """
        if self.strategy is Strategy.ARCH and self.request.is_latest:
            return None
        return self.describe().version

    # ── Current state ───────────────────────────────────────────

    def record(self) -> InstalledPackageRecord:
        return query_package(
            self.package_name,
            _RECORD_PM[self.strategy],
            provider=self.strategy.provider,
            run=self._run,
        )

    def is_installed(self) -> bool:
        """Whether the package database already meets the request."""
        rec = self.record()
        if not rec.installed:
            return False
        expected = self.expected_version()
        return expected is None or rec.satisfies(expected)

    def has_staged_artifact(self) -> bool:
        return self._fetcher.cached(self.describe()) is not None

    # ── Steps ───────────────────────────────────────────────────

    def _fail(self, exc: TenvctlError) -> None:
        self.phase = PackagePhase.FAILED
        self.failure = str(exc)
        logger.error("%s: %s", self.tool, exc)

    def fetch(self) -> LocalArtifact:
        self.phase = PackagePhase.FETCHING
        try:
            self.artifact = self._fetcher.fetch(self.describe())
        except TenvctlError as e:
            self._fail(e)
            raise
        return self.artifact

    def verify(self) -> VerificationResult:
        self.phase = PackagePhase.VERIFYING
        if self.strategy is Strategy.ARCH:
            self.verification = VerificationResult(verified=True, method="package-manager")
            return self.verification

        try:
            if self.artifact is None:
                self.artifact = self._fetcher.cached(self.describe())
            if self.artifact is None:
                raise InstallFailed(
                    f"No fetched artifact to verify for {self.tool}",
                    os_family=self.request.os_family,
                    version=self.describe().version,
                    step=f"verify_{self.tool}",
                )
            self.verification = self._verifier.verify(
                self.artifact, self.strategy, os_family=self.request.os_family,
            )
        except TenvctlError as e:
            self.verification = VerificationResult(False, "sha256", getattr(e, "reason", e.message))
            self.cleanup()
            self._fail(e)
            raise
        return self.verification

    def install_command(self) -> list[str]:
        if self.strategy is Strategy.DEBIAN:
            return ["dpkg", "-i", self.artifact.path if self.artifact else ""]
        if self.strategy is Strategy.REDHAT:
            return [
                "rpm", "-U", "--replacepkgs", "--oldpackage",
                self.artifact.path if self.artifact else "",
            ]
        if self.uses_aur:
            return [self.aur_helper, "-S", "--noconfirm", "--needed", self.package_name]
        return ["pacman", "-S", "--noconfirm", "--needed", self.package_name]

    def install(self) -> None:
        """Install the verified artifact and assert the result.

        Raises:
            InstallFailed: Unverified artifact, package manager error,
                or a failing post-install version check.
        """
        if self.strategy is Strategy.ARCH and self.verification is None:
            self.verify()

        try:
            if self.verification is None or not self.verification.verified:
                raise InstallFailed(
                    f"Refusing to install unverified {self.tool} artifact",
                    os_family=self.request.os_family,
                    version=self.describe().version,
                    step=f"install_{self.tool}",
                )
            if self.strategy is not Strategy.ARCH and self.artifact is None:
                raise InstallFailed(
                    f"No verified {self.tool} artifact staged",
                    os_family=self.request.os_family,
                    version=self.describe().version,
                    step=f"install_{self.tool}",
                )

            self.phase = PackagePhase.INSTALLING
            cmd = self.install_command()
            logger.info("Installing %s: %s", self.package_name, " ".join(cmd))
            result = self._run(
                cmd,
                timeout=600,
                run_as=self.aur_build_user if self.uses_aur else None,
            )
            if not result["ok"]:
                raise InstallFailed(
                    f"{self.strategy.provider} install of {self.package_name} failed: "
                    f"{describe_failure(result)}",
                    os_family=self.request.os_family,
                    version=self.describe().version,
                    step=f"install_{self.tool}",
                )

            self.assert_installed()
        except TenvctlError as e:
            self._fail(e)
            raise
        finally:
            self.cleanup()

        self.phase = PackagePhase.INSTALLED

    def verify_install(self) -> bool:
        """Post-condition: the binary runs and reports the expected version."""
        reported = get_tool_version(self.tool, run=self._run)
        if reported is None:
            return False
        expected = self.expected_version()
        return expected is None or reported == expected

    def assert_installed(self) -> None:
        """Raise ``InstallFailed`` unless ``verify_install`` holds."""
        if self.verify_install():
            return
        reported = get_tool_version(self.tool, run=self._run)
        raise InstallFailed(
            f"{self.tool} version check failed: expected "
            f"{self.expected_version() or 'any version'}, got {reported or 'no usable binary'}",
            os_family=self.request.os_family,
            version=self.request.version,
            step=f"verify_{self.tool}",
        )

    def cleanup(self) -> bool:
        """Remove staged files for this package."""
        if self.strategy is Strategy.ARCH:
            return False
        removed = remove_staged(self.describe())
        self.artifact = None
        if removed:
            logger.debug("Removed staged %s", self.describe().staging_path)
        return removed
