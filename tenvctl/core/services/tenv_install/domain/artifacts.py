"""
L1 Domain — Install request and artifact records (pure).

Value objects that flow through the fetch → verify → install chain.
No I/O, no subprocess.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

LATEST = "latest"

# X.Y.Z with an optional prerelease ("2.7.0-rc1"); no build metadata
_VERSION_RE = re.compile(r"^v?(\d+\.\d+\.\d+(?:-[0-9A-Za-z.]+)?)$")

# Packaged prereleases are spelled "2.7.0~rc1" (deb, rpm), "2.7.0_rc1"
# (pacman) or "2.7.0-rc1". A hyphen followed by a digit starts
# the package release ("4.1.0-1").
_INSTALLED_RE = re.compile(r"(\d+\.\d+\.\d+)(?:[~_]([0-9A-Za-z.]+)|-([A-Za-z][0-9A-Za-z.]*))?")


def normalize_version(raw: str) -> str:
    """Normalise a requested version: strip a leading ``v``.

    ``"latest"`` is returned untouched. Anything that is not a semantic
    version raises ``ValueError``.
    """
    value = (raw or "").strip()
    if value.lower() == LATEST:
        return LATEST
    m = _VERSION_RE.match(value)
    if not m:
        raise ValueError(f"Not a semantic version (X.Y.Z or X.Y.Z-pre): {raw!r}")
    return m.group(1)


def normalize_installed_version(raw: str) -> str:
    """Reduce a package-manager version string to the requested form.

    Handles epochs (``1:2.4.1``), release suffixes (``4.1.0-1``), a
    leading ``v`` and packaged prereleases (``2.7.0~rc1`` → ``2.7.0-rc1``).
    """
    value = (raw or "").strip()
    if ":" in value:
        value = value.split(":", 1)[1]
    value = value.lstrip("v")
    m = _INSTALLED_RE.match(value)
    if not m:
        return value
    prerelease = m.group(2) or m.group(3)
    return f"{m.group(1)}-{prerelease}" if prerelease else m.group(1)


class PackagePhase(str, Enum):
    """Per-package install state machine."""

    ABSENT = "absent"
    FETCHING = "fetching"
    VERIFYING = "verifying"
    INSTALLING = "installing"
    INSTALLED = "installed"
    FAILED = "failed"


@dataclass(frozen=True)
class InstallRequest:
    """What to install. ``version`` is semver or ``"latest"``."""

    tool: str
    version: str
    os_family: str
    architecture: str

    @property
    def is_latest(self) -> bool:
        return self.version == LATEST


@dataclass(frozen=True)
class ArtifactDescriptor:
    """Where to fetch an artifact and how to check it.

    ``url`` is empty for source-build strategies.
    """

    tool: str
    version: str
    provider: str
    url: str = ""
    filename: str = ""
    staging_path: str = ""
    checksums_url: str = ""
    signature_url: str = ""
    certificate_url: str = ""
    certificate_identity: str = ""

    @property
    def downloadable(self) -> bool:
        return bool(self.url)

    @property
    def sidecar_path(self) -> str:
        return f"{self.staging_path}.sha256" if self.staging_path else ""


@dataclass(frozen=True)
class LocalArtifact:
    """A fetched file on disk."""

    descriptor: ArtifactDescriptor
    path: str
    sha256: str
    from_cache: bool = False


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of checking an artifact."""

    verified: bool
    method: str
    reason: str = ""


@dataclass(frozen=True)
class InstalledPackageRecord:
    """What the package database says is installed."""

    package: str
    installed: bool
    version: str = ""
    provider: str = ""

    def satisfies(self, version: str) -> bool:
        """Whether this record already meets a concrete version."""
        return self.installed and bool(version) and self.version == version
