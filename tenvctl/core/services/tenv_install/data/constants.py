"""
L0 Data — Release sources, architecture names and package lists.

Pure data. No logic. No imports beyond stdlib.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ReleaseSource:
    """Where a tool's release artifacts live and how they are named.

    Filename templates take ``{version}`` (bare semver) and ``{arch}``
    (package-format architecture name).
    """

    tool: str
    repo: str
    deb_name: str
    rpm_name: str
    checksums_name: str
    aur_package: str
    pacman_package: str
    version_command: tuple[str, ...]
    version_pattern: str
    # Keyless cosign identity; empty = checksum verification only
    certificate_identity: str = ""

    @property
    def download_base(self) -> str:
        return f"https://github.com/{self.repo}/releases/download/v{{version}}/"

    @property
    def latest_api_url(self) -> str:
        return f"https://api.github.com/repos/{self.repo}/releases/latest"


RELEASES: dict[str, ReleaseSource] = {
    "tenv": ReleaseSource(
        tool="tenv",
        repo="tofuutils/tenv",
        deb_name="tenv_v{version}_{arch}.deb",
        rpm_name="tenv_v{version}_{arch}.rpm",
        checksums_name="tenv_v{version}_checksums.txt",
        aur_package="tenv-bin",
        pacman_package="",
        version_command=("tenv", "version"),
        version_pattern=r"tenv version v?(\d+\.\d+\.\d+(?:-[0-9A-Za-z.]+)?)",
        certificate_identity=(
            "https://github.com/tofuutils/tenv/.github/workflows/"
            "release.yml@refs/tags/v{version}"
        ),
    ),
    "cosign": ReleaseSource(
        tool="cosign",
        repo="sigstore/cosign",
        deb_name="cosign_{version}_{arch}.deb",
        rpm_name="cosign-{version}-1.{arch}.rpm",
        checksums_name="cosign_checksums.txt",
        aur_package="",
        pacman_package="cosign",
        version_command=("cosign", "version"),
        version_pattern=r"GitVersion:\s+v?(\d+\.\d+\.\d+(?:-[0-9A-Za-z.]+)?)",
    ),
}

CERTIFICATE_OIDC_ISSUER = "https://token.actions.githubusercontent.com"

# uname -m → (deb architecture, rpm architecture)
ARCH_MAP: dict[str, tuple[str, str]] = {
    "x86_64": ("amd64", "x86_64"),
    "amd64": ("amd64", "x86_64"),
    "aarch64": ("arm64", "aarch64"),
    "arm64": ("arm64", "aarch64"),
    "armv7l": ("armhf", "armv7hl"),
    "armhf": ("armhf", "armv7hl"),
    "i686": ("i386", "i686"),
    "i386": ("i386", "i686"),
}

# Helpers the release downloads and the tenv runtime rely on.
PREREQUISITE_PACKAGES: tuple[str, ...] = ("curl", "jq", "unzip", "ca-certificates")

# Prerequisites the download tasks must wait for.
DOWNLOAD_PREREQUISITES: tuple[str, ...] = ("curl", "ca-certificates")
