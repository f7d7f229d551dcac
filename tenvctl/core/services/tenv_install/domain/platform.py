"""
L1 Domain — OS family → install strategy (pure).

The strategy set is closed: every host is debian-like, redhat-like or
arch-like, or the run is refused before anything is touched.
No I/O, no subprocess.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from tenvctl.core.errors import UnsupportedPlatform
from tenvctl.core.services.tenv_install.data.constants import ARCH_MAP


class Strategy(str, Enum):
    """Installation strategy tag."""

    DEBIAN = "debian-like"
    REDHAT = "redhat-like"
    ARCH = "arch-like"

    @property
    def package_manager(self) -> str:
        """Prerequisite package manager for this family."""
        return _PACKAGE_MANAGERS[self]

    @property
    def provider(self) -> str:
        """Provider tag recorded for installed artifacts."""
        return _PROVIDERS[self]

    @property
    def extension(self) -> str | None:
        """Artifact file extension, or None for source builds."""
        return _EXTENSIONS[self]


_PACKAGE_MANAGERS = {
    Strategy.DEBIAN: "apt",
    Strategy.REDHAT: "dnf",
    Strategy.ARCH: "pacman",
}

_PROVIDERS = {
    Strategy.DEBIAN: "dpkg",
    Strategy.REDHAT: "rpm",
    Strategy.ARCH: "aur",
}

_EXTENSIONS = {
    Strategy.DEBIAN: "deb",
    Strategy.REDHAT: "rpm",
    Strategy.ARCH: None,
}

# Family names as reported by facter / distro.like(), lower-cased.
_FAMILY_ALIASES: dict[str, Strategy] = {
    "debian": Strategy.DEBIAN,
    "ubuntu": Strategy.DEBIAN,
    "debian-like": Strategy.DEBIAN,
    "redhat": Strategy.REDHAT,
    "rhel": Strategy.REDHAT,
    "fedora": Strategy.REDHAT,
    "centos": Strategy.REDHAT,
    "redhat-like": Strategy.REDHAT,
    "archlinux": Strategy.ARCH,
    "arch": Strategy.ARCH,
    "arch-like": Strategy.ARCH,
}


@dataclass(frozen=True)
class HostFacts:
    """Raw OS facts the strategy is derived from."""

    family: str
    architecture: str
    major_version: str = ""
    distro_id: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "family": self.family,
            "architecture": self.architecture,
            "major_version": self.major_version,
            "distro_id": self.distro_id,
        }


def resolve_strategy(facts: HostFacts) -> Strategy:
    """Map host facts to an install strategy.

    Raises:
        UnsupportedPlatform: Unknown family or architecture.
    """
    strategy = _FAMILY_ALIASES.get((facts.family or "").strip().lower())
    if strategy is None:
        raise UnsupportedPlatform(
            f"Unsupported operating system family: {facts.family or 'unknown'}",
            os_family=facts.family or "unknown",
            step="resolve_platform",
        )
    # Architecture is checked up front so nothing is mutated on hosts
    # we could never fetch an artifact for.
    normalize_arch(facts.architecture, strategy, os_family=facts.family)
    return strategy


def normalize_arch(
    machine: str,
    strategy: Strategy,
    *,
    os_family: str | None = None,
) -> str:
    """Translate ``uname -m`` into the package format's architecture name."""
    names = ARCH_MAP.get((machine or "").strip())
    if names is None:
        raise UnsupportedPlatform(
            f"Unsupported operating system architecture: {machine or 'unknown'}",
            os_family=os_family or strategy.value,
            step="resolve_platform",
        )
    deb_arch, rpm_arch = names
    if strategy is Strategy.REDHAT:
        return rpm_arch
    return deb_arch
