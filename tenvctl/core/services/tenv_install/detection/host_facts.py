"""
L3 Detection — Host OS facts.

Read-only probe that reports the distribution family, release and
machine architecture in facter-style naming (Debian, RedHat,
Archlinux). Mapping the family to an install strategy happens in the
domain layer.
"""

from __future__ import annotations

import platform

import distro

from tenvctl.core.services.tenv_install.domain.platform import HostFacts

# distro IDs → facter os.family
_FAMILY_BY_ID: dict[str, str] = {
    "debian": "Debian",
    "ubuntu": "Debian",
    "linuxmint": "Debian",
    "raspbian": "Debian",
    "pop": "Debian",
    "rhel": "RedHat",
    "centos": "RedHat",
    "fedora": "RedHat",
    "rocky": "RedHat",
    "almalinux": "RedHat",
    "ol": "RedHat",
    "amzn": "RedHat",
    "arch": "Archlinux",
    "archarm": "Archlinux",
    "manjaro": "Archlinux",
    "endeavouros": "Archlinux",
}


def _family_for(distro_id: str, like: str) -> str:
    if distro_id in _FAMILY_BY_ID:
        return _FAMILY_BY_ID[distro_id]
    for candidate in like.split():
        if candidate in _FAMILY_BY_ID:
            return _FAMILY_BY_ID[candidate]
    return distro_id or "unknown"


def detect_host_facts() -> HostFacts:
    """Probe the running host.

    Non-Linux systems report ``platform.system()`` as their family
    (``Windows``, ``Darwin``) so strategy resolution rejects them.
    """
    machine = platform.machine()
    system = platform.system()
    if system != "Linux":
        return HostFacts(family=system or "unknown", architecture=machine)

    distro_id = distro.id()
    return HostFacts(
        family=_family_for(distro_id, distro.like()),
        architecture=machine,
        major_version=distro.major_version(),
        distro_id=distro_id,
    )
