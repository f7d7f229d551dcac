"""
L2 Resolver — Artifact URL construction.

Turns an install request into a deterministic ``ArtifactDescriptor``:
identical inputs always give an identical descriptor.
"""

from __future__ import annotations

import posixpath

from tenvctl.core.errors import UnsupportedPlatform
from tenvctl.core.services.tenv_install.data.constants import RELEASES
from tenvctl.core.services.tenv_install.domain.artifacts import (
    ArtifactDescriptor,
    InstallRequest,
)
from tenvctl.core.services.tenv_install.domain.platform import Strategy, normalize_arch
from tenvctl.core.services.tenv_install.resolver.version_resolution import VersionCache


class ArtifactLocator:
    """Build download descriptors for tenv and cosign."""

    def __init__(self, versions: VersionCache, staging_dir: str = "/tmp"):
        self._versions = versions
        self._staging_dir = staging_dir

    def staging_path(self, tool: str, strategy: Strategy) -> str:
        """Fixed per-tool staging file, e.g. ``/tmp/tenv.deb``."""
        if strategy.extension is None:
            return ""
        return posixpath.join(self._staging_dir, f"{tool}.{strategy.extension}")

    def locate(self, request: InstallRequest, strategy: Strategy) -> ArtifactDescriptor:
        """Resolve the version if needed and build the descriptor.

        Raises:
            UnresolvableVersion: "latest" could not be discovered.
            UnsupportedPlatform: No release source or unknown architecture.
        """
        source = RELEASES.get(request.tool)
        if source is None:
            raise UnsupportedPlatform(
                f"No release source for tool '{request.tool}'",
                os_family=request.os_family,
                version=request.version,
                step=f"locate_{request.tool}",
            )

        version = self._versions.resolve(request.tool, request.version)

        if strategy is Strategy.ARCH:
            # Built from the package repository; nothing to download.
            return ArtifactDescriptor(
                tool=request.tool,
                version=version,
                provider=strategy.provider if source.aur_package else "pacman",
            )

        arch = normalize_arch(request.architecture, strategy, os_family=request.os_family)
        template = source.deb_name if strategy is Strategy.DEBIAN else source.rpm_name
        filename = template.format(version=version, arch=arch)
        base = source.download_base.format(version=version)
        checksums_url = base + source.checksums_name.format(version=version)

        signature_url = certificate_url = identity = ""
        if source.certificate_identity:
            signature_url = checksums_url + ".sig"
            certificate_url = checksums_url + ".pem"
            identity = source.certificate_identity.format(version=version)

        return ArtifactDescriptor(
            tool=request.tool,
            version=version,
            provider=strategy.provider,
            url=base + filename,
            filename=filename,
            staging_path=self.staging_path(request.tool, strategy),
            checksums_url=checksums_url,
            signature_url=signature_url,
            certificate_url=certificate_url,
            certificate_identity=identity,
        )
