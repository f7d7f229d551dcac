"""
L4 Execution — Artifact download with a checksum sidecar.

A successful fetch leaves two files in the staging directory: the
artifact and ``<artifact>.sha256``, which records the URL and digest
the artifact had when it was written. A later fetch of the same
descriptor is skipped only if the sidecar matches both the URL and
the file's current digest, so a stale or corrupted file is fetched
again instead of trusted.
"""

from __future__ import annotations

import hashlib
import logging
import os
from pathlib import Path

from tenvctl.core.errors import FetchFailed
from tenvctl.core.services.tenv_install.domain.artifacts import (
    ArtifactDescriptor,
    LocalArtifact,
)
from tenvctl.core.services.tenv_install.execution.subprocess_runner import (
    Runner,
    describe_failure,
    run_command,
)

logger = logging.getLogger(__name__)


def file_sha256(path: Path) -> str:
    """Hex SHA-256 of a file, read in chunks."""
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            h.update(chunk)
    return h.hexdigest()


def _read_sidecar(path: Path) -> tuple[str, str] | None:
    """Return ``(sha256, url)`` from a sidecar, or None if unusable."""
    try:
        content = path.read_text(encoding="utf-8").strip()
    except OSError:
        return None
    parts = content.split(None, 1)
    if len(parts) != 2:
        return None
    return parts[0], parts[1]


def remove_staged(descriptor: ArtifactDescriptor) -> bool:
    """Delete a staged artifact and its sidecar. Returns True if anything was removed."""
    removed = False
    for raw in (descriptor.staging_path, descriptor.sidecar_path):
        if not raw:
            continue
        p = Path(raw)
        if p.exists():
            p.unlink()
            removed = True
    return removed


class ArtifactFetcher:
    """Download artifacts with curl.

    Args:
        timeout: Download time limit in seconds. A caller policy; the
            fetcher itself never retries.
        run: Subprocess runner.
    """

    def __init__(self, timeout: int = 300, run: Runner = run_command):
        self.timeout = timeout
        self._run = run

    def cached(self, descriptor: ArtifactDescriptor) -> LocalArtifact | None:
        """Previously fetched artifact that still matches its sidecar."""
        if not descriptor.staging_path:
            return None
        path = Path(descriptor.staging_path)
        sidecar = _read_sidecar(Path(descriptor.sidecar_path))
        if sidecar is None or not path.is_file():
            return None

        recorded_sha, recorded_url = sidecar
        if recorded_url != descriptor.url:
            logger.debug("Staged %s came from %s, refetching", path, recorded_url)
            return None
        actual = file_sha256(path)
        if actual != recorded_sha:
            logger.info("Staged %s no longer matches its recorded checksum, refetching", path)
            return None
        return LocalArtifact(descriptor=descriptor, path=str(path), sha256=actual, from_cache=True)

    def command(self, descriptor: ArtifactDescriptor, target: str) -> list[str]:
        return [
            "curl", "-sL", "--fail",
            "--max-time", str(self.timeout),
            "-o", target,
            descriptor.url,
        ]

    def fetch(self, descriptor: ArtifactDescriptor) -> LocalArtifact:
        """Download the artifact unless a valid cached copy exists.

        Raises:
            FetchFailed: Non-downloadable descriptor, curl failure or an
                empty download. No partial file is left behind.
        """
        if not descriptor.downloadable:
            raise FetchFailed(
                f"Nothing to download for {descriptor.tool}",
                version=descriptor.version,
                step=f"download_{descriptor.tool}",
            )

        hit = self.cached(descriptor)
        if hit is not None:
            logger.info("Using cached %s (%s)", hit.path, hit.sha256[:12])
            return hit

        path = Path(descriptor.staging_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        partial = path.with_name(path.name + ".part")
        remove_staged(descriptor)

        logger.info("Downloading %s", descriptor.url)
        result = self._run(self.command(descriptor, str(partial)), timeout=self.timeout + 5)
        if not result["ok"] or not partial.is_file() or partial.stat().st_size == 0:
            partial.unlink(missing_ok=True)
            raise FetchFailed(
                f"Download of {descriptor.url} failed: {describe_failure(result) if not result['ok'] else 'empty response'}",
                version=descriptor.version,
                step=f"download_{descriptor.tool}",
            )

        os.replace(partial, path)
        digest = file_sha256(path)
        Path(descriptor.sidecar_path).write_text(f"{digest} {descriptor.url}\n", encoding="utf-8")
        return LocalArtifact(descriptor=descriptor, path=str(path), sha256=digest)

    def fetch_text(self, url: str, *, step: str, version: str = "") -> str:
        """Download a small text resource (checksums, signatures) to memory."""
        result = self._run(
            ["curl", "-sL", "--fail", "--max-time", str(self.timeout), url],
            timeout=self.timeout + 5,
        )
        if not result["ok"]:
            raise FetchFailed(
                f"Download of {url} failed: {describe_failure(result)}",
                version=version or None,
                step=step,
            )
        return result.get("stdout", "")
