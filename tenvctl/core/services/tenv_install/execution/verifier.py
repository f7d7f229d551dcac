"""
L4 Execution — Artifact verification.

Two layers, applied in order:

1. SHA-256 of the fetched file against the release checksums file.
2. Optionally, cosign keyless verification of that checksums file,
   which ties the whole release to the project's CI identity.

cosign itself is bootstrapped with layer 1 only; once installed it
can vouch for tenv's releases. Source-build strategies skip both
layers: the package manager is the provenance boundary there.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path

from tenvctl.core.errors import FetchFailed, VerificationFailed
from tenvctl.core.services.tenv_install.data.constants import CERTIFICATE_OIDC_ISSUER
from tenvctl.core.services.tenv_install.domain.artifacts import (
    LocalArtifact,
    VerificationResult,
)
from tenvctl.core.services.tenv_install.domain.platform import Strategy
from tenvctl.core.services.tenv_install.execution.fetcher import ArtifactFetcher, file_sha256
from tenvctl.core.services.tenv_install.execution.subprocess_runner import Runner, run_command

logger = logging.getLogger(__name__)

COSIGN_VERIFIED = "Verified OK"


def parse_checksums(content: str) -> dict[str, str]:
    """Parse ``sha256sum``-style lines into ``{filename: hex}``."""
    sums: dict[str, str] = {}
    for line in content.splitlines():
        parts = line.strip().split()
        if len(parts) != 2:
            continue
        digest, name = parts
        sums[name.lstrip("*")] = digest.lower()
    return sums


class SignatureVerifier:
    """Gate between fetching and installing.

    Args:
        fetcher: Used to download checksum/signature companions.
        use_cosign: Also verify the checksums file with cosign when the
            descriptor names a signing identity.
        run: Subprocess runner (for cosign).
    """

    def __init__(
        self,
        fetcher: ArtifactFetcher,
        *,
        use_cosign: bool = False,
        run: Runner = run_command,
    ):
        self._fetcher = fetcher
        self.use_cosign = use_cosign
        self._run = run

    def evaluate(self, artifact: LocalArtifact, strategy: Strategy) -> VerificationResult:
        """Check an artifact without raising on a bad result."""
        if strategy is Strategy.ARCH:
            return VerificationResult(verified=True, method="package-manager")

        desc = artifact.descriptor
        step = f"verify_{desc.tool}"
        if not desc.checksums_url:
            return VerificationResult(False, "sha256", "no checksums published for artifact")

        try:
            checksums = self._fetcher.fetch_text(desc.checksums_url, step=step, version=desc.version)
        except FetchFailed as e:
            return VerificationResult(False, "sha256", f"cannot fetch checksums: {e.message}")

        expected = parse_checksums(checksums).get(desc.filename)
        if expected is None:
            return VerificationResult(False, "sha256", f"no checksum listed for {desc.filename}")

        actual = file_sha256(Path(artifact.path))
        if actual != expected:
            return VerificationResult(
                False, "sha256", f"sha256 mismatch for {desc.filename}: expected {expected}, got {actual}",
            )

        if not (self.use_cosign and desc.certificate_identity):
            return VerificationResult(verified=True, method="sha256")

        return self._cosign_verify(artifact, checksums)

    def _cosign_verify(self, artifact: LocalArtifact, checksums: str) -> VerificationResult:
        desc = artifact.descriptor
        step = f"verify_{desc.tool}"
        if shutil.which("cosign") is None:
            return VerificationResult(False, "cosign", "cosign executable not found")

        try:
            signature = self._fetcher.fetch_text(desc.signature_url, step=step, version=desc.version)
            certificate = self._fetcher.fetch_text(desc.certificate_url, step=step, version=desc.version)
        except FetchFailed as e:
            return VerificationResult(False, "cosign", f"cannot fetch signature: {e.message}")

        with tempfile.TemporaryDirectory(prefix="tenvctl_cosign_") as tmp:
            data_file = Path(tmp) / "checksums.txt"
            sig_file = Path(tmp) / "checksums.txt.sig"
            cert_file = Path(tmp) / "checksums.txt.pem"
            data_file.write_text(checksums, encoding="utf-8")
            sig_file.write_text(signature, encoding="utf-8")
            cert_file.write_text(certificate, encoding="utf-8")

            result = self._run(
                [
                    "cosign", "verify-blob",
                    "--certificate-identity", desc.certificate_identity,
                    "--certificate-oidc-issuer", CERTIFICATE_OIDC_ISSUER,
                    "--signature", str(sig_file),
                    "--certificate", str(cert_file),
                    str(data_file),
                ],
                timeout=60,
            )

        output = (result.get("stdout") or "") + (result.get("stderr") or "")
        logger.debug("cosign output: %s", output.strip())
        if COSIGN_VERIFIED not in output:
            return VerificationResult(False, "cosign", "cosign signature check failed")
        return VerificationResult(verified=True, method="sha256+cosign")

    def verify(self, artifact: LocalArtifact, strategy: Strategy, *, os_family: str = "") -> VerificationResult:
        """Verify or raise. A failed check is never downgraded.

        Raises:
            VerificationFailed: With the reason from ``evaluate``.
        """
        result = self.evaluate(artifact, strategy)
        if not result.verified:
            raise VerificationFailed(
                result.reason,
                os_family=os_family or strategy.value,
                version=artifact.descriptor.version,
                step=f"verify_{artifact.descriptor.tool}",
            )
        logger.info("Verified %s (%s)", artifact.path, result.method)
        return result
