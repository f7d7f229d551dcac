"""
Error taxonomy for the install/configure pipeline.

Every error carries enough context (detected OS family, requested
version, failing step) to be diagnosed from a single log line.
The engine converts these into failed receipts; only
``UnsupportedPlatform`` is allowed to escape planning and abort the
whole run.
"""

from __future__ import annotations


class TenvctlError(Exception):
    """Base class for all pipeline errors."""

    def __init__(
        self,
        message: str,
        *,
        os_family: str | None = None,
        version: str | None = None,
        step: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.os_family = os_family
        self.version = version
        self.step = step

    def context(self) -> dict[str, str]:
        """Non-empty diagnostic fields, for logs and JSON output."""
        ctx = {
            "os_family": self.os_family,
            "version": self.version,
            "step": self.step,
        }
        return {k: v for k, v in ctx.items() if v}

    def __str__(self) -> str:
        ctx = self.context()
        if not ctx:
            return self.message
        details = ", ".join(f"{k}={v}" for k, v in ctx.items())
        return f"{self.message} ({details})"


class UnsupportedPlatform(TenvctlError):
    """Host OS family or architecture has no install strategy."""


class UnresolvableVersion(TenvctlError):
    """A "latest" version could not be discovered."""


class FetchFailed(TenvctlError):
    """Artifact download failed. Retrying is the caller's decision."""


class VerificationFailed(TenvctlError):
    """Artifact checksum or signature did not verify."""

    def __init__(self, reason: str, **kwargs: str | None):
        super().__init__(f"Verification failed: {reason}", **kwargs)
        self.reason = reason


class InstallFailed(TenvctlError):
    """Package installation or its post-install version check failed."""
