"""
L4 Execution — side effects: subprocesses, downloads, file writes.

Only leaf modules are re-exported here; the installer and the shell
reconciler import detection probes and are imported directly.
"""

from tenvctl.core.services.tenv_install.execution.fetcher import (  # noqa: F401
    ArtifactFetcher,
    file_sha256,
    remove_staged,
)
from tenvctl.core.services.tenv_install.execution.subprocess_runner import (  # noqa: F401
    run_command,
)
from tenvctl.core.services.tenv_install.execution.verifier import (  # noqa: F401
    SignatureVerifier,
    parse_checksums,
)
