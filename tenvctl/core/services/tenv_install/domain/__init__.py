"""
L1 Domain — pure logic, no I/O.
"""

from tenvctl.core.services.tenv_install.domain.artifacts import (  # noqa: F401
    LATEST,
    ArtifactDescriptor,
    InstalledPackageRecord,
    InstallRequest,
    LocalArtifact,
    PackagePhase,
    VerificationResult,
    normalize_installed_version,
    normalize_version,
)
from tenvctl.core.services.tenv_install.domain.dag import (  # noqa: F401
    topological_order,
    validate_dag,
)
from tenvctl.core.services.tenv_install.domain.platform import (  # noqa: F401
    HostFacts,
    Strategy,
    normalize_arch,
    resolve_strategy,
)
from tenvctl.core.services.tenv_install.domain.profile_lines import (  # noqa: F401
    OwnedLine,
    PatchResult,
    export_line,
    export_match,
    reconcile_lines,
    source_line,
)
from tenvctl.core.services.tenv_install.domain.users import ROOT_USER, UserTarget  # noqa: F401
