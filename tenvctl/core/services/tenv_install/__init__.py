"""
tenv installation service — package re-exports.

Each symbol lives in its single-responsibility module inside the
appropriate onion layer (data → domain → resolver → detection →
execution → orchestration). Orchestration depends on ``core.models``
and is imported from ``tenv_install.orchestration`` directly.
"""

# ── L0: Data ──
from tenvctl.core.services.tenv_install.data.constants import (  # noqa: F401
    PREREQUISITE_PACKAGES,
    RELEASES,
)

# ── L1: Domain ──
from tenvctl.core.services.tenv_install.domain.platform import (  # noqa: F401
    HostFacts,
    Strategy,
    resolve_strategy,
)

# ── L2: Resolver ──
from tenvctl.core.services.tenv_install.resolver.artifact_location import (  # noqa: F401
    ArtifactLocator,
)
from tenvctl.core.services.tenv_install.resolver.user_resolution import (  # noqa: F401
    resolve_users,
)
from tenvctl.core.services.tenv_install.resolver.version_resolution import (  # noqa: F401
    VersionCache,
    github_latest_release,
)

# ── L3: Detection ──
from tenvctl.core.services.tenv_install.detection.host_facts import (  # noqa: F401
    detect_host_facts,
)
