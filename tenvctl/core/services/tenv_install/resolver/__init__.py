"""
L2 Resolver — versions, artifact locations and user targets.
"""

from tenvctl.core.services.tenv_install.resolver.artifact_location import (  # noqa: F401
    ArtifactLocator,
)
from tenvctl.core.services.tenv_install.resolver.user_resolution import (  # noqa: F401
    default_home_lookup,
    resolve_users,
)
from tenvctl.core.services.tenv_install.resolver.version_resolution import (  # noqa: F401
    VersionCache,
    github_latest_release,
)
