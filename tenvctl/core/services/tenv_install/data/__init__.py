"""
L0 Data — static tables for tenv installation.

Pure data. No logic.
"""

from tenvctl.core.services.tenv_install.data.constants import (  # noqa: F401
    ARCH_MAP,
    PREREQUISITE_PACKAGES,
    RELEASES,
    ReleaseSource,
)
from tenvctl.core.services.tenv_install.data.profile_maps import PROFILE_MAP  # noqa: F401
