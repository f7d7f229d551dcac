"""
L3 Detection — read-only host probes.
"""

from tenvctl.core.services.tenv_install.detection.host_facts import detect_host_facts  # noqa: F401
from tenvctl.core.services.tenv_install.detection.package_records import (  # noqa: F401
    is_pkg_installed,
    query_package,
)
from tenvctl.core.services.tenv_install.detection.tool_version import get_tool_version  # noqa: F401
