"""
L5 Orchestration — plan and converge a host.
"""

from tenvctl.core.services.tenv_install.orchestration.orchestrator import (  # noqa: F401
    ConvergencePlan,
    build_graph,
    converge,
)
