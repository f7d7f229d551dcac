"""
Status use case — host facts, package records and the last run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from tenvctl.core.config.loader import ConfigError, load_settings
from tenvctl.core.errors import UnsupportedPlatform
from tenvctl.core.models.settings import TenvSettings
from tenvctl.core.models.state import HostState
from tenvctl.core.persistence.audit import AuditEntry, AuditWriter
from tenvctl.core.persistence.state_file import default_state_path, load_state
from tenvctl.core.services.tenv_install.detection.host_facts import detect_host_facts
from tenvctl.core.services.tenv_install.detection.package_records import query_package
from tenvctl.core.services.tenv_install.detection.tool_version import get_tool_version
from tenvctl.core.services.tenv_install.domain.artifacts import InstalledPackageRecord
from tenvctl.core.services.tenv_install.domain.platform import HostFacts, Strategy, resolve_strategy
from tenvctl.core.services.tenv_install.execution.subprocess_runner import Runner, run_command

logger = logging.getLogger(__name__)


@dataclass
class StatusResult:
    """Live host status plus the last recorded run."""

    facts: HostFacts | None = None
    strategy: Strategy | None = None
    settings: TenvSettings | None = None
    packages: list[InstalledPackageRecord] = field(default_factory=list)
    binaries: dict[str, str | None] = field(default_factory=dict)
    state: HostState | None = None
    recent_runs: list[AuditEntry] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
        if self.facts is not None:
            result["host"] = self.facts.to_dict()
        result["strategy"] = self.strategy.value if self.strategy else None
        result["packages"] = [
            {
                "package": p.package,
                "installed": p.installed,
                "version": p.version,
                "provider": p.provider,
            }
            for p in self.packages
        ]
        result["binaries"] = dict(self.binaries)
        if self.state is not None:
            result["last_run"] = self.state.last_run.model_dump(mode="json")
        result["recent_runs"] = [e.model_dump(mode="json") for e in self.recent_runs]
        return result


def _package_names(strategy: Strategy) -> list[str]:
    if strategy is Strategy.ARCH:
        return ["tenv-bin", "cosign"]
    return ["tenv", "cosign"]


def get_status(
    config_path: Path | None = None,
    *,
    facts: HostFacts | None = None,
    run: Runner = run_command,
) -> StatusResult:
    """Collect status. Never mutates the host."""
    result = StatusResult()

    try:
        settings, _ = load_settings(config_path)
    except ConfigError as e:
        result.error = str(e)
        return result
    result.settings = settings

    result.facts = facts or detect_host_facts()
    try:
        result.strategy = resolve_strategy(result.facts)
    except UnsupportedPlatform as e:
        result.error = str(e)
        return result

    pm = {Strategy.DEBIAN: "apt", Strategy.REDHAT: "rpm", Strategy.ARCH: "pacman"}[result.strategy]
    for name in _package_names(result.strategy):
        result.packages.append(
            query_package(name, pm, provider=result.strategy.provider, run=run)
        )
    for tool in ("tenv", "cosign"):
        result.binaries[tool] = get_tool_version(tool, run=run)

    state_dir = Path(settings.state_dir)
    result.state = load_state(default_state_path(state_dir))
    result.recent_runs = AuditWriter(state_dir=state_dir).read_recent(5)
    return result
