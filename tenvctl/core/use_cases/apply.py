"""
Apply use case — converge this host to the settings.

The full vertical slice: load settings, detect the host, plan the task
graph, converge it, then record what happened in the state file and
the audit ledger.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from tenvctl.core.config.loader import ConfigError, load_settings
from tenvctl.core.engine.executor import ExecutionReport, execute_graph, generate_run_id, write_audit_entry
from tenvctl.core.errors import UnsupportedPlatform
from tenvctl.core.models.settings import TenvSettings
from tenvctl.core.models.state import RunRecord
from tenvctl.core.persistence.audit import AuditWriter
from tenvctl.core.persistence.state_file import default_state_path, load_state, save_state
from tenvctl.core.services.tenv_install.detection.host_facts import detect_host_facts
from tenvctl.core.services.tenv_install.domain.platform import HostFacts
from tenvctl.core.services.tenv_install.execution.subprocess_runner import Runner, run_command
from tenvctl.core.services.tenv_install.orchestration.orchestrator import (
    ConvergencePlan,
    build_graph,
)
from tenvctl.core.services.tenv_install.resolver.user_resolution import (
    HomeLookup,
    default_home_lookup,
)
from tenvctl.core.services.tenv_install.resolver.version_resolution import LatestLookup

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_UNSUPPORTED = 2


@dataclass
class ApplyResult:
    """Result of one apply (or plan) invocation."""

    settings: TenvSettings | None = None
    config_path: Path | None = None
    plan: ConvergencePlan | None = None
    report: ExecutionReport | None = None
    error: str | None = None
    unsupported: bool = False

    @property
    def exit_code(self) -> int:
        if self.unsupported:
            return EXIT_UNSUPPORTED
        if self.error:
            return EXIT_FAILED
        if self.report is not None and (self.report.failed or self.report.skipped):
            return EXIT_FAILED
        return EXIT_OK

    def to_dict(self) -> dict:
        result: dict[str, Any] = {}
        if self.error:
            result["error"] = self.error
            result["exit_code"] = self.exit_code
            return result

        result["config_path"] = str(self.config_path) if self.config_path else None
        if self.settings is not None:
            result["settings"] = self.settings.redacted()
        if self.plan is not None:
            result["plan"] = self.plan.to_dict()
        if self.report is not None:
            result["report"] = self.report.to_dict()
        result["exit_code"] = self.exit_code
        return result


def prepare(
    config_path: Path | None = None,
    overrides: dict[str, Any] | None = None,
    *,
    facts: HostFacts | None = None,
    run: Runner = run_command,
    resolve_latest: LatestLookup | None = None,
    home_lookup: HomeLookup = default_home_lookup,
) -> ApplyResult:
    """Load settings and plan the graph without running it."""
    result = ApplyResult()

    try:
        settings, source = load_settings(config_path, overrides)
    except ConfigError as e:
        result.error = str(e)
        return result
    result.settings = settings
    result.config_path = source

    if facts is None:
        facts = detect_host_facts()

    try:
        result.plan = build_graph(
            settings, facts, run=run, resolve_latest=resolve_latest, home_lookup=home_lookup,
        )
    except UnsupportedPlatform as e:
        logger.error("%s", e)
        result.error = str(e)
        result.unsupported = True
    return result


def run_apply(
    config_path: Path | None = None,
    overrides: dict[str, Any] | None = None,
    *,
    dry_run: bool = False,
    facts: HostFacts | None = None,
    run: Runner = run_command,
    resolve_latest: LatestLookup | None = None,
    home_lookup: HomeLookup = default_home_lookup,
    persist: bool = True,
) -> ApplyResult:
    """Converge the host.

    Args:
        config_path: Explicit settings file (default: search for tenv.yml).
        overrides: CLI overrides layered over the file.
        dry_run: Check only; report what would change.
        facts: Host facts (default: detect).
        run: Subprocess runner.
        resolve_latest: "latest" version lookup.
        home_lookup: Username → home directory.
        persist: Write state.json and the audit ledger.

    Returns:
        ApplyResult. Nothing is touched when the platform is unsupported.
    """
    result = prepare(
        config_path, overrides,
        facts=facts, run=run, resolve_latest=resolve_latest, home_lookup=home_lookup,
    )
    if result.error or result.plan is None:
        return result

    run_id = generate_run_id()
    report = execute_graph(result.plan.tasks, dry_run=dry_run, run_id=run_id)
    result.report = report

    if persist:
        _record(result, report)

    return result


def _record(result: ApplyResult, report: ExecutionReport) -> None:
    """Write the state snapshot and the audit entry."""
    assert result.settings is not None and result.plan is not None
    plan = result.plan
    state_dir = Path(result.settings.state_dir)

    try:
        write_audit_entry(
            report,
            AuditWriter(state_dir=state_dir),
            os_family=plan.facts.family,
            strategy=plan.strategy.value,
            version=result.settings.version,
        )
    except OSError as e:
        logger.warning("Cannot write audit ledger in %s: %s", state_dir, e)

    if report.dry_run:
        return

    state_path = default_state_path(state_dir)
    state = load_state(state_path)
    state.os_family = plan.facts.family
    state.strategy = plan.strategy.value
    state.architecture = plan.facts.architecture
    state.users = [u.username for u in plan.users]
    state.last_run = RunRecord(
        run_id=report.run_id,
        started_at=report.started_at,
        ended_at=report.ended_at,
        status=report.status,
        dry_run=report.dry_run,
        tasks_total=report.total,
        tasks_changed=report.changed,
        tasks_failed=report.failed,
        tasks_skipped=report.skipped,
    )

    for tool, installer in plan.installers.items():
        record = installer.record()
        fields: dict[str, Any] = {
            "installed": record.installed,
            "version": record.version,
            "provider": record.provider,
        }
        task_id = "install_tenv_aur" if installer.uses_aur else f"package:{tool}"
        receipt = report.receipt(task_id)
        if receipt is not None and receipt.changed:
            fields["installed_at"] = receipt.started_at
        state.set_package(record.package, **fields)

    try:
        save_state(state, state_path)
    except OSError as e:
        logger.warning("Cannot write state file %s: %s", state_path, e)
