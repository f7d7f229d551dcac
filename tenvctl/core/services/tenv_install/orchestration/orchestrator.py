"""
L5 Orchestration — Settings + host facts → convergence task graph.

``build_graph`` ties every lower layer together: it resolves the
install strategy (refusing unsupported hosts before anything is
touched), wires one ``PackageInstaller`` per managed tool, fans the
shell configuration out over the resolved users, and returns the
tasks for the engine to converge::

    prerequisites ─▶ get_cosign_version ─▶ download ─▶ verify ─▶ package:cosign ─▶ cleanup
                  └▶ get_tenv_version  ─▶ download ─▶ verify ─▶ package:tenv ─▶ verify_tenv ─▶ cleanup
                                                                                  └▶ exec:tenv_completion_<user>_<shell>

Disabled toggles drop their tasks from the graph entirely.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, field
from pathlib import Path

from tenvctl.core.engine.executor import ExecutionReport, Task, execute_graph
from tenvctl.core.models.settings import TenvSettings
from tenvctl.core.services.tenv_install.data.constants import (
    DOWNLOAD_PREREQUISITES,
    PREREQUISITE_PACKAGES,
)
from tenvctl.core.services.tenv_install.detection.host_facts import detect_host_facts
from tenvctl.core.services.tenv_install.domain.artifacts import InstallRequest
from tenvctl.core.services.tenv_install.domain.platform import (
    HostFacts,
    Strategy,
    resolve_strategy,
)
from tenvctl.core.services.tenv_install.domain.users import UserTarget
from tenvctl.core.services.tenv_install.execution.fetcher import ArtifactFetcher
from tenvctl.core.services.tenv_install.execution.installer import PackageInstaller
from tenvctl.core.services.tenv_install.execution.prerequisites import (
    PackageIndex,
    PrerequisitePackage,
)
from tenvctl.core.services.tenv_install.execution.shell_profile import (
    ShellOptions,
    ShellProfileReconciler,
    completion_key,
    desired_lines,
)
from tenvctl.core.services.tenv_install.execution.subprocess_runner import Runner, run_command
from tenvctl.core.services.tenv_install.execution.verifier import SignatureVerifier
from tenvctl.core.services.tenv_install.resolver.artifact_location import ArtifactLocator
from tenvctl.core.services.tenv_install.resolver.user_resolution import (
    HomeLookup,
    default_home_lookup,
    resolve_users,
)
from tenvctl.core.services.tenv_install.resolver.version_resolution import (
    LatestLookup,
    VersionCache,
    github_latest_release,
)

logger = logging.getLogger(__name__)


@dataclass
class ConvergencePlan:
    """Everything ``apply`` will converge, before it runs."""

    facts: HostFacts
    strategy: Strategy
    tasks: list[Task] = field(default_factory=list)
    installers: dict[str, PackageInstaller] = field(default_factory=dict)
    users: list[UserTarget] = field(default_factory=list)

    def task_ids(self) -> list[str]:
        return [t.id for t in self.tasks]

    def to_dict(self) -> dict:
        return {
            "host": self.facts.to_dict(),
            "strategy": self.strategy.value,
            "users": [
                {"username": u.username, "home": u.home, "shell": u.shell, "profile": u.profile_path}
                for u in self.users
            ],
            "tasks": [t.to_dict() for t in self.tasks],
        }


# ── Task helpers ────────────────────────────────────────────────


def _resolve_version(installer: PackageInstaller) -> bool:
    """Resolve (and cache) the concrete version. Always converged."""
    installer.describe()
    return True


def _not_applicable() -> str:
    return ""


def _fetch(installer: PackageInstaller) -> str:
    artifact = installer.fetch()
    return f"fetched {artifact.path}"


def _verify(installer: PackageInstaller) -> str:
    result = installer.verify()
    return f"verified ({result.method})"


def _install(installer: PackageInstaller) -> str:
    installer.install()
    return f"installed {installer.package_name} {installer.describe().version}"


def _assert_installed(installer: PackageInstaller) -> str:
    installer.assert_installed()
    return "version check passed"


def _staged_paths(installer: PackageInstaller, locator: ArtifactLocator) -> list[Path]:
    staging = locator.staging_path(installer.tool, installer.strategy)
    return [Path(staging), Path(staging + ".sha256")]


def _staging_absent(paths: list[Path]) -> bool:
    return not any(p.exists() for p in paths)


def _remove_staging(paths: list[Path]) -> str:
    for p in paths:
        p.unlink(missing_ok=True)
    return f"removed {paths[0]}"


def _download_ready(installer: PackageInstaller) -> bool:
    return installer.is_installed() or installer.has_staged_artifact()


# ── Graph sections ──────────────────────────────────────────────


def _prerequisite_tasks(strategy: Strategy, run: Runner) -> list[Task]:
    tasks = []
    index = PackageIndex(strategy.package_manager, run=run)
    for name in PREREQUISITE_PACKAGES:
        pkg = PrerequisitePackage(name, strategy.package_manager, run=run, index=index)
        tasks.append(Task(
            id=f"package:{name}",
            kind="package",
            check=pkg.is_installed,
            apply=pkg.install,
            description=f"install {name} via {strategy.package_manager}",
            group="prerequisites",
        ))
    return tasks


def _download_pipeline(
    installer: PackageInstaller,
    locator: ArtifactLocator,
    *,
    verify_id: str,
    after: list[str],
    verify_after: list[str],
) -> list[Task]:
    """``get_<t>_version → download_<t> → <verify_id> → package:<t>``."""
    tool = installer.tool
    tasks = [
        Task(
            id=f"get_{tool}_version",
            kind="resolve",
            check=functools.partial(_resolve_version, installer),
            apply=_not_applicable,
            depends_on=list(after),
            description=f"resolve {installer.request.version} {tool} version",
            group=tool,
        ),
        Task(
            id=f"download_{tool}",
            kind="fetch",
            check=functools.partial(_download_ready, installer),
            apply=functools.partial(_fetch, installer),
            depends_on=[f"get_{tool}_version"],
            description=f"download {tool} release artifact",
            group=tool,
        ),
        Task(
            id=verify_id,
            kind="verify",
            check=installer.is_installed,
            apply=functools.partial(_verify, installer),
            depends_on=[f"download_{tool}"] + list(verify_after),
            description=f"verify {tool} artifact checksum",
            group=tool,
        ),
        Task(
            id=f"package:{tool}",
            kind="package",
            check=installer.is_installed,
            apply=functools.partial(_install, installer),
            depends_on=[verify_id],
            description=f"install {tool} via {installer.strategy.provider}",
            group=tool,
        ),
    ]
    return tasks


def _cleanup_task(installer: PackageInstaller, locator: ArtifactLocator, after: str) -> Task:
    paths = _staged_paths(installer, locator)
    return Task(
        id=f"file:{paths[0]}",
        kind="file",
        check=functools.partial(_staging_absent, paths),
        apply=functools.partial(_remove_staging, paths),
        depends_on=[after],
        description=f"remove staged {installer.tool} artifact",
        group=installer.tool,
    )


def _cosign_tasks(
    installer: PackageInstaller, locator: ArtifactLocator, prereqs: list[str],
) -> list[Task]:
    if installer.strategy is Strategy.ARCH:
        return [Task(
            id="package:cosign",
            kind="package",
            check=installer.is_installed,
            apply=functools.partial(_install, installer),
            description="install cosign via pacman",
            group="cosign",
        )]
    tasks = _download_pipeline(
        installer, locator, verify_id="verify_cosign", after=prereqs, verify_after=[],
    )
    tasks.append(_cleanup_task(installer, locator, "package:cosign"))
    return tasks


def _tenv_tasks(
    installer: PackageInstaller,
    locator: ArtifactLocator,
    prereqs: list[str],
    verify_after: list[str],
) -> list[Task]:
    verify_tenv = Task(
        id="verify_tenv",
        kind="verify",
        check=installer.verify_install,
        apply=functools.partial(_assert_installed, installer),
        description="tenv binary reports the expected version",
        group="tenv",
    )
    if installer.strategy is Strategy.ARCH:
        verify_tenv.depends_on = ["install_tenv_aur"]
        return [
            Task(
                id="install_tenv_aur",
                kind="package",
                check=installer.is_installed,
                apply=functools.partial(_install, installer),
                depends_on=list(prereqs),
                description=f"install {installer.package_name} via {installer.aur_helper}",
                group="tenv",
            ),
            verify_tenv,
        ]

    tasks = _download_pipeline(
        installer, locator,
        verify_id="verify_tenv_artifact", after=prereqs, verify_after=verify_after,
    )
    verify_tenv.depends_on = ["package:tenv"]
    tasks.append(verify_tenv)
    tasks.append(_cleanup_task(installer, locator, "verify_tenv"))
    return tasks


def _directory_task(target: UserTarget, path: str, reconciler: ShellProfileReconciler) -> Task:
    return Task(
        id=f"file:{path}",
        kind="directory",
        check=functools.partial(reconciler.directory_converged, path),
        apply=functools.partial(reconciler.ensure_directory, path, target),
        description=f"directory {path} for {target.username}",
        group=f"user:{target.username}",
    )


def _apply_line(reconciler: ShellProfileReconciler, target: UserTarget, line) -> str:
    result = reconciler.apply_lines(target, [line])
    if result.removed:
        return f"removed from {target.profile_path}"
    return f"wrote {target.profile_path}"


def _user_tasks(
    target: UserTarget,
    options: ShellOptions,
    reconciler: ShellProfileReconciler,
    tenv_ready: str,
) -> list[Task]:
    group = f"user:{target.username}"
    tasks = [_directory_task(target, target.tenv_root, reconciler)]
    line_deps: list[str] = []
    if target.config_dir:
        tasks.append(_directory_task(target, target.config_dir, reconciler))
        line_deps = [f"file:{target.config_dir}"]

    comp_key = completion_key(target)
    for line in desired_lines(target, options):
        if line.key == comp_key:
            continue
        tasks.append(Task(
            id=f"file_line:{line.key}",
            kind="file_line",
            check=functools.partial(reconciler.lines_converged, target, [line]),
            apply=functools.partial(_apply_line, reconciler, target, line),
            depends_on=list(line_deps),
            description=(
                f"{'ensure' if line.content is not None else 'remove'} {line.key} in {target.profile_path}"
            ),
            group=group,
        ))

    if options.setup_completion:
        tasks.append(Task(
            id=f"exec:{comp_key}",
            kind="exec",
            check=functools.partial(reconciler.completion_converged, target),
            apply=functools.partial(reconciler.install_completion, target),
            depends_on=[tenv_ready] + line_deps,
            description=f"tenv completion {target.shell} for {target.username}",
            group=group,
        ))
    else:
        tasks.append(Task(
            id=f"file_line:{comp_key}",
            kind="file_line",
            check=functools.partial(reconciler.completion_absent, target),
            apply=functools.partial(reconciler.remove_completion, target),
            depends_on=list(line_deps),
            description=f"remove tenv completion for {target.username}",
            group=group,
        ))
    return tasks


# ── Public API ──────────────────────────────────────────────────


def build_graph(
    settings: TenvSettings,
    facts: HostFacts,
    *,
    run: Runner = run_command,
    resolve_latest: LatestLookup | None = None,
    home_lookup: HomeLookup = default_home_lookup,
) -> ConvergencePlan:
    """Plan the convergence of one host.

    Args:
        settings: Desired state.
        facts: Host OS facts.
        run: Subprocess runner shared by every task.
        resolve_latest: ``tool -> version`` lookup for "latest"
            (default: the GitHub releases API, authenticated with the
            configured token).
        home_lookup: ``username -> home`` lookup.

    Raises:
        UnsupportedPlatform: Before any task exists.
    """
    strategy = resolve_strategy(facts)
    logger.debug("Host %s/%s → %s", facts.family, facts.architecture, strategy.value)

    if resolve_latest is None:
        resolve_latest = functools.partial(github_latest_release, token=settings.github_token)
    versions = VersionCache(resolve_latest)
    locator = ArtifactLocator(versions, staging_dir=settings.staging_dir)
    fetcher = ArtifactFetcher(timeout=settings.fetch_timeout, run=run)

    plan = ConvergencePlan(facts=facts, strategy=strategy)

    prereqs: list[str] = []
    if settings.manage_prerequisites:
        plan.tasks.extend(_prerequisite_tasks(strategy, run))
        prereqs = [f"package:{name}" for name in DOWNLOAD_PREREQUISITES]

    def installer_for(tool: str, version: str, use_cosign: bool) -> PackageInstaller:
        request = InstallRequest(
            tool=tool,
            version=version,
            os_family=facts.family,
            architecture=facts.architecture,
        )
        return PackageInstaller(
            request,
            strategy,
            locator=locator,
            fetcher=fetcher,
            verifier=SignatureVerifier(fetcher, use_cosign=use_cosign, run=run),
            run=run,
            aur_helper=settings.aur_helper,
            aur_build_user=settings.aur_build_user,
        )

    tenv_verify_after: list[str] = []
    if settings.install_cosign:
        cosign = installer_for("cosign", settings.cosign_version, use_cosign=False)
        plan.installers["cosign"] = cosign
        plan.tasks.extend(_cosign_tasks(cosign, locator, prereqs))
        if settings.verify_with_cosign:
            tenv_verify_after = ["package:cosign"]

    tenv = installer_for("tenv", settings.version, use_cosign=settings.verify_with_cosign)
    plan.installers["tenv"] = tenv
    plan.tasks.extend(_tenv_tasks(tenv, locator, prereqs, tenv_verify_after))

    if settings.configure_shell:
        plan.users = resolve_users(settings.users, settings.shell, home_lookup)
        options = ShellOptions(
            auto_install=settings.auto_install,
            github_token=settings.github_token,
            setup_completion=settings.setup_completion,
        )
        reconciler = ShellProfileReconciler(run=run)
        for target in plan.users:
            plan.tasks.extend(_user_tasks(target, options, reconciler, "verify_tenv"))

    logger.debug("Planned %d tasks", len(plan.tasks))
    return plan


def converge(
    settings: TenvSettings,
    facts: HostFacts | None = None,
    *,
    dry_run: bool = False,
    run: Runner = run_command,
    resolve_latest: LatestLookup | None = None,
    home_lookup: HomeLookup = default_home_lookup,
    run_id: str | None = None,
) -> tuple[ConvergencePlan, ExecutionReport]:
    """Plan and execute in one call.

    Raises:
        UnsupportedPlatform: Pre-flight, nothing has run.
    """
    if facts is None:
        facts = detect_host_facts()
    plan = build_graph(
        settings, facts, run=run, resolve_latest=resolve_latest, home_lookup=home_lookup,
    )
    report = execute_graph(plan.tasks, dry_run=dry_run, run_id=run_id)
    return plan, report

