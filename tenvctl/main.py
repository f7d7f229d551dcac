"""
tenvctl — CLI entrypoint.

Usage:
    tenvctl --help
    tenvctl apply --dry-run
    tenvctl plan --json
    tenvctl status
    tenvctl config check
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Callable

import click

from tenvctl import __version__
from tenvctl.core.observability.logging_config import resolve_level, setup_logging
from tenvctl.core.services.tenv_install.data.profile_maps import SUPPORTED_SHELLS


@click.group()
@click.version_option(version=__version__, prog_name="tenvctl")
@click.option("--verbose", "-v", is_flag=True, help="Log each task as it converges.")
@click.option("--quiet", "-q", is_flag=True, help="Only log errors.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to tenv.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """tenvctl — install tenv and configure shells, idempotently."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet),
        quiet_third_party=not debug,
    )


_OVERRIDE_OPTIONS = [
    click.option("--version", "tenv_version", default=None, help="tenv version or 'latest'."),
    click.option("--shell", type=click.Choice(list(SUPPORTED_SHELLS)), default=None,
                 help="Shell dialect to configure."),
    click.option("--user", "users", multiple=True, help="User to configure (repeatable)."),
    click.option("--no-cosign", is_flag=True, help="Do not manage cosign."),
    click.option("--no-shell", is_flag=True, help="Do not touch shell profiles."),
    click.option("--auto-install/--no-auto-install", default=None,
                 help="Export TENV_AUTO_INSTALL=true."),
    click.option("--github-token", envvar="TENVCTL_GITHUB_TOKEN", default=None,
                 help="Token exported as TENV_GITHUB_TOKEN (env: TENVCTL_GITHUB_TOKEN)."),
    click.option("--no-prerequisites", is_flag=True,
                 help="Do not install curl, jq, unzip and ca-certificates."),
    click.option("--no-completion", is_flag=True, help="Do not set up shell completion."),
]


def _override_options(func: Callable) -> Callable:
    """Settings overrides shared by ``apply`` and ``plan``."""
    for option in reversed(_OVERRIDE_OPTIONS):
        func = option(func)
    return func


def _collect_overrides(
    tenv_version: str | None,
    shell: str | None,
    users: tuple[str, ...],
    no_cosign: bool,
    no_shell: bool,
    auto_install: bool | None,
    github_token: str | None,
    no_prerequisites: bool,
    no_completion: bool,
) -> dict[str, Any]:
    """CLI options → settings overrides. Unset options stay None."""
    return {
        "version": tenv_version,
        "shell": shell,
        "users": list(users) if users else None,
        "install_cosign": False if no_cosign else None,
        "configure_shell": False if no_shell else None,
        "auto_install": auto_install,
        "github_token": github_token,
        "manage_prerequisites": False if no_prerequisites else None,
        "setup_completion": False if no_completion else None,
    }


_STATUS_COLORS = {"ok": "green", "partial": "yellow", "failed": "red"}


def _print_error(result: Any) -> None:
    click.secho(f"❌ {result.error}", fg="red", err=True)


@cli.command()
@click.option("--dry-run", is_flag=True, help="Report what would change without changing it.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@_override_options
@click.pass_context
def apply(ctx: click.Context, dry_run: bool, as_json: bool, **options: Any) -> None:
    """Converge this host: install tenv (and cosign) and configure shells.

    Examples:

        tenvctl apply

        tenvctl apply --version 4.1.0 --user alice --user bob --shell zsh

        tenvctl apply --dry-run --json
    """
    from tenvctl.core.use_cases.apply import run_apply

    result = run_apply(
        config_path=ctx.obj.get("config_path"),
        overrides=_collect_overrides(**options),
        dry_run=dry_run,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    if result.error:
        _print_error(result)
        sys.exit(result.exit_code)

    report = result.report
    plan = result.plan
    assert report is not None and plan is not None

    mode_label = "[dry-run] " if dry_run else ""
    click.secho(
        f"\n⚡ {mode_label}tenvctl apply — {plan.facts.family} ({plan.strategy.value})",
        fg="cyan",
        bold=True,
    )
    click.echo(f"   Tasks: {report.total}")
    click.echo()

    for receipt in report.receipts:
        timing = f" ({receipt.duration_ms}ms)" if receipt.duration_ms else ""
        if receipt.status == "ok":
            if ctx.obj.get("verbose"):
                click.secho(f"   ✓ {receipt.task_id}", fg="green", nl=False)
                click.echo(timing)
        elif receipt.status == "changed":
            click.secho(f"   ✓ {receipt.task_id} ", fg="green", nl=False)
            click.echo(f"changed{timing}")
            if ctx.obj.get("verbose") and receipt.output:
                click.echo(f"     │ {receipt.output}")
        elif receipt.status == "pending":
            click.secho(f"   ~ {receipt.task_id} ", fg="cyan", nl=False)
            click.echo("would change")
        elif receipt.failed:
            click.secho(f"   ✗ {receipt.task_id}", fg="red", nl=False)
            click.echo(timing)
            for line in (receipt.error or "").split("\n")[:5]:
                click.echo(f"     │ {line}")
        else:
            click.secho(f"   ⊘ {receipt.task_id} ", fg="yellow", nl=False)
            click.echo(f"({receipt.output})")

    click.echo()
    summary = (
        f"   Result: {report.changed} changed, {report.unchanged} unchanged, "
        f"{report.failed} failed, {report.skipped} skipped"
    )
    if dry_run:
        summary += f", {report.pending} pending"
    click.secho(summary, fg=_STATUS_COLORS.get(report.status, "white"), bold=True)
    click.echo()

    sys.exit(result.exit_code)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@_override_options
@click.pass_context
def plan(ctx: click.Context, as_json: bool, **options: Any) -> None:
    """Print the task graph without running anything."""
    from tenvctl.core.use_cases.apply import prepare

    result = prepare(
        config_path=ctx.obj.get("config_path"),
        overrides=_collect_overrides(**options),
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    if result.error:
        _print_error(result)
        sys.exit(result.exit_code)

    graph = result.plan
    assert graph is not None

    click.secho(
        f"\n📋 Plan — {graph.facts.family} {graph.facts.architecture} ({graph.strategy.value})",
        fg="cyan",
        bold=True,
    )
    if graph.users:
        click.echo(f"   Users: {', '.join(u.username for u in graph.users)}")
    click.echo()

    for task in graph.tasks:
        click.echo(f"   • {task.id}")
        if task.depends_on:
            click.secho(f"       after {', '.join(task.depends_on)}", dim=True)

    click.echo()


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show host facts, installed packages and the last run."""
    from tenvctl.core.use_cases.status import get_status

    result = get_status(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error:
            sys.exit(1)
        return

    if result.error:
        _print_error(result)
        sys.exit(1)

    assert result.facts is not None and result.strategy is not None
    click.secho(f"\n📊 {result.facts.family} {result.facts.architecture}", fg="cyan", bold=True)
    click.echo(f"   Strategy: {result.strategy.value}")
    click.echo()

    for record in result.packages:
        if record.installed:
            click.secho(f"   ✓ {record.package} ", fg="green", nl=False)
            click.echo(f"{record.version} ({record.provider})")
        else:
            click.secho(f"   ✗ {record.package} ", fg="red", nl=False)
            click.echo("not installed")

    for tool, version in result.binaries.items():
        click.echo(f"   {tool}: {version or 'not on PATH'}")

    if result.state and result.state.last_run.run_id:
        run = result.state.last_run
        click.echo()
        click.echo(f"   Last run: {run.run_id}  ", nl=False)
        click.secho(run.status, fg=_STATUS_COLORS.get(run.status, "white"))
        click.echo(
            f"   {run.tasks_changed} changed, {run.tasks_failed} failed, "
            f"{run.tasks_skipped} skipped of {run.tasks_total}"
        )

    click.echo()


@cli.group()
def config() -> None:
    """Settings file commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate tenv.yml."""
    from tenvctl.core.use_cases.config_check import check_config

    result = check_config(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)

    if result.valid:
        assert result.settings is not None
        click.secho("✅ Configuration is valid", fg="green", bold=True)
        click.echo(f"   File: {result.config_path}")
        click.echo(f"   tenv: {result.settings.version}")
        click.echo(f"   Shell: {result.settings.shell}")
        click.echo(f"   Users: {', '.join(result.settings.users) or 'root'}")
    else:
        click.secho("❌ Configuration errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    click.echo()
    if not result.valid:
        sys.exit(1)


if __name__ == "__main__":
    cli()
