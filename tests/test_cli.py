"""
Tests for CLI commands — apply, plan, status, config check, and global options.
"""

import functools
import json
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from tenvctl.core.use_cases import apply as apply_uc
from tenvctl.core.use_cases import status as status_uc
from tenvctl.main import cli
from tests.tenv_install.simulated_hosts import HOSTS, fixed_latest


@pytest.fixture
def config(tmp_path: Path, tmp_state_dir: Path, staging_dir: Path) -> Path:
    path = tmp_path / "tenv.yml"
    path.write_text(
        f"state_dir: {tmp_state_dir}\n"
        f"staging_dir: {staging_dir}\n"
        "users: [alice]\n"
    )
    return path


@pytest.fixture
def simulated(make_host, homes):
    """Route apply/plan/status through a simulated Ubuntu host."""
    host = make_host("ubuntu")
    sim = {"facts": HOSTS["ubuntu"], "run": host}
    with patch.object(
        apply_uc, "run_apply",
        functools.partial(apply_uc.run_apply, resolve_latest=fixed_latest, home_lookup=homes, **sim),
    ), patch.object(
        apply_uc, "prepare",
        functools.partial(apply_uc.prepare, resolve_latest=fixed_latest, home_lookup=homes, **sim),
    ), patch.object(
        status_uc, "get_status", functools.partial(status_uc.get_status, **sim),
    ):
        yield host


class TestCLIGlobal:
    """Tests for global CLI behavior."""

    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "install tenv and configure shells" in result.output
        for command in ("apply", "plan", "status", "config"):
            assert command in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_apply_help_lists_overrides(self):
        result = CliRunner().invoke(cli, ["apply", "--help"])
        assert result.exit_code == 0
        for option in ("--dry-run", "--version", "--shell", "--user", "--no-cosign", "--github-token"):
            assert option in result.output


class TestApplyCommand:
    def test_apply(self, config, simulated):
        result = CliRunner().invoke(cli, ["--config", str(config), "apply"])
        assert result.exit_code == 0, result.output
        assert "package:tenv" in result.output
        assert "Result:" in result.output
        assert simulated.installed["tenv"] == "4.1.0"

    def test_apply_twice_reports_nothing_changed(self, config, simulated):
        runner = CliRunner()
        runner.invoke(cli, ["--config", str(config), "apply"])
        result = runner.invoke(cli, ["--quiet", "--config", str(config), "apply", "--json"])
        data = json.loads(result.output)
        assert result.exit_code == 0
        assert data["report"]["changed"] == 0
        assert data["report"]["status"] == "ok"

    def test_dry_run_json(self, config, simulated):
        result = CliRunner().invoke(
            cli, ["--quiet", "--config", str(config), "apply", "--dry-run", "--json"],
        )
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["report"]["dry_run"] is True
        assert data["report"]["pending"] > 0
        assert simulated.mutations() == []

    def test_overrides_reach_settings(self, config, simulated):
        result = CliRunner().invoke(cli, [
            "--quiet", "--config", str(config), "apply", "--dry-run", "--json",
            "--version", "v4.0.0", "--shell", "zsh", "--user", "bob", "--user", "carol",
            "--no-cosign", "--github-token", "ghp_x",
        ])
        data = json.loads(result.output)
        settings = data["settings"]
        assert settings["version"] == "4.0.0"
        assert settings["shell"] == "zsh"
        assert settings["users"] == ["bob", "carol"]
        assert settings["install_cosign"] is False
        assert settings["github_token"] == "***"
        task_ids = [t["id"] for t in data["plan"]["tasks"]]
        assert not any("cosign" in t for t in task_ids)
        assert "exec:tenv_completion_bob_zsh" in task_ids

    def test_token_from_env(self, config, simulated):
        result = CliRunner().invoke(
            cli, ["--quiet", "--config", str(config), "plan", "--json"],
            env={"TENVCTL_GITHUB_TOKEN": "ghp_env"},
        )
        data = json.loads(result.output)
        assert data["settings"]["github_token"] == "***"

    def test_exported_tenv_token_is_not_an_override(self, config, simulated, tmp_path: Path):
        result = CliRunner().invoke(
            cli, ["--quiet", "--config", str(config), "apply", "--json"],
            env={"TENV_GITHUB_TOKEN": "ghp_from_profile"},
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["settings"]["github_token"] is None
        bashrc = (tmp_path / "homes" / "home" / "alice" / ".bashrc").read_text()
        assert "TENV_GITHUB_TOKEN" not in bashrc
        assert "ghp_from_profile" not in bashrc

    def test_failure_exit_code(self, config, simulated):
        simulated.fail("dpkg -i")
        result = CliRunner().invoke(cli, ["--config", str(config), "apply"])
        assert result.exit_code == 1
        assert "✗ package:" in result.output

    def test_unsupported_exit_code(self, config):
        with patch.object(apply_uc, "detect_host_facts", return_value=HOSTS["windows"]):
            result = CliRunner().invoke(cli, ["--config", str(config), "apply"])
        assert result.exit_code == 2
        assert "unsupported operating system" in result.output.lower()

    def test_missing_config(self, tmp_path: Path):
        result = CliRunner().invoke(cli, ["--config", str(tmp_path / "nope.yml"), "apply"])
        assert result.exit_code == 1
        assert "Config file not found" in result.output


class TestPlanCommand:
    def test_plan(self, config, simulated):
        result = CliRunner().invoke(cli, ["--config", str(config), "plan"])
        assert result.exit_code == 0
        assert "• get_tenv_version" in result.output
        assert "Users: alice" in result.output
        assert simulated.calls == []

    def test_plan_no_shell(self, config, simulated):
        result = CliRunner().invoke(
            cli, ["--quiet", "--config", str(config), "plan", "--json", "--no-shell"],
        )
        data = json.loads(result.output)
        assert data["plan"]["users"] == []


class TestStatusCommand:
    def test_status(self, config, simulated):
        runner = CliRunner()
        runner.invoke(cli, ["--config", str(config), "apply"])
        result = runner.invoke(cli, ["--config", str(config), "status"])
        assert result.exit_code == 0
        assert "Strategy: debian-like" in result.output
        assert "tenv 4.1.0 (dpkg)" in result.output
        assert "Last run:" in result.output

    def test_status_json(self, config, simulated):
        result = CliRunner().invoke(cli, ["--quiet", "--config", str(config), "status", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["strategy"] == "debian-like"
        assert data["binaries"]["tenv"] is None


class TestConfigCheckCommand:
    def test_valid(self, config):
        result = CliRunner().invoke(cli, ["--config", str(config), "config", "check"])
        assert result.exit_code == 0
        assert "Configuration is valid" in result.output
        assert "Users: alice" in result.output

    def test_invalid(self, tmp_path: Path):
        path = tmp_path / "tenv.yml"
        path.write_text("shell: csh\n")
        result = CliRunner().invoke(cli, ["--config", str(path), "config", "check"])
        assert result.exit_code == 1
        assert "Configuration errors" in result.output

    def test_json(self, config):
        result = CliRunner().invoke(cli, ["--config", str(config), "config", "check", "--json"])
        data = json.loads(result.output)
        assert data["valid"] is True
