"""
Acceptance checks against a real, already-converged host.

Run after ``tenvctl apply`` on a disposable machine:

    TENVCTL_ACCEPTANCE=1 pytest -m acceptance
"""

import os
import shutil
import subprocess
from pathlib import Path

import pytest

from tenvctl.core.services.tenv_install.detection.host_facts import detect_host_facts
from tenvctl.core.services.tenv_install.detection.tool_version import get_tool_version
from tenvctl.core.services.tenv_install.domain.platform import resolve_strategy

pytestmark = [
    pytest.mark.acceptance,
    pytest.mark.skipif(
        os.environ.get("TENVCTL_ACCEPTANCE") != "1" or shutil.which("tenv") is None,
        reason="needs TENVCTL_ACCEPTANCE=1 on a converged host",
    ),
]


def test_tenv_runs():
    result = subprocess.run(["tenv", "version"], capture_output=True, text=True, check=False)
    assert result.returncode == 0
    assert "tenv version" in result.stdout


def test_tenv_version_parses():
    assert get_tool_version("tenv") is not None


def test_host_is_supported():
    assert resolve_strategy(detect_host_facts()).value in ("debian-like", "redhat-like", "arch-like")


def test_root_profile_exports_tenv_root():
    profile = Path(os.path.expanduser("~")) / ".bashrc"
    if not profile.is_file():
        pytest.skip("no bash profile for the current user")
    assert "TENV_ROOT" in profile.read_text()


def test_completion_script_written():
    script = Path(os.path.expanduser("~")) / ".tenv.completion.bash"
    if not (Path(os.path.expanduser("~")) / ".bashrc").is_file():
        pytest.skip("no bash profile for the current user")
    assert script.is_file()


def test_pinned_terraform_listed_after_install():
    install = subprocess.run(
        ["tenv", "tf", "install", "1.6.0"], capture_output=True, text=True, check=False,
    )
    assert install.returncode == 0, install.stderr

    listing = subprocess.run(["tenv", "tf", "list"], capture_output=True, text=True, check=False)
    assert listing.returncode == 0
    assert "1.6.0" in listing.stdout
