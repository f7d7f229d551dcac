"""
Tests for package database queries and binary version detection.
"""

from tenvctl.core.services.tenv_install.detection.package_records import (
    is_pkg_installed,
    query_package,
)
from tenvctl.core.services.tenv_install.detection.tool_version import get_tool_version
from tenvctl.core.services.tenv_install.domain.artifacts import normalize_installed_version
from tests.tenv_install.simulated_hosts import FakeHost


class TestQueryPackage:
    def test_dpkg_installed(self):
        rec = query_package("tenv", "apt", provider="dpkg", run=FakeHost({"tenv": "4.1.0"}))
        assert rec.installed
        assert rec.version == "4.1.0"
        assert rec.provider == "dpkg"

    def test_dpkg_absent(self):
        rec = query_package("tenv", "apt", run=FakeHost())
        assert not rec.installed
        assert rec.provider == "apt"

    def test_rpm(self):
        rec = query_package("cosign", "rpm", run=FakeHost({"cosign": "2.4.1"}))
        assert rec.satisfies("2.4.1")
        assert not rec.satisfies("2.4.0")

    def test_pacman_strips_release(self):
        rec = query_package("tenv-bin", "pacman", run=FakeHost({"tenv-bin": "4.1.0"}))
        assert rec.version == "4.1.0"

    def test_unknown_pm(self):
        assert not query_package("tenv", "zypper", run=FakeHost({"tenv": "4.1.0"})).installed

    def test_is_pkg_installed(self):
        host = FakeHost({"curl": "8.0.1"})
        assert is_pkg_installed("curl", "dnf", run=host)
        assert not is_pkg_installed("jq", "dnf", run=host)


class TestNormalizeInstalledVersion:
    def test_epoch(self):
        assert normalize_installed_version("1:2.4.1") == "2.4.1"

    def test_release_suffix(self):
        assert normalize_installed_version("4.1.0-1") == "4.1.0"

    def test_leading_v(self):
        assert normalize_installed_version("v4.1.0") == "4.1.0"

    def test_deb_prerelease(self):
        assert normalize_installed_version("2.7.0~rc1") == "2.7.0-rc1"

    def test_pacman_prerelease(self):
        assert normalize_installed_version("2.7.0_rc1-1") == "2.7.0-rc1"

    def test_hyphen_prerelease_with_release(self):
        assert normalize_installed_version("2.7.0-rc1-1") == "2.7.0-rc1"


class TestToolVersion:
    def test_tenv(self):
        assert get_tool_version("tenv", run=FakeHost({"tenv": "4.1.0"})) == "4.1.0"

    def test_tenv_from_aur_package(self):
        assert get_tool_version("tenv", run=FakeHost({"tenv-bin": "4.2.0"})) == "4.2.0"

    def test_cosign(self):
        assert get_tool_version("cosign", run=FakeHost({"cosign": "2.4.1"})) == "2.4.1"

    def test_prerelease(self):
        assert get_tool_version("tenv", run=FakeHost({"tenv": "2.7.0-rc1"})) == "2.7.0-rc1"

    def test_missing_binary(self):
        assert get_tool_version("tenv", run=FakeHost()) is None

    def test_unknown_tool(self):
        assert get_tool_version("terraform", run=FakeHost()) is None

    def test_unparseable_output(self):
        def runner(cmd, **kwargs):
            return {"ok": True, "returncode": 0, "stdout": "something else", "stderr": ""}

        assert get_tool_version("tenv", run=runner) is None
