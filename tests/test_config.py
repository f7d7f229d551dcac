"""
Tests for the configuration loader.
"""

import textwrap
from pathlib import Path

import pytest

from tenvctl.core.config.loader import (
    ConfigError,
    find_settings_file,
    load_settings,
    read_settings_data,
)


def _write(tmp_path: Path, content: str, name: str = "tenv.yml") -> Path:
    path = tmp_path / name
    path.write_text(textwrap.dedent(content))
    return path


class TestFindSettingsFile:
    def test_found_in_start_dir(self, tmp_path: Path):
        path = _write(tmp_path, "version: latest\n")
        assert find_settings_file(tmp_path) == path.resolve()

    def test_found_in_parent(self, tmp_path: Path):
        path = _write(tmp_path, "version: latest\n")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_settings_file(nested) == path.resolve()

    def test_not_found(self, tmp_path: Path):
        assert find_settings_file(tmp_path) is None


class TestReadSettingsData:
    def test_top_level(self, tmp_path: Path):
        path = _write(tmp_path, "version: 4.1.0\nshell: zsh\n")
        assert read_settings_data(path) == {"version": "4.1.0", "shell": "zsh"}

    def test_wrapped_under_tenv(self, tmp_path: Path):
        path = _write(tmp_path, """\
            tenv:
              version: 4.1.0
              users: [alice]
        """)
        assert read_settings_data(path) == {"version": "4.1.0", "users": ["alice"]}

    def test_empty_file(self, tmp_path: Path):
        assert read_settings_data(_write(tmp_path, "")) == {}

    def test_invalid_yaml(self, tmp_path: Path):
        path = _write(tmp_path, "version: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            read_settings_data(path)

    def test_not_a_mapping(self, tmp_path: Path):
        path = _write(tmp_path, "- a\n- b\n")
        with pytest.raises(ConfigError, match="Expected a YAML mapping"):
            read_settings_data(path)


class TestLoadSettings:
    def test_file_values(self, tmp_path: Path):
        path = _write(tmp_path, """\
            version: v4.1.0
            shell: fish
            users:
              - alice
              - bob
            auto_install: true
            install_cosign: false
        """)
        settings, source = load_settings(path)
        assert source == path
        assert settings.version == "4.1.0"
        assert settings.shell == "fish"
        assert settings.users == ["alice", "bob"]
        assert settings.auto_install is True
        assert settings.install_cosign is False

    def test_defaults_without_file(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr("tenvctl.core.config.loader.find_settings_file", lambda: None)
        settings, source = load_settings()
        assert source is None
        assert settings.version == "latest"
        assert settings.shell == "bash"
        assert settings.users == []
        assert settings.install_cosign is True
        assert settings.verify_with_cosign is False
        assert settings.manage_prerequisites is True

    def test_explicit_missing_path(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="Config file not found"):
            load_settings(tmp_path / "nope.yml")

    def test_overrides_win(self, tmp_path: Path):
        path = _write(tmp_path, "version: 4.0.0\nshell: zsh\n")
        settings, _ = load_settings(path, {"version": "4.1.0", "shell": None})
        assert settings.version == "4.1.0"
        assert settings.shell == "zsh"

    def test_invalid_value(self, tmp_path: Path):
        path = _write(tmp_path, "shell: tcsh\n")
        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_settings(path)

    def test_invalid_version(self, tmp_path: Path):
        path = _write(tmp_path, "version: newest\n")
        with pytest.raises(ConfigError, match="Not a semantic version"):
            load_settings(path)
