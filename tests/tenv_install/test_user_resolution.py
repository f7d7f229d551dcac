"""
Tests for user resolution — default root, order and de-duplication.
"""

from unittest.mock import patch

from tenvctl.core.services.tenv_install.domain.users import UserTarget
from tenvctl.core.services.tenv_install.resolver.user_resolution import (
    default_home_lookup,
    resolve_users,
)


def _homes(name: str) -> str:
    return "/root" if name == "root" else f"/home/{name}"


class TestResolveUsers:
    def test_empty_means_root(self):
        targets = resolve_users([], "bash", _homes)
        assert targets == [UserTarget(username="root", home="/root", shell="bash")]

    def test_none_means_root(self):
        assert [t.username for t in resolve_users(None, "zsh", _homes)] == ["root"]

    def test_order_preserved(self):
        targets = resolve_users(["user2", "user1"], "bash", _homes)
        assert [t.username for t in targets] == ["user2", "user1"]

    def test_explicit_list_excludes_root(self):
        targets = resolve_users(["user1", "user2"], "bash", _homes)
        assert "root" not in [t.username for t in targets]

    def test_duplicates_collapse(self):
        targets = resolve_users(["alice", "bob", "alice"], "fish", _homes)
        assert [t.username for t in targets] == ["alice", "bob"]

    def test_shared_home_collapses(self):
        targets = resolve_users(["a", "b"], "bash", lambda name: "/srv/shared/")
        assert [t.username for t in targets] == ["a"]
        assert targets[0].home == "/srv/shared"

    def test_blank_names_ignored(self):
        assert [t.username for t in resolve_users(["  ", ""], "bash", _homes)] == ["root"]


class TestUserTarget:
    def test_bash_paths(self):
        t = UserTarget("alice", "/home/alice", "bash")
        assert t.profile_path == "/home/alice/.bashrc"
        assert t.tenv_root == "/home/alice/.tenv"
        assert t.config_dir is None
        assert t.completion_path == "/home/alice/.tenv.completion.bash"
        assert t.completion_needs_loader

    def test_zsh_paths(self):
        t = UserTarget("root", "/root", "zsh")
        assert t.profile_path == "/root/.zshrc"
        assert t.completion_path == "/root/.tenv.completion.zsh"

    def test_fish_paths(self):
        t = UserTarget("bob", "/home/bob", "fish")
        assert t.profile_path == "/home/bob/.config/fish/config.fish"
        assert t.config_dir == "/home/bob/.config/fish"
        assert t.completion_path == "/home/bob/.config/fish/completions/tenv.fish"
        assert not t.completion_needs_loader


class TestDefaultHomeLookup:
    def test_root(self):
        assert default_home_lookup("root") == "/root"

    def test_passwd_entry(self):
        class Entry:
            pw_dir = "/var/lib/ci"

        with patch("tenvctl.core.services.tenv_install.resolver.user_resolution.pwd.getpwnam",
                   return_value=Entry()):
            assert default_home_lookup("ci") == "/var/lib/ci"

    def test_missing_account_falls_back(self):
        with patch("tenvctl.core.services.tenv_install.resolver.user_resolution.pwd.getpwnam",
                   side_effect=KeyError("nobody-here")):
            assert default_home_lookup("ghost") == "/home/ghost"
