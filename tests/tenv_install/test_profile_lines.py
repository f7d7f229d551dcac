"""
Tests for the owned-line reconciler — pure text patching.
"""

from tenvctl.core.services.tenv_install.domain.profile_lines import (
    OwnedLine,
    export_line,
    export_match,
    reconcile_lines,
    source_line,
)


def _root(value: str = "/root/.tenv") -> OwnedLine:
    return OwnedLine(
        key="tenv_root_root",
        content=export_line("bash", "TENV_ROOT", value),
        match=export_match("bash", "TENV_ROOT"),
    )


class TestRendering:
    def test_posix_export(self):
        assert export_line("bash", "TENV_ROOT", "/root/.tenv") == 'export TENV_ROOT="/root/.tenv"'
        assert export_line("zsh", "TENV_AUTO_INSTALL", "true") == 'export TENV_AUTO_INSTALL="true"'

    def test_fish_export(self):
        assert export_line("fish", "TENV_ROOT", "/home/a/.tenv") == 'set -gx TENV_ROOT "/home/a/.tenv"'

    def test_quoting(self):
        assert export_line("bash", "T", 'a"b$c`d') == 'export T="a\\"b\\$c\\`d"'

    def test_source(self):
        assert source_line("/root/.tenv.completion.bash") == 'source "/root/.tenv.completion.bash"'

    def test_marker(self):
        assert _root().rendered == 'export TENV_ROOT="/root/.tenv"  # tenvctl:tenv_root_root'


class TestReconcile:
    def test_append_to_empty(self):
        result = reconcile_lines("", [_root()])
        assert result.added == ["tenv_root_root"]
        assert result.text == _root().rendered + "\n"

    def test_append_keeps_existing_content(self):
        text = "alias ll='ls -l'\n"
        result = reconcile_lines(text, [_root()])
        assert result.text.startswith("alias ll='ls -l'\n")
        assert result.text.endswith(_root().rendered + "\n")

    def test_idempotent(self):
        first = reconcile_lines("# my bashrc\n", [_root()])
        second = reconcile_lines(first.text, [_root()])
        assert not second.changed
        assert second.text == first.text

    def test_replace_in_place_by_key(self):
        text = f"before\n{_root('/old').rendered}\nafter\n"
        result = reconcile_lines(text, [_root()])
        assert result.replaced == ["tenv_root_root"]
        assert result.text == f"before\n{_root().rendered}\nafter\n"
        assert result.text.count("tenvctl:tenv_root_root") == 1

    def test_remove_when_undesired(self):
        line = OwnedLine("tenv_auto_install_root", 'export TENV_AUTO_INSTALL="true"')
        text = reconcile_lines("x=1\n", [line]).text
        result = reconcile_lines(text, [OwnedLine("tenv_auto_install_root", None)])
        assert result.removed == ["tenv_auto_install_root"]
        assert result.text == "x=1\n"

    def test_absent_stays_absent(self):
        result = reconcile_lines("x=1\n", [OwnedLine("tenv_github_token_root", None)])
        assert not result.changed
        assert result.text == "x=1\n"

    def test_adopts_unmarked_export(self):
        text = "export TENV_ROOT=/opt/tenv\n"
        result = reconcile_lines(text, [_root()])
        assert result.replaced == ["tenv_root_root"]
        assert result.text == _root().rendered + "\n"

    def test_unmarked_export_kept_when_option_off(self):
        text = "export TENV_GITHUB_TOKEN=ghp_mine_handwritten\n"
        token = OwnedLine(
            "tenv_github_token_alice", None,
            match=export_match("bash", "TENV_GITHUB_TOKEN"), secret=True,
        )
        result = reconcile_lines(text, [token])
        assert not result.changed
        assert result.text == text

    def test_marked_line_removed_unmarked_kept(self):
        token = OwnedLine(
            "tenv_github_token_alice", 'export TENV_GITHUB_TOKEN="ghp_ours"',
            match=export_match("bash", "TENV_GITHUB_TOKEN"),
        )
        text = f"export TENV_GITHUB_TOKEN=ghp_mine\n{token.rendered}\n"
        off = OwnedLine("tenv_github_token_alice", None, match=token.match)
        result = reconcile_lines(text, [off])
        assert result.removed == ["tenv_github_token_alice"]
        assert result.text == "export TENV_GITHUB_TOKEN=ghp_mine\n"

    def test_duplicates_dropped(self):
        text = f"{_root().rendered}\n{_root('/dup').rendered}\n"
        result = reconcile_lines(text, [_root()])
        assert result.text == _root().rendered + "\n"
        assert result.removed == ["tenv_root_root"]

    def test_other_keys_untouched(self):
        other = 'export TENV_ROOT="/home/bob/.tenv"  # tenvctl:tenv_root_bob'
        result = reconcile_lines(other + "\n", [_root()])
        assert other in result.text.splitlines()
        assert result.added == ["tenv_root_root"]

    def test_unchanged_text_preserved_exactly(self):
        text = "no trailing newline"
        result = reconcile_lines(text, [OwnedLine("k", None)])
        assert result.text == text
