"""
L1 Domain — Owned-line patching for shell profiles (pure).

A profile file is user-editable text. This module manages a set of
lines inside it, each addressed by a stable key:

- key present + desired   → line rewritten in place
- key missing + desired   → line appended
- key present + undesired → line removed
- everything else in the file is left byte-for-byte alone

Owned lines end with a ``# tenvctl:<key>`` marker. A line without the
marker that matches the entry's ``match`` pattern (for example a
hand-written ``export TENV_ROOT=...``) is adopted and rewritten, but
only for an entry that has content: removal touches marked lines only.

No I/O, no subprocess.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

MARKER_PREFIX = "# tenvctl:"


@dataclass(frozen=True)
class OwnedLine:
    """Desired state of one keyed line. ``content=None`` means absent.

    A file that receives a ``secret`` line is made private to its owner.
    """

    key: str
    content: str | None
    match: str | None = None
    secret: bool = False

    @property
    def rendered(self) -> str | None:
        if self.content is None:
            return None
        return f"{self.content}  {MARKER_PREFIX}{self.key}"


@dataclass
class PatchResult:
    """Outcome of reconciling owned lines against file text."""

    text: str
    added: list[str] = field(default_factory=list)
    replaced: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.replaced or self.removed)


def _quote(value: str, dialect: str) -> str:
    if dialect == "fish":
        escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("$", "\\$")
    else:
        escaped = (
            value.replace("\\", "\\\\")
            .replace('"', '\\"')
            .replace("$", "\\$")
            .replace("`", "\\`")
        )
    return f'"{escaped}"'


def export_line(dialect: str, name: str, value: str) -> str:
    """Shell-specific environment export line.

    POSIX dialects (bash, zsh) use ``export``; fish uses ``set -gx``.
    """
    if dialect == "fish":
        return f"set -gx {name} {_quote(value, dialect)}"
    return f"export {name}={_quote(value, dialect)}"


def export_match(dialect: str, name: str) -> str:
    """Pattern matching an unowned export of ``name`` in this dialect."""
    if dialect == "fish":
        return rf"^\s*set\s+-gx\s+{re.escape(name)}\s"
    return rf"^\s*export\s+{re.escape(name)}="


def source_line(path: str) -> str:
    """POSIX line loading a script into the current shell."""
    return f"source {_quote(path, 'bash')}"


def _line_key(line: str) -> str | None:
    idx = line.rfind(MARKER_PREFIX)
    if idx < 0:
        return None
    key = line[idx + len(MARKER_PREFIX):].strip()
    return key or None


def reconcile_lines(text: str, desired: list[OwnedLine]) -> PatchResult:
    """Apply the desired owned-line set to file text.

    Args:
        text: Current file content ("" for a missing file).
        desired: One entry per key.

    Returns:
        PatchResult with the new text and which keys changed.
        ``result.text == text`` whenever ``result.changed`` is False.
    """
    result = PatchResult(text=text)
    lines = text.splitlines()
    wanted = {entry.key: entry for entry in desired}
    handled: set[str] = set()
    out: list[str] = []

    for line in lines:
        key = _line_key(line)
        entry = wanted.get(key) if key else None

        if entry is None and key is None:
            # Unowned line: adopt it if it matches an entry still to be written
            for candidate in desired:
                if (
                    candidate.match
                    and candidate.content is not None
                    and candidate.key not in handled
                    and re.search(candidate.match, line)
                ):
                    entry = candidate
                    break

        if entry is None:
            out.append(line)
            continue

        if entry.key in handled:
            # Duplicate of a line we already placed; drop it
            result.removed.append(entry.key)
            continue
        handled.add(entry.key)

        rendered = entry.rendered
        if rendered is None:
            result.removed.append(entry.key)
            continue
        if line != rendered:
            result.replaced.append(entry.key)
        out.append(rendered)

    for entry in desired:
        if entry.key in handled or entry.rendered is None:
            continue
        out.append(entry.rendered)
        result.added.append(entry.key)
        handled.add(entry.key)

    if result.changed:
        result.text = "\n".join(out) + ("\n" if out else "")
    return result
