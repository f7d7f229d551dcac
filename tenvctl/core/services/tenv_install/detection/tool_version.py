"""
L3 Detection — Installed binary version.

Runs the tool's version command and parses the output. Used as the
post-install assertion: package-manager success alone is not proof
the binary works.
"""

from __future__ import annotations

import re

from tenvctl.core.services.tenv_install.data.constants import RELEASES
from tenvctl.core.services.tenv_install.execution.subprocess_runner import Runner, run_command


def get_tool_version(tool: str, *, run: Runner = run_command) -> str | None:
    """Get the version reported by an installed tool.

    Returns:
        Semver string (e.g. ``"4.1.0"``) or ``None`` if the binary is
        missing, exits non-zero, or prints nothing recognisable.
    """
    source = RELEASES.get(tool)
    if source is None:
        return None

    result = run(list(source.version_command), timeout=10)
    if not result["ok"]:
        return None

    # cosign prints its version block to stderr on some releases
    output = (result.get("stdout") or "") + (result.get("stderr") or "")
    match = re.search(source.version_pattern, output)
    return match.group(1) if match else None
