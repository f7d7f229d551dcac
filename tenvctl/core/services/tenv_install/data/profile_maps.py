"""
L0 Data — Shell profile/rc file mappings.

Maps shell dialects to their configuration paths, relative to the
user's home directory.
"""

from __future__ import annotations

PROFILE_MAP: dict[str, dict[str, str]] = {
    "bash": {
        "rc_file": ".bashrc",
        "config_dir": "",
        "completion_file": ".tenv.completion.bash",
    },
    "zsh": {
        "rc_file": ".zshrc",
        "config_dir": "",
        "completion_file": ".tenv.completion.zsh",
    },
    "fish": {
        "rc_file": ".config/fish/config.fish",
        "config_dir": ".config/fish",
        # fish autoloads completions from this directory; no loader line
        "completion_file": ".config/fish/completions/tenv.fish",
    },
}

SUPPORTED_SHELLS: tuple[str, ...] = tuple(PROFILE_MAP)
