"""
L1 Domain — Per-user configuration targets (pure).
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass

from tenvctl.core.services.tenv_install.data.profile_maps import PROFILE_MAP

ROOT_USER = "root"


@dataclass(frozen=True)
class UserTarget:
    """One user whose shell gets configured."""

    username: str
    home: str
    shell: str

    @property
    def profile_path(self) -> str:
        return posixpath.join(self.home, PROFILE_MAP[self.shell]["rc_file"])

    @property
    def config_dir(self) -> str | None:
        """Dialect config directory that must exist, if any."""
        rel = PROFILE_MAP[self.shell]["config_dir"]
        return posixpath.join(self.home, rel) if rel else None

    @property
    def tenv_root(self) -> str:
        return posixpath.join(self.home, ".tenv")

    @property
    def completion_path(self) -> str:
        return posixpath.join(self.home, PROFILE_MAP[self.shell]["completion_file"])

    @property
    def completion_needs_loader(self) -> bool:
        """bash/zsh source the script explicitly; fish autoloads it."""
        return self.shell != "fish"
