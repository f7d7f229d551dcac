"""
L2 Resolver — Configured users → concrete targets.
"""

from __future__ import annotations

import logging
import pwd
from typing import Callable

from tenvctl.core.services.tenv_install.domain.users import ROOT_USER, UserTarget

logger = logging.getLogger(__name__)

HomeLookup = Callable[[str], str]


def default_home_lookup(username: str) -> str:
    """Home directory for ``username``.

    ``root`` is always ``/root``. Other accounts come from the password
    database, falling back to ``/home/<user>`` for accounts that do not
    exist (yet) on this host.
    """
    if username == ROOT_USER:
        return "/root"
    try:
        return pwd.getpwnam(username).pw_dir
    except KeyError:
        logger.debug("No passwd entry for %s, assuming /home/%s", username, username)
        return f"/home/{username}"


def resolve_users(
    users: list[str] | None,
    shell: str,
    home_lookup: HomeLookup = default_home_lookup,
) -> list[UserTarget]:
    """Expand the configured user list.

    An empty list means just root. Order follows the input; repeated
    names (or names sharing a home directory) collapse to the first.
    The result is never empty.
    """
    names = [u.strip() for u in (users or []) if u and u.strip()]
    if not names:
        names = [ROOT_USER]

    targets: list[UserTarget] = []
    seen_users: set[str] = set()
    seen_homes: set[str] = set()
    for name in names:
        if name in seen_users:
            continue
        home = home_lookup(name).rstrip("/") or "/"
        if home in seen_homes:
            logger.warning("User %s shares home %s with another target, skipping", name, home)
            continue
        seen_users.add(name)
        seen_homes.add(home)
        targets.append(UserTarget(username=name, home=home, shell=shell))

    return targets
