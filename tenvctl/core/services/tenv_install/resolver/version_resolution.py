"""
L2 Resolver — "latest" version discovery.

The discovery source sits behind a narrow callable,
``resolve_latest(tool) -> version``, so tests and offline setups can
swap it. Results are memoised per run in a ``VersionCache``.
"""

from __future__ import annotations

import json
import logging
import urllib.request
from typing import Callable

from tenvctl.core.errors import UnresolvableVersion
from tenvctl.core.services.tenv_install.data.constants import RELEASES
from tenvctl.core.services.tenv_install.domain.artifacts import LATEST, normalize_version

logger = logging.getLogger(__name__)

LatestLookup = Callable[[str], str]


def github_latest_release(
    tool: str,
    *,
    token: str | None = None,
    timeout: int = 15,
) -> str:
    """Ask the GitHub releases API for a tool's newest tag.

    Returns:
        Bare semver string (``"4.1.0"``).

    Raises:
        UnresolvableVersion: Unknown tool, HTTP/network error or an
            unusable ``tag_name``.
    """
    source = RELEASES.get(tool)
    if source is None:
        raise UnresolvableVersion(f"No release source for tool '{tool}'", step=f"get_{tool}_version")

    headers = {
        "Accept": "application/vnd.github+json",
        "User-Agent": "tenvctl/1.0",
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"

    req = urllib.request.Request(source.latest_api_url, headers=headers)
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            data = json.loads(resp.read())
    except Exception as exc:
        raise UnresolvableVersion(
            f"Failed to fetch latest {tool} release: {exc}",
            version=LATEST,
            step=f"get_{tool}_version",
        ) from exc

    tag = data.get("tag_name", "") if isinstance(data, dict) else ""
    try:
        return normalize_version(tag)
    except ValueError as exc:
        raise UnresolvableVersion(
            f"Unexpected release tag for {tool}: {tag!r}",
            version=LATEST,
            step=f"get_{tool}_version",
        ) from exc


class VersionCache:
    """Per-run memo of resolved versions.

    ``resolve(tool, requested)`` returns a concrete version. A "latest"
    request hits the lookup at most once per tool for the lifetime of
    the cache.
    """

    def __init__(self, lookup: LatestLookup):
        self._lookup = lookup
        self._resolved: dict[str, str] = {}

    def resolve(self, tool: str, requested: str) -> str:
        if requested != LATEST:
            return requested
        if tool not in self._resolved:
            logger.debug("Resolving latest %s version", tool)
            try:
                version = self._lookup(tool)
            except UnresolvableVersion:
                raise
            except Exception as exc:
                raise UnresolvableVersion(
                    f"Version discovery for {tool} failed: {exc}",
                    version=LATEST,
                    step=f"get_{tool}_version",
                ) from exc
            self._resolved[tool] = normalize_version(version)
            logger.info("Latest %s version is %s", tool, self._resolved[tool])
        return self._resolved[tool]
