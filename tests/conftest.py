"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest

from tenvctl.core.models.settings import TenvSettings
from tests.tenv_install.simulated_hosts import (
    COSIGN_VERSION,
    HOSTS,
    TENV_VERSION,
    FakeHost,
    home_lookup_in,
)
from tenvctl.core.services.tenv_install.domain.platform import resolve_strategy


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def tmp_state_dir(tmp_path: Path) -> Path:
    """Return a temporary directory for state files."""
    state_dir = tmp_path / "state"
    state_dir.mkdir()
    return state_dir


@pytest.fixture
def staging_dir(tmp_path: Path) -> Path:
    path = tmp_path / "staging"
    path.mkdir()
    return path


@pytest.fixture
def homes(tmp_path: Path):
    """Home lookup rooted in the temp dir."""
    return home_lookup_in(tmp_path / "homes")


@pytest.fixture
def make_settings(tmp_state_dir: Path, staging_dir: Path):
    """Settings factory pointing state and staging into the temp dir."""

    def factory(**overrides) -> TenvSettings:
        data = {"state_dir": str(tmp_state_dir), "staging_dir": str(staging_dir)}
        data.update(overrides)
        return TenvSettings(**data)

    return factory


@pytest.fixture
def make_host(staging_dir: Path):
    """FakeHost with tenv and cosign releases published for a host profile."""

    def factory(profile: str = "ubuntu", **kwargs) -> FakeHost:
        host = FakeHost(**kwargs)
        facts = HOSTS[profile]
        strategy = resolve_strategy(facts)
        if strategy.extension is not None:
            host.publish("tenv", TENV_VERSION, facts, strategy, staging_dir=str(staging_dir))
            host.publish("cosign", COSIGN_VERSION, facts, strategy, staging_dir=str(staging_dir))
        return host

    return factory
