"""
State file persistence — atomic read/write for HostState.

State is stored as JSON in ``<state_dir>/state.json``. Writes go to a
temp file in the same directory and are renamed into place, so a crash
mid-write never leaves a truncated file.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from tenvctl.core.models.state import HostState

logger = logging.getLogger(__name__)

DEFAULT_STATE_FILE = "state.json"


def default_state_path(state_dir: str | Path) -> Path:
    """State file path inside a state directory."""
    return Path(state_dir) / DEFAULT_STATE_FILE


def load_state(path: Path) -> HostState:
    """Load host state; a missing or corrupt file yields a fresh state."""
    if not path.is_file():
        logger.debug("No state file at %s, starting fresh", path)
        return HostState()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        state = HostState.model_validate(data)
        logger.debug("Loaded state from %s (updated_at=%s)", path, state.updated_at)
        return state
    except json.JSONDecodeError as e:
        logger.warning("Corrupt state file %s: %s, starting fresh", path, e)
        return HostState()
    except (OSError, ValueError) as e:
        logger.warning("Cannot load state from %s: %s, starting fresh", path, e)
        return HostState()


def save_state(state: HostState, path: Path) -> None:
    """Save host state (atomic write).

    Raises:
        OSError: The directory or file cannot be written.
    """
    state.touch()
    path.parent.mkdir(parents=True, exist_ok=True)

    data = state.model_dump(mode="json")
    content = json.dumps(data, indent=2, ensure_ascii=False) + "\n"

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".state_", suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp, path)
        logger.debug("State saved to %s", path)
    except OSError as e:
        tmp.unlink(missing_ok=True)
        logger.error("Failed to save state to %s: %s", path, e)
        raise
