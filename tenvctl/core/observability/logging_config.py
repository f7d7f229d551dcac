"""
Logging configuration — set up once by the CLI.

Every module does ``logger = logging.getLogger(__name__)`` and inherits
this config.

Console level precedence:
    --debug  >  --verbose  >  --quiet  >  TENVCTL_LOG_LEVEL  >  WARNING

Optional file output via TENVCTL_LOG_FILE / TENVCTL_LOG_FILE_LEVEL.
"""

from __future__ import annotations

import logging
import os
import sys

ENV_LEVEL = "TENVCTL_LOG_LEVEL"
ENV_FILE = "TENVCTL_LOG_FILE"
ENV_FILE_LEVEL = "TENVCTL_LOG_FILE_LEVEL"

# ── Format strings ──────────────────────────────────────────────

# WARNING: just the message
_FMT_MINIMAL = "%(message)s"

# INFO: task lines with a timestamp
_FMT_VERBOSE = "%(asctime)s %(message)s"
_DATEFMT_VERBOSE = "%H:%M:%S"

# DEBUG: module and line
_FMT_DEBUG = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_DEBUG = "%H:%M:%S"

# File output keeps the date
_FMT_FILE = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

_NOISY_LOGGERS = ("urllib3", "urllib.request", "distro")


def resolve_level(
    *,
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    env: dict[str, str] | None = None,
) -> str:
    """Pick the console level name from CLI flags and the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    environ = os.environ if env is None else env
    return environ.get(ENV_LEVEL, "WARNING")


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Configure the root logger for the whole process.

    Args:
        level: Console level name.
        log_file: Optional log file path (``TENVCTL_LOG_FILE`` if None).
        log_file_level: File level; defaults to ``TENVCTL_LOG_FILE_LEVEL``
            and then to ``level``.
        quiet_third_party: Hold library loggers at WARNING unless the
            console is at DEBUG.
    """
    console_level = _parse_level(level)
    log_file = log_file or os.environ.get(ENV_FILE) or None
    log_file_level = log_file_level or os.environ.get(ENV_FILE_LEVEL) or None

    root = logging.getLogger()
    _reset_handlers(root)
    root.addHandler(_console_handler(console_level))

    root_level = console_level
    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        root.addHandler(_file_handler(log_file, file_level))
        root_level = min(root_level, file_level)
    root.setLevel(root_level)

    if quiet_third_party and console_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.raiseExceptions = False


def _console_handler(level: int) -> logging.Handler:
    if level <= logging.DEBUG:
        formatter = logging.Formatter(_FMT_DEBUG, datefmt=_DATEFMT_DEBUG)
    elif level <= logging.INFO:
        formatter = logging.Formatter(_FMT_VERBOSE, datefmt=_DATEFMT_VERBOSE)
    else:
        formatter = logging.Formatter(_FMT_MINIMAL)
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _file_handler(path: str, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
    return handler


def _reset_handlers(root: logging.Logger) -> None:
    """Drop existing root handlers; close log files from an earlier setup."""
    for handler in list(root.handlers):
        root.removeHandler(handler)
        if isinstance(handler, logging.FileHandler):
            handler.close()


def _parse_level(level: str | None) -> int:
    """Level name → numeric constant; unknown names mean WARNING."""
    numeric = getattr(logging, (level or "").upper(), None)
    return numeric if isinstance(numeric, int) else logging.WARNING
