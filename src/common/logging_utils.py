"""Logging helpers shared by the CLI and the acquisition pipeline.

Provides a single ``configure_logging`` entry point plus small helpers for
structured DEBUG traces (``extra_context``), URL sanitizing and timing.
"""
from __future__ import annotations

import logging
import os
import time
import urllib.parse
from typing import Any, Dict, Optional

from constants import Constants

_CONFIGURED_HANDLER: Optional[logging.Handler] = None


def configure_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """Configure the root logger once.

    The level is taken from ``level``, then the ``CRATEDL_LOG_LEVEL``
    environment variable, then defaults to INFO. Calling this again replaces
    the previously installed console handler instead of stacking a new one.
    """
    global _CONFIGURED_HANDLER  # pylint: disable=global-statement

    root = logging.getLogger()
    level_name = (level or os.environ.get(Constants.ENV_LOG_LEVEL) or "INFO").upper()
    level_value = getattr(logging, level_name, None)
    invalid_level = not isinstance(level_value, int)
    if invalid_level:
        level_value = logging.INFO
    root.setLevel(level_value)

    if _CONFIGURED_HANDLER is not None:
        root.removeHandler(_CONFIGURED_HANDLER)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
    root.addHandler(handler)
    _CONFIGURED_HANDLER = handler

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        root.addHandler(file_handler)

    if invalid_level:
        logging.getLogger(__name__).warning("Unknown log level %r, using INFO", level_name)


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True if DEBUG records from ``logger`` would be emitted."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**kwargs: Any) -> Dict[str, Any]:
    """Build an ``extra=`` mapping for structured log records, dropping None values."""
    return {k: v for k, v in kwargs.items() if v is not None}


def safe_url(url: str) -> str:
    """Strip credentials, query and fragment from a URL before logging it."""
    try:
        parts = urllib.parse.urlsplit(url)
    except ValueError:
        return "<unparseable url>"
    netloc = parts.hostname or ""
    if parts.port:
        netloc = f"{netloc}:{parts.port}"
    return urllib.parse.urlunsplit((parts.scheme, netloc, parts.path, "", ""))


class Timer:
    """Context manager measuring wall-clock duration."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.monotonic()
        self._end = None
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._end = time.monotonic()

    def duration_ms(self) -> int:
        """Elapsed milliseconds, measured up to now while still running."""
        end = self._end if self._end is not None else time.monotonic()
        return int((end - self._start) * 1000)
