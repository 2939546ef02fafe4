"""Centralized logging helpers.

All modules obtain their logger with ``logging.getLogger(__name__)`` and route
structured DEBUG context through :func:`extra_context`. Configuration happens
once, from the CLI entry point, via :func:`configure_logging`.
"""
from __future__ import annotations

import logging
import os
import re
import time
from typing import Any, Dict, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from constants import Constants

_SENSITIVE_KEYS = {"token", "access_token", "api_key", "apikey", "key", "secret", "password"}
_TOKEN_PATTERN = re.compile(r"(gh[pousr]_[A-Za-z0-9]{8,}|github_pat_[A-Za-z0-9_]{8,})")


def configure_logging() -> None:
    """Configure the root logger from the environment.

    Honors ``PMSTATS_LOG_LEVEL`` (default INFO). Safe to call more than once:
    existing root handlers are replaced rather than duplicated.
    """
    level_name = os.environ.get(Constants.ENV_LOG_LEVEL, "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(level)

    # urllib3 is chatty at DEBUG and would drown the per-repository trace
    logging.getLogger("urllib3").setLevel(max(level, logging.INFO))


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records from ``logger`` would be emitted."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build an ``extra=`` mapping for structured log records.

    None values are dropped so formatters never see placeholder keys.
    """
    return {k: v for k, v in fields.items() if v is not None}


def redact(text: Optional[str]) -> str:
    """Mask anything that looks like a GitHub token."""
    if not text:
        return ""
    return _TOKEN_PATTERN.sub("[REDACTED]", str(text))


def safe_url(url: str) -> str:
    """Return ``url`` with credentials and sensitive query values masked."""
    try:
        parts = urlsplit(str(url))
    except ValueError:
        return redact(url)
    netloc = parts.netloc
    if "@" in netloc:
        netloc = "[REDACTED]@" + netloc.split("@", 1)[1]
    query = parts.query
    if query:
        pairs = [
            (k, "[REDACTED]" if k.lower() in _SENSITIVE_KEYS else v)
            for k, v in parse_qsl(query, keep_blank_values=True)
        ]
        query = urlencode(pairs, safe="[]:>")
    return redact(urlunsplit((parts.scheme, netloc, parts.path, query, parts.fragment)))


class Timer:
    """Context manager measuring wall-clock duration in milliseconds."""

    def __init__(self) -> None:
        self._start: Optional[float] = None
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> float:
        """Elapsed milliseconds; while still running, measured up to now."""
        if self._start is None:
            return 0.0
        end = self._end if self._end is not None else time.perf_counter()
        return round((end - self._start) * 1000, 2)
