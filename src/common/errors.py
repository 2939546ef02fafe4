"""Exception types shared by the probe, the classifier and the CLI."""

from __future__ import annotations

from typing import Optional


class PmStatsError(Exception):
    """Base class for all errors raised by pmstats."""


class RemoteNotFound(PmStatsError):
    """The remote file does not exist (HTTP 404).

    This is an absence signal, not a failure: the classifier treats it as
    "marker file not present" and moves on.
    """

    def __init__(self, url: str):
        super().__init__(f"Not found: {url}")
        self.url = url


class TransportError(PmStatsError):
    """Any non-success HTTP status other than 404, or an exhausted retry budget."""

    def __init__(self, url: str, status_code: Optional[int] = None, reason: str = ""):
        detail = f"Network error {status_code}" if status_code is not None else "Network error"
        if reason:
            detail = f"{detail}: {reason}"
        super().__init__(f"{detail} ({url})")
        self.url = url
        self.status_code = status_code
        self.reason = reason


class ClassificationError(PmStatsError):
    """Repository contents that the classifier refuses to guess about."""
