"""Memoized access to files in a remote GitHub repository.

The classifier asks two questions about a repository file, both by raw URL:
does it exist, and what is its text. Both answers are recorded in the
injected store the first time they are obtained and replayed afterwards.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, Optional

from constants import Constants
from common import http_client
from common.errors import RemoteNotFound
from common.logging_utils import extra_context, is_debug_enabled, safe_url
from probe.store import MemoryStore

logger = logging.getLogger(__name__)


def raw_file_url(repo_name: str, branch: str, path: str) -> str:
    """Build the raw-content URL of ``path`` on ``branch`` of ``owner/repo``."""
    return f"{Constants.GITHUB_RAW_BASE}/{repo_name}/{branch}/{path}"


class FileProbe:
    """Answer existence and content questions about remote files.

    Args:
        store: Backing store for memoized answers (``MemoryStore`` or
            ``FileStore``). Defaults to a fresh in-memory store.
        headers: Optional request headers sent with GET requests.
    """

    def __init__(self, store: Optional[MemoryStore] = None, headers: Optional[Dict[str, str]] = None):
        self.store = store if store is not None else MemoryStore()
        self.headers = headers
        self.requests_made = 0
        self._lock = threading.Lock()

    def _count_request(self) -> None:
        with self._lock:
            self.requests_made += 1

    def exists(self, url: str) -> bool:
        """Return whether ``url`` exists.

        A 404 is recorded as ``False``; any other failure propagates as
        ``TransportError`` and nothing is recorded.
        """
        filename = url.rsplit("/", 1)[-1] or url
        cached = self.store.get_exists(url)
        if cached is None:
            self._count_request()
            try:
                http_client.head(url)
                cached = True
            except RemoteNotFound:
                cached = False
            self.store.set_exists(url, cached)
        elif is_debug_enabled(logger):
            logger.debug(
                "Exists index hit",
                extra=extra_context(
                    event="cache_hit",
                    component="probe",
                    action="exists",
                    target=safe_url(url)
                )
            )

        if cached:
            logger.debug("  Found %s", filename)
        else:
            logger.debug("  No %s found", filename)
        return cached

    def fetch_body(self, url: str) -> str:
        """Return the text of ``url``, fetching it at most once.

        Raises:
            RemoteNotFound: the file does not exist.
            TransportError: any other non-success outcome.
        """
        body = self.store.get_body(url)
        if body is not None:
            if is_debug_enabled(logger):
                logger.debug(
                    "Body cache hit",
                    extra=extra_context(
                        event="cache_hit",
                        component="probe",
                        action="fetch_body",
                        target=safe_url(url)
                    )
                )
            return body

        self._count_request()
        body = http_client.get_text(url, headers=self.headers)
        self.store.set_body(url, body)
        return body
