"""Key/value stores backing the file probe.

Two namespaces are kept per store:

* an *exists index* mapping a request URL to ``True``/``False``, recorded
  once and never expired;
* a *body cache* mapping a request URL to the verbatim response text.

``MemoryStore`` lives for one process and is what tests inject.
``FileStore`` persists both namespaces under a cache directory so later runs
replay earlier answers without touching the network.
"""

from __future__ import annotations

import json
import logging
import os
import re
import threading
from typing import Any, Dict, Optional

from constants import Constants

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^a-z0-9]", re.IGNORECASE)


def cache_key(url: str) -> str:
    """Derive a filesystem-safe key from a request URL.

    Every non-alphanumeric character becomes ``_`` and the result is
    lower-cased, e.g. ``https://x.io/a.json`` -> ``https___x_io_a_json``.
    """
    return _UNSAFE_KEY_CHARS.sub("_", str(url)).lower()


class MemoryStore:
    """In-process store; nothing survives the interpreter."""

    def __init__(self) -> None:
        self._exists: Dict[str, bool] = {}
        self._bodies: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get_exists(self, url: str) -> Optional[bool]:
        """Return the recorded existence of ``url``, or None if never checked."""
        value = self._exists.get(url)
        return value if isinstance(value, bool) else None

    def set_exists(self, url: str, exists: bool) -> None:
        with self._lock:
            self._exists[url] = bool(exists)

    def get_body(self, url: str) -> Optional[str]:
        return self._bodies.get(cache_key(url))

    def set_body(self, url: str, body: str) -> None:
        with self._lock:
            self._bodies[cache_key(url)] = body

    def stats(self) -> Dict[str, Any]:
        """Get store statistics."""
        return {
            "exists_entries": len(self._exists),
            "body_entries": len(self._bodies),
        }


class FileStore(MemoryStore):
    """Store persisted under ``cache_dir``.

    Layout::

        <cache_dir>/file-exists-stats.json   {url: bool, ...}
        <cache_dir>/fetch/<cache_key(url)>   raw body text
    """

    def __init__(self, cache_dir: Optional[str] = None) -> None:
        super().__init__()
        self.cache_dir = cache_dir or Constants.CACHE_DIR
        self.fetch_dir = os.path.join(self.cache_dir, Constants.CACHE_FETCH_SUBDIR)
        self.exists_index_path = os.path.join(self.cache_dir, Constants.CACHE_EXISTS_INDEX)
        self._exists = self._load_exists_index()

    def _load_exists_index(self) -> Dict[str, bool]:
        if not os.path.isfile(self.exists_index_path):
            return {}
        try:
            with open(self.exists_index_path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning(
                "Ignoring unreadable exists index %s: %s", self.exists_index_path, exc
            )
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, bool)}

    def set_exists(self, url: str, exists: bool) -> None:
        with self._lock:
            self._exists[url] = bool(exists)
            os.makedirs(self.cache_dir, exist_ok=True)
            tmp_path = f"{self.exists_index_path}.tmp"
            with open(tmp_path, "w", encoding="utf-8") as fh:
                json.dump(self._exists, fh)
            os.replace(tmp_path, self.exists_index_path)

    def _body_path(self, url: str) -> str:
        return os.path.join(self.fetch_dir, cache_key(url))

    def get_body(self, url: str) -> Optional[str]:
        path = self._body_path(url)
        if not os.path.isfile(path):
            return None
        with open(path, "r", encoding="utf-8", newline="") as fh:
            return fh.read()

    def set_body(self, url: str, body: str) -> None:
        path = self._body_path(url)
        with self._lock:
            os.makedirs(self.fetch_dir, exist_ok=True)
            with open(path, "w", encoding="utf-8", newline="") as fh:
                fh.write(body)

    def stats(self) -> Dict[str, Any]:
        body_entries = len(os.listdir(self.fetch_dir)) if os.path.isdir(self.fetch_dir) else 0
        return {
            "exists_entries": len(self._exists),
            "body_entries": body_entries,
            "cache_dir": self.cache_dir,
        }
