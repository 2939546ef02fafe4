"""GitHub API client for listing the repositories to classify.

Provides a lightweight REST client over the repository search endpoint.
Search pages go through the same body cache as the file probe, so a rerun
lists exactly the same repositories without spending API quota.
"""
from __future__ import annotations

import json
import logging
import math
import os
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urlencode

from constants import Constants
from common import http_client
from common.errors import TransportError
from detection.models import RepositoryIdentity
from probe.store import MemoryStore

logger = logging.getLogger(__name__)


class GitHubClient:
    """Lightweight REST client for GitHub repository search.

    Supports authentication via the GITHUB_TOKEN environment variable.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        store: Optional[MemoryStore] = None,
        query: Optional[str] = None,
        max_pages: Optional[int] = None,
    ):
        """Initialize GitHub client.

        Args:
            base_url: Base URL for GitHub API (defaults to Constants.GITHUB_API_BASE)
            token: GitHub token (defaults to GITHUB_TOKEN env var)
            store: Response cache shared with the file probe
            query: Search qualifier prefix (defaults to Constants.QUERY)
            max_pages: Upper bound of search pages per language
        """
        self.base_url = base_url or Constants.GITHUB_API_BASE
        self.token = token or os.environ.get(Constants.ENV_GITHUB_TOKEN)
        self.store = store if store is not None else MemoryStore()
        self.query = query or Constants.QUERY
        self.max_pages = max_pages or Constants.MAX_PAGES

    def _get_headers(self) -> Dict[str, str]:
        """Get request headers including authorization if token is available."""
        headers = {"Accept": "application/vnd.github+json"}
        if self.token:
            headers["Authorization"] = f"token {self.token}"
        return headers

    def _search_url(self, language: str, page: int) -> str:
        params = {
            "q": f"{self.query} language:{language}",
            "sort": "stars",
            "page": str(page),
        }
        return f"{self.base_url}/search/repositories?{urlencode(params)}"

    def _get_page(self, url: str) -> Dict[str, Any]:
        body = self.store.get_body(url)
        if body is None:
            body = http_client.get_text(url, headers=self._get_headers())
            self.store.set_body(url, body)
        try:
            data = json.loads(body)
        except json.JSONDecodeError as exc:
            raise TransportError(url, reason=f"invalid JSON in search response: {exc}") from exc
        if not isinstance(data, dict):
            raise TransportError(url, reason="unexpected search response shape")
        return data

    def search_repositories(self, language: str) -> List[RepositoryIdentity]:
        """Fetch the most starred repositories written in ``language``.

        Args:
            language: GitHub linguist language name, e.g. "TypeScript"

        Returns:
            Repositories in search (star) order
        """
        repos: List[RepositoryIdentity] = []
        total_pages: Optional[int] = None

        for page in range(1, self.max_pages + 1):
            if total_pages is not None:
                if page > total_pages:
                    break
                logger.debug("Fetching %s page %d/%d", language, page, total_pages)
            else:
                logger.debug("Fetching %s page %d", language, page)

            data = self._get_page(self._search_url(language, page))
            items = data.get("items") or []
            for item in items:
                if not isinstance(item, dict) or not item.get("full_name"):
                    continue
                repos.append(
                    RepositoryIdentity(
                        name=item["full_name"],
                        default_branch=item.get("default_branch") or "main",
                    )
                )

            total_count = int(data.get("total_count") or 0)
            total_pages = min(
                math.ceil(total_count / Constants.SEARCH_PER_PAGE), self.max_pages
            )
            if not items or len(repos) >= total_count:
                break

        return repos

    def list_repositories(self, languages: Optional[Sequence[str]] = None) -> List[RepositoryIdentity]:
        """Concatenate search results for each language, in the given order."""
        repos: List[RepositoryIdentity] = []
        for language in languages or Constants.SEARCH_LANGUAGES:
            found = self.search_repositories(language)
            logger.info("Found %d %s repositories", len(found), language)
            repos.extend(found)
        return repos
