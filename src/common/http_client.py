"""Shared HTTP helpers used by the file probe and the GitHub search client.

Encapsulates request/timeout/retry handling and status classification so
callers only ever see three outcomes: a successful response, a
``RemoteNotFound`` (HTTP 404) or a ``TransportError`` (anything else).
"""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

import requests

from constants import Constants
from common.errors import RemoteNotFound, TransportError
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


def _should_retry(status_code: int) -> bool:
    return status_code >= 500


def robust_request(
    method: str,
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any,
) -> requests.Response:
    """Perform a request with timeout and bounded retries, with DEBUG traces.

    Timeouts, connection errors and 5xx responses are retried up to
    ``Constants.HTTP_RETRY_MAX`` attempts with linear backoff. The last 5xx
    response is returned as-is so the caller can classify it; exhausted
    exception retries raise ``TransportError``.
    """
    safe_target = safe_url(url)
    last_exception = None
    response: Optional[requests.Response] = None

    for attempt in range(Constants.HTTP_RETRY_MAX):
        if attempt:
            time.sleep(Constants.HTTP_RETRY_BASE_DELAY_SEC * attempt)
        with Timer() as t:
            try:
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP request",
                        extra=extra_context(
                            event="http_request",
                            component="http_client",
                            action=method,
                            target=safe_target,
                            attempt=attempt + 1
                        )
                    )

                response = requests.request(
                    method,
                    url,
                    timeout=Constants.REQUEST_TIMEOUT,
                    headers=headers,
                    **kwargs
                )

                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP response",
                        extra=extra_context(
                            event="http_response",
                            component="http_client",
                            action=method,
                            outcome="success" if response.ok else "error_status",
                            status_code=response.status_code,
                            duration_ms=t.duration_ms(),
                            target=safe_target
                        )
                    )
                if not _should_retry(response.status_code):
                    return response
                last_exception = f"status {response.status_code}"
                continue

            except requests.Timeout:
                last_exception = "timeout"
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP timeout",
                        extra=extra_context(
                            event="http_exception",
                            component="http_client",
                            action=method,
                            outcome="timeout",
                            attempt=attempt + 1,
                            target=safe_target
                        )
                    )
                continue
            except requests.RequestException as exc:  # includes ConnectionError
                last_exception = str(exc)
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP request exception",
                        extra=extra_context(
                            event="http_exception",
                            component="http_client",
                            action=method,
                            outcome="request_exception",
                            attempt=attempt + 1,
                            target=safe_target
                        )
                    )
                continue

    if response is not None:
        return response
    logger.error(
        "%s %s failed after %s attempts: %s",
        method,
        safe_target,
        Constants.HTTP_RETRY_MAX,
        last_exception,
    )
    raise TransportError(
        url,
        reason=f"Request failed after {Constants.HTTP_RETRY_MAX} attempts: {last_exception}",
    )


def _raise_for_status(url: str, response: requests.Response) -> None:
    if response.status_code == 404:
        raise RemoteNotFound(url)
    if not response.ok:
        raise TransportError(url, response.status_code, response.reason or "")


def head(url: str, *, headers: Optional[Dict[str, str]] = None) -> None:
    """HEAD ``url``; return normally if it exists.

    Raises:
        RemoteNotFound: on HTTP 404.
        TransportError: on any other non-success outcome.
    """
    response = robust_request("HEAD", url, headers=headers, allow_redirects=True)
    _raise_for_status(url, response)


def get_text(url: str, *, headers: Optional[Dict[str, str]] = None) -> str:
    """GET ``url`` and return the decoded body.

    Raises:
        RemoteNotFound: on HTTP 404.
        TransportError: on any other non-success outcome.
    """
    response = robust_request("GET", url, headers=headers)
    _raise_for_status(url, response)
    return response.text
