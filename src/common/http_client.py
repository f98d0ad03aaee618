"""Shared HTTP helpers used by the registry index and the artifact fetcher.

Encapsulates the common User-Agent, timeout and DEBUG tracing so callers do
not duplicate them. Errors are propagated as ``requests`` exceptions; callers
decide whether a failure is fatal for their unit of work.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional, Tuple

import requests

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


def _default_headers(headers: Optional[Dict[str, str]]) -> Dict[str, str]:
    merged = {"User-Agent": Constants.USER_AGENT}
    if headers:
        merged.update(headers)
    return merged


def safe_get(url: str, *, context: str, **kwargs: Any) -> requests.Response:
    """Perform a single GET with the client tag, timeout and DEBUG traces.

    Args:
        url: Target URL.
        context: Human-readable source tag for logs (e.g., "download").
        **kwargs: Passed through to requests.get (``stream``, ``headers``...).

    Raises:
        requests.RequestException: on timeout or connection failure.
    """
    safe_target = safe_url(url)
    headers = _default_headers(kwargs.pop("headers", None))
    with Timer() as t:
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP request",
                extra=extra_context(
                    event="http_request",
                    component="http_client",
                    action="GET",
                    target=safe_target,
                    context=context,
                ),
            )
        try:
            res = requests.get(url, timeout=Constants.REQUEST_TIMEOUT, headers=headers, **kwargs)
        except requests.Timeout:
            logger.debug(
                "%s request timed out after %s seconds",
                context,
                Constants.REQUEST_TIMEOUT,
            )
            raise
        except requests.RequestException as exc:  # includes ConnectionError
            logger.debug("%s connection error: %s", context, exc)
            raise
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP response",
                extra=extra_context(
                    event="http_response",
                    component="http_client",
                    action="GET",
                    status_code=res.status_code,
                    duration_ms=t.duration_ms(),
                    target=safe_target,
                    context=context,
                ),
            )
        return res


def robust_get(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any,
) -> Tuple[int, Dict[str, str], str]:
    """GET with retries and exponential backoff for small text documents.

    Server errors (5xx) and transport errors are retried up to
    ``Constants.HTTP_RETRY_MAX`` times.

    Returns:
        Tuple of (status_code, headers_dict, body_text).

    Raises:
        requests.RequestException: when every attempt failed at the transport level.
    """
    safe_target = safe_url(url)
    last_exception: Optional[requests.RequestException] = None
    response: Optional[requests.Response] = None

    for attempt in range(max(1, Constants.HTTP_RETRY_MAX)):
        if attempt:
            time.sleep(Constants.HTTP_RETRY_BASE_DELAY_SEC * (2 ** (attempt - 1)))
        try:
            response = requests.get(
                url,
                timeout=Constants.REQUEST_TIMEOUT,
                headers=_default_headers(headers),
                **kwargs,
            )
        except requests.RequestException as exc:
            last_exception = exc
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP request exception",
                    extra=extra_context(
                        event="http_exception",
                        component="http_client",
                        action="GET",
                        outcome=type(exc).__name__,
                        attempt=attempt + 1,
                        target=safe_target,
                    ),
                )
            continue

        if response.status_code >= 500:
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP server error",
                    extra=extra_context(
                        event="http_response",
                        component="http_client",
                        action="GET",
                        outcome="retry",
                        status_code=response.status_code,
                        attempt=attempt + 1,
                        target=safe_target,
                    ),
                )
            continue
        return response.status_code, dict(response.headers), response.text

    if response is not None:
        return response.status_code, dict(response.headers), response.text
    assert last_exception is not None
    raise last_exception
