"""Size-capped download of crate archives."""

from __future__ import annotations

import logging
from typing import Callable, Optional

import requests

from constants import Constants
from common.http_client import safe_get
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from .errors import DownloadError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, Optional[int]], None]


def _content_length(response: requests.Response) -> Optional[int]:
    value = response.headers.get("Content-Length")
    if value is None:
        return None
    try:
        length = int(value)
    except ValueError:
        return None
    return length if length >= 0 else None


def fetch(
    url: str,
    *,
    limit: Optional[int] = None,
    progress: Optional[ProgressCallback] = None,
) -> bytes:
    """Download ``url`` and return at most ``limit`` bytes of its body.

    Reading stops at the cap, so an oversized body comes back truncated and
    fails the later checksum comparison instead of exhausting memory. A
    ``Content-Length`` header only sizes the progress total; it is never
    trusted as an allocation size beyond the cap.

    Args:
        url: Artifact download URL.
        limit: Byte cap, defaults to ``Constants.CRATE_SIZE_LIMIT``.
        progress: Optional callback receiving (bytes_read, expected_total).

    Raises:
        DownloadError: on transport errors or a non-success status.
    """
    cap = Constants.CRATE_SIZE_LIMIT if limit is None else limit
    target = safe_url(url)
    try:
        response = safe_get(url, context="download", stream=True)
    except requests.RequestException as exc:
        raise DownloadError(f"downloading {target} failed: {exc}") from exc

    with response:
        if response.status_code != 200:
            raise DownloadError(f"downloading {target} returned HTTP {response.status_code}")

        total = _content_length(response)
        expected = min(total, cap) if total is not None else None
        buffer = bytearray()
        with Timer() as t:
            try:
                for chunk in response.iter_content(chunk_size=Constants.DOWNLOAD_CHUNK_SIZE):
                    if not chunk:
                        continue
                    remaining = cap - len(buffer)
                    buffer.extend(chunk[:remaining])
                    if progress is not None:
                        progress(len(buffer), expected)
                    if len(buffer) >= cap:
                        logger.debug("Download of %s reached the %d byte cap", target, cap)
                        break
            except requests.RequestException as exc:
                raise DownloadError(f"reading body of {target} failed: {exc}") from exc

    if is_debug_enabled(logger):
        logger.debug(
            "Download complete",
            extra=extra_context(
                event="download",
                component="fetcher",
                target=target,
                size=len(buffer),
                content_length=total,
                duration_ms=t.duration_ms(),
            ),
        )
    return bytes(buffer)
