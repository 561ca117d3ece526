"""HTTP helpers shared by the source adapters."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

logger = logging.getLogger(__name__)

# Retry settings for transient server errors.
MAX_RETRIES = 3
BASE_DELAY = 2  # seconds

_RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


def request_with_retry(
    client: httpx.Client,
    method: str,
    url: str,
    *,
    label: str,
    max_retries: int = MAX_RETRIES,
    **kwargs: Any,
) -> httpx.Response | None:
    """Send a request, retrying 429/5xx responses and network errors with back-off.

    Returns the response on 2xx, or ``None`` once retries are exhausted or
    the server answers with a non-retryable status.

    Args:
        client: Open ``httpx.Client``.
        method: HTTP method, e.g. ``"GET"``.
        url: Absolute URL.
        label: Short name used in log lines (never includes credentials).
        max_retries: Number of attempts before giving up.
        **kwargs: Forwarded to ``client.request`` (``params``, ``json``, …).
    """
    last_exc: Exception | None = None
    for attempt in range(max_retries):
        try:
            resp = client.request(method, url, **kwargs)
            if resp.is_success:
                return resp
            if resp.status_code in _RETRYABLE_STATUS:
                delay = BASE_DELAY * (2**attempt)
                logger.warning("%s returned %s, retry in %ss", label, resp.status_code, delay)
                time.sleep(delay)
                continue
            logger.warning("%s returned %s, giving up", label, resp.status_code)
            return None
        except httpx.HTTPError as exc:
            last_exc = exc
            delay = BASE_DELAY * (2**attempt)
            logger.warning("%s network error: %s, retry in %ss", label, exc, delay)
            time.sleep(delay)
    if last_exc:
        logger.error("%s failed after %d retries: %s", label, max_retries, last_exc)
    else:
        logger.error("%s still failing after %d retries", label, max_retries)
    return None
