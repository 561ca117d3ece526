"""Minimal Apify actor runner.

All scraping actors follow the same lifecycle: start a run, wait for it to
finish, read the run's default dataset. Short actors use the synchronous
endpoint; long ones are started and polled.

API docs: https://docs.apify.com/api/v2
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from .transport import request_with_retry

logger = logging.getLogger(__name__)

APIFY_BASE = "https://api.apify.com/v2"

INDEED_JOBS_ACTOR = "nlZZi3lZre4fM9IET"  # cheap_scraper/indeed-scraper

_POLL_INTERVAL = 5  # seconds
_TERMINAL_FAILURES = frozenset({"FAILED", "ABORTED", "TIMED-OUT"})


class ApifyError(RuntimeError):
    """An actor run could not be started, failed, or returned no dataset."""


def run_actor(token: str, actor_id: str, actor_input: dict[str, Any], timeout_secs: int = 120) -> list[dict]:
    """Run an actor through the synchronous endpoint and return its dataset items.

    Raises:
        ApifyError: If the run fails or the response is not a list of items.
    """
    url = f"{APIFY_BASE}/acts/{actor_id}/run-sync-get-dataset-items"
    logger.debug("Running Apify actor %s", actor_id)
    with httpx.Client(timeout=timeout_secs + 10) as client:
        resp = request_with_retry(
            client,
            "POST",
            url,
            label=f"Apify actor {actor_id}",
            max_retries=1,
            params={"token": token, "timeout": timeout_secs},
            json=actor_input,
        )
    if resp is None:
        raise ApifyError(f"Apify actor {actor_id} did not return results")

    items = resp.json()
    if not isinstance(items, list):
        raise ApifyError(f"Apify actor {actor_id} returned {type(items).__name__}, expected a list")
    logger.info("Apify actor %s returned %d items", actor_id, len(items))
    return items


def run_actor_async(
    token: str,
    actor_id: str,
    actor_input: dict[str, Any],
    timeout_secs: int = 300,
    poll_interval: float = _POLL_INTERVAL,
) -> list[dict]:
    """Start an actor run, poll until it finishes, then fetch its dataset items.

    Used for actors that do not support the synchronous endpoint. If the
    run is still going after *timeout_secs*, whatever the dataset already
    holds is returned.

    Raises:
        ApifyError: If the run cannot be started or ends in a failure state.
    """
    params = {"token": token}
    with httpx.Client(timeout=30) as client:
        start = request_with_retry(
            client,
            "POST",
            f"{APIFY_BASE}/acts/{actor_id}/runs",
            label=f"Apify start {actor_id}",
            params=params,
            json=actor_input,
        )
        if start is None:
            raise ApifyError(f"Failed to start Apify actor {actor_id}")

        run = start.json().get("data") or {}
        run_id = run.get("id")
        dataset_id = run.get("defaultDatasetId")
        if not run_id or not dataset_id:
            raise ApifyError(f"Apify actor {actor_id} start response has no run or dataset id")
        logger.info("Apify run %s started for actor %s", run_id, actor_id)

        deadline = time.monotonic() + timeout_secs
        while time.monotonic() < deadline:
            time.sleep(poll_interval)
            status_resp = request_with_retry(
                client, "GET", f"{APIFY_BASE}/actor-runs/{run_id}", label=f"Apify run {run_id}", params=params
            )
            if status_resp is None:
                continue
            status = (status_resp.json().get("data") or {}).get("status")
            if status == "SUCCEEDED":
                break
            if status in _TERMINAL_FAILURES:
                raise ApifyError(f"Apify run {run_id} ended with status {status}")
            logger.debug("Apify run %s status %s, waiting", run_id, status)
        else:
            logger.warning("Apify run %s still running after %ss, reading partial dataset", run_id, timeout_secs)

        items_resp = request_with_retry(
            client,
            "GET",
            f"{APIFY_BASE}/datasets/{dataset_id}/items",
            label=f"Apify dataset {dataset_id}",
            params=params,
        )
    if items_resp is None:
        raise ApifyError(f"Failed to fetch dataset {dataset_id}")

    items = items_resp.json()
    if not isinstance(items, list):
        raise ApifyError(f"Apify dataset {dataset_id} is not a list")
    logger.info("Apify actor %s returned %d items", actor_id, len(items))
    return items
