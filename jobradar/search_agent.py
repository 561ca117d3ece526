"""Search Agent module - fans a candidate profile out to every job source.

All registered providers run concurrently, each under its own deadline. A
provider that raises or overruns contributes nothing; the others are never
affected. Results are concatenated in registration order so the order in
which providers finish cannot leak into the ranked output.
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError

from .models import CandidateProfile, JobRecord, RecencyWindow
from .search_provider import SearchProvider

logger = logging.getLogger(__name__)


def count_by_source(jobs: list[JobRecord]) -> dict[str, int]:
    """Return ``{source label: record count}``, most common first."""
    return dict(Counter(job.source for job in jobs).most_common())


def search_all_providers(
    providers: list[SearchProvider],
    profile: CandidateProfile,
    window: RecencyWindow | None = None,
) -> list[JobRecord]:
    """Run every provider concurrently and merge their records.

    Args:
        providers: Registered source adapters.
        profile: Validated candidate profile.
        window: Shared recency range; derived from *profile* when omitted.

    Returns:
        Concatenation of every provider's records, in provider order. Empty
        when no provider is registered or all of them failed.
    """
    if not providers:
        logger.warning("No search providers registered")
        return []

    window = window or RecencyWindow.from_profile(profile)
    per_provider: list[list[JobRecord]] = [[] for _ in providers]

    executor = ThreadPoolExecutor(max_workers=len(providers), thread_name_prefix="provider")
    try:
        started = time.monotonic()
        futures = [executor.submit(provider.search, profile, window) for provider in providers]
        for index, (provider, future) in enumerate(zip(providers, futures)):
            remaining = max(started + provider.timeout - time.monotonic(), 0)
            try:
                per_provider[index] = future.result(timeout=remaining)
            except FuturesTimeoutError:
                logger.warning("%s timed out after %.0fs, skipping its results", provider.name, provider.timeout)
                future.cancel()
            except Exception:
                logger.exception("%s search failed", provider.name)
            else:
                logger.info("%s: %d records", provider.name, len(per_provider[index]))
    finally:
        # Timed-out adapters keep their worker thread; do not wait for it.
        executor.shutdown(wait=False, cancel_futures=True)

    jobs = [job for provider_jobs in per_provider for job in provider_jobs]
    logger.info("Total raw records: %d %s", len(jobs), count_by_source(jobs))
    return jobs
