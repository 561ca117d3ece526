"""Source-adapter interface, role fan-out helper and provider factory.

Every job source (Adzuna, Indeed, ATS career pages, Google Jobs, …)
implements the ``SearchProvider`` protocol so the fetch orchestrator can
treat them uniformly.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Protocol, runtime_checkable

from .config import Settings
from .models import CandidateProfile, JobRecord, RecencyWindow

logger = logging.getLogger(__name__)


@runtime_checkable
class SearchProvider(Protocol):
    """Pluggable interface for job sources.

    Implementations translate a candidate profile into source-native
    queries and return records already mapped into the common schema.
    """

    name: str
    """Human-readable adapter name, e.g. ``"Adzuna"``. Used in logs only."""

    source_id: str
    """Internal identifier stored as ``JobRecord.source_engine``."""

    timeout: float
    """Seconds the orchestrator waits for :meth:`search` before giving up."""

    def search(self, profile: CandidateProfile, window: RecencyWindow) -> list[JobRecord]:
        """Fetch and normalise postings for *profile*.

        Args:
            profile: Validated candidate profile.
            window: Recency range shared by all adapters for this run.

        Returns:
            Records unique by ``external_id``, with postings newer than
            ``window.min_age_days`` already discarded.
        """
        ...


def query_roles(profile: CandidateProfile, limit: int) -> list[str]:
    """Return the top *limit* target roles, case-insensitively de-duplicated."""
    seen: set[str] = set()
    roles: list[str] = []
    for role in profile.target_roles:
        key = role.lower()
        if key in seen:
            continue
        seen.add(key)
        roles.append(role)
        if len(roles) >= limit:
            break
    return roles


def search_roles(
    roles: list[str],
    search_one: Callable[[str], list[JobRecord]],
    *,
    label: str,
    max_workers: int = 5,
) -> list[JobRecord]:
    """Run *search_one* for every role concurrently and merge the results.

    A failing role query contributes nothing; the others are kept. Results
    are merged in role priority order, first occurrence of an
    ``external_id`` wins.
    """
    if not roles:
        return []

    per_role: dict[int, list[JobRecord]] = {}
    with ThreadPoolExecutor(max_workers=min(max_workers, len(roles))) as pool:
        future_to_index = {pool.submit(search_one, role): i for i, role in enumerate(roles)}
        for future in as_completed(future_to_index):
            index = future_to_index[future]
            try:
                per_role[index] = future.result()
            except Exception:
                logger.exception("%s query for role '%s' failed", label, roles[index])
                per_role[index] = []

    merged: list[JobRecord] = []
    seen_ids: set[str] = set()
    for index in range(len(roles)):
        for job in per_role.get(index, []):
            if job.external_id in seen_ids:
                continue
            seen_ids.add(job.external_id)
            merged.append(job)
    return merged


def get_providers(settings: Settings) -> list[SearchProvider]:
    """Return an adapter for every source whose credentials are configured."""
    # Lazy imports keep the protocol importable without the HTTP/SerpApi stacks.
    from .adzuna import AdzunaProvider  # noqa: PLC0415
    from .ats_jobs import ATSJobsProvider  # noqa: PLC0415
    from .indeed import IndeedProvider  # noqa: PLC0415
    from .serpapi_provider import SerpApiProvider  # noqa: PLC0415

    providers: list[SearchProvider] = []
    if settings.adzuna_app_id and settings.adzuna_app_key:
        providers.append(
            AdzunaProvider(
                settings.adzuna_app_id,
                settings.adzuna_app_key,
                country=settings.adzuna_country,
                max_roles=settings.roles_per_source,
                timeout=settings.timeouts.adzuna,
            )
        )
    if settings.apify_token:
        providers.append(
            IndeedProvider(settings.apify_token, max_roles=settings.roles_per_source, timeout=settings.timeouts.indeed)
        )
        if settings.apify_ats_actor_id:
            providers.append(
                ATSJobsProvider(
                    settings.apify_token,
                    settings.apify_ats_actor_id,
                    max_roles=settings.roles_per_source,
                    timeout=settings.timeouts.ats,
                )
            )
        else:
            logger.info("APIFY_ATS_ACTOR_ID not set, ATS career pages disabled")
    if settings.serpapi_key:
        providers.append(
            SerpApiProvider(
                settings.serpapi_key, max_roles=settings.roles_per_source, timeout=settings.timeouts.serpapi
            )
        )

    if not providers:
        logger.warning("No job source configured; searches will return no results")
    return providers
