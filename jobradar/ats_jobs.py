"""Direct-employer listings from applicant tracking systems (via Apify).

One actor run covers 13 ATS platforms (Greenhouse, Lever, Workday, …).
These are company career pages rather than aggregators, which makes them
the "quality sources" of the pipeline. The actor accepts several query
terms per run, so all top roles go into a single run instead of one run
per role.
"""

from __future__ import annotations

import logging
from datetime import date

from .apify import run_actor_async
from .models import CandidateProfile, JobRecord, MatchingDetails, RecencyWindow
from .normalize import QUALITY_SOURCES
from .search_provider import query_roles

logger = logging.getLogger(__name__)

ALL_ATS_SOURCES = sorted(QUALITY_SOURCES)

_PAGE_SIZE = 100
_DESCRIPTION_LIMIT = 2000
_DEFAULT_LOCATION = "Paris"


def _format_location(job: dict) -> str:
    locations = job.get("locations") or []
    loc = locations[0] if locations else {}
    if loc.get("location"):
        return loc["location"]
    if loc.get("city"):
        return ", ".join(part for part in (loc["city"], loc.get("state"), loc.get("country")) if part)
    if job.get("is_remote") or job.get("workplace_type") == "remote":
        return "Remote"
    return "Unknown"


def _remote_type(job: dict) -> str | None:
    """Prefer the explicit workplace type; fall back to the boolean remote flag."""
    if workplace := job.get("workplace_type"):
        return workplace
    if job.get("is_remote") is True:
        return "remote"
    return None


def _parse_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value.split("T", 1)[0])
    except ValueError:
        return None


def parse_job(job: dict) -> JobRecord | None:
    """Map one ATS actor item onto a ``JobRecord``.

    Returns None when the title or platform is missing, or when no id or URL identifies the posting.
    """
    title = (job.get("title") or "").strip()
    platform = (job.get("source") or "").strip()
    posting_id = job.get("id") or job.get("listing_url") or job.get("apply_url")
    if not title or not platform or not posting_id:
        return None

    compensation = job.get("compensation") or {}
    description = job.get("description") or ""

    return JobRecord(
        source_engine="ats_direct",
        source=platform,
        external_id=f"ats_{platform}_{posting_id}",
        title=title,
        company_name=(job.get("company") or {}).get("name") or "Unknown",
        location=_format_location(job),
        description=description[:_DESCRIPTION_LIMIT],
        posted_date=_parse_date(job.get("date_posted")),
        job_url=job.get("apply_url") or job.get("listing_url") or "",
        matching_details=MatchingDetails(
            contract_type=job.get("employment_type") or None,
            remote_type=_remote_type(job),
            salary_min=compensation.get("min"),
            salary_max=compensation.get("max"),
            extras={
                "salary_currency": compensation.get("currency"),
                "salary_period": compensation.get("period"),
                "experience_level": job.get("experience_level"),
                "source_id": job.get("source_id"),
                "full_description": description,
            },
        ),
    )


class ATSJobsProvider:
    """Company career pages across 13 ATS platforms.

    Satisfies the :class:`~jobradar.search_provider.SearchProvider` protocol.
    """

    name: str = "ATS career pages"
    source_id: str = "ats_direct"

    def __init__(
        self,
        apify_token: str,
        actor_id: str,
        *,
        max_roles: int = 3,
        timeout: float = 120.0,
    ) -> None:
        self._token = apify_token
        self._actor_id = actor_id
        self._max_roles = max_roles
        self.timeout = timeout

    def search(self, profile: CandidateProfile, window: RecencyWindow) -> list[JobRecord]:
        roles = query_roles(profile, self._max_roles)
        actor_input = {
            "queries": roles,
            "locations": [profile.location or _DEFAULT_LOCATION],
            "sources": ALL_ATS_SOURCES,
            "is_remote": profile.remote_modes == ["full-remote"],
            "page": 1,
            "page_size": _PAGE_SIZE,
        }
        if window.fetch_days is not None:
            actor_input["posted_within_days"] = window.fetch_days

        # Leave room to read the dataset before the orchestrator's deadline.
        poll_budget = max(int(self.timeout) - 15, 30)
        items = run_actor_async(self._token, self._actor_id, actor_input, timeout_secs=poll_budget)

        jobs: list[JobRecord] = []
        seen_ids: set[str] = set()
        for item in items:
            job = parse_job(item)
            if job is None or job.external_id in seen_ids:
                continue
            seen_ids.add(job.external_id)
            jobs.append(job)

        jobs = window.discard_outside(jobs)
        logger.info("ATS: %d records for %d roles", len(jobs), len(roles))
        return jobs
