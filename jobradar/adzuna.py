"""Adzuna job-search provider.

Adzuna aggregates dozens of job boards. It is a secondary source here: a
small page budget per role, and every record's user-facing label is
recovered from the outbound redirect URL so the aggregator itself is
never shown.

API docs: https://developer.adzuna.com/docs/search
"""

from __future__ import annotations

import logging
from datetime import date, datetime

import httpx

from .models import CandidateProfile, JobRecord, MatchingDetails, RecencyWindow
from .normalize import detect_original_source
from .search_provider import query_roles, search_roles
from .transport import request_with_retry

logger = logging.getLogger(__name__)

_BASE_URL = "https://api.adzuna.com/v1/api/jobs"
_RESULTS_PER_PAGE = 20
_DEFAULT_DISTANCE_KM = 50
_DEFAULT_LOCATION = "france"


def parse_created(value: str | None) -> date | None:
    """Parse Adzuna's ISO-8601 ``created`` timestamp into a date."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError:
        logger.debug("Unparseable Adzuna date %r", value)
        return None


def parse_result(item: dict) -> JobRecord | None:
    """Map one Adzuna result onto a ``JobRecord``. Returns None without an id or title."""
    job_id = item.get("id")
    title = (item.get("title") or "").strip()
    if not job_id or not title:
        return None

    redirect_url = item.get("redirect_url") or ""
    description = item.get("description") or ""
    extras: dict = {"full_description": description}
    if contract_time := item.get("contract_time"):
        extras["contract_time"] = contract_time
    if category := (item.get("category") or {}).get("label"):
        extras["category"] = category

    return JobRecord(
        source_engine="adzuna",
        source=detect_original_source(redirect_url),
        external_id=f"adzuna_{job_id}",
        title=title,
        company_name=(item.get("company") or {}).get("display_name") or "Unknown",
        location=(item.get("location") or {}).get("display_name") or "",
        description=description,
        posted_date=parse_created(item.get("created")),
        job_url=redirect_url,
        matching_details=MatchingDetails(
            # Adzuna has no work-mode field, so remote_type stays unknown.
            contract_type=item.get("contract_type") or None,
            salary_min=item.get("salary_min"),
            salary_max=item.get("salary_max"),
            extras=extras,
        ),
    )


class AdzunaProvider:
    """Job source backed by the Adzuna search API.

    Satisfies the :class:`~jobradar.search_provider.SearchProvider` protocol.
    """

    name: str = "Adzuna"
    source_id: str = "adzuna"

    def __init__(
        self,
        app_id: str,
        app_key: str,
        *,
        country: str = "fr",
        max_roles: int = 3,
        max_pages: int = 1,
        timeout: float = 60.0,
    ) -> None:
        self._app_id = app_id
        self._app_key = app_key
        self._country = country
        self._max_roles = max_roles
        self._max_pages = max_pages
        self.timeout = timeout

    def search(self, profile: CandidateProfile, window: RecencyWindow) -> list[JobRecord]:
        location = profile.location or _DEFAULT_LOCATION
        roles = query_roles(profile, self._max_roles)
        jobs = search_roles(
            roles,
            lambda role: self._search_role(role, location, window),
            label=self.name,
        )
        jobs = window.discard_outside(jobs)
        logger.info("Adzuna: %d records for %d roles", len(jobs), len(roles))
        return jobs

    def _search_role(self, role: str, location: str, window: RecencyWindow) -> list[JobRecord]:
        """Paginate one role query. A failed page ends pagination but keeps earlier pages."""
        jobs: list[JobRecord] = []
        with httpx.Client(timeout=30, headers={"Accept": "application/json"}) as client:
            for page in range(1, self._max_pages + 1):
                params: dict[str, str | int] = {
                    "app_id": self._app_id,
                    "app_key": self._app_key,
                    "results_per_page": _RESULTS_PER_PAGE,
                    "what": role,
                    "where": location,
                    "distance": _DEFAULT_DISTANCE_KM,
                }
                if window.fetch_days is not None:
                    params["max_days_old"] = window.fetch_days

                resp = request_with_retry(
                    client,
                    "GET",
                    f"{_BASE_URL}/{self._country}/search/{page}",
                    label=f"Adzuna search '{role}' page {page}",
                    params=params,
                )
                if resp is None:
                    break

                try:
                    results = resp.json().get("results") or []
                except ValueError:
                    logger.warning("Adzuna page %d for '%s' is not valid JSON, stopping", page, role)
                    break
                jobs.extend(job for job in map(parse_result, results) if job is not None)
                if len(results) < _RESULTS_PER_PAGE:
                    break
        return jobs
