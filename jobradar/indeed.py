"""Indeed job-search provider (via an Apify scraping actor).

Indeed is a secondary source: results are capped per role query. The
scraper exposes contract and work-mode hints only as free-text
``attributes`` tags, so those facets are set only when a tag is
recognised.
"""

from __future__ import annotations

import logging
from datetime import date

from .apify import INDEED_JOBS_ACTOR, run_actor
from .models import CandidateProfile, JobRecord, MatchingDetails, RecencyWindow
from .normalize import normalize_contract_type, normalize_remote_mode
from .search_provider import query_roles, search_roles

logger = logging.getLogger(__name__)

_MAX_RESULTS_PER_ROLE = 20
_DESCRIPTION_LIMIT = 2000
_DEFAULT_LOCATION = "France"


def _parse_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value.split("T", 1)[0])
    except ValueError:
        return None


def _first_attribute(attributes: list[str], normalizer) -> str | None:
    """Return the first raw tag that *normalizer* recognises."""
    for attribute in attributes:
        if normalizer(attribute) is not None:
            return attribute
    return None


def _format_location(location: dict) -> str:
    city = location.get("city") or ""
    country = location.get("country") or ""
    if city and country:
        return f"{city}, {country}"
    return city or country


def parse_item(item: dict) -> JobRecord | None:
    """Map one Indeed scraper item onto a ``JobRecord``. Returns None without a key or title."""
    key = item.get("key")
    title = (item.get("title") or "").strip()
    if not key or not title:
        return None

    attributes = [a for a in item.get("attributes") or [] if isinstance(a, str)]
    description = item.get("description_text") or ""

    return JobRecord(
        source_engine="indeed",
        source="Indeed",
        external_id=f"indeed_{key}",
        title=title,
        company_name=(item.get("company") or {}).get("companyName") or "Unknown",
        location=_format_location(item.get("location") or {}),
        description=description[:_DESCRIPTION_LIMIT],
        posted_date=_parse_date(item.get("datePublished")),
        job_url=item.get("applyUrl") or item.get("jobUrl") or "",
        matching_details=MatchingDetails(
            contract_type=_first_attribute(attributes, normalize_contract_type),
            remote_type=_first_attribute(attributes, normalize_remote_mode),
            salary_min=item.get("baseSalary_min"),
            salary_max=item.get("baseSalary_max"),
            extras={"attributes": attributes, "full_description": description},
        ),
    )


class IndeedProvider:
    """Indeed listings scraped through Apify.

    Satisfies the :class:`~jobradar.search_provider.SearchProvider` protocol.
    """

    name: str = "Indeed"
    source_id: str = "indeed"

    def __init__(
        self,
        apify_token: str,
        *,
        country: str = "France",
        max_roles: int = 3,
        timeout: float = 90.0,
    ) -> None:
        self._token = apify_token
        self._country = country
        self._max_roles = max_roles
        self.timeout = timeout

    def search(self, profile: CandidateProfile, window: RecencyWindow) -> list[JobRecord]:
        location = profile.location or _DEFAULT_LOCATION
        roles = query_roles(profile, self._max_roles)
        jobs = search_roles(roles, lambda role: self._search_role(role, location, window), label=self.name)
        logger.info("Indeed: %d records for %d roles", len(jobs), len(roles))
        return jobs

    def _search_role(self, role: str, location: str, window: RecencyWindow) -> list[JobRecord]:
        actor_input: dict[str, object] = {
            "keywords": [role],
            "location": location,
            "country": self._country,
        }
        if window.fetch_days is not None:
            actor_input["datePosted"] = str(window.fetch_days)

        items = run_actor(self._token, INDEED_JOBS_ACTOR, actor_input, timeout_secs=int(self.timeout))
        jobs = [job for job in map(parse_item, items) if job is not None]
        # Date filter first: the cap applies to postings inside the window.
        return window.discard_outside(jobs)[:_MAX_RESULTS_PER_ROLE]
