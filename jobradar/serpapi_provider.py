"""SerpApi-backed job search provider (Google Jobs).

Google Jobs is an aggregator: each result lists the boards it was found
on as ``apply_options``. The user-facing source label is recovered from
the first usable apply link, never from Google or SerpApi.
"""

from __future__ import annotations

import logging
import re
from datetime import date, timedelta

from pydantic import ValidationError
from serpapi import GoogleSearch

from .models import CandidateProfile, JobRecord, MatchingDetails, RecencyWindow
from .normalize import detect_original_source
from .search_provider import query_roles, search_roles

logger = logging.getLogger(__name__)

# Low-quality re-posting portals; their apply links are ignored.
BLOCKED_PORTALS = frozenset(
    {
        "bebee",
        "jooble",
        "jobrapido",
        "neuvoo",
        "mitula",
        "trovit",
        "jobsora",
        "learn4good",
        "grabjobs",
        "jobtensor",
        "jobzmall",
        "simplyhired",
    }
)

# Google ``gl=`` country codes for the markets the pipeline targets.
GL_CODES: dict[str, str] = {
    "france": "fr",
    "paris": "fr",
    "lyon": "fr",
    "marseille": "fr",
    "toulouse": "fr",
    "bordeaux": "fr",
    "lille": "fr",
    "nantes": "fr",
    "nice": "fr",
    "strasbourg": "fr",
    "montpellier": "fr",
    "rennes": "fr",
    "belgium": "be",
    "belgique": "be",
    "brussels": "be",
    "bruxelles": "be",
    "switzerland": "ch",
    "suisse": "ch",
    "geneva": "ch",
    "genève": "ch",
    "luxembourg": "lu",
    "germany": "de",
    "berlin": "de",
    "uk": "uk",
    "london": "uk",
}

_REMOTE_TOKENS = {"remote", "worldwide", "anywhere", "télétravail"}

# Google Jobs "date posted" chips, widest last.
_DATE_CHIPS: tuple[tuple[int, str], ...] = (
    (1, "today"),
    (3, "3days"),
    (7, "week"),
    (31, "month"),
)

_RELATIVE_DATE = re.compile(r"(\d+)\s*(minute|hour|day|week|month)s?\s+ago", re.IGNORECASE)
_UNIT_DAYS = {"minute": 0, "hour": 0, "day": 1, "week": 7, "month": 30}

_MAX_RESULTS_PER_ROLE = 20


def is_remote_only(location: str) -> bool:
    """Return True when the location string contains only remote-like tokens."""
    words = {re.sub(r"[^\w]", "", w).lower() for w in location.split() if w.strip()}
    return bool(words) and words <= _REMOTE_TOKENS


def infer_gl(location: str) -> str | None:
    """Infer a Google ``gl=`` code from a free-form location.

    Returns None for purely remote searches; defaults to "fr" otherwise.
    """
    if is_remote_only(location):
        return None
    loc_lower = location.lower()
    for name, code in GL_CODES.items():
        if name in loc_lower:
            return code
    return "fr"


def date_chip(fetch_days: int | None) -> str | None:
    """Smallest Google Jobs date chip covering *fetch_days*, or None for no filter."""
    if fetch_days is None:
        return None
    for days, chip in _DATE_CHIPS:
        if fetch_days <= days:
            return f"date_posted:{chip}"
    return None


def parse_posted_at(posted_at: str | None, today: date | None = None) -> date | None:
    """Turn Google's relative "3 days ago" into an approximate date."""
    if not posted_at:
        return None
    match = _RELATIVE_DATE.search(posted_at)
    if not match:
        return None
    today = today or date.today()
    return today - timedelta(days=int(match.group(1)) * _UNIT_DAYS[match.group(2).lower()])


def _apply_link(job_data: dict) -> str | None:
    for option in job_data.get("apply_options") or []:
        link = option.get("link") or ""
        if link and not any(blocked in link.lower() for blocked in BLOCKED_PORTALS):
            return link
    return None


def parse_job(job_data: dict, today: date | None = None) -> JobRecord | None:
    """Map one Google Jobs result onto a ``JobRecord``.

    Returns None without a title, or when every apply link points at a blocked portal.
    """
    title = (job_data.get("title") or "").strip()
    link = _apply_link(job_data)
    if not title or link is None:
        return None

    description_parts = [job_data["description"]] if job_data.get("description") else []
    for highlight in job_data.get("job_highlights") or []:
        description_parts.extend(highlight.get("items") or [])

    extensions = job_data.get("detected_extensions") or {}
    job_id = job_data.get("job_id") or link

    return JobRecord(
        source_engine="serpapi",
        source=detect_original_source(link),
        external_id=f"serpapi_{job_id}",
        title=title,
        company_name=job_data.get("company_name") or "Unknown",
        location=job_data.get("location") or "",
        description="\n".join(description_parts),
        posted_date=parse_posted_at(extensions.get("posted_at"), today),
        job_url=link,
        matching_details=MatchingDetails(
            # schedule_type mixes contract kinds ("Contractor") with hours ("Full-time");
            # the normaliser only recognises the former.
            contract_type=extensions.get("schedule_type") or None,
            remote_type="remote" if extensions.get("work_from_home") else None,
            extras={"via": job_data.get("via") or ""},
        ),
    )


def parse_job_results(results: dict, today: date | None = None) -> list[JobRecord]:
    """Parse job listings from a SerpApi response dict.

    Unusable results are skipped one by one, so a bad item never costs the page.
    """
    jobs: list[JobRecord] = []
    for job_data in results.get("jobs_results") or []:
        try:
            job = parse_job(job_data, today)
        except (ValidationError, TypeError, AttributeError) as e:
            logger.warning("Skipping malformed SerpApi result %s: %s", job_data.get("job_id"), e)
            continue
        if job is not None:
            jobs.append(job)
    return jobs


class SerpApiProvider:
    """Google Jobs search via SerpApi.

    Satisfies the :class:`~jobradar.search_provider.SearchProvider` protocol.
    """

    name: str = "SerpApi (Google Jobs)"
    source_id: str = "serpapi"

    def __init__(self, api_key: str, *, max_roles: int = 3, max_pages: int = 2, timeout: float = 60.0) -> None:
        self._api_key = api_key
        self._max_roles = max_roles
        self._max_pages = max_pages
        self.timeout = timeout

    def search(self, profile: CandidateProfile, window: RecencyWindow) -> list[JobRecord]:
        roles = query_roles(profile, self._max_roles)
        jobs = search_roles(roles, lambda role: self._search_role(role, profile.location, window), label=self.name)
        jobs = window.discard_outside(jobs)
        logger.info("SerpApi: %d records for %d roles", len(jobs), len(roles))
        return jobs

    def _search_role(self, role: str, location: str, window: RecencyWindow) -> list[JobRecord]:
        """Paginate Google Jobs for one role, keeping pages fetched before a failure."""
        base_params: dict[str, str] = {"engine": "google_jobs", "q": role, "hl": "en", "api_key": self._api_key}
        if gl := infer_gl(location):
            base_params["gl"] = gl
        if location and not is_remote_only(location):
            base_params["location"] = location
        if chip := date_chip(window.fetch_days):
            base_params["chips"] = chip

        jobs: list[JobRecord] = []
        next_page_token: str | None = None
        for page in range(self._max_pages):
            params = dict(base_params)
            if next_page_token:
                params["next_page_token"] = next_page_token
            try:
                results = GoogleSearch(params).get_dict()
            except Exception:
                logger.exception("SerpApi page %d for '%s' failed", page + 1, role)
                break
            if error := results.get("error"):
                logger.warning("SerpApi error for '%s': %s", role, error)
                break

            page_jobs = parse_job_results(results)
            if not page_jobs:
                break
            jobs.extend(page_jobs)

            next_page_token = results.get("serpapi_pagination", {}).get("next_page_token")
            if not next_page_token or len(jobs) >= _MAX_RESULTS_PER_ROLE:
                break

        return jobs[:_MAX_RESULTS_PER_ROLE]
