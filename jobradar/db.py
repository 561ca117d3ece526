"""Supabase database layer for JobRadar.

Two tables are touched: ``searches`` (one row per submitted search, polled
by the UI for ``status`` / ``processing_step``) and ``matches`` (the
ranked results of a search).
"""

from __future__ import annotations

import logging
import os
from typing import Any

from supabase import Client, create_client

from .models import JobRecord
from .progress import PipelineStage

logger = logging.getLogger(__name__)

DEFAULT_JUSTIFICATION = "Match based on skills and criteria"

# Pipeline stage -> ``searches.processing_step`` value read by the status endpoint.
STEP_LABELS: dict[PipelineStage, str] = {
    PipelineStage.FETCHING: "scraping",
    PipelineStage.FILTERING: "filtering",
    PipelineStage.SCORING: "scoring",
    PipelineStage.PERSISTING: "saving",
}


def get_admin_client() -> Client:
    """Create a Supabase client with the service-role key (bypasses RLS).

    Uses SUPABASE_URL + SUPABASE_SERVICE_KEY.
    """
    url = os.environ["SUPABASE_URL"]
    key = os.environ["SUPABASE_SERVICE_KEY"]
    return create_client(url, key)


# ---------------------------------------------------------------------------
# Searches
# ---------------------------------------------------------------------------


def get_search(client: Client, search_id: str) -> dict | None:
    """Return the ``searches`` row with this id, or None."""
    rows = client.table("searches").select("*").eq("id", search_id).execute().data
    return rows[0] if rows else None


def _update_search(client: Client, search_id: str, values: dict[str, Any]) -> None:
    result = client.table("searches").update(values).eq("id", search_id).execute()
    if getattr(result, "error", None):
        raise RuntimeError(f"Failed to update search id={search_id}: {result.error}")


def update_search_step(client: Client, search_id: str, step: str) -> None:
    _update_search(client, search_id, {"processing_step": step})
    logger.info("[%s] Step: %s", search_id, step)


def mark_search_completed(client: Client, search_id: str) -> None:
    _update_search(client, search_id, {"status": "completed", "processing_step": None, "error_message": None})


def mark_search_error(client: Client, search_id: str, message: str) -> None:
    _update_search(client, search_id, {"status": "error", "processing_step": None, "error_message": message})


# ---------------------------------------------------------------------------
# Matches
# ---------------------------------------------------------------------------


def build_match_row(search_id: str, job: JobRecord) -> dict[str, Any]:
    """Serialise one ranked record into a ``matches`` row.

    Semantic verdicts are stored as such; every other row carries its
    heuristic score and a generic justification.
    """
    semantic = job.semantic_score is not None
    details = job.matching_details.model_dump(mode="json")
    details["contract_label"] = job.contract_label
    return {
        "search_id": search_id,
        "job_title": job.title,
        "company_name": job.company_name,
        "location": job.location,
        "posted_date": job.posted_date.isoformat() if job.posted_date else None,
        "job_url": job.job_url,
        "score": job.display_score,
        "score_type": "semantic" if semantic else "heuristic",
        "justification": job.justification if semantic and job.justification else DEFAULT_JUSTIFICATION,
        "status": "new",
        "external_id": job.external_id,
        "source": job.source,
        "source_engine": job.source_engine,
        "matching_details": details,
        "rank": job.rank,
    }


def insert_matches(client: Client, search_id: str, jobs: list[JobRecord]) -> int:
    """Insert the ranked records of a search. Returns the number of rows written.

    Raises:
        RuntimeError: If Supabase reports an error.
    """
    if not jobs:
        return 0
    rows = [build_match_row(search_id, job) for job in jobs]
    result = client.table("matches").insert(rows).execute()
    if getattr(result, "error", None):
        raise RuntimeError(f"Failed to save matches for search id={search_id}: {result.error}")
    return len(rows)


class SearchStatusWriter:
    """:class:`~jobradar.progress.ProgressReporter` that mirrors stages into ``searches``."""

    def __init__(self, client: Client, search_id: str) -> None:
        self._client = client
        self._search_id = search_id

    def report(self, stage: PipelineStage, message: str | None = None) -> None:
        if stage is PipelineStage.COMPLETED:
            mark_search_completed(self._client, self._search_id)
        elif stage is PipelineStage.ERROR:
            mark_search_error(self._client, self._search_id, message or "Unknown error")
        elif step := STEP_LABELS.get(stage):
            update_search_step(self._client, self._search_id, step)
