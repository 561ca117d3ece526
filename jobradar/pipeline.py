"""One search run: fetch, filter, score, rank, re-rank, hand off.

Only a malformed profile or an unexpected exception ends a run in
``error``. Failing sources, an unreachable re-ranker and zero results all
still end in ``completed``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any

from pydantic import ValidationError
from supabase import Client

from .compliance import DEFAULT_AGENCY_DENYLIST, filter_jobs
from .config import Settings
from .db import SearchStatusWriter, get_search, insert_matches
from .evaluator_agent import Reranker, rerank_top_slice
from .models import CandidateProfile, JobRecord, RecencyWindow, SearchOutcome
from .progress import PipelineStage, ProgressReporter, ProgressTracker
from .ranking import assemble_results, dedupe_and_rank
from .scorer import score_jobs
from .search_agent import search_all_providers
from .search_provider import SearchProvider

logger = logging.getLogger(__name__)


def describe_validation_error(exc: ValidationError) -> str:
    """One-line, user-readable summary of a profile validation error."""
    problems = "; ".join(f"{'.'.join(str(p) for p in err['loc']) or 'profile'}: {err['msg']}" for err in exc.errors())
    return f"Invalid candidate profile: {problems}"


def _fail(tracker: ProgressTracker, message: str) -> None:
    if tracker.is_terminal:
        return
    try:
        tracker.fail(message)
    except Exception:
        logger.exception("Could not report pipeline failure: %s", message)


def run_search(
    profile_data: CandidateProfile | dict[str, Any],
    providers: list[SearchProvider],
    *,
    reranker: Reranker | None = None,
    reporter: ProgressReporter | None = None,
    settings: Settings | None = None,
    persist: Callable[[list[JobRecord]], object] | None = None,
    agency_denylist: Iterable[str] = DEFAULT_AGENCY_DENYLIST,
) -> SearchOutcome:
    """Run the whole pipeline for one candidate profile.

    Args:
        profile_data: A profile, or raw data to validate into one.
        providers: Source adapters to query.
        reranker: Semantic re-ranker; ``None`` keeps the heuristic order.
        reporter: Receives every stage transition.
        settings: Caps and timeouts; defaults apply when omitted.
        persist: Called with the final ranked list before the run completes.
        agency_denylist: Agency names dropped when the profile asks for it.

    Returns:
        The terminal outcome. Never raises for pipeline failures.
    """
    tracker = ProgressTracker(reporter)
    settings = settings or Settings()

    try:
        profile = (
            profile_data
            if isinstance(profile_data, CandidateProfile)
            else CandidateProfile.model_validate(profile_data)
        )
    except ValidationError as e:
        message = describe_validation_error(e)
        logger.error(message)
        _fail(tracker, message)
        return SearchOutcome(status="error", error_message=message)

    raw_count = filtered_count = reranked_count = 0
    try:
        window = RecencyWindow.from_profile(profile)

        tracker.advance(PipelineStage.FETCHING)
        raw = search_all_providers(providers, profile, window)
        raw_count = len(raw)

        tracker.advance(PipelineStage.FILTERING)
        filtered = filter_jobs(raw, profile, agency_denylist)
        filtered_count = len(filtered)
        ranked = dedupe_and_rank(score_jobs(filtered, profile), settings.max_ranked)

        tracker.advance(PipelineStage.SCORING)
        reranked, tail = rerank_top_slice(
            ranked, profile, reranker, top_n=settings.rerank_top_n, timeout=settings.rerank_timeout
        )
        reranked_count = len(reranked)
        results = assemble_results(reranked, tail)

        tracker.advance(PipelineStage.PERSISTING)
        if persist is not None:
            persist(results)

        tracker.complete()
    except Exception as e:
        logger.exception("Search pipeline failed")
        message = str(e) or type(e).__name__
        _fail(tracker, message)
        return SearchOutcome(
            status="error",
            error_message=message,
            raw_count=raw_count,
            filtered_count=filtered_count,
            reranked_count=reranked_count,
        )

    logger.info(
        "Search completed: %d raw, %d after filters, %d ranked, %d re-ranked",
        raw_count,
        filtered_count,
        len(results),
        reranked_count,
    )
    return SearchOutcome(
        status="completed",
        jobs=results,
        raw_count=raw_count,
        filtered_count=filtered_count,
        reranked_count=reranked_count,
    )


# ---------------------------------------------------------------------------
# Stored searches
# ---------------------------------------------------------------------------


def profile_from_search(search: dict[str, Any]) -> dict[str, Any]:
    """Build raw profile data from a ``searches`` row.

    The row's ``parsed_data`` holds the extracted profile; the search-level
    preference columns take precedence over anything stored there.
    """
    parsed = dict(search.get("parsed_data") or {})
    data: dict[str, Any] = {
        "target_roles": parsed.get("target_roles") or [],
        "skills": parsed.get("skills") or [],
        "location": parsed.get("location") or search.get("location") or "",
        "seniority": parsed.get("seniority") or search.get("seniority") or "",
        "contract_types": search.get("contract_types") or parsed.get("contract_types") or [],
        "remote_modes": search.get("remote_options") or parsed.get("remote_modes") or [],
        "recency_days": search.get("recency_days") or parsed.get("recency_days"),
        "exclude_agencies": search.get("exclude_agencies") is not False,
    }
    if not data["target_roles"] and search.get("job_title"):
        data["target_roles"] = [search["job_title"]]
    return data


def process_search(
    client: Client,
    search_id: str,
    providers: list[SearchProvider],
    *,
    reranker: Reranker | None = None,
    settings: Settings | None = None,
) -> SearchOutcome:
    """Process a stored search and write its matches and status back.

    Raises:
        LookupError: If the search does not exist.
        ValueError: If the search is not waiting to be processed.
    """
    search = get_search(client, search_id)
    if search is None:
        raise LookupError(f"Search {search_id} not found")
    if search.get("status") != "processing":
        raise ValueError(f"Search {search_id} already processed (status {search.get('status')!r})")

    outcome = run_search(
        profile_from_search(search),
        providers,
        reranker=reranker,
        reporter=SearchStatusWriter(client, search_id),
        settings=settings,
        persist=lambda jobs: insert_matches(client, search_id, jobs),
    )
    logger.info("[%s] %s with %d matches", search_id, outcome.status, len(outcome.jobs))
    return outcome
