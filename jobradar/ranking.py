"""Deduplication, ranking and final result assembly."""

from __future__ import annotations

import logging
import re

from .models import JobRecord

logger = logging.getLogger(__name__)

MAX_RANKED = 75

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def dedup_key(job: JobRecord) -> str:
    """Cross-source identity of a posting: normalised title and company."""
    title = _NON_ALNUM.sub("", job.title.lower())
    company = _NON_ALNUM.sub("", (job.company_name or "").lower())
    return f"{title}_{company}"


def dedupe_and_rank(jobs: list[JobRecord], limit: int = MAX_RANKED) -> list[JobRecord]:
    """Sort by heuristic score and keep the best instance of each posting.

    Records scored 0 (or never scored) are excluded. The sort is stable, so
    equal scores keep their input order. At most *limit* records are
    returned.
    """
    ranked: list[JobRecord] = []
    seen: set[str] = set()
    for job in sorted(jobs, key=lambda j: j.heuristic_score or 0, reverse=True):
        if not job.heuristic_score:
            continue
        key = dedup_key(job)
        if key in seen:
            continue
        seen.add(key)
        ranked.append(job)
        if len(ranked) >= limit:
            break

    logger.info("Deduplicated %d scored records into %d ranked", len(jobs), len(ranked))
    return ranked


def assemble_results(reranked: list[JobRecord], tail: list[JobRecord]) -> list[JobRecord]:
    """Concatenate the re-ranked slice and the heuristic tail, then number them.

    The tail is re-sorted by heuristic score. Ranks are contiguous from 1.

    Raises:
        ValueError: If any record already carries a rank.
    """
    ordered = reranked + sorted(tail, key=lambda j: j.heuristic_score or 0, reverse=True)
    if any(job.rank is not None for job in ordered):
        raise ValueError("Records must not be ranked twice")
    for position, job in enumerate(ordered, start=1):
        job.rank = position
    return ordered
