"""Shared pytest fixtures for JobRadar tests."""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import date

import pytest

from jobradar.models import CandidateProfile, JobRecord, MatchingDetails, RecencyWindow, SemanticScore


class StubProvider:
    """In-memory :class:`~jobradar.search_provider.SearchProvider`."""

    def __init__(
        self,
        name: str,
        jobs: list[JobRecord] | None = None,
        *,
        error: Exception | None = None,
        timeout: float = 5.0,
        delay: float = 0.0,
    ) -> None:
        self.name = name
        self.source_id = name.lower()
        self.timeout = timeout
        self._jobs = jobs or []
        self._error = error
        self._delay = delay
        self.calls: list[tuple[CandidateProfile, RecencyWindow]] = []

    def search(self, profile: CandidateProfile, window: RecencyWindow) -> list[JobRecord]:
        self.calls.append((profile, window))
        if self._delay:
            time.sleep(self._delay)
        if self._error is not None:
            raise self._error
        return list(self._jobs)


class StubReranker:
    """Re-ranker returning fixed scores, or raising *error*."""

    def __init__(self, scores: list[int] | None = None, *, error: Exception | None = None) -> None:
        self._scores = scores
        self._error = error
        self.batches: list[list[JobRecord]] = []

    def score(self, profile: CandidateProfile, jobs: list[JobRecord]) -> list[SemanticScore]:
        self.batches.append(list(jobs))
        if self._error is not None:
            raise self._error
        scores = self._scores if self._scores is not None else [50] * len(jobs)
        return [SemanticScore(score=s, justification=f"verdict {i}") for i, s in enumerate(scores[: len(jobs)], 1)]


@pytest.fixture()
def sample_profile() -> CandidateProfile:
    return CandidateProfile(
        target_roles=["Backend Engineer", "Python Developer", "Platform Engineer"],
        skills=["Python", "Go", "SQL", "Docker", "Kubernetes"],
        location="Paris",
        seniority="Senior",
    )


@pytest.fixture()
def make_job() -> Callable[..., JobRecord]:
    """Factory for ``JobRecord`` with sensible defaults; keyword overrides win."""
    counter = iter(range(1, 10_000))

    def _make(
        title: str = "Backend Engineer",
        company_name: str = "Acme",
        *,
        source_engine: str = "adzuna",
        source: str = "LinkedIn",
        external_id: str | None = None,
        location: str = "Paris",
        description: str = "Python and SQL services.",
        posted_date: date | None = None,
        contract_type: str | None = None,
        remote_type: str | None = None,
        heuristic_score: int | None = None,
    ) -> JobRecord:
        return JobRecord(
            source_engine=source_engine,
            source=source,
            external_id=external_id or f"{source_engine}_{next(counter)}",
            title=title,
            company_name=company_name,
            location=location,
            description=description,
            posted_date=posted_date,
            job_url="https://example.com/job",
            matching_details=MatchingDetails(contract_type=contract_type, remote_type=remote_type),
            heuristic_score=heuristic_score,
        )

    return _make
