"""Evaluator Agent module - semantic re-ranking of the top heuristic matches.

The re-ranker is a capability with one method and one failure mode: it
either returns a verdict for every submitted record, or raises. The
pipeline treats any failure (including a timeout) as "keep the heuristic
order".
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Protocol

from google import genai
from pydantic import ValidationError

from .config import DEFAULT_GEMINI_MODEL
from .llm import call_gemini, parse_json
from .models import CandidateProfile, JobRecord, SemanticScore

logger = logging.getLogger(__name__)

RERANK_TOP_N = 10
RERANK_TIMEOUT = 45.0
_DESCRIPTION_EXCERPT = 500


class RerankerError(RuntimeError):
    """The re-ranker's answer could not be matched to the submitted batch."""


class Reranker(Protocol):
    """Scores a batch of records against a candidate profile."""

    def score(self, profile: CandidateProfile, jobs: list[JobRecord]) -> list[SemanticScore]:
        """Return one verdict per record, in the order of *jobs*.

        Raises:
            Exception: Any failure; callers fall back to heuristic order.
        """
        ...


# System prompt for the re-ranker
RERANKER_SYSTEM_PROMPT = """You are an expert recruiter matching candidates to job offers.
Score every job below from 0 to 100 for how well it fits the candidate, and justify each score in one or two sentences.

**Scoring Rubric (0-100):**
- **80-100:** Strong fit. Role, core skills and seniority line up.
- **50-79:** Plausible fit. Right direction, but a key skill or the seniority is off.
- **0-49:** Poor fit. Different role or stack.

Return ONLY a JSON array with exactly one object per job, nothing else:
[
  {"job_index": 1, "score": 85, "justification": "..."},
  {"job_index": 2, "score": 78, "justification": "..."}
]"""


def build_rerank_prompt(profile: CandidateProfile, jobs: list[JobRecord]) -> str:
    """Render the candidate summary and the numbered job batch."""
    jobs_text = "\n\n".join(
        f"Job {index}: {job.title} @ {job.company_name}\n"
        f"Location: {job.location or 'n/a'}\n"
        f"Description: {job.description[:_DESCRIPTION_EXCERPT] or 'n/a'}"
        for index, job in enumerate(jobs, start=1)
    )
    user_prompt = f"""## Candidate
- **Target Roles:** {", ".join(profile.target_roles)}
- **Skills:** {", ".join(profile.skills) or "n/a"}
- **Location:** {profile.location or "n/a"}
- **Seniority:** {profile.seniority or "n/a"}

## Jobs to score ({len(jobs)})
{jobs_text}"""
    return f"{RERANKER_SYSTEM_PROMPT}\n\n{user_prompt}"


def parse_semantic_scores(content: str, expected: int) -> list[SemanticScore]:
    """Match the re-ranker's JSON answer back to the submitted batch.

    Items are matched by their 1-based ``job_index`` when every item has
    one, otherwise by position.

    Raises:
        RerankerError: If the answer is not a list of *expected* valid
            verdicts covering every submitted record exactly once.
    """
    try:
        data = parse_json(content)
    except ValueError as e:
        raise RerankerError(str(e)) from e
    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise RerankerError("Re-ranker answer is not a list of objects")
    if len(data) != expected:
        raise RerankerError(f"Re-ranker returned {len(data)} verdicts for {expected} jobs")

    if all("job_index" in item for item in data):
        indices = [item["job_index"] for item in data]
        if not all(type(i) is int for i in indices) or sorted(indices) != list(range(1, expected + 1)):
            raise RerankerError(f"Re-ranker job_index values {indices} do not cover 1..{expected}")
        data = sorted(data, key=lambda item: item["job_index"])

    try:
        return [SemanticScore(score=item.get("score"), justification=item.get("justification")) for item in data]
    except ValidationError as e:
        raise RerankerError(f"Invalid re-ranker verdict: {e}") from e


class GeminiReranker:
    """:class:`Reranker` backed by a single batched Gemini call."""

    def __init__(self, client: genai.Client, model: str = DEFAULT_GEMINI_MODEL) -> None:
        self._client = client
        self._model = model

    def score(self, profile: CandidateProfile, jobs: list[JobRecord]) -> list[SemanticScore]:
        prompt = build_rerank_prompt(profile, jobs)
        content = call_gemini(self._client, prompt, model=self._model, temperature=0.2, max_tokens=4096)
        return parse_semantic_scores(content, len(jobs))


def rerank_top_slice(
    ranked: list[JobRecord],
    profile: CandidateProfile,
    reranker: Reranker | None,
    top_n: int = RERANK_TOP_N,
    timeout: float = RERANK_TIMEOUT,
) -> tuple[list[JobRecord], list[JobRecord]]:
    """Re-rank the top *top_n* records semantically, best effort.

    Returns:
        ``(reranked, tail)``. On success *reranked* is the top slice sorted
        by semantic score and *tail* the rest. On any failure *reranked*
        is empty and *tail* is the whole input, unchanged.
    """
    top = ranked[:top_n]
    if reranker is None or not top:
        return [], ranked

    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="reranker")
    try:
        verdicts = executor.submit(reranker.score, profile, top).result(timeout=timeout)
        if len(verdicts) != len(top):
            raise RerankerError(f"Re-ranker returned {len(verdicts)} verdicts for {len(top)} jobs")
    except FuturesTimeoutError:
        logger.warning("Re-ranker timed out after %.0fs, keeping heuristic order", timeout)
        return [], ranked
    except Exception:
        logger.warning("Re-ranker failed, keeping heuristic order", exc_info=True)
        return [], ranked
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    for job, verdict in zip(top, verdicts):
        job.semantic_score = verdict.score
        job.justification = verdict.justification
    reranked = sorted(top, key=lambda j: j.semantic_score or 0, reverse=True)
    logger.info("Re-ranked top %d records", len(reranked))
    return reranked, ranked[top_n:]
