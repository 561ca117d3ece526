"""Tests for jobradar.evaluator_agent — re-ranker parsing and best-effort slice re-ranking."""

from __future__ import annotations

import json
import logging
import time
from unittest.mock import MagicMock, patch

import pytest
from conftest import StubReranker

from jobradar.evaluator_agent import (
    GeminiReranker,
    RerankerError,
    build_rerank_prompt,
    parse_semantic_scores,
    rerank_top_slice,
)
from jobradar.models import SemanticScore


def _verdicts(*scores: int, with_index: bool = True) -> str:
    items = []
    for i, score in enumerate(scores, start=1):
        item = {"score": score, "justification": f"reason {i}"}
        if with_index:
            item["job_index"] = i
        items.append(item)
    return json.dumps(items)


def _indexed(*pairs: tuple) -> str:
    return json.dumps([{"job_index": i, "score": s, "justification": "x"} for i, s in pairs])


class TestBuildRerankPrompt:
    def test_lists_profile_and_numbered_jobs(self, sample_profile, make_job):
        jobs = [make_job(title="Go Developer", company_name="Acme"), make_job(title="SRE", company_name="Globex")]

        prompt = build_rerank_prompt(sample_profile, jobs)

        assert "Backend Engineer, Python Developer, Platform Engineer" in prompt
        assert "Job 1: Go Developer @ Acme" in prompt
        assert "Job 2: SRE @ Globex" in prompt

    def test_description_is_truncated(self, sample_profile, make_job):
        prompt = build_rerank_prompt(sample_profile, [make_job(description="x" * 2000)])
        assert "x" * 500 in prompt
        assert "x" * 501 not in prompt


class TestParseSemanticScores:
    def test_by_index_out_of_order(self):
        content = json.dumps(
            [
                {"job_index": 2, "score": 40, "justification": "weak"},
                {"job_index": 1, "score": 90, "justification": "strong"},
            ]
        )
        scores = parse_semantic_scores(content, 2)
        assert [s.score for s in scores] == [90, 40]

    def test_by_position_without_index(self):
        scores = parse_semantic_scores(_verdicts(70, 20, with_index=False), 2)
        assert [s.justification for s in scores] == ["reason 1", "reason 2"]

    def test_fenced_json(self):
        assert len(parse_semantic_scores(f"```json\n{_verdicts(50)}\n```", 1)) == 1

    @pytest.mark.parametrize(
        "content",
        [
            "not json",
            '{"score": 50, "justification": "x"}',
            _verdicts(50),
            _indexed((1, 50), (1, 60)),
            _indexed((1, 50), (3, 60)),
            _indexed(("1", 50), (2, 60)),
            _verdicts(50, 150),
            json.dumps([{"score": 50}, {"score": 60, "justification": "b"}]),
        ],
    )
    def test_malformed_batch_fails_entirely(self, content):
        with pytest.raises(RerankerError):
            parse_semantic_scores(content, 2)


class TestGeminiReranker:
    @patch("jobradar.evaluator_agent.call_gemini")
    def test_scores_batch(self, mock_call: MagicMock, sample_profile, make_job):
        mock_call.return_value = _verdicts(81, 64)
        reranker = GeminiReranker(MagicMock(), model="gemini-test")

        scores = reranker.score(sample_profile, [make_job(), make_job()])

        assert scores == [
            SemanticScore(score=81, justification="reason 1"),
            SemanticScore(score=64, justification="reason 2"),
        ]
        assert mock_call.call_args.kwargs["model"] == "gemini-test"


class TestRerankTopSlice:
    def _ranked(self, make_job, count: int = 12):
        return [make_job(title=f"Job {i}", heuristic_score=90 - 5 * i) for i in range(count)]

    def test_reorders_top_slice_by_semantic_score(self, sample_profile, make_job):
        ranked = self._ranked(make_job)
        reranker = StubReranker([60, 95, 50, 50, 50, 50, 50, 50, 50, 50])

        reranked, tail = rerank_top_slice(ranked, sample_profile, reranker)

        assert [j.title for j in reranked[:3]] == ["Job 1", "Job 0", "Job 2"]
        assert len(reranked) == 10
        assert tail == ranked[10:]
        assert reranked[0].semantic_score == 95
        assert reranked[0].justification == "verdict 2"
        assert len(reranker.batches[0]) == 10

    def test_no_reranker_keeps_heuristic_order(self, sample_profile, make_job):
        ranked = self._ranked(make_job)
        assert rerank_top_slice(ranked, sample_profile, None) == ([], ranked)

    def test_failure_keeps_heuristic_order(self, sample_profile, make_job, caplog):
        ranked = self._ranked(make_job)

        with caplog.at_level(logging.WARNING):
            reranked, tail = rerank_top_slice(ranked, sample_profile, StubReranker(error=RerankerError("bad json")))

        assert reranked == []
        assert tail == ranked
        assert all(j.semantic_score is None for j in ranked)
        assert "Re-ranker failed" in caplog.text

    def test_short_answer_is_a_failure(self, sample_profile, make_job):
        ranked = self._ranked(make_job, 3)

        reranked, tail = rerank_top_slice(ranked, sample_profile, StubReranker([70, 80]))

        assert reranked == []
        assert tail == ranked
        assert all(j.semantic_score is None for j in ranked)

    def test_timeout_keeps_heuristic_order(self, sample_profile, make_job):
        class SlowReranker(StubReranker):
            def score(self, profile, jobs):
                time.sleep(1.0)
                return super().score(profile, jobs)

        ranked = self._ranked(make_job, 3)

        started = time.monotonic()
        reranked, tail = rerank_top_slice(ranked, sample_profile, SlowReranker(), timeout=0.1)

        assert (reranked, tail) == ([], ranked)
        assert time.monotonic() - started < 0.9

    def test_fewer_records_than_slice(self, sample_profile, make_job):
        ranked = self._ranked(make_job, 4)

        reranked, tail = rerank_top_slice(ranked, sample_profile, StubReranker([10, 20, 30, 40]))

        assert [j.title for j in reranked] == ["Job 3", "Job 2", "Job 1", "Job 0"]
        assert tail == []

    def test_empty_input(self, sample_profile):
        reranker = StubReranker()
        assert rerank_top_slice([], sample_profile, reranker) == ([], [])
        assert reranker.batches == []
