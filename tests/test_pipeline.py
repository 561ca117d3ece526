"""End-to-end tests for jobradar.pipeline against stub providers and re-rankers."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from conftest import StubProvider, StubReranker

from jobradar.config import Settings
from jobradar.evaluator_agent import RerankerError
from jobradar.pipeline import process_search, profile_from_search, run_search
from jobradar.progress import PipelineStage


def _stages(reporter: MagicMock) -> list[PipelineStage]:
    return [c.args[0] for c in reporter.report.call_args_list]


_SCENARIO_PROFILE = {"target_roles": ["Backend Engineer"], "skills": ["Go", "SQL"], "location": "Paris"}


class TestScenarios:
    def test_a_cross_source_duplicate_keeps_higher_score(self, make_job):
        strong = make_job(source_engine="adzuna", source="APEC", description="Go and SQL")
        weak = make_job(source_engine="indeed", source="Indeed", description="Java shop")

        outcome = run_search(
            _SCENARIO_PROFILE,
            [StubProvider("Indeed", [weak]), StubProvider("Adzuna", [strong])],
        )

        assert outcome.status == "completed"
        assert outcome.jobs == [strong]
        assert strong.heuristic_score > weak.heuristic_score
        assert strong.rank == 1

    def test_b_agency_is_excluded_regardless_of_score(self, make_job):
        agency = make_job(company_name="Michael Page", description="Go and SQL backend")
        direct = make_job(company_name="Acme", description="SQL")

        outcome = run_search({**_SCENARIO_PROFILE, "exclude_agencies": True}, [StubProvider("A", [agency, direct])])

        assert outcome.jobs == [direct]

    def test_c_freelance_request(self, make_job):
        undefined = make_job(title="Backend Engineer", company_name="One", contract_type=None)
        contract = make_job(title="Backend Engineer", company_name="Two", contract_type="contract")

        outcome = run_search(
            {**_SCENARIO_PROFILE, "contract_types": ["freelance"]},
            [StubProvider("A", [undefined, contract])],
        )

        assert outcome.jobs == [contract]
        assert contract.contract_label == "Freelance"

    def test_d_no_records_is_completed_not_error(self):
        reporter = MagicMock()

        outcome = run_search(
            _SCENARIO_PROFILE,
            [StubProvider("Empty"), StubProvider("Broken", error=RuntimeError("down"))],
            reporter=reporter,
        )

        assert outcome.status == "completed"
        assert outcome.jobs == []
        assert _stages(reporter)[-1] is PipelineStage.COMPLETED

    def test_e_semantic_reranker_swaps_top_two(self, make_job):
        scores = [90 - 5 * i for i in range(12)]
        jobs = [make_job(title=f"Job {i}", company_name=f"Co {i}") for i in range(12)]
        by_title = {f"Job {i}": score for i, score in enumerate(scores)}

        def _fixed_scores(records, profile):
            for job in records:
                job.heuristic_score = by_title[job.title]
            return records

        reranker = StubReranker([80, 95, 70, 65, 60, 55, 50, 45, 40, 35])
        with patch("jobradar.pipeline.score_jobs", side_effect=_fixed_scores):
            outcome = run_search(_SCENARIO_PROFILE, [StubProvider("A", jobs)], reranker=reranker)

        assert outcome.jobs[0].title == "Job 1"
        assert outcome.jobs[1].title == "Job 0"
        assert [j.rank for j in outcome.jobs] == list(range(1, 13))
        assert [j.title for j in outcome.jobs[10:]] == ["Job 10", "Job 11"]
        assert outcome.reranked_count == 10


class TestPipelineProperties:
    def test_unreachable_reranker_keeps_heuristic_top_ten(self, sample_profile, make_job):
        jobs = [
            make_job(title=f"Backend Engineer {i}", description=" ".join(sample_profile.skills[: i % 5]))
            for i in range(15)
        ]

        baseline = run_search(sample_profile, [StubProvider("A", [j.model_copy() for j in jobs])])
        degraded = run_search(
            sample_profile,
            [StubProvider("A", [j.model_copy() for j in jobs])],
            reranker=StubReranker(error=RerankerError("offline")),
        )

        assert [j.external_id for j in degraded.jobs[:10]] == [j.external_id for j in baseline.jobs[:10]]
        assert degraded.status == "completed"
        assert all(j.semantic_score is None for j in degraded.jobs)

    def test_zero_scores_never_ranked(self, sample_profile, make_job):
        irrelevant = make_job(title="Nurse", description="Night shifts")
        relevant = make_job(title="Backend Engineer")

        outcome = run_search(sample_profile, [StubProvider("A", [irrelevant, relevant])])

        assert irrelevant.heuristic_score == 0
        assert irrelevant not in outcome.jobs
        assert all(j.heuristic_score > 0 for j in outcome.jobs)

    def test_ranked_cap_from_settings(self, sample_profile, make_job):
        jobs = [make_job(title=f"Backend Engineer {i}") for i in range(20)]

        outcome = run_search(sample_profile, [StubProvider("A", jobs)], settings=Settings(max_ranked=5))

        assert [j.rank for j in outcome.jobs] == [1, 2, 3, 4, 5]

    def test_stage_sequence(self, sample_profile, make_job):
        reporter = MagicMock()

        run_search(sample_profile, [StubProvider("A", [make_job()])], reporter=reporter)

        assert _stages(reporter) == [
            PipelineStage.FETCHING,
            PipelineStage.FILTERING,
            PipelineStage.SCORING,
            PipelineStage.PERSISTING,
            PipelineStage.COMPLETED,
        ]

    def test_persist_receives_final_ranking(self, sample_profile, make_job):
        persist = MagicMock()

        outcome = run_search(sample_profile, [StubProvider("A", [make_job()])], persist=persist)

        persist.assert_called_once_with(outcome.jobs)


class TestPipelineErrors:
    def test_malformed_profile_is_error(self):
        reporter = MagicMock()
        provider = StubProvider("A")

        outcome = run_search({"skills": ["Python"]}, [provider], reporter=reporter)

        assert outcome.status == "error"
        assert "target_roles" in outcome.error_message
        assert provider.calls == []
        reporter.report.assert_called_once_with(PipelineStage.ERROR, outcome.error_message)

    def test_blank_roles_is_error(self):
        outcome = run_search({"target_roles": ["  "]}, [StubProvider("A")])
        assert outcome.status == "error"
        assert outcome.error_message.startswith("Invalid candidate profile")

    def test_persist_failure_is_error(self, sample_profile, make_job):
        reporter = MagicMock()
        persist = MagicMock(side_effect=RuntimeError("Failed to save matches"))

        outcome = run_search(sample_profile, [StubProvider("A", [make_job()])], reporter=reporter, persist=persist)

        assert outcome.status == "error"
        assert outcome.error_message == "Failed to save matches"
        assert outcome.raw_count == 1
        assert _stages(reporter)[-1] is PipelineStage.ERROR
        assert PipelineStage.COMPLETED not in _stages(reporter)

    def test_error_reporter_failure_does_not_escape(self, sample_profile):
        reporter = MagicMock()
        reporter.report.side_effect = RuntimeError("status table unreachable")

        outcome = run_search(sample_profile, [StubProvider("A")], reporter=reporter)

        assert outcome.status == "error"
        assert outcome.error_message == "status table unreachable"


# ---------------------------------------------------------------------------
# Stored searches
# ---------------------------------------------------------------------------


def _search_row(**overrides) -> dict:
    row = {
        "id": "s1",
        "status": "processing",
        "job_title": "Backend Engineer",
        "location": "Paris",
        "parsed_data": {
            "target_roles": ["Backend Engineer", "Go Developer"],
            "skills": ["Go", "SQL"],
            "location": "Paris",
            "seniority": "Senior",
            "experience_years": 6,
        },
        "exclude_agencies": None,
        "contract_types": ["CDI", "Freelance"],
        "remote_options": None,
    }
    row.update(overrides)
    return row


class TestProfileFromSearch:
    def test_builds_profile_data(self):
        data = profile_from_search(_search_row())

        assert data["target_roles"] == ["Backend Engineer", "Go Developer"]
        assert data["contract_types"] == ["CDI", "Freelance"]
        assert data["remote_modes"] == []
        assert data["exclude_agencies"] is True

    def test_exclude_agencies_false_respected(self):
        assert profile_from_search(_search_row(exclude_agencies=False))["exclude_agencies"] is False

    def test_falls_back_to_job_title(self):
        data = profile_from_search(_search_row(parsed_data={}))
        assert data["target_roles"] == ["Backend Engineer"]
        assert data["location"] == "Paris"


class TestProcessSearch:
    @patch("jobradar.pipeline.insert_matches")
    @patch("jobradar.pipeline.get_search")
    def test_success_writes_matches_and_status(self, mock_get: MagicMock, mock_insert: MagicMock, make_job):
        mock_get.return_value = _search_row(contract_types=None)
        client = MagicMock()
        client.table.return_value.update.return_value.eq.return_value.execute.return_value = MagicMock(error=None)

        outcome = process_search(client, "s1", [StubProvider("A", [make_job()])])

        assert outcome.status == "completed"
        mock_insert.assert_called_once_with(client, "s1", outcome.jobs)
        updates = [c.args[0] for c in client.table.return_value.update.call_args_list]
        assert updates[0] == {"processing_step": "scraping"}
        assert updates[-1]["status"] == "completed"

    @patch("jobradar.pipeline.get_search", return_value=None)
    def test_missing_search(self, mock_get: MagicMock):
        with pytest.raises(LookupError):
            process_search(MagicMock(), "nope", [])

    @patch("jobradar.pipeline.get_search")
    def test_already_processed(self, mock_get: MagicMock):
        mock_get.return_value = _search_row(status="completed")
        with pytest.raises(ValueError, match="already processed"):
            process_search(MagicMock(), "s1", [])
