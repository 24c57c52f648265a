"""Tests for pipeline orchestrator."""

import asyncio
import json
from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from ats_scanner.clients.llm_client import LLMClient
from ats_scanner.errors import GatewayError, StageError
from ats_scanner.models.resume import Skill
from ats_scanner.models.scan import FailureKind, StageResult
from ats_scanner.pipeline import job_parsing, resume_parsing
from ats_scanner.pipeline.context import ScanContext
from ats_scanner.pipeline.orchestrator import STAGES, Orchestrator, run_stage

TODAY = date(2024, 6, 1)


@pytest.fixture
def parse_replies(sample_resume, sample_job) -> dict:
    return {
        resume_parsing.SYSTEM_PROMPT: sample_resume.to_api(),
        job_parsing.SYSTEM_PROMPT: sample_job.to_api(),
    }


@pytest.fixture
def orchestrator(context, route_llm, parse_replies) -> Orchestrator:
    route_llm(parse_replies)
    return Orchestrator(context, today=TODAY)


class TestRunStage:
    @pytest.mark.parametrize(
        ("error", "kind"),
        [
            (StageError("score", "bad"), FailureKind.STAGE),
            (GatewayError("down"), FailureKind.GATEWAY),
            (RuntimeError("boom"), FailureKind.STAGE),
        ],
    )
    async def test_exceptions_become_failures(self, error, kind):
        async def call():
            raise error

        result = await run_stage("score", call)
        assert not result.ok
        assert result.failure is kind
        assert result.stage == "score"

    async def test_validation_error(self):
        async def call():
            Skill.model_validate({})

        result = await run_stage("parse_resume", call)
        assert result.failure is FailureKind.VALIDATION

    async def test_passes_result_through(self):
        async def call():
            return StageResult.success("score", 1)

        assert (await run_stage("score", call)).value == 1


class TestScan:
    async def test_full_scan(self, orchestrator, sample_resume_text, sample_jd_text):
        result = await orchestrator.scan(sample_resume_text, sample_jd_text)

        assert result.ok
        scan = result.value
        assert scan.resume.personal_info.name == "Jane Doe"
        assert scan.job.title == "Senior Backend Engineer"
        assert scan.scores.breakdown.keyword_match == 75
        assert scan.keyword_matches.missing_keywords == ["Kubernetes", "Terraform"]
        assert [m.skill for m in scan.skill_gaps.missing_skills] == ["Kubernetes"]
        assert scan.explanation.scan_id == scan.scan_id
        assert scan.explanation.overall_score == scan.scores.overall_score
        assert scan.metadata["stages"] == STAGES
        assert scan.metadata["llm_calls"] == 0
        assert "elapsed_seconds" in scan.metadata

    async def test_phases_reported_in_order(self, orchestrator, sample_resume_text, sample_jd_text):
        phases = []
        await orchestrator.scan(sample_resume_text, sample_jd_text, on_phase=lambda p, _: phases.append(p))
        assert phases == STAGES + ["done"]

    async def test_empty_explanation_replies_are_degraded(self, orchestrator, sample_resume_text, sample_jd_text):
        result = await orchestrator.scan(sample_resume_text, sample_jd_text)
        assert "explain" in result.value.degraded_stages
        assert result.degraded

    async def test_scan_ids_are_unique(self, orchestrator, sample_resume_text, sample_jd_text):
        first = await orchestrator.scan(sample_resume_text, sample_jd_text)
        second = await orchestrator.scan(sample_resume_text, sample_jd_text)
        assert first.value.scan_id != second.value.scan_id


class TestParseCache:
    async def test_second_scan_hits_cache(
        self, orchestrator, mock_llm_client, count_calls, sample_resume_text, sample_jd_text
    ):
        await orchestrator.scan(sample_resume_text, sample_jd_text)
        result = await orchestrator.scan(sample_resume_text, sample_jd_text)

        assert result.value.metadata["cache_hits"] == ["parse_resume", "parse_job"]
        assert count_calls(mock_llm_client, resume_parsing.SYSTEM_PROMPT) == 1
        assert count_calls(mock_llm_client, job_parsing.SYSTEM_PROMPT) == 1

    async def test_degraded_parse_not_cached(
        self, context, route_llm, parse_replies, count_calls, sample_resume_text, sample_jd_text
    ):
        llm = route_llm({**parse_replies, resume_parsing.SYSTEM_PROMPT: GatewayError("down")})
        orchestrator = Orchestrator(context, today=TODAY)

        first = await orchestrator.scan(sample_resume_text, sample_jd_text)
        await orchestrator.scan(sample_resume_text, sample_jd_text)

        assert "parse_resume" in first.value.degraded_stages
        assert count_calls(llm, resume_parsing.SYSTEM_PROMPT) == 2
        assert count_calls(llm, job_parsing.SYSTEM_PROMPT) == 1

    async def test_cache_disabled(self, context, orchestrator, mock_llm_client, count_calls, sample_resume_text):
        context.cache = None

        _, hit = await orchestrator.parse_resume(sample_resume_text)
        _, hit_again = await orchestrator.parse_resume(sample_resume_text)
        assert not hit and not hit_again
        assert count_calls(mock_llm_client, resume_parsing.SYSTEM_PROMPT) == 2


class TestFailures:
    async def test_empty_resume_aborts(self, orchestrator, sample_jd_text):
        result = await orchestrator.scan("   ", sample_jd_text)
        assert not result.ok
        assert result.stage == "parse_resume"
        assert result.failure is FailureKind.VALIDATION

    async def test_empty_job_aborts(self, orchestrator, sample_resume_text):
        phases = []
        result = await orchestrator.scan(sample_resume_text, "", on_phase=lambda p, _: phases.append(p))
        assert result.stage == "parse_job"
        assert phases[-1] == "failed"

    async def test_matcher_failure_uses_fallback(self, orchestrator, sample_resume_text, sample_jd_text):
        orchestrator.matcher.match = AsyncMock(side_effect=RuntimeError("boom"))
        result = await orchestrator.scan(sample_resume_text, sample_jd_text)

        assert result.ok
        assert "match_keywords" in result.value.degraded_stages
        assert result.value.keyword_matches.missing_keywords == ["Kubernetes", "Terraform"]
        assert result.value.keyword_matches.semantic_matches == []

    async def test_rewrite_failure_uses_empty_result(self, orchestrator, sample_resume_text, sample_jd_text):
        orchestrator.rewriter.rewrite = AsyncMock(side_effect=GatewayError("down"))
        result = await orchestrator.scan(sample_resume_text, sample_jd_text)

        assert result.ok
        assert "generate_rewrites" in result.value.degraded_stages
        assert result.value.rewrite_suggestions.suggestions == []

    async def test_fail_fast_stops_at_first_failure(
        self, fail_fast_context, route_llm, parse_replies, sample_resume_text, sample_jd_text
    ):
        route_llm(parse_replies)
        orchestrator = Orchestrator(fail_fast_context, today=TODAY)
        orchestrator.gap_analyzer.analyze = AsyncMock(side_effect=RuntimeError("boom"))
        orchestrator.rewriter.rewrite = AsyncMock()

        result = await orchestrator.scan(sample_resume_text, sample_jd_text)

        assert not result.ok
        assert result.stage == "analyze_gaps"
        assert result.failure is FailureKind.STAGE
        orchestrator.rewriter.rewrite.assert_not_called()

    async def test_scorer_failure_always_aborts(self, orchestrator, sample_resume_text, sample_jd_text):
        orchestrator.scorer.score = AsyncMock(side_effect=StageError("score", "no breakdown"))
        result = await orchestrator.scan(sample_resume_text, sample_jd_text)

        assert not result.ok
        assert result.stage == "score"


def _claude_replying(replies: dict) -> LLMClient:
    """Real LLMClient over a fake SDK that answers by system-prompt prefix."""

    async def create(**kwargs):
        system = kwargs.get("system", "")
        reply = next((r for prompt, r in replies.items() if system.startswith(prompt)), {})
        await asyncio.sleep(0)
        message = MagicMock()
        message.usage.input_tokens = 10
        message.usage.output_tokens = 5
        message.content = [MagicMock(text=json.dumps(reply))]
        return message

    with patch("ats_scanner.clients.llm_client.anthropic.AsyncAnthropic") as mock_cls:
        mock_cls.return_value.messages.create = AsyncMock(side_effect=create)
        return LLMClient(max_retries=1)


class TestUsageMetadata:
    async def test_concurrent_scans_count_only_their_own_calls(
        self, parse_replies, sample_resume_text, sample_jd_text
    ):
        llm = _claude_replying(parse_replies)
        orchestrator = Orchestrator(ScanContext(llm=llm), today=TODAY)

        first, second = await asyncio.gather(
            orchestrator.scan(sample_resume_text, sample_jd_text),
            orchestrator.scan(f"{sample_resume_text}\nOpen source maintainer", sample_jd_text),
        )

        counts = [first.value.metadata["llm_calls"], second.value.metadata["llm_calls"]]
        assert all(counts)
        assert sum(counts) == len(llm.get_token_summary()["calls"])

    async def test_scan_leaves_client_log_alone(self, parse_replies, sample_resume_text, sample_jd_text):
        llm = _claude_replying(parse_replies)
        result = await Orchestrator(ScanContext(llm=llm), today=TODAY).scan(sample_resume_text, sample_jd_text)
        assert len(llm.get_token_summary()["calls"]) == result.value.metadata["llm_calls"]
