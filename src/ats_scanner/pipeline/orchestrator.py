"""Main pipeline orchestrator - runs one scan through every stage in order.

parse_resume -> parse_job -> match_keywords -> score -> analyze_gaps
-> generate_rewrites -> explain
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Awaitable, Callable
from datetime import date

from pydantic import ValidationError

from ats_scanner.cache.parse_cache import cache_key
from ats_scanner.clients.llm_client import summarize_usage, track_usage
from ats_scanner.errors import GatewayError, StageError
from ats_scanner.logging.cost_calculator import usage_metadata
from ats_scanner.models.explanation import ExplanationResult
from ats_scanner.models.gap import SkillGapResult
from ats_scanner.models.job import ParsedJob
from ats_scanner.models.match import KeywordMatchResult
from ats_scanner.models.resume import ParsedResume
from ats_scanner.models.rewrite import RewriteResult
from ats_scanner.models.scan import FailureKind, ScanResult, StageResult
from ats_scanner.pipeline import explainer, gap_analyzer, keyword_matcher, rewriter, scorer
from ats_scanner.pipeline.context import ScanContext
from ats_scanner.pipeline.explainer import (
    ExplanationAgent,
    ExplanationInput,
    fallback_competitive,
    fallback_insights,
    fallback_next_steps,
    fallback_score_explanation,
    section_breakdown,
)
from ats_scanner.pipeline.gap_analyzer import (
    GapAnalyzer,
    default_missing_skill,
    fallback_improvement_areas,
    missing_required_skills,
)
from ats_scanner.pipeline.job_parsing import JobParsingAgent
from ats_scanner.pipeline.keyword_matcher import (
    KeywordMatcher,
    category_scores,
    combine_match_score,
    exact_matches,
    job_keywords,
    resume_keywords,
)
from ats_scanner.pipeline.resume_parsing import ResumeParsingAgent
from ats_scanner.pipeline.rewriter import RewriteAgent
from ats_scanner.pipeline.scorer import Scorer

logger = logging.getLogger(__name__)

STAGES = [
    "parse_resume",
    "parse_job",
    keyword_matcher.STAGE,
    scorer.STAGE,
    gap_analyzer.STAGE,
    rewriter.STAGE,
    explainer.STAGE,
]

PhaseCallback = Callable[[str, str], None]


async def run_stage(stage: str, call: Callable[[], Awaitable[StageResult]]) -> StageResult:
    """Await one stage, turning any escaped exception into a failed result."""
    try:
        return await call()
    except StageError as e:
        logger.error("Stage %s failed: %s", stage, e, exc_info=True)
        return StageResult.fail(stage, FailureKind.STAGE, str(e))
    except ValidationError as e:
        logger.error("Stage %s produced invalid data: %s", stage, e, exc_info=True)
        return StageResult.fail(stage, FailureKind.VALIDATION, str(e))
    except GatewayError as e:
        logger.error("Stage %s gateway failure: %s", stage, e, exc_info=True)
        return StageResult.fail(stage, FailureKind.GATEWAY, str(e))
    except Exception as e:
        logger.error("Stage %s raised unexpectedly: %s", stage, e, exc_info=True)
        return StageResult.fail(stage, FailureKind.STAGE, f"{type(e).__name__}: {e}")


def fallback_matches(resume: ParsedResume, job: ParsedJob) -> KeywordMatchResult:
    """Exact and category matching only."""
    resume_terms = resume_keywords(resume)
    exact = exact_matches(resume_terms, job_keywords(job))
    categories = category_scores(resume, job)
    return KeywordMatchResult(
        exact_matches=exact,
        missing_keywords=[m.keyword for m in exact if not m.found],
        category_scores=categories,
        match_score=combine_match_score(exact, [], categories),
    )


def fallback_gaps(resume: ParsedResume, job: ParsedJob, scores) -> SkillGapResult:
    return SkillGapResult(
        missing_skills=[default_missing_skill(s) for s in missing_required_skills(resume, job)],
        improvement_areas=fallback_improvement_areas(scores),
    )


def fallback_explanation(data: ExplanationInput) -> ExplanationResult:
    return ExplanationResult(
        scan_id=data.scan_id,
        overall_score=data.scores.overall_score,
        score_explanation=fallback_score_explanation(data.scores),
        detailed_breakdown=section_breakdown(data.scores, []),
        actionable_insights=fallback_insights(data.rewrites, data.gaps),
        next_steps=fallback_next_steps(data.scores, data.gaps),
        competitive_analysis=fallback_competitive(data.scores),
    )


class ScanFailure(Exception):
    """Internal signal carrying the failed stage result out of the scan body."""

    def __init__(self, result: StageResult):
        super().__init__(result.error)
        self.result = result


class Orchestrator:
    """Coordinates the seven-stage scan over one ScanContext."""

    def __init__(self, context: ScanContext, *, today: date | None = None):
        self.context = context
        llm = context.llm
        cfg = context.config
        self.resume_parser = ResumeParsingAgent(llm, model=cfg.llm.model)
        self.job_parser = JobParsingAgent(llm, model=cfg.llm.model)
        self.matcher = KeywordMatcher(llm, model=cfg.llm.fast_model, temperature=cfg.llm.temperature)
        self.scorer = Scorer(llm, model=cfg.llm.fast_model, today=today)
        self.gap_analyzer = GapAnalyzer(llm, model=cfg.llm.model, temperature=cfg.llm.temperature)
        self.rewriter = RewriteAgent(
            llm,
            model=cfg.llm.model,
            max_priority=cfg.pipeline.max_priority_rewrites,
            max_quick_wins=cfg.pipeline.max_quick_wins,
        )
        self.explainer = ExplanationAgent(llm, model=cfg.llm.fast_model)

    @property
    def fail_fast(self) -> bool:
        return self.context.config.pipeline.fail_fast

    async def parse_resume(self, resume_text: str, file_name: str | None = None) -> tuple[StageResult[ParsedResume], bool]:
        """Parse through the cache. Returns (result, cache_hit)."""
        return await self._cached(
            "resume", resume_text, lambda: self.resume_parser.parse(resume_text, file_name)
        )

    async def parse_job(self, job_text: str) -> tuple[StageResult[ParsedJob], bool]:
        return await self._cached("job", job_text, lambda: self.job_parser.parse(job_text))

    async def _cached(self, kind: str, text: str, parse) -> tuple[StageResult, bool]:
        stage = f"parse_{kind}"
        cache = self.context.cache
        if cache is None:
            return await run_stage(stage, parse), False

        # Degraded parses are not cached so a later scan can retry the model.
        result, hit = await cache.get_or_create(
            cache_key(kind, text),
            lambda: run_stage(stage, parse),
            keep=lambda r: r.ok and not r.degraded,
        )
        if hit:
            logger.info("Parse cache hit for %s", kind)
        return result, hit

    async def scan(
        self,
        resume_text: str,
        job_text: str,
        *,
        file_name: str | None = None,
        on_phase: PhaseCallback | None = None,
    ) -> StageResult[ScanResult]:
        """Run one scan.

        A failed parse always ends the scan. Later failures end it only
        when ``pipeline.fail_fast`` is set; otherwise a fallback value is
        used and the stage is listed in ``degraded_stages``.
        """
        start = time.monotonic()
        scan_id = str(uuid.uuid4())

        def _notify(phase: str, detail: str = ""):
            if on_phase:
                on_phase(phase, detail)

        try:
            with track_usage() as usage:
                result = await self._run(scan_id, resume_text, job_text, file_name, _notify, start, usage)
        except ScanFailure as e:
            failed = e.result
            logger.error("Scan %s stopped at %s (%s): %s", scan_id, failed.stage, failed.failure.value, failed.error)
            _notify("failed", f"{failed.stage}: {failed.error}")
            return failed

        _notify("done", f"Score {result.scores.overall_score}/100 in {result.metadata['elapsed_seconds']}s")
        return StageResult.success("scan", result, degraded=bool(result.degraded_stages))

    async def _run(self, scan_id, resume_text, job_text, file_name, _notify, start, usage) -> ScanResult:
        degraded: list[str] = []
        cache_hits: list[str] = []

        def _take(result: StageResult, fallback: Callable[[], object] | None = None):
            if result.ok:
                if result.degraded:
                    degraded.append(result.stage)
                return result.value
            if fallback is None or self.fail_fast:
                raise ScanFailure(result)
            logger.warning("Stage %s failed (%s), continuing with fallback", result.stage, result.error)
            degraded.append(result.stage)
            return fallback()

        _notify("parse_resume", "Parsing resume")
        parsed, hit = await self.parse_resume(resume_text, file_name)
        resume = _take(parsed)
        if hit:
            cache_hits.append("parse_resume")

        _notify("parse_job", "Parsing job description")
        parsed, hit = await self.parse_job(job_text)
        job = _take(parsed)
        if hit:
            cache_hits.append("parse_job")

        _notify("match_keywords", "Matching keywords")
        matches = _take(
            await run_stage(keyword_matcher.STAGE, lambda: self.matcher.match(resume, job)),
            lambda: fallback_matches(resume, job),
        )

        _notify("score", "Scoring")
        scores = _take(
            await run_stage(scorer.STAGE, lambda: self.scorer.score(resume, job, matches)),
        )

        _notify("analyze_gaps", "Analyzing skill gaps")
        gaps = _take(
            await run_stage(gap_analyzer.STAGE, lambda: self.gap_analyzer.analyze(resume, job, scores)),
            lambda: fallback_gaps(resume, job, scores),
        )

        _notify("generate_rewrites", "Generating rewrite suggestions")
        rewrites = _take(
            await run_stage(rewriter.STAGE, lambda: self.rewriter.rewrite(resume, job, scores)),
            RewriteResult,
        )

        _notify("explain", "Writing explanation")
        explain_input = ExplanationInput(
            scan_id=scan_id,
            resume=resume,
            job=job,
            matches=matches,
            scores=scores,
            gaps=gaps,
            rewrites=rewrites,
        )
        explanation = _take(
            await run_stage(explainer.STAGE, lambda: self.explainer.explain(explain_input)),
            lambda: fallback_explanation(explain_input),
        )

        elapsed = round(time.monotonic() - start, 2)
        metadata = {
            "elapsed_seconds": elapsed,
            "stages": STAGES,
            "cache_hits": cache_hits,
            **usage_metadata(summarize_usage(usage)),
        }
        logger.info(
            "Scan %s finished in %.2fs: score %d, degraded %s",
            scan_id, elapsed, scores.overall_score, degraded or "none",
        )
        return ScanResult(
            scan_id=scan_id,
            resume=resume,
            job=job,
            keyword_matches=matches,
            scores=scores,
            skill_gaps=gaps,
            rewrite_suggestions=rewrites,
            explanation=explanation,
            degraded_stages=degraded,
            metadata=metadata,
        )
