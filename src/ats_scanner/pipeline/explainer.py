"""Explanation Agent - narrates the scan for the candidate.

Numbers, statuses and keyword lists are taken from the upstream results;
the language model only writes the narrative around them. Every call has
a score-derived fallback, so this stage always produces a result.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from pydantic import ValidationError

from ats_scanner.clients.llm_client import DEFAULT_MODEL, Gateway, chat
from ats_scanner.errors import GatewayError
from ats_scanner.models.enums import SectionStatus, Tier, Timeframe
from ats_scanner.models.explanation import (
    ActionableInsight,
    CompetitiveAnalysis,
    ExplanationResult,
    KeywordAnalysis,
    NextSteps,
    ScoreExplanation,
    SectionBreakdown,
    SkillGapSummary,
)
from ats_scanner.models.gap import SkillGapResult
from ats_scanner.models.job import ParsedJob
from ats_scanner.models.match import KeywordMatchResult
from ats_scanner.models.resume import ParsedResume
from ats_scanner.models.rewrite import RewriteResult
from ats_scanner.models.scan import StageResult
from ats_scanner.models.score import ATSScoreResult
from ats_scanner.pipeline.gap_analyzer import SUB_SCORE_LABELS
from ats_scanner.pipeline.scorer import LOW_SCORE_ADVICE
from ats_scanner.utils.text import normalize_keyword

logger = logging.getLogger(__name__)

STAGE = "explain"

GOOD_SCORE = 70

STATUS_TEXT: dict[SectionStatus, str] = {
    SectionStatus.EXCELLENT: "Strong match; keep this section as it is.",
    SectionStatus.GOOD: "Solid, with a few gaps worth closing.",
    SectionStatus.NEEDS_IMPROVEMENT: "Below what most ATS filters expect for this role.",
    SectionStatus.CRITICAL: "Likely to get the resume filtered out; fix this first.",
}

SCORE_PROMPT = """\
You are an expert ATS consultant. Explain the candidate's overall ATS score in plain
language: what it means, whether it is good, how it compares to typical applicants
and what to do next.

Respond with JSON only:
{"whatItMeans": "", "isGood": true, "benchmark": "", "nextSteps": [""]}"""

BREAKDOWN_PROMPT = """\
You are an expert ATS analyst. For each scored section explain what was measured
and give 2-3 specific recommendations. Use the section names exactly as given.

Respond with JSON only:
{"detailedBreakdown": [{"section": "", "explanation": "", "recommendations": [""]}]}"""

KEYWORD_PROMPT = """\
Explain how the matched and missing keywords affect this candidate's ATS score.

Respond with JSON only:
{"impactOnScore": ""}"""

SKILL_GAP_PROMPT = """\
Recommend a learning path that closes the candidate's most important skill gaps.

Respond with JSON only:
{"learningPath": ""}"""

INSIGHTS_PROMPT = """\
You are an expert career coach. Turn the analysis into prioritized actions.

Respond with JSON only:
{"actionableInsights": [{"priority": "high|medium|low",
                         "category": "immediate|short-term|long-term",
                         "action": "", "expectedImpact": "", "effort": "low|medium|high"}]}"""

NEXT_STEPS_PROMPT = """\
You are an expert career advisor. Create a timeline of next steps.

Respond with JSON only:
{"immediate": ["today"], "thisWeek": [""], "thisMonth": [""]}"""

COMPETITIVE_PROMPT = """\
Assess how this candidate compares with other applicants for the role.

Respond with JSON only:
{"howYouCompare": "", "marketPosition": "", "improvementPotential": ""}"""


@dataclass(frozen=True)
class ExplanationInput:
    scan_id: str
    resume: ParsedResume
    job: ParsedJob
    matches: KeywordMatchResult
    scores: ATSScoreResult
    gaps: SkillGapResult
    rewrites: RewriteResult


def sub_scores(scores: ATSScoreResult) -> dict[str, int]:
    """Sub-scores keyed by display label."""
    return {label: getattr(scores.breakdown, name) for name, label in SUB_SCORE_LABELS.items()}


def fallback_score_explanation(scores: ATSScoreResult) -> ScoreExplanation:
    overall = scores.overall_score
    return ScoreExplanation(
        what_it_means=f"Your resume scored {overall}/100 for ATS compatibility with this job.",
        is_good=overall >= GOOD_SCORE,
        benchmark="Top 25% of candidates" if overall >= 80 else "Average range" if overall >= 50 else "Below average",
        next_steps=["Apply for the position"] if overall >= GOOD_SCORE else ["Improve keywords", "Add metrics"],
    )


def fallback_breakdown_entry(name: str, label: str, score: int) -> SectionBreakdown:
    status = SectionStatus.from_score(score)
    return SectionBreakdown(
        section=label,
        score=score,
        status=status,
        explanation=STATUS_TEXT[status],
        recommendations=[LOW_SCORE_ADVICE[name]] if score < 60 else [],
    )


def section_breakdown(scores: ATSScoreResult, narrative: list[SectionBreakdown]) -> list[SectionBreakdown]:
    """One entry per sub-score; score and status always come from the numbers."""
    by_label = {normalize_keyword(s.section): s for s in narrative}
    entries = []
    for name, label in SUB_SCORE_LABELS.items():
        score = getattr(scores.breakdown, name)
        entry = fallback_breakdown_entry(name, label, score)
        told = by_label.get(normalize_keyword(label))
        if told is not None:
            entry = entry.model_copy(
                update={
                    "explanation": told.explanation or entry.explanation,
                    "recommendations": told.recommendations or entry.recommendations,
                }
            )
        entries.append(entry)
    return entries


def fallback_insights(rewrites: RewriteResult, gaps: SkillGapResult) -> list[ActionableInsight]:
    """One insight per priority rewrite, quick win and critical missing skill."""
    insights = [
        ActionableInsight(
            priority=Tier.HIGH,
            category=Timeframe.IMMEDIATE,
            action=f"Rewrite your {s.section.value}: {s.reason or 'apply the suggested rewrite'}",
            expected_impact=f"+{s.improvement} ATS points",
            effort=Tier.LOW,
        )
        for s in rewrites.priority_rewrites
    ]
    insights += [
        ActionableInsight(
            priority=Tier.MEDIUM,
            category=Timeframe.IMMEDIATE,
            action=f"Quick win in {s.section.value}: {s.reason or 'apply the suggested rewrite'}",
            expected_impact=f"+{s.improvement} ATS points",
            effort=Tier.LOW,
        )
        for s in rewrites.quick_wins
    ]
    insights += [
        ActionableInsight(
            priority=Tier.HIGH,
            category=Timeframe.LONG_TERM,
            action=f"Develop {skill}",
            expected_impact="Closes a required-skill gap",
            effort=Tier.HIGH,
        )
        for skill in gaps.critical_skills
    ]
    return insights


def fallback_next_steps(scores: ATSScoreResult, gaps: SkillGapResult) -> NextSteps:
    if scores.overall_score >= GOOD_SCORE:
        return NextSteps(
            immediate=["Apply for the position"],
            this_week=["Prepare examples for your strongest skills"],
            this_month=["Keep tailoring your resume for similar roles"],
        )
    critical = ", ".join(gaps.critical_skills[:3])
    return NextSteps(
        immediate=["Update resume with missing keywords", "Add metrics to achievements"],
        this_week=["Rewrite experience descriptions"],
        this_month=[f"Start learning {critical}" if critical else "Build skills the job lists"],
    )


def fallback_competitive(scores: ATSScoreResult) -> CompetitiveAnalysis:
    overall = scores.overall_score
    if overall >= 80:
        position = "Strong candidate"
    elif overall >= 60:
        position = "Competitive candidate with development potential"
    else:
        position = "Mid-range candidate with room to grow"
    return CompetitiveAnalysis(
        how_you_compare=f"Your {overall}/100 match puts you in the {position.lower()} range for this role.",
        market_position=position,
        improvement_potential=f"Up to {100 - overall} points available by closing keyword and skill gaps.",
    )


class ExplanationAgent:
    def __init__(self, llm: Gateway, model: str = DEFAULT_MODEL, temperature: float = 0.3):
        self.llm = llm
        self.model = model
        self.temperature = temperature

    async def explain(self, data: ExplanationInput) -> StageResult[ExplanationResult]:
        logger.info("Generating explanation for scan %s", data.scan_id)
        summary = self._summary(data)
        scores, matches, gaps = data.scores, data.matches, data.gaps

        (
            explanation_raw,
            breakdown_raw,
            keyword_raw,
            gap_raw,
            insights_raw,
            steps_raw,
            competitive_raw,
        ) = await asyncio.gather(
            self._ask(SCORE_PROMPT, summary, 800),
            self._ask(BREAKDOWN_PROMPT, summary, 1500),
            self._ask(KEYWORD_PROMPT, self._keyword_digest(matches), 600),
            self._ask(SKILL_GAP_PROMPT, self._gap_digest(gaps), 600),
            self._ask(INSIGHTS_PROMPT, summary, 1200),
            self._ask(NEXT_STEPS_PROMPT, summary, 800),
            self._ask(COMPETITIVE_PROMPT, summary, 800),
        )
        fallbacks: list[str] = []

        explanation = self._model(explanation_raw, ScoreExplanation)
        if explanation is None:
            explanation = fallback_score_explanation(scores)
            fallbacks.append("score_explanation")

        if breakdown_raw is None:
            fallbacks.append("detailed_breakdown")
        narrative = SectionBreakdown.validate_list((breakdown_raw or {}).get("detailedBreakdown"))

        impact = (keyword_raw or {}).get("impactOnScore")
        if not isinstance(impact, str) or not impact:
            impact = "Keywords decide whether the resume gets past the initial ATS screen."
            fallbacks.append("keyword_analysis")

        learning_path = (gap_raw or {}).get("learningPath")
        if not isinstance(learning_path, str) or not learning_path:
            learning_path = "Start with online courses, then gain practical experience through projects."
            fallbacks.append("skill_gap_summary")

        insights = ActionableInsight.validate_list((insights_raw or {}).get("actionableInsights"))
        if insights_raw is None or not insights:
            insights = fallback_insights(data.rewrites, gaps)
            fallbacks.append("actionable_insights")

        steps = self._model(steps_raw, NextSteps)
        if steps is None:
            steps = fallback_next_steps(scores, gaps)
            fallbacks.append("next_steps")

        competitive = self._model(competitive_raw, CompetitiveAnalysis)
        if competitive is None:
            competitive = fallback_competitive(scores)
            fallbacks.append("competitive_analysis")

        if fallbacks:
            logger.warning("Explanation used fallbacks for: %s", ", ".join(fallbacks))

        result = ExplanationResult(
            scan_id=data.scan_id,
            overall_score=scores.overall_score,
            score_explanation=explanation,
            detailed_breakdown=section_breakdown(scores, narrative),
            keyword_analysis=KeywordAnalysis(
                matched_keywords=matches.matched_keywords,
                missing_keywords=matches.missing_keywords,
                additional_keywords=matches.additional_keywords,
                impact_on_score=impact,
            ),
            skill_gap_summary=SkillGapSummary(
                critical_gaps=gaps.critical_skills,
                improvement_areas=[a.area for a in gaps.improvement_areas],
                strengths=[s.skill for s in gaps.skill_strengths],
                learning_path=learning_path,
            ),
            actionable_insights=insights,
            next_steps=steps,
            competitive_analysis=competitive,
        )
        return StageResult.success(STAGE, result, degraded=bool(fallbacks))

    async def _ask(self, system: str, prompt: str, max_tokens: int) -> dict | None:
        try:
            return await self.llm.generate_json(
                chat(system, prompt),
                model=self.model,
                temperature=self.temperature,
                max_tokens=max_tokens,
            )
        except GatewayError as e:
            logger.warning("Explanation call failed: %s", e)
            return None

    @staticmethod
    def _model(data: dict | None, model: type):
        if not data:
            return None
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.warning("Malformed %s: %s", model.__name__, e)
            return None

    @staticmethod
    def _summary(data: ExplanationInput) -> str:
        lines = [f"Job: {data.job.title} at {data.job.company}", f"Overall Score: {data.scores.overall_score}/100"]
        lines += [f"- {label}: {score}/100" for label, score in sub_scores(data.scores).items()]
        lines.append(f"Missing keywords: {', '.join(data.matches.missing_keywords[:15])}")
        lines.append(f"Critical skill gaps: {', '.join(data.gaps.critical_skills)}")
        lines.append(f"Rewrite suggestions: {len(data.rewrites.suggestions)}")
        lines.append(f"Candidate: {data.resume.personal_info.name or 'unnamed'}")
        return "\n".join(lines)

    @staticmethod
    def _keyword_digest(matches: KeywordMatchResult) -> str:
        return (
            f"Matched: {', '.join(matches.matched_keywords)}\n"
            f"Missing: {', '.join(matches.missing_keywords)}\n"
            f"Match score: {matches.match_score}/100"
        )

    @staticmethod
    def _gap_digest(gaps: SkillGapResult) -> str:
        return (
            f"Missing skills: {', '.join(f'{m.skill} ({m.importance.value})' for m in gaps.missing_skills)}\n"
            f"Improvement areas: {', '.join(a.area for a in gaps.improvement_areas)}"
        )
