"""Rewrite Agent - per-section rewrite suggestions with before/after ATS scores."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from ats_scanner.clients.llm_client import DEFAULT_MODEL, Gateway, chat
from ats_scanner.errors import GatewayError
from ats_scanner.models.enums import ResumeSection
from ats_scanner.models.job import ParsedJob
from ats_scanner.models.resume import ParsedResume
from ats_scanner.models.rewrite import (
    OverallImprovement,
    RewriteResult,
    RewriteSuggestion,
    SectionAnalysis,
)
from ats_scanner.models.scan import StageResult
from ats_scanner.models.score import ATSScoreResult
from ats_scanner.pipeline.keyword_matcher import job_keywords

logger = logging.getLogger(__name__)

STAGE = "generate_rewrites"

PRIORITY_MIN_IMPROVEMENT = 20
QUICK_WIN_MIN_IMPROVEMENT = 10

SYSTEM_PROMPT = """\
You are an expert resume writer who optimizes resumes for Applicant Tracking Systems.
Rewrite the given resume section for the target job:
- Start bullet points with strong action verbs.
- Quantify impact with concrete metrics where the original supports it.
- Work in the job's keywords naturally; never invent experience.
Estimate the section's ATS score (0-100) before and after the rewrite.

Respond with JSON only:
{
  "suggestions": [
    {"originalText": "", "rewrittenText": "", "reason": "",
     "atsScore": {"before": 0, "after": 0, "improvement": 0},
     "keywordsAdded": [""], "actionVerbsAdded": [""], "metricsAdded": [""]}
  ]
}"""


@dataclass(frozen=True)
class SectionRequest:
    """One rewrite call: a section and the text to rewrite."""

    section: ResumeSection
    label: str
    text: str


def section_requests(
    resume: ParsedResume, sections: set[ResumeSection] | None = None
) -> list[SectionRequest]:
    """Summary always; one request per experience, education and project entry; skills once."""
    wanted = sections or set(ResumeSection)
    requests = []
    if ResumeSection.SUMMARY in wanted:
        requests.append(SectionRequest(ResumeSection.SUMMARY, "Professional summary", resume.summary))
    if ResumeSection.EXPERIENCE in wanted:
        for exp in resume.experience:
            body = "\n".join(filter(None, [exp.description, *(f"- {a}" for a in exp.achievements)]))
            requests.append(
                SectionRequest(ResumeSection.EXPERIENCE, f"{exp.position} at {exp.company}", body)
            )
    if ResumeSection.EDUCATION in wanted:
        for edu in resume.education:
            text = ", ".join(filter(None, [edu.degree, edu.field, edu.institution, edu.gpa and f"GPA {edu.gpa}"]))
            requests.append(SectionRequest(ResumeSection.EDUCATION, edu.institution or edu.degree, text))
    if ResumeSection.PROJECTS in wanted:
        for project in resume.projects:
            tech = f" ({', '.join(project.technologies)})" if project.technologies else ""
            requests.append(
                SectionRequest(ResumeSection.PROJECTS, project.name, f"{project.description}{tech}")
            )
    if ResumeSection.SKILLS in wanted and resume.skills:
        requests.append(
            SectionRequest(ResumeSection.SKILLS, "Skills", ", ".join(s.name for s in resume.skills))
        )
    return requests


def _by_improvement(suggestions: list[RewriteSuggestion]) -> list[RewriteSuggestion]:
    return sorted(suggestions, key=lambda s: s.improvement, reverse=True)


def priority_rewrites(suggestions: list[RewriteSuggestion], limit: int = 3) -> list[RewriteSuggestion]:
    """Suggestions improving the score by at least 20 points, best first."""
    return _by_improvement([s for s in suggestions if s.improvement >= PRIORITY_MIN_IMPROVEMENT])[:limit]


def quick_wins(suggestions: list[RewriteSuggestion], limit: int = 5) -> list[RewriteSuggestion]:
    """Suggestions improving the score by 10 to 19 points, best first."""
    return _by_improvement(
        [s for s in suggestions if QUICK_WIN_MIN_IMPROVEMENT <= s.improvement < PRIORITY_MIN_IMPROVEMENT]
    )[:limit]


def section_analysis(suggestions: list[RewriteSuggestion]) -> dict[ResumeSection, SectionAnalysis]:
    grouped: dict[ResumeSection, list[int]] = {}
    for s in suggestions:
        grouped.setdefault(s.section, []).append(s.ats_score.after)
    return {
        section: SectionAnalysis(score=round(sum(after) / len(after)), suggestions=len(after))
        for section, after in grouped.items()
    }


def overall_improvement(suggestions: list[RewriteSuggestion]) -> OverallImprovement:
    """Mean improvement and the share of suggestions adding action verbs and metrics."""
    if not suggestions:
        return OverallImprovement()
    n = len(suggestions)
    return OverallImprovement(
        ats_score=round(sum(s.improvement for s in suggestions) / n),
        readability_score=round(sum(1 for s in suggestions if s.action_verbs_added) / n * 100),
        impact_score=round(sum(1 for s in suggestions if s.metrics_added) / n * 100),
    )


def build_rewrite_result(
    suggestions: list[RewriteSuggestion],
    max_priority: int = 3,
    max_quick_wins: int = 5,
) -> RewriteResult:
    return RewriteResult(
        suggestions=suggestions,
        overall_improvement=overall_improvement(suggestions),
        priority_rewrites=priority_rewrites(suggestions, max_priority),
        quick_wins=quick_wins(suggestions, max_quick_wins),
        section_analysis=section_analysis(suggestions),
    )


class RewriteAgent:
    def __init__(
        self,
        llm: Gateway,
        model: str = DEFAULT_MODEL,
        temperature: float = 0.4,
        max_priority: int = 3,
        max_quick_wins: int = 5,
    ):
        self.llm = llm
        self.model = model
        self.temperature = temperature
        self.max_priority = max_priority
        self.max_quick_wins = max_quick_wins

    async def rewrite(
        self,
        resume: ParsedResume,
        job: ParsedJob,
        scores: ATSScoreResult,
        sections: set[ResumeSection] | None = None,
    ) -> StageResult[RewriteResult]:
        """Request rewrites for every populated section.

        Calls run concurrently. A failed call contributes no suggestions and
        marks the result degraded; an empty suggestion set is still a result.
        """
        requests = section_requests(resume, sections)
        logger.info("Generating rewrites for %d sections", len(requests))

        results = await asyncio.gather(*(self.rewrite_section(r, job, scores) for r in requests))
        suggestions = [s for batch, _ in results for s in batch]
        failed = sum(1 for _, ok in results if not ok)
        if failed:
            logger.warning("%d of %d rewrite calls failed", failed, len(requests))

        result = build_rewrite_result(suggestions, self.max_priority, self.max_quick_wins)
        logger.info(
            "Rewrites: %d suggestions, %d priority, %d quick wins",
            len(suggestions), len(result.priority_rewrites), len(result.quick_wins),
        )
        return StageResult.success(STAGE, result, degraded=failed > 0)

    async def rewrite_section(
        self, request: SectionRequest, job: ParsedJob, scores: ATSScoreResult
    ) -> tuple[list[RewriteSuggestion], bool]:
        """Return (suggestions, succeeded) for one section."""
        original = request.text or "(empty - write a new one)"
        prompt = f"""Target job: {job.title} at {job.company}
Job keywords: {", ".join(job_keywords(job)[:25])}
Current overall ATS score: {scores.overall_score}/100

Section: {request.section.value} - {request.label}
Original text:
{original}"""

        try:
            data = await self.llm.generate_json(
                chat(SYSTEM_PROMPT, prompt),
                model=self.model,
                temperature=self.temperature,
                max_tokens=2000,
            )
        except GatewayError as e:
            logger.warning("Rewrite of %s (%s) failed: %s", request.section.value, request.label, e)
            return [], False

        raw = data.get("suggestions")
        items = [
            {"originalText": request.text, **item, "section": request.section.value}
            for item in (raw if isinstance(raw, list) else [])
            if isinstance(item, dict)
        ]
        return [s for s in RewriteSuggestion.validate_list(items) if s.rewritten_text], True
