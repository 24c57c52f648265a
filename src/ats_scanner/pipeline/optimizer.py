"""Resume optimizer - applies rewrite suggestions to the résumé text and re-scores it."""

from __future__ import annotations

import logging

from ats_scanner.models.enums import ResumeSection
from ats_scanner.models.optimization import OptimizationResult, OptimizationType
from ats_scanner.models.rewrite import RewriteSuggestion
from ats_scanner.models.scan import FailureKind, StageResult
from ats_scanner.parsers.resume_parser import RESUME_HEADERS
from ats_scanner.parsers.sections import header_key
from ats_scanner.pipeline.orchestrator import Orchestrator
from ats_scanner.pipeline.scorer import weighted_overall

logger = logging.getLogger(__name__)

STAGE = "optimize"

SECTIONS_BY_TYPE: dict[OptimizationType, set[ResumeSection]] = {
    OptimizationType.FULL: set(ResumeSection),
    OptimizationType.KEYWORDS: {ResumeSection.SUMMARY, ResumeSection.SKILLS, ResumeSection.EXPERIENCE},
    OptimizationType.SUMMARY: {ResumeSection.SUMMARY},
    OptimizationType.EXPERIENCE: {ResumeSection.EXPERIENCE},
    OptimizationType.SKILLS: {ResumeSection.SKILLS},
}


def insert_under_section(text: str, section: ResumeSection, addition: str) -> str:
    """Append ``addition`` to the end of ``section``, adding the section when absent."""
    lines = text.splitlines()
    start = end = None
    for i, line in enumerate(lines):
        key, _ = header_key(line, RESUME_HEADERS)
        if start is None:
            if key == section.value:
                start = i
        elif key is not None:
            end = i
            break

    if start is None:
        return f"{text.rstrip()}\n\n{section.value.upper()}\n{addition}\n"

    end = len(lines) if end is None else end
    while end > start + 1 and not lines[end - 1].strip():
        end -= 1
    lines[end:end] = addition.splitlines()
    return "\n".join(lines) + "\n"


def apply_suggestions(text: str, suggestions: list[RewriteSuggestion]) -> tuple[str, list[RewriteSuggestion]]:
    """Replace each suggestion's original text in place, or append it under its section."""
    applied = []
    for s in suggestions:
        if not s.rewritten_text.strip():
            continue
        if s.original_text.strip() and s.original_text in text:
            text = text.replace(s.original_text, s.rewritten_text, 1)
        else:
            text = insert_under_section(text, s.section, s.rewritten_text)
        applied.append(s)
    return text, applied


class ResumeOptimizer:
    def __init__(self, orchestrator: Orchestrator):
        self.orchestrator = orchestrator

    async def optimize(
        self,
        resume_text: str,
        job_text: str,
        optimization_type: OptimizationType | str = OptimizationType.FULL,
    ) -> StageResult[OptimizationResult]:
        try:
            kind = OptimizationType(optimization_type)
        except ValueError:
            return StageResult.fail(
                STAGE, FailureKind.VALIDATION, f"Unknown optimization type: {optimization_type}"
            )

        o = self.orchestrator
        parsed, _ = await o.parse_resume(resume_text)
        if not parsed.ok:
            return parsed
        posting, _ = await o.parse_job(job_text)
        if not posting.ok:
            return posting
        resume, job = parsed.value, posting.value

        baseline = await o.scorer.score(resume, job)
        if not baseline.ok:
            return baseline
        before = baseline.value.breakdown

        logger.info("Optimizing resume (%s)", kind.value)
        rewrites = await o.rewriter.rewrite(resume, job, baseline.value, SECTIONS_BY_TYPE[kind])
        if not rewrites.ok:
            return rewrites

        optimized_text, applied = apply_suggestions(resume_text, rewrites.value.suggestions)
        reparsed, _ = await o.parse_resume(optimized_text)
        if not reparsed.ok:
            return reparsed

        after = o.scorer.breakdown(reparsed.value, job)
        original_score, optimized_score = weighted_overall(before), weighted_overall(after)
        logger.info(
            "Optimization applied %d suggestions: %d -> %d",
            len(applied), original_score, optimized_score,
        )
        result = OptimizationResult(
            optimization_type=kind,
            original_text=resume_text,
            optimized_text=optimized_text,
            original_score=original_score,
            optimized_score=optimized_score,
            improvement=optimized_score - original_score,
            score_changes={
                name: getattr(after, name) - getattr(before, name)
                for name in type(before).model_fields
            },
            applied_suggestions=applied,
        )
        return StageResult.success(
            STAGE, result, degraded=rewrites.degraded or parsed.degraded or reparsed.degraded
        )
