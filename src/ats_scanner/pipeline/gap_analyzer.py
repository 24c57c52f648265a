"""Gap Analyzer - missing skills, strengths, improvement areas and career advice.

The set of missing skills is computed deterministically. Everything the
language model adds on top of it (rationale, learning resources, advice,
market outlook) is best-effort: each call has its own static fallback.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from ats_scanner.clients.llm_client import DEFAULT_MODEL, Gateway, chat
from ats_scanner.errors import GatewayError
from ats_scanner.models.enums import Importance
from ats_scanner.models.gap import (
    CareerAdvice,
    ImprovementArea,
    MarketAlignment,
    MissingSkill,
    SkillGapResult,
    SkillStrength,
)
from ats_scanner.models.job import JobSkill, ParsedJob
from ats_scanner.models.resume import ParsedResume
from ats_scanner.models.scan import StageResult
from ats_scanner.models.score import ATSScoreResult
from ats_scanner.pipeline.keyword_matcher import job_keywords
from ats_scanner.pipeline.scorer import LOW_SCORE_ADVICE
from ats_scanner.utils.text import normalize_keyword

logger = logging.getLogger(__name__)

STAGE = "analyze_gaps"

IMPROVEMENT_THRESHOLD = 60

SUB_SCORE_LABELS: dict[str, str] = {
    "keyword_match": "Keyword Match",
    "skill_alignment": "Skill Alignment",
    "experience_relevance": "Experience Relevance",
    "education_match": "Education Match",
    "ats_compliance": "ATS Compliance",
}

MISSING_SKILLS_PROMPT = """\
You are a career development expert. Analyze the skills a candidate is missing for a job.
For each skill give its importance, category, why it matters for this role and
1-2 realistic learning resources.

Respond with JSON only:
{
  "missingSkills": [
    {"skill": "name", "importance": "critical|important|nice-to-have",
     "category": "technical|soft|language|tool", "reason": "why it matters",
     "learningResources": [{"type": "course|certification|book|project|tutorial",
                            "title": "", "provider": "", "url": null, "estimatedTime": "4 weeks"}]}
  ]
}"""

STRENGTHS_PROMPT = """\
Analyze the candidate's strongest skills relevant to this job. Rate relevance 0-100
and cite evidence from the resume.

Respond with JSON only:
{"skillStrengths": [{"skill": "", "level": "", "relevance": 0, "evidence": ""}]}"""

IMPROVEMENT_PROMPT = """\
Identify specific areas for improvement based on the resume-job match scores.
Be concrete: each area needs a current level, a target level and action items.

Respond with JSON only:
{"improvementAreas": [{"area": "", "currentLevel": "", "targetLevel": "", "gap": "",
                       "actionItems": [""]}]}"""

CAREER_PROMPT = """\
Provide strategic career advice for this job application, split by horizon.

Respond with JSON only:
{"careerAdvice": {"shortTerm": ["next 1-3 months"], "mediumTerm": ["3-12 months"],
                  "longTerm": ["1-3 years"]}}"""

MARKET_PROMPT = """\
Assess market demand for this role and the candidate's skill set.

Respond with JSON only:
{"marketAlignment": {"demandLevel": "low|medium|high", "salaryImpact": "low|medium|high",
                     "growthPotential": "low|medium|high"}}"""


def missing_required_skills(resume: ParsedResume, job: ParsedJob) -> list[JobSkill]:
    """Required job skills whose normalized name is not among the résumé skills."""
    have = {normalize_keyword(s.name) for s in resume.skills}
    return [s for s in job.required_skills if normalize_keyword(s.name) not in have]


def default_missing_skill(skill: JobSkill) -> MissingSkill:
    return MissingSkill(
        skill=skill.name,
        importance=Importance.CRITICAL,
        category=skill.category,
        reason=f"{skill.name} is listed as a requirement for this role",
    )


def fallback_strengths(resume: ParsedResume, job: ParsedJob) -> list[SkillStrength]:
    wanted = {normalize_keyword(k) for k in job_keywords(job)}
    return [
        SkillStrength(
            skill=s.name,
            level=s.level.value,
            relevance=70,
            evidence="Listed in resume skills and requested by the job",
        )
        for s in resume.skills
        if normalize_keyword(s.name) in wanted
    ]


def fallback_improvement_areas(scores: ATSScoreResult) -> list[ImprovementArea]:
    areas = []
    for name, label in SUB_SCORE_LABELS.items():
        value = getattr(scores.breakdown, name)
        if value < IMPROVEMENT_THRESHOLD:
            areas.append(
                ImprovementArea(
                    area=label,
                    current_level=f"{value}/100",
                    target_level=f"{IMPROVEMENT_THRESHOLD}+/100",
                    gap=f"{IMPROVEMENT_THRESHOLD - value} points below target",
                    action_items=[LOW_SCORE_ADVICE[name]],
                )
            )
    return areas


def fallback_career_advice(missing: list[MissingSkill]) -> CareerAdvice:
    focus = ", ".join(m.skill for m in missing[:3]) or "the job's core skills"
    return CareerAdvice(
        short_term=["Tailor your resume to the job's keywords before applying"],
        medium_term=[f"Build hands-on experience with {focus}"],
        long_term=["Pursue certifications and projects that demonstrate growth in this field"],
    )


class GapAnalyzer:
    def __init__(self, llm: Gateway, model: str = DEFAULT_MODEL, temperature: float = 0.3):
        self.llm = llm
        self.model = model
        self.temperature = temperature

    async def analyze(
        self, resume: ParsedResume, job: ParsedJob, scores: ATSScoreResult
    ) -> StageResult[SkillGapResult]:
        logger.info("Analyzing skill gaps")
        context = self._context(resume, job, scores)
        degraded = False

        missing = missing_required_skills(resume, job)
        missing_skills, fell_back = await self.enrich_missing(missing, context)
        degraded |= fell_back

        data = await self._request(STRENGTHS_PROMPT, context, 1500)
        strengths = SkillStrength.validate_list(data.get("skillStrengths")) if data else []
        if data is None:
            strengths = fallback_strengths(resume, job)
            degraded = True

        data = await self._request(IMPROVEMENT_PROMPT, context, 1500)
        areas = ImprovementArea.validate_list(data.get("improvementAreas")) if data else []
        if data is None:
            areas = fallback_improvement_areas(scores)
            degraded = True

        advice = self._section(
            await self._request(CAREER_PROMPT, context, 1000), "careerAdvice", CareerAdvice
        )
        if advice is None:
            advice = fallback_career_advice(missing_skills)
            degraded = True

        market = self._section(
            await self._request(MARKET_PROMPT, context, 500), "marketAlignment", MarketAlignment
        )
        if market is None:
            market = MarketAlignment()
            degraded = True

        result = SkillGapResult(
            missing_skills=missing_skills,
            skill_strengths=strengths,
            improvement_areas=areas,
            career_advice=advice,
            market_alignment=market,
        )
        logger.info(
            "Gap analysis: %d missing (%d critical), %d strengths",
            len(missing_skills), len(result.critical_skills), len(strengths),
        )
        return StageResult.success(STAGE, result, degraded=degraded)

    async def enrich_missing(
        self, missing: list[JobSkill], context: str
    ) -> tuple[list[MissingSkill], bool]:
        """Enrich each missing skill; unenriched ones keep static defaults.

        The returned list always covers exactly ``missing``, in order.
        """
        if not missing:
            return [], False

        prompt = f"{context}\n\nMissing required skills: {', '.join(s.name for s in missing)}"
        data = await self._request(MISSING_SKILLS_PROMPT, prompt, 2500)
        # The missing set comes from missing_required_skills(); a failed call
        # only defaults importance, category, rationale and resources.
        if data is None:
            return [default_missing_skill(s) for s in missing], True

        enriched = {
            normalize_keyword(m.skill): m
            for m in MissingSkill.validate_list(data.get("missingSkills"))
        }
        return [
            enriched.get(normalize_keyword(s.name)) or default_missing_skill(s) for s in missing
        ], False

    async def _request(self, system: str, prompt: str, max_tokens: int) -> dict | None:
        try:
            return await self.llm.generate_json(
                chat(system, prompt),
                model=self.model,
                temperature=self.temperature,
                max_tokens=max_tokens,
            )
        except GatewayError as e:
            logger.warning("Gap analysis call failed, using fallback: %s", e)
            return None

    @staticmethod
    def _section(data: dict | None, key: str, model: type):
        if data is None:
            return None
        try:
            return model.model_validate(data.get(key) or {})
        except ValidationError as e:
            logger.warning("Malformed %s, using fallback: %s", key, e)
            return None

    @staticmethod
    def _context(resume: ParsedResume, job: ParsedJob, scores: ATSScoreResult) -> str:
        b = scores.breakdown
        return f"""Job: {job.title} at {job.company}
Experience level: {job.experience_level or "unspecified"}
Required skills: {", ".join(s.name for s in job.required_skills)}
Preferred skills: {", ".join(s.name for s in job.skills if not s.required)}

Candidate skills: {", ".join(s.name for s in resume.skills)}
Experience: {"; ".join(f"{e.position} at {e.company}" for e in resume.experience)}
Education: {"; ".join(f"{e.degree} {e.field}".strip() for e in resume.education)}

Scores: overall {scores.overall_score}, keywords {b.keyword_match}, skills {b.skill_alignment},
experience {b.experience_relevance}, education {b.education_match}, ATS {b.ats_compliance}"""
