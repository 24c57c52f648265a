"""Scorer - weighted ATS compatibility score from five deterministic sub-scores.

Only the narrative insights use the language model; the numbers never do.

Weights: keyword 0.30, skill 0.25, experience 0.20, education 0.15,
ATS compliance 0.10. Every sub-score and the overall score is an integer
in [0, 100].
"""

from __future__ import annotations

import logging
import re
from datetime import date

from pydantic import ValidationError

from ats_scanner.clients.llm_client import DEFAULT_MODEL, Gateway, chat
from ats_scanner.errors import GatewayError
from ats_scanner.models.job import ParsedJob
from ats_scanner.models.match import KeywordMatchResult, clamp_score
from ats_scanner.models.resume import Experience, ParsedResume
from ats_scanner.models.scan import StageResult
from ats_scanner.models.score import ATSScoreResult, ScoreBreakdown, ScoreInsights
from ats_scanner.pipeline.keyword_matcher import job_keywords, resume_keywords
from ats_scanner.utils.dates import total_experience_years
from ats_scanner.utils.text import contains_term, normalize_keyword

logger = logging.getLogger(__name__)

STAGE = "score"

WEIGHTS: dict[str, float] = {
    "keyword_match": 0.30,
    "skill_alignment": 0.25,
    "experience_relevance": 0.20,
    "education_match": 0.15,
    "ats_compliance": 0.10,
}

BACHELOR_RE = re.compile(r"\bbachelor|(?<![a-z])(?:b\.?s\.?c?|b\.?a\.?)(?![a-z])", re.IGNORECASE)
MASTER_RE = re.compile(r"\bmaster|(?<![a-z])(?:m\.?s\.?c?|m\.a\.|mba)(?![a-z])", re.IGNORECASE)
DOCTORATE_RE = re.compile(r"\bph\.?\s?d|\bdoctor", re.IGNORECASE)
DEGREE_WORD_RE = re.compile(r"\bdegree\b", re.IGNORECASE)

FIELDS_BY_CATEGORY: dict[str, list[str]] = {
    "tech": ["computer science", "software engineering", "information technology",
             "computer engineering", "electrical engineering", "data science", "mathematics"],
    "business": ["business administration", "business", "management", "finance",
                 "marketing", "economics"],
    "design": ["design", "graphic design", "ui", "ux", "human computer interaction"],
}

TITLE_CATEGORIES: list[tuple[str, tuple[str, ...]]] = [
    ("tech", ("developer", "engineer", "programmer")),
    ("business", ("manager", "business", "analyst")),
    ("design", ("designer", "ui", "ux")),
]

LOW_SCORE_ADVICE: dict[str, str] = {
    "keyword_match": "Mirror the job description's required skills in your summary and experience",
    "skill_alignment": "Add the job's listed skills you genuinely have to your skills section",
    "experience_relevance": "Emphasize experience that matches the role's seniority and domain",
    "education_match": "List your degree, field of study and relevant coursework or certifications",
    "ats_compliance": "Include email, phone and standard section headings for skills, experience and education",
}

INSIGHTS_PROMPT = """\
You are an expert ATS analyst. Based on the resume-job match scores, provide insights.
Be specific and actionable.

Respond with JSON only:
{
  "strengths": ["strength 1", "strength 2"],
  "weaknesses": ["weakness 1", "weakness 2"],
  "recommendations": ["recommendation 1", "recommendation 2"]
}"""


def _overlaps(a: str, b: str) -> bool:
    return contains_term(a, b) or contains_term(b, a)


def keyword_match_score(resume: ParsedResume, job: ParsedJob) -> int:
    """Share of required job skills found verbatim (after normalization) in the résumé."""
    required = job.required_skills
    if not required:
        return 100
    have = set(resume_keywords(resume))
    hits = sum(1 for s in required if normalize_keyword(s.name) in have)
    return clamp_score(hits / len(required) * 100)


def skill_alignment_score(resume: ParsedResume, job: ParsedJob) -> int:
    """Share of all job skills covered by a résumé skill; 100 when nothing is required."""
    if not job.required_skills:
        return 100
    names = [s.name for s in resume.skills]
    hits = sum(1 for js in job.skills if any(_overlaps(js.name, rs) for rs in names))
    return clamp_score(hits / len(job.skills) * 100)


def is_relevant_experience(exp: Experience, keywords: list[str]) -> bool:
    text = f"{exp.position} {exp.description}"
    return any(
        contains_term(text, kw) or (exp.position and contains_term(kw, exp.position))
        for kw in keywords
    )


def experience_score(resume: ParsedResume, job: ParsedJob, today: date | None = None) -> int:
    level = (job.experience_level or "").lower()
    years = total_experience_years(resume.experience, today)

    if any(word in level for word in ("entry", "junior", "intern")):
        score = 80
    elif "mid" in level or "intermediate" in level:
        score = 90 if 2 <= years <= 6 else 70 if years >= 1 else 30
    elif "senior" in level or "lead" in level:
        score = 90 if years >= 5 else 70 if years >= 3 else 30
    elif "principal" in level or "staff" in level:
        score = 90 if years >= 8 else 70 if years >= 5 else 30
    else:
        score = 50

    keywords = job_keywords(job)
    if any(is_relevant_experience(exp, keywords) for exp in resume.experience):
        score += 10
    return clamp_score(score)


def _title_category(title: str) -> str | None:
    for category, words in TITLE_CATEGORIES:
        if any(contains_term(title, w) for w in words):
            return category
    return None


def education_score(resume: ParsedResume, job: ParsedJob) -> int:
    requested = " ".join([*job.requirements, job.description])
    degrees = [e.degree for e in resume.education]
    score = 50

    if BACHELOR_RE.search(requested) or DEGREE_WORD_RE.search(requested):
        if any(BACHELOR_RE.search(d) for d in degrees):
            score += 30
    if MASTER_RE.search(requested) and any(MASTER_RE.search(d) for d in degrees):
        score += 20
    if DOCTORATE_RE.search(requested) and any(DOCTORATE_RE.search(d) for d in degrees):
        score += 25

    category = _title_category(job.title)
    if category is not None:
        fields = FIELDS_BY_CATEGORY[category]
        if any(contains_term(e.field, f) for e in resume.education for f in fields):
            score += 20
    return clamp_score(score)


def ats_compliance_score(resume: ParsedResume) -> int:
    score = 100
    if not resume.personal_info.email:
        score -= 20
    if not resume.personal_info.phone:
        score -= 10
    if not resume.skills:
        score -= 25
    if not resume.experience:
        score -= 30
    if not resume.education:
        score -= 15
    # A thin skills section; an empty one is already penalized above.
    if 0 < len(resume.skills) < 5:
        score -= 10
    if any(not exp.description for exp in resume.experience):
        score -= 15
    return clamp_score(score)


def format_score(resume: ParsedResume) -> int:
    """Presentation quality; informational, not part of the overall score."""
    score = 100
    if not resume.summary:
        score -= 10
    if len(resume.experience) < 2:
        score -= 15
    if len(resume.skills) < 10:
        score -= 20
    if not resume.certifications:
        score -= 5
    if not any(exp.achievements for exp in resume.experience):
        score -= 15
    return clamp_score(score)


def weighted_overall(breakdown: ScoreBreakdown) -> int:
    return clamp_score(sum(getattr(breakdown, name) * weight for name, weight in WEIGHTS.items()))


def fallback_insights(breakdown: ScoreBreakdown, overall: int) -> ScoreInsights:
    """Canned, threshold-based insights for when the language model is unavailable."""
    recommendations = ["Add more relevant keywords", "Quantify achievements"]
    recommendations += [
        advice for name, advice in LOW_SCORE_ADVICE.items() if getattr(breakdown, name) < 50
    ]
    return ScoreInsights(
        strengths=["Good overall match"] if overall >= 70 else [],
        weaknesses=["Needs improvement"] if overall < 50 else [],
        recommendations=recommendations,
    )


class Scorer:
    def __init__(
        self,
        llm: Gateway,
        model: str = DEFAULT_MODEL,
        temperature: float = 0.3,
        today: date | None = None,
    ):
        self.llm = llm
        self.model = model
        self.temperature = temperature
        self.today = today

    def breakdown(self, resume: ParsedResume, job: ParsedJob) -> ScoreBreakdown:
        return ScoreBreakdown(
            keyword_match=keyword_match_score(resume, job),
            skill_alignment=skill_alignment_score(resume, job),
            experience_relevance=experience_score(resume, job, self.today),
            education_match=education_score(resume, job),
            ats_compliance=ats_compliance_score(resume),
        )

    async def score(
        self,
        resume: ParsedResume,
        job: ParsedJob,
        matches: KeywordMatchResult | None = None,
    ) -> StageResult[ATSScoreResult]:
        breakdown = self.breakdown(resume, job)
        overall = weighted_overall(breakdown)
        logger.info("Overall score %d (%s)", overall, breakdown.model_dump())

        insights, degraded = await self.insights(resume, job, breakdown, overall, matches)
        result = ATSScoreResult(
            overall_score=overall,
            breakdown=breakdown,
            format_score=format_score(resume),
            strengths=insights.strengths,
            weaknesses=insights.weaknesses,
            recommendations=insights.recommendations,
        )
        return StageResult.success(STAGE, result, degraded=degraded)

    async def insights(
        self,
        resume: ParsedResume,
        job: ParsedJob,
        breakdown: ScoreBreakdown,
        overall: int,
        matches: KeywordMatchResult | None = None,
    ) -> tuple[ScoreInsights, bool]:
        missing = ", ".join(matches.missing_keywords[:15]) if matches else ""
        prompt = f"""Resume-Job Analysis:
Overall Score: {overall}/100
Keyword Match: {breakdown.keyword_match}/100
Skill Alignment: {breakdown.skill_alignment}/100
Experience Relevance: {breakdown.experience_relevance}/100
Education Match: {breakdown.education_match}/100
ATS Compliance: {breakdown.ats_compliance}/100

Job Title: {job.title}
Required Skills: {", ".join(s.name for s in job.required_skills)}
Missing Keywords: {missing}

Resume Skills: {", ".join(s.name for s in resume.skills)}
Experience: {len(resume.experience)} positions
Education: {", ".join(f"{e.degree} in {e.field}" for e in resume.education)}"""

        try:
            data = await self.llm.generate_json(
                chat(INSIGHTS_PROMPT, prompt),
                model=self.model,
                temperature=self.temperature,
                max_tokens=1000,
            )
            return ScoreInsights.model_validate(data), False
        except (GatewayError, ValidationError) as e:
            logger.warning("Score insights failed, using canned insights: %s", e)
            return fallback_insights(breakdown, overall), True
