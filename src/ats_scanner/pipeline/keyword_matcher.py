"""Keyword/Skill Matcher - exact, semantic and per-category résumé/job matching."""

from __future__ import annotations

import logging

from ats_scanner.clients.llm_client import DEFAULT_MODEL, Gateway, chat
from ats_scanner.errors import GatewayError
from ats_scanner.models.enums import SkillCategory
from ats_scanner.models.job import ParsedJob
from ats_scanner.models.match import (
    CategoryScores,
    ExactMatch,
    KeywordMatchResult,
    SemanticMatch,
    clamp_score,
)
from ats_scanner.models.resume import ParsedResume
from ats_scanner.models.scan import StageResult
from ats_scanner.parsers.skill_lexicon import TECHNICAL_SKILLS, find_known_skills
from ats_scanner.utils.text import normalize_keyword, unique

logger = logging.getLogger(__name__)

STAGE = "match_keywords"

EXACT_WEIGHT = 0.40
SEMANTIC_WEIGHT = 0.35
CATEGORY_WEIGHT = 0.25

CATEGORY_WEIGHTS: dict[SkillCategory, float] = {
    SkillCategory.TECHNICAL: 0.4,
    SkillCategory.SOFT: 0.3,
    SkillCategory.LANGUAGE: 0.2,
    SkillCategory.TOOL: 0.1,
}

_TEXT_TERMS = {normalize_keyword(t) for t in TECHNICAL_SKILLS} | {"api"}

SEMANTIC_PROMPT = """\
You are an expert in semantic matching between resumes and job requirements.
Compare the resume with the job requirements and identify terms that mean the same
or closely related things without being spelled identically.

Respond with JSON only:
{
  "semanticMatches": [
    {"resumeTerm": "term from resume", "jobTerm": "term from job requirements",
     "similarity": 0-100, "category": "technical|soft|language|tool"}
  ]
}"""

def extract_text_keywords(text: str) -> list[str]:
    """Lexicon terms plus longer words from free text, normalized."""
    words = [w for w in normalize_keyword(text).split() if len(w) > 2]
    terms = [normalize_keyword(t) for t in find_known_skills(text)]
    terms += [w for w in words if w in _TEXT_TERMS or len(w) > 4]
    return unique(terms)


def resume_keywords(resume: ParsedResume) -> list[str]:
    """Normalized, de-duplicated terms the résumé can be matched on."""
    keywords = [normalize_keyword(s.name) for s in resume.skills]
    for exp in resume.experience:
        keywords += extract_text_keywords(" ".join([exp.description, *exp.achievements]))
    for project in resume.projects:
        keywords += extract_text_keywords(project.description)
        keywords += [normalize_keyword(t) for t in project.technologies]
    if resume.summary:
        keywords += extract_text_keywords(resume.summary)
    return unique([k for k in keywords if k])


def job_keywords(job: ParsedJob) -> list[str]:
    """The job's screening keywords, or every skill name when none were derived."""
    return unique(job.keywords or [s.name for s in job.skills])


def exact_matches(resume_terms: list[str], job_terms: list[str]) -> list[ExactMatch]:
    have = {normalize_keyword(t) for t in resume_terms}
    return [
        ExactMatch(keyword=term, found=normalize_keyword(term) in have, confidence=100)
        for term in job_terms
    ]


def category_scores(resume: ParsedResume, job: ParsedJob) -> CategoryScores:
    """Share of required job skills per category found among résumé skills of that category.

    A category with no required job skills scores 100; one with required
    skills but no résumé skills scores 0.
    """
    scores: dict[str, int] = {}
    for category in SkillCategory:
        wanted = [s.name for s in job.required_skills if s.category == category]
        have = {normalize_keyword(s.name) for s in resume.skills if s.category == category}
        if not wanted:
            scores[category.value] = 100
        elif not have:
            scores[category.value] = 0
        else:
            hits = sum(1 for name in wanted if normalize_keyword(name) in have)
            scores[category.value] = clamp_score(hits / len(wanted) * 100)
    return CategoryScores(**scores)


def combine_match_score(
    exact: list[ExactMatch],
    semantic: list[SemanticMatch],
    categories: CategoryScores,
) -> int:
    """40% exact ratio + 35% mean semantic similarity + 25% weighted category score."""
    exact_ratio = sum(1 for m in exact if m.found) / len(exact) if exact else 1.0
    semantic_mean = sum(m.similarity for m in semantic) / len(semantic) if semantic else 0.0
    category = sum(getattr(categories, c.value) * w for c, w in CATEGORY_WEIGHTS.items())
    return clamp_score(
        exact_ratio * 100 * EXACT_WEIGHT + semantic_mean * SEMANTIC_WEIGHT + category * CATEGORY_WEIGHT
    )


def _resume_digest(resume: ParsedResume) -> str:
    sections = []
    if resume.skills:
        sections.append("Skills: " + ", ".join(s.name for s in resume.skills))
    if resume.experience:
        sections.append(
            "Experience: "
            + " | ".join(f"{e.position} at {e.company}: {e.description}" for e in resume.experience)
        )
    if resume.projects:
        sections.append(
            "Projects: "
            + " | ".join(
                f"{p.name}: {p.description} ({', '.join(p.technologies)})" for p in resume.projects
            )
        )
    if resume.summary:
        sections.append("Summary: " + resume.summary)
    return "\n\n".join(sections)


class KeywordMatcher:
    def __init__(self, llm: Gateway, model: str = DEFAULT_MODEL, temperature: float = 0.2):
        self.llm = llm
        self.model = model
        self.temperature = temperature

    async def match(self, resume: ParsedResume, job: ParsedJob) -> StageResult[KeywordMatchResult]:
        """Match keywords; a failed semantic call degrades to no semantic matches."""
        logger.info("Matching keywords")
        resume_terms = resume_keywords(resume)
        job_terms = job_keywords(job)

        exact = exact_matches(resume_terms, job_terms)
        semantic, degraded = await self.semantic_matches(resume, job)
        categories = category_scores(resume, job)

        job_normalized = {normalize_keyword(t) for t in job_terms}
        result = KeywordMatchResult(
            exact_matches=exact,
            semantic_matches=semantic,
            missing_keywords=[m.keyword for m in exact if not m.found],
            additional_keywords=[t for t in resume_terms if t not in job_normalized],
            category_scores=categories,
            match_score=combine_match_score(exact, semantic, categories),
        )
        logger.info(
            "Keyword match: %d/%d exact, %d semantic, score %d",
            len(result.matched_keywords), len(exact), len(semantic), result.match_score,
        )
        return StageResult.success(STAGE, result, degraded=degraded)

    async def semantic_matches(
        self, resume: ParsedResume, job: ParsedJob
    ) -> tuple[list[SemanticMatch], bool]:
        """Return (matches, degraded). Malformed entries are skipped."""
        requirements = " ".join(job.requirements) or ", ".join(s.name for s in job.skills)
        digest = _resume_digest(resume)
        if not requirements or not digest:
            return [], False

        try:
            data = await self.llm.generate_json(
                chat(SEMANTIC_PROMPT, f"Resume:\n{digest}\n\nJob Requirements:\n{requirements}"),
                model=self.model,
                temperature=self.temperature,
                max_tokens=2000,
            )
        except GatewayError as e:
            logger.warning("Semantic matching failed, continuing without it: %s", e)
            return [], True

        raw = data.get("semanticMatches", [])
        if not isinstance(raw, list):
            logger.warning("Semantic matching returned %s, expected a list", type(raw).__name__)
            return [], True
        return SemanticMatch.validate_list(raw), False

