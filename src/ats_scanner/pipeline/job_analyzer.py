"""Job analyzer - deterministic insights about a single job posting."""

from __future__ import annotations

import logging
import re

from ats_scanner.models.enums import SkillCategory
from ats_scanner.models.job import ParsedJob, SalaryRange
from ats_scanner.models.job_analysis import (
    Competitiveness,
    CultureSignals,
    ExperienceRequirement,
    JobAnalysis,
    JobInsights,
    RequirementSplit,
    SkillSplit,
)
from ats_scanner.models.match import clamp_score
from ats_scanner.models.scan import StageResult
from ats_scanner.parsers.jd_parser import detect_experience_level, extract_salary, parse_jd, required_years
from ats_scanner.pipeline.orchestrator import Orchestrator
from ats_scanner.utils.text import unique

logger = logging.getLogger(__name__)

STAGE = "analyze_job"

MUST_HAVE_PATTERNS = [
    re.compile(r"\b(?:required|must have|essential|mandatory)\b[^.\n]*?\b(?:skills?|experience|degree|certification)\b", re.IGNORECASE),
    re.compile(r"\b\d+\+?\s*years?\s*(?:of\s*)?experience\b", re.IGNORECASE),
]
NICE_TO_HAVE_PATTERNS = [
    re.compile(r"\b(?:preferred|nice to have|bonus|plus)\b[^.\n]*?\b(?:skills?|experience|degree|certification)\b", re.IGNORECASE),
    re.compile(r"\b(?:master'?s?\s*degree|ph\.?d|mba)\b", re.IGNORECASE),
]

# First matching label wins within each signal.
CULTURE_SIGNALS: dict[str, list[tuple[str, re.Pattern]]] = {
    "work_environment": [
        ("Remote", re.compile(r"\b(?:remote|work from home|wfh|telecommute|virtual)", re.IGNORECASE)),
        ("Hybrid", re.compile(r"\b(?:hybrid|flexible|partial remote)", re.IGNORECASE)),
        ("Office", re.compile(r"\b(?:office|on-site|in-person|collaborative)", re.IGNORECASE)),
    ],
    "team_size": [
        ("Startup", re.compile(r"\b(?:startup|small team|fast-paced|agile)", re.IGNORECASE)),
        ("Medium", re.compile(r"\b(?:medium-sized|mid-size|established)", re.IGNORECASE)),
        ("Enterprise", re.compile(r"\b(?:enterprise|large|corporate|fortune)", re.IGNORECASE)),
    ],
    "growth": [
        ("High", re.compile(r"\b(?:rapid growth|fast growing|scaling|expanding)", re.IGNORECASE)),
        ("Medium", re.compile(r"\b(?:steady growth|growing|opportunities)", re.IGNORECASE)),
        ("Low", re.compile(r"\b(?:stable|established|traditional)", re.IGNORECASE)),
    ],
    "work_life_balance": [
        ("Excellent", re.compile(r"\b(?:flexible|work-life balance|4 day week|generous pto)", re.IGNORECASE)),
        ("Good", re.compile(r"\b(?:reasonable|balanced|standard)", re.IGNORECASE)),
        ("Poor", re.compile(r"\b(?:demanding|long hours|high pressure)", re.IGNORECASE)),
    ],
}

CULTURE_KEYWORDS = [
    "innovative", "collaborative", "fast-paced", "dynamic", "entrepreneurial",
    "team-oriented", "customer-focused", "results-driven", "agile",
]

DIFFERENTIATORS = [
    (re.compile(r"innovative|cutting edge|state of the art", re.IGNORECASE), "Innovative technology stack"),
    (re.compile(r"market leader|industry leader|top company", re.IGNORECASE), "Industry leadership position"),
    (re.compile(r"work life balance|work-life balance|flexible|remote options", re.IGNORECASE), "Excellent work-life balance"),
    (re.compile(r"growth opportunit|career advancement|promotion", re.IGNORECASE), "Strong career growth potential"),
]

REMOTE_RE = re.compile(r"\b(?:remote|wfh|telecommute|virtual)", re.IGNORECASE)
URGENT_RE = re.compile(r"\b(?:urgent|immediate|asap)\b", re.IGNORECASE)
STARTUP_RE = re.compile(r"startup|fast-paced|dynamic", re.IGNORECASE)
ENTERPRISE_RE = re.compile(r"enterprise|fortune", re.IGNORECASE)
HIGH_GROWTH_RE = re.compile(r"growth|opportunit|advancement|career path", re.IGNORECASE)
LEARNING_RE = re.compile(r"learn|develop|training|mentorship", re.IGNORECASE)

SENIOR_WORDS = ("senior", "lead", "principal", "staff", "director")
JUNIOR_WORDS = ("junior", "entry", "intern")


def _is_senior(level: str) -> bool:
    return any(w in level for w in SENIOR_WORDS)


def _is_mid(level: str) -> bool:
    return "mid" in level or "intermediate" in level


def split_skills(job: ParsedJob) -> SkillSplit:
    return SkillSplit(
        required=job.required_skills,
        preferred=[s for s in job.skills if not s.required],
    )


def experience_requirement(job: ParsedJob, text: str) -> ExperienceRequirement:
    level = job.experience_level or detect_experience_level(job.title, text)
    return ExperienceRequirement(
        level=level or "not specified",
        min_years=required_years(text),
        detected=level is not None,
    )


def split_requirements(text: str) -> RequirementSplit:
    def _first(patterns: list[re.Pattern]) -> list[str]:
        matches = [p.search(text) for p in patterns]
        found = [m.group(0).strip() for m in matches if m]
        return unique(found)[:8]

    return RequirementSplit(must_have=_first(MUST_HAVE_PATTERNS), nice_to_have=_first(NICE_TO_HAVE_PATTERNS))


def culture_signals(text: str) -> CultureSignals:
    signals = {
        name: next((label for label, pattern in options if pattern.search(text)), None)
        for name, options in CULTURE_SIGNALS.items()
    }
    lowered = text.lower()
    return CultureSignals(**signals, keywords=[k for k in CULTURE_KEYWORDS if k in lowered])


def competitiveness(job: ParsedJob, text: str, level: str, salary: SalaryRange | None) -> Competitiveness:
    """How contested the role is likely to be; 80+ High, 60+ Medium, else Low."""
    required = job.required_skills
    score = 50
    if len(required) > 5:
        score += 20
    if any(s.category == SkillCategory.TECHNICAL for s in required):
        score += 15
    if _is_senior(level):
        score += 15
    elif _is_mid(level):
        score += 10
    top = salary.max if salary and salary.max else None
    if top is not None and top > 120_000:
        score += 15
    if top is not None and top > 80_000:
        score += 10
    if STARTUP_RE.search(text):
        score += 10
    if ENTERPRISE_RE.search(text):
        score += 5

    score = clamp_score(score)
    tier = "High" if score >= 80 else "Medium" if score >= 60 else "Low"
    return Competitiveness(level=tier, score=score)


def career_growth(text: str) -> str:
    if HIGH_GROWTH_RE.search(text):
        return "High"
    if LEARNING_RE.search(text):
        return "Medium"
    return "Low"


def differentiators(text: str) -> list[str]:
    return [label for pattern, label in DIFFERENTIATORS if pattern.search(text)][:3]


def application_strategy(job: ParsedJob, text: str, level: str) -> str:
    if len(job.required_skills) > 6:
        strategy = "Highlight your comprehensive skill set and relevant experience"
    elif _is_senior(level):
        strategy = "Emphasize leadership experience and strategic impact"
    elif any(w in level for w in JUNIOR_WORDS):
        strategy = "Focus on potential, learning ability and relevant projects"
    else:
        strategy = "Standard application recommended"
    if URGENT_RE.search(text):
        strategy += "; apply quickly, this looks like a high-priority opening"
    return strategy


def analysis_score(job: ParsedJob, experience: ExperienceRequirement, requirements: RequirementSplit) -> int:
    """How much structure could be read from the posting."""
    score = 50
    if len(job.required_skills) > 5:
        score += 20
    if any(s.category == SkillCategory.TECHNICAL for s in job.required_skills):
        score += 15
    if experience.detected:
        score += 15
    if requirements.must_have:
        score += 10
    return clamp_score(score)


def analyze_posting(job: ParsedJob, text: str) -> JobAnalysis:
    """Everything the analyzer reports, computed without the language model."""
    experience = experience_requirement(job, text)
    level = experience.level.lower()
    salary = job.salary or extract_salary(text)
    requirements = split_requirements(text)
    return JobAnalysis(
        title=job.title,
        company=job.company,
        job=job,
        skills=split_skills(job),
        experience=experience,
        salary=salary,
        requirements=requirements,
        culture=culture_signals(text),
        insights=JobInsights(
            competitiveness=competitiveness(job, text, level, salary),
            career_growth=career_growth(text),
            remote_work=bool(REMOTE_RE.search(text)),
            differentiators=differentiators(text),
            application_strategy=application_strategy(job, text, level),
        ),
        analysis_score=analysis_score(job, experience, requirements),
    )


class JobAnalyzer:
    def __init__(self, orchestrator: Orchestrator):
        self.orchestrator = orchestrator

    async def analyze(self, job_text: str) -> StageResult[JobAnalysis]:
        parsed, _ = await self.orchestrator.parse_job(job_text)
        if not parsed.ok:
            return parsed
        analysis = analyze_posting(parsed.value, parse_jd(job_text))
        logger.info(
            "Job analysis: %s, competitiveness %s (%d)",
            analysis.title or "untitled",
            analysis.insights.competitiveness.level,
            analysis.insights.competitiveness.score,
        )
        return StageResult.success(STAGE, analysis, degraded=parsed.degraded)
