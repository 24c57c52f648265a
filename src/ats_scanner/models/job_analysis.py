"""Standalone job posting analysis."""

from __future__ import annotations

from pydantic import Field

from ats_scanner.models.base import Record
from ats_scanner.models.job import JobSkill, ParsedJob, SalaryRange


class SkillSplit(Record):
    required: list[JobSkill] = Field(default_factory=list)
    preferred: list[JobSkill] = Field(default_factory=list)


class ExperienceRequirement(Record):
    level: str = ""
    min_years: int | None = None
    detected: bool = False


class RequirementSplit(Record):
    must_have: list[str] = Field(default_factory=list)
    nice_to_have: list[str] = Field(default_factory=list)


class CultureSignals(Record):
    work_environment: str | None = None
    team_size: str | None = None
    growth: str | None = None
    work_life_balance: str | None = None
    keywords: list[str] = Field(default_factory=list)


class Competitiveness(Record):
    level: str = "Medium"
    score: int = 50


class JobInsights(Record):
    competitiveness: Competitiveness = Field(default_factory=Competitiveness)
    career_growth: str = "Low"
    remote_work: bool = False
    differentiators: list[str] = Field(default_factory=list)
    application_strategy: str = ""


class JobAnalysis(Record):
    title: str = ""
    company: str = ""
    job: ParsedJob
    skills: SkillSplit = Field(default_factory=SkillSplit)
    experience: ExperienceRequirement = Field(default_factory=ExperienceRequirement)
    salary: SalaryRange | None = None
    requirements: RequirementSplit = Field(default_factory=RequirementSplit)
    culture: CultureSignals = Field(default_factory=CultureSignals)
    insights: JobInsights = Field(default_factory=JobInsights)
    analysis_score: int = 0
