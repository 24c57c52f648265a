"""Canonical parsed job posting record."""

from __future__ import annotations

from pydantic import Field, field_validator

from ats_scanner.models.base import Record, leading_number, named_items, text_list
from ats_scanner.models.enums import JobSkillLevel, SkillCategory
from ats_scanner.models.resume import ParseMetadata


class JobSkill(Record):
    name: str
    required: bool = False
    level: JobSkillLevel = JobSkillLevel.INTERMEDIATE
    category: SkillCategory = SkillCategory.TECHNICAL

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, v: object) -> SkillCategory:
        return SkillCategory.normalize(v)

    @field_validator("level", mode="before")
    @classmethod
    def _level(cls, v: object) -> JobSkillLevel:
        return JobSkillLevel.normalize(v)


class SalaryRange(Record):
    min: float | None = None
    max: float | None = None
    currency: str = "USD"

    @field_validator("min", "max", mode="before")
    @classmethod
    def _amount(cls, v: object) -> float | None:
        amount = leading_number(v)
        if amount is not None and isinstance(v, str) and v.strip().lower().rstrip("+").endswith("k"):
            amount *= 1000
        return amount


class ParsedJob(Record):
    title: str = ""
    company: str = ""
    location: str | None = None
    employment_type: str | None = None
    experience_level: str | None = None
    salary: SalaryRange | None = None
    description: str = ""
    requirements: list[str] = Field(default_factory=list)
    responsibilities: list[str] = Field(default_factory=list)
    benefits: list[str] = Field(default_factory=list)
    skills: list[JobSkill] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    industry: str | None = None
    department: str | None = None
    metadata: ParseMetadata | None = None

    @field_validator("requirements", "responsibilities", "benefits", "keywords", mode="before")
    @classmethod
    def _drop_blank(cls, v: object) -> list[str]:
        return text_list(v)

    @field_validator("skills", mode="before")
    @classmethod
    def _valid_skills(cls, v: object) -> list[JobSkill]:
        return [s for s in JobSkill.validate_list(named_items(v)) if s.name.strip()]

    @field_validator("salary", mode="before")
    @classmethod
    def _salary(cls, v: object) -> SalaryRange | None:
        return SalaryRange.validate_or(v, None)

    @property
    def required_skills(self) -> list[JobSkill]:
        return [s for s in self.skills if s.required]
