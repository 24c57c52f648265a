"""Canonical parsed résumé record."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field, ValidationInfo, field_validator

from ats_scanner.models.base import Record, leading_number, named_items, text_list
from ats_scanner.models.enums import (
    LanguageProficiency,
    ParsingMethod,
    SkillCategory,
    SkillLevel,
)


class ParseMetadata(Record):
    parsed_at: datetime = Field(default_factory=datetime.now)
    word_count: int = 0
    parsing_method: ParsingMethod = ParsingMethod.REGEX_BASIC
    file_name: str | None = None


class PersonalInfo(Record):
    name: str = ""
    email: str = ""
    phone: str = ""
    location: str = ""
    linkedin: str = ""
    github: str = ""
    portfolio: str = ""


class Experience(Record):
    company: str = ""
    position: str = ""
    start_date: str = ""
    end_date: str | None = None
    current: bool = False
    description: str = ""
    achievements: list[str] = Field(default_factory=list)

    @field_validator("achievements", mode="before")
    @classmethod
    def _achievements(cls, v: object) -> list[str]:
        return text_list(v)


class Education(Record):
    institution: str = ""
    degree: str = ""
    field: str = ""
    start_date: str = ""
    end_date: str | None = None
    current: bool = False
    gpa: str | None = None


class Skill(Record):
    name: str
    category: SkillCategory = SkillCategory.TECHNICAL
    level: SkillLevel = SkillLevel.INTERMEDIATE
    years_of_experience: float | None = None

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, v: object) -> SkillCategory:
        return SkillCategory.normalize(v)

    @field_validator("level", mode="before")
    @classmethod
    def _level(cls, v: object) -> SkillLevel:
        return SkillLevel.normalize(v)

    @field_validator("years_of_experience", mode="before")
    @classmethod
    def _years(cls, v: object) -> float | None:
        return leading_number(v)


class Certification(Record):
    name: str = ""
    issuer: str = ""
    date: str = ""
    expiry_date: str | None = None
    credential_id: str | None = None


class Language(Record):
    name: str = ""
    proficiency: LanguageProficiency = LanguageProficiency.CONVERSATIONAL

    @field_validator("proficiency", mode="before")
    @classmethod
    def _proficiency(cls, v: object) -> LanguageProficiency:
        return LanguageProficiency.normalize(v)


class Project(Record):
    name: str = ""
    description: str = ""
    technologies: list[str] = Field(default_factory=list)
    url: str | None = None
    github: str | None = None
    start_date: str = ""
    end_date: str | None = None

    @field_validator("technologies", mode="before")
    @classmethod
    def _technologies(cls, v: object) -> list[str]:
        # "Python, Django" as well as ["Python", "Django"]
        if isinstance(v, str):
            v = v.replace(",", "\n")
        return text_list(v)


ENTRY_TYPES: dict[str, type[Record]] = {
    "experience": Experience,
    "education": Education,
    "certifications": Certification,
    "languages": Language,
    "projects": Project,
}


class ParsedResume(Record):
    personal_info: PersonalInfo = Field(default_factory=PersonalInfo)
    summary: str = ""
    experience: list[Experience] = Field(default_factory=list)
    education: list[Education] = Field(default_factory=list)
    skills: list[Skill] = Field(default_factory=list)
    certifications: list[Certification] = Field(default_factory=list)
    languages: list[Language] = Field(default_factory=list)
    projects: list[Project] = Field(default_factory=list)
    metadata: ParseMetadata | None = None

    # One malformed entry drops that entry, not the whole parse.
    @field_validator("personal_info", mode="before")
    @classmethod
    def _personal_info(cls, v: object) -> PersonalInfo:
        return PersonalInfo.validate_or(v, PersonalInfo())

    @field_validator("experience", "education", "certifications", "languages", "projects", mode="before")
    @classmethod
    def _valid_entries(cls, v: object, info: ValidationInfo) -> list:
        return ENTRY_TYPES[info.field_name].validate_list(v)

    @field_validator("skills", mode="before")
    @classmethod
    def _valid_skills(cls, v: object) -> list[Skill]:
        return [s for s in Skill.validate_list(named_items(v)) if s.name.strip()]
