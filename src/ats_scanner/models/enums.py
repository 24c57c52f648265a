"""Closed vocabularies used across parsed records and analysis results."""

from __future__ import annotations

import re
from enum import Enum


class _Normalized(str, Enum):
    """String enum with an explicit unknown-to-default normalization step."""

    @classmethod
    def default(cls) -> "_Normalized":
        raise NotImplementedError

    @classmethod
    def normalize(cls, value: object) -> "_Normalized":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = re.sub(r"[\s_]+", "-", value.strip().lower())
            for member in cls:
                if member.value == key:
                    return member
            alias = cls._aliases().get(key)
            if alias is not None:
                return cls(alias)
        return cls.default()

    @classmethod
    def _aliases(cls) -> dict[str, str]:
        return {}


class SkillCategory(_Normalized):
    TECHNICAL = "technical"
    SOFT = "soft"
    LANGUAGE = "language"
    TOOL = "tool"

    @classmethod
    def default(cls) -> "SkillCategory":
        return cls.TECHNICAL

    @classmethod
    def _aliases(cls) -> dict[str, str]:
        return {"tools": "tool", "soft-skill": "soft", "soft-skills": "soft", "languages": "language"}


class SkillLevel(_Normalized):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"

    @classmethod
    def default(cls) -> "SkillLevel":
        return cls.INTERMEDIATE

    @classmethod
    def _aliases(cls) -> dict[str, str]:
        return {"basic": "beginner", "novice": "beginner", "proficient": "advanced"}


class JobSkillLevel(_Normalized):
    JUNIOR = "junior"
    INTERMEDIATE = "intermediate"
    SENIOR = "senior"
    EXPERT = "expert"

    @classmethod
    def default(cls) -> "JobSkillLevel":
        return cls.INTERMEDIATE


class LanguageProficiency(_Normalized):
    BASIC = "basic"
    CONVERSATIONAL = "conversational"
    PROFESSIONAL = "professional"
    NATIVE = "native"

    @classmethod
    def default(cls) -> "LanguageProficiency":
        return cls.CONVERSATIONAL

    @classmethod
    def _aliases(cls) -> dict[str, str]:
        return {
            "fluent": "professional",
            "bilingual": "native",
            "elementary": "basic",
            "beginner": "basic",
        }


class Importance(_Normalized):
    CRITICAL = "critical"
    IMPORTANT = "important"
    NICE_TO_HAVE = "nice-to-have"

    @classmethod
    def default(cls) -> "Importance":
        return cls.IMPORTANT


class Tier(_Normalized):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def default(cls) -> "Tier":
        return cls.MEDIUM


class Timeframe(_Normalized):
    IMMEDIATE = "immediate"
    SHORT_TERM = "short-term"
    LONG_TERM = "long-term"

    @classmethod
    def default(cls) -> "Timeframe":
        return cls.SHORT_TERM


class SectionStatus(_Normalized):
    EXCELLENT = "excellent"
    GOOD = "good"
    NEEDS_IMPROVEMENT = "needs-improvement"
    CRITICAL = "critical"

    @classmethod
    def default(cls) -> "SectionStatus":
        return cls.NEEDS_IMPROVEMENT

    @classmethod
    def from_score(cls, score: int) -> "SectionStatus":
        if score >= 80:
            return cls.EXCELLENT
        if score >= 60:
            return cls.GOOD
        if score >= 40:
            return cls.NEEDS_IMPROVEMENT
        return cls.CRITICAL


class ResumeSection(str, Enum):
    SUMMARY = "summary"
    EXPERIENCE = "experience"
    SKILLS = "skills"
    EDUCATION = "education"
    PROJECTS = "projects"


class ParsingMethod(str, Enum):
    AI_ENHANCED = "ai-enhanced"
    REGEX_BASIC = "regex-basic"
