"""Keyword matcher output."""

from __future__ import annotations

import math

from pydantic import Field, field_validator

from ats_scanner.models.base import Record
from ats_scanner.models.enums import SkillCategory


def clamp_score(value: object) -> int:
    """Round to the nearest integer and clamp into [0, 100]."""
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0
    if math.isnan(number):
        return 0
    if math.isinf(number):
        return 100 if number > 0 else 0
    return max(0, min(100, int(round(number))))


class ExactMatch(Record):
    keyword: str
    found: bool
    confidence: int = 100


class SemanticMatch(Record):
    resume_term: str
    job_term: str
    similarity: int = 0
    category: SkillCategory = SkillCategory.TECHNICAL

    @field_validator("similarity", mode="before")
    @classmethod
    def _similarity(cls, v: object) -> int:
        return clamp_score(v)

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, v: object) -> SkillCategory:
        return SkillCategory.normalize(v)


class CategoryScores(Record):
    technical: int = 100
    soft: int = 100
    language: int = 100
    tool: int = 100


class KeywordMatchResult(Record):
    exact_matches: list[ExactMatch] = Field(default_factory=list)
    semantic_matches: list[SemanticMatch] = Field(default_factory=list)
    missing_keywords: list[str] = Field(default_factory=list)
    additional_keywords: list[str] = Field(default_factory=list)
    category_scores: CategoryScores = Field(default_factory=CategoryScores)
    match_score: int = 0

    @property
    def matched_keywords(self) -> list[str]:
        return [m.keyword for m in self.exact_matches if m.found]
