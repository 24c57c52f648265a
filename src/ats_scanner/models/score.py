"""Scorer output."""

from __future__ import annotations

from pydantic import Field, field_validator

from ats_scanner.models.base import Record
from ats_scanner.models.match import clamp_score


class ScoreBreakdown(Record):
    keyword_match: int = 0
    skill_alignment: int = 0
    experience_relevance: int = 0
    education_match: int = 0
    ats_compliance: int = 0

    @field_validator("*", mode="before")
    @classmethod
    def _clamp(cls, v: object) -> int:
        return clamp_score(v)


class ScoreInsights(Record):
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)


class ATSScoreResult(Record):
    overall_score: int
    breakdown: ScoreBreakdown
    format_score: int = 0
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)

    @property
    def keyword_score(self) -> int:
        return self.breakdown.keyword_match

    @property
    def skill_score(self) -> int:
        return self.breakdown.skill_alignment

    @property
    def experience_score(self) -> int:
        return self.breakdown.experience_relevance

    @property
    def education_score(self) -> int:
        return self.breakdown.education_match

    @property
    def ats_score(self) -> int:
        return self.breakdown.ats_compliance
