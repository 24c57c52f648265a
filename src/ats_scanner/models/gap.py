"""Gap analyzer output."""

from __future__ import annotations

from pydantic import Field, field_validator

from ats_scanner.models.base import Record
from ats_scanner.models.enums import Importance, SkillCategory, Tier
from ats_scanner.models.match import clamp_score


class LearningResource(Record):
    type: str = "course"
    title: str = ""
    provider: str = ""
    url: str | None = None
    estimated_time: str = ""


class MissingSkill(Record):
    skill: str
    importance: Importance = Importance.IMPORTANT
    category: SkillCategory = SkillCategory.TECHNICAL
    reason: str = ""
    learning_resources: list[LearningResource] = Field(default_factory=list)

    @field_validator("importance", mode="before")
    @classmethod
    def _importance(cls, v: object) -> Importance:
        return Importance.normalize(v)

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, v: object) -> SkillCategory:
        return SkillCategory.normalize(v)


class SkillStrength(Record):
    skill: str
    level: str = ""
    relevance: int = 0
    evidence: str = ""

    @field_validator("relevance", mode="before")
    @classmethod
    def _relevance(cls, v: object) -> int:
        return clamp_score(v)


class ImprovementArea(Record):
    area: str
    current_level: str = ""
    target_level: str = ""
    gap: str = ""
    action_items: list[str] = Field(default_factory=list)


class CareerAdvice(Record):
    short_term: list[str] = Field(default_factory=list)
    medium_term: list[str] = Field(default_factory=list)
    long_term: list[str] = Field(default_factory=list)


class MarketAlignment(Record):
    demand_level: Tier = Tier.MEDIUM
    salary_impact: Tier = Tier.MEDIUM
    growth_potential: Tier = Tier.MEDIUM

    @field_validator("*", mode="before")
    @classmethod
    def _tier(cls, v: object) -> Tier:
        return Tier.normalize(v)


class SkillGapResult(Record):
    missing_skills: list[MissingSkill] = Field(default_factory=list)
    skill_strengths: list[SkillStrength] = Field(default_factory=list)
    improvement_areas: list[ImprovementArea] = Field(default_factory=list)
    career_advice: CareerAdvice = Field(default_factory=CareerAdvice)
    market_alignment: MarketAlignment = Field(default_factory=MarketAlignment)

    @property
    def critical_skills(self) -> list[str]:
        return [s.skill for s in self.missing_skills if s.importance == Importance.CRITICAL]
