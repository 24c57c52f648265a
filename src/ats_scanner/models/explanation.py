"""Explanation agent output."""

from __future__ import annotations

from pydantic import Field, field_validator

from ats_scanner.models.base import Record
from ats_scanner.models.enums import SectionStatus, Tier, Timeframe
from ats_scanner.models.match import clamp_score


class ScoreExplanation(Record):
    what_it_means: str = ""
    is_good: bool = False
    benchmark: str = ""
    next_steps: list[str] = Field(default_factory=list)


class SectionBreakdown(Record):
    section: str
    score: int = 0
    status: SectionStatus = SectionStatus.NEEDS_IMPROVEMENT
    explanation: str = ""
    recommendations: list[str] = Field(default_factory=list)

    @field_validator("score", mode="before")
    @classmethod
    def _score(cls, v: object) -> int:
        return clamp_score(v)

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v: object) -> SectionStatus:
        return SectionStatus.normalize(v)


class KeywordAnalysis(Record):
    matched_keywords: list[str] = Field(default_factory=list)
    missing_keywords: list[str] = Field(default_factory=list)
    additional_keywords: list[str] = Field(default_factory=list)
    impact_on_score: str = ""


class SkillGapSummary(Record):
    critical_gaps: list[str] = Field(default_factory=list)
    improvement_areas: list[str] = Field(default_factory=list)
    strengths: list[str] = Field(default_factory=list)
    learning_path: str = ""


class ActionableInsight(Record):
    priority: Tier = Tier.MEDIUM
    category: Timeframe = Timeframe.SHORT_TERM
    action: str
    expected_impact: str = ""
    effort: Tier = Tier.MEDIUM

    @field_validator("priority", "effort", mode="before")
    @classmethod
    def _tier(cls, v: object) -> Tier:
        return Tier.normalize(v)

    @field_validator("category", mode="before")
    @classmethod
    def _timeframe(cls, v: object) -> Timeframe:
        return Timeframe.normalize(v)


class NextSteps(Record):
    immediate: list[str] = Field(default_factory=list)
    this_week: list[str] = Field(default_factory=list)
    this_month: list[str] = Field(default_factory=list)


class CompetitiveAnalysis(Record):
    how_you_compare: str = ""
    market_position: str = ""
    improvement_potential: str = ""


class ExplanationResult(Record):
    scan_id: str
    overall_score: int
    score_explanation: ScoreExplanation
    detailed_breakdown: list[SectionBreakdown] = Field(default_factory=list)
    keyword_analysis: KeywordAnalysis = Field(default_factory=KeywordAnalysis)
    skill_gap_summary: SkillGapSummary = Field(default_factory=SkillGapSummary)
    actionable_insights: list[ActionableInsight] = Field(default_factory=list)
    next_steps: NextSteps = Field(default_factory=NextSteps)
    competitive_analysis: CompetitiveAnalysis = Field(default_factory=CompetitiveAnalysis)
