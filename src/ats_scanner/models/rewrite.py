"""Rewrite agent output."""

from __future__ import annotations

from pydantic import Field, field_validator, model_validator

from ats_scanner.models.base import Record
from ats_scanner.models.enums import ResumeSection
from ats_scanner.models.match import clamp_score


class ScoreDelta(Record):
    before: int = 0
    after: int = 0
    improvement: int = 0

    @field_validator("*", mode="before")
    @classmethod
    def _clamp(cls, v: object) -> int:
        return clamp_score(v)

    @model_validator(mode="before")
    @classmethod
    def _derive_improvement(cls, data: object) -> object:
        # When both ends are known the delta is after - before, floored at zero.
        if isinstance(data, dict) and data.get("before") is not None and data.get("after") is not None:
            delta = clamp_score(data["after"]) - clamp_score(data["before"])
            return {**data, "improvement": max(0, delta)}
        return data


class RewriteSuggestion(Record):
    section: ResumeSection
    original_text: str = ""
    rewritten_text: str = ""
    reason: str = ""
    ats_score: ScoreDelta = Field(default_factory=ScoreDelta)
    keywords_added: list[str] = Field(default_factory=list)
    action_verbs_added: list[str] = Field(default_factory=list)
    metrics_added: list[str] = Field(default_factory=list)

    @field_validator("section", mode="before")
    @classmethod
    def _section(cls, v: object) -> object:
        return v.strip().lower() if isinstance(v, str) else v

    @property
    def improvement(self) -> int:
        return self.ats_score.improvement


class SectionAnalysis(Record):
    score: int = 0
    suggestions: int = 0


class OverallImprovement(Record):
    ats_score: int = 0
    readability_score: int = 0
    impact_score: int = 0


class RewriteResult(Record):
    suggestions: list[RewriteSuggestion] = Field(default_factory=list)
    overall_improvement: OverallImprovement = Field(default_factory=OverallImprovement)
    priority_rewrites: list[RewriteSuggestion] = Field(default_factory=list)
    quick_wins: list[RewriteSuggestion] = Field(default_factory=list)
    section_analysis: dict[ResumeSection, SectionAnalysis] = Field(default_factory=dict)
