"""Resume optimizer output."""

from __future__ import annotations

from enum import Enum

from pydantic import Field

from ats_scanner.models.base import Record
from ats_scanner.models.rewrite import RewriteSuggestion


class OptimizationType(str, Enum):
    FULL = "full"
    KEYWORDS = "keywords"
    SUMMARY = "summary"
    EXPERIENCE = "experience"
    SKILLS = "skills"


class OptimizationResult(Record):
    optimization_type: OptimizationType
    original_text: str
    optimized_text: str
    original_score: int
    optimized_score: int
    improvement: int = 0
    score_changes: dict[str, int] = Field(default_factory=dict)
    applied_suggestions: list[RewriteSuggestion] = Field(default_factory=list)
