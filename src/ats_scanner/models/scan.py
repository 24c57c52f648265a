"""Per-stage results and the aggregate scan record."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import Field

from ats_scanner.models.base import Record
from ats_scanner.models.explanation import ExplanationResult
from ats_scanner.models.gap import SkillGapResult
from ats_scanner.models.job import ParsedJob
from ats_scanner.models.match import KeywordMatchResult
from ats_scanner.models.resume import ParsedResume
from ats_scanner.models.rewrite import RewriteResult
from ats_scanner.models.score import ATSScoreResult

T = TypeVar("T")


class FailureKind(str, Enum):
    VALIDATION = "validation"
    GATEWAY = "gateway"
    STAGE = "stage"


@dataclass(frozen=True)
class StageResult(Generic[T]):
    """Outcome of one pipeline stage.

    ``value`` is set whenever the stage produced something usable;
    ``degraded`` marks a value built from static fallbacks. ``failure``
    is set only when no usable value exists.
    """

    stage: str
    value: T | None = None
    degraded: bool = False
    failure: FailureKind | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, stage: str, value: T, *, degraded: bool = False) -> "StageResult[T]":
        return cls(stage=stage, value=value, degraded=degraded)

    @classmethod
    def fail(cls, stage: str, kind: FailureKind, error: str) -> "StageResult[T]":
        return cls(stage=stage, failure=kind, error=error)


class ScanResult(Record):
    scan_id: str
    timestamp: datetime = Field(default_factory=datetime.now)
    resume: ParsedResume
    job: ParsedJob
    keyword_matches: KeywordMatchResult
    scores: ATSScoreResult
    skill_gaps: SkillGapResult
    rewrite_suggestions: RewriteResult
    explanation: ExplanationResult
    degraded_stages: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
