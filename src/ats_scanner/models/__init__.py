"""Data models for the ATS scanning pipeline."""

from ats_scanner.models.cover_letter import CoverLetter, CoverLetterTemplate
from ats_scanner.models.enums import (
    Importance,
    JobSkillLevel,
    LanguageProficiency,
    ParsingMethod,
    ResumeSection,
    SectionStatus,
    SkillCategory,
    SkillLevel,
    Tier,
    Timeframe,
)
from ats_scanner.models.explanation import ExplanationResult
from ats_scanner.models.gap import SkillGapResult
from ats_scanner.models.job import JobSkill, ParsedJob, SalaryRange
from ats_scanner.models.match import KeywordMatchResult, SemanticMatch
from ats_scanner.models.resume import (
    Education,
    Experience,
    ParsedResume,
    ParseMetadata,
    PersonalInfo,
    Project,
    Skill,
)
from ats_scanner.models.rewrite import RewriteResult, RewriteSuggestion
from ats_scanner.models.scan import FailureKind, ScanResult, StageResult
from ats_scanner.models.score import ATSScoreResult, ScoreBreakdown

__all__ = [
    "ATSScoreResult",
    "CoverLetter",
    "CoverLetterTemplate",
    "Education",
    "Experience",
    "ExplanationResult",
    "FailureKind",
    "Importance",
    "JobSkill",
    "JobSkillLevel",
    "KeywordMatchResult",
    "LanguageProficiency",
    "ParsedJob",
    "ParsedResume",
    "ParseMetadata",
    "ParsingMethod",
    "PersonalInfo",
    "Project",
    "ResumeSection",
    "RewriteResult",
    "RewriteSuggestion",
    "ScanResult",
    "ScoreBreakdown",
    "SectionStatus",
    "SemanticMatch",
    "Skill",
    "SkillCategory",
    "SkillGapResult",
    "SkillLevel",
    "StageResult",
    "Tier",
    "Timeframe",
]
