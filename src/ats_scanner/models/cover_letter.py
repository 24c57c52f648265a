"""Cover letter output."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import Field

from ats_scanner.models.base import Record


class CoverLetterTemplate(str, Enum):
    PROFESSIONAL = "professional"
    MODERN = "modern"
    CREATIVE = "creative"
    EXECUTIVE = "executive"


class CoverLetter(Record):
    template: CoverLetterTemplate
    content: str
    job_title: str = ""
    company: str = ""
    paragraphs: list[str] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=datetime.now)
