"""Resume Parsing Agent - structures raw résumé text into a ParsedResume."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from ats_scanner.clients.llm_client import DEFAULT_MODEL, Gateway, chat
from ats_scanner.errors import GatewayError
from ats_scanner.models.enums import ParsingMethod
from ats_scanner.models.resume import ParsedResume, ParseMetadata
from ats_scanner.models.scan import FailureKind, StageResult
from ats_scanner.parsers.resume_parser import clean_text, extract_resume_fields
from ats_scanner.utils.text import word_count

logger = logging.getLogger(__name__)

STAGE = "parse_resume"

SYSTEM_PROMPT = """\
You are an expert resume parser with deep knowledge of ATS systems and recruitment practices.
Extract structured information from the resume text.

Respond with JSON only, in this shape:
{
  "personalInfo": {"name": "", "email": "", "phone": "", "location": "", "linkedin": "", "github": "", "portfolio": ""},
  "summary": "",
  "experience": [{"company": "", "position": "", "startDate": "YYYY-MM", "endDate": "YYYY-MM or null",
                  "current": false, "description": "", "achievements": [""]}],
  "education": [{"institution": "", "degree": "", "field": "", "startDate": "", "endDate": "", "current": false, "gpa": null}],
  "skills": [{"name": "", "category": "technical|soft|language|tool",
              "level": "beginner|intermediate|advanced|expert", "yearsOfExperience": null}],
  "certifications": [{"name": "", "issuer": "", "date": "", "expiryDate": null, "credentialId": null}],
  "languages": [{"name": "", "proficiency": "basic|conversational|professional|native"}],
  "projects": [{"name": "", "description": "", "technologies": [""], "url": null, "github": null,
                "startDate": "", "endDate": null}]
}

Rules:
- Copy facts from the resume only; never invent employers, dates or skills.
- Use YYYY-MM for dates when the month is known, YYYY otherwise.
- Set "current": true and "endDate": null for ongoing positions."""


class ResumeParsingAgent:
    def __init__(self, llm: Gateway, model: str = DEFAULT_MODEL, temperature: float = 0.1):
        self.llm = llm
        self.model = model
        self.temperature = temperature

    async def parse(self, resume_text: str, file_name: str | None = None) -> StageResult[ParsedResume]:
        """Parse with the language model, falling back to the field extractor.

        The fallback result is flagged ``degraded`` and tagged
        ``regex-basic``; an empty résumé is a validation failure.
        """
        text = clean_text(resume_text or "")
        if not text:
            return StageResult.fail(STAGE, FailureKind.VALIDATION, "Resume text is empty")

        logger.info("Parsing resume (%d words)", word_count(text))
        try:
            data = await self.llm.generate_json(
                chat(SYSTEM_PROMPT, f"Parse this resume text:\n\n{text}"),
                model=self.model,
                temperature=self.temperature,
                max_tokens=4000,
            )
            resume = ParsedResume.model_validate(data)
        except (GatewayError, ValidationError) as e:
            logger.warning("LLM resume parsing failed, using field extractor: %s", e)
            return StageResult.success(STAGE, extract_resume_fields(text, file_name), degraded=True)

        metadata = ParseMetadata(
            word_count=word_count(text),
            parsing_method=ParsingMethod.AI_ENHANCED,
            file_name=file_name,
        )
        return StageResult.success(STAGE, resume.model_copy(update={"metadata": metadata}))
