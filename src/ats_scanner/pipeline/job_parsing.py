"""Job Parsing Agent - structures a job posting into a ParsedJob."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from ats_scanner.clients.llm_client import DEFAULT_MODEL, Gateway, chat
from ats_scanner.errors import GatewayError
from ats_scanner.models.enums import ParsingMethod
from ats_scanner.models.job import ParsedJob
from ats_scanner.models.resume import ParseMetadata
from ats_scanner.models.scan import FailureKind, StageResult
from ats_scanner.parsers.jd_parser import extract_job_fields, extract_keywords, parse_jd
from ats_scanner.utils.text import unique, word_count

logger = logging.getLogger(__name__)

STAGE = "parse_job"

SYSTEM_PROMPT = """\
You are an expert job description analyst. Extract structured information from the job posting.

Respond with JSON only, in this shape:
{
  "title": "",
  "company": "",
  "location": "",
  "employmentType": "full-time|part-time|contract|internship|...",
  "experienceLevel": "entry level|junior|mid level|senior|lead|principal|staff",
  "salary": {"min": null, "max": null, "currency": "USD"},
  "description": "",
  "requirements": [""],
  "responsibilities": [""],
  "benefits": [""],
  "skills": [{"name": "", "required": true, "level": "junior|intermediate|senior|expert",
              "category": "technical|soft|language|tool"}],
  "keywords": [""],
  "industry": "",
  "department": ""
}

Rules:
- Mark a skill "required": true only when the posting requires it; preferred or bonus skills are false.
- "keywords" are the terms an ATS would screen for: skills, tools, qualifications, domain terms.
- Leave a field empty rather than guessing."""


def derive_keywords(job: ParsedJob) -> list[str]:
    """Skill names plus lexicon terms from the requirements and description."""
    text = "\n".join([*job.requirements, *job.responsibilities, job.description])
    return unique([s.name for s in job.skills] + extract_keywords(text))


class JobParsingAgent:
    def __init__(self, llm: Gateway, model: str = DEFAULT_MODEL, temperature: float = 0.1):
        self.llm = llm
        self.model = model
        self.temperature = temperature

    async def parse(self, job_text: str) -> StageResult[ParsedJob]:
        """Parse with the language model, falling back to the field extractor."""
        text = parse_jd(job_text or "")
        if not text:
            return StageResult.fail(STAGE, FailureKind.VALIDATION, "Job description text is empty")

        logger.info("Parsing job description (%d words)", word_count(text))
        try:
            data = await self.llm.generate_json(
                chat(SYSTEM_PROMPT, f"Parse this job description:\n\n{text}"),
                model=self.model,
                temperature=self.temperature,
                max_tokens=4000,
            )
            job = ParsedJob.model_validate(data)
        except (GatewayError, ValidationError) as e:
            logger.warning("LLM job parsing failed, using field extractor: %s", e)
            return StageResult.success(STAGE, extract_job_fields(text), degraded=True)

        update: dict = {
            "metadata": ParseMetadata(
                word_count=word_count(text),
                parsing_method=ParsingMethod.AI_ENHANCED,
            )
        }
        if not job.keywords:
            update["keywords"] = derive_keywords(job)
        return StageResult.success(STAGE, job.model_copy(update=update))
