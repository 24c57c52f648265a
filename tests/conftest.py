"""Shared test fixtures."""

from __future__ import annotations

from datetime import date
from unittest.mock import AsyncMock

import pytest

from ats_scanner.clients.llm_client import LLMClient, LLMResponse
from ats_scanner.config import AppConfig, PipelineConfig
from ats_scanner.models.job import JobSkill, ParsedJob, SalaryRange
from ats_scanner.models.resume import (
    Certification,
    Education,
    Experience,
    ParsedResume,
    PersonalInfo,
    Skill,
)
from ats_scanner.pipeline.context import ScanContext

TODAY = date(2024, 6, 1)


@pytest.fixture
def sample_resume_text() -> str:
    return """Jane Doe
Senior Software Engineer
jane.doe@example.com | (555) 123-4567 | San Francisco, CA
linkedin.com/in/janedoe | github.com/janedoe

SUMMARY
Backend engineer with 5 years of experience building Python services.

EXPERIENCE
Senior Software Engineer
Acme Corp | Jan 2021 - Present
- Built REST APIs in Python and FastAPI serving 2M requests per day
- Reduced AWS costs by 30% by migrating batch jobs to Kubernetes

Software Engineer
Globex | Jan 2019 - Dec 2020
- Developed Django applications backed by PostgreSQL

EDUCATION
B.S. in Computer Science
State University | 2014 - 2018

SKILLS
Python, Django, FastAPI, PostgreSQL, Docker, Kubernetes, AWS

CERTIFICATIONS
AWS Certified Developer - Amazon Web Services (2022)
"""


@pytest.fixture
def sample_jd_text() -> str:
    return """Senior Backend Engineer
Company: Initech

We are a fast-paced startup building remote-first developer tools.

Requirements:
- 5+ years of experience with Python
- Experience with Django or FastAPI
- Strong knowledge of PostgreSQL and Docker
- Bachelor's degree in Computer Science or related field

Preferred:
- Experience with Kubernetes and Terraform

Salary: $130,000 - $160,000
"""


@pytest.fixture
def sample_resume() -> ParsedResume:
    return ParsedResume(
        personal_info=PersonalInfo(name="Jane Doe", email="jane.doe@example.com", phone="555-123-4567"),
        summary="Backend engineer building Python services.",
        experience=[
            Experience(
                company="Acme Corp",
                position="Senior Software Engineer",
                start_date="2021-06",
                current=True,
                description="Built Python REST APIs with FastAPI",
                achievements=["Reduced AWS costs by 30%"],
            ),
            Experience(
                company="Globex",
                position="Software Engineer",
                start_date="2019-01",
                end_date="2021-01",
                description="Developed Django applications backed by PostgreSQL",
            ),
        ],
        education=[Education(institution="State University", degree="B.S.", field="Computer Science")],
        skills=[
            Skill(name="Python"),
            Skill(name="Django"),
            Skill(name="FastAPI"),
            Skill(name="PostgreSQL"),
            Skill(name="Docker", category="tool"),
        ],
        certifications=[Certification(name="AWS Certified Developer")],
    )


@pytest.fixture
def sample_job() -> ParsedJob:
    return ParsedJob(
        title="Senior Backend Engineer",
        company="Initech",
        experience_level="senior",
        salary=SalaryRange(min=130000, max=160000),
        description="Build backend services for developer tools.",
        requirements=["5+ years of Python", "Bachelor's degree in Computer Science"],
        skills=[
            JobSkill(name="Python", required=True),
            JobSkill(name="Django", required=True),
            JobSkill(name="PostgreSQL", required=True),
            JobSkill(name="Kubernetes", required=True),
            JobSkill(name="Terraform", required=False, category="tool"),
        ],
        keywords=["Python", "Django", "PostgreSQL", "Kubernetes", "Terraform"],
    )


@pytest.fixture
def mock_llm_client() -> LLMClient:
    """Create a mock LLM client."""
    client = AsyncMock(spec=LLMClient)
    client.generate = AsyncMock(
        return_value=LLMResponse(text="{}", input_tokens=100, output_tokens=50)
    )
    client.generate_json = AsyncMock(return_value={})
    client.get_token_summary.return_value = {"input": 0, "output": 0, "calls": []}
    return client


@pytest.fixture
def context(mock_llm_client) -> ScanContext:
    return ScanContext(llm=mock_llm_client)


@pytest.fixture
def fail_fast_context(mock_llm_client) -> ScanContext:
    return ScanContext(llm=mock_llm_client, config=AppConfig(pipeline=PipelineConfig(fail_fast=True)))


@pytest.fixture
def route_llm(mock_llm_client):
    """Answer ``generate_json`` by system prompt. Unlisted prompts get ``{}``;
    an exception value is raised instead of returned."""

    def _route(responses: dict) -> LLMClient:
        async def _generate_json(messages, **kwargs):
            reply = responses.get(messages[0]["content"], {})
            if isinstance(reply, Exception):
                raise reply
            return reply

        mock_llm_client.generate_json.side_effect = _generate_json
        return mock_llm_client

    return _route


def calls_with(mock_llm_client, system_prompt: str) -> int:
    return sum(
        1 for c in mock_llm_client.generate_json.call_args_list if c.args[0][0]["content"] == system_prompt
    )


@pytest.fixture
def count_calls():
    return calls_with
