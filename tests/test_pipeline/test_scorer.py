"""Tests for the deterministic scorer and its narrative insights."""

from datetime import date

import pytest

from ats_scanner.errors import GatewayError
from ats_scanner.models.job import JobSkill, ParsedJob
from ats_scanner.models.resume import Education, Experience, ParsedResume, PersonalInfo, Skill
from ats_scanner.models.score import ScoreBreakdown
from ats_scanner.pipeline.scorer import (
    INSIGHTS_PROMPT,
    LOW_SCORE_ADVICE,
    Scorer,
    ats_compliance_score,
    education_score,
    experience_score,
    fallback_insights,
    format_score,
    keyword_match_score,
    skill_alignment_score,
    weighted_overall,
)

TODAY = date(2024, 6, 1)


@pytest.fixture
def scorer(mock_llm_client) -> Scorer:
    return Scorer(mock_llm_client, today=TODAY)


class TestBreakdown:
    def test_sample_breakdown(self, scorer, sample_resume, sample_job):
        b = scorer.breakdown(sample_resume, sample_job)
        assert b.keyword_match == 75
        assert b.skill_alignment == 60
        assert b.experience_relevance == 100
        assert b.education_match == 100
        assert b.ats_compliance == 100

    def test_no_required_skills_scores_full(self, sample_resume):
        job = ParsedJob(skills=[JobSkill(name="Rust", required=False)])
        assert keyword_match_score(sample_resume, job) == 100
        assert skill_alignment_score(sample_resume, job) == 100

    def test_no_resume_skills(self, sample_job):
        assert keyword_match_score(ParsedResume(), sample_job) == 0
        assert skill_alignment_score(ParsedResume(), sample_job) == 0


class TestWeightedOverall:
    def test_all_full(self):
        full = ScoreBreakdown(
            keyword_match=100, skill_alignment=100, experience_relevance=100, education_match=100, ats_compliance=100
        )
        assert weighted_overall(full) == 100

    def test_all_zero(self):
        assert weighted_overall(ScoreBreakdown()) == 0

    def test_weights(self):
        assert weighted_overall(ScoreBreakdown(keyword_match=100)) == 30
        assert weighted_overall(ScoreBreakdown(education_match=100, ats_compliance=100)) == 25


class TestExperienceScore:
    @pytest.mark.parametrize(
        ("level", "expected"),
        [("junior", 80), ("entry level", 80), ("mid level", 30), ("senior", 30), ("principal", 30), ("", 50)],
    )
    def test_levels_without_experience(self, level, expected):
        job = ParsedJob(experience_level=level)
        assert experience_score(ParsedResume(), job, TODAY) == expected

    def test_senior_with_three_years(self):
        resume = ParsedResume(experience=[Experience(position="Engineer", start_date="2021-01", end_date="2024-06")])
        assert experience_score(resume, ParsedJob(experience_level="senior"), TODAY) == 70

    def test_relevance_bonus(self, sample_resume, sample_job):
        assert experience_score(sample_resume, sample_job, TODAY) == 100


class TestEducationScore:
    def test_master_requested(self):
        resume = ParsedResume(education=[Education(degree="M.S.", field="Finance")])
        job = ParsedJob(title="Data Analyst", requirements=["Master's degree preferred"])
        assert education_score(resume, job) == 90

    def test_nothing_requested(self, sample_resume):
        assert education_score(sample_resume, ParsedJob(title="Chef")) == 50


class TestComplianceAndFormat:
    def test_missing_email_skills_and_experience(self):
        resume = ParsedResume(
            personal_info=PersonalInfo(phone="555-0100"),
            education=[Education(degree="B.A.")],
        )
        assert ats_compliance_score(resume) == 25

    def test_empty_resume_floors_at_zero(self):
        assert ats_compliance_score(ParsedResume()) == 0

    def test_thin_skills_and_missing_description(self):
        resume = ParsedResume(
            personal_info=PersonalInfo(email="a@b.co", phone="555-0100"),
            experience=[Experience(position="Engineer")],
            education=[Education(degree="B.A.")],
            skills=[Skill(name="Python"), Skill(name="Go"), Skill(name="SQL")],
        )
        assert ats_compliance_score(resume) == 75

    def test_format_score(self, sample_resume):
        assert format_score(sample_resume) == 80


class TestScore:
    async def test_score_with_insights(self, route_llm, sample_resume, sample_job):
        llm = route_llm({INSIGHTS_PROMPT: {"strengths": ["Strong Python"], "recommendations": ["Add Kubernetes"]}})
        result = await Scorer(llm, today=TODAY).score(sample_resume, sample_job)

        assert result.ok and not result.degraded
        scores = result.value
        assert scores.overall_score == weighted_overall(scores.breakdown)
        assert scores.strengths == ["Strong Python"]
        assert scores.recommendations == ["Add Kubernetes"]
        assert scores.format_score == 80
        assert scores.keyword_score == 75

    async def test_insights_fall_back(self, scorer, mock_llm_client, sample_resume, sample_job):
        mock_llm_client.generate_json.side_effect = GatewayError("down")
        result = await scorer.score(sample_resume, sample_job)

        assert result.ok
        assert result.degraded
        assert result.value.strengths == ["Good overall match"]
        assert result.value.recommendations == ["Add more relevant keywords", "Quantify achievements"]

    def test_fallback_insights_for_low_scores(self):
        breakdown = ScoreBreakdown(
            keyword_match=20, skill_alignment=80, experience_relevance=80, education_match=80, ats_compliance=80
        )
        insights = fallback_insights(breakdown, 40)
        assert insights.weaknesses == ["Needs improvement"]
        assert insights.strengths == []
        assert LOW_SCORE_ADVICE["keyword_match"] in insights.recommendations
