"""Tests for pipeline agents with mocked LLM."""

import pytest

from ats_scanner.errors import GatewayError
from ats_scanner.models.enums import Importance, ParsingMethod, ResumeSection, SectionStatus, Tier
from ats_scanner.models.job import JobSkill, ParsedJob
from ats_scanner.models.match import CategoryScores, ExactMatch
from ats_scanner.models.rewrite import RewriteResult, RewriteSuggestion, ScoreDelta
from ats_scanner.models.scan import FailureKind
from ats_scanner.models.score import ATSScoreResult, ScoreBreakdown
from ats_scanner.pipeline import gap_analyzer, job_parsing, keyword_matcher, resume_parsing
from ats_scanner.pipeline.explainer import BREAKDOWN_PROMPT, ExplanationAgent, ExplanationInput
from ats_scanner.pipeline.gap_analyzer import GapAnalyzer, missing_required_skills
from ats_scanner.pipeline.job_parsing import JobParsingAgent
from ats_scanner.pipeline.keyword_matcher import (
    KeywordMatcher,
    category_scores,
    combine_match_score,
    exact_matches,
)
from ats_scanner.pipeline.orchestrator import fallback_gaps, fallback_matches
from ats_scanner.pipeline.resume_parsing import ResumeParsingAgent
from ats_scanner.pipeline.rewriter import (
    RewriteAgent,
    build_rewrite_result,
    overall_improvement,
    priority_rewrites,
    quick_wins,
    section_requests,
)


@pytest.fixture
def sample_scores() -> ATSScoreResult:
    return ATSScoreResult(
        overall_score=68,
        breakdown=ScoreBreakdown(
            keyword_match=35,
            skill_alignment=80,
            experience_relevance=90,
            education_match=55,
            ats_compliance=100,
        ),
    )


def _suggestion(improvement: int, section: str = "experience", **extra) -> RewriteSuggestion:
    return RewriteSuggestion(
        section=section,
        rewritten_text="better",
        ats_score=ScoreDelta(before=50, after=50 + improvement),
        **extra,
    )


class TestResumeParsingAgent:
    async def test_parse(self, mock_llm_client, sample_resume, sample_resume_text):
        mock_llm_client.generate_json.return_value = sample_resume.to_api()
        result = await ResumeParsingAgent(mock_llm_client).parse(sample_resume_text, "jane.txt")

        assert result.ok
        assert not result.degraded
        assert result.value.personal_info.name == "Jane Doe"
        assert result.value.metadata.parsing_method is ParsingMethod.AI_ENHANCED
        assert result.value.metadata.file_name == "jane.txt"

    async def test_prompt_includes_resume(self, mock_llm_client, sample_resume_text):
        await ResumeParsingAgent(mock_llm_client).parse(sample_resume_text)
        messages = mock_llm_client.generate_json.call_args.args[0]
        assert messages[0]["content"] == resume_parsing.SYSTEM_PROMPT
        assert "Acme Corp" in messages[1]["content"]

    async def test_gateway_failure_falls_back(self, mock_llm_client, sample_resume_text):
        mock_llm_client.generate_json.side_effect = GatewayError("timeout")
        result = await ResumeParsingAgent(mock_llm_client).parse(sample_resume_text)

        assert result.ok
        assert result.degraded
        assert result.value.metadata.parsing_method is ParsingMethod.REGEX_BASIC
        assert result.value.personal_info.email == "jane.doe@example.com"

    async def test_malformed_reply_falls_back(self, mock_llm_client, sample_resume_text):
        mock_llm_client.generate_json.return_value = {"summary": ["not", "a", "string"]}
        result = await ResumeParsingAgent(mock_llm_client).parse(sample_resume_text)
        assert result.degraded
        assert result.value.skills

    async def test_bad_entries_keep_the_rest_of_the_parse(self, mock_llm_client, sample_resume, sample_resume_text):
        reply = sample_resume.to_api()
        reply["experience"][0]["achievements"] = "Cut AWS costs by 30%"
        reply["experience"].append({"current": {"since": 2020}})
        reply["skills"][0]["yearsOfExperience"] = "5+"
        reply["skills"].append("Terraform")
        reply["projects"] = [{"name": "ats-cli", "technologies": "Python, Typer"}]
        mock_llm_client.generate_json.return_value = reply

        result = await ResumeParsingAgent(mock_llm_client).parse(sample_resume_text)

        assert result.ok and not result.degraded
        resume = result.value
        assert resume.metadata.parsing_method is ParsingMethod.AI_ENHANCED
        assert len(resume.experience) == len(sample_resume.experience)
        assert resume.experience[0].achievements == ["Cut AWS costs by 30%"]
        assert resume.skills[0].years_of_experience == 5
        assert resume.skills[-1].name == "Terraform"
        assert resume.projects[0].technologies == ["Python", "Typer"]

    @pytest.mark.parametrize("text", ["", "   \n  "])
    async def test_empty_text_is_validation_failure(self, mock_llm_client, text):
        result = await ResumeParsingAgent(mock_llm_client).parse(text)
        assert result.failure is FailureKind.VALIDATION
        mock_llm_client.generate_json.assert_not_called()


class TestJobParsingAgent:
    async def test_keywords_derived_when_missing(self, mock_llm_client, sample_jd_text):
        mock_llm_client.generate_json.return_value = {
            "title": "Senior Backend Engineer",
            "skills": [{"name": "Python", "required": True}, {"name": "Kubernetes", "required": False}],
            "requirements": ["Strong knowledge of PostgreSQL"],
        }
        result = await JobParsingAgent(mock_llm_client).parse(sample_jd_text)

        assert result.ok and not result.degraded
        assert result.value.keywords[:2] == ["Python", "Kubernetes"]
        assert "postgresql" in result.value.keywords
        assert messages_system(mock_llm_client) == job_parsing.SYSTEM_PROMPT

    async def test_bad_salary_and_skill_keep_the_parse(self, mock_llm_client, sample_jd_text):
        mock_llm_client.generate_json.return_value = {
            "title": "Senior Backend Engineer",
            "salary": {"min": "100k", "max": "competitive"},
            "skills": [{"name": "Python", "required": True}, {"required": True}, ["Go"]],
            "benefits": "Remote work",
        }
        result = await JobParsingAgent(mock_llm_client).parse(sample_jd_text)

        assert result.ok and not result.degraded
        job = result.value
        assert (job.salary.min, job.salary.max) == (100_000, None)
        assert [s.name for s in job.skills] == ["Python"]
        assert job.benefits == ["Remote work"]

    async def test_unreadable_salary_is_dropped(self, mock_llm_client, sample_jd_text):
        mock_llm_client.generate_json.return_value = {"title": "Engineer", "salary": "DOE"}
        result = await JobParsingAgent(mock_llm_client).parse(sample_jd_text)
        assert not result.degraded
        assert result.value.salary is None

    async def test_gateway_failure_falls_back(self, mock_llm_client, sample_jd_text):
        mock_llm_client.generate_json.side_effect = GatewayError("down")
        result = await JobParsingAgent(mock_llm_client).parse(sample_jd_text)
        assert result.degraded
        assert result.value.title == "Senior Backend Engineer"
        assert result.value.metadata.parsing_method is ParsingMethod.REGEX_BASIC

    async def test_empty_text(self, mock_llm_client):
        result = await JobParsingAgent(mock_llm_client).parse("")
        assert result.failure is FailureKind.VALIDATION
        assert result.error == "Job description text is empty"


def messages_system(mock_llm_client) -> str:
    return mock_llm_client.generate_json.call_args.args[0][0]["content"]


class TestKeywordMatcher:
    async def test_exact_and_missing(self, mock_llm_client, sample_resume, sample_job):
        result = await KeywordMatcher(mock_llm_client).match(sample_resume, sample_job)

        assert result.ok
        assert result.value.matched_keywords == ["Python", "Django", "PostgreSQL"]
        assert result.value.missing_keywords == ["Kubernetes", "Terraform"]
        assert all(m.confidence == 100 for m in result.value.exact_matches)
        assert 0 <= result.value.match_score <= 100

    def test_aliases_count_as_exact(self):
        matches = exact_matches(["postgres", "k8s", "NodeJS"], ["PostgreSQL", "Kubernetes", "Node.js", "Go"])
        assert [m.keyword for m in matches if m.found] == ["PostgreSQL", "Kubernetes", "Node.js"]

    async def test_semantic_matches_skip_malformed(self, route_llm, sample_resume, sample_job):
        llm = route_llm({
            keyword_matcher.SEMANTIC_PROMPT: {
                "semanticMatches": [
                    {"resumeTerm": "Docker", "jobTerm": "Kubernetes", "similarity": 60, "category": "tools"},
                    {"similarity": 99},
                ]
            }
        })
        result = await KeywordMatcher(llm).match(sample_resume, sample_job)

        assert not result.degraded
        [match] = result.value.semantic_matches
        assert match.job_term == "Kubernetes"
        assert match.category.value == "tool"

    async def test_infinite_similarity_is_clamped(self, route_llm, sample_resume, sample_job):
        llm = route_llm({
            keyword_matcher.SEMANTIC_PROMPT: {
                "semanticMatches": [
                    {"resumeTerm": "Docker", "jobTerm": "Kubernetes", "similarity": float("inf")},
                    {"resumeTerm": "Flask", "jobTerm": "Django", "similarity": float("-inf")},
                ]
            }
        })
        result = await KeywordMatcher(llm).match(sample_resume, sample_job)

        assert result.ok and not result.degraded
        assert [m.similarity for m in result.value.semantic_matches] == [100, 0]
        assert 0 <= result.value.match_score <= 100

    async def test_semantic_failure_degrades(self, mock_llm_client, sample_resume, sample_job):
        mock_llm_client.generate_json.side_effect = GatewayError("down")
        result = await KeywordMatcher(mock_llm_client).match(sample_resume, sample_job)

        assert result.ok
        assert result.degraded
        assert result.value.semantic_matches == []
        assert result.value.matched_keywords == ["Python", "Django", "PostgreSQL"]

    def test_category_scores(self, sample_resume, sample_job):
        scores = category_scores(sample_resume, sample_job)
        assert scores.technical == 75
        assert scores.soft == 100
        assert scores.tool == 100

    def test_category_without_resume_skills_scores_zero(self, sample_resume):
        job = ParsedJob(skills=[JobSkill(name="Leadership", required=True, category="soft")])
        assert category_scores(sample_resume, job).soft == 0

    def test_combine_match_score(self):
        exact = [ExactMatch(keyword="Python", found=True)]
        assert combine_match_score(exact, [], CategoryScores()) == 65
        assert combine_match_score([], [], CategoryScores(technical=0, soft=0, language=0, tool=0)) == 40


class TestGapAnalyzer:
    def test_missing_required_skills(self, sample_resume, sample_job):
        assert [s.name for s in missing_required_skills(sample_resume, sample_job)] == ["Kubernetes"]

    async def test_all_calls_fail_uses_fallbacks(self, mock_llm_client, sample_resume, sample_job, sample_scores):
        mock_llm_client.generate_json.side_effect = GatewayError("down")
        result = await GapAnalyzer(mock_llm_client).analyze(sample_resume, sample_job, sample_scores)

        assert result.ok
        assert result.degraded
        gaps = result.value
        assert [m.skill for m in gaps.missing_skills] == ["Kubernetes"]
        assert gaps.critical_skills == ["Kubernetes"]
        assert [s.skill for s in gaps.skill_strengths] == ["Python", "Django", "PostgreSQL"]
        assert all(s.relevance == 70 for s in gaps.skill_strengths)
        assert [a.area for a in gaps.improvement_areas] == ["Keyword Match", "Education Match"]
        assert gaps.market_alignment.demand_level is Tier.MEDIUM
        assert "Kubernetes" in gaps.career_advice.medium_term[0]

    async def test_enriched_result(self, route_llm, sample_resume, sample_job, sample_scores):
        llm = route_llm({
            gap_analyzer.MISSING_SKILLS_PROMPT: {
                "missingSkills": [{"skill": "Kubernetes", "importance": "nice-to-have", "reason": "orchestration"}]
            },
            gap_analyzer.STRENGTHS_PROMPT: {"skillStrengths": [{"skill": "Python", "relevance": 95}]},
            gap_analyzer.MARKET_PROMPT: {"marketAlignment": {"demandLevel": "high"}},
        })
        result = await GapAnalyzer(llm).analyze(sample_resume, sample_job, sample_scores)

        assert not result.degraded
        assert result.value.missing_skills[0].reason == "orchestration"
        assert result.value.missing_skills[0].importance is Importance.NICE_TO_HAVE
        assert result.value.skill_strengths[0].relevance == 95
        assert result.value.market_alignment.demand_level is Tier.HIGH

    async def test_enrichment_covers_exactly_missing(self, route_llm):
        llm = route_llm({
            gap_analyzer.MISSING_SKILLS_PROMPT: {
                "missingSkills": [
                    {"skill": "kubernetes", "reason": "from model"},
                    {"skill": "Rust", "reason": "not requested"},
                ]
            }
        })
        missing = [JobSkill(name="Kubernetes", required=True), JobSkill(name="Terraform", required=True)]
        enriched, degraded = await GapAnalyzer(llm).enrich_missing(missing, "context")

        assert not degraded
        assert len(enriched) == 2
        assert enriched[0].reason == "from model"
        assert enriched[1].skill == "Terraform"
        assert enriched[1].importance is Importance.CRITICAL

    async def test_failed_enrichment_keeps_missing_set(self, mock_llm_client):
        mock_llm_client.generate_json.side_effect = GatewayError("down")
        missing = [JobSkill(name="Kubernetes", required=True), JobSkill(name="Terraform", required=True)]
        enriched, degraded = await GapAnalyzer(mock_llm_client).enrich_missing(missing, "context")

        assert degraded
        assert [m.skill for m in enriched] == ["Kubernetes", "Terraform"]
        assert all(m.importance is Importance.CRITICAL for m in enriched)

    async def test_nothing_missing_skips_call(self, mock_llm_client):
        assert await GapAnalyzer(mock_llm_client).enrich_missing([], "context") == ([], False)
        mock_llm_client.generate_json.assert_not_called()


class TestRewriteSelection:
    def test_partition(self):
        suggestions = [_suggestion(i) for i in (25, 30, 15, 12, 5, 20, 19, 40)]
        priority = priority_rewrites(suggestions)
        wins = quick_wins(suggestions)

        assert [s.improvement for s in priority] == [40, 30, 25]
        assert [s.improvement for s in wins] == [19, 15, 12]
        assert not {id(s) for s in priority} & {id(s) for s in wins}

    def test_limits(self):
        suggestions = [_suggestion(i) for i in (10, 11, 12, 13, 14, 15, 16)]
        assert len(quick_wins(suggestions)) == 5
        assert len(quick_wins(suggestions, limit=2)) == 2

    def test_overall_improvement_empty(self):
        empty = overall_improvement([])
        assert (empty.ats_score, empty.readability_score, empty.impact_score) == (0, 0, 0)

    def test_build_result(self):
        suggestions = [
            _suggestion(20, action_verbs_added=["Led"]),
            _suggestion(10, section="summary", metrics_added=["30%"]),
        ]
        result = build_rewrite_result(suggestions)
        assert result.overall_improvement.ats_score == 15
        assert result.overall_improvement.readability_score == 50
        assert result.overall_improvement.impact_score == 50
        assert result.section_analysis[ResumeSection.EXPERIENCE].score == 70
        assert result.section_analysis[ResumeSection.SUMMARY].suggestions == 1

    def test_section_requests(self, sample_resume):
        requests = section_requests(sample_resume)
        assert [r.section for r in requests] == [
            ResumeSection.SUMMARY,
            ResumeSection.EXPERIENCE,
            ResumeSection.EXPERIENCE,
            ResumeSection.EDUCATION,
            ResumeSection.SKILLS,
        ]
        assert requests[1].label == "Senior Software Engineer at Acme Corp"
        assert len(section_requests(sample_resume, {ResumeSection.SKILLS})) == 1


class TestRewriteAgent:
    async def test_rewrite(self, mock_llm_client, sample_resume, sample_job, sample_scores):
        mock_llm_client.generate_json.return_value = {
            "suggestions": [
                {"rewrittenText": "Improved text", "section": "hobbies", "atsScore": {"before": 50, "after": 75}},
                {"rewrittenText": "", "reason": "dropped"},
            ]
        }
        result = await RewriteAgent(mock_llm_client).rewrite(sample_resume, sample_job, sample_scores)

        assert result.ok and not result.degraded
        assert len(result.value.suggestions) == 5
        assert {s.section for s in result.value.suggestions} == {
            ResumeSection.SUMMARY, ResumeSection.EXPERIENCE, ResumeSection.EDUCATION, ResumeSection.SKILLS,
        }
        assert len(result.value.priority_rewrites) == 3
        assert result.value.suggestions[0].original_text == sample_resume.summary

    async def test_failed_section_degrades(self, mock_llm_client, sample_resume, sample_job, sample_scores):
        async def reply(messages, **kwargs):
            if "Section: skills" in messages[1]["content"]:
                raise GatewayError("down")
            return {"suggestions": [{"rewrittenText": "x", "atsScore": {"before": 50, "after": 62}}]}

        mock_llm_client.generate_json.side_effect = reply
        result = await RewriteAgent(mock_llm_client).rewrite(sample_resume, sample_job, sample_scores)

        assert result.ok
        assert result.degraded
        assert len(result.value.suggestions) == 4
        assert len(result.value.quick_wins) == 4

    async def test_overflowing_score_keeps_other_sections(self, mock_llm_client, sample_resume, sample_job, sample_scores):
        async def reply(messages, **kwargs):
            after = 1e999 if "Section: skills" in messages[1]["content"] else 62
            return {"suggestions": [{"rewrittenText": "x", "atsScore": {"before": 50, "after": after}}]}

        mock_llm_client.generate_json.side_effect = reply
        result = await RewriteAgent(mock_llm_client).rewrite(sample_resume, sample_job, sample_scores)

        assert result.ok and not result.degraded
        assert len(result.value.suggestions) == 5
        assert max(s.ats_score.after for s in result.value.suggestions) == 100

    async def test_all_failed_is_empty_result(self, mock_llm_client, sample_resume, sample_job, sample_scores):
        mock_llm_client.generate_json.side_effect = GatewayError("down")
        result = await RewriteAgent(mock_llm_client).rewrite(sample_resume, sample_job, sample_scores)
        assert result.degraded
        assert result.value == build_rewrite_result([])


class TestExplanationAgent:
    @pytest.fixture
    def explain_input(self, sample_resume, sample_job, sample_scores) -> ExplanationInput:
        return ExplanationInput(
            scan_id="scan-1",
            resume=sample_resume,
            job=sample_job,
            matches=fallback_matches(sample_resume, sample_job),
            scores=sample_scores,
            gaps=fallback_gaps(sample_resume, sample_job, sample_scores),
            rewrites=RewriteResult(priority_rewrites=[_suggestion(25)]),
        )

    async def test_all_calls_fail(self, mock_llm_client, explain_input):
        mock_llm_client.generate_json.side_effect = GatewayError("down")
        result = await ExplanationAgent(mock_llm_client).explain(explain_input)

        assert result.ok and result.degraded
        explanation = result.value
        assert explanation.scan_id == "scan-1"
        assert explanation.overall_score == 68
        assert not explanation.score_explanation.is_good
        assert [(b.section, b.status) for b in explanation.detailed_breakdown] == [
            ("Keyword Match", SectionStatus.CRITICAL),
            ("Skill Alignment", SectionStatus.EXCELLENT),
            ("Experience Relevance", SectionStatus.EXCELLENT),
            ("Education Match", SectionStatus.NEEDS_IMPROVEMENT),
            ("ATS Compliance", SectionStatus.EXCELLENT),
        ]
        assert explanation.keyword_analysis.missing_keywords == ["Kubernetes", "Terraform"]
        assert explanation.skill_gap_summary.critical_gaps == ["Kubernetes"]
        actions = [i.action for i in explanation.actionable_insights]
        assert actions[0].startswith("Rewrite your experience")
        assert "Develop Kubernetes" in actions
        assert "Start learning Kubernetes" in explanation.next_steps.this_month[0]

    async def test_breakdown_numbers_come_from_scores(self, route_llm, explain_input):
        llm = route_llm({
            BREAKDOWN_PROMPT: {
                "detailedBreakdown": [
                    {"section": "Keyword Match", "score": 99, "status": "excellent", "explanation": "Narrative"}
                ]
            }
        })
        result = await ExplanationAgent(llm).explain(explain_input)
        keyword = result.value.detailed_breakdown[0]

        assert keyword.score == 35
        assert keyword.status is SectionStatus.CRITICAL
        assert keyword.explanation == "Narrative"
