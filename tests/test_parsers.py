"""Tests for the deterministic résumé and job description extractors."""

import pytest

from ats_scanner.models.enums import LanguageProficiency, ParsingMethod, SkillCategory, SkillLevel
from ats_scanner.parsers.jd_parser import (
    detect_experience_level,
    extract_job_fields,
    extract_salary,
    load_jd_file,
    parse_jd,
    required_years,
)
from ats_scanner.parsers.resume_parser import (
    clean_text,
    extract_education,
    extract_experience,
    extract_languages,
    extract_resume_fields,
    extract_skills,
    load_text_file,
)
from ats_scanner.parsers.sections import header_key, split_sections


class TestCleanText:
    def test_removes_artifacts_and_normalizes_bullets(self):
        text = "\ufeffJane\u200b Doe\n\u25cf Built APIs\n\n\n\n\u2022 Led team"
        result = clean_text(text)
        assert result.startswith("Jane Doe")
        assert "- Built APIs" in result
        assert "- Led team" in result
        assert "\n\n\n" not in result

    def test_load_text_file(self, tmp_path):
        path = tmp_path / "resume.md"
        path.write_text("Jane   Doe\n", encoding="utf-8")
        assert load_text_file(path) == "Jane Doe"

    def test_unsupported_format(self, tmp_path):
        with pytest.raises(ValueError, match="Unsupported file format"):
            load_text_file(tmp_path / "resume.pdf")


class TestSections:
    def test_header_variants(self):
        headers = {"skills": "skills", "work experience": "experience"}
        assert header_key("## Work Experience", headers) == ("experience", "")
        assert header_key("SKILLS:", headers) == ("skills", "")
        assert header_key("Skills: Python, Go", headers) == ("skills", "Python, Go")
        assert header_key("- skills", headers) == (None, "")

    def test_split_sections(self):
        preamble, sections = split_sections(
            ["Jane", "SKILLS", "Python", "", "Skills", "Go"], {"skills": "skills"}
        )
        assert preamble == ["Jane"]
        assert sections == {"skills": ["Python", "Go"]}


class TestResumeExtraction:
    def test_personal_info(self, sample_resume_text):
        info = extract_resume_fields(sample_resume_text).personal_info
        assert info.name == "Jane Doe"
        assert info.email == "jane.doe@example.com"
        assert info.phone == "(555) 123-4567"
        assert info.location == "San Francisco, CA"
        assert info.linkedin == "https://linkedin.com/in/janedoe"
        assert info.github == "https://github.com/janedoe"

    def test_sections(self, sample_resume_text):
        resume = extract_resume_fields(sample_resume_text, file_name="jane.txt")
        assert resume.summary.startswith("Backend engineer")
        assert [s.name for s in resume.skills] == [
            "Python", "Django", "FastAPI", "PostgreSQL", "Docker", "Kubernetes", "AWS",
        ]
        assert resume.metadata.parsing_method is ParsingMethod.REGEX_BASIC
        assert resume.metadata.file_name == "jane.txt"
        assert resume.metadata.word_count > 0

    def test_experience_entries(self, sample_resume_text):
        experience = extract_resume_fields(sample_resume_text).experience
        assert len(experience) == 2
        first, second = experience
        assert first.position == "Senior Software Engineer"
        assert first.company == "Acme Corp"
        assert first.start_date == "Jan 2021"
        assert first.current
        assert len(first.achievements) == 2
        assert second.company == "Globex"
        assert second.end_date == "Dec 2020"

    def test_education(self, sample_resume_text):
        education = extract_resume_fields(sample_resume_text).education
        assert len(education) == 1
        assert education[0].degree == "B.S."
        assert education[0].field == "Computer Science"
        assert education[0].institution == "State University"
        assert education[0].end_date == "2018"

    def test_certification_issuer(self, sample_resume_text):
        cert = extract_resume_fields(sample_resume_text).certifications[0]
        assert cert.name == "AWS Certified Developer"
        assert cert.issuer == "Amazon Web Services"
        assert cert.date == "2022"

    def test_never_raises_on_empty(self):
        resume = extract_resume_fields("")
        assert resume.skills == []
        assert resume.metadata.word_count == 0

    def test_skills_from_lexicon_without_section(self):
        resume = extract_resume_fields("Jane Doe\nI write Python and deploy with Docker.")
        assert {s.name for s in resume.skills} == {"python", "docker"}


class TestFieldExtractors:
    def test_single_line_experience(self):
        entries = extract_experience(["Backend Engineer at Initech | 2018 - 2020", "- Shipped features"])
        assert entries[0].position == "Backend Engineer"
        assert entries[0].company == "Initech"
        assert entries[0].start_date == "2018"
        assert entries[0].end_date == "2020"

    def test_skills_labels_and_levels(self):
        skills = extract_skills(["Languages: Python (expert), Go", "Soft skills: Leadership", "Python"])
        assert [s.name for s in skills] == ["Python", "Go", "Leadership"]
        assert skills[0].level is SkillLevel.EXPERT
        assert skills[2].category is SkillCategory.SOFT

    def test_education_gpa(self):
        education = extract_education(["Master of Science, MIT Institute of Technology, GPA: 3.9"])
        assert education[0].gpa == "3.9"

    def test_languages(self):
        languages = extract_languages(["English (Native), Spanish - Conversational"])
        assert [(lang.name, lang.proficiency) for lang in languages] == [
            ("English", LanguageProficiency.NATIVE),
            ("Spanish", LanguageProficiency.CONVERSATIONAL),
        ]


class TestJDParser:
    def test_parse_jd_cleans_whitespace(self):
        result = parse_jd("  Hello   World  \n\n\n\nLine 2  ")
        assert "   " not in result
        assert "\n\n\n" not in result

    def test_parse_jd_strips_lines(self):
        for line in parse_jd("  line 1  \n  line 2  ").splitlines():
            assert line == line.strip()

    def test_load_jd_file(self, tmp_path):
        jd_file = tmp_path / "test.txt"
        jd_file.write_text("Data Engineer\n\nRequirements: Python", encoding="utf-8")
        assert "Requirements: Python" in load_jd_file(str(jd_file))

    def test_title_company_level_salary(self, sample_jd_text):
        job = extract_job_fields(sample_jd_text)
        assert job.title == "Senior Backend Engineer"
        assert job.company == "Initech"
        assert job.experience_level == "senior"
        assert job.salary.min == 130000
        assert job.salary.max == 160000

    def test_required_and_preferred_skills(self, sample_jd_text):
        job = extract_job_fields(sample_jd_text)
        required = {s.name for s in job.required_skills}
        optional = {s.name for s in job.skills if not s.required}
        assert required == {"python", "django", "fastapi", "postgresql", "docker"}
        assert optional == {"kubernetes", "terraform"}

    def test_never_raises_on_empty(self):
        job = extract_job_fields("")
        assert job.title == ""
        assert job.skills == []


class TestJDHelpers:
    @pytest.mark.parametrize(
        ("line", "expected"),
        [
            ("Pay: $90,000 - $120,000", (90000, 120000)),
            ("Pay: $90k-$120k", (90000, 120000)),
            ("Range 90-120k", (90000, 120000)),
            ("Up to $100k", (100000, 100000)),
        ],
    )
    def test_salary(self, line, expected):
        salary = extract_salary(line)
        assert (salary.min, salary.max) == expected

    def test_no_salary(self):
        assert extract_salary("Competitive pay, 3-5 years experience") is None

    def test_required_years(self):
        assert required_years("3+ years of Python and 5 years of SQL") == 5
        assert required_years("no figures here") is None

    @pytest.mark.parametrize(
        ("title", "text", "level"),
        [
            ("Staff Engineer", "", "staff"),
            ("Engineer", "We want a junior developer", "junior"),
            ("Engineer", "6+ years of experience", "senior"),
            ("Engineer", "2 years of experience", "mid level"),
            ("Engineer", "", None),
        ],
    )
    def test_experience_level(self, title, text, level):
        assert detect_experience_level(title, text) == level
