"""Job description cleanup and deterministic field extraction."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from ats_scanner.models.enums import ParsingMethod
from ats_scanner.models.job import JobSkill, ParsedJob, SalaryRange
from ats_scanner.models.resume import ParseMetadata
from ats_scanner.parsers.resume_parser import CITY_RE, LIST_SPLIT_RE
from ats_scanner.parsers.sections import split_sections, strip_bullet
from ats_scanner.parsers.skill_lexicon import categorize_skill, find_known_skills
from ats_scanner.utils.text import normalize_keyword, unique, word_count

logger = logging.getLogger(__name__)

JOB_HEADERS = {
    "about the role": "description",
    "about the job": "description",
    "about this role": "description",
    "job description": "description",
    "role overview": "description",
    "overview": "description",
    "summary": "description",
    "the role": "description",
    "description": "description",
    "requirements": "requirements",
    "qualifications": "requirements",
    "required qualifications": "requirements",
    "minimum qualifications": "requirements",
    "basic qualifications": "requirements",
    "what you need": "requirements",
    "what you'll need": "requirements",
    "what we're looking for": "requirements",
    "must have": "requirements",
    "must haves": "requirements",
    "skills needed": "requirements",
    "preferred qualifications": "preferred",
    "preferred": "preferred",
    "nice to have": "preferred",
    "nice to haves": "preferred",
    "bonus points": "preferred",
    "pluses": "preferred",
    "responsibilities": "responsibilities",
    "key responsibilities": "responsibilities",
    "duties": "responsibilities",
    "what you'll do": "responsibilities",
    "what you will do": "responsibilities",
    "day to day": "responsibilities",
    "benefits": "benefits",
    "perks": "benefits",
    "perks and benefits": "benefits",
    "what we offer": "benefits",
    "compensation and benefits": "benefits",
    "skills": "skills",
    "required skills": "skills",
    "technologies": "skills",
    "tech stack": "skills",
    "tools": "skills",
    "about us": "company",
    "about the company": "company",
    "who we are": "company",
}

TITLE_WORDS = (
    "engineer", "developer", "manager", "analyst", "designer", "consultant",
    "specialist", "coordinator", "director", "lead", "architect", "administrator",
    "scientist", "programmer", "intern", "assistant", "associate", "advisor",
)

TITLE_LABEL_RE = re.compile(r"^(?:job title|position|role|title)\s*:\s*(.+)$", re.IGNORECASE)
COMPANY_LABEL_RE = re.compile(r"^(?:company|organization|employer)\s*:\s*(.+)$", re.IGNORECASE)
LOCATION_LABEL_RE = re.compile(r"^(?:location|based in|office)\s*:\s*(.+)$", re.IGNORECASE)
INDUSTRY_LABEL_RE = re.compile(r"^industry\s*:\s*(.+)$", re.IGNORECASE)
DEPARTMENT_LABEL_RE = re.compile(r"^(?:department|team)\s*:\s*(.+)$", re.IGNORECASE)
EMPLOYMENT_RE = re.compile(r"\b(full[- ]time|part[- ]time|contract|temporary|internship|freelance)\b", re.IGNORECASE)
ARRANGEMENT_RE = re.compile(r"\b(remote|hybrid|on[- ]?site)\b", re.IGNORECASE)
REQUIRED_WORDS_RE = re.compile(r"\b(required|must have|must-have|essential|mandatory)\b", re.IGNORECASE)
YEARS_RE = re.compile(r"(\d{1,2})\s*\+?\s*(?:-\s*\d{1,2}\s*)?(?:years?|yrs?)\b", re.IGNORECASE)

_AMOUNT = r"\$?\s?(\d{1,3}(?:,\d{3})+|\d+(?:\.\d+)?)\s*(k)?"
SALARY_RANGE_RE = re.compile(rf"{_AMOUNT}\s*(?:-|–|—|to)\s*{_AMOUNT}", re.IGNORECASE)
SALARY_SINGLE_RE = re.compile(r"\$\s?(\d{1,3}(?:,\d{3})+|\d+(?:\.\d+)?)\s*(k)?", re.IGNORECASE)

# Title-only levels: these words are too common in body text.
_TITLE_LEVELS = [
    (re.compile(r"\bprincipal\b", re.I), "principal"),
    (re.compile(r"\bstaff\b", re.I), "staff"),
    (re.compile(r"\b(?:lead|head of)\b", re.I), "lead"),
    (re.compile(r"\bdirector\b", re.I), "director"),
]
_LEVELS = [
    (re.compile(r"\b(?:senior|sr\.?)(?![a-z])", re.I), "senior"),
    (re.compile(r"\bmid[- ]?(?:level|senior)?\b|\bintermediate\b", re.I), "mid level"),
    (re.compile(r"\b(?:junior|jr\.?)(?![a-z])", re.I), "junior"),
    (re.compile(r"\bentry[- ]level\b", re.I), "entry level"),
    (re.compile(r"\bintern(?:ship)?\b", re.I), "intern"),
]


def parse_jd(text: str) -> str:
    """Clean and normalize job description text."""
    text = text.lstrip("\ufeff").replace("\r\n", "\n").replace("\u00a0", " ")
    text = re.sub(r"^(\s*)[●•◦◆■▪★○]\s*", r"\1- ", text, flags=re.MULTILINE)
    text = re.sub(r"[ \t]+", " ", text)
    # Strip leading/trailing whitespace per line
    lines = [line.strip() for line in text.splitlines()]
    text = "\n".join(lines)
    return re.sub(r"\n{3,}", "\n\n", text).strip()


def load_jd_file(file_path: str | Path) -> str:
    """Load a job description from a text file."""
    return parse_jd(Path(file_path).read_text(encoding="utf-8"))


def required_years(text: str) -> int | None:
    """Largest ``N years`` / ``N+ years`` figure mentioned, if any."""
    years = [int(m.group(1)) for m in YEARS_RE.finditer(text)]
    years = [y for y in years if y <= 40]
    return max(years) if years else None


def detect_experience_level(title: str, text: str) -> str | None:
    for pattern, level in _TITLE_LEVELS + _LEVELS:
        if pattern.search(title):
            return level
    for pattern, level in _LEVELS:
        if pattern.search(text):
            return level
    years = required_years(text)
    if years is None:
        return None
    if years >= 5:
        return "senior"
    if years >= 2:
        return "mid level"
    return "entry level"


def extract_salary(text: str) -> SalaryRange | None:
    """``$90,000 - $120,000``, ``$90k-$120k``, ``90-120k`` or a single ``$100k``."""
    for line in text.splitlines():
        match = SALARY_RANGE_RE.search(line)
        if match and ("$" in match.group(0) or match.group(2) or match.group(4)):
            low, high = _amount(match.group(1)), _amount(match.group(3))
            # "90-120k": the suffix applies to both ends
            low_k = match.group(2) or (match.group(4) and low < 1000)
            high_k = match.group(4) or (match.group(2) and high < 1000)
            low = low * 1000 if low_k else low
            high = high * 1000 if high_k else high
            if low >= 1000 and high >= low:
                return SalaryRange(min=low, max=high)
        single = SALARY_SINGLE_RE.search(line)
        if single:
            amount = _amount(single.group(1)) * (1000 if single.group(2) else 1)
            if amount >= 1000:
                return SalaryRange(min=amount, max=amount)
    return None


def _amount(value: str) -> float:
    return float(value.replace(",", ""))


def extract_job_fields(text: str) -> ParsedJob:
    """Heuristic job-posting extraction. Never raises."""
    cleaned = parse_jd(text or "")
    metadata = ParseMetadata(word_count=word_count(cleaned), parsing_method=ParsingMethod.REGEX_BASIC)
    try:
        return _extract(cleaned).model_copy(update={"metadata": metadata})
    except Exception:
        logger.exception("Field extraction failed, returning empty job")
        return ParsedJob(metadata=metadata)


def _labelled(lines: list[str], pattern: re.Pattern) -> str | None:
    for line in lines:
        match = pattern.match(line)
        if match:
            return match.group(1).strip()
    return None


def _items(lines: list[str]) -> list[str]:
    return [strip_bullet(line) for line in lines if strip_bullet(line)]


def _extract(text: str) -> ParsedJob:
    lines = [line for line in text.splitlines() if line.strip()]
    preamble, sections = split_sections(lines, JOB_HEADERS)

    title, company = _title_and_company(preamble or lines[:5], lines)
    location = _labelled(lines, LOCATION_LABEL_RE)
    if location is None:
        for line in (preamble or lines)[:10]:
            city = CITY_RE.search(line)
            if city and not TITLE_LABEL_RE.match(line):
                location = city.group(1)
                break
    employment = EMPLOYMENT_RE.search(text) or ARRANGEMENT_RE.search(text)

    description = " ".join(_items(sections.get("description", [])))
    if not description:
        description = " ".join(
            line for line in preamble if not _is_label_line(line) and line not in (title, company)
        )

    requirements = _items(sections.get("requirements", []))
    skills = extract_job_skills(text, sections)
    preferred = _items(sections.get("preferred", []))

    return ParsedJob(
        title=title,
        company=company,
        location=location,
        employment_type=normalize_keyword(employment.group(1)).replace(" ", "-") if employment else None,
        experience_level=detect_experience_level(title, text),
        salary=extract_salary(text),
        description=description,
        requirements=requirements + preferred,
        responsibilities=_items(sections.get("responsibilities", [])),
        benefits=_items(sections.get("benefits", [])),
        skills=skills,
        keywords=unique([s.name for s in skills] + extract_keywords(text)),
        industry=_labelled(lines, INDUSTRY_LABEL_RE),
        department=_labelled(lines, DEPARTMENT_LABEL_RE),
    )


def _is_label_line(line: str) -> bool:
    return any(
        p.match(line)
        for p in (TITLE_LABEL_RE, COMPANY_LABEL_RE, LOCATION_LABEL_RE, INDUSTRY_LABEL_RE, DEPARTMENT_LABEL_RE)
    )


def _title_and_company(head: list[str], lines: list[str]) -> tuple[str, str]:
    title = _labelled(lines, TITLE_LABEL_RE) or ""
    company = _labelled(lines, COMPANY_LABEL_RE) or ""
    if not title:
        for line in head[:5]:
            lowered = line.lower()
            if 5 < len(line) < 100 and any(re.search(rf"\b{w}", lowered) for w in TITLE_WORDS):
                title = line
                break
        else:
            title = head[0] if head else ""
    if " at " in title and len(title) < 100:
        title, _, at_company = title.partition(" at ")
        company = company or at_company.strip()
    return title.strip(" -|"), company.strip(" -|")


def extract_job_skills(text: str, sections: dict[str, list[str]]) -> list[JobSkill]:
    """Skills from a skills section, then lexicon terms from requirement sections.

    Required when the line says required/must have/essential, or the term
    appears in the requirements section. With no requirements or skills
    section at all, every lexicon term found in the text is required.
    """
    found: dict[str, JobSkill] = {}

    def add(name: str, required: bool) -> None:
        key = normalize_keyword(name)
        if not key or len(name) > 50:
            return
        existing = found.get(key)
        if existing is None:
            found[key] = JobSkill(name=name, required=required, category=categorize_skill(name))
        elif required and not existing.required:
            found[key] = existing.model_copy(update={"required": True})

    for raw in sections.get("skills", []):
        line = strip_bullet(raw)
        required = bool(REQUIRED_WORDS_RE.search(line))
        label, sep, rest = line.partition(":")
        if sep and len(label) <= 30:
            line = rest
        for item in LIST_SPLIT_RE.split(line):
            name = REQUIRED_WORDS_RE.sub("", re.sub(r"\(.*?\)", "", item)).strip(" .-")
            add(name, required)

    requirement_text = "\n".join(sections.get("requirements", []))
    for name in find_known_skills(requirement_text):
        add(name, True)
    for line in sections.get("preferred", []):
        for name in find_known_skills(line):
            add(name, bool(REQUIRED_WORDS_RE.search(line)))

    if "requirements" not in sections and "skills" not in sections:
        for name in find_known_skills(text):
            add(name, True)
    else:
        for line in text.splitlines():
            if REQUIRED_WORDS_RE.search(line):
                for name in find_known_skills(line):
                    add(name, True)

    return list(found.values())


def extract_keywords(text: str) -> list[str]:
    """Technical, soft-skill and business lexicon terms present in the text."""
    return unique(find_known_skills(text, include_business=True))
