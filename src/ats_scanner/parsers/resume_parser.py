"""Résumé text loading, cleanup and deterministic field extraction.

``extract_resume_fields`` is the fallback used when the language model
cannot parse a résumé. It works line by line over headed sections and
always returns a valid (possibly sparse) ``ParsedResume``.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from ats_scanner.models.enums import ParsingMethod, SkillCategory, SkillLevel
from ats_scanner.models.resume import (
    Certification,
    Education,
    Experience,
    Language,
    ParsedResume,
    ParseMetadata,
    PersonalInfo,
    Project,
    Skill,
)
from ats_scanner.parsers.sections import (
    DATE_RANGE,
    YEAR,
    is_bullet,
    split_sections,
    strip_bullet,
)
from ats_scanner.parsers.skill_lexicon import categorize_skill, find_known_skills
from ats_scanner.utils.dates import is_present
from ats_scanner.utils.text import normalize_keyword, word_count

logger = logging.getLogger(__name__)

# Shared emoji pattern for résumés exported from Google Docs or chat tools
EMOJI_PATTERN = (
    r"[\U0001f4e7\U0001f4de\U0001f4cd\U0001f4bc\U0001f4c5\U0001f393"
    r"\U0001f3e2\U0001f4dd\U0001f4c4\U0001f517\U0001f310\U0001f4f1"
    r"\u260e\u2709\u2706\u2702]\s*"
)

SUPPORTED_SUFFIXES = (".txt", ".md", ".markdown", "")

RESUME_HEADERS = {
    "summary": "summary",
    "professional summary": "summary",
    "career summary": "summary",
    "objective": "summary",
    "career objective": "summary",
    "profile": "summary",
    "professional profile": "summary",
    "about": "summary",
    "about me": "summary",
    "experience": "experience",
    "work experience": "experience",
    "professional experience": "experience",
    "relevant experience": "experience",
    "employment": "experience",
    "employment history": "experience",
    "work history": "experience",
    "career history": "experience",
    "education": "education",
    "academic background": "education",
    "education and training": "education",
    "skills": "skills",
    "technical skills": "skills",
    "core skills": "skills",
    "key skills": "skills",
    "core competencies": "skills",
    "competencies": "skills",
    "technologies": "skills",
    "tools and technologies": "skills",
    "skills and tools": "skills",
    "certifications": "certifications",
    "certificates": "certifications",
    "licenses and certifications": "certifications",
    "certifications and licenses": "certifications",
    "languages": "languages",
    "spoken languages": "languages",
    "projects": "projects",
    "personal projects": "projects",
    "selected projects": "projects",
    "side projects": "projects",
}

EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
PHONE_RE = re.compile(r"(?:\+?\d{1,3}[\s.-]?)?(?:\(\d{2,4}\)|\d{2,4})[\s.-]?\d{3,4}[\s.-]?\d{3,4}")
LINKEDIN_RE = re.compile(r"(?:https?://)?(?:[\w-]+\.)?linkedin\.com/in/[\w-]+/?", re.IGNORECASE)
GITHUB_RE = re.compile(r"(?:https?://)?(?:www\.)?github\.com/[\w.-]+(?:/[\w.-]+)?", re.IGNORECASE)
URL_RE = re.compile(r"(?:https?://|www\.)[^\s|,;]+", re.IGNORECASE)
LOCATION_LABEL_RE = re.compile(r"^(?:location|address|based in)\s*:\s*(.+)$", re.IGNORECASE)
CITY_RE = re.compile(r"\b([A-Z][a-zA-Z.]+(?:\s[A-Z][a-zA-Z.]+)*,\s*(?:[A-Z]{2}|[A-Z][a-z]+(?:\s[A-Z][a-z]+)*))\b")

DEGREE_RE = re.compile(
    r"(?<![A-Za-z])(bachelor'?s?|master'?s?|ph\.?\s?d\.?|doctor(?:ate)?|associate'?s?|diploma"
    r"|b\.?\s?sc?\.?|m\.?\s?sc?\.?|b\.a\.?|m\.a\.?|mba|b\.?eng\.?|m\.?eng\.?)(?![A-Za-z])",
    re.IGNORECASE,
)
INSTITUTION_RE = re.compile(r"\b(university|college|institute|school|academy|polytechnic)\b", re.IGNORECASE)
GPA_RE = re.compile(r"\bgpa\s*[:\-]?\s*(\d(?:\.\d{1,2})?)(?:\s*/\s*\d(?:\.\d)?)?", re.IGNORECASE)

LEVEL_RE = re.compile(r"\((beginner|basic|novice|intermediate|advanced|proficient|expert)\)", re.IGNORECASE)
PROFICIENCY_RE = re.compile(
    r"\b(native|bilingual|fluent|professional|conversational|basic|elementary)\b", re.IGNORECASE
)
ISSUER_RE = re.compile(
    r"\b(aws|amazon web services|google|microsoft|oracle|cisco|comptia|pmi|scrum alliance"
    r"|salesforce|linux foundation|isc2|hashicorp|red hat|cncf)\b",
    re.IGNORECASE,
)
TECH_LABEL_RE = re.compile(r"^(?:tech(?:nologies)?|stack|tech stack|built with|tools)\s*:\s*(.+)$", re.IGNORECASE)
TITLE_SPLIT_RE = re.compile(r"\s+at\s+|\s*[|@,]\s*|\s+[-–—]\s+")
LIST_SPLIT_RE = re.compile(r"[,;|•·]")


def load_text_file(file_path: str | Path) -> str:
    """Read a plain-text or Markdown résumé and return cleaned text."""
    path = Path(file_path)
    if path.suffix.lower() not in SUPPORTED_SUFFIXES:
        raise ValueError(f"Unsupported file format: {path.suffix}")
    return clean_text(path.read_text(encoding="utf-8"))


def clean_text(text: str) -> str:
    """Clean copy-paste and export artifacts.

    Handles: unicode artifacts, emoji icons, excessive whitespace,
    inconsistent bullet styles, and trailing whitespace.
    """
    # 1. Remove unicode artifacts (BOM, zero-width spaces, soft hyphens)
    text = text.lstrip("\ufeff")
    text = re.sub(r"[\u200b\u200c\u200d\u00ad\u2060\ufeff]", "", text)
    text = text.replace("\r\n", "\n").replace("\r", "\n").replace("\u00a0", " ")

    # 2. Remove emoji icons
    text = re.sub(EMOJI_PATTERN, "", text)

    # 3. Normalize bullet points (●, •, ◦, ◆, ■, ▪, ★, ○ → -)
    text = re.sub(r"^(\s*)[●•◦◆■▪★○]\s*", r"\1- ", text, flags=re.MULTILINE)
    text = re.sub(r"^(\s*)\*\s+", r"\1- ", text, flags=re.MULTILINE)

    # 4. Collapse runs of spaces/tabs inside each line
    lines = [re.sub(r"[ \t]{2,}", " ", line).strip() for line in text.splitlines()]
    text = "\n".join(lines)

    # 5. Remove excessive blank lines (3+ → 2)
    text = re.sub(r"\n{3,}", "\n\n", text)

    return text.strip()


def extract_resume_fields(text: str, file_name: str | None = None) -> ParsedResume:
    """Heuristic résumé extraction. Never raises."""
    cleaned = clean_text(text or "")
    metadata = ParseMetadata(
        word_count=word_count(cleaned),
        parsing_method=ParsingMethod.REGEX_BASIC,
        file_name=file_name,
    )
    try:
        return _extract(cleaned).model_copy(update={"metadata": metadata})
    except Exception:
        logger.exception("Field extraction failed, returning empty résumé")
        return ParsedResume(metadata=metadata)


def _extract(text: str) -> ParsedResume:
    lines = text.splitlines()
    preamble, sections = split_sections(lines, RESUME_HEADERS)
    if not sections:
        preamble = [line.strip() for line in lines if line.strip()][:6]

    if "skills" in sections:
        skills = extract_skills(sections["skills"])
    else:
        skills = [Skill(name=name, category=categorize_skill(name)) for name in find_known_skills(text)]

    return ParsedResume(
        personal_info=extract_personal_info(preamble, text),
        summary=" ".join(strip_bullet(line) for line in sections.get("summary", [])),
        experience=extract_experience(sections.get("experience", [])),
        education=extract_education(sections.get("education", [])),
        skills=skills,
        certifications=extract_certifications(sections.get("certifications", [])),
        languages=extract_languages(sections.get("languages", [])),
        projects=extract_projects(sections.get("projects", [])),
    )


def _as_url(value: str) -> str:
    return value if value.lower().startswith("http") else f"https://{value}"


def extract_personal_info(preamble: list[str], full_text: str) -> PersonalInfo:
    """Contact details from the lines above the first section header."""
    block = "\n".join(preamble)
    fields: dict[str, str] = {}

    email = EMAIL_RE.search(block) or EMAIL_RE.search(full_text)
    if email:
        fields["email"] = email.group(0)

    phone_source = EMAIL_RE.sub(" ", URL_RE.sub(" ", block))
    for candidate in PHONE_RE.finditer(phone_source):
        digits = re.sub(r"\D", "", candidate.group(0))
        if 7 <= len(digits) <= 15:
            fields["phone"] = candidate.group(0).strip()
            break

    linkedin = LINKEDIN_RE.search(full_text)
    if linkedin:
        fields["linkedin"] = _as_url(linkedin.group(0))
    github = GITHUB_RE.search(block) or GITHUB_RE.search(full_text)
    if github:
        fields["github"] = _as_url(github.group(0))
    for url in URL_RE.findall(block):
        if "linkedin.com" not in url.lower() and "github.com" not in url.lower():
            fields["portfolio"] = _as_url(url.rstrip("."))
            break

    for line in preamble:
        labelled = LOCATION_LABEL_RE.match(line)
        if labelled:
            fields["location"] = labelled.group(1).strip()
            break
        for chunk in re.split(r"\s*[|•·]\s*", line):
            if EMAIL_RE.search(chunk) or URL_RE.search(chunk) or len(chunk.split()) > 5:
                continue
            city = CITY_RE.search(chunk)
            if city:
                fields["location"] = city.group(1)
                break
        if "location" in fields:
            break

    for line in preamble:
        if _looks_like_name(line):
            fields["name"] = line.strip("# ").strip()
            break

    return PersonalInfo(**fields)


def _looks_like_name(line: str) -> bool:
    if not line or len(line) >= 50 or "@" in line:
        return False
    if URL_RE.search(line) or LINKEDIN_RE.search(line) or GITHUB_RE.search(line):
        return False
    if sum(ch.isdigit() for ch in line) >= 3:
        return False
    return any(ch.isalpha() for ch in line)


def _split_title(text: str) -> tuple[str, str]:
    """``"Engineer at Acme"`` / ``"Engineer, Acme"`` → (position, company)."""
    parts = [p.strip() for p in TITLE_SPLIT_RE.split(text, maxsplit=1) if p and p.strip()]
    if not parts:
        return "", ""
    if len(parts) == 1:
        return parts[0], ""
    return parts[0], parts[1].strip(" ,|-–—")


def _looks_like_title(text: str) -> bool:
    if not text or len(text) > 100 or text.endswith("."):
        return False
    if len(text.split()) > 12:
        return False
    return bool(TITLE_SPLIT_RE.search(text))


def _remove_span(line: str, match: re.Match) -> str:
    return (line[: match.start()] + " " + line[match.end():]).strip(" \t|,-–—()")


class _ExperienceBuilder:
    def __init__(self, position: str = "", company: str = ""):
        self.position = position
        self.company = company
        self.start_date = ""
        self.end_date: str | None = None
        self.current = False
        self.description: list[str] = []
        self.achievements: list[str] = []

    @property
    def has_body(self) -> bool:
        return bool(self.start_date or self.description or self.achievements)

    def set_dates(self, match: re.Match) -> None:
        self.start_date = match.group("start").strip()
        end = match.group("end").strip()
        if is_present(end):
            self.current = True
            self.end_date = None
        else:
            self.end_date = end

    def build(self) -> Experience | None:
        if not (self.position or self.company):
            return None
        return Experience(
            company=self.company,
            position=self.position,
            start_date=self.start_date,
            end_date=self.end_date,
            current=self.current,
            description=" ".join(self.description),
            achievements=self.achievements,
        )


def extract_experience(lines: list[str]) -> list[Experience]:
    """Entries start at a ``Position at Company`` / ``Position, Company`` line.

    A date range on the title line or the next line sets the dates; bullets
    become achievements and other lines the description.
    """
    builders: list[_ExperienceBuilder] = []
    current: _ExperienceBuilder | None = None

    for index, line in enumerate(lines):
        if is_bullet(line):
            if current is None:
                current = _ExperienceBuilder()
                builders.append(current)
            current.achievements.append(strip_bullet(line))
            continue

        dates = DATE_RANGE.search(line)
        rest = _remove_span(line, dates) if dates else line.strip()
        heading = bool(rest) and (
            _looks_like_title(rest)
            or (_precedes_dates(lines, index) and len(rest.split()) <= 8)
        )

        if current is None or (heading and current.has_body):
            current = _ExperienceBuilder(*_split_title(rest)) if rest else _ExperienceBuilder()
            builders.append(current)
        elif rest and not current.has_body and not current.company:
            # "Position" on one line, "Company" on the next
            if current.position:
                current.company = _split_title(rest)[0]
            else:
                current.position, current.company = _split_title(rest)
        elif rest:
            current.description.append(rest)

        if dates and not current.start_date:
            current.set_dates(dates)

    return [entry for entry in (b.build() for b in builders) if entry is not None]


def _precedes_dates(lines: list[str], index: int) -> bool:
    """True when the next line is a date range, alone or beside a short company name."""
    if index + 1 >= len(lines) or is_bullet(lines[index + 1]):
        return False
    following = lines[index + 1]
    dates = DATE_RANGE.search(following)
    return bool(dates) and len(_remove_span(following, dates).split()) <= 6


def extract_education(lines: list[str]) -> list[Education]:
    """Degree, institution, dates and GPA, one entry per degree/institution."""
    entries: list[dict] = []
    current: dict | None = None

    def start() -> dict:
        entry: dict = {}
        entries.append(entry)
        return entry

    for raw in lines:
        line = strip_bullet(raw)
        gpa = GPA_RE.search(line)
        if gpa:
            current = current if current is not None else start()
            current["gpa"] = gpa.group(1)
            line = _remove_span(line, gpa)

        dates = DATE_RANGE.search(line)
        year = None if dates else YEAR.search(line)

        for chunk in (c.strip() for c in re.split(r"\s*[,|]\s*|\s+[-–—]\s+", line)):
            chunk_dates = DATE_RANGE.search(chunk)
            if chunk_dates:
                chunk = _remove_span(chunk, chunk_dates)
            if chunk and YEAR.fullmatch(chunk.strip("() ")):
                continue
            if not chunk:
                continue
            degree = DEGREE_RE.search(chunk)
            if degree:
                if current is None or current.get("degree"):
                    current = start()
                degree_text, _, field = chunk.partition(" in ")
                if not field:
                    tail = chunk[degree.end():].strip(" ,:-")
                    if tail and not tail.lower().startswith(("of ", "degree")):
                        degree_text, field = chunk[: degree.end()], tail
                current["degree"] = degree_text.strip(" ,")
                if field:
                    current["field"] = YEAR.sub("", field).strip(" ,()")
            elif INSTITUTION_RE.search(chunk):
                if current is None or current.get("institution"):
                    current = start()
                current["institution"] = YEAR.sub("", chunk).strip(" ,()")
            elif current is not None and current.get("degree") and not current.get("field"):
                current["field"] = chunk

        if current is not None and dates:
            current["start_date"] = dates.group("start")
            end = dates.group("end")
            if is_present(end):
                current["current"] = True
            else:
                current["end_date"] = end
        elif current is not None and year and not current.get("end_date"):
            current["end_date"] = year.group(0)

    return [Education(**e) for e in entries if e.get("degree") or e.get("institution")]


def extract_skills(lines: list[str]) -> list[Skill]:
    """Comma/semicolon/pipe lists, optional ``Label:`` prefixes and ``(level)`` suffixes."""
    skills: list[Skill] = []
    seen: set[str] = set()
    for raw in lines:
        line = strip_bullet(raw)
        hint: SkillCategory | None = None
        label, sep, rest = line.partition(":")
        if sep and len(label) <= 30:
            line = rest
            lowered = label.lower()
            if "soft" in lowered or "interpersonal" in lowered:
                hint = SkillCategory.SOFT
            elif "tool" in lowered or "software" in lowered:
                hint = SkillCategory.TOOL
        for item in LIST_SPLIT_RE.split(line):
            level = LEVEL_RE.search(item)
            name = re.sub(r"\(.*?\)", "", item).strip(" .-\t")
            key = normalize_keyword(name)
            if not key or len(name) > 50 or key in seen:
                continue
            seen.add(key)
            skills.append(
                Skill(
                    name=name,
                    category=hint or categorize_skill(name),
                    level=SkillLevel.normalize(level.group(1)) if level else SkillLevel.INTERMEDIATE,
                )
            )
    return skills


def extract_certifications(lines: list[str]) -> list[Certification]:
    certifications: list[Certification] = []
    for raw in lines:
        line = strip_bullet(raw)
        year = YEAR.search(line)
        issuer = ISSUER_RE.search(line)
        name = YEAR.sub("", line)
        name = re.sub(r"\(\s*\)", "", name).strip(" ,-–|()")
        issuer_name = issuer.group(1) if issuer else ""
        head, sep, tail = name.rpartition(" - ")
        if sep and head and tail:
            name, issuer_name = head, tail
        if name:
            certifications.append(
                Certification(name=name.strip(), issuer=issuer_name.strip(), date=year.group(0) if year else "")
            )
    return certifications


def extract_languages(lines: list[str]) -> list[Language]:
    languages: list[Language] = []
    for raw in lines:
        for item in LIST_SPLIT_RE.split(strip_bullet(raw)):
            proficiency = PROFICIENCY_RE.search(item)
            name = re.split(r"[(:\-–]", item, maxsplit=1)[0].strip()
            if not name or len(name) > 30 or "language" in name.lower():
                continue
            languages.append(
                Language(name=name, proficiency=proficiency.group(1) if proficiency else None)
            )
    return languages


def extract_projects(lines: list[str]) -> list[Project]:
    """A non-bullet line names a project; bullets, ``[tech]`` and ``Tech:`` lines fill it in."""
    projects: list[dict] = []
    current: dict | None = None

    for raw in lines:
        bullet = is_bullet(raw)
        line = strip_bullet(raw)
        techs: list[str] = []
        labelled = TECH_LABEL_RE.match(line)
        if labelled:
            techs = [t.strip() for t in LIST_SPLIT_RE.split(labelled.group(1)) if t.strip()]
            line = ""
        for bracket in re.findall(r"\[([^\]]+)\]", line):
            techs.extend(t.strip() for t in LIST_SPLIT_RE.split(bracket) if t.strip())
        line = re.sub(r"\[[^\]]*\]", "", line).strip()

        github = GITHUB_RE.search(line)
        url = None if github else URL_RE.search(line)
        dates = DATE_RANGE.search(line)
        for match in (github, url, dates):
            if match:
                line = line.replace(match.group(0), "").strip(" ,|-–()")

        if line and not bullet and (current is None or current["description"]):
            parts = re.split(r"\s+[-–—]\s+|:\s+", line, maxsplit=1)
            current = {
                "name": parts[0].strip(),
                "description": [parts[1].strip()] if len(parts) > 1 and parts[1].strip() else [],
                "technologies": [],
            }
            projects.append(current)
        elif line:
            if current is None:
                current = {"name": "", "description": [], "technologies": []}
                projects.append(current)
            current["description"].append(line)

        if current is not None:
            current["technologies"].extend(techs)
            if github:
                current["github"] = _as_url(github.group(0))
            if url:
                current["url"] = _as_url(url.group(0))
            if dates:
                current["start_date"] = dates.group("start")
                if not is_present(dates.group("end")):
                    current["end_date"] = dates.group("end")

    return [
        Project(
            name=p["name"],
            description=" ".join(p["description"]),
            technologies=list(dict.fromkeys(p["technologies"])),
            url=p.get("url"),
            github=p.get("github"),
            start_date=p.get("start_date", ""),
            end_date=p.get("end_date"),
        )
        for p in projects
        if p["name"] or p["description"]
    ]
