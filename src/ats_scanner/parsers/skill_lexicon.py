"""Fixed skill vocabularies used by the deterministic extractors."""

from __future__ import annotations

from ats_scanner.models.enums import SkillCategory
from ats_scanner.utils.text import contains_term, normalize_keyword

TECHNICAL_SKILLS = [
    "javascript", "typescript", "python", "java", "c++", "c#", "go", "golang", "rust",
    "ruby", "php", "kotlin", "swift", "scala", "sql", "nosql", "html", "css", "sass",
    "react", "angular", "vue", "node.js", "node", "next.js", "django", "flask", "fastapi",
    "spring", "spring boot", ".net", "graphql", "rest", "rest api", "microservices",
    "aws", "azure", "gcp", "docker", "kubernetes", "terraform", "linux", "ci/cd", "devops",
    "mongodb", "postgresql", "mysql", "redis", "elasticsearch", "kafka", "spark",
    "machine learning", "deep learning", "data science", "ai", "nlp", "pandas", "numpy",
    "pytorch", "tensorflow", "webpack", "jest", "testing", "tdd", "agile", "scrum",
    "serverless", "lambda",
]

SOFT_SKILLS = [
    "leadership", "communication", "teamwork", "problem solving", "critical thinking",
    "time management", "project management", "collaboration", "adaptability",
    "creativity", "mentoring", "stakeholder management", "negotiation",
]

TOOLS = [
    "git", "github", "gitlab", "jira", "confluence", "slack", "trello", "asana", "figma",
    "sketch", "photoshop", "excel", "powerpoint", "tableau", "power bi", "salesforce",
    "hubspot", "jenkins", "github actions", "postman", "google workspace",
]

SPOKEN_LANGUAGES = [
    "english", "spanish", "french", "german", "mandarin", "chinese", "japanese",
    "korean", "portuguese", "italian", "arabic", "hindi", "russian", "dutch",
]

BUSINESS_TERMS = [
    "strategy", "planning", "analysis", "reporting", "presentation", "budget",
    "forecasting", "marketing", "sales", "customer service", "stakeholder",
]

# Terms that are too short or too common to count as a whole-text match.
_AMBIGUOUS = {"go", "ai", "rest", "node", "spring", "lambda", "testing", "sales", "planning"}

_BY_CATEGORY: list[tuple[SkillCategory, list[str]]] = [
    (SkillCategory.TOOL, TOOLS),
    (SkillCategory.SOFT, SOFT_SKILLS),
    (SkillCategory.LANGUAGE, SPOKEN_LANGUAGES),
    (SkillCategory.TECHNICAL, TECHNICAL_SKILLS),
]


def categorize_skill(name: str) -> SkillCategory:
    """Map a skill name to its category; unknown names are technical."""
    normalized = normalize_keyword(name)
    for category, terms in _BY_CATEGORY:
        if normalized in (normalize_keyword(t) for t in terms):
            return category
    for category, terms in _BY_CATEGORY:
        if any(contains_term(name, t) for t in terms if t not in _AMBIGUOUS):
            return category
    return SkillCategory.TECHNICAL


def find_known_skills(text: str, *, include_business: bool = False) -> list[str]:
    """Return lexicon skills mentioned in ``text`` as whole words, in lexicon order."""
    terms = TECHNICAL_SKILLS + SOFT_SKILLS + TOOLS
    if include_business:
        terms = terms + BUSINESS_TERMS
    found: list[str] = []
    seen: set[str] = set()
    for term in terms:
        if term in _AMBIGUOUS:
            continue
        key = normalize_keyword(term)
        if key in seen:
            continue
        if contains_term(text, term):
            seen.add(key)
            found.append(term)
    return found
