"""Cover letter generator - writes a letter for one résumé/job pair.

The language model writes the body paragraphs in the chosen template's
tone. Greeting, introduction, closing and sign-off always come from the
template. When the model call fails the body is assembled from résumé
facts instead, and the result is flagged degraded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from ats_scanner.clients.llm_client import chat
from ats_scanner.errors import GatewayError
from ats_scanner.models.base import text_list
from ats_scanner.models.cover_letter import CoverLetter, CoverLetterTemplate
from ats_scanner.models.job import ParsedJob
from ats_scanner.models.resume import ParsedResume
from ats_scanner.models.scan import FailureKind, StageResult
from ats_scanner.pipeline.keyword_matcher import job_keywords
from ats_scanner.pipeline.orchestrator import Orchestrator
from ats_scanner.utils.text import normalize_keyword

logger = logging.getLogger(__name__)

STAGE = "cover_letter"

SYSTEM_PROMPT = """You are an expert career coach writing the body of a cover letter.

Return a JSON object:
{"paragraphs": ["first paragraph", "second paragraph"]}

Rules:
- Write 2-3 short paragraphs in the requested tone.
- Use only facts from the candidate profile; never invent employers, numbers or skills.
- Tie the candidate's experience to the job's requirements.
- No greeting, closing line or signature; those are added separately."""


@dataclass(frozen=True)
class LetterStyle:
    greeting: str
    introduction: str
    closing: str
    signoff: str
    tone: str
    addressee: str = "Hiring Manager"


STYLES: dict[CoverLetterTemplate, LetterStyle] = {
    CoverLetterTemplate.PROFESSIONAL: LetterStyle(
        greeting="Dear {addressee},",
        introduction="I am writing to express my strong interest in the {title} position at {company}.",
        closing=(
            "Thank you for considering my application. I look forward to discussing "
            "how my skills and experience align with your needs."
        ),
        signoff="Sincerely,",
        tone="formal and concise",
    ),
    CoverLetterTemplate.MODERN: LetterStyle(
        greeting="Hi {addressee},",
        introduction="I was excited to see your opening for a {title} at {company}!",
        closing="I'm eager to learn more about this opportunity and discuss how I can contribute to your team.",
        signoff="Best regards,",
        tone="warm, direct and energetic",
        addressee="there",
    ),
    CoverLetterTemplate.CREATIVE: LetterStyle(
        greeting="Hello {addressee},",
        introduction="When I came across your {title} opportunity at {company}, I knew I had to apply!",
        closing="I'd love the chance to discuss how my creative approach could benefit your projects.",
        signoff="Cheers,",
        tone="playful and personal while staying professional",
        addressee="there",
    ),
    CoverLetterTemplate.EXECUTIVE: LetterStyle(
        greeting="Dear {addressee},",
        introduction="I am writing to express my strong interest in the {title} position at {company}.",
        closing=(
            "I am confident that my leadership experience and strategic vision "
            "would make me a valuable asset to your organization."
        ),
        signoff="Respectfully,",
        tone="strategic and results-focused, written for senior leadership",
    ),
}


@dataclass(frozen=True)
class LetterFacts:
    """What the template bodies may say about the candidate and the job."""

    title: str
    company: str
    role: str
    employer: str
    skills: str
    achievement: str
    requirement: str
    innovative: bool


def join_words(items: list[str], default: str) -> str:
    """``["a", "b", "c"]`` -> ``"a, b and c"``."""
    if not items:
        return default
    if len(items) == 1:
        return items[0]
    return f"{', '.join(items[:-1])} and {items[-1]}"


def highlight_skills(resume: ParsedResume, job: ParsedJob, limit: int = 3) -> list[str]:
    """Résumé skills the job asks for first, then the rest, in résumé order."""
    wanted = {normalize_keyword(k) for k in job_keywords(job)}
    names = [s.name for s in resume.skills]
    matched = [n for n in names if normalize_keyword(n) in wanted]
    return (matched + [n for n in names if n not in matched])[:limit]


def letter_facts(resume: ParsedResume, job: ParsedJob) -> LetterFacts:
    latest = resume.experience[0] if resume.experience else None
    achievement = next((a for e in resume.experience for a in e.achievements), "")
    return LetterFacts(
        title=job.title or "open",
        company=job.company or "your company",
        role=latest.position if latest and latest.position else "",
        employer=latest.company if latest else "",
        skills=join_words(highlight_skills(resume, job), "full-stack development"),
        achievement=achievement.rstrip("."),
        requirement=job.requirements[0] if job.requirements else "",
        innovative="innovat" in job.description.lower(),
    )


def _a(role: str) -> str:
    return f"an {role}" if role[:1].lower() in "aeiou" else f"a {role}"


def professional_body(f: LetterFacts) -> list[str]:
    if f.role:
        at = f" at {f.employer}" if f.employer else ""
        opening = f"With my experience as {_a(f.role)}{at} and a background in {f.skills}"
    else:
        opening = f"With my background in {f.skills}"
    paragraphs = [f"{opening}, I am confident in my ability to contribute effectively to your team."]
    if f.requirement:
        paragraphs.append(
            f'I am particularly drawn to this role because it calls for "{f.requirement}", '
            "which matches my background closely."
        )
    if f.achievement:
        paragraphs.append(f"A recent result I am proud of: {f.achievement}.")
    return paragraphs


def modern_body(f: LetterFacts) -> list[str]:
    who = _a(f.role) if f.role else "someone"
    focus = "innovation and cutting-edge technology" if f.innovative else "excellence and quality"
    return [
        f"As {who} working with {f.skills}, I'm thrilled about the {f.title} opportunity at {f.company}!",
        f"Your focus on {focus} resonates strongly with my professional values.",
        f"I believe my hands-on experience with {f.skills} would allow me to start contributing from day one.",
    ]


def creative_body(f: LetterFacts) -> list[str]:
    who = _a(f.role) if f.role else "someone"
    culture = "forward-thinking culture" if f.innovative else "impressive work"
    paragraphs = [
        f"As {who} who loves working with {f.skills}, I couldn't help but get excited "
        f"about the {f.title} role at {f.company}."
    ]
    if f.achievement:
        paragraphs.append(f"One of my favorite wins so far: {f.achievement}.")
    paragraphs.append(
        f"Your {culture} makes this feel like the perfect match for my skills and passion. "
        "Let's make something amazing together!"
    )
    return paragraphs


def executive_body(f: LetterFacts) -> list[str]:
    who = _a(f.role) if f.role else "a leader"
    paragraphs = [f"As {who} with a proven track record in {f.skills}, I bring the experience {f.company} needs."]
    if f.achievement:
        paragraphs.append(f"Among my results: {f.achievement}.")
    paragraphs.append(
        "I would welcome the opportunity to discuss how my strategic vision and leadership "
        f"capabilities can contribute to {f.company}'s continued success and growth."
    )
    return paragraphs


BODY_WRITERS: dict[CoverLetterTemplate, Callable[[LetterFacts], list[str]]] = {
    CoverLetterTemplate.PROFESSIONAL: professional_body,
    CoverLetterTemplate.MODERN: modern_body,
    CoverLetterTemplate.CREATIVE: creative_body,
    CoverLetterTemplate.EXECUTIVE: executive_body,
}


def compose_letter(
    template: CoverLetterTemplate,
    paragraphs: list[str],
    resume: ParsedResume,
    job: ParsedJob,
    hiring_manager: str | None = None,
) -> str:
    style = STYLES[template]
    title = job.title or "open"
    company = job.company or "your company"
    parts = [
        style.greeting.format(addressee=hiring_manager or style.addressee),
        style.introduction.format(title=title, company=company),
        *paragraphs,
        style.closing,
        f"{style.signoff}\n{resume.personal_info.name or 'Your Name'}",
    ]
    return "\n\n".join(parts)


def _profile(resume: ParsedResume) -> str:
    lines = [f"Name: {resume.personal_info.name or 'unknown'}"]
    if resume.summary:
        lines.append(f"Summary: {resume.summary}")
    for e in resume.experience[:3]:
        lines.append(f"- {e.position} at {e.company}: {e.description}")
        lines += [f"  * {a}" for a in e.achievements[:3]]
    if resume.skills:
        lines.append("Skills: " + ", ".join(s.name for s in resume.skills))
    return "\n".join(lines)


class CoverLetterGenerator:
    def __init__(self, orchestrator: Orchestrator, temperature: float = 0.6):
        self.orchestrator = orchestrator
        self.llm = orchestrator.context.llm
        self.model = orchestrator.context.config.llm.model
        self.temperature = temperature

    async def generate(
        self,
        resume_text: str,
        job_text: str,
        template: CoverLetterTemplate | str = CoverLetterTemplate.PROFESSIONAL,
        *,
        hiring_manager: str | None = None,
    ) -> StageResult[CoverLetter]:
        try:
            kind = CoverLetterTemplate(template)
        except ValueError:
            return StageResult.fail(STAGE, FailureKind.VALIDATION, f"Unknown cover letter template: {template}")

        parsed, _ = await self.orchestrator.parse_resume(resume_text)
        if not parsed.ok:
            return parsed
        posting, _ = await self.orchestrator.parse_job(job_text)
        if not posting.ok:
            return posting
        resume, job = parsed.value, posting.value

        paragraphs, degraded = await self.write_body(resume, job, kind)
        letter = CoverLetter(
            template=kind,
            content=compose_letter(kind, paragraphs, resume, job, hiring_manager),
            job_title=job.title,
            company=job.company,
            paragraphs=paragraphs,
        )
        logger.info(
            "Cover letter written (%s, %d paragraphs) for %s",
            kind.value, len(paragraphs), job.title or "untitled job",
        )
        return StageResult.success(STAGE, letter, degraded=degraded or parsed.degraded or posting.degraded)

    async def write_body(
        self, resume: ParsedResume, job: ParsedJob, template: CoverLetterTemplate
    ) -> tuple[list[str], bool]:
        """Return (paragraphs, degraded); the template body stands in for a failed call."""
        requirements = "\n".join(f"- {r}" for r in job.requirements[:8]) or "- not listed"
        prompt = (
            f"Tone: {STYLES[template].tone}\n\n"
            f"Job: {job.title or 'untitled'} at {job.company or 'unknown company'}\n"
            f"Requirements:\n{requirements}\n\n"
            f"Candidate profile:\n{_profile(resume)}"
        )
        try:
            data = await self.llm.generate_json(
                chat(SYSTEM_PROMPT, prompt),
                model=self.model,
                temperature=self.temperature,
                max_tokens=1500,
            )
        except GatewayError as e:
            logger.warning("Cover letter call failed, using template body: %s", e)
            return BODY_WRITERS[template](letter_facts(resume, job)), True

        paragraphs = text_list(data.get("paragraphs"))
        if not paragraphs:
            logger.warning("Cover letter reply had no paragraphs, using template body")
            return BODY_WRITERS[template](letter_facts(resume, job)), True
        return paragraphs, False
