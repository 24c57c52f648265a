"""Split cleaned document text into headed sections."""

from __future__ import annotations

import re

_BULLET = re.compile(r"^\s*(?:[-*•●◦▪]|\d{1,2}[.)])\s+")
_HEADER_TRIM = re.compile(r"^[#\s]+|[\s:]+$")

MONTH_NAME = r"(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\.?"
DATE_TOKEN = rf"(?:{MONTH_NAME},?\s+\d{{4}}|\d{{1,2}}/\d{{4}}|\d{{4}}[-./]\d{{1,2}}|\d{{4}})"
DATE_RANGE = re.compile(
    rf"(?P<start>{DATE_TOKEN})\s*(?:-|–|—|to|until)\s*(?P<end>{DATE_TOKEN}|present|current|now|today)",
    re.IGNORECASE,
)
YEAR = re.compile(r"\b(?:19|20)\d{2}\b")


def is_bullet(line: str) -> bool:
    return bool(_BULLET.match(line))


def strip_bullet(line: str) -> str:
    return _BULLET.sub("", line, count=1).strip()


def header_key(line: str, headers: dict[str, str]) -> tuple[str | None, str]:
    """Return (section key, inline remainder) when ``line`` is a section header.

    ``"## Work Experience"`` and ``"SKILLS:"`` are headers; so is
    ``"Skills: Python, Go"``, whose remainder is ``"Python, Go"``.
    """
    stripped = line.strip()
    if not stripped or is_bullet(stripped):
        return None, ""
    label, sep, rest = stripped.partition(":")
    candidate = _HEADER_TRIM.sub("", label).lower()
    candidate = re.sub(r"\s+", " ", candidate).replace("&", "and")
    if len(candidate) > 40:
        return None, ""
    key = headers.get(candidate)
    if key is None:
        return None, ""
    return key, rest.strip() if sep else ""


def split_sections(
    lines: list[str], headers: dict[str, str]
) -> tuple[list[str], dict[str, list[str]]]:
    """Group lines under the most recent header.

    Returns the lines before the first header and a mapping of section key
    to its lines. A repeated header extends the existing section.
    """
    preamble: list[str] = []
    sections: dict[str, list[str]] = {}
    current: str | None = None
    for line in lines:
        key, rest = header_key(line, headers)
        if key is not None:
            current = key
            sections.setdefault(key, [])
            if rest:
                sections[key].append(rest)
            continue
        if not line.strip():
            continue
        if current is None:
            preamble.append(line.strip())
        else:
            sections[current].append(line.strip())
    return preamble, sections
