"""Keyword normalization and small text helpers."""

from __future__ import annotations

import hashlib
import re

_PUNCT = re.compile(r"[^\w\s]")
_SPACE = re.compile(r"\s+")

# Folded alias -> folded canonical spelling. No canonical value is itself an alias.
TERM_SYNONYMS = {
    "nodejs": "node js",
    "reactjs": "react",
    "react js": "react",
    "vuejs": "vue",
    "vue js": "vue",
    "nextjs": "next js",
    "expressjs": "express",
    "express js": "express",
    "js": "javascript",
    "ts": "typescript",
    "golang": "go",
    "postgres": "postgresql",
    "mongo": "mongodb",
    "k8s": "kubernetes",
    "amazon web services": "aws",
    "google cloud platform": "gcp",
    "ml": "machine learning",
}


def fold(text: str) -> str:
    """Case-fold, replace punctuation with spaces and collapse whitespace."""
    text = _PUNCT.sub(" ", text.casefold()).replace("_", " ")
    return _SPACE.sub(" ", text).strip()


def normalize_keyword(keyword: str) -> str:
    """Fold ``keyword`` and map known aliases to one spelling.

    Idempotent: ``normalize_keyword(normalize_keyword(x)) == normalize_keyword(x)``.
    "Node.js", "nodejs" and "NODE-JS" all normalize to "node js".
    """
    folded = fold(keyword)
    return TERM_SYNONYMS.get(folded, folded)


def contains_term(text: str, term: str) -> bool:
    """Whole-word containment of a normalized term inside normalized text."""
    nt = fold(term)
    if not nt:
        return False
    return f" {nt} " in f" {fold(text)} "


def word_count(text: str) -> int:
    return len(text.split())


def content_hash(*parts: str) -> str:
    """Stable sha256 over the given strings."""
    digest = hashlib.sha256()
    for part in parts:
        digest.update(part.encode("utf-8"))
        digest.update(b"\x00")
    return digest.hexdigest()


def unique(items: list[str]) -> list[str]:
    """De-duplicate by normalized form, keeping first spelling and order."""
    seen: set[str] = set()
    out: list[str] = []
    for item in items:
        key = normalize_keyword(item)
        if key and key not in seen:
            seen.add(key)
            out.append(item)
    return out
