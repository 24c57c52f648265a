"""Utility to extract JSON objects from language model replies."""

from __future__ import annotations

import json


def extract_json(text: str | None) -> dict:
    """Extract a JSON object from an LLM reply.

    Tries in order:
    1. Direct json.loads on the full text
    2. Strip fenced code block markers and parse
    3. Find first '{' to last '}' and parse
    4. Close braces/brackets left open by a truncated reply

    Raises ValueError when nothing parses or the payload is not an object.
    """
    if not text or not text.strip():
        raise ValueError("Empty response, no JSON to extract")
    text = text.strip()

    for candidate in (text, _strip_code_fences(text)):
        try:
            return _require_object(json.loads(candidate))
        except json.JSONDecodeError:
            pass

    result = _extract_braces(text)
    if result is not None:
        return _require_object(result)

    result = _close_truncated(text)
    if result is not None:
        return _require_object(result)

    raise ValueError(f"Could not extract JSON from text: {text[:200]}...")


def _require_object(data: object) -> dict:
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def _strip_code_fences(text: str) -> str:
    lines = text.split("\n")
    if lines and lines[0].strip().startswith("```"):
        lines = lines[1:]
    while lines and lines[-1].strip() in ("```", ""):
        lines = lines[:-1]
    return "\n".join(lines).strip()


def _extract_braces(text: str) -> object | None:
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        try:
            return json.loads(text[start : end + 1])
        except json.JSONDecodeError:
            pass
    return None


def _close_truncated(text: str) -> object | None:
    start = text.find("{")
    if start == -1:
        return None
    candidate = text[start:].rstrip().rstrip(",")
    open_braces = candidate.count("{") - candidate.count("}")
    open_brackets = candidate.count("[") - candidate.count("]")
    if open_braces <= 0 and open_brackets <= 0:
        return None
    try:
        return json.loads(candidate + "]" * max(0, open_brackets) + "}" * max(0, open_braces))
    except json.JSONDecodeError:
        return None
