"""Shared pydantic base for every record the pipeline produces."""

from __future__ import annotations

import logging
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, model_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

_LEADING_NUMBER = re.compile(r"-?\d[\d,]*(?:\.\d+)?")


def text_list(raw: Any) -> list[str]:
    """Coerce ``raw`` into a list of non-blank strings.

    A lone string is split into lines. Anything that is neither a string
    nor a list becomes an empty list.
    """
    if isinstance(raw, str):
        raw = raw.splitlines()
    if not isinstance(raw, list):
        return []
    return [str(item).strip() for item in raw if item is not None and str(item).strip()]


def named_items(raw: Any) -> Any:
    """Turn bare names (``"Python, Go"`` or ``["Python", ...]``) into ``{"name": ...}`` items."""
    if isinstance(raw, str):
        raw = re.split(r"[,\n]", raw)
    if isinstance(raw, list):
        return [{"name": item.strip()} if isinstance(item, str) else item for item in raw]
    return raw


def leading_number(raw: Any) -> float | None:
    """Read values like ``"5+"`` or ``"3.5 years"`` as numbers; None when there is none."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return float(raw)
    if isinstance(raw, str):
        match = _LEADING_NUMBER.search(raw)
        if match:
            return float(match.group(0).replace(",", ""))
    return None


class Record(BaseModel):
    """Frozen model that accepts camelCase (LLM / API) or snake_case input.

    Explicit nulls are dropped before validation so field defaults apply
    instead of failing on a missing string or list.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
        coerce_numbers_to_str=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data

    def to_api(self) -> dict:
        """Serialize with camelCase keys for the request/response boundary."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def validate_list(cls, raw: Any) -> list:
        """Validate each item of ``raw``, skipping the ones that don't fit."""
        items = []
        for item in raw if isinstance(raw, list) else []:
            try:
                items.append(cls.model_validate(item))
            except ValidationError:
                logger.debug("Skipping malformed %s: %r", cls.__name__, item)
        return items

    @classmethod
    def validate_or(cls, raw: Any, default: Any) -> Any:
        """Validate ``raw``, returning ``default`` when it doesn't fit."""
        try:
            return cls.model_validate(raw)
        except ValidationError:
            logger.debug("Replacing malformed %s: %r", cls.__name__, raw)
            return default
