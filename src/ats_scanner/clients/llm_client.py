"""Claude API gateway with async support, timeout and retry logic."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Protocol

import anthropic
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ats_scanner.errors import GatewayError
from ats_scanner.utils.json_parser import extract_json

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-5-20250929"

JSON_OBJECT = {"type": "json_object"}

JSON_INSTRUCTION = (
    "Respond with a single valid JSON object only. "
    "No markdown fences, explanations or additional text."
)

# Errors worth a second attempt; everything else fails immediately.
RETRYABLE_ERRORS = (
    anthropic.APIConnectionError,
    anthropic.APITimeoutError,
    anthropic.RateLimitError,
    anthropic.InternalServerError,
)

# Calls recorded by the innermost track_usage() block of the current task.
_usage_scope: ContextVar[list[tuple[str, int, int]] | None] = ContextVar("usage_scope", default=None)


@dataclass
class LLMResponse:
    """Response from the LLM including usage metadata."""

    text: str
    input_tokens: int
    output_tokens: int


class Gateway(Protocol):
    """What the pipeline agents need from a text-generation service."""

    async def generate_json(
        self,
        messages: list[dict],
        *,
        model: str = ...,
        temperature: float = ...,
        max_tokens: int = ...,
    ) -> dict: ...


def chat(system: str, prompt: str) -> list[dict]:
    """Build a system + user message list."""
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": prompt},
    ]


def summarize_usage(calls: list[tuple[str, int, int]]) -> dict:
    """Total a list of (model, input_tokens, output_tokens) calls."""
    return {
        "input": sum(c[1] for c in calls),
        "output": sum(c[2] for c in calls),
        "calls": list(calls),
    }


@contextmanager
def track_usage() -> Iterator[list[tuple[str, int, int]]]:
    """Collect the token usage of every LLMClient call made inside the block.

    Tasks started inside the block (e.g. by ``asyncio.gather``) report into
    the same list. Concurrent blocks in separate tasks stay separate.
    """
    calls: list[tuple[str, int, int]] = []
    token = _usage_scope.set(calls)
    try:
        yield calls
    finally:
        _usage_scope.reset(token)


def split_system(messages: list[dict]) -> tuple[str, list[dict]]:
    """Pull system-role messages out into a single system prompt."""
    system_parts = [m["content"] for m in messages if m.get("role") == "system"]
    rest = [
        {"role": m.get("role", "user"), "content": m["content"]}
        for m in messages
        if m.get("role") != "system"
    ]
    return "\n\n".join(system_parts), rest


class LLMClient:
    """Async Claude API client with exponential-backoff retries.

    Any failure (network, timeout, empty or non-JSON content) is raised
    as GatewayError so callers only ever handle one exception type.
    """

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float | None = None,
        max_retries: int = 3,
        default_model: str = DEFAULT_MODEL,
    ):
        kwargs: dict = {}
        if api_key is not None:
            kwargs["api_key"] = api_key
        if timeout is not None:
            kwargs["timeout"] = timeout
        # tenacity owns retries; the SDK's own retry loop is disabled.
        kwargs["max_retries"] = 0
        self.client = anthropic.AsyncAnthropic(**kwargs)
        self.max_retries = max_retries
        self.default_model = default_model
        self._token_log: list[tuple[str, int, int]] = []  # (model, input_tokens, output_tokens)

    async def _call_api(self, **kwargs) -> anthropic.types.Message:
        """Make the actual API call with retry logic."""
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(min=1, max=10),
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            reraise=True,
        ):
            with attempt:
                return await self.client.messages.create(**kwargs)

    async def generate(
        self,
        messages: list[dict],
        *,
        model: str | None = None,
        temperature: float = 0.2,
        max_tokens: int = 2000,
        response_format: dict | None = None,
    ) -> LLMResponse:
        """Send chat messages to Claude and return the text response with usage."""
        model = model or self.default_model
        system, chat = split_system(messages)
        if response_format and response_format.get("type") == "json_object":
            system = f"{system}\n\n{JSON_INSTRUCTION}" if system else JSON_INSTRUCTION
        if not chat:
            raise GatewayError("No user message to send")

        kwargs: dict = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": chat,
        }
        if system:
            kwargs["system"] = system

        logger.debug("LLM call: model=%s", model)
        try:
            message = await self._call_api(**kwargs)
        except anthropic.APIError as e:
            logger.error("LLM call failed", exc_info=True)
            raise GatewayError(f"LLM call failed: {e}") from e

        input_tokens = message.usage.input_tokens
        output_tokens = message.usage.output_tokens
        logger.debug("LLM response: %d input, %d output tokens", input_tokens, output_tokens)
        self._token_log.append((model, input_tokens, output_tokens))
        scope = _usage_scope.get()
        if scope is not None:
            scope.append((model, input_tokens, output_tokens))

        text = "".join(
            getattr(block, "text", "") for block in (message.content or [])
        )
        if not text.strip():
            raise GatewayError("LLM returned empty content")
        return LLMResponse(
            text=text,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )

    async def generate_json(
        self,
        messages: list[dict],
        *,
        model: str | None = None,
        temperature: float = 0.2,
        max_tokens: int = 2000,
    ) -> dict:
        """Send messages requesting a JSON object and parse the reply."""
        response = await self.generate(
            messages,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            response_format=JSON_OBJECT,
        )
        try:
            return extract_json(response.text)
        except ValueError as e:
            raise GatewayError(str(e)) from e

    def get_token_summary(self) -> dict:
        """Return accumulated token usage and reset the log."""
        summary = summarize_usage(self._token_log)
        self._token_log.clear()
        return summary

    async def close(self) -> None:
        await self.client.close()
