"""Explicitly constructed per-process scan context."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ats_scanner.cache.parse_cache import ParseCache
from ats_scanner.clients.llm_client import Gateway, LLMClient
from ats_scanner.config import AppConfig, load_config

logger = logging.getLogger(__name__)


@dataclass
class ScanContext:
    """Owns the gateway, configuration and parse cache shared by every stage.

    Build one with ``ScanContext.create()`` (real Claude client) or pass a
    gateway double directly. Use as an async context manager, or call
    ``close()`` when done.
    """

    llm: Gateway
    config: AppConfig = field(default_factory=AppConfig)
    cache: ParseCache | None = None

    def __post_init__(self) -> None:
        if self.cache is None and self.config.cache.enabled:
            self.cache = ParseCache(
                max_entries=self.config.cache.max_entries,
                ttl_seconds=self.config.cache.ttl_seconds,
            )

    @classmethod
    def create(cls, config: AppConfig | None = None, api_key: str | None = None) -> "ScanContext":
        config = config or load_config()
        llm = LLMClient(
            api_key=api_key,
            timeout=config.llm.timeout,
            max_retries=config.llm.max_retries,
            default_model=config.llm.model,
        )
        return cls(llm=llm, config=config)

    async def close(self) -> None:
        close = getattr(self.llm, "close", None)
        if close is not None:
            await close()
        if self.cache is not None:
            self.cache.clear()
        logger.debug("Scan context closed")

    async def __aenter__(self) -> "ScanContext":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
