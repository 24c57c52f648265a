"""Application configuration loaded from config.yaml."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml


def _check_range(name: str, value: float, low: float, high: float) -> None:
    if not low <= value <= high:
        raise ValueError(f"{name} must be between {low} and {high}, got {value}")


@dataclass(frozen=True)
class LLMConfig:
    model: str = "claude-sonnet-4-5-20250929"
    fast_model: str = "claude-haiku-4-5-20251001"
    max_retries: int = 3
    timeout: int = 60
    temperature: float = 0.2

    def __post_init__(self) -> None:
        _check_range("max_retries", self.max_retries, 1, 10)
        _check_range("timeout", self.timeout, 1, 600)
        _check_range("temperature", self.temperature, 0.0, 1.0)


@dataclass(frozen=True)
class PipelineConfig:
    fail_fast: bool = False
    max_priority_rewrites: int = 3
    max_quick_wins: int = 5

    def __post_init__(self) -> None:
        _check_range("max_priority_rewrites", self.max_priority_rewrites, 0, 20)
        _check_range("max_quick_wins", self.max_quick_wins, 0, 20)


@dataclass(frozen=True)
class CacheConfig:
    enabled: bool = True
    max_entries: int = 256
    ttl_seconds: int = 3600

    def __post_init__(self) -> None:
        _check_range("max_entries", self.max_entries, 1, 100_000)
        _check_range("ttl_seconds", self.ttl_seconds, 1, 7 * 86400)


@dataclass(frozen=True)
class AppConfig:
    llm: LLMConfig = field(default_factory=LLMConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load config from YAML file, falling back to defaults."""
    if path is None:
        candidates = [
            Path.cwd() / "config.yaml",
            Path(__file__).resolve().parent.parent.parent / "config.yaml",
        ]
        for c in candidates:
            if c.exists():
                path = c
                break

    raw: dict = {}
    if path is not None:
        p = Path(path)
        if p.exists():
            raw = yaml.safe_load(p.read_text()) or {}

    return AppConfig(
        llm=LLMConfig(**raw.get("llm", {})),
        pipeline=PipelineConfig(**raw.get("pipeline", {})),
        cache=CacheConfig(**raw.get("cache", {})),
    )
