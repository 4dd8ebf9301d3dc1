"""Dataclass-driven configuration for the paper2notebook service."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

__all__ = [
    "LLMConfig",
    "GistConfig",
    "PipelineConfig",
    "ServerConfig",
    "AppConfig",
]


def _env_float(name: str, default: float | None = None) -> float | None:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:  # pragma: no cover
        return default


def _env_int(name: str, default: int | None = None) -> int | None:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:  # pragma: no cover
        return default


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_path(name: str) -> Path | None:
    raw = os.getenv(name)
    return Path(raw).expanduser() if raw else None


@dataclass(slots=True)
class LLMConfig:
    """Configuration for the LangChain-backed chat model."""

    provider: str = field(default_factory=lambda: os.getenv("PAPER2NB_PROVIDER", "openai"))
    model: str = field(default_factory=lambda: os.getenv("PAPER2NB_MODEL", "gpt-4o-mini"))
    base_url: str | None = field(
        default_factory=lambda: os.getenv("PAPER2NB_BASE_URL") or os.getenv("OPENAI_BASE_URL")
    )
    temperature: float = field(default_factory=lambda: _env_float("PAPER2NB_TEMPERATURE", 0.2) or 0.0)
    max_tokens: int | None = field(default_factory=lambda: _env_int("PAPER2NB_MAX_TOKENS"))
    timeout: float | None = field(default_factory=lambda: _env_float("PAPER2NB_TIMEOUT", 180.0))
    api_key_env: str = "PAPER2NB_API_KEY"
    fallback_api_key_envs: tuple[str, ...] = ("OPENAI_API_KEY",)

    @property
    def is_mock(self) -> bool:
        return self.provider.lower() in {"mock", "test", "stub"}

    def resolve_api_key(self, override: str | None = None) -> str | None:
        if override:
            return override
        env_candidates: Iterable[str | None] = (self.api_key_env, *self.fallback_api_key_envs)
        for name in env_candidates:
            if not name:
                continue
            value = os.getenv(name)
            if value:
                return value
        return None

    def provider_kwargs(self, **overrides: object) -> dict[str, object | None]:
        kwargs: dict[str, object | None] = {
            "model": self.model,
            "base_url": self.base_url,
            "api_key": self.resolve_api_key(),
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "timeout": self.timeout,
        }
        kwargs.update({key: value for key, value in overrides.items() if value is not None})
        return kwargs


@dataclass(slots=True)
class GistConfig:
    """Credentials and options for publishing notebooks as gists."""

    token: str | None = field(default_factory=lambda: os.getenv("GITHUB_TOKEN"))
    public: bool = field(default_factory=lambda: _env_bool("PAPER2NB_GIST_PUBLIC", False))
    api_url: str = field(default_factory=lambda: os.getenv("GITHUB_API_URL", "https://api.github.com"))
    timeout: float = field(default_factory=lambda: _env_float("PAPER2NB_GIST_TIMEOUT", 30.0) or 30.0)


@dataclass(slots=True)
class PipelineConfig:
    """Pipeline behaviour: input threshold, caching and publication target."""

    min_text_length: int = field(default_factory=lambda: _env_int("PAPER2NB_MIN_TEXT_LENGTH", 100) or 100)
    cache_dir: Path | None = field(default_factory=lambda: _env_path("PAPER2NB_CACHE_DIR"))
    publish_dir: Path | None = field(default_factory=lambda: _env_path("PAPER2NB_PUBLISH_DIR"))
    dedupe_inflight: bool = field(default_factory=lambda: _env_bool("PAPER2NB_DEDUPE_INFLIGHT", False))


@dataclass(slots=True)
class ServerConfig:
    """HTTP service settings."""

    host: str = field(default_factory=lambda: os.getenv("HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: _env_int("PORT", 3001) or 3001)
    cors_origins: tuple[str, ...] = field(
        default_factory=lambda: tuple(
            origin.strip() for origin in os.getenv("PAPER2NB_CORS_ORIGINS", "*").split(",") if origin.strip()
        )
    )


@dataclass(slots=True)
class AppConfig:
    """Primary configuration entry point."""

    llm: LLMConfig = field(default_factory=LLMConfig)
    gist: GistConfig = field(default_factory=GistConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    @classmethod
    def from_env(cls) -> "AppConfig":
        return cls()
