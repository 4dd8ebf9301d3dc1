from __future__ import annotations

from pathlib import Path

import pytest

from paper2notebook.config import AppConfig, LLMConfig
from paper2notebook.llm import MockLLMProvider
from paper2notebook.pipeline.cache import InMemoryCacheStore, JsonFileCacheStore
from paper2notebook.pipeline.publisher import GistPublisher, LocalPublisher
from paper2notebook.runtime import build_orchestrator, create_cache, create_provider, create_publisher


def test_llm_config_resolve_api_key_precedence(monkeypatch: pytest.MonkeyPatch) -> None:
    cfg = LLMConfig(api_key_env="CUSTOM", fallback_api_key_envs=("OPENAI_API_KEY",))

    assert cfg.resolve_api_key(override="override-key") == "override-key"

    monkeypatch.setenv("CUSTOM", "primary-key")
    assert cfg.resolve_api_key() == "primary-key"

    monkeypatch.delenv("CUSTOM")
    monkeypatch.setenv("OPENAI_API_KEY", "fallback-key")
    assert cfg.resolve_api_key() == "fallback-key"


def test_llm_config_provider_kwargs_merge() -> None:
    cfg = LLMConfig(
        model="base-model",
        base_url="https://example.com",
        temperature=0.3,
        max_tokens=256,
    )
    kwargs = cfg.provider_kwargs(api_key="inline-key", temperature=0.8)

    assert kwargs["model"] == "base-model"
    assert kwargs["base_url"] == "https://example.com"
    assert kwargs["api_key"] == "inline-key"
    assert kwargs["temperature"] == 0.8
    assert kwargs["max_tokens"] == 256


def test_app_config_defaults() -> None:
    cfg = AppConfig.from_env()

    assert cfg.llm.provider == "openai"
    assert cfg.gist.token is None
    assert cfg.pipeline.min_text_length == 100
    assert cfg.pipeline.cache_dir is None
    assert cfg.pipeline.dedupe_inflight is False
    assert cfg.server.port == 3001
    assert cfg.server.cors_origins == ("*",)


def test_app_config_reads_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("PAPER2NB_PROVIDER", "mock")
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_env")
    monkeypatch.setenv("PAPER2NB_GIST_PUBLIC", "true")
    monkeypatch.setenv("PAPER2NB_MIN_TEXT_LENGTH", "250")
    monkeypatch.setenv("PAPER2NB_CACHE_DIR", str(tmp_path / "cache"))
    monkeypatch.setenv("PAPER2NB_DEDUPE_INFLIGHT", "1")
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("PAPER2NB_CORS_ORIGINS", "http://localhost:5173, https://example.com")

    cfg = AppConfig.from_env()

    assert cfg.llm.is_mock
    assert cfg.gist.token == "ghp_env"
    assert cfg.gist.public is True
    assert cfg.pipeline.min_text_length == 250
    assert cfg.pipeline.cache_dir == tmp_path / "cache"
    assert cfg.pipeline.dedupe_inflight is True
    assert cfg.server.port == 8080
    assert cfg.server.cors_origins == ("http://localhost:5173", "https://example.com")


def test_runtime_factories_follow_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("PAPER2NB_PROVIDER", "mock")
    cfg = AppConfig.from_env()

    assert isinstance(create_provider(cfg), MockLLMProvider)
    assert isinstance(create_publisher(cfg), GistPublisher)
    assert isinstance(create_cache(cfg), InMemoryCacheStore)

    cfg.pipeline.publish_dir = tmp_path / "notebooks"
    cfg.pipeline.cache_dir = tmp_path / "cache"
    assert isinstance(create_publisher(cfg), LocalPublisher)
    assert isinstance(create_cache(cfg), JsonFileCacheStore)

    orchestrator = build_orchestrator(cfg)
    assert orchestrator.min_text_length == 100
    assert isinstance(orchestrator.cache, JsonFileCacheStore)
