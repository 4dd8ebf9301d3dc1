"""Build a ready-to-run orchestrator from :class:`AppConfig`."""

from __future__ import annotations

import logging

from .config import AppConfig
from .llm import LLMProvider, MockLLMProvider, build_provider
from .pipeline.cache import CacheStore, InMemoryCacheStore, JsonFileCacheStore
from .pipeline.orchestrator import PipelineOrchestrator
from .pipeline.publisher import GistPublisher, LocalPublisher, Publisher
from .pipeline.stages import LLMGenerationStages

__all__ = [
    "create_provider",
    "create_publisher",
    "create_cache",
    "build_orchestrator",
]

logger = logging.getLogger(__name__)


def create_provider(config: AppConfig) -> LLMProvider:
    if config.llm.is_mock:
        return MockLLMProvider(model=config.llm.model)
    return build_provider(**config.llm.provider_kwargs())


def create_publisher(config: AppConfig) -> Publisher:
    if config.pipeline.publish_dir is not None and not config.gist.token:
        logger.info("Publishing notebooks to %s", config.pipeline.publish_dir)
        return LocalPublisher(config.pipeline.publish_dir)
    return GistPublisher(
        config.gist.token,
        public=config.gist.public,
        api_url=config.gist.api_url,
        timeout=config.gist.timeout,
    )


def create_cache(config: AppConfig) -> CacheStore:
    if config.pipeline.cache_dir is not None:
        return JsonFileCacheStore(config.pipeline.cache_dir)
    return InMemoryCacheStore()


def build_orchestrator(config: AppConfig | None = None) -> PipelineOrchestrator:
    config = config or AppConfig.from_env()
    return PipelineOrchestrator(
        LLMGenerationStages(create_provider(config)),
        create_publisher(config),
        cache=create_cache(config),
        min_text_length=config.pipeline.min_text_length,
        dedupe_inflight=config.pipeline.dedupe_inflight,
    )
