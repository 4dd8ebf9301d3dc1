"""LLM tooling for the paper2notebook generation stages."""

from .mock import MockLLMProvider
from .providers import (
    LangChainLLMProvider,
    LLMProvider,
    ProviderDependencyError,
    ProviderError,
    ProviderSettings,
    UsageRecord,
    UsageTracker,
    build_chat_model,
    build_provider,
)

__all__ = [
    "LLMProvider",
    "LangChainLLMProvider",
    "MockLLMProvider",
    "ProviderError",
    "ProviderDependencyError",
    "ProviderSettings",
    "UsageRecord",
    "UsageTracker",
    "build_chat_model",
    "build_provider",
]
