"""LangChain chat provider abstraction for the generation stages."""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage

try:  # pragma: no cover - import guard for optional dependency
    from langchain_openai import ChatOpenAI
except ImportError:  # pragma: no cover - gracefully degrade when dependency missing
    ChatOpenAI = None  # type: ignore[assignment]

__all__ = [
    "ProviderError",
    "ProviderDependencyError",
    "ProviderSettings",
    "UsageRecord",
    "UsageTracker",
    "LLMProvider",
    "LangChainLLMProvider",
    "build_chat_model",
    "build_provider",
]

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_MODEL_ENVS: Tuple[str, ...] = ("PAPER2NB_MODEL", "OPENAI_MODEL")
DEFAULT_API_KEY_ENVS: Tuple[str, ...] = ("PAPER2NB_API_KEY", "OPENAI_API_KEY")
DEFAULT_BASE_URL_ENVS: Tuple[str, ...] = ("PAPER2NB_BASE_URL", "OPENAI_BASE_URL")
DEFAULT_TEMPERATURE_ENV = "PAPER2NB_TEMPERATURE"
DEFAULT_MAX_TOKEN_ENV = "PAPER2NB_MAX_TOKENS"


class ProviderError(RuntimeError):
    """Base error raised when interacting with a chat provider."""


class ProviderDependencyError(ProviderError):
    """Raised when required dependencies are unavailable."""


@dataclass(slots=True)
class ProviderSettings:
    """Mutable settings bundle for a chat provider."""

    model: str = DEFAULT_MODEL
    base_url: str | None = None
    api_key: str | None = None
    temperature: float = 0.0
    max_tokens: int | None = None
    timeout: float | None = None

    def as_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "temperature": self.temperature,
        }
        if self.base_url:
            kwargs["base_url"] = self.base_url
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.max_tokens is not None:
            kwargs["max_tokens"] = self.max_tokens
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout
        return kwargs


@dataclass(frozen=True)
class UsageRecord:
    """Token usage of a single model call."""

    stage: Optional[str]
    model: Optional[str]
    prompt_tokens: int
    completion_tokens: int

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class UsageTracker:
    """Accumulates token usage across model calls."""

    def __init__(self) -> None:
        self._records: list[UsageRecord] = []

    @property
    def records(self) -> Sequence[UsageRecord]:
        return tuple(self._records)

    def add_record(
        self,
        *,
        stage: Optional[str],
        model: Optional[str],
        prompt_tokens: int,
        completion_tokens: int,
    ) -> None:
        self._records.append(
            UsageRecord(
                stage=stage,
                model=model,
                prompt_tokens=int(prompt_tokens),
                completion_tokens=int(completion_tokens),
            )
        )

    def summary(self) -> Dict[str, Any]:
        by_stage: Dict[str, int] = {}
        for record in self._records:
            key = record.stage or "unknown"
            by_stage[key] = by_stage.get(key, 0) + record.total_tokens
        return {
            "calls": len(self._records),
            "prompt_tokens": sum(record.prompt_tokens for record in self._records),
            "completion_tokens": sum(record.completion_tokens for record in self._records),
            "by_stage": by_stage,
        }


class LLMProvider(ABC):
    """Abstract interface the generation stages use to reach a chat model."""

    def __init__(self, *, usage_tracker: Optional[UsageTracker] = None) -> None:
        self._usage_tracker = usage_tracker or UsageTracker()

    @property
    def usage_tracker(self) -> UsageTracker:
        return self._usage_tracker

    @property
    def model(self) -> str:
        return self.__class__.__name__

    @abstractmethod
    async def ainvoke(self, messages: Sequence[BaseMessage], *, stage: Optional[str] = None) -> AIMessage:
        """Invoke the chat model and return the generated message."""

    def _record_usage(
        self,
        *,
        stage: Optional[str],
        model: Optional[str],
        prompt_tokens: int,
        completion_tokens: int,
    ) -> None:
        self._usage_tracker.add_record(
            stage=stage,
            model=model,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
        )


class LangChainLLMProvider(LLMProvider):
    """Adapter around a ``langchain`` chat model with usage extraction."""

    def __init__(
        self,
        llm: BaseChatModel,
        *,
        usage_tracker: Optional[UsageTracker] = None,
        name: Optional[str] = None,
    ) -> None:
        super().__init__(usage_tracker=usage_tracker)
        self._llm = llm
        self._name = name or getattr(llm, "model_name", llm.__class__.__name__)

    @property
    def model(self) -> str:
        return self._name

    async def ainvoke(self, messages: Sequence[BaseMessage], *, stage: Optional[str] = None) -> AIMessage:
        try:
            response = await self._llm.ainvoke(list(messages))
        except Exception as exc:
            raise ProviderError(f"Invocation failed for model '{self._name}': {exc}") from exc

        prompt_tokens, completion_tokens = _extract_token_usage(response)
        self._record_usage(
            stage=stage,
            model=self._name,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
        )
        return response


def _extract_token_usage(message: AIMessage) -> tuple[int, int]:
    """Normalise token counts from the usage metadata of different providers."""

    usage: Dict[str, Any] = dict(getattr(message, "usage_metadata", None) or {})
    response_meta = getattr(message, "response_metadata", None) or {}
    if not usage and isinstance(response_meta, dict):
        maybe_usage = response_meta.get("token_usage") or response_meta.get("usage")
        if isinstance(maybe_usage, dict):
            usage.update(maybe_usage)

    prompt_tokens = int(usage.get("input_tokens") or usage.get("prompt_tokens") or 0)
    completion_tokens = int(usage.get("output_tokens") or usage.get("completion_tokens") or 0)
    return prompt_tokens, completion_tokens


def build_chat_model(
    *,
    model: str | None = None,
    base_url: str | None = None,
    api_key: str | None = None,
    temperature: float | None = None,
    max_tokens: int | None = None,
    timeout: float | None = None,
) -> BaseChatModel:
    """Factory that mirrors CLI/env resolution for provider credentials."""

    if ChatOpenAI is None:
        raise ProviderDependencyError("langchain-openai is required to build the chat model")

    settings = ProviderSettings(
        model=model or _resolve_from_env(DEFAULT_MODEL_ENVS) or DEFAULT_MODEL,
        base_url=base_url or _resolve_from_env(DEFAULT_BASE_URL_ENVS),
        api_key=api_key or _resolve_from_env(DEFAULT_API_KEY_ENVS),
        temperature=_coerce_float(temperature, os.getenv(DEFAULT_TEMPERATURE_ENV), default=0.0),
        max_tokens=_coerce_int(max_tokens, os.getenv(DEFAULT_MAX_TOKEN_ENV)),
        timeout=timeout,
    )
    try:
        return ChatOpenAI(**settings.as_kwargs())  # type: ignore[arg-type]
    except Exception as exc:  # pragma: no cover - passthrough
        raise ProviderError(f"Failed to initialise chat model '{settings.model}': {exc}") from exc


def build_provider(**kwargs: Any) -> LangChainLLMProvider:
    """Build a :class:`LangChainLLMProvider` around :func:`build_chat_model`."""

    llm = build_chat_model(**kwargs)
    return LangChainLLMProvider(llm, name=getattr(llm, "model_name", None))


def _resolve_from_env(envs: Sequence[str]) -> str | None:
    for env_name in envs:
        value = os.getenv(env_name)
        if value:
            return value
    return None


def _coerce_float(explicit: float | None, env_value: str | None, *, default: float) -> float:
    if explicit is not None:
        return explicit
    if env_value is None:
        return default
    try:
        return float(env_value)
    except ValueError:  # pragma: no cover
        return default


def _coerce_int(explicit: int | None, env_value: str | None) -> int | None:
    if explicit is not None:
        return explicit
    if env_value is None:
        return None
    try:
        return int(env_value)
    except ValueError:  # pragma: no cover
        return None
