"""paper2notebook: research paper → runnable Colab notebook."""

from .config import AppConfig, GistConfig, LLMConfig, PipelineConfig, ServerConfig
from .errors import (
    CacheUnavailableError,
    GenerationError,
    PipelineError,
    PublicationError,
    ValidationError,
)
from .io import LoadedPaper, load_paper_text
from .pipeline import PipelineOrchestrator, PipelineResult
from .runtime import build_orchestrator

__all__ = [
    "AppConfig",
    "GistConfig",
    "LLMConfig",
    "PipelineConfig",
    "ServerConfig",
    "CacheUnavailableError",
    "GenerationError",
    "PipelineError",
    "PublicationError",
    "ValidationError",
    "LoadedPaper",
    "load_paper_text",
    "PipelineOrchestrator",
    "PipelineResult",
    "build_orchestrator",
]
