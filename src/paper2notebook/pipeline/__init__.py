"""Multi-stage generation pipeline with idempotent caching."""

from .cache import CacheStore, InMemoryCacheStore, JsonFileCacheStore, fingerprint
from .notebook import notebook_filename, to_ipynb
from .orchestrator import DEFAULT_MIN_TEXT_LENGTH, PipelineOrchestrator, validate_paper_text
from .publisher import GistPublisher, LocalPublisher, PublishedNotebook, Publisher
from .schemas import (
    Analysis,
    AnalysisSummary,
    Method,
    Notebook,
    NotebookCell,
    PipelineMeta,
    PipelineResult,
    Plan,
    PlanStep,
    PlanSummary,
)
from .stages import GenerationStages, LLMGenerationStages, StagePromptBuilder
from .state import PipelineStatus, PipelineWorkflowState

__all__ = [
    "CacheStore",
    "InMemoryCacheStore",
    "JsonFileCacheStore",
    "fingerprint",
    "notebook_filename",
    "to_ipynb",
    "DEFAULT_MIN_TEXT_LENGTH",
    "PipelineOrchestrator",
    "validate_paper_text",
    "GistPublisher",
    "LocalPublisher",
    "PublishedNotebook",
    "Publisher",
    "Analysis",
    "AnalysisSummary",
    "Method",
    "Notebook",
    "NotebookCell",
    "PipelineMeta",
    "PipelineResult",
    "Plan",
    "PlanStep",
    "PlanSummary",
    "GenerationStages",
    "LLMGenerationStages",
    "StagePromptBuilder",
    "PipelineStatus",
    "PipelineWorkflowState",
]
