"""State definitions for the generation pipeline workflow."""

from __future__ import annotations

from enum import Enum
from typing import TypedDict

from .publisher import PublishedNotebook
from .schemas import Analysis, Notebook, PipelineResult, Plan


class PipelineStatus(str, Enum):
    """States of one pipeline invocation, in execution order."""

    CHECKING_CACHE = "checking_cache"
    ANALYZING = "analyzing"
    PLANNING = "planning"
    GENERATING_NOTEBOOK = "generating_notebook"
    PUBLISHING = "publishing"
    ASSEMBLING = "assembling"
    DONE = "done"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (PipelineStatus.DONE, PipelineStatus.FAILED)


class PipelineWorkflowState(TypedDict, total=False):
    """State propagated through the LangGraph workflow."""

    paper_text: str
    fingerprint: str
    started_at: float
    status: PipelineStatus
    cache_hit: bool
    analysis: Analysis
    plan: Plan
    notebook: Notebook
    publication: PublishedNotebook
    result: PipelineResult


__all__ = ["PipelineStatus", "PipelineWorkflowState"]
