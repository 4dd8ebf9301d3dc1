"""LangGraph-powered orchestration of the paper → notebook pipeline.

The orchestrator checks the cache, then chains the three generation stages
(analysis, plan, notebook), publishes the notebook and assembles the result
that is cached under the fingerprint of the paper text. Every node is a plain
coroutine so each transition can be exercised on its own. A failure in any
node aborts the run before the cache is written.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, Optional

from langgraph.graph import END, START, StateGraph

from ..errors import CacheUnavailableError, PipelineError, ValidationError
from .cache import CacheStore, InMemoryCacheStore, fingerprint
from .publisher import Publisher
from .schemas import AnalysisSummary, PipelineMeta, PipelineResult, PlanSummary
from .stages import GenerationStages
from .state import PipelineStatus, PipelineWorkflowState

__all__ = ["DEFAULT_MIN_TEXT_LENGTH", "PipelineOrchestrator", "validate_paper_text"]

logger = logging.getLogger(__name__)

DEFAULT_MIN_TEXT_LENGTH = 100


def validate_paper_text(paper_text: Any, *, min_length: int = DEFAULT_MIN_TEXT_LENGTH) -> str:
    """Reject missing, non-string or too short input before the workflow starts."""

    if not paper_text or not isinstance(paper_text, str):
        raise ValidationError('Missing "paperText" in request body.')
    if len(paper_text) < min_length:
        raise ValidationError("Paper text is too short. Please provide the full paper text.")
    return paper_text


class PipelineOrchestrator:
    """Coordinate cache lookup, generation, publication and result assembly."""

    def __init__(
        self,
        stages: GenerationStages,
        publisher: Publisher,
        *,
        cache: Optional[CacheStore] = None,
        min_text_length: int = DEFAULT_MIN_TEXT_LENGTH,
        dedupe_inflight: bool = False,
    ) -> None:
        self._stages = stages
        self._publisher = publisher
        self.cache: CacheStore = cache if cache is not None else InMemoryCacheStore()
        self.min_text_length = min_text_length
        self.dedupe_inflight = dedupe_inflight
        self._inflight: Dict[str, asyncio.Future[PipelineResult]] = {}
        self._workflow = self._build_workflow()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def run(self, paper_text: Any) -> PipelineResult:
        """Validate ``paper_text`` and return its (possibly cached) result."""

        text = validate_paper_text(paper_text, min_length=self.min_text_length)
        if not self.dedupe_inflight:
            return await self._execute(text)

        key = fingerprint(text)
        future = self._inflight.get(key)
        if future is None:
            future = asyncio.ensure_future(self._execute(text))
            self._inflight[key] = future
            future.add_done_callback(lambda _done: self._inflight.pop(key, None))
        else:
            logger.info("Joining in-flight pipeline run for %s", key[:12])
        return await asyncio.shield(future)

    # ------------------------------------------------------------------
    # LangGraph node implementations
    # ------------------------------------------------------------------
    async def check_cache(self, state: PipelineWorkflowState) -> PipelineWorkflowState:
        key = state.get("fingerprint") or fingerprint(state["paper_text"])
        try:
            cached = await self.cache.get(key)
        except (CacheUnavailableError, OSError) as exc:
            logger.warning("Cache read failed, treating as miss: %s", exc)
            cached = None

        updated = dict(state)
        updated["fingerprint"] = key
        if cached is not None:
            logger.info("Returning cached result for %s", key[:12])
            updated["result"] = cached
            updated["cache_hit"] = True
            updated["status"] = PipelineStatus.DONE
        else:
            updated["cache_hit"] = False
            updated["status"] = PipelineStatus.ANALYZING
        return updated

    async def analyze(self, state: PipelineWorkflowState) -> PipelineWorkflowState:
        logger.info("Analyzing paper (%d chars)", len(state["paper_text"]))
        analysis = await self._stages.analyze(state["paper_text"])
        updated = dict(state)
        updated["analysis"] = analysis
        updated["status"] = PipelineStatus.PLANNING
        return updated

    async def plan(self, state: PipelineWorkflowState) -> PipelineWorkflowState:
        logger.info("Planning implementation")
        plan = await self._stages.plan(state["analysis"])
        updated = dict(state)
        updated["plan"] = plan
        updated["status"] = PipelineStatus.GENERATING_NOTEBOOK
        return updated

    async def generate_notebook(self, state: PipelineWorkflowState) -> PipelineWorkflowState:
        logger.info("Generating notebook (%d plan steps)", len(state["plan"].steps))
        notebook = await self._stages.generate_notebook(state["analysis"], state["plan"])
        updated = dict(state)
        updated["notebook"] = notebook
        updated["status"] = PipelineStatus.PUBLISHING
        return updated

    async def publish(self, state: PipelineWorkflowState) -> PipelineWorkflowState:
        notebook = state["notebook"]
        title = notebook.colab_title.strip() or state["analysis"].title
        logger.info("Publishing notebook %r", title)
        publication = await self._publisher.publish(notebook, title)
        updated = dict(state)
        updated["publication"] = publication
        updated["status"] = PipelineStatus.ASSEMBLING
        return updated

    async def assemble(self, state: PipelineWorkflowState) -> PipelineWorkflowState:
        notebook = state["notebook"]
        publication = state["publication"]
        duration = round(time.perf_counter() - state["started_at"], 1)
        code_cells = notebook.count("code")
        markdown_cells = notebook.count("markdown")
        result = PipelineResult(
            colab_url=publication.viewer_url,
            gist_url=publication.source_url,
            download_url=publication.raw_url,
            analysis=AnalysisSummary.from_analysis(state["analysis"]),
            plan=PlanSummary.from_plan(state["plan"]),
            notebook_cells=list(notebook.cells),
            meta=PipelineMeta(
                total_cells=code_cells + markdown_cells,
                code_cells=code_cells,
                markdown_cells=markdown_cells,
                pipeline_duration_seconds=duration,
            ),
        )
        updated = dict(state)
        updated["result"] = result
        return updated

    async def store(self, state: PipelineWorkflowState) -> PipelineWorkflowState:
        try:
            await self.cache.set(state["fingerprint"], state["result"])
        except (CacheUnavailableError, OSError) as exc:
            logger.warning("Cache write failed, result not cached: %s", exc)
        logger.info("Pipeline complete in %.1fs", state["result"].meta.pipeline_duration_seconds)
        updated = dict(state)
        updated["status"] = PipelineStatus.DONE
        return updated

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _build_workflow(self):
        graph = StateGraph(PipelineWorkflowState)
        graph.add_node("check_cache", self.check_cache)
        graph.add_node("analyze", self.analyze)
        graph.add_node("plan", self.plan)
        graph.add_node("generate_notebook", self.generate_notebook)
        graph.add_node("publish", self.publish)
        graph.add_node("assemble", self.assemble)
        graph.add_node("store", self.store)

        graph.add_edge(START, "check_cache")
        graph.add_conditional_edges(
            "check_cache",
            self._route_after_cache,
            {"hit": END, "miss": "analyze"},
        )
        graph.add_edge("analyze", "plan")
        graph.add_edge("plan", "generate_notebook")
        graph.add_edge("generate_notebook", "publish")
        graph.add_edge("publish", "assemble")
        graph.add_edge("assemble", "store")
        graph.add_edge("store", END)
        return graph.compile()

    @staticmethod
    def _route_after_cache(state: PipelineWorkflowState) -> str:
        return "hit" if state.get("cache_hit") else "miss"

    async def _execute(self, text: str) -> PipelineResult:
        initial_state: PipelineWorkflowState = {
            "paper_text": text,
            "started_at": time.perf_counter(),
            "status": PipelineStatus.CHECKING_CACHE,
        }
        try:
            final_state = await self._workflow.ainvoke(initial_state)
        except PipelineError as exc:
            logger.error(
                "Pipeline %s at stage %s: %s",
                PipelineStatus.FAILED.value,
                getattr(exc, "stage", "unknown"),
                exc,
            )
            raise

        result = final_state.get("result")
        if result is None:
            raise RuntimeError("Pipeline workflow finished without a result.")
        return result
