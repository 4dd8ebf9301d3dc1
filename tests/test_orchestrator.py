from __future__ import annotations

import asyncio
import time

import pytest

from paper2notebook.errors import CacheUnavailableError, GenerationError, PublicationError, ValidationError
from paper2notebook.llm import MockLLMProvider
from paper2notebook.pipeline.cache import InMemoryCacheStore, fingerprint
from paper2notebook.pipeline.orchestrator import PipelineOrchestrator, validate_paper_text
from paper2notebook.pipeline.schemas import Notebook, NotebookCell, PipelineResult
from paper2notebook.pipeline.stages import LLMGenerationStages
from paper2notebook.pipeline.state import PipelineStatus


class BrokenReadCache(InMemoryCacheStore):
    async def get(self, key):
        raise CacheUnavailableError("disk on fire")


class BrokenWriteCache(InMemoryCacheStore):
    async def set(self, key, result):
        raise CacheUnavailableError("read-only filesystem")


def test_validate_paper_text_rejects_missing_and_short() -> None:
    with pytest.raises(ValidationError, match="Missing"):
        validate_paper_text(None)
    with pytest.raises(ValidationError, match="Missing"):
        validate_paper_text("")
    with pytest.raises(ValidationError, match="Missing"):
        validate_paper_text(12345)
    with pytest.raises(ValidationError, match="too short"):
        validate_paper_text("x" * 99)
    assert validate_paper_text("x" * 100) == "x" * 100


def test_short_input_never_reaches_stages_or_cache(fake_stages, fake_publisher, journal) -> None:
    orchestrator = PipelineOrchestrator(fake_stages, fake_publisher)

    with pytest.raises(ValidationError):
        asyncio.run(orchestrator.run("too short"))

    assert journal == []
    assert len(orchestrator.cache) == 0


def test_full_run_calls_stages_in_order(fake_stages, fake_publisher, journal, paper_text) -> None:
    orchestrator = PipelineOrchestrator(fake_stages, fake_publisher)

    result = asyncio.run(orchestrator.run(paper_text))

    assert journal == ["analyze", "plan", "generate_notebook", "publish"]
    assert isinstance(result, PipelineResult)
    assert result.colab_url.startswith("https://colab.research.google.com/gist/")
    assert result.gist_url == "https://gist.github.com/octo/abc123"
    assert result.download_url.endswith("Transformer.ipynb")
    assert result.analysis.title == "Attention Is All You Need"
    assert result.plan.framework == "PyTorch"
    assert fake_publisher.titles == ["Transformer from Scratch"]


def test_cell_counts_are_consistent(fake_stages, fake_publisher, paper_text) -> None:
    orchestrator = PipelineOrchestrator(fake_stages, fake_publisher)

    result = asyncio.run(orchestrator.run(paper_text))

    meta = result.meta
    assert meta.code_cells == 2
    assert meta.markdown_cells == 2
    assert meta.total_cells == meta.code_cells + meta.markdown_cells == len(result.notebook_cells)
    assert meta.pipeline_duration_seconds >= 0
    assert round(meta.pipeline_duration_seconds, 1) == meta.pipeline_duration_seconds


def test_repeat_request_is_served_from_cache(fake_stages, fake_publisher, journal, paper_text) -> None:
    orchestrator = PipelineOrchestrator(fake_stages, fake_publisher)

    first = asyncio.run(orchestrator.run(paper_text))
    calls_after_first = list(journal)
    second = asyncio.run(orchestrator.run(paper_text))

    assert journal == calls_after_first
    assert second == first
    assert fingerprint(paper_text) in orchestrator.cache


def test_different_text_misses_cache(fake_stages, fake_publisher, journal, paper_text) -> None:
    orchestrator = PipelineOrchestrator(fake_stages, fake_publisher)

    asyncio.run(orchestrator.run(paper_text))
    asyncio.run(orchestrator.run(paper_text + " "))

    assert journal.count("analyze") == 2
    assert len(orchestrator.cache) == 2


def test_analysis_failure_stops_pipeline(fake_stages, fake_publisher, journal, paper_text) -> None:
    fake_stages.fail_on = "analyze"
    orchestrator = PipelineOrchestrator(fake_stages, fake_publisher)

    with pytest.raises(GenerationError) as excinfo:
        asyncio.run(orchestrator.run(paper_text))

    assert excinfo.value.stage == "analyze"
    assert journal == ["analyze"]
    assert len(orchestrator.cache) == 0


def test_notebook_failure_skips_publication(fake_stages, fake_publisher, journal, paper_text) -> None:
    fake_stages.fail_on = "generate_notebook"
    orchestrator = PipelineOrchestrator(fake_stages, fake_publisher)

    with pytest.raises(GenerationError):
        asyncio.run(orchestrator.run(paper_text))

    assert journal == ["analyze", "plan", "generate_notebook"]
    assert len(orchestrator.cache) == 0


def test_publication_failure_is_not_cached(fake_stages, fake_publisher, journal, paper_text) -> None:
    fake_publisher.error = PublicationError("Gist API returned 401")
    orchestrator = PipelineOrchestrator(fake_stages, fake_publisher)

    with pytest.raises(PublicationError):
        asyncio.run(orchestrator.run(paper_text))

    assert journal == ["analyze", "plan", "generate_notebook", "publish"]
    assert len(orchestrator.cache) == 0


def test_cache_read_failure_is_treated_as_miss(fake_stages, fake_publisher, journal, paper_text) -> None:
    orchestrator = PipelineOrchestrator(fake_stages, fake_publisher, cache=BrokenReadCache())

    result = asyncio.run(orchestrator.run(paper_text))

    assert journal[0] == "analyze"
    assert result.meta.total_cells == 4


def test_cache_write_failure_still_returns_result(fake_stages, fake_publisher, journal, paper_text) -> None:
    orchestrator = PipelineOrchestrator(fake_stages, fake_publisher, cache=BrokenWriteCache())

    result = asyncio.run(orchestrator.run(paper_text))
    asyncio.run(orchestrator.run(paper_text))

    assert result.gist_url == "https://gist.github.com/octo/abc123"
    assert journal.count("analyze") == 2


def test_concurrent_identical_runs_share_one_execution(fake_stages, fake_publisher, journal, paper_text) -> None:
    orchestrator = PipelineOrchestrator(fake_stages, fake_publisher, dedupe_inflight=True)

    async def run_twice():
        return await asyncio.gather(orchestrator.run(paper_text), orchestrator.run(paper_text))

    first, second = asyncio.run(run_twice())

    assert first == second
    assert journal.count("analyze") == 1
    assert orchestrator._inflight == {}


def test_publish_title_falls_back_to_analysis_title(
    fake_stages, fake_publisher, sample_analysis, paper_text
) -> None:
    fake_stages._notebook = Notebook(
        colab_title="   ",
        cells=[NotebookCell(cell_type="code", source="print('hi')")],
    )
    orchestrator = PipelineOrchestrator(fake_stages, fake_publisher)

    asyncio.run(orchestrator.run(paper_text))

    assert fake_publisher.titles == [sample_analysis.title]


def test_nodes_advance_status_individually(
    fake_stages, fake_publisher, sample_analysis, sample_plan, sample_notebook, paper_text
) -> None:
    orchestrator = PipelineOrchestrator(fake_stages, fake_publisher)
    state = {"paper_text": paper_text, "started_at": time.perf_counter()}

    state = asyncio.run(orchestrator.check_cache(state))
    assert state["cache_hit"] is False
    assert state["status"] == PipelineStatus.ANALYZING
    assert state["fingerprint"] == fingerprint(paper_text)

    state = asyncio.run(orchestrator.analyze(state))
    assert state["analysis"] == sample_analysis
    assert state["status"] == PipelineStatus.PLANNING

    state = asyncio.run(orchestrator.plan(state))
    assert state["plan"] == sample_plan
    assert state["status"] == PipelineStatus.GENERATING_NOTEBOOK

    state = asyncio.run(orchestrator.generate_notebook(state))
    assert state["notebook"] == sample_notebook
    assert state["status"] == PipelineStatus.PUBLISHING

    state = asyncio.run(orchestrator.publish(state))
    assert state["publication"].source_url == "https://gist.github.com/octo/abc123"
    assert state["status"] == PipelineStatus.ASSEMBLING

    state = asyncio.run(orchestrator.assemble(state))
    assert state["result"].meta.total_cells == 4

    state = asyncio.run(orchestrator.store(state))
    assert state["status"] == PipelineStatus.DONE
    assert state["status"].terminal

    hit = asyncio.run(orchestrator.check_cache({"paper_text": paper_text}))
    assert hit["cache_hit"] is True
    assert hit["result"] == state["result"]


def test_mock_provider_end_to_end(fake_publisher, journal) -> None:
    text = "A Tiny Baseline for Toy Classification\n" + ("lorem ipsum " * 10)
    assert 100 <= len(text) <= 200
    stages = LLMGenerationStages(MockLLMProvider())
    orchestrator = PipelineOrchestrator(stages, fake_publisher)

    result = asyncio.run(orchestrator.run(text))

    assert result.analysis.title == "A Tiny Baseline for Toy Classification"
    assert result.meta.total_cells == 2
    assert result.meta.code_cells == 1
    assert result.meta.markdown_cells == 1
    assert result.colab_url
    assert result.gist_url
    assert result.download_url
    assert stages.provider.usage_tracker.summary()["calls"] == 3
