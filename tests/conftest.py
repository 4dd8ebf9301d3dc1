"""Shared fixtures for the test suite."""
from __future__ import annotations

from typing import Any, Iterable, List

import pytest

from paper2notebook.pipeline.publisher import PublishedNotebook
from paper2notebook.pipeline.schemas import Analysis, Method, Notebook, NotebookCell, Plan, PlanStep

ENV_VARS = {
    "PAPER2NB_PROVIDER",
    "PAPER2NB_MODEL",
    "OPENAI_MODEL",
    "PAPER2NB_API_KEY",
    "OPENAI_API_KEY",
    "PAPER2NB_BASE_URL",
    "OPENAI_BASE_URL",
    "PAPER2NB_TEMPERATURE",
    "PAPER2NB_MAX_TOKENS",
    "PAPER2NB_TIMEOUT",
    "PAPER2NB_MIN_TEXT_LENGTH",
    "PAPER2NB_CACHE_DIR",
    "PAPER2NB_PUBLISH_DIR",
    "PAPER2NB_DEDUPE_INFLIGHT",
    "PAPER2NB_GIST_PUBLIC",
    "PAPER2NB_GIST_TIMEOUT",
    "PAPER2NB_CORS_ORIGINS",
    "GITHUB_TOKEN",
    "GITHUB_API_URL",
    "HOST",
    "PORT",
}

PAPER_TEXT = "Attention Is All You Need\n" + "We propose the Transformer, based solely on attention. " * 3


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure configuration environment variables do not leak between tests."""

    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def paper_text() -> str:
    return PAPER_TEXT


@pytest.fixture
def sample_analysis() -> Analysis:
    return Analysis(
        title="Attention Is All You Need",
        domain="NLP",
        core_problem="Sequence transduction without recurrence.",
        core_contribution="The Transformer architecture.",
        paper_complexity="high",
        methods=[Method(name="Multi-Head Attention", description="Parallel attention heads.", section="3.2")],
        required_libraries=["torch"],
    )


@pytest.fixture
def sample_plan() -> Plan:
    return Plan(
        summary="Implement a tiny Transformer on a copy task.",
        framework="PyTorch",
        framework_reasoning="Available on Colab.",
        simplifications=["Two layers instead of six."],
        steps=[
            PlanStep(order=2, title="Train", description="Train on the copy task.", components=["Transformer"]),
            PlanStep(order=1, title="Model", description="Define attention.", components=["Multi-Head Attention"]),
        ],
        demo_data_strategy="Random integer sequences.",
    )


@pytest.fixture
def sample_notebook() -> Notebook:
    return Notebook(
        colab_title="Transformer from Scratch",
        cells=[
            NotebookCell(cell_type="markdown", source="# Transformer\n\nA tiny reproduction."),
            NotebookCell(cell_type="code", source="!pip install torch"),
            NotebookCell(cell_type="markdown", source="## Attention"),
            NotebookCell(cell_type="code", source="import torch\nprint(torch.__version__)"),
        ],
    )


class FakeStages:
    """Records every stage call into a shared journal."""

    def __init__(
        self,
        analysis: Analysis,
        plan: Plan,
        notebook: Notebook,
        journal: List[str],
        *,
        fail_on: str | None = None,
    ) -> None:
        self._analysis = analysis
        self._plan = plan
        self._notebook = notebook
        self.journal = journal
        self.fail_on = fail_on

    def _enter(self, stage: str) -> None:
        self.journal.append(stage)
        if self.fail_on == stage:
            from paper2notebook.errors import GenerationError

            raise GenerationError(stage, "boom")

    async def analyze(self, text: str) -> Analysis:
        self._enter("analyze")
        return self._analysis

    async def plan(self, analysis: Analysis) -> Plan:
        self._enter("plan")
        return self._plan

    async def generate_notebook(self, analysis: Analysis, plan: Plan) -> Notebook:
        self._enter("generate_notebook")
        return self._notebook


class FakePublisher:
    def __init__(self, journal: List[str], *, error: Exception | None = None) -> None:
        self.journal = journal
        self.error = error
        self.titles: List[str] = []

    async def publish(self, notebook: Notebook, title: str) -> PublishedNotebook:
        self.journal.append("publish")
        self.titles.append(title)
        if self.error is not None:
            raise self.error
        return PublishedNotebook(
            viewer_url="https://colab.research.google.com/gist/octo/abc123/Transformer.ipynb",
            source_url="https://gist.github.com/octo/abc123",
            raw_url="https://gist.githubusercontent.com/octo/abc123/raw/Transformer.ipynb",
        )


@pytest.fixture
def journal() -> List[str]:
    return []


@pytest.fixture
def fake_stages(sample_analysis, sample_plan, sample_notebook, journal) -> FakeStages:
    return FakeStages(sample_analysis, sample_plan, sample_notebook, journal)


@pytest.fixture
def fake_publisher(journal) -> FakePublisher:
    return FakePublisher(journal)


@pytest.fixture
def dummy_chat_model(monkeypatch: pytest.MonkeyPatch):
    """Patch the LangChain chat client used by the provider abstraction."""

    from langchain_core.messages import AIMessage

    from paper2notebook.llm import providers

    class DummyChatModel:
        def __init__(self, **kwargs: Any) -> None:
            self.kwargs = kwargs
            self.model_name = kwargs.get("model")
            self.invocations: list[tuple[Any, ...]] = []
            self.reply = AIMessage(
                content='{"ok": true}',
                usage_metadata={"input_tokens": 12, "output_tokens": 5, "total_tokens": 17},
            )

        async def ainvoke(self, messages: Iterable[Any], **kwargs: Any) -> AIMessage:
            self.invocations.append(tuple(messages))
            return self.reply

    monkeypatch.setattr(providers, "ChatOpenAI", DummyChatModel)
    return DummyChatModel
