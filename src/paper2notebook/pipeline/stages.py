"""Generation stages: analysis, implementation plan and notebook.

Each stage embeds the JSON schema of its pydantic output model in the prompt,
awaits the configured :class:`~paper2notebook.llm.LLMProvider` and validates
the reply. Any failure is reported as :class:`GenerationError` carrying the
stage name; nothing is retried.
"""

from __future__ import annotations

import json
import logging
from typing import Any, List, Protocol, Type, TypeVar

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..errors import GenerationError
from ..llm.providers import LLMProvider
from .schemas import Analysis, Notebook, Plan

__all__ = [
    "ANALYZE",
    "PLAN",
    "GENERATE_NOTEBOOK",
    "GenerationStages",
    "LLMGenerationStages",
    "StagePromptBuilder",
]

logger = logging.getLogger(__name__)

ANALYZE = "analyze"
PLAN = "plan"
GENERATE_NOTEBOOK = "generate_notebook"

ModelT = TypeVar("ModelT", bound=BaseModel)


class GenerationStages(Protocol):
    """The three ordered generation capabilities consumed by the orchestrator."""

    async def analyze(self, text: str) -> Analysis: ...

    async def plan(self, analysis: Analysis) -> Plan: ...

    async def generate_notebook(self, analysis: Analysis, plan: Plan) -> Notebook: ...


def _schema_json(model: Type[BaseModel]) -> str:
    return json.dumps(model.model_json_schema(by_alias=True), ensure_ascii=False, indent=2)


class StagePromptBuilder:
    """Assemble deterministic prompts for the generation stages."""

    SYSTEM_PROMPT = (
        "You are a research engineer who turns machine learning papers into small, runnable "
        "Google Colab notebooks. Always answer with a single JSON object and nothing else."
    )

    def __init__(self, *, max_paper_chars: int = 60000) -> None:
        self.max_paper_chars = max_paper_chars

    def analysis_messages(self, paper_text: str) -> List[BaseMessage]:
        excerpt = paper_text.strip()
        if len(excerpt) > self.max_paper_chars:
            excerpt = excerpt[: self.max_paper_chars] + "\n…\n"
        lines = [
            "Analyse the research paper below. Follow these rules strictly:",
            "1. Identify the title, research domain, core problem and core contribution.",
            "2. Rate implementation complexity as low, medium or high.",
            "3. List the key methods in the order the paper introduces them, with their section.",
            "4. List the Python libraries an implementation would need.",
            "5. Output must be valid JSON adhering to the schema. Do not include markdown fences.",
            "\nJSON schema:",
            _schema_json(Analysis),
            "\nPaper text:",
            excerpt,
        ]
        return self._messages(lines)

    def plan_messages(self, analysis: Analysis) -> List[BaseMessage]:
        lines = [
            "Design an implementation plan for a single Colab notebook based on this analysis.",
            "Choose one framework and explain why, list every simplification you make, and",
            "describe how demonstration data is synthesised so the notebook runs without downloads.",
            "Steps must be ordered starting at 1.",
            "Output must be valid JSON adhering to the schema. Do not include markdown fences.",
            "\nJSON schema:",
            _schema_json(Plan),
            "\nPaper analysis:",
            analysis.model_dump_json(by_alias=True, indent=2),
        ]
        return self._messages(lines)

    def notebook_messages(self, analysis: Analysis, plan: Plan) -> List[BaseMessage]:
        lines = [
            "Write the notebook described by the plan. Alternate markdown cells that explain",
            "each step with code cells that implement it. The first cell is a markdown title cell,",
            "the second installs the required libraries. Code must run top to bottom on Colab.",
            "Output must be valid JSON adhering to the schema. Do not include markdown fences.",
            "\nJSON schema:",
            _schema_json(Notebook),
            "\nPaper analysis:",
            analysis.model_dump_json(by_alias=True, indent=2),
            "\nImplementation plan:",
            plan.model_dump_json(by_alias=True, indent=2),
        ]
        return self._messages(lines)

    def _messages(self, lines: List[str]) -> List[BaseMessage]:
        return [
            SystemMessage(content=self.SYSTEM_PROMPT),
            HumanMessage(content="\n".join(lines)),
        ]


class LLMGenerationStages:
    """:class:`GenerationStages` backed by a chat model provider."""

    def __init__(self, provider: LLMProvider, *, prompt_builder: StagePromptBuilder | None = None) -> None:
        self._provider = provider
        self._prompts = prompt_builder or StagePromptBuilder()

    @property
    def provider(self) -> LLMProvider:
        return self._provider

    async def analyze(self, text: str) -> Analysis:
        messages = self._prompts.analysis_messages(text)
        return await self._run(ANALYZE, messages, Analysis)

    async def plan(self, analysis: Analysis) -> Plan:
        if not analysis.title.strip() or not analysis.methods:
            raise GenerationError(PLAN, "analysis is incomplete: a title and at least one method are required")
        messages = self._prompts.plan_messages(analysis)
        return await self._run(PLAN, messages, Plan)

    async def generate_notebook(self, analysis: Analysis, plan: Plan) -> Notebook:
        messages = self._prompts.notebook_messages(analysis, plan)
        return await self._run(GENERATE_NOTEBOOK, messages, Notebook)

    async def _run(self, stage: str, messages: List[BaseMessage], model: Type[ModelT]) -> ModelT:
        logger.debug("Invoking %s for stage %s", self._provider.model, stage)
        try:
            response = await self._provider.ainvoke(messages, stage=stage)
        except Exception as exc:
            raise GenerationError(stage, str(exc)) from exc
        return _parse_response(stage, response, model)


def _parse_response(stage: str, response: AIMessage, model: Type[ModelT]) -> ModelT:
    content = response.content
    if isinstance(content, list):
        text_chunks: List[str] = []
        for item in content:
            if isinstance(item, dict) and "text" in item:
                text_chunks.append(str(item["text"]))
            else:
                text_chunks.append(str(item))
        content_str = "".join(text_chunks)
    else:
        content_str = str(content)

    content_str = _strip_code_fence(content_str)
    if not content_str:
        raise GenerationError(stage, "model returned empty content")

    try:
        payload: Any = json.loads(content_str)
    except json.JSONDecodeError as exc:
        raise GenerationError(stage, f"output is not valid JSON: {exc}") from exc

    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        raise GenerationError(stage, f"output does not match the {model.__name__} schema: {exc}") from exc


def _strip_code_fence(payload: str) -> str:
    stripped = payload.strip()
    if stripped.startswith("```json"):
        inner = stripped[len("```json") :].strip()
        if inner.endswith("```"):
            inner = inner[: -len("```")]
        return inner.strip()
    if stripped.startswith("```") and stripped.endswith("```"):
        inner = stripped[3:-3]
        return inner.strip()
    return stripped
