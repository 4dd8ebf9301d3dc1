"""Deterministic provider used for testing and offline development."""

from __future__ import annotations

import json
import textwrap
from typing import Any, Optional, Sequence

from langchain_core.messages import AIMessage, BaseMessage

from .providers import LLMProvider

__all__ = ["MockLLMProvider"]


class MockLLMProvider(LLMProvider):
    """Return canned, schema-conforming JSON for each generation stage."""

    def __init__(self, *, model: str = "mock-latest", **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._model = model

    @property
    def model(self) -> str:
        return self._model

    async def ainvoke(self, messages: Sequence[BaseMessage], *, stage: Optional[str] = None) -> AIMessage:
        prompt = "\n".join(str(message.content) for message in messages)
        stage_key = (stage or "").lower().strip()
        if stage_key == "analyze":
            payload = self._build_analysis(prompt)
        elif stage_key == "plan":
            payload = self._build_plan()
        elif stage_key == "generate_notebook":
            payload = self._build_notebook()
        else:
            raise ValueError(f"Unsupported stage '{stage}'.")

        content = json.dumps(payload, ensure_ascii=False)
        self._record_usage(
            stage=stage_key,
            model=self._model,
            prompt_tokens=max(1, len(prompt.split())),
            completion_tokens=max(1, len(content.split())),
        )
        return AIMessage(content=content)

    def _build_analysis(self, prompt: str) -> dict[str, Any]:
        marker = "Paper text:"
        excerpt = prompt.split(marker, 1)[-1].strip()
        first_line = next((line.strip() for line in excerpt.splitlines() if line.strip()), "")
        title = first_line.strip("`#").strip()[:120] or "Untitled Paper"
        return {
            "title": title,
            "domain": "Machine Learning",
            "coreProblem": "Learning a useful model from limited supervision.",
            "coreContribution": "A simple, reproducible training recipe.",
            "paperComplexity": "medium",
            "methods": [
                {
                    "name": "Baseline Model",
                    "description": "A small feed-forward network trained end to end.",
                    "section": "3",
                }
            ],
            "requiredLibraries": ["numpy", "torch", "matplotlib"],
        }

    def _build_plan(self) -> dict[str, Any]:
        return {
            "summary": "Implement the baseline on synthetic data and plot the training curve.",
            "framework": "PyTorch",
            "frameworkReasoning": "Widely available on Colab with GPU support.",
            "simplifications": ["Synthetic data instead of the original benchmark."],
            "steps": [
                {
                    "order": 1,
                    "title": "Synthetic data",
                    "description": "Generate a toy classification dataset.",
                    "components": ["Baseline Model"],
                    "estimatedLines": 20,
                },
                {
                    "order": 2,
                    "title": "Training loop",
                    "description": "Train the model and report accuracy.",
                    "components": ["Baseline Model"],
                    "estimatedLines": 40,
                },
            ],
            "demoDataStrategy": "Sample two Gaussian blobs with numpy.",
        }

    def _build_notebook(self) -> dict[str, Any]:
        code = textwrap.dedent(
            """
            import numpy as np

            rng = np.random.default_rng(0)
            x = np.concatenate([rng.normal(-1, 1, (100, 2)), rng.normal(1, 1, (100, 2))])
            y = np.array([0] * 100 + [1] * 100)
            print(x.shape, y.mean())
            """
        ).strip()
        return {
            "colabTitle": "Paper Implementation (mock)",
            "cells": [
                {"cell_type": "markdown", "source": "# Paper Implementation\n\nGenerated offline."},
                {"cell_type": "code", "source": code},
            ],
        }
