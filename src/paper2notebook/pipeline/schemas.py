"""Structured schema definitions for the generation stages and pipeline result."""

from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class FrozenBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)


class CamelModel(FrozenBaseModel):
    """Frozen model serialised with camelCase keys at the output boundary."""

    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


class Method(CamelModel):
    """A single method or technique introduced by the paper."""

    name: str = Field(..., description="Short name of the method.")
    description: str = Field(..., description="What the method does and how.")
    section: str = Field(default="", description="Paper section the method originates from.")


class Analysis(CamelModel):
    """Stage one output: what the paper is about and what it needs."""

    title: str = Field(..., description="Title of the paper.")
    domain: str = Field(..., description="Research domain, e.g. computer vision or NLP.")
    core_problem: str = Field(..., description="The problem the paper addresses.")
    core_contribution: str = Field(..., description="The paper's main contribution.")
    paper_complexity: str = Field(
        default="medium", description="Implementation complexity: low, medium or high."
    )
    methods: List[Method] = Field(default_factory=list, description="Ordered list of key methods.")
    required_libraries: List[str] = Field(
        default_factory=list, description="Third-party Python libraries needed to implement the paper."
    )


class PlanStep(CamelModel):
    """One ordered step of the implementation plan."""

    order: int = Field(..., description="Position of the step (1-indexed).")
    title: str = Field(..., description="Concise label for the step.")
    description: str = Field(..., description="What the notebook does in this step.")
    components: List[str] = Field(default_factory=list, description="Methods or components the step covers.")
    estimated_lines: int = Field(default=0, description="Rough size of the code for this step.")


class Plan(CamelModel):
    """Stage two output: how the notebook will implement the analysis."""

    summary: str = Field(..., description="One paragraph summary of the implementation.")
    framework: str = Field(..., description="Chosen implementation framework, e.g. PyTorch.")
    framework_reasoning: str = Field(default="", description="Why the framework was chosen.")
    simplifications: List[str] = Field(
        default_factory=list, description="Simplifications applied relative to the paper."
    )
    steps: List[PlanStep] = Field(default_factory=list, description="Ordered implementation steps.")
    demo_data_strategy: str = Field(
        default="", description="How demonstration data is synthesised or downloaded."
    )

    def sorted_steps(self) -> List[PlanStep]:
        return sorted(self.steps, key=lambda step: step.order)


class NotebookCell(FrozenBaseModel):
    """A narrative or executable notebook cell."""

    cell_type: Literal["markdown", "code"] = Field(..., description="Either markdown or code.")
    source: str = Field(..., description="Cell contents.")


class Notebook(CamelModel):
    """Stage three output: the ordered cells of the generated notebook."""

    colab_title: str = Field(..., description="Human-readable notebook title.")
    cells: List[NotebookCell] = Field(..., min_length=1, description="Ordered notebook cells.")

    def count(self, cell_type: str) -> int:
        return sum(1 for cell in self.cells if cell.cell_type == cell_type)


class AnalysisSummary(CamelModel):
    """Analysis fields exposed to the caller."""

    title: str
    domain: str
    core_problem: str
    core_contribution: str
    paper_complexity: str
    methods: List[Method]
    required_libraries: List[str]

    @classmethod
    def from_analysis(cls, analysis: Analysis) -> "AnalysisSummary":
        return cls.model_validate(analysis.model_dump())


class PlanSummary(CamelModel):
    """Plan fields exposed to the caller."""

    summary: str
    framework: str
    framework_reasoning: str
    simplifications: List[str]
    steps: List[PlanStep]
    demo_data_strategy: str

    @classmethod
    def from_plan(cls, plan: Plan) -> "PlanSummary":
        return cls.model_validate(plan.model_dump())


class PipelineMeta(CamelModel):
    total_cells: int
    code_cells: int
    markdown_cells: int
    pipeline_duration_seconds: float


class PipelineResult(CamelModel):
    """The cacheable, client-facing artefact of one successful run."""

    colab_url: str
    gist_url: str
    download_url: str
    analysis: AnalysisSummary
    plan: PlanSummary
    notebook_cells: List[NotebookCell]
    meta: PipelineMeta

    def to_response(self) -> dict:
        """Serialise using the camelCase field names of the HTTP contract."""

        return self.model_dump(mode="json", by_alias=True)
