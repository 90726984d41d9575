"""Core data contracts for flowsearch workflows, plans and reports."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator
from pydantic.alias_generators import to_camel

StepType = Literal["search", "extract", "analyze", "aggregate", "generate_report"]
SearchSource = Literal["web", "code-repository", "image"]
Depth = Literal["quick", "standard", "deep"]
OutputFormat = Literal["comparison", "analysis", "timeline", "summary"]
WorkflowStatus = Literal["pending", "running", "completed", "failed"]
ExecutionStatus = Literal["running", "completed", "failed"]
MergeStrategy = Literal["combine", "deduplicate", "rank"]

SEARCH_SOURCES: tuple[str, ...] = ("web", "code-repository", "image")
DEPTHS: tuple[str, ...] = ("quick", "standard", "deep")
OUTPUT_FORMATS: tuple[str, ...] = ("comparison", "analysis", "timeline", "summary")

# Provider names used by older plans and prompts.
SOURCE_ALIASES = {
    "google": "web",
    "github": "code-repository",
    "pexels": "image",
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_source(source: str) -> str:
    """Map a provider name onto its canonical source name."""
    cleaned = source.strip().lower()
    return SOURCE_ALIASES.get(cleaned, cleaned)


class WireModel(BaseModel):
    """Base model serialized with camelCase keys on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self, exclude_none: bool = False) -> Dict[str, Any]:
        """Dump to a JSON-compatible dict using wire (camelCase) keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=exclude_none)


# ----------------------------------------------------------------------
# Step parameters


class StepParams(WireModel):
    model_config = ConfigDict(frozen=True)


class SearchParams(StepParams):
    source: SearchSource = "web"
    query: str
    num: int = 10
    sort: Optional[str] = None
    language: Optional[str] = None

    @field_validator("source", mode="before")
    @classmethod
    def _canonical_source(cls, value: Any) -> Any:
        if isinstance(value, str):
            return normalize_source(value)
        return value


class ExtractParams(StepParams):
    extraction_goal: str = ""
    fields: List[str] = Field(default_factory=list)
    from_step: int = 0


class AnalyzeParams(StepParams):
    analysis_type: str = "general"
    question: Optional[str] = None
    from_steps: List[int] = Field(default_factory=list)


class AggregateParams(StepParams):
    from_steps: List[int] = Field(default_factory=list)
    merge_strategy: MergeStrategy = "combine"


class GenerateReportParams(StepParams):
    report_format: OutputFormat = "summary"


# ----------------------------------------------------------------------
# Steps


class BaseStep(WireModel):
    """Fields shared by every plan step."""

    model_config = ConfigDict(frozen=True)

    index: int = 0
    title: str = ""
    description: str = ""
    depends_on: List[int] = Field(default_factory=list)


class SearchStep(BaseStep):
    type: Literal["search"] = "search"
    params: SearchParams


class ExtractStep(BaseStep):
    type: Literal["extract"] = "extract"
    params: ExtractParams = Field(default_factory=ExtractParams)


class AnalyzeStep(BaseStep):
    type: Literal["analyze"] = "analyze"
    params: AnalyzeParams = Field(default_factory=AnalyzeParams)


class AggregateStep(BaseStep):
    type: Literal["aggregate"] = "aggregate"
    params: AggregateParams = Field(default_factory=AggregateParams)


class GenerateReportStep(BaseStep):
    type: Literal["generate_report"] = "generate_report"
    params: GenerateReportParams = Field(default_factory=GenerateReportParams)


Step = Annotated[
    Union[SearchStep, ExtractStep, AnalyzeStep, AggregateStep, GenerateReportStep],
    Field(discriminator="type"),
]

STEP_LIST_ADAPTER: TypeAdapter[List[Step]] = TypeAdapter(List[Step])


def parse_steps(raw: Sequence[Mapping[str, Any]]) -> List[Step]:
    """Validate a list of raw step dicts into typed steps."""
    return STEP_LIST_ADAPTER.validate_python(list(raw))


def check_plan_invariants(steps: Sequence[BaseStep]) -> None:
    """Raise ``ValueError`` unless ``steps`` form a well-formed plan."""
    if not steps:
        raise ValueError("plan has no steps")
    for position, step in enumerate(steps):
        if step.index != position:
            raise ValueError(f"step at position {position} has index {step.index}")
        for dep in step.depends_on:
            if dep < 0 or dep >= step.index:
                raise ValueError(
                    f"step {step.index} depends on {dep}, which is not an earlier step"
                )
    if steps[-1].type != "generate_report":
        raise ValueError("final step must be generate_report")


def reindex_steps(
    steps: Sequence[Step], index_map: Optional[Mapping[int, int]] = None
) -> List[Step]:
    """Number ``steps`` contiguously from zero.

    When ``index_map`` (old index -> new index) is given, step references
    (``depends_on``, ``from_step``, ``from_steps``) are translated through it
    and references to steps that no longer exist are dropped. References that
    do not point strictly backwards are removed from ``depends_on``.

    Raises:
        ValueError: If an extract step's source was removed and none of its
            dependencies survive to read from instead.
    """

    def _remap(ref: int) -> Optional[int]:
        if index_map is None:
            return ref
        return index_map.get(ref)

    renumbered: List[Step] = []
    for position, step in enumerate(steps):
        depends_on = [
            new for new in (_remap(dep) for dep in step.depends_on)
            if new is not None and 0 <= new < position
        ]
        params = step.params
        if index_map is not None:
            if isinstance(params, ExtractParams):
                new_from = _remap(params.from_step)
                if new_from is None:
                    if not depends_on:
                        raise ValueError(
                            f"step {step.index} extracts from step {params.from_step}, "
                            "which was removed"
                        )
                    # source step was dropped; read from the first surviving dependency
                    new_from = depends_on[0]
                params = params.model_copy(update={"from_step": new_from})
            elif isinstance(params, (AnalyzeParams, AggregateParams)):
                params = params.model_copy(
                    update={
                        "from_steps": [
                            new for new in (_remap(ref) for ref in params.from_steps)
                            if new is not None
                        ]
                    }
                )
        renumbered.append(
            step.model_copy(
                update={"index": position, "depends_on": depends_on, "params": params}
            )
        )
    return renumbered


class Plan(WireModel):
    """Ordered step plan produced by the planner."""

    title: str = ""
    description: str = ""
    steps: List[Step]
    template_id: Optional[str] = None

    @property
    def is_template(self) -> bool:
        return self.template_id is not None

    @model_validator(mode="after")
    def _validate_steps(self) -> "Plan":
        check_plan_invariants(self.steps)
        return self


# ----------------------------------------------------------------------
# Workflow state


class StepResult(WireModel):
    """Output of a successfully completed step."""

    step_index: int
    data: Any = None


class Workflow(WireModel):
    """A single planned-and-executed research run."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: Optional[str] = None
    query: str
    title: str = ""
    description: str = ""
    sources: List[str] = Field(default_factory=list)
    depth: Depth = "standard"
    output_format: OutputFormat = "summary"
    steps: List[Step] = Field(default_factory=list)
    template_id: Optional[str] = None
    status: WorkflowStatus = "pending"
    current_step: int = 0
    results: List[Optional[StepResult]] = Field(default_factory=list)
    error_message: Optional[str] = None
    failed_step: Optional[int] = None
    created_at: datetime = Field(default_factory=utc_now)
    completed_at: Optional[datetime] = None
    report_id: Optional[str] = None

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    def result_data(self, index: int) -> Any:
        """Return the stored output of step ``index`` or ``None``."""
        if 0 <= index < len(self.results) and self.results[index] is not None:
            return self.results[index].data
        return None


WORKFLOW_UPDATABLE_FIELDS = frozenset(
    {
        "status",
        "current_step",
        "results",
        "error_message",
        "failed_step",
        "completed_at",
        "report_id",
    }
)


class WorkflowExecution(WireModel):
    """Audit record of one attempt to run a step."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    workflow_id: str
    step_index: int
    step_type: StepType
    step_title: str = ""
    input: Dict[str, Any] = Field(default_factory=dict)
    output: Any = None
    status: ExecutionStatus = "running"
    error: Optional[str] = None
    duration_ms: Optional[int] = None
    started_at: datetime = Field(default_factory=utc_now)
    completed_at: Optional[datetime] = None


EXECUTION_UPDATABLE_FIELDS = frozenset(
    {"status", "output", "error", "duration_ms", "completed_at"}
)


# ----------------------------------------------------------------------
# Reports


class SectionContent(WireModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)


class TableContent(SectionContent):
    headers: List[str]
    rows: List[List[Any]]


class ChartDataset(SectionContent):
    label: str = ""
    data: List[float]


class ChartContent(SectionContent):
    chart_type: Literal["bar", "line", "pie"] = "bar"
    labels: List[str]
    datasets: List[ChartDataset]


class ListContent(SectionContent):
    items: List[str]


class BaseSection(WireModel):
    id: Optional[str] = None
    title: str = ""


class TextSection(BaseSection):
    type: Literal["text"] = "text"
    content: str


class TableSection(BaseSection):
    type: Literal["table"] = "table"
    content: TableContent


class ChartSection(BaseSection):
    type: Literal["chart"] = "chart"
    content: ChartContent


class ListSection(BaseSection):
    type: Literal["list"] = "list"
    content: ListContent


ReportSection = Annotated[
    Union[TextSection, TableSection, ChartSection, ListSection],
    Field(discriminator="type"),
]


class ReportDraft(WireModel):
    """Synthesized report body prior to persistence."""

    title: str = Field(min_length=1)
    summary: str = Field(min_length=1)
    sections: List[ReportSection] = Field(min_length=1)


class Report(WireModel):
    """Persisted research report."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: Optional[str] = None
    title: str
    summary: str
    sections: List[ReportSection] = Field(default_factory=list)
    format: OutputFormat = "summary"
    source_data: Dict[str, Any] = Field(default_factory=dict)
    workflow_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
