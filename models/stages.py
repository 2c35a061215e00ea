"""Stage contract models: the projected state of the delivery pipeline.

The pipeline has a fixed, ordered set of five stages. Every stage starts
`pending` and is mutated only by `pipeline.state_machine.apply()` (or the
controller's explicit stage operations). Payload item models accept the
camelCase keys used on the wire (`jiraId`, `acceptanceCriteria`, ...) as well
as their snake_case field names.
"""
from datetime import datetime, timezone
from typing import Annotated, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

StageId = Literal[
    "story_generation",
    "design_generation",
    "code_generation",
    "testing",
    "deployment",
]
StageStatus = Literal["pending", "active", "completed", "failed"]

STAGE_ORDER: tuple[str, ...] = (
    "story_generation",
    "design_generation",
    "code_generation",
    "testing",
    "deployment",
)

TERMINAL_STATUSES = frozenset({"completed", "failed"})

# Canonical spelling of the labels agents put on stories and test cases.
_LABELS = {label.lower(): label for label in ("High", "Medium", "Low", "Pass", "Fail", "Pending")}


def _canonical_label(v):
    if isinstance(v, str):
        return _LABELS.get(v.strip().lower(), v)
    return v


Label = Annotated[str, BeforeValidator(_canonical_label)]


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Story(_WireModel):
    id: str
    jira_id: str | None = None
    title: str
    description: str = ""
    acceptance_criteria: list[str] = Field(default_factory=list)
    priority: Label = "Medium"
    story_points: int | None = None


class CodeFile(_WireModel):
    """One node of a generated file tree. Directories carry `children`."""

    id: str
    name: str
    path: str
    type: Literal["file", "directory"] = "file"
    size: int | None = None
    language: str | None = None
    content: str | None = None
    children: list["CodeFile"] | None = None


class TestCase(_WireModel):
    __test__ = False  # not a pytest test class

    id: str
    name: str
    description: str = ""
    steps: list[str] = Field(default_factory=list)
    expected_result: str = ""
    status: Label = "Pending"
    priority: Label = "Medium"


class DeploymentInfo(_WireModel):
    environment: str = "production"
    status: str = "pending"
    url: str | None = None
    version: str | None = None
    services: list[str] = Field(default_factory=list)
    deployed_at: datetime | None = None


class WorkflowStage(BaseModel):
    """One step of the pipeline with its status, progress and payload.

    `start_time` is stamped the first time the stage leaves `pending` and is
    never overwritten. `end_time` is stamped once, when the stage reaches a
    terminal status. All datetimes are UTC-aware.
    """

    id: StageId
    name: str
    description: str
    status: StageStatus = "pending"
    progress: int = Field(default=0, ge=0, le=100)
    content: str | None = None
    agent_name: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None

    # Stage-specific payload, filled by content_ready events
    stories: list[Story] | None = None
    design_content: str | None = None
    code_files: list[CodeFile] | None = None
    test_files: list[CodeFile] | None = None
    test_cases: list[TestCase] | None = None
    deployment_info: DeploymentInfo | None = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def ensure_utc(cls, v: datetime | str | None) -> datetime | str | None:
        if isinstance(v, datetime) and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def has_content(self) -> bool:
        """True when the stage has something worth showing in a detail view."""
        return bool(
            self.status == "completed"
            or self.content
            or self.stories
            or self.design_content
            or self.code_files
            or self.test_files
            or self.test_cases
            or self.deployment_info
        )


class WorkflowData(BaseModel):
    """The whole projected pipeline: ordered stages plus aggregate fields.

    Construction validates that stage ids are unique and that at most one
    stage is `active`.
    """

    stages: list[WorkflowStage]
    current_stage: StageId | Literal[""] = ""
    overall_progress: int = Field(default=0, ge=0, le=100)

    @model_validator(mode="after")
    def check_stage_invariants(self) -> "WorkflowData":
        ids = [s.id for s in self.stages]
        if len(ids) != len(set(ids)):
            raise ValueError(f"duplicate stage ids: {ids}")
        active = [s.id for s in self.stages if s.status == "active"]
        if len(active) > 1:
            raise ValueError(f"more than one active stage: {active}")
        return self

    @property
    def active_stage(self) -> WorkflowStage | None:
        for stage in self.stages:
            if stage.status == "active":
                return stage
        return None

    def stage(self, stage_id: str) -> WorkflowStage:
        """Look up a stage by id. Raises ValueError for ids outside the pipeline."""
        for stage in self.stages:
            if stage.id == stage_id:
                return stage
        raise ValueError(f"unknown stage id: {stage_id!r}")


_STAGE_CATALOGUE: dict[str, tuple[str, str, str]] = {
    "story_generation": ("Analyze", "Requirements analysis & user stories", "Story Writer"),
    "design_generation": ("Design", "UI/UX design & architecture", "Design Architect"),
    "code_generation": ("Code", "Code implementation & development", "Code Developer"),
    "testing": ("Test", "Quality assurance & testing", "Test Engineer"),
    "deployment": ("Deploy", "Production deployment & launch", "Deployment Manager"),
}


def initial_stages() -> list[WorkflowStage]:
    """Fresh list of all pipeline stages in pipeline order, all `pending`."""
    stages = []
    for stage_id in STAGE_ORDER:
        name, description, agent = _STAGE_CATALOGUE[stage_id]
        stages.append(WorkflowStage(
            id=stage_id, name=name, description=description, agent_name=agent,
        ))
    return stages


def initial_workflow() -> WorkflowData:
    return WorkflowData(stages=initial_stages())
