import logging
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from models.stages import CodeFile, DeploymentInfo, Story, TestCase

logger = logging.getLogger(__name__)

EventKind = Literal["progress", "content_ready", "ai_response"]


class StageData(BaseModel):
    """Stage-shaped payload carried by `content_ready` events.

    Every field is optional: only the fields present (non-null) are merged
    into the target stage, so partial payload updates are legal.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    stories: list[Story] | None = None
    design_content: str | None = None
    code_files: list[CodeFile] | None = None
    test_files: list[CodeFile] | None = None
    test_cases: list[TestCase] | None = None
    deployment_info: DeploymentInfo | None = None

    def present_fields(self) -> dict:
        """Field name → value for every payload field the event actually carries."""
        return {
            name: getattr(self, name)
            for name in type(self).model_fields
            if getattr(self, name) is not None
        }


class EventProps(BaseModel):
    agent_name: str | None = None
    content: str | None = None
    progress: int | None = None  # 0-100, clamped on the way in
    stage_data: StageData | None = None
    message: str | None = None

    @field_validator("content", "message", mode="before")
    @classmethod
    def drop_non_text(cls, v):
        # Structured content blocks carry nothing the stage view can show.
        return v if v is None or isinstance(v, str) else None

    @field_validator("progress", mode="before")
    @classmethod
    def clamp_progress(cls, v):
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return None
        return max(0, min(100, int(round(v))))

    @field_validator("stage_data", mode="before")
    @classmethod
    def drop_invalid_payload_fields(cls, v):
        # Invalid fields are dropped one by one; the event itself always survives.
        if v is None or isinstance(v, StageData):
            return v
        if not isinstance(v, dict):
            logger.warning("Dropping non-object stage_data: %r", type(v).__name__)
            return None
        kept = {}
        for key, value in v.items():
            try:
                StageData.model_validate({key: value})
            except ValidationError as exc:
                logger.warning("Dropping invalid stage_data field %r: %d validation error(s)", key, exc.error_count())
                continue
            kept[key] = value
        return kept


class _UIEventBase(BaseModel):
    """Common shape of one entry of the transport's append-only `ui` list."""

    id: str | None = None
    type: Literal["ui"] = "ui"
    props: EventProps = Field(default_factory=EventProps)
    metadata: dict | None = None

    @field_validator("props", mode="before")
    @classmethod
    def default_missing_props(cls, v):
        return {} if v is None else v

    @property
    def agent_id(self) -> str | None:
        return self.props.agent_name or None


class ProgressEvent(_UIEventBase):
    name: Literal["progress"] = "progress"


class ContentReadyEvent(_UIEventBase):
    name: Literal["content_ready"] = "content_ready"


class AiResponseEvent(_UIEventBase):
    name: Literal["ai_response"] = "ai_response"


UIEvent = Annotated[
    ProgressEvent | ContentReadyEvent | AiResponseEvent,
    Field(discriminator="name"),
]
