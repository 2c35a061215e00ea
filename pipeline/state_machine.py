"""Stage state machine: applies one event at a time to a WorkflowData value.

Per-stage lifecycle:

    pending ──► active ──► completed
                  │  ▲
                  └──┘ (repeated progress events)
                  └──────► failed   (explicit mark only)

Rules for an event that targets stage S (resolved from its agent):

  progress       pending S becomes active; a supplied progress value replaces
                 the stored one; reaching 100 completes S.
  content_ready  S is completed at 100 and the payload fields the event
                 carries are merged in (absent fields are left untouched).
  ai_response    S completes only if the event carries progress >= 100;
                 otherwise status is unchanged and only content (and, for an
                 active S, progress) is updated.

Every targeted event also completes any *other* active stage: a stage
starting means the previous one has handed off. Completed and failed stages
are terminal: later events may update their content but never reopen them.

All functions are pure: they return a new WorkflowData and never mutate the
input. The result is built through the WorkflowData constructor, whose
validator rejects more than one active stage.
"""
import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import Literal

from models.events import AiResponseEvent, ContentReadyEvent, ProgressEvent
from models.stages import WorkflowData, WorkflowStage
from pipeline.aggregate import aggregate
from pipeline.resolve import resolve

logger = logging.getLogger(__name__)

ProgressPolicy = Literal["last_write_wins", "monotonic"]

Event = ProgressEvent | ContentReadyEvent | AiResponseEvent


def apply(
    state: WorkflowData,
    event: Event,
    *,
    now: datetime | None = None,
    policy: ProgressPolicy = "last_write_wins",
) -> WorkflowData:
    """Project one event onto the workflow. Events without an agent are discarded."""
    agent_id = event.agent_id
    if not agent_id:
        logger.warning("Discarding %s event without agent_name (id=%s)", event.name, event.id)
        return state

    now = now or datetime.now(timezone.utc)
    target_id = resolve(agent_id)

    stages: list[WorkflowStage] = []
    for stage in state.stages:
        if stage.id == target_id:
            stages.append(_apply_to_target(stage, event, agent_id, now, policy))
        elif stage.status == "active":
            logger.info("Stage %s handed off to %s", stage.id, target_id)
            stages.append(_complete(stage, now))
        else:
            stages.append(stage)

    return _rebuild(state, stages)


def select_current_stage(stages: Sequence[WorkflowStage], previous: str) -> str:
    """Pick the stage a viewer should be looking at.

    The sole active stage wins. With nothing active, an unfinished selection
    is kept. A finished selection moves to the next pending stage after it in
    pipeline order, wrapping to the first pending stage when none follows; an
    empty selection takes the first pending stage. With nothing pending the
    selection is left as it is.
    """
    for stage in stages:
        if stage.status == "active":
            return stage.id

    position = next((i for i, s in enumerate(stages) if s.id == previous), None)
    if position is not None and not stages[position].is_terminal:
        return previous

    start = 0 if position is None else position + 1
    for stage in (*stages[start:], *stages[:start]):
        if stage.status == "pending":
            return stage.id
    return previous


# ---------------------------------------------------------------------------
# Explicit stage operations (not driven by the event stream)
# ---------------------------------------------------------------------------

def mark_complete(state: WorkflowData, stage_id: str, *, now: datetime | None = None) -> WorkflowData:
    state.stage(stage_id)  # validates the id
    now = now or datetime.now(timezone.utc)
    stages = [_complete(s, now) if s.id == stage_id else s for s in state.stages]
    return _rebuild(state, stages)


def mark_failed(state: WorkflowData, stage_id: str, *, now: datetime | None = None) -> WorkflowData:
    state.stage(stage_id)
    now = now or datetime.now(timezone.utc)
    stages = [_fail(s, now) if s.id == stage_id else s for s in state.stages]
    return _rebuild(state, stages)


def set_content(state: WorkflowData, stage_id: str, content: str) -> WorkflowData:
    state.stage(stage_id)
    stages = [
        s.model_copy(update={"content": content}) if s.id == stage_id else s
        for s in state.stages
    ]
    return _rebuild(state, stages)


def advance_active(
    state: WorkflowData,
    increment: Callable[[], int],
    ceiling: int,
) -> WorkflowData:
    """Nudge every active stage's progress up by `increment()`, capped at `ceiling`.

    Never lowers progress and never completes a stage; completion is left
    to real events.
    """
    stages = []
    for stage in state.stages:
        if stage.status == "active" and stage.progress < ceiling:
            progress = min(stage.progress + increment(), ceiling)
            stages.append(stage.model_copy(update={"progress": progress}))
        else:
            stages.append(stage)
    return _rebuild(state, stages)


# ---------------------------------------------------------------------------
# Per-stage transitions
# ---------------------------------------------------------------------------

def _apply_to_target(
    stage: WorkflowStage,
    event: Event,
    agent_id: str,
    now: datetime,
    policy: ProgressPolicy,
) -> WorkflowStage:
    props = event.props
    update: dict = {"agent_name": agent_id}
    if props.content:
        update["content"] = props.content

    if isinstance(event, ContentReadyEvent):
        if props.stage_data is not None:
            update.update(props.stage_data.present_fields())
        return _complete(stage.model_copy(update=update), now)

    if isinstance(event, ProgressEvent):
        stage = stage.model_copy(update=update)
        if stage.status == "pending":
            stage = _activate(stage, now)
        if stage.status == "active" and props.progress is not None:
            stage = _set_progress(stage, props.progress, policy)
            if stage.progress >= 100:
                stage = _complete(stage, now)
        return stage

    # ai_response
    stage = stage.model_copy(update=update)
    if props.progress is not None and props.progress >= 100:
        return _complete(stage, now)
    if stage.status == "active" and props.progress is not None:
        stage = _set_progress(stage, props.progress, policy)
    return stage


def _set_progress(stage: WorkflowStage, progress: int, policy: ProgressPolicy) -> WorkflowStage:
    if progress < stage.progress:
        if policy == "monotonic":
            logger.debug(
                "Ignoring progress regression on %s: %d → %d", stage.id, stage.progress, progress
            )
            return stage
        logger.debug("Progress regression on %s: %d → %d", stage.id, stage.progress, progress)
    return stage.model_copy(update={"progress": progress})


def _activate(stage: WorkflowStage, now: datetime) -> WorkflowStage:
    logger.info("Stage %s active", stage.id)
    return stage.model_copy(update={
        "status": "active",
        "start_time": stage.start_time or now,
    })


def _complete(stage: WorkflowStage, now: datetime) -> WorkflowStage:
    if stage.status != "completed":
        logger.info("Stage %s completed", stage.id)
    return stage.model_copy(update={
        "status": "completed",
        "progress": 100,
        "start_time": stage.start_time or now,
        "end_time": stage.end_time or now,
    })


def _fail(stage: WorkflowStage, now: datetime) -> WorkflowStage:
    if stage.status != "failed":
        logger.info("Stage %s failed", stage.id)
    return stage.model_copy(update={
        "status": "failed",
        "start_time": stage.start_time or now,
        "end_time": stage.end_time or now,
    })


def _rebuild(state: WorkflowData, stages: list[WorkflowStage]) -> WorkflowData:
    return WorkflowData(
        stages=stages,
        current_stage=select_current_stage(stages, state.current_stage),
        overall_progress=aggregate(stages),
    )
