"""WorkflowManager: the single owner of the projected workflow state.

Every mutation goes through this object on one event loop: stream events,
timer ticks, explicit stage operations and resets are each applied as one
synchronous step, so none can interleave mid-update and no locks are needed.

While any stage is active a periodic tick nudges its progress upward by a
small random amount so the display keeps moving between real events. The
tick task is started when a stage becomes active and cancelled as soon as
none is. It needs a running event loop; synchronous callers simply get no
ticking.
"""
import asyncio
import logging
import random
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import Any, Protocol
from uuid import uuid4

from models.events import ContentReadyEvent
from models.messages import Message
from models.stages import WorkflowData, initial_workflow
from pipeline import state_machine
from pipeline.chat_tracker import ChatTracker
from pipeline.classify import classify, parse_event
from pipeline.identifiers import IdentifierTracker
from pipeline.message_filter import parse_messages, project
from pipeline.simulate import simulate_events
from settings import Settings
from utils.notifications import ErrorNotifier

logger = logging.getLogger(__name__)


class StreamTransport(Protocol):
    """The streaming channel that delivers messages and `ui` events."""

    messages: list
    values: dict
    is_loading: bool
    interrupt: Any
    error: Any

    def submit(self, patch: dict | None, options: dict | None = None) -> Any: ...

    def stop(self) -> Any: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WorkflowManager:
    def __init__(
        self,
        settings: Settings,
        transport: StreamTransport | None = None,
        notify: Callable[[str], None] | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.settings = settings
        self.transport = transport
        self.chat = ChatTracker()
        self.identifiers = IdentifierTracker()
        self.errors = ErrorNotifier(notify)
        self._rng = rng or random.Random()
        self._clock = clock
        self._workflow = initial_workflow()
        self._manual_stage: str | None = None
        self._ui_cursor = 0
        self._tick_task: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def get_workflow_data(self) -> WorkflowData:
        return self._workflow

    def selected_stage(self) -> str:
        """Manual selection if any, otherwise the auto-selected current stage."""
        return self._manual_stage or self._workflow.current_stage

    def get_filtered_messages(self, messages: Sequence | None = None) -> list[Message]:
        if messages is None:
            messages = self.transport.messages if self.transport is not None else []
        return project(messages, self.settings.do_not_render_prefix)

    @property
    def ticker_running(self) -> bool:
        return self._tick_task is not None and not self._tick_task.done()

    # ------------------------------------------------------------------
    # Event stream
    # ------------------------------------------------------------------

    def apply_event(self, raw) -> WorkflowData:
        """Apply one raw or typed event. Unprojectable events leave state unchanged."""
        event = parse_event(raw)
        if event is None:
            return self._workflow
        self.chat.track_events([event])
        self._commit(state_machine.apply(
            self._workflow, event, now=self._clock(), policy=self.settings.progress_policy,
        ))
        return self._workflow

    def ingest_ui(self, ui_values: Sequence) -> WorkflowData:
        """Apply the entries of the append-only `ui` list not seen before.

        A list shorter than what was already consumed belongs to a new
        thread; consumption restarts from its beginning.
        """
        if len(ui_values) < self._ui_cursor:
            logger.info("ui stream shrank from %d to %d entries, restarting", self._ui_cursor, len(ui_values))
            self._ui_cursor = 0

        fresh = ui_values[self._ui_cursor:]
        self._ui_cursor = len(ui_values)
        for event in classify(fresh):
            self.apply_event(event)
        return self._workflow

    def sync_from_transport(self) -> WorkflowData:
        """Pull the transport's current snapshot: ui events, messages and error."""
        if self.transport is None:
            return self._workflow
        self.ingest_ui((self.transport.values or {}).get("ui") or [])
        self.chat.track_messages(parse_messages(self.transport.messages or []))
        self.handle_stream_error(self.transport.error)
        return self._workflow

    def handle_stream_error(self, error) -> bool:
        return self.errors.report(error)

    # ------------------------------------------------------------------
    # Resets
    # ------------------------------------------------------------------

    def reset_workflow(self) -> WorkflowData:
        """Replace the workflow with the initial stage list and clear session trackers."""
        logger.info("Resetting workflow")
        self.chat.clear()
        self.identifiers.clear()
        self._commit(initial_workflow())
        return self._workflow

    def reset_for_new_epic(self, identifier: str) -> WorkflowData:
        self.reset_workflow()
        self.identifiers.last_identifier = identifier
        logger.info("Workflow reset for new work item %s", identifier)
        return self._workflow

    # ------------------------------------------------------------------
    # Explicit stage operations
    # ------------------------------------------------------------------

    def select_stage(self, stage_id: str) -> str:
        """Toggle manual selection of a stage that has something to show.

        Raises ValueError for ids outside the pipeline.
        """
        stage = self._workflow.stage(stage_id)
        if not stage.has_content:
            logger.debug("Stage %s has no content yet, selection ignored", stage_id)
        elif self._manual_stage == stage_id:
            self._manual_stage = None
        else:
            self._manual_stage = stage_id
        return self.selected_stage()

    def update_stage_content(self, stage_id: str, content: str) -> WorkflowData:
        self._commit(state_machine.set_content(self._workflow, stage_id, content))
        return self._workflow

    def mark_stage_complete(self, stage_id: str) -> WorkflowData:
        self._commit(state_machine.mark_complete(self._workflow, stage_id, now=self._clock()))
        return self._workflow

    def mark_stage_failed(self, stage_id: str) -> WorkflowData:
        self._commit(state_machine.mark_failed(self._workflow, stage_id, now=self._clock()))
        return self._workflow

    # ------------------------------------------------------------------
    # Transport operations
    # ------------------------------------------------------------------

    def submit_message(self, text: str) -> bool:
        """Send a human message; a newly mentioned work item resets the workflow first.

        Returns False when nothing was sent (blank text or a run in flight).
        """
        if self.transport is None:
            raise RuntimeError("No transport attached to WorkflowManager")
        if not text.strip() or self.transport.is_loading:
            return False

        identifier = self.identifiers.observe(text)
        if identifier is not None:
            self.reset_for_new_epic(identifier)
        self.chat.on_submit()

        message = Message(id=str(uuid4()), type="human", content=text)
        self.transport.submit(
            {"messages": [message.model_dump(exclude_none=True)]},
            {"stream_mode": ["values"]},
        )
        return True

    def stop(self) -> None:
        """Stop the in-flight run. Stage state is left as it is."""
        if self.transport is not None:
            self.transport.stop()

    # ------------------------------------------------------------------
    # Demo
    # ------------------------------------------------------------------

    async def run_demo(self, delay: bool = True) -> WorkflowData:
        """Reset, then replay the deterministic demo stream through the normal event path."""
        self.reset_workflow()
        for event in simulate_events():
            self.apply_event(event)
            if not delay:
                await asyncio.sleep(0)
            elif isinstance(event, ContentReadyEvent):
                await asyncio.sleep(self.settings.demo_stage_delay_seconds)
            else:
                await asyncio.sleep(self.settings.demo_step_delay_seconds)
        logger.info("Demo complete, overall progress %d%%", self._workflow.overall_progress)
        return self._workflow

    # ------------------------------------------------------------------
    # Progress ticking
    # ------------------------------------------------------------------

    def tick(self) -> WorkflowData:
        """Nudge active stages' progress by a random 1..tick_max_increment."""
        self._commit(state_machine.advance_active(
            self._workflow,
            lambda: self._rng.randint(1, self.settings.tick_max_increment),
            self.settings.tick_ceiling,
        ))
        return self._workflow

    async def aclose(self) -> None:
        """Cancel the tick task and wait for it to finish."""
        task, self._tick_task = self._tick_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _tick_loop(self) -> None:
        try:
            while True:
                await asyncio.sleep(self.settings.tick_interval_seconds)
                self.tick()
                logger.debug("Tick: overall progress %d%%", self._workflow.overall_progress)
        except asyncio.CancelledError:
            logger.debug("Tick task cancelled")
            raise

    def _sync_ticker(self) -> None:
        has_active = self._workflow.active_stage is not None
        if has_active and not self.ticker_running:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                return
            self._tick_task = loop.create_task(self._tick_loop())
            logger.debug("Tick task started")
        elif not has_active and self._tick_task is not None:
            self._tick_task.cancel()
            self._tick_task = None

    def _commit(self, workflow: WorkflowData) -> None:
        self._workflow = workflow
        if workflow.overall_progress == 0:
            self._manual_stage = None
        self._sync_ticker()
