"""Per-session chat trackers that sit beside the stage projection.

They decide what the conversation view shows while agents are working: the
most recent progress line, which agents have already answered (and so no
longer need a progress line), and whether a new assistant message has
arrived since the last submission. All of it is transient and cleared by a
workflow reset.
"""
import logging
from collections.abc import Iterable

from models.events import AiResponseEvent, ProgressEvent
from models.messages import Message

logger = logging.getLogger(__name__)


def _response_key(event: AiResponseEvent) -> str:
    return event.id or f"{event.props.content}-{event.props.agent_name}"


class ChatTracker:
    def __init__(self) -> None:
        self.latest_progress: ProgressEvent | None = None
        self.ai_responses: list[AiResponseEvent] = []
        self.last_ai_message_id: str | None = None
        self._response_keys: set[str] = set()

    def track_events(self, events: Iterable) -> None:
        for event in events:
            if isinstance(event, ProgressEvent):
                self.latest_progress = event
            elif isinstance(event, AiResponseEvent):
                key = _response_key(event)
                if key in self._response_keys:
                    logger.debug("Skipping duplicate ai_response %s", key)
                    continue
                self._response_keys.add(key)
                self.ai_responses.append(event)

    def track_messages(self, messages: Iterable[Message]) -> None:
        """A newly arrived assistant message replaces the progress line."""
        last_ai = None
        for message in messages:
            if message.type == "ai":
                last_ai = message
        if last_ai is not None and last_ai.id != self.last_ai_message_id:
            self.last_ai_message_id = last_ai.id
            self.latest_progress = None

    def should_show_progress_for(self, agent_name: str) -> bool:
        return not any(e.props.agent_name == agent_name for e in self.ai_responses)

    def on_submit(self) -> None:
        self.latest_progress = None
        self.last_ai_message_id = None

    def clear(self) -> None:
        self.latest_progress = None
        self.ai_responses = []
        self.last_ai_message_id = None
        self._response_keys = set()
