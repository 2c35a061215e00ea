"""Event classification: raw `ui` entries to typed events.

Each raw entry is validated against the closed `UIEvent` union keyed by
`name`. Entries with an unrecognised tag or an invalid shape are logged and
dropped; nothing here raises.
"""
import logging
from collections.abc import Iterable

from pydantic import BaseModel, TypeAdapter, ValidationError

from models.events import AiResponseEvent, ContentReadyEvent, EventKind, ProgressEvent, UIEvent

logger = logging.getLogger(__name__)

_EVENT_ADAPTER: TypeAdapter = TypeAdapter(UIEvent)
_EVENT_TYPES = (ProgressEvent, ContentReadyEvent, AiResponseEvent)

EVENT_KINDS: tuple[EventKind, ...] = ("progress", "content_ready", "ai_response")


def parse_event(raw) -> ProgressEvent | ContentReadyEvent | AiResponseEvent | None:
    """Validate one raw entry. Returns None if it cannot be projected."""
    if isinstance(raw, _EVENT_TYPES):
        return raw
    if isinstance(raw, BaseModel):
        raw = raw.model_dump()
    if not isinstance(raw, dict):
        logger.warning("Dropping non-object ui entry: %r", raw)
        return None
    if raw.get("type", "ui") != "ui":
        logger.debug("Ignoring entry of type %r", raw.get("type"))
        return None
    try:
        return _EVENT_ADAPTER.validate_python(raw)
    except ValidationError as exc:
        logger.warning(
            "Dropping malformed ui event id=%s name=%r: %d validation error(s)",
            raw.get("id"), raw.get("name"), exc.error_count(),
        )
        return None


def classify(raw_events: Iterable) -> list[ProgressEvent | ContentReadyEvent | AiResponseEvent]:
    """Parse a sequence of raw entries, keeping arrival order."""
    events = []
    for raw in raw_events:
        event = parse_event(raw)
        if event is not None:
            events.append(event)
    return events


def partition(events: Iterable) -> dict[str, list]:
    """Group typed events by kind; each group keeps arrival order."""
    groups: dict[str, list] = {kind: [] for kind in EVENT_KINDS}
    for event in events:
        groups[event.name].append(event)
    return groups
