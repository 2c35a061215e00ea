"""Message projection for display: de-duplication and hidden-message filtering.

The transport may redeliver state snapshots that repeat earlier assistant
turns verbatim. `project()` is a pure function of the whole history, so it is
safe to recompute on every snapshot. Rules, applied in order:

  1. Human messages are always kept by the de-duplication step.
  2. Any other message whose string content already appeared earlier in the
     history is dropped. Non-string content is never treated as a duplicate.
  3. Messages whose id carries the reserved do-not-render prefix, or whose
     `additional_kwargs` set `do_not_render`, are dropped.
"""
import logging
from collections.abc import Iterable

from pydantic import ValidationError

from models.messages import Message

logger = logging.getLogger(__name__)

DO_NOT_RENDER_ID_PREFIX = "do-not-render-"


def project(
    messages: Iterable[Message | dict],
    do_not_render_prefix: str = DO_NOT_RENDER_ID_PREFIX,
) -> list[Message]:
    history = parse_messages(messages)
    return [m for m in deduplicate(history) if not _is_hidden(m, do_not_render_prefix)]


def parse_messages(messages: Iterable[Message | dict]) -> list[Message]:
    """Validate a raw history. Entries that are not messages are logged and skipped."""
    parsed: list[Message] = []
    for raw in messages:
        if isinstance(raw, Message):
            parsed.append(raw)
            continue
        try:
            parsed.append(Message.model_validate(raw))
        except ValidationError as exc:
            logger.warning(
                "Skipping malformed message id=%s: %d validation error(s)",
                raw.get("id") if isinstance(raw, dict) else None, exc.error_count(),
            )
    return parsed


def deduplicate(messages: list[Message]) -> list[Message]:
    seen: set[str] = set()
    kept: list[Message] = []
    for message in messages:
        text = message.text
        if message.type == "human" or text is None or text not in seen:
            kept.append(message)
        else:
            logger.debug("Dropping replayed %s message %s", message.type, message.id)
        if text is not None:
            seen.add(text)
    return kept


def _is_hidden(message: Message, prefix: str) -> bool:
    if message.id and prefix and message.id.startswith(prefix):
        return True
    return message.do_not_render
