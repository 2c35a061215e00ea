"""Work-item identifier detection in free-form user text.

An identifier is a run of uppercase letters, a hyphen and digits (`APEX-101`).
Patterns are tried in order; a keyword-led mention ("epic APEX-101",
"Story: PROJ-7") wins over a bare token elsewhere in the text. Keywords match
case-insensitively, the token itself only in uppercase. Matches are not
anchored to word boundaries: "APEX-101a" yields `APEX-101`.
"""
import logging
import re

logger = logging.getLogger(__name__)

_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"(?i:epic|issue|story|task)\s*[#:]?\s*([A-Z]+-\d+)"),
    re.compile(r"([A-Z]+-\d+)"),
)


def detect(text: str) -> str | None:
    """Return the first identifier found in `text`, or None."""
    for pattern in _PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1)
    return None


class IdentifierTracker:
    """Remembers the last identifier seen so only a *new* one triggers a reset."""

    def __init__(self) -> None:
        self.last_identifier: str | None = None

    def observe(self, text: str) -> str | None:
        """Return the detected identifier if it differs from the last one, else None."""
        identifier = detect(text)
        if identifier is None or identifier == self.last_identifier:
            return None
        logger.info("New work item detected: %s (previous: %s)", identifier, self.last_identifier)
        self.last_identifier = identifier
        return identifier

    def clear(self) -> None:
        self.last_identifier = None
