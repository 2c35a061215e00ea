"""Stream error notifications, shown once per distinct message."""
import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)


def _log_notification(message: str) -> None:
    logger.error("An error occurred. Please try again. Error: %s", message)


def error_message(error) -> str | None:
    """Extract a human-readable message from a transport error value."""
    if error is None:
        return None
    if isinstance(error, str):
        return error or None
    if isinstance(error, dict):
        return error.get("message") or None
    message = getattr(error, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(error) or None


class ErrorNotifier:
    """Suppresses repeats of the same stream error.

    `report(None)` means the stream is healthy again; the next error is
    shown even if its message matches the previous one.
    """

    def __init__(self, notify: Callable[[str], None] | None = None) -> None:
        self._notify = notify or _log_notification
        self._last_message: str | None = None

    def report(self, error) -> bool:
        """Returns True if a notification was sent."""
        if error is None:
            self._last_message = None
            return False

        message = error_message(error)
        if not message or message == self._last_message:
            return False

        self._last_message = message
        self._notify(message)
        return True
