import logging
import time
from typing import Callable, Optional

from quickcart.utils.errors import ApiError, NetworkError

logger = logging.getLogger(__name__)

# sink(level, message) where level is "success" or "error"
NotificationSink = Callable[[str, str], None]


def describe_error(exc: Exception) -> str:
    """Map a failed request to the message shown to the user."""
    if isinstance(exc, NetworkError):
        return "Unable to reach the server. Check your connection and try again."
    if not isinstance(exc, ApiError):
        return str(exc) or "Something went wrong. Please try again."

    status = exc.status_code
    if status == 401:
        return "Session expired. Please log in again."
    if status == 403:
        return "You don't have permission to perform this action."
    if status == 404:
        return "The requested resource was not found."
    if status in (400, 422):
        return exc.message or "Invalid data provided. Please check your inputs."
    if status >= 500:
        return "Server error. Please try again later."
    return exc.message or "Something went wrong. Please try again."


class Notifier:
    """User-visible notifications.

    Identical error messages within ``window_seconds`` of each other are shown
    once; concurrent failing requests would otherwise flood the user.
    """

    def __init__(self, window_seconds: float = 2.0, sink: Optional[NotificationSink] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.window_seconds = window_seconds
        self.sink = sink
        self._clock = clock
        self._last_error_message: Optional[str] = None
        self._last_error_at: Optional[float] = None

    def _emit(self, level: str, message: str) -> None:
        if self.sink is not None:
            self.sink(level, message)

    def success(self, message: Optional[str]) -> None:
        if not message:
            return
        logger.info("[notify:success] %s", message)
        self._emit("success", message)

    def error(self, message: str) -> bool:
        """Show an error; returns False when it was suppressed as a duplicate."""
        now = self._clock()
        if (
            self._last_error_at is not None
            and message == self._last_error_message
            and now - self._last_error_at < self.window_seconds
        ):
            logger.debug("Suppressed duplicate notification: %s", message)
            return False
        self._last_error_message = message
        self._last_error_at = now
        logger.warning("[notify:error] %s", message)
        self._emit("error", message)
        return True

    def api_error(self, exc: Exception) -> bool:
        if isinstance(exc, ApiError):
            logger.error("API error (%s) for %s: %s", exc.status_code, exc.url, exc.message)
        else:
            logger.error("Request failed: %s", exc)
        return self.error(describe_error(exc))
