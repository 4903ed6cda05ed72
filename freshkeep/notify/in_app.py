"""In-app toast channel."""

from __future__ import annotations

import logging
from collections.abc import Callable

from .base import NotificationChannel

logger = logging.getLogger(__name__)

# priority -> toast level
_TOAST_LEVELS = {
    "high": "error",
    "medium": "warning",
    "low": "info",
}


class InAppChannel(NotificationChannel):
    """Shows reminders inside the running application.

    The host application passes a ``toast`` callback taking
    ``(message, level)``. Without one, toasts are written to the log.
    """

    name = "in_app"

    def __init__(self, toast: Callable[[str, str], None] | None = None) -> None:
        super().__init__()
        self._toast = toast

    def can_deliver(self) -> bool:
        return True

    def send(
        self,
        title: str,
        body: str,
        *,
        tag: str,
        require_interaction: bool = False,
        silent: bool = False,
        priority: str = "medium",
    ) -> None:
        level = _TOAST_LEVELS.get(priority, "info")
        if self._toast is not None:
            self._toast(body, level)
        else:
            logger.info("[%s] %s: %s", level, title, body)

    def click(self, tag: str) -> None:
        """Called by the host UI when the user clicks a toast."""
        self._emit_click(tag)
