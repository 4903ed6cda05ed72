"""Notification channel base class."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable

TAG_PREFIX = "freshkeep-reminder-"


def reminder_tag(reminder_id: str) -> str:
    return f"{TAG_PREFIX}{reminder_id}"


def reminder_id_from_tag(tag: str) -> str:
    return tag[len(TAG_PREFIX):] if tag.startswith(TAG_PREFIX) else tag


class NotificationChannel(ABC):
    """A local delivery target for reminder notifications.

    Delivery is fire-and-forget: ``send`` either returns or raises, and the
    dispatcher never retries.
    """

    name: str = ""

    def __init__(self) -> None:
        self._click_handler: Callable[[str], None] | None = None

    @abstractmethod
    def can_deliver(self) -> bool:
        """Whether the channel is currently allowed and able to send."""
        ...

    @abstractmethod
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
        ...

    def bind_click_handler(self, handler: Callable[[str], None] | None) -> None:
        """Register the callback receiving the reminder id of a clicked notification."""
        self._click_handler = handler

    def _emit_click(self, tag: str) -> None:
        if self._click_handler is not None:
            self._click_handler(reminder_id_from_tag(tag))
