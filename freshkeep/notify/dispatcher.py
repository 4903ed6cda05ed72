"""Deliver due reminders to notification channels."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime

from ..models import Priority, Reminder, ReminderType
from .base import NotificationChannel, reminder_tag
from .center import NotificationCenter

logger = logging.getLogger(__name__)

NOTIFICATION_TITLE = "Grocery Reminder"

_ICONS: dict[ReminderType, str] = {
    ReminderType.EXPIRY_WARNING: "⚠️",
    ReminderType.EXPIRED: "🚨",
    ReminderType.PURCHASE_REMINDER: "🛒",
    ReminderType.SHOPPING_LIST: "📝",
}


def notification_icon(reminder_type: ReminderType) -> str:
    return _ICONS.get(reminder_type, "📱")


class NotificationDispatcher:
    """Sends a reminder through each of its channels.

    Channels that cannot deliver are skipped, and a channel raising an
    exception never stops the others. Every dispatch is recorded in the
    notification center whatever the channels did.
    """

    def __init__(
        self,
        channels: Iterable[NotificationChannel] = (),
        center: NotificationCenter | None = None,
    ) -> None:
        self._channels: dict[str, NotificationChannel] = {}
        self.center = center or NotificationCenter()
        self._click_handler: Callable[[str], None] | None = None
        for channel in channels:
            self.register(channel)

    @property
    def channels(self) -> dict[str, NotificationChannel]:
        return dict(self._channels)

    def register(self, channel: NotificationChannel) -> None:
        self._channels[channel.name] = channel
        channel.bind_click_handler(self._click_handler)

    def set_click_handler(self, handler: Callable[[str], None] | None) -> None:
        """Route notification clicks from every channel and the center to ``handler``."""
        self._click_handler = handler
        for channel in self._channels.values():
            channel.bind_click_handler(handler)
        self.center.bind_open_handler(handler)

    def dispatch(self, reminder: Reminder, now: datetime | None = None) -> list[str]:
        """Deliver a reminder.

        Returns:
            Names of the channels that accepted the notification.
        """
        delivered: list[str] = []
        title = f"{notification_icon(reminder.type)} {NOTIFICATION_TITLE}"

        for name in reminder.notification_channels:
            channel = self._channels.get(name)
            if channel is None:
                logger.debug("Unknown channel %r for reminder %s", name, reminder.id)
                continue
            try:
                if not channel.can_deliver():
                    continue
                channel.send(
                    title,
                    reminder.message,
                    tag=reminder_tag(reminder.id),
                    require_interaction=reminder.priority == Priority.HIGH.value,
                    silent=reminder.priority == Priority.LOW.value,
                    priority=reminder.priority,
                )
                delivered.append(name)
            except Exception:
                logger.exception(
                    "Channel %s failed for reminder %s", name, reminder.id
                )

        self.center.add(reminder, now)
        return delivered
