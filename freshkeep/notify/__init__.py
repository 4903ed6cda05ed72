"""Notification channels, dispatcher, and in-app notification center."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .base import NotificationChannel, reminder_id_from_tag, reminder_tag
from .center import NotificationCenter
from .desktop import DesktopChannel
from .dispatcher import NotificationDispatcher, notification_icon
from .in_app import InAppChannel

if TYPE_CHECKING:
    from ..config import FreshkeepConfig


def create_channel(name: str, config: FreshkeepConfig) -> NotificationChannel:
    """Create a notification channel by name."""
    match name:
        case "in_app":
            return InAppChannel()
        case "desktop":
            return DesktopChannel(
                enabled=config.notifications.desktop_enabled,
                app_name=config.notifications.app_name,
            )
        case _:
            raise ValueError(
                f"Unknown notification channel: {name!r}  "
                f"(choose from in_app / desktop)"
            )


def create_dispatcher(config: FreshkeepConfig) -> NotificationDispatcher:
    """Build a dispatcher with every channel listed in the config."""
    channels = [create_channel(name, config) for name in config.reminders.channels]
    return NotificationDispatcher(
        channels,
        NotificationCenter(capacity=config.notifications.center_capacity),
    )


__all__ = [
    "NotificationChannel",
    "NotificationCenter",
    "NotificationDispatcher",
    "InAppChannel",
    "DesktopChannel",
    "create_channel",
    "create_dispatcher",
    "notification_icon",
    "reminder_tag",
    "reminder_id_from_tag",
]
