"""Bounded in-process notification history."""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Callable, Iterator
from datetime import datetime

from ..models import Notification, Reminder

DEFAULT_CAPACITY = 50


class NotificationCenter:
    """Keeps the most recent notifications, newest first.

    Once ``capacity`` is reached the oldest entry is evicted.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        self._entries: deque[Notification] = deque(maxlen=capacity)
        self._lock = threading.Lock()
        self._open_handler: Callable[[str], None] | None = None

    @property
    def capacity(self) -> int:
        return self._entries.maxlen

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Notification]:
        with self._lock:
            return iter(list(self._entries))

    def add(self, reminder: Reminder, now: datetime | None = None) -> Notification:
        notification = Notification(
            id=reminder.id,
            message=reminder.message,
            type=reminder.type,
            priority=reminder.priority,
            timestamp=now or datetime.now(),
            item_id=reminder.item_id,
            item_name=reminder.item_name,
        )
        with self._lock:
            self._entries.appendleft(notification)
        return notification

    def get(self, notification_id: str) -> Notification | None:
        with self._lock:
            for n in self._entries:
                if n.id == notification_id:
                    return n
        return None

    def mark_as_read(self, notification_id: str) -> bool:
        notification = self.get(notification_id)
        if notification is None:
            return False
        notification.read = True
        return True

    def mark_all_read(self) -> int:
        count = 0
        with self._lock:
            for n in self._entries:
                if not n.read:
                    n.read = True
                    count += 1
        return count

    @property
    def unread_count(self) -> int:
        with self._lock:
            return sum(1 for n in self._entries if not n.read)

    def bind_open_handler(self, handler: Callable[[str], None] | None) -> None:
        self._open_handler = handler

    def open(self, notification_id: str) -> bool:
        """Mark a notification read and forward the click to the reminder owner."""
        if not self.mark_as_read(notification_id):
            return False
        if self._open_handler is not None:
            self._open_handler(notification_id)
        return True
