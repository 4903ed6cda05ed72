"""Data models for inventory items, expiry state, and reminders."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ExpiryStatus(str, Enum):
    FRESH = "fresh"
    EXPIRING_SOON = "expiring_soon"
    EXPIRED = "expired"


class ReminderType(str, Enum):
    EXPIRY_WARNING = "expiry_warning"
    EXPIRED = "expired"
    PURCHASE_REMINDER = "purchase_reminder"
    SHOPPING_LIST = "shopping_list"


# Named recurrence frequencies
DAILY = timedelta(days=1)
WEEKLY = timedelta(days=7)
MONTHLY = timedelta(days=30)

DEFAULT_CHANNELS: tuple[str, ...] = ("in_app", "desktop")


@dataclass
class Item:
    """A tracked grocery item as handed over by the item store."""

    id: int | str
    name: str
    category: str = ""
    quantity: float = 1
    priority: str = Priority.MEDIUM.value
    purchase_date: date | datetime | str | None = None  # None means "now"
    completed: bool = False
    shelf_life_days: int | None = None  # explicit override


@dataclass(frozen=True)
class ExpiryState:
    """Freshness of an item at a point in time. Never stored on the item."""

    expiration_date: date
    days_until_expiry: int  # negative once past expiration
    status: ExpiryStatus
    shelf_life_days: int

    @property
    def is_expired(self) -> bool:
        return self.status is ExpiryStatus.EXPIRED

    @property
    def is_expiring_soon(self) -> bool:
        return self.status is ExpiryStatus.EXPIRING_SOON


@dataclass
class Reminder:
    id: str
    item_id: int | str
    type: ReminderType
    reminder_date: datetime
    created_date: datetime
    priority: str = Priority.MEDIUM.value
    message: str = ""
    item_name: str = ""
    sent_date: datetime | None = None
    is_active: bool = True
    is_sent: bool = False
    recurring: bool = False
    frequency: timedelta | None = None
    notification_channels: tuple[str, ...] = DEFAULT_CHANNELS
    max_occurrences: int | None = None
    end_date: datetime | None = None
    occurrence: int = 1
    interacted: bool = False
    deactivated_date: datetime | None = None

    @property
    def is_pending(self) -> bool:
        """Active and not yet sent: the state the dedupe key constrains."""
        return self.is_active and not self.is_sent

    @property
    def dedupe_key(self) -> tuple[str, ReminderType]:
        return (str(self.item_id), self.type)

    def is_due(self, now: datetime) -> bool:
        return self.is_pending and self.reminder_date <= now

    def mark_sent(self, now: datetime) -> None:
        self.is_sent = True
        self.sent_date = now

    def deactivate(self, now: datetime) -> bool:
        """Turn the reminder off. Returns False if it was already inactive."""
        if not self.is_active:
            return False
        self.is_active = False
        self.deactivated_date = now
        return True

    def next_occurrence_date(self) -> datetime | None:
        """Due date of the successor, or None when the chain should stop."""
        if not self.recurring or not self.frequency:
            return None
        if self.max_occurrences is not None and self.occurrence >= self.max_occurrences:
            return None
        next_date = self.reminder_date + self.frequency
        if self.end_date is not None and next_date > self.end_date:
            return None
        return next_date


@dataclass
class ActivityEntry:
    """One line of the in-process reminder activity log."""

    reminder_id: str
    item_id: int | str
    action: str  # "created" | "sent" | "clicked" | "deactivated"
    timestamp: datetime
    priority: str
    type: ReminderType


@dataclass
class Notification:
    """An entry in the in-app notification center."""

    id: str  # id of the reminder that produced it
    message: str
    type: ReminderType
    priority: str
    timestamp: datetime
    item_id: int | str
    item_name: str = ""
    read: bool = False
