"""Grocery expiry tracking and reminder engine."""

from .config import FreshkeepConfig, load_config
from .db import ItemDB, ItemStore, ReminderDB, ReminderStore, StoreError
from .expiry import ExpiryCalculator, ValidationError
from .models import (
    DAILY,
    MONTHLY,
    WEEKLY,
    ExpiryState,
    ExpiryStatus,
    Item,
    Priority,
    Reminder,
    ReminderType,
)
from .notify import (
    DesktopChannel,
    InAppChannel,
    NotificationCenter,
    NotificationChannel,
    NotificationDispatcher,
)
from .reminders import ReminderEngine
from .report import ExpiryReport, ExpiryReportBuilder, report_to_csv
from .shelf_life import ShelfLifeResolver

__all__ = [
    "ShelfLifeResolver",
    "ExpiryCalculator",
    "ValidationError",
    "ExpiryReportBuilder",
    "ExpiryReport",
    "report_to_csv",
    "ReminderEngine",
    "NotificationDispatcher",
    "NotificationCenter",
    "NotificationChannel",
    "InAppChannel",
    "DesktopChannel",
    "ItemStore",
    "ReminderStore",
    "ItemDB",
    "ReminderDB",
    "StoreError",
    "Item",
    "ExpiryState",
    "ExpiryStatus",
    "Reminder",
    "ReminderType",
    "Priority",
    "DAILY",
    "WEEKLY",
    "MONTHLY",
    "FreshkeepConfig",
    "load_config",
]
