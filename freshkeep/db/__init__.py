"""SQLite storage for grocery items and reminders."""

from .base import ItemStore, ReminderStore, StoreError
from .items import ItemDB
from .reminders import ReminderDB
from .schema import ensure_schema

__all__ = [
    "ItemStore",
    "ReminderStore",
    "StoreError",
    "ItemDB",
    "ReminderDB",
    "ensure_schema",
]
