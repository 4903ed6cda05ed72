"""Store contracts the engine depends on."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..models import Item, Reminder


class StoreError(RuntimeError):
    """Raised when a reminder store cannot be read or written."""


class ItemStore(ABC):
    """Source of inventory items. The engine only reads from it."""

    @abstractmethod
    def list_active_items(self) -> list[Item]:
        """Return all items that are not completed."""
        ...


class ReminderStore(ABC):
    """Whole-collection snapshot storage for reminders.

    ``save`` replaces everything previously stored; ``load`` returns the
    records in the order they were saved.
    """

    @abstractmethod
    def load(self) -> list[Reminder]:
        ...

    @abstractmethod
    def save(self, reminders: list[Reminder]) -> None:
        ...
