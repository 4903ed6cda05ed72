"""Reminder lifecycle: creation, due processing, recurrence, and cleanup."""

from __future__ import annotations

import dataclasses
import logging
import threading
import uuid
from collections import deque
from collections.abc import Callable, Iterable
from datetime import datetime, time, timedelta

from .db.base import ReminderStore, StoreError
from .expiry import ExpiryCalculator, ValidationError
from .models import (
    DEFAULT_CHANNELS,
    ActivityEntry,
    ExpiryState,
    Item,
    Priority,
    Reminder,
    ReminderType,
)
from .notify import NotificationDispatcher

logger = logging.getLogger(__name__)

ACTIVITY_LOG_SIZE = 100


def reminder_message(
    reminder_type: ReminderType,
    item_name: str,
    *,
    days_until_expiry: int | None = None,
    quantity: float | None = None,
) -> str:
    match reminder_type:
        case ReminderType.EXPIRY_WARNING:
            return f"⚠️ {item_name} expires in {days_until_expiry} day(s)!"
        case ReminderType.EXPIRED:
            return f"🚨 {item_name} has expired! Please remove from list."
        case ReminderType.PURCHASE_REMINDER:
            return f"🛒 Don't forget to buy {item_name}!"
        case ReminderType.SHOPPING_LIST:
            if quantity is not None:
                return f"📝 You have {quantity:g} {item_name} on your shopping list."
            return f"📝 {item_name} is on your shopping list."
    return f"Reminder about {item_name}"


def reminder_priority(reminder_type: ReminderType, item_priority: str | None = None) -> str:
    """High for expired or high-priority items, medium for warnings, else low."""
    if reminder_type is ReminderType.EXPIRED or item_priority == Priority.HIGH.value:
        return Priority.HIGH.value
    if reminder_type is ReminderType.EXPIRY_WARNING:
        return Priority.MEDIUM.value
    return Priority.LOW.value


def _new_id() -> str:
    return uuid.uuid4().hex


def _local(value: datetime | None) -> datetime | None:
    """Convert an aware datetime to naive local time. Naive values pass through."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def _localize(reminder: Reminder) -> Reminder:
    return dataclasses.replace(
        reminder,
        reminder_date=_local(reminder.reminder_date),
        created_date=_local(reminder.created_date),
        sent_date=_local(reminder.sent_date),
        end_date=_local(reminder.end_date),
        deactivated_date=_local(reminder.deactivated_date),
    )


class ReminderEngine:
    """Owns the reminder collection and its state transitions.

    The collection lives in memory and is written back to ``store`` as a
    whole after every change. If a save fails, the in-memory state is kept,
    :class:`StoreError` is raised, and the next change saves everything again.

    At most one active, unsent reminder exists per ``(item_id, type)``.
    All reads and writes of the collection happen under one lock;
    :meth:`process_due` is additionally single-flight.

    Datetimes are held as naive local time. Aware values passed in, returned
    by the clock, or loaded from the store are converted on the way in.
    """

    def __init__(
        self,
        store: ReminderStore,
        dispatcher: NotificationDispatcher | None = None,
        calculator: ExpiryCalculator | None = None,
        *,
        warning_window_days: int = 7,
        retention_days: int = 30,
        clock: Callable[[], datetime] | None = None,
        on_navigate: Callable[[int | str], None] | None = None,
    ) -> None:
        self._store = store
        self.dispatcher = dispatcher or NotificationDispatcher()
        self.calculator = calculator or ExpiryCalculator()
        self.warning_window_days = warning_window_days
        self.retention_days = retention_days
        self._clock = clock or datetime.now
        self.on_navigate = on_navigate

        self._reminders: dict[str, Reminder] = {}
        self._lock = threading.RLock()
        self._processing = threading.Lock()
        self._unsaved = False
        self.activity: deque[ActivityEntry] = deque(maxlen=ACTIVITY_LOG_SIZE)

        self.dispatcher.set_click_handler(self.handle_reminder_click)

    # -- persistence -------------------------------------------------------

    def load(self) -> int:
        """Replace the in-memory collection with the stored one.

        Returns:
            Number of reminders loaded.

        Raises:
            StoreError: If the store cannot be read. The current collection
                is left untouched.
        """
        try:
            reminders = self._store.load()
        except Exception as e:
            logger.exception("Failed to load reminders")
            raise StoreError("Failed to load reminders") from e

        with self._lock:
            self._reminders = {r.id: _localize(r) for r in reminders}
            self._unsaved = False
        logger.info("Loaded %d reminders", len(reminders))
        return len(reminders)

    @property
    def has_unsaved_changes(self) -> bool:
        return self._unsaved

    def _now(self, now: datetime | None = None) -> datetime:
        return _local(now or self._clock())

    def _persist(self) -> None:
        try:
            self._store.save(list(self._reminders.values()))
        except Exception as e:
            self._unsaved = True
            logger.exception("Failed to save %d reminders", len(self._reminders))
            raise StoreError("Failed to save reminders") from e
        self._unsaved = False

    def _record(self, reminder: Reminder, action: str, now: datetime) -> None:
        self.activity.append(
            ActivityEntry(
                reminder_id=reminder.id,
                item_id=reminder.item_id,
                action=action,
                timestamp=now,
                priority=reminder.priority,
                type=reminder.type,
            )
        )
        logger.info(
            "Reminder %s %s (item=%s type=%s priority=%s)",
            reminder.id,
            action,
            reminder.item_id,
            reminder.type.value,
            reminder.priority,
        )

    # -- creation ----------------------------------------------------------

    def _find_pending(self, item_id: int | str, reminder_type: ReminderType) -> Reminder | None:
        key = (str(item_id), reminder_type)
        for r in self._reminders.values():
            if r.is_pending and r.dedupe_key == key:
                return r
        return None

    def _has_active(self, item_id: int | str, reminder_type: ReminderType) -> bool:
        key = (str(item_id), reminder_type)
        return any(r.is_active and r.dedupe_key == key for r in self._reminders.values())

    def _create(
        self,
        item_id: int | str,
        reminder_type: ReminderType,
        reminder_date: datetime,
        now: datetime,
        *,
        priority: str | None = None,
        message: str | None = None,
        item_name: str = "",
        recurring: bool = False,
        frequency: timedelta | None = None,
        channels: Iterable[str] | None = None,
        max_occurrences: int | None = None,
        end_date: datetime | None = None,
    ) -> tuple[Reminder, bool]:
        existing = self._find_pending(item_id, reminder_type)
        if existing is not None:
            return existing, False

        if recurring and (frequency is None or frequency <= timedelta(0)):
            raise ValueError("A recurring reminder needs a positive frequency")
        if max_occurrences is not None and max_occurrences < 1:
            raise ValueError("max_occurrences must be at least 1")

        reminder = Reminder(
            id=_new_id(),
            item_id=item_id,
            type=reminder_type,
            reminder_date=_local(reminder_date),
            created_date=now,
            priority=priority or reminder_priority(reminder_type),
            message=message or reminder_message(reminder_type, item_name or str(item_id)),
            item_name=item_name,
            recurring=recurring,
            frequency=frequency if recurring else None,
            notification_channels=tuple(dict.fromkeys(channels or DEFAULT_CHANNELS)),
            max_occurrences=max_occurrences if recurring else None,
            end_date=_local(end_date) if recurring else None,
        )
        self._reminders[reminder.id] = reminder
        self._record(reminder, "created", now)
        return reminder, True

    def create_reminder(
        self,
        item_id: int | str,
        reminder_type: ReminderType,
        reminder_date: datetime,
        *,
        priority: str | None = None,
        message: str | None = None,
        item_name: str = "",
        recurring: bool = False,
        frequency: timedelta | None = None,
        channels: Iterable[str] | None = None,
        max_occurrences: int | None = None,
        end_date: datetime | None = None,
    ) -> Reminder:
        """Create a reminder, or return the existing active unsent one for the same item and type.

        Args:
            item_id: Item the reminder refers to.
            reminder_type: One of :class:`ReminderType`.
            reminder_date: When the reminder becomes due.
            priority: Defaults to :func:`reminder_priority` for the type.
            message: Defaults to :func:`reminder_message` for the type.
            recurring: Schedule a successor every ``frequency`` once sent.
            max_occurrences: Stop the recurrence after this many records.
            end_date: Do not schedule successors due after this instant.

        Raises:
            ValueError: If ``recurring`` is set without a positive frequency.
            StoreError: If the new reminder could not be saved.
        """
        with self._lock:
            reminder, created = self._create(
                item_id,
                reminder_type,
                reminder_date,
                self._now(),
                priority=priority,
                message=message,
                item_name=item_name,
                recurring=recurring,
                frequency=frequency,
                channels=channels,
                max_occurrences=max_occurrences,
                end_date=end_date,
            )
            if created:
                self._persist()
            return reminder

    def create_item_reminder(
        self,
        item: Item,
        reminder_type: ReminderType,
        reminder_date: datetime,
        *,
        state: ExpiryState | None = None,
        **options,
    ) -> Reminder:
        """Like :meth:`create_reminder`, filling message and priority from the item."""
        options.setdefault("item_name", item.name)
        options.setdefault("priority", reminder_priority(reminder_type, item.priority))
        options.setdefault(
            "message",
            reminder_message(
                reminder_type,
                item.name,
                days_until_expiry=state.days_until_expiry if state else None,
                quantity=item.quantity,
            ),
        )
        return self.create_reminder(item.id, reminder_type, reminder_date, **options)

    def setup_expiry_reminders(
        self, items: Iterable[Item], now: datetime | None = None
    ) -> list[Reminder]:
        """Create expiry reminders for items that are not completed or expired.

        An item expiring within ``warning_window_days`` gets an
        EXPIRY_WARNING due the day before its last day, unless it already
        has an active warning. Every such item also gets one EXPIRED
        reminder due at its expiration date.

        Returns:
            The reminders created by this call.
        """
        now = self._now(now)
        created: list[Reminder] = []

        with self._lock:
            for item in items:
                if item.completed:
                    continue
                try:
                    state = self.calculator.compute_for_item(item, now)
                except ValidationError as e:
                    logger.warning("Skipping reminders for item %s: %s", item.id, e)
                    continue
                if state.is_expired:
                    continue

                days = state.days_until_expiry
                if days <= self.warning_window_days and not self._has_active(
                    item.id, ReminderType.EXPIRY_WARNING
                ):
                    reminder, new = self._create_for_item(
                        item,
                        ReminderType.EXPIRY_WARNING,
                        now + timedelta(days=days - 1),
                        state,
                        now,
                    )
                    if new:
                        created.append(reminder)

                expires_at = datetime.combine(state.expiration_date, time())
                reminder, new = self._create_for_item(
                    item, ReminderType.EXPIRED, expires_at, state, now
                )
                if new:
                    created.append(reminder)

            if created:
                self._persist()

        return created

    def _create_for_item(
        self,
        item: Item,
        reminder_type: ReminderType,
        reminder_date: datetime,
        state: ExpiryState,
        now: datetime,
    ) -> tuple[Reminder, bool]:
        return self._create(
            item.id,
            reminder_type,
            reminder_date,
            now,
            priority=reminder_priority(reminder_type, item.priority),
            message=reminder_message(
                reminder_type, item.name, days_until_expiry=state.days_until_expiry
            ),
            item_name=item.name,
        )

    # -- processing --------------------------------------------------------

    def process_due(self, now: datetime | None = None) -> list[Reminder]:
        """Dispatch and mark sent every active, unsent reminder due at ``now``.

        Reminders are handled in collection order. A recurring reminder gets
        its successor right after it is sent; successors are not considered
        until the next call. A call made while another one is running does
        nothing and returns an empty list.

        Returns:
            The reminders sent by this call.
        """
        if not self._processing.acquire(blocking=False):
            logger.debug("Due-reminder processing already running, skipping")
            return []

        try:
            now = self._now(now)
            fired: list[Reminder] = []

            with self._lock:
                for reminder in list(self._reminders.values()):
                    if not reminder.is_due(now):
                        continue

                    self.dispatcher.dispatch(reminder, now)
                    reminder.mark_sent(now)
                    self._record(reminder, "sent", now)
                    fired.append(reminder)

                    next_date = reminder.next_occurrence_date()
                    if next_date is not None:
                        self._schedule_next(reminder, next_date, now)

                if fired:
                    self._persist()

            return fired
        finally:
            self._processing.release()

    def _schedule_next(self, reminder: Reminder, next_date: datetime, now: datetime) -> Reminder:
        successor = dataclasses.replace(
            reminder,
            id=_new_id(),
            reminder_date=next_date,
            created_date=now,
            sent_date=None,
            is_sent=False,
            occurrence=reminder.occurrence + 1,
            interacted=False,
        )
        self._reminders[successor.id] = successor
        self._record(successor, "created", now)
        return successor

    # -- deactivation and cleanup -----------------------------------------

    def deactivate_item_reminders(self, item_id: int | str) -> int:
        """Deactivate every reminder of an item, sent or not.

        Returns:
            Number of reminders that were active before the call.
        """
        now = self._now()
        changed = 0
        with self._lock:
            for reminder in self._reminders.values():
                if str(reminder.item_id) == str(item_id) and reminder.deactivate(now):
                    self._record(reminder, "deactivated", now)
                    changed += 1
            if changed:
                self._persist()
        return changed

    def deactivate_reminder(self, reminder_id: str) -> bool:
        now = self._now()
        with self._lock:
            reminder = self._reminders.get(reminder_id)
            if reminder is None or not reminder.deactivate(now):
                return False
            self._record(reminder, "deactivated", now)
            self._persist()
        return True

    def cleanup(self, now: datetime | None = None, retention_days: int | None = None) -> int:
        """Remove inactive reminders dated before ``now - retention_days``.

        Active reminders are kept whatever their age.

        Returns:
            Number of reminders removed.
        """
        now = self._now(now)
        days = self.retention_days if retention_days is None else retention_days
        cutoff = now - timedelta(days=days)

        with self._lock:
            stale = [
                r.id
                for r in self._reminders.values()
                if not r.is_active and r.reminder_date < cutoff
            ]
            for reminder_id in stale:
                del self._reminders[reminder_id]
            if stale:
                self._persist()

        if stale:
            logger.info("Removed %d old reminders", len(stale))
        return len(stale)

    # -- interaction -------------------------------------------------------

    def handle_reminder_click(self, reminder_id: str) -> Reminder | None:
        """Record that the user opened a reminder's notification."""
        now = self._now()
        with self._lock:
            reminder = self._reminders.get(reminder_id)
            if reminder is None:
                logger.warning("Click for unknown reminder %s", reminder_id)
                return None
            reminder.interacted = True
            self._record(reminder, "clicked", now)
            self._persist()

        if self.on_navigate is not None:
            self.on_navigate(reminder.item_id)
        return reminder

    # -- queries -----------------------------------------------------------

    def get_reminder(self, reminder_id: str) -> Reminder | None:
        with self._lock:
            return self._reminders.get(reminder_id)

    def get_reminders(self) -> list[Reminder]:
        with self._lock:
            return list(self._reminders.values())

    def get_active_reminders(self) -> list[Reminder]:
        with self._lock:
            return [r for r in self._reminders.values() if r.is_active]

    def get_pending_reminders(self) -> list[Reminder]:
        with self._lock:
            return [r for r in self._reminders.values() if r.is_pending]

    def get_item_reminders(self, item_id: int | str) -> list[Reminder]:
        with self._lock:
            return [r for r in self._reminders.values() if str(r.item_id) == str(item_id)]

    def statistics(self) -> dict[str, int]:
        with self._lock:
            reminders = list(self._reminders.values())
        return {
            "total": len(reminders),
            "active": sum(1 for r in reminders if r.is_active),
            "sent": sum(1 for r in reminders if r.is_sent),
            "pending": sum(1 for r in reminders if r.is_pending),
            "unread_notifications": self.dispatcher.center.unread_count,
        }
