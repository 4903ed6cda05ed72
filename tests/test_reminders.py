"""Tests for ReminderEngine."""

from datetime import datetime, timedelta, timezone

import pytest

from freshkeep.db import ReminderDB, ReminderStore, StoreError
from freshkeep.models import DAILY, Item, ReminderType
from freshkeep.notify import InAppChannel, NotificationDispatcher, reminder_tag
from freshkeep.reminders import (
    ACTIVITY_LOG_SIZE,
    ReminderEngine,
    reminder_message,
    reminder_priority,
)
from freshkeep.scheduler import ManualClock

T0 = datetime(2025, 1, 10, 9, 0)


class MemoryStore(ReminderStore):
    """In-memory store that can be told to fail."""

    def __init__(self):
        self.saved = []
        self.fail_save = False
        self.fail_load = False

    def load(self):
        if self.fail_load:
            raise OSError("disk gone")
        return list(self.saved)

    def save(self, reminders):
        if self.fail_save:
            raise OSError("disk full")
        self.saved = list(reminders)


@pytest.fixture
def clock():
    return ManualClock(T0)


@pytest.fixture
def toasts():
    return []


@pytest.fixture
def channel(toasts):
    return InAppChannel(toast=lambda message, level: toasts.append((message, level)))


@pytest.fixture
def store(tmp_path):
    db = ReminderDB(db_path=tmp_path / "test.db")
    yield db
    db.close()


@pytest.fixture
def engine(store, channel, clock):
    return ReminderEngine(store, NotificationDispatcher([channel]), clock=clock)


def _milk(**kwargs):
    fields = dict(id=1, name="Milk", category="dairy", purchase_date="2025-01-08", shelf_life_days=7)
    fields.update(kwargs)
    return Item(**fields)


class TestMessages:
    def test_messages_per_type(self):
        assert reminder_message(
            ReminderType.EXPIRY_WARNING, "Milk", days_until_expiry=2
        ) == "⚠️ Milk expires in 2 day(s)!"
        assert reminder_message(
            ReminderType.EXPIRED, "Milk"
        ) == "🚨 Milk has expired! Please remove from list."
        assert reminder_message(
            ReminderType.PURCHASE_REMINDER, "Eggs"
        ) == "🛒 Don't forget to buy Eggs!"
        assert reminder_message(
            ReminderType.SHOPPING_LIST, "Bread", quantity=2
        ) == "📝 You have 2 Bread on your shopping list."

    def test_priority_policy(self):
        assert reminder_priority(ReminderType.EXPIRED) == "high"
        assert reminder_priority(ReminderType.EXPIRY_WARNING) == "medium"
        assert reminder_priority(ReminderType.EXPIRY_WARNING, "high") == "high"
        assert reminder_priority(ReminderType.PURCHASE_REMINDER) == "low"
        assert reminder_priority(ReminderType.SHOPPING_LIST, "low") == "low"


class TestCreate:
    def test_create_reminder(self, engine):
        r = engine.create_reminder(
            1, ReminderType.PURCHASE_REMINDER, T0 + timedelta(hours=1), item_name="Eggs"
        )
        assert r.is_active and not r.is_sent
        assert r.created_date == T0
        assert r.priority == "low"
        assert r.message == "🛒 Don't forget to buy Eggs!"
        assert r.notification_channels == ("in_app", "desktop")
        assert engine.activity[-1].action == "created"

    def test_one_pending_reminder_per_item_and_type(self, engine):
        first = engine.create_reminder(1, ReminderType.EXPIRED, T0)
        second = engine.create_reminder("1", ReminderType.EXPIRED, T0 + timedelta(days=1))
        other_type = engine.create_reminder(1, ReminderType.PURCHASE_REMINDER, T0)

        assert second.id == first.id
        assert other_type.id != first.id
        assert len(engine.get_reminders()) == 2

    def test_new_reminder_allowed_once_previous_is_sent(self, engine):
        first = engine.create_reminder(1, ReminderType.PURCHASE_REMINDER, T0)
        engine.process_due()
        second = engine.create_reminder(1, ReminderType.PURCHASE_REMINDER, T0 + DAILY)
        assert second.id != first.id

    def test_channels_are_deduplicated(self, engine):
        r = engine.create_reminder(
            1, ReminderType.EXPIRED, T0, channels=["in_app", "desktop", "in_app"]
        )
        assert r.notification_channels == ("in_app", "desktop")

    def test_recurring_needs_frequency(self, engine):
        with pytest.raises(ValueError, match="frequency"):
            engine.create_reminder(1, ReminderType.SHOPPING_LIST, T0, recurring=True)
        with pytest.raises(ValueError, match="max_occurrences"):
            engine.create_reminder(
                1, ReminderType.SHOPPING_LIST, T0,
                recurring=True, frequency=DAILY, max_occurrences=0,
            )
        assert engine.get_reminders() == []

    def test_create_item_reminder_uses_item(self, engine):
        bread = Item(id=3, name="Bread", quantity=2, priority="high")
        r = engine.create_item_reminder(bread, ReminderType.SHOPPING_LIST, T0)
        assert r.item_name == "Bread"
        assert r.priority == "high"
        assert r.message == "📝 You have 2 Bread on your shopping list."


class TestProcessDue:
    def test_due_boundary_is_inclusive(self, engine, toasts):
        r = engine.create_reminder(1, ReminderType.EXPIRED, T0, message="gone off")
        fired = engine.process_due()

        assert [f.id for f in fired] == [r.id]
        assert r.is_sent and r.sent_date == T0
        assert r.is_active
        assert toasts == [("gone off", "error")]

    def test_future_reminders_wait(self, engine, clock):
        engine.create_reminder(1, ReminderType.EXPIRED, T0 + timedelta(minutes=1))
        assert engine.process_due() == []

        clock.advance(minutes=1)
        assert len(engine.process_due()) == 1
        # Sent reminders do not fire again
        assert engine.process_due() == []

    def test_fires_in_insertion_order(self, engine, toasts):
        engine.create_reminder(1, ReminderType.EXPIRED, T0 - timedelta(hours=1), message="first")
        engine.create_reminder(2, ReminderType.EXPIRED, T0 - timedelta(hours=2), message="second")

        fired = engine.process_due()
        assert [f.message for f in fired] == ["first", "second"]
        assert [t[0] for t in toasts] == ["first", "second"]

    def test_inactive_reminders_never_fire(self, engine):
        r = engine.create_reminder(1, ReminderType.EXPIRED, T0)
        engine.deactivate_reminder(r.id)
        assert engine.process_due() == []

    def test_failing_channel_still_marks_sent(self, store, clock):
        def broken_toast(message, level):
            raise RuntimeError("UI gone")

        engine = ReminderEngine(
            store, NotificationDispatcher([InAppChannel(toast=broken_toast)]), clock=clock
        )
        r = engine.create_reminder(1, ReminderType.EXPIRED, T0)

        assert engine.process_due() == [r]
        assert r.is_sent
        assert engine.dispatcher.center.get(r.id) is not None

    def test_reentrant_call_does_nothing(self, store, clock):
        nested = []
        holder = {}

        def toast(message, level):
            nested.append(holder["engine"].process_due())

        engine = ReminderEngine(
            store, NotificationDispatcher([InAppChannel(toast=toast)]), clock=clock
        )
        holder["engine"] = engine
        engine.create_reminder(1, ReminderType.EXPIRED, T0)
        engine.create_reminder(2, ReminderType.EXPIRED, T0)

        assert len(engine.process_due()) == 2
        assert nested == [[], []]

    def test_sent_state_is_persisted(self, engine, store):
        r = engine.create_reminder(1, ReminderType.EXPIRED, T0)
        engine.process_due()
        assert store.load()[0].id == r.id
        assert store.load()[0].is_sent


class TestRecurrence:
    def test_daily_chain(self, engine, clock):
        first = engine.create_reminder(
            1, ReminderType.SHOPPING_LIST, T0, recurring=True, frequency=DAILY
        )
        engine.process_due()

        pending = engine.get_pending_reminders()
        assert len(pending) == 1
        assert pending[0].reminder_date == T0 + DAILY
        assert pending[0].occurrence == 2
        assert pending[0].id != first.id

        # Two days later: only the successor already present fires
        clock.advance(hours=48)
        fired = engine.process_due()
        assert len(fired) == 1

        sent = [r for r in engine.get_reminders() if r.is_sent]
        pending = engine.get_pending_reminders()
        assert len(sent) == 2
        assert len(pending) == 1
        assert pending[0].reminder_date == T0 + 2 * DAILY
        assert pending[0].occurrence == 3

    def test_max_occurrences(self, engine, clock):
        engine.create_reminder(
            1, ReminderType.SHOPPING_LIST, T0,
            recurring=True, frequency=DAILY, max_occurrences=2,
        )
        engine.process_due()
        clock.advance(days=1)
        engine.process_due()

        assert engine.get_pending_reminders() == []
        assert len(engine.get_reminders()) == 2

    def test_end_date(self, engine, clock):
        engine.create_reminder(
            1, ReminderType.SHOPPING_LIST, T0,
            recurring=True, frequency=DAILY, end_date=T0 + timedelta(days=1, hours=12),
        )
        engine.process_due()
        clock.advance(days=1)
        engine.process_due()

        assert engine.get_pending_reminders() == []

    def test_deactivating_stops_the_chain(self, engine, clock):
        engine.create_reminder(1, ReminderType.SHOPPING_LIST, T0, recurring=True, frequency=DAILY)
        engine.process_due()
        engine.deactivate_item_reminders(1)

        clock.advance(days=5)
        assert engine.process_due() == []


class TestSetupExpiryReminders:
    def test_warning_and_expired_reminders(self, engine):
        created = engine.setup_expiry_reminders([_milk()])

        by_type = {r.type: r for r in created}
        assert set(by_type) == {ReminderType.EXPIRY_WARNING, ReminderType.EXPIRED}

        warning = by_type[ReminderType.EXPIRY_WARNING]
        assert warning.reminder_date == datetime(2025, 1, 14, 9, 0)
        assert warning.priority == "medium"
        assert warning.message == "⚠️ Milk expires in 5 day(s)!"
        assert warning.item_name == "Milk"

        expired = by_type[ReminderType.EXPIRED]
        assert expired.reminder_date == datetime(2025, 1, 15)
        assert expired.priority == "high"

    def test_second_run_creates_nothing(self, engine):
        engine.setup_expiry_reminders([_milk()])
        assert engine.setup_expiry_reminders([_milk()]) == []
        assert len(engine.get_reminders()) == 2

    def test_no_new_warning_after_one_was_sent(self, engine, clock):
        engine.setup_expiry_reminders([_milk()])
        clock.set(datetime(2025, 1, 14, 9, 0))
        assert len(engine.process_due()) == 1

        assert engine.setup_expiry_reminders([_milk()]) == []

    def test_far_expiry_gets_only_expired_reminder(self, engine):
        rice = Item(id=2, name="Rice", purchase_date="2025-01-10")
        created = engine.setup_expiry_reminders([rice])
        assert [r.type for r in created] == [ReminderType.EXPIRED]
        assert created[0].reminder_date == datetime(2026, 1, 10)

    def test_skips_completed_expired_and_invalid_items(self, engine):
        items = [
            _milk(id=1, completed=True),
            _milk(id=2, purchase_date="2024-12-01"),
            _milk(id=3, purchase_date="not a date"),
        ]
        assert engine.setup_expiry_reminders(items) == []

    def test_high_priority_item_gets_high_warning(self, engine):
        created = engine.setup_expiry_reminders([_milk(priority="high")])
        assert all(r.priority == "high" for r in created)


class TestDeactivationAndCleanup:
    def test_deactivate_item_reminders(self, engine):
        engine.create_reminder(1, ReminderType.EXPIRY_WARNING, T0)
        engine.create_reminder(1, ReminderType.EXPIRED, T0)
        other = engine.create_reminder(2, ReminderType.EXPIRED, T0)

        assert engine.deactivate_item_reminders(1) == 2
        assert engine.deactivate_item_reminders(1) == 0
        assert other.is_active
        assert all(r.deactivated_date == T0 for r in engine.get_item_reminders(1))

    def test_deactivate_reminder(self, engine):
        r = engine.create_reminder(1, ReminderType.EXPIRED, T0)
        assert engine.deactivate_reminder(r.id) is True
        assert engine.deactivate_reminder(r.id) is False
        assert engine.deactivate_reminder("missing") is False

    def test_cleanup_removes_old_inactive_only(self, engine):
        old = engine.create_reminder(1, ReminderType.EXPIRED, T0 - timedelta(days=31))
        engine.deactivate_reminder(old.id)
        recent = engine.create_reminder(2, ReminderType.EXPIRED, T0 - timedelta(days=29))
        engine.deactivate_reminder(recent.id)
        ancient = engine.create_reminder(3, ReminderType.EXPIRED, T0 - timedelta(days=400))

        assert engine.cleanup() == 1
        remaining = {r.id for r in engine.get_reminders()}
        assert remaining == {recent.id, ancient.id}

    def test_cleanup_retention_override(self, engine):
        r = engine.create_reminder(1, ReminderType.EXPIRED, T0 - timedelta(days=3))
        engine.deactivate_reminder(r.id)
        assert engine.cleanup(retention_days=30) == 0
        assert engine.cleanup(retention_days=2) == 1


class TestPersistence:
    def test_reload_restores_collection(self, engine, store, clock):
        engine.setup_expiry_reminders([_milk()])
        before = engine.get_reminders()

        fresh = ReminderEngine(store, clock=clock)
        assert fresh.load() == 2
        assert fresh.get_reminders() == before

    def test_save_failure_raises_and_keeps_memory(self, clock):
        store = MemoryStore()
        engine = ReminderEngine(store, clock=clock)
        store.fail_save = True

        with pytest.raises(StoreError):
            engine.create_reminder(1, ReminderType.EXPIRED, T0)
        assert len(engine.get_reminders()) == 1
        assert engine.has_unsaved_changes

        store.fail_save = False
        engine.create_reminder(2, ReminderType.EXPIRED, T0)
        assert len(store.saved) == 2
        assert not engine.has_unsaved_changes

    def test_load_failure_keeps_current_collection(self, clock):
        store = MemoryStore()
        engine = ReminderEngine(store, clock=clock)
        engine.create_reminder(1, ReminderType.EXPIRED, T0)
        store.fail_load = True

        with pytest.raises(StoreError):
            engine.load()
        assert len(engine.get_reminders()) == 1


class TestInteraction:
    def test_click_marks_interacted_and_navigates(self, store, clock, channel):
        visited = []
        engine = ReminderEngine(
            store,
            NotificationDispatcher([channel]),
            clock=clock,
            on_navigate=visited.append,
        )
        r = engine.create_reminder(7, ReminderType.EXPIRED, T0)
        engine.process_due()

        channel.click(reminder_tag(r.id))

        assert engine.get_reminder(r.id).interacted
        assert visited == [7]
        assert engine.activity[-1].action == "clicked"
        assert store.load()[0].interacted

    def test_opening_from_center(self, engine):
        r = engine.create_reminder(1, ReminderType.EXPIRED, T0)
        engine.process_due()

        assert engine.dispatcher.center.open(r.id)
        assert engine.get_reminder(r.id).interacted

    def test_unknown_click_is_ignored(self, engine):
        assert engine.handle_reminder_click("missing") is None


def test_statistics(engine):
    engine.create_reminder(1, ReminderType.EXPIRED, T0)
    engine.create_reminder(2, ReminderType.EXPIRED, T0 + DAILY)
    engine.process_due()

    assert engine.statistics() == {
        "total": 2,
        "active": 2,
        "sent": 1,
        "pending": 1,
        "unread_notifications": 1,
    }


def test_activity_log_is_bounded(engine):
    for item_id in range(60):
        engine.create_reminder(item_id, ReminderType.EXPIRED, T0)
    engine.process_due()

    assert len(engine.activity) == ACTIVITY_LOG_SIZE
    assert all(entry.action == "sent" for entry in list(engine.activity)[-60:])


class TestTimezones:
    def test_aware_reminder_date_with_naive_clock(self, engine):
        due_at = datetime(2025, 1, 10, 8, 0, tzinfo=timezone.utc)
        r = engine.create_reminder(2, ReminderType.EXPIRY_WARNING, due_at)

        assert r.reminder_date.tzinfo is None
        assert r.reminder_date == due_at.astimezone().replace(tzinfo=None)
        engine.cleanup()
        engine.process_due(r.reminder_date)
        assert r.is_sent

    def test_aware_clock_with_naive_reminders(self, store):
        clock = ManualClock(datetime(2025, 1, 10, 9, 0, tzinfo=timezone.utc))
        engine = ReminderEngine(store, clock=clock)
        r = engine.create_reminder(1, ReminderType.EXPIRED, datetime(2000, 1, 1))

        assert engine.process_due() == [r]
        assert r.sent_date.tzinfo is None
        assert engine.cleanup() == 0

    def test_aware_dates_from_store_are_converted(self, clock):
        store = MemoryStore()
        ReminderEngine(store, clock=clock).create_reminder(1, ReminderType.EXPIRED, T0)
        store.saved[0].reminder_date = datetime(2025, 1, 10, 8, 0, tzinfo=timezone.utc)

        engine = ReminderEngine(store, clock=clock)
        engine.load()
        assert engine.get_reminders()[0].reminder_date.tzinfo is None
        engine.process_due(datetime(2030, 1, 1))
        assert engine.get_reminders()[0].is_sent
