"""Reminder snapshot storage."""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timedelta
from pathlib import Path

from ..models import Reminder, ReminderType
from .base import ReminderStore
from .schema import ensure_schema

_COLUMNS = (
    "id",
    "position",
    "item_id",
    "reminder_type",
    "priority",
    "item_name",
    "message",
    "reminder_date",
    "created_date",
    "sent_date",
    "is_active",
    "is_sent",
    "recurring",
    "frequency_seconds",
    "notification_channels",
    "max_occurrences",
    "end_date",
    "occurrence",
    "interacted",
    "deactivated_date",
)

_INSERT = (
    f"INSERT INTO reminders ({', '.join(_COLUMNS)}) "
    f"VALUES ({', '.join('?' for _ in _COLUMNS)})"
)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _item_id(value: str) -> int | str:
    # Items from ItemDB have integer ids; keep other ids as given
    return int(value) if value.isdigit() else value


def _reminder_to_row(position: int, r: Reminder) -> tuple:
    return (
        r.id,
        position,
        str(r.item_id),
        r.type.value,
        r.priority,
        r.item_name,
        r.message,
        _iso(r.reminder_date),
        _iso(r.created_date),
        _iso(r.sent_date),
        int(r.is_active),
        int(r.is_sent),
        int(r.recurring),
        r.frequency.total_seconds() if r.frequency is not None else None,
        json.dumps(list(r.notification_channels)),
        r.max_occurrences,
        _iso(r.end_date),
        r.occurrence,
        int(r.interacted),
        _iso(r.deactivated_date),
    )


def _row_to_reminder(row: sqlite3.Row) -> Reminder:
    frequency = row["frequency_seconds"]
    return Reminder(
        id=row["id"],
        item_id=_item_id(row["item_id"]),
        type=ReminderType(row["reminder_type"]),
        reminder_date=_parse(row["reminder_date"]),
        created_date=_parse(row["created_date"]),
        priority=row["priority"],
        message=row["message"],
        item_name=row["item_name"],
        sent_date=_parse(row["sent_date"]),
        is_active=bool(row["is_active"]),
        is_sent=bool(row["is_sent"]),
        recurring=bool(row["recurring"]),
        frequency=timedelta(seconds=frequency) if frequency is not None else None,
        notification_channels=tuple(json.loads(row["notification_channels"])),
        max_occurrences=row["max_occurrences"],
        end_date=_parse(row["end_date"]),
        occurrence=row["occurrence"],
        interacted=bool(row["interacted"]),
        deactivated_date=_parse(row["deactivated_date"]),
    )


class ReminderDB(ReminderStore):
    """Stores the full reminder collection in the reminders table."""

    def __init__(self, db_path: str | Path = "~/.config/freshkeep/freshkeep.db") -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = ensure_schema(self._db_path)
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def load(self) -> list[Reminder]:
        conn = self._get_conn()
        rows = conn.execute("SELECT * FROM reminders ORDER BY position").fetchall()
        return [_row_to_reminder(r) for r in rows]

    def save(self, reminders: list[Reminder]) -> None:
        """Replace the stored collection in a single transaction."""
        conn = self._get_conn()
        with conn:
            conn.execute("DELETE FROM reminders")
            conn.executemany(
                _INSERT,
                [_reminder_to_row(i, r) for i, r in enumerate(reminders)],
            )
