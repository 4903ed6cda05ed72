"""Database schema definitions and migration helpers."""

from __future__ import annotations

import sqlite3
from pathlib import Path

_SCHEMA_VERSION = 1

_DDL = """
CREATE TABLE IF NOT EXISTS grocery_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    category TEXT NOT NULL DEFAULT '',
    quantity REAL NOT NULL DEFAULT 1.0,
    priority TEXT NOT NULL DEFAULT 'medium',
    purchase_date TEXT,
    shelf_life_days INTEGER,
    completed INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL DEFAULT (datetime('now', 'localtime')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now', 'localtime'))
);

CREATE INDEX IF NOT EXISTS idx_items_completed ON grocery_items(completed);
CREATE INDEX IF NOT EXISTS idx_items_name ON grocery_items(name);

CREATE TABLE IF NOT EXISTS reminders (
    id TEXT PRIMARY KEY,
    position INTEGER NOT NULL,
    item_id TEXT NOT NULL,
    reminder_type TEXT NOT NULL,
    priority TEXT NOT NULL DEFAULT 'medium',
    item_name TEXT NOT NULL DEFAULT '',
    message TEXT NOT NULL DEFAULT '',
    reminder_date TEXT NOT NULL,
    created_date TEXT NOT NULL,
    sent_date TEXT,
    is_active INTEGER NOT NULL DEFAULT 1,
    is_sent INTEGER NOT NULL DEFAULT 0,
    recurring INTEGER NOT NULL DEFAULT 0,
    frequency_seconds REAL,
    notification_channels TEXT NOT NULL DEFAULT '[]',
    max_occurrences INTEGER,
    end_date TEXT,
    occurrence INTEGER NOT NULL DEFAULT 1,
    interacted INTEGER NOT NULL DEFAULT 0,
    deactivated_date TEXT
);

CREATE INDEX IF NOT EXISTS idx_reminders_position ON reminders(position);
CREATE INDEX IF NOT EXISTS idx_reminders_item ON reminders(item_id);

CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER NOT NULL
);
"""


def ensure_schema(db_path: str | Path) -> sqlite3.Connection:
    """Open (or create) the database and ensure the schema is up to date.

    Args:
        db_path: Path to the SQLite database file.

    Returns:
        An open sqlite3.Connection with the schema applied.
    """
    db_path = Path(db_path).expanduser()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    # The scheduler runs engine calls on worker threads
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")

    try:
        row = conn.execute("SELECT version FROM schema_version").fetchone()
        current_version = row["version"] if row else 0
    except sqlite3.OperationalError:
        current_version = 0

    if current_version < _SCHEMA_VERSION:
        conn.executescript(_DDL)
        conn.execute("DELETE FROM schema_version")
        conn.execute(
            "INSERT INTO schema_version (version) VALUES (?)",
            (_SCHEMA_VERSION,),
        )
        conn.commit()

    return conn
