"""Grocery item CRUD operations."""

from __future__ import annotations

import sqlite3
from datetime import date
from pathlib import Path

from ..models import Item, Priority
from .base import ItemStore
from .schema import ensure_schema


def _row_to_item(row: sqlite3.Row) -> Item:
    return Item(
        id=row["id"],
        name=row["name"],
        category=row["category"],
        quantity=row["quantity"],
        priority=row["priority"],
        purchase_date=row["purchase_date"],
        completed=bool(row["completed"]),
        shelf_life_days=row["shelf_life_days"],
    )


class ItemDB(ItemStore):
    """Manages the grocery_items table."""

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

    def add_item(
        self,
        name: str,
        category: str = "",
        *,
        quantity: float = 1.0,
        priority: str = Priority.MEDIUM.value,
        purchase_date: date | str | None = None,
        shelf_life_days: int | None = None,
    ) -> int:
        """Insert an item and return its row ID.

        A missing purchase date is stored as today.
        """
        if purchase_date is None:
            purchase_date = date.today()
        if isinstance(purchase_date, date):
            purchase_date = purchase_date.isoformat()
        Priority(priority)

        conn = self._get_conn()
        cur = conn.execute(
            """INSERT INTO grocery_items
               (name, category, quantity, priority, purchase_date, shelf_life_days)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (name, category, quantity, priority, purchase_date, shelf_life_days),
        )
        conn.commit()
        return cur.lastrowid

    def get_item(self, item_id: int) -> Item | None:
        conn = self._get_conn()
        row = conn.execute(
            "SELECT * FROM grocery_items WHERE id = ?", (item_id,)
        ).fetchone()
        return _row_to_item(row) if row else None

    def list_active_items(self) -> list[Item]:
        """Return all items with completed=0, oldest first."""
        conn = self._get_conn()
        rows = conn.execute(
            "SELECT * FROM grocery_items WHERE completed = 0 ORDER BY id"
        ).fetchall()
        return [_row_to_item(r) for r in rows]

    def list_items(self) -> list[Item]:
        conn = self._get_conn()
        rows = conn.execute("SELECT * FROM grocery_items ORDER BY id").fetchall()
        return [_row_to_item(r) for r in rows]

    def complete_item(self, item_id: int) -> bool:
        """Mark an item as completed.

        Returns:
            True if a row was updated.
        """
        conn = self._get_conn()
        cur = conn.execute(
            """UPDATE grocery_items
               SET completed = 1,
                   updated_at = datetime('now', 'localtime')
               WHERE id = ? AND completed = 0""",
            (item_id,),
        )
        conn.commit()
        return cur.rowcount > 0

    def delete_item(self, item_id: int) -> bool:
        """Delete an item by ID."""
        conn = self._get_conn()
        cur = conn.execute("DELETE FROM grocery_items WHERE id = ?", (item_id,))
        conn.commit()
        return cur.rowcount > 0

    def clear_completed(self) -> list[int]:
        """Delete all completed items and return their IDs."""
        conn = self._get_conn()
        ids = [
            r["id"]
            for r in conn.execute(
                "SELECT id FROM grocery_items WHERE completed = 1"
            ).fetchall()
        ]
        conn.execute("DELETE FROM grocery_items WHERE completed = 1")
        conn.commit()
        return ids
