"""Shelf-life lookup by item name and category."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping

DEFAULT_FALLBACK_DAYS = 7

# Built-in name table, evaluated in this order for partial matches
DEFAULT_SHELF_LIFE: list[tuple[str, int]] = [
    # Fruits
    ("apples", 7),
    ("bananas", 5),
    ("oranges", 14),
    ("strawberries", 3),
    ("grapes", 7),
    ("lemons", 21),
    # Vegetables
    ("lettuce", 7),
    ("tomatoes", 7),
    ("carrots", 21),
    ("potatoes", 30),
    ("onions", 30),
    ("broccoli", 5),
    # Dairy
    ("milk", 7),
    ("cheese", 14),
    ("yogurt", 10),
    ("butter", 30),
    ("eggs", 21),
    # Meat
    ("chicken", 3),
    ("beef", 5),
    ("pork", 3),
    ("fish", 2),
    ("ground_meat", 2),
    # Pantry
    ("bread", 7),
    ("rice", 365),
    ("pasta", 730),
    ("canned_goods", 365),
    ("flour", 180),
]

DEFAULT_CATEGORY_SHELF_LIFE: dict[str, int] = {
    "fruits": 7,
    "vegetables": 7,
    "dairy": 7,
    "meat": 3,
    "pantry": 30,
    "beverages": 7,
    "snacks": 30,
    "frozen": 90,
    "household": 365,
}

_WHITESPACE = re.compile(r"\s+")


def normalize_name(name: str) -> str:
    """Lower-case a name and collapse whitespace runs to a single ``_``."""
    return _WHITESPACE.sub("_", (name or "").strip().lower())


def _as_pairs(table: Mapping[str, int] | Iterable[tuple[str, int]] | None) -> list[tuple[str, int]]:
    if table is None:
        return []
    if isinstance(table, Mapping):
        table = table.items()
    return [(normalize_name(k), int(v)) for k, v in table if normalize_name(k)]


class ShelfLifeResolver:
    """Maps an item name and category to a shelf life in days.

    Lookup order:

    1. exact match of the normalized name in the override table
    2. first table entry (in table order) whose key is contained in the
       name or contains it
    3. category default
    4. ``fallback_days``

    The table is the configured overrides, in the order given, followed by
    :data:`DEFAULT_SHELF_LIFE`. Overrides therefore win both the exact and the
    partial step.
    """

    def __init__(
        self,
        overrides: Mapping[str, int] | Iterable[tuple[str, int]] | None = None,
        *,
        category_defaults: Mapping[str, int] | None = None,
        fallback_days: int = DEFAULT_FALLBACK_DAYS,
        include_builtin: bool = True,
    ) -> None:
        self._table: list[tuple[str, int]] = _as_pairs(overrides)
        if include_builtin:
            self._table.extend(DEFAULT_SHELF_LIFE)
        categories = dict(DEFAULT_CATEGORY_SHELF_LIFE)
        if category_defaults:
            categories.update(category_defaults)
        self._categories = {k.strip().lower(): int(v) for k, v in categories.items()}
        self._fallback_days = fallback_days

    @property
    def table(self) -> list[tuple[str, int]]:
        """The ordered (pattern, days) table, highest priority first."""
        return list(self._table)

    def update(self, overrides: Mapping[str, int] | Iterable[tuple[str, int]]) -> None:
        """Add overrides ahead of every existing entry."""
        self._table = _as_pairs(overrides) + self._table

    def resolve(self, name: str, category: str = "") -> int:
        normalized = normalize_name(name)

        if normalized:
            for key, days in self._table:
                if key == normalized:
                    return days

            for key, days in self._table:
                if key in normalized or normalized in key:
                    return days

        days = self._categories.get((category or "").strip().lower())
        if days is not None:
            return days
        return self._fallback_days
