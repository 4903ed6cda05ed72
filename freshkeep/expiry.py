"""Expiration date and freshness status calculation."""

from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta

from .models import ExpiryState, ExpiryStatus, Item
from .shelf_life import ShelfLifeResolver

DEFAULT_THRESHOLD_DAYS = 3


class ValidationError(ValueError):
    """Raised when an item's purchase date is not a usable calendar date."""


def parse_date(value: date | datetime | str) -> date:
    """Coerce a date, datetime or ISO-8601 string to a calendar date.

    Raises:
        ValidationError: If the value cannot be read as a date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            # fromisoformat only reads a trailing "Z" from Python 3.11 on
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            pass
    raise ValidationError(f"Invalid purchase date: {value!r}")


def _as_datetime(now: date | datetime) -> datetime:
    if isinstance(now, datetime):
        return now
    return datetime.combine(now, time())


def days_between(expiration_date: date, now: datetime) -> int:
    """Whole days from ``now`` until local midnight of ``expiration_date``, rounded up."""
    deadline = datetime.combine(expiration_date, time(), tzinfo=now.tzinfo)
    return math.ceil((deadline - now).total_seconds() / 86400)


class ExpiryCalculator:
    """Computes :class:`ExpiryState` for purchase dates and items.

    Status policy: ``expired`` when no whole day is left (``days <= 0``),
    ``expiring_soon`` when ``0 < days <= threshold``, otherwise ``fresh``.
    """

    def __init__(
        self,
        resolver: ShelfLifeResolver | None = None,
        threshold_days: int = DEFAULT_THRESHOLD_DAYS,
    ) -> None:
        self.resolver = resolver or ShelfLifeResolver()
        self.threshold_days = threshold_days

    @staticmethod
    def expiration_date(purchase_date: date | datetime | str, shelf_life_days: int) -> date:
        return parse_date(purchase_date) + timedelta(days=max(0, int(shelf_life_days)))

    def classify(self, days_until_expiry: int, threshold_days: int | None = None) -> ExpiryStatus:
        threshold = self.threshold_days if threshold_days is None else threshold_days
        if days_until_expiry <= 0:
            return ExpiryStatus.EXPIRED
        if days_until_expiry <= threshold:
            return ExpiryStatus.EXPIRING_SOON
        return ExpiryStatus.FRESH

    def compute(
        self,
        purchase_date: date | datetime | str,
        shelf_life_days: int,
        now: date | datetime,
        threshold_days: int | None = None,
    ) -> ExpiryState:
        shelf_life = max(0, int(shelf_life_days))
        expires = self.expiration_date(purchase_date, shelf_life)
        days = days_between(expires, _as_datetime(now))
        return ExpiryState(
            expiration_date=expires,
            days_until_expiry=days,
            status=self.classify(days, threshold_days),
            shelf_life_days=shelf_life,
        )

    def shelf_life_for(self, item: Item) -> int:
        if item.shelf_life_days is not None:
            return item.shelf_life_days
        return self.resolver.resolve(item.name, item.category)

    def compute_for_item(
        self,
        item: Item,
        now: date | datetime,
        threshold_days: int | None = None,
    ) -> ExpiryState:
        """Compute the state of an item; a missing purchase date means ``now``."""
        purchase_date = item.purchase_date
        if purchase_date is None or purchase_date == "":
            purchase_date = now
        return self.compute(purchase_date, self.shelf_life_for(item), now, threshold_days)

    @staticmethod
    def describe(state: ExpiryState) -> str:
        """Short label for display next to an item."""
        days = state.days_until_expiry
        if state.status is ExpiryStatus.EXPIRED:
            if days == 0:
                return "Expired today"
            return f"Expired {abs(days)} days ago"
        if state.status is ExpiryStatus.EXPIRING_SOON:
            return f"Expires in {days} day(s)"
        return f"{days} days left"
