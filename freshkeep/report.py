"""Expiry report: partition items into expired / expiring soon / fresh."""

from __future__ import annotations

import csv
import io
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime

from .expiry import ExpiryCalculator, ValidationError, parse_date
from .models import ExpiryState, ExpiryStatus, Item

logger = logging.getLogger(__name__)

_CSV_HEADERS = [
    "Name",
    "Category",
    "Purchase Date",
    "Expiration Date",
    "Days Until Expiry",
    "Status",
]

_STATUS_LABELS = {
    ExpiryStatus.EXPIRED: "Expired",
    ExpiryStatus.EXPIRING_SOON: "Expiring Soon",
    ExpiryStatus.FRESH: "Fresh",
}


@dataclass
class ItemExpiry:
    """An item paired with its computed expiry state."""

    item: Item
    state: ExpiryState

    def to_dict(self) -> dict:
        return {
            "id": self.item.id,
            "name": self.item.name,
            "category": self.item.category,
            "quantity": self.item.quantity,
            "priority": self.item.priority,
            "shelf_life_days": self.state.shelf_life_days,
            "expiration_date": self.state.expiration_date.isoformat(),
            "days_until_expiry": self.state.days_until_expiry,
            "expiry_status": self.state.status.value,
        }


@dataclass
class ReportError:
    item: Item
    reason: str


@dataclass
class ExpiryReport:
    expired: list[ItemExpiry]
    expiring_soon: list[ItemExpiry]
    fresh: list[ItemExpiry]
    threshold_days: int
    generated_at: datetime
    errors: list[ReportError] = field(default_factory=list)

    @property
    def expired_count(self) -> int:
        return len(self.expired)

    @property
    def expiring_soon_count(self) -> int:
        return len(self.expiring_soon)

    @property
    def fresh_count(self) -> int:
        return len(self.fresh)

    @property
    def total_items(self) -> int:
        return self.expired_count + self.expiring_soon_count + self.fresh_count

    def all_entries(self) -> list[ItemExpiry]:
        return [*self.expired, *self.expiring_soon, *self.fresh]

    def to_dict(self) -> dict:
        return {
            "expired": [e.to_dict() for e in self.expired],
            "expiring_soon": [e.to_dict() for e in self.expiring_soon],
            "fresh": [e.to_dict() for e in self.fresh],
            "expired_count": self.expired_count,
            "expiring_soon_count": self.expiring_soon_count,
            "fresh_count": self.fresh_count,
            "total_items": self.total_items,
            "threshold_days": self.threshold_days,
            "report_date": self.generated_at.isoformat(timespec="seconds"),
            "errors": [
                {"id": e.item.id, "name": e.item.name, "reason": e.reason}
                for e in self.errors
            ],
        }

    def display(self) -> str:
        """Format the report for terminal display."""
        lines: list[str] = []
        lines.append(
            f"Expiry report ({self.generated_at:%Y-%m-%d %H:%M}, "
            f"threshold {self.threshold_days} days)"
        )
        lines.append(
            f"  expired: {self.expired_count}  "
            f"expiring soon: {self.expiring_soon_count}  "
            f"fresh: {self.fresh_count}  total: {self.total_items}"
        )
        for title, entries in (
            ("Expired", self.expired),
            ("Expiring soon", self.expiring_soon),
        ):
            if not entries:
                continue
            lines.append("")
            lines.append(f"{title}:")
            for e in entries:
                lines.append(
                    f"  {e.item.name:<20} {ExpiryCalculator.describe(e.state):<20} "
                    f"[{e.item.category}]"
                )
        if self.errors:
            lines.append("")
            lines.append("Skipped:")
            for err in self.errors:
                lines.append(f"  {err.item.name:<20} {err.reason}")
        return "\n".join(lines)


class ExpiryReportBuilder:
    """Builds :class:`ExpiryReport` objects. Does not touch any store."""

    def __init__(self, calculator: ExpiryCalculator | None = None) -> None:
        self.calculator = calculator or ExpiryCalculator()

    def build(
        self,
        items: Iterable[Item],
        threshold_days: int | None = None,
        now: datetime | None = None,
    ) -> ExpiryReport:
        now = now or datetime.now()
        threshold = self.calculator.threshold_days if threshold_days is None else threshold_days

        expired: list[ItemExpiry] = []
        expiring_soon: list[ItemExpiry] = []
        fresh: list[ItemExpiry] = []
        errors: list[ReportError] = []

        for item in items:
            try:
                state = self.calculator.compute_for_item(item, now, threshold)
            except ValidationError as e:
                logger.warning("Skipping item %s in report: %s", item.id, e)
                errors.append(ReportError(item=item, reason=str(e)))
                continue

            entry = ItemExpiry(item=item, state=state)
            match state.status:
                case ExpiryStatus.EXPIRED:
                    expired.append(entry)
                case ExpiryStatus.EXPIRING_SOON:
                    expiring_soon.append(entry)
                case _:
                    fresh.append(entry)

        # Most overdue first, then soonest to expire first
        expired.sort(key=lambda e: e.state.days_until_expiry)
        expiring_soon.sort(key=lambda e: e.state.days_until_expiry)

        return ExpiryReport(
            expired=expired,
            expiring_soon=expiring_soon,
            fresh=fresh,
            threshold_days=threshold,
            generated_at=now,
            errors=errors,
        )

    def remove_expired(
        self, items: Iterable[Item], now: datetime | None = None
    ) -> tuple[list[Item], int]:
        """Drop expired items from a list.

        Items with an unreadable purchase date are kept.

        Returns:
            The remaining items and the number removed.
        """
        now = now or datetime.now()
        kept: list[Item] = []
        removed = 0
        for item in items:
            try:
                state = self.calculator.compute_for_item(item, now)
            except ValidationError:
                kept.append(item)
                continue
            if state.is_expired:
                removed += 1
            else:
                kept.append(item)
        return kept, removed


def _format_purchase_date(value: date | datetime | str | None) -> str:
    if value is None or value == "":
        return ""
    try:
        return parse_date(value).isoformat()
    except ValidationError:
        return str(value)


def report_to_csv(report: ExpiryReport) -> str:
    """Export a report as CSV: expired rows first, then expiring soon, then fresh."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(_CSV_HEADERS)
    for entry in report.all_entries():
        writer.writerow([
            entry.item.name,
            entry.item.category,
            _format_purchase_date(entry.item.purchase_date),
            entry.state.expiration_date.isoformat(),
            entry.state.days_until_expiry,
            _STATUS_LABELS[entry.state.status],
        ])
    return buf.getvalue()
