"""CLI entry point."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime

from dotenv import load_dotenv

from .config import FreshkeepConfig, load_config
from .db import ItemDB, ReminderDB, StoreError
from .expiry import ExpiryCalculator, ValidationError
from .models import DAILY, MONTHLY, WEEKLY, Priority, Reminder, ReminderType
from .notify import create_dispatcher
from .reminders import ReminderEngine
from .report import ExpiryReportBuilder, report_to_csv
from .shelf_life import ShelfLifeResolver

_FREQUENCIES = {
    "daily": DAILY,
    "weekly": WEEKLY,
    "monthly": MONTHLY,
}


def main(argv: list[str] | None = None) -> None:
    load_dotenv()

    parser = argparse.ArgumentParser(
        prog="freshkeep",
        description="Track grocery shelf life and get reminded before food spoils",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="path to a TOML config file",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="debug logging")

    sub = parser.add_subparsers(dest="command")

    # add
    add_parser = sub.add_parser("add", help="add an item to the inventory")
    add_parser.add_argument("name")
    add_parser.add_argument("--category", default="")
    add_parser.add_argument("--quantity", type=float, default=1.0)
    add_parser.add_argument(
        "--priority", choices=[p.value for p in Priority], default="medium"
    )
    add_parser.add_argument("--purchase-date", default=None, help="YYYY-MM-DD")
    add_parser.add_argument("--shelf-life", type=int, default=None, help="days")

    # items
    items_parser = sub.add_parser("items", help="list active items with expiry status")
    items_parser.add_argument("--json", action="store_true", help="JSON output")

    # complete / delete
    complete_parser = sub.add_parser("complete", help="mark an item as used up")
    complete_parser.add_argument("item_id", type=int)
    delete_parser = sub.add_parser("delete", help="remove an item")
    delete_parser.add_argument("item_id", type=int)

    # shelf-life
    shelf_parser = sub.add_parser("shelf-life", help="look up the shelf life of an item")
    shelf_parser.add_argument("name")
    shelf_parser.add_argument("--category", default="")

    # report
    report_parser = sub.add_parser("report", help="expiry report")
    report_parser.add_argument("--threshold", type=int, default=None, help="days")
    fmt = report_parser.add_mutually_exclusive_group()
    fmt.add_argument("--json", action="store_true", help="JSON output")
    fmt.add_argument("--csv", action="store_true", help="CSV output")

    # reminders
    sub.add_parser("setup", help="create expiry reminders for active items")
    sub.add_parser("due", help="send reminders that are due now")
    cleanup_parser = sub.add_parser("cleanup", help="delete old inactive reminders")
    cleanup_parser.add_argument("--retention-days", type=int, default=None)

    list_parser = sub.add_parser("reminders", help="list reminders")
    list_parser.add_argument("--item", type=int, default=None, help="only this item")
    list_parser.add_argument("--all", action="store_true", help="include inactive")
    list_parser.add_argument("--json", action="store_true", help="JSON output")

    remind_parser = sub.add_parser("remind", help="create a reminder for an item")
    remind_parser.add_argument("item_id", type=int)
    remind_parser.add_argument(
        "type", choices=[t.value for t in ReminderType], help="reminder type"
    )
    remind_parser.add_argument("--at", required=True, help="ISO date/time when due")
    remind_parser.add_argument("--recurring", choices=sorted(_FREQUENCIES), default=None)
    remind_parser.add_argument("--max-occurrences", type=int, default=None)

    sub.add_parser("stats", help="reminder statistics")
    sub.add_parser("run", help="run the reminder scheduler in the foreground")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)
    if args.command == "remind" and args.max_occurrences is not None and not args.recurring:
        parser.error("--max-occurrences requires --recurring")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)
    items = ItemDB(config.database.path)
    store = ReminderDB(config.database.path)
    try:
        engine = _build_engine(config, store)
        match args.command:
            case "add":
                _cmd_add(items, args)
            case "items":
                _cmd_items(items, engine.calculator, args)
            case "complete":
                _cmd_complete(items, engine, args.item_id)
            case "delete":
                _cmd_delete(items, engine, args.item_id)
            case "shelf-life":
                days = engine.calculator.resolver.resolve(args.name, args.category)
                print(f"{args.name}: {days} days")
            case "report":
                _cmd_report(items, engine.calculator, args)
            case "setup":
                created = engine.setup_expiry_reminders(items.list_active_items())
                print(f"Created {len(created)} reminder(s).")
            case "due":
                fired = engine.process_due()
                print(f"Sent {len(fired)} reminder(s).")
            case "cleanup":
                removed = engine.cleanup(retention_days=args.retention_days)
                print(f"Removed {removed} reminder(s).")
            case "reminders":
                _cmd_reminders(engine, args)
            case "remind":
                _cmd_remind(items, engine, args)
            case "stats":
                print(json.dumps(engine.statistics(), indent=2))
            case "run":
                try:
                    asyncio.run(_cmd_run(config, engine, items))
                except KeyboardInterrupt:
                    print("Stopped.")
    except (StoreError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        items.close()
        store.close()


def _build_engine(config: FreshkeepConfig, store: ReminderDB) -> ReminderEngine:
    resolver = ShelfLifeResolver(
        config.shelf_life.overrides,
        category_defaults=config.shelf_life.categories,
        fallback_days=config.shelf_life.fallback_days,
    )
    engine = ReminderEngine(
        store,
        create_dispatcher(config),
        ExpiryCalculator(resolver, threshold_days=config.expiry.threshold_days),
        warning_window_days=config.reminders.warning_window_days,
        retention_days=config.reminders.retention_days,
    )
    engine.load()
    return engine


def _cmd_add(items: ItemDB, args) -> None:
    item_id = items.add_item(
        args.name,
        args.category,
        quantity=args.quantity,
        priority=args.priority,
        purchase_date=args.purchase_date,
        shelf_life_days=args.shelf_life,
    )
    print(f"Added {args.name} (id {item_id}).")


def _cmd_items(items: ItemDB, calculator: ExpiryCalculator, args) -> None:
    now = datetime.now()
    rows = []
    for item in items.list_active_items():
        try:
            state = calculator.compute_for_item(item, now)
        except ValidationError as e:
            rows.append((item, None, str(e)))
            continue
        rows.append((item, state, calculator.describe(state)))

    if args.json:
        data = [
            {
                "id": item.id,
                "name": item.name,
                "category": item.category,
                "expiration_date": state.expiration_date.isoformat() if state else None,
                "days_until_expiry": state.days_until_expiry if state else None,
                "status": state.status.value if state else None,
                "label": label,
            }
            for item, state, label in rows
        ]
        print(json.dumps(data, ensure_ascii=False, indent=2))
        return

    if not rows:
        print("No active items.")
        return
    for item, _state, label in rows:
        print(f"  {item.id:>4}  {item.name:<20} {label:<22} [{item.category}]")


def _cmd_complete(items: ItemDB, engine: ReminderEngine, item_id: int) -> None:
    if not items.complete_item(item_id):
        print(f"No active item with id {item_id}.", file=sys.stderr)
        sys.exit(1)
    count = engine.deactivate_item_reminders(item_id)
    print(f"Completed item {item_id}; deactivated {count} reminder(s).")


def _cmd_delete(items: ItemDB, engine: ReminderEngine, item_id: int) -> None:
    if not items.delete_item(item_id):
        print(f"No item with id {item_id}.", file=sys.stderr)
        sys.exit(1)
    count = engine.deactivate_item_reminders(item_id)
    print(f"Deleted item {item_id}; deactivated {count} reminder(s).")


def _cmd_report(items: ItemDB, calculator: ExpiryCalculator, args) -> None:
    report = ExpiryReportBuilder(calculator).build(
        items.list_active_items(), args.threshold
    )
    if args.json:
        print(json.dumps(report.to_dict(), ensure_ascii=False, indent=2))
    elif args.csv:
        sys.stdout.write(report_to_csv(report))
    else:
        print(report.display())


def _reminder_dict(r: Reminder) -> dict:
    return {
        "id": r.id,
        "item_id": r.item_id,
        "item_name": r.item_name,
        "type": r.type.value,
        "priority": r.priority,
        "message": r.message,
        "reminder_date": r.reminder_date.isoformat(),
        "is_active": r.is_active,
        "is_sent": r.is_sent,
        "sent_date": r.sent_date.isoformat() if r.sent_date else None,
        "recurring": r.recurring,
    }


def _cmd_reminders(engine: ReminderEngine, args) -> None:
    if args.item is not None:
        reminders = engine.get_item_reminders(args.item)
    elif args.all:
        reminders = engine.get_reminders()
    else:
        reminders = engine.get_active_reminders()
    reminders = sorted(reminders, key=lambda r: r.reminder_date)

    if args.json:
        print(json.dumps([_reminder_dict(r) for r in reminders], ensure_ascii=False, indent=2))
        return
    if not reminders:
        print("No reminders.")
        return
    for r in reminders:
        if not r.is_active:
            state = "inactive"
        elif r.is_sent:
            state = "sent"
        else:
            state = "pending"
        print(f"  {r.reminder_date:%Y-%m-%d %H:%M}  {state:<8} [{r.priority}] {r.message}")


def _cmd_remind(items: ItemDB, engine: ReminderEngine, args) -> None:
    item = items.get_item(args.item_id)
    if item is None:
        print(f"No item with id {args.item_id}.", file=sys.stderr)
        sys.exit(1)
    reminder_date = datetime.fromisoformat(args.at)
    options = {}
    if args.recurring:
        options.update(
            recurring=True,
            frequency=_FREQUENCIES[args.recurring],
            max_occurrences=args.max_occurrences,
        )
    reminder = engine.create_item_reminder(
        item, ReminderType(args.type), reminder_date, **options
    )
    print(f"Reminder {reminder.id} due {reminder.reminder_date:%Y-%m-%d %H:%M}.")


async def _cmd_run(config: FreshkeepConfig, engine: ReminderEngine, items: ItemDB) -> None:
    from .scheduler import ReminderScheduler

    scheduler = ReminderScheduler(config, engine, item_store=items)
    scheduler.start()
    print("Reminder scheduler running. Press Ctrl+C to stop.")
    try:
        await asyncio.Event().wait()
    finally:
        scheduler.stop()
