"""TOML configuration loader."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

from .models import DEFAULT_CHANNELS
from .shelf_life import DEFAULT_FALLBACK_DAYS

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomli as tomllib
    except ImportError:
        tomllib = None  # type: ignore[assignment]

DEFAULT_DB_PATH = "~/.config/freshkeep/freshkeep.db"


@dataclass
class DatabaseConfig:
    path: str = DEFAULT_DB_PATH


@dataclass
class ExpiryConfig:
    threshold_days: int = 3


@dataclass
class ReminderConfig:
    warning_window_days: int = 7
    retention_days: int = 30
    channels: list[str] = field(default_factory=lambda: list(DEFAULT_CHANNELS))


@dataclass
class SchedulerConfig:
    tick_interval_seconds: int = 60
    cleanup_interval_seconds: int = 86400


@dataclass
class NotificationConfig:
    desktop_enabled: bool = True
    app_name: str = "freshkeep"
    center_capacity: int = 50


@dataclass
class ShelfLifeConfig:
    # Insertion order is lookup priority
    overrides: dict[str, int] = field(default_factory=dict)
    categories: dict[str, int] = field(default_factory=dict)
    fallback_days: int = DEFAULT_FALLBACK_DAYS


@dataclass
class FreshkeepConfig:
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    expiry: ExpiryConfig = field(default_factory=ExpiryConfig)
    reminders: ReminderConfig = field(default_factory=ReminderConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    shelf_life: ShelfLifeConfig = field(default_factory=ShelfLifeConfig)


def load_config(path: str | Path | None = None) -> FreshkeepConfig:
    """Load configuration from a TOML file.

    Falls back to defaults if no path is given or the file doesn't exist.
    The database path can be overridden with ``FRESHKEEP_DB_PATH``.

    Raises:
        ValueError: If an interval or day count is not positive.
    """
    raw: dict = {}

    if path is not None:
        p = Path(path)
        if p.exists():
            if tomllib is None:
                raise ImportError(
                    "tomli is required on Python < 3.11: pip install tomli"
                )
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    dbs = raw.get("database", {})
    exp = raw.get("expiry", {})
    rem = raw.get("reminders", {})
    sch = raw.get("scheduler", {})
    ntf = raw.get("notifications", {})
    slf = raw.get("shelf_life", {})

    # Resolve DB path: environment variable → config file → default
    db_path = os.environ.get("FRESHKEEP_DB_PATH", "") or dbs.get("path", DEFAULT_DB_PATH)

    config = FreshkeepConfig(
        database=DatabaseConfig(path=db_path),
        expiry=ExpiryConfig(
            threshold_days=exp.get("threshold_days", 3),
        ),
        reminders=ReminderConfig(
            warning_window_days=rem.get("warning_window_days", 7),
            retention_days=rem.get("retention_days", 30),
            channels=list(rem.get("channels", DEFAULT_CHANNELS)),
        ),
        scheduler=SchedulerConfig(
            tick_interval_seconds=sch.get("tick_interval_seconds", 60),
            cleanup_interval_seconds=sch.get("cleanup_interval_seconds", 86400),
        ),
        notifications=NotificationConfig(
            desktop_enabled=ntf.get("desktop_enabled", True),
            app_name=ntf.get("app_name", "freshkeep"),
            center_capacity=ntf.get("center_capacity", 50),
        ),
        shelf_life=ShelfLifeConfig(
            overrides={k: int(v) for k, v in slf.get("overrides", {}).items()},
            categories={k: int(v) for k, v in slf.get("categories", {}).items()},
            fallback_days=slf.get("fallback_days", DEFAULT_FALLBACK_DAYS),
        ),
    )

    for name, value in (
        ("scheduler.tick_interval_seconds", config.scheduler.tick_interval_seconds),
        ("scheduler.cleanup_interval_seconds", config.scheduler.cleanup_interval_seconds),
        ("reminders.retention_days", config.reminders.retention_days),
        ("notifications.center_capacity", config.notifications.center_capacity),
    ):
        if value <= 0:
            raise ValueError(f"{name} must be positive, got {value}")

    return config
