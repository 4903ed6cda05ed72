"""Periodic due-reminder and cleanup jobs."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .config import FreshkeepConfig
    from .db.base import ItemStore
    from .reminders import ReminderEngine

logger = logging.getLogger(__name__)


class ManualClock:
    """A clock that only moves when told to. Pass it as ``clock=``."""

    def __init__(self, start: datetime) -> None:
        self._now = start
        self._lock = threading.Lock()

    def __call__(self) -> datetime:
        with self._lock:
            return self._now

    def advance(self, delta: timedelta | None = None, **kwargs) -> datetime:
        """Move forward by ``delta`` or by ``timedelta(**kwargs)``."""
        step = delta if delta is not None else timedelta(**kwargs)
        with self._lock:
            self._now += step
            return self._now

    def set(self, now: datetime) -> None:
        with self._lock:
            self._now = now


class ReminderScheduler:
    """Drives a :class:`ReminderEngine` from two interval jobs.

    ``due_check`` runs every ``tick_interval_seconds``: it re-scans the item
    store for new expiry reminders (when one is given) and then processes
    due reminders. ``cleanup`` runs every ``cleanup_interval_seconds``.

    Uses APScheduler's AsyncIOScheduler; engine calls run in a worker thread.
    """

    def __init__(
        self,
        config: FreshkeepConfig,
        engine: ReminderEngine,
        item_store: ItemStore | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the scheduler.

        Raises:
            ImportError: If apscheduler is not installed.
        """
        try:
            from apscheduler.schedulers.asyncio import AsyncIOScheduler
            from apscheduler.triggers.interval import IntervalTrigger
        except ImportError:
            raise ImportError(
                "apscheduler is required: pip install 'freshkeep[scheduler]'"
            )

        self._config = config
        self._engine = engine
        self._item_store = item_store
        self._clock = clock or datetime.now
        self._scheduler = AsyncIOScheduler()
        self._IntervalTrigger = IntervalTrigger
        self._running = False

    def setup_jobs(self) -> None:
        """Register the periodic jobs."""
        tick = self._config.scheduler.tick_interval_seconds
        self._scheduler.add_job(
            self._job_due_check,
            trigger=self._IntervalTrigger(seconds=tick),
            id="due_check",
            name="Due reminder check",
            replace_existing=True,
            next_run_time=datetime.now(),  # first check right away
            max_instances=1,
            coalesce=True,
        )
        logger.info("Registered due_check job every %ss", tick)

        interval = self._config.scheduler.cleanup_interval_seconds
        self._scheduler.add_job(
            self._job_cleanup,
            trigger=self._IntervalTrigger(seconds=interval),
            id="cleanup",
            name="Old reminder cleanup",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info("Registered cleanup job every %ss", interval)

    def start(self) -> None:
        """Start the scheduler. Must be called with an asyncio loop running."""
        self.setup_jobs()
        self._scheduler.start()
        self._running = True
        logger.info("Scheduler started")

    def stop(self) -> None:
        """Stop the scheduler."""
        if self._running:
            self._scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Scheduler stopped")

    @property
    def running(self) -> bool:
        return self._running

    def get_jobs(self) -> list[dict]:
        """Return info about scheduled jobs."""
        jobs = []
        for job in self._scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run": str(next_run) if next_run else None,
            })
        return jobs

    def run_setup(self) -> int:
        """Create expiry reminders for the item store's active items."""
        if self._item_store is None:
            return 0
        items = self._item_store.list_active_items()
        created = self._engine.setup_expiry_reminders(items, self._clock())
        if created:
            logger.info("Created %d expiry reminders", len(created))
        return len(created)

    def run_due_check(self) -> int:
        """One due-check tick: refresh expiry reminders, then send what is due."""
        self.run_setup()
        fired = self._engine.process_due(self._clock())
        if fired:
            logger.info("Sent %d reminders", len(fired))
        return len(fired)

    def run_cleanup(self) -> int:
        return self._engine.cleanup(
            self._clock(), self._config.reminders.retention_days
        )

    async def _job_due_check(self) -> None:
        try:
            await asyncio.to_thread(self.run_due_check)
        except Exception:
            logger.exception("Due reminder check failed")

    async def _job_cleanup(self) -> None:
        try:
            await asyncio.to_thread(self.run_cleanup)
        except Exception:
            logger.exception("Reminder cleanup failed")
