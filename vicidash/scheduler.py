"""Background scheduler that triggers agent campaign syncs at fixed hours."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional, Sequence
from zoneinfo import ZoneInfo

from .config import settings
from .sync.sync_engine import SyncRunner

logger = logging.getLogger(__name__)


def next_run_at(now: datetime, hours: Sequence[int], tz: tzinfo) -> datetime:
    """First HH:00 in ``tz`` (for HH in ``hours``) strictly after ``now``."""
    if not hours:
        raise ValueError("no sync hours configured")
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    local = now.astimezone(tz)
    for day_offset in (0, 1, 2):
        day = (local + timedelta(days=day_offset)).date()
        for hour in sorted(hours):
            candidate = datetime(day.year, day.month, day.day, hour, tzinfo=tz)
            if candidate > now:
                return candidate
    raise ValueError(f"could not compute next run after {now.isoformat()}")


class SyncScheduler:
    """Sleeps until the next configured hour, then runs one sync pass."""

    def __init__(
        self,
        runner: SyncRunner,
        hours: Sequence[int] | None = None,
        tz: str | tzinfo | None = None,
        enabled: bool | None = None,
    ) -> None:
        self.runner = runner
        self.hours = list(hours if hours is not None else settings.sync_hours_list)
        tz = tz or settings.sync_timezone
        self.tz = ZoneInfo(tz) if isinstance(tz, str) else tz
        self.enabled = settings.scheduler_enabled if enabled is None else enabled
        self.next_run: datetime | None = None
        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()

    def start(self) -> None:
        if self._task is not None or not self.enabled:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run_loop(), name="vicidash-sync-scheduler")
        logger.info("Sync scheduler started (hours=%s, tz=%s)", self.hours, self.tz)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stop_event.set()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        finally:
            self._task = None

    async def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            now = datetime.now(timezone.utc)
            self.next_run = next_run_at(now, self.hours, self.tz)
            delay = (self.next_run.astimezone(timezone.utc) - now).total_seconds()
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=max(delay, 0))
                return
            except asyncio.TimeoutError:
                pass

            logger.info("Running scheduled agent campaign sync")
            try:
                result = await self.runner.run()
                if result.skipped:
                    logger.info("Scheduled sync skipped: %s", result.error)
                elif not result.success:
                    logger.error("Scheduled sync failed: %s", result.error)
                else:
                    logger.info(
                        "Scheduled sync complete: %d/%d agents, %d campaigns",
                        result.agents_processed,
                        result.total_agents,
                        result.total_campaigns,
                    )
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Scheduled sync crashed")
