"""Daily reset scheduler.

Runs as a background task next to the HTTP server, sleeping until the
next local wall-clock boundary and then swapping in a fresh aggregate.

Each boundary fires exactly once: the task keeps its target boundary
until it has fired (an early wake-up just sleeps again) and never fires
a boundary at or before the last one it fired.

Usage:
    scheduler = DailyResetScheduler(store, reset_time=time(0, 0), tz=tz)
    await scheduler.start()
    ...
    await scheduler.stop()
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, time, timedelta, timezone, tzinfo
from typing import Awaitable, Callable

from .aggregator import AggregateStore

logger = logging.getLogger(__name__)

# Upper bound on one sleep, so wall-clock jumps are noticed
MAX_SLEEP_SECONDS = 60.0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DailyResetScheduler:
    """Fires AggregateStore.reset_at_boundary() once per local day."""

    def __init__(
        self,
        store: AggregateStore,
        reset_time: time = time(0, 0),
        tz: tzinfo = timezone.utc,
        clock: Callable[[], datetime] | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        """Initialize scheduler.

        Args:
            store: Aggregate store to reset
            reset_time: Local wall-clock time of the boundary
            tz: Zone the boundary is expressed in
            clock: Returns the current aware datetime (injected in tests)
            sleep: Async sleep (injected in tests)
        """
        self.store = store
        self.reset_time = reset_time
        self.tz = tz
        self._clock = clock or _utcnow
        self._sleep = sleep or asyncio.sleep
        self._last_fired: datetime | None = None
        self._running = False
        self._task: asyncio.Task[None] | None = None

    @property
    def last_fired(self) -> datetime | None:
        return self._last_fired

    @property
    def is_running(self) -> bool:
        return self._running

    def next_boundary(self, now: datetime) -> datetime:
        """First boundary strictly after now, as an aware local datetime."""
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        local_now = now.astimezone(self.tz)
        candidate = datetime.combine(local_now.date(), self.reset_time, tzinfo=self.tz)
        if candidate <= local_now:
            candidate = datetime.combine(
                local_now.date() + timedelta(days=1), self.reset_time, tzinfo=self.tz
            )
        return candidate

    def fire(self, boundary: datetime) -> bool:
        """Reset the store for boundary unless it has already fired.

        Returns:
            True if the reset ran.
        """
        if self._last_fired is not None and boundary <= self._last_fired:
            return False
        self.store.reset_at_boundary()
        self._last_fired = boundary
        logger.info("Daily reset fired for boundary %s", boundary.isoformat())
        return True

    async def start(self) -> None:
        """Start the scheduling loop."""
        if self._running:
            logger.warning("Reset scheduler already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(
            "Reset scheduler started; next reset at %s",
            self.next_boundary(self._clock()).isoformat(),
        )

    async def stop(self) -> None:
        """Stop the scheduling loop."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Reset scheduler stopped")

    async def _run_loop(self) -> None:
        boundary = self.next_boundary(self._clock())
        while self._running:
            delay = (boundary - self._clock()).total_seconds()
            if delay > 0:
                await self._sleep(min(delay, MAX_SLEEP_SECONDS))
                continue

            try:
                self.fire(boundary)
            except Exception:
                logger.exception("Daily reset failed for boundary %s", boundary.isoformat())
            boundary = self.next_boundary(max(self._clock(), boundary))
