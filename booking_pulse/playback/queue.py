"""Ordered, single-concurrency playback of new-booking animations.

Booking notices arrive from the poller or the push stream at any rate;
the processor plays them one at a time, in arrival order:

    IDLE --(queue non-empty)--> ANIMATING --(playback done)--> IDLE
                                    ^                |
                                    +--(queue non-empty)

Playback of one entry:
    1. fly to the booking at the focus zoom, wait (bounded) for the view
    2. hold the highlighted marker; meanwhile prefetch tiles for the next
       few queued entries in the background
    3. fly back to where the view was, wait (bounded) again

A timed-out wait is not an error: playback continues without it.

shutdown() is total: the worker task and every prefetch task are
cancelled, the cancellation token stops any phase that has not started
yet, and the queue is emptied.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Deque

from pydantic import ValidationError

from ..config_schema import PlaybackConfig
from ..dashboard.models import BookingNotice, PushMessage
from .id_window import ProcessedIdWindow
from .surface import Camera, MapSurface

logger = logging.getLogger(__name__)


class PlaybackState(str, Enum):
    """State of the animation queue processor."""

    IDLE = "idle"
    ANIMATING = "animating"
    STOPPED = "stopped"


class PlaybackCancelled(asyncio.CancelledError):
    """Raised by a phase that starts after the processor was shut down."""


class CancellationToken:
    """Shared flag checked before every phase of a playback."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise PlaybackCancelled()


@dataclass(frozen=True)
class PlaybackTimings:
    """Durations and limits for one playback."""

    focus_zoom: float = 8.0
    hold_seconds: float = 4.0
    ready_timeout_seconds: float = 3.0
    prefetch_ahead: int = 3
    prefetch_dedup_seconds: float = 60.0

    @classmethod
    def from_config(cls, config: PlaybackConfig) -> PlaybackTimings:
        return cls(
            focus_zoom=config.focus_zoom,
            hold_seconds=config.hold_seconds,
            ready_timeout_seconds=config.ready_timeout_seconds,
            prefetch_ahead=config.prefetch_ahead,
            prefetch_dedup_seconds=config.prefetch_dedup_seconds,
        )


@dataclass
class AnimationQueueEntry:
    """A booking waiting to be (or being) played."""

    notice: BookingNotice
    enqueued_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class AnimationQueueProcessor:
    """FIFO animation player with at most one playback in flight."""

    def __init__(
        self,
        surface: MapSurface,
        timings: PlaybackTimings | None = None,
        id_window: ProcessedIdWindow | None = None,
        on_played: Callable[[AnimationQueueEntry], None] | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        """Initialize processor.

        Args:
            surface: View the animations are played on
            timings: Phase durations and prefetch limits
            id_window: Seen-id window used to dedup notices
            on_played: Called after each entry finishes playing
            sleep: Async sleep used for the hold phase (injected in tests)
            clock: Monotonic seconds, used for prefetch dedup (injected in tests)
        """
        self.surface = surface
        self.timings = timings or PlaybackTimings()
        self.id_window = id_window or ProcessedIdWindow()
        self.on_played = on_played
        self._sleep = sleep or asyncio.sleep
        self._clock = clock or time.monotonic

        self._queue: Deque[AnimationQueueEntry] = deque()
        self._state = PlaybackState.IDLE
        self._current: AnimationQueueEntry | None = None
        self._token = CancellationToken()
        self._wakeup = asyncio.Event()
        self._idle = asyncio.Event()
        self._idle.set()
        self._task: asyncio.Task[None] | None = None
        self._prefetch_tasks: set[asyncio.Task[None]] = set()
        # coordinate key -> monotonic time the prefetch started
        self._prefetched: dict[tuple[float, float, float], float] = {}
        self.played_count = 0

    # -------------------------------------------------------------------------
    # Intake
    # -------------------------------------------------------------------------

    @classmethod
    def from_config(cls, surface: MapSurface, config: PlaybackConfig, **kwargs: Any) -> AnimationQueueProcessor:
        return cls(
            surface,
            timings=PlaybackTimings.from_config(config),
            id_window=ProcessedIdWindow(config.processed_id_ceiling, config.processed_id_keep),
            **kwargs,
        )

    def enqueue(self, notice: BookingNotice) -> bool:
        """Append a notice to the tail unless its id was already seen.

        Returns:
            True if the notice was queued.
        """
        if self._state == PlaybackState.STOPPED:
            return False
        if not self.id_window.add(notice.id):
            logger.debug("Booking %s already queued or played; skipping", notice.id)
            return False

        self._queue.append(AnimationQueueEntry(notice))
        self._idle.clear()
        self._wakeup.set()
        return True

    def handle_push_message(self, message: Any) -> bool:
        """Queue the booking carried by a push-stream message.

        Keepalive pings and other message types are ignored.
        """
        if not isinstance(message, dict) or message.get("type") != "new_booking":
            return False
        try:
            parsed = PushMessage.model_validate(message)
        except ValidationError as e:
            logger.warning("Ignoring malformed push message: %s", e)
            return False
        return self.enqueue(parsed.booking)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def pending(self) -> int:
        """Entries waiting behind the one playing."""
        return len(self._queue)

    @property
    def current(self) -> AnimationQueueEntry | None:
        return self._current

    async def start(self) -> None:
        """Start the playback worker."""
        if self._task is not None:
            logger.warning("Animation queue already running")
            return
        if self._state == PlaybackState.STOPPED:
            raise RuntimeError("Animation queue was shut down and cannot be restarted")
        self._task = asyncio.create_task(self._run())

    async def drain(self) -> None:
        """Wait until every queued entry has been played."""
        await self._idle.wait()

    async def shutdown(self) -> None:
        """Cancel everything; no phase runs after this returns."""
        self._state = PlaybackState.STOPPED
        self._token.cancel()

        tasks = list(self._prefetch_tasks)
        if self._task is not None:
            tasks.append(self._task)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        self._task = None
        self._prefetch_tasks.clear()
        self._queue.clear()
        self._current = None
        self._idle.set()
        logger.info("Animation queue stopped")

    # -------------------------------------------------------------------------
    # Worker
    # -------------------------------------------------------------------------

    async def _run(self) -> None:
        while not self._token.cancelled:
            self._wakeup.clear()
            if not self._queue:
                self._state = PlaybackState.IDLE
                self._idle.set()
                await self._wakeup.wait()
                continue

            entry = self._queue.popleft()
            self._state = PlaybackState.ANIMATING
            self._current = entry
            try:
                await self._play(entry, self._token)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Playback of booking %s failed", entry.notice.id)
            else:
                self.played_count += 1
                if self.on_played is not None:
                    self.on_played(entry)
            finally:
                self._current = None

    async def _play(self, entry: AnimationQueueEntry, token: CancellationToken) -> None:
        notice = entry.notice
        home = self.surface.current_camera()
        target = Camera(notice.latitude, notice.longitude, self.timings.focus_zoom)
        # Never prefetch what is about to play
        self._prefetched[target.key()] = self._clock()

        highlighted = False
        try:
            # Phase 1: fly in
            token.raise_if_cancelled()
            await self.surface.move_to(target)
            await self._wait_ready(token)

            # Phase 2: hold the marker, prefetch upcoming entries meanwhile
            token.raise_if_cancelled()
            await self.surface.show_highlight(notice)
            highlighted = True
            prefetches = self._start_prefetch(exclude=target.key())
            try:
                await self._sleep(self.timings.hold_seconds)
            finally:
                await self._cancel(prefetches)
            token.raise_if_cancelled()
            await self.surface.clear_highlight()
            highlighted = False
        except asyncio.CancelledError:
            raise
        except Exception:
            await self._restore_view(home, highlighted, token)
            raise

        # Phase 3: fly back
        token.raise_if_cancelled()
        await self.surface.move_to(home)
        await self._wait_ready(token)

    async def _restore_view(
        self, home: Camera, highlighted: bool, token: CancellationToken
    ) -> None:
        """Put the view back where the failed playback found it."""
        try:
            if highlighted:
                await self.surface.clear_highlight()
            await self.surface.move_to(home)
            await self._wait_ready(token)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("Could not restore view after failed playback: %s", e)

    async def _wait_ready(self, token: CancellationToken) -> None:
        """Bounded wait for the view; a timeout only logs."""
        token.raise_if_cancelled()
        try:
            await asyncio.wait_for(
                self.surface.wait_until_ready(),
                timeout=self.timings.ready_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.info(
                "View not ready after %.1fs; continuing", self.timings.ready_timeout_seconds
            )

    # -------------------------------------------------------------------------
    # Prefetch
    # -------------------------------------------------------------------------

    def _start_prefetch(self, exclude: tuple[float, float, float]) -> list[asyncio.Task[None]]:
        if self.timings.prefetch_ahead <= 0:
            return []

        now = self._clock()
        window = self.timings.prefetch_dedup_seconds
        self._prefetched = {
            key: started for key, started in self._prefetched.items()
            if now - started < window or key == exclude
        }

        tasks: list[asyncio.Task[None]] = []
        for entry in list(self._queue)[:self.timings.prefetch_ahead]:
            camera = Camera(
                entry.notice.latitude, entry.notice.longitude, self.timings.focus_zoom
            )
            key = camera.key()
            if key == exclude or key in self._prefetched:
                continue
            self._prefetched[key] = now
            task = asyncio.create_task(self._prefetch_one(camera))
            self._prefetch_tasks.add(task)
            task.add_done_callback(self._prefetch_tasks.discard)
            tasks.append(task)
        return tasks

    async def _prefetch_one(self, camera: Camera) -> None:
        try:
            await asyncio.wait_for(
                self.surface.prefetch(camera),
                timeout=self.timings.ready_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.debug("Prefetch around (%.4f, %.4f) timed out", camera.latitude, camera.longitude)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("Prefetch around (%.4f, %.4f) failed: %s", camera.latitude, camera.longitude, e)

    @staticmethod
    async def _cancel(tasks: list[asyncio.Task[None]]) -> None:
        for task in tasks:
            if not task.done():
                task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
