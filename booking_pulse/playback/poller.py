"""Polling client for the recent-bookings API.

Feeds the animation queue from GET /api/recent-bookings?since=<mark>,
where the mark is the largest sequence seen so far.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

import httpx
from pydantic import ValidationError

from ..config_schema import PollerConfig
from ..dashboard.models import BookingNotice, RecentBookingsResponse

logger = logging.getLogger(__name__)

RECENT_BOOKINGS_PATH = "/api/recent-bookings"


class BookingPoller:
    """Periodically poll the server and hand new bookings to a consumer."""

    def __init__(
        self,
        base_url: str,
        consumer: Callable[[BookingNotice], object],
        interval: float = 5.0,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize poller.

        Args:
            base_url: Server root, e.g. http://localhost:3000
            consumer: Called once per new booking, in sequence order
            interval: Seconds between polls
            timeout: HTTP timeout per request
            transport: httpx transport override (tests)
        """
        self.base_url = base_url.rstrip("/")
        self.consumer = consumer
        self.interval = interval
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._task: asyncio.Task[None] | None = None
        self._running = False
        self.high_water_mark = 0

    @classmethod
    def from_config(
        cls,
        config: PollerConfig,
        consumer: Callable[[BookingNotice], object],
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> BookingPoller:
        return cls(
            base_url or config.base_url,
            consumer,
            interval=config.interval_seconds,
            timeout=config.request_timeout_seconds,
            transport=transport,
        )

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def poll_once(self) -> int:
        """Fetch and deliver bookings newer than the high-water mark.

        Returns:
            Number of bookings handed to the consumer.

        Raises:
            httpx.HTTPError: On transport failure or a non-2xx status
            pydantic.ValidationError: If the response body is not a poll response
        """
        response = await self._get_client().get(
            RECENT_BOOKINGS_PATH, params={"since": self.high_water_mark}
        )
        response.raise_for_status()
        page = RecentBookingsResponse.model_validate(response.json())

        if page.latest_sequence < self.high_water_mark:
            logger.info(
                "Server sequence went back (%d < %d); restarting from 0",
                page.latest_sequence, self.high_water_mark,
            )
            self.high_water_mark = 0
            return await self.poll_once()

        delivered = 0
        for notice in sorted(page.bookings, key=lambda b: b.sequence):
            if notice.sequence <= self.high_water_mark:
                continue
            self.consumer(notice)
            self.high_water_mark = notice.sequence
            delivered += 1
        return delivered

    async def start(self) -> None:
        """Start polling in the background."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._poll_loop())
        logger.info("Polling %s every %.1fs", self.base_url, self.interval)

    async def _poll_loop(self) -> None:
        while self._running:
            try:
                count = await self.poll_once()
                if count:
                    logger.debug("Received %d new bookings", count)
            except (httpx.HTTPError, ValidationError, ValueError) as e:
                logger.warning("Poll failed: %s", e)
            except Exception:
                logger.exception("Unexpected error while polling %s", self.base_url)
            await asyncio.sleep(self.interval)

    async def stop(self) -> None:
        """Stop polling and close the HTTP client."""
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def is_running(self) -> bool:
        return self._running
