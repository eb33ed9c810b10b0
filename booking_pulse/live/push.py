"""Push registry: one outbound channel per connected client.

Publishing never waits on a client. Each subscriber owns a bounded
queue; publish() drops a message into every open queue with put_nowait
and returns. A separate writer per connection drains its queue to the
network. A subscriber whose queue is full, or whose writer failed, is
removed from the registry and never retried; the client is expected to
reconnect. New subscribers only see messages published after they
subscribe.

All methods must be called from the event loop thread.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any

logger = logging.getLogger(__name__)

Message = dict[str, Any]


class Subscriber:
    """A single client's outbound channel."""

    def __init__(self, subscriber_id: int, queue_size: int = 256) -> None:
        self.subscriber_id = subscriber_id
        self._queue: asyncio.Queue[Message | None] = asyncio.Queue(maxsize=queue_size)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def offer(self, message: Message) -> bool:
        """Queue a message without waiting. False if closed or full."""
        if self._closed:
            return False
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            return False
        return True

    def close(self) -> None:
        """Close the channel; the reader gets None once it is drained."""
        if self._closed:
            return
        self._closed = True
        # Drop undelivered messages so the sentinel always fits
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(None)

    async def next_message(self) -> Message | None:
        """Wait for the next message; None means the channel is closed."""
        if self._closed and self._queue.empty():
            return None
        return await self._queue.get()


class SubscriberRegistry:
    """Set of live subscriber channels with removal on failure."""

    def __init__(self, queue_size: int = 256) -> None:
        self.queue_size = queue_size
        self._subscribers: dict[int, Subscriber] = {}
        self._ids = itertools.count(1)

    def subscribe(self) -> Subscriber:
        """Register a new channel."""
        subscriber = Subscriber(next(self._ids), self.queue_size)
        self._subscribers[subscriber.subscriber_id] = subscriber
        logger.info(
            "Push subscriber %d connected. Total subscribers: %d",
            subscriber.subscriber_id,
            len(self._subscribers),
        )
        return subscriber

    def unsubscribe(self, subscriber: Subscriber) -> None:
        """Remove and close a channel. Safe to call more than once."""
        removed = self._subscribers.pop(subscriber.subscriber_id, None)
        subscriber.close()
        if removed is not None:
            logger.info(
                "Push subscriber %d disconnected. Total subscribers: %d",
                subscriber.subscriber_id,
                len(self._subscribers),
            )

    def publish(self, message: Message) -> int:
        """Offer a message to every open channel.

        Returns:
            Number of subscribers the message was queued for.
        """
        delivered = 0
        failed: list[Subscriber] = []
        for subscriber in list(self._subscribers.values()):
            if subscriber.offer(message):
                delivered += 1
            else:
                failed.append(subscriber)

        for subscriber in failed:
            logger.warning(
                "Dropping push subscriber %d (channel closed or %d messages behind)",
                subscriber.subscriber_id,
                subscriber.pending,
            )
            self.unsubscribe(subscriber)
        return delivered

    def close_all(self) -> None:
        for subscriber in list(self._subscribers.values()):
            self.unsubscribe(subscriber)

    @property
    def connection_count(self) -> int:
        """Number of registered subscribers."""
        return len(self._subscribers)
