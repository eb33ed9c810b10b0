"""Fan-out of accepted bookings to polling and push clients."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from ..ingest.types import NormalizedBooking
from .poll_store import PollEntry, RecentBookingsLog
from .push import SubscriberRegistry

logger = logging.getLogger(__name__)

NEW_BOOKING = "new_booking"


def new_booking_message(entry: PollEntry) -> dict[str, Any]:
    """Push-stream message for one accepted booking."""
    return {"type": NEW_BOOKING, "booking": entry.to_dict()}


class Broadcaster:
    """Publishes each accepted booking to the poll store and push registry.

    Either mechanism may be omitted. publish() never raises because of a
    subscriber; a failing push channel is dropped by the registry.
    """

    def __init__(
        self,
        poll_store: RecentBookingsLog | None = None,
        registry: SubscriberRegistry | None = None,
    ) -> None:
        self.poll_store = poll_store
        self.registry = registry

    def publish(self, booking: NormalizedBooking) -> PollEntry | None:
        """Publish an accepted booking.

        Returns:
            The poll entry, or None when no poll store is configured.
        """
        entry: PollEntry | None = None
        if self.poll_store is not None:
            entry = self.poll_store.append(booking)

        if self.registry is not None:
            # Without a poll store the push message carries sequence 0
            message_entry = entry or PollEntry(0, booking, datetime.now(timezone.utc))
            delivered = self.registry.publish(new_booking_message(message_entry))
            logger.debug("Booking %s pushed to %d subscribers", booking.id, delivered)

        return entry

    def recent(self, since: int = 0) -> dict[str, Any]:
        """Poll API payload."""
        if self.poll_store is None:
            return {"bookings": [], "latestSequence": 0}
        return {
            "bookings": [e.to_dict() for e in self.poll_store.since(since)],
            "latestSequence": self.poll_store.latest_sequence,
        }

    @property
    def subscriber_count(self) -> int:
        return self.registry.connection_count if self.registry is not None else 0
