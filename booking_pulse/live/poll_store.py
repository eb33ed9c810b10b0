"""Bounded log of recently accepted bookings for polling clients.

Every entry gets a sequence number one greater than the previous entry.
Clients remember the largest sequence they have consumed (their
high-water mark) and ask for everything after it. Entries older than
the retention limit fall off the front; a client that falls that far
behind simply misses them.

Delivery is at-least-once from the client's point of view (a client
that loses its mark re-reads entries), so consumers dedup by booking id.
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Deque

from ..ingest.types import NormalizedBooking


@dataclass(frozen=True)
class PollEntry:
    """One accepted booking as stored for polling."""

    sequence: int
    booking: NormalizedBooking
    received_at: datetime

    def to_dict(self) -> dict[str, Any]:
        data = self.booking.to_dict()
        data["sequence"] = self.sequence
        data["receivedAt"] = self.received_at.isoformat()
        return data


class RecentBookingsLog:
    """Append-only poll store retaining the last `limit` entries."""

    def __init__(self, limit: int = 100, clock: Callable[[], datetime] | None = None) -> None:
        if limit <= 0:
            raise ValueError(f"limit must be positive, got {limit}")
        self.limit = limit
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._entries: Deque[PollEntry] = deque(maxlen=limit)
        self._sequence = 0
        self._lock = threading.Lock()

    def append(self, booking: NormalizedBooking) -> PollEntry:
        """Store a booking and return its entry."""
        with self._lock:
            self._sequence += 1
            entry = PollEntry(self._sequence, booking, self._clock())
            self._entries.append(entry)
        return entry

    def since(self, sequence: int = 0) -> list[PollEntry]:
        """Entries with a sequence greater than the given one, oldest first."""
        with self._lock:
            entries = list(self._entries)
        return [e for e in entries if e.sequence > sequence]

    @property
    def latest_sequence(self) -> int:
        return self._sequence

    def __len__(self) -> int:
        return len(self._entries)
