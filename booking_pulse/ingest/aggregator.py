"""Daily booking aggregate.

The aggregate is an immutable value. AggregateStore holds a reference to
the current one and is the only place that replaces it:

- mutate() builds the next aggregate off to the side and swaps it in
- reset_at_boundary() swaps in a fresh empty aggregate
- snapshot() reads the reference once

Writers are serialized by a lock; readers never take it. Because every
published aggregate is complete, a reader sees either the state before
a write or the state after it, never a mix of counters.

Invariant: total_count == sum(count_by_airport.values()) == len(accepted_log)
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Callable, Mapping

from .types import NormalizedBooking

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _empty_counts() -> Mapping[str, int]:
    return MappingProxyType({})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _incremented(counts: Mapping[str, int], key: str) -> Mapping[str, int]:
    updated = dict(counts)
    updated[key] = updated.get(key, 0) + 1
    return MappingProxyType(updated)


def rank_counts(counts: Mapping[str, int], limit: int | None = None) -> list[tuple[str, int]]:
    """Sort counts descending; ties keep first-seen (insertion) order."""
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return ranked if limit is None else ranked[:limit]


@dataclass(frozen=True)
class DailyAggregate:
    """Counters and accepted-booking log for one day."""

    started_at: datetime
    last_updated_at: datetime
    total_count: int = 0
    count_by_airport: Mapping[str, int] = field(default_factory=_empty_counts)
    count_by_country: Mapping[str, int] = field(default_factory=_empty_counts)
    count_by_continent: Mapping[str, int] = field(default_factory=_empty_counts)
    accepted_log: tuple[NormalizedBooking, ...] = ()
    # First accepted booking per airport; carries the display metadata
    airports: Mapping[str, NormalizedBooking] = field(default_factory=lambda: MappingProxyType({}))
    booking_ids: frozenset[str] = frozenset()

    @classmethod
    def empty(cls, now: datetime) -> DailyAggregate:
        return cls(started_at=now, last_updated_at=now)

    def with_booking(self, booking: NormalizedBooking, now: datetime) -> DailyAggregate:
        """Return the aggregate that results from accepting booking."""
        airports = self.airports
        if booking.airport_code not in airports:
            updated = dict(airports)
            updated[booking.airport_code] = booking
            airports = MappingProxyType(updated)

        return DailyAggregate(
            started_at=self.started_at,
            last_updated_at=now,
            total_count=self.total_count + 1,
            count_by_airport=_incremented(self.count_by_airport, booking.airport_code),
            count_by_country=_incremented(self.count_by_country, booking.country),
            count_by_continent=_incremented(self.count_by_continent, booking.continent),
            accepted_log=self.accepted_log + (booking,),
            airports=airports,
            booking_ids=self.booking_ids | {booking.id},
        )

    def has_booking_id(self, booking_id: str) -> bool:
        return booking_id in self.booking_ids

    # -------------------------------------------------------------------------
    # Read views (computed on demand, never maintained incrementally)
    # -------------------------------------------------------------------------

    def top_airports(self, limit: int) -> list[dict[str, Any]]:
        result = []
        for code, count in rank_counts(self.count_by_airport, limit):
            first = self.airports.get(code)
            result.append({
                "iata": code,
                "airport": first.display_name if first else "Unknown",
                "country": first.country if first else "Unknown",
                "count": count,
            })
        return result

    def top_countries(self, limit: int) -> list[dict[str, Any]]:
        return [
            {"country": country, "count": count}
            for country, count in rank_counts(self.count_by_country, limit)
        ]

    def continent_data(self) -> list[dict[str, Any]]:
        return [
            {"continent": continent, "count": count}
            for continent, count in self.count_by_continent.items()
        ]

    def dashboard(self, top_n: int) -> dict[str, Any]:
        """Dashboard snapshot payload."""
        return {
            "totalBookings": self.total_count,
            "topAirports": self.top_airports(top_n),
            "topCountries": self.top_countries(top_n),
            "continentData": self.continent_data(),
            "lastUpdated": self.last_updated_at.isoformat(),
        }

    def map_points(self) -> list[dict[str, Any]]:
        """One entry per airport with bookings today, in first-seen order."""
        points = []
        for code, count in self.count_by_airport.items():
            first = self.airports[code]
            points.append({
                "iata": code,
                "airport": first.display_name,
                "country": first.country,
                "continent": first.continent,
                "lat": first.latitude,
                "lng": first.longitude,
                "count": count,
            })
        return points


class AggregateStore:
    """Owner of the current DailyAggregate.

    Single-writer contract: only the ingestion accept path calls mutate(),
    and only the scheduler calls reset_at_boundary(). Both take the same
    lock, so they are safe to call from worker threads as well as from the
    event loop.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock: Clock = clock or _utcnow
        self._write_lock = threading.Lock()
        self._current = DailyAggregate.empty(self._clock())

    def snapshot(self) -> DailyAggregate:
        """Current aggregate. Immutable, so callers may hold on to it."""
        return self._current

    def mutate(self, booking: NormalizedBooking) -> DailyAggregate:
        """Count an accepted booking and return the new aggregate."""
        with self._write_lock:
            current = self._current
            if current.has_booking_id(booking.id):
                logger.warning(
                    "Booking %s was already counted today; counting it again", booking.id
                )
            updated = current.with_booking(booking, self._clock())
            self._current = updated
        return updated

    def reset_at_boundary(self) -> DailyAggregate:
        """Replace the aggregate with a fresh empty one in a single swap."""
        with self._write_lock:
            previous = self._current
            self._current = DailyAggregate.empty(self._clock())
        logger.info(
            "Daily data reset (previous day: %d bookings across %d airports)",
            previous.total_count,
            len(previous.count_by_airport),
        )
        return self._current

    def dashboard(self, top_n: int) -> dict[str, Any]:
        return self.snapshot().dashboard(top_n)

    def map_points(self) -> list[dict[str, Any]]:
        return self.snapshot().map_points()
