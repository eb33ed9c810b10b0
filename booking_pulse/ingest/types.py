"""Core booking types shared by ingestion, aggregation and broadcast."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any


@dataclass(frozen=True)
class NormalizedBooking:
    """A validated, confirmed booking with denormalized airport metadata.

    Immutable once created by the validator; downstream consumers never
    re-join against the airport directory.
    """

    id: str
    airport_code: str
    date: date
    status: str
    display_name: str
    country: str
    continent: str
    latitude: float
    longitude: float

    @property
    def coordinates(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)

    def to_dict(self) -> dict[str, Any]:
        """Client-facing shape used by the poll API and the push stream."""
        return {
            "id": self.id,
            "airport": self.airport_code,
            "airportName": self.display_name,
            "country": self.country,
            "continent": self.continent,
            "coordinates": [self.latitude, self.longitude],
            "date": self.date.isoformat(),
            "status": self.status,
        }
