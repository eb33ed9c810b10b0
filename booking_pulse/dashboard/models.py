"""Pydantic models for the read APIs and the push stream.

Field names are snake_case in Python and camelCase on the wire, matching
what the dashboard frontend consumes.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Literal


class WireModel(BaseModel):
    """Base for models serialized with camelCase aliases."""

    model_config = ConfigDict(populate_by_name=True)


class TopAirport(WireModel):
    """Airport entry in the dashboard ranking."""
    iata: str
    airport: str
    country: str
    count: int


class TopCountry(WireModel):
    """Country entry in the dashboard ranking."""
    country: str
    count: int


class ContinentCount(WireModel):
    continent: str
    count: int


class DashboardResponse(WireModel):
    """Daily aggregate summary."""
    total_bookings: int = Field(alias="totalBookings")
    top_airports: list[TopAirport] = Field(default_factory=list, alias="topAirports")
    top_countries: list[TopCountry] = Field(default_factory=list, alias="topCountries")
    continent_data: list[ContinentCount] = Field(default_factory=list, alias="continentData")
    last_updated: str = Field(alias="lastUpdated")


class MapPoint(WireModel):
    """One airport marker on the map."""
    iata: str
    airport: str
    country: str
    continent: str
    lat: float
    lng: float
    count: int


class BookingNotice(WireModel):
    """A single accepted booking as delivered to clients."""
    id: str
    airport: str
    airport_name: str = Field(alias="airportName")
    country: str
    continent: str = ""
    coordinates: tuple[float, float]
    date: str = ""
    status: str = ""
    sequence: int = 0
    received_at: str | None = Field(default=None, alias="receivedAt")

    @field_validator("id", mode="before")
    @classmethod
    def id_as_text(cls, v: object) -> object:
        """Booking ids may arrive as numbers."""
        return str(v) if isinstance(v, int) and not isinstance(v, bool) else v

    @property
    def latitude(self) -> float:
        return self.coordinates[0]

    @property
    def longitude(self) -> float:
        return self.coordinates[1]


class RecentBookingsResponse(WireModel):
    """Poll API response."""
    bookings: list[BookingNotice] = Field(default_factory=list)
    latest_sequence: int = Field(default=0, alias="latestSequence")


class PushMessage(WireModel):
    """Push stream message."""
    type: Literal["new_booking"] = "new_booking"
    booking: BookingNotice


class HealthResponse(WireModel):
    status: str = "ok"
    airports_loaded: int = Field(alias="airportsLoaded")
    subscribers: int = 0
