"""Pytest fixtures for booking_pulse tests.

Common fixtures: a small airport directory, a fixed clock, validation
rules and booking payload builders.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Iterator

import pytest

from booking_pulse.config import reset_config
from booking_pulse.config_schema import AppConfig, validate_config_dict
from booking_pulse.dashboard.models import BookingNotice
from booking_pulse.ingest.airports import AirportDirectory
from booking_pulse.ingest.types import NormalizedBooking
from booking_pulse.ingest.validator import ValidationRules

# Noon UTC, so "today" is the same date in every zone the tests use
FIXED_NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)
TODAY = FIXED_NOW.date()

SAMPLE_AIRPORTS: list[dict[str, Any]] = [
    {"iata": "JFK", "airport": "John F. Kennedy International Airport",
     "country": "United States", "continent": "North America", "lat": 40.6413, "lng": -73.7781},
    {"iata": "LAX", "airport": "Los Angeles International Airport",
     "country": "United States", "continent": "North America", "lat": 33.9416, "lng": -118.4085},
    {"iata": "LHR", "airport": "London Heathrow Airport",
     "country": "United Kingdom", "continent": "Europe", "lat": 51.4700, "lng": -0.4543},
    {"iata": "CDG", "airport": "Paris Charles de Gaulle Airport",
     "country": "France", "continent": "Europe", "lat": 49.0097, "lng": 2.5479},
    {"iata": "NRT", "airport": "Narita International Airport",
     "country": "Japan", "continent": "Asia", "lat": 35.7720, "lng": 140.3929},
]


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: drives the app through HTTP or WebSocket"
    )


class FakeClock:
    """Settable aware "now" for aggregate and scheduler tests."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture(autouse=True)
def _isolated_config() -> Iterator[None]:
    """Each test starts without a loaded global config."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def airport_directory() -> AirportDirectory:
    return AirportDirectory.from_raw(SAMPLE_AIRPORTS)


@pytest.fixture
def rules() -> ValidationRules:
    return ValidationRules()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def app_config() -> AppConfig:
    """Config for app tests: no background reset task."""
    return validate_config_dict({"aggregation": {"reset_enabled": False}})


@pytest.fixture
def make_payload() -> Callable[..., dict[str, Any]]:
    """Build a raw booking payload as it appears in a message."""

    def _make(
        booking_id: Any = "B1",
        airport: Any = "JFK",
        booking_date: Any = TODAY.isoformat(),
        status: Any = "confirmed",
    ) -> dict[str, Any]:
        return {
            "booking_id": booking_id,
            "arrival": {"airport": airport},
            "date": booking_date,
            "status": status,
        }

    return _make


@pytest.fixture
def make_booking(airport_directory: AirportDirectory) -> Callable[..., NormalizedBooking]:
    """Build a NormalizedBooking for a directory airport."""

    def _make(booking_id: str = "B1", airport: str = "JFK", booking_date: date = TODAY) -> NormalizedBooking:
        record = airport_directory.lookup(airport)
        assert record is not None
        return NormalizedBooking(
            id=booking_id,
            airport_code=record.code,
            date=booking_date,
            status="confirmed",
            display_name=record.display_name,
            country=record.country,
            continent=record.continent,
            latitude=record.latitude,
            longitude=record.longitude,
        )

    return _make


@pytest.fixture
def make_notice() -> Callable[..., BookingNotice]:
    """Build a client-side BookingNotice."""

    def _make(
        booking_id: str = "B1",
        airport: str = "JFK",
        coordinates: tuple[float, float] = (40.6413, -73.7781),
        sequence: int = 1,
    ) -> BookingNotice:
        return BookingNotice(
            id=booking_id,
            airport=airport,
            airportName=f"{airport} Airport",
            country="Somewhere",
            continent="Somewhere",
            coordinates=coordinates,
            date=TODAY.isoformat(),
            status="confirmed",
            sequence=sequence,
        )

    return _make
