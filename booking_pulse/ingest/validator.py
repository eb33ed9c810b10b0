"""Booking validation.

validate_booking() is a pure function from a raw payload to either
Accepted(NormalizedBooking) or Rejection(reason). Checks run in order
and stop at the first failure:

1. structure  - booking_id, arrival.airport, date and status present
2. status     - exactly the configured confirmed literal
3. date       - inside the trailing window ending today (local zone)
4. airport    - code known to the AirportDirectory
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Any, Callable, Mapping, Union
from zoneinfo import ZoneInfo

from ..config_schema import IngestionConfig
from ..errors import RejectReason, Rejection
from .airports import AirportDirectory, normalize_code
from .types import NormalizedBooking

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Accepted:
    """A booking that passed every check."""

    booking: NormalizedBooking

    @property
    def accepted(self) -> bool:
        return True


ValidationResult = Union[Accepted, Rejection]


@dataclass(frozen=True)
class ValidationRules:
    """Inputs of the validator that come from configuration."""

    confirmed_status: str = "confirmed"
    window_days: int = 2
    tz: tzinfo = timezone.utc

    def __post_init__(self) -> None:
        if self.window_days < 1:
            raise ValueError(f"window_days must be at least 1, got {self.window_days}")

    @classmethod
    def from_config(cls, config: IngestionConfig) -> ValidationRules:
        return cls(
            confirmed_status=config.confirmed_status,
            window_days=config.accept_window_days,
            tz=resolve_timezone(config.timezone),
        )

    def today(self, now: datetime | None = None) -> date:
        """Current calendar date in the configured zone."""
        current = now if now is not None else datetime.now(timezone.utc)
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
        return current.astimezone(self.tz).date()


def resolve_timezone(name: str) -> tzinfo:
    """Resolve an IANA zone name; "UTC" needs no tz database."""
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def parse_booking_date(value: str, tz: tzinfo) -> date:
    """Calendar date of a booking in the local zone.

    Accepts ISO dates ("2026-10-18") and ISO datetimes. A datetime with an
    offset is converted to tz first; a naive one is taken as local.

    Raises:
        ValueError: The value is not an ISO date or datetime.
    """
    text = value.strip()
    if len(text) == 10:
        return date.fromisoformat(text)
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(tz)
    return parsed.date()


def _present(value: Any) -> bool:
    if isinstance(value, bool) or value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return isinstance(value, int)


def validate_booking(
    payload: Any,
    directory: AirportDirectory,
    rules: ValidationRules,
    today: date,
) -> ValidationResult:
    """Validate a raw booking payload against the rules for a given day."""
    if not isinstance(payload, Mapping):
        return Rejection(RejectReason.MALFORMED_PAYLOAD, "Booking must be a JSON object")

    booking_id = payload.get("booking_id")
    arrival = payload.get("arrival")
    airport_code = arrival.get("airport") if isinstance(arrival, Mapping) else None
    raw_date = payload.get("date")
    status = payload.get("status")

    missing = [
        name for name, value in (
            ("booking_id", booking_id),
            ("arrival.airport", airport_code if isinstance(airport_code, str) else None),
            ("date", raw_date if isinstance(raw_date, str) else None),
            ("status", status if isinstance(status, str) else None),
        )
        if not _present(value)
    ]
    if missing:
        return Rejection(
            RejectReason.MALFORMED_PAYLOAD,
            f"Invalid booking format: missing {', '.join(missing)}",
        )

    try:
        booking_date = parse_booking_date(raw_date, rules.tz)
    except ValueError:
        return Rejection(
            RejectReason.MALFORMED_PAYLOAD,
            f"Invalid booking format: unparseable date {raw_date!r}",
        )

    if status != rules.confirmed_status:
        return Rejection(
            RejectReason.NOT_CONFIRMED,
            f"Booking status is {status!r}, not {rules.confirmed_status!r}",
        )

    earliest = today - timedelta(days=rules.window_days - 1)
    if not earliest <= booking_date <= today:
        return Rejection(
            RejectReason.OUT_OF_WINDOW,
            f"Booking date {booking_date.isoformat()} is outside "
            f"{earliest.isoformat()}..{today.isoformat()}",
        )

    record = directory.lookup(airport_code)
    if record is None:
        return Rejection(
            RejectReason.UNKNOWN_AIRPORT,
            f"Unknown airport code: {airport_code}",
        )

    return Accepted(
        NormalizedBooking(
            id=str(booking_id).strip(),
            airport_code=normalize_code(airport_code),
            date=booking_date,
            status=status,
            display_name=record.display_name,
            country=record.country,
            continent=record.continent,
            latitude=record.latitude,
            longitude=record.longitude,
        )
    )


class BookingValidator:
    """Binds the directory and rules; supplies "today" from a clock."""

    def __init__(
        self,
        directory: AirportDirectory,
        rules: ValidationRules | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.directory = directory
        self.rules = rules or ValidationRules()
        self._clock = clock

    def validate(self, payload: Any, now: datetime | None = None) -> ValidationResult:
        if now is None and self._clock is not None:
            now = self._clock()
        result = validate_booking(payload, self.directory, self.rules, self.rules.today(now))
        if isinstance(result, Rejection):
            logger.info("Booking rejected (%s): %s", result.reason.value, result.message)
        return result
