"""Ingestion pipeline: extract, validate, aggregate."""

from .aggregator import AggregateStore, DailyAggregate
from .airports import AirportDirectory, AirportRecord
from .extraction import extract_json_object
from .scheduler import DailyResetScheduler
from .service import IngestionService
from .types import NormalizedBooking
from .validator import Accepted, BookingValidator, ValidationRules, validate_booking

__all__ = [
    "AggregateStore",
    "DailyAggregate",
    "AirportDirectory",
    "AirportRecord",
    "extract_json_object",
    "DailyResetScheduler",
    "IngestionService",
    "NormalizedBooking",
    "Accepted",
    "BookingValidator",
    "ValidationRules",
    "validate_booking",
]
