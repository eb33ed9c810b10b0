"""Rejection codes and error response conventions for booking ingestion.

A booking that fails validation is not an exception: it is answered with
a rejection carrying a machine-readable reason code and a human-readable
message, and the aggregate is left untouched. Only parsing failures and
unexpected internal failures use exceptions, and both are converted to
responses at the ingestion boundary.

Usage:
    from booking_pulse.errors import RejectReason, Rejection

    return Rejection(RejectReason.NOT_CONFIRMED, "status is 'pending'")
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class RejectReason(str, Enum):
    """Why a candidate booking was not counted.

    Rejections are final: the server never retries them, the upstream
    message source owns retrying.
    """

    MALFORMED_PAYLOAD = "malformed_payload"  # Missing or unusable fields
    NOT_CONFIRMED = "not_confirmed"  # Status other than the confirmed literal
    OUT_OF_WINDOW = "out_of_window"  # Date outside the accepted trailing days
    UNKNOWN_AIRPORT = "unknown_airport"  # Code absent from the directory


class IgnoreReason(str, Enum):
    """Why an inbound message was never treated as a candidate booking."""

    INVALID_JSON = "invalid JSON"
    NOT_A_REGULAR_MESSAGE = "Not a regular message"
    NOT_A_MESSAGE_EVENT = "Not a message event"


class JSONExtractionError(ValueError):
    """No JSON object could be recovered from a message body."""


@dataclass(frozen=True)
class Rejection:
    """A validation failure.

    Attributes:
        reason: Machine-readable rejection code
        message: Human-readable explanation
    """

    reason: RejectReason
    message: str

    @property
    def accepted(self) -> bool:
        return False

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for serialization."""
        return {"reason": self.reason.value, "message": self.message}


INTERNAL_ERROR_MESSAGE = "Internal server error processing booking"


def internal_error_response(exc: BaseException) -> dict[str, object]:
    """Body of the 500 response for an unexpected ingestion failure."""
    return {
        "status": "error",
        "error": str(exc) or type(exc).__name__,
        "message": INTERNAL_ERROR_MESSAGE,
    }


def ignored_response(reason: IgnoreReason) -> dict[str, object]:
    """Body of the response for a message that is not a candidate booking."""
    return {"status": "ignored", "reason": reason.value}
