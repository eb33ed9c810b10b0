"""Inbound webhook handling.

IngestionService turns a chat-ops webhook envelope into at most one
aggregate mutation:

    envelope -> handshake?     -> echo challenge
             -> message event? -> extract JSON -> validate
                                  -> accept: mutate aggregate, publish
                                  -> reject: report reason, no mutation

Every entry point returns (http_status, body). Unexpected failures are
caught here and reported as a 500 so that a bad message can never take
the process or the aggregate down with it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping

from ..errors import (
    IgnoreReason,
    JSONExtractionError,
    Rejection,
    ignored_response,
    internal_error_response,
)
from .aggregator import AggregateStore
from .extraction import extract_json_object
from .validator import Accepted, BookingValidator, ValidationResult

if TYPE_CHECKING:
    from ..live.broadcaster import Broadcaster

logger = logging.getLogger(__name__)

URL_VERIFICATION = "url_verification"
EVENT_CALLBACK = "event_callback"

Response = tuple[int, dict[str, Any]]


class IngestionService:
    """Drives validator, aggregate store and broadcaster for inbound events."""

    def __init__(
        self,
        validator: BookingValidator,
        store: AggregateStore,
        broadcaster: Broadcaster | None = None,
    ) -> None:
        self.validator = validator
        self.store = store
        self.broadcaster = broadcaster

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    def handle_webhook(self, envelope: Any) -> Response:
        """Handle one webhook delivery."""
        try:
            return self._handle_webhook(envelope)
        except Exception as e:
            logger.exception("Error processing webhook")
            return 500, internal_error_response(e)

    def handle_test_booking(self, payload: Any) -> Response:
        """Run a bare booking object through the accept path."""
        try:
            result = self.process(payload)
        except Exception as e:
            logger.exception("Error processing test booking")
            return 500, internal_error_response(e)

        body: dict[str, Any] = {
            "processed": result.accepted,
            "booking": payload,
            "totalBookings": self.store.snapshot().total_count,
        }
        if isinstance(result, Rejection):
            body.update(result.to_dict())
        return 200, body

    # -------------------------------------------------------------------------
    # Accept path
    # -------------------------------------------------------------------------

    def process(self, payload: Any) -> ValidationResult:
        """Validate a booking and, if accepted, count and publish it."""
        result = self.validator.validate(payload)
        if isinstance(result, Accepted):
            booking = result.booking
            aggregate = self.store.mutate(booking)
            logger.info(
                "Processed booking %s -> %s (%s); total today: %d",
                booking.id,
                booking.airport_code,
                booking.country,
                aggregate.total_count,
            )
            if self.broadcaster is not None:
                self.broadcaster.publish(booking)
        return result

    # -------------------------------------------------------------------------
    # Envelope handling
    # -------------------------------------------------------------------------

    def _handle_webhook(self, envelope: Any) -> Response:
        if not isinstance(envelope, Mapping):
            return 200, ignored_response(IgnoreReason.NOT_A_MESSAGE_EVENT)

        envelope_type = envelope.get("type")
        if envelope_type == URL_VERIFICATION:
            return 200, {"challenge": envelope.get("challenge")}

        if envelope_type != EVENT_CALLBACK:
            return 200, ignored_response(IgnoreReason.NOT_A_MESSAGE_EVENT)

        event = envelope.get("event")
        if not isinstance(event, Mapping) or event.get("type") != "message":
            return 200, ignored_response(IgnoreReason.NOT_A_MESSAGE_EVENT)
        if event.get("subtype"):
            return 200, ignored_response(IgnoreReason.NOT_A_REGULAR_MESSAGE)

        text = event.get("text")
        try:
            payload = extract_json_object(text if isinstance(text, str) else "")
        except JSONExtractionError as e:
            logger.info("Message is not valid JSON, ignoring (%s)", e)
            return 200, ignored_response(IgnoreReason.INVALID_JSON)

        result = self.process(payload)
        if isinstance(result, Accepted):
            booking = result.booking
            return 200, {
                "status": "processed",
                "booking": payload,
                "totalBookings": self.store.snapshot().total_count,
                "destination": f"{booking.airport_code} - {booking.display_name}",
                "country": booking.country,
            }

        return 200, {
            "status": "not_processed",
            "booking": payload,
            **result.to_dict(),
        }
