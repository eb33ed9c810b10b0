"""Integration tests for the WebSocket push stream."""

from __future__ import annotations

import json
from typing import Any, Callable, Iterator

import pytest
from fastapi.testclient import TestClient

from booking_pulse.config_schema import AppConfig, validate_config_dict
from booking_pulse.dashboard.models import PushMessage
from booking_pulse.dashboard.server import create_app
from booking_pulse.ingest.airports import AirportDirectory
from booking_pulse.playback.id_window import ProcessedIdWindow
from booking_pulse.playback.queue import AnimationQueueProcessor
from booking_pulse.playback.surface import LoggingMapSurface

pytestmark = pytest.mark.integration

Payload = Callable[..., dict[str, Any]]


def _message(payload: dict[str, Any]) -> dict[str, Any]:
    return {"type": "event_callback", "event": {"type": "message", "text": json.dumps(payload)}}


@pytest.fixture
def client(app_config: AppConfig, airport_directory: AirportDirectory, clock: Any) -> Iterator[TestClient]:
    app = create_app(app_config, directory=airport_directory, clock=clock)
    with TestClient(app) as test_client:
        yield test_client


class TestPushStream:
    def test_keepalive_ping(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.send_text("ping")
            assert ws.receive_text() == "pong"

    def test_subscriber_receives_accepted_booking(self, client: TestClient, make_payload: Payload) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.send_text("ping")
            assert ws.receive_text() == "pong"

            response = client.post("/api/slack-webhook", json=_message(make_payload(booking_id="B1", airport="LHR")))
            assert response.json()["status"] == "processed"

            message = ws.receive_json()
            assert message["type"] == "new_booking"
            assert message["booking"]["id"] == "B1"
            assert message["booking"]["airport"] == "LHR"
            assert message["booking"]["sequence"] == 1
            assert PushMessage.model_validate(message).booking.latitude == pytest.approx(51.47)

    def test_rejected_booking_not_pushed(self, client: TestClient, make_payload: Payload) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.send_text("ping")
            assert ws.receive_text() == "pong"

            client.post("/api/slack-webhook", json=_message(make_payload(booking_id="X", status="pending")))
            client.post("/api/slack-webhook", json=_message(make_payload(booking_id="B2", airport="CDG")))

            # The first message on the stream is the accepted booking
            assert ws.receive_json()["booking"]["id"] == "B2"

    def test_every_subscriber_gets_the_message(self, client: TestClient, make_payload: Payload) -> None:
        with client.websocket_connect("/ws") as first, client.websocket_connect("/ws") as second:
            for ws in (first, second):
                ws.send_text("ping")
                assert ws.receive_text() == "pong"
            assert client.get("/health").json()["subscribers"] == 2

            client.post("/api/test-booking", json=make_payload(booking_id="B3", airport="NRT"))

            assert first.receive_json()["booking"]["id"] == "B3"
            assert second.receive_json()["booking"]["id"] == "B3"

    def test_disconnect_unsubscribes(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.send_text("ping")
            ws.receive_text()
        state = client.app.state.pulse  # type: ignore[attr-defined]
        # Give the server side a moment to notice the close
        for _ in range(50):
            if state.registry.connection_count == 0:
                break
            client.get("/health")
        assert state.registry.connection_count == 0

    def test_custom_websocket_path(self, airport_directory: AirportDirectory) -> None:
        config = validate_config_dict({
            "server": {"websocket_path": "/stream"},
            "aggregation": {"reset_enabled": False},
        })
        with TestClient(create_app(config, directory=airport_directory)) as client:
            with client.websocket_connect("/stream") as ws:
                ws.send_text("ping")
                assert ws.receive_text() == "pong"


class TestPushToPlayback:
    """Push messages feed the client-side queue with dedup."""

    def test_pushed_booking_queued_once(self, client: TestClient, make_payload: Payload) -> None:
        processor = AnimationQueueProcessor(LoggingMapSurface(), id_window=ProcessedIdWindow(10, 5))
        with client.websocket_connect("/ws") as ws:
            ws.send_text("ping")
            ws.receive_text()
            client.post("/api/test-booking", json=make_payload(booking_id="B9", airport="JFK"))
            message = ws.receive_json()

        assert processor.handle_push_message(message) is True
        assert processor.handle_push_message(message) is False
        assert processor.pending == 1
