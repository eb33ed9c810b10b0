"""FastAPI server for the booking dashboard.

Routes are organized into helper registration functions:
- ingestion: POST /api/slack-webhook, POST /api/test-booking
- read APIs: GET /health, /api/dashboard, /api/map, /api/recent-bookings
- push stream: WebSocket at server.websocket_path (default /ws)

Usage:
    uvicorn booking_pulse.dashboard.server:create_app --factory
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncGenerator, Callable

from fastapi import FastAPI, Query, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..config import get_validated_config
from ..config_schema import AppConfig
from ..errors import IgnoreReason, ignored_response
from ..ingest.aggregator import AggregateStore
from ..ingest.airports import AirportDirectory
from ..ingest.scheduler import DailyResetScheduler
from ..ingest.service import IngestionService
from ..ingest.validator import BookingValidator, ValidationRules
from ..live.broadcaster import Broadcaster
from ..live.poll_store import RecentBookingsLog
from ..live.push import SubscriberRegistry
from .models import DashboardResponse, HealthResponse, MapPoint, RecentBookingsResponse
from .websocket import websocket_endpoint

logger = logging.getLogger(__name__)


class BookingPulseApp:
    """Application state: the pipeline components and their wiring."""

    def __init__(
        self,
        config: AppConfig,
        directory: AirportDirectory | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize app state.

        Args:
            config: Validated configuration
            directory: Airport directory; loaded from airports.data_file if None
            clock: Aware "now" source for the aggregate and scheduler (tests)
        """
        self.config = config
        self.directory = (
            directory if directory is not None
            else AirportDirectory.load(config.airports.data_file)
        )
        self.rules = ValidationRules.from_config(config.ingestion)

        self.store = AggregateStore(clock=clock)
        self.poll_store = RecentBookingsLog(config.broadcast.recent_limit)
        self.registry = SubscriberRegistry(config.broadcast.subscriber_queue_size)
        self.broadcaster = Broadcaster(self.poll_store, self.registry)
        self.ingestion = IngestionService(
            BookingValidator(self.directory, self.rules, clock=clock),
            self.store,
            self.broadcaster,
        )
        self.scheduler = DailyResetScheduler(
            self.store,
            reset_time=config.aggregation.reset_time,
            tz=self.rules.tz,
            clock=clock,
        )

    async def start(self) -> None:
        """Start background tasks."""
        if self.config.aggregation.reset_enabled:
            await self.scheduler.start()

    async def stop(self) -> None:
        """Stop background tasks and drop push subscribers."""
        await self.scheduler.stop()
        self.registry.close_all()


def _register_ingestion_routes(app: FastAPI, state: BookingPulseApp) -> None:
    """Register webhook and test-booking routes."""

    @app.post("/api/slack-webhook")
    async def slack_webhook(request: Request) -> JSONResponse:
        """Chat-ops webhook: handshake or booking message."""
        try:
            envelope: Any = await request.json()
        except ValueError:
            return JSONResponse(ignored_response(IgnoreReason.INVALID_JSON))
        status_code, body = state.ingestion.handle_webhook(envelope)
        return JSONResponse(body, status_code=status_code)

    @app.post("/api/test-booking")
    async def test_booking(request: Request) -> JSONResponse:
        """Ingest a bare booking object (no webhook envelope)."""
        try:
            payload: Any = await request.json()
        except ValueError:
            return JSONResponse(ignored_response(IgnoreReason.INVALID_JSON))
        status_code, body = state.ingestion.handle_test_booking(payload)
        return JSONResponse(body, status_code=status_code)


def _register_read_routes(app: FastAPI, state: BookingPulseApp) -> None:
    """Register dashboard, map, poll and health routes."""

    @app.get("/health", response_model=HealthResponse)
    async def health_check() -> dict[str, Any]:
        return {
            "status": "ok",
            "airportsLoaded": len(state.directory),
            "subscribers": state.broadcaster.subscriber_count,
        }

    @app.get("/api/dashboard", response_model=DashboardResponse)
    async def get_dashboard() -> dict[str, Any]:
        """Totals and rankings for today."""
        return state.store.dashboard(state.config.aggregation.top_n)

    @app.get("/api/map", response_model=list[MapPoint])
    async def get_map() -> list[dict[str, Any]]:
        """Per-airport counts with coordinates."""
        return state.store.map_points()

    @app.get("/api/recent-bookings", response_model=RecentBookingsResponse)
    async def get_recent_bookings(since: int = Query(0, ge=0)) -> dict[str, Any]:
        """Accepted bookings with a sequence greater than `since`."""
        return state.broadcaster.recent(since)


def _register_websocket_routes(app: FastAPI, state: BookingPulseApp) -> None:
    """Register the push-stream WebSocket."""

    @app.websocket(state.config.server.websocket_path)
    async def push_stream(websocket: WebSocket) -> None:
        await websocket_endpoint(
            websocket,
            state.registry,
            keepalive_seconds=state.config.server.keepalive_seconds,
        )


def create_app(
    config: AppConfig | None = None,
    directory: AirportDirectory | None = None,
    clock: Callable[[], datetime] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Validated configuration; the loaded global config if None
        directory: Airport directory override (tests)
        clock: Aware "now" source override (tests)
    """
    config = config or get_validated_config()
    state = BookingPulseApp(config, directory=directory, clock=clock)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Lifespan context manager for startup/shutdown."""
        await state.start()
        yield
        await state.stop()

    app = FastAPI(
        title="Booking Pulse",
        description="Live daily statistics for confirmed bookings",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.pulse = state

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_ingestion_routes(app, state)
    _register_read_routes(app, state)
    _register_websocket_routes(app, state)

    return app


def run_server(config: AppConfig | None = None) -> None:
    """Run the server under uvicorn."""
    import uvicorn

    config = config or get_validated_config()
    app = create_app(config)
    logger.info(
        "Server running on %s:%d (%d airports loaded)",
        config.server.host,
        config.server.port,
        len(app.state.pulse.directory),
    )
    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
    )
