"""Booking Pulse.

Ingests confirmed-booking notifications from a chat-ops webhook, keeps
running per-day statistics, and fans new bookings out to live clients:
- config: Configuration loading and management
- ingest: Extraction, validation, aggregation and the daily reset
- live: Poll store, push registry and the broadcaster over both
- dashboard: FastAPI server, read APIs and the WebSocket push stream
- playback: Client-side animation queue and poller
"""

from __future__ import annotations

__version__ = "1.0.0"

__all__: list[str] = ["__version__"]
