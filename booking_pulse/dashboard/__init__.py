"""HTTP and WebSocket surface for the booking dashboard."""

from .server import BookingPulseApp, create_app, run_server

__all__ = ["BookingPulseApp", "create_app", "run_server"]
