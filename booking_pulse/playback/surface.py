"""The view surface the animation queue drives.

The real map widget lives outside this package; the playback queue only
needs the handful of operations in MapSurface. LoggingMapSurface is a
headless implementation that records the camera and logs each command,
used by the `watch` command and handy for manual testing.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol

from ..dashboard.models import BookingNotice

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Camera:
    """Center and zoom of the view."""

    latitude: float
    longitude: float
    zoom: float

    def key(self, precision: int = 2) -> tuple[float, float, float]:
        """Coordinate key used to dedup tile prefetches."""
        return (round(self.latitude, precision), round(self.longitude, precision), self.zoom)


class MapSurface(Protocol):
    """Operations the playback queue needs from the map."""

    def current_camera(self) -> Camera:
        """Where the view is now."""
        ...

    async def move_to(self, camera: Camera) -> None:
        """Start a visible transition to camera."""
        ...

    async def wait_until_ready(self) -> None:
        """Return once the view has finished loading at its location."""
        ...

    async def show_highlight(self, notice: BookingNotice) -> None:
        """Show the highlighted marker for a booking."""
        ...

    async def clear_highlight(self) -> None:
        """Remove the highlighted marker."""
        ...

    async def prefetch(self, camera: Camera) -> None:
        """Load tiles for camera without changing what the user sees."""
        ...


class LoggingMapSurface:
    """Headless surface that logs commands and simulates tile loading."""

    def __init__(self, home: Camera | None = None, load_seconds: float = 0.0) -> None:
        self._camera = home or Camera(20.0, 0.0, 2.0)
        self.load_seconds = load_seconds
        self.highlighted: BookingNotice | None = None

    def current_camera(self) -> Camera:
        return self._camera

    async def move_to(self, camera: Camera) -> None:
        logger.info(
            "View -> (%.4f, %.4f) zoom %.1f", camera.latitude, camera.longitude, camera.zoom
        )
        self._camera = camera

    async def wait_until_ready(self) -> None:
        if self.load_seconds:
            await asyncio.sleep(self.load_seconds)

    async def show_highlight(self, notice: BookingNotice) -> None:
        self.highlighted = notice
        logger.info(
            "New booking %s: %s - %s (%s)",
            notice.id, notice.airport, notice.airport_name, notice.country,
        )

    async def clear_highlight(self) -> None:
        self.highlighted = None

    async def prefetch(self, camera: Camera) -> None:
        logger.debug("Prefetching tiles around (%.4f, %.4f)", camera.latitude, camera.longitude)
        if self.load_seconds:
            await asyncio.sleep(self.load_seconds)
