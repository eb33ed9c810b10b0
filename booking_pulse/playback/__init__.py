"""Client-side playback of new bookings."""

from .id_window import ProcessedIdWindow
from .poller import BookingPoller
from .queue import AnimationQueueEntry, AnimationQueueProcessor, PlaybackState, PlaybackTimings
from .surface import Camera, LoggingMapSurface, MapSurface

__all__ = [
    "ProcessedIdWindow",
    "BookingPoller",
    "AnimationQueueEntry",
    "AnimationQueueProcessor",
    "PlaybackState",
    "PlaybackTimings",
    "Camera",
    "LoggingMapSurface",
    "MapSurface",
]
