"""Fan-out of accepted bookings to poll and push consumers."""

from .broadcaster import Broadcaster
from .poll_store import PollEntry, RecentBookingsLog
from .push import Subscriber, SubscriberRegistry

__all__ = ["Broadcaster", "PollEntry", "RecentBookingsLog", "Subscriber", "SubscriberRegistry"]
