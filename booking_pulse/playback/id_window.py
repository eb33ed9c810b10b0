"""Bounded window of recently seen booking ids."""

from __future__ import annotations


class ProcessedIdWindow:
    """Remembers recently processed ids so the same booking is queued once.

    Once more than `ceiling` ids are held, the oldest are evicted and only
    the most recent `keep` remain.
    """

    def __init__(self, ceiling: int = 1000, keep: int = 500) -> None:
        if ceiling <= 0:
            raise ValueError(f"ceiling must be positive, got {ceiling}")
        if not 0 < keep <= ceiling:
            raise ValueError(f"keep must be in 1..{ceiling}, got {keep}")
        self.ceiling = ceiling
        self.keep = keep
        # dict preserves insertion order; values unused
        self._ids: dict[str, None] = {}

    def add(self, booking_id: str) -> bool:
        """Record an id. Returns False if it was already in the window."""
        if booking_id in self._ids:
            return False
        self._ids[booking_id] = None
        if len(self._ids) > self.ceiling:
            trailing = list(self._ids)[-self.keep:]
            self._ids = dict.fromkeys(trailing)
        return True

    def __contains__(self, booking_id: object) -> bool:
        return booking_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def clear(self) -> None:
        self._ids.clear()
