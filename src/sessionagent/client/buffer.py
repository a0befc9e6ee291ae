"""Event buffer for session events awaiting the next report.

Events are kept in arrival order with no deduplication: two rapid
add-to-cart clicks are two events. drain_all() hands the whole sequence
to exactly one payload and leaves the buffer empty, so an event recorded
after a drain always belongs to the next payload.
"""

from __future__ import annotations

import logging
import threading

from sessionagent.core.types import SessionEvent

logger = logging.getLogger(__name__)


class EventBuffer:
    """Ordered, unbounded buffer of session events."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._events: list[SessionEvent] = []

    def record(self, event: SessionEvent) -> None:
        """Append an event."""
        with self._lock:
            self._events.append(event)
        logger.debug("Recorded %s event", event.type.value)

    def drain_all(self) -> list[SessionEvent]:
        """Return all buffered events in order and reset the buffer."""
        with self._lock:
            events, self._events = self._events, []
        return events

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
