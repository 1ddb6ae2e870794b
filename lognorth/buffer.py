"""buffer.py - Bounded FIFO of pending ordinary events.

EventBuffer holds the events produced by ``log()`` until the scheduler decides
to flush them. Error events never enter it; they are dispatched immediately.

Design decisions:
    - A plain ``collections.deque`` without ``maxlen``: eviction must skip any
      non-ordinary entries, which ``maxlen`` cannot express.
    - ``drain()`` swaps the deque for a fresh one in a single step before any
      ``await`` happens, so concurrent flushes never see the same event twice
      and events enqueued after a flush began are excluded from that flush.
    - No locks. All mutation happens on the event loop thread between
      suspension points.
"""

import logging
from collections import deque
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

_logger = logging.getLogger(__name__)


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a ``Z`` suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Event:
    """One log or error record destined for the collector.

    The timestamp is fixed when the Event is created, never at send time.

    Attributes:
        message (str): Human-readable message.
        timestamp (str): ISO-8601 UTC creation time.
        duration_ms (float | None): Optional duration, always top-level.
        trace_id (str | None): Active trace ID at creation, if any.
        error_type (str | None): Set only on error events.
        error_location (str | None): ``"file:line"`` on error events.
        context (dict | None): Arbitrary JSON-serialisable key/value pairs.
    """

    __slots__ = (
        "message",
        "timestamp",
        "duration_ms",
        "trace_id",
        "error_type",
        "error_location",
        "context",
    )

    def __init__(
        self,
        message: str,
        timestamp: Optional[str] = None,
        duration_ms: Optional[float] = None,
        trace_id: Optional[str] = None,
        error_type: Optional[str] = None,
        error_location: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.timestamp = timestamp or utc_timestamp()
        self.duration_ms = duration_ms
        self.trace_id = trace_id
        self.error_type = error_type
        self.error_location = error_location
        self.context = context

    @property
    def is_error(self) -> bool:
        return self.error_type is not None

    def to_dict(self) -> Dict[str, Any]:
        """Return the wire representation, omitting fields that are not set."""
        data: Dict[str, Any] = {"message": self.message, "timestamp": self.timestamp}
        for name in ("duration_ms", "trace_id", "error_type", "error_location", "context"):
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        return data

    def __repr__(self) -> str:  # pragma: no cover
        kind = "error" if self.is_error else "event"
        return f"Event({kind}, {self.timestamp}, {self.message!r})"


class EventBuffer:
    """Fixed-capacity FIFO of ordinary Events with drop-oldest eviction.

    Example:
        >>> buf = EventBuffer(capacity=3)
        >>> for i in range(1, 5):
        ...     _ = buf.enqueue(Event(f"Event{i}"))
        >>> [e.message for e in buf.drain()]
        ['Event2', 'Event3', 'Event4']
        >>> len(buf)
        0
    """

    def __init__(self, capacity: int = 1000) -> None:
        """Initialise an empty buffer.

        Args:
            capacity: Maximum number of events held at any time.

        Raises:
            ValueError: If ``capacity`` is not positive.
        """
        if capacity <= 0:
            raise ValueError(f"capacity must be > 0, got {capacity}")
        self._capacity = capacity
        self._events: deque[Event] = deque()

    @property
    def capacity(self) -> int:
        return self._capacity

    def enqueue(self, event: Event) -> bool:
        """Append ``event``, evicting the oldest ordinary event if at capacity.

        Returns:
            False if the incoming event was dropped because the buffer is full
            and holds no ordinary event to evict, True otherwise.
        """
        if len(self._events) >= self._capacity:
            victim = next((e for e in self._events if not e.is_error), None)
            if victim is None:
                _logger.debug("Buffer full of non-ordinary events; dropping %r", event.message)
                return False
            self._events.remove(victim)
            _logger.debug("Buffer at capacity (%d); evicted oldest event", self._capacity)
        self._events.append(event)
        return True

    def drain(self) -> List[Event]:
        """Atomically take every buffered event, leaving the buffer empty.

        This is the only way events leave the buffer for transmission.

        Returns:
            The buffered events in insertion order (oldest first).
        """
        events, self._events = self._events, deque()
        return list(events)

    def snapshot(self) -> List[Event]:
        """Return the buffered events without removing them (tests and debugging)."""
        return list(self._events)

    def __len__(self) -> int:
        return len(self._events)
