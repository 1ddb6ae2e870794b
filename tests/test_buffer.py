"""test_buffer.py - Unit tests for Event and EventBuffer.

Covers:
    - Event wire form: optional fields omitted when unset
    - Event timestamp: ISO-8601 UTC, fixed at creation
    - EventBuffer enqueue, len, drain, snapshot
    - Overflow: the oldest ordinary event is evicted, never more than capacity
    - Overflow with no ordinary event to evict drops the incoming event
    - drain() swaps atomically: later enqueues land in the next batch
"""

import re

import pytest

from lognorth.buffer import Event, EventBuffer, utc_timestamp

ISO_UTC = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


# ---------------------------------------------------------------------------
# Event
# ---------------------------------------------------------------------------


class TestEvent:
    def test_event_to_dict_omits_unset_fields(self):
        """Only message and timestamp appear when nothing else is set."""
        event = Event("hello")
        assert set(event.to_dict()) == {"message", "timestamp"}

    def test_event_to_dict_includes_set_fields(self):
        event = Event("req", duration_ms=12.5, trace_id="abc", context={"user": 1})
        data = event.to_dict()
        assert data["duration_ms"] == 12.5
        assert data["trace_id"] == "abc"
        assert data["context"] == {"user": 1}

    def test_event_timestamp_is_iso_utc_with_millis(self):
        assert ISO_UTC.match(Event("x").timestamp)
        assert ISO_UTC.match(utc_timestamp())

    def test_event_timestamp_is_fixed_at_creation(self):
        """Serialising later does not change the timestamp."""
        event = Event("x")
        first = event.to_dict()["timestamp"]
        assert event.to_dict()["timestamp"] == first == event.timestamp

    def test_event_is_error_only_with_error_type(self):
        assert Event("x").is_error is False
        assert Event("x", error_type="ValueError").is_error is True

    def test_event_uses_slots(self):
        event = Event("x")
        with pytest.raises(AttributeError):
            event.unexpected = "nope"  # type: ignore[attr-defined]


# ---------------------------------------------------------------------------
# EventBuffer: basic operations
# ---------------------------------------------------------------------------


class TestEventBufferBasic:
    def test_event_buffer_starts_empty(self):
        assert len(EventBuffer(capacity=5)) == 0

    def test_event_buffer_enqueue_appends_in_order(self):
        buf = EventBuffer(capacity=5)
        for name in ("A", "B", "C"):
            assert buf.enqueue(Event(name)) is True
        assert [e.message for e in buf.snapshot()] == ["A", "B", "C"]

    def test_event_buffer_snapshot_does_not_clear(self):
        buf = EventBuffer(capacity=5)
        buf.enqueue(Event("keep"))
        buf.snapshot()
        assert len(buf) == 1

    def test_event_buffer_rejects_non_positive_capacity(self):
        with pytest.raises(ValueError):
            EventBuffer(capacity=0)


# ---------------------------------------------------------------------------
# EventBuffer: drain()
# ---------------------------------------------------------------------------


class TestEventBufferDrain:
    def test_drain_returns_everything_and_empties_buffer(self):
        buf = EventBuffer(capacity=10)
        for i in range(4):
            buf.enqueue(Event(str(i)))
        drained = buf.drain()
        assert [e.message for e in drained] == ["0", "1", "2", "3"]
        assert len(buf) == 0

    def test_drain_on_empty_buffer_returns_empty_list(self):
        assert EventBuffer().drain() == []

    def test_drain_excludes_events_enqueued_afterwards(self):
        """A drained batch is a snapshot; new events go to the next batch."""
        buf = EventBuffer(capacity=10)
        buf.enqueue(Event("before"))
        batch = buf.drain()
        buf.enqueue(Event("after"))
        assert [e.message for e in batch] == ["before"]
        assert [e.message for e in buf.snapshot()] == ["after"]


# ---------------------------------------------------------------------------
# EventBuffer: overflow / eviction
# ---------------------------------------------------------------------------


class TestEventBufferOverflow:
    def test_overflow_evicts_oldest_event(self):
        """Capacity 3, four events: the first is dropped, order is preserved."""
        buf = EventBuffer(capacity=3)
        for i in range(1, 5):
            buf.enqueue(Event(f"Event{i}"))
        assert [e.message for e in buf.drain()] == ["Event2", "Event3", "Event4"]

    def test_overflow_length_never_exceeds_capacity(self):
        buf = EventBuffer(capacity=5)
        for i in range(50):
            buf.enqueue(Event(str(i)))
            assert len(buf) <= 5
        assert len(buf) == 5

    def test_overflow_skips_non_ordinary_events_when_evicting(self):
        """Eviction picks the first *ordinary* event, scanning from the head."""
        buf = EventBuffer(capacity=3)
        buf.enqueue(Event("err", error_type="ValueError"))
        buf.enqueue(Event("ordinary-1"))
        buf.enqueue(Event("ordinary-2"))
        buf.enqueue(Event("ordinary-3"))
        assert [e.message for e in buf.snapshot()] == ["err", "ordinary-2", "ordinary-3"]

    def test_overflow_without_ordinary_events_drops_incoming(self):
        buf = EventBuffer(capacity=2)
        buf.enqueue(Event("e1", error_type="Error"))
        buf.enqueue(Event("e2", error_type="Error"))
        assert buf.enqueue(Event("late")) is False
        assert [e.message for e in buf.snapshot()] == ["e1", "e2"]
