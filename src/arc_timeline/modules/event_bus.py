"""Synchronous event bus for timeline notifications.

Keeps a ring buffer of ``TimelineEvent`` objects and calls subscribers
in registration order, on the caller's thread, before ``emit`` returns.

Usage::

    from arc_timeline.modules.event_bus import TimelineEventBus

    bus = TimelineEventBus()
    bus.subscribe(lambda event: print(event.event_type))

    # Polling
    events = bus.get_events(since_cycle=42)
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Any, Callable

from arc_timeline.schemas import TimelineEvent, TimelineEventType
from arc_timeline.utils.config import DEFAULT_MAX_EVENT_HISTORY

logger = logging.getLogger(__name__)

Subscriber = Callable[[TimelineEvent], None]


class TimelineEventBus:
    """Ring buffer of timeline events with synchronous fan-out.

    Parameters
    ----------
    max_events : int
        Maximum events retained in memory (oldest are dropped).
    """

    def __init__(self, max_events: int = DEFAULT_MAX_EVENT_HISTORY) -> None:
        self._lock = threading.Lock()
        self._events: deque[TimelineEvent] = deque(maxlen=max_events)
        self._subscribers: list[Subscriber] = []

    # ------------------------------------------------------------------
    # Emit
    # ------------------------------------------------------------------

    def emit(self, event: TimelineEvent) -> None:
        """Append an event to the buffer and notify subscribers."""
        with self._lock:
            self._events.append(event)
            subscribers = list(self._subscribers)

        logger.debug(
            "TimelineEvent: type=%s cycle=%d segment=%s",
            event.event_type.value,
            event.cycle,
            event.segment_id,
        )

        # Outside the lock so a subscriber may read the buffer
        for cb in subscribers:
            try:
                cb(event)
            except Exception as e:
                logger.warning("Event subscriber error: %s", e)

    def emit_simple(
        self,
        event_type: TimelineEventType,
        cycle: int,
        segment_id: str | None = None,
        payload: dict[str, Any] | None = None,
    ) -> TimelineEvent:
        """Convenience: build and emit a TimelineEvent in one call."""
        event = TimelineEvent(
            event_type=event_type,
            cycle=cycle,
            segment_id=segment_id,
            payload=payload or {},
        )
        self.emit(event)
        return event

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    def get_events(self, since_cycle: int = 0) -> list[TimelineEvent]:
        """Return all retained events with cycle >= since_cycle."""
        with self._lock:
            return [e for e in self._events if e.cycle >= since_cycle]

    def get_latest(self, n: int = 10) -> list[TimelineEvent]:
        """Return the last N events."""
        with self._lock:
            items = list(self._events)
        return items[-n:]

    def get_events_by_type(
        self,
        event_type: TimelineEventType,
        limit: int = 50,
    ) -> list[TimelineEvent]:
        """Return recent events of a specific type."""
        with self._lock:
            matching = [e for e in self._events if e.event_type == event_type]
        return matching[-limit:]

    @property
    def event_count(self) -> int:
        with self._lock:
            return len(self._events)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, callback: Subscriber) -> None:
        """Register a callback invoked on every emit."""
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        """Remove a previously registered callback."""
        try:
            self._subscribers.remove(callback)
        except ValueError:
            pass

    # ------------------------------------------------------------------
    # Utilities
    # ------------------------------------------------------------------

    def clear(self) -> None:
        """Clear all retained events."""
        with self._lock:
            self._events.clear()

    def snapshot(self) -> list[dict[str, Any]]:
        """Return all retained events as serialisable dicts."""
        with self._lock:
            return [e.model_dump(mode="json") for e in self._events]
