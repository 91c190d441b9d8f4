"""
Append-only event log for plot ownership notifications.

The registry appends while holding its own lock; subscribers are called
later from dispatch(), outside that lock, strictly in sequence order.
"""

import threading
from collections import deque
from typing import Callable, Optional

import structlog

from .models import EventType, PlotEvent

logger = structlog.get_logger(__name__)

EventSubscriber = Callable[[PlotEvent], None]


class EventLog:
    """Ordered, append-only record of PlotClaimed / PlotReset events."""

    def __init__(self, start_sequence: int = 0):
        self.logger = logger
        self._events: list[PlotEvent] = []
        self._pending: deque[PlotEvent] = deque()
        self._subscribers: list[EventSubscriber] = []
        self._last_sequence = start_sequence
        self._lock = threading.Lock()
        self._dispatch_lock = threading.Lock()
        self._dispatching = threading.local()
        self._failed_notifications = 0

    @property
    def last_sequence(self) -> int:
        with self._lock:
            return self._last_sequence

    @property
    def failed_notifications(self) -> int:
        with self._lock:
            return self._failed_notifications

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def append(self, event_type: EventType, plot: int, owner: str) -> PlotEvent:
        """Record a new event and queue it for subscribers."""
        with self._lock:
            self._last_sequence += 1
            event = PlotEvent(
                sequence=self._last_sequence,
                event_type=event_type,
                plot=plot,
                owner=owner,
            )
            self._events.append(event)
            self._pending.append(event)

        self.logger.debug(
            "Event appended",
            sequence=event.sequence,
            event_type=event.event_type.value,
            plot=plot,
            owner=owner
        )
        return event

    def events_since(self, sequence: int = 0, limit: Optional[int] = None) -> list[PlotEvent]:
        """Get events with a sequence number strictly greater than `sequence`."""
        with self._lock:
            events = [e for e in self._events if e.sequence > sequence]
        if limit is not None:
            events = events[:limit]
        return events

    def events_for_plot(self, plot: int) -> list[PlotEvent]:
        with self._lock:
            return [e for e in self._events if e.plot == plot]

    def subscribe(self, callback: EventSubscriber) -> None:
        """Register a callback invoked once per event, in order."""
        with self._lock:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: EventSubscriber) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def dispatch(self) -> int:
        """
        Deliver queued events to subscribers.

        A subscriber that mutates the registry appends more events and calls
        back in here on the same thread. That nested call returns at once;
        the outer loop picks the new events up in sequence order.

        Returns:
            Number of events drained from the queue by this call
        """
        if getattr(self._dispatching, "active", False):
            return 0

        with self._dispatch_lock:
            self._dispatching.active = True
            try:
                return self._drain()
            finally:
                self._dispatching.active = False

    def _drain(self) -> int:
        delivered = 0
        while True:
            with self._lock:
                if not self._pending:
                    return delivered
                event = self._pending.popleft()
                subscribers = list(self._subscribers)

            for callback in subscribers:
                try:
                    callback(event)
                except Exception as e:
                    # State is already committed; a failing observer must not undo it
                    with self._lock:
                        self._failed_notifications += 1
                    self.logger.error(
                        "Event subscriber failed",
                        sequence=event.sequence,
                        event_type=event.event_type.value,
                        subscriber=getattr(callback, "__qualname__", repr(callback)),
                        error_type=type(e).__name__,
                        error=str(e)
                    )
            delivered += 1
