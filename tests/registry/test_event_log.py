"""Tests for the append-only event log and subscriber dispatch."""

import threading
from unittest.mock import Mock

from garden_app.registry import EventLog, EventType


class TestEventLog:
    """Test EventLog ordering and polling."""

    def test_sequence_numbers_increase(self):
        log = EventLog()

        first = log.append(EventType.PLOT_CLAIMED, 1, "0xa1")
        second = log.append(EventType.PLOT_RESET, 1, "0xa1")

        assert (first.sequence, second.sequence) == (1, 2)
        assert log.last_sequence == 2
        assert len(log) == 2

    def test_start_sequence(self):
        log = EventLog(start_sequence=41)

        assert log.append(EventType.PLOT_CLAIMED, 0, "0xa1").sequence == 42

    def test_events_since(self):
        log = EventLog()
        for plot in range(5):
            log.append(EventType.PLOT_CLAIMED, plot, "0xa1")

        assert [e.sequence for e in log.events_since(2)] == [3, 4, 5]
        assert [e.sequence for e in log.events_since(0, limit=2)] == [1, 2]
        assert log.events_since(5) == []

    def test_events_for_plot(self):
        log = EventLog()
        log.append(EventType.PLOT_CLAIMED, 1, "0xa1")
        log.append(EventType.PLOT_CLAIMED, 2, "0xb2")
        log.append(EventType.PLOT_RESET, 1, "0xa1")

        assert [e.event_type for e in log.events_for_plot(1)] == [
            EventType.PLOT_CLAIMED, EventType.PLOT_RESET
        ]


class TestEventDispatch:
    """Test subscriber notification."""

    def test_subscribers_receive_events_in_order(self, registry, manager, alice):
        received = []
        registry.event_log.subscribe(received.append)

        registry.claim_plot(1, alice)
        registry.claim_plot(2, alice)
        registry.reset_plot(1, manager)

        assert [e.sequence for e in received] == [1, 2, 3]
        assert [e.event_type for e in received] == [
            EventType.PLOT_CLAIMED, EventType.PLOT_CLAIMED, EventType.PLOT_RESET
        ]

    def test_dispatch_drains_queue_once(self):
        log = EventLog()
        callback = Mock()
        log.subscribe(callback)

        log.append(EventType.PLOT_CLAIMED, 1, "0xa1")
        assert log.dispatch() == 1
        assert log.dispatch() == 0
        callback.assert_called_once()

    def test_failing_subscriber_does_not_block_others(self, registry, alice):
        """Test that a failing observer neither undoes state nor starves other observers."""
        failing = Mock(side_effect=RuntimeError("indexer down"))
        healthy = Mock()
        registry.event_log.subscribe(failing)
        registry.event_log.subscribe(healthy)

        registry.claim_plot(1, alice)

        assert registry.get_plot_owner(1) == alice
        healthy.assert_called_once()
        assert registry.event_log.failed_notifications == 1

    def test_unsubscribe(self):
        log = EventLog()
        callback = Mock()
        log.subscribe(callback)
        log.unsubscribe(callback)

        log.append(EventType.PLOT_CLAIMED, 1, "0xa1")
        log.dispatch()

        callback.assert_not_called()

    def test_subscriber_reentering_registry(self, registry, alice, bob):
        """Test that a subscriber mutating the registry neither hangs nor reorders events."""
        received = []

        def follow_up(event):
            received.append(event.sequence)
            if event.plot == 1:
                registry.claim_plot(2, bob)

        registry.event_log.subscribe(follow_up)
        worker = threading.Thread(target=registry.claim_plot, args=(1, alice))
        worker.start()
        worker.join(timeout=5)

        assert not worker.is_alive()
        assert registry.get_plot_owner(2) == bob
        assert received == [1, 2]

    def test_failed_notifications_counted_per_subscriber(self):
        log = EventLog()
        log.subscribe(Mock(side_effect=RuntimeError("first")))
        log.subscribe(Mock(side_effect=RuntimeError("second")))

        log.append(EventType.PLOT_CLAIMED, 1, "0xa1")
        log.dispatch()

        assert log.failed_notifications == 2
