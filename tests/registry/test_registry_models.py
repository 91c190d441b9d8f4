"""Tests for registry data models and snapshots."""

import pytest
from datetime import datetime, timezone

from garden_app.errors import InvalidConfiguration
from garden_app.registry import (
    EventType, PlotEvent, PlotRegistry, PlotState, PlotView, RegistrySnapshot
)
from garden_app.utils.identity import NULL_ADDRESS


class TestPlotEvent:
    """Test PlotEvent dataclass."""

    def test_claimed_event_to_dict(self):
        """Test the wire shape of a PlotClaimed event."""
        ts = datetime(2023, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        event = PlotEvent(sequence=3, event_type=EventType.PLOT_CLAIMED,
                          plot=4, owner="0xa1", timestamp=ts)

        assert event.to_dict() == {
            "sequence": 3,
            "event_type": "PlotClaimed",
            "plot": 4,
            "new_owner": "0xa1",
            "timestamp": "2023-01-01T12:00:00+00:00",
        }
        assert event.new_owner == "0xa1"
        assert event.previous_owner is None

    def test_reset_event_to_dict(self):
        """Test that PlotReset names the previous owner."""
        event = PlotEvent(sequence=1, event_type=EventType.PLOT_RESET, plot=2, owner="0xa1")

        data = event.to_dict()

        assert data["event_type"] == "PlotReset"
        assert data["previous_owner"] == "0xa1"
        assert "new_owner" not in data
        assert event.previous_owner == "0xa1"

    def test_from_dict_restores_event(self):
        """Test parsing an event back from its wire shape."""
        ts = datetime(2023, 6, 1, 8, 30, 0, tzinfo=timezone.utc)
        original = PlotEvent(sequence=9, event_type=EventType.PLOT_RESET,
                             plot=0, owner="0xb2", timestamp=ts)

        assert PlotEvent.from_dict(original.to_dict()) == original

    def test_event_is_immutable(self):
        event = PlotEvent(sequence=1, event_type=EventType.PLOT_CLAIMED, plot=0, owner="0xa1")

        with pytest.raises(AttributeError):
            event.plot = 5


class TestPlotView:
    """Test PlotView state derivation."""

    def test_unclaimed_view(self):
        assert PlotView(plot=1).state == PlotState.UNCLAIMED
        assert PlotView(plot=1).owner == NULL_ADDRESS

    def test_owned_view(self):
        assert PlotView(plot=1, owner="0xa1").state == PlotState.OWNED


class TestRegistrySnapshot:
    """Test snapshot consistency, serialization and replay."""

    def make_snapshot(self, **kwargs) -> RegistrySnapshot:
        values = dict(
            manager="0xaa",
            total_plots=10,
            max_plots_per_person=2,
            owners={1: "0xa1", 2: "0xa1", 5: "0xb2"},
            counts={"0xa1": 2, "0xb2": 1},
            last_sequence=3,
        )
        values.update(kwargs)
        return RegistrySnapshot(**values)

    def test_consistent_snapshot(self):
        assert self.make_snapshot().consistency_errors() == []

    def test_count_mismatch_detected(self):
        snapshot = self.make_snapshot(counts={"0xa1": 1, "0xb2": 1})

        assert "owner counts do not match plot ownership" in snapshot.consistency_errors()

    def test_out_of_range_plot_detected(self):
        snapshot = self.make_snapshot(owners={12: "0xa1"}, counts={"0xa1": 1})

        errors = snapshot.consistency_errors()
        assert any("outside" in error for error in errors)

    def test_null_owner_detected(self):
        snapshot = self.make_snapshot(owners={1: NULL_ADDRESS}, counts={NULL_ADDRESS: 1})

        errors = snapshot.consistency_errors()
        assert any("null owner" in error for error in errors)

    def test_dict_round_trip(self):
        """Test that JSON-ready dicts restore an equal snapshot."""
        snapshot = self.make_snapshot()

        data = snapshot.to_dict()

        assert data["owners"] == {"1": "0xa1", "2": "0xa1", "5": "0xb2"}
        assert RegistrySnapshot.from_dict(data) == snapshot

    def test_with_events_replays_claims_transfers_and_resets(self):
        """Test rolling a snapshot forward through later events."""
        snapshot = self.make_snapshot()
        events = [
            PlotEvent(sequence=4, event_type=EventType.PLOT_CLAIMED, plot=1, owner="0xc3"),
            PlotEvent(sequence=5, event_type=EventType.PLOT_RESET, plot=5, owner="0xb2"),
            PlotEvent(sequence=6, event_type=EventType.PLOT_CLAIMED, plot=7, owner="0xb2"),
        ]

        rolled = snapshot.with_events(events)

        assert rolled.owners == {1: "0xc3", 2: "0xa1", 7: "0xb2"}
        assert rolled.counts == {"0xa1": 1, "0xb2": 1, "0xc3": 1}
        assert rolled.last_sequence == 6
        assert rolled.consistency_errors() == []

    def test_with_events_skips_already_applied(self):
        snapshot = self.make_snapshot()
        stale = PlotEvent(sequence=2, event_type=EventType.PLOT_RESET, plot=1, owner="0xa1")

        assert snapshot.with_events([stale]).owners == snapshot.owners


class TestSnapshotRestore:
    """Test PlotRegistry.snapshot / from_snapshot."""

    def test_restore_preserves_state(self, registry, manager, alice, bob):
        """Test that a restored registry answers reads identically."""
        registry.claim_plot(1, alice)
        registry.claim_plot(3, bob)
        registry.change_max_plots_per_person(3, manager)

        restored = PlotRegistry.from_snapshot(registry.snapshot())

        assert restored.manager == manager
        assert restored.max_plots_per_person == 3
        assert restored.get_plot_owner(1) == alice
        assert restored.get_plot_owner(3) == bob
        assert restored.plots_owned(alice) == 1
        assert restored.event_log.last_sequence == 2

    def test_restored_registry_continues_sequence(self, registry, alice, bob):
        registry.claim_plot(1, alice)

        restored = PlotRegistry.from_snapshot(registry.snapshot())
        event = restored.claim_plot(2, bob)

        assert event.sequence == 2

    def test_restore_rejects_inconsistent_snapshot(self):
        snapshot = RegistrySnapshot(
            manager="0xaa", total_plots=10, max_plots_per_person=2,
            owners={1: "0xa1"}, counts={"0xa1": 2},
        )

        with pytest.raises(InvalidConfiguration):
            PlotRegistry.from_snapshot(snapshot)

    def test_snapshot_is_a_copy(self, registry, alice):
        snapshot = registry.snapshot()

        registry.claim_plot(1, alice)

        assert snapshot.owners == {}
        assert snapshot.last_sequence == 0
