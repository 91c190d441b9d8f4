"""
Registry data models for plot ownership tracking.

This module defines the immutable records the registry hands out: ownership
events for the audit trail and point-in-time snapshots for persistence and
restore.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from ..utils.identity import NULL_ADDRESS
from ..utils.time import format_timestamp, parse_timestamp, utc_now


class PlotState(str, Enum):
    """Per-plot lifecycle states."""
    UNCLAIMED = "unclaimed"
    OWNED = "owned"


class EventType(str, Enum):
    """Notification kinds emitted to external observers."""
    PLOT_CLAIMED = "PlotClaimed"
    PLOT_RESET = "PlotReset"


@dataclass(frozen=True)
class PlotEvent:
    """
    A single entry of the append-only ownership audit trail.

    For PlotClaimed the owner is the new owner (claim or transfer target).
    For PlotReset the owner is the previous owner that was removed.
    """

    sequence: int
    event_type: EventType
    plot: int
    owner: str
    timestamp: datetime = field(default_factory=utc_now)

    @property
    def new_owner(self) -> Optional[str]:
        return self.owner if self.event_type == EventType.PLOT_CLAIMED else None

    @property
    def previous_owner(self) -> Optional[str]:
        return self.owner if self.event_type == EventType.PLOT_RESET else None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the wire shape consumed by indexers."""
        owner_key = "new_owner" if self.event_type == EventType.PLOT_CLAIMED else "previous_owner"
        return {
            "sequence": self.sequence,
            "event_type": self.event_type.value,
            "plot": self.plot,
            owner_key: self.owner,
            "timestamp": format_timestamp(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlotEvent":
        event_type = EventType(data["event_type"])
        owner_key = "new_owner" if event_type == EventType.PLOT_CLAIMED else "previous_owner"
        return cls(
            sequence=int(data["sequence"]),
            event_type=event_type,
            plot=int(data["plot"]),
            owner=data[owner_key],
            timestamp=parse_timestamp(data.get("timestamp")) or utc_now(),
        )


@dataclass(frozen=True)
class PlotView:
    """Read-only view of a single plot."""

    plot: int
    owner: str = NULL_ADDRESS

    @property
    def state(self) -> PlotState:
        return PlotState.UNCLAIMED if self.owner == NULL_ADDRESS else PlotState.OWNED


@dataclass(frozen=True)
class RegistrySnapshot:
    """Point-in-time copy of the complete registry state."""

    manager: str
    total_plots: int
    max_plots_per_person: int
    owners: dict[int, str]              # claimed plots only
    counts: dict[str, int]              # owners with a non-zero count only
    last_sequence: int = 0
    taken_at: datetime = field(default_factory=utc_now)

    def consistency_errors(self) -> list[str]:
        """List every way the snapshot breaks the registry invariants."""
        errors = []

        if self.total_plots <= 0:
            errors.append(f"total_plots must be positive, got {self.total_plots}")
        if self.max_plots_per_person < 0:
            errors.append(f"max_plots_per_person must not be negative, got {self.max_plots_per_person}")

        for plot, owner in self.owners.items():
            if not 0 <= plot < self.total_plots:
                errors.append(f"plot {plot} outside [0, {self.total_plots})")
            if owner == NULL_ADDRESS or not owner:
                errors.append(f"plot {plot} stored with a null owner")

        expected = Counter(self.owners.values())
        actual = {owner: count for owner, count in self.counts.items() if count}
        if dict(expected) != actual:
            errors.append("owner counts do not match plot ownership")

        return errors

    def with_events(self, events: list[PlotEvent]) -> "RegistrySnapshot":
        """
        Roll the snapshot forward by replaying already-accepted events.

        Events at or below last_sequence are skipped. A PlotClaimed event
        moves the plot to its new owner (claim or transfer); a PlotReset
        event returns it to unclaimed.
        """
        owners = dict(self.owners)
        counts = dict(self.counts)
        last_sequence = self.last_sequence

        for event in sorted(events, key=lambda e: e.sequence):
            if event.sequence <= last_sequence:
                continue

            previous = owners.pop(event.plot, None)
            if previous is not None:
                counts[previous] = counts.get(previous, 0) - 1
                if counts[previous] <= 0:
                    del counts[previous]

            if event.event_type == EventType.PLOT_CLAIMED:
                owners[event.plot] = event.owner
                counts[event.owner] = counts.get(event.owner, 0) + 1

            last_sequence = event.sequence

        return RegistrySnapshot(
            manager=self.manager,
            total_plots=self.total_plots,
            max_plots_per_person=self.max_plots_per_person,
            owners=owners,
            counts=counts,
            last_sequence=last_sequence,
            taken_at=self.taken_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "manager": self.manager,
            "total_plots": self.total_plots,
            "max_plots_per_person": self.max_plots_per_person,
            "owners": {str(plot): owner for plot, owner in sorted(self.owners.items())},
            "counts": dict(sorted(self.counts.items())),
            "last_sequence": self.last_sequence,
            "taken_at": format_timestamp(self.taken_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RegistrySnapshot":
        return cls(
            manager=data["manager"],
            total_plots=int(data["total_plots"]),
            max_plots_per_person=int(data["max_plots_per_person"]),
            owners={int(plot): owner for plot, owner in data.get("owners", {}).items()},
            counts={owner: int(count) for owner, count in data.get("counts", {}).items()},
            last_sequence=int(data.get("last_sequence", 0)),
            taken_at=parse_timestamp(data.get("taken_at")) or utc_now(),
        )
