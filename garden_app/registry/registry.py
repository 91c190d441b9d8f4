"""
Core plot registry logic.

A fixed number of plots, each either unclaimed or owned by exactly one
identity. Every call runs under a single registry lock and checks all of its
preconditions before touching state, so a rejected call leaves nothing
behind. Ownership changes are appended to the event log inside the lock and
handed to subscribers after it is released.
"""

import threading
from typing import Any, Optional

from ..errors import (
    InvalidConfiguration,
    InvalidOwner,
    InvalidPlot,
    NotAuthorized,
    OwnerLimitReached,
    PlotAlreadyClaimed,
    PlotNotClaimed,
)
from ..logging.config import (
    get_access_logger,
    get_registry_logger,
    log_access_decision,
    log_plot_transition,
)
from ..utils.identity import NULL_ADDRESS, is_null_address, normalize_address
from .events import EventLog
from .models import EventType, PlotEvent, PlotView, RegistrySnapshot

registry_logger = get_registry_logger(__name__)
access_logger = get_access_logger(__name__)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class PlotRegistry:
    """Fixed-size registry mapping plot numbers to owner identities."""

    def __init__(
        self,
        total_plots: int,
        max_plots_per_person: int,
        caller: str,
        event_log: Optional[EventLog] = None
    ) -> None:
        if not _is_int(total_plots) or total_plots <= 0:
            raise InvalidConfiguration(
                "total_plots must be a positive integer",
                field="total_plots",
                value=total_plots
            )
        if not _is_int(max_plots_per_person) or max_plots_per_person <= 0:
            raise InvalidConfiguration(
                "max_plots_per_person must be a positive integer",
                field="max_plots_per_person",
                value=max_plots_per_person
            )
        if is_null_address(caller):
            raise InvalidConfiguration(
                "manager identity is required",
                field="manager",
                value=caller
            )

        self._lock = threading.RLock()
        self._manager = normalize_address(caller)
        self._total_plots = total_plots
        self._max_plots_per_person = max_plots_per_person
        self._owners: dict[int, str] = {}
        self._counts: dict[str, int] = {}
        self.event_log = event_log if event_log is not None else EventLog()

        registry_logger.info(
            "Plot registry constructed",
            manager=self._manager,
            total_plots=total_plots,
            max_plots_per_person=max_plots_per_person
        )

    @classmethod
    def from_snapshot(
        cls,
        snapshot: RegistrySnapshot,
        event_log: Optional[EventLog] = None
    ) -> "PlotRegistry":
        """Rebuild a registry from a snapshot, continuing its event sequence."""
        errors = snapshot.consistency_errors()
        if errors:
            raise InvalidConfiguration(
                "Snapshot violates registry invariants",
                field="snapshot",
                value=errors
            )

        if event_log is None:
            event_log = EventLog(start_sequence=snapshot.last_sequence)

        # A cap lowered to 0 after deployment is legal but not at construction
        registry = cls(
            snapshot.total_plots,
            max(snapshot.max_plots_per_person, 1),
            snapshot.manager,
            event_log=event_log
        )
        registry._max_plots_per_person = snapshot.max_plots_per_person
        registry._owners = {plot: normalize_address(owner) for plot, owner in snapshot.owners.items()}
        registry._counts = {normalize_address(owner): count
                            for owner, count in snapshot.counts.items() if count}

        registry_logger.info(
            "Plot registry restored from snapshot",
            claimed_plots=len(registry._owners),
            owners=len(registry._counts),
            last_sequence=snapshot.last_sequence
        )
        return registry

    # Public state

    @property
    def manager(self) -> str:
        return self._manager

    @property
    def total_plots(self) -> int:
        return self._total_plots

    @property
    def max_plots_per_person(self) -> int:
        with self._lock:
            return self._max_plots_per_person

    def plots_owned(self, owner: str) -> int:
        """Number of plots currently held by `owner`."""
        with self._lock:
            return self._counts.get(normalize_address(owner), 0)

    # Read-only operations

    def get_plot_owner(self, plot: int) -> str:
        """Owner of `plot`, or the null address if it is unclaimed."""
        with self._lock:
            self._check_plot(plot)
            return self._owner_of(plot)

    def is_plot_available(self, plot: int) -> bool:
        with self._lock:
            self._check_plot(plot)
            return self._owner_of(plot) == NULL_ADDRESS

    def get_plot(self, plot: int) -> PlotView:
        with self._lock:
            self._check_plot(plot)
            return PlotView(plot=plot, owner=self._owner_of(plot))

    def plots_of(self, owner: str) -> list[int]:
        """Plots held by `owner`, in ascending order."""
        owner = normalize_address(owner)
        with self._lock:
            return sorted(plot for plot, holder in self._owners.items() if holder == owner)

    def available_plots(self) -> list[int]:
        with self._lock:
            return [plot for plot in range(self._total_plots) if plot not in self._owners]

    # Mutating operations

    def claim_plot(self, plot: int, caller: str) -> PlotEvent:
        """
        Claim an unclaimed plot for the caller.

        Raises:
            InvalidPlot: plot outside [0, total_plots)
            PlotAlreadyClaimed: plot already has an owner
            OwnerLimitReached: caller already holds max_plots_per_person plots
        """
        caller = self._require_caller(caller, "claim_plot")

        with self._lock:
            self._check_plot(plot)

            current = self._owner_of(plot)
            if current != NULL_ADDRESS:
                raise PlotAlreadyClaimed(
                    f"Plot {plot} is already claimed",
                    plot=plot,
                    owner=current
                )

            self._check_limit(caller)

            self._owners[plot] = caller
            self._counts[caller] = self._counts.get(caller, 0) + 1
            event = self.event_log.append(EventType.PLOT_CLAIMED, plot, caller)

            log_plot_transition(
                registry_logger,
                plot=plot,
                from_owner=NULL_ADDRESS,
                to_owner=caller,
                trigger="claim_plot",
                context={"owned": self._counts[caller], "sequence": event.sequence}
            )

        self.event_log.dispatch()
        return event

    def reset_plot(self, plot: int, caller: str) -> PlotEvent:
        """
        Return a plot to unclaimed (manager only).

        Raises:
            NotAuthorized: caller is not the manager
            InvalidPlot: plot outside [0, total_plots)
            PlotNotClaimed: plot has no owner to remove
        """
        caller = self._require_caller(caller, "reset_plot")

        with self._lock:
            self._require_manager(caller, "reset_plot")
            self._check_plot(plot)

            previous = self._owner_of(plot)
            if previous == NULL_ADDRESS:
                raise PlotNotClaimed(
                    f"Plot {plot} is not claimed",
                    plot=plot,
                    total_plots=self._total_plots
                )

            self._decrement(previous)
            del self._owners[plot]
            event = self.event_log.append(EventType.PLOT_RESET, plot, previous)

            log_plot_transition(
                registry_logger,
                plot=plot,
                from_owner=previous,
                to_owner=NULL_ADDRESS,
                trigger="reset_plot",
                context={"previous_owned": self._counts.get(previous, 0),
                         "sequence": event.sequence}
            )

        self.event_log.dispatch()
        return event

    def change_max_plots_per_person(self, new_max: int, caller: str) -> None:
        """
        Set the per-owner cap (manager only).

        Owners already above the new cap keep their plots; they just cannot
        acquire more until they drop below it. A cap of 0 freezes new claims
        and transfers.
        """
        caller = self._require_caller(caller, "change_max_plots_per_person")

        with self._lock:
            self._require_manager(caller, "change_max_plots_per_person")

            if not _is_int(new_max) or new_max < 0:
                raise InvalidConfiguration(
                    "max_plots_per_person must be a non-negative integer",
                    field="max_plots_per_person",
                    value=new_max
                )

            old_max = self._max_plots_per_person
            self._max_plots_per_person = new_max
            over_limit = sorted(owner for owner, count in self._counts.items() if count > new_max)

            registry_logger.info(
                "Max plots per person changed",
                old_max=old_max,
                new_max=new_max,
                grandfathered_owners=over_limit
            )

    def transfer_plot(self, plot: int, new_owner: str, caller: str) -> PlotEvent:
        """
        Move a plot to a new owner (current owner or manager).

        Transferring an unclaimed plot is only possible for the manager and
        acts as a direct assignment.

        Raises:
            NotAuthorized: caller is neither the plot's owner nor the manager
            InvalidPlot: plot outside [0, total_plots)
            InvalidOwner: new_owner is the null address
            OwnerLimitReached: new_owner already holds max_plots_per_person plots
        """
        caller = self._require_caller(caller, "transfer_plot")
        target = normalize_address(new_owner)

        with self._lock:
            previous = self._owner_of(plot)
            is_owner = previous != NULL_ADDRESS and caller == previous
            if not is_owner:
                self._require_manager(
                    caller,
                    "transfer_plot",
                    denied_message="Only the plot owner or the manager can transfer this plot"
                )
            self._check_plot(plot)

            if is_null_address(target):
                raise InvalidOwner(
                    "Cannot transfer a plot to the null address",
                    owner=new_owner
                )

            self._check_limit(target)

            if previous != NULL_ADDRESS:
                self._decrement(previous)
            self._counts[target] = self._counts.get(target, 0) + 1
            self._owners[plot] = target
            event = self.event_log.append(EventType.PLOT_CLAIMED, plot, target)

            log_plot_transition(
                registry_logger,
                plot=plot,
                from_owner=previous,
                to_owner=target,
                trigger="transfer_plot",
                context={"caller": caller, "by_manager": not is_owner,
                         "sequence": event.sequence}
            )

        self.event_log.dispatch()
        return event

    # Snapshot

    def snapshot(self) -> RegistrySnapshot:
        with self._lock:
            return RegistrySnapshot(
                manager=self._manager,
                total_plots=self._total_plots,
                max_plots_per_person=self._max_plots_per_person,
                owners=dict(self._owners),
                counts=dict(self._counts),
                last_sequence=self.event_log.last_sequence,
            )

    # Internal checks; callers hold the lock

    def _owner_of(self, plot: Any) -> str:
        if not _is_int(plot):
            return NULL_ADDRESS
        return self._owners.get(plot, NULL_ADDRESS)

    def _check_plot(self, plot: Any) -> None:
        if not _is_int(plot) or not 0 <= plot < self._total_plots:
            raise InvalidPlot(
                f"Invalid plot number: {plot!r}",
                plot=plot,
                total_plots=self._total_plots
            )

    def _check_limit(self, owner: str) -> None:
        owned = self._counts.get(owner, 0)
        if owned >= self._max_plots_per_person:
            raise OwnerLimitReached(
                "You have reached your plot limit",
                owner=owner,
                owned=owned,
                limit=self._max_plots_per_person
            )

    def _decrement(self, owner: str) -> None:
        remaining = self._counts.get(owner, 0) - 1
        if remaining > 0:
            self._counts[owner] = remaining
        else:
            self._counts.pop(owner, None)

    def _require_caller(self, caller: str, action: str) -> str:
        if is_null_address(caller):
            log_access_decision(
                access_logger,
                action=action,
                caller=str(caller),
                granted=False,
                reason="missing caller identity"
            )
            raise NotAuthorized(
                "Caller identity is required",
                caller=caller,
                action=action
            )
        return normalize_address(caller)

    def _require_manager(
        self,
        caller: str,
        action: str,
        denied_message: str = "Only the manager can perform this action"
    ) -> None:
        if caller != self._manager:
            log_access_decision(
                access_logger,
                action=action,
                caller=caller,
                granted=False,
                reason="caller is not the manager"
            )
            raise NotAuthorized(
                denied_message,
                caller=caller,
                action=action
            )

        log_access_decision(
            access_logger,
            action=action,
            caller=caller,
            granted=True,
            reason="caller is the manager"
        )
