"""
Registry service coordinator.

Deploys a plot registry from configuration and wires it to the audit trail
store and event delivery destinations. Also exposes the named call surface
(claimPlot, resetPlot, ...) used by external clients.
"""

import threading
from pathlib import Path
from typing import Any, Callable, Optional, Union

import structlog

from .config.event_delivery import (
    DeliveryMethod,
    EventDeliveryConfig,
    get_default_delivery_config,
)
from .config.loader import ConfigLoader
from .config.validation import ConfigValidator
from .delivery.base import BaseEventDelivery, DeliveryStatus
from .delivery.file_delivery import FileEventDelivery
from .delivery.stdout_delivery import StdoutEventDelivery
from .errors import (
    DeliveryError,
    InvalidConfiguration,
    PersistenceError,
    RegistryError,
    SystemFailureError,
)
from .persistence.event_store import EventStore
from .registry import PlotEvent, PlotRegistry

logger = structlog.get_logger(__name__)


class GardenService:
    """
    Interface boundary between external callers and the plot registry.

    Every accepted ownership change is written to the event store (when
    enabled) and handed to each configured delivery destination, in event
    sequence order.
    """

    def __init__(
        self,
        registry: PlotRegistry,
        event_store: Optional[EventStore] = None,
        delivery_config: Optional[EventDeliveryConfig] = None,
        snapshot_on_write: bool = False
    ) -> None:
        self.logger = logger
        self.registry = registry
        self.event_store = event_store
        self.delivery_config = delivery_config or get_default_delivery_config()
        self.snapshot_on_write = snapshot_on_write
        self.delivery_handlers: dict[str, BaseEventDelivery] = {}
        self._unstored: set[int] = set()
        self._store_lock = threading.Lock()

        self._init_delivery_handlers()
        self.registry.event_log.subscribe(self._on_event)

        self._calls: dict[str, Callable[[dict[str, Any], str], Any]] = {
            "claimPlot": lambda p, caller: self.claim_plot(p["plot"], caller),
            "getPlotOwner": lambda p, caller: self.registry.get_plot_owner(p["plot"]),
            "resetPlot": lambda p, caller: self.reset_plot(p["plot"], caller),
            "changeMaxPlotsPerPerson": lambda p, caller: self.change_max_plots_per_person(
                p["newMax"], caller),
            "transferPlot": lambda p, caller: self.transfer_plot(p["plot"], p["newOwner"], caller),
            "isPlotAvailable": lambda p, caller: self.registry.is_plot_available(p["plot"]),
            "manager": lambda p, caller: self.registry.manager,
            "totalPlots": lambda p, caller: self.registry.total_plots,
            "maxPlotsPerPerson": lambda p, caller: self.registry.max_plots_per_person,
            "plotsOwned": lambda p, caller: self.registry.plots_owned(p["owner"]),
        }

        self.logger.info(
            "Garden service initialized",
            manager=registry.manager,
            total_plots=registry.total_plots,
            event_store=str(event_store.db_path) if event_store else None,
            delivery_destinations=list(self.delivery_handlers)
        )

    @classmethod
    def deploy(
        cls,
        manager: Optional[str] = None,
        config_dir: Optional[Union[str, Path]] = None,
        overrides: Optional[dict[str, Any]] = None,
        delivery_config: Optional[EventDeliveryConfig] = None
    ) -> "GardenService":
        """
        Deploy a fresh registry from merged configuration.

        Args:
            manager: Deploying identity; falls back to the configured manager
            config_dir: Directory holding garden.yaml
            overrides: Call-site configuration overrides
            delivery_config: Event delivery destinations; defaults to the
                "delivery" section of the merged configuration

        Raises:
            InvalidConfiguration: merged configuration failed validation
        """
        loader = ConfigLoader.create(Path(config_dir) if config_dir else None)
        config = loader.merge_config(overrides)

        errors = ConfigValidator.validate_config(config)
        if errors:
            first = errors[0]
            logger.error(
                "Deployment configuration invalid",
                errors=[f"{err.field}: {err.message} (got: {err.value})" for err in errors]
            )
            raise InvalidConfiguration(
                f"{first.field}: {first.message}",
                field=first.field,
                value=first.value
            )

        registry_cfg = config["registry"]
        events_cfg = config["events"]

        registry = PlotRegistry(
            registry_cfg["total_plots"],
            registry_cfg["max_plots_per_person"],
            manager or config.get("manager")
        )

        event_store = EventStore(events_cfg["store_path"]) if events_cfg["store_enabled"] else None
        if delivery_config is None:
            delivery_config = EventDeliveryConfig.from_dict(config.get("delivery"))

        service = cls(
            registry,
            event_store=event_store,
            delivery_config=delivery_config,
            snapshot_on_write=events_cfg["snapshot_on_write"]
        )
        if event_store is not None:
            event_store.save_snapshot(registry.snapshot())
        return service

    @classmethod
    def restore(
        cls,
        db_path: Union[str, Path],
        delivery_config: Optional[EventDeliveryConfig] = None,
        snapshot_on_write: bool = False
    ) -> "GardenService":
        """
        Rebuild a service from the latest stored snapshot plus later events.

        Raises:
            PersistenceError: no snapshot has been stored yet, or the stored
                events after it skip a sequence number
        """
        event_store = EventStore(str(db_path))
        snapshot = event_store.load_latest_snapshot()
        if snapshot is None:
            raise PersistenceError(
                "No registry snapshot available to restore from",
                operation="restore",
                target=str(db_path)
            )

        later = [stored.to_event() for stored in
                 event_store.get_events_since(snapshot.last_sequence, limit=-1)]
        expected = range(snapshot.last_sequence + 1, snapshot.last_sequence + 1 + len(later))
        if [event.sequence for event in later] != list(expected):
            missing = sorted(set(range(snapshot.last_sequence + 1, later[-1].sequence))
                             - {event.sequence for event in later})
            raise PersistenceError(
                "Stored event stream has gaps; refusing to restore a partial history",
                operation="restore",
                target=str(db_path),
                context={"missing_sequences": missing}
            )
        snapshot = snapshot.with_events(later)

        registry = PlotRegistry.from_snapshot(snapshot)

        logger.info(
            "Garden service restored",
            db_path=str(db_path),
            replayed_events=len(later),
            last_sequence=snapshot.last_sequence
        )
        return cls(
            registry,
            event_store=event_store,
            delivery_config=delivery_config,
            snapshot_on_write=snapshot_on_write
        )

    # Typed operations

    def claim_plot(self, plot: int, caller: str) -> PlotEvent:
        return self._require_stored(self.registry.claim_plot(plot, caller))

    def reset_plot(self, plot: int, caller: str) -> PlotEvent:
        return self._require_stored(self.registry.reset_plot(plot, caller))

    def transfer_plot(self, plot: int, new_owner: str, caller: str) -> PlotEvent:
        return self._require_stored(self.registry.transfer_plot(plot, new_owner, caller))

    @property
    def unstored_sequences(self) -> list[int]:
        """Committed events that have not reached the event store yet."""
        with self._store_lock:
            return sorted(self._unstored)

    def _require_stored(self, event: PlotEvent) -> PlotEvent:
        with self._store_lock:
            missing = event.sequence in self._unstored
        if missing:
            raise PersistenceError(
                f"Event {event.sequence} was applied but could not be stored",
                operation="store_event",
                target=str(self.event_store.db_path),
                context={"sequence": event.sequence, "committed": True}
            )
        return event

    def change_max_plots_per_person(self, new_max: int, caller: str) -> None:
        self.registry.change_max_plots_per_person(new_max, caller)
        # Cap changes emit no event, so the store only sees them through a snapshot
        if self.event_store is not None:
            self.event_store.save_snapshot(self.registry.snapshot())

    # Named call surface

    def handle_call(
        self,
        method: str,
        params: Optional[dict[str, Any]] = None,
        caller: Optional[str] = None
    ) -> dict[str, Any]:
        """
        Dispatch a named call from an external client.

        Args:
            method: Interface name, e.g. "claimPlot" or "getPlotOwner"
            params: Call arguments keyed by interface parameter name
            caller: Authenticated caller identity

        Returns:
            {"ok": True, "result": ...} with an "event" entry for ownership
            changes, or {"ok": False, "error": {"kind", "message", "context"}}
        """
        handler = self._calls.get(method)
        if handler is None:
            self.logger.warning("Unknown method called", method=method, caller=caller)
            return self._error_response("UnknownMethod", f"Unknown method: {method}",
                                        {"method": method})

        try:
            result = handler(params or {}, caller)

        except KeyError as e:
            self.logger.warning("Call missing parameter", method=method, parameter=str(e))
            return self._error_response("InvalidParams", f"Missing parameter: {e.args[0]}",
                                        {"method": method, "parameter": e.args[0]})

        except RegistryError as e:
            self.logger.warning(
                "Call rejected",
                method=method,
                caller=caller,
                error_type=e.kind,
                error=str(e),
                context=e.context
            )
            return self._error_response(e.kind, str(e), e.context)

        except SystemFailureError as e:
            self.logger.error(
                "Call failed",
                method=method,
                caller=caller,
                error_type=e.kind,
                error=str(e)
            )
            return self._error_response(e.kind, str(e), e.context)

        if isinstance(result, PlotEvent):
            return {"ok": True, "result": None, "event": result.to_dict()}
        return {"ok": True, "result": result}

    def _error_response(self, kind: str, message: str, context: dict[str, Any]) -> dict[str, Any]:
        return {"ok": False, "error": {"kind": kind, "message": message, "context": context}}

    # Observers

    def _init_delivery_handlers(self) -> None:
        """Initialize delivery handlers based on configuration."""
        if not self.delivery_config.enabled:
            return

        for destination in self.delivery_config.destinations:
            if not destination.enabled:
                continue

            if destination.method == DeliveryMethod.FILE_OUTPUT:
                handler = FileEventDelivery(destination.name, destination.config)
            elif destination.method == DeliveryMethod.STDOUT:
                handler = StdoutEventDelivery(destination.name, destination.config)
            else:
                self.logger.warning("Unsupported delivery method", method=str(destination.method))
                continue

            self.delivery_handlers[destination.name] = handler
            self.logger.info("Initialized delivery handler", delivery_name=destination.name)

    def _on_event(self, event: PlotEvent) -> None:
        """Persist and deliver one accepted event."""
        store_error: Optional[PersistenceError] = None
        if self.event_store is not None:
            try:
                self._store(event)
                if self.snapshot_on_write:
                    self.event_store.save_snapshot(self.registry.snapshot())
            except PersistenceError as e:
                store_error = e

        payload = event.to_dict()
        failed = []

        for destination in self.delivery_config.destinations:
            handler = self.delivery_handlers.get(destination.name)
            if handler is None or not destination.accepts(payload):
                continue

            results = handler.deliver_with_retry(
                [payload],
                max_retries=self.delivery_config.failure_retry_attempts,
                retry_delay=self.delivery_config.failure_retry_delay_seconds
            )
            if any(result.status != DeliveryStatus.SUCCESS for result in results):
                failed.append(destination.name)

        if store_error is not None:
            raise store_error
        if failed:
            raise DeliveryError(
                f"Event {event.sequence} not delivered to: {', '.join(failed)}",
                delivery_method=",".join(failed),
                event_sequence=event.sequence
            )

    def _store(self, event: PlotEvent) -> None:
        """
        Write an event to the store, back-filling earlier failed writes first.

        A failed write is remembered by sequence number and retried before the
        next event, so the stored stream stays gap-free once the store
        recovers.
        """
        with self._store_lock:
            try:
                self._backfill()
                self.event_store.store_event(event)
            except PersistenceError:
                self._unstored.add(event.sequence)
                self.logger.error(
                    "Event applied but not stored",
                    sequence=event.sequence,
                    unstored=sorted(self._unstored)
                )
                raise

    def _backfill(self) -> None:
        # Caller holds _store_lock
        if not self._unstored:
            return
        backlog = [e for e in self.registry.event_log.events_since(min(self._unstored) - 1)
                   if e.sequence in self._unstored]
        for event in backlog:
            self.event_store.store_event(event)
            self._unstored.discard(event.sequence)
        self.logger.info("Back-filled unstored events", sequences=[e.sequence for e in backlog])

    def flush_event_store(self) -> int:
        """
        Retry every committed event that failed to reach the store.

        Returns:
            Number of events still unstored (0 once the store has caught up)

        Raises:
            PersistenceError: the store is still failing
        """
        if self.event_store is None:
            return 0
        with self._store_lock:
            self._backfill()
            return len(self._unstored)

    def get_delivery_stats(self) -> dict[str, dict[str, Any]]:
        return {name: handler.get_stats() for name, handler in self.delivery_handlers.items()}
