"""Configuration for handing plot events to external observers."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union


class DeliveryMethod(Enum):
    FILE_OUTPUT = "file_output"
    STDOUT = "stdout"


@dataclass(frozen=True)
class FileDeliveryConfig:
    output_path: str
    format: str = "jsonl"  # json, jsonl
    append_mode: bool = True
    max_file_size_mb: Optional[int] = None
    rotation_enabled: bool = False
    create_dirs: bool = True


@dataclass(frozen=True)
class StdoutDeliveryConfig:
    format: str = "json"  # json, pretty
    include_timestamp: bool = True


@dataclass(frozen=True)
class DeliveryDestination:
    """
    One observer of the event stream.

    Empty filters accept everything; otherwise an event must match every
    filter that is set.
    """
    name: str
    method: DeliveryMethod
    config: Union[FileDeliveryConfig, StdoutDeliveryConfig]
    enabled: bool = True
    event_types_filter: Optional[list[str]] = None
    plots_filter: Optional[list[int]] = None

    def accepts(self, event: dict[str, Any]) -> bool:
        if self.event_types_filter and event.get("event_type") not in self.event_types_filter:
            return False
        if self.plots_filter and event.get("plot") not in self.plots_filter:
            return False
        return True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DeliveryDestination":
        """
        Build a destination from a garden.yaml entry.

        Example:
            {"name": "indexer", "method": "file_output",
             "output_path": "events.jsonl", "event_types": ["PlotClaimed"]}
        """
        settings = dict(data)
        name = settings.pop("name")
        method = DeliveryMethod(settings.pop("method"))
        enabled = settings.pop("enabled", True)
        event_types = settings.pop("event_types", None)
        plots = settings.pop("plots", None)

        config_class = FileDeliveryConfig if method == DeliveryMethod.FILE_OUTPUT \
            else StdoutDeliveryConfig

        return cls(
            name=name,
            method=method,
            config=config_class(**settings),
            enabled=enabled,
            event_types_filter=event_types,
            plots_filter=plots,
        )


@dataclass(frozen=True)
class EventDeliveryConfig:
    destinations: list[DeliveryDestination] = field(default_factory=list)
    enabled: bool = True
    failure_retry_attempts: int = 3
    failure_retry_delay_seconds: float = 1

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "EventDeliveryConfig":
        """Build delivery settings from the "delivery" section of garden.yaml."""
        data = data or {}
        return cls(
            destinations=[DeliveryDestination.from_dict(d) for d in data.get("destinations", [])],
            enabled=data.get("enabled", True),
            failure_retry_attempts=data.get("failure_retry_attempts", 3),
            failure_retry_delay_seconds=data.get("failure_retry_delay_seconds", 1),
        )


def get_default_delivery_config() -> EventDeliveryConfig:
    """No observers: events stay in the in-memory log and the optional store."""
    return EventDeliveryConfig()


def create_stdout_destination(
    name: str = "stdout",
    format: str = "json",
    enabled: bool = True,
    **kwargs
) -> DeliveryDestination:
    return DeliveryDestination(
        name=name,
        method=DeliveryMethod.STDOUT,
        config=StdoutDeliveryConfig(format=format, **kwargs),
        enabled=enabled
    )


def create_file_destination(
    name: str,
    output_path: str,
    format: str = "jsonl",
    enabled: bool = True,
    **kwargs
) -> DeliveryDestination:
    return DeliveryDestination(
        name=name,
        method=DeliveryMethod.FILE_OUTPUT,
        config=FileDeliveryConfig(output_path=output_path, format=format, **kwargs),
        enabled=enabled
    )
