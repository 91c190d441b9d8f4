"""Default configuration parameters for the garden plot registry."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RegistryParams:
    """Deployment-time registry parameters."""
    total_plots: int = 100                # Fixed plot count, never resized
    max_plots_per_person: int = 5         # Initial per-owner cap


@dataclass(frozen=True)
class EventLogParams:
    """Audit trail persistence parameters."""
    store_enabled: bool = False
    store_path: str = "garden_events.db"
    snapshot_on_write: bool = False       # Persist a snapshot after every mutation


@dataclass(frozen=True)
class LoggingParams:
    """Logging parameters."""
    level: str = "INFO"
    format_json: bool = False
    include_caller: bool = False


@dataclass(frozen=True)
class DefaultConfig:
    """Complete default configuration."""
    registry: RegistryParams
    events: EventLogParams
    logging: LoggingParams
    manager: Optional[str] = None         # Deploying identity, supplied by tooling


def get_default_config() -> DefaultConfig:
    """Get the default configuration instance."""
    return DefaultConfig(
        registry=RegistryParams(),
        events=EventLogParams(),
        logging=LoggingParams(),
    )
