"""
Error classification system for the plot registry.

Registry errors are rejected calls the caller can correct and resubmit.
System failures are infrastructure problems around the registry.
"""

from .registry_errors import (
    RegistryError,
    InvalidConfiguration,
    InvalidPlot,
    PlotNotClaimed,
    PlotAlreadyClaimed,
    OwnerLimitReached,
    NotAuthorized,
    InvalidOwner,
)
from .system_failures import (
    SystemFailureError,
    PersistenceError,
    DeliveryError,
)

__all__ = [
    # Registry Errors
    "RegistryError",
    "InvalidConfiguration",
    "InvalidPlot",
    "PlotNotClaimed",
    "PlotAlreadyClaimed",
    "OwnerLimitReached",
    "NotAuthorized",
    "InvalidOwner",
    # System Failures
    "SystemFailureError",
    "PersistenceError",
    "DeliveryError",
]
