"""
System failure error classifications for unrecoverable errors.

These exceptions represent infrastructure failures around the registry
(audit storage, event delivery) rather than rejected calls.
"""

from typing import Optional, Dict, Any


class SystemFailureError(Exception):
    """Base class for unrecoverable system failures."""

    kind = "SystemFailure"

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = False


class PersistenceError(SystemFailureError):
    """Database or file system persistence failures."""

    kind = "PersistenceError"

    def __init__(self, message: str, operation: Optional[str] = None,
                 target: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.operation = operation
        self.target = target


class DeliveryError(SystemFailureError):
    """Event delivery system failures."""

    kind = "DeliveryError"

    def __init__(self, message: str, delivery_method: Optional[str] = None,
                 event_sequence: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.delivery_method = delivery_method
        self.event_sequence = event_sequence
