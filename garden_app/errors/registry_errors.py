"""
Registry error classifications for rejected calls.

Every rejected call aborts with no state change. The caller may resubmit a
corrected call, so all of these are marked recoverable.
"""

from typing import Any, Dict, Optional


class RegistryError(Exception):
    """Base class for precondition violations reported to the caller."""

    kind = "RegistryError"

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = True


class InvalidConfiguration(RegistryError):
    """Construction or cap parameter violates the positivity constraint."""

    kind = "InvalidConfiguration"

    def __init__(self, message: str, field: Optional[str] = None,
                 value: Any = None, **kwargs):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value
        self.context.setdefault("field", field)
        self.context.setdefault("value", value)


class InvalidPlot(RegistryError):
    """Plot index outside [0, total_plots)."""

    kind = "InvalidPlot"

    def __init__(self, message: str, plot: Any = None,
                 total_plots: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.plot = plot
        self.total_plots = total_plots
        self.context.setdefault("plot", plot)
        self.context.setdefault("total_plots", total_plots)


class PlotNotClaimed(InvalidPlot):
    """Reset attempted on a plot that has no owner."""

    kind = "PlotNotClaimed"


class PlotAlreadyClaimed(RegistryError):
    """Claim attempted on an owned plot."""

    kind = "PlotAlreadyClaimed"

    def __init__(self, message: str, plot: Optional[int] = None,
                 owner: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.plot = plot
        self.owner = owner
        self.context.setdefault("plot", plot)
        self.context.setdefault("owner", owner)


class OwnerLimitReached(RegistryError):
    """Caller or new owner already holds max_plots_per_person plots."""

    kind = "OwnerLimitReached"

    def __init__(self, message: str, owner: Optional[str] = None,
                 owned: Optional[int] = None, limit: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.owner = owner
        self.owned = owned
        self.limit = limit
        self.context.setdefault("owner", owner)
        self.context.setdefault("owned", owned)
        self.context.setdefault("limit", limit)


class NotAuthorized(RegistryError):
    """Caller lacks the manager or owner privilege the action requires."""

    kind = "NotAuthorized"

    def __init__(self, message: str, caller: Optional[str] = None,
                 action: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.caller = caller
        self.action = action
        self.context.setdefault("caller", caller)
        self.context.setdefault("action", action)


class InvalidOwner(RegistryError):
    """Target owner identity is the null address or empty."""

    kind = "InvalidOwner"

    def __init__(self, message: str, owner: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.owner = owner
        self.context.setdefault("owner", owner)
