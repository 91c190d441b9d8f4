"""
Plot registry module.

Owns plot ownership state and per-owner counts, enforces claim limits and
manager overrides, and records ownership changes in an append-only event
log. Plots move between UNCLAIMED and OWNED(identity) with no terminal state.
"""
from .events import EventLog
from .models import EventType, PlotEvent, PlotState, PlotView, RegistrySnapshot
from .registry import PlotRegistry

__all__ = [
    "EventLog",
    "EventType",
    "PlotEvent",
    "PlotRegistry",
    "PlotState",
    "PlotView",
    "RegistrySnapshot",
]
