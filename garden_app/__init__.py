"""
Garden App - Community Garden Plot Registry

A registry that maps a fixed set of numbered garden plots to owner
identities. Enforces per-owner allocation limits and manager-only
administrative overrides, and emits an ordered audit trail of ownership
events for external observers.
"""

__version__ = "0.1.0"
__author__ = "Garden Team"
