"""
Utility functions module.

Identity normalization and timestamp helpers shared across the registry,
event log and persistence layers.

Identity Semantics:
- The null address is reserved and always means "unclaimed"
- Hex account addresses compare case-insensitively
- Any other identity string is kept verbatim
"""
