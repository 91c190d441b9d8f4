"""
Owner identity helpers.

Caller identities arrive already authenticated; these helpers only make
sure equal identities compare equal and that the reserved null address is
recognized wherever it shows up.
"""

from typing import Optional

NULL_ADDRESS = "0x0000000000000000000000000000000000000000"


def normalize_address(value: Optional[str]) -> str:
    """
    Normalize an owner identity for storage and comparison.

    Args:
        value: Raw identity string (may be None)

    Returns:
        Stripped identity; 0x-prefixed hex addresses are lowercased.
        None and empty strings normalize to the empty string.
    """
    if value is None:
        return ""

    address = str(value).strip()
    if address[:2].lower() == "0x":
        return "0x" + address[2:].lower()
    return address


def is_null_address(value: Optional[str]) -> bool:
    """Check whether an identity is the reserved null address or empty."""
    address = normalize_address(value)
    return address == "" or address == NULL_ADDRESS
