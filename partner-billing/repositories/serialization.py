"""
Wire-format helpers shared by the repository modules.

The store is a document database behind a JSON API: references may arrive as a
bare id string or as a populated object, and money arrives as JSON numbers.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional


def ref_id(value: Any) -> Optional[str]:
    """
    Normalize a reference to its id string.

    Accepts "abc", {"_id": "abc", ...}, {"$oid": "abc"} and {"id": "abc"}.
    """

    if value is None:
        return None
    if isinstance(value, dict):
        for key in ("_id", "$oid", "id"):
            if value.get(key) is not None:
                return ref_id(value[key])
        return None
    return str(value)


def optional_decimal(value: Any) -> Optional[Decimal]:
    """Parse a JSON number (or numeric string) into a Decimal; empty values become None."""

    if value is None or value == "":
        return None
    return Decimal(str(value))


def money_to_wire(value: Decimal) -> float:
    """Money is sent to the store as JSON numbers."""

    return float(value)
