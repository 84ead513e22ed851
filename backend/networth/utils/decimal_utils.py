# backend/networth/utils/decimal_utils.py
"""
Decimal parsing shared by provider clients, the rate service and storage.

Money is never handled as float. Values arriving as JSON numbers or strings
go through ``str`` first, so a float keeps its shortest repr
(0.1 -> Decimal("0.1"), not the binary expansion).
"""

from decimal import Decimal, InvalidOperation
from typing import Any


def to_decimal(value: Any) -> Decimal | None:
    """
    Parse a numeric value; None if absent, boolean, invalid or non-finite.

    Example:
        >>> to_decimal("185.64")
        Decimal('185.64')
        >>> to_decimal("NaN") is None
        True
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return None
    return result if result.is_finite() else None
