"""
Scoring Engine - Numeric helpers.

Shared clamping, rounding and snapshot price extraction.
"""

import math
from decimal import Decimal, InvalidOperation
from typing import Any, Optional


def clamp(value: float, minimum: float, maximum: float) -> float:
    return min(maximum, max(minimum, value))


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves toward +infinity."""
    return int(math.floor(value + 0.5))


def to_float(value: Any) -> Optional[float]:
    """Parse a loosely-typed number; None if missing, unparseable or NaN."""
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result):
        return None
    return result


def snapshot_price(snapshot: Any) -> Optional[Decimal]:
    """
    Price of a snapshot as a Decimal.

    Accepts ORM rows / objects with a `price` attribute and
    plain mappings with a "price" key.
    """
    if isinstance(snapshot, dict):
        raw = snapshot.get("price")
    else:
        raw = getattr(snapshot, "price", None)
    if raw is None or isinstance(raw, bool):
        return None
    try:
        price = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        return None
    return price if price.is_finite() else None
