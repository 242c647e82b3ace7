"""
Scoring Engine - Price Velocity.

Percent price change between the two most recent snapshots
of a trend, as a two-decimal string (e.g. "4.25", "-20.00").
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional, Sequence

from .numeric import snapshot_price


_TWO_PLACES = Decimal("0.01")


def compute_price_velocity(snapshots: Sequence[Any]) -> Optional[str]:
    """
    Compute price velocity.

    Args:
        snapshots: Snapshots ordered most-recent-first; only the
            first two are used

    Returns:
        Percent change rounded to two decimals, or None when fewer
        than two snapshots exist or the older price is exactly zero
    """
    if len(snapshots) < 2:
        return None

    current = snapshot_price(snapshots[0])
    previous = snapshot_price(snapshots[1])
    if current is None or previous is None or previous == 0:
        return None

    change = (current - previous) / previous * 100
    return str(change.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP))
