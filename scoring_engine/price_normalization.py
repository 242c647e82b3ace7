"""
Scoring Engine - Price Normalization.

Places a trend's current price within its own observed range.

- percentile = round((current - min) / (max - min) * 100)
- no snapshots, or max == min   -> 50 ("neutral")
- label: cheap <= 30, expensive >= 70, else neutral

Snapshots must be supplied oldest-to-newest: "current" is
the last element, not the latest timestamp.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Sequence

from .numeric import round_half_up, snapshot_price


NEUTRAL_PERCENTILE = 50
CHEAP_MAX_PERCENTILE = 30
EXPENSIVE_MIN_PERCENTILE = 70


class PriceLabel(str, Enum):
    CHEAP = "cheap"
    NEUTRAL = "neutral"
    EXPENSIVE = "expensive"


@dataclass(frozen=True)
class PricePosition:
    percentile: int
    label: PriceLabel

    def to_dict(self) -> dict:
        return {"percentile": self.percentile, "label": self.label.value}


def label_for(percentile: int) -> PriceLabel:
    if percentile <= CHEAP_MAX_PERCENTILE:
        return PriceLabel.CHEAP
    if percentile >= EXPENSIVE_MIN_PERCENTILE:
        return PriceLabel.EXPENSIVE
    return PriceLabel.NEUTRAL


def normalize_prices(snapshots: Sequence[Any]) -> PricePosition:
    """Compute the price percentile and label for a snapshot history."""
    prices = [p for p in (snapshot_price(s) for s in snapshots) if p is not None]
    if not prices:
        return PricePosition(NEUTRAL_PERCENTILE, PriceLabel.NEUTRAL)

    low = min(prices)
    high = max(prices)
    current = prices[-1]

    if high == low:
        percentile = NEUTRAL_PERCENTILE
    else:
        percentile = round_half_up(float((current - low) / (high - low) * 100))

    return PricePosition(percentile, label_for(percentile))
