"""
Data Products - Trend Insight Service.

============================================================
RESPONSIBILITY
============================================================
Read side of the trend store.

- Trend listing and lookup with a confidence band
- Price history with the current price percentile
- Simple price analytics (lowest, current, projection)

============================================================
DESIGN PRINCIPLES
============================================================
- Read-only: never writes trends or snapshots
- Scores are served as stored; the ingestion service is
  the only place a score is computed
- Confidence is derived on read from snapshot count and
  the stored velocity

============================================================
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from scoring_engine import (
    ConfidenceBand,
    PricePosition,
    confidence_band_for,
    normalize_prices,
)
from scoring_engine.numeric import snapshot_price
from storage.models.trends import PriceSnapshot, Trend
from storage.trend_store import TrendStore


# Projection continues the last move at 1.5x
PROJECTION_FACTOR = Decimal("1.5")
CENT = Decimal("0.01")


def _money(value: Decimal) -> str:
    return format(value.quantize(CENT, rounding=ROUND_HALF_UP), "f")


@dataclass(frozen=True)
class TrendView:
    """A stored trend plus its confidence band."""
    trend: Trend
    snapshot_count: int
    confidence_band: ConfidenceBand

    def to_dict(self) -> Dict[str, Any]:
        data = self.trend.to_dict()
        data["snapshot_count"] = self.snapshot_count
        data["confidence_band"] = self.confidence_band.value
        return data


@dataclass(frozen=True)
class TrendPrices:
    """Price history (oldest first) and the current price position."""
    snapshots: List[PriceSnapshot]
    intelligence: PricePosition

    def to_dict(self) -> Dict[str, Any]:
        return {
            "snapshots": [s.to_dict() for s in self.snapshots],
            "intelligence": self.intelligence.to_dict(),
        }


@dataclass(frozen=True)
class TrendAnalytics:
    lowest_price: str
    current_price: str
    predicted_price: str
    confidence: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lowest_price": self.lowest_price,
            "current_price": self.current_price,
            "predicted_price": self.predicted_price,
            "confidence": self.confidence,
        }


class TrendInsightService:
    """
    Serves trends and price intelligence to external callers.

    ============================================================
    USAGE
    ============================================================
    ```python
    insights = TrendInsightService(TrendStore(factory))
    views = insights.list_trends(category="Electronics")
    prices = insights.get_trend_prices(views[0].trend.id)
    ```

    ============================================================
    """

    def __init__(self, store: TrendStore) -> None:
        self._store = store
        self._logger = logging.getLogger("trend_insights")

    # =========================================================
    # TRENDS
    # =========================================================

    def list_trends(
        self,
        category: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[TrendView]:
        """Trends ordered by stored score, highest first."""
        trends = self._store.list_trends(category=category, search=search)
        counts = self._store.get_snapshot_counts([t.id for t in trends])
        return [self._view(trend, counts.get(trend.id, 0)) for trend in trends]

    def get_trend(self, trend_id: int) -> Optional[TrendView]:
        trend = self._store.get_trend(trend_id)
        if trend is None:
            self._logger.debug(f"Trend {trend_id} not found")
            return None
        return self._view(trend, self._store.get_snapshot_count(trend_id))

    def _view(self, trend: Trend, snapshot_count: int) -> TrendView:
        return TrendView(
            trend=trend,
            snapshot_count=snapshot_count,
            confidence_band=confidence_band_for(snapshot_count, trend.price_velocity),
        )

    # =========================================================
    # PRICES
    # =========================================================

    def get_trend_prices(self, trend_id: int) -> TrendPrices:
        """Snapshot history with the current price percentile."""
        snapshots = self._store.get_price_snapshots(trend_id)
        return TrendPrices(
            snapshots=snapshots,
            intelligence=normalize_prices(snapshots),
        )

    def get_trend_analytics(self, trend_id: int) -> Optional[TrendAnalytics]:
        """
        Lowest and current price plus a naive projection.

        predicted = last + (last - previous) * 1.5. Confidence is
        "High" when the last move was upward, else "Stable".

        Returns:
            None when the trend has no readable snapshots
        """
        prices = [
            p for p in (snapshot_price(s) for s in self._store.get_price_snapshots(trend_id))
            if p is not None
        ]
        if not prices:
            return None

        last = prices[-1]
        previous = prices[-2] if len(prices) > 1 else last
        diff = last - previous
        predicted = last + diff * PROJECTION_FACTOR

        return TrendAnalytics(
            lowest_price=_money(min(prices)),
            current_price=_money(last),
            predicted_price=_money(predicted),
            confidence="High" if diff > 0 else "Stable",
        )
