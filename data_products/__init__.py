"""
Data Products Package.

Read-side services over the trend store.

Modules:
- trend_service: Trend listing, price percentile, analytics
"""

from data_products.trend_service import (
    TrendAnalytics,
    TrendInsightService,
    TrendPrices,
    TrendView,
)


__all__ = [
    "TrendAnalytics",
    "TrendInsightService",
    "TrendPrices",
    "TrendView",
]
