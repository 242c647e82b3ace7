"""
Scoring Engine Package.

Pure functions deriving display signals from price history.

Modules:
- source_weights: Per-platform reliability weights
- velocity: Percent change between the two latest snapshots
- trend_score: Composite 0-100 score with confidence band
- price_normalization: Current price percentile within history
"""

from .price_normalization import PriceLabel, PricePosition, normalize_prices
from .source_weights import SOURCE_WEIGHTS, UNKNOWN_SOURCE_WEIGHT, get_source_weight
from .trend_score import (
    ConfidenceBand,
    ScoringInput,
    TrendScore,
    calculate_trend_score,
    confidence_band_for,
)
from .velocity import compute_price_velocity


__all__ = [
    "ConfidenceBand",
    "PriceLabel",
    "PricePosition",
    "SOURCE_WEIGHTS",
    "ScoringInput",
    "TrendScore",
    "UNKNOWN_SOURCE_WEIGHT",
    "calculate_trend_score",
    "compute_price_velocity",
    "confidence_band_for",
    "get_source_weight",
    "normalize_prices",
]
