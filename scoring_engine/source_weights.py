"""
Scoring Engine - Source Weights.

Per-platform reliability weights used by the trend score.
Higher weight = more influence on the composite score.
A fixed lookup; weights are not normalized across the
platforms present in a given call.
"""

from typing import Any, Dict


SOURCE_WEIGHTS: Dict[str, float] = {
    "aliexpress": 0.30,
    "tiktok": 0.25,
    "temu": 0.15,
    "shopify": 0.15,
    # Reserved for on-chain signals
    "onchain": 0.15,
}

UNKNOWN_SOURCE_WEIGHT = 0.10


def get_source_weight(source_platform: Any) -> float:
    """Weight for a platform name (case-insensitive); unknown -> 0.10."""
    if source_platform is None:
        return UNKNOWN_SOURCE_WEIGHT
    key = str(getattr(source_platform, "value", source_platform)).strip().lower()
    return SOURCE_WEIGHTS.get(key, UNKNOWN_SOURCE_WEIGHT)
