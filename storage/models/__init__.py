"""
Storage Models Package.

ORM models for the trend store.

============================================================
MODEL ORGANIZATION
============================================================
- Trend: Deduplicated marketplace product
- PriceSnapshot: Append-only price observation

============================================================
"""

from storage.models.base import Base, utc_timestamp
from storage.models.trends import PriceSnapshot, Trend


__all__ = [
    "Base",
    "utc_timestamp",
    "PriceSnapshot",
    "Trend",
]
