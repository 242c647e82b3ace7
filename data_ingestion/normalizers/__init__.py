"""
Data Ingestion Normalizers.

Validate loosely-typed adapter output into canonical products.
"""

from .product_normalizer import dedup_key, normalize_product, parse_price

__all__ = ["dedup_key", "normalize_product", "parse_price"]
