"""
Data Ingestion - Product Normalizer.

============================================================
RESPONSIBILITY
============================================================
Validates and sanitizes loosely-typed product candidates
coming from any marketplace adapter.

- Rejects records missing required fields
- Rejects non-finite, negative or unrepresentable prices
- Rounds prices to cents (half-up)
- Coerces unknown categories to "Other"
- Trims titles and normalizes currency codes

============================================================
DESIGN PRINCIPLES
============================================================
- Rejection is a return value (None), never an exception
- Rules evaluated in order, first failure wins
- Output is a fully-populated CanonicalProduct

============================================================
"""

import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from typing import Any, Mapping, Optional

from data_ingestion.config import (
    CURRENCY_MAX_LENGTH,
    DEFAULT_CURRENCY,
    FALLBACK_CATEGORY,
    TITLE_MAX_LENGTH,
    VALID_CATEGORIES,
)
from data_ingestion.types import CanonicalProduct, SourcePlatform


logger = logging.getLogger("normalizer.product")

REQUIRED_FIELDS = ("external_id", "title", "source", "price")

CENT = Decimal("0.01")

# Snapshot prices are stored as text in a 32-character column
PRICE_PRECISION = 28


def parse_price(value: Any) -> Optional[Decimal]:
    """
    Parse a price to a non-negative Decimal in cents, or None.

    Values that cannot be held at cent precision within
    PRICE_PRECISION digits (e.g. "1e30") are rejected here so
    persistence never sees them. Negative zero becomes 0.00.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        price = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not price.is_finite() or price < 0:
        return None

    with localcontext() as ctx:
        ctx.prec = PRICE_PRECISION
        ctx.traps[InvalidOperation] = True
        try:
            price = price.quantize(CENT, rounding=ROUND_HALF_UP)
        except InvalidOperation:
            return None
    return abs(price)


def _parse_base_score(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(round(float(value)))
    except (TypeError, ValueError, OverflowError):
        return None


def normalize_product(raw: Optional[Mapping[str, Any]]) -> Optional[CanonicalProduct]:
    """
    Sanitize and validate a raw product candidate.

    Args:
        raw: Candidate mapping produced by a source adapter

    Returns:
        CanonicalProduct, or None if the candidate is rejected
    """
    if not isinstance(raw, Mapping):
        return None

    for name in REQUIRED_FIELDS:
        value = raw.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            logger.debug(f"Rejected candidate: missing {name}")
            return None

    price = parse_price(raw["price"])
    if price is None:
        logger.debug(f"Rejected candidate {raw.get('external_id')}: invalid price {raw['price']!r}")
        return None

    source = SourcePlatform.parse(raw["source"])
    if source is None:
        logger.debug(f"Rejected candidate {raw.get('external_id')}: unknown source {raw['source']!r}")
        return None

    category = raw.get("category")
    if not isinstance(category, str) or category not in VALID_CATEGORIES:
        category = FALLBACK_CATEGORY

    currency = raw.get("currency") or DEFAULT_CURRENCY

    return CanonicalProduct(
        external_id=str(raw["external_id"]).strip(),
        title=str(raw["title"]).strip()[:TITLE_MAX_LENGTH],
        source=source,
        price=price,
        currency=str(currency).strip().upper()[:CURRENCY_MAX_LENGTH],
        image_url=str(raw.get("image_url") or ""),
        product_url=str(raw.get("product_url") or ""),
        category=category,
        base_score=_parse_base_score(raw.get("base_score")),
    )


def dedup_key(product: CanonicalProduct) -> str:
    """Within-batch deduplication key: `source:external_id`."""
    return product.dedup_key
