"""
Data Ingestion - TikTok Shop Source.

============================================================
RESPONSIBILITY
============================================================
Collects viral listings from the TikTok Shop Open API.

- Live path: product search sorted by sold count
  (requires TIKTOK_SHOP_TOKEN)
- Offline path: structured catalog with drifting prices
- Derives a base score from sold count and star rating

============================================================
"""

import math
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List

import httpx

from data_ingestion.config import FALLBACK_CATEGORY, load_source_config
from data_ingestion.sources.aliexpress import score_aliexpress_product
from data_ingestion.sources.base import BaseProductSource, daily_jitter, optional_int, require
from data_ingestion.types import FetchError, ParseError, SourcePlatform


TIKTOK_API_URL = "https://open-api.tiktokglobalshop.com"

CATEGORY_MAP: Dict[str, str] = {
    "electronics": "Electronics",
    "phone_accessories": "Electronics",
    "home_living": "Home & Garden",
    "kitchen": "Home & Garden",
    "pets": "Pet Supplies",
    "women_fashion": "Fashion",
    "men_fashion": "Fashion",
    "beauty_personal_care": "Beauty",
    "sports_outdoor": "Sports & Outdoors",
    "toys_games": "Toys & Games",
}

_NON_SLUG = re.compile(r"[^a-z_]")


def map_category(raw: str) -> str:
    key = _NON_SLUG.sub("_", raw.lower())
    return CATEGORY_MAP.get(key, FALLBACK_CATEGORY)


def score_tiktok_product(sold_count: int, rating: float) -> int:
    """Base trend score from sold count and a 0-5 star rating."""
    return score_aliexpress_product(sold_count, max(0.0, min(5.0, rating)) * 20)


@dataclass(frozen=True)
class TikTokRawProduct:
    """Product object as returned by the Shop search endpoint."""
    product_id: str
    title: str
    sale_price: Decimal
    currency: str
    image_url: str
    product_url: str
    category_name: str
    sold_count: int
    rating: float

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "TikTokRawProduct":
        source = SourcePlatform.TIKTOK
        price = require(payload, "price", dict, source)
        sale_price = require(price, "sale_price", (int, float, str), source)
        try:
            sale_price = Decimal(str(sale_price))
        except ArithmeticError as e:
            raise ParseError(
                message=f"Unparseable sale_price {sale_price!r}",
                source=source.value,
            ) from e

        image = payload.get("main_image")
        image_url = image.get("url", "") if isinstance(image, dict) else ""

        rating = payload.get("rating", 0)
        if isinstance(rating, bool) or not isinstance(rating, (int, float)):
            raise ParseError(message=f"Field 'rating' is not numeric: {rating!r}", source=source.value)

        return cls(
            product_id=require(payload, "product_id", str, source),
            title=require(payload, "title", str, source),
            sale_price=sale_price,
            currency=str(price.get("currency") or "USD"),
            image_url=str(image_url or ""),
            product_url=str(payload.get("product_url") or ""),
            category_name=str(payload.get("category_name") or ""),
            sold_count=optional_int(payload, "sold_count", source),
            rating=float(rating),
        )


class TikTokSource(BaseProductSource):
    """
    Adapter for TikTok Shop.

    ============================================================
    WIRING
    ============================================================
    Source: TikTok Shop Open API (REST)
    Credential: TIKTOK_SHOP_TOKEN

    ============================================================
    """

    @property
    def name(self) -> SourcePlatform:
        return SourcePlatform.TIKTOK

    @classmethod
    def from_env(cls) -> "TikTokSource":
        return cls(load_source_config("TIKTOK_SHOP_TOKEN", TIKTOK_API_URL))

    async def fetch_live(self, client: httpx.AsyncClient) -> List[Dict[str, Any]]:
        base_url = self._config.base_url or TIKTOK_API_URL
        data = await self._request_json(
            client,
            "POST",
            f"{base_url}/api/products/search",
            headers={"x-tts-access-token": self._config.api_key},
            json={"page_size": self._config.page_size, "sort_by": "SOLD_COUNT_DESC"},
        )

        envelope = data.get("data") if isinstance(data, dict) else None
        products = envelope.get("products") if isinstance(envelope, dict) else None
        if not isinstance(products, list):
            raise FetchError(
                message="Unexpected response envelope: data.products missing",
                source=self.name.value,
                recoverable=False,
            )
        return products

    def to_candidate(self, raw: Dict[str, Any]) -> Dict[str, Any]:
        product = TikTokRawProduct.from_payload(raw)
        return {
            "external_id": product.product_id,
            "title": product.title,
            "source": self.name.value,
            "price": product.sale_price,
            "currency": product.currency,
            "image_url": product.image_url,
            "product_url": product.product_url,
            "category": map_category(product.category_name),
            "base_score": score_tiktok_product(product.sold_count, product.rating),
        }

    def sample_payloads(self) -> List[Dict[str, Any]]:
        def item(pid, title, base, image, category, sold, rating):
            return {
                "product_id": pid,
                "title": title,
                "price": {"sale_price": float(daily_jitter(base, 0.06, math.cos)), "currency": "USD"},
                "main_image": {"url": f"https://images.unsplash.com/{image}?auto=format&fit=crop&q=80&w=400"},
                "product_url": f"https://shop.tiktok.com/view/product/{pid[3:]}",
                "category_name": category,
                "sold_count": sold,
                "rating": rating,
            }

        return [
            item("tt_7891234567001", "LED Cloud Light DIY Thunderstorm Effect", 22.99,
                 "photo-1534088568595-a066f410bcda", "home_living", 67200, 4.8),
            item("tt_7891234567002", "Magnetic Phone Charger Stand 360° Rotation", 14.50,
                 "photo-1556656793-08538906a9f8", "electronics", 89400, 4.6),
            item("tt_7891234567003", "Ice Roller Face Massager Stainless Steel", 7.99,
                 "photo-1596755389378-c31d21fd1273", "beauty_personal_care", 124000, 4.9),
            item("tt_7891234567004", "Mini Waffle Maker 4-Inch Non-Stick", 11.25,
                 "photo-1562376552-0d160a2f238d", "kitchen", 53700, 4.7),
            item("tt_7891234567005", "Car Phone Mount Cup Holder Expandable", 9.99,
                 "photo-1549317661-bd32c8ce0afa", "phone_accessories", 41200, 4.5),
        ]
