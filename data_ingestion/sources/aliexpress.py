"""
Data Ingestion - AliExpress Source.

============================================================
RESPONSIBILITY
============================================================
Collects trending listings from the AliExpress Affiliate API.

- Live path: product query endpoint (requires API key)
- Offline path: structured catalog with drifting prices
- Maps AliExpress category slugs onto canonical categories
- Derives a base score from order volume and rating

============================================================
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from data_ingestion.config import FALLBACK_CATEGORY, SourceConfig, load_source_config
from data_ingestion.sources.base import BaseProductSource, daily_jitter, optional_int, require
from data_ingestion.types import FetchError, SourcePlatform


ALIEXPRESS_API_URL = "https://api.aliexpress.com/v2"

CATEGORY_MAP: Dict[str, str] = {
    "consumer_electronics": "Electronics",
    "phones_accessories": "Electronics",
    "computer_office": "Electronics",
    "home_garden": "Home & Garden",
    "home_improvement": "Home & Garden",
    "pet_supplies": "Pet Supplies",
    "womens_clothing": "Fashion",
    "mens_clothing": "Fashion",
    "jewelry_accessories": "Fashion",
    "beauty_health": "Beauty",
    "hair_extensions": "Beauty",
    "sports_entertainment": "Sports & Outdoors",
    "toys_hobbies": "Toys & Games",
    "automobiles_motorcycles": "Automotive",
}


def map_category(raw: str) -> str:
    return CATEGORY_MAP.get(raw, FALLBACK_CATEGORY)


def score_aliexpress_product(orders: int, rating_pct: float) -> int:
    """
    Base trend score from order count and rating percentage.

    Order signal has diminishing returns past ~30k orders.
    """
    order_signal = min(100.0, math.sqrt(max(orders, 0) / 500) * 10)
    raw = order_signal * 0.6 + rating_pct * 0.4
    return int(math.floor(min(100.0, max(0.0, raw)) + 0.5))


@dataclass(frozen=True)
class AliExpressRawProduct:
    """Product object as returned by the Affiliate API."""
    product_id: str
    product_title: str
    target_sale_price: str
    target_sale_price_currency: str
    product_main_image_url: str
    product_detail_url: str
    first_level_category_name: str
    evaluate_rate: str
    orders_count: int

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "AliExpressRawProduct":
        source = SourcePlatform.ALIEXPRESS
        return cls(
            product_id=require(payload, "product_id", str, source),
            product_title=require(payload, "product_title", str, source),
            target_sale_price=str(require(payload, "target_sale_price", (str, int, float), source)),
            target_sale_price_currency=str(payload.get("target_sale_price_currency") or "USD"),
            product_main_image_url=str(payload.get("product_main_image_url") or ""),
            product_detail_url=str(payload.get("product_detail_url") or ""),
            first_level_category_name=str(payload.get("first_level_category_name") or ""),
            evaluate_rate=str(payload.get("evaluate_rate") or ""),
            orders_count=optional_int(payload, "orders_count", source),
        )

    @property
    def rating_pct(self) -> Optional[float]:
        try:
            return float(self.evaluate_rate.rstrip("%"))
        except ValueError:
            return None


class AliExpressSource(BaseProductSource):
    """
    Adapter for AliExpress.

    ============================================================
    WIRING
    ============================================================
    Source: AliExpress Affiliate API v2 (REST)
    Credential: ALIEXPRESS_API_KEY

    ============================================================
    """

    @property
    def name(self) -> SourcePlatform:
        return SourcePlatform.ALIEXPRESS

    @classmethod
    def from_env(cls) -> "AliExpressSource":
        return cls(load_source_config("ALIEXPRESS_API_KEY", ALIEXPRESS_API_URL))

    # =========================================================
    # FETCH - External API Call
    # =========================================================

    async def fetch_live(self, client: httpx.AsyncClient) -> List[Dict[str, Any]]:
        base_url = self._config.base_url or ALIEXPRESS_API_URL
        data = await self._request_json(
            client,
            "POST",
            f"{base_url}/affiliate/product/query",
            headers={"x-api-key": self._config.api_key},
            json={
                "target_currency": "USD",
                "target_language": "EN",
                "sort": "SALE_PRICE_ASC",
                "page_size": self._config.page_size,
            },
        )

        try:
            products = data["resp_result"]["result"]["products"]
        except (KeyError, TypeError) as e:
            raise FetchError(
                message=f"Unexpected response envelope: missing {e}",
                source=self.name.value,
                recoverable=False,
            ) from e

        if not isinstance(products, list):
            raise FetchError(
                message="Unexpected response envelope: products is not a list",
                source=self.name.value,
                recoverable=False,
            )
        return products

    # =========================================================
    # PARSE - Map to canonical candidate
    # =========================================================

    def to_candidate(self, raw: Dict[str, Any]) -> Dict[str, Any]:
        product = AliExpressRawProduct.from_payload(raw)
        rating = product.rating_pct

        return {
            "external_id": product.product_id,
            "title": product.product_title,
            "source": self.name.value,
            "price": product.target_sale_price,
            "currency": product.target_sale_price_currency,
            "image_url": product.product_main_image_url,
            "product_url": product.product_detail_url,
            "category": map_category(product.first_level_category_name),
            "base_score": (
                score_aliexpress_product(product.orders_count, rating)
                if rating is not None else None
            ),
        }

    # =========================================================
    # OFFLINE CATALOG
    # =========================================================

    def sample_payloads(self) -> List[Dict[str, Any]]:
        def price(base: float) -> str:
            return str(daily_jitter(base, 0.08, math.sin))

        def item(pid, title, base, image, category, sub, rate, orders):
            return {
                "product_id": pid,
                "product_title": title,
                "target_sale_price": price(base),
                "target_sale_price_currency": "USD",
                "product_main_image_url": f"https://images.unsplash.com/{image}?auto=format&fit=crop&q=80&w=400",
                "product_detail_url": f"https://www.aliexpress.com/item/{pid[3:]}.html",
                "first_level_category_name": category,
                "second_level_category_name": sub,
                "evaluate_rate": rate,
                "orders_count": orders,
            }

        return [
            item("ae_4001234567890", "Portable Neck Fan 5000mAh USB-C Bladeless", 12.99,
                 "photo-1591129841117-3adfd313e34f", "consumer_electronics", "portable_fans", "96.5", 18420),
            item("ae_4001234567891", "360° Self-Cleaning Flat Mop with Bucket", 24.50,
                 "photo-1584622650111-993a426fbf0a", "home_garden", "cleaning_supplies", "94.2", 31200),
            item("ae_4001234567892", "Orthopedic Memory Foam Pet Bed Large", 19.99,
                 "photo-1541599540903-216a46ca1df0", "pet_supplies", "pet_beds", "92.1", 14300),
            item("ae_4001234567893", "Bluetooth 5.3 Smart Sleep Mask White Noise", 18.75,
                 "photo-1517639493569-5666a7b2f494", "consumer_electronics", "smart_wearables", "97.8", 22100),
            item("ae_4001234567894", "Sunset Projection Lamp 16 Colors USB", 9.50,
                 "photo-1619191163420-4a7c019888a4", "home_garden", "novelty_lighting", "95.3", 41800),
            item("ae_4001234567895", "Electric Scalp Massager Waterproof IPX7", 15.40,
                 "photo-1596755389378-c31d21fd1273", "beauty_health", "massage", "93.7", 27500),
            item("ae_4001234567896", "Mini Projector 1080P WiFi Portable Home Cinema", 48.90,
                 "photo-1478720568477-152d9b164e26", "consumer_electronics", "projectors", "91.2", 9800),
            item("ae_4001234567897", "Resistance Bands Set 5-Level Latex Fitness", 6.99,
                 "photo-1598289431512-b97b0917affc", "sports_entertainment", "fitness_equipment", "96.1", 55300),
        ]
