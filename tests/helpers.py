"""
Test helpers shared across suites.
"""

from typing import Any, Dict, List, Optional

import httpx

from data_ingestion.config import SourceConfig
from data_ingestion.sources.base import BaseProductSource
from data_ingestion.types import SourcePlatform


def candidate(
    external_id: str = "p-1",
    price: Any = "10.00",
    source: str = "aliexpress",
    **overrides: Any,
) -> Dict[str, Any]:
    """A valid canonical candidate dict."""
    data = {
        "external_id": external_id,
        "title": f"Product {external_id}",
        "source": source,
        "price": price,
        "currency": "usd",
        "image_url": f"https://img.example/{external_id}.jpg",
        "product_url": f"https://shop.example/{external_id}",
        "category": "Electronics",
    }
    data.update(overrides)
    return data


class StaticSource(BaseProductSource):
    """Source returning a fixed candidate list, or raising."""

    def __init__(
        self,
        platform: SourcePlatform = SourcePlatform.ALIEXPRESS,
        candidates: Optional[List[Any]] = None,
        error: Optional[Exception] = None,
        config: Optional[SourceConfig] = None,
    ) -> None:
        self._platform = platform
        self.candidates = list(candidates or [])
        self.error = error
        self.fetch_calls = 0
        super().__init__(config)

    @property
    def name(self) -> SourcePlatform:
        return self._platform

    async def fetch(self) -> List[Any]:
        self.fetch_calls += 1
        if self.error is not None:
            raise self.error
        return list(self.candidates)

    async def fetch_live(self, client: httpx.AsyncClient) -> List[Dict[str, Any]]:
        return []

    def sample_payloads(self) -> List[Dict[str, Any]]:
        return []

    def to_candidate(self, raw: Dict[str, Any]) -> Dict[str, Any]:
        return raw

    def set_price(self, external_id: str, price: Any) -> None:
        for item in self.candidates:
            if item.get("external_id") == external_id:
                item["price"] = price
