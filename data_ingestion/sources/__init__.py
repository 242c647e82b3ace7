"""
Marketplace source adapters.

Add new adapters here and to DEFAULT_SOURCES.
"""

from .aliexpress import AliExpressSource
from .base import BaseProductSource
from .tiktok import TikTokSource


DEFAULT_SOURCES = (AliExpressSource, TikTokSource)


__all__ = [
    "AliExpressSource",
    "BaseProductSource",
    "DEFAULT_SOURCES",
    "TikTokSource",
]
