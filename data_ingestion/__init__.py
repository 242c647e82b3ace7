"""
Data Ingestion Package.

Marketplace product ingestion: fetch, normalize, deduplicate,
persist, score.

Sub-packages:
- sources: Marketplace adapters (AliExpress, TikTok Shop)
- normalizers: Canonical product validation

Main services:
- ingestion_service: Orchestrates all ingestion activities
- scheduler: Daily cadence and guarded manual trigger
- events: New-trend notifications
"""

from data_ingestion.types import (
    CanonicalProduct,
    FetchError,
    IngestionError,
    IngestionResult,
    IngestionRunResult,
    IngestionStatus,
    ParseError,
    SchedulerStatus,
    SourcePlatform,
    StorageError,
    TriggerResult,
    TriggerStatus,
)
from data_ingestion.config import (
    BATCH_SIZE,
    DEFAULT_BASE_SCORE,
    VALID_CATEGORIES,
    IngestionServiceConfig,
    SchedulerConfig,
    SourceConfig,
)
from data_ingestion.events import EVENT_NEW_TREND, IngestionEventBus
from data_ingestion.normalizers import dedup_key, normalize_product
from data_ingestion.sources import (
    DEFAULT_SOURCES,
    AliExpressSource,
    BaseProductSource,
    TikTokSource,
)
from data_ingestion.ingestion_service import IngestionService
from data_ingestion.scheduler import IngestionScheduler, next_scheduled_run


__all__ = [
    # Services
    "IngestionService",
    "IngestionScheduler",
    "IngestionEventBus",
    "EVENT_NEW_TREND",
    "next_scheduled_run",
    # Sources
    "BaseProductSource",
    "AliExpressSource",
    "TikTokSource",
    "DEFAULT_SOURCES",
    # Normalization
    "normalize_product",
    "dedup_key",
    # Config
    "BATCH_SIZE",
    "DEFAULT_BASE_SCORE",
    "VALID_CATEGORIES",
    "IngestionServiceConfig",
    "SchedulerConfig",
    "SourceConfig",
    # Types
    "CanonicalProduct",
    "SourcePlatform",
    "IngestionStatus",
    "IngestionResult",
    "IngestionRunResult",
    "SchedulerStatus",
    "TriggerResult",
    "TriggerStatus",
    # Errors
    "IngestionError",
    "FetchError",
    "ParseError",
    "StorageError",
]
