"""
Data Ingestion - Type Definitions.

============================================================
PURPOSE
============================================================
Shared types for the marketplace ingestion layer.

- Platform identifiers
- Canonical product shape
- Ingestion result types (per source and per run)
- Scheduler trigger results
- Error types

============================================================
DESIGN PRINCIPLES
============================================================
- Immutable data structures where possible
- Clear typing for all fields
- No business logic
- Serializable for monitoring

============================================================
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4


# =============================================================
# ENUMS
# =============================================================

class SourcePlatform(str, Enum):
    """Marketplaces products can be ingested from."""
    ALIEXPRESS = "aliexpress"
    TIKTOK = "tiktok"
    TEMU = "temu"
    SHOPIFY = "shopify"

    @classmethod
    def parse(cls, value: Any) -> Optional["SourcePlatform"]:
        """Resolve a loosely-typed platform name, None if unknown."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class IngestionStatus(str, Enum):
    """Status of a per-source ingestion."""
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


class TriggerStatus(str, Enum):
    """Outcome of a scheduler trigger."""
    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"


# =============================================================
# CANONICAL PRODUCT
# =============================================================

@dataclass(frozen=True)
class CanonicalProduct:
    """
    Normalized, source-agnostic product listing.

    Produced fresh on every fetch; never persisted directly.
    """
    external_id: str
    title: str
    source: SourcePlatform
    price: Decimal
    currency: str = "USD"
    image_url: str = ""
    product_url: str = ""
    category: str = "Other"

    # Source-supplied base score, if the adapter computes one
    base_score: Optional[int] = None

    @property
    def dedup_key(self) -> str:
        """Composite key used for within-batch deduplication."""
        return f"{self.source.value}:{self.external_id}"


# =============================================================
# INGESTION RESULT TYPES
# =============================================================

@dataclass
class IngestionResult:
    """Result of ingesting a single source."""
    source: str
    status: IngestionStatus = IngestionStatus.SUCCESS

    # Counts
    fetched: int = 0
    upserted: int = 0
    new_trends: int = 0
    errors: int = 0

    # Timing
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_seconds: float = 0.0

    # Diagnostics
    error_messages: List[str] = field(default_factory=list)

    def record_error(self, message: str) -> None:
        """Count one error and keep its message."""
        self.errors += 1
        self.error_messages.append(message)

    def mark_failed(self, message: str) -> None:
        """Mark the whole source as failed."""
        self.status = IngestionStatus.FAILED
        self.record_error(message)

    def mark_complete(self, completed_at: datetime) -> None:
        """Mark the ingestion as complete and derive the final status."""
        self.completed_at = completed_at
        if self.started_at:
            self.duration_seconds = (completed_at - self.started_at).total_seconds()

        if self.status == IngestionStatus.FAILED:
            return
        if self.errors == 0:
            self.status = IngestionStatus.SUCCESS
        elif self.upserted > 0:
            self.status = IngestionStatus.PARTIAL
        else:
            self.status = IngestionStatus.FAILED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/monitoring."""
        return {
            "source": self.source,
            "status": self.status.value,
            "fetched": self.fetched,
            "upserted": self.upserted,
            "new_trends": self.new_trends,
            "errors": self.errors,
            "duration_seconds": self.duration_seconds,
            "error_messages": self.error_messages[:5],  # Limit for logging
        }


@dataclass
class IngestionRunResult:
    """Aggregate result of one full run across all sources."""
    started_at: datetime
    completed_at: Optional[datetime] = None
    run_id: UUID = field(default_factory=uuid4)
    sources: List[IngestionResult] = field(default_factory=list)

    @property
    def total_new(self) -> int:
        return sum(r.new_trends for r in self.sources)

    @property
    def total_upserted(self) -> int:
        return sum(r.upserted for r in self.sources)

    @property
    def total_errors(self) -> int:
        return sum(r.errors for r in self.sources)

    @property
    def total_fetched(self) -> int:
        return sum(r.fetched for r in self.sources)

    @property
    def duration_seconds(self) -> float:
        if self.completed_at is None:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": str(self.run_id),
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "total_fetched": self.total_fetched,
            "total_upserted": self.total_upserted,
            "total_new": self.total_new,
            "total_errors": self.total_errors,
            "sources": [r.to_dict() for r in self.sources],
        }


@dataclass(frozen=True)
class TriggerResult:
    """Result returned by the guarded scheduler entry point."""
    status: TriggerStatus
    result: Optional[IngestionRunResult] = None
    reason: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def completed(cls, result: IngestionRunResult) -> "TriggerResult":
        return cls(status=TriggerStatus.COMPLETED, result=result)

    @classmethod
    def skipped(cls, reason: str = "already_running") -> "TriggerResult":
        return cls(status=TriggerStatus.SKIPPED, reason=reason)

    @classmethod
    def failed(cls, error: str) -> "TriggerResult":
        return cls(status=TriggerStatus.FAILED, error=error)


@dataclass(frozen=True)
class SchedulerStatus:
    """Health-check view of the scheduler."""
    is_running: bool
    last_run_at: Optional[datetime]
    cron_active: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_running": self.is_running,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "cron_active": self.cron_active,
        }


# =============================================================
# ERROR TYPES
# =============================================================

class IngestionError(Exception):
    """Base exception for ingestion errors."""

    def __init__(
        self,
        message: str,
        source: str,
        recoverable: bool = True,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.source = source
        self.recoverable = recoverable
        self.details = details or {}


class FetchError(IngestionError):
    """Error fetching listings from a marketplace."""
    pass


class ParseError(IngestionError):
    """Raw payload does not match the marketplace's known shape."""
    pass


class StorageError(IngestionError):
    """Error persisting a trend or snapshot."""
    pass
