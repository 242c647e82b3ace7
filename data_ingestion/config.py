"""
Data Ingestion - Configuration.

============================================================
PURPOSE
============================================================
Tunables and runtime wiring for the ingestion pipeline.

- Pipeline constants (batch size, base score, categories)
- Frozen configuration dataclasses
- Environment loaders

============================================================
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional, Tuple

from dotenv import load_dotenv


logger = logging.getLogger(__name__)


# =============================================================
# CONSTANTS
# =============================================================

# Products processed per sequential chunk
BATCH_SIZE = 50

# Score given to trends whose source supplies none
DEFAULT_BASE_SCORE = 50

TITLE_MAX_LENGTH = 500
CURRENCY_MAX_LENGTH = 3
DEFAULT_CURRENCY = "USD"
FALLBACK_CATEGORY = "Other"

VALID_CATEGORIES = frozenset({
    "Electronics",
    "Home & Garden",
    "Pet Supplies",
    "Fashion",
    "Beauty",
    "Sports & Outdoors",
    "Toys & Games",
    "Automotive",
    "Health",
    "Other",
})


# =============================================================
# CONFIGURATION TYPES
# =============================================================

@dataclass(frozen=True)
class IngestionServiceConfig:
    """Configuration for the ingestion orchestrator."""
    batch_size: int = BATCH_SIZE
    default_base_score: int = DEFAULT_BASE_SCORE

    # Upper bound for a single adapter fetch
    fetch_timeout_seconds: float = 60.0

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        if self.fetch_timeout_seconds <= 0:
            raise ValueError("fetch_timeout_seconds must be > 0")


@dataclass(frozen=True)
class SchedulerConfig:
    """Configuration for the ingestion scheduler."""

    # (hour, minute) pairs, fired daily in `timezone`
    run_times: Tuple[Tuple[int, int], ...] = ((6, 0), (18, 0))
    timezone: str = "UTC"

    # One-shot run after startup so empty deployments self-populate
    run_on_startup: bool = True
    startup_delay_seconds: float = 3.0

    def __post_init__(self) -> None:
        if not self.run_times:
            raise ValueError("run_times must not be empty")
        for hour, minute in self.run_times:
            if not (0 <= hour < 24 and 0 <= minute < 60):
                raise ValueError(f"Invalid run time: {hour:02d}:{minute:02d}")


@dataclass(frozen=True)
class SourceConfig:
    """Configuration shared by all marketplace adapters."""
    enabled: bool = True

    # Live API access; without a key the adapter serves its offline catalog
    api_key: Optional[str] = None
    base_url: str = ""

    timeout_seconds: float = 30.0
    max_retries: int = 3
    retry_backoff_base: float = 2.0
    page_size: int = 50


# =============================================================
# ENVIRONMENT LOADERS
# =============================================================

def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid integer for {name}={raw!r}, using {default}")
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Invalid number for {name}={raw!r}, using {default}")
        return default


def load_service_config() -> IngestionServiceConfig:
    """Build the orchestrator config from the environment."""
    load_dotenv()
    return IngestionServiceConfig(
        batch_size=max(1, _env_int("INGESTION_BATCH_SIZE", BATCH_SIZE)),
        fetch_timeout_seconds=max(1.0, _env_float("INGESTION_FETCH_TIMEOUT", 60.0)),
    )


def load_scheduler_config(run_on_startup: bool = True) -> SchedulerConfig:
    """Build the scheduler config from the environment."""
    load_dotenv()
    return SchedulerConfig(
        timezone=os.getenv("INGESTION_TIMEZONE", "UTC"),
        run_on_startup=run_on_startup,
    )


def load_source_config(api_key_env: str, base_url: str) -> SourceConfig:
    """Build an adapter config, reading its credential from `api_key_env`."""
    load_dotenv()
    return SourceConfig(
        api_key=os.getenv(api_key_env) or None,
        base_url=base_url,
    )
