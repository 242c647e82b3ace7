"""
Data Ingestion - Ingestion Service.

============================================================
RESPONSIBILITY
============================================================
Orchestrates marketplace ingestion end to end.

- Manages registered source adapters
- Normalizes and deduplicates fetched listings
- Persists trends and price snapshots in fixed-size chunks
- Recomputes velocity and trend score per product
- Publishes new-trend events

============================================================
DESIGN PRINCIPLES
============================================================
- Single entry point for ingestion (run_ingestion)
- Failure isolation between sources AND between items
- Strictly sequential: sources, chunks and items in order
- Errors become counters, never propagate past an item

============================================================
WORKFLOW (per source)
============================================================
1. fetch() under a timeout; failure = one source error
2. Normalize each candidate; rejection = one item error
3. Deduplicate on "source:external_id", first one wins
4. Split into chunks of batch_size, processed in order
5. For each product:
   a. Upsert trend by (external_id, source_platform)
   b. Publish trend:discovered if the trend is new
   c. Append a price snapshot
   d. Recompute velocity, then the composite score

Steps a-d are separate transactions (see TrendStore).

============================================================
"""

import asyncio
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence

from core.clock import ClockProtocol, SystemClock
from data_ingestion.config import IngestionServiceConfig
from data_ingestion.events import EVENT_NEW_TREND, IngestionEventBus
from data_ingestion.normalizers import normalize_product
from data_ingestion.sources.base import BaseProductSource
from data_ingestion.types import (
    CanonicalProduct,
    IngestionResult,
    IngestionRunResult,
    IngestionStatus,
    StorageError,
)
from scoring_engine import ScoringInput, calculate_trend_score, compute_price_velocity
from storage.models.trends import Trend
from storage.repositories.exceptions import (
    ConnectionError as StoreConnectionError,
    RepositoryException,
    TransactionError,
)
from storage.repositories.trends import TrendUpsert
from storage.trend_store import TrendStore


CENT = Decimal("0.01")


def format_price(price: Decimal) -> str:
    """Two-decimal string used for snapshots and descriptions."""
    return format(price.quantize(CENT, rounding=ROUND_HALF_UP), "f")


def chunked(items: Sequence[Any], size: int) -> Iterator[Sequence[Any]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


class IngestionService:
    """
    Orchestrates ingestion across all registered sources.

    ============================================================
    USAGE
    ============================================================
    ```python
    bus = IngestionEventBus()
    service = IngestionService(TrendStore(factory), bus)
    service.register_source(AliExpressSource.from_env())

    run = await service.run_ingestion()
    print(run.total_new, run.total_errors)
    ```

    ============================================================
    """

    def __init__(
        self,
        store: TrendStore,
        event_bus: IngestionEventBus,
        config: Optional[IngestionServiceConfig] = None,
        clock: Optional[ClockProtocol] = None,
        sources: Optional[Iterable[BaseProductSource]] = None,
    ) -> None:
        """
        Initialize the ingestion service.

        Args:
            store: Persistence operations for trends and snapshots
            event_bus: Channel for new-trend notifications
            config: Batch size, default base score, fetch timeout
            clock: Time source for snapshots and run timestamps
            sources: Adapters to register, in processing order
        """
        self._store = store
        self._event_bus = event_bus
        self._config = config or IngestionServiceConfig()
        self._clock = clock or SystemClock()
        self._logger = logging.getLogger("ingestion_service")

        self._sources: Dict[str, BaseProductSource] = {}

        # Service metrics
        self._run_count = 0
        self._last_run: Optional[IngestionRunResult] = None

        for source in sources or ():
            self.register_source(source)

    @property
    def event_bus(self) -> IngestionEventBus:
        return self._event_bus

    # =========================================================
    # SOURCE MANAGEMENT
    # =========================================================

    def register_source(self, source: BaseProductSource) -> None:
        """
        Register a source adapter.

        A source with the same name is replaced in place, keeping
        its position in the processing order.
        """
        name = source.name.value
        if name in self._sources:
            self._logger.warning(f"Overwriting existing source: {name}")

        self._sources[name] = source
        self._logger.info(f"Registered source: {name}")

    def unregister_source(self, name: str) -> None:
        if name in self._sources:
            del self._sources[name]
            self._logger.info(f"Unregistered source: {name}")

    def get_source_names(self) -> List[str]:
        """Registered source names in processing order."""
        return list(self._sources.keys())

    # =========================================================
    # RUN
    # =========================================================

    async def run_ingestion(self) -> IngestionRunResult:
        """
        Run one ingestion cycle across all enabled sources.

        Sources are processed sequentially; one source failing
        never prevents the next from running.
        """
        self._run_count += 1
        run = IngestionRunResult(started_at=self._clock.now())
        self._logger.info(f"Starting ingestion run {run.run_id} ({len(self._sources)} sources)")

        for name, source in list(self._sources.items()):
            if not source.is_enabled:
                self._logger.info(f"Skipping disabled source: {name}")
                continue
            run.sources.append(await self.ingest_source(source))

        run.completed_at = self._clock.now()
        self._last_run = run

        self._logger.info(
            f"Run complete: {run.total_upserted} upserted, {run.total_new} new, "
            f"{run.total_errors} errors ({run.duration_seconds:.2f}s)"
        )
        return run

    async def ingest_source(self, source: BaseProductSource) -> IngestionResult:
        """Fetch, normalize, deduplicate and persist one source."""
        name = source.name.value
        result = IngestionResult(source=name, started_at=self._clock.now())

        # 1. Fetch
        try:
            candidates = await asyncio.wait_for(
                source.fetch(),
                timeout=self._config.fetch_timeout_seconds,
            )
        except asyncio.TimeoutError:
            self._logger.error(
                f"[{name}] Fetch timed out after {self._config.fetch_timeout_seconds}s"
            )
            result.mark_failed(f"fetch timed out after {self._config.fetch_timeout_seconds}s")
            result.mark_complete(self._clock.now())
            return result
        except Exception as e:
            self._logger.error(f"[{name}] Fetch failed: {e}")
            result.mark_failed(f"fetch failed: {e}")
            result.mark_complete(self._clock.now())
            return result

        result.fetched = len(candidates)
        self._logger.info(f"[{name}] Fetched {result.fetched} products")

        # 2-3. Normalize and deduplicate
        products = self._normalize_and_dedup(candidates, result)

        # 4. Process in chunks
        for batch in chunked(products, self._config.batch_size):
            await self._process_batch(batch, result)

        result.mark_complete(self._clock.now())
        self._logger.info(
            f"[{name}] Done: {result.upserted} upserted, {result.new_trends} new, "
            f"{result.errors} errors"
        )
        return result

    def _normalize_and_dedup(
        self,
        candidates: Iterable[Any],
        result: IngestionResult,
    ) -> List[CanonicalProduct]:
        products: List[CanonicalProduct] = []
        seen = set()

        for index, raw in enumerate(candidates):
            product = normalize_product(raw)
            if product is None:
                result.record_error(f"item {index} rejected by normalizer")
                continue

            if product.dedup_key in seen:
                self._logger.debug(f"Dropping duplicate {product.dedup_key}")
                continue
            seen.add(product.dedup_key)
            products.append(product)

        return products

    async def _process_batch(
        self,
        batch: Sequence[CanonicalProduct],
        result: IngestionResult,
    ) -> None:
        for product in batch:
            try:
                await self._process_product(product, result)
            except Exception as e:
                result.record_error(f"{product.external_id}: {e}")
                self._logger.error(
                    f"[{product.source.value}] Failed to process {product.external_id}: {e}",
                    exc_info=True,
                )

    async def _process_product(
        self,
        product: CanonicalProduct,
        result: IngestionResult,
    ) -> None:
        """
        Persist and score one product.

        Raises:
            StorageError: A store operation failed. Connection and
                commit failures are marked recoverable.
        """
        source = product.source.value
        try:
            await self._persist_product(product, result)
        except RepositoryException as e:
            raise StorageError(
                f"storage failed during {e.operation}: {e.message}",
                source=source,
                recoverable=isinstance(e, (StoreConnectionError, TransactionError)),
                details={
                    "external_id": product.external_id,
                    "repository": e.repository_name,
                    "operation": e.operation,
                },
            ) from e

    async def _persist_product(
        self,
        product: CanonicalProduct,
        result: IngestionResult,
    ) -> None:
        source = product.source.value
        price = format_price(product.price)
        base_score = (
            product.base_score
            if product.base_score is not None
            else self._config.default_base_score
        )

        trend, is_new = self._store.upsert_trend_by_external_id(
            product.external_id,
            source,
            TrendUpsert(
                name=product.title,
                category=product.category,
                description=f"Trending on {source}. {product.currency} {price}.",
                trend_score=base_score,
                product_url=product.product_url or None,
                image_url=product.image_url or None,
                detected_at=self._clock.now(),
            ),
        )
        result.upserted += 1

        if is_new:
            result.new_trends += 1
            await self._event_bus.publish(EVENT_NEW_TREND, trend)
            self._logger.info(f"New trend discovered: \"{trend.name}\" (id={trend.id})")

        self._store.create_price_snapshot(
            trend_id=trend.id,
            source=source,
            price=price,
            recorded_at=self._clock.now(),
        )

        self._compute_velocity_and_score(trend, source)

    def _compute_velocity_and_score(self, trend: Trend, source: str) -> None:
        """
        Refresh velocity from the two latest snapshots, then score.

        Velocity is only written when it can be computed; the
        score always uses this run's velocity (or none).
        """
        snapshots = self._store.get_last_two_price_snapshots(trend.id)
        velocity = compute_price_velocity(snapshots)
        if velocity is not None:
            self._store.update_trend_velocity(trend.id, velocity)

        snapshot_count = self._store.get_snapshot_count(trend.id)
        score = calculate_trend_score(ScoringInput(
            raw_score=trend.trend_score,
            price_velocity=velocity,
            source_platform=source,
            snapshot_count=snapshot_count,
        ))
        self._store.update_trend_score(trend.id, score.trend_score)

    # =========================================================
    # HEALTH & METRICS
    # =========================================================

    def get_health_status(self) -> Dict[str, Any]:
        last = self._last_run
        return {
            "run_count": self._run_count,
            "last_run_at": last.completed_at.isoformat() if last and last.completed_at else None,
            "last_run_errors": last.total_errors if last else None,
            "last_run_failed_sources": [
                r.source for r in last.sources if r.status == IngestionStatus.FAILED
            ] if last else [],
            "sources": {
                name: source.get_health_status()
                for name, source in self._sources.items()
            },
        }

    def get_last_run(self) -> Optional[IngestionRunResult]:
        return self._last_run
