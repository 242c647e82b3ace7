"""
Tests for the ingestion service.

Tests cover:
- Idempotent upserts and append-only snapshots across runs
- Within-batch deduplication
- Source and item failure isolation
- New-trend events
- Velocity and score refresh
"""

import asyncio
from decimal import Decimal
from unittest.mock import patch

import pytest

from data_ingestion.config import IngestionServiceConfig, SourceConfig
from data_ingestion.events import EVENT_NEW_TREND
from data_ingestion.ingestion_service import IngestionService, chunked, format_price
from data_ingestion.normalizers import normalize_product
from data_ingestion.types import IngestionResult, IngestionStatus, SourcePlatform, StorageError
from storage.repositories.exceptions import (
    ConnectionError as StoreConnectionError,
    RecordNotFoundError,
    TransactionError,
)
from tests.helpers import StaticSource, candidate


class SlowSource(StaticSource):
    """Source whose fetch never finishes in time."""

    async def fetch(self):
        await asyncio.sleep(10)
        return []


@pytest.fixture
def make_service(store, event_bus, clock):
    def _make(*sources, **config):
        return IngestionService(
            store,
            event_bus,
            config=IngestionServiceConfig(**config),
            clock=clock,
            sources=sources,
        )
    return _make


# =============================================================
# TEST: Helpers
# =============================================================

def test_format_price_rounds_half_up():
    assert format_price(Decimal("12.5")) == "12.50"
    assert format_price(Decimal("0.005")) == "0.01"
    assert format_price(Decimal("3")) == "3.00"


def test_chunked_keeps_order():
    assert [list(c) for c in chunked([1, 2, 3, 4, 5], 2)] == [[1, 2], [3, 4], [5]]


# =============================================================
# TEST: Idempotence
# =============================================================

class TestIdempotentIngestion:
    """Re-running over the same listings updates, never duplicates."""

    @pytest.mark.asyncio
    async def test_two_runs_one_trend_two_snapshots(self, make_service, store):
        source = StaticSource(candidates=[candidate("ae-1", price="10.00")])
        service = make_service(source)

        first = await service.run_ingestion()
        second = await service.run_ingestion()

        assert first.total_new == 1
        assert second.total_new == 0
        assert second.total_upserted == 1
        assert store.count_trends() == 1

        trend = store.get_trend_by_external_id("ae-1", "aliexpress")
        assert store.get_snapshot_count(trend.id) == 2

    @pytest.mark.asyncio
    async def test_trend_fields_written(self, make_service, store):
        source = StaticSource(candidates=[candidate("ae-1", price="12.5", currency="eur")])
        await make_service(source).run_ingestion()

        trend = store.get_trend_by_external_id("ae-1", "aliexpress")
        assert trend.name == "Product ae-1"
        assert trend.category == "Electronics"
        assert trend.description == "Trending on aliexpress. EUR 12.50."
        assert trend.product_url == "https://shop.example/ae-1"

        snapshots = store.get_price_snapshots(trend.id)
        assert [(s.source, s.price) for s in snapshots] == [("aliexpress", "12.50")]

    @pytest.mark.asyncio
    async def test_empty_urls_stored_as_null(self, make_service, store):
        source = StaticSource(candidates=[candidate("ae-1", image_url="", product_url="")])
        await make_service(source).run_ingestion()

        trend = store.get_trend_by_external_id("ae-1", "aliexpress")
        assert trend.image_url is None
        assert trend.product_url is None


# =============================================================
# TEST: Normalize and deduplicate
# =============================================================

class TestNormalizeAndDedup:
    """Rejections are counted; duplicates are dropped silently."""

    @pytest.mark.asyncio
    async def test_duplicates_in_one_fetch_first_wins(self, make_service, store):
        source = StaticSource(candidates=[
            candidate("ae-1", price="10.00", title="First"),
            candidate("ae-1", price="99.00", title="Second"),
        ])

        run = await make_service(source).run_ingestion()

        result = run.sources[0]
        assert result.fetched == 2
        assert result.upserted == 1
        assert result.errors == 0

        trend = store.get_trend_by_external_id("ae-1", "aliexpress")
        assert trend.name == "First"
        assert [s.price for s in store.get_price_snapshots(trend.id)] == ["10.00"]

    @pytest.mark.asyncio
    async def test_rejected_candidates_count_as_errors(self, make_service):
        source = StaticSource(candidates=[
            candidate("ae-1"),
            None,
            candidate("ae-2", price="free"),
            candidate("ae-3"),
        ])

        run = await make_service(source).run_ingestion()

        result = run.sources[0]
        assert result.fetched == 4
        assert result.upserted == 2
        assert result.errors == 2
        assert result.status == IngestionStatus.PARTIAL

    @pytest.mark.asyncio
    async def test_unstorable_price_rejected_before_persistence(self, make_service, store):
        source = StaticSource(candidates=[candidate("ae-1", price="1e30"), candidate("ae-2")])

        run = await make_service(source).run_ingestion()

        result = run.sources[0]
        assert result.upserted == 1
        assert result.errors == 1
        assert "rejected by normalizer" in result.error_messages[0]
        assert store.get_trend_by_external_id("ae-1", "aliexpress") is None

    @pytest.mark.asyncio
    async def test_negative_zero_price_stored_unsigned(self, make_service, store):
        source = StaticSource(candidates=[candidate("ae-1", price="-0")])

        run = await make_service(source).run_ingestion()

        assert run.total_errors == 0
        trend = store.get_trend_by_external_id("ae-1", "aliexpress")
        assert [s.price for s in store.get_price_snapshots(trend.id)] == ["0.00"]
        assert "USD 0.00." in trend.description

    @pytest.mark.asyncio
    async def test_batches_cover_every_product(self, make_service, store):
        source = StaticSource(candidates=[candidate(f"ae-{i}") for i in range(7)])

        run = await make_service(source, batch_size=3).run_ingestion()

        assert run.total_upserted == 7
        assert store.count_trends() == 7


# =============================================================
# TEST: Failure isolation
# =============================================================

class TestFailureIsolation:
    """One failing source or item never stops the rest."""

    @pytest.mark.asyncio
    async def test_failing_source_does_not_stop_next(self, make_service, store):
        broken = StaticSource(SourcePlatform.ALIEXPRESS, error=RuntimeError("api down"))
        healthy = StaticSource(SourcePlatform.TIKTOK, candidates=[candidate("tt-1", source="tiktok")])

        run = await make_service(broken, healthy).run_ingestion()

        failed, ok = run.sources
        assert failed.status == IngestionStatus.FAILED
        assert failed.errors == 1
        assert "api down" in failed.error_messages[0]
        assert ok.status == IngestionStatus.SUCCESS
        assert ok.upserted == 1
        assert store.count_trends() == 1

    @pytest.mark.asyncio
    async def test_fetch_timeout_counts_one_error(self, make_service):
        slow = SlowSource(SourcePlatform.ALIEXPRESS)

        run = await make_service(slow, fetch_timeout_seconds=0.05).run_ingestion()

        result = run.sources[0]
        assert result.status == IngestionStatus.FAILED
        assert result.errors == 1
        assert "timed out" in result.error_messages[0]

    @pytest.mark.asyncio
    async def test_failing_item_does_not_stop_batch(self, make_service, store):
        source = StaticSource(candidates=[candidate("ae-1"), candidate("ae-2"), candidate("ae-3")])
        service = make_service(source)
        original = store.create_price_snapshot

        def flaky_snapshot(trend_id, source, price, recorded_at):
            trend = store.get_trend(trend_id)
            if trend.external_id == "ae-2":
                raise RuntimeError("disk full")
            return original(trend_id, source, price, recorded_at)

        with patch.object(store, "create_price_snapshot", side_effect=flaky_snapshot):
            run = await service.run_ingestion()

        result = run.sources[0]
        # Counted as upserted before the snapshot failed
        assert result.upserted == 3
        assert result.errors == 1
        assert result.status == IngestionStatus.PARTIAL
        assert store.count_trends() == 3

        failed = store.get_trend_by_external_id("ae-2", "aliexpress")
        assert store.get_snapshot_count(failed.id) == 0

    @pytest.mark.asyncio
    async def test_store_failure_counted_once_per_item(self, make_service, store):
        source = StaticSource(candidates=[candidate("ae-1"), candidate("ae-2")])
        service = make_service(source)
        missing = RecordNotFoundError("TrendRepository", 99, "update_score")

        with patch.object(store, "update_trend_score", side_effect=[missing, None]):
            run = await service.run_ingestion()

        result = run.sources[0]
        assert result.upserted == 2
        assert result.errors == 1
        assert result.error_messages[0].startswith("ae-1: storage failed during update_score")
        assert result.status == IngestionStatus.PARTIAL

    @pytest.mark.asyncio
    async def test_disabled_source_is_skipped(self, make_service):
        disabled = StaticSource(
            candidates=[candidate("ae-1")],
            config=SourceConfig(enabled=False),
        )

        run = await make_service(disabled).run_ingestion()

        assert run.sources == []
        assert disabled.fetch_calls == 0


# =============================================================
# TEST: Storage errors
# =============================================================

class TestStorageErrors:
    """Store failures surface as StorageError tagged with the source."""

    @pytest.fixture
    def product(self):
        return normalize_product(candidate("ae-1"))

    @pytest.fixture
    def result(self, clock):
        return IngestionResult(source="aliexpress", started_at=clock.now())

    @pytest.mark.asyncio
    async def test_missing_record_is_not_recoverable(self, make_service, store, product, result):
        service = make_service()
        missing = RecordNotFoundError("TrendRepository", 1, "update_score")

        with patch.object(store, "update_trend_score", side_effect=missing):
            with pytest.raises(StorageError) as exc_info:
                await service._process_product(product, result)

        error = exc_info.value
        assert error.source == "aliexpress"
        assert error.recoverable is False
        assert error.__cause__ is missing
        assert error.details == {
            "external_id": "ae-1",
            "repository": "TrendRepository",
            "operation": "update_score",
        }

    @pytest.mark.asyncio
    async def test_connection_loss_is_recoverable(self, make_service, store, product, result):
        service = make_service()
        lost = StoreConnectionError("TrendRepository", "upsert", "server closed the connection")

        with patch.object(store, "upsert_trend_by_external_id", side_effect=lost):
            with pytest.raises(StorageError) as exc_info:
                await service._process_product(product, result)

        assert exc_info.value.recoverable is True
        assert exc_info.value.details["operation"] == "upsert"
        assert result.upserted == 0

    @pytest.mark.asyncio
    async def test_failed_commit_is_recoverable(self, make_service, store, product, result):
        service = make_service()
        failed = TransactionError("create_price_snapshot", "database is locked")

        with patch.object(store, "create_price_snapshot", side_effect=failed):
            with pytest.raises(StorageError) as exc_info:
                await service._process_product(product, result)

        assert exc_info.value.recoverable is True
        assert exc_info.value.details["repository"] == "database"

    @pytest.mark.asyncio
    async def test_other_errors_pass_through(self, make_service, store, product, result):
        service = make_service()

        with patch.object(store, "create_price_snapshot", side_effect=RuntimeError("boom")):
            with pytest.raises(RuntimeError, match="boom"):
                await service._process_product(product, result)


# =============================================================
# TEST: Events
# =============================================================

class TestNewTrendEvents:
    """trend:discovered is published once per new trend."""

    @pytest.mark.asyncio
    async def test_event_published_only_on_insert(self, make_service, event_bus):
        received = []
        event_bus.subscribe(EVENT_NEW_TREND, received.append)
        service = make_service(StaticSource(candidates=[candidate("ae-1"), candidate("ae-2")]))

        await service.run_ingestion()
        await service.run_ingestion()

        assert sorted(t.external_id for t in received) == ["ae-1", "ae-2"]
        assert all(t.id is not None for t in received)

    @pytest.mark.asyncio
    async def test_failing_subscriber_does_not_fail_item(self, make_service, event_bus, store):
        def broken(trend):
            raise RuntimeError("listener crashed")

        event_bus.subscribe(EVENT_NEW_TREND, broken)

        run = await make_service(StaticSource(candidates=[candidate("ae-1")])).run_ingestion()

        assert run.total_errors == 0
        trend = store.get_trend_by_external_id("ae-1", "aliexpress")
        assert store.get_snapshot_count(trend.id) == 1


# =============================================================
# TEST: Velocity and score
# =============================================================

class TestVelocityAndScore:
    """Scores are recomputed from this run's velocity."""

    @pytest.mark.asyncio
    async def test_first_run_has_no_velocity(self, make_service, store):
        await make_service(StaticSource(candidates=[candidate("ae-1")])).run_ingestion()

        trend = store.get_trend_by_external_id("ae-1", "aliexpress")
        assert trend.price_velocity is None
        # 50*0.55 + 50*0.30*0.65 = 37.25
        assert trend.trend_score == 37

    @pytest.mark.asyncio
    async def test_price_rise_raises_score(self, make_service, store):
        source = StaticSource(candidates=[candidate("ae-1", price="10.00")])
        service = make_service(source)
        await service.run_ingestion()

        source.set_price("ae-1", "12.00")
        await service.run_ingestion()

        trend = store.get_trend_by_external_id("ae-1", "aliexpress")
        assert trend.price_velocity == "20.00"
        # 37.25 + min(20*0.75, 15)
        assert trend.trend_score == 52

    @pytest.mark.asyncio
    async def test_price_drop_lowers_score(self, make_service, store):
        source = StaticSource(candidates=[candidate("ae-1", price="10.00")])
        service = make_service(source)
        await service.run_ingestion()

        source.set_price("ae-1", "8.00")
        await service.run_ingestion()

        trend = store.get_trend_by_external_id("ae-1", "aliexpress")
        assert trend.price_velocity == "-20.00"
        assert trend.trend_score == 22

    @pytest.mark.asyncio
    async def test_velocity_kept_when_previous_price_is_zero(self, make_service, store):
        source = StaticSource(candidates=[candidate("ae-1", price="10.00")])
        service = make_service(source)
        await service.run_ingestion()
        source.set_price("ae-1", "0")
        await service.run_ingestion()
        source.set_price("ae-1", "5.00")
        await service.run_ingestion()

        trend = store.get_trend_by_external_id("ae-1", "aliexpress")
        # 10 -> 0 gives -100.00; 0 -> 5 cannot be computed
        assert trend.price_velocity == "-100.00"
        assert trend.trend_score == 37

    @pytest.mark.asyncio
    async def test_base_score_from_source(self, make_service, store):
        source = StaticSource(candidates=[candidate("ae-1", base_score=80)])
        await make_service(source).run_ingestion()

        trend = store.get_trend_by_external_id("ae-1", "aliexpress")
        # 80*0.55 + 80*0.30*0.65 = 59.6
        assert trend.trend_score == 60

    @pytest.mark.asyncio
    async def test_default_base_score_is_configurable(self, make_service, store):
        await make_service(
            StaticSource(candidates=[candidate("ae-1")]),
            default_base_score=100,
        ).run_ingestion()

        trend = store.get_trend_by_external_id("ae-1", "aliexpress")
        # 55 + 19.5
        assert trend.trend_score == 75


# =============================================================
# TEST: Source management
# =============================================================

class TestSourceManagement:
    """Registration order and replacement."""

    def test_register_keeps_order_and_replaces_in_place(self, make_service):
        ali = StaticSource(SourcePlatform.ALIEXPRESS)
        tiktok = StaticSource(SourcePlatform.TIKTOK)
        service = make_service(ali, tiktok)

        replacement = StaticSource(SourcePlatform.ALIEXPRESS)
        service.register_source(replacement)

        assert service.get_source_names() == ["aliexpress", "tiktok"]

        service.unregister_source("aliexpress")
        assert service.get_source_names() == ["tiktok"]

    @pytest.mark.asyncio
    async def test_health_status_reports_last_run(self, make_service):
        broken = StaticSource(SourcePlatform.TIKTOK, error=RuntimeError("x"))
        service = make_service(broken)

        assert service.get_last_run() is None
        await service.run_ingestion()

        health = service.get_health_status()
        assert health["run_count"] == 1
        assert health["last_run_errors"] == 1
        assert health["last_run_failed_sources"] == ["tiktok"]
        assert health["sources"]["tiktok"]["enabled"] is True
