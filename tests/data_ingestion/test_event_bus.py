"""
Tests for the ingestion event bus.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from data_ingestion.events import EVENT_NEW_TREND, IngestionEventBus


class TestIngestionEventBus:
    """Observer list with failure isolation."""

    @pytest.mark.asyncio
    async def test_delivers_to_sync_and_async_handlers_in_order(self):
        bus = IngestionEventBus()
        calls = []

        def sync_handler(payload):
            calls.append(("sync", payload))

        async def async_handler(payload):
            calls.append(("async", payload))

        bus.subscribe(EVENT_NEW_TREND, sync_handler)
        bus.subscribe(EVENT_NEW_TREND, async_handler)

        delivered = await bus.publish(EVENT_NEW_TREND, "trend-1")

        assert delivered == 2
        assert calls == [("sync", "trend-1"), ("async", "trend-1")]

    @pytest.mark.asyncio
    async def test_failing_subscriber_does_not_stop_others(self):
        bus = IngestionEventBus()
        failing = MagicMock(side_effect=RuntimeError("boom"))
        healthy = AsyncMock()

        bus.subscribe(EVENT_NEW_TREND, failing)
        bus.subscribe(EVENT_NEW_TREND, healthy)

        delivered = await bus.publish(EVENT_NEW_TREND, {"id": 1})

        assert delivered == 1
        healthy.assert_awaited_once_with({"id": 1})

    @pytest.mark.asyncio
    async def test_events_are_isolated_by_name(self):
        bus = IngestionEventBus()
        handler = MagicMock()
        bus.subscribe("other:event", handler)

        assert await bus.publish(EVENT_NEW_TREND, 1) == 0
        handler.assert_not_called()

    @pytest.mark.asyncio
    async def test_unsubscribe(self):
        bus = IngestionEventBus()
        handler = MagicMock()
        bus.subscribe(EVENT_NEW_TREND, handler)
        bus.unsubscribe(EVENT_NEW_TREND, handler)

        await bus.publish(EVENT_NEW_TREND, 1)

        handler.assert_not_called()
        assert bus.subscriber_count(EVENT_NEW_TREND) == 0

    def test_duplicate_subscription_is_ignored(self):
        bus = IngestionEventBus()
        handler = MagicMock()
        bus.subscribe(EVENT_NEW_TREND, handler)
        bus.subscribe(EVENT_NEW_TREND, handler)

        assert bus.subscriber_count(EVENT_NEW_TREND) == 1
