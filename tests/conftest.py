"""
Shared fixtures: in-memory SQLite trend store, clock, event bus.
"""

from datetime import datetime, timedelta, timezone

import pytest

from core.clock import MockClock
from data_ingestion.events import IngestionEventBus
from storage.database import (
    create_all_tables,
    create_database_engine,
    create_session_factory,
)
from storage.trend_store import TrendStore


@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    engine = create_database_engine("sqlite://")
    create_all_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def store(session_factory):
    return TrendStore(session_factory)


@pytest.fixture
def clock():
    """Clock that ticks one second per read."""
    return MockClock(
        initial_time=datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc),
        auto_advance=timedelta(seconds=1),
    )


@pytest.fixture
def event_bus():
    return IngestionEventBus()
