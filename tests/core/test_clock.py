"""
Tests for the injected clocks.
"""

from datetime import datetime, timedelta, timezone

from core.clock import MockClock, SystemClock


def test_system_clock_is_utc():
    assert SystemClock().now().tzinfo == timezone.utc


def test_mock_clock_is_frozen_without_auto_advance():
    start = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
    clock = MockClock(start)

    assert clock.now() == start
    assert clock.now() == start

    clock.advance(timedelta(hours=6))
    assert clock.now() == start + timedelta(hours=6)


def test_mock_clock_auto_advances_after_each_read():
    start = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
    clock = MockClock(start, auto_advance=timedelta(seconds=1))

    assert [clock.now() for _ in range(3)] == [
        start,
        start + timedelta(seconds=1),
        start + timedelta(seconds=2),
    ]


def test_naive_start_is_treated_as_utc():
    clock = MockClock(datetime(2024, 3, 1, 12, 0))
    assert clock.now() == datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
