"""
Core Module Package.

Infrastructure shared by every other package.

Components:
- clock: Injected UTC time source (system and mock)
"""

from .clock import ClockProtocol, MockClock, SystemClock


__all__ = [
    "ClockProtocol",
    "MockClock",
    "SystemClock",
]
