"""
Scoring Engine - Trend Score.

============================================================
RESPONSIBILITY
============================================================
Produces a composite 0-100 trend score and a confidence band.

============================================================
COMPOSITE LOGIC
============================================================
1. base      = raw score clamped to [0, 100] (50 if missing)
2. source    = base * platform weight * 0.65
3. velocity  = price velocity * 0.75, clamped to [-15, +15]
               (rising price nudges up, falling nudges down)
4. score     = round(clamp(base * 0.55 + source + velocity))

Confidence band, evaluated in order:
- high:   >= 10 snapshots and a defined velocity
- medium: >= 3 snapshots
- low:    otherwise

============================================================
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from .numeric import clamp, round_half_up, to_float
from .source_weights import get_source_weight


DEFAULT_RAW_SCORE = 50.0

BASE_FACTOR = 0.55
SOURCE_FACTOR = 0.65
VELOCITY_FACTOR = 0.75
VELOCITY_CAP = 15.0

HIGH_CONFIDENCE_SNAPSHOTS = 10
MEDIUM_CONFIDENCE_SNAPSHOTS = 3


class ConfidenceBand(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class ScoringInput:
    """Signals consumed by the scoring engine; never persisted."""
    raw_score: Any = None
    price_velocity: Optional[str] = None
    source_platform: Optional[str] = None
    snapshot_count: int = 0


@dataclass(frozen=True)
class TrendScore:
    trend_score: int
    confidence_band: ConfidenceBand


def confidence_band_for(snapshot_count: Optional[int], price_velocity: Optional[str]) -> ConfidenceBand:
    count = snapshot_count or 0
    if count >= HIGH_CONFIDENCE_SNAPSHOTS and price_velocity is not None:
        return ConfidenceBand.HIGH
    if count >= MEDIUM_CONFIDENCE_SNAPSHOTS:
        return ConfidenceBand.MEDIUM
    return ConfidenceBand.LOW


def calculate_trend_score(data: ScoringInput) -> TrendScore:
    """
    Compute the composite trend score.

    Args:
        data: Raw score, optional velocity, platform and snapshot count

    Returns:
        TrendScore with an integer score in [0, 100] and a band
    """
    raw_score = to_float(data.raw_score)
    base = clamp(DEFAULT_RAW_SCORE if raw_score is None else raw_score, 0, 100)

    velocity = to_float(data.price_velocity) or 0.0
    source_multiplier = get_source_weight(data.source_platform)

    velocity_contribution = clamp(velocity * VELOCITY_FACTOR, -VELOCITY_CAP, VELOCITY_CAP)
    source_contribution = base * source_multiplier * SOURCE_FACTOR

    raw = base * BASE_FACTOR + source_contribution + velocity_contribution

    return TrendScore(
        trend_score=round_half_up(clamp(raw, 0, 100)),
        confidence_band=confidence_band_for(data.snapshot_count, data.price_velocity),
    )
