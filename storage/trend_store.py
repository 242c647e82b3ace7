"""
Storage - Trend Store.

============================================================
RESPONSIBILITY
============================================================
Persistence operations used by the ingestion service and
the read services.

- Upsert trends by (external_id, source_platform)
- Append price snapshots
- Update velocity and score
- Read trends and price history

============================================================
TRANSACTIONS
============================================================
Every operation runs in its own transaction. The ingestion
sequence upsert -> snapshot -> velocity -> score is therefore
NOT atomic: a failure between steps leaves earlier steps
committed. The next run's snapshot and recompute repair it.

============================================================
"""

from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import sessionmaker

from storage.database import transaction_scope
from storage.models.trends import PriceSnapshot, Trend
from storage.repositories.trends import (
    PriceSnapshotRepository,
    TrendRepository,
    TrendUpsert,
)


class TrendStore:
    """
    Transaction-per-call facade over the trend repositories.

    Returned ORM objects are detached but fully loaded
    (sessions are created with expire_on_commit=False).
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    # =========================================================
    # INGESTION WRITES
    # =========================================================

    def upsert_trend_by_external_id(
        self,
        external_id: str,
        source_platform: str,
        data: TrendUpsert,
    ) -> Tuple[Trend, bool]:
        with transaction_scope(self._session_factory) as session:
            return TrendRepository(session).upsert_by_external_id(
                external_id, source_platform, data
            )

    def create_price_snapshot(
        self,
        trend_id: int,
        source: str,
        price: str,
        recorded_at: datetime,
    ) -> PriceSnapshot:
        with transaction_scope(self._session_factory) as session:
            return PriceSnapshotRepository(session).create_snapshot(
                trend_id, source, price, recorded_at
            )

    def update_trend_velocity(self, trend_id: int, velocity: str) -> None:
        with transaction_scope(self._session_factory) as session:
            TrendRepository(session).update_velocity(trend_id, velocity)

    def update_trend_score(self, trend_id: int, score: int) -> None:
        with transaction_scope(self._session_factory) as session:
            TrendRepository(session).update_score(trend_id, score)

    # =========================================================
    # READS
    # =========================================================

    def get_last_two_price_snapshots(self, trend_id: int) -> List[PriceSnapshot]:
        """Most recent first, at most two."""
        with transaction_scope(self._session_factory) as session:
            return PriceSnapshotRepository(session).get_latest(trend_id, limit=2)

    def get_snapshot_count(self, trend_id: int) -> int:
        with transaction_scope(self._session_factory) as session:
            return PriceSnapshotRepository(session).count_for_trend(trend_id)

    def get_snapshot_counts(self, trend_ids: Sequence[int]) -> Dict[int, int]:
        with transaction_scope(self._session_factory) as session:
            return PriceSnapshotRepository(session).count_by_trend(trend_ids)

    def get_price_snapshots(self, trend_id: int) -> List[PriceSnapshot]:
        """Full history, oldest first."""
        with transaction_scope(self._session_factory) as session:
            return PriceSnapshotRepository(session).list_for_trend(trend_id)

    def get_trend(self, trend_id: int) -> Optional[Trend]:
        with transaction_scope(self._session_factory) as session:
            return TrendRepository(session).get_by_id(trend_id)

    def get_trend_by_external_id(self, external_id: str, source_platform: str) -> Optional[Trend]:
        with transaction_scope(self._session_factory) as session:
            return TrendRepository(session).get_by_external_id(external_id, source_platform)

    def list_trends(
        self,
        category: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[Trend]:
        with transaction_scope(self._session_factory) as session:
            return TrendRepository(session).list_trends(category=category, search=search)

    def count_trends(self) -> int:
        with transaction_scope(self._session_factory) as session:
            return TrendRepository(session).count_trends()
