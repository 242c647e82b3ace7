"""
Trend Repositories.

============================================================
PURPOSE
============================================================
Repositories for trends and their price history.

============================================================
DATA LIFECYCLE
============================================================
- Trend: upserted by (external_id, source_platform);
  detected_at is never rewritten
- PriceSnapshot: append-only, never updated or deleted

============================================================
REPOSITORIES
============================================================
- TrendRepository: Trend lookup, upsert and field updates
- PriceSnapshotRepository: Snapshot append and history reads

============================================================
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import and_, desc, func, select
from sqlalchemy.orm import Session

from storage.models.trends import PriceSnapshot, Trend
from storage.repositories.base import BaseRepository


@dataclass(frozen=True)
class TrendUpsert:
    """Field values written by an upsert."""
    name: str
    category: str
    trend_score: int
    product_url: Optional[str] = None
    image_url: Optional[str] = None
    description: Optional[str] = None
    detected_at: Optional[datetime] = None


class TrendRepository(BaseRepository[Trend]):
    """
    Repository for trends.

    ============================================================
    SCOPE
    ============================================================
    Owns the (external_id, source_platform) identity. Only
    display fields, score and velocity are ever updated.

    ============================================================
    """

    def __init__(self, session: Session) -> None:
        super().__init__(session, Trend, "TrendRepository")

    # =========================================================
    # WRITE OPERATIONS
    # =========================================================

    def upsert_by_external_id(
        self,
        external_id: str,
        source_platform: str,
        data: TrendUpsert,
    ) -> Tuple[Trend, bool]:
        """
        Insert or update a trend by its marketplace identity.

        Existing rows get name, image_url, category, product_url
        and trend_score refreshed; description and detected_at
        are left untouched.

        Returns:
            (trend, is_new)
        """
        existing = self.get_by_external_id(external_id, source_platform)
        if existing is not None:
            existing.name = data.name
            existing.image_url = data.image_url
            existing.category = data.category
            existing.product_url = data.product_url
            existing.trend_score = data.trend_score
            self._flush("upsert_update")
            return existing, False

        entity = Trend(
            external_id=external_id,
            source_platform=source_platform,
            name=data.name,
            category=data.category,
            description=data.description,
            trend_score=data.trend_score,
            product_url=data.product_url,
            image_url=data.image_url,
        )
        if data.detected_at is not None:
            entity.detected_at = data.detected_at
            entity.created_at = data.detected_at

        created = self._add(entity, key=f"{source_platform}:{external_id}")
        self._logger.debug(f"Created trend {created.id} for {source_platform}:{external_id}")
        return created, True

    def update_velocity(self, trend_id: int, velocity: str) -> Trend:
        trend = self._require(trend_id, "update_velocity")
        trend.price_velocity = velocity
        self._flush("update_velocity")
        return trend

    def update_score(self, trend_id: int, score: int) -> Trend:
        trend = self._require(trend_id, "update_score")
        trend.trend_score = score
        self._flush("update_score")
        return trend

    # =========================================================
    # READ OPERATIONS
    # =========================================================

    def get_by_id(self, trend_id: int) -> Optional[Trend]:
        return self._get(trend_id)

    def get_by_external_id(self, external_id: str, source_platform: str) -> Optional[Trend]:
        stmt = select(Trend).where(and_(
            Trend.external_id == external_id,
            Trend.source_platform == source_platform,
        ))
        return self._scalar(stmt)

    def list_trends(
        self,
        category: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[Trend]:
        """
        List trends, highest score first.

        Args:
            category: Exact category match
            search: Case-insensitive substring of the name
        """
        stmt = select(Trend)
        if category:
            stmt = stmt.where(Trend.category == category)
        if search:
            stmt = stmt.where(Trend.name.ilike(f"%{search}%"))
        stmt = stmt.order_by(desc(Trend.trend_score), Trend.id)
        return self._scalars(stmt)

    def count_trends(self) -> int:
        return self._count()


class PriceSnapshotRepository(BaseRepository[PriceSnapshot]):
    """
    Repository for price snapshots.

    Append-only: there are no update or delete methods.
    """

    def __init__(self, session: Session) -> None:
        super().__init__(session, PriceSnapshot, "PriceSnapshotRepository")

    def create_snapshot(
        self,
        trend_id: int,
        source: str,
        price: str,
        recorded_at: datetime,
    ) -> PriceSnapshot:
        entity = PriceSnapshot(
            trend_id=trend_id,
            source=source,
            price=price,
            recorded_at=recorded_at,
        )
        return self._add(entity)

    def get_latest(self, trend_id: int, limit: int = 2) -> List[PriceSnapshot]:
        """Most recent snapshots first; ties on recorded_at resolve by insert order."""
        stmt = (
            select(PriceSnapshot)
            .where(PriceSnapshot.trend_id == trend_id)
            .order_by(desc(PriceSnapshot.recorded_at), desc(PriceSnapshot.id))
            .limit(limit)
        )
        return self._scalars(stmt)

    def list_for_trend(self, trend_id: int) -> List[PriceSnapshot]:
        """Full history, oldest first."""
        stmt = (
            select(PriceSnapshot)
            .where(PriceSnapshot.trend_id == trend_id)
            .order_by(PriceSnapshot.recorded_at, PriceSnapshot.id)
        )
        return self._scalars(stmt)

    def count_for_trend(self, trend_id: int) -> int:
        return self._count(PriceSnapshot.trend_id == trend_id)

    def count_by_trend(self, trend_ids: Sequence[int]) -> Dict[int, int]:
        """Snapshot counts for several trends; trends without rows are omitted."""
        if not trend_ids:
            return {}
        stmt = (
            select(PriceSnapshot.trend_id, func.count())
            .where(PriceSnapshot.trend_id.in_(list(trend_ids)))
            .group_by(PriceSnapshot.trend_id)
        )
        with self._translate_errors("count_by_trend"):
            return {trend_id: count for trend_id, count in self._session.execute(stmt)}
