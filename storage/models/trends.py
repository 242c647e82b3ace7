"""
Trend Domain ORM Models.

============================================================
PURPOSE
============================================================
Models for deduplicated marketplace products (trends) and
their time-series price observations.

============================================================
DATA LIFECYCLE ROLE
============================================================
- Trend: MUTABLE display fields, score and velocity;
  detected_at is set once at creation
- PriceSnapshot: IMMUTABLE (append-only)
- Writers: Ingestion service only
- Consumers: Read services, scoring

============================================================
MODELS
============================================================
- Trend: One row per (external_id, source_platform)
- PriceSnapshot: One row per observed price

============================================================
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storage.models.base import Base, utc_timestamp


class Trend(Base):
    """
    A product tracked across ingestion runs.

    ============================================================
    IDENTITY
    ============================================================
    (external_id, source_platform) is unique. Writers must
    upsert on this pair; blind inserts violate the constraint.

    ============================================================
    """

    __tablename__ = "trends"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        comment="Surrogate key"
    )

    # Display fields (refreshed on every upsert)
    name: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        comment="Product title"
    )

    category: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default="Other",
        comment="Canonical category"
    )

    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Short description written at discovery"
    )

    product_url: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Marketplace product page"
    )

    image_url: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Main product image"
    )

    # Identity
    source_platform: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Marketplace the product was fetched from"
    )

    external_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Product identifier on the source marketplace"
    )

    # Derived signals
    trend_score: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=50,
        comment="Composite score 0-100"
    )

    price_velocity: Mapped[Optional[str]] = mapped_column(
        String(32),
        nullable=True,
        comment="Percent change between the two latest snapshots"
    )

    detected_at: Mapped[datetime] = utc_timestamp("First time the product was ingested")
    created_at: Mapped[datetime] = utc_timestamp("Row creation time")

    snapshots: Mapped[List["PriceSnapshot"]] = relationship(
        back_populates="trend",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="raise",
    )

    __table_args__ = (
        UniqueConstraint(
            "external_id",
            "source_platform",
            name="uq_trends_external_id_source_platform",
        ),
        Index("ix_trends_category", "category"),
        Index("ix_trends_trend_score", "trend_score"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "description": self.description,
            "trend_score": self.trend_score,
            "product_url": self.product_url,
            "image_url": self.image_url,
            "source_platform": self.source_platform,
            "external_id": self.external_id,
            "price_velocity": self.price_velocity,
            "detected_at": self.detected_at.isoformat() if self.detected_at else None,
        }

    def __repr__(self) -> str:
        return (
            f"<Trend(id={self.id}, source={self.source_platform}, "
            f"external_id={self.external_id}, score={self.trend_score})>"
        )


class PriceSnapshot(Base):
    """
    A single observed price for a trend.

    Append-only: rows are never updated or deleted by the
    pipeline. Price is stored as a decimal string.
    """

    __tablename__ = "price_snapshots"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        comment="Surrogate key"
    )

    trend_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("trends.id", ondelete="CASCADE"),
        nullable=False,
        comment="Owning trend"
    )

    source: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Marketplace the price was observed on"
    )

    price: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="Decimal price as text, two places"
    )

    recorded_at: Mapped[datetime] = utc_timestamp("Observation time")

    trend: Mapped["Trend"] = relationship(back_populates="snapshots")

    __table_args__ = (
        Index("ix_price_snapshots_trend_recorded", "trend_id", "recorded_at"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "trend_id": self.trend_id,
            "source": self.source,
            "price": self.price,
            "recorded_at": self.recorded_at.isoformat() if self.recorded_at else None,
        }

    def __repr__(self) -> str:
        return f"<PriceSnapshot(trend_id={self.trend_id}, price={self.price}, recorded_at={self.recorded_at})>"
