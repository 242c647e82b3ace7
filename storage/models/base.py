"""
Base ORM Model.

Declarative base for the trend store plus the timestamp column
shared by trends and snapshots. Constraint names follow a fixed
convention so SQLite and PostgreSQL schemas line up.
"""

from datetime import datetime

from sqlalchemy import DateTime, MetaData, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_N_name)s",
    "uq": "uq_%(table_name)s_%(column_0_N_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Declarative base; every datetime column is timezone-aware."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    type_annotation_map = {
        datetime: DateTime(timezone=True),
    }


def utc_timestamp(comment: str) -> Mapped[datetime]:
    """
    Non-null UTC timestamp column.

    The database default only applies when the writer leaves the
    column unset; the ingestion service always passes its clock's
    time explicitly.
    """
    return mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        comment=comment,
    )
