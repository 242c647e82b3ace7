"""
Repository Layer Package.

============================================================
PURPOSE
============================================================
The Repository Layer is the ONLY gateway to persistent storage.
All database access goes through repository classes.

============================================================
ARCHITECTURE PRINCIPLES
============================================================
1. Session Injection: Sessions are injected, not created internally
2. Explicit Methods: No generic 'execute', clear method names
3. Immutability: Price snapshots are append-only
4. Exception Handling: All DB errors wrapped in repository exceptions

============================================================
USAGE
============================================================

    from storage.database import transaction_scope
    from storage.repositories import TrendRepository

    with transaction_scope(session_factory) as session:
        repo = TrendRepository(session)
        trend = repo.get_by_id(1)

============================================================
"""

from storage.repositories.base import BaseRepository
from storage.repositories.exceptions import (
    ConnectionError,
    DuplicateRecordError,
    IntegrityError,
    QueryError,
    RecordNotFoundError,
    RepositoryException,
    TransactionError,
)
from storage.repositories.trends import (
    PriceSnapshotRepository,
    TrendRepository,
    TrendUpsert,
)


__all__ = [
    "BaseRepository",
    "ConnectionError",
    "DuplicateRecordError",
    "IntegrityError",
    "PriceSnapshotRepository",
    "QueryError",
    "RecordNotFoundError",
    "RepositoryException",
    "TransactionError",
    "TrendRepository",
    "TrendUpsert",
]
