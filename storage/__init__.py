"""
Storage Package.

This package manages all trend persistence.

Modules:
- database: Engine, session factory, transaction scope
- models/: ORM models
- repositories/: Data access layer
- trend_store: Transaction-per-call store used by services
"""

from storage.database import (
    create_all_tables,
    create_database_engine,
    create_session_factory,
    get_database_url,
    transaction_scope,
)
from storage.trend_store import TrendStore


__all__ = [
    "TrendStore",
    "create_all_tables",
    "create_database_engine",
    "create_session_factory",
    "get_database_url",
    "transaction_scope",
]
