"""
Storage Errors.

============================================================
PURPOSE
============================================================
Exceptions raised by the trend and snapshot repositories.
SQLAlchemy errors never leave the storage layer unwrapped.

The ingestion service treats any RepositoryException raised
while persisting a product as one item error; the scheduler
sees it only if it escapes a whole run.

============================================================
"""

from typing import Any, Dict, Optional


class RepositoryException(Exception):
    """Base class; carries the repository and operation that failed."""

    def __init__(
        self,
        message: str,
        repository_name: str,
        operation: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.repository_name = repository_name
        self.operation = operation
        self.details = details or {}
        super().__init__(f"[{repository_name}] {operation}: {message}")


class RecordNotFoundError(RepositoryException):
    """A row addressed by primary key does not exist."""

    def __init__(self, repository_name: str, record_id: Any, operation: str = "get") -> None:
        super().__init__(
            message=f"no row with id={record_id}",
            repository_name=repository_name,
            operation=operation,
            details={"id": record_id},
        )
        self.record_id = record_id


class DuplicateRecordError(RepositoryException):
    """
    An insert collided with a unique key.

    For trends the key is "<source_platform>:<external_id>";
    upserts look the row up first, so this only surfaces when
    two writers race on the same listing.
    """

    def __init__(self, repository_name: str, operation: str, key: str) -> None:
        super().__init__(
            message=f"{key} already stored",
            repository_name=repository_name,
            operation=operation,
            details={"key": key},
        )
        self.key = key


class IntegrityError(RepositoryException):
    """Any other constraint violation: foreign key, NOT NULL, CHECK."""

    def __init__(
        self,
        repository_name: str,
        operation: str,
        constraint: str,
        original_error: str,
    ) -> None:
        super().__init__(
            message=f"{constraint} constraint violated: {original_error}",
            repository_name=repository_name,
            operation=operation,
            details={"constraint": constraint},
        )
        self.constraint = constraint


class ConnectionError(RepositoryException):
    """The database could not be reached."""

    def __init__(self, repository_name: str, operation: str, original_error: str) -> None:
        super().__init__(
            message=f"database unavailable: {original_error}",
            repository_name=repository_name,
            operation=operation,
        )


class QueryError(RepositoryException):
    """A statement failed for a reason other than a constraint or connection."""

    def __init__(self, repository_name: str, operation: str, original_error: str) -> None:
        super().__init__(
            message=original_error,
            repository_name=repository_name,
            operation=operation,
        )


class TransactionError(RepositoryException):
    """Commit failed; the transaction has been rolled back."""

    def __init__(self, operation: str, original_error: str) -> None:
        super().__init__(
            message=f"commit failed: {original_error}",
            repository_name="database",
            operation=operation,
        )


def constraint_kind(error_text: str) -> str:
    """
    Classify a driver integrity message.

    SQLite and PostgreSQL word these differently
    ("UNIQUE constraint failed" vs "duplicate key value").

    Returns:
        "unique", "foreign_key", "not_null", "check" or "unknown"
    """
    text = error_text.lower()
    if "unique" in text or "duplicate key" in text:
        return "unique"
    if "foreign key" in text:
        return "foreign_key"
    if "not null" in text:
        return "not_null"
    if "check constraint" in text:
        return "check"
    return "unknown"
