"""
Base Repository.

============================================================
PURPOSE
============================================================
Shared plumbing for the trend and snapshot repositories:

- Session injection (the caller owns the transaction, see
  storage.database.transaction_scope)
- Translation of SQLAlchemy errors into storage errors
- Primary-key lookups, counts and select helpers

============================================================
"""

import logging
from contextlib import contextmanager
from typing import Any, Generic, Iterator, List, Optional, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import (
    IntegrityError as SQLAlchemyIntegrityError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.orm import Session

from storage.models.base import Base
from storage.repositories.exceptions import (
    ConnectionError,
    DuplicateRecordError,
    IntegrityError,
    QueryError,
    RecordNotFoundError,
    constraint_kind,
)


T = TypeVar("T", bound=Base)


class BaseRepository(Generic[T]):
    """
    Base class for repositories over one ORM model.

    ============================================================
    USAGE
    ============================================================
    ```python
    class TrendRepository(BaseRepository[Trend]):
        def __init__(self, session: Session):
            super().__init__(session, Trend, "TrendRepository")
    ```

    ============================================================
    """

    def __init__(self, session: Session, model_class: Type[T], repository_name: str) -> None:
        self._session = session
        self._model_class = model_class
        self._repository_name = repository_name
        self._logger = logging.getLogger(f"repository.{repository_name}")

    @property
    def session(self) -> Session:
        return self._session

    @property
    def repository_name(self) -> str:
        return self._repository_name

    # =========================================================
    # ERROR TRANSLATION
    # =========================================================

    @contextmanager
    def _translate_errors(self, operation: str, key: Optional[str] = None) -> Iterator[None]:
        """
        Re-raise SQLAlchemy errors as storage errors.

        Args:
            operation: Name used in logs and error messages
            key: Identity reported when a unique key collides
        """
        try:
            yield
        except SQLAlchemyIntegrityError as e:
            kind = constraint_kind(str(e.orig) if e.orig is not None else str(e))
            self._logger.error(f"{operation} violated a {kind} constraint: {e.orig}")
            if kind == "unique":
                raise DuplicateRecordError(
                    self._repository_name, operation, key or "unknown"
                ) from e
            raise IntegrityError(self._repository_name, operation, kind, str(e.orig)) from e
        except OperationalError as e:
            self._logger.error(f"{operation} failed, database unavailable: {e}")
            raise ConnectionError(self._repository_name, operation, str(e)) from e
        except SQLAlchemyError as e:
            self._logger.error(f"{operation} failed: {e}")
            raise QueryError(self._repository_name, operation, str(e)) from e

    # =========================================================
    # HELPERS
    # =========================================================

    def _add(self, entity: T, key: Optional[str] = None) -> T:
        """Add and flush so the generated id is populated."""
        with self._translate_errors("add", key):
            self._session.add(entity)
            self._session.flush()
        return entity

    def _flush(self, operation: str) -> None:
        with self._translate_errors(operation):
            self._session.flush()

    def _get(self, record_id: int) -> Optional[T]:
        with self._translate_errors("get"):
            return self._session.get(self._model_class, record_id)

    def _require(self, record_id: int, operation: str) -> T:
        """Primary-key lookup that raises RecordNotFoundError when missing."""
        entity = self._get(record_id)
        if entity is None:
            raise RecordNotFoundError(self._repository_name, record_id, operation)
        return entity

    def _count(self, *criteria: Any) -> int:
        stmt = select(func.count()).select_from(self._model_class)
        if criteria:
            stmt = stmt.where(*criteria)
        with self._translate_errors("count"):
            return self._session.execute(stmt).scalar() or 0

    def _scalars(self, stmt: Any, operation: str = "query") -> List[T]:
        with self._translate_errors(operation):
            return list(self._session.execute(stmt).scalars().all())

    def _scalar(self, stmt: Any, operation: str = "query") -> Optional[T]:
        with self._translate_errors(operation):
            return self._session.execute(stmt).scalar_one_or_none()
