from __future__ import annotations

from collections.abc import Callable
from enum import Enum
import logging
from typing import Generic, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import AppError, RepositoryError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TransactionState(str, Enum):
    pending = "pending"
    applied = "applied"
    rolled_back = "rolled_back"


class SaveTransaction(Generic[T]):
    """One save against the class store, ending either applied or rolled back.

    ``run`` executes the write callback, commits on success and rolls the
    session back on any failure. A transaction can only leave ``pending`` once.
    """

    def __init__(self, db: Session, *, label: str = "save") -> None:
        self._db = db
        self.label = label
        self.state = TransactionState.pending
        self.error: Exception | None = None
        self.result: T | None = None

    def run(self, write: Callable[[Session], T]) -> T:
        if self.state is not TransactionState.pending:
            raise RuntimeError(f"Transaction {self.label!r} already {self.state.value}")
        try:
            result = write(self._db)
            self._db.commit()
        except AppError as exc:
            self._roll_back(exc)
            raise
        except SQLAlchemyError as exc:
            self._roll_back(exc)
            logger.exception("Transaction %s failed", self.label)
            raise RepositoryError(f"Could not {self.label}: {exc.__class__.__name__}: {exc}") from exc
        except Exception as exc:
            self._roll_back(exc)
            raise
        self.result = result
        self.state = TransactionState.applied
        return result

    def _roll_back(self, exc: Exception) -> None:
        self._db.rollback()
        self.error = exc
        self.state = TransactionState.rolled_back

    @property
    def applied(self) -> bool:
        return self.state is TransactionState.applied

    @property
    def rolled_back(self) -> bool:
        return self.state is TransactionState.rolled_back
