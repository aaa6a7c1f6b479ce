import functools
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from sqlalchemy.orm import Session

from kitchen_ledger.core.errors import LedgerError
from kitchen_ledger.core.logging import get_logger

T = TypeVar("T")

logger = get_logger(__name__)


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """Tagged outcome of a ledger operation."""

    ok: bool
    value: T | None = None
    error: LedgerError | None = None

    @classmethod
    def success(cls, value: T) -> "OperationResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: LedgerError) -> "OperationResult[T]":
        return cls(ok=False, error=error)

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


def ledger_operation(func: Callable[..., T]) -> Callable[..., OperationResult[T]]:
    """Run ``func(db, ...)`` as one unit of work and tag its outcome.

    A ``LedgerError`` rolls the session back and becomes a failed result.
    Anything else rolls back and propagates.
    """

    @functools.wraps(func)
    def wrapper(db: Session, *args: Any, **kwargs: Any) -> OperationResult[T]:
        try:
            value = func(db, *args, **kwargs)
        except LedgerError as exc:
            db.rollback()
            logger.warning(
                "ledger_operation_failed",
                operation=func.__name__,
                code=exc.code,
                error=exc.message,
            )
            return OperationResult.failure(exc)
        except Exception:
            db.rollback()
            raise
        return OperationResult.success(value)

    return wrapper
