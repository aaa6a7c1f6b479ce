from typing import TypeVar

from fastapi import HTTPException

from kitchen_ledger.core.errors import LedgerError
from kitchen_ledger.core.result import OperationResult

T = TypeVar("T")


def unwrap(result: OperationResult[T]) -> T:
    """Return the value of a successful result, or raise the matching HTTP error."""
    if not result.ok:
        raise to_http(result.error)
    return result.value  # type: ignore[return-value]


def to_http(error: LedgerError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.to_detail())
