from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from fastapi import status


class LedgerError(Exception):
    """Base for every failure a ledger operation reports to its caller."""

    code = "ledger_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_detail(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message}


class ValidationError(LedgerError):
    code = "validation_error"


class NotFound(LedgerError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} not found")
        self.entity = entity
        self.entity_id = entity_id


class Inactive(LedgerError):
    code = "inactive"


@dataclass(frozen=True)
class Deficiency:
    product_id: int
    product_name: str
    required: Decimal
    available: Decimal
    unit: str

    def describe(self) -> str:
        return f"{self.product_name} (need {self.required} {self.unit}, have {self.available} {self.unit})"


class InsufficientInventory(LedgerError):
    code = "insufficient_inventory"

    def __init__(self, deficiencies: list[Deficiency]):
        super().__init__("Insufficient inventory for: " + ", ".join(d.describe() for d in deficiencies))
        self.deficiencies = deficiencies

    def to_detail(self) -> dict[str, Any]:
        detail = super().to_detail()
        detail["deficiencies"] = [
            {
                "product_id": d.product_id,
                "product_name": d.product_name,
                "required": str(d.required),
                "available": str(d.available),
                "unit": d.unit,
            }
            for d in self.deficiencies
        ]
        return detail


class AlreadyProcessed(LedgerError):
    code = "already_processed"
    status_code = status.HTTP_409_CONFLICT


class InvalidTransition(LedgerError):
    code = "invalid_transition"
    status_code = status.HTTP_409_CONFLICT


class ConcurrencyConflict(LedgerError):
    code = "concurrency_conflict"
    status_code = status.HTTP_409_CONFLICT


class BatchFailed(LedgerError):
    """A batch stopped at ``index``; items before it stay applied."""

    def __init__(self, index: int, error: LedgerError, applied: list[Any]):
        super().__init__(f"Item {index + 1} failed: {error.message}")
        self.code = error.code
        self.status_code = error.status_code
        self.index = index
        self.error = error
        self.applied = applied

    def to_detail(self) -> dict[str, Any]:
        detail = self.error.to_detail()
        detail["message"] = self.message
        detail["failed_index"] = self.index
        detail["applied_count"] = len(self.applied)
        return detail
