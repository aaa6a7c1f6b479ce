from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from kitchen_ledger.core.errors import ValidationError
from kitchen_ledger.core.logging import get_logger
from kitchen_ledger.core.result import ledger_operation
from kitchen_ledger.models.inventory import MovementSource, MovementType, Product, ProductUnit, StockMovement
from kitchen_ledger.services.ledger import ZERO, apply_movement, lock_products, quantize_money, quantize_quantity

logger = get_logger(__name__)

DEFAULT_REASON = "Inventory Sync Adjustment"


@dataclass(frozen=True)
class AdjustmentOutcome:
    product: Product
    movement: StockMovement | None
    old_quantity: Decimal
    new_quantity: Decimal

    @property
    def change(self) -> Decimal:
        return self.new_quantity - self.old_quantity


@ledger_operation
def adjust(db: Session, product_id: int, new_quantity: Decimal, reason: str | None = None) -> AdjustmentOutcome:
    """Reconcile a product with a physical count.

    A count equal to the recorded quantity is a no-op and writes nothing.
    """
    target = quantize_quantity(new_quantity)
    if target < ZERO:
        raise ValidationError("Counted quantity cannot be negative")

    product = lock_products(db, [product_id])[product_id]
    old_quantity = Decimal(product.quantity)
    difference = target - old_quantity
    if difference == ZERO:
        db.rollback()
        return AdjustmentOutcome(product=product, movement=None, old_quantity=old_quantity, new_quantity=old_quantity)

    direction = "increased" if difference > ZERO else "decreased"
    movement = apply_movement(
        db,
        product,
        movement_type=MovementType.ADJUSTMENT,
        quantity_delta=difference,
        source=MovementSource.MANUAL,
        reason=reason.strip() if reason and reason.strip() else DEFAULT_REASON,
        description=(
            f"Stock {direction} by {abs(difference)} {product.unit.value} during inventory count "
            f"(was {old_quantity}, now {target})"
        ),
    )
    db.commit()
    logger.info(
        "stock_adjusted",
        product_id=product_id,
        movement_id=movement.id,
        old_quantity=str(old_quantity),
        new_quantity=str(target),
    )
    return AdjustmentOutcome(product=product, movement=movement, old_quantity=old_quantity, new_quantity=target)


@dataclass
class AdjustmentSummary:
    product_id: int
    product_name: str
    unit: ProductUnit
    total_loss: Decimal = ZERO
    total_found: Decimal = ZERO
    loss_value: Decimal = ZERO
    adjustments: int = 0


def adjustment_summary(
    db: Session,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
) -> list[AdjustmentSummary]:
    """Waste (counted below record) and found stock (counted above), per product."""
    query = (
        select(StockMovement, Product.name, Product.unit)
        .join(Product, Product.id == StockMovement.product_id)
        .where(StockMovement.movement_type == MovementType.ADJUSTMENT)
        .order_by(StockMovement.product_id.asc())
    )
    if date_from is not None:
        query = query.where(StockMovement.created_at >= date_from)
    if date_to is not None:
        query = query.where(StockMovement.created_at <= date_to)

    summaries: dict[int, AdjustmentSummary] = {}
    for movement, name, unit in db.execute(query).all():
        summary = summaries.setdefault(
            movement.product_id,
            AdjustmentSummary(product_id=movement.product_id, product_name=name, unit=unit),
        )
        summary.adjustments += 1
        delta = Decimal(movement.quantity_delta)
        if delta < ZERO:
            summary.total_loss += -delta
            if movement.total_value is not None:
                summary.loss_value = quantize_money(summary.loss_value + Decimal(movement.total_value))
        else:
            summary.total_found += delta
    return sorted(summaries.values(), key=lambda s: s.loss_value, reverse=True)
