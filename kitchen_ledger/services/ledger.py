"""
Stock movement ledger.

Every change to ``Product.quantity`` goes through :func:`apply_movement`,
which writes one immutable ``StockMovement`` row carrying the resulting
balance and moves the product to that balance in the same unit of work.

Concurrent writers are handled twice over: product rows are read with
``SELECT ... FOR UPDATE`` (ids in ascending order, so two multi-product
writers always lock in the same order), and the quantity write itself is a
compare-and-swap keyed on the quantity observed when the row was read.
Backends without row locks (SQLite) still get a ``ConcurrencyConflict``
instead of a lost update.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value

from kitchen_ledger.core.errors import ConcurrencyConflict, Deficiency, InsufficientInventory, NotFound, ValidationError
from kitchen_ledger.core.logging import get_logger
from kitchen_ledger.core.result import ledger_operation
from kitchen_ledger.models.inventory import MovementSource, MovementType, Product, StockMovement

logger = get_logger(__name__)

ZERO = Decimal("0")
_QUANTITY_STEP = Decimal("0.001")
_MONEY_STEP = Decimal("0.01")


def quantize_quantity(value: Decimal | int | float | str) -> Decimal:
    return Decimal(str(value)).quantize(_QUANTITY_STEP)


def quantize_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(_MONEY_STEP)


def stock_value(quantity: Decimal, unit_price: Decimal | None) -> Decimal | None:
    if unit_price is None:
        return None
    return quantize_money(Decimal(quantity) * Decimal(unit_price))


def lock_products(db: Session, product_ids: Iterable[int]) -> dict[int, Product]:
    """Load products for writing, freshly read and row-locked."""
    ids = sorted(set(product_ids))
    if not ids:
        return {}
    products = db.scalars(
        select(Product)
        .where(Product.id.in_(ids))
        .order_by(Product.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).all()
    found = {product.id: product for product in products}
    for product_id in ids:
        if product_id not in found:
            raise NotFound("Product", product_id)
    return found


def apply_movement(
    db: Session,
    product: Product,
    *,
    movement_type: MovementType,
    quantity_delta: Decimal,
    source: MovementSource,
    reason: str | None = None,
    description: str | None = None,
    sale_id: int | None = None,
    bill_id: int | None = None,
) -> StockMovement:
    """Write one movement and move ``product`` to the resulting balance.

    ``product`` must have been loaded through :func:`lock_products` within
    the current transaction. Nothing is committed here.
    """
    delta = quantize_quantity(quantity_delta)
    if delta == ZERO:
        raise ValidationError("Movement quantity must not be zero")
    if movement_type == MovementType.IN and delta < ZERO:
        raise ValidationError("Inbound movements must increase stock")
    if movement_type == MovementType.OUT and delta > ZERO:
        raise ValidationError("Outbound movements must decrease stock")

    observed = Decimal(product.quantity)
    balance = observed + delta
    if balance < ZERO:
        raise InsufficientInventory(
            [
                Deficiency(
                    product_id=product.id,
                    product_name=product.name,
                    required=-delta,
                    available=observed,
                    unit=product.unit.value,
                )
            ]
        )

    new_total_value = stock_value(balance, product.unit_price)
    swapped = db.execute(
        update(Product)
        .where(Product.id == product.id, Product.quantity == observed)
        .values(quantity=balance, total_value=new_total_value)
        .execution_options(synchronize_session=False)
    )
    if swapped.rowcount != 1:
        raise ConcurrencyConflict(
            f"{product.name} changed while this operation was running; reload and try again"
        )
    set_committed_value(product, "quantity", balance)
    set_committed_value(product, "total_value", new_total_value)

    movement = StockMovement(
        product_id=product.id,
        movement_type=movement_type,
        source=source,
        quantity=abs(delta),
        quantity_delta=delta,
        balance_after=balance,
        unit_price=product.unit_price,
        total_value=stock_value(abs(delta), product.unit_price),
        reason=reason,
        description=description,
        sale_id=sale_id,
        bill_id=bill_id,
        created_at=datetime.utcnow(),
    )
    db.add(movement)
    db.flush()
    logger.debug(
        "movement_applied",
        product_id=product.id,
        movement_id=movement.id,
        movement_type=movement_type.value,
        source=source.value,
        delta=str(delta),
        balance_after=str(balance),
    )
    return movement


def signed_delta(movement_type: MovementType, quantity: Decimal) -> Decimal:
    """Turn a (type, magnitude) pair into a signed delta.

    Adjustments are already signed.
    """
    if movement_type == MovementType.ADJUSTMENT:
        return Decimal(quantity)
    if Decimal(quantity) <= ZERO:
        raise ValidationError("Movement quantity must be positive")
    return Decimal(quantity) if movement_type == MovementType.IN else -Decimal(quantity)


@ledger_operation
def record_movement(
    db: Session,
    product_id: int,
    movement_type: MovementType,
    quantity: Decimal,
    source: MovementSource = MovementSource.MANUAL,
    reason: str | None = None,
    *,
    sale_id: int | None = None,
    bill_id: int | None = None,
) -> StockMovement:
    product = lock_products(db, [product_id])[product_id]
    movement = apply_movement(
        db,
        product,
        movement_type=movement_type,
        quantity_delta=signed_delta(movement_type, quantity),
        source=source,
        reason=reason,
        sale_id=sale_id,
        bill_id=bill_id,
    )
    db.commit()
    return movement


def list_movements(
    db: Session,
    product_id: int | None = None,
    *,
    source: MovementSource | None = None,
    movement_type: MovementType | None = None,
    sale_id: int | None = None,
    bill_id: int | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
) -> list[StockMovement]:
    query = select(StockMovement).order_by(StockMovement.created_at.asc(), StockMovement.id.asc())
    if product_id is not None:
        query = query.where(StockMovement.product_id == product_id)
    if source is not None:
        query = query.where(StockMovement.source == source)
    if movement_type is not None:
        query = query.where(StockMovement.movement_type == movement_type)
    if sale_id is not None:
        query = query.where(StockMovement.sale_id == sale_id)
    if bill_id is not None:
        query = query.where(StockMovement.bill_id == bill_id)
    if date_from is not None:
        query = query.where(StockMovement.created_at >= date_from)
    if date_to is not None:
        query = query.where(StockMovement.created_at <= date_to)
    return list(db.scalars(query).all())


@dataclass(frozen=True)
class Reconciliation:
    product_id: int
    initial_quantity: Decimal
    movement_total: Decimal
    quantity: Decimal
    movement_count: int

    @property
    def expected_quantity(self) -> Decimal:
        return self.initial_quantity + self.movement_total

    @property
    def consistent(self) -> bool:
        return self.expected_quantity == self.quantity


@ledger_operation
def reconcile(db: Session, product_id: int) -> Reconciliation:
    """Check that the stored quantity equals initial quantity plus all movements."""
    product = db.get(Product, product_id)
    if not product:
        raise NotFound("Product", product_id)
    deltas = db.scalars(select(StockMovement.quantity_delta).where(StockMovement.product_id == product_id)).all()
    return Reconciliation(
        product_id=product.id,
        initial_quantity=Decimal(product.initial_quantity),
        movement_total=sum((Decimal(d) for d in deltas), ZERO),
        quantity=Decimal(product.quantity),
        movement_count=len(deltas),
    )
