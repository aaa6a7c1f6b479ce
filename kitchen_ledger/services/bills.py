"""
Replenishment: a supplier bill is stored as PENDING with the lines the
receipt reader extracted, and confirming it books every reviewed line as an
inbound movement. Confirmation is one-way; a PROCESSED bill cannot be
confirmed again.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from kitchen_ledger.core.errors import AlreadyProcessed, NotFound, ValidationError
from kitchen_ledger.core.logging import get_logger
from kitchen_ledger.core.result import ledger_operation
from kitchen_ledger.models.inventory import (
    Bill,
    BillProduct,
    BillStatus,
    MovementSource,
    MovementType,
    ProductUnit,
)
from kitchen_ledger.schemas.inventory import BillCreate, ConfirmedLineIn
from kitchen_ledger.services.ledger import apply_movement, lock_products, quantize_money, quantize_quantity
from kitchen_ledger.services.products import find_or_create_product, find_or_create_supplier

logger = get_logger(__name__)


def load_bill(db: Session, bill_id: int, *, for_update: bool = False) -> Bill:
    query = select(Bill).where(Bill.id == bill_id).options(selectinload(Bill.lines))
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    bill = db.scalar(query)
    if not bill:
        raise NotFound("Bill", bill_id)
    return bill


@ledger_operation
def create_bill(db: Session, payload: BillCreate) -> Bill:
    supplier = find_or_create_supplier(db, payload.supplier) if payload.supplier and payload.supplier.strip() else None
    bill = Bill(
        filename=payload.filename,
        raw_content=payload.raw_content,
        status=BillStatus.PENDING,
        supplier_id=supplier.id if supplier else None,
    )
    bill.lines = [
        BillProduct(
            raw_name=line.raw_name.strip(),
            quantity=quantize_quantity(line.quantity),
            unit=ProductUnit(line.unit),
            unit_price=line.unit_price,
            total_price=line.total_price,
        )
        for line in payload.lines
    ]
    db.add(bill)
    db.commit()
    logger.info("bill_created", bill_id=bill.id, lines=len(payload.lines))
    return load_bill(db, bill.id)


@ledger_operation
def confirm_bill(
    db: Session,
    bill_id: int,
    lines: list[ConfirmedLineIn],
    supplier_name: str | None = None,
    bill_date: date | None = None,
    total_amount: Decimal | None = None,
) -> Bill:
    """Book a reviewed bill into stock.

    Unmapped lines resolve to a product by exact name, creating it at zero
    when absent. Each line overwrites its product's unit price (last write
    wins) and adds one BILL_RECEIPT movement linked to the bill.
    """
    bill = load_bill(db, bill_id, for_update=True)
    if bill.status != BillStatus.PENDING:
        raise AlreadyProcessed("Bill has already been processed and cannot be confirmed again")
    if not lines:
        raise ValidationError("No products provided")

    resolved = []
    created = 0
    for line in lines:
        if line.product_id is not None:
            resolved.append((line, line.product_id))
            continue
        product, was_created = find_or_create_product(
            db,
            line.product_name,
            ProductUnit(line.unit),
            line.unit_price,
        )
        created += int(was_created)
        resolved.append((line, product.id))

    supplier = find_or_create_supplier(db, supplier_name) if supplier_name and supplier_name.strip() else None

    products = lock_products(db, [product_id for _, product_id in resolved])
    bill.lines.clear()
    db.flush()
    for line, product_id in resolved:
        product = products[product_id]
        product.unit_price = line.unit_price
        apply_movement(
            db,
            product,
            movement_type=MovementType.IN,
            quantity_delta=line.quantity,
            source=MovementSource.BILL_RECEIPT,
            reason=f"Bill #{bill.id}",
            description=f"Received {line.quantity} {line.unit.value} of {product.name}",
            bill_id=bill.id,
        )
        bill.lines.append(
            BillProduct(
                product_id=product_id,
                raw_name=line.product_name.strip(),
                quantity=quantize_quantity(line.quantity),
                unit=ProductUnit(line.unit),
                unit_price=line.unit_price,
                total_price=quantize_money(line.quantity * line.unit_price),
            )
        )

    if supplier is not None:
        bill.supplier_id = supplier.id
    bill.bill_date = bill_date
    bill.total_amount = total_amount
    bill.status = BillStatus.PROCESSED
    bill.processed_at = datetime.utcnow()

    db.commit()
    logger.info(
        "bill_confirmed",
        bill_id=bill.id,
        lines=len(resolved),
        products_created=created,
        supplier_id=bill.supplier_id,
    )
    return load_bill(db, bill.id)


@ledger_operation
def get_bill(db: Session, bill_id: int) -> Bill:
    return load_bill(db, bill_id)


def list_bills(db: Session, status: BillStatus | None = None) -> list[Bill]:
    query = select(Bill).options(selectinload(Bill.lines)).order_by(Bill.created_at.desc(), Bill.id.desc())
    if status is not None:
        query = query.where(Bill.status == status)
    return list(db.scalars(query).all())
