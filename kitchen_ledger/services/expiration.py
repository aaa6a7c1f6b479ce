"""
Best-before (DLC) lots.

The stored status only ever moves ACTIVE -> CONSUMED or ACTIVE -> DISCARDED.
EXPIRED is what :func:`classify` reports for an ACTIVE lot whose date has
passed; reading a lot never rewrites its stored status.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from kitchen_ledger.core.config import settings
from kitchen_ledger.core.errors import BatchFailed, InvalidTransition, LedgerError, NotFound, ValidationError
from kitchen_ledger.core.logging import get_logger
from kitchen_ledger.core.result import ledger_operation
from kitchen_ledger.models.inventory import ExpirationLot, LotStatus, Product, ProductUnit
from kitchen_ledger.schemas.inventory import LotCreate, LotUpdate
from kitchen_ledger.services.ledger import quantize_quantity
from kitchen_ledger.services.products import find_or_create_supplier, stock_status

logger = get_logger(__name__)

HIGH_URGENCY_DAYS = 2
MEDIUM_URGENCY_DAYS = 5


@dataclass(frozen=True)
class LotClassification:
    status: LotStatus
    days_until_expiration: int
    urgency: str | None


def classify(status: LotStatus, expiration_date: date, today: date) -> LotClassification:
    """Derived view of a lot as of ``today``. Pure; performs no writes."""
    days = (expiration_date - today).days
    if status != LotStatus.ACTIVE:
        return LotClassification(status=status, days_until_expiration=days, urgency=None)
    derived = LotStatus.EXPIRED if days < 0 else LotStatus.ACTIVE
    if days <= HIGH_URGENCY_DAYS:
        urgency = "high"
    elif days <= MEDIUM_URGENCY_DAYS:
        urgency = "medium"
    else:
        urgency = "low"
    return LotClassification(status=derived, days_until_expiration=days, urgency=urgency)


@dataclass(frozen=True)
class LotView:
    """A lot together with its classification for one day."""

    lot: ExpirationLot
    classification: LotClassification


def view(lot: ExpirationLot, today: date | None = None) -> LotView:
    return LotView(lot=lot, classification=classify(lot.status, lot.expiration_date, today or date.today()))


def load_lot(db: Session, lot_id: int, *, for_update: bool = False) -> ExpirationLot:
    query = select(ExpirationLot).where(ExpirationLot.id == lot_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    lot = db.scalar(query)
    if not lot:
        raise NotFound("Lot", lot_id)
    return lot


def _new_lot(db: Session, payload: LotCreate) -> ExpirationLot:
    if not db.get(Product, payload.product_id):
        raise NotFound("Product", payload.product_id)
    supplier = find_or_create_supplier(db, payload.supplier) if payload.supplier and payload.supplier.strip() else None
    lot = ExpirationLot(
        product_id=payload.product_id,
        expiration_date=payload.expiration_date,
        quantity=quantize_quantity(payload.quantity),
        unit=ProductUnit(payload.unit),
        status=LotStatus.ACTIVE,
        batch_number=payload.batch_number.strip() if payload.batch_number else None,
        supplier_id=supplier.id if supplier else None,
        notes=payload.notes,
    )
    db.add(lot)
    db.commit()
    return lot


@ledger_operation
def create_lot(db: Session, payload: LotCreate) -> ExpirationLot:
    lot = _new_lot(db, payload)
    logger.info("lot_created", lot_id=lot.id, product_id=lot.product_id, expiration_date=str(lot.expiration_date))
    return lot


@ledger_operation
def create_lots(db: Session, payloads: list[LotCreate]) -> list[ExpirationLot]:
    """Save several lots, each in its own transaction.

    Stops at the first failing item; lots saved before it stay saved and
    are reported on the ``BatchFailed`` error.
    """
    if not payloads:
        raise ValidationError("No lots provided")
    created: list[ExpirationLot] = []
    for index, payload in enumerate(payloads):
        try:
            created.append(_new_lot(db, payload))
        except LedgerError as exc:
            db.rollback()
            raise BatchFailed(index, exc, created) from exc
    logger.info("lots_created", count=len(created))
    return created


@ledger_operation
def update_lot(db: Session, lot_id: int, payload: LotUpdate) -> ExpirationLot:
    lot = load_lot(db, lot_id, for_update=True)
    if lot.status != LotStatus.ACTIVE:
        raise InvalidTransition(f"Lot is {lot.status.value} and can no longer be edited")
    if payload.expiration_date is not None:
        lot.expiration_date = payload.expiration_date
    if payload.quantity is not None:
        lot.quantity = quantize_quantity(payload.quantity)
    if payload.unit is not None:
        lot.unit = ProductUnit(payload.unit)
    if payload.batch_number is not None:
        lot.batch_number = payload.batch_number.strip() or None
    if payload.notes is not None:
        lot.notes = payload.notes.strip() or None
    db.commit()
    return lot


def _close(db: Session, lot_id: int, target: LotStatus) -> ExpirationLot:
    lot = load_lot(db, lot_id, for_update=True)
    if lot.status != LotStatus.ACTIVE:
        raise InvalidTransition(f"Cannot mark a {lot.status.value} lot as {target.value}")
    lot.status = target
    lot.closed_at = datetime.utcnow()
    db.commit()
    logger.info(f"lot_{target.value.lower()}", lot_id=lot.id, product_id=lot.product_id)
    return lot


@ledger_operation
def consume(db: Session, lot_id: int) -> ExpirationLot:
    return _close(db, lot_id, LotStatus.CONSUMED)


@ledger_operation
def discard(db: Session, lot_id: int) -> ExpirationLot:
    return _close(db, lot_id, LotStatus.DISCARDED)


@ledger_operation
def get_lot(db: Session, lot_id: int) -> ExpirationLot:
    return load_lot(db, lot_id)


def list_lots(
    db: Session,
    status: LotStatus | None = None,
    *,
    product_id: int | None = None,
    today: date | None = None,
) -> list[LotView]:
    """Lots ordered by expiration date; ``status`` filters on the derived status."""
    today = today or date.today()
    query = select(ExpirationLot).order_by(ExpirationLot.expiration_date.asc(), ExpirationLot.id.asc())
    if product_id is not None:
        query = query.where(ExpirationLot.product_id == product_id)
    if status in (LotStatus.CONSUMED, LotStatus.DISCARDED):
        query = query.where(ExpirationLot.status == status)
    elif status == LotStatus.ACTIVE:
        query = query.where(ExpirationLot.status == LotStatus.ACTIVE, ExpirationLot.expiration_date >= today)
    elif status == LotStatus.EXPIRED:
        query = query.where(ExpirationLot.status == LotStatus.ACTIVE, ExpirationLot.expiration_date < today)
    return [view(lot, today) for lot in db.scalars(query).all()]


def upcoming_lots(db: Session, days: int | None = None, today: date | None = None) -> list[LotView]:
    """Active lots expiring between today and ``days`` from now."""
    today = today or date.today()
    window = settings.expiring_soon_days if days is None else days
    if window < 0:
        raise ValidationError("Window must not be negative")
    lots = db.scalars(
        select(ExpirationLot)
        .where(
            ExpirationLot.status == LotStatus.ACTIVE,
            ExpirationLot.expiration_date >= today,
            ExpirationLot.expiration_date <= today + timedelta(days=window),
        )
        .order_by(ExpirationLot.expiration_date.asc(), ExpirationLot.id.asc())
    ).all()
    return [view(lot, today) for lot in lots]


@dataclass(frozen=True)
class Dashboard:
    as_of: date
    total_products: int
    low_stock: list[dict]
    expiring_lots: list[LotView]
    expired_lots: list[LotView]


def operational_dashboard(db: Session, today: date | None = None) -> Dashboard:
    today = today or date.today()
    low_stock = []
    products = db.scalars(
        select(Product).where(Product.par_level.is_not(None)).order_by(Product.name.asc())
    ).all()
    for product in products:
        level = stock_status(product.quantity, product.par_level)
        if level == "ok":
            continue
        low_stock.append(
            {
                "product_id": product.id,
                "product_name": product.name,
                "quantity": product.quantity,
                "par_level": product.par_level,
                "unit": product.unit,
                "stock_status": level,
            }
        )
    # critical first
    low_stock.sort(key=lambda item: item["stock_status"] != "critical")
    return Dashboard(
        as_of=today,
        total_products=db.scalar(select(func.count(Product.id))) or 0,
        low_stock=low_stock,
        expiring_lots=upcoming_lots(db, today=today),
        expired_lots=list_lots(db, LotStatus.EXPIRED, today=today),
    )
