"""
Sale engine: recording a dish sale depletes every recipe ingredient through
the ledger, and the sale row and its movements always change together.

Each sale keeps a snapshot of what one portion consumed when it was
recorded (``SaleIngredient``). Updates and deletions compensate from that
snapshot, so later recipe edits do not skew the reversal. An empty snapshot
(a dish sold with no ingredients) restores nothing. Only sales recorded
before snapshots existed (``has_snapshot`` false) fall back to the dish's
current recipe.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from kitchen_ledger.core.errors import Deficiency, Inactive, InsufficientInventory, NotFound, ValidationError
from kitchen_ledger.core.logging import get_logger
from kitchen_ledger.core.result import ledger_operation
from kitchen_ledger.models.inventory import MovementSource, MovementType, Product
from kitchen_ledger.models.menu import Dish, Sale, SaleIngredient
from kitchen_ledger.services.ledger import ZERO, apply_movement, lock_products
from kitchen_ledger.services.recipes import load_dish

logger = get_logger(__name__)


@dataclass(frozen=True)
class Consumption:
    product_id: int
    quantity_per_unit: Decimal


def _check_sufficiency(
    products: dict[int, Product],
    consumption: list[Consumption],
    portions: int,
) -> None:
    """Raise with every deficient ingredient, not only the first."""
    deficiencies = []
    for item in consumption:
        product = products[item.product_id]
        required = item.quantity_per_unit * portions
        available = Decimal(product.quantity)
        if available < required:
            deficiencies.append(
                Deficiency(
                    product_id=product.id,
                    product_name=product.name,
                    required=required,
                    available=available,
                    unit=product.unit.value,
                )
            )
    if deficiencies:
        raise InsufficientInventory(deficiencies)


def _sale_consumption(db: Session, sale: Sale) -> list[Consumption]:
    if sale.has_snapshot:
        return [Consumption(i.product_id, Decimal(i.quantity_per_unit)) for i in sale.ingredients]
    logger.warning("sale_snapshot_missing", sale_id=sale.id, dish_id=sale.dish_id)
    dish = load_dish(db, sale.dish_id)
    return [Consumption(i.product_id, Decimal(i.quantity_required)) for i in dish.recipe_ingredients]


def load_sale(db: Session, sale_id: int) -> Sale:
    sale = db.scalar(select(Sale).where(Sale.id == sale_id).options(selectinload(Sale.ingredients)))
    if not sale:
        raise NotFound("Sale", sale_id)
    return sale


@ledger_operation
def record_sale(
    db: Session,
    dish_id: int,
    quantity_sold: int,
    sale_date: datetime | None = None,
    notes: str | None = None,
) -> Sale:
    if quantity_sold < 1:
        raise ValidationError("Quantity must be at least 1")
    dish = load_dish(db, dish_id)
    if not dish.is_active:
        raise Inactive("Cannot record sale for inactive dish")

    consumption = [Consumption(i.product_id, Decimal(i.quantity_required)) for i in dish.recipe_ingredients]
    products = lock_products(db, [c.product_id for c in consumption])
    _check_sufficiency(products, consumption, quantity_sold)

    sale = Sale(
        dish_id=dish.id,
        quantity_sold=quantity_sold,
        sale_date=sale_date or datetime.utcnow(),
        notes=notes.strip() if notes else None,
        has_snapshot=True,
    )
    sale.ingredients = [
        SaleIngredient(
            product_id=ingredient.product_id,
            quantity_per_unit=ingredient.quantity_required,
            unit=ingredient.unit,
        )
        for ingredient in dish.recipe_ingredients
    ]
    db.add(sale)
    db.flush()

    for item in consumption:
        apply_movement(
            db,
            products[item.product_id],
            movement_type=MovementType.OUT,
            quantity_delta=-(item.quantity_per_unit * quantity_sold),
            source=MovementSource.RECIPE_DEDUCTION,
            reason=f"Sale: {dish.name}",
            description=f"{quantity_sold} x {dish.name}",
            sale_id=sale.id,
        )

    db.commit()
    logger.info("sale_recorded", sale_id=sale.id, dish_id=dish.id, quantity_sold=quantity_sold)
    return load_sale(db, sale.id)


@ledger_operation
def update_sale(
    db: Session,
    sale_id: int,
    quantity_sold: int | None = None,
    sale_date: datetime | None = None,
    notes: str | None = None,
) -> Sale:
    """Change a sale; a new quantity moves stock by the difference only."""
    sale = load_sale(db, sale_id)
    if quantity_sold is not None and quantity_sold < 1:
        raise ValidationError("Quantity must be at least 1")

    if quantity_sold is not None and quantity_sold != sale.quantity_sold:
        delta = quantity_sold - sale.quantity_sold
        consumption = _sale_consumption(db, sale)
        products = lock_products(db, [c.product_id for c in consumption])
        if delta > 0:
            _check_sufficiency(products, consumption, delta)
        dish_name = db.scalar(select(Dish.name).where(Dish.id == sale.dish_id))
        for item in consumption:
            change = -(item.quantity_per_unit * delta)
            apply_movement(
                db,
                products[item.product_id],
                movement_type=MovementType.OUT if change < ZERO else MovementType.IN,
                quantity_delta=change,
                source=MovementSource.RECIPE_DEDUCTION,
                reason=f"Sale updated: {dish_name}",
                description=f"Quantity {sale.quantity_sold} -> {quantity_sold}",
                sale_id=sale.id,
            )
        sale.quantity_sold = quantity_sold

    if sale_date is not None:
        sale.sale_date = sale_date
    if notes is not None:
        sale.notes = notes.strip() or None

    db.commit()
    logger.info("sale_updated", sale_id=sale.id, quantity_sold=sale.quantity_sold)
    return load_sale(db, sale.id)


@ledger_operation
def delete_sale(db: Session, sale_id: int) -> int:
    """Restore everything the sale consumed, then delete it."""
    sale = load_sale(db, sale_id)
    consumption = _sale_consumption(db, sale)
    products = lock_products(db, [c.product_id for c in consumption])
    dish_name = db.scalar(select(Dish.name).where(Dish.id == sale.dish_id))
    for item in consumption:
        apply_movement(
            db,
            products[item.product_id],
            movement_type=MovementType.IN,
            quantity_delta=item.quantity_per_unit * sale.quantity_sold,
            source=MovementSource.SALE_REVERSAL,
            reason=f"Sale deleted: {dish_name}",
            description=f"Restored {sale.quantity_sold} x {dish_name}",
        )
    db.delete(sale)
    db.commit()
    logger.info("sale_deleted", sale_id=sale_id)
    return sale_id


@ledger_operation
def get_sale(db: Session, sale_id: int) -> Sale:
    return load_sale(db, sale_id)


@ledger_operation
def list_sales(
    db: Session,
    *,
    dish_id: int | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
) -> list[Sale]:
    if date_from and date_to and date_to < date_from:
        raise ValidationError("End date must be after start date")
    query = select(Sale).options(selectinload(Sale.ingredients)).order_by(Sale.sale_date.desc())
    if dish_id is not None:
        query = query.where(Sale.dish_id == dish_id)
    if date_from is not None:
        query = query.where(Sale.sale_date >= date_from)
    if date_to is not None:
        query = query.where(Sale.sale_date <= date_to)
    return list(db.scalars(query).all())


@dataclass(frozen=True)
class SalesSummary:
    dish_id: int
    dish_name: str
    total_quantity: int
    sales_count: int


@ledger_operation
def sales_summary(db: Session, date_from: datetime, date_to: datetime) -> list[SalesSummary]:
    if date_to < date_from:
        raise ValidationError("End date must be after start date")
    rows = db.execute(
        select(
            Sale.dish_id,
            Dish.name,
            func.coalesce(func.sum(Sale.quantity_sold), 0),
            func.count(Sale.id),
        )
        .join(Dish, Dish.id == Sale.dish_id)
        .where(Sale.sale_date >= date_from, Sale.sale_date <= date_to)
        .group_by(Sale.dish_id, Dish.name)
    ).all()
    summaries = [
        SalesSummary(dish_id=dish_id, dish_name=name, total_quantity=int(total), sales_count=int(count))
        for dish_id, name, total, count in rows
    ]
    return sorted(summaries, key=lambda s: s.total_quantity, reverse=True)
