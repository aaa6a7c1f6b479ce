from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from kitchen_ledger.core.config import settings
from kitchen_ledger.core.errors import NotFound, ValidationError
from kitchen_ledger.core.logging import get_logger
from kitchen_ledger.core.result import ledger_operation
from kitchen_ledger.models.inventory import CompositeIngredient, Product, ProductUnit, StockMovement, Supplier
from kitchen_ledger.models.menu import RecipeIngredient
from kitchen_ledger.schemas.inventory import (
    CompositeIngredientIn,
    CompositeProductCreate,
    CompositionUpdate,
    ProductCreate,
    ProductUpdate,
)
from kitchen_ledger.services.ledger import ZERO, quantize_quantity, stock_value

logger = get_logger(__name__)


def normalize_name(name: str) -> str:
    """Matching key for upsert-by-name: whitespace runs collapse, case is kept."""
    return " ".join(name.split())


def stock_status(quantity: Decimal, par_level: Decimal | None) -> str:
    if par_level is None or Decimal(par_level) <= ZERO:
        return "ok"
    quantity = Decimal(quantity)
    par_level = Decimal(par_level)
    if quantity >= par_level:
        return "ok"
    if quantity <= ZERO:
        return "critical"
    percent_short = (par_level - quantity) / par_level * Decimal("100")
    if percent_short >= settings.critical_stock_percent:
        return "critical"
    return "low"


def load_product(db: Session, product_id: int) -> Product:
    product = db.get(Product, product_id)
    if not product:
        raise NotFound("Product", product_id)
    return product


@ledger_operation
def get_product(db: Session, product_id: int) -> Product:
    return load_product(db, product_id)


def list_products(
    db: Session,
    *,
    category: str | None = None,
    composite: bool | None = None,
) -> list[Product]:
    query = select(Product).order_by(Product.name.asc(), Product.id.asc())
    if category is not None:
        query = query.where(Product.category == category)
    if composite is not None:
        query = query.where(Product.is_composite.is_(composite))
    return list(db.scalars(query).all())


def search_products(db: Session, text: str) -> list[Product]:
    pattern = f"%{text.strip().lower()}%"
    return list(
        db.scalars(
            select(Product)
            .where(or_(func.lower(Product.name).like(pattern), func.lower(Product.category).like(pattern)))
            .order_by(Product.name.asc())
        ).all()
    )


def _new_product(payload: ProductCreate) -> Product:
    quantity = quantize_quantity(payload.quantity)
    return Product(
        name=normalize_name(payload.name),
        quantity=quantity,
        initial_quantity=quantity,
        unit=ProductUnit(payload.unit),
        unit_price=payload.unit_price,
        total_value=stock_value(quantity, payload.unit_price),
        par_level=payload.par_level,
        category=payload.category.strip() if payload.category else None,
        trackable=payload.trackable,
    )


@ledger_operation
def create_product(db: Session, payload: ProductCreate) -> Product:
    """Create a product at its stated quantity.

    The starting quantity is recorded as ``initial_quantity`` and produces no
    movement; every later change goes through the ledger.
    """
    if not normalize_name(payload.name):
        raise ValidationError("Product name is required")
    product = _new_product(payload)
    db.add(product)
    db.commit()
    db.refresh(product)
    logger.info("product_created", product_id=product.id, name=product.name, quantity=str(product.quantity))
    return product


@ledger_operation
def bulk_create_products(db: Session, rows: list[ProductCreate]) -> list[Product]:
    """Spreadsheet import path: one transaction, no movement history."""
    if not rows:
        raise ValidationError("No products provided")
    products = []
    for index, row in enumerate(rows):
        if not normalize_name(row.name):
            raise ValidationError(f"Row {index + 1}: product name is required")
        products.append(_new_product(row))
    db.add_all(products)
    db.commit()
    logger.info("products_imported", count=len(products))
    return products


@ledger_operation
def update_product(db: Session, product_id: int, payload: ProductUpdate) -> Product:
    product = load_product(db, product_id)

    if payload.name is not None:
        name = normalize_name(payload.name)
        if not name:
            raise ValidationError("Product name is required")
        product.name = name
    if payload.unit is not None:
        product.unit = ProductUnit(payload.unit)
    if payload.clear_unit_price:
        product.unit_price = None
    elif payload.unit_price is not None:
        product.unit_price = payload.unit_price
    if payload.par_level is not None:
        product.par_level = payload.par_level
    if payload.category is not None:
        product.category = payload.category.strip() or None
    if payload.trackable is not None:
        product.trackable = payload.trackable
    product.total_value = stock_value(product.quantity, product.unit_price)

    db.commit()
    db.refresh(product)
    return product


@ledger_operation
def delete_product(db: Session, product_id: int) -> Product:
    """Remove a product that nothing refers to.

    Products used by a recipe or a prepared product, or with any stock
    movement on record, cannot be deleted.
    """
    product = load_product(db, product_id)
    in_recipe = db.scalar(select(func.count(RecipeIngredient.id)).where(RecipeIngredient.product_id == product_id))
    if in_recipe:
        raise ValidationError(f"{product.name} is used in {in_recipe} recipe(s) and cannot be deleted")
    in_composite = db.scalar(
        select(func.count(CompositeIngredient.id)).where(CompositeIngredient.base_product_id == product_id)
    )
    if in_composite:
        raise ValidationError(f"{product.name} is used in {in_composite} prepared product(s) and cannot be deleted")
    history = db.scalar(select(func.count(StockMovement.id)).where(StockMovement.product_id == product_id))
    if history:
        raise ValidationError(f"{product.name} has {history} stock movement(s) and cannot be deleted")
    db.delete(product)
    db.commit()
    logger.info("product_deleted", product_id=product_id)
    return product


def find_product_by_name(db: Session, name: str) -> Product | None:
    return db.scalar(select(Product).where(Product.name == normalize_name(name)).order_by(Product.id.asc()).limit(1))


def find_or_create_product(
    db: Session,
    name: str,
    unit: ProductUnit,
    unit_price: Decimal | None = None,
) -> tuple[Product, bool]:
    """Upsert-by-name for products; exact, case-sensitive match after whitespace cleanup.

    New products start at zero with tracking enabled. Flushes, does not commit.
    """
    key = normalize_name(name)
    if not key:
        raise ValidationError("Product name is required")
    existing = find_product_by_name(db, key)
    if existing:
        return existing, False
    product = Product(
        name=key,
        quantity=ZERO,
        initial_quantity=ZERO,
        unit=unit,
        unit_price=unit_price,
        total_value=stock_value(ZERO, unit_price),
        trackable=True,
    )
    db.add(product)
    db.flush()
    logger.info("product_created", product_id=product.id, name=product.name, quantity="0", origin="upsert")
    return product, True


def find_or_create_supplier(db: Session, name: str) -> Supplier:
    """Upsert-by-name for suppliers; exact, case-sensitive match.

    The unique constraint on ``suppliers.name`` decides races: the insert is
    ``ON CONFLICT DO NOTHING`` and everyone then reads back the row that won.
    """
    key = normalize_name(name)
    if not key:
        raise ValidationError("Supplier name is required")
    existing = db.scalar(select(Supplier).where(Supplier.name == key))
    if existing:
        return existing

    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = pg_insert(Supplier).values(name=key, created_at=datetime.utcnow())
        db.execute(stmt.on_conflict_do_nothing(index_elements=["name"]))
    elif dialect == "sqlite":
        stmt = sqlite_insert(Supplier).values(name=key, created_at=datetime.utcnow())
        db.execute(stmt.on_conflict_do_nothing(index_elements=["name"]))
    else:
        db.add(Supplier(name=key))
        db.flush()
    return db.scalars(select(Supplier).where(Supplier.name == key)).one()


def list_suppliers(db: Session) -> list[Supplier]:
    return list(db.scalars(select(Supplier).order_by(Supplier.name.asc())).all())


def _composite_reaches(db: Session, start_id: int, target_id: int) -> bool:
    """True when ``target_id`` is ``start_id`` or one of its (transitive) ingredients."""
    seen: set[int] = set()
    frontier = [start_id]
    while frontier:
        current = frontier.pop()
        if current == target_id:
            return True
        if current in seen:
            continue
        seen.add(current)
        frontier.extend(
            db.scalars(
                select(CompositeIngredient.base_product_id).where(
                    CompositeIngredient.composite_product_id == current
                )
            ).all()
        )
    return False


def _replace_composition(db: Session, product: Product, ingredients: list[CompositeIngredientIn]) -> None:
    seen: set[int] = set()
    for item in ingredients:
        if item.base_product_id in seen:
            raise ValidationError("Each base product can appear only once in a composition")
        seen.add(item.base_product_id)
        load_product(db, item.base_product_id)
        if product.id is not None and _composite_reaches(db, item.base_product_id, product.id):
            raise ValidationError("A prepared product cannot contain itself")

    product.composite_ingredients.clear()
    db.flush()
    for item in ingredients:
        product.composite_ingredients.append(
            CompositeIngredient(
                base_product_id=item.base_product_id,
                quantity=quantize_quantity(item.quantity),
                unit=ProductUnit(item.unit),
            )
        )


@ledger_operation
def create_composite_product(db: Session, payload: CompositeProductCreate) -> Product:
    name = normalize_name(payload.name)
    if not name:
        raise ValidationError("Product name is required")
    product = Product(
        name=name,
        quantity=ZERO,
        initial_quantity=ZERO,
        unit=ProductUnit(payload.unit),
        par_level=payload.par_level,
        category=payload.category.strip() if payload.category else None,
        trackable=payload.trackable,
        is_composite=True,
        yield_quantity=quantize_quantity(payload.yield_quantity),
    )
    db.add(product)
    db.flush()
    _replace_composition(db, product, payload.ingredients)
    db.commit()
    db.refresh(product)
    logger.info("composite_product_created", product_id=product.id, ingredients=len(payload.ingredients))
    return product


@ledger_operation
def set_composition(db: Session, product_id: int, payload: CompositionUpdate) -> Product:
    product = load_product(db, product_id)
    if not product.is_composite:
        raise ValidationError(f"{product.name} is not a prepared product")
    if payload.yield_quantity is not None:
        product.yield_quantity = quantize_quantity(payload.yield_quantity)
    _replace_composition(db, product, payload.ingredients)
    db.commit()
    db.refresh(product)
    return product

