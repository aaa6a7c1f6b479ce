"""
Recipe graph: dishes and prepared products resolved into weighted
ingredient lists, with feasibility against current stock and cost roll-up.

Two pricing policies coexist on purpose:

* dish cost counts an unpriced ingredient as 0 and reports the gap through
  ``has_missing_prices`` without touching the total;
* prepared-product cost refuses to report a partial price: any unpriced
  ingredient forces the result to 0 and sets ``has_missing_prices``.
"""

from dataclasses import dataclass, field
from decimal import ROUND_FLOOR, Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from kitchen_ledger.core.errors import NotFound, ValidationError
from kitchen_ledger.core.logging import get_logger
from kitchen_ledger.core.result import ledger_operation
from kitchen_ledger.models.inventory import CompositeIngredient, Product, ProductUnit
from kitchen_ledger.models.menu import Dish, RecipeIngredient
from kitchen_ledger.schemas.menu import DishCreate, DishUpdate, RecipeIngredientIn
from kitchen_ledger.services.ledger import ZERO, quantize_money, quantize_quantity

logger = get_logger(__name__)


@dataclass(frozen=True)
class CostLine:
    product_id: int
    product_name: str
    quantity: Decimal
    unit: ProductUnit
    unit_price: Decimal | None
    total_cost: Decimal

    @property
    def has_missing_price(self) -> bool:
        return self.unit_price is None or Decimal(self.unit_price) == ZERO


@dataclass(frozen=True)
class CostRollup:
    cost: Decimal
    total_cost: Decimal
    has_missing_prices: bool
    yield_quantity: Decimal | None = None
    lines: list[CostLine] = field(default_factory=list)


@dataclass(frozen=True)
class Availability:
    dish_id: int
    multiplier: int
    can_fulfill: bool
    max_units: int | None
    missing_ingredients: list[str]


def load_dish(db: Session, dish_id: int) -> Dish:
    dish = db.scalar(
        select(Dish)
        .where(Dish.id == dish_id)
        .options(selectinload(Dish.recipe_ingredients).selectinload(RecipeIngredient.product))
    )
    if not dish:
        raise NotFound("Dish", dish_id)
    return dish


def _cost_line(product: Product, quantity: Decimal) -> CostLine:
    price = product.unit_price
    priced = price is not None and Decimal(price) != ZERO
    return CostLine(
        product_id=product.id,
        product_name=product.name,
        quantity=Decimal(quantity),
        unit=product.unit,
        unit_price=price,
        total_cost=Decimal(quantity) * Decimal(price) if priced else ZERO,
    )


def max_units_for(requirements: list[tuple[Decimal, Decimal]]) -> int | None:
    """floor(min(available / required)); ``None`` when nothing is required."""
    if not requirements:
        return None
    portions = []
    for required, available in requirements:
        if Decimal(available) <= ZERO:
            return 0
        portions.append((Decimal(available) / Decimal(required)).to_integral_value(rounding=ROUND_FLOOR))
    return int(min(portions))


@ledger_operation
def can_fulfill(db: Session, dish_id: int, multiplier: int = 1) -> Availability:
    if multiplier < 1:
        raise ValidationError("Multiplier must be at least 1")
    dish = load_dish(db, dish_id)
    missing = []
    requirements = []
    for ingredient in dish.recipe_ingredients:
        available = Decimal(ingredient.product.quantity)
        required = Decimal(ingredient.quantity_required)
        requirements.append((required, available))
        if required * multiplier > available:
            missing.append(ingredient.product.name)
    return Availability(
        dish_id=dish.id,
        multiplier=multiplier,
        can_fulfill=not missing,
        max_units=max_units_for(requirements),
        missing_ingredients=missing,
    )


@ledger_operation
def max_units(db: Session, dish_id: int) -> int | None:
    dish = load_dish(db, dish_id)
    return max_units_for(
        [(Decimal(i.quantity_required), Decimal(i.product.quantity)) for i in dish.recipe_ingredients]
    )


@ledger_operation
def dish_cost(db: Session, dish_id: int) -> CostRollup:
    """Food cost of one portion. Unpriced ingredients contribute 0."""
    dish = load_dish(db, dish_id)
    lines = [_cost_line(i.product, i.quantity_required) for i in dish.recipe_ingredients]
    total = sum((line.total_cost for line in lines), ZERO)
    return CostRollup(
        cost=quantize_money(total),
        total_cost=quantize_money(total),
        has_missing_prices=any(line.has_missing_price for line in lines),
        lines=lines,
    )


@ledger_operation
def composite_cost(db: Session, product_id: int) -> CostRollup:
    """Unit price of a prepared product: ingredient cost divided by yield.

    Any unpriced ingredient makes the whole price 0.
    """
    product = db.scalar(
        select(Product)
        .where(Product.id == product_id)
        .options(selectinload(Product.composite_ingredients).selectinload(CompositeIngredient.base_product))
    )
    if not product:
        raise NotFound("Product", product_id)
    if not product.is_composite:
        raise ValidationError(f"{product.name} is not a prepared product")

    lines = [_cost_line(i.base_product, i.quantity) for i in product.composite_ingredients]
    total = sum((line.total_cost for line in lines), ZERO)
    yield_quantity = Decimal(product.yield_quantity) if product.yield_quantity else Decimal("1")
    has_missing = any(line.has_missing_price for line in lines)
    return CostRollup(
        cost=ZERO if has_missing else quantize_money(total / yield_quantity),
        total_cost=quantize_money(total),
        has_missing_prices=has_missing,
        yield_quantity=yield_quantity,
        lines=lines,
    )


def _build_recipe(db: Session, ingredients: list[RecipeIngredientIn]) -> list[RecipeIngredient]:
    seen: set[int] = set()
    recipe = []
    for item in ingredients:
        if item.product_id in seen:
            raise ValidationError("Each product can appear only once in a recipe")
        seen.add(item.product_id)
        if not db.get(Product, item.product_id):
            raise NotFound("Product", item.product_id)
        recipe.append(
            RecipeIngredient(
                product_id=item.product_id,
                quantity_required=quantize_quantity(item.quantity_required),
                unit=ProductUnit(item.unit),
            )
        )
    return recipe


@ledger_operation
def create_dish(db: Session, payload: DishCreate) -> Dish:
    name = payload.name.strip()
    if not name:
        raise ValidationError("Dish name is required")
    dish = Dish(
        name=name,
        description=payload.description,
        selling_price=payload.selling_price,
        is_active=payload.is_active,
    )
    dish.recipe_ingredients = _build_recipe(db, payload.recipe_ingredients)
    db.add(dish)
    db.commit()
    logger.info("dish_created", dish_id=dish.id, ingredients=len(payload.recipe_ingredients))
    return load_dish(db, dish.id)


@ledger_operation
def update_dish(db: Session, dish_id: int, payload: DishUpdate) -> Dish:
    """Edit a dish; a supplied ingredient list replaces the whole recipe.

    Sales already recorded keep the consumption they snapshotted.
    """
    dish = load_dish(db, dish_id)
    if payload.name is not None:
        name = payload.name.strip()
        if not name:
            raise ValidationError("Dish name is required")
        dish.name = name
    if payload.description is not None:
        dish.description = payload.description.strip() or None
    if payload.selling_price is not None:
        dish.selling_price = payload.selling_price
    if payload.is_active is not None:
        dish.is_active = payload.is_active
    if payload.recipe_ingredients is not None:
        recipe = _build_recipe(db, payload.recipe_ingredients)
        dish.recipe_ingredients.clear()
        db.flush()
        dish.recipe_ingredients.extend(recipe)
    db.commit()
    return load_dish(db, dish_id)


@ledger_operation
def deactivate_dish(db: Session, dish_id: int) -> Dish:
    dish = load_dish(db, dish_id)
    dish.is_active = False
    db.commit()
    return load_dish(db, dish_id)


@ledger_operation
def get_dish(db: Session, dish_id: int) -> Dish:
    return load_dish(db, dish_id)


def list_dishes(db: Session, is_active: bool | None = None) -> list[Dish]:
    query = select(Dish).options(selectinload(Dish.recipe_ingredients)).order_by(Dish.name.asc())
    if is_active is not None:
        query = query.where(Dish.is_active.is_(is_active))
    return list(db.scalars(query).all())
