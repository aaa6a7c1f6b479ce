from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select, update

from kitchen_ledger.core.errors import ConcurrencyConflict, Inactive, InsufficientInventory, NotFound, ValidationError
from kitchen_ledger.models.inventory import MovementSource, MovementType, Product, StockMovement
from kitchen_ledger.models.menu import Sale
from kitchen_ledger.schemas.menu import DishUpdate, RecipeIngredientIn
from kitchen_ledger.services import ledger, recipes, sales


def _quantity(db, product):
    return db.scalar(select(Product.quantity).where(Product.id == product.id))


def _movement_count(db):
    return db.scalar(select(func.count(StockMovement.id)))


def test_sale_depletes_each_ingredient_once(db, make_product, make_dish):
    p = make_product(name="P", quantity="10")
    dish = make_dish(name="D", ingredients=[(p, "2")])

    sale = sales.record_sale(db, dish.id, 3).unwrap()

    assert _quantity(db, p) == Decimal("4")
    [movement] = ledger.list_movements(db, p.id)
    assert movement.quantity_delta == Decimal("-6")
    assert movement.movement_type == MovementType.OUT
    assert movement.source == MovementSource.RECIPE_DEDUCTION
    assert movement.sale_id == sale.id
    assert movement.balance_after == Decimal("4")


def test_insufficient_stock_changes_nothing(db, make_product, make_dish):
    p = make_product(name="P", quantity="4")
    dish = make_dish(name="D", ingredients=[(p, "2")])

    result = sales.record_sale(db, dish.id, 3)

    assert isinstance(result.error, InsufficientInventory)
    [deficiency] = result.error.deficiencies
    assert (deficiency.product_name, deficiency.required, deficiency.available) == ("P", Decimal("6"), Decimal("4"))
    assert _quantity(db, p) == Decimal("4")
    assert _movement_count(db) == 0
    assert db.scalar(select(func.count(Sale.id))) == 0


def test_all_or_nothing_lists_every_deficient_ingredient(db, make_product, make_dish):
    a = make_product(name="A", quantity="10")
    b = make_product(name="B", quantity="1")
    c = make_product(name="C", quantity="0.5")
    dish = make_dish(name="Stew", ingredients=[(a, "1"), (b, "1"), (c, "1")])

    result = sales.record_sale(db, dish.id, 2)

    assert [d.product_name for d in result.error.deficiencies] == ["B", "C"]
    assert "B (need 2" in result.error.message
    assert [_quantity(db, p) for p in (a, b, c)] == [Decimal("10"), Decimal("1"), Decimal("0.5")]
    assert _movement_count(db) == 0


def test_record_then_delete_restores_every_product(db, make_product, make_dish):
    a = make_product(name="A", quantity="7.25")
    b = make_product(name="B", quantity="3")
    dish = make_dish(name="D", ingredients=[(a, "1.5"), (b, "0.75")])

    sale = sales.record_sale(db, dish.id, 2).unwrap()
    sales.delete_sale(db, sale.id).unwrap()

    assert _quantity(db, a) == Decimal("7.25")
    assert _quantity(db, b) == Decimal("3")
    reversals = ledger.list_movements(db, source=MovementSource.SALE_REVERSAL)
    assert sorted(m.quantity_delta for m in reversals) == [Decimal("1.5"), Decimal("3")]
    assert all(m.sale_id is None for m in ledger.list_movements(db))
    assert ledger.reconcile(db, a.id).unwrap().consistent
    assert isinstance(sales.get_sale(db, sale.id).error, NotFound)


def test_deletion_uses_the_recipe_in_effect_when_sold(db, make_product, make_dish):
    tomato = make_product(name="Tomato", quantity="10")
    onion = make_product(name="Onion", quantity="10")
    dish = make_dish(name="Salsa", ingredients=[(tomato, "1")])
    sale = sales.record_sale(db, dish.id, 2).unwrap()

    recipes.update_dish(
        db,
        dish.id,
        DishUpdate(
            recipe_ingredients=[
                RecipeIngredientIn(product_id=onion.id, quantity_required=Decimal("3"), unit=onion.unit)
            ]
        ),
    ).unwrap()
    sales.delete_sale(db, sale.id).unwrap()

    assert _quantity(db, tomato) == Decimal("10")
    assert _quantity(db, onion) == Decimal("10")


def test_update_moves_only_the_difference(db, make_product, make_dish):
    p = make_product(name="P", quantity="10")
    dish = make_dish(name="D", ingredients=[(p, "2")])
    sale = sales.record_sale(db, dish.id, 2).unwrap()

    sales.update_sale(db, sale.id, quantity_sold=4).unwrap()
    assert _quantity(db, p) == Decimal("2")

    updated = sales.update_sale(db, sale.id, quantity_sold=1, notes="comped").unwrap()
    assert updated.quantity_sold == 1
    assert updated.notes == "comped"
    assert _quantity(db, p) == Decimal("8")
    assert [m.quantity_delta for m in ledger.list_movements(db, p.id, sale_id=sale.id)] == [
        Decimal("-4"),
        Decimal("-4"),
        Decimal("6"),
    ]


def test_update_beyond_stock_fails_without_side_effects(db, make_product, make_dish):
    p = make_product(name="P", quantity="5")
    dish = make_dish(name="D", ingredients=[(p, "2")])
    sale = sales.record_sale(db, dish.id, 2).unwrap()

    result = sales.update_sale(db, sale.id, quantity_sold=3)

    assert isinstance(result.error, InsufficientInventory)
    assert _quantity(db, p) == Decimal("1")
    assert sales.get_sale(db, sale.id).unwrap().quantity_sold == 2


def test_inactive_or_missing_dish_cannot_be_sold(db, make_product, make_dish):
    p = make_product(quantity="10")
    dish = make_dish(ingredients=[(p, "1")], is_active=False)

    inactive = sales.record_sale(db, dish.id, 1)

    assert isinstance(inactive.error, Inactive)
    assert inactive.error.message == "Cannot record sale for inactive dish"
    assert isinstance(sales.record_sale(db, 999, 1).error, NotFound)
    assert isinstance(sales.record_sale(db, dish.id, 0).error, ValidationError)


def test_sales_summary_groups_by_dish(db, make_product, make_dish):
    p = make_product(quantity="100")
    soup = make_dish(name="Soup", ingredients=[(p, "1")])
    stew = make_dish(name="Stew", ingredients=[(p, "1")])
    day = datetime(2026, 3, 1, 12, 0)
    sales.record_sale(db, soup.id, 2, sale_date=day).unwrap()
    sales.record_sale(db, stew.id, 5, sale_date=day).unwrap()
    sales.record_sale(db, soup.id, 1, sale_date=day).unwrap()

    summary = sales.sales_summary(db, datetime(2026, 3, 1), datetime(2026, 3, 2)).unwrap()

    assert [(s.dish_name, s.total_quantity, s.sales_count) for s in summary] == [("Stew", 5, 1), ("Soup", 3, 2)]
    assert len(sales.list_sales(db, dish_id=soup.id).unwrap()) == 2
    assert isinstance(sales.list_sales(db, date_from=day, date_to=datetime(2026, 2, 1)).error, ValidationError)


def test_sale_of_a_dish_without_ingredients_restores_nothing(db, make_product, make_dish):
    beef = make_product(name="Beef", quantity="10")
    dish = make_dish(name="Water", ingredients=[])
    sale = sales.record_sale(db, dish.id, 3).unwrap()
    assert sale.has_snapshot
    assert sale.ingredients == []

    recipes.update_dish(
        db,
        dish.id,
        DishUpdate(
            recipe_ingredients=[RecipeIngredientIn(product_id=beef.id, quantity_required=Decimal("2"), unit=beef.unit)]
        ),
    ).unwrap()
    sales.update_sale(db, sale.id, quantity_sold=4).unwrap()
    sales.delete_sale(db, sale.id).unwrap()

    assert _quantity(db, beef) == Decimal("10")
    assert _movement_count(db) == 0


def test_sale_without_snapshot_falls_back_to_current_recipe(db, make_product, make_dish):
    p = make_product(name="P", quantity="10")
    dish = make_dish(name="D", ingredients=[(p, "2")])
    sale = sales.record_sale(db, dish.id, 1).unwrap()
    db.execute(update(Sale).where(Sale.id == sale.id).values(has_snapshot=False))
    db.commit()

    sales.delete_sale(db, sale.id).unwrap()

    assert _quantity(db, p) == Decimal("10")


def test_conflict_after_first_movement_rolls_back_the_whole_sale(db, make_product, make_dish, monkeypatch):
    a = make_product(name="A", quantity="10")
    b = make_product(name="B", quantity="10")
    dish = make_dish(name="D", ingredients=[(a, "1"), (b, "1")])
    a_id, b_id = a.id, b.id
    real_apply = sales.apply_movement
    applied = []

    def apply_after_concurrent_write(session, product, **kwargs):
        applied.append(product.id)
        if product.id == b_id:
            session.execute(
                update(Product)
                .where(Product.id == b_id)
                .values(quantity=Decimal("7"))
                .execution_options(synchronize_session=False)
            )
        return real_apply(session, product, **kwargs)

    monkeypatch.setattr(sales, "apply_movement", apply_after_concurrent_write)

    result = sales.record_sale(db, dish.id, 2)

    assert isinstance(result.error, ConcurrencyConflict)
    assert applied == [a_id, b_id]
    assert db.scalar(select(Product.quantity).where(Product.id == a_id)) == Decimal("10")
    assert db.scalar(select(Product.quantity).where(Product.id == b_id)) == Decimal("10")
    assert _movement_count(db) == 0
    assert db.scalar(select(func.count(Sale.id))) == 0
