from decimal import Decimal

from sqlalchemy import func, select

from kitchen_ledger.core.errors import NotFound, ValidationError
from kitchen_ledger.models.inventory import MovementType, Product, ProductUnit, StockMovement, Supplier
from kitchen_ledger.schemas.inventory import CompositeIngredientIn, CompositionUpdate, ProductCreate, ProductUpdate
from kitchen_ledger.services import ledger, products


def test_create_product_records_initial_quantity_without_movement(db, make_product):
    product = make_product(name="  Olive   oil ", quantity="3.5", unit=ProductUnit.L, unit_price="8")

    assert product.name == "Olive oil"
    assert product.quantity == Decimal("3.5")
    assert product.initial_quantity == Decimal("3.5")
    assert product.total_value == Decimal("28.00")
    assert db.scalar(select(func.count(StockMovement.id))) == 0


def test_bulk_import_creates_all_rows_in_one_go(db):
    rows = [
        ProductCreate(name="Flour", quantity=Decimal("25"), unit=ProductUnit.KG),
        ProductCreate(name="Eggs", quantity=Decimal("60"), unit=ProductUnit.PC, unit_price=Decimal("0.25")),
    ]

    created = products.bulk_create_products(db, rows).unwrap()

    assert [p.name for p in created] == ["Flour", "Eggs"]
    assert db.scalar(select(func.count(StockMovement.id))) == 0
    assert products.bulk_create_products(db, []).error.code == "validation_error"


def test_update_product_recomputes_value_but_never_quantity(db, make_product):
    product = make_product(quantity="4", unit_price="2")

    updated = products.update_product(
        db, product.id, ProductUpdate(unit_price=Decimal("3"), par_level=Decimal("6"), category="Veg")
    ).unwrap()

    assert updated.quantity == Decimal("4")
    assert updated.total_value == Decimal("12.00")
    assert updated.category == "Veg"

    cleared = products.update_product(db, product.id, ProductUpdate(clear_unit_price=True)).unwrap()
    assert cleared.unit_price is None
    assert cleared.total_value is None


def test_delete_product_blocked_while_used_in_a_recipe(db, make_product, make_dish):
    used = make_product(name="Basil")
    free = make_product(name="Parsley")
    make_dish(ingredients=[(used, "0.1")])

    blocked = products.delete_product(db, used.id)
    deleted = products.delete_product(db, free.id)

    assert isinstance(blocked.error, ValidationError)
    assert "recipe" in blocked.error.message
    assert deleted.ok
    assert db.get(Product, free.id) is None


def test_delete_product_keeps_products_with_movement_history(db, make_product):
    product = make_product(name="Chervil", quantity="2")
    ledger.record_movement(db, product.id, MovementType.OUT, Decimal("1")).unwrap()

    result = products.delete_product(db, product.id)

    assert isinstance(result.error, ValidationError)
    assert "stock movement" in result.error.message
    assert products.get_product(db, product.id).ok
    assert len(ledger.list_movements(db, product.id)) == 1
    assert isinstance(products.get_product(db, 999).error, NotFound)


def test_stock_status_thresholds():
    assert products.stock_status(Decimal("5"), None) == "ok"
    assert products.stock_status(Decimal("10"), Decimal("10")) == "ok"
    assert products.stock_status(Decimal("6"), Decimal("10")) == "low"
    assert products.stock_status(Decimal("2"), Decimal("10")) == "critical"
    assert products.stock_status(Decimal("0"), Decimal("10")) == "critical"


def test_search_is_case_insensitive(db, make_product):
    make_product(name="Red Onion", category="Veg")
    make_product(name="Salmon", category="Fish")

    assert [p.name for p in products.search_products(db, "onion")] == ["Red Onion"]
    assert [p.name for p in products.search_products(db, "FISH")] == ["Salmon"]


def test_find_or_create_product_matches_exact_name(db, make_product):
    existing = make_product(name="Butter", quantity="1")

    same, created_same = products.find_or_create_product(db, " Butter ", ProductUnit.KG)
    other, created_other = products.find_or_create_product(db, "butter", ProductUnit.KG, Decimal("9"))
    db.commit()

    assert (same.id, created_same) == (existing.id, False)
    assert created_other is True
    assert other.quantity == Decimal("0")
    assert other.trackable is True


def test_find_or_create_supplier_reuses_the_first_row(db):
    first = products.find_or_create_supplier(db, "Metro")
    second = products.find_or_create_supplier(db, "Metro ")
    db.commit()

    assert first.id == second.id
    assert db.scalar(select(func.count(Supplier.id))) == 1
    assert products.find_or_create_supplier(db, "metro").id != first.id


def test_composition_rejects_cycles(db, make_product, make_composite):
    base = make_product(name="Stock bones")
    broth = make_composite(name="Broth", ingredients=[(base, "2")])
    sauce = make_composite(name="Sauce", ingredients=[(broth, "1")])

    result = products.set_composition(
        db,
        broth.id,
        CompositionUpdate(
            ingredients=[CompositeIngredientIn(base_product_id=sauce.id, quantity=Decimal("1"), unit=ProductUnit.KG)]
        ),
    )

    assert isinstance(result.error, ValidationError)
    assert "contain itself" in result.error.message


def test_set_composition_replaces_ingredients(db, make_product, make_composite):
    a = make_product(name="A")
    b = make_product(name="B")
    sauce = make_composite(ingredients=[(a, "1")])

    updated = products.set_composition(
        db,
        sauce.id,
        CompositionUpdate(
            yield_quantity=Decimal("4"),
            ingredients=[CompositeIngredientIn(base_product_id=b.id, quantity=Decimal("3"), unit=ProductUnit.KG)],
        ),
    ).unwrap()

    assert updated.yield_quantity == Decimal("4")
    assert [(i.base_product_id, i.quantity) for i in updated.composite_ingredients] == [(b.id, Decimal("3"))]


def test_set_composition_on_plain_product_fails(db, make_product):
    plain = make_product()
    missing = products.update_product(db, 999, ProductUpdate(name="x"))

    result = products.set_composition(
        db,
        plain.id,
        CompositionUpdate(
            ingredients=[CompositeIngredientIn(base_product_id=plain.id, quantity=Decimal("1"), unit=ProductUnit.KG)]
        ),
    )

    assert isinstance(result.error, ValidationError)
    assert isinstance(missing.error, NotFound)
