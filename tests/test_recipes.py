from decimal import Decimal

from kitchen_ledger.core.errors import NotFound, ValidationError
from kitchen_ledger.models.inventory import ProductUnit
from kitchen_ledger.schemas.inventory import ProductUpdate
from kitchen_ledger.schemas.menu import DishCreate, DishUpdate, RecipeIngredientIn
from kitchen_ledger.services import products, recipes


def test_composite_cost_divides_by_yield(db, make_product, make_composite):
    a = make_product(name="A", unit_price="3")
    b = make_product(name="B", unit_price="2")
    sauce = make_composite(name="Sauce", yield_quantity="2", ingredients=[(a, "1"), (b, "1")])

    cost = recipes.composite_cost(db, sauce.id).unwrap()

    assert cost.cost == Decimal("2.50")
    assert cost.total_cost == Decimal("5.00")
    assert cost.has_missing_prices is False


def test_composite_cost_is_zero_when_any_price_is_missing(db, make_product, make_composite):
    a = make_product(name="A", unit_price="3")
    b = make_product(name="B", unit_price="2")
    sauce = make_composite(name="Sauce", yield_quantity="2", ingredients=[(a, "1"), (b, "1")])
    products.update_product(db, b.id, ProductUpdate(clear_unit_price=True)).unwrap()

    cost = recipes.composite_cost(db, sauce.id).unwrap()

    assert cost.cost == Decimal("0")
    assert cost.has_missing_prices is True
    assert [line.has_missing_price for line in cost.lines] == [False, True]


def test_composite_cost_requires_a_prepared_product(db, make_product):
    plain = make_product()

    assert isinstance(recipes.composite_cost(db, plain.id).error, ValidationError)
    assert isinstance(recipes.composite_cost(db, 404).error, NotFound)


def test_dish_cost_counts_unpriced_ingredients_as_zero_and_flags_them(db, make_product, make_dish):
    beef = make_product(name="Beef", unit_price="20")
    salt = make_product(name="Salt")
    dish = make_dish(name="Steak", ingredients=[(beef, "0.25"), (salt, "0.005")])

    cost = recipes.dish_cost(db, dish.id).unwrap()

    assert cost.total_cost == Decimal("5.00")
    assert cost.cost == Decimal("5.00")
    assert cost.has_missing_prices is True


def test_can_fulfill_reports_every_short_ingredient(db, make_product, make_dish):
    rice = make_product(name="Rice", quantity="1")
    fish = make_product(name="Fish", quantity="0.3")
    nori = make_product(name="Nori", quantity="50", unit=ProductUnit.PC)
    dish = make_dish(name="Maki", ingredients=[(rice, "0.2"), (fish, "0.1"), (nori, "1")])

    single = recipes.can_fulfill(db, dish.id).unwrap()
    batch = recipes.can_fulfill(db, dish.id, 4).unwrap()

    assert single.can_fulfill is True
    assert single.max_units == 3
    assert batch.can_fulfill is False
    assert batch.missing_ingredients == ["Fish"]
    assert isinstance(recipes.can_fulfill(db, dish.id, 0).error, ValidationError)


def test_max_units_is_zero_when_an_ingredient_is_out(db, make_product, make_dish):
    flour = make_product(name="Flour", quantity="5")
    yeast = make_product(name="Yeast", quantity="0")
    bread = make_dish(name="Bread", ingredients=[(flour, "0.5"), (yeast, "0.01")])
    water = make_dish(name="Water")

    assert recipes.max_units(db, bread.id).unwrap() == 0
    assert recipes.max_units(db, water.id).unwrap() is None


def test_dish_recipe_cannot_repeat_a_product(db, make_product):
    tomato = make_product()
    line = RecipeIngredientIn(product_id=tomato.id, quantity_required=Decimal("1"), unit=ProductUnit.KG)

    result = recipes.create_dish(db, DishCreate(name="Salad", recipe_ingredients=[line, line]))

    assert isinstance(result.error, ValidationError)
    assert recipes.list_dishes(db) == []


def test_update_dish_replaces_recipe(db, make_product, make_dish):
    tomato = make_product(name="Tomato")
    onion = make_product(name="Onion")
    dish = make_dish(name="Salsa", ingredients=[(tomato, "0.2")])

    updated = recipes.update_dish(
        db,
        dish.id,
        DishUpdate(
            selling_price=Decimal("6.5"),
            recipe_ingredients=[
                RecipeIngredientIn(product_id=onion.id, quantity_required=Decimal("0.1"), unit=ProductUnit.KG)
            ],
        ),
    ).unwrap()

    assert updated.selling_price == Decimal("6.5")
    assert [i.product_id for i in updated.recipe_ingredients] == [onion.id]


def test_deactivate_dish_filters_listing(db, make_dish):
    active = make_dish(name="A")
    retired = make_dish(name="B")

    recipes.deactivate_dish(db, retired.id).unwrap()

    assert [d.id for d in recipes.list_dishes(db, is_active=True)] == [active.id]
    assert [d.id for d in recipes.list_dishes(db, is_active=False)] == [retired.id]
