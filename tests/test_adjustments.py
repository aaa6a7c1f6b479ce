from decimal import Decimal

from kitchen_ledger.core.errors import NotFound, ValidationError
from kitchen_ledger.models.inventory import MovementSource, MovementType
from kitchen_ledger.services import adjustments, ledger


def test_count_below_record_writes_one_negative_adjustment(db, make_product):
    product = make_product(name="Milk", quantity="10", unit_price="1.20")

    outcome = adjustments.adjust(db, product.id, Decimal("7.5"), reason="Spoiled").unwrap()

    assert outcome.old_quantity == Decimal("10")
    assert outcome.new_quantity == Decimal("7.5")
    assert outcome.change == Decimal("-2.5")
    movement = outcome.movement
    assert movement.movement_type == MovementType.ADJUSTMENT
    assert movement.source == MovementSource.MANUAL
    assert movement.quantity == Decimal("2.5")
    assert movement.balance_after == Decimal("7.5")
    assert movement.reason == "Spoiled"
    assert "was 10" in movement.description
    assert ledger.reconcile(db, product.id).unwrap().consistent


def test_count_above_record_uses_default_reason(db, make_product):
    product = make_product(quantity="2")

    outcome = adjustments.adjust(db, product.id, Decimal("3")).unwrap()

    assert outcome.movement.quantity_delta == Decimal("1")
    assert outcome.movement.reason == adjustments.DEFAULT_REASON


def test_matching_count_is_a_no_op(db, make_product):
    product = make_product(quantity="4")

    outcome = adjustments.adjust(db, product.id, Decimal("4.000")).unwrap()

    assert outcome.movement is None
    assert outcome.change == Decimal("0")
    assert ledger.list_movements(db, product.id) == []


def test_negative_count_and_unknown_product_are_rejected(db, make_product):
    product = make_product(quantity="4")

    assert isinstance(adjustments.adjust(db, product.id, Decimal("-1")).error, ValidationError)
    assert isinstance(adjustments.adjust(db, 999, Decimal("1")).error, NotFound)


def test_summary_separates_waste_from_found_stock(db, make_product):
    milk = make_product(name="Milk", quantity="10", unit_price="1.20")
    eggs = make_product(name="Eggs", quantity="12")
    adjustments.adjust(db, milk.id, Decimal("8")).unwrap()
    adjustments.adjust(db, milk.id, Decimal("9")).unwrap()
    adjustments.adjust(db, eggs.id, Decimal("10")).unwrap()

    summary = {item.product_name: item for item in adjustments.adjustment_summary(db)}

    assert summary["Milk"].total_loss == Decimal("2")
    assert summary["Milk"].total_found == Decimal("1")
    assert summary["Milk"].loss_value == Decimal("2.40")
    assert summary["Milk"].adjustments == 2
    assert summary["Eggs"].total_loss == Decimal("2")
    assert summary["Eggs"].loss_value == Decimal("0")
