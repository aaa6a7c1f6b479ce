from datetime import date, timedelta
from decimal import Decimal

from kitchen_ledger.core.errors import InvalidTransition, NotFound
from kitchen_ledger.models.inventory import LotStatus, ProductUnit
from kitchen_ledger.schemas.inventory import LotCreate, LotUpdate
from kitchen_ledger.services import expiration

TODAY = date(2026, 5, 10)


def _lot(product, days, quantity="1"):
    return LotCreate(
        product_id=product.id,
        expiration_date=TODAY + timedelta(days=days),
        quantity=Decimal(quantity),
        unit=ProductUnit.KG,
    )


def test_classify_is_pure_and_derives_expired():
    assert expiration.classify(LotStatus.ACTIVE, TODAY - timedelta(days=1), TODAY).status == LotStatus.EXPIRED
    assert expiration.classify(LotStatus.ACTIVE, TODAY, TODAY).status == LotStatus.ACTIVE
    assert expiration.classify(LotStatus.CONSUMED, TODAY - timedelta(days=9), TODAY).status == LotStatus.CONSUMED


def test_classify_urgency_bands():
    def urgency(days):
        return expiration.classify(LotStatus.ACTIVE, TODAY + timedelta(days=days), TODAY).urgency

    assert [urgency(d) for d in (-3, 2, 3, 5, 6)] == ["high", "high", "medium", "medium", "low"]
    assert expiration.classify(LotStatus.DISCARDED, TODAY, TODAY).urgency is None


def test_past_lot_reads_expired_but_stays_active_until_closed(db, make_product):
    product = make_product()
    lot = expiration.create_lot(db, _lot(product, -2)).unwrap()

    [seen] = expiration.list_lots(db, LotStatus.EXPIRED, today=TODAY)

    assert seen.lot.id == lot.id
    assert seen.classification.status == LotStatus.EXPIRED
    assert expiration.get_lot(db, lot.id).unwrap().status == LotStatus.ACTIVE

    discarded = expiration.discard(db, lot.id).unwrap()
    assert discarded.status == LotStatus.DISCARDED
    assert discarded.closed_at is not None
    assert expiration.list_lots(db, LotStatus.EXPIRED, today=TODAY) == []


def test_closed_lots_cannot_transition_again(db, make_product):
    product = make_product()
    lot = expiration.create_lot(db, _lot(product, 3)).unwrap()
    expiration.consume(db, lot.id).unwrap()

    assert isinstance(expiration.discard(db, lot.id).error, InvalidTransition)
    assert isinstance(expiration.consume(db, lot.id).error, InvalidTransition)
    assert isinstance(expiration.update_lot(db, lot.id, LotUpdate(notes="late")).error, InvalidTransition)
    assert isinstance(expiration.consume(db, 999).error, NotFound)


def test_update_lot_edits_active_lot(db, make_product):
    product = make_product()
    lot = expiration.create_lot(db, _lot(product, 3)).unwrap()

    updated = expiration.update_lot(
        db, lot.id, LotUpdate(expiration_date=TODAY + timedelta(days=8), quantity=Decimal("0.5"))
    ).unwrap()

    assert updated.expiration_date == TODAY + timedelta(days=8)
    assert updated.quantity == Decimal("0.5")


def test_batch_stops_at_first_failure_and_keeps_earlier_lots(db, make_product):
    product = make_product()
    ghost = type("Ghost", (), {"id": 999})()

    result = expiration.create_lots(db, [_lot(product, 1), _lot(product, 2), _lot(ghost, 3), _lot(product, 4)])

    assert not result.ok
    assert result.error.index == 2
    assert result.error.code == "not_found"
    assert result.error.message == "Item 3 failed: Product not found"
    assert len(result.error.applied) == 2
    assert len(expiration.list_lots(db, today=TODAY)) == 2


def test_lot_supplier_is_resolved_by_name(db, make_product):
    product = make_product()
    payload = _lot(product, 5).model_copy(update={"supplier": "Metro", "batch_number": " L-42 "})

    first = expiration.create_lot(db, payload).unwrap()
    second = expiration.create_lot(db, payload).unwrap()

    assert first.supplier_id is not None
    assert first.supplier_id == second.supplier_id
    assert first.batch_number == "L-42"


def test_upcoming_window_and_dashboard(db, make_product):
    cream = make_product(name="Cream", quantity="1", par_level="10")
    butter = make_product(name="Butter", quantity="6", par_level="10")
    make_product(name="Flour", quantity="50", par_level="10")
    soon = expiration.create_lot(db, _lot(cream, 2)).unwrap()
    expiration.create_lot(db, _lot(cream, 30)).unwrap()
    past = expiration.create_lot(db, _lot(butter, -1)).unwrap()

    upcoming = expiration.upcoming_lots(db, 7, today=TODAY)
    board = expiration.operational_dashboard(db, TODAY)

    assert [item.lot.id for item in upcoming] == [soon.id]
    assert upcoming[0].classification.urgency == "high"
    assert board.total_products == 3
    assert [(item["product_name"], item["stock_status"]) for item in board.low_stock] == [
        ("Cream", "critical"),
        ("Butter", "low"),
    ]
    assert [item.lot.id for item in board.expired_lots] == [past.id]
