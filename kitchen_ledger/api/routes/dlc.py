from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from kitchen_ledger.api.deps import unwrap
from kitchen_ledger.db.database import get_db
from kitchen_ledger.models.inventory import ExpirationLot, LotStatus
from kitchen_ledger.schemas.inventory import LotBatchOut, LotCreate, LotOut, LotUpdate
from kitchen_ledger.services import expiration

router = APIRouter(prefix="/dlc", tags=["Expiration"])


def lot_out(item: expiration.LotView | ExpirationLot) -> LotOut:
    if isinstance(item, ExpirationLot):
        item = expiration.view(item)
    return LotOut.model_validate(item.lot).model_copy(
        update={
            "effective_status": item.classification.status,
            "days_until_expiration": item.classification.days_until_expiration,
            "urgency": item.classification.urgency,
        }
    )


@router.post("", response_model=LotOut, status_code=status.HTTP_201_CREATED)
def create_lot(payload: LotCreate, db: Session = Depends(get_db)):
    return lot_out(unwrap(expiration.create_lot(db, payload)))


@router.post("/batch", response_model=LotBatchOut, status_code=status.HTTP_201_CREATED)
def create_lots(payload: list[LotCreate], db: Session = Depends(get_db)):
    return LotBatchOut(created=[lot_out(lot) for lot in unwrap(expiration.create_lots(db, payload))])


@router.get("", response_model=list[LotOut])
def list_lots(
    lot_status: LotStatus | None = Query(default=None, alias="status"),
    product_id: int | None = None,
    db: Session = Depends(get_db),
):
    return [lot_out(item) for item in expiration.list_lots(db, lot_status, product_id=product_id)]


@router.get("/upcoming", response_model=list[LotOut])
def upcoming_lots(days: int | None = Query(default=None, ge=0), db: Session = Depends(get_db)):
    return [lot_out(item) for item in expiration.upcoming_lots(db, days)]


@router.get("/{lot_id}", response_model=LotOut)
def get_lot(lot_id: int, db: Session = Depends(get_db)):
    return lot_out(unwrap(expiration.get_lot(db, lot_id)))


@router.patch("/{lot_id}", response_model=LotOut)
def update_lot(lot_id: int, payload: LotUpdate, db: Session = Depends(get_db)):
    return lot_out(unwrap(expiration.update_lot(db, lot_id, payload)))


@router.post("/{lot_id}/consume", response_model=LotOut)
def consume_lot(lot_id: int, db: Session = Depends(get_db)):
    return lot_out(unwrap(expiration.consume(db, lot_id)))


@router.post("/{lot_id}/discard", response_model=LotOut)
def discard_lot(lot_id: int, db: Session = Depends(get_db)):
    return lot_out(unwrap(expiration.discard(db, lot_id)))
