from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from kitchen_ledger.api.deps import unwrap
from kitchen_ledger.db.database import get_db
from kitchen_ledger.models.inventory import BillStatus
from kitchen_ledger.schemas.inventory import BillConfirmRequest, BillCreate, BillOut
from kitchen_ledger.services import bills

router = APIRouter(prefix="/bills", tags=["Bills"])


@router.post("", response_model=BillOut, status_code=status.HTTP_201_CREATED)
def create_bill(payload: BillCreate, db: Session = Depends(get_db)):
    return unwrap(bills.create_bill(db, payload))


@router.get("", response_model=list[BillOut])
def list_bills(
    bill_status: BillStatus | None = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
):
    return bills.list_bills(db, bill_status)


@router.get("/{bill_id}", response_model=BillOut)
def get_bill(bill_id: int, db: Session = Depends(get_db)):
    return unwrap(bills.get_bill(db, bill_id))


@router.post("/{bill_id}/confirm", response_model=BillOut)
def confirm_bill(bill_id: int, payload: BillConfirmRequest, db: Session = Depends(get_db)):
    return unwrap(
        bills.confirm_bill(
            db,
            bill_id,
            payload.products,
            supplier_name=payload.supplier,
            bill_date=payload.bill_date,
            total_amount=payload.total_amount,
        )
    )
