from datetime import datetime

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from kitchen_ledger.api.deps import unwrap
from kitchen_ledger.db.database import get_db
from kitchen_ledger.schemas.menu import SaleCreate, SaleOut, SalesSummaryOut, SaleUpdate
from kitchen_ledger.services import sales

router = APIRouter(prefix="/sales", tags=["Sales"])


@router.post("", response_model=SaleOut, status_code=status.HTTP_201_CREATED)
def record_sale(payload: SaleCreate, db: Session = Depends(get_db)):
    return unwrap(sales.record_sale(db, payload.dish_id, payload.quantity_sold, payload.sale_date, payload.notes))


@router.get("", response_model=list[SaleOut])
def list_sales(
    dish_id: int | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    db: Session = Depends(get_db),
):
    return unwrap(sales.list_sales(db, dish_id=dish_id, date_from=date_from, date_to=date_to))


@router.get("/summary", response_model=list[SalesSummaryOut])
def sales_summary(date_from: datetime, date_to: datetime, db: Session = Depends(get_db)):
    return [SalesSummaryOut(**vars(item)) for item in unwrap(sales.sales_summary(db, date_from, date_to))]


@router.get("/{sale_id}", response_model=SaleOut)
def get_sale(sale_id: int, db: Session = Depends(get_db)):
    return unwrap(sales.get_sale(db, sale_id))


@router.patch("/{sale_id}", response_model=SaleOut)
def update_sale(sale_id: int, payload: SaleUpdate, db: Session = Depends(get_db)):
    return unwrap(sales.update_sale(db, sale_id, payload.quantity_sold, payload.sale_date, payload.notes))


@router.delete("/{sale_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_sale(sale_id: int, db: Session = Depends(get_db)):
    unwrap(sales.delete_sale(db, sale_id))
