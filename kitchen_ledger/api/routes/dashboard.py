from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from kitchen_ledger.api.routes.dlc import lot_out
from kitchen_ledger.db.database import get_db
from kitchen_ledger.schemas.inventory import AdjustmentSummaryItemOut, DashboardOut, LowStockItemOut
from kitchen_ledger.services import adjustments, expiration

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("", response_model=DashboardOut)
def dashboard(db: Session = Depends(get_db)):
    snapshot = expiration.operational_dashboard(db)
    return DashboardOut(
        as_of=snapshot.as_of,
        total_products=snapshot.total_products,
        low_stock=[LowStockItemOut(**item) for item in snapshot.low_stock],
        expiring_lots=[lot_out(item) for item in snapshot.expiring_lots],
        expired_lots=[lot_out(item) for item in snapshot.expired_lots],
    )


@router.get("/adjustments", response_model=list[AdjustmentSummaryItemOut])
def adjustment_summary(
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    db: Session = Depends(get_db),
):
    return [
        AdjustmentSummaryItemOut(**vars(item))
        for item in adjustments.adjustment_summary(db, date_from, date_to)
    ]
