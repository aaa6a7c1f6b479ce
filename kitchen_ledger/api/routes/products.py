from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from kitchen_ledger.api.deps import unwrap
from kitchen_ledger.db.database import get_db
from kitchen_ledger.models.inventory import MovementSource, MovementType, Product
from kitchen_ledger.schemas.inventory import (
    BulkImportResult,
    CompositeIngredientOut,
    CompositeProductCreate,
    CompositionUpdate,
    ProductCreate,
    ProductOut,
    ProductUpdate,
    ReconciliationOut,
    StockAdjustOut,
    StockAdjustRequest,
    StockMovementOut,
    SupplierOut,
)
from kitchen_ledger.schemas.menu import CostLineOut, CostOut
from kitchen_ledger.services import adjustments, ledger, products, recipes

router = APIRouter(prefix="/products", tags=["Products"])


def product_out(product: Product) -> ProductOut:
    return ProductOut.model_validate(product).model_copy(
        update={"stock_status": products.stock_status(product.quantity, product.par_level)}
    )


def cost_out(rollup: recipes.CostRollup) -> CostOut:
    return CostOut(
        cost=rollup.cost,
        total_cost=rollup.total_cost,
        yield_quantity=rollup.yield_quantity,
        has_missing_prices=rollup.has_missing_prices,
        lines=[
            CostLineOut(
                product_id=line.product_id,
                product_name=line.product_name,
                quantity=line.quantity,
                unit=line.unit,
                unit_price=line.unit_price,
                total_cost=line.total_cost,
                has_missing_price=line.has_missing_price,
            )
            for line in rollup.lines
        ],
    )


@router.post("", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(payload: ProductCreate, db: Session = Depends(get_db)):
    return product_out(unwrap(products.create_product(db, payload)))


@router.post("/bulk", response_model=BulkImportResult, status_code=status.HTTP_201_CREATED)
def bulk_create_products(payload: list[ProductCreate], db: Session = Depends(get_db)):
    created = unwrap(products.bulk_create_products(db, payload))
    return BulkImportResult(count=len(created), product_ids=[product.id for product in created])


@router.post("/composite", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
def create_composite_product(payload: CompositeProductCreate, db: Session = Depends(get_db)):
    return product_out(unwrap(products.create_composite_product(db, payload)))


@router.get("", response_model=list[ProductOut])
def list_products(
    category: str | None = None,
    composite: bool | None = None,
    q: str | None = Query(default=None, min_length=1),
    db: Session = Depends(get_db),
):
    if q is not None:
        found = products.search_products(db, q)
    else:
        found = products.list_products(db, category=category, composite=composite)
    return [product_out(product) for product in found]


@router.get("/suppliers", response_model=list[SupplierOut])
def list_suppliers(db: Session = Depends(get_db)):
    return products.list_suppliers(db)


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: int, db: Session = Depends(get_db)):
    return product_out(unwrap(products.get_product(db, product_id)))


@router.patch("/{product_id}", response_model=ProductOut)
def update_product(product_id: int, payload: ProductUpdate, db: Session = Depends(get_db)):
    return product_out(unwrap(products.update_product(db, product_id, payload)))


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(product_id: int, db: Session = Depends(get_db)):
    unwrap(products.delete_product(db, product_id))


@router.post("/{product_id}/adjust", response_model=StockAdjustOut)
def adjust_stock(product_id: int, payload: StockAdjustRequest, db: Session = Depends(get_db)):
    outcome = unwrap(adjustments.adjust(db, product_id, payload.new_quantity, payload.reason))
    return StockAdjustOut(
        product=product_out(outcome.product),
        movement=StockMovementOut.model_validate(outcome.movement) if outcome.movement else None,
        old_quantity=outcome.old_quantity,
        new_quantity=outcome.new_quantity,
        change=outcome.change,
    )


@router.get("/{product_id}/movements", response_model=list[StockMovementOut])
def list_movements(
    product_id: int,
    source: MovementSource | None = None,
    movement_type: MovementType | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    db: Session = Depends(get_db),
):
    unwrap(products.get_product(db, product_id))
    return ledger.list_movements(
        db,
        product_id,
        source=source,
        movement_type=movement_type,
        date_from=date_from,
        date_to=date_to,
    )


@router.get("/{product_id}/reconcile", response_model=ReconciliationOut)
def reconcile(product_id: int, db: Session = Depends(get_db)):
    result = unwrap(ledger.reconcile(db, product_id))
    return ReconciliationOut(
        product_id=result.product_id,
        initial_quantity=result.initial_quantity,
        movement_total=result.movement_total,
        expected_quantity=result.expected_quantity,
        quantity=result.quantity,
        movement_count=result.movement_count,
        consistent=result.consistent,
    )


@router.get("/{product_id}/composition", response_model=list[CompositeIngredientOut])
def get_composition(product_id: int, db: Session = Depends(get_db)):
    return unwrap(products.get_product(db, product_id)).composite_ingredients


@router.put("/{product_id}/composition", response_model=ProductOut)
def set_composition(product_id: int, payload: CompositionUpdate, db: Session = Depends(get_db)):
    return product_out(unwrap(products.set_composition(db, product_id, payload)))


@router.get("/{product_id}/cost", response_model=CostOut)
def composite_cost(product_id: int, db: Session = Depends(get_db)):
    return cost_out(unwrap(recipes.composite_cost(db, product_id)))
