from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

from kitchen_ledger.models.inventory import BillStatus, LotStatus, MovementSource, MovementType, ProductUnit

StockStatus = Literal["ok", "low", "critical"]
Urgency = Literal["high", "medium", "low"]


class ProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    quantity: Decimal = Field(default=Decimal("0"), ge=0)
    unit: ProductUnit
    unit_price: Decimal | None = Field(default=None, gt=0)
    par_level: Decimal | None = Field(default=None, gt=0)
    category: str | None = Field(default=None, max_length=50)
    trackable: bool = False


class ProductUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    unit: ProductUnit | None = None
    unit_price: Decimal | None = Field(default=None, gt=0)
    clear_unit_price: bool = False
    par_level: Decimal | None = Field(default=None, gt=0)
    category: str | None = Field(default=None, max_length=50)
    trackable: bool | None = None


class ProductOut(BaseModel):
    id: int
    name: str
    quantity: Decimal
    initial_quantity: Decimal
    unit: ProductUnit
    unit_price: Decimal | None
    total_value: Decimal | None
    par_level: Decimal | None
    category: str | None
    trackable: bool
    is_composite: bool
    yield_quantity: Decimal | None
    stock_status: StockStatus = "ok"
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BulkImportResult(BaseModel):
    count: int
    product_ids: list[int]


class CompositeIngredientIn(BaseModel):
    base_product_id: int
    quantity: Decimal = Field(gt=0)
    unit: ProductUnit


class CompositeIngredientOut(BaseModel):
    id: int
    base_product_id: int
    quantity: Decimal
    unit: ProductUnit

    model_config = {"from_attributes": True}


class CompositeProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    yield_quantity: Decimal = Field(gt=0)
    unit: ProductUnit
    par_level: Decimal | None = Field(default=None, gt=0)
    category: str | None = Field(default=None, max_length=50)
    trackable: bool = False
    ingredients: list[CompositeIngredientIn] = Field(min_length=1)


class CompositionUpdate(BaseModel):
    yield_quantity: Decimal | None = Field(default=None, gt=0)
    ingredients: list[CompositeIngredientIn] = Field(min_length=1)


class StockMovementOut(BaseModel):
    id: int
    product_id: int
    movement_type: MovementType
    source: MovementSource
    quantity: Decimal
    quantity_delta: Decimal
    balance_after: Decimal
    unit_price: Decimal | None
    total_value: Decimal | None
    reason: str | None
    description: str | None
    sale_id: int | None
    bill_id: int | None
    created_at: datetime

    model_config = {"from_attributes": True}


class ReconciliationOut(BaseModel):
    product_id: int
    initial_quantity: Decimal
    movement_total: Decimal
    expected_quantity: Decimal
    quantity: Decimal
    movement_count: int
    consistent: bool


class StockAdjustRequest(BaseModel):
    new_quantity: Decimal
    reason: str | None = Field(default=None, max_length=255)


class StockAdjustOut(BaseModel):
    product: ProductOut
    movement: StockMovementOut | None
    old_quantity: Decimal
    new_quantity: Decimal
    change: Decimal


class AdjustmentSummaryItemOut(BaseModel):
    product_id: int
    product_name: str
    unit: ProductUnit
    total_loss: Decimal
    total_found: Decimal
    loss_value: Decimal
    adjustments: int


class BillLineIn(BaseModel):
    raw_name: str = Field(min_length=1, max_length=255)
    quantity: Decimal = Field(gt=0)
    unit: ProductUnit
    unit_price: Decimal | None = Field(default=None, ge=0)
    total_price: Decimal | None = Field(default=None, ge=0)


class BillCreate(BaseModel):
    filename: str | None = Field(default=None, max_length=255)
    supplier: str | None = Field(default=None, max_length=160)
    raw_content: str | None = None
    lines: list[BillLineIn] = Field(default_factory=list)


class ConfirmedLineIn(BaseModel):
    product_id: int | None = None
    product_name: str = Field(min_length=1, max_length=255)
    quantity: Decimal = Field(gt=0)
    unit: ProductUnit
    unit_price: Decimal = Field(ge=0)


class BillConfirmRequest(BaseModel):
    products: list[ConfirmedLineIn]
    supplier: str | None = Field(default=None, max_length=160)
    bill_date: date | None = None
    total_amount: Decimal | None = Field(default=None, ge=0)


class BillLineOut(BaseModel):
    id: int
    product_id: int | None
    raw_name: str
    quantity: Decimal
    unit: ProductUnit
    unit_price: Decimal | None
    total_price: Decimal | None

    model_config = {"from_attributes": True}


class BillOut(BaseModel):
    id: int
    filename: str | None
    status: BillStatus
    supplier_id: int | None
    bill_date: date | None
    total_amount: Decimal | None
    processed_at: datetime | None
    created_at: datetime
    lines: list[BillLineOut]

    model_config = {"from_attributes": True}


class SupplierOut(BaseModel):
    id: int
    name: str
    contact: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class LotCreate(BaseModel):
    product_id: int
    expiration_date: date
    quantity: Decimal = Field(gt=0)
    unit: ProductUnit
    batch_number: str | None = Field(default=None, max_length=64)
    supplier: str | None = Field(default=None, max_length=160)
    notes: str | None = Field(default=None, max_length=1000)


class LotUpdate(BaseModel):
    expiration_date: date | None = None
    quantity: Decimal | None = Field(default=None, gt=0)
    unit: ProductUnit | None = None
    batch_number: str | None = Field(default=None, max_length=64)
    notes: str | None = Field(default=None, max_length=1000)


class LotOut(BaseModel):
    id: int
    product_id: int
    expiration_date: date
    quantity: Decimal
    unit: ProductUnit
    status: LotStatus
    effective_status: LotStatus = LotStatus.ACTIVE
    days_until_expiration: int | None = None
    urgency: Urgency | None = None
    batch_number: str | None
    supplier_id: int | None
    notes: str | None
    created_at: datetime
    closed_at: datetime | None

    model_config = {"from_attributes": True}


class LotBatchOut(BaseModel):
    created: list[LotOut]


class LowStockItemOut(BaseModel):
    product_id: int
    product_name: str
    quantity: Decimal
    par_level: Decimal
    unit: ProductUnit
    stock_status: StockStatus


class DashboardOut(BaseModel):
    as_of: date
    total_products: int
    low_stock: list[LowStockItemOut]
    expiring_lots: list[LotOut]
    expired_lots: list[LotOut]
