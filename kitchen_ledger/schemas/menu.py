from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from kitchen_ledger.models.inventory import ProductUnit


class RecipeIngredientIn(BaseModel):
    product_id: int
    quantity_required: Decimal = Field(gt=0)
    unit: ProductUnit


class RecipeIngredientOut(BaseModel):
    id: int
    product_id: int
    quantity_required: Decimal
    unit: ProductUnit

    model_config = {"from_attributes": True}


class DishCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = None
    selling_price: Decimal | None = Field(default=None, gt=0)
    is_active: bool = True
    recipe_ingredients: list[RecipeIngredientIn] = Field(default_factory=list)


class DishUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    selling_price: Decimal | None = Field(default=None, gt=0)
    is_active: bool | None = None
    recipe_ingredients: list[RecipeIngredientIn] | None = None


class DishOut(BaseModel):
    id: int
    name: str
    description: str | None
    selling_price: Decimal | None
    is_active: bool
    created_at: datetime
    recipe_ingredients: list[RecipeIngredientOut]

    model_config = {"from_attributes": True}


class CostLineOut(BaseModel):
    product_id: int
    product_name: str
    quantity: Decimal
    unit: ProductUnit
    unit_price: Decimal | None
    total_cost: Decimal
    has_missing_price: bool


class CostOut(BaseModel):
    cost: Decimal
    total_cost: Decimal
    yield_quantity: Decimal | None = None
    has_missing_prices: bool
    lines: list[CostLineOut]


class AvailabilityOut(BaseModel):
    dish_id: int
    multiplier: int
    can_fulfill: bool
    max_units: int | None
    missing_ingredients: list[str]


class SaleCreate(BaseModel):
    dish_id: int
    quantity_sold: int = Field(gt=0)
    sale_date: datetime | None = None
    notes: str | None = Field(default=None, max_length=1000)


class SaleUpdate(BaseModel):
    quantity_sold: int | None = Field(default=None, gt=0)
    sale_date: datetime | None = None
    notes: str | None = Field(default=None, max_length=1000)


class SaleIngredientOut(BaseModel):
    product_id: int
    quantity_per_unit: Decimal
    unit: ProductUnit

    model_config = {"from_attributes": True}


class SaleOut(BaseModel):
    id: int
    dish_id: int
    quantity_sold: int
    sale_date: datetime
    notes: str | None
    has_snapshot: bool
    created_at: datetime
    ingredients: list[SaleIngredientOut]

    model_config = {"from_attributes": True}


class SalesSummaryOut(BaseModel):
    dish_id: int
    dish_name: str
    total_quantity: int
    sales_count: int
