from kitchen_ledger.models.inventory import (
    Bill,
    BillProduct,
    BillStatus,
    CompositeIngredient,
    ExpirationLot,
    LotStatus,
    MovementSource,
    MovementType,
    Product,
    ProductUnit,
    StockMovement,
    Supplier,
)
from kitchen_ledger.models.menu import Dish, RecipeIngredient, Sale, SaleIngredient

__all__ = [
    "Bill",
    "BillProduct",
    "BillStatus",
    "CompositeIngredient",
    "Dish",
    "ExpirationLot",
    "LotStatus",
    "MovementSource",
    "MovementType",
    "Product",
    "ProductUnit",
    "RecipeIngredient",
    "Sale",
    "SaleIngredient",
    "StockMovement",
    "Supplier",
]
