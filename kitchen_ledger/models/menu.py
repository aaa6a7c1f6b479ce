from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Enum as SQLEnum, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from kitchen_ledger.db.database import Base
from kitchen_ledger.models.inventory import MONEY, QUANTITY, Product, ProductUnit


class Dish(Base):
    __tablename__ = "dishes"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(100), index=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    selling_price: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    recipe_ingredients: Mapped[list["RecipeIngredient"]] = relationship(
        back_populates="dish",
        cascade="all, delete-orphan",
        order_by="RecipeIngredient.id",
    )


class RecipeIngredient(Base):
    __tablename__ = "recipe_ingredients"
    __table_args__ = (UniqueConstraint("dish_id", "product_id", name="uq_recipe_ingredients_dish_product"),)

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    dish_id: Mapped[int] = mapped_column(ForeignKey("dishes.id", ondelete="CASCADE"), index=True, nullable=False)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id", ondelete="RESTRICT"), index=True, nullable=False)
    quantity_required: Mapped[Decimal] = mapped_column(QUANTITY, nullable=False)
    unit: Mapped[ProductUnit] = mapped_column(SQLEnum(ProductUnit), nullable=False)

    dish: Mapped[Dish] = relationship(back_populates="recipe_ingredients")
    product: Mapped[Product] = relationship()


class Sale(Base):
    __tablename__ = "sales"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    dish_id: Mapped[int] = mapped_column(ForeignKey("dishes.id", ondelete="RESTRICT"), index=True, nullable=False)
    quantity_sold: Mapped[int] = mapped_column(Integer, nullable=False)
    sale_date: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    has_snapshot: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    dish: Mapped[Dish] = relationship()
    ingredients: Mapped[list["SaleIngredient"]] = relationship(
        back_populates="sale",
        cascade="all, delete-orphan",
        order_by="SaleIngredient.id",
    )


class SaleIngredient(Base):
    """Per-unit consumption captured when the sale was recorded."""

    __tablename__ = "sale_ingredients"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    sale_id: Mapped[int] = mapped_column(ForeignKey("sales.id", ondelete="CASCADE"), index=True, nullable=False)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id", ondelete="RESTRICT"), index=True, nullable=False)
    quantity_per_unit: Mapped[Decimal] = mapped_column(QUANTITY, nullable=False)
    unit: Mapped[ProductUnit] = mapped_column(SQLEnum(ProductUnit), nullable=False)

    sale: Mapped[Sale] = relationship(back_populates="ingredients")
    product: Mapped[Product] = relationship()
