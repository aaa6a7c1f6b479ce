from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from kitchen_ledger.db.database import Base


class ProductUnit(str, Enum):
    KG = "KG"
    G = "G"
    L = "L"
    ML = "ML"
    CL = "CL"
    PC = "PC"
    BUNCH = "BUNCH"
    CLOVE = "CLOVE"


class MovementType(str, Enum):
    IN = "IN"
    OUT = "OUT"
    ADJUSTMENT = "ADJUSTMENT"


class MovementSource(str, Enum):
    MANUAL = "MANUAL"
    BILL_RECEIPT = "BILL_RECEIPT"
    RECIPE_DEDUCTION = "RECIPE_DEDUCTION"
    SALE_REVERSAL = "SALE_REVERSAL"
    SYSTEM_ADJUSTMENT = "SYSTEM_ADJUSTMENT"


class BillStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSED = "PROCESSED"


class LotStatus(str, Enum):
    ACTIVE = "ACTIVE"
    CONSUMED = "CONSUMED"
    DISCARDED = "DISCARDED"
    EXPIRED = "EXPIRED"


QUANTITY = Numeric(14, 3)
PRICE = Numeric(12, 4)
MONEY = Numeric(14, 2)


class Product(Base):
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    quantity: Mapped[Decimal] = mapped_column(QUANTITY, default=Decimal("0"), nullable=False)
    initial_quantity: Mapped[Decimal] = mapped_column(QUANTITY, default=Decimal("0"), nullable=False)
    unit: Mapped[ProductUnit] = mapped_column(SQLEnum(ProductUnit), nullable=False)
    unit_price: Mapped[Decimal | None] = mapped_column(PRICE, nullable=True)
    total_value: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    par_level: Mapped[Decimal | None] = mapped_column(QUANTITY, nullable=True)
    category: Mapped[str | None] = mapped_column(String(50), nullable=True)
    trackable: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_composite: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    yield_quantity: Mapped[Decimal | None] = mapped_column(QUANTITY, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    composite_ingredients: Mapped[list["CompositeIngredient"]] = relationship(
        back_populates="composite_product",
        foreign_keys="CompositeIngredient.composite_product_id",
        cascade="all, delete-orphan",
        order_by="CompositeIngredient.id",
    )


class CompositeIngredient(Base):
    __tablename__ = "composite_ingredients"
    __table_args__ = (
        UniqueConstraint("composite_product_id", "base_product_id", name="uq_composite_ingredients_pair"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    composite_product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    base_product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="RESTRICT"),
        index=True,
        nullable=False,
    )
    quantity: Mapped[Decimal] = mapped_column(QUANTITY, nullable=False)
    unit: Mapped[ProductUnit] = mapped_column(SQLEnum(ProductUnit), nullable=False)

    composite_product: Mapped[Product] = relationship(
        back_populates="composite_ingredients",
        foreign_keys=[composite_product_id],
    )
    base_product: Mapped[Product] = relationship(foreign_keys=[base_product_id])


class StockMovement(Base):
    __tablename__ = "stock_movements"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id", ondelete="RESTRICT"), index=True, nullable=False)
    movement_type: Mapped[MovementType] = mapped_column(SQLEnum(MovementType), index=True, nullable=False)
    source: Mapped[MovementSource] = mapped_column(
        SQLEnum(MovementSource),
        default=MovementSource.MANUAL,
        index=True,
        nullable=False,
    )
    quantity: Mapped[Decimal] = mapped_column(QUANTITY, nullable=False)
    quantity_delta: Mapped[Decimal] = mapped_column(QUANTITY, nullable=False)
    balance_after: Mapped[Decimal] = mapped_column(QUANTITY, nullable=False)
    unit_price: Mapped[Decimal | None] = mapped_column(PRICE, nullable=True)
    total_value: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    reason: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    sale_id: Mapped[int | None] = mapped_column(ForeignKey("sales.id", ondelete="SET NULL"), index=True, nullable=True)
    bill_id: Mapped[int | None] = mapped_column(ForeignKey("bills.id", ondelete="SET NULL"), index=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False, index=True)


class ImmutableMovementError(RuntimeError):
    pass


@event.listens_for(StockMovement, "before_update")
def _block_movement_update(_mapper, _connection, target: StockMovement) -> None:
    raise ImmutableMovementError(f"Stock movement {target.id} is immutable; record a compensating movement instead")


class Supplier(Base):
    __tablename__ = "suppliers"
    __table_args__ = (UniqueConstraint("name", name="uq_suppliers_name"),)

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(160), nullable=False)
    contact: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)


class Bill(Base):
    __tablename__ = "bills"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    filename: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[BillStatus] = mapped_column(
        SQLEnum(BillStatus),
        default=BillStatus.PENDING,
        index=True,
        nullable=False,
    )
    supplier_id: Mapped[int | None] = mapped_column(
        ForeignKey("suppliers.id", ondelete="SET NULL"),
        index=True,
        nullable=True,
    )
    bill_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    total_amount: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    raw_content: Mapped[str | None] = mapped_column(Text, nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    lines: Mapped[list["BillProduct"]] = relationship(
        back_populates="bill",
        cascade="all, delete-orphan",
        order_by="BillProduct.id",
    )
    supplier: Mapped[Supplier | None] = relationship()


class BillProduct(Base):
    __tablename__ = "bill_products"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    bill_id: Mapped[int] = mapped_column(ForeignKey("bills.id", ondelete="CASCADE"), index=True, nullable=False)
    product_id: Mapped[int | None] = mapped_column(
        ForeignKey("products.id", ondelete="SET NULL"),
        index=True,
        nullable=True,
    )
    raw_name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(QUANTITY, nullable=False)
    unit: Mapped[ProductUnit] = mapped_column(SQLEnum(ProductUnit), nullable=False)
    unit_price: Mapped[Decimal | None] = mapped_column(PRICE, nullable=True)
    total_price: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)

    bill: Mapped[Bill] = relationship(back_populates="lines")


class ExpirationLot(Base):
    __tablename__ = "dlcs"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id", ondelete="CASCADE"), index=True, nullable=False)
    expiration_date: Mapped[date] = mapped_column(Date, index=True, nullable=False)
    quantity: Mapped[Decimal] = mapped_column(QUANTITY, nullable=False)
    unit: Mapped[ProductUnit] = mapped_column(SQLEnum(ProductUnit), nullable=False)
    status: Mapped[LotStatus] = mapped_column(
        SQLEnum(LotStatus),
        default=LotStatus.ACTIVE,
        index=True,
        nullable=False,
    )
    batch_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    supplier_id: Mapped[int | None] = mapped_column(
        ForeignKey("suppliers.id", ondelete="SET NULL"),
        index=True,
        nullable=True,
    )
    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    product: Mapped[Product] = relationship()
