"""create inventory ledger schema

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17 09:00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20261017_0001"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    unit = sa.Enum("KG", "G", "L", "ML", "CL", "PC", "BUNCH", "CLOVE", name="productunit")
    bill_status_enum = sa.Enum("PENDING", "PROCESSED", name="billstatus")
    movement_type_enum = sa.Enum("IN", "OUT", "ADJUSTMENT", name="movementtype")
    movement_source_enum = sa.Enum(
        "MANUAL",
        "BILL_RECEIPT",
        "RECIPE_DEDUCTION",
        "SALE_REVERSAL",
        "SYSTEM_ADJUSTMENT",
        name="movementsource",
    )
    lot_status_enum = sa.Enum("ACTIVE", "CONSUMED", "DISCARDED", "EXPIRED", name="lotstatus")

    bind = op.get_bind()
    for enum in (unit, bill_status_enum, movement_type_enum, movement_source_enum, lot_status_enum):
        enum.create(bind, checkfirst=True)

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("quantity", sa.Numeric(precision=14, scale=3), nullable=False),
        sa.Column("initial_quantity", sa.Numeric(precision=14, scale=3), nullable=False),
        sa.Column("unit", unit, nullable=False),
        sa.Column("unit_price", sa.Numeric(precision=12, scale=4), nullable=True),
        sa.Column("total_value", sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column("par_level", sa.Numeric(precision=14, scale=3), nullable=True),
        sa.Column("category", sa.String(length=50), nullable=True),
        sa.Column("trackable", sa.Boolean(), nullable=False),
        sa.Column("is_composite", sa.Boolean(), nullable=False),
        sa.Column("yield_quantity", sa.Numeric(precision=14, scale=3), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_products_id"), "products", ["id"], unique=False)
    op.create_index(op.f("ix_products_name"), "products", ["name"], unique=False)

    op.create_table(
        "composite_ingredients",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("composite_product_id", sa.Integer(), nullable=False),
        sa.Column("base_product_id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Numeric(precision=14, scale=3), nullable=False),
        sa.Column("unit", unit, nullable=False),
        sa.ForeignKeyConstraint(["composite_product_id"], ["products.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["base_product_id"], ["products.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("composite_product_id", "base_product_id", name="uq_composite_ingredients_pair"),
    )
    op.create_index(op.f("ix_composite_ingredients_id"), "composite_ingredients", ["id"], unique=False)
    op.create_index(
        op.f("ix_composite_ingredients_composite_product_id"),
        "composite_ingredients",
        ["composite_product_id"],
        unique=False,
    )
    op.create_index(
        op.f("ix_composite_ingredients_base_product_id"),
        "composite_ingredients",
        ["base_product_id"],
        unique=False,
    )

    op.create_table(
        "suppliers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("contact", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", name="uq_suppliers_name"),
    )
    op.create_index(op.f("ix_suppliers_id"), "suppliers", ["id"], unique=False)

    op.create_table(
        "dishes",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("selling_price", sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_dishes_id"), "dishes", ["id"], unique=False)
    op.create_index(op.f("ix_dishes_name"), "dishes", ["name"], unique=False)

    op.create_table(
        "recipe_ingredients",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("dish_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("quantity_required", sa.Numeric(precision=14, scale=3), nullable=False),
        sa.Column("unit", unit, nullable=False),
        sa.ForeignKeyConstraint(["dish_id"], ["dishes.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("dish_id", "product_id", name="uq_recipe_ingredients_dish_product"),
    )
    op.create_index(op.f("ix_recipe_ingredients_id"), "recipe_ingredients", ["id"], unique=False)
    op.create_index(op.f("ix_recipe_ingredients_dish_id"), "recipe_ingredients", ["dish_id"], unique=False)
    op.create_index(op.f("ix_recipe_ingredients_product_id"), "recipe_ingredients", ["product_id"], unique=False)

    op.create_table(
        "sales",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("dish_id", sa.Integer(), nullable=False),
        sa.Column("quantity_sold", sa.Integer(), nullable=False),
        sa.Column("sale_date", sa.DateTime(), nullable=False),
        sa.Column("notes", sa.String(length=1000), nullable=True),
        sa.Column("has_snapshot", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["dish_id"], ["dishes.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_sales_id"), "sales", ["id"], unique=False)
    op.create_index(op.f("ix_sales_dish_id"), "sales", ["dish_id"], unique=False)
    op.create_index(op.f("ix_sales_sale_date"), "sales", ["sale_date"], unique=False)

    op.create_table(
        "sale_ingredients",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("sale_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("quantity_per_unit", sa.Numeric(precision=14, scale=3), nullable=False),
        sa.Column("unit", unit, nullable=False),
        sa.ForeignKeyConstraint(["sale_id"], ["sales.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_sale_ingredients_id"), "sale_ingredients", ["id"], unique=False)
    op.create_index(op.f("ix_sale_ingredients_sale_id"), "sale_ingredients", ["sale_id"], unique=False)
    op.create_index(op.f("ix_sale_ingredients_product_id"), "sale_ingredients", ["product_id"], unique=False)

    op.create_table(
        "bills",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("filename", sa.String(length=255), nullable=True),
        sa.Column("status", bill_status_enum, nullable=False),
        sa.Column("supplier_id", sa.Integer(), nullable=True),
        sa.Column("bill_date", sa.Date(), nullable=True),
        sa.Column("total_amount", sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column("raw_content", sa.Text(), nullable=True),
        sa.Column("processed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["supplier_id"], ["suppliers.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_bills_id"), "bills", ["id"], unique=False)
    op.create_index(op.f("ix_bills_status"), "bills", ["status"], unique=False)
    op.create_index(op.f("ix_bills_supplier_id"), "bills", ["supplier_id"], unique=False)
    op.create_index(op.f("ix_bills_created_at"), "bills", ["created_at"], unique=False)

    op.create_table(
        "bill_products",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("bill_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=True),
        sa.Column("raw_name", sa.String(length=255), nullable=False),
        sa.Column("quantity", sa.Numeric(precision=14, scale=3), nullable=False),
        sa.Column("unit", unit, nullable=False),
        sa.Column("unit_price", sa.Numeric(precision=12, scale=4), nullable=True),
        sa.Column("total_price", sa.Numeric(precision=14, scale=2), nullable=True),
        sa.ForeignKeyConstraint(["bill_id"], ["bills.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_bill_products_id"), "bill_products", ["id"], unique=False)
    op.create_index(op.f("ix_bill_products_bill_id"), "bill_products", ["bill_id"], unique=False)
    op.create_index(op.f("ix_bill_products_product_id"), "bill_products", ["product_id"], unique=False)

    op.create_table(
        "stock_movements",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("movement_type", movement_type_enum, nullable=False),
        sa.Column("source", movement_source_enum, nullable=False),
        sa.Column("quantity", sa.Numeric(precision=14, scale=3), nullable=False),
        sa.Column("quantity_delta", sa.Numeric(precision=14, scale=3), nullable=False),
        sa.Column("balance_after", sa.Numeric(precision=14, scale=3), nullable=False),
        sa.Column("unit_price", sa.Numeric(precision=12, scale=4), nullable=True),
        sa.Column("total_value", sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column("reason", sa.String(length=255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("sale_id", sa.Integer(), nullable=True),
        sa.Column("bill_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["sale_id"], ["sales.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["bill_id"], ["bills.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_stock_movements_id"), "stock_movements", ["id"], unique=False)
    op.create_index(op.f("ix_stock_movements_product_id"), "stock_movements", ["product_id"], unique=False)
    op.create_index(op.f("ix_stock_movements_movement_type"), "stock_movements", ["movement_type"], unique=False)
    op.create_index(op.f("ix_stock_movements_source"), "stock_movements", ["source"], unique=False)
    op.create_index(op.f("ix_stock_movements_sale_id"), "stock_movements", ["sale_id"], unique=False)
    op.create_index(op.f("ix_stock_movements_bill_id"), "stock_movements", ["bill_id"], unique=False)
    op.create_index(op.f("ix_stock_movements_created_at"), "stock_movements", ["created_at"], unique=False)

    op.create_table(
        "dlcs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("expiration_date", sa.Date(), nullable=False),
        sa.Column("quantity", sa.Numeric(precision=14, scale=3), nullable=False),
        sa.Column("unit", unit, nullable=False),
        sa.Column("status", lot_status_enum, nullable=False),
        sa.Column("batch_number", sa.String(length=64), nullable=True),
        sa.Column("supplier_id", sa.Integer(), nullable=True),
        sa.Column("notes", sa.String(length=1000), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("closed_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["supplier_id"], ["suppliers.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_dlcs_id"), "dlcs", ["id"], unique=False)
    op.create_index(op.f("ix_dlcs_product_id"), "dlcs", ["product_id"], unique=False)
    op.create_index(op.f("ix_dlcs_expiration_date"), "dlcs", ["expiration_date"], unique=False)
    op.create_index(op.f("ix_dlcs_status"), "dlcs", ["status"], unique=False)
    op.create_index(op.f("ix_dlcs_supplier_id"), "dlcs", ["supplier_id"], unique=False)


def downgrade() -> None:
    for table in (
        "dlcs",
        "stock_movements",
        "bill_products",
        "bills",
        "sale_ingredients",
        "sales",
        "recipe_ingredients",
        "dishes",
        "suppliers",
        "composite_ingredients",
        "products",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum_name in ("lotstatus", "movementsource", "movementtype", "billstatus", "productunit"):
        sa.Enum(name=enum_name).drop(bind, checkfirst=True)
