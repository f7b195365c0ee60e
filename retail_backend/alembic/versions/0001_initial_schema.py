"""initial schema: catalogue, procurement, stock ledger

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ROLE = sa.Enum("ADMIN", "MANAGER", "STAFF", name="role")
PO_STATUS = sa.Enum("PENDING", "CONFIRMED", "RECEIVED", "CANCELLED", name="purchase_order_status")
TRANSACTION_TYPE = sa.Enum("IN", "OUT", "ADJUSTMENT", "RESERVED", "RELEASED", name="transaction_type")
REFERENCE_TYPE = sa.Enum("PURCHASE", "SALE", "ADJUSTMENT", "RETURN", name="reference_type")


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column("created_by", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_by", sa.Uuid(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_by", sa.Uuid(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("role", ROLE, nullable=False),
        sa.Column("permissions", sa.JSON(), nullable=False),
        sa.Column("is_email_verified", sa.Boolean(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_audit_columns(),
    )

    op.create_table(
        "categories",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_audit_columns(),
    )

    op.create_table(
        "products",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("sku", sa.String(64), nullable=False, unique=True),
        sa.Column("barcode", sa.String(64), nullable=True, unique=True),
        sa.Column("category_id", sa.Uuid(), sa.ForeignKey("categories.id", ondelete="SET NULL"), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("unit_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("cost_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("minimum_stock_level", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_audit_columns(),
        sa.CheckConstraint("minimum_stock_level >= 0", name="ck_product_min_stock_nonneg"),
        sa.CheckConstraint("unit_price >= 0", name="ck_product_unit_price_nonneg"),
    )

    op.create_table(
        "suppliers",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("contact_person", sa.String(255), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_audit_columns(),
    )

    op.create_table(
        "purchase_orders",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("supplier_id", sa.Uuid(), sa.ForeignKey("suppliers.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("order_number", sa.String(100), nullable=False, unique=True),
        sa.Column("status", PO_STATUS, nullable=False),
        sa.Column("order_date", sa.Date(), nullable=True),
        sa.Column("expected_delivery_date", sa.Date(), nullable=True),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_audit_columns(),
    )

    op.create_table(
        "purchase_order_items",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "purchase_order_id",
            sa.Uuid(),
            sa.ForeignKey("purchase_orders.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("product_id", sa.Uuid(), sa.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("quantity_ordered", sa.Integer(), nullable=False),
        sa.Column("quantity_received", sa.Integer(), nullable=False),
        sa.Column("unit_cost", sa.Numeric(10, 2), nullable=False),
        sa.Column("total_cost", sa.Numeric(12, 2), nullable=False),
        *_audit_columns(),
        sa.CheckConstraint("quantity_ordered > 0", name="ck_po_item_qty_ordered_pos"),
        sa.CheckConstraint("quantity_received >= 0", name="ck_po_item_qty_received_nonneg"),
        sa.CheckConstraint("quantity_received <= quantity_ordered", name="ck_po_item_received_le_ordered"),
        sa.CheckConstraint("unit_cost >= 0", name="ck_po_item_unit_cost_nonneg"),
    )
    op.create_index("ix_purchase_order_items_purchase_order_id", "purchase_order_items", ["purchase_order_id"])

    op.create_table(
        "stock",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "product_id",
            sa.Uuid(),
            sa.ForeignKey("products.id", ondelete="RESTRICT"),
            nullable=False,
            unique=True,
        ),
        sa.Column("quantity_available", sa.Integer(), nullable=False),
        sa.Column("quantity_reserved", sa.Integer(), nullable=False),
        sa.Column("initial_available", sa.Integer(), nullable=False),
        sa.Column("initial_reserved", sa.Integer(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        *_audit_columns(),
        sa.CheckConstraint("quantity_available >= 0", name="ck_stock_available_nonneg"),
        sa.CheckConstraint("quantity_reserved >= 0", name="ck_stock_reserved_nonneg"),
        sa.CheckConstraint("initial_available >= 0", name="ck_stock_initial_available_nonneg"),
        sa.CheckConstraint("initial_reserved >= 0", name="ck_stock_initial_reserved_nonneg"),
    )

    op.create_table(
        "stock_transactions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("product_id", sa.Uuid(), sa.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("transaction_type", TRANSACTION_TYPE, nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("from_reserved", sa.Boolean(), nullable=False),
        sa.Column("reference_type", REFERENCE_TYPE, nullable=False),
        sa.Column("reference_id", sa.Uuid(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("product_id", "sequence", name="uq_stock_transaction_product_sequence"),
        sa.CheckConstraint("quantity <> 0", name="ck_stock_transaction_qty_nonzero"),
    )
    op.create_index("ix_stock_transactions_product_id", "stock_transactions", ["product_id"])
    op.create_index("ix_stock_transactions_reference_id", "stock_transactions", ["reference_id"])
    op.create_index("ix_stock_transactions_product_time", "stock_transactions", ["product_id", "created_at"])


def downgrade() -> None:
    op.drop_index("ix_stock_transactions_product_time", table_name="stock_transactions")
    op.drop_index("ix_stock_transactions_reference_id", table_name="stock_transactions")
    op.drop_index("ix_stock_transactions_product_id", table_name="stock_transactions")
    op.drop_table("stock_transactions")
    op.drop_table("stock")
    op.drop_index("ix_purchase_order_items_purchase_order_id", table_name="purchase_order_items")
    op.drop_table("purchase_order_items")
    op.drop_table("purchase_orders")
    op.drop_table("suppliers")
    op.drop_table("products")
    op.drop_table("categories")
    op.drop_table("users")

    bind = op.get_bind()
    for enum in (REFERENCE_TYPE, TRANSACTION_TYPE, PO_STATUS, ROLE):
        enum.drop(bind, checkfirst=True)
