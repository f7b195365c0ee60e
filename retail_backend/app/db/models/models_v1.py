from __future__ import annotations

import uuid
from datetime import datetime, date, timezone
from decimal import Decimal

from sqlalchemy import (
    String,
    Integer,
    DateTime,
    Date,
    Boolean,
    ForeignKey,
    Numeric,
    Text,
    Enum,
    JSON,
    Uuid,
    UniqueConstraint,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from retail_backend.app.db.base import Base
from retail_backend.app.db.models.core_types import (
    Role,
    TransactionType,
    ReferenceType,
    POStatus,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum(enum_cls, name: str) -> Enum:
    # persist the wire values ("IN", "PURCHASE"), not the member names
    return Enum(enum_cls, name=name, values_callable=lambda e: [m.value for m in e])


class AuditMixin:
    created_by: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_by: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    deleted_by: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    def soft_delete(self, actor_id: uuid.UUID) -> None:
        self.deleted_by = actor_id
        self.deleted_at = utcnow()

    def restore(self, actor_id: uuid.UUID) -> None:
        self.deleted_by = None
        self.deleted_at = None
        self.touch(actor_id)

    def touch(self, actor_id: uuid.UUID | None) -> None:
        self.updated_by = actor_id
        self.updated_at = utcnow()


# ---------- AUTH ----------
class User(AuditMixin, Base):
    __tablename__ = "users"
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    role: Mapped[Role] = mapped_column(_enum(Role, "role"), default=Role.staff, nullable=False)
    permissions: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    is_email_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


# ---------- CATALOGUE ----------
class Category(AuditMixin, Base):
    __tablename__ = "categories"
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(String(500))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class Product(AuditMixin, Base):
    __tablename__ = "products"
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    barcode: Mapped[str | None] = mapped_column(String(64), unique=True)
    category_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("categories.id", ondelete="SET NULL"))
    description: Mapped[str | None] = mapped_column(Text)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    cost_price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    minimum_stock_level: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    category: Mapped[Category | None] = relationship()

    __table_args__ = (
        CheckConstraint("minimum_stock_level >= 0", name="ck_product_min_stock_nonneg"),
        CheckConstraint("unit_price >= 0", name="ck_product_unit_price_nonneg"),
    )


# ---------- PROCUREMENT ----------
class Supplier(AuditMixin, Base):
    __tablename__ = "suppliers"
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_person: Mapped[str | None] = mapped_column(String(255))
    email: Mapped[str | None] = mapped_column(String(255))
    phone: Mapped[str | None] = mapped_column(String(50))
    address: Mapped[str | None] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class PurchaseOrder(AuditMixin, Base):
    __tablename__ = "purchase_orders"
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    supplier_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("suppliers.id", ondelete="RESTRICT"), nullable=False)
    order_number: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    status: Mapped[POStatus] = mapped_column(
        _enum(POStatus, "purchase_order_status"),
        default=POStatus.pending,
        nullable=False,
    )
    order_date: Mapped[date | None] = mapped_column(Date)
    expected_delivery_date: Mapped[date | None] = mapped_column(Date)
    total_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    notes: Mapped[str | None] = mapped_column(Text)

    supplier: Mapped[Supplier] = relationship()
    items: Mapped[list["PurchaseOrderItem"]] = relationship(
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderItem.created_at",
    )


class PurchaseOrderItem(AuditMixin, Base):
    __tablename__ = "purchase_order_items"
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    purchase_order_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("purchase_orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("products.id", ondelete="RESTRICT"), nullable=False)
    quantity_ordered: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity_received: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    total_cost: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    purchase_order: Mapped[PurchaseOrder] = relationship(back_populates="items")
    product: Mapped[Product] = relationship()

    @property
    def quantity_outstanding(self) -> int:
        return self.quantity_ordered - self.quantity_received

    __table_args__ = (
        CheckConstraint("quantity_ordered > 0", name="ck_po_item_qty_ordered_pos"),
        CheckConstraint("quantity_received >= 0", name="ck_po_item_qty_received_nonneg"),
        CheckConstraint("quantity_received <= quantity_ordered", name="ck_po_item_received_le_ordered"),
        CheckConstraint("unit_cost >= 0", name="ck_po_item_unit_cost_nonneg"),
    )


# ---------- INVENTORY ----------
class Stock(AuditMixin, Base):
    __tablename__ = "stock"
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("products.id", ondelete="RESTRICT"),
        unique=True,
        nullable=False,
    )

    quantity_available: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    quantity_reserved: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # starting point for ledger replay
    initial_available: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    initial_reserved: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # bumped by the ledger on every mutation, checked by the ORM on UPDATE
    version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    product: Mapped[Product] = relationship()

    __mapper_args__ = {"version_id_col": version, "version_id_generator": False}

    @property
    def quantity_total(self) -> int:
        return self.quantity_available + self.quantity_reserved

    @property
    def is_low_stock(self) -> bool:
        minimum = self.product.minimum_stock_level if self.product else 0
        return self.quantity_total < minimum

    __table_args__ = (
        CheckConstraint("quantity_available >= 0", name="ck_stock_available_nonneg"),
        CheckConstraint("quantity_reserved >= 0", name="ck_stock_reserved_nonneg"),
        CheckConstraint("initial_available >= 0", name="ck_stock_initial_available_nonneg"),
        CheckConstraint("initial_reserved >= 0", name="ck_stock_initial_reserved_nonneg"),
    )


class StockTransaction(Base):
    """Append-only. Rows are never updated or deleted once flushed."""

    __tablename__ = "stock_transactions"
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    product_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)

    transaction_type: Mapped[TransactionType] = mapped_column(
        _enum(TransactionType, "transaction_type"),
        nullable=False,
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    from_reserved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    reference_type: Mapped[ReferenceType] = mapped_column(_enum(ReferenceType, "reference_type"), nullable=False)
    reference_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, index=True)
    notes: Mapped[str | None] = mapped_column(Text)

    created_by: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    product: Mapped[Product] = relationship()

    __table_args__ = (
        UniqueConstraint("product_id", "sequence", name="uq_stock_transaction_product_sequence"),
        CheckConstraint("quantity <> 0", name="ck_stock_transaction_qty_nonzero"),
        Index("ix_stock_transactions_product_time", "product_id", "created_at"),
    )
