from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from retail_backend.app.db.models.core_types import TransactionType, ReferenceType


# ---------- Requests ----------
class StockCreate(BaseModel):
    product_id: UUID
    quantity_available: int = Field(ge=0)
    quantity_reserved: int = Field(default=0, ge=0)
    created_by: UUID


class StockUpdate(BaseModel):
    quantity_available: int | None = Field(default=None, ge=0)
    quantity_reserved: int | None = Field(default=None, ge=0)
    notes: str | None = Field(default=None, max_length=1000)
    updated_by: UUID


class StockAdjust(BaseModel):
    quantity_change: int
    notes: str | None = Field(default=None, max_length=1000)
    updated_by: UUID


class StockReserve(BaseModel):
    quantity: int = Field(gt=0)
    notes: str | None = Field(default=None, max_length=1000)
    reference_id: UUID | None = None
    updated_by: UUID


class StockRelease(StockReserve):
    pass


class StockReceive(BaseModel):
    quantity: int = Field(gt=0)
    reference_type: ReferenceType = ReferenceType.purchase
    reference_id: UUID | None = None
    notes: str | None = Field(default=None, max_length=1000)
    updated_by: UUID


class StockConsume(BaseModel):
    quantity: int = Field(gt=0)
    reference_type: ReferenceType = ReferenceType.sale
    reference_id: UUID | None = None
    from_reserved: bool | None = None
    notes: str | None = Field(default=None, max_length=1000)
    updated_by: UUID


class StockTransactionCreate(BaseModel):
    product_id: UUID
    transaction_type: TransactionType
    quantity: int
    reference_type: ReferenceType
    reference_id: UUID | None = None
    notes: str | None = Field(default=None, max_length=1000)
    created_by: UUID


# ---------- Responses ----------
class StockProductRead(BaseModel):
    id: UUID
    name: str
    sku: str
    barcode: str | None
    minimum_stock_level: int

    class Config:
        from_attributes = True


class StockRead(BaseModel):
    id: UUID
    product_id: UUID
    quantity_available: int
    quantity_reserved: int
    quantity_total: int  # read only, available + reserved
    is_low_stock: bool
    product: StockProductRead | None = None

    created_by: UUID
    created_at: datetime
    updated_by: UUID | None
    updated_at: datetime | None
    deleted_at: datetime | None = None

    class Config:
        from_attributes = True


class StockSummaryRead(BaseModel):
    product_id: UUID
    product_name: str
    product_sku: str
    quantity_available: int
    quantity_reserved: int
    total_quantity: int
    minimum_stock_level: int
    is_low_stock: bool

    class Config:
        from_attributes = True


class StockReconciliationRead(BaseModel):
    product_id: UUID
    transaction_count: int
    expected_available: int
    expected_reserved: int
    actual_available: int
    actual_reserved: int
    balanced: bool

    class Config:
        from_attributes = True


class StockTransactionRead(BaseModel):
    id: UUID
    product_id: UUID
    sequence: int
    transaction_type: TransactionType
    quantity: int
    from_reserved: bool
    reference_type: ReferenceType
    reference_id: UUID | None
    notes: str | None
    created_by: UUID
    created_at: datetime

    class Config:
        from_attributes = True


class StockSummaryPage(BaseModel):
    data: list[StockSummaryRead]
    total: int
    page: int
    limit: int


class StockTransactionPage(BaseModel):
    data: list[StockTransactionRead]
    total: int
    page: int
    limit: int


SortOrder = Literal["asc", "desc"]
