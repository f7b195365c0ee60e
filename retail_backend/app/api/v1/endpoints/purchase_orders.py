from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field
from sqlalchemy import select, func
from sqlalchemy.orm import Session

from retail_backend.app.api.deps import Pagination, get_db, get_pagination
from retail_backend.app.db.models.models_v1 import (
    PurchaseOrder,
    PurchaseOrderItem,
    Supplier,
    Product,
)
from retail_backend.app.db.models.core_types import POStatus
from retail_backend.services import procurement

router = APIRouter(prefix="/purchase-orders")


class PurchaseOrderItemCreate(BaseModel):
    product_id: UUID
    quantity_ordered: int = Field(gt=0)
    unit_cost: Decimal = Field(ge=0, decimal_places=2)


class PurchaseOrderCreate(BaseModel):
    order_number: str = Field(min_length=1, max_length=100)
    supplier_id: UUID
    status: POStatus = POStatus.pending
    order_date: date | None = None
    expected_delivery_date: date | None = None
    notes: str | None = None
    items: list[PurchaseOrderItemCreate] = Field(default_factory=list)
    created_by: UUID


class PurchaseOrderUpdate(BaseModel):
    supplier_id: UUID | None = None
    status: POStatus | None = None
    order_date: date | None = None
    expected_delivery_date: date | None = None
    notes: str | None = None
    updated_by: UUID


class PurchaseOrderItemAdd(PurchaseOrderItemCreate):
    created_by: UUID


class ReceiptLine(BaseModel):
    item_id: UUID
    quantity: int = Field(gt=0)


class PurchaseOrderReceive(BaseModel):
    # omitted or empty receives everything outstanding
    items: list[ReceiptLine] | None = None
    received_by: UUID


class PurchaseOrderItemRead(BaseModel):
    id: UUID
    purchase_order_id: UUID
    product_id: UUID
    quantity_ordered: int
    quantity_received: int
    quantity_outstanding: int
    unit_cost: Decimal
    total_cost: Decimal
    created_at: datetime

    class Config:
        from_attributes = True


class PurchaseOrderRead(BaseModel):
    id: UUID
    order_number: str
    supplier_id: UUID
    status: POStatus
    order_date: date | None
    expected_delivery_date: date | None
    total_amount: Decimal | None
    notes: str | None
    items: list[PurchaseOrderItemRead]
    created_by: UUID
    created_at: datetime
    updated_by: UUID | None
    updated_at: datetime | None

    class Config:
        from_attributes = True


class PurchaseOrderPage(BaseModel):
    data: list[PurchaseOrderRead]
    total: int
    page: int
    limit: int


class PurchaseOrderStats(BaseModel):
    pending: int
    confirmed: int
    received: int
    cancelled: int
    total: int


def _get_po(db: Session, po_id: UUID) -> PurchaseOrder:
    po = db.get(PurchaseOrder, po_id)
    if not po or po.deleted_at is not None:
        raise HTTPException(status_code=404, detail="Purchase order not found")
    return po


def _check_supplier(db: Session, supplier_id: UUID) -> None:
    s = db.get(Supplier, supplier_id)
    if not s or s.deleted_at is not None:
        raise HTTPException(status_code=400, detail="Invalid supplier_id")
    if not s.is_active:
        raise HTTPException(status_code=400, detail="Supplier is not active")


def _new_item(db: Session, po: PurchaseOrder, ln: PurchaseOrderItemCreate, actor_id: UUID) -> PurchaseOrderItem:
    p = db.get(Product, ln.product_id)
    if not p or p.deleted_at is not None:
        raise HTTPException(status_code=400, detail=f"Invalid product_id {ln.product_id}")
    return PurchaseOrderItem(
        purchase_order=po,
        product_id=ln.product_id,
        quantity_ordered=ln.quantity_ordered,
        quantity_received=0,
        unit_cost=ln.unit_cost,
        total_cost=ln.unit_cost * ln.quantity_ordered,
        created_by=actor_id,
    )


def _recompute_total(po: PurchaseOrder) -> None:
    po.total_amount = sum((i.total_cost for i in po.items if i.deleted_at is None), Decimal("0"))


def _read(db: Session, po: PurchaseOrder) -> PurchaseOrderRead:
    db.commit()
    db.refresh(po)
    return PurchaseOrderRead.model_validate(po)


@router.post("", response_model=PurchaseOrderRead, status_code=201)
def create_po(payload: PurchaseOrderCreate, db: Session = Depends(get_db)):
    exists = db.execute(
        select(PurchaseOrder).where(PurchaseOrder.order_number == payload.order_number)
    ).scalar_one_or_none()
    if exists:
        raise HTTPException(status_code=409, detail="Order number already exists")

    _check_supplier(db, payload.supplier_id)

    po = PurchaseOrder(
        order_number=payload.order_number,
        supplier_id=payload.supplier_id,
        status=payload.status,
        order_date=payload.order_date or date.today(),
        expected_delivery_date=payload.expected_delivery_date,
        notes=payload.notes,
        created_by=payload.created_by,
    )
    db.add(po)
    for ln in payload.items:
        _new_item(db, po, ln, payload.created_by)
    _recompute_total(po)
    return _read(db, po)


@router.get("", response_model=PurchaseOrderPage)
def list_pos(
    supplier_id: UUID | None = None,
    status: POStatus | None = None,
    order_date_from: date | None = None,
    order_date_to: date | None = None,
    pagination: Pagination = Depends(get_pagination),
    db: Session = Depends(get_db),
):
    stmt = select(PurchaseOrder).where(PurchaseOrder.deleted_at.is_(None))
    if supplier_id is not None:
        stmt = stmt.where(PurchaseOrder.supplier_id == supplier_id)
    if status is not None:
        stmt = stmt.where(PurchaseOrder.status == status)
    if order_date_from is not None:
        stmt = stmt.where(PurchaseOrder.order_date >= order_date_from)
    if order_date_to is not None:
        stmt = stmt.where(PurchaseOrder.order_date <= order_date_to)

    total = db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
    rows = (
        db.execute(
            stmt.order_by(PurchaseOrder.created_at.desc()).offset(pagination.offset).limit(pagination.limit)
        )
        .scalars()
        .all()
    )
    return pagination.wrap([PurchaseOrderRead.model_validate(po) for po in rows], total)


@router.get("/stats/overview", response_model=PurchaseOrderStats)
def po_stats(db: Session = Depends(get_db)):
    return procurement.purchase_order_stats(db)


@router.get("/{po_id}", response_model=PurchaseOrderRead)
def get_po(po_id: UUID, db: Session = Depends(get_db)):
    return PurchaseOrderRead.model_validate(_get_po(db, po_id))


@router.patch("/{po_id}", response_model=PurchaseOrderRead)
def update_po(po_id: UUID, payload: PurchaseOrderUpdate, db: Session = Depends(get_db)):
    po = _get_po(db, po_id)
    changes = payload.model_dump(exclude_unset=True, exclude={"updated_by"})

    if "status" in changes and changes["status"] == POStatus.received:
        # RECEIVED is only reached by booking goods into stock
        raise HTTPException(status_code=400, detail="Use the receive endpoint to mark an order as received")
    if po.status in (POStatus.received, POStatus.cancelled) and changes:
        raise HTTPException(status_code=400, detail=f"Cannot modify a {po.status.value} purchase order")
    if "supplier_id" in changes:
        _check_supplier(db, changes["supplier_id"])

    for field, value in changes.items():
        setattr(po, field, value)
    po.touch(payload.updated_by)
    return _read(db, po)


@router.post("/{po_id}/items", response_model=PurchaseOrderRead, status_code=201)
def add_po_item(po_id: UUID, payload: PurchaseOrderItemAdd, db: Session = Depends(get_db)):
    po = _get_po(db, po_id)
    if po.status in (POStatus.received, POStatus.cancelled):
        raise HTTPException(status_code=400, detail=f"Cannot add items to a {po.status.value} purchase order")

    _new_item(db, po, payload, payload.created_by)
    _recompute_total(po)
    po.touch(payload.created_by)
    return _read(db, po)


@router.post("/{po_id}/receive", response_model=PurchaseOrderRead)
def receive_po(po_id: UUID, payload: PurchaseOrderReceive, db: Session = Depends(get_db)):
    receipts = [procurement.ItemReceipt(item_id=ln.item_id, quantity=ln.quantity) for ln in payload.items or []]
    po = procurement.receive_purchase_order(
        db,
        purchase_order_id=po_id,
        actor_id=payload.received_by,
        items=receipts,
    )
    return _read(db, po)


@router.delete("/{po_id}", status_code=204)
def delete_po(po_id: UUID, deleted_by: UUID, db: Session = Depends(get_db)):
    po = _get_po(db, po_id)
    if po.status == POStatus.received:
        raise HTTPException(status_code=400, detail="Cannot delete a received purchase order")
    po.soft_delete(deleted_by)
    db.commit()
    return Response(status_code=204)
