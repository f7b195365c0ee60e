from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from retail_backend.app.api.deps import Pagination, get_db, get_pagination
from retail_backend.app.db.models.core_types import ReferenceType, TransactionType
from retail_backend.app.db.models.models_v1 import Stock
from retail_backend.app.schemas.stock import (
    SortOrder,
    StockAdjust,
    StockConsume,
    StockCreate,
    StockRead,
    StockReceive,
    StockReconciliationRead,
    StockRelease,
    StockReserve,
    StockSummaryPage,
    StockSummaryRead,
    StockTransactionCreate,
    StockTransactionPage,
    StockTransactionRead,
    StockUpdate,
)
from retail_backend.services import inventory

router = APIRouter(prefix="/stock")


def _read(stock: Stock) -> StockRead:
    return StockRead.model_validate(stock)


def _commit_and_read(db: Session, stock: Stock) -> StockRead:
    db.commit()
    db.refresh(stock)
    return _read(stock)


# ---------- Stock records ----------
@router.post("", response_model=StockRead, status_code=201)
def create_stock(payload: StockCreate, db: Session = Depends(get_db)):
    stock = inventory.create_stock(
        db,
        product_id=payload.product_id,
        initial_available=payload.quantity_available,
        initial_reserved=payload.quantity_reserved,
        actor_id=payload.created_by,
    )
    return _commit_and_read(db, stock)


@router.get("", response_model=StockSummaryPage)
def list_stock(
    product_id: UUID | None = None,
    low_stock: bool | None = None,
    with_deleted: bool = False,
    pagination: Pagination = Depends(get_pagination),
    db: Session = Depends(get_db),
):
    summaries, total = inventory.list_stock(
        db,
        product_id=product_id,
        low_stock=low_stock,
        with_deleted=with_deleted,
        page=pagination.page,
        limit=pagination.limit,
    )
    return pagination.wrap([StockSummaryRead.model_validate(s) for s in summaries], total)


@router.get("/low-stock", response_model=list[StockSummaryRead])
def get_low_stock(
    threshold: int | None = Query(default=None, ge=0),
    db: Session = Depends(get_db),
):
    return [StockSummaryRead.model_validate(s) for s in inventory.get_low_stock(db, threshold)]


@router.get("/product/{product_id}", response_model=StockRead)
def get_stock(product_id: UUID, db: Session = Depends(get_db)):
    return _read(inventory.get_stock(db, product_id))


@router.get("/product/{product_id}/summary", response_model=StockSummaryRead)
def get_stock_summary(product_id: UUID, db: Session = Depends(get_db)):
    return StockSummaryRead.model_validate(inventory.get_stock_summary(db, product_id))


@router.get("/product/{product_id}/reconcile", response_model=StockReconciliationRead)
def reconcile_stock(product_id: UUID, db: Session = Depends(get_db)):
    return StockReconciliationRead.model_validate(inventory.reconcile_stock(db, product_id))


@router.patch("/product/{product_id}", response_model=StockRead)
@router.put("/product/{product_id}", response_model=StockRead)
def update_stock(product_id: UUID, payload: StockUpdate, db: Session = Depends(get_db)):
    stock = inventory.set_stock_levels(
        db,
        product_id=product_id,
        quantity_available=payload.quantity_available,
        quantity_reserved=payload.quantity_reserved,
        notes=payload.notes,
        actor_id=payload.updated_by,
    )
    return _commit_and_read(db, stock)


@router.delete("/product/{product_id}", status_code=204)
def delete_stock(product_id: UUID, deleted_by: UUID, db: Session = Depends(get_db)):
    inventory.delete_stock(db, product_id=product_id, actor_id=deleted_by)
    db.commit()
    return Response(status_code=204)


@router.patch("/product/{product_id}/restore", response_model=StockRead)
def restore_stock(product_id: UUID, restored_by: UUID, db: Session = Depends(get_db)):
    stock = inventory.restore_stock(db, product_id=product_id, actor_id=restored_by)
    return _commit_and_read(db, stock)


# ---------- Ledger operations ----------
@router.patch("/product/{product_id}/adjust", response_model=StockRead)
def adjust_stock(product_id: UUID, payload: StockAdjust, db: Session = Depends(get_db)):
    stock = inventory.adjust_stock(
        db,
        product_id=product_id,
        delta=payload.quantity_change,
        notes=payload.notes,
        actor_id=payload.updated_by,
    )
    return _commit_and_read(db, stock)


@router.patch("/product/{product_id}/reserve", response_model=StockRead)
def reserve_stock(product_id: UUID, payload: StockReserve, db: Session = Depends(get_db)):
    stock = inventory.reserve_stock(
        db,
        product_id=product_id,
        quantity=payload.quantity,
        notes=payload.notes,
        reference_id=payload.reference_id,
        actor_id=payload.updated_by,
    )
    return _commit_and_read(db, stock)


@router.patch("/product/{product_id}/release", response_model=StockRead)
def release_stock(product_id: UUID, payload: StockRelease, db: Session = Depends(get_db)):
    stock = inventory.release_stock(
        db,
        product_id=product_id,
        quantity=payload.quantity,
        notes=payload.notes,
        reference_id=payload.reference_id,
        actor_id=payload.updated_by,
    )
    return _commit_and_read(db, stock)


@router.patch("/product/{product_id}/receive", response_model=StockRead)
def receive_stock(product_id: UUID, payload: StockReceive, db: Session = Depends(get_db)):
    stock = inventory.receive_stock(
        db,
        product_id=product_id,
        quantity=payload.quantity,
        reference_type=payload.reference_type,
        reference_id=payload.reference_id,
        notes=payload.notes,
        actor_id=payload.updated_by,
    )
    return _commit_and_read(db, stock)


@router.patch("/product/{product_id}/consume", response_model=StockRead)
def consume_stock(product_id: UUID, payload: StockConsume, db: Session = Depends(get_db)):
    stock = inventory.consume_stock(
        db,
        product_id=product_id,
        quantity=payload.quantity,
        reference_type=payload.reference_type,
        reference_id=payload.reference_id,
        from_reserved=payload.from_reserved,
        notes=payload.notes,
        actor_id=payload.updated_by,
    )
    return _commit_and_read(db, stock)


# ---------- Transactions ----------
@router.post("/transactions", response_model=StockTransactionRead, status_code=201)
def create_transaction(payload: StockTransactionCreate, db: Session = Depends(get_db)):
    tx = inventory.record_transaction(
        db,
        product_id=payload.product_id,
        transaction_type=payload.transaction_type,
        quantity=payload.quantity,
        reference_type=payload.reference_type,
        reference_id=payload.reference_id,
        notes=payload.notes,
        actor_id=payload.created_by,
    )
    db.commit()
    db.refresh(tx)
    return StockTransactionRead.model_validate(tx)


@router.get("/transactions", response_model=StockTransactionPage)
def list_transactions(
    product_id: UUID | None = None,
    transaction_type: TransactionType | None = None,
    reference_type: ReferenceType | None = None,
    reference_id: UUID | None = None,
    created_by: UUID | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    order: SortOrder = "desc",
    pagination: Pagination = Depends(get_pagination),
    db: Session = Depends(get_db),
):
    query = inventory.list_transactions(
        db,
        inventory.TransactionFilters(
            product_id=product_id,
            transaction_type=transaction_type,
            reference_type=reference_type,
            reference_id=reference_id,
            created_by=created_by,
            start_date=start_date,
            end_date=end_date,
            order=order,
        ),
    )
    rows = query.page(pagination.page, pagination.limit)
    return pagination.wrap([StockTransactionRead.model_validate(t) for t in rows], query.count())


@router.get("/transactions/product/{product_id}", response_model=StockTransactionPage)
def list_product_transactions(
    product_id: UUID,
    pagination: Pagination = Depends(get_pagination),
    db: Session = Depends(get_db),
):
    query = inventory.list_transactions(db, inventory.TransactionFilters(product_id=product_id))
    rows = query.page(pagination.page, pagination.limit)
    return pagination.wrap([StockTransactionRead.model_validate(t) for t in rows], query.count())
