"""
Stock ledger.

Owns the per-product counters (quantity_available / quantity_reserved) and
the append-only stock_transactions log.

Rules:
    - every mutation locks the stock row (FOR UPDATE), re-reads it, validates,
      updates the counters and appends exactly one transaction
    - validation happens before any write; a rejected call changes nothing
    - nothing here commits: the caller owns the unit of work and commits the
      counter update together with its transaction
    - replaying the log from (initial_available, initial_reserved) gives the
      current counters (see reconcile_stock)
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator

from sqlalchemy import select, func
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from retail_backend.app.core.config import settings
from retail_backend.app.core.exceptions import (
    RetailError,
    InvalidQuantity,
    InsufficientStock,
    OverRelease,
    DuplicateStock,
    NotFound,
    InvalidState,
    ConcurrentModification,
)
from retail_backend.app.core.logging import get_logger
from retail_backend.app.db.models.models_v1 import Product, Stock, StockTransaction
from retail_backend.app.db.models.core_types import TransactionType, ReferenceType

logger = get_logger("inventory")


# ---------- Read models ----------
@dataclass(frozen=True)
class StockSummary:
    product_id: uuid.UUID
    product_name: str
    product_sku: str
    quantity_available: int
    quantity_reserved: int
    total_quantity: int
    minimum_stock_level: int
    is_low_stock: bool


@dataclass(frozen=True)
class StockReconciliation:
    product_id: uuid.UUID
    transaction_count: int
    expected_available: int
    expected_reserved: int
    actual_available: int
    actual_reserved: int

    @property
    def balanced(self) -> bool:
        return (
            self.expected_available == self.actual_available
            and self.expected_reserved == self.actual_reserved
        )


@dataclass
class TransactionFilters:
    product_id: uuid.UUID | None = None
    transaction_type: TransactionType | None = None
    reference_type: ReferenceType | None = None
    reference_id: uuid.UUID | None = None
    created_by: uuid.UUID | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    order: str = "desc"


class TransactionQuery:
    """
    Lazy view over the transaction log.

    Iterating runs the query and streams rows; iterating again runs it again,
    so the same object can be consumed any number of times.
    """

    def __init__(self, db: Session, filters: TransactionFilters):
        self.db = db
        self.filters = filters

    def _where(self, stmt):
        f = self.filters
        if f.product_id is not None:
            stmt = stmt.where(StockTransaction.product_id == f.product_id)
        if f.transaction_type is not None:
            stmt = stmt.where(StockTransaction.transaction_type == f.transaction_type)
        if f.reference_type is not None:
            stmt = stmt.where(StockTransaction.reference_type == f.reference_type)
        if f.reference_id is not None:
            stmt = stmt.where(StockTransaction.reference_id == f.reference_id)
        if f.created_by is not None:
            stmt = stmt.where(StockTransaction.created_by == f.created_by)
        if f.start_date is not None:
            stmt = stmt.where(StockTransaction.created_at >= f.start_date)
        if f.end_date is not None:
            stmt = stmt.where(StockTransaction.created_at <= f.end_date)
        return stmt

    def statement(self):
        stmt = self._where(select(StockTransaction))
        if self.filters.order == "asc":
            return stmt.order_by(StockTransaction.created_at.asc(), StockTransaction.sequence.asc())
        return stmt.order_by(StockTransaction.created_at.desc(), StockTransaction.sequence.desc())

    def __iter__(self) -> Iterator[StockTransaction]:
        return iter(self.db.scalars(self.statement().execution_options(yield_per=500)))

    def count(self) -> int:
        stmt = self._where(select(func.count()).select_from(StockTransaction))
        return int(self.db.scalar(stmt) or 0)

    def page(self, page: int, limit: int) -> list[StockTransaction]:
        stmt = self.statement().offset((page - 1) * limit).limit(limit)
        return list(self.db.scalars(stmt))


# ---------- Validation ----------
# Each check returns the error to raise, or None when the operation may proceed.
def check_positive(quantity: int) -> RetailError | None:
    if quantity <= 0:
        return InvalidQuantity(f"Quantity must be positive (got {quantity})")
    return None


def check_non_negative(quantity: int, field: str) -> RetailError | None:
    if quantity < 0:
        return InvalidQuantity(f"{field} cannot be negative (got {quantity})")
    return None


def check_adjustment(stock: Stock, delta: int) -> RetailError | None:
    if delta == 0:
        return InvalidQuantity("Adjustment delta must be non-zero")
    if stock.quantity_available + delta < 0:
        return InsufficientStock(
            f"Insufficient stock. Available: {stock.quantity_available}, Requested change: {delta}"
        )
    return None


def check_reserve(stock: Stock, quantity: int) -> RetailError | None:
    err = check_positive(quantity)
    if err:
        return err
    if stock.quantity_available < quantity:
        return InsufficientStock(
            f"Insufficient available stock. Available: {stock.quantity_available}, Requested: {quantity}"
        )
    return None


def check_release(stock: Stock, quantity: int) -> RetailError | None:
    err = check_positive(quantity)
    if err:
        return err
    if stock.quantity_reserved < quantity:
        return OverRelease(
            f"Insufficient reserved stock. Reserved: {stock.quantity_reserved}, Requested: {quantity}"
        )
    return None


def check_consume(stock: Stock, quantity: int, from_reserved: bool) -> RetailError | None:
    err = check_positive(quantity)
    if err:
        return err
    bucket = stock.quantity_reserved if from_reserved else stock.quantity_available
    if bucket < quantity:
        name = "reserved" if from_reserved else "available"
        return InsufficientStock(
            f"Insufficient {name} stock. {name.capitalize()}: {bucket}, Requested: {quantity}"
        )
    return None


def _raise_if(product_id: uuid.UUID, operation: str, err: RetailError | None) -> None:
    if err is not None:
        logger.warning("Rejected %s on product %s: %s", operation, product_id, err.message)
        raise err


# ---------- Row access ----------
def _find_stock(db: Session, product_id: uuid.UUID, *, lock: bool = False, with_deleted: bool = False) -> Stock | None:
    stmt = select(Stock).where(Stock.product_id == product_id)
    if not with_deleted:
        stmt = stmt.where(Stock.deleted_at.is_(None))
    if lock:
        # fresh state under the row lock, not whatever the identity map holds
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    return db.execute(stmt).scalar_one_or_none()


def get_stock(db: Session, product_id: uuid.UUID) -> Stock:
    stock = _find_stock(db, product_id)
    if not stock:
        raise NotFound(f"Stock not found for product {product_id}")
    return stock


def _lock_stock(db: Session, product_id: uuid.UUID) -> Stock:
    stock = _find_stock(db, product_id, lock=True)
    if not stock:
        raise NotFound(f"Stock not found for product {product_id}")
    return stock


def _get_product(db: Session, product_id: uuid.UUID) -> Product:
    product = db.get(Product, product_id)
    if not product or product.deleted_at is not None:
        raise NotFound(f"Product with ID {product_id} not found")
    return product


def _append(
    db: Session,
    stock: Stock,
    *,
    transaction_type: TransactionType,
    quantity: int,
    reference_type: ReferenceType,
    reference_id: uuid.UUID | None,
    notes: str | None,
    actor_id: uuid.UUID,
    from_reserved: bool = False,
) -> StockTransaction:
    stock.version += 1
    stock.touch(actor_id)

    tx = StockTransaction(
        product_id=stock.product_id,
        sequence=stock.version,
        transaction_type=transaction_type,
        quantity=quantity,
        from_reserved=from_reserved,
        reference_type=reference_type,
        reference_id=reference_id,
        notes=notes,
        created_by=actor_id,
    )
    db.add(tx)
    try:
        db.flush()
    except (StaleDataError, IntegrityError) as exc:
        # stale version, or another writer already took this sequence number
        logger.warning("Concurrent write on product %s: %s", stock.product_id, type(exc).__name__)
        raise ConcurrentModification(
            f"Stock for product {stock.product_id} was modified concurrently"
        ) from exc

    logger.info(
        "%s %s on product %s -> available=%s reserved=%s",
        transaction_type.value,
        quantity,
        stock.product_id,
        stock.quantity_available,
        stock.quantity_reserved,
    )
    return tx


# ---------- Operations ----------
def create_stock(
    db: Session,
    *,
    product_id: uuid.UUID,
    initial_available: int,
    actor_id: uuid.UUID,
    initial_reserved: int = 0,
) -> Stock:
    _raise_if(product_id, "create", check_non_negative(initial_available, "quantity_available"))
    _raise_if(product_id, "create", check_non_negative(initial_reserved, "quantity_reserved"))
    _get_product(db, product_id)

    if _find_stock(db, product_id, with_deleted=True):
        logger.warning("Rejected create on product %s: stock already exists", product_id)
        raise DuplicateStock(f"Stock already exists for product {product_id}")

    stock = Stock(
        product_id=product_id,
        quantity_available=initial_available,
        quantity_reserved=initial_reserved,
        initial_available=initial_available,
        initial_reserved=initial_reserved,
        version=0,
        created_by=actor_id,
    )
    try:
        # savepoint, so losing the insert race leaves the caller's transaction usable
        with db.begin_nested():
            db.add(stock)
            db.flush()
    except IntegrityError as exc:
        logger.warning("Rejected create on product %s: stock created concurrently", product_id)
        raise DuplicateStock(f"Stock already exists for product {product_id}") from exc

    logger.info(
        "Tracking stock for product %s (available=%s reserved=%s)",
        product_id,
        initial_available,
        initial_reserved,
    )
    return stock


def ensure_stock(db: Session, *, product_id: uuid.UUID, actor_id: uuid.UUID) -> Stock:
    """
    Return the product's stock row, creating an empty one on first use.

    A soft-deleted row is not recreated: it has to be restored first.
    """
    stock = _find_stock(db, product_id, with_deleted=True)
    if stock is None:
        try:
            return create_stock(db, product_id=product_id, initial_available=0, actor_id=actor_id)
        except DuplicateStock:
            stock = _find_stock(db, product_id, lock=True, with_deleted=True)
            if stock is None:
                raise
    if stock.deleted_at is not None:
        logger.warning("Rejected implicit use of deleted stock for product %s", product_id)
        raise NotFound(f"Stock for product {product_id} is deleted")
    return stock


def adjust_stock(
    db: Session,
    *,
    product_id: uuid.UUID,
    delta: int,
    actor_id: uuid.UUID,
    notes: str | None = None,
    reference_type: ReferenceType = ReferenceType.adjustment,
    reference_id: uuid.UUID | None = None,
) -> Stock:
    stock = _lock_stock(db, product_id)
    _raise_if(product_id, "adjust", check_adjustment(stock, delta))

    stock.quantity_available += delta
    _append(
        db,
        stock,
        transaction_type=TransactionType.adjustment,
        quantity=delta,
        reference_type=reference_type,
        reference_id=reference_id,
        notes=notes or "Stock adjustment",
        actor_id=actor_id,
    )
    return stock


def reserve_stock(
    db: Session,
    *,
    product_id: uuid.UUID,
    quantity: int,
    actor_id: uuid.UUID,
    notes: str | None = None,
    reference_type: ReferenceType = ReferenceType.sale,
    reference_id: uuid.UUID | None = None,
) -> Stock:
    stock = _lock_stock(db, product_id)
    _raise_if(product_id, "reserve", check_reserve(stock, quantity))

    stock.quantity_available -= quantity
    stock.quantity_reserved += quantity
    _append(
        db,
        stock,
        transaction_type=TransactionType.reserved,
        quantity=quantity,
        reference_type=reference_type,
        reference_id=reference_id,
        notes=notes or "Stock reservation",
        actor_id=actor_id,
    )
    return stock


def release_stock(
    db: Session,
    *,
    product_id: uuid.UUID,
    quantity: int,
    actor_id: uuid.UUID,
    notes: str | None = None,
    reference_type: ReferenceType = ReferenceType.sale,
    reference_id: uuid.UUID | None = None,
) -> Stock:
    stock = _lock_stock(db, product_id)
    _raise_if(product_id, "release", check_release(stock, quantity))

    stock.quantity_reserved -= quantity
    stock.quantity_available += quantity
    _append(
        db,
        stock,
        transaction_type=TransactionType.released,
        quantity=quantity,
        reference_type=reference_type,
        reference_id=reference_id,
        notes=notes or "Stock release from reservation",
        actor_id=actor_id,
    )
    return stock


def receive_stock(
    db: Session,
    *,
    product_id: uuid.UUID,
    quantity: int,
    actor_id: uuid.UUID,
    reference_type: ReferenceType = ReferenceType.purchase,
    reference_id: uuid.UUID | None = None,
    notes: str | None = None,
) -> Stock:
    stock = _lock_stock(db, product_id)
    _raise_if(product_id, "receive", check_positive(quantity))

    stock.quantity_available += quantity
    _append(
        db,
        stock,
        transaction_type=TransactionType.stock_in,
        quantity=quantity,
        reference_type=reference_type,
        reference_id=reference_id,
        notes=notes,
        actor_id=actor_id,
    )
    return stock


def consume_stock(
    db: Session,
    *,
    product_id: uuid.UUID,
    quantity: int,
    actor_id: uuid.UUID,
    reference_type: ReferenceType = ReferenceType.sale,
    reference_id: uuid.UUID | None = None,
    notes: str | None = None,
    from_reserved: bool | None = None,
) -> Stock:
    """
    Take units out of stock.

    from_reserved=True fulfils a prior reservation (reserved is depleted),
    False sells straight from available. None falls back to
    settings.CONSUME_FROM_RESERVED.
    """
    if from_reserved is None:
        from_reserved = settings.CONSUME_FROM_RESERVED

    stock = _lock_stock(db, product_id)
    _raise_if(product_id, "consume", check_consume(stock, quantity, from_reserved))

    if from_reserved:
        stock.quantity_reserved -= quantity
    else:
        stock.quantity_available -= quantity
    _append(
        db,
        stock,
        transaction_type=TransactionType.stock_out,
        quantity=quantity,
        reference_type=reference_type,
        reference_id=reference_id,
        notes=notes,
        actor_id=actor_id,
        from_reserved=from_reserved,
    )
    return stock


def set_stock_levels(
    db: Session,
    *,
    product_id: uuid.UUID,
    actor_id: uuid.UUID,
    quantity_available: int | None = None,
    quantity_reserved: int | None = None,
    notes: str | None = None,
) -> Stock:
    """
    Move the counters to absolute values through the ledger.

    Order is release -> adjust -> reserve, which keeps every intermediate
    state non-negative. Each non-zero step appends its own transaction.
    """
    stock = _lock_stock(db, product_id)
    target_available = stock.quantity_available if quantity_available is None else quantity_available
    target_reserved = stock.quantity_reserved if quantity_reserved is None else quantity_reserved
    _raise_if(product_id, "update", check_non_negative(target_available, "quantity_available"))
    _raise_if(product_id, "update", check_non_negative(target_reserved, "quantity_reserved"))

    reserved_delta = target_reserved - stock.quantity_reserved
    note = notes or "Stock level update"

    if reserved_delta < 0:
        stock = release_stock(
            db,
            product_id=product_id,
            quantity=-reserved_delta,
            actor_id=actor_id,
            notes=note,
            reference_type=ReferenceType.adjustment,
        )

    available_delta = target_available + max(reserved_delta, 0) - stock.quantity_available
    if available_delta:
        stock = adjust_stock(db, product_id=product_id, delta=available_delta, actor_id=actor_id, notes=note)

    if reserved_delta > 0:
        stock = reserve_stock(
            db,
            product_id=product_id,
            quantity=reserved_delta,
            actor_id=actor_id,
            notes=note,
            reference_type=ReferenceType.adjustment,
        )
    return stock


def record_transaction(
    db: Session,
    *,
    product_id: uuid.UUID,
    transaction_type: TransactionType,
    quantity: int,
    reference_type: ReferenceType,
    actor_id: uuid.UUID,
    reference_id: uuid.UUID | None = None,
    notes: str | None = None,
) -> StockTransaction:
    """Apply a raw transaction through the matching ledger operation and return the logged row."""
    operations = {
        TransactionType.stock_in: receive_stock,
        TransactionType.stock_out: consume_stock,
        TransactionType.adjustment: adjust_stock,
        TransactionType.reserved: reserve_stock,
        TransactionType.released: release_stock,
    }
    operation = operations.get(transaction_type)
    if operation is None:
        logger.warning("Rejected transaction on product %s: unsupported type %r", product_id, transaction_type)
        raise InvalidState(f"Unsupported transaction type {transaction_type!r}")

    _get_product(db, product_id)
    ensure_stock(db, product_id=product_id, actor_id=actor_id)

    common = dict(
        product_id=product_id,
        actor_id=actor_id,
        reference_type=reference_type,
        reference_id=reference_id,
        notes=notes,
    )
    if operation is adjust_stock:
        stock = adjust_stock(db, delta=quantity, **common)
    else:
        stock = operation(db, quantity=quantity, **common)

    return db.execute(
        select(StockTransaction)
        .where(StockTransaction.product_id == product_id)
        .where(StockTransaction.sequence == stock.version)
    ).scalar_one()


def delete_stock(db: Session, *, product_id: uuid.UUID, actor_id: uuid.UUID) -> Stock:
    stock = _lock_stock(db, product_id)
    stock.soft_delete(actor_id)
    db.flush()
    logger.info("Stock for product %s soft deleted by %s", product_id, actor_id)
    return stock


def restore_stock(db: Session, *, product_id: uuid.UUID, actor_id: uuid.UUID) -> Stock:
    stock = _find_stock(db, product_id, lock=True, with_deleted=True)
    if not stock:
        raise NotFound(f"Stock not found for product {product_id}")
    if stock.deleted_at is None:
        raise InvalidState(f"Stock for product {product_id} is not deleted")
    stock.restore(actor_id)
    db.flush()
    logger.info("Stock for product %s restored by %s", product_id, actor_id)
    return stock


# ---------- Queries ----------
def _summary(stock: Stock, product: Product, threshold: int | None = None) -> StockSummary:
    total = stock.quantity_available + stock.quantity_reserved
    minimum = product.minimum_stock_level if threshold is None else threshold
    return StockSummary(
        product_id=stock.product_id,
        product_name=product.name,
        product_sku=product.sku,
        quantity_available=stock.quantity_available,
        quantity_reserved=stock.quantity_reserved,
        total_quantity=total,
        minimum_stock_level=minimum,
        is_low_stock=total < minimum,
    )


def get_stock_summary(db: Session, product_id: uuid.UUID) -> StockSummary:
    stock = get_stock(db, product_id)
    return _summary(stock, stock.product)


def list_stock(
    db: Session,
    *,
    product_id: uuid.UUID | None = None,
    low_stock: bool | None = None,
    with_deleted: bool = False,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[StockSummary], int]:
    total_qty = Stock.quantity_available + Stock.quantity_reserved
    stmt = select(Stock, Product).join(Product, Product.id == Stock.product_id)
    if not with_deleted:
        stmt = stmt.where(Stock.deleted_at.is_(None))
    if product_id is not None:
        stmt = stmt.where(Stock.product_id == product_id)
    if low_stock is True:
        stmt = stmt.where(total_qty < Product.minimum_stock_level)
    elif low_stock is False:
        stmt = stmt.where(total_qty >= Product.minimum_stock_level)

    total = db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
    rows = db.execute(
        stmt.order_by(Product.sku).offset((page - 1) * limit).limit(limit)
    ).all()
    return [_summary(stock, product) for stock, product in rows], int(total)


def get_low_stock(db: Session, threshold: int | None = None) -> list[StockSummary]:
    total_qty = Stock.quantity_available + Stock.quantity_reserved
    stmt = (
        select(Stock, Product)
        .join(Product, Product.id == Stock.product_id)
        .where(Stock.deleted_at.is_(None))
        .order_by(total_qty.asc(), Product.sku)
    )
    if threshold is None:
        stmt = stmt.where(total_qty < Product.minimum_stock_level)
    else:
        stmt = stmt.where(total_qty < threshold)
    return [_summary(stock, product, threshold) for stock, product in db.execute(stmt).all()]


def list_transactions(db: Session, filters: TransactionFilters | None = None) -> TransactionQuery:
    return TransactionQuery(db, filters or TransactionFilters())


def replay(initial_available: int, initial_reserved: int, transactions) -> tuple[int, int]:
    """Fold transactions (oldest first) over the initial counters."""
    available, reserved = initial_available, initial_reserved
    for tx in transactions:
        q = tx.quantity
        if tx.transaction_type == TransactionType.stock_in:
            available += q
        elif tx.transaction_type == TransactionType.stock_out:
            if tx.from_reserved:
                reserved -= q
            else:
                available -= q
        elif tx.transaction_type == TransactionType.adjustment:
            available += q
        elif tx.transaction_type == TransactionType.reserved:
            available -= q
            reserved += q
        elif tx.transaction_type == TransactionType.released:
            reserved -= q
            available += q
    return available, reserved


def reconcile_stock(db: Session, product_id: uuid.UUID) -> StockReconciliation:
    stock = get_stock(db, product_id)
    transactions = db.scalars(
        select(StockTransaction)
        .where(StockTransaction.product_id == product_id)
        .order_by(StockTransaction.sequence.asc())
    ).all()
    expected_available, expected_reserved = replay(
        stock.initial_available, stock.initial_reserved, transactions
    )
    result = StockReconciliation(
        product_id=product_id,
        transaction_count=len(transactions),
        expected_available=expected_available,
        expected_reserved=expected_reserved,
        actual_available=stock.quantity_available,
        actual_reserved=stock.quantity_reserved,
    )
    if not result.balanced:
        logger.error("Ledger mismatch for product %s: %s", product_id, result)
    return result
