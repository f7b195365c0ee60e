"""
Procurement service.

Receives purchase orders into stock. All quantity bookkeeping goes through
retail_backend.services.inventory; this module only owns the purchase-order
side (quantity_received per item, order status).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Iterable

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from retail_backend.app.core.exceptions import InvalidQuantity, InvalidState, NotFound
from retail_backend.app.core.logging import get_logger
from retail_backend.app.db.models.models_v1 import PurchaseOrder, PurchaseOrderItem
from retail_backend.app.db.models.core_types import POStatus, ReferenceType
from retail_backend.services import inventory

logger = get_logger("procurement")


@dataclass(frozen=True)
class ItemReceipt:
    item_id: uuid.UUID
    quantity: int


def get_purchase_order(db: Session, purchase_order_id: uuid.UUID, *, lock: bool = False) -> PurchaseOrder:
    stmt = (
        select(PurchaseOrder)
        .where(PurchaseOrder.id == purchase_order_id)
        .where(PurchaseOrder.deleted_at.is_(None))
    )
    if lock:
        stmt = stmt.with_for_update()
    po = db.execute(stmt).scalar_one_or_none()
    if not po:
        raise NotFound(f"Purchase order {purchase_order_id} not found")
    return po


def receive_purchase_order(
    db: Session,
    *,
    purchase_order_id: uuid.UUID,
    actor_id: uuid.UUID,
    items: Iterable[ItemReceipt] | None = None,
) -> PurchaseOrder:
    """
    Book received goods into stock.

    items=None (or an empty list) receives everything still outstanding.
    Otherwise each receipt must be > 0, and the lines for one item together
    must not exceed its outstanding quantity. The order moves to RECEIVED
    once nothing is outstanding.
    """
    po = get_purchase_order(db, purchase_order_id, lock=True)
    if po.status != POStatus.confirmed:
        raise InvalidState("Only confirmed purchase orders can be received")

    by_id = {item.id: item for item in po.items if item.deleted_at is None}
    receipts = list(items or [])
    if not receipts:
        receipts = [ItemReceipt(item.id, item.quantity_outstanding) for item in by_id.values() if item.quantity_outstanding > 0]

    # validate every line before touching stock
    requested: dict[uuid.UUID, int] = {}
    for receipt in receipts:
        item = by_id.get(receipt.item_id)
        if item is None:
            raise NotFound(f"Purchase order item {receipt.item_id} not found on order {po.order_number}")
        if receipt.quantity <= 0:
            raise InvalidQuantity(f"Received quantity must be positive (got {receipt.quantity})")
        requested[item.id] = requested.get(item.id, 0) + receipt.quantity
        if requested[item.id] > item.quantity_outstanding:
            raise InvalidQuantity(
                f"Cannot receive {requested[item.id]} of item {item.id}: only {item.quantity_outstanding} outstanding"
            )

    for receipt in receipts:
        item = by_id[receipt.item_id]
        inventory.ensure_stock(db, product_id=item.product_id, actor_id=actor_id)
        inventory.receive_stock(
            db,
            product_id=item.product_id,
            quantity=receipt.quantity,
            reference_type=ReferenceType.purchase,
            reference_id=po.id,
            notes=f"Received on purchase order {po.order_number}",
            actor_id=actor_id,
        )
        item.quantity_received += receipt.quantity
        item.touch(actor_id)

    if all(item.quantity_outstanding == 0 for item in by_id.values()):
        po.status = POStatus.received
    po.touch(actor_id)
    db.flush()

    logger.info(
        "Purchase order %s received by %s (%d lines, status=%s)",
        po.order_number,
        actor_id,
        len(receipts),
        po.status.value,
    )
    return po


def purchase_order_stats(db: Session) -> dict[str, int]:
    rows = db.execute(
        select(PurchaseOrder.status, func.count())
        .where(PurchaseOrder.deleted_at.is_(None))
        .group_by(PurchaseOrder.status)
    ).all()
    counts = {status: int(n) for status, n in rows}
    stats = {status.value.lower(): counts.get(status, 0) for status in POStatus}
    stats["total"] = sum(counts.values())
    return stats
