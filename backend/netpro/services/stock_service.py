# Overview: Service-layer operations for stock; quantity movements, stock item and category management.

"""
Stock ledger.

Invariants:
- StockItem.quantity is never negative between transactions.
- Every decrement is a conditional UPDATE (quantity >= requested) checked by
  row count, so a concurrent writer can never push a row below zero even if
  the caller's earlier availability read is stale.
- decrement_stock / increment_stock never commit; callers own the
  transaction so stock moves together with the document that caused them.
"""

from __future__ import annotations

import logging

from flask import current_app
from sqlalchemy import and_, func, or_, update

from ..extensions import db
from ..models import (
    InvoiceItem,
    InvoiceStockItem,
    Product,
    SaleItem,
    StockCategory,
    StockItem,
    Supplier,
)
from ..models.stock import STOCK_STATUS_ACTIVE, STOCK_STATUSES
from ..validation import ModelValidationPolicy, NotFoundError, ValidationError
from .crud_service import CrudResource, DeleteBlocker


logger = logging.getLogger(__name__)

DEFAULT_LOW_STOCK_THRESHOLD = 10


class InsufficientStockError(Exception):
    """Raised when a requested quantity exceeds what is on hand."""

    def __init__(self, shortages: list[dict]):
        first = shortages[0]
        super().__init__(
            f"Insufficient stock for {first['name']}. "
            f"Available: {first['available']}, Requested: {first['requested']}"
        )
        self.details = {"items": shortages}


def _enforce_stock_item_rules(patch: dict) -> None:
    for name in ("quantity", "reorder_level", "min_level"):
        if name in patch and patch[name] is not None and patch[name] < 0:
            raise ValidationError(f"{name} must be >= 0")
    if "status" in patch and patch["status"] not in STOCK_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(STOCK_STATUSES)}")


STOCK_ITEMS = CrudResource(
    model=StockItem,
    label="Stock item",
    policy=ModelValidationPolicy(
        writable_fields={
            "name", "quantity", "reorder_level", "min_level", "status",
            "category_id", "supplier_id", "product_id",
        },
        required_on_create={"name", "quantity"},
    ),
    references={"category_id": StockCategory, "supplier_id": Supplier, "product_id": Product},
    delete_blockers=(
        DeleteBlocker(SaleItem, "item_id", "sale lines"),
        DeleteBlocker(InvoiceItem, "item_id", "master invoice lines"),
        DeleteBlocker(InvoiceStockItem, "item_id", "invoice lines"),
    ),
    rules=_enforce_stock_item_rules,
)

STOCK_CATEGORIES = CrudResource(
    model=StockCategory,
    label="Stock category",
    policy=ModelValidationPolicy(writable_fields={"name"}, required_on_create={"name"}),
    unique_fields=("name",),
    delete_blockers=(DeleteBlocker(StockItem, "category_id", "stock items"),),
)


def decrement_stock(item_id: int, qty: int) -> None:
    """
    Atomically take qty units from a stock item.

    Raises NotFoundError if the item does not exist and
    InsufficientStockError if fewer than qty units are on hand.
    """
    if qty <= 0:
        raise ValidationError("qty must be greater than 0")

    result = db.session.execute(
        update(StockItem)
        .where(StockItem.id == item_id, StockItem.quantity >= qty)
        .values(quantity=StockItem.quantity - qty)
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount == 1:
        logger.debug("Stock item %s decremented by %s", item_id, qty)
        return

    row = db.session.query(StockItem.name, StockItem.quantity).filter(StockItem.id == item_id).first()
    if row is None:
        raise NotFoundError(f"Stock item {item_id} not found")
    raise InsufficientStockError([
        {"item_id": item_id, "name": row.name, "available": row.quantity, "requested": qty}
    ])


def increment_stock(item_id: int, qty: int) -> None:
    """Put qty units back on a stock item (sale reversal, restock)."""
    if qty <= 0:
        raise ValidationError("qty must be greater than 0")

    result = db.session.execute(
        update(StockItem)
        .where(StockItem.id == item_id)
        .values(quantity=StockItem.quantity + qty)
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount != 1:
        raise NotFoundError(f"Stock item {item_id} not found")
    logger.debug("Stock item %s incremented by %s", item_id, qty)


def get_stock_items() -> list[dict]:
    """Active items with something on hand, by name; feeds the sale item picker."""
    rows = (
        db.session.query(StockItem)
        .filter(StockItem.quantity > 0, StockItem.status == STOCK_STATUS_ACTIVE)
        .order_by(StockItem.name, StockItem.id)
        .all()
    )
    return [r.to_dict() for r in rows]


def _low_stock_threshold() -> int:
    return int(current_app.config.get("LOW_STOCK_THRESHOLD", DEFAULT_LOW_STOCK_THRESHOLD))


def low_stock_items(limit: int | None = None) -> list[StockItem]:
    """
    Active items at or under their reorder level, or under the global
    threshold. Lowest quantity first.
    """
    query = (
        db.session.query(StockItem)
        .filter(
            StockItem.status == STOCK_STATUS_ACTIVE,
            or_(
                StockItem.quantity <= _low_stock_threshold(),
                and_(StockItem.reorder_level > 0, StockItem.quantity <= StockItem.reorder_level),
            ),
        )
        .order_by(StockItem.quantity, StockItem.name)
    )
    if limit:
        query = query.limit(limit)
    return query.all()


def total_stock_quantity() -> int:
    return int(db.session.query(func.coalesce(func.sum(StockItem.quantity), 0)).scalar() or 0)
