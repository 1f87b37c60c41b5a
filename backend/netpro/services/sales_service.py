"""
Sales Service - counter sales of stock items

A sale and the stock it consumes are one unit of work: the availability
check, the header and lines, and every decrement commit together or not at
all. Deleting a sale is the exact inverse.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from decimal import Decimal

from sqlalchemy import func

from ..extensions import db
from ..models import Customer, SaleItem, SaleTransaction, StockItem
from ..time_utils import parse_iso_datetime, utcnow
from ..validation import (
    NotFoundError,
    ValidationError,
    pagination_meta,
    parse_money,
    parse_pagination,
    parse_positive_int,
)
from .concurrency import atomic, lock_for_update, run_with_retry
from .stock_service import InsufficientStockError, decrement_stock, increment_stock


logger = logging.getLogger(__name__)


def _parse_sale_payload(payload: dict) -> tuple[int, object, list[dict]]:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    customer_id = payload.get("customer_id")
    items = payload.get("items")
    if not customer_id:
        raise ValidationError("customer_id is required")
    if not items or not isinstance(items, list):
        raise ValidationError("At least one item is required")

    customer_id = parse_positive_int(customer_id, "customer_id")

    sale_date = payload.get("sale_date")
    if sale_date in (None, ""):
        sale_date = utcnow()
    else:
        try:
            sale_date = parse_iso_datetime(str(sale_date))
        except ValueError:
            raise ValidationError("sale_date must be an ISO-8601 datetime")

    lines = []
    for index, raw in enumerate(items, start=1):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        if raw.get("item_id") in (None, ""):
            raise ValidationError(f"items[{index}].item_id is required")
        unit_price = parse_money(raw.get("unit_price"), f"items[{index}].unit_price")
        if unit_price < 0:
            raise ValidationError(f"items[{index}].unit_price must be >= 0")
        lines.append({
            "item_id": parse_positive_int(raw.get("item_id"), f"items[{index}].item_id"),
            "qty": parse_positive_int(raw.get("qty"), f"items[{index}].qty"),
            "unit_price": unit_price,
        })

    return customer_id, sale_date, lines


def _requested_by_item(lines: list[dict]) -> "OrderedDict[int, int]":
    requested: OrderedDict[int, int] = OrderedDict()
    for line in lines:
        requested[line["item_id"]] = requested.get(line["item_id"], 0) + line["qty"]
    return requested


def create_sale(payload: dict, user_id: int | None = None) -> SaleTransaction:
    """
    Create a sale and decrement stock for every line.

    Raises:
        ValidationError: missing customer/items, non-positive qty, bad price
        NotFoundError: customer or stock item does not exist
        InsufficientStockError: any item has less on hand than requested
    """
    customer_id, sale_date, lines = _parse_sale_payload(payload)
    requested = _requested_by_item(lines)

    def _op():
        with atomic():
            if db.session.get(Customer, customer_id) is None:
                raise NotFoundError("Customer not found")

            stock_rows = (
                lock_for_update(db.session.query(StockItem).filter(StockItem.id.in_(list(requested))))
                .all()
            )
            by_id = {row.id: row for row in stock_rows}

            missing = [item_id for item_id in requested if item_id not in by_id]
            if missing:
                raise NotFoundError(f"Stock item {missing[0]} not found")

            shortages = [
                {
                    "item_id": item_id,
                    "name": by_id[item_id].name,
                    "available": by_id[item_id].quantity,
                    "requested": qty,
                }
                for item_id, qty in requested.items()
                if by_id[item_id].quantity < qty
            ]
            if shortages:
                raise InsufficientStockError(shortages)

            sale = SaleTransaction(
                customer_id=customer_id,
                user_id=user_id,
                sale_date=sale_date,
                total_price=sum((line["unit_price"] * line["qty"] for line in lines), Decimal("0.00")),
            )
            for line in lines:
                sale.items.append(SaleItem(
                    item_id=line["item_id"],
                    qty=line["qty"],
                    unit_price=line["unit_price"],
                    total_price=line["unit_price"] * line["qty"],
                ))
            db.session.add(sale)
            db.session.flush()

            for item_id, qty in requested.items():
                decrement_stock(item_id, qty)

        return sale

    sale = run_with_retry(_op)
    logger.info("Sale %s created for customer %s (%s lines)", sale.id, customer_id, len(lines))
    return sale


def delete_sale(sale_id: int) -> dict[int, int]:
    """
    Delete a sale and put its quantities back on stock.

    Returns the restored quantity per stock item id.
    """
    def _op():
        with atomic():
            sale = lock_for_update(db.session.query(SaleTransaction).filter_by(id=sale_id)).first()
            if sale is None:
                raise NotFoundError("Sale not found")

            restored = _requested_by_item([{"item_id": i.item_id, "qty": i.qty} for i in sale.items])
            for item_id, qty in restored.items():
                increment_stock(item_id, qty)

            db.session.delete(sale)
        return dict(restored)

    restored = run_with_retry(_op)
    logger.info("Sale %s deleted; stock restored for items %s", sale_id, sorted(restored))
    return restored


def get_sale(sale_id: int) -> SaleTransaction:
    sale = db.session.get(SaleTransaction, sale_id)
    if sale is None:
        raise NotFoundError("Sale not found")
    return sale


def list_sales(page=None, limit=None, customer_id: int | None = None) -> dict:
    page_num, size = parse_pagination(page, limit)
    query = db.session.query(SaleTransaction)
    if customer_id:
        query = query.filter(SaleTransaction.customer_id == customer_id)

    total = query.with_entities(func.count(SaleTransaction.id)).scalar() or 0
    rows = (
        query.order_by(SaleTransaction.sale_date.desc(), SaleTransaction.id.desc())
        .offset((page_num - 1) * size)
        .limit(size)
        .all()
    )
    return {
        "sales": [s.to_dict() for s in rows],
        "pagination": pagination_meta(page_num, size, total),
    }
