# Overview: Service-layer operations for reporting; date range resolution and report aggregation.

"""
Reports are pure folds over plain row dicts. The fetch_* helpers pull the
rows for a resolved date range; the *_report functions turn rows into
summaries and never touch the database, so each can be tested with literal
rows and recomputed on every call.

Invoice money is counted once: paid master invoices plus paid invoices that
are not children of a master (children repeat their master's lines).
"""

from __future__ import annotations

import calendar
from collections import OrderedDict
from datetime import datetime, timedelta
from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import (
    CashPowerTransaction,
    Customer,
    Invoice,
    MasterInvoice,
    SaleItem,
    SaleTransaction,
    StockCategory,
    StockItem,
)
from ..models.invoices import INVOICE_STATUS_PAID
from ..time_utils import as_utc_naive, parse_iso_datetime, to_iso_date, utcnow
from ..validation import ValidationError, money_to_json


ZERO = Decimal("0.00")
TOP_N = 10
UNCATEGORIZED = "Uncategorized"

DATE_RANGES = ("daily", "weekly", "monthly", "quarterly", "yearly", "custom")
REPORT_TYPES = ("income", "sales", "inventory", "cashpower", "customer")


# =============================================================================
# DATE RANGES
# =============================================================================

def shift_months(dt: datetime, months: int) -> datetime:
    """Move dt by a number of calendar months, clamping the day (Mar 31 - 1 month = Feb 28/29)."""
    month_index = dt.month - 1 + months
    year = dt.year + month_index // 12
    month = month_index % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def _parse_bound(value: str | None, *, end: bool) -> datetime | None:
    if value in (None, ""):
        return None
    try:
        parsed = parse_iso_datetime(str(value))
    except ValueError:
        raise ValidationError("startDate and endDate must be ISO-8601 dates")
    # A bare date as the upper bound covers the whole day
    if end and len(str(value).strip()) == 10:
        parsed = parsed.replace(hour=23, minute=59, second=59)
    return parsed


def resolve_date_range(
    date_range: str | None,
    start_date: str | None = None,
    end_date: str | None = None,
    now: datetime | None = None,
) -> tuple[datetime, datetime]:
    """
    Map a named range to (start, end).

    Unknown names fall back to monthly. custom uses the supplied bounds,
    defaulting a missing bound to now.
    """
    now = now or utcnow()

    if date_range == "daily":
        return now.replace(hour=0, minute=0, second=0, microsecond=0), now
    if date_range == "weekly":
        return now - timedelta(days=7), now
    if date_range == "quarterly":
        return shift_months(now, -3), now
    if date_range == "yearly":
        return shift_months(now, -12), now
    if date_range == "custom":
        start = _parse_bound(start_date, end=False) or now
        end = _parse_bound(end_date, end=True) or now
        if end < start:
            raise ValidationError("endDate cannot be before startDate")
        return start, end
    return shift_months(now, -1), now


def month_keys(start: datetime, end: datetime) -> list[str]:
    """Every YYYY-MM from start to end inclusive, in order."""
    keys = []
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        keys.append(f"{year:04d}-{month:02d}")
        month += 1
        if month > 12:
            year, month = year + 1, 1
    return keys


def _month_key(dt: datetime) -> str:
    return as_utc_naive(dt).strftime("%Y-%m")


def _monthly(rows, start: datetime, end: datetime, date_key: str, amount_key: str) -> list[dict]:
    buckets: OrderedDict[str, Decimal] = OrderedDict((k, ZERO) for k in month_keys(start, end))
    for row in rows:
        key = _month_key(row[date_key])
        buckets[key] = buckets.get(key, ZERO) + Decimal(row[amount_key])
    return [{"month": k, "amount": money_to_json(buckets[k])} for k in sorted(buckets)]


def _top(totals: dict, names: dict, id_key: str, n: int = TOP_N) -> list[dict]:
    ranked = sorted(totals.items(), key=lambda kv: (-kv[1], names.get(kv[0]) or ""))
    return [
        {id_key: key, "name": names.get(key), "amount": money_to_json(amount)}
        for key, amount in ranked[:n]
    ]


# =============================================================================
# PURE AGGREGATIONS
# =============================================================================

def income_report(rows: list[dict], start: datetime, end: datetime) -> dict:
    """rows: {customer_id, customer_name, amount_paid, created_at} for paid invoices."""
    total = ZERO
    per_customer: dict = {}
    names: dict = {}
    for row in rows:
        amount = Decimal(row["amount_paid"])
        total += amount
        per_customer[row["customer_id"]] = per_customer.get(row["customer_id"], ZERO) + amount
        names[row["customer_id"]] = row["customer_name"]

    return {
        "total_income": money_to_json(total),
        "invoice_count": len(rows),
        "monthly": _monthly(rows, start, end, "created_at", "amount_paid"),
        "top_customers": _top(per_customer, names, "customer_id"),
    }


def sales_report(rows: list[dict], start: datetime, end: datetime) -> dict:
    """rows: {sale_id, item_id, item_name, category, qty, total_price, sale_date} per sale line."""
    total = ZERO
    items_sold = 0
    by_category: OrderedDict[str, dict] = OrderedDict()
    per_item: dict = {}
    item_names: dict = {}
    sale_ids = set()

    for row in rows:
        amount = Decimal(row["total_price"])
        category = row.get("category") or UNCATEGORIZED
        total += amount
        items_sold += row["qty"]
        sale_ids.add(row["sale_id"])

        bucket = by_category.setdefault(category, {"category": category, "amount": ZERO, "qty": 0})
        bucket["amount"] += amount
        bucket["qty"] += row["qty"]

        per_item[row["item_id"]] = per_item.get(row["item_id"], ZERO) + amount
        item_names[row["item_id"]] = row["item_name"]

    categories = sorted(by_category.values(), key=lambda b: (-b["amount"], b["category"]))
    return {
        "total_sales": money_to_json(total),
        "sale_count": len(sale_ids),
        "items_sold": items_sold,
        "by_category": [
            {"category": b["category"], "amount": money_to_json(b["amount"]), "qty": b["qty"]}
            for b in categories
        ],
        "top_items": _top(per_item, item_names, "item_id"),
        "monthly": _monthly(rows, start, end, "sale_date", "total_price"),
    }


def inventory_report(rows: list[dict], threshold: int) -> dict:
    """rows: {id, name, quantity, reorder_level, category, status} for every stock item."""
    low_stock = []
    out_of_stock = []
    total_quantity = 0
    for row in rows:
        total_quantity += row["quantity"]
        if row.get("status", "active") != "active":
            continue
        if row["quantity"] == 0:
            out_of_stock.append(row)
        elif row["quantity"] <= threshold or (
            row.get("reorder_level") and row["quantity"] <= row["reorder_level"]
        ):
            low_stock.append(row)

    low_stock.sort(key=lambda r: (r["quantity"], r["name"]))
    out_of_stock.sort(key=lambda r: r["name"])
    return {
        "total_items": len(rows),
        "total_quantity": total_quantity,
        "low_stock_count": len(low_stock),
        "out_of_stock_count": len(out_of_stock),
        "low_stock": low_stock,
        "out_of_stock": out_of_stock,
    }


def cashpower_report(rows: list[dict], start: datetime, end: datetime) -> dict:
    """rows: {amount, commission, units, created_at} per transaction."""
    total_amount = sum((Decimal(r["amount"]) for r in rows), ZERO)
    total_commission = sum((Decimal(r["commission"]) for r in rows), ZERO)
    return {
        "total_amount": money_to_json(total_amount),
        "total_commission": money_to_json(total_commission),
        "total_units": sum(r["units"] for r in rows),
        "transaction_count": len(rows),
        "monthly": _monthly(rows, start, end, "created_at", "amount"),
    }


def customer_report(customers: list[dict], invoices: list[dict], start: datetime, end: datetime) -> dict:
    """
    customers: {id, name, created_at} for every customer
    invoices: {customer_id, amount_to_pay, created_at} created in range
    """
    names = {c["id"]: c["name"] for c in customers}
    invoiced: dict = {}
    for row in invoices:
        invoiced[row["customer_id"]] = invoiced.get(row["customer_id"], ZERO) + Decimal(row["amount_to_pay"])

    new_customers = [
        c for c in customers
        if c["created_at"] and start <= as_utc_naive(c["created_at"]) <= end
    ]
    return {
        "total_customers": len(customers),
        "active_customers": len(invoiced),
        "new_customers": len(new_customers),
        "top_customers": _top(invoiced, names, "customer_id"),
    }


# =============================================================================
# FETCHERS
# =============================================================================

def fetch_paid_invoice_rows(start: datetime, end: datetime) -> list[dict]:
    rows = []
    masters = (
        db.session.query(MasterInvoice)
        .filter(
            MasterInvoice.status == INVOICE_STATUS_PAID,
            MasterInvoice.created_at >= start,
            MasterInvoice.created_at <= end,
        )
        .all()
    )
    for m in masters:
        # Consolidated invoices are attributed to the company
        if m.company is not None:
            key, name = f"company:{m.company_id}", m.company.name
        else:
            key, name = m.customer_id, m.customer.name if m.customer else None
        rows.append({"customer_id": key, "customer_name": name, "amount_paid": m.amount_paid,
                     "created_at": m.created_at})

    standalone = (
        db.session.query(Invoice)
        .filter(
            Invoice.master_invoice_id.is_(None),
            Invoice.status == INVOICE_STATUS_PAID,
            Invoice.created_at >= start,
            Invoice.created_at <= end,
        )
        .all()
    )
    for inv in standalone:
        rows.append({"customer_id": inv.customer_id, "customer_name": inv.customer.name,
                     "amount_paid": inv.amount_paid, "created_at": inv.created_at})
    return rows


def fetch_sale_rows(start: datetime, end: datetime) -> list[dict]:
    query = (
        db.session.query(
            SaleItem.sale_id,
            SaleItem.item_id,
            StockItem.name.label("item_name"),
            StockCategory.name.label("category"),
            SaleItem.qty,
            SaleItem.total_price,
            SaleTransaction.sale_date,
        )
        .join(SaleTransaction, SaleTransaction.id == SaleItem.sale_id)
        .join(StockItem, StockItem.id == SaleItem.item_id)
        .outerjoin(StockCategory, StockCategory.id == StockItem.category_id)
        .filter(SaleTransaction.sale_date >= start, SaleTransaction.sale_date <= end)
    )
    return [dict(row._mapping) for row in query.all()]


def fetch_stock_rows() -> list[dict]:
    items = db.session.query(StockItem).order_by(StockItem.name).all()
    return [
        {
            "id": i.id,
            "name": i.name,
            "quantity": i.quantity,
            "reorder_level": i.reorder_level,
            "category": i.category.name if i.category else UNCATEGORIZED,
            "status": i.status,
        }
        for i in items
    ]


def fetch_cashpower_rows(start: datetime, end: datetime) -> list[dict]:
    query = db.session.query(
        CashPowerTransaction.amount,
        CashPowerTransaction.commission,
        CashPowerTransaction.units,
        CashPowerTransaction.created_at,
    ).filter(CashPowerTransaction.created_at >= start, CashPowerTransaction.created_at <= end)
    return [dict(row._mapping) for row in query.all()]


def fetch_customer_rows(start: datetime, end: datetime) -> tuple[list[dict], list[dict]]:
    customers = [
        dict(row._mapping)
        for row in db.session.query(Customer.id, Customer.name, Customer.created_at).all()
    ]
    invoices = []
    for model in (Invoice, MasterInvoice):
        query = db.session.query(model.customer_id, model.amount_to_pay, model.created_at).filter(
            model.customer_id.isnot(None), model.created_at >= start, model.created_at <= end
        )
        if model is Invoice:
            query = query.filter(Invoice.master_invoice_id.is_(None))
        invoices.extend(dict(row._mapping) for row in query.all())
    # Children of consolidated invoices carry the per-customer amounts
    children = db.session.query(Invoice.customer_id, Invoice.amount_to_pay, Invoice.created_at).join(
        MasterInvoice, MasterInvoice.id == Invoice.master_invoice_id
    ).filter(
        MasterInvoice.company_id.isnot(None), Invoice.created_at >= start, Invoice.created_at <= end
    )
    invoices.extend(dict(row._mapping) for row in children.all())
    return customers, invoices


# =============================================================================
# DISPATCH
# =============================================================================

def generate_report(report_type: str, date_range: str | None = None,
                    start_date: str | None = None, end_date: str | None = None,
                    now: datetime | None = None) -> dict:
    if report_type not in REPORT_TYPES:
        raise ValidationError(f"Unknown report type: {report_type}")

    start, end = resolve_date_range(date_range, start_date, end_date, now=now)

    if report_type == "income":
        data = income_report(fetch_paid_invoice_rows(start, end), start, end)
    elif report_type == "sales":
        data = sales_report(fetch_sale_rows(start, end), start, end)
    elif report_type == "inventory":
        data = inventory_report(fetch_stock_rows(), int(current_app.config.get("LOW_STOCK_THRESHOLD", 10)))
    elif report_type == "cashpower":
        data = cashpower_report(fetch_cashpower_rows(start, end), start, end)
    else:
        customers, invoices = fetch_customer_rows(start, end)
        data = customer_report(customers, invoices, start, end)

    return {
        "report_type": report_type,
        "filters": {
            "date_range": date_range if date_range in DATE_RANGES else "monthly",
            "start_date": to_iso_date(start),
            "end_date": to_iso_date(end),
        },
        "data": data,
    }
