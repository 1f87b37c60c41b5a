# Overview: Service-layer operations for invoices; simple invoices, master invoices and their child fan-out.

"""
Invoice workflows.

Master invoices are either individual (billed to one customer) or
consolidated (billed to a company). A consolidated master invoice fans out
into one child Invoice per distinct customer on its lines. The master, its
lines and all children are written in a single transaction: either the
whole set exists or none of it does, so children always sum to the master.
Children cannot be deleted on their own, and payments stay in step: paying
a child rolls up into the master, paying the master is spread over its
children in creation order.

Status is always derived from amounts, never accepted from clients.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import timedelta
from decimal import Decimal

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import (
    Company,
    Customer,
    Invoice,
    InvoiceItem,
    InvoiceStockItem,
    MasterInvoice,
    StockItem,
)
from ..models.invoices import (
    INVOICE_STATUS_PAID,
    INVOICE_STATUS_PARTIAL,
    INVOICE_STATUS_UNPAID,
    INVOICE_TYPE_CONSOLIDATED,
    INVOICE_TYPE_INDIVIDUAL,
    INVOICE_TYPES,
)
from ..time_utils import parse_date, parse_iso_datetime, utcnow
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    pagination_meta,
    parse_money,
    parse_pagination,
    parse_positive_int,
    require_fields,
)
from .concurrency import atomic, lock_for_update, run_with_retry


logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
DEFAULT_EXPIRY_WARNING_DAYS = 3


# =============================================================================
# STATUS
# =============================================================================

def derive_status(amount_paid: Decimal, amount_to_pay: Decimal) -> str:
    """
    paid    -> amount_paid == amount_to_pay
    partial -> 0 < amount_paid < amount_to_pay
    unpaid  -> amount_paid == 0

    Amounts outside 0 <= amount_paid <= amount_to_pay are rejected.
    """
    amount_paid = Decimal(amount_paid)
    amount_to_pay = Decimal(amount_to_pay)
    if amount_paid < 0 or amount_to_pay < 0:
        raise ValidationError("Amounts must be >= 0")
    if amount_paid > amount_to_pay:
        raise ValidationError("amount_paid cannot exceed amount_to_pay")
    if amount_paid == amount_to_pay:
        return INVOICE_STATUS_PAID
    if amount_paid > 0:
        return INVOICE_STATUS_PARTIAL
    return INVOICE_STATUS_UNPAID


def _parse_amount_paid(value) -> Decimal:
    if value in (None, ""):
        return ZERO
    return parse_money(value, "amount_paid")


def _parse_optional_date(payload: dict, name: str):
    value = payload.get(name)
    if value in (None, ""):
        return None
    try:
        return parse_date(value)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 date")


def _check_period(start_date, end_date) -> None:
    if start_date and end_date and end_date < start_date:
        raise ValidationError("end_date cannot be before start_date")


def _ensure_exists(model, record_id: int, label: str):
    record = db.session.get(model, record_id)
    if record is None:
        raise NotFoundError(f"{label} not found")
    return record


def _ensure_stock_items(item_ids) -> None:
    ids = set(item_ids)
    if not ids:
        return
    found = {row.id for row in db.session.query(StockItem.id).filter(StockItem.id.in_(ids)).all()}
    missing = sorted(ids - found)
    if missing:
        raise NotFoundError(f"Stock item {missing[0]} not found")


# =============================================================================
# SIMPLE INVOICES
# =============================================================================

def create_invoice(payload: dict, user_id: int | None = None) -> Invoice:
    """
    Create a per-customer invoice with its stock item lines.

    Invoices document what was delivered; they do not move stock.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    require_fields(payload, ["customer_id", "amount_to_pay", "start_date", "end_date"])

    lines = payload.get("invoice_stock_items")
    if not lines or not isinstance(lines, list):
        raise ValidationError("Invoice must have at least one item")

    customer_id = parse_positive_int(payload["customer_id"], "customer_id")
    amount_to_pay = parse_money(payload["amount_to_pay"], "amount_to_pay")
    amount_paid = _parse_amount_paid(payload.get("amount_paid"))
    status = derive_status(amount_paid, amount_to_pay)
    start_date = _parse_optional_date(payload, "start_date")
    end_date = _parse_optional_date(payload, "end_date")
    _check_period(start_date, end_date)

    parsed_lines = []
    for index, raw in enumerate(lines, start=1):
        if not isinstance(raw, dict):
            raise ValidationError(f"invoice_stock_items[{index}] must be an object")
        parsed_lines.append({
            "item_id": parse_positive_int(raw.get("item_id"), f"invoice_stock_items[{index}].item_id"),
            "qty": parse_positive_int(raw.get("qty", 1), f"invoice_stock_items[{index}].qty"),
        })

    with atomic():
        _ensure_exists(Customer, customer_id, "Customer")
        _ensure_stock_items(line["item_id"] for line in parsed_lines)

        invoice = Invoice(
            customer_id=customer_id,
            amount_to_pay=amount_to_pay,
            amount_paid=amount_paid,
            status=status,
            payment_method=str(payload.get("payment_method") or ""),
            start_date=start_date,
            end_date=end_date,
            user_id=user_id,
        )
        for line in parsed_lines:
            invoice.stock_items.append(InvoiceStockItem(item_id=line["item_id"], qty=line["qty"]))
        db.session.add(invoice)

    logger.info("Invoice %s created for customer %s", invoice.id, customer_id)
    return invoice


def list_invoices(
    *,
    page=None,
    limit=None,
    customer_id: int | None = None,
    user_id: int | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    status: str | None = None,
) -> dict:
    page_num, size = parse_pagination(page, limit)
    query = db.session.query(Invoice)
    if customer_id:
        query = query.filter(Invoice.customer_id == customer_id)
    if user_id:
        query = query.filter(Invoice.user_id == user_id)
    if status:
        query = query.filter(Invoice.status == status)
    if start_date and end_date:
        try:
            start = parse_iso_datetime(start_date)
            end = parse_iso_datetime(end_date)
        except ValueError:
            raise ValidationError("startDate and endDate must be ISO-8601 dates")
        if end is not None and len(end_date.strip()) == 10:
            end = end + timedelta(days=1) - timedelta(microseconds=1)
        query = query.filter(Invoice.created_at >= start, Invoice.created_at <= end)

    total = query.with_entities(func.count(Invoice.id)).scalar() or 0
    rows = (
        query.order_by(Invoice.created_at.desc(), Invoice.id.desc())
        .offset((page_num - 1) * size)
        .limit(size)
        .all()
    )
    return {
        "invoices": [i.to_dict() for i in rows],
        "pagination": pagination_meta(page_num, size, total),
    }


def get_invoice(invoice_id: int) -> Invoice:
    return _ensure_exists(Invoice, invoice_id, "Invoice")


def update_invoice(invoice_id: int, payload: dict) -> Invoice:
    """Record a payment or fix the period; status is re-derived."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    allowed = {"amount_paid", "payment_method", "start_date", "end_date"}
    unknown = sorted(set(payload) - allowed)
    if unknown:
        raise ValidationError(f"Field not allowed: {unknown[0]}")

    def _op():
        with atomic():
            master_id = db.session.query(Invoice.master_invoice_id).filter_by(id=invoice_id).scalar()
            # Master before child, the same order update_master_invoice locks in
            master = None
            if master_id is not None:
                master = lock_for_update(db.session.query(MasterInvoice).filter_by(id=master_id)).first()
            invoice = lock_for_update(db.session.query(Invoice).filter_by(id=invoice_id)).first()
            if invoice is None:
                raise NotFoundError("Invoice not found")
            _apply_payment_patch(invoice, payload)
            if master is not None and "amount_paid" in payload:
                _roll_up_to_master(master)
        return invoice

    return run_with_retry(_op)


def delete_invoice(invoice_id: int) -> None:
    with atomic():
        invoice = _ensure_exists(Invoice, invoice_id, "Invoice")
        if invoice.master_invoice_id is not None:
            raise ConflictError(
                f"Invoice belongs to master invoice {invoice.master_invoice_id}; delete the master instead"
            )
        db.session.delete(invoice)
    logger.info("Invoice %s deleted", invoice_id)


def _children_in_order(master: MasterInvoice) -> list[Invoice]:
    return sorted(master.child_invoices, key=lambda child: child.id)


def _roll_up_to_master(master: MasterInvoice) -> None:
    """Master paid amount is the sum of what its children have been paid."""
    amount_paid = sum((child.amount_paid for child in _children_in_order(master)), ZERO)
    master.status = derive_status(amount_paid, master.amount_to_pay)
    master.amount_paid = amount_paid


def _allocate_to_children(master: MasterInvoice) -> None:
    """Spread the master's paid amount over its children, filling each in turn."""
    remaining = Decimal(master.amount_paid or ZERO)
    for child in _children_in_order(master):
        share = min(remaining, child.amount_to_pay)
        child.amount_paid = share
        child.status = derive_status(share, child.amount_to_pay)
        remaining -= share


def _apply_payment_patch(document, payload: dict) -> None:
    if "amount_paid" in payload:
        amount_paid = _parse_amount_paid(payload["amount_paid"])
        document.status = derive_status(amount_paid, document.amount_to_pay)
        document.amount_paid = amount_paid
    if "payment_method" in payload:
        document.payment_method = str(payload["payment_method"] or "")
    if "start_date" in payload:
        document.start_date = _parse_optional_date(payload, "start_date")
    if "end_date" in payload:
        document.end_date = _parse_optional_date(payload, "end_date")
    _check_period(document.start_date, document.end_date)


# =============================================================================
# MASTER INVOICES
# =============================================================================

def _parse_master_items(raw_items, default_customer_id: int | None, consolidated: bool) -> list[dict]:
    items = []
    for index, raw in enumerate(raw_items, start=1):
        if not isinstance(raw, dict):
            raise ValidationError(f"invoice_items[{index}] must be an object")
        if raw.get("item_id") in (None, ""):
            raise ValidationError(f"invoice_items[{index}].item_id is required")

        customer_id = raw.get("customer_id")
        if customer_id in (None, ""):
            if consolidated:
                raise ValidationError(
                    f"invoice_items[{index}].customer_id is required for consolidated invoices"
                )
            customer_id = default_customer_id
        else:
            customer_id = parse_positive_int(customer_id, f"invoice_items[{index}].customer_id")

        qty = parse_positive_int(raw.get("qty", 1), f"invoice_items[{index}].qty")
        unit_price = parse_money(raw.get("unit_price"), f"invoice_items[{index}].unit_price")
        if unit_price < 0:
            raise ValidationError(f"invoice_items[{index}].unit_price must be >= 0")

        items.append({
            "item_id": parse_positive_int(raw.get("item_id"), f"invoice_items[{index}].item_id"),
            "customer_id": customer_id,
            "qty": qty,
            "unit_price": unit_price,
            "total_price": unit_price * qty,
        })
    return items


def group_by_customer(items: list[dict]) -> "OrderedDict[int, list[dict]]":
    """Group parsed lines by customer_id, keeping first-seen customer order."""
    groups: OrderedDict[int, list[dict]] = OrderedDict()
    for item in items:
        groups.setdefault(item["customer_id"], []).append(item)
    return groups


def create_master_invoice(payload: dict, user_id: int | None = None) -> MasterInvoice:
    """
    Create a master invoice and, for consolidated invoices, its children.

    Payload:
        is_consolidated: bool
        company_id: required when consolidated (customer_id must be absent)
        customer_id: required when individual
        invoice_items: [{item_id, customer_id?, qty=1, unit_price}]
        amount_paid, billing_name, start_date, end_date, payment_method: optional

    Children get amount_to_pay = their customer's subtotal and one
    InvoiceStockItem per line. Any amount_paid on the master is spread over
    the children in creation order.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    consolidated = bool(payload.get("is_consolidated"))
    company_id = payload.get("company_id")
    customer_id = payload.get("customer_id")

    if consolidated:
        if company_id in (None, ""):
            raise ValidationError("Company ID is required for consolidated invoices")
        if customer_id not in (None, ""):
            raise ValidationError("customer_id must be omitted for consolidated invoices")
        company_id = parse_positive_int(company_id, "company_id")
        customer_id = None
    else:
        if customer_id in (None, ""):
            raise ValidationError("Customer ID is required for individual invoices")
        customer_id = parse_positive_int(customer_id, "customer_id")
        company_id = None

    raw_items = payload.get("invoice_items")
    if not raw_items or not isinstance(raw_items, list):
        raise ValidationError("Invoice must have at least one item")

    items = _parse_master_items(raw_items, customer_id, consolidated)
    amount_to_pay = sum((item["total_price"] for item in items), ZERO)
    amount_paid = _parse_amount_paid(payload.get("amount_paid"))
    status = derive_status(amount_paid, amount_to_pay)

    start_date = _parse_optional_date(payload, "start_date")
    end_date = _parse_optional_date(payload, "end_date")
    _check_period(start_date, end_date)

    with atomic():
        if consolidated:
            _ensure_exists(Company, company_id, "Company")
        for cid in {item["customer_id"] for item in items}:
            _ensure_exists(Customer, cid, f"Customer {cid}")
        _ensure_stock_items(item["item_id"] for item in items)

        master = MasterInvoice(
            invoice_type=INVOICE_TYPE_CONSOLIDATED if consolidated else INVOICE_TYPE_INDIVIDUAL,
            company_id=company_id,
            customer_id=customer_id,
            billing_name=str(payload.get("billing_name") or ""),
            amount_to_pay=amount_to_pay,
            amount_paid=amount_paid,
            status=status,
            payment_method=str(payload.get("payment_method") or ""),
            start_date=start_date,
            end_date=end_date,
            user_id=user_id,
        )
        for item in items:
            master.items.append(InvoiceItem(
                item_id=item["item_id"],
                customer_id=item["customer_id"],
                qty=item["qty"],
                unit_price=item["unit_price"],
                total_price=item["total_price"],
            ))
        db.session.add(master)
        db.session.flush()

        if consolidated:
            _create_child_invoices(master, items)

    logger.info(
        "Master invoice %s created (%s, %s lines, total %s)",
        master.id, master.invoice_type, len(items), amount_to_pay,
    )
    return master


def _create_child_invoices(master: MasterInvoice, items: list[dict]) -> list[Invoice]:
    children = []
    for customer_id, group in group_by_customer(items).items():
        child = Invoice(
            customer_id=customer_id,
            master_invoice_id=master.id,
            amount_to_pay=sum((item["total_price"] for item in group), ZERO),
            amount_paid=ZERO,
            status=INVOICE_STATUS_UNPAID,
            payment_method="",
            start_date=master.start_date,
            end_date=master.end_date,
            user_id=master.user_id,
        )
        for item in group:
            child.stock_items.append(InvoiceStockItem(item_id=item["item_id"], qty=item["qty"]))
        master.child_invoices.append(child)
        children.append(child)
    db.session.flush()
    _allocate_to_children(master)
    return children


def list_master_invoices(
    *,
    page=None,
    limit=None,
    invoice_type: str | None = None,
    customer_id: int | None = None,
    company_id: int | None = None,
    status: str | None = None,
) -> dict:
    page_num, size = parse_pagination(page, limit)
    query = db.session.query(MasterInvoice)
    if invoice_type and invoice_type != "all":
        if invoice_type not in INVOICE_TYPES:
            raise ValidationError(f"type must be one of: {', '.join(INVOICE_TYPES)}")
        query = query.filter(MasterInvoice.invoice_type == invoice_type)
    if customer_id:
        query = query.filter(MasterInvoice.customer_id == customer_id)
    if company_id:
        query = query.filter(MasterInvoice.company_id == company_id)
    if status:
        query = query.filter(MasterInvoice.status == status)

    total = query.with_entities(func.count(MasterInvoice.id)).scalar() or 0
    rows = (
        query.order_by(MasterInvoice.created_at.desc(), MasterInvoice.id.desc())
        .offset((page_num - 1) * size)
        .limit(size)
        .all()
    )
    return {
        "invoices": [m.to_dict() for m in rows],
        "pagination": pagination_meta(page_num, size, total),
    }


def get_master_invoice(master_id: int) -> MasterInvoice:
    return _ensure_exists(MasterInvoice, master_id, "Master invoice")


def update_master_invoice(master_id: int, payload: dict) -> MasterInvoice:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    allowed = {"amount_paid", "payment_method", "start_date", "end_date", "billing_name"}
    unknown = sorted(set(payload) - allowed)
    if unknown:
        raise ValidationError(f"Field not allowed: {unknown[0]}")

    def _op():
        with atomic():
            master = lock_for_update(db.session.query(MasterInvoice).filter_by(id=master_id)).first()
            if master is None:
                raise NotFoundError("Master invoice not found")
            _apply_payment_patch(master, payload)
            if "amount_paid" in payload and master.child_invoices:
                _allocate_to_children(master)
            if "billing_name" in payload:
                master.billing_name = str(payload["billing_name"] or "")
        return master

    return run_with_retry(_op)


def delete_master_invoice(master_id: int) -> None:
    """Delete a master invoice together with its lines and child invoices."""
    with atomic():
        master = _ensure_exists(MasterInvoice, master_id, "Master invoice")
        db.session.delete(master)
    logger.info("Master invoice %s deleted", master_id)


def expiring_master_invoices(limit: int | None = None) -> list[MasterInvoice]:
    """
    Unpaid or partially paid master invoices whose period ends within the
    warning window (today inclusive). Already-expired invoices are excluded.
    """
    days = int(current_app.config.get("INVOICE_EXPIRY_WARNING_DAYS", DEFAULT_EXPIRY_WARNING_DAYS))
    today = utcnow().date()
    query = (
        db.session.query(MasterInvoice)
        .filter(
            MasterInvoice.end_date.isnot(None),
            MasterInvoice.end_date >= today,
            MasterInvoice.end_date <= today + timedelta(days=days),
            MasterInvoice.status != INVOICE_STATUS_PAID,
        )
        .order_by(MasterInvoice.end_date, MasterInvoice.id)
    )
    if limit:
        query = query.limit(limit)
    return query.all()
