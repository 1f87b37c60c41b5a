# Overview: Service-layer operations for the dashboard and notification feed.

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from sqlalchemy import func

from ..extensions import db
from ..models import (
    CashPowerTransaction,
    Customer,
    Invoice,
    MasterInvoice,
    Package,
    Product,
    SaleTransaction,
    StockItem,
    User,
)
from ..models.invoices import INVOICE_STATUS_PAID
from ..time_utils import to_iso_date, utcnow
from ..validation import money_to_json
from .invoice_service import expiring_master_invoices
from .stock_service import low_stock_items, total_stock_quantity


DASHBOARD_LIST_SIZE = 5
RECENT_DAYS = 7
REVENUE_DAYS = 30


def _sum(column, *criteria) -> Decimal:
    value = db.session.query(func.coalesce(func.sum(column), 0)).filter(*criteria).scalar()
    return Decimal(str(value or 0))


def revenue_since(since) -> Decimal:
    """Paid master invoices + paid standalone invoices + sales since a point in time."""
    masters = _sum(
        MasterInvoice.amount_paid,
        MasterInvoice.status == INVOICE_STATUS_PAID,
        MasterInvoice.created_at >= since,
    )
    standalone = _sum(
        Invoice.amount_paid,
        Invoice.master_invoice_id.is_(None),
        Invoice.status == INVOICE_STATUS_PAID,
        Invoice.created_at >= since,
    )
    sales = _sum(SaleTransaction.total_price, SaleTransaction.sale_date >= since)
    return masters + standalone + sales


def _expiry_row(master: MasterInvoice, today) -> dict:
    billed = master.company.name if master.company else (master.customer.name if master.customer else None)
    return {
        "id": master.id,
        "billed_to": billed,
        "end_date": to_iso_date(master.end_date),
        "days_left": (master.end_date - today).days,
        "amount_due": money_to_json(master.amount_to_pay - master.amount_paid),
        "status": master.status,
    }


def get_notifications() -> dict:
    today = utcnow().date()
    low = low_stock_items()
    expiring = expiring_master_invoices()
    return {
        "low_stock": [
            {"id": i.id, "name": i.name, "quantity": i.quantity, "reorder_level": i.reorder_level}
            for i in low
        ],
        "expiring_invoices": [_expiry_row(m, today) for m in expiring],
        "total": len(low) + len(expiring),
    }


def get_dashboard_data() -> dict:
    now = utcnow()
    today = now.date()

    counts = {
        "customers": db.session.query(func.count(Customer.id)).scalar(),
        "products": db.session.query(func.count(Product.id)).scalar(),
        "packages": db.session.query(func.count(Package.id)).scalar(),
        "stock_items": db.session.query(func.count(StockItem.id)).scalar(),
        "invoices": db.session.query(func.count(MasterInvoice.id)).scalar(),
        "sales": db.session.query(func.count(SaleTransaction.id)).scalar(),
        "cashpower_transactions": db.session.query(func.count(CashPowerTransaction.id)).scalar(),
        "users": db.session.query(func.count(User.id)).scalar(),
    }

    recent = (
        db.session.query(MasterInvoice)
        .filter(MasterInvoice.created_at >= now - timedelta(days=RECENT_DAYS))
        .order_by(MasterInvoice.created_at.desc(), MasterInvoice.id.desc())
        .limit(DASHBOARD_LIST_SIZE)
        .all()
    )

    return {
        "counts": counts,
        "total_stock_quantity": total_stock_quantity(),
        "recent_invoices": [m.to_dict(include_children=False) for m in recent],
        "low_stock": [i.to_dict() for i in low_stock_items(limit=DASHBOARD_LIST_SIZE)],
        "expiring_invoices": [
            _expiry_row(m, today) for m in expiring_master_invoices(limit=DASHBOARD_LIST_SIZE)
        ],
        "revenue_30_days": money_to_json(revenue_since(now - timedelta(days=REVENUE_DAYS))),
        "total_sales": money_to_json(_sum(SaleTransaction.total_price)),
    }
