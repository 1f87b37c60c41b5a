# Overview: Service-layer operations for quotations and proforma invoices.

from __future__ import annotations

import logging
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import func

from ..extensions import db
from ..models import Customer, ProformaInvoice, ProformaProduct, Product, Quotation, QuotationProduct
from ..models.documents import PROFORMA_STATUS_PENDING
from ..time_utils import parse_date
from ..validation import (
    CENT,
    NotFoundError,
    ValidationError,
    pagination_meta,
    parse_money,
    parse_pagination,
    parse_positive_int,
)
from .concurrency import atomic


logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


def discounted_line_price(unit_price: Decimal, qty: int, discount: Decimal) -> Decimal:
    """unit_price * qty * (1 - discount / 100), rounded half-up to cents."""
    if not (Decimal("0") <= discount <= HUNDRED):
        raise ValidationError("discount must be between 0 and 100")
    gross = Decimal(unit_price) * qty
    return (gross * (HUNDRED - discount) / HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP)


def _parse_lines(raw_lines, key: str, with_description: bool) -> list[dict]:
    if not raw_lines or not isinstance(raw_lines, list):
        raise ValidationError(f"{key} must contain at least one product")

    lines = []
    for index, raw in enumerate(raw_lines, start=1):
        prefix = f"{key}[{index}]"
        if not isinstance(raw, dict):
            raise ValidationError(f"{prefix} must be an object")
        if raw.get("product_id") in (None, ""):
            raise ValidationError(f"{prefix}.product_id is required")
        unit_price = parse_money(raw.get("unit_price"), f"{prefix}.unit_price")
        if unit_price < 0:
            raise ValidationError(f"{prefix}.unit_price must be >= 0")
        qty = parse_positive_int(raw.get("qty", 1), f"{prefix}.qty")
        discount = Decimal("0")
        if raw.get("discount") not in (None, ""):
            discount = parse_money(raw.get("discount"), f"{prefix}.discount")

        line = {
            "product_id": parse_positive_int(raw.get("product_id"), f"{prefix}.product_id"),
            "qty": qty,
            "unit_price": unit_price,
            "discount": discount,
            "price": discounted_line_price(unit_price, qty, discount),
            "notes": raw.get("notes"),
        }
        if with_description:
            line["description"] = raw.get("description")
        lines.append(line)
    return lines


def _load_products(lines: list[dict]) -> dict[int, Product]:
    ids = {line["product_id"] for line in lines}
    products = {p.id: p for p in db.session.query(Product).filter(Product.id.in_(ids)).all()}
    missing = sorted(ids - set(products))
    if missing:
        raise NotFoundError(f"Product {missing[0]} not found")
    return products


def _require_customer(payload: dict) -> int:
    if payload.get("customer_id") in (None, ""):
        raise ValidationError("Missing required fields: customer_id")
    customer_id = parse_positive_int(payload["customer_id"], "customer_id")
    if db.session.get(Customer, customer_id) is None:
        raise NotFoundError("Customer not found")
    return customer_id


# =============================================================================
# QUOTATIONS
# =============================================================================

def create_quotation(payload: dict, user_id: int | None = None) -> Quotation:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    lines = _parse_lines(payload.get("quotation_products"), "quotation_products", with_description=False)
    customer_id = _require_customer(payload)

    valid_until = None
    if payload.get("valid_until") not in (None, ""):
        try:
            valid_until = parse_date(payload["valid_until"])
        except ValueError:
            raise ValidationError("valid_until must be an ISO-8601 date")

    with atomic():
        _load_products(lines)
        quotation = Quotation(
            customer_id=customer_id,
            user_id=user_id,
            amount_to_pay=sum((line["price"] for line in lines), Decimal("0.00")),
            valid_until=valid_until,
            notes=payload.get("notes"),
        )
        for line in lines:
            quotation.lines.append(QuotationProduct(**line))
        db.session.add(quotation)

    logger.info("Quotation %s created for customer %s", quotation.id, customer_id)
    return quotation


# =============================================================================
# PROFORMA INVOICES
# =============================================================================

def create_proforma(payload: dict, user_id: int | None = None) -> ProformaInvoice:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    lines = _parse_lines(payload.get("proforma_products"), "proforma_products", with_description=True)
    customer_id = _require_customer(payload)

    with atomic():
        products = _load_products(lines)
        proforma = ProformaInvoice(
            customer_id=customer_id,
            user_id=user_id,
            amount_to_pay=sum((line["price"] for line in lines), Decimal("0.00")),
            status=str(payload.get("status") or PROFORMA_STATUS_PENDING),
        )
        for line in lines:
            if not line.get("description"):
                line["description"] = products[line["product_id"]].name
            proforma.lines.append(ProformaProduct(**line))
        db.session.add(proforma)

    logger.info("Proforma invoice %s created for customer %s", proforma.id, customer_id)
    return proforma


# =============================================================================
# SHARED READ / DELETE
# =============================================================================

def list_documents(model, key: str, *, page=None, limit=None, customer_id=None, user_id=None) -> dict:
    page_num, size = parse_pagination(page, limit)
    query = db.session.query(model)
    if customer_id:
        query = query.filter(model.customer_id == customer_id)
    if user_id:
        query = query.filter(model.user_id == user_id)

    total = query.with_entities(func.count(model.id)).scalar() or 0
    rows = (
        query.order_by(model.created_at.desc(), model.id.desc())
        .offset((page_num - 1) * size)
        .limit(size)
        .all()
    )
    return {key: [r.to_dict() for r in rows], "pagination": pagination_meta(page_num, size, total)}


def get_document(model, document_id: int, label: str):
    document = db.session.get(model, document_id)
    if document is None:
        raise NotFoundError(f"{label} not found")
    return document


def delete_document(model, document_id: int, label: str) -> None:
    with atomic():
        document = get_document(model, document_id, label)
        db.session.delete(document)
    logger.info("%s %s deleted", label, document_id)
