# Overview: Service-layer operations for cashpower (prepaid electricity token) sales.

from __future__ import annotations

import logging
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import func

from ..extensions import db
from ..models import CashPowerTransaction, Customer
from ..models.cashpower import CASHPOWER_STATUS_COMPLETED
from ..validation import (
    CENT,
    NotFoundError,
    ValidationError,
    pagination_meta,
    parse_money,
    parse_pagination,
    parse_positive_int,
    require_fields,
)
from .concurrency import atomic


logger = logging.getLogger(__name__)

# Currency units per kWh unit issued on the token
UNIT_PRICE = Decimal("100")


def commission_amount(amount: Decimal, rate: Decimal) -> Decimal:
    """Commission earned on a sale; a negative rate earns nothing."""
    if rate < 0:
        return Decimal("0.00")
    return (Decimal(amount) * Decimal(rate)).quantize(CENT, rounding=ROUND_HALF_UP)


def units_for(amount: Decimal) -> int:
    return int((Decimal(amount) / UNIT_PRICE).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _parse_rate(value) -> Decimal:
    if value in (None, ""):
        return Decimal("0")
    try:
        rate = Decimal(str(value).strip())
    except ArithmeticError:
        raise ValidationError("commission must be a number")
    if not rate.is_finite():
        raise ValidationError("commission must be a number")
    # Commission never exceeds the sale amount
    if rate > 1:
        raise ValidationError("commission rate cannot exceed 1")
    return rate


def create_transaction(payload: dict, user_id: int | None = None) -> CashPowerTransaction:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    require_fields(payload, ["customer_id", "meter_number", "amount"])

    customer_id = parse_positive_int(payload["customer_id"], "customer_id")
    amount = parse_money(payload["amount"], "amount")
    if amount <= 0:
        raise ValidationError("amount must be greater than 0")
    rate = _parse_rate(payload.get("commission"))

    with atomic():
        if db.session.get(Customer, customer_id) is None:
            raise NotFoundError("Customer not found")
        txn = CashPowerTransaction(
            customer_id=customer_id,
            user_id=user_id,
            meter_number=str(payload["meter_number"]).strip(),
            amount=amount,
            token=payload.get("token"),
            units=units_for(amount),
            commission=commission_amount(amount, rate),
            status=CASHPOWER_STATUS_COMPLETED,
        )
        db.session.add(txn)

    logger.info("Cashpower transaction %s for meter %s", txn.id, txn.meter_number)
    return txn


def list_transactions(page=None, limit=None, customer_id: int | None = None) -> dict:
    page_num, size = parse_pagination(page, limit)
    query = db.session.query(CashPowerTransaction)
    if customer_id:
        query = query.filter(CashPowerTransaction.customer_id == customer_id)

    total = query.with_entities(func.count(CashPowerTransaction.id)).scalar() or 0
    rows = (
        query.order_by(CashPowerTransaction.created_at.desc(), CashPowerTransaction.id.desc())
        .offset((page_num - 1) * size)
        .limit(size)
        .all()
    )
    return {
        "transactions": [t.to_dict() for t in rows],
        "pagination": pagination_meta(page_num, size, total),
    }


def get_transaction(transaction_id: int) -> CashPowerTransaction:
    txn = db.session.get(CashPowerTransaction, transaction_id)
    if txn is None:
        raise NotFoundError("Cashpower transaction not found")
    return txn
