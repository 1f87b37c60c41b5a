from __future__ import annotations

from ..extensions import db
from netpro.time_utils import to_utc_z
from netpro.validation import money_to_json


CASHPOWER_STATUS_COMPLETED = "completed"


class CashPowerTransaction(db.Model):
    """Prepaid electricity token sold to a customer's meter."""
    __tablename__ = "cashpower_transactions"
    __table_args__ = (
        db.Index("ix_cashpower_transactions_created", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    meter_number = db.Column(db.String(64), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    token = db.Column(db.String(128), nullable=True)
    units = db.Column(db.Integer, nullable=False, default=0)
    # Commission earned, already converted from the submitted rate
    commission = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default=CASHPOWER_STATUS_COMPLETED)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("cashpower_transactions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "customer": self.customer.to_summary() if self.customer else None,
            "user_id": self.user_id,
            "meter_number": self.meter_number,
            "amount": money_to_json(self.amount),
            "token": self.token,
            "units": self.units,
            "commission": money_to_json(self.commission),
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }
