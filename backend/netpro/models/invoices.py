from __future__ import annotations

from ..extensions import db
from netpro.time_utils import to_iso_date, to_utc_z
from netpro.validation import money_to_json


INVOICE_STATUS_UNPAID = "unpaid"
INVOICE_STATUS_PARTIAL = "partial"
INVOICE_STATUS_PAID = "paid"
INVOICE_STATUSES = (INVOICE_STATUS_UNPAID, INVOICE_STATUS_PARTIAL, INVOICE_STATUS_PAID)

INVOICE_TYPE_INDIVIDUAL = "individual"
INVOICE_TYPE_CONSOLIDATED = "consolidated"
INVOICE_TYPES = (INVOICE_TYPE_INDIVIDUAL, INVOICE_TYPE_CONSOLIDATED)


class MasterInvoice(db.Model):
    """
    Billing document covering a service period.

    - individual: billed to one customer (customer_id set, company_id null)
    - consolidated: billed to a company (company_id set, customer_id null);
      one child Invoice per distinct customer on the lines
    """
    __tablename__ = "master_invoices"
    __table_args__ = (
        db.CheckConstraint(
            "(invoice_type = 'consolidated' AND company_id IS NOT NULL AND customer_id IS NULL) OR "
            "(invoice_type = 'individual' AND customer_id IS NOT NULL AND company_id IS NULL)",
            name="ck_master_invoices_billed_party",
        ),
        db.Index("ix_master_invoices_type_created", "invoice_type", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_type = db.Column(db.String(16), nullable=False, default=INVOICE_TYPE_INDIVIDUAL)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=True, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    billing_name = db.Column(db.String(255), nullable=False, default="")

    amount_to_pay = db.Column(db.Numeric(12, 2), nullable=False)
    amount_paid = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default=INVOICE_STATUS_UNPAID, index=True)
    payment_method = db.Column(db.String(64), nullable=False, default="")

    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True, index=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    company = db.relationship("Company", backref=db.backref("master_invoices", lazy=True))
    customer = db.relationship("Customer", backref=db.backref("master_invoices", lazy=True))
    user = db.relationship("User")
    items = db.relationship(
        "InvoiceItem",
        back_populates="master_invoice",
        cascade="all, delete-orphan",
        lazy=True,
        order_by="InvoiceItem.id",
    )
    child_invoices = db.relationship(
        "Invoice",
        back_populates="master_invoice",
        cascade="all, delete-orphan",
        lazy=True,
        order_by="Invoice.id",
    )

    def to_dict(self, include_children: bool = True) -> dict:
        data = {
            "id": self.id,
            "invoice_type": self.invoice_type,
            "company_id": self.company_id,
            "company": self.company.to_dict() if self.company else None,
            "customer_id": self.customer_id,
            "customer": self.customer.to_dict() if self.customer else None,
            "billing_name": self.billing_name,
            "amount_to_pay": money_to_json(self.amount_to_pay),
            "amount_paid": money_to_json(self.amount_paid),
            "status": self.status,
            "payment_method": self.payment_method,
            "start_date": to_iso_date(self.start_date),
            "end_date": to_iso_date(self.end_date),
            "user_id": self.user_id,
            "user": {"username": self.user.username, "email": self.user.email} if self.user else None,
            "created_at": to_utc_z(self.created_at),
            "invoice_items": [item.to_dict() for item in self.items],
        }
        if include_children:
            data["child_invoices"] = [child.to_dict() for child in self.child_invoices]
        return data


class InvoiceItem(db.Model):
    """Line on a master invoice; customer_id drives the per-customer fan-out."""
    __tablename__ = "invoice_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    master_invoice_id = db.Column(
        db.Integer, db.ForeignKey("master_invoices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_id = db.Column(db.Integer, db.ForeignKey("stock_items.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    qty = db.Column(db.Integer, nullable=False, default=1)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    total_price = db.Column(db.Numeric(12, 2), nullable=False)

    master_invoice = db.relationship("MasterInvoice", back_populates="items")
    stock_item = db.relationship("StockItem")
    customer = db.relationship("Customer")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "master_invoice_id": self.master_invoice_id,
            "item_id": self.item_id,
            "item": {"id": self.stock_item.id, "name": self.stock_item.name} if self.stock_item else None,
            "customer_id": self.customer_id,
            "customer": self.customer.to_summary() if self.customer else None,
            "qty": self.qty,
            "unit_price": money_to_json(self.unit_price),
            "total_price": money_to_json(self.total_price),
        }


class Invoice(db.Model):
    """
    Per-customer invoice. Either created directly (simple invoice) or
    generated as a child of a consolidated master invoice.
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.Index("ix_invoices_customer_created", "customer_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    master_invoice_id = db.Column(
        db.Integer, db.ForeignKey("master_invoices.id", ondelete="CASCADE"), nullable=True, index=True
    )
    amount_to_pay = db.Column(db.Numeric(12, 2), nullable=False)
    amount_paid = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default=INVOICE_STATUS_UNPAID, index=True)
    payment_method = db.Column(db.String(64), nullable=False, default="")
    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("invoices", lazy=True))
    master_invoice = db.relationship("MasterInvoice", back_populates="child_invoices")
    user = db.relationship("User")
    stock_items = db.relationship(
        "InvoiceStockItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        lazy=True,
        order_by="InvoiceStockItem.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "customer": self.customer.to_summary() if self.customer else None,
            "master_invoice_id": self.master_invoice_id,
            "amount_to_pay": money_to_json(self.amount_to_pay),
            "amount_paid": money_to_json(self.amount_paid),
            "status": self.status,
            "payment_method": self.payment_method,
            "start_date": to_iso_date(self.start_date),
            "end_date": to_iso_date(self.end_date),
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
            "invoice_stock_items": [line.to_dict() for line in self.stock_items],
        }


class InvoiceStockItem(db.Model):
    __tablename__ = "invoice_stock_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(
        db.Integer, db.ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_id = db.Column(db.Integer, db.ForeignKey("stock_items.id"), nullable=False, index=True)
    qty = db.Column(db.Integer, nullable=False, default=1)

    invoice = db.relationship("Invoice", back_populates="stock_items")
    stock_item = db.relationship("StockItem")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_id": self.invoice_id,
            "item_id": self.item_id,
            "item": {"id": self.stock_item.id, "name": self.stock_item.name} if self.stock_item else None,
            "qty": self.qty,
        }
