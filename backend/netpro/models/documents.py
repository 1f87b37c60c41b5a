from __future__ import annotations

from ..extensions import db
from netpro.time_utils import to_iso_date, to_utc_z
from netpro.validation import money_to_json


PROFORMA_STATUS_PENDING = "Pending"


class Quotation(db.Model):
    """Price offer to a customer; not a billing document and never moves stock."""
    __tablename__ = "quotations"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    amount_to_pay = db.Column(db.Numeric(12, 2), nullable=False)
    valid_until = db.Column(db.Date, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("quotations", lazy=True))
    lines = db.relationship(
        "QuotationProduct",
        back_populates="quotation",
        cascade="all, delete-orphan",
        lazy=True,
        order_by="QuotationProduct.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "customer": self.customer.to_dict() if self.customer else None,
            "user_id": self.user_id,
            "amount_to_pay": money_to_json(self.amount_to_pay),
            "valid_until": to_iso_date(self.valid_until),
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "quotation_products": [line.to_dict() for line in self.lines],
        }


class QuotationProduct(db.Model):
    __tablename__ = "quotation_products"
    __table_args__ = (
        db.CheckConstraint("discount >= 0 AND discount <= 100", name="ck_quotation_products_discount"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    quotation_id = db.Column(
        db.Integer, db.ForeignKey("quotations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    qty = db.Column(db.Integer, nullable=False, default=1)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    discount = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    # unit_price * qty * (1 - discount / 100)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    notes = db.Column(db.Text, nullable=True)

    quotation = db.relationship("Quotation", back_populates="lines")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "quotation_id": self.quotation_id,
            "product_id": self.product_id,
            "product": {"id": self.product.id, "name": self.product.name} if self.product else None,
            "qty": self.qty,
            "unit_price": money_to_json(self.unit_price),
            "discount": money_to_json(self.discount),
            "price": money_to_json(self.price),
            "notes": self.notes,
        }


class ProformaInvoice(db.Model):
    __tablename__ = "proforma_invoices"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    amount_to_pay = db.Column(db.Numeric(12, 2), nullable=False)
    status = db.Column(db.String(32), nullable=False, default=PROFORMA_STATUS_PENDING)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("proforma_invoices", lazy=True))
    lines = db.relationship(
        "ProformaProduct",
        back_populates="proforma",
        cascade="all, delete-orphan",
        lazy=True,
        order_by="ProformaProduct.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "customer": self.customer.to_dict() if self.customer else None,
            "user_id": self.user_id,
            "amount_to_pay": money_to_json(self.amount_to_pay),
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "proforma_products": [line.to_dict() for line in self.lines],
        }


class ProformaProduct(db.Model):
    __tablename__ = "proforma_products"
    __table_args__ = (
        db.CheckConstraint("discount >= 0 AND discount <= 100", name="ck_proforma_products_discount"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    proforma_id = db.Column(
        db.Integer, db.ForeignKey("proforma_invoices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    qty = db.Column(db.Integer, nullable=False, default=1)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    discount = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    description = db.Column(db.Text, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    proforma = db.relationship("ProformaInvoice", back_populates="lines")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "proforma_id": self.proforma_id,
            "product_id": self.product_id,
            "product": {"id": self.product.id, "name": self.product.name} if self.product else None,
            "qty": self.qty,
            "unit_price": money_to_json(self.unit_price),
            "discount": money_to_json(self.discount),
            "price": money_to_json(self.price),
            "description": self.description,
            "notes": self.notes,
        }
