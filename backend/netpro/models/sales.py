from __future__ import annotations

from ..extensions import db
from netpro.time_utils import to_utc_z
from netpro.validation import money_to_json


class SaleTransaction(db.Model):
    """
    Counter sale of stock items.

    total_price is fixed at creation as the sum of its lines; lines are
    never edited afterwards, only removed with the sale.
    """
    __tablename__ = "sale_transactions"
    __table_args__ = (
        db.Index("ix_sale_transactions_sale_date", "sale_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    sale_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    total_price = db.Column(db.Numeric(12, 2), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    items = db.relationship(
        "SaleItem",
        back_populates="sale",
        cascade="all, delete-orphan",
        lazy=True,
        order_by="SaleItem.id",
    )

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "customer_id": self.customer_id,
            "customer": self.customer.to_summary() if self.customer else None,
            "user_id": self.user_id,
            "sale_date": to_utc_z(self.sale_date),
            "total_price": money_to_json(self.total_price),
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(
        db.Integer, db.ForeignKey("sale_transactions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_id = db.Column(db.Integer, db.ForeignKey("stock_items.id"), nullable=False, index=True)
    qty = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    total_price = db.Column(db.Numeric(12, 2), nullable=False)

    sale = db.relationship("SaleTransaction", back_populates="items")
    stock_item = db.relationship("StockItem")

    def to_dict(self) -> dict:
        stock_item = None
        if self.stock_item:
            stock_item = {
                "id": self.stock_item.id,
                "name": self.stock_item.name,
                "category": self.stock_item.category.to_dict() if self.stock_item.category else None,
            }
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "item_id": self.item_id,
            "stock_item": stock_item,
            "qty": self.qty,
            "unit_price": money_to_json(self.unit_price),
            "total_price": money_to_json(self.total_price),
        }
