from __future__ import annotations

from ..extensions import db
from netpro.time_utils import to_utc_z


STOCK_STATUS_ACTIVE = "active"
STOCK_STATUS_INACTIVE = "inactive"
STOCK_STATUSES = (STOCK_STATUS_ACTIVE, STOCK_STATUS_INACTIVE)


class StockCategory(db.Model):
    __tablename__ = "stock_categories"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_stock_categories_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "created_at": to_utc_z(self.created_at),
        }


class StockItem(db.Model):
    """
    Physical stock on hand.

    quantity is never negative: the CHECK constraint backs up the
    conditional decrement in stock_service.
    """
    __tablename__ = "stock_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_stock_items_quantity_non_negative"),
        db.Index("ix_stock_items_status_quantity", "status", "quantity"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    reorder_level = db.Column(db.Integer, nullable=False, default=0)
    min_level = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default=STOCK_STATUS_ACTIVE)

    category_id = db.Column(db.Integer, db.ForeignKey("stock_categories.id"), nullable=True, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now()
    )

    category = db.relationship("StockCategory", backref=db.backref("stock_items", lazy=True))
    supplier = db.relationship("Supplier", backref=db.backref("stock_items", lazy=True))
    product = db.relationship("Product", backref=db.backref("stock_items", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "quantity": self.quantity,
            "reorder_level": self.reorder_level,
            "min_level": self.min_level,
            "status": self.status,
            "category_id": self.category_id,
            "category": self.category.to_dict() if self.category else None,
            "supplier_id": self.supplier_id,
            "supplier": self.supplier.to_dict() if self.supplier else None,
            "product_id": self.product_id,
            "product": {"id": self.product.id, "name": self.product.name} if self.product else None,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
