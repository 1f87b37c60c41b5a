from __future__ import annotations

from ..extensions import db
from netpro.time_utils import to_utc_z
from netpro.validation import money_to_json


class Company(db.Model):
    """Corporate account billed by consolidated master invoices."""
    __tablename__ = "companies"
    __table_args__ = (
        db.UniqueConstraint("tin", name="uq_companies_tin"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    tin = db.Column(db.String(64), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "tin": self.tin,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "created_at": to_utc_z(self.created_at),
        }


class Customer(db.Model):
    """
    Service subscriber. service_number identifies the customer's line and
    must be unique; company_id links employees of a corporate account.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.UniqueConstraint("service_number", name="uq_customers_service_number"),
        db.Index("ix_customers_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    billing_name = db.Column(db.String(255), nullable=False)
    tin = db.Column(db.String(64), nullable=False)
    phone = db.Column(db.String(32), nullable=False)
    service_number = db.Column(db.String(64), nullable=False)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    company = db.relationship("Company", backref=db.backref("customers", lazy=True))

    def to_summary(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "service_number": self.service_number,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "billing_name": self.billing_name,
            "tin": self.tin,
            "phone": self.phone,
            "service_number": self.service_number,
            "company_id": self.company_id,
            "company": self.company.to_dict() if self.company else None,
            "created_at": to_utc_z(self.created_at),
        }


class Supplier(db.Model):
    __tablename__ = "suppliers"
    __table_args__ = (
        db.UniqueConstraint("tin", name="uq_suppliers_tin"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    tin = db.Column(db.String(64), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "tin": self.tin,
            "phone": self.phone,
            "created_at": to_utc_z(self.created_at),
        }


class PackageType(db.Model):
    __tablename__ = "package_types"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_package_types_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


class ProductType(db.Model):
    __tablename__ = "product_types"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_product_types_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


class Package(db.Model):
    """Service bundle (e.g. a monthly data plan) that products can belong to."""
    __tablename__ = "packages"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    package_type_id = db.Column(db.Integer, db.ForeignKey("package_types.id"), nullable=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    package_type = db.relationship("PackageType", backref=db.backref("packages", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": money_to_json(self.price),
            "package_type_id": self.package_type_id,
            "package_type": self.package_type.to_dict() if self.package_type else None,
            "created_at": to_utc_z(self.created_at),
        }


class Product(db.Model):
    __tablename__ = "products"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    product_type_id = db.Column(db.Integer, db.ForeignKey("product_types.id"), nullable=True, index=True)
    package_id = db.Column(db.Integer, db.ForeignKey("packages.id"), nullable=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product_type = db.relationship("ProductType", backref=db.backref("products", lazy=True))
    package = db.relationship("Package", backref=db.backref("products", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": money_to_json(self.price),
            "product_type_id": self.product_type_id,
            "product_type": self.product_type.to_dict() if self.product_type else None,
            "package_id": self.package_id,
            "created_at": to_utc_z(self.created_at),
        }
