# Overview: Reference entity definitions (companies, customers, suppliers, packages, products).

from __future__ import annotations

from ..extensions import db
from ..models import (
    CashPowerTransaction,
    Company,
    Customer,
    Invoice,
    InvoiceItem,
    MasterInvoice,
    Package,
    PackageType,
    ProformaInvoice,
    ProformaProduct,
    Product,
    ProductType,
    Quotation,
    QuotationProduct,
    SaleTransaction,
    StockItem,
    Supplier,
)
from ..validation import ModelValidationPolicy
from .crud_service import CrudResource, DeleteBlocker


COMPANIES = CrudResource(
    model=Company,
    label="Company",
    policy=ModelValidationPolicy(
        writable_fields={"name", "tin", "phone", "email", "address"},
        required_on_create={"name"},
    ),
    unique_fields=("tin",),
    delete_blockers=(
        DeleteBlocker(Customer, "company_id", "customers"),
        DeleteBlocker(MasterInvoice, "company_id", "master invoices"),
    ),
    search_fields=("name", "tin"),
)

CUSTOMERS = CrudResource(
    model=Customer,
    label="Customer",
    policy=ModelValidationPolicy(
        writable_fields={"name", "billing_name", "tin", "phone", "service_number", "company_id"},
        required_on_create={"name", "billing_name", "tin", "phone", "service_number"},
    ),
    unique_fields=("service_number",),
    references={"company_id": Company},
    delete_blockers=(
        DeleteBlocker(Invoice, "customer_id", "invoices"),
        DeleteBlocker(MasterInvoice, "customer_id", "master invoices"),
        DeleteBlocker(InvoiceItem, "customer_id", "master invoice lines"),
        DeleteBlocker(SaleTransaction, "customer_id", "sales"),
        DeleteBlocker(CashPowerTransaction, "customer_id", "cashpower transactions"),
        DeleteBlocker(Quotation, "customer_id", "quotations"),
        DeleteBlocker(ProformaInvoice, "customer_id", "proforma invoices"),
    ),
    search_fields=("name", "billing_name", "phone", "service_number"),
)

SUPPLIERS = CrudResource(
    model=Supplier,
    label="Supplier",
    policy=ModelValidationPolicy(
        writable_fields={"name", "tin", "phone"},
        required_on_create={"name", "tin"},
    ),
    unique_fields=("tin",),
    delete_blockers=(DeleteBlocker(StockItem, "supplier_id", "stock items"),),
    search_fields=("name", "tin"),
)

PACKAGE_TYPES = CrudResource(
    model=PackageType,
    label="Package type",
    policy=ModelValidationPolicy(writable_fields={"name"}, required_on_create={"name"}),
    unique_fields=("name",),
    delete_blockers=(DeleteBlocker(Package, "package_type_id", "packages"),),
)

PRODUCT_TYPES = CrudResource(
    model=ProductType,
    label="Product type",
    policy=ModelValidationPolicy(writable_fields={"name"}, required_on_create={"name"}),
    unique_fields=("name",),
    delete_blockers=(DeleteBlocker(Product, "product_type_id", "products"),),
)

PACKAGES = CrudResource(
    model=Package,
    label="Package",
    policy=ModelValidationPolicy(
        writable_fields={"name", "description", "price", "package_type_id"},
        required_on_create={"name", "price"},
    ),
    references={"package_type_id": PackageType},
    delete_blockers=(DeleteBlocker(Product, "package_id", "products"),),
)

PRODUCTS = CrudResource(
    model=Product,
    label="Product",
    policy=ModelValidationPolicy(
        writable_fields={"name", "description", "price", "product_type_id", "package_id"},
        required_on_create={"name", "price"},
    ),
    references={"product_type_id": ProductType, "package_id": Package},
    delete_blockers=(
        DeleteBlocker(StockItem, "product_id", "stock items"),
        DeleteBlocker(QuotationProduct, "product_id", "quotation lines"),
        DeleteBlocker(ProformaProduct, "product_id", "proforma lines"),
    ),
)


def get_customers() -> list[dict]:
    """Customer picker for the sales screen: id, name, phone, service_number by name."""
    rows = db.session.query(Customer).order_by(Customer.name, Customer.id).all()
    return [c.to_summary() for c in rows]
