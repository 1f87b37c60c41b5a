"""
Reference data tests: customers, companies, suppliers, packages, products, stock items.

Verifies:
- Payload validation against column metadata and the writable allowlist
- Unique fields report 409 conflicts
- Rows still referenced elsewhere cannot be deleted
"""

from decimal import Decimal

import pytest

from netpro.services import catalog_service, crud_service, sales_service, stock_service
from netpro.validation import (
    ConflictError,
    ValidationError,
    pagination_meta,
    parse_money,
    parse_pagination,
)


CUSTOMER = {
    "name": "Carol",
    "billing_name": "Carol D.",
    "tin": "333333333",
    "phone": "0788000003",
    "service_number": "SN-003",
}


# =============================================================================
# VALIDATION HELPERS
# =============================================================================


class TestValidationHelpers:

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("10", Decimal("10.00")),
            (0.1, Decimal("0.10")),
            ("2.005", Decimal("2.01")),
            (3, Decimal("3.00")),
        ],
    )
    def test_parse_money(self, raw, expected):
        assert parse_money(raw) == expected

    @pytest.mark.parametrize("raw", [None, True, "abc", "NaN", "Infinity", "99999999999"])
    def test_parse_money_rejects(self, raw):
        with pytest.raises(ValidationError):
            parse_money(raw)

    def test_pagination_defaults_and_clamps(self):
        assert parse_pagination(None, None) == (1, 10)
        assert parse_pagination("0", "500") == (1, 100)
        assert parse_pagination("x", "y") == (1, 10)
        assert pagination_meta(2, 10, 21) == {"page": 2, "limit": 10, "total": 21, "pages": 3}


# =============================================================================
# CRUD SERVICE
# =============================================================================


class TestCustomers:

    def test_create_and_search(self, db_session, customer):
        crud_service.create_record(catalog_service.CUSTOMERS, dict(CUSTOMER))

        result = crud_service.list_records(catalog_service.CUSTOMERS, search="car")
        assert [c["name"] for c in result["data"]] == ["Carol"]
        assert "pagination" not in result

    def test_missing_fields_named(self, db_session):
        with pytest.raises(ValidationError) as exc:
            crud_service.create_record(catalog_service.CUSTOMERS, {"name": "X"})
        assert str(exc.value) == "Missing required fields: billing_name, phone, service_number, tin"

    def test_unknown_field_rejected(self, db_session):
        with pytest.raises(ValidationError) as exc:
            crud_service.create_record(catalog_service.CUSTOMERS, dict(CUSTOMER, id=99))
        assert str(exc.value) == "Field not allowed: id"

    def test_duplicate_service_number(self, db_session, customer):
        with pytest.raises(ConflictError):
            crud_service.create_record(catalog_service.CUSTOMERS, dict(CUSTOMER, service_number="SN-001"))

    def test_missing_company_reference(self, db_session):
        with pytest.raises(ValidationError):
            crud_service.create_record(catalog_service.CUSTOMERS, dict(CUSTOMER, company_id=777))

    def test_delete_blocked_by_sales(self, db_session, customer, stock_items):
        router, _ = stock_items
        sales_service.create_sale({
            "customer_id": customer.id,
            "items": [{"item_id": router.id, "qty": 1, "unit_price": 1}],
        })
        with pytest.raises(ConflictError) as exc:
            crud_service.delete_record(catalog_service.CUSTOMERS, customer.id)
        assert str(exc.value) == "Cannot delete customer: 1 sales still reference it"

    def test_summaries_ordered_by_name(self, db_session, customer, second_customer):
        summaries = catalog_service.get_customers()
        assert [c["name"] for c in summaries] == ["Alice", "Bob"]
        assert set(summaries[0]) == {"id", "name", "phone", "service_number"}


class TestSuppliersAndCompanies:

    def test_duplicate_supplier_tin(self, db_session):
        crud_service.create_record(catalog_service.SUPPLIERS, {"name": "Huawei", "tin": "999"})
        with pytest.raises(ConflictError) as exc:
            crud_service.create_record(catalog_service.SUPPLIERS, {"name": "Other", "tin": "999"})
        assert str(exc.value) == "Supplier with this tin already exists"

    def test_blank_company_tins_do_not_collide(self, db_session):
        crud_service.create_record(catalog_service.COMPANIES, {"name": "A", "tin": ""})
        crud_service.create_record(catalog_service.COMPANIES, {"name": "B", "tin": ""})
        assert len(crud_service.list_records(catalog_service.COMPANIES)["data"]) == 2

    def test_company_delete_blocked_by_customers(self, db_session, company):
        crud_service.create_record(catalog_service.CUSTOMERS, dict(CUSTOMER, company_id=company.id))
        with pytest.raises(ConflictError):
            crud_service.delete_record(catalog_service.COMPANIES, company.id)


class TestProductsAndPackages:

    def test_package_with_type(self, db_session):
        ptype = crud_service.create_record(catalog_service.PACKAGE_TYPES, {"name": "Monthly"})
        package = crud_service.create_record(
            catalog_service.PACKAGES, {"name": "Home 10", "price": "25000", "package_type_id": ptype.id}
        )
        assert package.price == Decimal("25000.00")
        assert package.to_dict()["package_type"]["name"] == "Monthly"

        with pytest.raises(ConflictError):
            crud_service.delete_record(catalog_service.PACKAGE_TYPES, ptype.id)

    def test_negative_price_rejected(self, db_session):
        with pytest.raises(ValidationError):
            crud_service.create_record(catalog_service.PRODUCTS, {"name": "Bad", "price": "-1"})

    def test_update_partial(self, db_session, product):
        updated = crud_service.update_record(catalog_service.PRODUCTS, product.id, {"price": "60000"})
        assert updated.price == Decimal("60000.00")
        assert updated.name == "Fibre 20Mbps"


class TestStockItemResource:

    def test_negative_quantity_rejected(self, db_session):
        with pytest.raises(ValidationError) as exc:
            crud_service.create_record(stock_service.STOCK_ITEMS, {"name": "Modem", "quantity": -1})
        assert str(exc.value) == "quantity must be >= 0"

    def test_status_must_be_known(self, db_session):
        with pytest.raises(ValidationError):
            crud_service.create_record(stock_service.STOCK_ITEMS, {"name": "Modem", "quantity": 1, "status": "gone"})

    def test_category_delete_blocked(self, db_session, stock_items):
        router, _ = stock_items
        with pytest.raises(ConflictError):
            crud_service.delete_record(stock_service.STOCK_CATEGORIES, router.category_id)


# =============================================================================
# ROUTES
# =============================================================================


class TestCatalogRoutes:

    def test_create_customer(self, admin_client):
        resp = admin_client.post("/api/customers", json=CUSTOMER)
        assert resp.status_code == 201
        assert resp.json["data"]["service_number"] == "SN-003"

    def test_validation_is_400(self, admin_client):
        resp = admin_client.post("/api/customers", json={"name": "X"})
        assert resp.status_code == 400
        assert resp.json["success"] is False
        assert resp.json["error"].startswith("Missing required fields")

    def test_conflict_is_409(self, admin_client, customer):
        resp = admin_client.post("/api/customers", json=dict(CUSTOMER, service_number="SN-001"))
        assert resp.status_code == 409

    def test_not_found_is_404(self, admin_client):
        assert admin_client.get("/api/products/999").status_code == 404

    def test_paginated_list(self, admin_client, customer, second_customer):
        resp = admin_client.get("/api/customers?page=1&limit=1")
        assert resp.status_code == 200
        assert [c["name"] for c in resp.json["customers"]] == ["Alice"]
        assert resp.json["pagination"]["pages"] == 2

    def test_stock_item_records_creator(self, admin_client, admin_user):
        resp = admin_client.post("/api/stock-items", json={"name": "ONT", "quantity": 3})
        assert resp.status_code == 201
        assert resp.json["data"]["user_id"] == admin_user.id

    def test_low_stock_route(self, admin_client, stock_items):
        resp = admin_client.get("/api/stock-items/low-stock")
        assert [i["name"] for i in resp.json["items"]] == ["Cable"]

    def test_delete_customer(self, admin_client, customer):
        assert admin_client.delete(f"/api/customers/{customer.id}").status_code == 200
        assert admin_client.get(f"/api/customers/{customer.id}").status_code == 404
