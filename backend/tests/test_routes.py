"""
HTTP contract tests for sales, invoices, quotations and the CLI.

Verifies status codes, response shapes and error bodies.
"""

from netpro.extensions import db
from netpro.models import SaleTransaction, StockItem, User


# =============================================================================
# SALES
# =============================================================================


class TestSalesRoutes:

    def test_create_and_delete(self, clerk_client, customer, stock_items):
        router, _ = stock_items
        resp = clerk_client.post("/api/sales", json={
            "customer_id": customer.id,
            "items": [{"item_id": router.id, "qty": 2, "unit_price": 15}],
        })
        assert resp.status_code == 201
        sale = resp.json["sale"]
        assert sale["total_price"] == 30.0
        assert sale["items"][0]["stock_item"]["name"] == "Router"

        resp = clerk_client.get(f"/api/sales/{sale['id']}")
        assert resp.json["sale"]["customer"]["service_number"] == "SN-001"

        resp = clerk_client.delete(f"/api/sales/{sale['id']}")
        assert resp.status_code == 200
        assert resp.json["restored"] == [{"item_id": router.id, "qty": 2}]

        db.session.expire_all()
        assert db.session.get(StockItem, router.id).quantity == 20

    def test_insufficient_stock_details(self, clerk_client, customer, stock_items):
        _, cable = stock_items
        resp = clerk_client.post("/api/sales", json={
            "customer_id": customer.id,
            "items": [{"item_id": cable.id, "qty": 6, "unit_price": 1}],
        })
        assert resp.status_code == 400
        assert resp.json["success"] is False
        assert resp.json["error"] == "Insufficient stock for Cable. Available: 5, Requested: 6"
        assert resp.json["details"]["items"] == [
            {"item_id": cable.id, "name": "Cable", "available": 5, "requested": 6}
        ]
        assert db.session.query(SaleTransaction).count() == 0

    def test_missing_customer_is_400(self, clerk_client, stock_items):
        resp = clerk_client.post("/api/sales", json={"items": []})
        assert resp.status_code == 400
        assert resp.json["error"] == "customer_id is required"

    def test_unknown_sale_is_404(self, clerk_client):
        assert clerk_client.get("/api/sales/999").status_code == 404
        assert clerk_client.delete("/api/sales/999").status_code == 404

    def test_picker_endpoints(self, clerk_client, customer, second_customer, stock_items):
        items = clerk_client.get("/api/sales/stock-items").json["items"]
        customers = clerk_client.get("/api/sales/customers").json["customers"]
        assert [i["name"] for i in items] == ["Cable", "Router"]
        assert [c["name"] for c in customers] == ["Alice", "Bob"]

    def test_list_filters_by_customer(self, clerk_client, customer, second_customer, stock_items):
        router, _ = stock_items
        for cust in (customer, second_customer):
            clerk_client.post("/api/sales", json={
                "customer_id": cust.id,
                "items": [{"item_id": router.id, "qty": 1, "unit_price": 1}],
            })
        resp = clerk_client.get(f"/api/sales?customerId={second_customer.id}")
        assert [s["customer_id"] for s in resp.json["sales"]] == [second_customer.id]


# =============================================================================
# INVOICES
# =============================================================================


class TestInvoiceRoutes:

    def test_consolidated_master_invoice(self, admin_client, company, customer, second_customer, stock_items):
        router, cable = stock_items
        resp = admin_client.post("/api/master-invoices", json={
            "is_consolidated": True,
            "company_id": company.id,
            "billing_name": "Acme Ltd",
            "invoice_items": [
                {"item_id": router.id, "customer_id": customer.id, "unit_price": 100},
                {"item_id": cable.id, "customer_id": customer.id, "unit_price": 50},
                {"item_id": router.id, "customer_id": second_customer.id, "unit_price": 30},
            ],
        })

        assert resp.status_code == 201
        invoice = resp.json["invoice"]
        assert invoice["amount_to_pay"] == 180.0
        assert sorted(c["amount_to_pay"] for c in invoice["child_invoices"]) == [30.0, 150.0]

        children = admin_client.get(f"/api/invoices?customerId={customer.id}").json["invoices"]
        assert [c["master_invoice_id"] for c in children] == [invoice["id"]]

        resp = admin_client.delete(f"/api/invoices/{children[0]['id']}")
        assert resp.status_code == 409
        assert resp.json["success"] is False

        resp = admin_client.put(f"/api/invoices/{children[0]['id']}", json={"amount_paid": 150})
        assert resp.json["invoice"]["status"] == "paid"
        master = admin_client.get(f"/api/master-invoices/{invoice['id']}").json["invoice"]
        assert master["amount_paid"] == 150.0
        assert master["status"] == "partial"

    def test_consolidated_without_company(self, admin_client, customer, stock_items):
        router, _ = stock_items
        resp = admin_client.post("/api/master-invoices", json={
            "is_consolidated": True,
            "invoice_items": [{"item_id": router.id, "customer_id": customer.id, "unit_price": 1}],
        })
        assert resp.status_code == 400
        assert resp.json["error"] == "Company ID is required for consolidated invoices"

    def test_record_payment(self, admin_client, customer, stock_items):
        router, _ = stock_items
        created = admin_client.post("/api/master-invoices", json={
            "customer_id": customer.id,
            "invoice_items": [{"item_id": router.id, "unit_price": "100.00"}],
        }).json["invoice"]

        resp = admin_client.put(f"/api/master-invoices/{created['id']}", json={"amount_paid": 99.99})
        assert resp.json["invoice"]["status"] == "partial"

        resp = admin_client.put(f"/api/master-invoices/{created['id']}", json={"amount_paid": 150})
        assert resp.status_code == 400

    def test_invoice_missing_fields(self, admin_client, customer):
        resp = admin_client.post("/api/invoices", json={"customer_id": customer.id})
        assert resp.status_code == 400
        assert resp.json["error"] == "Missing required fields: amount_to_pay, start_date, end_date"

    def test_invoice_crud(self, admin_client, customer, stock_items):
        router, _ = stock_items
        resp = admin_client.post("/api/invoices", json={
            "customer_id": customer.id,
            "amount_to_pay": 90,
            "start_date": "2026-10-01",
            "end_date": "2026-10-31",
            "invoice_stock_items": [{"item_id": router.id, "qty": 1}],
        })
        assert resp.status_code == 201
        invoice_id = resp.json["invoice"]["id"]

        resp = admin_client.put(f"/api/invoices/{invoice_id}", json={"amount_paid": 90})
        assert resp.json["invoice"]["status"] == "paid"

        listed = admin_client.get("/api/invoices?status=paid&page=1&limit=5").json
        assert listed["pagination"] == {"page": 1, "limit": 5, "total": 1, "pages": 1}

        assert admin_client.delete(f"/api/invoices/{invoice_id}").status_code == 200
        assert admin_client.get(f"/api/invoices/{invoice_id}").status_code == 404


class TestQuotationRoutes:

    def test_create_and_fetch(self, admin_client, customer, product):
        resp = admin_client.post("/api/quotations", json={
            "customer_id": customer.id,
            "quotation_products": [{"product_id": product.id, "qty": 4, "unit_price": 25, "discount": 50}],
        })
        assert resp.status_code == 201
        quotation = resp.json["quotation"]
        assert quotation["amount_to_pay"] == 50.0

        fetched = admin_client.get(f"/api/quotations/{quotation['id']}").json["quotation"]
        assert fetched["quotation_products"][0]["discount"] == 50.0

    def test_missing_customer(self, admin_client, product):
        resp = admin_client.post("/api/quotations", json={
            "quotation_products": [{"product_id": product.id, "qty": 1, "unit_price": 1}],
        })
        assert resp.status_code == 400


def test_health(client, db_session):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json["checks"]["database"]["status"] == "healthy"


# =============================================================================
# CLI
# =============================================================================


class TestCli:

    def test_users_create_and_list(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            "users", "create", "--username", "ops", "--email", "ops@netpro.local",
            "--password", "Password789", "--role", "admin",
        ])
        assert "PASS Created user: ops" in result.output

        result = runner.invoke(args=["users", "list"])
        assert "ops@netpro.local" in result.output
        assert db_session.query(User).filter_by(username="ops").one().role == "admin"

    def test_system_init_is_idempotent(self, app, db_session):
        runner = app.test_cli_runner()
        runner.invoke(args=["system", "init"])
        result = runner.invoke(args=["system", "init"])
        assert "already exists" in result.output
        assert db_session.query(User).count() == 1

    def test_weak_password_reported(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            "users", "create", "--username", "weak", "--email", "weak@netpro.local",
            "--password", "short", "--role", "user",
        ])
        assert "FAIL" in result.output
        assert db_session.query(User).count() == 0
