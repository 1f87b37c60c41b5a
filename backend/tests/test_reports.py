"""
Report and dashboard tests.

The *_report functions are folds over literal rows; the route tests run
them end-to-end against the database.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from netpro.services import cashpower_service, invoice_service, report_service, sales_service
from netpro.services.report_service import (
    cashpower_report,
    customer_report,
    income_report,
    inventory_report,
    month_keys,
    resolve_date_range,
    sales_report,
    shift_months,
)
from netpro.time_utils import utcnow
from netpro.validation import ValidationError


NOW = datetime(2026, 3, 31, 15, 30)


# =============================================================================
# DATE RANGES
# =============================================================================


class TestDateRanges:

    def test_shift_months_clamps_day(self):
        assert shift_months(NOW, -1) == datetime(2026, 2, 28, 15, 30)
        assert shift_months(datetime(2026, 1, 15), -3) == datetime(2025, 10, 15)

    @pytest.mark.parametrize(
        "name,expected_start",
        [
            ("daily", datetime(2026, 3, 31)),
            ("weekly", datetime(2026, 3, 24, 15, 30)),
            ("monthly", datetime(2026, 2, 28, 15, 30)),
            ("quarterly", datetime(2025, 12, 31, 15, 30)),
            ("yearly", datetime(2025, 3, 31, 15, 30)),
            (None, datetime(2026, 2, 28, 15, 30)),
            ("fortnightly", datetime(2026, 2, 28, 15, 30)),
        ],
    )
    def test_named_ranges(self, name, expected_start):
        start, end = resolve_date_range(name, now=NOW)
        assert start == expected_start
        assert end == NOW

    def test_custom_range_covers_whole_end_day(self):
        start, end = resolve_date_range("custom", "2026-01-01", "2026-01-31", now=NOW)
        assert start == datetime(2026, 1, 1)
        assert end == datetime(2026, 1, 31, 23, 59, 59)

    def test_custom_range_must_be_ordered(self):
        with pytest.raises(ValidationError):
            resolve_date_range("custom", "2026-02-01", "2026-01-01", now=NOW)

    def test_month_keys_span_years(self):
        assert month_keys(datetime(2025, 11, 5), datetime(2026, 2, 1)) == [
            "2025-11", "2025-12", "2026-01", "2026-02",
        ]


# =============================================================================
# PURE AGGREGATIONS
# =============================================================================


class TestAggregations:

    def test_income(self):
        rows = [
            {"customer_id": 1, "customer_name": "Alice", "amount_paid": Decimal("100"),
             "created_at": datetime(2026, 2, 10)},
            {"customer_id": 1, "customer_name": "Alice", "amount_paid": Decimal("50"),
             "created_at": datetime(2026, 3, 10)},
            {"customer_id": 2, "customer_name": "Bob", "amount_paid": Decimal("30"),
             "created_at": datetime(2026, 3, 11)},
        ]
        report = income_report(rows, datetime(2026, 2, 1), NOW)

        assert report["total_income"] == 180.0
        assert report["invoice_count"] == 3
        assert report["monthly"] == [
            {"month": "2026-02", "amount": 100.0},
            {"month": "2026-03", "amount": 80.0},
        ]
        assert [c["name"] for c in report["top_customers"]] == ["Alice", "Bob"]

    def test_income_empty_months_are_zero(self):
        report = income_report([], datetime(2026, 1, 1), NOW)
        assert [m["amount"] for m in report["monthly"]] == [0.0, 0.0, 0.0]
        assert report["top_customers"] == []

    def test_sales_by_category(self):
        rows = [
            {"sale_id": 1, "item_id": 1, "item_name": "Router", "category": "Hardware",
             "qty": 2, "total_price": Decimal("40"), "sale_date": datetime(2026, 3, 1)},
            {"sale_id": 1, "item_id": 2, "item_name": "SIM", "category": None,
             "qty": 5, "total_price": Decimal("5"), "sale_date": datetime(2026, 3, 1)},
            {"sale_id": 2, "item_id": 1, "item_name": "Router", "category": "Hardware",
             "qty": 1, "total_price": Decimal("20"), "sale_date": datetime(2026, 3, 2)},
        ]
        report = sales_report(rows, datetime(2026, 3, 1), NOW)

        assert report["total_sales"] == 65.0
        assert report["sale_count"] == 2
        assert report["items_sold"] == 8
        assert report["by_category"] == [
            {"category": "Hardware", "amount": 60.0, "qty": 3},
            {"category": "Uncategorized", "amount": 5.0, "qty": 5},
        ]
        assert report["top_items"][0] == {"item_id": 1, "name": "Router", "amount": 60.0}

    def test_inventory(self):
        rows = [
            {"id": 1, "name": "Router", "quantity": 50, "reorder_level": 0, "status": "active"},
            {"id": 2, "name": "Cable", "quantity": 4, "reorder_level": 0, "status": "active"},
            {"id": 3, "name": "ONT", "quantity": 15, "reorder_level": 20, "status": "active"},
            {"id": 4, "name": "SIM", "quantity": 0, "reorder_level": 0, "status": "active"},
            {"id": 5, "name": "Old", "quantity": 0, "reorder_level": 0, "status": "inactive"},
        ]
        report = inventory_report(rows, threshold=10)

        assert report["total_quantity"] == 69
        assert [r["name"] for r in report["low_stock"]] == ["Cable", "ONT"]
        assert [r["name"] for r in report["out_of_stock"]] == ["SIM"]

    def test_cashpower(self):
        rows = [
            {"amount": Decimal("5000"), "commission": Decimal("100"), "units": 50,
             "created_at": datetime(2026, 3, 5)},
            {"amount": Decimal("1000"), "commission": Decimal("20"), "units": 10,
             "created_at": datetime(2026, 3, 6)},
        ]
        report = cashpower_report(rows, datetime(2026, 3, 1), NOW)
        assert report["total_amount"] == 6000.0
        assert report["total_commission"] == 120.0
        assert report["total_units"] == 60
        assert report["transaction_count"] == 2

    def test_customers(self):
        customers = [
            {"id": 1, "name": "Alice", "created_at": datetime(2025, 1, 1)},
            {"id": 2, "name": "Bob", "created_at": datetime(2026, 3, 20)},
        ]
        invoices = [{"customer_id": 2, "amount_to_pay": Decimal("75"), "created_at": datetime(2026, 3, 21)}]
        report = customer_report(customers, invoices, datetime(2026, 3, 1), NOW)

        assert report["total_customers"] == 2
        assert report["new_customers"] == 1
        assert report["active_customers"] == 1
        assert report["top_customers"] == [{"customer_id": 2, "name": "Bob", "amount": 75.0}]

    def test_customers_with_aware_timestamps(self):
        # 2026-03-01 01:00 at +02:00 is still February in UTC
        plus_two = timezone(timedelta(hours=2))
        customers = [
            {"id": 1, "name": "Alice", "created_at": datetime(2026, 3, 1, 1, 0, tzinfo=plus_two)},
            {"id": 2, "name": "Bob", "created_at": datetime(2026, 3, 20, 9, 0, tzinfo=timezone.utc)},
        ]
        report = customer_report(customers, [], datetime(2026, 3, 1), NOW)

        assert report["new_customers"] == 1

    def test_monthly_buckets_use_utc_month(self):
        plus_two = timezone(timedelta(hours=2))
        rows = [{"amount": Decimal("10"), "commission": Decimal("0"), "units": 0,
                 "created_at": datetime(2026, 3, 1, 1, 0, tzinfo=plus_two)}]
        report = cashpower_report(rows, datetime(2026, 2, 1), NOW)

        assert report["monthly"] == [
            {"month": "2026-02", "amount": 10.0},
            {"month": "2026-03", "amount": 0.0},
        ]


# =============================================================================
# END TO END
# =============================================================================


class TestReportRoutes:

    def test_unknown_type(self, admin_client):
        resp = admin_client.get("/api/reports?type=payroll")
        assert resp.status_code == 400

    def test_income_counts_consolidated_once(self, admin_client, company, customer, second_customer,
                                             stock_items):
        router, _ = stock_items
        invoice_service.create_master_invoice({
            "is_consolidated": True,
            "company_id": company.id,
            "amount_paid": "180.00",
            "invoice_items": [
                {"item_id": router.id, "customer_id": customer.id, "unit_price": 150},
                {"item_id": router.id, "customer_id": second_customer.id, "unit_price": 30},
            ],
        })

        resp = admin_client.get("/api/reports?type=income&range=daily")

        assert resp.status_code == 200
        assert resp.json["report_type"] == "income"
        assert resp.json["data"]["total_income"] == 180.0
        assert resp.json["data"]["top_customers"][0]["name"] == "Acme Ltd"

    def test_post_sales_report(self, admin_client, customer, stock_items):
        router, _ = stock_items
        sales_service.create_sale({
            "customer_id": customer.id,
            "items": [{"item_id": router.id, "qty": 2, "unit_price": "12.50"}],
        })
        today = utcnow().date()

        resp = admin_client.post("/api/reports", json={
            "reportType": "sales",
            "dateRange": "custom",
            "startDate": (today - timedelta(days=1)).isoformat(),
            "endDate": today.isoformat(),
        })

        assert resp.status_code == 200
        assert resp.json["filters"]["date_range"] == "custom"
        assert resp.json["data"]["total_sales"] == 25.0
        assert resp.json["data"]["by_category"][0]["category"] == "Hardware"

    def test_cashpower_report(self, admin_client, customer):
        cashpower_service.create_transaction({"customer_id": customer.id, "meter_number": "1", "amount": 1000})
        data = report_service.generate_report("cashpower", "daily")["data"]
        assert data["total_amount"] == 1000.0
        assert data["total_units"] == 10


class TestDashboard:

    def test_dashboard_counts(self, admin_client, customer, stock_items):
        resp = admin_client.get("/api/dashboard")
        assert resp.status_code == 200
        data = resp.json["data"]
        assert data["counts"]["customers"] == 1
        assert data["counts"]["stock_items"] == 2
        assert data["total_stock_quantity"] == 25
        assert [i["name"] for i in data["low_stock"]] == ["Cable"]

    def test_notifications(self, clerk_client, stock_items):
        resp = clerk_client.get("/api/notifications")
        assert resp.status_code == 200
        assert resp.json["total"] == 1
        assert resp.json["low_stock"][0]["name"] == "Cable"

    def test_dashboard_needs_permission(self, clerk_client):
        assert clerk_client.get("/api/dashboard").status_code == 403
