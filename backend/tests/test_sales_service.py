"""
Sale and stock movement tests.

Verifies:
- Stock never goes negative; decrements are conditional
- Sale total equals the sum of its lines
- Deleting a sale restores exactly what it took
- Insufficient stock rolls back the whole sale
"""

from decimal import Decimal

import pytest

from netpro.extensions import db
from netpro.models import SaleItem, SaleTransaction, StockItem
from netpro.services import sales_service, stock_service
from netpro.services.stock_service import InsufficientStockError
from netpro.validation import NotFoundError, ValidationError


def _quantity(item_id):
    db.session.expire_all()
    return db.session.get(StockItem, item_id).quantity


# =============================================================================
# STOCK MOVEMENTS
# =============================================================================


class TestStockMovements:

    def test_decrement_reduces_quantity(self, db_session, stock_items):
        router, _ = stock_items
        stock_service.decrement_stock(router.id, 4)
        db_session.commit()
        assert _quantity(router.id) == 16

    def test_decrement_to_exactly_zero(self, db_session, stock_items):
        _, cable = stock_items
        stock_service.decrement_stock(cable.id, 5)
        db_session.commit()
        assert _quantity(cable.id) == 0

    def test_decrement_below_zero_is_refused(self, db_session, stock_items):
        _, cable = stock_items
        with pytest.raises(InsufficientStockError) as exc:
            stock_service.decrement_stock(cable.id, 6)
        db_session.rollback()

        assert exc.value.details["items"][0]["available"] == 5
        assert exc.value.details["items"][0]["requested"] == 6
        assert _quantity(cable.id) == 5

    def test_decrement_unknown_item(self, db_session):
        with pytest.raises(NotFoundError):
            stock_service.decrement_stock(9999, 1)

    def test_non_positive_qty_rejected(self, db_session, stock_items):
        router, _ = stock_items
        with pytest.raises(ValidationError):
            stock_service.decrement_stock(router.id, 0)
        with pytest.raises(ValidationError):
            stock_service.increment_stock(router.id, -1)

    def test_low_stock_uses_threshold_and_reorder_level(self, db_session, stock_items):
        router, cable = stock_items
        router.reorder_level = 25
        db_session.commit()

        low = stock_service.low_stock_items()
        assert [i.name for i in low] == ["Cable", "Router"]

    def test_inactive_items_hidden_from_picker(self, db_session, stock_items):
        router, cable = stock_items
        cable.status = "inactive"
        db_session.commit()

        names = [i["name"] for i in stock_service.get_stock_items()]
        assert names == ["Router"]


# =============================================================================
# SALE CREATION
# =============================================================================


class TestCreateSale:

    def test_total_is_sum_of_lines(self, db_session, customer, stock_items):
        router, cable = stock_items
        sale = sales_service.create_sale({
            "customer_id": customer.id,
            "items": [
                {"item_id": router.id, "qty": 3, "unit_price": "19.99"},
                {"item_id": cable.id, "qty": 2, "unit_price": 0.1},
            ],
        })

        assert sale.total_price == Decimal("60.17")
        assert sale.total_price == sum(i.unit_price * i.qty for i in sale.items)
        assert _quantity(router.id) == 17
        assert _quantity(cable.id) == 3

    def test_repeated_item_lines_are_checked_together(self, db_session, customer, stock_items):
        _, cable = stock_items
        with pytest.raises(InsufficientStockError) as exc:
            sales_service.create_sale({
                "customer_id": customer.id,
                "items": [
                    {"item_id": cable.id, "qty": 3, "unit_price": 1},
                    {"item_id": cable.id, "qty": 3, "unit_price": 1},
                ],
            })
        assert exc.value.details["items"][0]["requested"] == 6
        assert _quantity(cable.id) == 5

    def test_insufficient_stock_rolls_back_everything(self, db_session, customer, stock_items):
        router, cable = stock_items
        with pytest.raises(InsufficientStockError) as exc:
            sales_service.create_sale({
                "customer_id": customer.id,
                "items": [
                    {"item_id": router.id, "qty": 1, "unit_price": 10},
                    {"item_id": cable.id, "qty": 6, "unit_price": 10},
                ],
            })

        assert str(exc.value) == "Insufficient stock for Cable. Available: 5, Requested: 6"
        assert db_session.query(SaleTransaction).count() == 0
        assert db_session.query(SaleItem).count() == 0
        assert _quantity(router.id) == 20
        assert _quantity(cable.id) == 5

    def test_unknown_customer(self, db_session, stock_items):
        router, _ = stock_items
        with pytest.raises(NotFoundError):
            sales_service.create_sale({
                "customer_id": 424242,
                "items": [{"item_id": router.id, "qty": 1, "unit_price": 1}],
            })
        assert _quantity(router.id) == 20

    @pytest.mark.parametrize(
        "payload,message",
        [
            ({"items": [{"item_id": 1, "qty": 1, "unit_price": 1}]}, "customer_id is required"),
            ({"customer_id": 1, "items": []}, "At least one item is required"),
            ({"customer_id": 1, "items": [{"item_id": 1, "qty": 0, "unit_price": 1}]},
             "items[1].qty must be greater than 0"),
            ({"customer_id": 1, "items": [{"item_id": 1, "qty": 1, "unit_price": -5}]},
             "items[1].unit_price must be >= 0"),
        ],
    )
    def test_payload_validation(self, db_session, payload, message):
        with pytest.raises(ValidationError) as exc:
            sales_service.create_sale(payload)
        assert str(exc.value) == message


# =============================================================================
# SALE REVERSAL
# =============================================================================


class TestDeleteSale:

    def test_delete_restores_stock_exactly(self, db_session, customer, stock_items):
        router, _ = stock_items
        before = _quantity(router.id)
        sale = sales_service.create_sale({
            "customer_id": customer.id,
            "items": [{"item_id": router.id, "qty": 3, "unit_price": 10}],
        })
        assert _quantity(router.id) == before - 3

        restored = sales_service.delete_sale(sale.id)

        assert restored == {router.id: 3}
        assert _quantity(router.id) == before
        assert db_session.query(SaleItem).count() == 0

    def test_sequence_never_goes_negative(self, db_session, customer, stock_items):
        _, cable = stock_items
        sales = []
        for _ in range(5):
            sales.append(sales_service.create_sale({
                "customer_id": customer.id,
                "items": [{"item_id": cable.id, "qty": 1, "unit_price": 2}],
            }))
            assert _quantity(cable.id) >= 0

        with pytest.raises(InsufficientStockError):
            sales_service.create_sale({
                "customer_id": customer.id,
                "items": [{"item_id": cable.id, "qty": 1, "unit_price": 2}],
            })
        assert _quantity(cable.id) == 0

        for sale in sales:
            sales_service.delete_sale(sale.id)
        assert _quantity(cable.id) == 5

    def test_delete_unknown_sale(self, db_session):
        with pytest.raises(NotFoundError):
            sales_service.delete_sale(12345)


class TestListSales:

    def test_pagination_block(self, db_session, customer, stock_items):
        router, _ = stock_items
        for _ in range(3):
            sales_service.create_sale({
                "customer_id": customer.id,
                "items": [{"item_id": router.id, "qty": 1, "unit_price": 5}],
            })

        result = sales_service.list_sales(page=1, limit=2)

        assert len(result["sales"]) == 2
        assert result["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}
