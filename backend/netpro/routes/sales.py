# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

from flask import Blueprint, g, jsonify, request

from ..decorators import api_errors, json_body, require_auth, require_permission
from ..services import catalog_service, sales_service, stock_service


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_auth
@require_permission("stock")
@api_errors("Failed to create sale")
def create_sale_route():
    """
    Create a sale and decrement stock in one transaction.

    Body: {customer_id, sale_date?, items: [{item_id, qty, unit_price}]}
    400 with details.items when any item has insufficient stock.
    """
    sale = sales_service.create_sale(json_body(), user_id=g.current_user.id)
    return jsonify({"success": True, "sale": sale.to_dict()}), 201


@sales_bp.get("")
@require_auth
@require_permission("stock")
@api_errors("Failed to fetch sales")
def list_sales_route():
    result = sales_service.list_sales(
        page=request.args.get("page"),
        limit=request.args.get("limit"),
        customer_id=request.args.get("customerId", type=int),
    )
    return jsonify({"success": True, **result}), 200


@sales_bp.get("/stock-items")
@require_auth
@require_permission("stock")
@api_errors("Failed to fetch stock items")
def sale_stock_items_route():
    return jsonify({"success": True, "items": stock_service.get_stock_items()}), 200


@sales_bp.get("/customers")
@require_auth
@require_permission("stock")
@api_errors("Failed to fetch customers")
def sale_customers_route():
    return jsonify({"success": True, "customers": catalog_service.get_customers()}), 200


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_permission("stock")
@api_errors("Failed to fetch sale")
def get_sale_route(sale_id: int):
    return jsonify({"success": True, "sale": sales_service.get_sale(sale_id).to_dict()}), 200


@sales_bp.delete("/<int:sale_id>")
@require_auth
@require_permission("stock")
@api_errors("Failed to delete sale")
def delete_sale_route(sale_id: int):
    """Delete a sale and restore the stock it consumed."""
    restored = sales_service.delete_sale(sale_id)
    return jsonify({
        "success": True,
        "restored": [{"item_id": k, "qty": v} for k, v in sorted(restored.items())],
    }), 200
