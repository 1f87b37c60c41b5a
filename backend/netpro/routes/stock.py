# Overview: Flask API routes for stock items and stock categories.

from flask import Blueprint, jsonify

from ..decorators import api_errors, require_auth, require_permission
from ..services import stock_service
from .catalog import register_crud_routes


stock_items_bp = Blueprint("stock_items", __name__, url_prefix="/api/stock-items")
stock_categories_bp = Blueprint("stock_categories", __name__, url_prefix="/api/stock-categories")


@stock_items_bp.get("/low-stock")
@require_auth
@require_permission("stock")
@api_errors("Failed to fetch low stock items")
def low_stock_route():
    """Active items at or below their reorder level or the global threshold."""
    items = stock_service.low_stock_items()
    return jsonify({"success": True, "items": [i.to_dict() for i in items]}), 200


register_crud_routes(stock_items_bp, stock_service.STOCK_ITEMS, "stock", "stock_items", attribute_user=True)
register_crud_routes(stock_categories_bp, stock_service.STOCK_CATEGORIES, "stock", "categories")
