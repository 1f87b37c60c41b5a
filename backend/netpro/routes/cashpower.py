# Overview: Flask API routes for cashpower (prepaid electricity) transactions.

from flask import Blueprint, g, jsonify, request

from ..decorators import api_errors, json_body, require_auth, require_permission
from ..services import cashpower_service


cashpower_bp = Blueprint("cashpower", __name__, url_prefix="/api/cashpower")


@cashpower_bp.get("")
@require_auth
@require_permission("cashpower")
@api_errors("Failed to fetch cashpower transactions")
def list_cashpower_route():
    result = cashpower_service.list_transactions(
        page=request.args.get("page"),
        limit=request.args.get("limit"),
        customer_id=request.args.get("customerId", type=int),
    )
    return jsonify({"success": True, **result}), 200


@cashpower_bp.post("")
@require_auth
@require_permission("cashpower")
@api_errors("Failed to create cashpower transaction")
def create_cashpower_route():
    transaction = cashpower_service.create_transaction(json_body(), user_id=g.current_user.id)
    return jsonify({"success": True, "transaction": transaction.to_dict()}), 201


@cashpower_bp.get("/<int:transaction_id>")
@require_auth
@require_permission("cashpower")
@api_errors("Failed to fetch cashpower transaction")
def get_cashpower_route(transaction_id: int):
    transaction = cashpower_service.get_transaction(transaction_id)
    return jsonify({"success": True, "transaction": transaction.to_dict()}), 200
