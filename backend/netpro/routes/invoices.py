# Overview: Flask API routes for invoices and master invoices.

from flask import Blueprint, g, jsonify, request

from ..decorators import api_errors, json_body, require_auth, require_permission
from ..services import invoice_service


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")
master_invoices_bp = Blueprint("master_invoices", __name__, url_prefix="/api/master-invoices")


# =============================================================================
# INVOICES
# =============================================================================

@invoices_bp.get("")
@require_auth
@require_permission("invoices")
@api_errors("Failed to fetch invoices")
def list_invoices_route():
    """
    Query params: page, limit, customerId, userId, startDate, endDate, status
    (startDate/endDate filter on creation time and apply only together).
    """
    result = invoice_service.list_invoices(
        page=request.args.get("page"),
        limit=request.args.get("limit"),
        customer_id=request.args.get("customerId", type=int),
        user_id=request.args.get("userId", type=int),
        start_date=request.args.get("startDate"),
        end_date=request.args.get("endDate"),
        status=request.args.get("status"),
    )
    return jsonify({"success": True, **result}), 200


@invoices_bp.post("")
@require_auth
@require_permission("invoices")
@api_errors("Failed to create invoice")
def create_invoice_route():
    invoice = invoice_service.create_invoice(json_body(), user_id=g.current_user.id)
    return jsonify({"success": True, "invoice": invoice.to_dict()}), 201


@invoices_bp.get("/<int:invoice_id>")
@require_auth
@require_permission("invoices")
@api_errors("Failed to fetch invoice")
def get_invoice_route(invoice_id: int):
    return jsonify({"success": True, "invoice": invoice_service.get_invoice(invoice_id).to_dict()}), 200


@invoices_bp.put("/<int:invoice_id>")
@require_auth
@require_permission("invoices")
@api_errors("Failed to update invoice")
def update_invoice_route(invoice_id: int):
    invoice = invoice_service.update_invoice(invoice_id, json_body())
    return jsonify({"success": True, "invoice": invoice.to_dict()}), 200


@invoices_bp.delete("/<int:invoice_id>")
@require_auth
@require_permission("invoices")
@api_errors("Failed to delete invoice")
def delete_invoice_route(invoice_id: int):
    invoice_service.delete_invoice(invoice_id)
    return jsonify({"success": True}), 200


# =============================================================================
# MASTER INVOICES
# =============================================================================

@master_invoices_bp.get("")
@require_auth
@require_permission("invoices")
@api_errors("Failed to fetch master invoices")
def list_master_invoices_route():
    """Query params: page, limit, type (individual|consolidated|all), customerId, companyId, status."""
    result = invoice_service.list_master_invoices(
        page=request.args.get("page"),
        limit=request.args.get("limit"),
        invoice_type=request.args.get("type"),
        customer_id=request.args.get("customerId", type=int),
        company_id=request.args.get("companyId", type=int),
        status=request.args.get("status"),
    )
    return jsonify({"success": True, **result}), 200


@master_invoices_bp.post("")
@require_auth
@require_permission("invoices")
@api_errors("Failed to create master invoice")
def create_master_invoice_route():
    """
    Create an individual or consolidated master invoice.

    Consolidated invoices also create one child invoice per customer on
    the lines; master and children are committed together.
    """
    master = invoice_service.create_master_invoice(json_body(), user_id=g.current_user.id)
    return jsonify({"success": True, "invoice": master.to_dict()}), 201


@master_invoices_bp.get("/<int:master_id>")
@require_auth
@require_permission("invoices")
@api_errors("Failed to fetch master invoice")
def get_master_invoice_route(master_id: int):
    master = invoice_service.get_master_invoice(master_id)
    return jsonify({"success": True, "invoice": master.to_dict()}), 200


@master_invoices_bp.put("/<int:master_id>")
@require_auth
@require_permission("invoices")
@api_errors("Failed to update master invoice")
def update_master_invoice_route(master_id: int):
    master = invoice_service.update_master_invoice(master_id, json_body())
    return jsonify({"success": True, "invoice": master.to_dict()}), 200


@master_invoices_bp.delete("/<int:master_id>")
@require_auth
@require_permission("invoices")
@api_errors("Failed to delete master invoice")
def delete_master_invoice_route(master_id: int):
    invoice_service.delete_master_invoice(master_id)
    return jsonify({"success": True}), 200
