# Overview: Flask API routes for quotations and proforma invoices.

from flask import Blueprint, g, jsonify, request

from ..decorators import api_errors, json_body, require_auth, require_permission
from ..models import ProformaInvoice, Quotation
from ..services import document_service


quotations_bp = Blueprint("quotations", __name__, url_prefix="/api/quotations")
proformas_bp = Blueprint("proforma_invoices", __name__, url_prefix="/api/proforma-invoices")


def _list_args() -> dict:
    return {
        "page": request.args.get("page"),
        "limit": request.args.get("limit"),
        "customer_id": request.args.get("customerId", type=int),
        "user_id": request.args.get("userId", type=int),
    }


# =============================================================================
# QUOTATIONS
# =============================================================================

@quotations_bp.get("")
@require_auth
@require_permission("quotations")
@api_errors("Failed to fetch quotations")
def list_quotations_route():
    result = document_service.list_documents(Quotation, "quotations", **_list_args())
    return jsonify({"success": True, **result}), 200


@quotations_bp.post("")
@require_auth
@require_permission("quotations")
@api_errors("Failed to create quotation")
def create_quotation_route():
    """
    Body: {customer_id, valid_until?, notes?,
           quotation_products: [{product_id, qty, unit_price, discount?, notes?}]}
    Each line price is unit_price * qty reduced by discount percent.
    """
    quotation = document_service.create_quotation(json_body(), user_id=g.current_user.id)
    return jsonify({"success": True, "quotation": quotation.to_dict()}), 201


@quotations_bp.get("/<int:quotation_id>")
@require_auth
@require_permission("quotations")
@api_errors("Failed to fetch quotation")
def get_quotation_route(quotation_id: int):
    quotation = document_service.get_document(Quotation, quotation_id, "Quotation")
    return jsonify({"success": True, "quotation": quotation.to_dict()}), 200


@quotations_bp.delete("/<int:quotation_id>")
@require_auth
@require_permission("quotations")
@api_errors("Failed to delete quotation")
def delete_quotation_route(quotation_id: int):
    document_service.delete_document(Quotation, quotation_id, "Quotation")
    return jsonify({"success": True}), 200


# =============================================================================
# PROFORMA INVOICES
# =============================================================================

@proformas_bp.get("")
@require_auth
@require_permission("proformas")
@api_errors("Failed to fetch proforma invoices")
def list_proformas_route():
    result = document_service.list_documents(ProformaInvoice, "proforma_invoices", **_list_args())
    return jsonify({"success": True, **result}), 200


@proformas_bp.post("")
@require_auth
@require_permission("proformas")
@api_errors("Failed to create proforma invoice")
def create_proforma_route():
    proforma = document_service.create_proforma(json_body(), user_id=g.current_user.id)
    return jsonify({"success": True, "proforma_invoice": proforma.to_dict()}), 201


@proformas_bp.get("/<int:proforma_id>")
@require_auth
@require_permission("proformas")
@api_errors("Failed to fetch proforma invoice")
def get_proforma_route(proforma_id: int):
    proforma = document_service.get_document(ProformaInvoice, proforma_id, "Proforma invoice")
    return jsonify({"success": True, "proforma_invoice": proforma.to_dict()}), 200


@proformas_bp.delete("/<int:proforma_id>")
@require_auth
@require_permission("proformas")
@api_errors("Failed to delete proforma invoice")
def delete_proforma_route(proforma_id: int):
    document_service.delete_document(ProformaInvoice, proforma_id, "Proforma invoice")
    return jsonify({"success": True}), 200
