# Overview: Flask API routes for reference data (companies, customers, suppliers, packages, products).

"""
Reference-data routes.

Every entity exposes the same five endpoints:
    GET    /api/<entity>            ?search&page&limit
    GET    /api/<entity>/<id>
    POST   /api/<entity>
    PUT    /api/<entity>/<id>
    DELETE /api/<entity>/<id>
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import api_errors, json_body, require_auth, require_permission
from ..services import catalog_service, crud_service
from ..services.crud_service import CrudResource


def register_crud_routes(
    bp: Blueprint, resource: CrudResource, permission: str, key: str, attribute_user: bool = False
) -> None:
    """
    Attach list/get/create/update/delete views for a resource to a blueprint.

    attribute_user stamps user_id with the caller on create.
    """
    label = resource.label.lower()

    @require_auth
    @require_permission(permission)
    @api_errors(f"Failed to fetch {label} list")
    def list_view():
        result = crud_service.list_records(
            resource,
            search=request.args.get("search"),
            page=request.args.get("page"),
            limit=request.args.get("limit"),
        )
        body = {"success": True, key: result["data"]}
        if "pagination" in result:
            body["pagination"] = result["pagination"]
        return jsonify(body), 200

    @require_auth
    @require_permission(permission)
    @api_errors(f"Failed to fetch {label}")
    def get_view(record_id: int):
        return jsonify({"success": True, "data": crud_service.get_record(resource, record_id).to_dict()}), 200

    @require_auth
    @require_permission(permission)
    @api_errors(f"Failed to create {label}")
    def create_view():
        extra = {"user_id": g.current_user.id} if attribute_user else {}
        record = crud_service.create_record(resource, json_body(), **extra)
        return jsonify({"success": True, "data": record.to_dict()}), 201

    @require_auth
    @require_permission(permission)
    @api_errors(f"Failed to update {label}")
    def update_view(record_id: int):
        record = crud_service.update_record(resource, record_id, json_body())
        return jsonify({"success": True, "data": record.to_dict()}), 200

    @require_auth
    @require_permission(permission)
    @api_errors(f"Failed to delete {label}")
    def delete_view(record_id: int):
        crud_service.delete_record(resource, record_id)
        return jsonify({"success": True}), 200

    bp.add_url_rule("", endpoint="list", view_func=list_view, methods=["GET"])
    bp.add_url_rule("/<int:record_id>", endpoint="get", view_func=get_view, methods=["GET"])
    bp.add_url_rule("", endpoint="create", view_func=create_view, methods=["POST"])
    bp.add_url_rule("/<int:record_id>", endpoint="update", view_func=update_view, methods=["PUT"])
    bp.add_url_rule("/<int:record_id>", endpoint="delete", view_func=delete_view, methods=["DELETE"])


companies_bp = Blueprint("companies", __name__, url_prefix="/api/companies")
customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")
suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")
package_types_bp = Blueprint("package_types", __name__, url_prefix="/api/package-types")
product_types_bp = Blueprint("product_types", __name__, url_prefix="/api/product-types")
packages_bp = Blueprint("packages", __name__, url_prefix="/api/packages")
products_bp = Blueprint("products", __name__, url_prefix="/api/products")

register_crud_routes(companies_bp, catalog_service.COMPANIES, "customers", "companies")
register_crud_routes(customers_bp, catalog_service.CUSTOMERS, "customers", "customers")
register_crud_routes(suppliers_bp, catalog_service.SUPPLIERS, "stock", "suppliers")
register_crud_routes(package_types_bp, catalog_service.PACKAGE_TYPES, "packages", "package_types")
register_crud_routes(product_types_bp, catalog_service.PRODUCT_TYPES, "products", "product_types")
register_crud_routes(packages_bp, catalog_service.PACKAGES, "packages", "packages")
register_crud_routes(products_bp, catalog_service.PRODUCTS, "products", "products")

CATALOG_BLUEPRINTS = (
    companies_bp,
    customers_bp,
    suppliers_bp,
    package_types_bp,
    product_types_bp,
    packages_bp,
    products_bp,
)
