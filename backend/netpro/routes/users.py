# Overview: Flask API routes for user management; parses input and returns JSON responses.

from flask import Blueprint, g, jsonify, request

from ..decorators import api_errors, json_body, require_auth, require_permission
from ..services import user_service


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_permission("users")
@api_errors("Failed to fetch users")
def list_users_route():
    """
    Query params:
    - search: matches username or email
    - role: admin | user
    """
    users = user_service.list_users(search=request.args.get("search"), role=request.args.get("role"))
    return jsonify({"success": True, "users": users}), 200


@users_bp.get("/<int:user_id>")
@require_auth
@require_permission("users")
@api_errors("Failed to fetch user")
def get_user_route(user_id: int):
    return jsonify({"success": True, "user": user_service.get_user(user_id).to_dict()}), 200


@users_bp.post("")
@require_auth
@require_permission("users")
@api_errors("Failed to create user")
def create_user_route():
    user = user_service.create_user(json_body(), created_by=g.current_user.id)
    return jsonify({"success": True, "user": user.to_dict()}), 201


@users_bp.put("/<int:user_id>")
@require_auth
@require_permission("users")
@api_errors("Failed to update user")
def update_user_route(user_id: int):
    """Partial update; role/permissions in the body replace the whole permission set."""
    user = user_service.update_user(user_id, json_body(), updated_by=g.current_user.id)
    return jsonify({"success": True, "user": user.to_dict()}), 200


@users_bp.delete("/<int:user_id>")
@require_auth
@require_permission("users")
@api_errors("Failed to delete user")
def delete_user_route(user_id: int):
    user_service.delete_user(user_id, acting_user_id=g.current_user.id)
    return jsonify({"success": True}), 200
