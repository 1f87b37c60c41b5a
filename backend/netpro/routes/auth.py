# Overview: Flask API routes for auth operations; login sets the signed session cookie.

from flask import Blueprint, current_app, g, jsonify

from ..decorators import api_errors, json_body, require_auth
from ..services import auth_service


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
@api_errors("Failed to log in")
def login_route():
    """
    Authenticate by username or email.

    On success the session token is set as an httpOnly cookie valid for
    AUTH_TOKEN_TTL_HOURS and the user is returned. The token is also in
    the body for non-browser clients.
    """
    data = json_body()
    identifier = data.get("username") or data.get("email")
    password = data.get("password")

    if not identifier or not password:
        return jsonify({"success": False, "error": "username/email and password required"}), 400

    user = auth_service.authenticate(identifier, password)
    if user is None:
        current_app.logger.info("Failed login for %s", identifier)
        return jsonify({"success": False, "error": "Invalid credentials"}), 401

    token = auth_service.issue_token(user)
    response = jsonify({"success": True, "user": user.to_dict(), "token": token})
    response.set_cookie(
        current_app.config["AUTH_COOKIE_NAME"],
        token,
        max_age=int(current_app.config["AUTH_TOKEN_TTL_HOURS"]) * 3600,
        httponly=True,
        secure=bool(current_app.config["AUTH_COOKIE_SECURE"]),
        samesite="Lax",
        path="/",
    )
    current_app.logger.info("User %s logged in", user.username)
    return response, 200


@auth_bp.post("/logout")
def logout_route():
    response = jsonify({"success": True})
    response.delete_cookie(current_app.config["AUTH_COOKIE_NAME"], path="/")
    return response, 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"success": True, "user": g.current_user.to_dict()}), 200
