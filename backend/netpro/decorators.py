# Overview: Request, permission and error-mapping decorators for API routes.

from functools import wraps

from flask import current_app, g, jsonify, request

from .permissions import ADMIN_PERMISSION, permission_name
from .services import auth_service
from .services.auth_service import AuthenticationError, PasswordValidationError
from .services.stock_service import InsufficientStockError
from .validation import ConflictError, NotFoundError, ValidationError


def _extract_token() -> str | None:
    token = request.cookies.get(current_app.config["AUTH_COOKIE_NAME"])
    if token:
        return token
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1]
    return None


def require_auth(f):
    """
    Require a valid session token.

    The token is read from the auth cookie set at login, or from an
    "Authorization: Bearer" header for non-browser clients.
    Sets g.current_user. Returns 401 if the token is missing, invalid,
    expired, or belongs to an inactive user.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _extract_token()
        if not token:
            return jsonify({"success": False, "error": "Authentication required"}), 401

        try:
            g.current_user = auth_service.user_from_token(token)
        except AuthenticationError as e:
            return jsonify({"success": False, "error": str(e)}), 401

        return f(*args, **kwargs)

    return decorated_function


def require_permission(flag: str):
    """Require "<flag>_access" (admin_access always passes). Use after @require_auth."""
    required = permission_name(flag)

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = getattr(g, "current_user", None)
            if user is None:
                return jsonify({"success": False, "error": "Authentication required"}), 401

            held = user.permission_names
            if ADMIN_PERMISSION not in held and required not in held:
                current_app.logger.info(
                    "Permission denied: user=%s required=%s path=%s", user.id, required, request.path
                )
                return jsonify({
                    "success": False,
                    "error": "Permission denied",
                    "required_permission": required,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def api_errors(failure_message: str):
    """
    Map domain exceptions to JSON error responses.

    ValidationError / PasswordValidationError -> 400
    InsufficientStockError -> 400 with details
    AuthenticationError -> 401
    NotFoundError -> 404
    ConflictError -> 409
    anything else -> logged, 500 with a generic message
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except InsufficientStockError as e:
                return jsonify({"success": False, "error": str(e), "details": e.details}), 400
            except (ValidationError, PasswordValidationError) as e:
                return jsonify({"success": False, "error": str(e)}), 400
            except AuthenticationError as e:
                return jsonify({"success": False, "error": str(e)}), 401
            except NotFoundError as e:
                return jsonify({"success": False, "error": str(e)}), 404
            except ConflictError as e:
                return jsonify({"success": False, "error": str(e)}), 409
            except Exception:
                current_app.logger.exception(failure_message)
                return jsonify({"success": False, "error": "Internal server error"}), 500

        return decorated_function
    return decorator


def json_body() -> dict:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload
