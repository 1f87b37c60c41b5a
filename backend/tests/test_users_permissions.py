"""
User, permission and authentication tests.

Verifies:
- Permission sets are replaced, never merged
- The last admin cannot be demoted or deleted
- Login sets the httpOnly auth cookie; protected routes need it
- Screens are gated by "<flag>_access" (admin_access passes everywhere)
"""

import pytest

from netpro.models import User, UserPermission
from netpro.permissions import ADMIN_PERMISSIONS, flags_from_names, permission_names_for
from netpro.services import auth_service, user_service
from netpro.services.auth_service import PasswordValidationError
from netpro.validation import ConflictError, ValidationError

from conftest import ADMIN_PASSWORD, USER_PASSWORD, login


def _names(db_session, user_id):
    rows = db_session.query(UserPermission.permission_name).filter_by(user_id=user_id).all()
    return {r.permission_name for r in rows}


# =============================================================================
# PERMISSION MAPPING
# =============================================================================


class TestPermissionMapping:

    def test_admin_gets_everything(self):
        assert set(permission_names_for("admin", {"stock": False})) == set(ADMIN_PERMISSIONS)

    def test_user_gets_truthy_flags_only(self):
        names = permission_names_for("user", {"invoices": True, "stock": False, "reports": True})
        assert names == ["invoices_access", "reports_access"]

    def test_unknown_flag_rejected(self):
        with pytest.raises(ValidationError):
            permission_names_for("user", {"payroll": True})

    def test_unknown_role_rejected(self):
        with pytest.raises(ValidationError):
            permission_names_for("owner", None)

    def test_flags_view(self):
        flags = flags_from_names({"stock_access"})
        assert flags["stock"] is True
        assert flags["invoices"] is False


# =============================================================================
# PERMISSION REPLACEMENT
# =============================================================================


class TestReplacePermissions:

    def test_update_replaces_whole_set(self, db_session, admin_user):
        user = user_service.create_user({
            "username": "jane",
            "email": "jane@netpro.local",
            "password": USER_PASSWORD,
            "role": "user",
            "permissions": {"invoices": True, "customers": True},
        })
        assert _names(db_session, user.id) == {"invoices_access", "customers_access"}

        user_service.update_user(user.id, {"role": "user", "permissions": {"products": True}},
                                 updated_by=admin_user.id)

        assert _names(db_session, user.id) == {"products_access"}
        row = db_session.query(UserPermission).filter_by(user_id=user.id).one()
        assert row.granted_by_user_id == admin_user.id

    def test_profile_update_keeps_permissions(self, db_session, stock_clerk):
        user_service.update_user(stock_clerk.id, {"first_name": "Clerk"})
        assert _names(db_session, stock_clerk.id) == {"stock_access"}

    def test_invalid_flags_leave_previous_set(self, db_session, stock_clerk):
        with pytest.raises(ValidationError):
            user_service.update_user(stock_clerk.id, {"permissions": {"nope": True}})
        assert _names(db_session, stock_clerk.id) == {"stock_access"}

    def test_promote_to_admin(self, db_session, stock_clerk):
        user = user_service.update_user(stock_clerk.id, {"role": "admin"})
        assert user.role == "admin"
        assert _names(db_session, stock_clerk.id) == set(ADMIN_PERMISSIONS)

    def test_last_admin_cannot_be_demoted(self, db_session, admin_user):
        with pytest.raises(ConflictError):
            user_service.update_user(admin_user.id, {"role": "user", "permissions": {}})
        assert "admin_access" in _names(db_session, admin_user.id)


# =============================================================================
# USER LIFECYCLE
# =============================================================================


class TestUserLifecycle:

    def test_duplicate_username(self, db_session, admin_user):
        with pytest.raises(ConflictError) as exc:
            user_service.create_user({"username": "admin", "email": "other@netpro.local",
                                      "password": ADMIN_PASSWORD})
        assert str(exc.value) == "Username already exists"

    def test_duplicate_email(self, db_session, admin_user):
        with pytest.raises(ConflictError) as exc:
            user_service.create_user({"username": "other", "email": "admin@netpro.local",
                                      "password": ADMIN_PASSWORD})
        assert str(exc.value) == "Email already exists"

    @pytest.mark.parametrize("password", ["short1", "lettersonly", "12345678"])
    def test_weak_passwords(self, db_session, password):
        with pytest.raises(PasswordValidationError):
            user_service.create_user({"username": "weak", "email": "weak@netpro.local", "password": password})

    def test_password_is_hashed(self, db_session, admin_user):
        assert admin_user.password_hash != ADMIN_PASSWORD
        assert auth_service.verify_password(ADMIN_PASSWORD, admin_user.password_hash)

    def test_delete_cascades_permissions(self, db_session, admin_user, stock_clerk):
        clerk_id = stock_clerk.id
        user_service.delete_user(clerk_id, acting_user_id=admin_user.id)
        assert db_session.get(User, clerk_id) is None
        assert _names(db_session, clerk_id) == set()

    def test_cannot_delete_self(self, db_session, admin_user):
        with pytest.raises(ConflictError):
            user_service.delete_user(admin_user.id, acting_user_id=admin_user.id)

    def test_cannot_delete_last_admin(self, db_session, admin_user, stock_clerk):
        with pytest.raises(ConflictError):
            user_service.delete_user(admin_user.id, acting_user_id=stock_clerk.id)


# =============================================================================
# AUTH ROUTES
# =============================================================================


class TestAuthRoutes:

    def test_login_sets_http_only_cookie(self, client, admin_user):
        resp = login(client, "admin", ADMIN_PASSWORD)
        cookie = resp.headers.get("Set-Cookie")
        assert cookie.startswith("auth-token=")
        assert "HttpOnly" in cookie
        assert "Max-Age=86400" in cookie
        assert resp.json["user"]["role"] == "admin"

    def test_login_by_email(self, client, admin_user):
        resp = client.post("/api/auth/login", json={"email": "admin@netpro.local", "password": ADMIN_PASSWORD})
        assert resp.status_code == 200

    def test_bad_password(self, client, admin_user):
        resp = client.post("/api/auth/login", json={"username": "admin", "password": "wrong-pass1"})
        assert resp.status_code == 401
        assert resp.json == {"success": False, "error": "Invalid credentials"}

    def test_inactive_user_cannot_log_in(self, client, db_session, admin_user, stock_clerk):
        user_service.update_user(stock_clerk.id, {"status": "inactive"})
        resp = client.post("/api/auth/login", json={"username": "clerk", "password": USER_PASSWORD})
        assert resp.status_code == 401

    def test_me_and_logout(self, admin_client):
        assert admin_client.get("/api/auth/me").json["user"]["username"] == "admin"
        admin_client.post("/api/auth/logout")
        assert admin_client.get("/api/auth/me").status_code == 401

    def test_bearer_token(self, client, admin_user):
        token = auth_service.issue_token(admin_user)
        other = client.application.test_client()
        resp = other.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401


class TestScreenPermissions:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/users"),
            ("GET", "/api/customers"),
            ("GET", "/api/invoices"),
            ("GET", "/api/master-invoices"),
            ("GET", "/api/sales"),
            ("GET", "/api/reports"),
            ("GET", "/api/dashboard"),
            ("GET", "/api/cashpower"),
            ("POST", "/api/quotations"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_clerk_denied_other_screens(self, clerk_client):
        resp = clerk_client.get("/api/invoices")
        assert resp.status_code == 403
        assert resp.json["required_permission"] == "invoices_access"
        assert clerk_client.get("/api/users").status_code == 403

    def test_clerk_allowed_stock(self, clerk_client):
        assert clerk_client.get("/api/stock-items").status_code == 200

    def test_admin_user_routes(self, admin_client):
        resp = admin_client.post("/api/users", json={
            "username": "sam",
            "email": "sam@netpro.local",
            "password": USER_PASSWORD,
            "permissions": {"reports": True},
        })
        assert resp.status_code == 201
        assert resp.json["user"]["role"] == "user"
        assert resp.json["user"]["permissions"]["reports"] is True

        user_id = resp.json["user"]["id"]
        resp = admin_client.put(f"/api/users/{user_id}", json={"permissions": {"stock": True}})
        assert resp.json["user"]["permissions"]["reports"] is False
        assert resp.json["user"]["permissions"]["stock"] is True

        listed = admin_client.get("/api/users?role=user").json["users"]
        assert [u["username"] for u in listed] == ["sam"]

    def test_duplicate_user_is_conflict(self, admin_client):
        resp = admin_client.post("/api/users", json={
            "username": "admin", "email": "x@netpro.local", "password": USER_PASSWORD,
        })
        assert resp.status_code == 409
