# Overview: Service-layer operations for user management and permission replacement.

"""
User management.

A user's permission set is always rebuilt, never merged: when a role or a
permission map is submitted every existing row is deleted and the new set
is inserted, inside the same transaction as the rest of the update. A
failure at any point leaves the previous set untouched.
"""

from __future__ import annotations

import logging

from sqlalchemy import or_

from ..extensions import db
from ..models import User, UserPermission
from ..permissions import ADMIN_PERMISSION, ROLE_ADMIN, ROLE_USER, permission_names_for
from ..validation import ConflictError, NotFoundError, ValidationError
from .auth_service import hash_password
from .concurrency import atomic, lock_for_update, run_with_retry


logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("first_name", "last_name", "phone")
ALLOWED_FIELDS = {"username", "email", "password", "role", "permissions", "status", *PROFILE_FIELDS}


def _check_fields(payload: dict) -> None:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    unknown = sorted(set(payload) - ALLOWED_FIELDS)
    if unknown:
        raise ValidationError(f"Field not allowed: {unknown[0]}")


def _clean(value, field: str, max_length: int) -> str:
    cleaned = str(value or "").strip()
    if not cleaned:
        raise ValidationError(f"{field} cannot be blank")
    if len(cleaned) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return cleaned


def _ensure_unique(username: str | None, email: str | None, exclude_id: int | None = None) -> None:
    conditions = []
    if username:
        conditions.append(User.username == username)
    if email:
        conditions.append(User.email == email)
    if not conditions:
        return
    query = db.session.query(User).filter(or_(*conditions))
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    existing = query.first()
    if existing is not None:
        if username and existing.username == username:
            raise ConflictError("Username already exists")
        raise ConflictError("Email already exists")


def _status_to_active(value) -> bool:
    if value not in ("active", "inactive"):
        raise ValidationError("status must be 'active' or 'inactive'")
    return value == "active"


def replace_permissions(user: User, role: str, flags: dict | None, granted_by: int | None = None) -> list[str]:
    """
    Delete every permission row for the user, then insert the set for
    (role, flags). Runs on the caller's transaction; never commits.
    """
    names = permission_names_for(role, flags)

    db.session.query(UserPermission).filter(UserPermission.user_id == user.id).delete(
        synchronize_session="fetch"
    )
    db.session.flush()
    # Relationship collection still holds the deleted rows
    db.session.expire(user, ["permissions"])

    for name in names:
        db.session.add(UserPermission(user_id=user.id, permission_name=name, granted_by_user_id=granted_by))
    db.session.flush()
    db.session.expire(user, ["permissions"])
    return names


def _role_and_flags(payload: dict, current_role: str | None = None) -> tuple[str, dict | None]:
    role = payload.get("role", current_role or ROLE_USER)
    flags = payload.get("permissions")
    if flags is not None and not isinstance(flags, dict):
        raise ValidationError("permissions must be an object of flag -> bool")
    return role, flags


def list_users(search: str | None = None, role: str | None = None) -> list[dict]:
    query = db.session.query(User)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(User.username.ilike(pattern), User.email.ilike(pattern)))
    if role == ROLE_ADMIN:
        query = query.filter(User.permissions.any(UserPermission.permission_name == ADMIN_PERMISSION))
    elif role == ROLE_USER:
        query = query.filter(~User.permissions.any(UserPermission.permission_name == ADMIN_PERMISSION))
    return [u.to_dict() for u in query.order_by(User.created_at.desc(), User.id.desc()).all()]


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def create_user(payload: dict, created_by: int | None = None) -> User:
    """Create a user with a hashed password and the permission set for its role."""
    _check_fields(payload)
    missing = [f for f in ("username", "email", "password") if not payload.get(f)]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    username = _clean(payload["username"], "username", 64)
    email = _clean(payload["email"], "email", 255)
    role, flags = _role_and_flags(payload)
    names = permission_names_for(role, flags)
    password_hash = hash_password(payload["password"])
    _ensure_unique(username, email)

    with atomic():
        user = User(
            username=username,
            email=email,
            password_hash=password_hash,
            is_active=_status_to_active(payload.get("status", "active")),
            **{f: payload.get(f) for f in PROFILE_FIELDS},
        )
        db.session.add(user)
        db.session.flush()
        replace_permissions(user, role, flags, granted_by=created_by)

    logger.info("User %s created with %s permissions", user.username, len(names))
    return user


def update_user(user_id: int, payload: dict, updated_by: int | None = None) -> User:
    """
    Partial update. Password is re-hashed when present. When role or
    permissions is present the permission set is replaced atomically.
    """
    _check_fields(payload)

    username = _clean(payload["username"], "username", 64) if "username" in payload else None
    email = _clean(payload["email"], "email", 255) if "email" in payload else None
    password_hash = hash_password(payload["password"]) if payload.get("password") else None
    replace = "role" in payload or "permissions" in payload

    def _op():
        with atomic():
            user = lock_for_update(db.session.query(User).filter_by(id=user_id)).first()
            if user is None:
                raise NotFoundError("User not found")
            _ensure_unique(username, email, exclude_id=user_id)

            if username is not None:
                user.username = username
            if email is not None:
                user.email = email
            if password_hash is not None:
                user.password_hash = password_hash
            for name in PROFILE_FIELDS:
                if name in payload:
                    setattr(user, name, payload[name])
            if "status" in payload:
                user.is_active = _status_to_active(payload["status"])

            if replace:
                role, flags = _role_and_flags(payload, current_role=user.role)
                if role != ROLE_ADMIN and user.role == ROLE_ADMIN:
                    _ensure_not_last_admin(user.id, "demote")
                replace_permissions(user, role, flags, granted_by=updated_by)
        return user

    user = run_with_retry(_op)
    if replace:
        logger.info("Permissions replaced for user %s by %s", user_id, updated_by)
    return user


def _ensure_not_last_admin(user_id: int, action: str) -> None:
    other_admins = (
        db.session.query(UserPermission.user_id)
        .filter(UserPermission.permission_name == ADMIN_PERMISSION, UserPermission.user_id != user_id)
        .count()
    )
    if other_admins == 0:
        raise ConflictError(f"Cannot {action} the last admin user")


def delete_user(user_id: int, acting_user_id: int | None = None) -> None:
    if acting_user_id is not None and user_id == acting_user_id:
        raise ConflictError("You cannot delete your own account")

    with atomic():
        user = get_user(user_id)
        if user.role == ROLE_ADMIN:
            _ensure_not_last_admin(user.id, "delete")
        db.session.delete(user)
    logger.info("User %s deleted by %s", user_id, acting_user_id)
