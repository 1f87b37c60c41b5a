"""
Permission names and role mappings.

A permission is a row in user_permissions identified by name. Screens are
gated by "<flag>_access" names; admins carry every screen permission plus
"admin_access". The set is always rebuilt from (role, flags), never merged.
"""

from __future__ import annotations

from .validation import ValidationError


# =============================================================================
# PERMISSION FLAGS
# =============================================================================

# Order mirrors the user management screen
PERMISSION_FLAGS = (
    "dashboard",
    "customers",
    "products",
    "packages",
    "invoices",
    "quotations",
    "proformas",
    "reports",
    "settings",
    "users",
    "stock",
    "cashpower",
)

ADMIN_PERMISSION = "admin_access"

ROLE_ADMIN = "admin"
ROLE_USER = "user"
ROLES = (ROLE_ADMIN, ROLE_USER)


def permission_name(flag: str) -> str:
    return f"{flag}_access"


ADMIN_PERMISSIONS = tuple(permission_name(f) for f in PERMISSION_FLAGS) + (ADMIN_PERMISSION,)


# =============================================================================
# HELPERS
# =============================================================================

def permission_names_for(role: str, flags: dict | None) -> list[str]:
    """
    Build the full permission set for a role and a flag map.

    admin -> every screen permission plus admin_access (flags ignored).
    user  -> one "<flag>_access" per truthy flag.

    Unknown roles or flags raise ValidationError.
    """
    if role not in ROLES:
        raise ValidationError(f"Invalid role: {role}")

    if role == ROLE_ADMIN:
        return list(ADMIN_PERMISSIONS)

    flags = flags or {}
    if not isinstance(flags, dict):
        raise ValidationError("permissions must be an object of flag -> bool")

    unknown = sorted(k for k in flags if k not in PERMISSION_FLAGS)
    if unknown:
        raise ValidationError(f"Unknown permission flags: {', '.join(unknown)}")

    return [permission_name(f) for f in PERMISSION_FLAGS if flags.get(f)]


def flags_from_names(names) -> dict[str, bool]:
    """Inverse view used when serializing a user for the UI."""
    held = set(names)
    is_admin = ADMIN_PERMISSION in held
    return {f: is_admin or permission_name(f) in held for f in PERMISSION_FLAGS}


def role_from_names(names) -> str:
    return ROLE_ADMIN if ADMIN_PERMISSION in set(names) else ROLE_USER
