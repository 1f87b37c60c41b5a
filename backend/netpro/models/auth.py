from __future__ import annotations

from ..extensions import db
from netpro.permissions import flags_from_names, role_from_names
from netpro.time_utils import to_utc_z


class User(db.Model):
    """
    Back-office operator account.

    Username and email are globally unique. Effective access is the set of
    UserPermission rows; role is derived from it (admin_access => admin).
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("username", name="uq_users_username"),
        db.UniqueConstraint("email", name="uq_users_email"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), nullable=False, index=True)
    email = db.Column(db.String(255), nullable=False)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    first_name = db.Column(db.String(100), nullable=True)
    last_name = db.Column(db.String(100), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    permissions = db.relationship(
        "UserPermission",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy=True,
        foreign_keys="UserPermission.user_id",
    )

    @property
    def permission_names(self) -> set[str]:
        return {p.permission_name for p in self.permissions}

    @property
    def role(self) -> str:
        return role_from_names(self.permission_names)

    def has_permission(self, name: str) -> bool:
        return name in self.permission_names

    def to_dict(self) -> dict:
        names = self.permission_names
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "phone": self.phone,
            "status": "active" if self.is_active else "inactive",
            "role": role_from_names(names),
            "permissions": flags_from_names(names),
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }


class UserPermission(db.Model):
    """One granted permission name for a user (e.g. invoices_access)."""
    __tablename__ = "user_permissions"
    __table_args__ = (
        db.UniqueConstraint("user_id", "permission_name", name="uq_user_permissions_user_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    permission_name = db.Column(db.String(64), nullable=False)
    granted_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    granted_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User", back_populates="permissions", foreign_keys=[user_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "permission_name": self.permission_name,
            "granted_by_user_id": self.granted_by_user_id,
            "granted_at": to_utc_z(self.granted_at),
        }
