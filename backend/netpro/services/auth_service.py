# Overview: Service-layer operations for auth; password hashing, login and signed session tokens.

"""
Authentication Service

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, 12 in production)
- Minimum 8 characters with at least one letter and one digit
- Session is a stateless HS256 JWT carried in the httpOnly auth cookie
- Inactive users cannot log in and their existing tokens stop resolving
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone

import bcrypt
from flask import current_app
from jose import JWTError, jwt

from ..extensions import db
from ..models import User
from ..time_utils import utcnow


logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes
BCRYPT_MAX_PASSWORD_BYTES = 72


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class AuthenticationError(Exception):
    """Raised for missing, invalid or expired credentials."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one letter
    - At least one digit

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r"[A-Za-z]", password):
        raise PasswordValidationError("Password must contain at least one letter")

    if not re.search(r"\d", password):
        raise PasswordValidationError("Password must contain at least one digit")


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_PASSWORD_BYTES]


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    rounds = int(current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")  # Store as string in database


def verify_password(password: str, password_hash: str | None) -> bool:
    """
    Verify password against bcrypt hash.

    Returns True if password matches hash, False otherwise.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash in the database
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


def authenticate(identifier: str, password: str) -> User | None:
    """
    Authenticate by username or email.

    Returns the user on success, None otherwise. Records last_login_at.
    """
    user = (
        db.session.query(User)
        .filter((User.username == identifier) | (User.email == identifier))
        .first()
    )
    if user is None or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def issue_token(user: User) -> str:
    """Sign a session token for the user; lifetime is AUTH_TOKEN_TTL_HOURS."""
    ttl = timedelta(hours=int(current_app.config["AUTH_TOKEN_TTL_HOURS"]))
    now = datetime.now(timezone.utc)
    claims = {
        "sub": str(user.id),
        "username": user.username,
        "iat": now,
        "exp": now + ttl,
    }
    return jwt.encode(
        claims,
        current_app.config["JWT_SECRET_KEY"],
        algorithm=current_app.config["JWT_ALGORITHM"],
    )


def decode_token(token: str) -> dict:
    """Verify signature and expiry; raises AuthenticationError on any problem."""
    try:
        claims = jwt.decode(
            token,
            current_app.config["JWT_SECRET_KEY"],
            algorithms=[current_app.config["JWT_ALGORITHM"]],
        )
    except JWTError as exc:
        raise AuthenticationError("Invalid or expired token") from exc
    if not claims.get("sub"):
        raise AuthenticationError("Invalid or expired token")
    return claims


def user_from_token(token: str) -> User:
    claims = decode_token(token)
    try:
        user_id = int(claims["sub"])
    except (TypeError, ValueError) as exc:
        raise AuthenticationError("Invalid or expired token") from exc
    user = db.session.get(User, user_id)
    if user is None or not user.is_active:
        raise AuthenticationError("Invalid or expired token")
    return user
