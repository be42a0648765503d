"""
Password hashing and access token helpers.

Passwords are hashed with bcrypt using a configurable cost factor. Access
tokens are HS256 JWTs carrying ``userId``, ``iat`` and ``exp``. Secrets and
lifetimes are passed in by the caller; nothing here reads configuration.
"""

from __future__ import annotations

import time
from typing import Any, Dict

import bcrypt
import jwt

from .errors import Unauthenticated

JWT_ALGORITHM = "HS256"


def hash_password(password: str, rounds: int) -> str:
    """Hash a password with bcrypt (auto-salted)."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time comparison against a bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def create_access_token(user_id: str, secret: str, expires_in: int) -> str:
    now = int(time.time())
    payload: Dict[str, Any] = {
        "userId": user_id,
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str, secret: str) -> Dict[str, Any]:
    """
    Verify signature and expiry and return the token payload.

    Raises ``Unauthenticated`` on any failure.
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[JWT_ALGORITHM],
            options={"require": ["exp", "iat"]},
        )
    except jwt.PyJWTError as exc:
        raise Unauthenticated() from exc
    if not isinstance(payload.get("userId"), str):
        raise Unauthenticated()
    return payload
