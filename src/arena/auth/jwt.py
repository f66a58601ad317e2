"""
HS256 JWT verification.

Tokens are issued by the identity service and carry the user id (``uid``)
and role (``role``). ``create_access_token`` mirrors the issuer's format and
is used by tooling and tests.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from arena.auth.roles import Role
from arena.config import get_settings


def create_access_token(user_id: int, role: Role = Role.USER) -> str:
    """
    Create an access token.

    Args:
        user_id: The user's database ID.
        role: The user's role.

    Returns:
        Encoded JWT string.
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "uid": user_id,
        "role": role.value,
        "iss": settings.jwt_issuer,
        "iat": now,
        "exp": now + timedelta(minutes=settings.jwt_access_token_expire_minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict[str, Any]:
    """
    Decode and verify an access token.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired or lacks claims.
    """
    settings = get_settings()
    payload = jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[settings.jwt_algorithm],
        issuer=settings.jwt_issuer,
        options={"require": ["exp", "uid", "role"]},
    )
    if payload["role"] not in {r.value for r in Role}:
        raise jwt.InvalidTokenError("Unknown role")
    return payload
