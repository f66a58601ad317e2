"""FastAPI authentication dependencies."""

from __future__ import annotations

from dataclasses import dataclass

import jwt
from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from arena.auth.jwt import verify_token
from arena.auth.roles import Role
from arena.errors import AdminRequired, NotAuthenticated

_bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    """The authenticated caller, as asserted by the identity service."""

    user_id: int
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
) -> Principal:
    """Verify the bearer token and return the caller. Raises 401 on failure."""
    if credentials is None:
        raise NotAuthenticated()
    try:
        payload = verify_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        raise NotAuthenticated(f"Bad token: {e}") from e
    return Principal(user_id=int(payload["uid"]), role=Role(payload["role"]))


async def require_admin(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    """Same as get_current_principal but additionally requires the admin role."""
    if not principal.is_admin:
        raise AdminRequired()
    return principal
