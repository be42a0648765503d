from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .errors import Unauthenticated
from .models import PublicUser
from .services import AuthService, get_auth_service

_security = HTTPBearer(auto_error=False)


# PUBLIC_INTERFACE
def get_current_user(
    request: Request,
    creds: Optional[HTTPAuthorizationCredentials] = Depends(_security),
    auth_service: AuthService = Depends(get_auth_service),
) -> PublicUser:
    """
    Enforce bearer-token authentication on protected routes.

    Behavior:
    - Reads 'Authorization: Bearer <token>'. A missing header or another scheme
      raises Unauthenticated ("Not authorized, no token").
    - Verifies the token signature and expiry and resolves its userId to a
      stored user; any failure raises Unauthenticated ("Not authorized, token failed").
    - On success the public user is returned and kept on request.state.user.

    Usage:
        @router.get("/", ...)
        def handler(current_user: PublicUser = Depends(get_current_user)): ...
    """
    if creds is None or not creds.credentials:
        raise Unauthenticated("Not authorized, no token")

    user = auth_service.authenticate(creds.credentials)
    request.state.user = user
    return user
