from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ..auth import get_current_user
from ..models import PublicUser
from ..schemas import LoginEnvelope, LoginRequest, RegisterRequest, UserEnvelope, UserOut
from ..services import AuthService, get_auth_service

router = APIRouter(
    prefix="/api/auth",
    tags=["auth"],
)


# PUBLIC_INTERFACE
@router.post(
    "/register",
    response_model=UserEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Register",
    responses={
        201: {"description": "User registered"},
        400: {"description": "Validation error or email already registered"},
    },
)
def register(payload: RegisterRequest, service: AuthService = Depends(get_auth_service)) -> UserEnvelope:
    """Create an account. The response never includes the password hash."""
    user = service.register(payload.name, payload.email, payload.password)
    return UserEnvelope(message="User registered successfully", data=UserOut.model_validate(user))


# PUBLIC_INTERFACE
@router.post(
    "/login",
    response_model=LoginEnvelope,
    summary="Login",
    responses={
        200: {"description": "Token issued"},
        401: {"description": "Invalid email or password"},
    },
)
def login(payload: LoginRequest, service: AuthService = Depends(get_auth_service)) -> LoginEnvelope:
    """Exchange email + password for a bearer token."""
    token, user = service.login(payload.email, payload.password)
    return LoginEnvelope(message="Login successful", token=token, data=UserOut.model_validate(user))


# PUBLIC_INTERFACE
@router.get(
    "/me",
    response_model=UserEnvelope,
    summary="Current user",
    responses={401: {"description": "Missing, invalid or expired token"}},
)
def me(
    current_user: PublicUser = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
) -> UserEnvelope:
    """Return the profile of the authenticated user."""
    user = service.get_current_user(current_user["id"])
    return UserEnvelope(data=UserOut.model_validate(user))
