"""
api/routes/v1/auth.py -- Authentication and session REST endpoints.

Routes:
  POST /api/v1/auth/register         -- create account; returns token pair
  POST /api/v1/auth/login            -- password login; returns token pair
  POST /api/v1/auth/refresh          -- exchange (expired access, refresh) for a new pair
  POST /api/v1/auth/logout           -- revoke refresh token (requires auth)
  POST /api/v1/auth/change-password  -- change password, revoke refresh token (requires auth)
  GET  /api/v1/auth/profile          -- current user's profile (requires auth)

Handlers are thin: map the body to a service request, call AuthService, and
hand the Result to result_response(). Responses that carry tokens are sent
with Cache-Control: no-store.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.envelope import result_response
from api.models import ChangePasswordBody, LoginBody, RefreshBody, RegisterBody, ResultEnvelope
from auth.dependencies import get_current_user
from auth.models import ChangePasswordRequest, LoginRequest, RefreshRequest, RegisterRequest, User
from auth.service import AuthService

router = APIRouter()


def _service(request: Request) -> AuthService:
    return request.app.state.auth_service


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=ResultEnvelope)
def register(request: Request, body: RegisterBody) -> JSONResponse:
    """Register a new account and return a token pair plus the profile."""
    result = _service(request).register(RegisterRequest(**body.model_dump()))
    return result_response(result, no_store=True)


@router.post("/auth/login", response_model=ResultEnvelope)
def login(request: Request, body: LoginBody) -> JSONResponse:
    """Authenticate with username and password.

    Unknown username and wrong password produce the same 401 body.
    """
    result = _service(request).login(LoginRequest(username=body.username, password=body.password))
    return result_response(result, no_store=True)


@router.post("/auth/refresh", response_model=ResultEnvelope)
def refresh(request: Request, body: RefreshBody) -> JSONResponse:
    """Rotate the token pair. The presented refresh token stops working immediately."""
    result = _service(request).refresh_token(
        RefreshRequest(access_token=body.access_token, refresh_token=body.refresh_token)
    )
    return result_response(result, no_store=True)


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/logout", response_model=ResultEnvelope)
def logout(request: Request, current_user: User = Depends(get_current_user)) -> JSONResponse:
    return result_response(_service(request).logout(current_user.id))


@router.post("/auth/change-password", response_model=ResultEnvelope)
def change_password(
    request: Request,
    body: ChangePasswordBody,
    current_user: User = Depends(get_current_user),
) -> JSONResponse:
    """Change the caller's password. Existing refresh tokens are revoked on success."""
    result = _service(request).change_password(
        current_user.id,
        ChangePasswordRequest(**body.model_dump()),
    )
    return result_response(result)


@router.get("/auth/profile", response_model=ResultEnvelope)
def profile(request: Request, current_user: User = Depends(get_current_user)) -> JSONResponse:
    return result_response(_service(request).get_profile(current_user.id))
