"""
auth/dependencies.py -- FastAPI Depends() helpers for bearer authentication.

The access token is presented as "Authorization: Bearer <token>" on every
authenticated call. It is verified in full (signature and expiry), then the
user it names is loaded and must still be active.

try_get_current_user() is the soft variant (returns None on failure).
get_current_user() wraps it and raises HTTP 401 if unauthenticated.

Access tokens are not revocable: logout and password change clear the
refresh token, but an access token stays valid until its exp claim.

Layer rule: auth/dependencies.py may import from fastapi because it is part
of the FastAPI dependency injection system. No imports from api/ or cities/.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.models import User
from auth.store import UserStore
from auth.tokens import TokenIssuer


def try_get_current_user(request: Request) -> User | None:
    """Return the authenticated User, or None. Never raises."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    token = auth_header[7:]

    issuer: TokenIssuer = request.app.state.token_issuer
    payload = issuer.decode_access_token(token)
    if payload is None:
        return None

    user_store: UserStore = request.app.state.user_store
    user = user_store.get_by_id(payload["uid"])
    if user is None or not user.is_active:
        return None
    return user


def get_current_user(request: Request) -> User:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(user: User = Depends(get_current_user)): ...
    """
    user = try_get_current_user(request)
    if user is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
