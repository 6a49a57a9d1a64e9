"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and services
do the work; UserProfile and AuthResponse are the only shapes that leave
the auth layer, and neither carries a password hash or refresh token state.

Layer rule: no imports from api/, cities/, or cache/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    user = "User"
    admin = "Admin"
    manager = "Manager"


VALID_ROLES = tuple(r.value for r in Role)


@dataclass
class User:
    """A stored identity.

    refresh_token and refresh_token_expires_at are both None when the user
    has no active session (never logged in, logged out, or changed password).
    Only one refresh token is active per user at a time.
    """

    username: str
    email: str
    hashed_password: str
    first_name: str = ""
    last_name: str = ""
    role: str = Role.user.value
    id: int | None = None
    is_active: bool = True
    created_at: str | None = None  # ISO 8601, set by store on insert
    last_login: str | None = None
    refresh_token: str | None = None
    refresh_token_expires_at: str | None = None  # ISO 8601


@dataclass
class UserProfile:
    """Public projection of a User."""

    id: int
    username: str
    email: str
    first_name: str
    last_name: str
    role: str
    is_active: bool
    created_at: str | None = None
    last_login: str | None = None

    @classmethod
    def from_user(cls, user: User) -> "UserProfile":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            role=user.role,
            is_active=user.is_active,
            created_at=user.created_at,
            last_login=user.last_login,
        )


@dataclass
class AuthResponse:
    """Token pair plus the profile it was issued for."""

    access_token: str
    refresh_token: str
    expires_at: str  # ISO 8601 access token expiry
    user: UserProfile
    token_type: str = "bearer"  # noqa: S105 # nosec B105 -- OAuth token type, not a password


# ---------------------------------------------------------------------------
# Service inputs
# ---------------------------------------------------------------------------


@dataclass
class RegisterRequest:
    username: str
    email: str
    password: str
    confirm_password: str
    first_name: str
    last_name: str
    role: str = Role.user.value


@dataclass
class LoginRequest:
    username: str
    password: str


@dataclass
class RefreshRequest:
    access_token: str
    refresh_token: str


@dataclass
class ChangePasswordRequest:
    current_password: str
    new_password: str
    confirm_new_password: str
