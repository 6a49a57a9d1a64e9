"""
auth/service.py -- Session lifecycle: register, login, refresh, logout,
change password, profile.

Per-user session states:
  anonymous -> authenticated (login/register issues a token pair)
            -> authenticated, rotated (each refresh replaces the pair)
            -> revoked (logout or password change clears the refresh token)
            -> authenticated again only via a fresh login

Every public method returns a core.results.Result and never raises. Expected
failures come back with a specific ErrorCode; anything unexpected is logged
and converted at the method boundary: a transient database error becomes
unavailable, anything else internal_error.

Login failures share one message whether the username is unknown, the
account is inactive, or the password is wrong, so callers cannot enumerate
accounts. authenticate_user() equalizes timing for the same reason.

Refresh rotation goes through UserStore.rotate_refresh_token(), a
compare-and-swap on the stored token. Of two concurrent refreshes presenting
the same token, exactly one wins.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from auth.models import (
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    User,
    UserProfile,
)
from auth.store import UserStore, refresh_token_is_live
from auth.tokens import TokenError, TokenIssuer, authenticate_user, hash_password, verify_password
from auth.validators import validate_login, validate_password_change, validate_registration
from core.results import ErrorCode, Result, failure_from_exception

logger = logging.getLogger("citygarage.auth")

INVALID_CREDENTIALS_MESSAGE = "Invalid username or password."


class AuthService:
    def __init__(self, store: UserStore, issuer: TokenIssuer) -> None:
        self.store = store
        self.issuer = issuer

    # ------------------------------------------------------------------
    # Register / login
    # ------------------------------------------------------------------

    def register(self, request: RegisterRequest) -> Result[AuthResponse]:
        try:
            errors = validate_registration(request, self.store)
            if errors:
                return Result.failure(ErrorCode.validation_error, "Registration details are invalid.", errors)

            user = User(
                username=request.username,
                email=request.email,
                hashed_password=hash_password(request.password),
                first_name=request.first_name,
                last_name=request.last_name,
                role=request.role,
                is_active=True,
            )
            try:
                user_id = self.store.create_user(user)
            except IntegrityError:
                # Lost a race with a concurrent registration for the same name.
                return Result.failure(
                    ErrorCode.conflict,
                    "Registration details are invalid.",
                    ["This username or email address is already registered."],
                )

            created = self.store.get_by_id(user_id)
            response = self._issue_session(created)
            logger.info("Registered user %s (id=%d, role=%s)", created.username, user_id, created.role)
            return Result.success(response, "Registration successful.")
        except Exception as exc:
            logger.exception("Registration failed")
            return failure_from_exception(exc, "Registration failed.")

    def login(self, request: LoginRequest) -> Result[AuthResponse]:
        try:
            errors = validate_login(request)
            if errors:
                return Result.failure(ErrorCode.validation_error, "Login details are invalid.", errors)

            user = authenticate_user(self.store, request.username, request.password)
            if user is None:
                logger.info("Failed login attempt")
                return Result.failure(ErrorCode.invalid_credentials, INVALID_CREDENTIALS_MESSAGE)

            response = self._issue_session(user)
            self.store.update_last_login(user.id)
            refreshed = self.store.get_by_id(user.id)
            if refreshed is not None:
                response.user = UserProfile.from_user(refreshed)
            logger.info("User %s logged in", user.username)
            return Result.success(response, "Login successful.")
        except Exception as exc:
            logger.exception("Login failed")
            return failure_from_exception(exc, "Login failed.")

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    def refresh_token(self, request: RefreshRequest) -> Result[AuthResponse]:
        try:
            try:
                claims = self.issuer.parse_expired_token(request.access_token)
            except TokenError:
                return Result.failure(ErrorCode.invalid_token, "Invalid access token.")

            username = claims.get("sub")
            if not username:
                return Result.failure(ErrorCode.invalid_token, "Invalid access token.")

            user = self.store.get_by_username(username)
            if (
                user is None
                or not user.is_active
                or not request.refresh_token
                or user.refresh_token != request.refresh_token
                or not refresh_token_is_live(user)
            ):
                return Result.failure(ErrorCode.invalid_refresh_token, "Invalid refresh token.")

            new_refresh = self.issuer.issue_refresh_token()
            rotated = self.store.rotate_refresh_token(
                user.id,
                expected=request.refresh_token,
                new_token=new_refresh,
                expires_at=self.issuer.refresh_token_expiry(),
            )
            if not rotated:
                logger.warning("Refresh token for user %s was rotated concurrently", user.username)
                return Result.failure(ErrorCode.invalid_refresh_token, "Invalid refresh token.")

            access_token, expires_at = self.issuer.issue_access_token(user)
            response = AuthResponse(
                access_token=access_token,
                refresh_token=new_refresh,
                expires_at=expires_at.isoformat(),
                user=UserProfile.from_user(user),
            )
            return Result.success(response, "Token refreshed.")
        except Exception as exc:
            logger.exception("Token refresh failed")
            return failure_from_exception(exc, "Token refresh failed.")

    # ------------------------------------------------------------------
    # Logout / password / profile
    # ------------------------------------------------------------------

    def logout(self, user_id: int) -> Result[None]:
        try:
            self.store.revoke_refresh_token(user_id)
            return Result.success(message="Logged out. Refresh token revoked.")
        except Exception as exc:
            logger.exception("Logout failed for user id %s", user_id)
            return failure_from_exception(exc, "Logout failed.")

    def change_password(self, user_id: int, request: ChangePasswordRequest) -> Result[None]:
        try:
            errors = validate_password_change(request)
            if errors:
                return Result.failure(ErrorCode.validation_error, "Password change details are invalid.", errors)

            user = self.store.get_by_id(user_id)
            if user is None:
                return Result.failure(ErrorCode.not_found, "User not found.")

            if not verify_password(request.current_password, user.hashed_password):
                return Result.failure(ErrorCode.invalid_credentials, "Current password is incorrect.")

            self.store.update_user(user_id, hashed_password=hash_password(request.new_password))
            # A new password ends every existing session.
            self.store.revoke_refresh_token(user_id)
            logger.info("User %s changed password; refresh token revoked", user.username)
            return Result.success(message="Password changed. Please log in again.")
        except Exception as exc:
            logger.exception("Password change failed for user id %s", user_id)
            return failure_from_exception(exc, "Password change failed.")

    def get_profile(self, user_id: int) -> Result[UserProfile]:
        try:
            user = self.store.get_by_id(user_id)
            if user is None:
                return Result.failure(ErrorCode.not_found, "User not found.")
            return Result.success(UserProfile.from_user(user), "Profile retrieved.")
        except Exception as exc:
            logger.exception("Profile lookup failed for user id %s", user_id)
            return failure_from_exception(exc, "Profile lookup failed.")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _issue_session(self, user: User) -> AuthResponse:
        """Issue a fresh token pair and store its refresh half, replacing any prior one."""
        access_token, expires_at = self.issuer.issue_access_token(user)
        refresh_token = self.issuer.issue_refresh_token()
        self.store.set_refresh_token(user.id, refresh_token, self.issuer.refresh_token_expiry())
        return AuthResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=expires_at.isoformat(),
            user=UserProfile.from_user(user),
        )
