"""
auth/tokens.py -- JWT access tokens, opaque refresh tokens, password hashing.

Security design decisions:
  Access tokens: python-jose with HS256, signed with SECRET_KEY. Claims are
       sub (username), uid (user id), role, iat, exp. decode_access_token()
       fully verifies and returns None on any failure -- the HTTP dependency
       turns that into a 401.

  Refresh tokens: secrets.token_urlsafe(64), no embedded claims. The only
       state lives in the users table (one active token per user).

  Expired-token parsing: the refresh flow must recover the subject from an
       access token that has already expired, so parse_expired_token() skips
       the exp check but still verifies the signature. A token that cannot
       be decoded at all raises MalformedTokenError; a token whose signature
       does not verify raises InvalidSignatureError.

  Passwords: bcrypt directly (no passlib wrapper). The _DUMMY_HASH constant
       enables timing equalization in authenticate_user() so response time
       does not reveal whether a username exists.

Layer rule: no imports from api/, cities/, or cache/. Import from core/
is allowed.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

from core.config import Settings, get_settings

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("citygarage.auth")

_ALGORITHM = "HS256"


class TokenError(Exception):
    """Base class for access token parsing failures."""


class MalformedTokenError(TokenError):
    """The token is not a decodable JWT."""


class InvalidSignatureError(TokenError):
    """The token decodes but its signature does not verify."""


# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    bcrypt silently truncates input past 72 bytes; the validators cap
    password length well below that.
    """
    rounds = get_settings().bcrypt_rounds
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("citygarage_timing_dummy")


def authenticate_user(store: UserStore, username: str, password: str) -> User | None:
    """Authenticate a username/password pair with timing equalization.

    Always runs bcrypt whether or not the user exists, so unknown usernames
    and wrong passwords cost the same. Inactive accounts are rejected after
    the password check for the same reason.

    Returns the User on success, None on any failure.
    """
    user = store.get_by_username(username)
    if user is None:
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.hashed_password):
        return None
    if not user.is_active:
        return None
    return user


# ---------------------------------------------------------------------------
# Token issuer
# ---------------------------------------------------------------------------


class TokenIssuer:
    """Issues and parses access tokens; issues refresh tokens.

    Usage:
        issuer = TokenIssuer()
        token, expires_at = issuer.issue_access_token(user)
        claims = issuer.parse_expired_token(token)
    """

    def __init__(self, settings: Settings | None = None) -> None:
        settings = settings or get_settings()
        self._secret_key = settings.secret_key
        self.access_token_lifetime = timedelta(days=settings.access_token_expire_days)
        self.refresh_token_lifetime = timedelta(days=settings.refresh_token_expire_days)

    def issue_access_token(self, user: User) -> tuple[str, datetime]:
        """Encode a signed JWT for user. Returns (token, expiry)."""
        issued_at = datetime.now(timezone.utc)
        expires_at = issued_at + self.access_token_lifetime
        payload = {
            "sub": user.username,
            "uid": user.id,
            "role": user.role,
            "iat": issued_at,
            "exp": expires_at,
        }
        return jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM), expires_at

    def issue_refresh_token(self) -> str:
        """Return 64 random bytes as a URL-safe string (~86 chars)."""
        return secrets.token_urlsafe(64)

    def refresh_token_expiry(self) -> datetime:
        return datetime.now(timezone.utc) + self.refresh_token_lifetime

    def parse_expired_token(self, token: str) -> dict:
        """Return the claims of token, verifying the signature but not expiry.

        Raises MalformedTokenError if token is not a decodable JWT and
        InvalidSignatureError if the signature does not match SECRET_KEY.
        """
        try:
            jwt.get_unverified_claims(token)
        except JWTError as exc:
            raise MalformedTokenError("Token could not be decoded.") from exc
        try:
            return jwt.decode(
                token,
                self._secret_key,
                algorithms=[_ALGORITHM],
                options={"verify_exp": False},
            )
        except JWTError as exc:
            raise InvalidSignatureError("Token signature is invalid.") from exc

    def decode_access_token(self, token: str) -> dict | None:
        """Decode and fully verify a JWT. Returns the payload dict or None on any failure."""
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[_ALGORITHM])
        except JWTError:
            return None
        if "uid" not in payload or "sub" not in payload:
            return None
        return payload
