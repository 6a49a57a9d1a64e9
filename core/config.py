"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads happen here. No module should call os.getenv()
directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY, access_token_expire_days ->
      ACCESS_TOKEN_EXPIRE_DAYS).

Token lifetimes are policy values, not invariants. The defaults (7-day access,
30-day refresh) are long for bearer credentials: an access token cannot be
revoked before it expires, only the refresh token can. Shorten
ACCESS_TOKEN_EXPIRE_DAYS in deployments where that matters.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, cities/, or cache/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("citygarage.config")

_DATA_DIR = Path(__file__).resolve().parent.parent / "data"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    access_token_expire_days: int = 7
    refresh_token_expire_days: int = 30
    bcrypt_rounds: int = 12

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    auth_db_url: str = f"sqlite:///{_DATA_DIR / 'citygarage_auth.db'}"
    cities_db_url: str = f"sqlite:///{_DATA_DIR / 'citygarage_cities.db'}"
    cache_db_path: str = str(_DATA_DIR / "citygarage_cache.db")

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    cache_default_ttl_seconds: int = 30 * 60

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce SECRET_KEY policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Issued tokens will not survive a restart.

        Production mode: refuse to start if SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters, since the key
            signs every access token.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("Using auto-generated SECRET_KEY. Tokens will not survive a restart.")
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        if self.access_token_expire_days <= 0 or self.refresh_token_expire_days <= 0:
            raise ValueError("Token lifetimes must be positive.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
