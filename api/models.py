"""
API request and response models for the citygarage REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py,
cities/models.py and core/paging.py, which own the internal domain
representation. Route handlers map between the two.

Field rules here are transport-level (types, sane length caps). Business
validation -- password complexity, uniqueness, roles -- lives in the
validators and comes back inside the result envelope.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Auth requests
# ---------------------------------------------------------------------------


class RegisterBody(BaseModel):
    """Request body for POST /api/v1/auth/register.

    Fields are passed through untouched: passwords must hash exactly as typed
    so the same string logs in later, and username/email are echoed back as
    given. Stray whitespace in those is rejected by the validators instead.
    """

    username: str = Field(default="", max_length=255)
    email: str = Field(default="", max_length=255)
    password: str = Field(default="", max_length=255)
    confirm_password: str = Field(default="", max_length=255)
    first_name: str = Field(default="", max_length=255)
    last_name: str = Field(default="", max_length=255)
    role: str = Field(default="User", max_length=20)


class LoginBody(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    username: str = Field(default="", max_length=255)
    password: str = Field(default="", max_length=255)


class RefreshBody(BaseModel):
    """Request body for POST /api/v1/auth/refresh."""

    access_token: str = Field(max_length=4096)
    refresh_token: str = Field(max_length=255)


class ChangePasswordBody(BaseModel):
    """Request body for POST /api/v1/auth/change-password."""

    current_password: str = Field(default="", max_length=255)
    new_password: str = Field(default="", max_length=255)
    confirm_new_password: str = Field(default="", max_length=255)


# ---------------------------------------------------------------------------
# City and hotel requests
# ---------------------------------------------------------------------------


class CityBody(BaseModel):
    """Request body for POST /api/v1/cities and PUT /api/v1/cities/{id}."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(default="", max_length=255)
    population: int = 0


class HotelBody(BaseModel):
    """Request body for POST /api/v1/hotels and PUT /api/v1/hotels/{id}."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(default="", max_length=255)
    stars: int = 0
    city_id: int = 0


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class ResultEnvelope(BaseModel):
    """Uniform body for every service-backed endpoint, success or failure."""

    model_config = ConfigDict(frozen=True)

    is_success: bool
    message: str = ""
    data: Optional[Any] = None
    errors: list[str] = Field(default_factory=list)
    code: Optional[str] = None


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned by framework-level handlers."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
