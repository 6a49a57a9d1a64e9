"""
core/results.py -- Uniform success/failure envelope returned by every service.

Services never raise across their public boundary. Validation failures,
missing entities, bad credentials, and unexpected faults all come back as a
Result with is_success=False, a human-readable message, an optional list of
field-level errors, and a machine-readable ErrorCode. failure_from_exception()
is the single place an escaped exception becomes a Result. The HTTP layer maps the
code to a status; nothing else in the envelope leaks internals.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, Optional, TypeVar

from sqlalchemy.exc import OperationalError

T = TypeVar("T")


class ErrorCode(str, Enum):
    validation_error = "validation_error"
    invalid_credentials = "invalid_credentials"
    invalid_token = "invalid_token"
    invalid_refresh_token = "invalid_refresh_token"
    not_found = "not_found"
    conflict = "conflict"
    unavailable = "unavailable"
    internal_error = "internal_error"


@dataclass
class Result(Generic[T]):
    is_success: bool
    message: str = ""
    data: Optional[T] = None
    errors: list[str] = field(default_factory=list)
    code: Optional[ErrorCode] = None

    @classmethod
    def success(cls, data: Optional[T] = None, message: str = "") -> "Result[T]":
        return cls(is_success=True, message=message, data=data)

    @classmethod
    def failure(
        cls,
        code: ErrorCode,
        message: str,
        errors: Optional[list[str]] = None,
    ) -> "Result[T]":
        return cls(is_success=False, message=message, errors=list(errors or []), code=code)


UNAVAILABLE_MESSAGE = "The service is temporarily unavailable. Try again shortly."


def failure_from_exception(exc: Exception, message: str) -> Result:
    """Failure for an exception that escaped a service operation.

    OperationalError (locked database, lost connection) is transient and
    becomes unavailable; anything else is internal_error with the caller's
    generic message. Exception text never reaches the envelope.
    """
    if isinstance(exc, OperationalError):
        return Result.failure(ErrorCode.unavailable, UNAVAILABLE_MESSAGE)
    return Result.failure(ErrorCode.internal_error, message)
