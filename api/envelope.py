"""
api/envelope.py -- Turn a service Result into an HTTP response.

The status code comes from the Result's ErrorCode; the body is always a
ResultEnvelope. Dataclass payloads (profiles, cities, paged results) are
flattened with dataclasses.asdict().
"""

from __future__ import annotations

import dataclasses

from fastapi.responses import JSONResponse

from api.models import ResultEnvelope
from core.results import ErrorCode, Result

_STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.validation_error: 400,
    ErrorCode.conflict: 400,
    ErrorCode.invalid_credentials: 401,
    ErrorCode.invalid_token: 401,
    ErrorCode.invalid_refresh_token: 401,
    ErrorCode.not_found: 404,
    ErrorCode.unavailable: 503,
    ErrorCode.internal_error: 500,
}


def _jsonable(value):
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    return value


def result_response(result: Result, success_status: int = 200, no_store: bool = False) -> JSONResponse:
    status = success_status if result.is_success else _STATUS_BY_CODE.get(result.code, 400)
    body = ResultEnvelope(
        is_success=result.is_success,
        message=result.message,
        data=_jsonable(result.data),
        errors=result.errors,
        code=result.code.value if result.code else None,
    )
    resp = JSONResponse(status_code=status, content=body.model_dump())
    if no_store:
        resp.headers["Cache-Control"] = "no-store"
    return resp
