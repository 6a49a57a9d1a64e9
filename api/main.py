"""
api/main.py -- FastAPI application entry point for citygarage.

Run with:  uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware -- adds CORS headers for allowed browser origins
  2. log_requests   -- one log line per request with status and latency

Lifespan builds every process-wide resource once (stores, cache, token
issuer, services), hangs them on app.state, and closes them on shutdown.
Route handlers reach them through request.app.state -- nothing is imported
as a module-level singleton.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.cities import router as cities_router
from api.routes.v1.hotels import router as hotels_router
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenIssuer
from cache.store import CacheStore
from cities.service import CityService
from cities.store import CityStore
from core.config import get_settings
from hotels.service import HotelService
from hotels.store import HotelStore

__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("citygarage.api")


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


def attach_services(
    app: FastAPI,
    user_store: UserStore,
    city_store: CityStore,
    hotel_store: HotelStore,
    cache: CacheStore,
    issuer: TokenIssuer,
) -> None:
    """Wire stores, cache and services onto app.state."""
    app.state.user_store = user_store
    app.state.city_store = city_store
    app.state.hotel_store = hotel_store
    app.state.cache = cache
    app.state.token_issuer = issuer
    app.state.auth_service = AuthService(user_store, issuer)
    app.state.city_service = CityService(city_store, cache)
    app.state.hotel_service = HotelService(hotel_store, city_store, cache)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create resources on startup; close them symmetrically on shutdown."""
    logger.info("citygarage API starting up")
    cache = CacheStore()
    purged = cache.purge_expired()
    logger.info("Cache initialized (%d expired entries purged)", purged)
    attach_services(app, UserStore(), CityStore(), HotelStore(), cache, TokenIssuer())
    logger.info("Stores and services initialized")

    yield

    app.state.cache.close()
    app.state.hotel_store.close()
    app.state.city_store.close()
    app.state.user_store.close()
    logger.info("citygarage API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="citygarage API",
    description="City / Hotel / Garage / Car backend with JWT sessions and cached paging.",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(cities_router, prefix="/api/v1", tags=["Cities"])
app.include_router(hotels_router, prefix="/api/v1", tags=["Hotels"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# Service failures are already Results and never reach these. These cover
# framework-level errors: body/query validation, HTTPException from the auth
# dependency, and anything unexpected.
# ---------------------------------------------------------------------------


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or query params fail validation."""
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(exc.errors()),
            )
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    When detail is already a structured dict, use it directly as the error
    field rather than stringifying it.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler. The traceback goes to the log only, never to the client."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(),
    )


@app.get("/api/v1/health", tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(version=__version__)
