"""
api/main.py -- FastAPI application entry point for the product catalog.

Run with:  uvicorn asgi:app --reload
           python asgi.py

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. log_requests          -- method, path, status and latency for every request

Lifespan handles startup (product store, user roster and its seed accounts)
and shutdown (dispose of the database engine) symmetrically.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.openapi.docs import get_redoc_html, get_swagger_ui_html
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorResponse, HealthOut, HealthResponse
from api.routes.auth import router as auth_router
from api.routes.products import router as products_router
from auth.dependencies import get_current_user
from auth.models import TokenClaims
from auth.store import UserStore, seed_default_users
from auth.tokens import hash_password
from catalog.store import ProductStore
from core.config import get_settings

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("catalog.api")

settings = get_settings()

# ---------------------------------------------------------------------------
# Lifespan -- modern startup / shutdown pattern (replaces @app.on_event)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown.
    """
    logger.info("Catalog API starting up (version %s)", settings.app_version)
    app.state.products = ProductStore(settings.database_url)
    logger.info("Product store initialized")
    app.state.user_store = UserStore()
    if settings.seed_default_users:
        seed_default_users(app.state.user_store, hash_password)
    logger.info("Auth initialized (%d user(s))", app.state.user_store.count())

    yield

    app.state.products.close()
    logger.info("Catalog API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Product Catalog API",
    description="Product catalog with search, cursor pagination and JWT-protected writes.",
    version=settings.app_version,
    lifespan=lifespan,
    # Disable built-in /docs and /redoc so we can add auth protection.
    # Auth-protected equivalents are registered below.
    docs_url=None,
    redoc_url=None,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=settings.allowed_hosts,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
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

app.include_router(products_router, prefix="/api", tags=["Products"])
app.include_router(auth_router, tags=["Auth"])


# ---------------------------------------------------------------------------
# Auth-protected API documentation
#
# /docs and /redoc are disabled on the FastAPI() constructor and replaced
# here with routes that require a valid Bearer token.
# ---------------------------------------------------------------------------


@app.get("/docs", include_in_schema=False)
async def docs(user: TokenClaims = Depends(get_current_user)):
    """Swagger UI -- requires authentication."""
    return get_swagger_ui_html(openapi_url="/openapi.json", title="Product Catalog API")


@app.get("/redoc", include_in_schema=False)
async def redoc(user: TokenClaims = Depends(get_current_user)):
    """ReDoc UI -- requires authentication."""
    return get_redoc_html(openapi_url="/openapi.json", title="Product Catalog API")


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error(status_code: int, code: str, message: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(code=code, message=message).model_dump(),
        headers=headers,
    )


def _field_name(loc: tuple) -> str:
    """Drop the "body"/"query"/"path" prefix from a pydantic error location."""
    if loc and loc[0] in ("body", "query", "path", "header"):
        loc = loc[1:]
    return ".".join(str(part) for part in loc)


def _validation_message(errors: list[dict]) -> str:
    """Pick one human-readable message for a failed request.

    A missing field wins over every other problem so clients learn first
    which required field they left out.
    """
    missing = next((e for e in errors if e.get("type") == "missing"), None)
    if missing is not None:
        name = _field_name(tuple(missing.get("loc", ())))
        return f"Field '{name}' is required." if name else "Request body is required."
    first = errors[0] if errors else {}
    kind = first.get("type", "")
    msg = first.get("msg", "Invalid request.")
    if kind == "json_invalid":
        return "Request body is not valid JSON."
    if kind == "value_error":
        return msg.removeprefix("Value error, ")
    name = _field_name(tuple(first.get("loc", ())))
    return f"Invalid value for '{name}': {msg}." if name else f"{msg}."


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with the envelope when the body, query or path fails validation."""
    return _error(400, "validation_error", _validation_message(list(exc.errors())))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return the envelope for every HTTPException, including unmatched routes.

    Route handlers raise HTTPException with detail=ErrorDetail(...).model_dump()
    (a dict). Framework-raised exceptions carry a plain string detail.
    """
    headers = getattr(exc, "headers", None)
    if isinstance(exc.detail, dict):
        return _error(
            exc.status_code,
            str(exc.detail.get("code", f"http_{exc.status_code}")),
            str(exc.detail.get("message", "")),
            headers,
        )
    if exc.status_code == 404:
        return _error(404, "not_found", "Resource not found.", headers)
    return _error(exc.status_code, f"http_{exc.status_code}", str(exc.detail), headers)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@app.get("/", include_in_schema=True, tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(
        message="Product catalog API is running.",
        data=HealthOut(version=settings.app_version),
    )
