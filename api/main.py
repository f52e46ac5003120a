"""
api/main.py -- FastAPI application entry point for Products CMS.

Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware  -- adds CORS headers for allowed browser origins
                        (credentials allowed so the session cookie travels)
  2. log_requests    -- one log line per request with latency

Lifespan handles startup (credential store, product store) and shutdown
(engine disposal) symmetrically. Both stores are process-wide and never
mutated after startup; each request is otherwise stateless.

Importing this module loads settings through auth.tokens, so a missing
JWT_SECRET stops the process here, before the server binds a port.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import HealthResponse, fail
from api.routes.v1.auth import router as auth_router
from api.routes.v1.products import router as products_router
from auth.errors import AuthError
from auth.store import UserStore
from catalog.store import ProductStore
from core.config import get_settings

_VERSION = "1.0.0"

_settings = get_settings()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=_settings.log_level.upper(),
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("productscms.api")


# ---------------------------------------------------------------------------
# Lifespan -- modern startup / shutdown pattern (replaces @app.on_event)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the stores on startup and dispose their engines on shutdown."""
    logger.info("Products CMS starting up (environment=%s)", _settings.environment)
    app.state.user_store = UserStore()
    app.state.product_store = ProductStore()
    logger.info("Stores initialized (has_users=%s)", app.state.user_store.has_users())

    yield

    app.state.product_store.close()
    app.state.user_store.close()
    logger.info("Products CMS shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Products CMS API",
    description="Admin dashboard API: email/password sessions and product management.",
    version=_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type"],
    max_age=3600,
)


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


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

app.include_router(auth_router, prefix="/api", tags=["Auth"])
app.include_router(products_router, prefix="/api", tags=["Products"])
# Web UI router is mounted by asgi.py, not here.


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same {success: false, error} envelope so clients
# can parse every failure the same way.
# ---------------------------------------------------------------------------


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Render a domain error with its own status and client-safe message."""
    return JSONResponse(status_code=exc.status_code, content=fail(exc.message))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed JSON or wrong field types. Field detail goes to the log only."""
    logger.info("Request validation failed on %s %s: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(status_code=400, content=fail("Invalid request body"))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=fail(str(exc.detail)))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the server log only, never to the
    response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=fail("Internal server error"))


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state. No authentication.
# ---------------------------------------------------------------------------


@app.get("/api/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness, version and whether the database answers."""
    try:
        request.app.state.user_store.ping()
        database = "ok"
    except SQLAlchemyError:
        logger.exception("Health check: database unavailable")
        database = "error"
    return HealthResponse(version=_VERSION, database=database)
