"""
Diary Backend — FastAPI Application Factory
============================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn diary_api.main:app)
       and by the test suite for a fresh app per test.

Application Architecture:
    ┌─────────────────────────────────────────────────────────┐
    │                     FastAPI App                         │
    │                                                         │
    │  Middleware Chain:                                      │
    │  ┌──────────────┐ ┌──────────┐ ┌──────────┐             │
    │  │  Rate Limit  │→│ Req ID   │→│ Logging  │→ GZip → CORS│
    │  └──────────────┘ └──────────┘ └──────────┘             │
    │                                                         │
    │  Routes:                                                │
    │  ┌───────────────────────┐ ┌───────────────┐ ┌────────┐ │
    │  │ POST/GET/PUT/DEL /api │ │ /summary-data │ │/health │ │
    │  └───────────────────────┘ └───────────────┘ └────────┘ │
    │                                                         │
    │  Exception Handlers → {ok: false, error, request_id}:   │
    │  BadRequest→400 │ MethodNotAllowed→405 │ Store*→500     │
    └─────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  configure logging, report configuration warnings
    Shutdown: dispose the store engine (close pooled connections)
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from diary_api import __version__
from diary_api.config import settings
from diary_api.database import dispose_engine
from diary_api.exceptions import (
    MSG_BAD_PAYLOAD,
    MSG_INTERNAL,
    MSG_NOT_FOUND,
    BadRequestError,
    DiaryError,
    MethodNotAllowedError,
    StoreFailureError,
    StoreUnavailableError,
)
from diary_api.middleware.logging import RequestLoggingMiddleware
from diary_api.middleware.rate_limit import RateLimitMiddleware
from diary_api.middleware.request_id import RequestIDMiddleware, request_id_var
from diary_api.responses import DiaryJSONResponse
from diary_api.routes import health, records, summary

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Output: stdout (captured by the container runtime)
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party loggers that are chatty at INFO/DEBUG
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup:  logging, configuration warnings (never fatal).
    Shutdown: dispose the store engine.
    """
    setup_logging()
    logger.info("=" * 60)
    logger.info("Diary backend %s starting up...", __version__)

    for warning in settings.startup_warnings():
        logger.warning("Configuration: %s", warning)

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("Diary backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def error_response(
    status_code: int,
    message: str,
    headers: Optional[dict] = None,
) -> DiaryJSONResponse:
    """`{ok: false, error, request_id}` with the given status."""
    return DiaryJSONResponse(
        status_code=status_code,
        content={"ok": False, "error": message, "request_id": request_id_var.get("")},
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for consistent error responses.

    Handler hierarchy:
        BadRequestError         → 400 (client can fix the request)
        RequestValidationError  → 400
        StarletteHTTPException  → its status (404, 405 as MethodNotAllowedError)
        StoreUnavailableError   → 500 (deployment missing DIARY_KV_URL)
        StoreFailureError       → 500 (generic message, details logged)
        DiaryError (base)       → its status_code
        Exception (fallback)    → 500

    Security: responses never contain driver errors or stack traces; those
    are logged server-side with the request ID.
    """

    @app.exception_handler(BadRequestError)
    async def handle_bad_request(request: Request, exc: BadRequestError):
        rid = request_id_var.get("")
        logger.warning("[%s] Bad request: %s | Context: %s", rid, exc.message, exc.context)
        return error_response(400, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        rid = request_id_var.get("")
        logger.warning("[%s] Request validation failed: %s", rid, exc.errors())
        return error_response(400, MSG_BAD_PAYLOAD)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        """Routing errors raised by Starlette (unknown path, unsupported method)."""
        if exc.status_code == 405:
            error = MethodNotAllowedError(method=request.method, context={"path": request.url.path})
            logger.info("[%s] Method not allowed | Context: %s", request_id_var.get(""), error.context)
            message = error.message
        elif exc.status_code == 404:
            message = MSG_NOT_FOUND
        else:
            message = str(exc.detail)
        return error_response(exc.status_code, message, headers=getattr(exc, "headers", None))

    @app.exception_handler(StoreUnavailableError)
    async def handle_store_unavailable(request: Request, exc: StoreUnavailableError):
        rid = request_id_var.get("")
        logger.error("[%s] Store binding missing for %s %s", rid, request.method, request.url.path)
        return error_response(500, exc.message)

    @app.exception_handler(StoreFailureError)
    async def handle_store_failure(request: Request, exc: StoreFailureError):
        rid = request_id_var.get("")
        logger.error("[%s] Store failure: %s | Context: %s", rid, exc.message, exc.context)
        return error_response(500, exc.message)

    @app.exception_handler(DiaryError)
    async def handle_diary_error(request: Request, exc: DiaryError):
        rid = request_id_var.get("")
        logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return error_response(500, MSG_INTERNAL)


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns: Fully configured FastAPI instance ready to receive requests.
    """
    app = FastAPI(
        title="Diary API",
        description=(
            "Diary backend: stores free-form questionnaire entries in a key-value "
            "store and aggregates them into histograms over a trailing window of days."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        default_response_class=DiaryJSONResponse,
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Middleware executes in REVERSE order of addition:
    # RateLimit → RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(records.router)
    app.include_router(summary.router)
    app.include_router(health.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
# uvicorn expects `diary_api.main:app` to be importable
app = create_app()
