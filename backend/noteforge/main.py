"""
NoteForge Backend — FastAPI Application Factory
=================================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes app configuration, middleware registration, route mounting,
       and lifecycle management in one place.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn noteforge.main:app).

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────────┐ ┌──────────┐ ┌─────────────────┐  │
    │  │  Req ID      │→│ Logging  │→│  GZip / CORS    │  │
    │  └──────────────┘ └──────────┘ └─────────────────┘  │
    │                                                     │
    │  Routes:                                            │
    │  ┌──────────────────────────┐ ┌─────────────────┐   │
    │  │ /api/ai/* (credential,   │ │ GET /health     │   │
    │  │  notes, content, tags)   │ │                 │   │
    │  └──────────────────────────┘ └─────────────────┘   │
    │                                                     │
    │  State:  app.state.ai_service (one AIService)       │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Report degraded configuration (missing key is not fatal)
    3. Create the AIService unless one was injected
    Shutdown:
    1. Discard the bound credential and close open provider clients
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from noteforge import __version__
from noteforge.config import Settings, settings as default_settings
from noteforge.exceptions import (
    ErrorKind,
    NoteForgeError,
    ProviderError,
    ServiceNotConfiguredError,
    ValidationError,
)
from noteforge.middleware.logging import RequestLoggingMiddleware
from noteforge.middleware.request_id import RequestIDMiddleware, request_id_var
from noteforge.routes import ai, health
from noteforge.services.ai_service import AIService

logger = logging.getLogger(__name__)

# HTTP status per provider failure kind
PROVIDER_STATUS = {
    ErrorKind.INVALID_CREDENTIAL: 401,
    ErrorKind.PERMISSION_DENIED: 403,
    ErrorKind.QUOTA_EXCEEDED: 429,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.TIMEOUT: 504,
    ErrorKind.NETWORK_ERROR: 502,
    ErrorKind.MALFORMED_RESPONSE: 502,
    ErrorKind.UNKNOWN: 502,
}


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Called once during app startup, before any other initialization.
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),  # Docker captures stdout
        ],
        force=True,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("google_genai").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup: logging, configuration report, AIService creation.
    Shutdown: close every provider client so none outlives the app.
    """
    config: Settings = app.state.settings

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(config.log_level)
    logger.info("=" * 60)
    logger.info("NoteForge Backend starting up...")

    try:
        config.validate_required_for_production()
    except ValueError as e:
        # Not fatal: content and tag generation work without a key
        logger.warning("Configuration warning: %s", str(e))

    if getattr(app.state, "ai_service", None) is None:
        app.state.ai_service = AIService(config)

    logger.info("Server ready at http://%s:%d", config.backend_host, config.backend_port)
    logger.info("API docs: http://%s:%d/docs", config.backend_host, config.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("NoteForge Backend shutting down...")
    await app.state.ai_service.close()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to HTTP status codes and a consistent JSON body.

    Handler hierarchy:
        ValidationError            → 400 Bad Request
        ServiceNotConfiguredError  → 409 Conflict (bind a key first)
        ProviderError              → PROVIDER_STATUS[kind]
        NoteForgeError (base)      → 500 Internal Server Error
        Exception (fallback)       → 500 Internal Server Error

    Responses never include stack traces or credentials; details are logged
    server-side.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        """Client sent invalid input — tell them what's wrong."""
        rid = request_id_var.get("")
        logger.warning("[%s] Validation error: %s", rid, exc.message)
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "message": exc.message,
                "details": exc.context,
                "request_id": rid,
            },
        )

    @app.exception_handler(ServiceNotConfiguredError)
    async def handle_not_configured(request: Request, exc: ServiceNotConfiguredError):
        rid = request_id_var.get("")
        logger.info("[%s] AI generation requested without an API key", rid)
        return JSONResponse(
            status_code=409,
            content={
                "error": "service_not_configured",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(ProviderError)
    async def handle_provider_error(request: Request, exc: ProviderError):
        """Provider call failed; status and error code follow the failure kind."""
        rid = request_id_var.get("")
        status_code = PROVIDER_STATUS.get(exc.kind, 502)
        logger.error("[%s] Provider error (%s): %s", rid, exc.kind.value, exc.message)
        headers = {}
        if exc.retry_after:
            headers["Retry-After"] = str(exc.retry_after)
        return JSONResponse(
            status_code=status_code,
            content={
                "error": exc.kind.value,
                "message": exc.message,
                "details": exc.context,
                "request_id": rid,
            },
            headers=headers,
        )

    @app.exception_handler(NoteForgeError)
    async def handle_noteforge_error(request: Request, exc: NoteForgeError):
        rid = request_id_var.get("")
        logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Catch-all: generic 500 with a request ID; stack trace logged only."""
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again or contact support.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    config: Optional[Settings] = None,
    ai_service: Optional[AIService] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config:      Settings to use (defaults to the module-level settings).
        ai_service:  Pre-built AIService, e.g. one wired to a fake provider
                     in tests. Created in the lifespan when omitted.
    """
    config = config or default_settings

    app = FastAPI(
        title="NoteForge API",
        description=(
            "AI-assisted note generation using Google Gemini, with credential "
            "lifecycle management and rule-based fallbacks when AI is unavailable."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = config
    app.state.ai_service = ai_service

    # ── Register Middleware ───────────────────────────────────────────────
    # Middleware executes in REVERSE order of addition:
    # RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(ai.router)
    app.include_router(health.router)

    return app


# uvicorn expects `noteforge.main:app` to be importable
app = create_app()
