"""
SiteLog Backend: FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes configuration, middleware registration, route mounting,
       static file serving and lifecycle management in one place.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn (uvicorn sitelog.main:app) and by the test suite.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                     FastAPI App                          │
    │                                                          │
    │  Middleware Chain:  Request ID → Logging → CORS          │
    │                                                          │
    │  Routes:                                                 │
    │   POST /api/auth/register   POST /api/auth/login         │
    │   POST /api/reports  GET /api/reports  GET /api/reports/1│
    │   GET /health        GET /uploads/<file> (static)        │
    │                                                          │
    │  Exception Handlers:                                     │
    │   Validation/Conflict→400  Auth→401  NotFound→404        │
    │   Database/FileStorage/unexpected→500                    │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  configure logging, warn about missing secrets, ensure the
              upload directory exists
    Shutdown: dispose the database handle (closes pooled connections)
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from sitelog import __version__
from sitelog.config import Settings, settings as default_settings
from sitelog.database import Database
from sitelog.exceptions import (
    AuthenticationError,
    ConflictError,
    DatabaseError,
    FileStorageError,
    NotFoundError,
    ValidationError,
)
from sitelog.middleware.logging import RequestLoggingMiddleware
from sitelog.middleware.request_id import RequestIDMiddleware, request_id_var
from sitelog.routes import auth, health, reports
from sitelog.schemas.common import field_errors
from sitelog.services.file_service import FileService, file_service

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str) -> None:
    """
    Configure logging for the entire application.

    Format: 2024-03-01T08:30:00 [INFO] sitelog.services.report_service: ...
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # These log every operation at INFO/DEBUG
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    config: Settings = app.state.settings

    setup_logging(config.log_level)
    logger.info("SiteLog Backend starting up...")

    try:
        config.validate_required_for_production()
    except ValueError as e:
        # Development keeps running; tokens are signed with an empty secret
        logger.warning("%s", str(e))

    logger.info("Upload directory: %s", app.state.file_service.storage_root)
    logger.info("Server ready at http://%s:%d", config.host, config.port)

    yield

    logger.info("SiteLog Backend shutting down...")
    await app.state.database.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(error: str, message: str, **extra) -> dict:
    body = {"error": error, "message": message}
    body.update({key: value for key, value in extra.items() if value is not None})
    body["request_id"] = request_id_var.get("")
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to HTTP status codes and response bodies.

        ValidationError / RequestValidationError → 400
        ConflictError                            → 400
        AuthenticationError                      → 401
        NotFoundError                            → 404
        DatabaseError / FileStorageError         → 500 (generic message)
        Exception (fallback)                     → 500 (generic message)

    5xx responses never carry internal details; those are logged.
    """

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = field_errors(jsonable_encoder(exc.errors()))
        logger.warning("[%s] Request validation failed: %s", request_id_var.get(""), errors)
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", "Request validation failed", errors=errors),
        )

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=400,
            content=_error_body(
                "validation_error",
                exc.message,
                errors=exc.errors or None,
                details=exc.context or None,
            ),
        )

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        return JSONResponse(status_code=400, content=_error_body("conflict", exc.message))

    @app.exception_handler(AuthenticationError)
    async def handle_authentication(request: Request, exc: AuthenticationError):
        return JSONResponse(
            status_code=401,
            content=_error_body("unauthorized", exc.message),
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content=_error_body("not_found", exc.message))

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error(
            "[%s] Database error: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        return JSONResponse(status_code=500, content=_error_body("server_error", exc.message))

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        logger.error(
            "[%s] File storage error: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        return JSONResponse(status_code=500, content=_error_body("server_error", exc.message))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "internal_server_error",
                "An unexpected error occurred. Please try again later.",
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    config: Optional[Settings] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    """
    Assemble the application.

    Args:
        config:   Settings override (defaults to the module-level settings)
        database: Store handle override; tests pass a SQLite-backed handle
    """
    config = config or default_settings

    app = FastAPI(
        title="SiteLog API",
        description="Landfill and site inspection reports with photo attachments.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = config
    app.state.database = database or Database.from_settings(config)

    # Last added = outermost: RequestID → Logging → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(reports.router)
    app.include_router(health.router)

    # One FileService owns both the directory and the public prefix, so
    # attachment URLs always resolve against this mount
    storage = file_service if config is default_settings else FileService(config=config)
    app.state.file_service = storage
    app.mount(
        storage.url_prefix,
        StaticFiles(directory=str(storage.storage_root)),
        name="uploads",
    )

    return app


app = create_app()
