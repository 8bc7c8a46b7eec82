#!/usr/bin/env python3

"""
Main application entry point for the Taskboard task management API.

Architecture: FastAPI application backed by an async SQLAlchemy database.
Key Features: Lifecycle management, database health checks, uniform error
bodies, security headers, per-IP rate limiting and CORS configuration.
"""

import asyncio
import sys

# Add this block to switch asyncio event loop policy on Windows
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

import errno
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from taskboard.api.auth import router as auth_router
from taskboard.api.projects import router as projects_router
from taskboard.api.tasks import router as tasks_router
from taskboard.config import settings
from taskboard.db import check_db_connection, close_db, init_db
from taskboard.utils.logger import setup_logger
from taskboard.utils.rate_limit import RateLimiter, RateLimitMiddleware, RateLimitRule

logger = setup_logger("main")

INTERNAL_ERROR_MESSAGE = "An internal server error occurred"

SECURITY_HEADERS = {
    "Content-Security-Policy": (
        "default-src 'self'; style-src 'self' 'unsafe-inline'; "
        "script-src 'self'; img-src 'self' data: https:"
    ),
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}
HSTS_HEADER = "max-age=31536000; includeSubDomains; preload"

# Location segments that name where a value came from rather than which field
_LOCATION_ROOTS = {"body", "query", "path", "header", "cookie"}


def format_validation_error(errors: list[dict]) -> str:
    """Turn the first pydantic error into a single client-facing sentence."""
    if not errors:
        return "Invalid request"

    error = errors[0]
    parts = [
        str(part)
        for part in error.get("loc", ())
        if isinstance(part, str) and part not in _LOCATION_ROOTS
    ]
    field = ".".join(parts)
    message = error.get("msg", "Invalid value")
    error_type = error.get("type")

    if error_type == "missing":
        return f"{field} is required" if field else "Request body is required"
    if error_type == "extra_forbidden":
        return f"{field} is not allowed"
    if error_type == "value_error":
        message = message.removeprefix("Value error, ")
        # Library messages such as EmailStr's do not name the field
        if message.startswith("value is") and field:
            return f"{field}: {message}"
        return message
    return f"{field}: {message}" if field else message


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application startup...")
    try:
        logger.info("Initializing database...")
        await init_db()
        logger.info("Database initialization complete.")

        logger.info("Checking database connectivity...")
        if await check_db_connection():
            logger.info("Database connectivity confirmed.")
        else:
            logger.critical("Database connectivity check failed.")
            raise SystemExit("Database connection failed.")

    except Exception as e:
        logger.critical(f"Startup error: {e}")
        raise SystemExit(f"Startup failed: {e}") from e

    logger.info(f"Taskboard API startup successful ({settings.environment}).")
    yield

    logger.info("Taskboard API shutdown...")
    await close_db()
    logger.info("Shutdown complete.")


def build_rate_limit_rules() -> list[RateLimitRule]:
    window = settings.rate_limit_window_seconds
    return [
        RateLimitRule(
            path_prefix="/api/auth",
            limiter=RateLimiter(settings.auth_rate_limit_max, window),
            message="Too many authentication attempts, please try again later",
        ),
        RateLimitRule(
            path_prefix="/api",
            limiter=RateLimiter(settings.general_rate_limit_max, window),
            message="Too many requests from this IP, please try again later",
        ),
    ]


def create_app():
    app = FastAPI(title="Taskboard API", lifespan=lifespan)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        message = format_validation_error(exc.errors())
        logger.debug(f"Rejected {request.method} {request.url.path}: {message}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST, content={"message": message}
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(OSError)
    async def oserror_exception_handler(request: Request, exc: OSError):
        logger.error(f"OSError caught: {exc}, errno: {exc.errno}")
        if exc.errno in [errno.ETIMEDOUT, errno.ECONNREFUSED]:
            logger.error(
                f"Returning 503 due to DB connection issue: {settings.db_unavailable_hint}"
            )
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"message": settings.db_unavailable_hint},
            )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": INTERNAL_ERROR_MESSAGE},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled error on {request.method} {request.url.path}: {exc}",
            exc_info=True,
        )
        content = {"message": INTERNAL_ERROR_MESSAGE}
        if settings.is_development:
            content["error"] = str(exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content
        )

    @app.get("/health", tags=["Health"])
    async def health_check():
        return {"status": "OK", "timestamp": datetime.now(UTC).isoformat()}

    app.include_router(auth_router)
    app.include_router(projects_router)
    app.include_router(tasks_router)

    # Middleware added later wraps earlier ones
    app.add_middleware(
        RateLimitMiddleware,
        rules=build_rate_limit_rules(),
        trust_proxy=settings.trust_proxy,
    )

    @app.middleware("http")
    async def security_headers_middleware(request: Request, call_next):
        response = await call_next(request)
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        if not settings.is_development:
            response.headers.setdefault("Strict-Transport-Security", HSTS_HEADER)
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    return app


app = create_app()


def main():
    """
    Start the FastAPI application with uvicorn.
    """
    port = int(settings.server_port)
    host = settings.server_host

    logger.info(f"Starting Taskboard API server on {host}:{port}")

    try:
        uvicorn.run(app, host=host, port=port, workers=settings.server_workers)
    except Exception as e:
        logger.error(f"Error starting server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
