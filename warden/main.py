"""FastAPI application entry point."""

import logging
import traceback
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError

from warden.api.v1.router import api_router
from warden.core.capabilities import detect_capabilities
from warden.core.config import settings
from warden.core.database import engine
from warden.core.deps import set_capabilities
from warden.core.errors import WardenError
from warden.core.logging_config import (
    generate_request_id,
    request_id_var,
    setup_logging,
)
from warden.core.rate_limit import limiter

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    setup_logging(debug=settings.debug)
    logger.info("Starting %s v%s", settings.project_name, settings.version)
    logger.info("Environment: %s", settings.environment)

    # Table presence is read once; the first request retries if this fails
    try:
        async with engine.connect() as conn:
            set_capabilities(await detect_capabilities(conn))
    except (SQLAlchemyError, OSError) as e:
        logger.warning("Schema detection deferred, database unreachable at startup: %s", e)

    yield
    logger.info("Shutting down...")
    await engine.dispose()


def _error_content(exc: Exception, body: dict[str, Any]) -> dict[str, Any]:
    """Add the cause and a trace outside production."""
    if not settings.is_production:
        cause = getattr(exc, "context", {}).get("cause") or str(exc)
        body["detail"] = cause
        body["trace"] = traceback.format_exception(exc)
    return body


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    # Sentry/GlitchTip init (before middleware)
    if settings.sentry_dsn:
        import sentry_sdk

        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            environment=settings.environment,
            traces_sample_rate=0.1,
        )

    app = FastAPI(
        title=settings.project_name,
        version=settings.version,
        openapi_url=f"{settings.api_v1_prefix}/openapi.json",
        docs_url=f"{settings.api_v1_prefix}/docs",
        redoc_url=f"{settings.api_v1_prefix}/redoc",
        lifespan=lifespan,
    )

    # Rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]
    app.add_middleware(SlowAPIMiddleware)

    # CORS for the admin dashboard
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    )

    # Request ID middleware
    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next: Any) -> Response:
        rid = request.headers.get("X-Request-ID") or generate_request_id()
        request_id_var.set(rid)
        response: Response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response

    # Include API routes
    app.include_router(api_router, prefix=settings.api_v1_prefix)

    @app.exception_handler(WardenError)
    async def warden_error_handler(request: Request, exc: WardenError) -> JSONResponse:
        """Render domain errors as ``{success, error, code}``."""
        log = logger.error if exc.status_code >= 500 else logger.info
        log("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_content(exc, exc.to_response()),
        )

    # Global exception handler so unexpected failures keep the same envelope
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unhandled exceptions with proper JSON response."""
        logger.exception("Unhandled exception on %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=500,
            content=_error_content(
                exc,
                {"success": False, "error": "Internal server error", "code": "internal_error"},
            ),
        )

    # Redirect /docs to versioned docs URL
    @app.get("/docs", include_in_schema=False)
    async def docs_redirect() -> RedirectResponse:
        return RedirectResponse(url=f"{settings.api_v1_prefix}/docs")

    # Root endpoint
    @app.get("/")
    async def root() -> dict[str, Any]:
        """Root endpoint with API information."""
        return {
            "name": settings.project_name,
            "version": settings.version,
            "docs": f"{settings.api_v1_prefix}/docs",
            "health": f"{settings.api_v1_prefix}/health",
        }

    return app


app = create_app()
