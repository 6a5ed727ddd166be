"""FastAPI application factory and entry point.

Creates the application instance, registers the request logging middleware
and exception handlers, and mounts the route routers.

Usage::

    # Development server (from project root)
    uvicorn wiki_contributors.api.main:app --reload
"""

from __future__ import annotations

import time
import uuid
from typing import Callable, Optional

import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse

from wiki_contributors.config.settings import get_settings
from wiki_contributors.core.contributors_query import (
    PermissionChecker,
    PublicReadPermissionChecker,
)
from wiki_contributors.core.database import dispose_engines
from wiki_contributors.core.exceptions import (
    ContributorsAccessDenied,
    ContributorStoreError,
    InvalidSortFieldError,
)
from wiki_contributors.core.logging_config import configure_logging, request_id_var

logger = structlog.get_logger(__name__)


def create_app(permission_checker: Optional[PermissionChecker] = None) -> FastAPI:
    """Build and configure the FastAPI application.

    Args:
        permission_checker: The wiki's read permission check.  Defaults to
            :class:`PublicReadPermissionChecker` configured from settings.

    Returns:
        A fully configured ``FastAPI`` instance.
    """
    settings = get_settings()
    configure_logging(settings.log_level)

    application = FastAPI(
        title=settings.app_name,
        description="Per-page contributor statistics derived from wiki revision history.",
        version="0.1.0",
        debug=settings.debug,
        redirect_slashes=False,
    )
    application.state.permission_checker = permission_checker or PublicReadPermissionChecker(
        settings.contributors_public_read
    )

    # ---- Request logging middleware ----------------------------------------

    @application.middleware("http")
    async def request_logging_middleware(
        request: Request, call_next: Callable
    ) -> Response:
        """Log every request with its status and duration under a request id."""
        request_id = str(uuid.uuid4())
        request_id_var.set(request_id)
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        start = time.perf_counter()
        response = None
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error("unhandled_exception", exc_info=exc)
            raise
        finally:
            elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
            status_code = getattr(response, "status_code", 500)
            log_fn = logger.warning if status_code >= 400 else logger.info
            log_fn("request_complete", status_code=status_code, elapsed_ms=elapsed_ms)

        response.headers["X-Request-ID"] = request_id
        return response

    # ---- Exception handlers ------------------------------------------------

    @application.exception_handler(ContributorsAccessDenied)
    async def access_denied_handler(request: Request, exc: ContributorsAccessDenied) -> JSONResponse:
        return JSONResponse({"detail": str(exc)}, status_code=status.HTTP_403_FORBIDDEN)

    @application.exception_handler(InvalidSortFieldError)
    async def invalid_sort_handler(request: Request, exc: InvalidSortFieldError) -> JSONResponse:
        return JSONResponse(
            {"detail": str(exc)}, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY
        )

    @application.exception_handler(ContributorStoreError)
    async def store_error_handler(request: Request, exc: ContributorStoreError) -> JSONResponse:
        logger.error("contributor_store_unavailable", error=str(exc))
        return JSONResponse(
            {"detail": "Contributor store unavailable"},
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    # ---- Routers -------------------------------------------------------------

    from wiki_contributors.api.routes import contributors, health  # noqa: PLC0415

    application.include_router(health.router)
    application.include_router(contributors.router, prefix="/api", tags=["contributors"])

    # ---- Lifecycle events -------------------------------------------------

    @application.on_event("startup")
    async def on_startup() -> None:
        logger.info(
            "application_startup",
            app_name=settings.app_name,
            debug=settings.debug,
            log_level=settings.log_level,
        )

    @application.on_event("shutdown")
    async def on_shutdown() -> None:
        await dispose_engines()
        logger.info("application_shutdown")

    return application


app = create_app()
"""The FastAPI application instance passed to Uvicorn."""
