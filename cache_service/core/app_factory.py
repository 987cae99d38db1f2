"""Application factory."""
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cache_service.api import admin, health, tenants
from cache_service.core.config import settings
from cache_service.core.errors import CacheServiceError, ErrorCategory
from cache_service.core.lifecycle import lifespan
from cache_service.core.logging import get_logger, setup_logging

setup_logging(settings.log_level, settings.log_format)
logger = get_logger(__name__)

# Errors that reach a handler; backend and serialization errors never do
_STATUS_BY_CATEGORY = {
    ErrorCategory.CONFIGURATION: 400,
    ErrorCategory.PATTERN: 400,
}


def create_app() -> FastAPI:
    """Build the cache service application."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
        docs_url=f"{settings.api_prefix}/docs",
        openapi_url=f"{settings.api_prefix}/openapi.json",
    )

    @app.exception_handler(CacheServiceError)
    async def cache_service_error_handler(request: Request, exc: CacheServiceError):
        status_code = _STATUS_BY_CATEGORY.get(exc.category, 500)
        logger.error(
            f"{exc.category.value} error on {request.url.path}: {exc.message}",
            extra={"details": exc.details},
        )
        return JSONResponse(status_code=status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal Server Error", "path": request.url.path},
        )

    for router, prefix in (
        (health.router, settings.api_prefix),
        (tenants.router, settings.api_prefix),
        (admin.router, f"{settings.api_prefix}/admin"),
    ):
        app.include_router(router, prefix=prefix)

    @app.get("/")
    async def root() -> Dict[str, Any]:
        return {
            "service": settings.app_name,
            "version": settings.app_version,
            "health": f"{settings.api_prefix}/health",
        }

    return app
