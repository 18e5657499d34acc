"""FastAPI application factory and configuration."""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from optout import __version__
from optout.config import settings
from optout.database import init_db
from optout.schemas.common import ErrorDetail, ErrorResponse
from optout.services.exceptions import SuppressionError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info(f"Starting Obituary Opt-Out Service in {settings.ENVIRONMENT} mode")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[-1]}")  # Hide credentials
    if settings.ENVIRONMENT == "development":
        await init_db()
    yield
    logger.info("Shutting down Obituary Opt-Out Service")


async def suppression_error_handler(request: Request, exc: SuppressionError) -> JSONResponse:
    """Render workflow errors in the standard error envelope."""
    body = ErrorResponse(
        message=exc.message,
        error=ErrorDetail(code=exc.code, message=exc.message, details=exc.details),
    )
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(
        title="Obituary Opt-Out Service",
        description="Verified removal requests and do-not-republish blocklist for obituary listings",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_exception_handler(SuppressionError, suppression_error_handler)

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict[str, Any]:
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": "obituary-optout",
            "version": __version__,
            "environment": settings.ENVIRONMENT,
        }

    from optout.routes import admin, blocklist, removals

    app.include_router(removals.router)
    app.include_router(admin.router)
    app.include_router(blocklist.router)

    return app


# Create application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "optout.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
        log_level=settings.LOG_LEVEL.lower(),
    )
