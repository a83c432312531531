"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from taskflow.api import router as api_router
from taskflow.api.v1 import functions
from taskflow.config import get_settings
from taskflow.db.session import close_db, init_db
from taskflow.exceptions import FeatureUnavailableError, TaskflowError
from taskflow.logging_config import configure_logging
from taskflow.middleware.logging import LoggingMiddleware
from taskflow.middleware.request_id import RequestIDMiddleware

logger = structlog.get_logger()
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown events."""
    configure_logging(settings)
    logger.info("taskflow_starting", version=settings.app_version, environment=settings.environment)
    await init_db()
    logger.info("database_ready")

    yield

    logger.info("taskflow_stopping")
    await close_db()
    logger.info("database_closed")


async def feature_unavailable_handler(request: Request, exc: FeatureUnavailableError) -> ORJSONResponse:
    logger.info("feature_unavailable", feature=exc.feature)
    return ORJSONResponse(
        {"feature_available": False, "message": exc.message},
        status_code=exc.status_code,
    )


async def taskflow_error_handler(request: Request, exc: TaskflowError) -> ORJSONResponse:
    if exc.status_code >= 500:
        logger.error("request_error", code=exc.code, error=exc.message)
    else:
        logger.info("request_rejected", code=exc.code, error=exc.message, status_code=exc.status_code)
    return ORJSONResponse({"error": exc.message, "code": exc.code}, status_code=exc.status_code)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Task and workspace management with AI delay-risk analysis and time estimation",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    # Add middleware (order matters - last added is first executed)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=["*"])

    app.add_exception_handler(FeatureUnavailableError, feature_unavailable_handler)
    app.add_exception_handler(TaskflowError, taskflow_error_handler)

    app.include_router(api_router, prefix=settings.api_prefix)
    app.include_router(functions.router, prefix="/functions", tags=["Functions"])

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint for load balancers."""
        return {"status": "healthy", "version": settings.app_version}

    return app


app = create_app()
