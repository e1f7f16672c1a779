"""
FastAPI Application

Main entry point for the Campaign Engine API.

Features:
    - RESTful API with FastAPI
    - Automatic OpenAPI documentation
    - Request ID middleware
    - CORS configuration
    - Lifespan events for startup/shutdown
    - Domain errors mapped to HTTP status codes
    - Health checks

Run with:
    uvicorn campaign_engine.api.main:create_app --factory
"""

from contextlib import asynccontextmanager
from typing import Optional
import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
import uvicorn

from campaign_engine.core.config import Settings, get_settings
from campaign_engine.core.container import Container
from campaign_engine.core.domain.campaign import CampaignAlreadyStartedError
from campaign_engine.core.domain.rules import InvalidRuleError
from campaign_engine.core.observability.logging import setup_logging
from campaign_engine.core.services.audience_service import ResolverUnavailableError
from campaign_engine.core.services.customer_service import DuplicateCustomerError
from campaign_engine.core.services.delivery_service import (
    CampaignNotFoundError,
    UnknownRecordError,
)


logger = logging.getLogger(__name__)


# Domain error -> (HTTP status, error label)
ERROR_STATUS = {
    InvalidRuleError: (status.HTTP_400_BAD_REQUEST, "Invalid rule"),
    ResolverUnavailableError: (status.HTTP_503_SERVICE_UNAVAILABLE, "Customer store unavailable"),
    UnknownRecordError: (status.HTTP_404_NOT_FOUND, "Unknown delivery record"),
    CampaignNotFoundError: (status.HTTP_404_NOT_FOUND, "Campaign not found"),
    CampaignAlreadyStartedError: (status.HTTP_409_CONFLICT, "Campaign already started"),
    DuplicateCustomerError: (status.HTTP_409_CONFLICT, "Duplicate customer"),
    ValueError: (422, "Invalid request"),
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager

    Starts the container on startup and closes it on shutdown.
    """
    container: Container = app.state.container
    logger.info("Starting Campaign Engine API")

    await container.start()
    try:
        yield
    finally:
        logger.info("Shutting down Campaign Engine API")
        await container.close()


def create_app(
    settings: Optional[Settings] = None,
    container: Optional[Container] = None,
) -> FastAPI:
    """
    Create and configure FastAPI application

    Args:
        settings: Application settings (defaults to cached settings)
        container: Prebuilt service container (tests pass one)

    Returns:
        Configured FastAPI app
    """
    settings = settings or (container.settings if container else get_settings())

    setup_logging(
        log_level=settings.observability.log_level,
        log_format=settings.observability.log_format,
        log_file=settings.observability.log_file,
    )

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Rule-based audience campaigns with simulated vendor delivery",
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )
    app.state.settings = settings
    app.state.container = container or Container(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origins,
        allow_credentials=settings.security.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from campaign_engine.api.middleware.request_id import RequestIDMiddleware
    app.add_middleware(RequestIDMiddleware)

    # Exception handlers
    def domain_error_handler(error_type: type):
        status_code, label = ERROR_STATUS[error_type]

        async def handler(request: Request, exc: Exception):
            if status_code >= 500:
                logger.error(f"{label}: {exc}")
            else:
                logger.warning(f"{label}: {exc}")
            return JSONResponse(
                status_code=status_code,
                content={"error": label, "detail": str(exc)},
            )

        return handler

    for error_type in ERROR_STATUS:
        app.add_exception_handler(error_type, domain_error_handler(error_type))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler"""
        logger.exception("Unhandled exception")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "Internal server error",
                "detail": str(exc) if settings.debug else "An error occurred",
            },
        )

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
        }

    @app.get("/ready", tags=["Health"])
    async def readiness_check(request: Request):
        """Readiness check endpoint"""
        checks = await request.app.state.container.check_ready()
        ready = all(value == "ok" for value in checks.values())
        return JSONResponse(
            status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "ready" if ready else "not ready", "checks": checks},
        )

    if settings.observability.enable_metrics:
        app.mount(settings.observability.metrics_path, make_asgi_app())

    from campaign_engine.api.routes.v1 import campaigns, customers, dashboard, webhooks

    for module in (campaigns, webhooks, customers, dashboard):
        app.include_router(module.router, prefix=f"{settings.api_prefix}/v1")

    logger.info(f"FastAPI app created (env={settings.environment})")

    return app


if __name__ == "__main__":
    """Run development server"""
    settings = get_settings()

    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.observability.log_level.lower(),
    )
