"""
Main FastAPI application entry point.

This module sets up the FastAPI app with routes, exception handlers and
lifecycle events.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import CollectorRegistry

from . import __version__
from .api import healthz_router, metrics_router, postback_router
from .config import get_settings, Settings
from .core.audit_log import AuditLog, FileLogSink
from .core.exceptions import PostbackRelayException
from .core.metrics import MetricsCollector
from .core.transport import AiohttpTransport, HttpGetter


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structured logging for the application."""
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper()),
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def create_lifespan_handler(
    settings: Settings,
    transport: Optional[HttpGetter] = None,
    metrics_registry: Optional[CollectorRegistry] = None,
) -> Any:
    """Create a lifespan handler with access to settings."""
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """
        FastAPI lifespan context manager.

        Opens the outbound HTTP session and wires the request-independent
        collaborators onto app state.
        """
        logger = structlog.get_logger(__name__)
        logger.info("Starting postback relay", version=app.version)

        app.state.settings = settings
        app.state.metrics = MetricsCollector(registry=metrics_registry)
        app.state.audit_log = AuditLog(
            FileLogSink(settings.audit_log.path),
            enabled=settings.audit_log.enabled,
        )

        owned_transport: Optional[AiohttpTransport] = None
        if transport is None:
            owned_transport = AiohttpTransport(
                user_agent=settings.dispatch.user_agent,
                timeout_seconds=settings.dispatch.timeout_seconds,
            )
            await owned_transport.start()
            app.state.transport = owned_transport
        else:
            app.state.transport = transport

        try:
            logger.info(
                "Postback relay started",
                base_url=settings.dispatch.base_url,
                value_threshold=settings.rules.value_threshold,
                audit_log=str(settings.audit_log.path) if settings.audit_log.enabled else None,
            )
            yield
        finally:
            logger.info("Shutting down postback relay")

            if owned_transport is not None:
                await owned_transport.stop()

            logger.info("Postback relay shutdown complete")

    return lifespan


async def postback_relay_exception_handler(request: Request, exc: PostbackRelayException) -> JSONResponse:
    """Handle custom relay exceptions that escaped the pipeline."""
    logger = structlog.get_logger(__name__)
    logger.error(
        "Postback relay exception occurred",
        error=str(exc),
        status_code=exc.status_code,
        path=request.url.path,
        method=request.method,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.error_code,
            "message": str(exc),
            "details": exc.details,
        },
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger = structlog.get_logger(__name__)
    logger.error(
        "Unexpected exception occurred",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
        exc_info=True,
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred",
        },
    )


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[HttpGetter] = None,
    metrics_registry: Optional[CollectorRegistry] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Settings to use; loaded from config file and env when omitted
        transport: Outbound GET capability; an aiohttp transport is created when omitted
        metrics_registry: Prometheus registry; the default registry when omitted
    """
    settings = settings or get_settings()

    configure_logging(settings.log_level)

    lifespan = create_lifespan_handler(settings, transport, metrics_registry)

    app = FastAPI(
        title="Postback Relay",
        description="Affiliate postback → tracking platform relay",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_exception_handler(PostbackRelayException, postback_relay_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(postback_router, tags=["postback"])
    app.include_router(metrics_router, tags=["metrics"])
    app.include_router(healthz_router, tags=["health"])

    @app.get("/info", include_in_schema=False)
    async def info() -> Dict[str, str]:
        """Service information endpoint."""
        return {
            "service": "Postback Relay",
            "version": app.version,
            "description": "Affiliate postback → tracking platform relay",
            "docs": "/docs",
        }

    return app


# Create the app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "postback_relay.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=settings.debug,
    )
