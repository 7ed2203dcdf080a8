from contextlib import asynccontextmanager
import logging

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from iptv_gateway.config import CustomSettings, settings as default_settings, setup_logging
from iptv_gateway.routers import api_router, main_router
from iptv_gateway.services.allowlist_service import AllowedDomains
from iptv_gateway.utils.logging_helpers import log_lifecycle


setup_logging()
logger = logging.getLogger(__name__)


def create_http_client(settings: CustomSettings) -> httpx.AsyncClient:
    """Shared upstream client; redirects are handled explicitly per request"""
    return httpx.AsyncClient(
        headers={"User-Agent": settings.proxy_user_agent, "Accept": "*/*"},
        timeout=httpx.Timeout(settings.proxy_timeout_sec),
        limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
        follow_redirects=False,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events"""
    log_lifecycle(logger, "Starting IPTV Gateway...")

    owns_client = app.state.http_client is None
    if owns_client:
        app.state.http_client = create_http_client(app.state.settings)
        logger.info("HTTP client initialized")

    log_lifecycle(logger, "IPTV Gateway started successfully")

    try:
        yield
    finally:
        log_lifecycle(logger, "Shutting down IPTV Gateway...")
        if owns_client:
            try:
                await app.state.http_client.aclose()
                logger.info("HTTP client closed")
            except Exception as e:
                logger.error(f"Error during HTTP client shutdown: {e}", exc_info=True)
            app.state.http_client = None
        log_lifecycle(logger, "IPTV Gateway stopped")


def create_app(
    settings: CustomSettings | None = None,
    http_client: httpx.AsyncClient | None = None
) -> FastAPI:
    """
    Build the gateway application

    Args:
        settings: Configuration (defaults to the environment-loaded settings)
        http_client: Upstream client to use instead of creating one in the lifespan

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="IPTV Gateway",
        version="0.1.0",
        lifespan=lifespan
    )
    app.state.settings = settings or default_settings
    app.state.http_client = http_client
    app.state.allowed_domains = AllowedDomains()

    app.include_router(api_router)
    app.include_router(main_router)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    return app


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Log validation errors with details"""
    logger.error(f"Validation error for {request.method} {request.url.path}")
    logger.error(f"Validation details: {exc.errors()}")

    errors = []
    for error in exc.errors():
        errors.append({
            "type": error.get("type"),
            "loc": error.get("loc"),
            "msg": error.get("msg"),
            "input": str(error.get("input", ""))[:100]
        })

    return JSONResponse(
        status_code=422,
        content={
            "detail": errors
        }
    )


app = create_app()
