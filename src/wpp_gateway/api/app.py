"""FastAPI application with lifespan management."""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from wpp_gateway.api.middleware import RequestLoggingMiddleware
from wpp_gateway.api.responses import GatewayErrorResult, gateway_error_handler
from wpp_gateway.api.routes.admin import router as admin_router
from wpp_gateway.api.routes.interactive import router as interactive_router
from wpp_gateway.api.routes.media import router as media_router
from wpp_gateway.api.routes.messages import router as messages_router
from wpp_gateway.api.routes.receive import router as receive_router
from wpp_gateway.api.routes.sessions import router as sessions_router
from wpp_gateway.api.routes.usage import router as usage_router
from wpp_gateway.config import StorageBackend, settings
from wpp_gateway.logging_config import configure_logging
from wpp_gateway.pipeline import build_pipeline
from wpp_gateway.provider.wppconnect import WppConnectClient
from wpp_gateway.storage.factory import create_stores

logger = structlog.get_logger()

HEALTH_CHECK_TIMEOUT = 5.0


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application startup and shutdown.

    Startup:
        - Build stores for the configured backend.
        - Open the pooled provider client and wire the request pipeline.
        - Ensure the bootstrap ADMIN account exists, if a key is configured.
    Shutdown:
        - Close the provider client.
        - Dispose database engine (close connection pool).
    """
    configure_logging(
        environment=str(settings.environment),
        log_level=settings.log_level,
    )
    stores = create_stores(settings)
    provider = WppConnectClient(
        settings.provider_base_url,
        settings.provider_secret_key.get_secret_value(),
        timeout=settings.provider_timeout_seconds,
    )
    pipeline = build_pipeline(settings, stores, provider)
    app.state.pipeline = pipeline

    if settings.bootstrap_admin_key is not None:
        admin = await pipeline.ensure_admin(
            settings.bootstrap_admin_key.get_secret_value()
        )
        logger.info("bootstrap_admin_ready", account=admin.key_prefix)

    logger.info(
        "app_started",
        environment=str(settings.environment),
        storage_backend=str(settings.storage_backend),
    )
    yield

    await provider.aclose()
    if settings.storage_backend == StorageBackend.POSTGRES:
        from wpp_gateway.storage.database import engine

        await engine.dispose()
    logger.info("app_stopped")


app = FastAPI(
    title="WPP Gateway",
    description="Multi-tenant WhatsApp gateway with daily quotas",
    version="0.1.0",
    lifespan=lifespan,
    debug=settings.is_dev,
)

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allowed_methods,
    allow_headers=settings.cors_allowed_headers,
)


async def _check_store() -> str:
    if settings.storage_backend == StorageBackend.MEMORY:
        return "ok"

    from wpp_gateway.storage.database import async_session

    async with async_session() as session:
        await asyncio.wait_for(
            session.execute(text("SELECT 1")),
            timeout=HEALTH_CHECK_TIMEOUT,
        )
    return "ok"


@app.get("/health")
async def health() -> JSONResponse:
    """Liveness plus store connectivity."""
    checks: dict[str, str] = {}
    overall = "ok"

    try:
        checks["store"] = await _check_store()
    except (TimeoutError, SQLAlchemyError) as e:
        logger.warning("health_check_store_error", error=type(e).__name__)
        checks["store"] = f"error: {type(e).__name__}"
        overall = "degraded"

    status_code = 200 if overall == "ok" else 503
    return JSONResponse(
        status_code=status_code,
        content={
            "status": overall,
            "checks": checks,
            "timestamp": datetime.now(UTC).isoformat(timespec="seconds"),
        },
    )


app.add_exception_handler(GatewayErrorResult, gateway_error_handler)


@app.exception_handler(Exception)
async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Catch-all handler for unhandled exceptions."""
    logger.error("unhandled_exception", exc_info=exc, path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "internal server error", "kind": "internal"},
    )


app.include_router(admin_router)
app.include_router(sessions_router, prefix="/api")
app.include_router(messages_router, prefix="/api")
app.include_router(media_router, prefix="/api")
app.include_router(interactive_router, prefix="/api")
app.include_router(receive_router, prefix="/api")
app.include_router(usage_router, prefix="/api")
