"""
Storefront Activity API - application factory and ASGI entry point.

Run locally with `uvicorn storefront.main:app --reload`.
"""
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront import __version__
from storefront.core.config import settings
from storefront.core.database import close_db, init_db
from storefront.core.logging import configure_logging, get_logger
from storefront.middleware import (
    ErrorHandlerMiddleware,
    RequestContextMiddleware,
    register_exception_handlers,
)
from storefront.routers import activities_router, health_router

configure_logging()
logger = get_logger(__name__)


def init_sentry() -> None:
    """Report unhandled errors to Sentry when a DSN is configured."""
    if not settings.sentry_dsn:
        return

    import sentry_sdk

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        release=f"storefront-activity@{__version__}",
        traces_sample_rate=0.1,
    )
    logger.info("Sentry initialized")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info(
        "Starting activity service",
        version=settings.app_version,
        environment=settings.environment,
    )
    init_sentry()
    await init_db()

    yield

    logger.info("Stopping activity service")
    await close_db()


def create_app() -> FastAPI:
    """Build the FastAPI application with middleware, error handlers and routes."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Activity tracking, engagement scoring and behavioral analytics",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    # Last added runs first: CORS, then request context, then the 500 catch-all
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    )

    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(activities_router, prefix="/api")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "storefront.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
