"""FastAPI application entry point for Winnipeg Connect.

Lifecycle:
    1. Startup: Initialize logging, database, Redis, create tables (dev mode).
    2. Running: Serve the REST API under /api/v1.
    3. Shutdown: Close database and Redis connections gracefully.

Run with:
    uv run uvicorn winnipeg_connect.main:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from winnipeg_connect import __version__
from winnipeg_connect.config import get_settings
from winnipeg_connect.logging_config import get_logger, setup_logging

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle."""
    settings = get_settings()

    # 1. Setup structured logging
    setup_logging(
        log_level=settings.app_log_level,
        json_logs=not settings.is_development,
    )
    logger = get_logger(__name__)
    logger.info(
        "app.starting",
        env=settings.app_env,
        debug=settings.app_debug,
        payment_gateway=settings.payment_gateway,
    )

    # 2. Initialize database
    from winnipeg_connect.infrastructure.database.engine import close_db, init_db

    await init_db()

    # 3. Initialize Redis (optional: idempotency keys are skipped without it)
    from winnipeg_connect.infrastructure.redis_client import close_redis, init_redis

    try:
        await init_redis()
    except Exception as exc:
        logger.warning("app.redis_unavailable", error=str(exc))

    logger.info("app.started", host=settings.app_host, port=settings.app_port)

    yield

    # Shutdown
    logger.info("app.shutting_down")
    await close_db()
    await close_redis()
    logger.info("app.stopped")


def create_app() -> FastAPI:
    """Application factory: creates and configures the FastAPI app."""
    settings = get_settings()

    app = FastAPI(
        title="Winnipeg Connect",
        description=(
            "Service marketplace for Winnipeg: jobs, quotes and escrow payments "
            "released on mutual approval."
        ),
        version=__version__,
        lifespan=lifespan,
        debug=settings.app_debug,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # --- Middleware ---
    from winnipeg_connect.api.middleware import setup_middleware

    setup_middleware(app, settings)

    # --- REST API Routes ---
    from winnipeg_connect.api.routes.health import router as health_router
    from winnipeg_connect.api.routes.jobs import router as jobs_router
    from winnipeg_connect.api.routes.payments import router as payments_router
    from winnipeg_connect.api.routes.quotes import router as quotes_router
    from winnipeg_connect.api.routes.reviews import router as reviews_router
    from winnipeg_connect.api.routes.users import router as users_router

    app.include_router(health_router)
    app.include_router(users_router)
    app.include_router(jobs_router)
    app.include_router(quotes_router)
    app.include_router(payments_router)
    app.include_router(reviews_router)

    return app


# The app instance used by Uvicorn
app = create_app()
