"""Health check endpoint.

Verifies connectivity to the database and Redis and reports the configured
payment gateway. Used by container healthchecks and load balancers.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from winnipeg_connect import __version__
from winnipeg_connect.api.deps import get_app_settings, get_db_session
from winnipeg_connect.config import Settings
from winnipeg_connect.infrastructure import redis_client
from winnipeg_connect.logging_config import get_logger
from winnipeg_connect.schemas.common import HealthResponse

router = APIRouter(tags=["Health"])
logger = get_logger(__name__)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns the health status of the application and its dependencies.",
)
async def health_check(
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> HealthResponse:
    """Check connectivity to the database and Redis."""
    db_status = "unknown"
    redis_status = "unavailable"

    try:
        await session.execute(text("SELECT 1"))
        db_status = "healthy"
    except SQLAlchemyError as exc:
        db_status = f"unhealthy: {exc}"
        logger.error("health.db_check_failed", error=str(exc))

    # Redis is optional: without it, idempotency keys are not enforced.
    if redis_client.is_redis_available():
        try:
            await redis_client.get_redis().ping()
            redis_status = "healthy"
        except RedisError as exc:
            redis_status = f"unhealthy: {exc}"
            logger.error("health.redis_check_failed", error=str(exc))

    overall = "ok" if db_status == "healthy" else "degraded"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        redis=redis_status,
        payment_gateway=settings.payment_gateway,
    )
