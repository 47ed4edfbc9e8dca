"""Redis client for payment-intent idempotency keys and the health check.

Redis is optional: when it is down at startup the client stays unset and
callers skip idempotency handling instead of failing the request.

Usage:
    from winnipeg_connect.infrastructure.redis_client import get_redis, close_redis

    redis = get_redis()
    await redis.set("key", "value", ex=3600)
"""

from __future__ import annotations

import redis.asyncio as aioredis

from winnipeg_connect.config import get_settings
from winnipeg_connect.logging_config import get_logger

logger = get_logger(__name__)

_redis_client: aioredis.Redis | None = None


async def init_redis() -> aioredis.Redis:
    """Initialize and return the Redis client. Called during app startup."""
    global _redis_client
    settings = get_settings()
    client = aioredis.from_url(
        settings.redis_url,
        decode_responses=True,
    )
    # Verify connectivity before publishing the singleton
    await client.ping()
    _redis_client = client
    logger.info("redis.connected", url=settings.redis_url)
    return _redis_client


def get_redis() -> aioredis.Redis:
    """Return the Redis client singleton. Must call init_redis() first."""
    if _redis_client is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis_client


def is_redis_available() -> bool:
    return _redis_client is not None


async def close_redis() -> None:
    """Close the Redis connection. Called during app shutdown."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        logger.info("redis.disconnected")
        _redis_client = None


# --- Idempotency Helpers ---


def _idempotency_key(scope: str, key: str) -> str:
    return f"idempotency:{scope}:{key}"


async def get_idempotent_result(scope: str, key: str) -> str | None:
    """Return the value stored for an idempotency key, or None if it is new."""
    return await get_redis().get(_idempotency_key(scope, key))


async def set_idempotent_result(scope: str, key: str, value: str) -> None:
    """Remember the outcome of an operation under an idempotency key with a TTL."""
    settings = get_settings()
    await get_redis().set(
        _idempotency_key(scope, key),
        value,
        ex=settings.redis_idempotency_ttl_seconds,
    )
