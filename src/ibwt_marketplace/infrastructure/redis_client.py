"""Redis client for idempotency claims on on-chain transaction ids.

Usage:
    from ibwt_marketplace.infrastructure.redis_client import get_redis, close_redis

    redis = get_redis()
    claimed = await claim_idempotency(redis, "tx:5Nf...", owner="task-id")
"""

from __future__ import annotations

import redis.asyncio as aioredis

from ibwt_marketplace.config import get_settings
from ibwt_marketplace.logging_config import get_logger

logger = get_logger(__name__)

_redis_client: aioredis.Redis | None = None


async def init_redis() -> aioredis.Redis:
    """Initialize and return the Redis client. Called during app startup."""
    global _redis_client
    settings = get_settings()
    client = aioredis.from_url(settings.redis_url, decode_responses=True)
    await client.ping()
    _redis_client = client
    logger.info("redis.connected", url=settings.redis_url)
    return _redis_client


def get_redis() -> aioredis.Redis:
    """Return the Redis client singleton. Must call init_redis() first."""
    if _redis_client is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis_client


def get_optional_redis() -> aioredis.Redis | None:
    """Return the Redis client, or None when startup could not connect."""
    return _redis_client


async def close_redis() -> None:
    """Close the Redis connection. Called during app shutdown."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        logger.info("redis.disconnected")
        _redis_client = None


# --- Idempotency Helpers ---


async def claim_idempotency(redis: aioredis.Redis, key: str, owner: str = "1") -> bool:
    """Atomically claim an idempotency key.

    Returns True if this call claimed the key, False if it was already taken.
    """
    settings = get_settings()
    claimed = await redis.set(
        f"idempotency:{key}",
        owner,
        nx=True,
        ex=settings.redis_idempotency_ttl_seconds,
    )
    return bool(claimed)
