"""Redis connection management.

When REDIS_URL is set, a shared async client is created and the course
metadata cache is stored in Redis so every API instance sees the same
entries.  Without it (local dev, tests) the cache falls back to an
in-process dict and no Redis server is needed.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from certproof.core.config import Settings

logger = logging.getLogger(__name__)


def create_redis(settings: Settings) -> aioredis.Redis | None:  # type: ignore[type-arg]
    if not settings.redis_url:
        return None
    return aioredis.from_url(
        settings.redis_url,
        decode_responses=True,
        max_connections=20,
    )


@asynccontextmanager
async def lifespan_redis(client: aioredis.Redis | None):  # type: ignore[type-arg]
    """Verify Redis on startup and close the pool on shutdown.

    An unreachable Redis does not stop the service; cache operations are
    best-effort and fall through to the ledger.
    """
    if client is None:
        logger.info("No REDIS_URL configured; course cache is in-memory")
        yield
        return

    try:
        await client.ping()  # type: ignore[misc]
        logger.info("Redis connected")
    except Exception:
        logger.exception("Redis connection failed on startup")

    try:
        yield
    finally:
        await client.aclose()
        logger.info("Redis connection pool closed")
