"""
Redis caching service for screening listings.

CACHING STRATEGY
================

What we cache:
  - The screening listing response (JSON-serialized)
  - Cache key pattern: "screenings:list:{variant}"

Why:
  - Browsing the programme is the most frequent read
  - Screenings change rarely (admin create/reschedule/delete)

Invalidation strategy:
  - Any screening create/update/delete deletes every "screenings:list:*" key
  - TTL-based expiry as safety net (5 minutes)

What we never cache:
  - Seat maps and reservations. A stale seat map only costs the user a 409,
    but caching it would widen that window for everyone.
  - Single records with versions. A cached version token would make every
    edit based on it fail with a conflict.
"""

import json
from typing import Optional

import redis.asyncio as redis
from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

_redis_client: Optional[redis.Redis] = None

SCREENING_LIST_PREFIX = "screenings:list:"


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        try:
            _redis_client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
            await _redis_client.ping()
            logger.info("redis_connected", url=settings.REDIS_URL)
        except Exception as e:
            logger.error("redis_connection_failed", error=str(e))
            _redis_client = None
            return None

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def _make_screening_list_key(variant: str = "all") -> str:
    return f"{SCREENING_LIST_PREFIX}{variant}"


async def get_cached_screenings(variant: str = "all") -> Optional[list]:
    client = await get_redis()
    if not client:
        return None

    key = _make_screening_list_key(variant)
    try:
        data = await client.get(key)
        record_cache_operation("get", hit=data is not None)
        if data:
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        logger.debug("cache_miss", key=key)
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_screenings(data: list, variant: str = "all") -> None:
    client = await get_redis()
    if not client:
        return

    key = _make_screening_list_key(variant)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_screening_cache() -> None:
    """Delete every cached screening listing (SCAN over the key prefix)."""
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{SCREENING_LIST_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", keys_deleted=deleted)
    except Exception as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }
    except Exception as e:
        return {"status": "error", "error": str(e)}
