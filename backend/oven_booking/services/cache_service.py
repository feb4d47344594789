"""
Redis caching for the read-heavy dashboard views.

CACHING STRATEGY
================

What we cache:
  - The oven status board ("ovens:board")
  - The booking calendar feed, per oven filter ("calendar:oven={id|all}")

Invalidation:
  - Any booking or oven mutation deletes every "ovens:*" and "calendar:*" key
  - A short TTL is the safety net; the board's "in use now" column goes stale
    on its own as time passes, so the TTL stays well under a booking's length

Never cached:
  - Anything the booking engine validates against. Overlap, capacity and
    oven status are always read inside the write transaction.

Redis is advisory: on any Redis error we log and fall through to the database.
"""

import json
from typing import Optional

import redis.asyncio as redis
from oven_booking.core.config import get_settings
from oven_booking.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

OVEN_BOARD_KEY = "ovens:board"
INVALIDATION_PATTERNS = ("ovens:*", "calendar:*")

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled or down."""
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
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def calendar_key(oven_id: Optional[int]) -> str:
    return f"calendar:oven={oven_id if oven_id is not None else 'all'}"


async def get_cached(key: str) -> Optional[dict | list]:
    client = await get_redis()
    if not client:
        return None

    try:
        data = await client.get(key)
        if data:
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        logger.debug("cache_miss", key=key)
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached(key: str, data: dict | list) -> None:
    client = await get_redis()
    if not client:
        return

    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_booking_views() -> None:
    """Drop every cached board and calendar page after a mutation."""
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        for pattern in INVALIDATION_PATTERNS:
            async for key in client.scan_iter(match=pattern, count=100):
                await client.delete(key)
                deleted += 1
        logger.info("cache_invalidated", keys_deleted=deleted)
    except Exception as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
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
