"""
Redis caching service for public event listings.

CACHING STRATEGY
================

What we cache:
  - Public (approved-only) event listing responses, JSON-serialized
  - Cache key pattern: "events:list:<sorted query params>"

Why:
  - Browsing approved events is the most frequent read
  - Those pages only change when an event or its seat counts change

Invalidation strategy:
  - Any event create/update/delete, moderation decision, or booking
    create/cancel deletes every "events:list:*" key. Admin hard delete of a
    booking leaves seat counts alone, so it does not invalidate.
  - TTL-based expiry as safety net
  - Routes invalidate before get_db commits. An anonymous listing served in
    that gap can re-cache pre-commit seat counts until the TTL expires;
    listings are informational and the booking engine never reads them.

What is NOT cached:
  - Event detail reads and anything the booking engine touches. Seat counts
    must come from the database, a stale count is an oversell risk.
  - Listings that depend on who is asking (admin views, own drafts)
"""

import json
from typing import Optional

import redis.asyncio as redis
from eventhub.core.config import get_settings
from eventhub.core.logging import get_logger
from eventhub.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

EVENT_LIST_PREFIX = "events:list:"

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled or down."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
        )
        try:
            await client.ping()
        except redis.RedisError as e:
            logger.error("redis_connection_failed", error=str(e))
            await client.aclose()
            return None
        _redis_client = client
        logger.info("redis_connected", url=settings.REDIS_URL)

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def make_event_list_key(**params) -> str:
    parts = "&".join(f"{name}={params[name]}" for name in sorted(params) if params[name] is not None)
    return f"{EVENT_LIST_PREFIX}{parts}"


async def get_cached_events(key: str) -> Optional[dict]:
    """Retrieve cached event list response."""
    client = await get_redis()
    if not client:
        return None

    try:
        data = await client.get(key)
    except redis.RedisError as e:
        logger.error("cache_get_error", key=key, error=str(e))
        record_cache_operation("get", "error")
        return None

    if data:
        logger.debug("cache_hit", key=key)
        record_cache_operation("get", "hit")
        return json.loads(data)

    logger.debug("cache_miss", key=key)
    record_cache_operation("get", "miss")
    return None


async def set_cached_events(key: str, data: dict) -> None:
    """Cache event list response with TTL."""
    client = await get_redis()
    if not client:
        return

    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
        record_cache_operation("set", "ok")
    except redis.RedisError as e:
        logger.error("cache_set_error", key=key, error=str(e))
        record_cache_operation("set", "error")


async def invalidate_event_cache() -> None:
    """
    Invalidate all cached event listings.
    Uses SCAN to find and delete all keys matching the prefix.
    """
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{EVENT_LIST_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", keys_deleted=deleted)
        record_cache_operation("invalidate", "ok")
    except redis.RedisError as e:
        logger.error("cache_invalidation_error", error=str(e))
        record_cache_operation("invalidate", "error")


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
    except redis.RedisError as e:
        return {"status": "error", "error": str(e)}
