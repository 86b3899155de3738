from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any, Protocol

from redis.asyncio import Redis as RedisClient
from redis.exceptions import RedisError

from storefront.settings import get_settings

logger = logging.getLogger(__name__)

_STOREFRONT_PREFIX = "storefront"
_ANALYTICS_PREFIX = "analytics"

_redis_client: RedisClient | None = None
_client_lock = asyncio.Lock()
# Monotonic deadline before which reconnect attempts are skipped.
_redis_disabled: float | None = None


class CacheStore(Protocol):
    """Surface of the key-value store consumed by the read-through cache."""

    async def get_json(self, key: str) -> Any: ...

    async def set_json(self, key: str, value: Any, ttl: int | None = None) -> None: ...

    async def delete(self, *keys: str) -> None: ...

    async def delete_pattern(self, pattern: str) -> None: ...


def storefront_key(slug: str) -> str:
    """Return the canonical key of a tenant's public storefront aggregate."""

    return f"{_STOREFRONT_PREFIX}:{slug}"


def storefront_products_key(slug: str) -> str:
    return f"{storefront_key(slug)}:products"


def storefront_product_key(slug: str, product_id: str) -> str:
    return f"{storefront_key(slug)}:product:{product_id}"


def storefront_namespace_pattern(slug: str) -> str:
    """Match every derived key scoped to ``slug`` (not the aggregate itself)."""

    return f"{storefront_key(slug)}:*"


def analytics_key(store_id: str, date_range: str, metric: str | None = None) -> str:
    base = f"{_ANALYTICS_PREFIX}:{store_id}:{date_range}"
    return f"{base}:{metric}" if metric else base


def _redis_url() -> str:
    return get_settings().redis_url


def _retry_backoff_seconds() -> float:
    return get_settings().redis_retry_backoff_seconds


def _is_redis_error(exc: BaseException) -> bool:
    """Return ``True`` for any failure raised by the Redis client library."""

    return isinstance(exc, RedisError)


async def get_redis() -> RedisClient | None:
    """Get the shared Redis client, returning ``None`` while Redis is unreachable.

    A failed connection attempt disables Redis for
    ``REDIS_RETRY_BACKOFF_SECONDS``; the first call after the cool-down tries
    again.
    """
    global _redis_client, _redis_disabled

    # Acquire the lock before checking state so concurrent callers never build
    # more than one client.
    async with _client_lock:
        if _redis_client is not None:
            return _redis_client

        if _redis_disabled is not None:
            if time.monotonic() < _redis_disabled:
                logger.debug("Redis connection disabled after previous failure; skipping attempt.")
                return None
            _redis_disabled = None

        client = RedisClient.from_url(_redis_url(), decode_responses=True, encoding="utf-8")
        try:
            # Test the connection before storing the singleton instance.
            await client.ping()
        except Exception as exc:
            await client.aclose()
            if not _is_redis_error(exc):
                raise
            backoff = _retry_backoff_seconds()
            _redis_disabled = time.monotonic() + backoff
            logger.warning(
                "Redis connection failed: %s. Caching disabled. Retrying after %.0f seconds.",
                exc,
                backoff,
            )
            return None

        _redis_client = client
        logger.info("Redis connection established successfully")
        return _redis_client


class CacheClient:
    """JSON-over-Redis cache client that degrades to a no-op when Redis fails.

    Only Redis errors are absorbed; anything else propagates so programming
    mistakes surface in tests.
    """

    def __init__(self, redis: RedisClient | None) -> None:
        self._redis = redis

    @property
    def available(self) -> bool:
        return self._redis is not None

    async def get_json(self, key: str) -> Any:
        if self._redis is None:
            return None
        try:
            payload = await self._redis.get(key)
        except Exception as exc:
            if _is_redis_error(exc):
                logger.debug("Redis get failed for key %s: %s", key, exc)
                return None
            raise
        if payload is None:
            return None
        try:
            return json.loads(payload)
        except json.JSONDecodeError:
            logger.warning("Discarding undecodable cache payload for key %s", key)
            return None

    async def set_json(self, key: str, value: Any, ttl: int | None = None) -> None:
        if self._redis is None:
            return
        encoded = json.dumps(value, default=str)
        if ttl is None:
            ttl = get_settings().storefront_cache_ttl_seconds
        try:
            await self._redis.set(key, encoded, ex=ttl)
        except Exception as exc:
            if _is_redis_error(exc):
                logger.debug("Redis set failed for key %s: %s", key, exc)
                return
            raise

    async def delete(self, *keys: str) -> None:
        if self._redis is None or not keys:
            return
        try:
            await self._redis.delete(*keys)
        except Exception as exc:
            if _is_redis_error(exc):
                logger.debug("Redis delete failed: %s", exc)
                return
            raise

    async def delete_pattern(self, pattern: str) -> None:
        if self._redis is None:
            return
        try:
            matched = [key async for key in self._redis.scan_iter(match=pattern)]
            if matched:
                await self._redis.delete(*matched)
        except Exception as exc:
            if _is_redis_error(exc):
                logger.debug("Redis delete_pattern failed for %s: %s", pattern, exc)
                return
            raise


async def get_cache_client() -> CacheClient:
    redis = await get_redis()
    return CacheClient(redis)


async def close_redis() -> None:
    """Close the global Redis connection and forget any pending backoff."""
    global _redis_client, _redis_disabled
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
    _redis_disabled = None


async def invalidate_store_cache(cache: CacheStore, slug: str) -> None:
    """Drop every cached view of the store identified by ``slug``.

    Called after profile, social link, or design changes are committed. Never
    raises: a lost invalidation is bounded by the entry TTL.
    """

    logger.info("Invalidating all cache for store: %s", slug)
    try:
        await cache.delete(storefront_key(slug))
        await cache.delete_pattern(storefront_namespace_pattern(slug))
    except Exception:
        logger.exception("Cache invalidation failed for %s", slug)
        return
    logger.info("Cache invalidated for store: %s", slug)


async def invalidate_product_cache(
    cache: CacheStore, slug: str, product_id: str | None = None
) -> None:
    """Drop the storefront aggregate plus product caches for ``slug``."""

    keys = [storefront_key(slug), storefront_products_key(slug)]
    if product_id is not None:
        keys.append(storefront_product_key(slug, product_id))
    try:
        await cache.delete(*keys)
    except Exception:
        logger.exception("Product cache invalidation failed for %s", slug)
        return
    logger.info("Product cache invalidated for: %s", slug)


async def invalidate_analytics_cache(
    cache: CacheStore, store_id: str, pattern: str | None = None
) -> None:
    """Drop cached analytics aggregates for ``store_id``.

    Aggregates normally just expire; this exists for manual refreshes.
    """

    suffix = f":{pattern}*" if pattern else ":*"
    try:
        await cache.delete_pattern(f"{_ANALYTICS_PREFIX}:{store_id}{suffix}")
    except Exception:
        logger.exception("Analytics cache invalidation failed for %s", store_id)


__all__ = [
    "CacheClient",
    "CacheStore",
    "analytics_key",
    "close_redis",
    "get_cache_client",
    "get_redis",
    "invalidate_analytics_cache",
    "invalidate_product_cache",
    "invalidate_store_cache",
    "storefront_key",
    "storefront_namespace_pattern",
    "storefront_product_key",
    "storefront_products_key",
]
