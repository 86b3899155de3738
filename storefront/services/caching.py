"""Read-through caching shared by every cached read in the service layer.

:func:`get_cached_data` is the single abstraction: look the key up, return the
cached payload on a hit, otherwise call the loader and populate the cache with
its result. The cache is always an injected :class:`~storefront.cache.CacheStore`
so tests can substitute an in-memory fake.

Cache failures never change the answer a caller receives. A failed lookup is a
miss, a failed write is logged and dropped. Loader exceptions propagate
unchanged and ``None`` results ("no data") are never cached, so a missing
tenant is retried against the database on every request.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, Concatenate, ParamSpec, TypeVar, cast

from storefront.cache import CacheStore

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

Loader = Callable[[], Awaitable[T | None]]
CacheSerializer = Callable[[T], Any]
CacheDeserializer = Callable[[Any], T]


class SingleFlight:
    """Coalesce concurrent loads of the same key within one process.

    The first caller for a key starts the loader as a task. Every caller for
    that key, the first included, awaits the task through :func:`asyncio.shield`,
    so a cancelled request leaves the load running for the others. Nothing
    is remembered once the load finishes, so this is not a cache.
    """

    def __init__(self) -> None:
        self._inflight: dict[str, asyncio.Future[Any]] = {}

    @property
    def inflight_keys(self) -> list[str]:
        return list(self._inflight)

    async def do(self, key: str, func: Callable[[], Awaitable[T]]) -> T:
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(func())
            self._inflight[key] = task
            task.add_done_callback(lambda done: self._release(key, done))
        # Cancelling one caller must not cancel the load the others share.
        return cast(T, await asyncio.shield(task))

    def _release(self, key: str, task: asyncio.Future[Any]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled():
            # Mark retrieved so an unobserved failure does not warn at GC time.
            task.exception()


_default_single_flight = SingleFlight()


def default_single_flight() -> SingleFlight:
    """Return the process-wide coalescer used when callers opt in."""

    return _default_single_flight


async def get_cached_data(
    cache: CacheStore | None,
    key: str,
    loader: Loader[T],
    ttl_seconds: int,
    *,
    serializer: CacheSerializer[T] | None = None,
    deserializer: CacheDeserializer[T] | None = None,
    single_flight: SingleFlight | None = None,
) -> T | None:
    """Return the value cached under ``key`` or load, cache, and return it.

    Parameters
    ----------
    cache:
        Injected cache store. ``None`` disables caching entirely.
    key:
        Fully qualified cache key (see :mod:`storefront.cache`).
    loader:
        Zero-argument coroutine function returning the authoritative value or
        ``None`` when there is no data.
    ttl_seconds:
        Positive lifetime of the cache entry.
    serializer / deserializer:
        Optional hooks converting between domain objects and JSON payloads.
    single_flight:
        Optional coalescer so concurrent misses for ``key`` share one load.
    """

    if isinstance(ttl_seconds, bool) or not isinstance(ttl_seconds, int) or ttl_seconds <= 0:
        raise ValueError(f"ttl_seconds must be a positive integer, received {ttl_seconds!r}")

    if cache is not None:
        hit = await _read(cache, key, deserializer)
        if hit is not None:
            return hit

    async def _load_and_fill() -> T | None:
        result = await loader()
        if cache is not None and result is not None:
            payload: Any = serializer(result) if serializer is not None else result
            try:
                await cache.set_json(key, payload, ttl=ttl_seconds)
            except Exception as exc:
                logger.warning("Failed to persist cache entry for key %s: %s", key, exc)
        return result

    if single_flight is not None:
        return await single_flight.do(key, _load_and_fill)
    return await _load_and_fill()


async def _read(
    cache: CacheStore, key: str, deserializer: CacheDeserializer[T] | None
) -> T | None:
    try:
        cached_value = await cache.get_json(key)
    except Exception as exc:
        logger.warning("Cache lookup failed for key %s, loading from source: %s", key, exc)
        return None

    if cached_value is None:
        return None
    if deserializer is None:
        return cast(T, cached_value)
    try:
        return deserializer(cached_value)
    except Exception as exc:
        logger.warning("Ignoring undeserializable cache entry for key %s: %s", key, exc)
        return None


class CacheableService:
    """Base class for services that read through an injected cache."""

    def __init__(
        self,
        cache: CacheStore | None = None,
        *,
        single_flight: SingleFlight | None = None,
    ) -> None:
        self._cache = cache
        self._single_flight = single_flight


CacheKeyBuilder = Callable[Concatenate[CacheableService, P], str | None]
DecoratedCallable = Callable[Concatenate[CacheableService, P], Awaitable[T]]


def cached(
    key_builder: CacheKeyBuilder[P],
    *,
    ttl: int | Callable[[CacheableService], int],
    serializer: CacheSerializer[T] | None = None,
    deserializer: CacheDeserializer[T] | None = None,
) -> Callable[[DecoratedCallable], DecoratedCallable]:
    """Decorate an async service method with read-through caching.

    ``key_builder`` receives the same arguments as the method; returning
    ``None`` bypasses the cache for that call. ``ttl`` may be a callable taking
    the service instance so TTLs can come from configuration.
    """

    def decorator(func: DecoratedCallable) -> DecoratedCallable:
        @wraps(func)
        async def wrapper(self: CacheableService, *args: P.args, **kwargs: P.kwargs) -> T:
            cache_key = key_builder(self, *args, **kwargs)
            if not cache_key:
                return await func(self, *args, **kwargs)

            ttl_seconds = ttl(self) if callable(ttl) else ttl
            return await get_cached_data(
                self._cache,
                cache_key,
                lambda: func(self, *args, **kwargs),
                ttl_seconds,
                serializer=serializer,
                deserializer=deserializer,
                single_flight=self._single_flight,
            )

        return wrapper

    return decorator


__all__ = [
    "CacheableService",
    "SingleFlight",
    "cached",
    "default_single_flight",
    "get_cached_data",
]
