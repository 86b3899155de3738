"""Startup warmup so the first visitor does not pay connection setup costs."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from storefront.cache import get_redis
from storefront.db.connection import get_engine

logger = logging.getLogger(__name__)


async def warmup_database(resolve_engine: Callable[[], AsyncEngine] | None = None) -> None:
    """Open a pooled connection and issue ``SELECT 1``; failures are only logged."""

    try:
        start = time.perf_counter()
        engine = (resolve_engine or get_engine)()
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        elapsed = (time.perf_counter() - start) * 1000
        logger.info("Database connection warmed up (%.0fms)", elapsed)
    except Exception as exc:
        logger.warning("Database warmup failed: %s", exc)


async def warmup_redis() -> None:
    """Connect to Redis ahead of traffic; an unreachable Redis only disables caching."""

    try:
        start = time.perf_counter()
        redis = await get_redis()
        if redis is None:
            logger.info("Redis warmup skipped (connection unavailable)")
            return
        await redis.ping()
        elapsed = (time.perf_counter() - start) * 1000
        logger.info("Redis connection warmed up (%.0fms)", elapsed)
    except Exception as exc:
        logger.warning("Redis warmup failed: %s", exc)


async def warmup_all(resolve_engine: Callable[[], AsyncEngine] | None = None) -> None:
    start = time.perf_counter()
    await warmup_database(resolve_engine)
    await warmup_redis()
    logger.info("Warmup complete (%.0fms)", (time.perf_counter() - start) * 1000)


__all__ = ["warmup_all", "warmup_database", "warmup_redis"]
