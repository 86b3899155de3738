from __future__ import annotations

import logging
from unittest.mock import AsyncMock

import pytest

from storefront.cache import (
    invalidate_analytics_cache,
    invalidate_product_cache,
    invalidate_store_cache,
)


@pytest.mark.asyncio
async def test_invalidate_store_cache_drops_every_key_of_the_slug(memory_cache) -> None:
    memory_cache.store.update(
        {
            "storefront:acme": {"store": "acme"},
            "storefront:acme:products": [],
            "storefront:acme:product:p1": {},
            "storefront:acme-co": {"store": "acme-co"},
            "storefront:acme-co:products": [],
        }
    )

    await invalidate_store_cache(memory_cache, "acme")

    assert sorted(memory_cache.store) == ["storefront:acme-co", "storefront:acme-co:products"]


@pytest.mark.asyncio
async def test_invalidate_product_cache_targets_product_keys(memory_cache) -> None:
    memory_cache.store.update(
        {
            "storefront:acme": {},
            "storefront:acme:products": [],
            "storefront:acme:product:p1": {},
            "storefront:acme:product:p2": {},
        }
    )

    await invalidate_product_cache(memory_cache, "acme", "p1")

    assert memory_cache.deleted == [
        "storefront:acme",
        "storefront:acme:products",
        "storefront:acme:product:p1",
    ]
    assert list(memory_cache.store) == ["storefront:acme:product:p2"]


@pytest.mark.asyncio
async def test_invalidate_product_cache_without_product_id(memory_cache) -> None:
    await invalidate_product_cache(memory_cache, "acme")

    assert memory_cache.deleted == ["storefront:acme", "storefront:acme:products"]


@pytest.mark.asyncio
async def test_invalidate_analytics_cache_patterns(memory_cache) -> None:
    await invalidate_analytics_cache(memory_cache, "store-1")
    await invalidate_analytics_cache(memory_cache, "store-1", "7d")

    assert memory_cache.deleted_patterns == ["analytics:store-1:*", "analytics:store-1:7d*"]


@pytest.mark.asyncio
async def test_invalidators_swallow_cache_failures(caplog: pytest.LogCaptureFixture) -> None:
    failing = AsyncMock()
    failing.delete.side_effect = RuntimeError("cache exploded")
    failing.delete_pattern.side_effect = RuntimeError("cache exploded")
    caplog.set_level(logging.ERROR)

    await invalidate_store_cache(failing, "acme")
    await invalidate_product_cache(failing, "acme", "p1")
    await invalidate_analytics_cache(failing, "store-1")

    assert "Cache invalidation failed for acme" in caplog.text
    assert "Product cache invalidation failed for acme" in caplog.text
    assert "Analytics cache invalidation failed for store-1" in caplog.text
