"""Dashboard mutations commit first, then invalidate the public cache."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from storefront.db.repositories import StoreRepository
from storefront.schemas.store import (
    ProductCreate,
    ProductUpdate,
    SocialLinkInput,
    StoreDesignUpdate,
    StoreProfileUpdate,
)
from storefront.services.store_admin_service import StoreAdminService
from storefront.services.storefront_service import StorefrontService


@pytest.fixture
def warm_cache(memory_cache):
    memory_cache.store.update(
        {
            "storefront:acme": {"stale": True},
            "storefront:acme:products": [],
            "storefront:acme:product:p1": {},
            "storefront:other": {"untouched": True},
        }
    )
    return memory_cache


@pytest.mark.asyncio
async def test_update_profile_invalidates_store_namespace(session, acme_store, warm_cache) -> None:
    service = StoreAdminService(StoreRepository(session), warm_cache)

    profile = await service.update_profile("acme", StoreProfileUpdate(bio="New bio"))

    assert profile.bio == "New bio"
    assert list(warm_cache.store) == ["storefront:other"]


@pytest.mark.asyncio
async def test_slug_change_invalidates_old_and_new_slug(session, acme_store, memory_cache) -> None:
    memory_cache.store["storefront:acme"] = {"stale": True}
    memory_cache.store["storefront:acme-co"] = {"squatter": True}
    service = StoreAdminService(StoreRepository(session), memory_cache)

    profile = await service.update_profile("acme", StoreProfileUpdate(slug="acme-co"))

    assert profile.slug == "acme-co"
    assert memory_cache.store == {}
    assert "storefront:acme" in memory_cache.deleted
    assert "storefront:acme-co" in memory_cache.deleted


@pytest.mark.asyncio
async def test_replace_social_links(session, acme_store, warm_cache) -> None:
    service = StoreAdminService(StoreRepository(session), warm_cache)

    links = await service.replace_social_links(
        "acme",
        [
            SocialLinkInput(platform="tiktok", url="https://tiktok.com/@acme"),
            SocialLinkInput(platform="youtube", url="https://youtube.com/acme"),
        ],
    )

    assert [(link.platform, link.position) for link in links] == [("tiktok", 0), ("youtube", 1)]
    assert "storefront:acme" not in warm_cache.store


@pytest.mark.asyncio
async def test_update_design(session, acme_store, warm_cache) -> None:
    service = StoreAdminService(StoreRepository(session), warm_cache)

    design = await service.update_design("acme", StoreDesignUpdate(layout="bento"))

    assert design.layout == "bento"
    assert design.theme == "desert"
    assert "storefront:acme" not in warm_cache.store


@pytest.mark.asyncio
async def test_product_lifecycle_invalidates_product_keys(
    session, acme_store, memory_cache
) -> None:
    service = StoreAdminService(StoreRepository(session), memory_cache)

    created = await service.create_product("acme", ProductCreate(name="Anvil", price=10))
    assert created.position == 3
    assert memory_cache.deleted == ["storefront:acme", "storefront:acme:products"]

    memory_cache.deleted.clear()
    updated = await service.update_product(
        "acme", created.id, ProductUpdate(name="Heavy Anvil", is_published=False)
    )
    assert updated.name == "Heavy Anvil"
    assert updated.is_published is False
    assert memory_cache.deleted == [
        "storefront:acme",
        "storefront:acme:products",
        f"storefront:acme:product:{created.id}",
    ]

    memory_cache.deleted.clear()
    await service.delete_product("acme", created.id)
    assert f"storefront:acme:product:{created.id}" in memory_cache.deleted
    assert await StoreRepository(session).get_product(acme_store.id, created.id) is None


@pytest.mark.asyncio
async def test_reorder_products_moves_omitted_products_last(session, acme_store, memory_cache) -> None:
    repository = StoreRepository(session)
    products = await repository.list_products(acme_store.id)
    magnet, skates, boulders = products
    service = StoreAdminService(repository, memory_cache)

    reordered = await service.reorder_products("acme", [boulders.id, magnet.id])

    assert [product.name for product in reordered] == [
        "Dehydrated Boulders",
        "Giant Magnet",
        "Rocket Skates",
    ]
    assert [product.position for product in reordered] == [0, 1, 2]
    assert "storefront:acme:products" in memory_cache.deleted


@pytest.mark.asyncio
async def test_reorder_with_unknown_product_raises(session, acme_store, memory_cache) -> None:
    service = StoreAdminService(StoreRepository(session), memory_cache)

    with pytest.raises(LookupError, match="Unknown product ids"):
        await service.reorder_products("acme", ["missing"])
    assert memory_cache.deleted == []


@pytest.mark.asyncio
async def test_missing_store_and_product_raise_lookup_error(session, acme_store, memory_cache) -> None:
    service = StoreAdminService(StoreRepository(session), memory_cache)

    with pytest.raises(LookupError, match="Store not found"):
        await service.update_profile("ghost", StoreProfileUpdate(name="Ghost"))
    with pytest.raises(LookupError, match="Product not found"):
        await service.update_product("acme", "missing", ProductUpdate(name="x"))
    with pytest.raises(LookupError, match="Product not found"):
        await service.delete_product("acme", "missing")


@pytest.mark.asyncio
async def test_invalidation_failure_does_not_fail_the_mutation(session, acme_store) -> None:
    broken = AsyncMock()
    broken.delete.side_effect = RuntimeError("redis down")
    broken.delete_pattern.side_effect = RuntimeError("redis down")
    service = StoreAdminService(StoreRepository(session), broken)

    profile = await service.update_profile("acme", StoreProfileUpdate(name="Acme Co"))

    assert profile.name == "Acme Co"
    reread = await StorefrontService(StoreRepository(session)).get_public_store("acme")
    assert reread is not None and reread.store.name == "Acme Co"
