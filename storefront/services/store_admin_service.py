"""Dashboard mutations for tenant data.

Each operation commits its transaction before invalidating the cache, so the
next public read is a guaranteed miss that observes the committed state.
Invalidation never fails the mutation; a lost delete is bounded by the
storefront TTL.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from storefront.cache import CacheStore, invalidate_product_cache, invalidate_store_cache
from storefront.db.models import Store
from storefront.db.repositories.store_repository import StoreRepository
from storefront.schemas.store import (
    ProductCreate,
    ProductItem,
    ProductUpdate,
    SocialLinkInput,
    SocialLinkItem,
    StoreCustomizationSchema,
    StoreDesignUpdate,
    StoreProfile,
    StoreProfileUpdate,
)

logger = logging.getLogger(__name__)


class StoreAdminService:
    def __init__(self, repository: StoreRepository, cache: CacheStore) -> None:
        self._repository = repository
        self._cache = cache

    async def _require_store(self, slug: str) -> Store:
        store = await self._repository.get_store_by_slug(slug)
        if store is None:
            raise LookupError("Store not found")
        return store

    async def update_profile(self, slug: str, payload: StoreProfileUpdate) -> StoreProfile:
        store = await self._require_store(slug)
        changes = payload.model_dump(exclude_unset=True)
        previous_slug = store.slug

        await self._repository.update_store(store, changes)
        await self._repository.commit()

        await invalidate_store_cache(self._cache, previous_slug)
        if store.slug != previous_slug:
            logger.info("Store slug changed from %s to %s", previous_slug, store.slug)
            await invalidate_store_cache(self._cache, store.slug)
        return StoreProfile.model_validate(store)

    async def replace_social_links(
        self, slug: str, links: Sequence[SocialLinkInput]
    ) -> list[SocialLinkItem]:
        store = await self._require_store(slug)
        rows = await self._repository.replace_social_links(store, links)
        await self._repository.commit()

        await invalidate_store_cache(self._cache, store.slug)
        return [SocialLinkItem.model_validate(row) for row in rows]

    async def update_design(
        self, slug: str, payload: StoreDesignUpdate
    ) -> StoreCustomizationSchema:
        store = await self._require_store(slug)
        customization = await self._repository.upsert_customization(
            store, payload.model_dump(exclude_unset=True)
        )
        await self._repository.commit()

        await invalidate_store_cache(self._cache, store.slug)
        return StoreCustomizationSchema.model_validate(customization)

    async def create_product(self, slug: str, payload: ProductCreate) -> ProductItem:
        store = await self._require_store(slug)
        product = await self._repository.add_product(store, payload.model_dump())
        await self._repository.commit()

        await invalidate_product_cache(self._cache, store.slug)
        return ProductItem.model_validate(product)

    async def update_product(
        self, slug: str, product_id: str, payload: ProductUpdate
    ) -> ProductItem:
        store = await self._require_store(slug)
        product = await self._repository.get_product(store.id, product_id)
        if product is None:
            raise LookupError("Product not found")

        await self._repository.update_product(product, payload.model_dump(exclude_unset=True))
        await self._repository.commit()

        await invalidate_product_cache(self._cache, store.slug, product_id)
        return ProductItem.model_validate(product)

    async def delete_product(self, slug: str, product_id: str) -> None:
        store = await self._require_store(slug)
        product = await self._repository.get_product(store.id, product_id)
        if product is None:
            raise LookupError("Product not found")

        await self._repository.delete_product(product)
        await self._repository.commit()

        await invalidate_product_cache(self._cache, store.slug, product_id)

    async def reorder_products(self, slug: str, product_ids: Sequence[str]) -> list[ProductItem]:
        store = await self._require_store(slug)
        products = await self._repository.reorder_products(store, product_ids)
        await self._repository.commit()

        await invalidate_product_cache(self._cache, store.slug)
        return [ProductItem.model_validate(product) for product in products]


__all__ = ["StoreAdminService"]
