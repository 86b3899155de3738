"""Public storefront reads served through the read-through cache.

Every visitor page load asks :class:`StorefrontService` for the tenant
aggregate. The first request after a fill, TTL expiry, or invalidation runs the
repository loader; later requests inside the TTL window are answered from
Redis without touching the database.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from sqlalchemy.exc import SQLAlchemyError

from storefront.cache import CacheStore, storefront_key, storefront_products_key
from storefront.db.models import Product, Store
from storefront.schemas.store import (
    OpenGraphImage,
    PageMetadata,
    ProductItem,
    PublicStoreData,
)
from storefront.services.caching import (
    CacheableService,
    SingleFlight,
    cached,
    get_cached_data,
)
from storefront.settings import get_settings

logger = logging.getLogger(__name__)


class StorefrontRepositoryProtocol(Protocol):
    async def load_public_store(self, slug: str) -> PublicStoreData | None: ...

    async def get_store_by_slug(self, slug: str) -> Store | None: ...

    async def list_products(self, store_id: str) -> list[Product]: ...


def serialize_public_store(data: PublicStoreData) -> dict[str, Any]:
    return data.model_dump(mode="json")


def deserialize_public_store(payload: Any) -> PublicStoreData:
    if not isinstance(payload, dict):
        raise TypeError("Expected cached storefront payload to be a mapping")
    return PublicStoreData.model_validate(payload)


def serialize_products(products: list[ProductItem]) -> list[dict[str, Any]]:
    return [product.model_dump(mode="json") for product in products]


def deserialize_products(payload: Any) -> list[ProductItem]:
    if not isinstance(payload, list):
        raise TypeError("Expected cached product list to be a list")
    return [ProductItem.model_validate(item) for item in payload]


class StorefrontService(CacheableService):
    def __init__(
        self,
        repository: StorefrontRepositoryProtocol,
        cache: CacheStore | None = None,
        *,
        ttl_seconds: int | None = None,
        single_flight: SingleFlight | None = None,
    ) -> None:
        super().__init__(cache, single_flight=single_flight)
        self._repository = repository
        if ttl_seconds is None:
            ttl_seconds = get_settings().storefront_cache_ttl_seconds
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be a positive integer, received {ttl_seconds!r}")
        self._ttl_seconds = ttl_seconds

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    async def get_public_store(self, slug: str) -> PublicStoreData | None:
        """Return the public aggregate for ``slug`` or ``None`` when unavailable.

        Both "no such store" and database failures come back as ``None`` and
        neither is cached, so the next request retries the database.
        """

        try:
            return await get_cached_data(
                self._cache,
                storefront_key(slug),
                lambda: self._repository.load_public_store(slug),
                self._ttl_seconds,
                serializer=serialize_public_store,
                deserializer=deserialize_public_store,
                single_flight=self._single_flight,
            )
        except SQLAlchemyError:
            logger.exception("Get public store error for slug %s", slug)
            return None

    @cached(
        lambda self, slug: storefront_products_key(slug),
        ttl=lambda self: self._ttl_seconds,
        serializer=serialize_products,
        deserializer=deserialize_products,
    )
    async def get_store_products(self, slug: str) -> list[ProductItem] | None:
        """Return the ordered product list for ``slug``."""

        store = await self._repository.get_store_by_slug(slug)
        if store is None:
            return None
        products = await self._repository.list_products(store.id)
        return [ProductItem.model_validate(product) for product in products]

    async def get_page_metadata(self, slug: str) -> PageMetadata | None:
        """Build SEO metadata for the landing page, ``None`` when the store is missing."""

        data = await self.get_public_store(slug)
        if data is None:
            return None

        store = data.store
        description = store.bio or f"Check out {store.name}'s store"
        images = (
            [OpenGraphImage(url=store.profile_pic_url, alt=store.name)]
            if store.profile_pic_url
            else []
        )
        return PageMetadata(title=store.name, description=description, og_images=images)


__all__ = [
    "StorefrontRepositoryProtocol",
    "StorefrontService",
    "deserialize_public_store",
    "serialize_public_store",
]
