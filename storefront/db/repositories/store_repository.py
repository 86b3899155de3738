"""Tenant data access: the public storefront aggregate plus dashboard writes.

Reads issue explicit ordered queries instead of relying on relationship lazy
loading, which is unavailable on async sessions.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.models import Product, SocialLink, Store, StoreCustomization
from storefront.schemas.store import (
    ProductItem,
    PublicStoreData,
    SocialLinkInput,
    SocialLinkItem,
    StoreCustomizationSchema,
    StoreProfile,
)


class StoreRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_store_by_slug(self, slug: str) -> Store | None:
        result = await self._session.execute(select(Store).where(Store.slug == slug))
        return result.scalar_one_or_none()

    async def get_store(self, store_id: str) -> Store | None:
        return await self._session.get(Store, store_id)

    async def list_products(self, store_id: str) -> list[Product]:
        result = await self._session.execute(
            select(Product)
            .where(Product.store_id == store_id)
            .order_by(Product.position.asc(), Product.created_at.asc())
        )
        return list(result.scalars().all())

    async def list_social_links(self, store_id: str) -> list[SocialLink]:
        result = await self._session.execute(
            select(SocialLink)
            .where(SocialLink.store_id == store_id)
            .order_by(SocialLink.position.asc())
        )
        return list(result.scalars().all())

    async def get_customization(self, store_id: str) -> StoreCustomization | None:
        result = await self._session.execute(
            select(StoreCustomization).where(StoreCustomization.store_id == store_id)
        )
        return result.scalar_one_or_none()

    async def load_public_store(self, slug: str) -> PublicStoreData | None:
        """Return the public aggregate for ``slug`` or ``None`` when no store exists."""

        store = await self.get_store_by_slug(slug)
        if store is None:
            return None

        products = await self.list_products(store.id)
        social_links = await self.list_social_links(store.id)
        customization = await self.get_customization(store.id)

        return PublicStoreData(
            store=StoreProfile.model_validate(store),
            products=[ProductItem.model_validate(product) for product in products],
            social_links=[SocialLinkItem.model_validate(link) for link in social_links],
            customization=(
                StoreCustomizationSchema.model_validate(customization)
                if customization is not None
                else None
            ),
        )

    # -- Writes -----------------------------------------------------------

    async def update_store(self, store: Store, changes: dict[str, Any]) -> Store:
        for field, value in changes.items():
            setattr(store, field, value)
        await self._session.flush()
        return store

    async def replace_social_links(
        self, store: Store, links: Sequence[SocialLinkInput]
    ) -> list[SocialLink]:
        await self._session.execute(delete(SocialLink).where(SocialLink.store_id == store.id))
        rows = [
            SocialLink(store_id=store.id, platform=link.platform, url=link.url, position=index)
            for index, link in enumerate(links)
        ]
        self._session.add_all(rows)
        await self._session.flush()
        return rows

    async def upsert_customization(
        self, store: Store, changes: dict[str, Any]
    ) -> StoreCustomization:
        customization = await self.get_customization(store.id)
        if customization is None:
            customization = StoreCustomization(store_id=store.id, colors={})
            self._session.add(customization)
        for field, value in changes.items():
            setattr(customization, field, value)
        await self._session.flush()
        return customization

    async def _next_product_position(self, store_id: str) -> int:
        result = await self._session.execute(
            select(func.max(Product.position)).where(Product.store_id == store_id)
        )
        current = result.scalar_one_or_none()
        return 0 if current is None else current + 1

    async def add_product(self, store: Store, fields: dict[str, Any]) -> Product:
        product = Product(
            store_id=store.id,
            position=await self._next_product_position(store.id),
            **fields,
        )
        self._session.add(product)
        await self._session.flush()
        return product

    async def get_product(self, store_id: str, product_id: str) -> Product | None:
        result = await self._session.execute(
            select(Product).where(Product.store_id == store_id, Product.id == product_id)
        )
        return result.scalar_one_or_none()

    async def update_product(self, product: Product, changes: dict[str, Any]) -> Product:
        for field, value in changes.items():
            setattr(product, field, value)
        await self._session.flush()
        return product

    async def delete_product(self, product: Product) -> None:
        await self._session.delete(product)
        await self._session.flush()

    async def reorder_products(self, store: Store, product_ids: Iterable[str]) -> list[Product]:
        """Assign positions following ``product_ids``; unknown ids raise ``LookupError``."""

        products = {product.id: product for product in await self.list_products(store.id)}
        ordered_ids = list(product_ids)
        missing = [product_id for product_id in ordered_ids if product_id not in products]
        if missing:
            raise LookupError(f"Unknown product ids: {', '.join(missing)}")

        for position, product_id in enumerate(ordered_ids):
            products[product_id].position = position
        # Products omitted from the request keep their relative order at the end.
        requested = set(ordered_ids)
        trailing = [product for pid, product in products.items() if pid not in requested]
        for offset, product in enumerate(trailing, start=len(ordered_ids)):
            product.position = offset
        await self._session.flush()
        return sorted(products.values(), key=lambda product: product.position)

    async def commit(self) -> None:
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()
