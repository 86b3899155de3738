"""Dashboard endpoints that mutate tenant data.

Authentication is out of scope; these routes exist so every write path goes
through :class:`StoreAdminService`, which invalidates the public cache.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status

from storefront.schemas.store import (
    ProductCreate,
    ProductItem,
    ProductReorderRequest,
    ProductUpdate,
    SocialLinkItem,
    SocialLinksReplaceRequest,
    StoreCustomizationSchema,
    StoreDesignUpdate,
    StoreProfile,
    StoreProfileUpdate,
)
from storefront.services.dependencies import get_store_admin_service
from storefront.services.store_admin_service import StoreAdminService

router = APIRouter()


@router.patch("/{slug}", response_model=StoreProfile)
async def update_store_profile(
    slug: str,
    payload: StoreProfileUpdate,
    service: StoreAdminService = Depends(get_store_admin_service),
) -> StoreProfile:
    try:
        return await service.update_profile(slug, payload)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.put("/{slug}/social-links", response_model=list[SocialLinkItem])
async def replace_social_links(
    slug: str,
    payload: SocialLinksReplaceRequest,
    service: StoreAdminService = Depends(get_store_admin_service),
) -> list[SocialLinkItem]:
    """Replace the full, ordered list of social links."""

    try:
        return await service.replace_social_links(slug, payload.links)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.patch("/{slug}/design", response_model=StoreCustomizationSchema)
async def update_store_design(
    slug: str,
    payload: StoreDesignUpdate,
    service: StoreAdminService = Depends(get_store_admin_service),
) -> StoreCustomizationSchema:
    try:
        return await service.update_design(slug, payload)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


# Registered before ``/{slug}/products/{product_id}`` so "order" is not read
# as a product id.
@router.put("/{slug}/products/order", response_model=list[ProductItem])
async def reorder_products(
    slug: str,
    payload: ProductReorderRequest,
    service: StoreAdminService = Depends(get_store_admin_service),
) -> list[ProductItem]:
    try:
        return await service.reorder_products(slug, payload.product_ids)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.post(
    "/{slug}/products",
    response_model=ProductItem,
    status_code=status.HTTP_201_CREATED,
)
async def create_product(
    slug: str,
    payload: ProductCreate,
    service: StoreAdminService = Depends(get_store_admin_service),
) -> ProductItem:
    """Append a product at the end of the store's list."""

    try:
        return await service.create_product(slug, payload)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.patch("/{slug}/products/{product_id}", response_model=ProductItem)
async def update_product(
    slug: str,
    product_id: str,
    payload: ProductUpdate,
    service: StoreAdminService = Depends(get_store_admin_service),
) -> ProductItem:
    try:
        return await service.update_product(slug, product_id, payload)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.delete("/{slug}/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(
    slug: str,
    product_id: str,
    service: StoreAdminService = Depends(get_store_admin_service),
) -> Response:
    try:
        await service.delete_product(slug, product_id)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
