"""Public storefront endpoints backing the visitor landing page."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from storefront.schemas.error import ErrorResponse, ErrorType
from storefront.schemas.store import PageMetadata, ProductItem, PublicStoreData
from storefront.services.dependencies import get_storefront_service
from storefront.services.storefront_service import StorefrontService
from storefront.utils.error_responses import build_error_response

router = APIRouter()

STORE_NOT_FOUND_TITLE = "Store Not Found"


def _store_not_found(request: Request, slug: str) -> JSONResponse:
    error_response = build_error_response(
        error_type=ErrorType.NOT_FOUND,
        message="Store not found",
        detail=f"No public store is published under '{slug}'",
        status_code=status.HTTP_404_NOT_FOUND,
        path=str(request.url.path),
    )
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content=error_response.model_dump(mode="json"),
    )


@router.get(
    "/{slug}",
    response_model=PublicStoreData,
    responses={404: {"model": ErrorResponse}},
)
async def get_public_store(
    slug: str,
    request: Request,
    service: StorefrontService = Depends(get_storefront_service),
) -> PublicStoreData | JSONResponse:
    """Return the store, its products, social links, and design in one payload."""

    data = await service.get_public_store(slug)
    if data is None:
        return _store_not_found(request, slug)
    return data


@router.get("/{slug}/metadata", response_model=PageMetadata)
async def get_page_metadata(
    slug: str,
    service: StorefrontService = Depends(get_storefront_service),
) -> PageMetadata | JSONResponse:
    """SEO metadata for the landing page."""

    metadata = await service.get_page_metadata(slug)
    if metadata is None:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content=PageMetadata(title=STORE_NOT_FOUND_TITLE).model_dump(mode="json"),
        )
    return metadata


@router.get(
    "/{slug}/products",
    response_model=list[ProductItem],
    responses={404: {"model": ErrorResponse}},
)
async def get_store_products(
    slug: str,
    request: Request,
    service: StorefrontService = Depends(get_storefront_service),
) -> list[ProductItem] | JSONResponse:
    products = await service.get_store_products(slug)
    if products is None:
        return _store_not_found(request, slug)
    return products
