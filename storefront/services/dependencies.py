"""FastAPI dependency wiring for storefront services.

Routers only ever see fully constructed services; the factories here resolve
the infrastructure (database session, cache client, request fingerprint) so
the service modules stay free of web-layer concerns.
"""

from __future__ import annotations

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.cache import CacheClient, get_cache_client
from storefront.db.connection import get_db
from storefront.db.repositories import AnalyticsRepository, StoreRepository
from storefront.services.analytics import (
    AnalyticsRecorder,
    AnalyticsReportService,
    RequestFingerprint,
)
from storefront.services.caching import SingleFlight, default_single_flight
from storefront.services.store_admin_service import StoreAdminService
from storefront.services.storefront_service import StorefrontService
from storefront.settings import get_settings


def _single_flight() -> SingleFlight | None:
    return default_single_flight() if get_settings().cache_single_flight else None


def get_storefront_service(
    session: AsyncSession = Depends(get_db),
    cache: CacheClient = Depends(get_cache_client),
) -> StorefrontService:
    """Provide a :class:`StorefrontService` reading through the shared cache."""

    return StorefrontService(
        StoreRepository(session), cache=cache, single_flight=_single_flight()
    )


def get_store_admin_service(
    session: AsyncSession = Depends(get_db),
    cache: CacheClient = Depends(get_cache_client),
) -> StoreAdminService:
    return StoreAdminService(StoreRepository(session), cache)


def get_analytics_recorder(
    request: Request,
    session: AsyncSession = Depends(get_db),
) -> AnalyticsRecorder:
    """Bind the recorder to the caller's user agent and hashed IP."""

    fingerprint = RequestFingerprint.from_headers(
        request.headers, request.client.host if request.client else None
    )
    return AnalyticsRecorder(AnalyticsRepository(session), fingerprint)


def get_analytics_report_service(
    session: AsyncSession = Depends(get_db),
    cache: CacheClient = Depends(get_cache_client),
) -> AnalyticsReportService:
    return AnalyticsReportService(
        AnalyticsRepository(session), cache=cache, single_flight=_single_flight()
    )


__all__ = [
    "get_analytics_recorder",
    "get_analytics_report_service",
    "get_store_admin_service",
    "get_storefront_service",
]
