"""Clients for the tracking ingress consumed by the visitor-side components."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storefront.db.repositories.analytics_repository import AnalyticsRepository
from storefront.schemas.analytics import (
    PageViewCreate,
    SessionCreate,
    SessionCreated,
    TrackingResponse,
)
from storefront.services.analytics.recorder import AnalyticsRecorder, RequestFingerprint
from storefront.settings import get_settings

logger = logging.getLogger(__name__)


class TrackingIngress(Protocol):
    async def create_session(
        self, payload: SessionCreate
    ) -> TrackingResponse[SessionCreated]: ...

    async def track_page_view(self, payload: PageViewCreate) -> TrackingResponse[None]: ...


class HttpTrackingIngress:
    """Send tracking calls to the HTTP ingress exposed by :mod:`storefront.api.analytics`.

    Failure envelopes (422/503 with a JSON body) are returned as unsuccessful
    responses; transport errors and non-JSON error pages raise ``httpx``
    exceptions for the caller to log.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        settings = get_settings()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url or settings.tracking_api_base_url,
            timeout=timeout if timeout is not None else settings.tracking_timeout_seconds,
        )

    async def _post(self, path: str, payload: BaseModel) -> Any:
        response = await self._client.post(
            path, json=payload.model_dump(mode="json", exclude_none=True)
        )
        content_type = response.headers.get("content-type", "")
        if response.is_error and not content_type.startswith("application/json"):
            response.raise_for_status()
        return response.json()

    async def create_session(self, payload: SessionCreate) -> TrackingResponse[SessionCreated]:
        body = await self._post("/analytics/sessions", payload)
        return TrackingResponse[SessionCreated].model_validate(body)

    async def track_page_view(self, payload: PageViewCreate) -> TrackingResponse[None]:
        body = await self._post("/analytics/page-views", payload)
        return TrackingResponse[None].model_validate(body)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class LocalTrackingIngress:
    """Call :class:`AnalyticsRecorder` in-process, one database session per call."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        fingerprint: RequestFingerprint | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._fingerprint = fingerprint

    async def create_session(self, payload: SessionCreate) -> TrackingResponse[SessionCreated]:
        async with self._session_factory() as session:
            recorder = AnalyticsRecorder(AnalyticsRepository(session), self._fingerprint)
            return await recorder.create_session(payload)

    async def track_page_view(self, payload: PageViewCreate) -> TrackingResponse[None]:
        async with self._session_factory() as session:
            recorder = AnalyticsRecorder(AnalyticsRepository(session), self._fingerprint)
            return await recorder.track_page_view(payload)


__all__ = ["HttpTrackingIngress", "LocalTrackingIngress", "TrackingIngress"]
