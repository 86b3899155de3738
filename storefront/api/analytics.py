"""Tracking ingress and dashboard analytics endpoints.

Tracking routes validate inside the handler so every failure, including a
malformed payload, comes back in the ``{"success": false, "error": ...}``
envelope that visitor-side clients understand.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from typing import Any, TypeVar

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from storefront.schemas.analytics import (
    LeadSubmissionCreate,
    PageViewCreate,
    ProductClickCreate,
    PurchaseCreate,
    SessionCreate,
    StoreAnalyticsSummary,
    TrackingResponse,
    TrafficSourcesResponse,
)
from storefront.services.analytics import (
    AnalyticsRecorder,
    AnalyticsReportService,
    validation_failure,
)
from storefront.services.dependencies import (
    get_analytics_recorder,
    get_analytics_report_service,
)

router = APIRouter()

DEFAULT_REPORT_WINDOW = timedelta(days=7)

PayloadT = TypeVar("PayloadT", bound=BaseModel)


async def _ingest(
    model: type[PayloadT],
    body: dict[str, Any],
    handler: Callable[[PayloadT], Awaitable[TrackingResponse[Any]]],
) -> JSONResponse:
    try:
        payload = model.model_validate(body)
    except ValidationError as exc:
        result: TrackingResponse[Any] = validation_failure(exc)
        status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    else:
        result = await handler(payload)
        status_code = (
            status.HTTP_200_OK if result.success else status.HTTP_503_SERVICE_UNAVAILABLE
        )
    return JSONResponse(status_code=status_code, content=result.model_dump(mode="json"))


@router.post("/sessions", response_model=TrackingResponse[Any])
async def create_session(
    body: dict[str, Any] = Body(...),
    recorder: AnalyticsRecorder = Depends(get_analytics_recorder),
) -> JSONResponse:
    """Register a visitor session; an already known session id is returned as-is."""

    return await _ingest(SessionCreate, body, recorder.create_session)


@router.post("/page-views", response_model=TrackingResponse[Any])
async def track_page_view(
    body: dict[str, Any] = Body(...),
    recorder: AnalyticsRecorder = Depends(get_analytics_recorder),
) -> JSONResponse:
    return await _ingest(PageViewCreate, body, recorder.track_page_view)


@router.post("/product-clicks", response_model=TrackingResponse[Any])
async def track_product_click(
    body: dict[str, Any] = Body(...),
    recorder: AnalyticsRecorder = Depends(get_analytics_recorder),
) -> JSONResponse:
    return await _ingest(ProductClickCreate, body, recorder.track_product_click)


@router.post("/leads", response_model=TrackingResponse[Any])
async def track_lead_submission(
    body: dict[str, Any] = Body(...),
    recorder: AnalyticsRecorder = Depends(get_analytics_recorder),
) -> JSONResponse:
    return await _ingest(LeadSubmissionCreate, body, recorder.track_lead_submission)


@router.post("/purchases", response_model=TrackingResponse[Any])
async def track_purchase(
    body: dict[str, Any] = Body(...),
    recorder: AnalyticsRecorder = Depends(get_analytics_recorder),
) -> JSONResponse:
    return await _ingest(PurchaseCreate, body, recorder.track_purchase)


def resolve_report_window(
    start: datetime | None, end: datetime | None
) -> tuple[datetime, datetime]:
    """Default to the trailing seven days.

    The default ``end`` is the start of the next minute, so repeated dashboard
    loads within one minute share a cache key and still see current events.
    """

    if end is None:
        end = datetime.now(UTC).replace(second=0, microsecond=0) + timedelta(minutes=1)
    elif end.tzinfo is None:
        end = end.replace(tzinfo=UTC)
    if start is None:
        start = end - DEFAULT_REPORT_WINDOW
    elif start.tzinfo is None:
        start = start.replace(tzinfo=UTC)
    if start > end:
        raise HTTPException(status_code=400, detail="start must not be after end")
    return start, end


@router.get("/stores/{store_id}/summary", response_model=StoreAnalyticsSummary)
async def get_store_summary(
    store_id: str,
    start: datetime | None = Query(None, description="Window start (ISO 8601)"),
    end: datetime | None = Query(None, description="Window end (ISO 8601)"),
    service: AnalyticsReportService = Depends(get_analytics_report_service),
) -> StoreAnalyticsSummary:
    window_start, window_end = resolve_report_window(start, end)
    return await service.get_store_summary(store_id, window_start, window_end)


@router.get("/stores/{store_id}/traffic-sources", response_model=TrafficSourcesResponse)
async def get_traffic_sources(
    store_id: str,
    start: datetime | None = Query(None, description="Window start (ISO 8601)"),
    end: datetime | None = Query(None, description="Window end (ISO 8601)"),
    service: AnalyticsReportService = Depends(get_analytics_report_service),
) -> TrafficSourcesResponse:
    """Views, clicks, leads, purchases, and revenue grouped by UTM source."""

    window_start, window_end = resolve_report_window(start, end)
    return await service.get_traffic_sources(store_id, window_start, window_end)
