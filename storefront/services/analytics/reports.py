"""Dashboard analytics aggregates computed from the events table.

Aggregates are read-through cached under ``analytics:<store_id>:...`` with a
short TTL. Individual tracking events never invalidate them; a dashboard that
lags live traffic by a few minutes is acceptable.
"""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from collections.abc import Iterable
from datetime import datetime
from typing import Any, Protocol

from storefront.cache import CacheStore, analytics_key
from storefront.db.models import AnalyticsEvent
from storefront.schemas.analytics import (
    StoreAnalyticsSummary,
    TrafficSource,
    TrafficSourcesResponse,
)
from storefront.services.caching import CacheableService, SingleFlight, cached
from storefront.settings import get_settings

logger = logging.getLogger(__name__)

DIRECT_SOURCE = "direct"


class AnalyticsEventSource(Protocol):
    async def fetch_events(
        self,
        store_id: str,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[AnalyticsEvent]: ...


def date_range_fragment(start: datetime, end: datetime) -> str:
    return f"{start.isoformat()}_{end.isoformat()}"


def _event_revenue(event: AnalyticsEvent) -> float:
    data = event.event_data or {}
    value = data.get("amount", data.get("revenue", 0))
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def summarize_events(events: Iterable[AnalyticsEvent]) -> StoreAnalyticsSummary:
    """Fold raw events into the dashboard headline metrics."""

    type_counts: Counter[str] = Counter()
    sessions: set[str] = set()
    sources: Counter[str] = Counter()
    revenue = 0.0

    for event in events:
        type_counts[event.event_type] += 1
        if event.session_id:
            sessions.add(event.session_id)
        if event.utm_source:
            sources[event.utm_source] += 1
        if event.event_type == "purchase":
            revenue += _event_revenue(event)

    page_views = type_counts["page_view"]
    purchases = type_counts["purchase"]
    conversion_rate = (purchases / page_views) * 100 if page_views > 0 else 0.0
    top_source = sources.most_common(1)[0][0] if sources else None

    return StoreAnalyticsSummary(
        total_page_views=page_views,
        total_clicks=type_counts["product_click"],
        unique_visitors=len(sessions),
        total_leads=type_counts["lead_submit"],
        total_purchases=purchases,
        total_revenue=round(revenue, 2),
        top_traffic_source=top_source,
        conversion_rate=round(conversion_rate, 2),
    )


def group_traffic_sources(events: Iterable[AnalyticsEvent]) -> list[TrafficSource]:
    """Group events by (source, medium); untagged traffic counts as ``direct``."""

    buckets: dict[tuple[str, str | None], dict[str, Any]] = defaultdict(
        lambda: {"views": 0, "clicks": 0, "leads": 0, "purchases": 0, "revenue": 0.0}
    )
    counters = {
        "page_view": "views",
        "product_click": "clicks",
        "lead_submit": "leads",
        "purchase": "purchases",
    }

    for event in events:
        bucket = buckets[(event.utm_source or DIRECT_SOURCE, event.utm_medium)]
        counter = counters.get(event.event_type)
        if counter is not None:
            bucket[counter] += 1
        if event.event_type == "purchase":
            bucket["revenue"] += _event_revenue(event)

    total_views = sum(bucket["views"] for bucket in buckets.values())
    sources = [
        TrafficSource(
            source=source,
            medium=medium,
            views=bucket["views"],
            clicks=bucket["clicks"],
            leads=bucket["leads"],
            purchases=bucket["purchases"],
            revenue=round(bucket["revenue"], 2),
            percentage=round(bucket["views"] / total_views * 100, 2) if total_views else 0.0,
        )
        for (source, medium), bucket in buckets.items()
    ]
    return sorted(sources, key=lambda item: (-item.views, item.source))


def _summary_key(
    service: CacheableService, store_id: str, start: datetime, end: datetime
) -> str:
    return analytics_key(store_id, date_range_fragment(start, end), "summary")


def _traffic_key(
    service: CacheableService, store_id: str, start: datetime, end: datetime
) -> str:
    return analytics_key(store_id, date_range_fragment(start, end), "traffic_sources")


def _analytics_ttl(service: CacheableService) -> int:
    return get_settings().analytics_cache_ttl_seconds


class AnalyticsReportService(CacheableService):
    def __init__(
        self,
        repository: AnalyticsEventSource,
        cache: CacheStore | None = None,
        *,
        single_flight: SingleFlight | None = None,
    ) -> None:
        super().__init__(cache, single_flight=single_flight)
        self._repository = repository

    @cached(
        _summary_key,
        ttl=_analytics_ttl,
        serializer=lambda summary: summary.model_dump(mode="json"),
        deserializer=StoreAnalyticsSummary.model_validate,
    )
    async def get_store_summary(
        self, store_id: str, start: datetime, end: datetime
    ) -> StoreAnalyticsSummary:
        events = await self._repository.fetch_events(store_id, start=start, end=end)
        logger.debug("Summarizing %d events for store %s", len(events), store_id)
        return summarize_events(events)

    @cached(
        _traffic_key,
        ttl=_analytics_ttl,
        serializer=lambda response: response.model_dump(mode="json"),
        deserializer=TrafficSourcesResponse.model_validate,
    )
    async def get_traffic_sources(
        self, store_id: str, start: datetime, end: datetime
    ) -> TrafficSourcesResponse:
        events = await self._repository.fetch_events(store_id, start=start, end=end)
        return TrafficSourcesResponse(
            store_id=store_id,
            start=start,
            end=end,
            sources=group_traffic_sources(events),
        )


__all__ = [
    "AnalyticsReportService",
    "group_traffic_sources",
    "summarize_events",
]
