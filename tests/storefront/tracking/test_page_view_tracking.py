from __future__ import annotations

import asyncio
import uuid

import pytest

from storefront.schemas.analytics import (
    PageViewCreate,
    SessionCreate,
    SessionCreated,
    TrackingResponse,
    UtmParams,
)
from storefront.tracking import (
    AnalyticsSessionManager,
    InMemoryTabStorage,
    NavigationContext,
    PageViewEvent,
    PageViewTracker,
    StorefrontAnalytics,
    extract_utm_params,
    normalize_referrer,
)

STORE_ID = str(uuid.uuid4())


class RecordingIngress:
    def __init__(self) -> None:
        self.sessions: list[SessionCreate] = []
        self.page_views: list[PageViewCreate] = []
        self.page_view_error: BaseException | None = None
        self.reject_page_views = False

    async def create_session(self, payload: SessionCreate) -> TrackingResponse[SessionCreated]:
        self.sessions.append(payload)
        return TrackingResponse(success=True, data=SessionCreated(session_id=payload.session_id))

    async def track_page_view(self, payload: PageViewCreate) -> TrackingResponse[None]:
        if self.page_view_error is not None:
            raise self.page_view_error
        if self.reject_page_views:
            return TrackingResponse(success=False, error="Failed to track page view")
        self.page_views.append(payload)
        return TrackingResponse(success=True)


def _analytics(ingress: RecordingIngress, storage: InMemoryTabStorage) -> StorefrontAnalytics:
    return StorefrontAnalytics(
        AnalyticsSessionManager(STORE_ID, storage, ingress), PageViewTracker(ingress)
    )


def test_extract_utm_params_drops_blank_values() -> None:
    params = extract_utm_params(
        "https://shop.example.com/acme?utm_source=ig&utm_medium=&utm_term=%20&ref=x"
    )

    assert params == UtmParams(utm_source="ig")
    assert extract_utm_params("https://shop.example.com/acme") == UtmParams()


def test_normalize_referrer_and_page() -> None:
    assert normalize_referrer("   ") is None
    assert normalize_referrer(None) is None
    assert normalize_referrer(" https://twitter.com ") == "https://twitter.com"
    assert NavigationContext(url="https://shop.example.com").page == "/"
    assert NavigationContext(url="https://shop.example.com/acme?x=1").page == "/acme"


@pytest.mark.asyncio
async def test_page_views_carry_first_touch_attribution() -> None:
    ingress = RecordingIngress()
    storage = InMemoryTabStorage()
    analytics = _analytics(ingress, storage)

    await analytics.on_page_load(
        NavigationContext(
            url="https://shop.example.com/acme?utm_source=ig", referrer="https://twitter.com"
        )
    )
    # Reload in the same tab with a different referrer and no UTM.
    reloaded = _analytics(ingress, storage)
    await reloaded.on_page_load(
        NavigationContext(url="https://shop.example.com/acme/about", referrer="https://google.com")
    )
    await analytics._tracker.drain()
    await reloaded._tracker.drain()

    assert len(ingress.sessions) == 1
    first, second = ingress.page_views
    assert first.session_id == second.session_id == ingress.sessions[0].session_id
    assert first.referrer == second.referrer == "https://twitter.com"
    assert first.utm_source == second.utm_source == "ig"
    assert (first.page, second.page) == ("/acme", "/acme/about")


@pytest.mark.asyncio
async def test_one_page_view_per_page_transition() -> None:
    ingress = RecordingIngress()
    analytics = _analytics(ingress, InMemoryTabStorage())
    landing = NavigationContext(url="https://shop.example.com/acme")

    first = await analytics.on_page_load(landing)
    repeat = await analytics.on_page_load(landing)
    other = await analytics.on_page_load(NavigationContext(url="https://shop.example.com/acme/x"))
    assert first is not None and other is not None
    assert repeat is None
    await asyncio.gather(first, other)

    assert [view.page for view in ingress.page_views] == ["/acme", "/acme/x"]


@pytest.mark.asyncio
async def test_no_page_view_before_session_is_ready() -> None:
    class BrokenStorage(InMemoryTabStorage):
        def set_item(self, key: str, value: str) -> None:
            raise OSError("storage disabled")

    ingress = RecordingIngress()
    analytics = _analytics(ingress, BrokenStorage())

    task = await analytics.on_page_load(NavigationContext(url="https://shop.example.com/acme"))

    assert task is None
    assert ingress.page_views == []


@pytest.mark.asyncio
async def test_dispatch_drops_events_without_session() -> None:
    ingress = RecordingIngress()
    tracker = PageViewTracker(ingress)

    assert tracker.dispatch(PageViewEvent(store_id=STORE_ID, session_id="")) is None
    assert await tracker.track_page_view(PageViewEvent(store_id=STORE_ID, session_id="")) is False
    assert ingress.page_views == []


@pytest.mark.asyncio
async def test_dispatch_returns_before_delivery_and_drains() -> None:
    release = asyncio.Event()

    class SlowIngress(RecordingIngress):
        async def track_page_view(self, payload: PageViewCreate) -> TrackingResponse[None]:
            await release.wait()
            return await super().track_page_view(payload)

    ingress = SlowIngress()
    tracker = PageViewTracker(ingress)

    task = tracker.dispatch(PageViewEvent(store_id=STORE_ID, session_id=str(uuid.uuid4())))

    assert task is not None
    assert tracker.pending == 1
    assert ingress.page_views == []
    release.set()
    await tracker.drain()
    assert tracker.pending == 0
    assert len(ingress.page_views) == 1
    assert task.result() is True


@pytest.mark.asyncio
async def test_delivery_failures_are_logged_not_raised(caplog) -> None:
    ingress = RecordingIngress()
    ingress.page_view_error = ConnectionError("offline")
    tracker = PageViewTracker(ingress)
    event = PageViewEvent(store_id=STORE_ID, session_id=str(uuid.uuid4()), page="/acme")

    task = tracker.dispatch(event)
    assert task is not None
    await tracker.drain()

    assert task.result() is False
    assert "Error tracking page view" in caplog.text

    ingress.page_view_error = None
    ingress.reject_page_views = True
    assert await tracker.track_page_view(event) is False
    assert "Page view rejected" in caplog.text


@pytest.mark.asyncio
async def test_invalid_event_payload_is_swallowed() -> None:
    ingress = RecordingIngress()
    tracker = PageViewTracker(ingress)

    assert await tracker.track_page_view(
        PageViewEvent(store_id="not-a-uuid", session_id=str(uuid.uuid4()))
    ) is False
