from __future__ import annotations

import asyncio
import logging

from storefront.tracking.attribution import NavigationContext
from storefront.tracking.session import AnalyticsSessionManager
from storefront.tracking.tracker import PageViewEvent, PageViewTracker

logger = logging.getLogger(__name__)


class StorefrontAnalytics:
    """Drive session initialization and page-view tracking for one tab.

    ``on_page_load`` fires exactly one page view per ``(session_id, page)``
    transition, always carrying the session's first-touch attribution rather
    than the current navigation's referrer.
    """

    def __init__(self, manager: AnalyticsSessionManager, tracker: PageViewTracker) -> None:
        self._manager = manager
        self._tracker = tracker
        self._last_tracked: tuple[str, str] | None = None

    @property
    def manager(self) -> AnalyticsSessionManager:
        return self._manager

    async def on_page_load(self, context: NavigationContext) -> asyncio.Task[bool] | None:
        session = await self._manager.initialize(context)
        if session is None or not self._manager.is_ready:
            return None

        transition = (session.session_id, context.page)
        if transition == self._last_tracked:
            logger.debug("Page %s already tracked for session %s", context.page, session.session_id)
            return None
        self._last_tracked = transition

        return self._tracker.dispatch(
            PageViewEvent(
                store_id=session.store_id,
                session_id=session.session_id,
                referrer=session.referrer,
                utm_params=session.utm_params,
                page=context.page,
            )
        )


__all__ = ["StorefrontAnalytics"]
