"""Best-effort, fire-and-forget page-view delivery.

:meth:`PageViewTracker.dispatch` schedules the send as an asyncio task and
returns immediately. The caller never awaits the outcome: failures are logged
inside the task and a dropped page view is never retried.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from storefront.schemas.analytics import PageViewCreate, UtmParams
from storefront.tracking.ingress import TrackingIngress

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PageViewEvent:
    store_id: str
    session_id: str
    referrer: str | None = None
    utm_params: UtmParams = field(default_factory=UtmParams)
    page: str | None = None

    def to_payload(self) -> PageViewCreate:
        return PageViewCreate(
            store_id=self.store_id,
            session_id=self.session_id,
            referrer=self.referrer,
            page=self.page,
            **self.utm_params.utm_dict(),
        )


class PageViewTracker:
    def __init__(self, ingress: TrackingIngress) -> None:
        self._ingress = ingress
        # Strong references keep in-flight tasks from being garbage collected.
        self._pending: set[asyncio.Task[bool]] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def dispatch(self, event: PageViewEvent) -> asyncio.Task[bool] | None:
        """Schedule ``event`` for delivery without waiting for it.

        Events without a session id are dropped before any I/O; ``None`` is
        returned in that case.
        """

        if not event.session_id:
            logger.debug("Dropping page view for store %s: session not ready", event.store_id)
            return None

        task = asyncio.get_running_loop().create_task(self.track_page_view(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def track_page_view(self, event: PageViewEvent) -> bool:
        """Send one page view; return whether the ingress accepted it. Never raises."""

        if not event.session_id:
            return False

        try:
            result = await self._ingress.track_page_view(event.to_payload())
        except Exception as exc:
            logger.warning("Error tracking page view for session %s: %s", event.session_id, exc)
            return False

        if not result.success:
            logger.warning(
                "Page view rejected for session %s: %s", event.session_id, result.error
            )
            return False
        return True

    async def drain(self) -> None:
        """Wait for in-flight sends, e.g. before shutdown or in tests."""

        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


__all__ = ["PageViewEvent", "PageViewTracker"]
