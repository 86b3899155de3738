from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.models import AnalyticsEvent, AnalyticsSessionRecord


class AnalyticsRepository:
    """Persistence for visitor sessions and append-only tracking events."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_session(self, session_id: str) -> AnalyticsSessionRecord | None:
        return await self._session.get(AnalyticsSessionRecord, session_id)

    async def session_exists(self, session_id: str) -> bool:
        result = await self._session.execute(
            select(AnalyticsSessionRecord.id).where(AnalyticsSessionRecord.id == session_id)
        )
        return result.scalar_one_or_none() is not None

    async def create_session(self, **fields: Any) -> AnalyticsSessionRecord:
        record = AnalyticsSessionRecord(**fields)
        self._session.add(record)
        await self._session.flush()
        return record

    async def insert_event(self, **fields: Any) -> AnalyticsEvent:
        event = AnalyticsEvent(**fields)
        self._session.add(event)
        await self._session.flush()
        return event

    async def fetch_events(
        self,
        store_id: str,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[AnalyticsEvent]:
        query = select(AnalyticsEvent).where(AnalyticsEvent.store_id == store_id)
        if start is not None:
            query = query.where(AnalyticsEvent.created_at >= start)
        if end is not None:
            query = query.where(AnalyticsEvent.created_at <= end)
        result = await self._session.execute(query.order_by(AnalyticsEvent.created_at.asc()))
        return list(result.scalars().all())

    async def commit(self) -> None:
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()
