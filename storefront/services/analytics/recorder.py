"""Tracking ingress: persists visitor sessions and tracking events.

Every public method returns a :class:`TrackingResponse` instead of raising.
Analytics is best-effort, so callers only ever need to look at ``success``.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from storefront.db.models import new_uuid
from storefront.db.repositories.analytics_repository import AnalyticsRepository
from storefront.schemas.analytics import (
    LeadSubmissionCreate,
    PageViewCreate,
    ProductClickCreate,
    ProductEvent,
    PurchaseCreate,
    SessionCreate,
    SessionCreated,
    TrackingResponse,
)

logger = logging.getLogger(__name__)


def hash_ip(ip_address: str) -> str:
    """Hash an IP address so raw addresses are never persisted."""

    return hashlib.sha256(ip_address.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class RequestFingerprint:
    """Transport details of the request that carried a tracking call."""

    user_agent: str | None = None
    ip_address: str | None = None

    @property
    def ip_hash(self) -> str | None:
        return hash_ip(self.ip_address) if self.ip_address else None

    @classmethod
    def from_headers(
        cls, headers: Mapping[str, str], client_host: str | None = None
    ) -> RequestFingerprint:
        """Resolve the client IP from proxy headers, falling back to the peer address."""

        forwarded_for = headers.get("x-forwarded-for")
        real_ip = headers.get("x-real-ip")
        if forwarded_for:
            ip_address: str | None = forwarded_for.split(",")[0].strip() or None
        else:
            ip_address = real_ip or client_host
        return cls(user_agent=headers.get("user-agent") or None, ip_address=ip_address)


def validation_failure(exc: ValidationError) -> TrackingResponse[Any]:
    """Collapse a pydantic error into the first human-readable message."""

    errors = exc.errors()
    message = errors[0]["msg"] if errors else "Invalid tracking payload"
    return TrackingResponse(success=False, error=message.removeprefix("Value error, "))


class AnalyticsRecorder:
    def __init__(
        self,
        repository: AnalyticsRepository,
        fingerprint: RequestFingerprint | None = None,
    ) -> None:
        self._repository = repository
        self._fingerprint = fingerprint or RequestFingerprint()

    def _transport_fields(self, user_agent: str | None) -> dict[str, Any]:
        return {
            "user_agent": user_agent or self._fingerprint.user_agent,
            "ip_hash": self._fingerprint.ip_hash,
        }

    async def create_session(self, payload: SessionCreate) -> TrackingResponse[SessionCreated]:
        """Get-or-create the session row; an existing session is never re-attributed."""

        try:
            if payload.session_id is not None:
                existing = await self._repository.get_session(payload.session_id)
                if existing is not None:
                    return TrackingResponse(
                        success=True, data=SessionCreated(session_id=existing.id)
                    )

            record = await self._repository.create_session(
                id=payload.session_id or new_uuid(),
                store_id=payload.store_id,
                referrer=payload.referrer,
                **payload.utm_dict(),
                **self._transport_fields(payload.user_agent),
            )
            await self._repository.commit()
        except SQLAlchemyError:
            logger.exception("Error creating session for store %s", payload.store_id)
            await self._repository.rollback()
            return TrackingResponse(success=False, error="Failed to create session")

        return TrackingResponse(success=True, data=SessionCreated(session_id=record.id))

    async def track_page_view(self, payload: PageViewCreate) -> TrackingResponse[None]:
        """Append a ``page_view`` event, creating the session row if it is missing."""

        try:
            if payload.session_id is not None and not await self._repository.session_exists(
                payload.session_id
            ):
                logger.info(
                    "Page view references unregistered session %s; creating it",
                    payload.session_id,
                )
                await self._repository.create_session(
                    id=payload.session_id,
                    store_id=payload.store_id,
                    referrer=payload.referrer,
                    **payload.utm_dict(),
                    **self._transport_fields(payload.user_agent),
                )

            await self._repository.insert_event(
                store_id=payload.store_id,
                session_id=payload.session_id,
                event_type="page_view",
                event_data={"page": payload.page} if payload.page else None,
                referrer=payload.referrer,
                **payload.utm_dict(),
                **self._transport_fields(payload.user_agent),
            )
            await self._repository.commit()
        except SQLAlchemyError:
            logger.exception("Error tracking page view for store %s", payload.store_id)
            await self._repository.rollback()
            return TrackingResponse(success=False, error="Failed to track page view")

        return TrackingResponse(success=True)

    async def track_product_click(self, payload: ProductClickCreate) -> TrackingResponse[None]:
        return await self._record_product_event(
            payload, event_type="product_click", event_data=None, label="product click"
        )

    async def track_lead_submission(
        self, payload: LeadSubmissionCreate
    ) -> TrackingResponse[None]:
        event_data = {
            "email": payload.email,
            "fullName": payload.full_name,
            "phoneNumber": payload.phone_number,
        }
        return await self._record_product_event(
            payload, event_type="lead_submit", event_data=event_data, label="lead submission"
        )

    async def track_purchase(self, payload: PurchaseCreate) -> TrackingResponse[None]:
        event_data = {
            "amount": payload.amount,
            "currency": payload.currency.upper(),
            "customerEmail": payload.customer_email,
            "customerName": payload.customer_name,
        }
        return await self._record_product_event(
            payload, event_type="purchase", event_data=event_data, label="purchase"
        )

    async def _record_product_event(
        self,
        payload: ProductEvent,
        *,
        event_type: str,
        event_data: dict[str, Any] | None,
        label: str,
    ) -> TrackingResponse[None]:
        try:
            session_id = payload.session_id
            # Unknown sessions are dropped rather than created: product events
            # carry no landing attribution worth starting a session with.
            if session_id is not None and not await self._repository.session_exists(session_id):
                session_id = None

            await self._repository.insert_event(
                store_id=payload.store_id,
                product_id=payload.product_id,
                session_id=session_id,
                event_type=event_type,
                event_data=event_data,
                referrer=payload.referrer,
                **payload.utm_dict(),
                **self._transport_fields(payload.user_agent),
            )
            await self._repository.commit()
        except SQLAlchemyError:
            logger.exception("Error tracking %s for store %s", label, payload.store_id)
            await self._repository.rollback()
            return TrackingResponse(success=False, error=f"Failed to track {label}")

        return TrackingResponse(success=True)


__all__ = ["AnalyticsRecorder", "RequestFingerprint", "hash_ip", "validation_failure"]
