"""Pydantic schemas for the tracking ingress and analytics reports."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, Field, field_validator

DataT = TypeVar("DataT")

UTM_FIELDS = ("utm_source", "utm_medium", "utm_campaign", "utm_content", "utm_term")

_EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


def _validate_uuid(value: str | None, message: str) -> str | None:
    if value is None:
        return None
    try:
        return str(uuid.UUID(value))
    except (ValueError, AttributeError, TypeError) as exc:
        raise ValueError(message) from exc


class UtmParams(BaseModel):
    """Campaign attribution captured from the landing URL."""

    utm_source: str | None = None
    utm_medium: str | None = None
    utm_campaign: str | None = None
    utm_content: str | None = None
    utm_term: str | None = None

    def utm_dict(self) -> dict[str, str]:
        return self.model_dump(include=set(UTM_FIELDS), exclude_none=True)


class SessionCreate(UtmParams):
    store_id: str
    session_id: str | None = Field(
        None,
        description="Client-generated identifier; the server assigns one when absent.",
    )
    referrer: str | None = None
    user_agent: str | None = None

    @field_validator("store_id")
    @classmethod
    def _store_id_is_uuid(cls, value: str) -> str:
        return _validate_uuid(value, "Invalid store ID")

    @field_validator("session_id")
    @classmethod
    def _session_id_is_uuid(cls, value: str | None) -> str | None:
        return _validate_uuid(value, "Invalid session ID")


class _TrackedEvent(UtmParams):
    store_id: str
    session_id: str | None = None
    referrer: str | None = None
    user_agent: str | None = None

    @field_validator("store_id")
    @classmethod
    def _store_id_is_uuid(cls, value: str) -> str:
        return _validate_uuid(value, "Invalid store ID")

    @field_validator("session_id")
    @classmethod
    def _session_id_is_uuid(cls, value: str | None) -> str | None:
        return _validate_uuid(value, "Invalid session ID")


class PageViewCreate(_TrackedEvent):
    page: str | None = Field(None, max_length=2048, description="Path of the viewed page.")


class ProductEvent(_TrackedEvent):
    product_id: str

    @field_validator("product_id")
    @classmethod
    def _product_id_is_uuid(cls, value: str) -> str:
        return _validate_uuid(value, "Invalid product ID")


class ProductClickCreate(ProductEvent):
    pass


class LeadSubmissionCreate(ProductEvent):
    email: str | None = Field(None, pattern=_EMAIL_PATTERN)
    full_name: str | None = None
    phone_number: str | None = None


class PurchaseCreate(ProductEvent):
    amount: float = Field(..., gt=0)
    currency: str = Field("MYR", min_length=3, max_length=3)
    customer_email: str = Field(..., pattern=_EMAIL_PATTERN)
    customer_name: str | None = None


class SessionCreated(BaseModel):
    session_id: str


class TrackingResponse(BaseModel, Generic[DataT]):
    """Success/failure envelope returned by every tracking call."""

    success: bool
    data: DataT | None = None
    error: str | None = None


class StoreAnalyticsSummary(BaseModel):
    total_page_views: int = 0
    total_clicks: int = 0
    unique_visitors: int = 0
    total_leads: int = 0
    total_purchases: int = 0
    total_revenue: float = 0.0
    top_traffic_source: str | None = None
    conversion_rate: float = 0.0


class TrafficSource(BaseModel):
    source: str
    medium: str | None = None
    views: int = 0
    clicks: int = 0
    leads: int = 0
    purchases: int = 0
    revenue: float = 0.0
    percentage: float = 0.0


class TrafficSourcesResponse(BaseModel):
    store_id: str
    start: datetime
    end: datetime
    sources: list[TrafficSource] = Field(default_factory=list)
