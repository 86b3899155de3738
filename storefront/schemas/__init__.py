"""Pydantic schemas for API payloads and cached snapshots."""

from storefront.schemas.analytics import (  # noqa: F401
    LeadSubmissionCreate,
    PageViewCreate,
    ProductClickCreate,
    PurchaseCreate,
    SessionCreate,
    SessionCreated,
    StoreAnalyticsSummary,
    TrackingResponse,
    TrafficSource,
    TrafficSourcesResponse,
    UtmParams,
)
from storefront.schemas.store import (  # noqa: F401
    PageMetadata,
    ProductItem,
    PublicStoreData,
    SocialLinkItem,
    StoreCustomizationSchema,
    StoreProfile,
)
