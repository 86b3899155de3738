"""Visitor-side analytics: session lifecycle and page-view dispatch.

These components model what runs in a visitor's browser tab. They are kept
free of any UI framework so an interface layer (or a test) can drive them
directly: call :meth:`StorefrontAnalytics.on_page_load` for every page load.
"""

from .attribution import NavigationContext, extract_utm_params, normalize_referrer
from .ingress import HttpTrackingIngress, LocalTrackingIngress, TrackingIngress
from .provider import StorefrontAnalytics
from .session import AnalyticsSessionManager, SessionState
from .storage import InMemoryTabStorage, PersistedSession, TabStorage
from .tracker import PageViewEvent, PageViewTracker

__all__ = [
    "AnalyticsSessionManager",
    "HttpTrackingIngress",
    "InMemoryTabStorage",
    "LocalTrackingIngress",
    "NavigationContext",
    "PageViewEvent",
    "PageViewTracker",
    "PersistedSession",
    "SessionState",
    "StorefrontAnalytics",
    "TabStorage",
    "TrackingIngress",
    "extract_utm_params",
    "normalize_referrer",
]
