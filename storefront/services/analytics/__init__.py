"""Server-side analytics: the tracking ingress and the dashboard reports."""

from .recorder import AnalyticsRecorder, RequestFingerprint, validation_failure
from .reports import AnalyticsReportService

__all__ = [
    "AnalyticsRecorder",
    "AnalyticsReportService",
    "RequestFingerprint",
    "validation_failure",
]
