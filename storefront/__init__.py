"""Multi-tenant storefront read path: cached public reads and visitor analytics."""

__version__ = "0.1.0"
