from storefront.db.repositories.analytics_repository import AnalyticsRepository
from storefront.db.repositories.store_repository import StoreRepository

__all__ = ["AnalyticsRepository", "StoreRepository"]
