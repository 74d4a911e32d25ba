from analytics_service.repositories.analytics import AnalyticsRepository
from analytics_service.repositories.history import HistoryRepository
from analytics_service.repositories.library import LibraryRepository

__all__ = ['AnalyticsRepository', 'HistoryRepository', 'LibraryRepository']
