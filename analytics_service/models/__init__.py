from analytics_service.models.history import History
from analytics_service.models.library import LibraryEntry

__all__ = ['History', 'LibraryEntry']
