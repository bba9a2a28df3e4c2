"""Services module for search, suggestions and search analytics.

Service classes wrap an async database session and implement the
persistence-backed operations on top of the pure ``shopsearch.search``
engine.
"""

from shopsearch.services.analytics_service import AnalyticsService, SearchTracker
from shopsearch.services.category_service import CategoryService
from shopsearch.services.product_repository import ProductRepository
from shopsearch.services.search_service import SearchResult, SearchService
from shopsearch.services.suggestion_service import SuggestionService

__all__ = [
    "AnalyticsService",
    "SearchTracker",
    "CategoryService",
    "ProductRepository",
    "SearchResult",
    "SearchService",
    "SuggestionService",
]
