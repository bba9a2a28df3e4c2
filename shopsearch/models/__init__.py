"""SQLAlchemy models for ShopSearch.

All models are imported here so metadata.create_all sees every table.
"""

from shopsearch.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from shopsearch.models.category import Category
from shopsearch.models.product import Product
from shopsearch.models.search_keyword import SearchKeyword, SearchKeywordProduct

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "Category",
    "Product",
    "SearchKeyword",
    "SearchKeywordProduct",
]
