"""Pydantic schemas for the ShopSearch API.

All request/response models are defined here for easy import.
"""

from shopsearch.schemas.common import ApiResponse, CamelModel, ErrorDetail, ErrorResponse
from shopsearch.schemas.product import ProductResponse
from shopsearch.schemas.search import (
    AckResponse,
    AutocompleteResponse,
    ClickRequest,
    PopularKeywordResponse,
    PopularSearchesResponse,
    ReportKeywordResponse,
    SearchReportResponse,
    SearchReportSummary,
    SearchResponse,
    Suggestion,
    SuggestionsResponse,
    TrendingKeywordResponse,
)
from shopsearch.schemas.health import HealthCheckResponse

__all__ = [
    # Common
    "ApiResponse",
    "CamelModel",
    "ErrorDetail",
    "ErrorResponse",
    # Product
    "ProductResponse",
    # Search
    "AckResponse",
    "AutocompleteResponse",
    "ClickRequest",
    "PopularSearchesResponse",
    "SearchResponse",
    "Suggestion",
    "SuggestionsResponse",
    # Keywords
    "TrendingKeywordResponse",
    "PopularKeywordResponse",
    "ReportKeywordResponse",
    "SearchReportResponse",
    "SearchReportSummary",
    # Health
    "HealthCheckResponse",
]
