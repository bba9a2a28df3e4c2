"""Search Pydantic schemas for request/response validation."""

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from shopsearch.schemas.common import CamelModel
from shopsearch.schemas.product import ProductResponse
from shopsearch.services.search_service import SearchResult


class FacetCount(CamelModel):
    name: str
    count: int


class PriceRange(CamelModel):
    min: float = 0
    max: float = 0


class SearchFacets(CamelModel):
    """Filter options available within the result set."""

    brands: List[FacetCount] = []
    categories: List[FacetCount] = []
    price_range: PriceRange = PriceRange()
    rating_distribution: Dict[str, int] = {}


class SearchMeta(CamelModel):
    search_terms: List[str] = []
    detected_primary_category: Optional[str] = None
    detected_product_type: Optional[str] = None
    has_filters: bool = False
    sort_by: str = "relevance"
    match_mode: str = "all"
    is_fallback_search: bool = False


class Suggestion(CamelModel):
    """One suggestion entry; optional keys depend on ``type``."""

    display: str
    type: str
    name: Optional[str] = None
    count: Optional[int] = None
    trending: Optional[bool] = None
    product_id: Optional[str] = None
    brand: Optional[str] = None
    price: Optional[float] = None
    category: Optional[str] = None
    slug: Optional[str] = None
    parent_category: Optional[str] = None


class SearchResponse(CamelModel):
    """Search results page."""

    success: bool = True
    query: str
    tokens: List[str] = []
    count: int = 0
    total: int = 0
    page: int = 1
    pages: int = 0
    products: List[ProductResponse] = []
    suggestions: List[Suggestion] = []
    filters: SearchFacets = SearchFacets()
    search_meta: SearchMeta = SearchMeta()

    @classmethod
    def from_result(cls, query: str, result: SearchResult) -> "SearchResponse":
        return cls(
            query=query,
            tokens=result.search_meta.get("search_terms", []),
            count=len(result.products),
            total=result.total,
            page=result.page,
            pages=result.pages,
            products=[ProductResponse.from_scored(s) for s in result.products],
            suggestions=[Suggestion(**s) for s in result.suggestions],
            filters=SearchFacets.model_validate(result.facets),
            search_meta=SearchMeta.model_validate(result.search_meta),
        )


class SuggestionsResponse(CamelModel):
    success: bool = True
    suggestions: List[Suggestion] = []


class AutocompleteResponse(CamelModel):
    success: bool = True
    suggestions: List[str] = []


class PopularSearch(CamelModel):
    keyword: str
    type: str
    count: Optional[int] = None


class PopularSearchesResponse(CamelModel):
    success: bool = True
    data: List[PopularSearch] = []


class ClickRequest(CamelModel):
    """Click on a search result."""

    keyword: str = Field("", max_length=200)
    product_id: Optional[UUID] = None


class AckResponse(BaseModel):
    success: bool = True


class TrendingKeywordResponse(BaseModel):
    """Trending keyword response schema."""

    model_config = ConfigDict(from_attributes=True)

    keyword: str
    original_keyword: str
    weekly_searches: int
    trending_score: float
    trending: bool
    last_searched_at: datetime


class PopularKeywordResponse(BaseModel):
    """Popular keyword response schema."""

    model_config = ConfigDict(from_attributes=True)

    keyword: str
    original_keyword: str
    search_count: int
    click_count: int
    popularity_score: float


class ReportKeywordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    keyword: str
    original_keyword: str
    search_count: int
    click_count: int
    result_count: int


class SearchReportSummary(BaseModel):
    total_searches: int = 0
    total_clicks: int = 0
    unique_searches: int = 0


class SearchReportResponse(BaseModel):
    """Search demand report for one period."""

    period: str
    top_searches: List[ReportKeywordResponse]
    trending_searches: List[TrendingKeywordResponse]
    summary: SearchReportSummary
