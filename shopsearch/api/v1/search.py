"""Search API endpoints."""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from shopsearch.config import settings
from shopsearch.dependencies import get_search_service, get_search_tracker, get_suggestion_service
from shopsearch.schemas import (
    AckResponse,
    AutocompleteResponse,
    ClickRequest,
    PopularSearchesResponse,
    SearchResponse,
    Suggestion,
    SuggestionsResponse,
)
from shopsearch.search.filter_builder import SearchFilters
from shopsearch.services.analytics_service import SearchTracker
from shopsearch.services.search_service import SearchService
from shopsearch.services.suggestion_service import SuggestionService

router = APIRouter()


@router.get("/products", response_model=SearchResponse)
async def search_products(
    background_tasks: BackgroundTasks,
    q: str = Query("", max_length=200, description="Search query"),
    category: Optional[str] = Query(None, description="Category name at any level ('all' for none)"),
    main_category: Optional[str] = Query(None, description="Main category name"),
    sub_category: Optional[str] = Query(None, description="Subcategory name"),
    brand: Optional[str] = Query(None, description="Brand name"),
    min_price: Optional[float] = Query(None, ge=0, description="Minimum price"),
    max_price: Optional[float] = Query(None, ge=0, description="Maximum price"),
    min_rating: Optional[float] = Query(None, ge=0, le=5, description="Minimum average rating"),
    in_stock: bool = Query(False, description="Only products with stock"),
    sort_by: str = Query(
        "relevance",
        pattern="^(relevance|price-low|price-high|rating|popularity|newest)$",
        description="Sort method",
    ),
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    limit: int = Query(
        settings.SEARCH_DEFAULT_PAGE_SIZE,
        ge=1,
        le=settings.SEARCH_MAX_PAGE_SIZE,
        description="Items per page",
    ),
    match: str = Query("all", pattern="^(all|any)$", description="Token matching mode"),
    service: SearchService = Depends(get_search_service),
    tracker: SearchTracker = Depends(get_search_tracker),
):
    """Free-text product search with relevance ranking.

    Queries naming a primary category and a product type ("mens shirt")
    only return products in that category carrying that type. When nothing
    matches, a relaxed substring search runs and the response is flagged
    with ``searchMeta.isFallbackSearch``.

    Sort options:
    - relevance: Best matching results first
    - price-low / price-high: By price
    - rating: Highest rated first
    - popularity: Best selling first
    - newest: Most recently added first
    """
    filters = SearchFilters(
        brand=brand,
        min_price=min_price,
        max_price=max_price,
        min_rating=min_rating,
        in_stock=in_stock,
        category=category,
        main_category=main_category,
        sub_category=sub_category,
    )
    result = await service.search(
        query=q,
        filters=filters,
        sort_by=sort_by,
        page=page,
        limit=limit,
        match_mode=match,
    )

    # Record the keyword after the response is sent
    if result.search_meta.get("search_terms"):
        background_tasks.add_task(
            tracker.track_search,
            q,
            result.total,
            result.related_product_ids,
        )

    return SearchResponse.from_result(q.strip(), result)


@router.get("/suggestions", response_model=SuggestionsResponse, response_model_exclude_none=True)
async def search_suggestions(
    q: str = Query("", max_length=200, description="Partial query"),
    limit: int = Query(10, ge=1, le=50, description="Maximum suggestions"),
    service: SuggestionService = Depends(get_suggestion_service),
):
    """Suggestions for a partially typed query.

    Blends trending keywords, matching products, brands and categories.
    Queries shorter than two characters return trending keywords.
    """
    suggestions = await service.suggest(q, limit=limit)
    return SuggestionsResponse(suggestions=[Suggestion(**s) for s in suggestions])


@router.get("/autocomplete", response_model=AutocompleteResponse)
async def search_autocomplete(
    q: str = Query("", max_length=200, description="Partial query"),
    limit: int = Query(8, ge=1, le=20, description="Maximum completions"),
    service: SuggestionService = Depends(get_suggestion_service),
):
    """Plain-text completions from product names, brands and categories."""
    return AutocompleteResponse(suggestions=await service.autocomplete(q, limit=limit))


@router.get("/popular", response_model=PopularSearchesResponse)
async def popular_searches(
    limit: int = Query(10, ge=1, le=50, description="Maximum entries"),
    kind: str = Query("all", alias="type", pattern="^(all|trending|popular|terms)$"),
    service: SuggestionService = Depends(get_suggestion_service),
):
    """Popular searches to show in an empty search box."""
    return PopularSearchesResponse(data=await service.popular_searches(limit=limit, kind=kind))


@router.post("/click", response_model=AckResponse)
async def record_search_click(
    body: ClickRequest,
    background_tasks: BackgroundTasks,
    tracker: SearchTracker = Depends(get_search_tracker),
):
    """Record a click on a search result.

    Always acknowledged; unknown keywords and tracking failures are ignored.
    """
    if body.keyword.strip():
        background_tasks.add_task(tracker.track_click, body.keyword, body.product_id)
    return AckResponse()
