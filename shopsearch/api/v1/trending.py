"""Trending API endpoints."""

from typing import List

from fastapi import APIRouter, Depends, Query

from shopsearch.config import settings
from shopsearch.dependencies import get_analytics_service
from shopsearch.schemas import (
    ApiResponse,
    PopularKeywordResponse,
    ReportKeywordResponse,
    SearchReportResponse,
    SearchReportSummary,
    TrendingKeywordResponse,
)
from shopsearch.services.analytics_service import AnalyticsService
from shopsearch.services.cache_service import CacheService, cache_key_for_keywords, get_cache

router = APIRouter()

TrendingPayload = ApiResponse[List[TrendingKeywordResponse]]
PopularPayload = ApiResponse[List[PopularKeywordResponse]]
ReportPayload = ApiResponse[SearchReportResponse]


@router.get("", response_model=TrendingPayload)
async def get_trending(
    limit: int = Query(10, ge=1, le=50, description="Number of trending keywords to return"),
    service: AnalyticsService = Depends(get_analytics_service),
    cache: CacheService = Depends(get_cache),
):
    """Get trending search keywords.

    Keywords searched in the last 7 days, most weekly searches first.

    This endpoint is cached for KEYWORD_CACHE_TTL_SECONDS (120 by default).
    """
    cache_key = cache_key_for_keywords("trending", limit)

    cached = await cache.get(cache_key)
    if cached:
        return TrendingPayload.model_validate_json(cached)

    # Cache miss - fetch from database
    keywords = await service.get_trending_keywords(limit=limit)
    response = TrendingPayload(
        data=[TrendingKeywordResponse.model_validate(k) for k in keywords],
    )

    await cache.set(cache_key, response.model_dump_json(), ttl=settings.KEYWORD_CACHE_TTL_SECONDS)

    return response


@router.get("/popular", response_model=PopularPayload)
async def get_popular(
    limit: int = Query(10, ge=1, le=50, description="Number of popular keywords to return"),
    service: AnalyticsService = Depends(get_analytics_service),
    cache: CacheService = Depends(get_cache),
):
    """Get the all-time most popular keywords by click-weighted popularity score."""
    cache_key = cache_key_for_keywords("popular", limit)

    cached = await cache.get(cache_key)
    if cached:
        return PopularPayload.model_validate_json(cached)

    keywords = await service.get_popular_keywords(limit=limit)
    response = PopularPayload(
        data=[PopularKeywordResponse.model_validate(k) for k in keywords],
    )

    await cache.set(cache_key, response.model_dump_json(), ttl=settings.KEYWORD_CACHE_TTL_SECONDS)

    return response


@router.get("/report", response_model=ReportPayload)
async def get_search_report(
    period: str = Query("week", pattern="^(day|week|month|all)$", description="Look-back window"),
    limit: int = Query(20, ge=1, le=100, description="Keywords per list"),
    service: AnalyticsService = Depends(get_analytics_service),
    cache: CacheService = Depends(get_cache),
):
    """Search demand report: top searches, trending searches and totals.

    Only keywords searched within the period are counted.
    """
    cache_key = cache_key_for_keywords(f"report:{period}", limit)

    cached = await cache.get(cache_key)
    if cached:
        return ReportPayload.model_validate_json(cached)

    report = await service.get_search_report(period=period, limit=limit)
    response = ReportPayload(
        data=SearchReportResponse(
            period=report.period,
            top_searches=[ReportKeywordResponse.model_validate(k) for k in report.top_searches],
            trending_searches=[TrendingKeywordResponse.model_validate(k) for k in report.trending_searches],
            summary=SearchReportSummary(
                total_searches=report.total_searches,
                total_clicks=report.total_clicks,
                unique_searches=report.unique_searches,
            ),
        ),
    )

    await cache.set(cache_key, response.model_dump_json(), ttl=settings.KEYWORD_CACHE_TTL_SECONDS)

    return response
