"""Search suggestions, autocomplete and popular searches.

Suggestions blend several sources in a fixed order (trending keywords,
matching products, brands, categories and subcategories) and are
de-duplicated by their display string. Lookups are best effort: a failing
source is logged and the caller gets an empty list.
"""

from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shopsearch.core.exceptions import PersistenceUnavailableError
from shopsearch.search import documents as fields
from shopsearch.search.filter_builder import ACTIVE_STATUS, category_group
from shopsearch.search.normalizer import build_word_boundary_patterns, expand_synonyms
from shopsearch.search.predicate import Equals, Predicate, all_of, any_of, match
from shopsearch.search.tokenizer import PrimaryCategory, parse_query
from shopsearch.search.vocabulary import (
    CATEGORY_NORMALIZATION_MAP,
    PRODUCT_NAME_NORMALIZATION_MAP,
)
from shopsearch.services.analytics_service import AnalyticsService
from shopsearch.services.category_service import CategoryService
from shopsearch.services.product_repository import ProductRepository

logger = structlog.get_logger(__name__)

MIN_QUERY_LENGTH = 2
POPULAR_KINDS = ("all", "trending", "popular", "terms")

_LOOKUP_ERRORS = (PersistenceUnavailableError, SQLAlchemyError)


def _dedupe(items: List[Dict[str, Any]], key: str = "display") -> List[Dict[str, Any]]:
    seen = set()
    unique = []
    for item in items:
        if item[key] in seen:
            continue
        seen.add(item[key])
        unique.append(item)
    return unique


def _within_category(predicate: Predicate, primary_category: Optional[PrimaryCategory]) -> Predicate:
    if primary_category is None:
        return predicate
    return all_of(predicate, category_group(primary_category))


class SuggestionService:
    """Builds query suggestions from analytics, products and categories."""

    def __init__(
        self,
        db: AsyncSession,
        analytics: Optional[AnalyticsService] = None,
        repository: Optional[ProductRepository] = None,
        categories: Optional[CategoryService] = None,
    ):
        self.db = db
        self.analytics = analytics or AnalyticsService(db)
        self.repository = repository or ProductRepository(db)
        self.categories = categories or CategoryService(db)
        self.logger = logger.bind(service="suggestion_service")

    async def suggest(self, partial_query: Optional[str], limit: int = 10) -> List[Dict[str, Any]]:
        """Suggestions for a partially typed query.

        Queries shorter than two characters get the top trending keywords.

        Returns:
            Suggestion dicts with at least 'display' and 'type' keys
        """
        query = (partial_query or "").strip()
        try:
            if len(query) < MIN_QUERY_LENGTH:
                trending = await self.analytics.get_trending_keywords(limit=5)
                return [
                    {"display": k.original_keyword, "type": "trending", "count": k.weekly_searches}
                    for k in trending
                ][:limit]
            suggestions = await self._blend(query)
        except _LOOKUP_ERRORS as e:
            self.logger.error("suggestions_failed", query=query, error=str(e))
            return []

        return _dedupe(suggestions)[:limit]

    async def _blend(self, query: str) -> List[Dict[str, Any]]:
        parsed = parse_query(query)
        suggestions: List[Dict[str, Any]] = []

        lowered = query.lower()
        for keyword in await self.analytics.get_trending_keywords(limit=10):
            if lowered in keyword.original_keyword.lower():
                suggestions.append({
                    "display": keyword.original_keyword,
                    "type": "trending",
                    "count": keyword.weekly_searches,
                    "trending": True,
                })

        if parsed.is_empty:
            return suggestions

        product_patterns = build_word_boundary_patterns(
            expand_synonyms(parsed.tokens), PRODUCT_NAME_NORMALIZATION_MAP
        )
        active = Equals(fields.STATUS, ACTIVE_STATUS)

        products, _ = await self.repository.find(
            _within_category(
                all_of(
                    active,
                    any_of(
                        match(fields.NAME, product_patterns),
                        match(fields.BRAND, product_patterns),
                        match(fields.TAGS, product_patterns),
                    ),
                ),
                parsed.primary_category,
            ),
            order_by="views",
            limit=5,
        )
        for product in products:
            suggestions.append({
                "display": product.name,
                "type": "product",
                "product_id": str(product.id),
                "brand": product.brand,
                "price": product.price,
                "category": f"{product.category.main or ''} > {product.category.sub or ''}",
            })

        brands = await self.repository.brand_counts(
            all_of(active, match(fields.BRAND, product_patterns)), limit=2
        )
        for brand, count in brands:
            suggestions.append({"display": brand, "type": "brand", "count": count})

        category_patterns = build_word_boundary_patterns(parsed.tokens, CATEGORY_NORMALIZATION_MAP)
        for category in await self.categories.find_matching(category_patterns, limit=3):
            suggestions.append({
                "display": category.name,
                "type": "category",
                "slug": category.slug,
                "count": category.product_count,
            })
            for sub in self.categories.matching_subcategories(category, category_patterns, limit=2):
                suggestions.append({
                    "display": f"{sub.name} in {category.name}",
                    "type": "subcategory",
                    "slug": sub.slug,
                    "parent_category": category.slug,
                    "count": sub.product_count,
                })

        return suggestions

    async def autocomplete(self, partial_query: Optional[str], limit: int = 8) -> List[str]:
        """Plain completions: product names, then brands, then category names."""
        query = (partial_query or "").strip()
        if len(query) < MIN_QUERY_LENGTH:
            return []

        parsed = parse_query(query)
        if parsed.is_empty:
            return []

        product_patterns = build_word_boundary_patterns(parsed.tokens, PRODUCT_NAME_NORMALIZATION_MAP)
        category_patterns = build_word_boundary_patterns(parsed.tokens, CATEGORY_NORMALIZATION_MAP)
        active = Equals(fields.STATUS, ACTIVE_STATUS)

        try:
            products, _ = await self.repository.find(
                _within_category(
                    all_of(active, match(fields.NAME, product_patterns)),
                    parsed.primary_category,
                ),
                order_by="views",
            )
            brands = await self.repository.brand_counts(
                all_of(active, match(fields.BRAND, product_patterns)), limit=2
            )
            category_names = await self.categories.names_matching(category_patterns, limit=2)
        except _LOOKUP_ERRORS as e:
            self.logger.error("autocomplete_failed", query=query, error=str(e))
            return []

        names = list(dict.fromkeys(p.name for p in products))[:4]
        completions = names + [brand for brand, _ in brands] + category_names
        return list(dict.fromkeys(completions))[:limit]

    async def popular_searches(self, limit: int = 10, kind: str = "all") -> List[Dict[str, Any]]:
        """Popular searches for an empty search box.

        Args:
            limit: Maximum entries
            kind: "trending", "popular", "all" (both) or "terms" (catalog
                names); catalog names are also used when no keywords exist

        Returns:
            Entry dicts with 'keyword', 'type' and 'count' keys
        """
        if kind not in POPULAR_KINDS:
            raise ValueError(f"Unknown popular search kind: {kind}")

        results: List[Dict[str, Any]] = []
        try:
            if kind in ("trending", "all"):
                for k in await self.analytics.get_trending_keywords(limit=5):
                    results.append(
                        {"keyword": k.original_keyword, "type": "trending", "count": k.weekly_searches}
                    )

            if kind in ("popular", "all"):
                for k in await self.analytics.get_popular_keywords(limit=5):
                    results.append(
                        {"keyword": k.original_keyword, "type": "popular", "count": k.search_count}
                    )

            if kind == "terms" or not results:
                for name in await self.repository.most_viewed_names(limit=5):
                    results.append({"keyword": name, "type": "product", "count": None})
                for name in await self.categories.largest(limit=3):
                    results.append({"keyword": name, "type": "category", "count": None})
        except _LOOKUP_ERRORS as e:
            self.logger.error("popular_searches_failed", kind=kind, error=str(e))
            return []

        return _dedupe(results, key="keyword")[:limit]
