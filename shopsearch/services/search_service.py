"""Search service: query parsing, candidate retrieval, ranking and facets.

Ties the pure search engine (``shopsearch.search``) to the product
repository. A search runs the primary predicate and, when it finds nothing,
a relaxed substring predicate capped at ``SEARCH_FALLBACK_LIMIT`` results.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from shopsearch.config import settings
from shopsearch.search.filter_builder import (
    SearchFilters,
    apply_explicit_filters,
    build_fallback_filter,
    build_filter,
)
from shopsearch.search.scoring import ScoredProduct, score_products, sort_products
from shopsearch.search.tokenizer import ParsedQuery, parse_query
from shopsearch.services.product_repository import ProductRepository, summarize_facets

logger = structlog.get_logger(__name__)

MAX_CATEGORY_SUGGESTIONS = 8
SUGGESTION_SAMPLE_SIZE = 10


@dataclass
class SearchResult:
    """One page of ranked results plus the metadata describing the search."""

    products: List[ScoredProduct] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 20
    facets: Dict[str, Any] = field(default_factory=dict)
    search_meta: Dict[str, Any] = field(default_factory=dict)
    suggestions: List[Dict[str, str]] = field(default_factory=list)
    # Ranked ids recorded against the keyword by analytics
    related_product_ids: List[Any] = field(default_factory=list)

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    @property
    def is_fallback_search(self) -> bool:
        return bool(self.search_meta.get("is_fallback_search"))


def _search_meta(
    parsed: ParsedQuery,
    filters: SearchFilters,
    sort_by: str,
    match_mode: str,
    is_fallback: bool,
) -> Dict[str, Any]:
    return {
        "search_terms": list(parsed.tokens),
        "detected_primary_category": (
            parsed.primary_category.category if parsed.primary_category else None
        ),
        "detected_product_type": parsed.product_type,
        "has_filters": filters.has_filters,
        "sort_by": sort_by,
        "match_mode": match_mode,
        "is_fallback_search": is_fallback,
    }


class SearchService:
    """Service for free-text product search.

    Args:
        db: Async database session
        repository: Product repository; built from ``db`` when omitted
    """

    def __init__(self, db: AsyncSession, repository: Optional[ProductRepository] = None):
        self.db = db
        self.repository = repository or ProductRepository(db)
        self.logger = logger.bind(service="search_service")

    async def search(
        self,
        query: Optional[str],
        filters: Optional[SearchFilters] = None,
        sort_by: str = "relevance",
        page: int = 1,
        limit: int = settings.SEARCH_DEFAULT_PAGE_SIZE,
        match_mode: str = "all",
    ) -> SearchResult:
        """Search active products for a free-text query.

        Args:
            query: Raw query text
            filters: Explicit filters ANDed onto the text predicate
            sort_by: "relevance", "price-low", "price-high", "rating",
                "popularity" or "newest"
            page: Page number (1-indexed)
            limit: Results per page
            match_mode: "all" (every token must match) or "any"

        Returns:
            SearchResult; empty when the query has no searchable tokens

        Raises:
            PersistenceUnavailableError: If candidates cannot be fetched
        """
        filters = filters or SearchFilters()
        page = max(page, 1)
        limit = max(1, min(limit, settings.SEARCH_MAX_PAGE_SIZE))
        parsed = parse_query(query)

        self.logger.info(
            "searching_products",
            query=parsed.raw,
            tokens=parsed.tokens,
            primary_category=parsed.primary_category.category if parsed.primary_category else None,
            product_type=parsed.product_type,
            page=page,
            limit=limit,
        )

        if parsed.is_empty:
            self.logger.warning("empty_search_query", query=parsed.raw)
            return SearchResult(
                page=page,
                limit=limit,
                facets=summarize_facets([]),
                search_meta=_search_meta(parsed, filters, sort_by, match_mode, False),
            )

        predicate = apply_explicit_filters(
            build_filter(parsed.tokens, parsed.primary_category, parsed.product_type, match_mode),
            filters,
        )
        candidates, _ = await self.repository.find(predicate)

        is_fallback = False
        if not candidates:
            is_fallback = True
            fallback = apply_explicit_filters(build_fallback_filter(parsed.tokens), filters)
            candidates, _ = await self.repository.find(
                fallback,
                order_by="views",
                limit=settings.SEARCH_FALLBACK_LIMIT,
            )
            self.logger.info("fallback_search_used", query=parsed.raw, results=len(candidates))

        ranked = sort_products(score_products(candidates, parsed.tokens), sort_by)
        total = len(ranked)
        skip = (page - 1) * limit

        result = SearchResult(
            products=ranked[skip:skip + limit],
            total=total,
            page=page,
            limit=limit,
            facets=summarize_facets(candidates),
            search_meta=_search_meta(parsed, filters, sort_by, match_mode, is_fallback),
            related_product_ids=[
                s.product.id for s in ranked[: settings.ANALYTICS_MAX_RELATED_PRODUCTS]
            ],
        )

        if total < settings.SEARCH_SUGGESTION_THRESHOLD:
            result.suggestions = await self.category_suggestions(parsed.tokens)

        self.logger.info(
            "search_completed",
            query=parsed.raw,
            results=len(result.products),
            total=total,
            page=page,
            fallback=is_fallback,
        )

        return result

    async def category_suggestions(self, tokens: List[str]) -> List[Dict[str, str]]:
        """'Did you mean' category names from products partially matching the tokens."""
        products, _ = await self.repository.find(build_fallback_filter(tokens), limit=SUGGESTION_SAMPLE_SIZE)

        names: List[str] = []
        for product in products:
            category = product.category
            levels = [category.main, category.sub, category.type, category.variant, category.style]
            levels.extend(level.name for level in category.all_levels)
            for name in levels:
                if name and name not in names:
                    names.append(name)

        return [
            {"type": "category", "name": name, "display": name}
            for name in names[:MAX_CATEGORY_SUGGESTIONS]
        ]
