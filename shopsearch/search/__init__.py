"""In-process product search engine.

Pure, synchronous building blocks: tokenization and facet detection,
normalization, predicate construction, relevance scoring and keyword
metrics. Persistence lives in ``shopsearch.services``.
"""

from shopsearch.search.documents import (
    CategoryLevel,
    CategoryPath,
    ColorVariant,
    SearchableProduct,
    SizeVariant,
)
from shopsearch.search.filter_builder import (
    SearchFilters,
    apply_explicit_filters,
    build_fallback_filter,
    build_filter,
)
from shopsearch.search.keyword_metrics import (
    TrendingResult,
    calculate_popularity_score,
    calculate_trending_score,
)
from shopsearch.search.predicate import Predicate, evaluate
from shopsearch.search.scoring import (
    ScoredProduct,
    calculate_relevance_score,
    score_products,
    sort_products,
)
from shopsearch.search.tokenizer import (
    ParsedQuery,
    PrimaryCategory,
    detect_primary_category,
    detect_product_type,
    parse_query,
    tokenize,
)

__all__ = [
    "CategoryLevel",
    "CategoryPath",
    "ColorVariant",
    "SearchableProduct",
    "SizeVariant",
    "SearchFilters",
    "apply_explicit_filters",
    "build_fallback_filter",
    "build_filter",
    "TrendingResult",
    "calculate_popularity_score",
    "calculate_trending_score",
    "Predicate",
    "evaluate",
    "ScoredProduct",
    "calculate_relevance_score",
    "score_products",
    "sort_products",
    "ParsedQuery",
    "PrimaryCategory",
    "detect_primary_category",
    "detect_product_type",
    "parse_query",
    "tokenize",
]
